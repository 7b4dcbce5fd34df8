"""Scoped tool state: (assessment, section, item, element, tool) → serializable payload.

Keys are "{assessment}:{section}:{item}:{element}". Item-scoped tools
use the item and element ids; section-scoped ("floating") tools use the
section scope key, which is independent of the item, so their state
survives navigation between items. The store is a plain map with no
eviction. Callers decide when item state is discarded.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.constants import SECTION_SCOPE_MARKER, STATE_KEY_DELIMITER
from src.infra.errors import StateKeyError

logger = structlog.get_logger()

StateListener = Callable[[str, str, Any], None]
PersistCallback = Callable[[dict[str, dict[str, Any]]], None]


@dataclass(frozen=True)
class GlobalElementId:
    assessment_id: str
    section_id: str
    item_id: str
    element_id: str
    section_scope_marker: str = field(default=SECTION_SCOPE_MARKER, compare=False, repr=False)

    @property
    def is_section_scope(self) -> bool:
        return self.item_id == self.section_scope_marker


class ScopedStateStore:
    def __init__(self, *, section_scope_marker: str = SECTION_SCOPE_MARKER) -> None:
        self._marker = section_scope_marker
        # key → tool id → payload
        self._state: dict[str, dict[str, Any]] = {}
        self._listeners: list[StateListener] = []
        self._on_change: PersistCallback | None = None

    # -- keys -----------------------------------------------------------

    def get_global_element_id(
        self, assessment_id: str, section_id: str, item_id: str, element_id: str
    ) -> str:
        """Compose a collision-free key. Raises StateKeyError on an unusable segment."""
        segments = (assessment_id, section_id, item_id, element_id)
        for name, value in zip(("assessment_id", "section_id", "item_id", "element_id"), segments):
            _check_segment(name, value)
            if value == self._marker:
                raise StateKeyError(f"{name} must not equal the section scope marker '{self._marker}'")
        return STATE_KEY_DELIMITER.join(segments)

    def get_section_scope_key(self, assessment_id: str, section_id: str) -> str:
        """Key for floating tools. Same for every item in the section."""
        _check_segment("assessment_id", assessment_id)
        _check_segment("section_id", section_id)
        return STATE_KEY_DELIMITER.join((assessment_id, section_id, self._marker, self._marker))

    def parse_global_element_id(self, key: str) -> GlobalElementId | None:
        parts = key.split(STATE_KEY_DELIMITER)
        if len(parts) != 4 or not all(parts):
            return None
        return GlobalElementId(*parts, section_scope_marker=self._marker)

    # -- state ----------------------------------------------------------

    def set_state(self, key: str, tool_id: str, payload: Any) -> None:
        if not key or not tool_id:
            raise StateKeyError("State key and tool id must be non-empty")
        self._state.setdefault(key, {})[tool_id] = copy.deepcopy(payload)
        self._emit(key, tool_id, payload)

    def get_state(self, key: str, tool_id: str) -> Any | None:
        """Stored payload, or None on a miss."""
        entry = self._state.get(key)
        if entry is None or tool_id not in entry:
            return None
        return copy.deepcopy(entry[tool_id])

    def get_element_state(self, key: str) -> dict[str, Any]:
        return copy.deepcopy(self._state.get(key, {}))

    def get_all_state(self) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._state)

    def load_state(self, state: Mapping[str, Mapping[str, Any]]) -> None:
        """Replace everything, e.g. from caller-owned persistence. Does not notify."""
        self._state = {key: dict(copy.deepcopy(tools)) for key, tools in state.items() if tools}
        logger.debug("state_loaded", keys=len(self._state))

    def clear_element(self, key: str) -> None:
        tools = self._state.pop(key, None)
        if tools:
            for tool_id in tools:
                self._emit(key, tool_id, None)

    def clear_tool(self, tool_id: str) -> None:
        """Drop one tool's state under every key."""
        for key in list(self._state):
            entry = self._state[key]
            if tool_id in entry:
                del entry[tool_id]
                if not entry:
                    del self._state[key]
                self._emit(key, tool_id, None)

    def clear_section(self, assessment_id: str, section_id: str) -> None:
        """Drop item and floating state for one section."""
        prefix = STATE_KEY_DELIMITER.join((assessment_id, section_id)) + STATE_KEY_DELIMITER
        for key in [k for k in self._state if k.startswith(prefix)]:
            self.clear_element(key)

    def clear_all(self) -> None:
        if not self._state:
            return
        self._state.clear()
        self._persist()

    # -- observers ------------------------------------------------------

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """listener(key, tool_id, payload); payload is None when state is cleared."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_on_state_change(self, callback: PersistCallback | None) -> None:
        """Persistence hook called with a snapshot of all state after each change."""
        self._on_change = callback

    def _emit(self, key: str, tool_id: str, payload: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, tool_id, payload)
            except Exception:
                logger.exception("state_listener_failed", key=key, tool_id=tool_id)
        self._persist()

    def _persist(self) -> None:
        if self._on_change is None:
            return
        try:
            self._on_change(self.get_all_state())
        except Exception:
            logger.exception("state_persist_failed")


def _check_segment(name: str, value: str) -> None:
    if not value:
        raise StateKeyError(f"{name} must be non-empty")
    if STATE_KEY_DELIMITER in value:
        raise StateKeyError(f"{name} must not contain '{STATE_KEY_DELIMITER}' (got '{value}')")
