"""Tool Runtime Coordinator: live tool instances, visibility and z-order.

Per instance: unregistered → registered (hidden) → visible ⇄ hidden → unregistered.
This object is the only writer of instance visibility. One coordinator
per session; dispose() when the session ends.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import structlog

from src.infra.errors import ReentrantMutationError
from src.runtime.bands import ZBand
from src.runtime.instance_id import ScopeLevels, base_tool_id, parse_instance_id

logger = structlog.get_logger()


@dataclass(frozen=True)
class ToolRuntimeState:
    """Read-only snapshot of one live instance."""

    instance_id: str
    tool_id: str
    name: str
    band: ZBand
    visible: bool
    z_index: int
    handle: Any = None


@dataclass(frozen=True)
class RuntimeChange:
    """Passed to listeners once per logical operation."""

    operation: str
    instance_ids: tuple[str, ...]


RuntimeListener = Callable[[RuntimeChange], None]


@dataclass
class _Instance:
    instance_id: str
    tool_id: str
    name: str
    band: ZBand
    visible: bool
    z_index: int
    handle: Any = None

    def snapshot(self) -> ToolRuntimeState:
        return ToolRuntimeState(
            instance_id=self.instance_id,
            tool_id=self.tool_id,
            name=self.name,
            band=self.band,
            visible=self.visible,
            z_index=self.z_index,
            handle=self.handle,
        )


class ToolRuntimeCoordinator:
    def __init__(
        self,
        *,
        default_band: ZBand = ZBand.modal,
        scope_levels: ScopeLevels | None = None,
    ) -> None:
        self._instances: dict[str, _Instance] = {}
        self._listeners: list[RuntimeListener] = []
        self._default_band = default_band
        self._scope_levels = scope_levels or ScopeLevels()
        self._depth = 0
        self._pending_op: str | None = None
        self._pending_ids: list[str] = []
        self._notifying = False

    # -- subscription ---------------------------------------------------

    def subscribe(self, listener: RuntimeListener) -> Callable[[], None]:
        """Add a listener. Returns an idempotent unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- registration ---------------------------------------------------

    def register_tool(
        self,
        instance_id: str,
        *,
        name: str | None = None,
        tool_id: str | None = None,
        band: ZBand | None = None,
        handle: Any = None,
    ) -> None:
        """Register an instance hidden, or update metadata of an existing one.

        Re-registration never resets visibility.
        """
        with self._mutation("register", instance_id):
            existing = self._instances.get(instance_id)
            if existing is None:
                resolved_band = band if band is not None else self._default_band
                self._instances[instance_id] = _Instance(
                    instance_id=instance_id,
                    tool_id=tool_id or base_tool_id(instance_id, levels=self._scope_levels),
                    name=name or instance_id,
                    band=resolved_band,
                    visible=False,
                    z_index=resolved_band.floor,
                    handle=handle,
                )
                logger.debug("runtime_tool_registered", instance_id=instance_id, band=resolved_band.name)
                return

            if name is not None:
                existing.name = name
            if tool_id is not None:
                existing.tool_id = tool_id
            if handle is not None:
                existing.handle = handle
            if band is not None and band != existing.band:
                existing.band = band
                existing.z_index = band.floor
                if existing.visible:
                    self._raise_in_band(existing)

    def unregister_tool(self, instance_id: str) -> bool:
        if instance_id not in self._instances:
            return False
        with self._mutation("unregister", instance_id):
            del self._instances[instance_id]
        return True

    # -- visibility -----------------------------------------------------

    def show_tool(self, instance_id: str) -> bool:
        """Make visible and bring to front. Returns False if unknown or already visible."""
        inst = self._lookup(instance_id, "show")
        if inst is None or inst.visible:
            return False
        with self._mutation("show", instance_id):
            inst.visible = True
            self._raise_in_band(inst)
        return True

    def hide_tool(self, instance_id: str) -> bool:
        inst = self._lookup(instance_id, "hide")
        if inst is None or not inst.visible:
            return False
        with self._mutation("hide", instance_id):
            inst.visible = False
        return True

    def toggle_tool(self, instance_id: str) -> bool:
        """Flip visibility. Returns the new visibility (False for unknown ids)."""
        inst = self._lookup(instance_id, "toggle")
        if inst is None:
            return False
        with self._mutation("toggle", instance_id):
            if inst.visible:
                inst.visible = False
            else:
                inst.visible = True
                self._raise_in_band(inst)
        return inst.visible

    def bring_to_front(self, instance_id: str) -> bool:
        """Raise a visible instance above every other visible instance in its band."""
        inst = self._lookup(instance_id, "bring_to_front")
        if inst is None or not inst.visible:
            return False
        with self._mutation("bring_to_front", instance_id):
            self._raise_in_band(inst)
        return True

    def hide_all_tools(self) -> int:
        """Hide every visible instance with a single notification. Returns how many changed."""
        visible = [i for i in self._instances.values() if i.visible]
        if not visible:
            return 0
        with self._mutation("hide_all"):
            for inst in visible:
                inst.visible = False
                self._pending_ids.append(inst.instance_id)
        return len(visible)

    def enforce_visibility(
        self,
        visible_tool_ids: Collection[str],
        *,
        scope_level: str | None = None,
        scope_id: str | None = None,
    ) -> list[str]:
        """Hide visible instances whose tool is no longer allowed and relevant.

        With scope_level/scope_id only instances scoped to that placement are
        considered; instances in other scopes keep their state. Called after
        navigation or re-resolution. Returns the hidden instance ids.
        """
        allowed = set(visible_tool_ids)
        stale = [
            i for i in self._instances.values()
            if i.visible
            and i.tool_id not in allowed
            and self._in_scope(i.instance_id, scope_level, scope_id)
        ]
        if not stale:
            return []
        with self._mutation("enforce_visibility"):
            for inst in stale:
                inst.visible = False
                self._pending_ids.append(inst.instance_id)
        hidden = [i.instance_id for i in stale]
        logger.info(
            "runtime_tools_hidden_by_policy",
            instance_ids=hidden,
            scope_level=scope_level,
            scope_id=scope_id,
        )
        return hidden

    def _in_scope(self, instance_id: str, scope_level: str | None, scope_id: str | None) -> bool:
        if scope_level is None and scope_id is None:
            return True
        parsed = parse_instance_id(instance_id, levels=self._scope_levels)
        if parsed is None:
            return False
        if scope_level is not None and parsed.scope_level != scope_level:
            return False
        return scope_id is None or parsed.scope_id == scope_id

    @contextmanager
    def batch(self, operation: str = "batch") -> Iterator[None]:
        """Group several operations into a single listener notification."""
        with self._mutation(operation):
            yield

    # -- queries (never mutate) -----------------------------------------

    def is_tool_visible(self, instance_id: str) -> bool:
        inst = self._instances.get(instance_id)
        return inst is not None and inst.visible

    def get_tool_state(self, instance_id: str) -> ToolRuntimeState | None:
        inst = self._instances.get(instance_id)
        return inst.snapshot() if inst is not None else None

    def get_visible_tools(self) -> list[ToolRuntimeState]:
        """Visible instances, bottom of the stack first."""
        visible = [i for i in self._instances.values() if i.visible]
        return [i.snapshot() for i in sorted(visible, key=lambda i: i.z_index)]

    def get_registered_tools(self) -> list[str]:
        return list(self._instances.keys())

    def instances_for_tool(self, tool_id: str) -> list[str]:
        return [i.instance_id for i in self._instances.values() if i.tool_id == tool_id]

    def dispose(self) -> None:
        """Drop all instances and listeners without notifying."""
        self._instances.clear()
        self._listeners.clear()

    # -- internals ------------------------------------------------------

    def _lookup(self, instance_id: str, operation: str) -> _Instance | None:
        inst = self._instances.get(instance_id)
        if inst is None:
            logger.warning(
                "runtime_tool_unknown",
                operation=operation,
                instance_id=instance_id,
                registered=list(self._instances.keys()),
            )
        return inst

    def _raise_in_band(self, inst: _Instance) -> None:
        band = inst.band
        others = [
            i for i in self._instances.values()
            if i is not inst and i.visible and i.band == band
        ]
        top = max((i.z_index for i in others), default=band.floor)
        candidate = top + 1
        ceiling = band.ceiling
        if ceiling is not None and candidate > ceiling:
            # renumber the band from its floor, keeping relative order
            for offset, other in enumerate(sorted(others, key=lambda i: i.z_index), start=1):
                other.z_index = band.floor + offset
            candidate = band.floor + len(others) + 1
        inst.z_index = candidate

    @contextmanager
    def _mutation(self, operation: str, instance_id: str | None = None) -> Iterator[None]:
        if self._notifying:
            raise ReentrantMutationError(operation)
        if self._depth == 0:
            self._pending_op = operation
            self._pending_ids = []
        if instance_id is not None:
            self._pending_ids.append(instance_id)
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1
        if self._depth == 0:
            self._notify()

    def _notify(self) -> None:
        change = RuntimeChange(
            operation=self._pending_op or "",
            instance_ids=tuple(dict.fromkeys(self._pending_ids)),
        )
        self._pending_op = None
        self._pending_ids = []
        self._notifying = True
        try:
            for listener in list(self._listeners):
                try:
                    listener(change)
                except Exception:
                    logger.exception(
                        "runtime_listener_failed",
                        operation=change.operation,
                        instance_ids=list(change.instance_ids),
                    )
        finally:
            self._notifying = False
