"""Two-pass tool visibility.

Pass 1 (policy): tools whose resolved decision is enabled, narrowed by the
placement's allow-list if one is configured.
Pass 2 (content): of those, tools that support the structural level and
whose relevance predicate accepts the content on screen.

Visible = Pass 1 ∩ Pass 2. Pass 2 only removes; nothing outside Pass 1
can become visible.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from src.catalog.content import StructuralContext

if TYPE_CHECKING:
    from src.catalog.registry import ToolCatalog
    from src.resolution.resolver import ToolDecision

logger = structlog.get_logger()


@dataclass(frozen=True)
class VisibilityReport:
    """Outcome of one two-pass evaluation, kept for debugging toolbars."""

    allowed: frozenset[str]
    visible: frozenset[str]
    deferred: bool = False
    # sub-context label → tools relevant there
    by_sub_context: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @property
    def vetoed(self) -> frozenset[str]:
        """Allowed by policy but not relevant to the content."""
        return self.allowed - self.visible


class VisibilityCoordinator:
    def __init__(self, catalog: ToolCatalog) -> None:
        self._catalog = catalog

    def allowed_tools(
        self,
        decisions: Mapping[str, ToolDecision],
        placement: Collection[str] | None = None,
    ) -> frozenset[str]:
        """Pass 1. A placement allow-list can only narrow the enabled set."""
        allowed = frozenset(tool_id for tool_id, d in decisions.items() if d.enabled)
        if placement is not None:
            allowed &= frozenset(placement)
        return allowed

    def compute_visible_tools(
        self,
        context: StructuralContext,
        decisions: Mapping[str, ToolDecision],
        placement: Collection[str] | None = None,
    ) -> frozenset[str]:
        return self.evaluate(context, decisions, placement).visible

    def evaluate(
        self,
        context: StructuralContext,
        decisions: Mapping[str, ToolDecision],
        placement: Collection[str] | None = None,
    ) -> VisibilityReport:
        allowed = self.allowed_tools(decisions, placement)

        if not context.is_complete:
            logger.info(
                "pass2_deferred_incomplete_context",
                level=context.level.value,
                item_id=context.item_id,
                allowed=sorted(allowed),
            )
            return VisibilityReport(allowed=allowed, visible=allowed, deferred=True)

        relevant = self._relevant(allowed, context)
        by_sub: dict[str, frozenset[str]] = {}
        for sub in context.iter_sub_contexts():
            if not sub.is_complete:
                continue
            sub_relevant = self._relevant(allowed, sub)
            by_sub[_label(sub)] = sub_relevant
            relevant |= sub_relevant

        # Pass 2 may only narrow Pass 1.
        visible = allowed & relevant
        return VisibilityReport(allowed=allowed, visible=visible, by_sub_context=by_sub)

    def _relevant(self, allowed: frozenset[str], context: StructuralContext) -> frozenset[str]:
        relevant: set[str] = set()
        for tool_id in sorted(allowed):
            tool = self._catalog.get(tool_id)
            if tool is None:
                logger.warning("allowed_tool_not_registered", tool_id=tool_id)
                continue
            if context.level not in tool.supported_levels:
                continue
            if self._catalog.is_relevant(tool_id, context):
                relevant.add(tool_id)
        return frozenset(relevant)


def _label(context: StructuralContext) -> str:
    return f"{context.level.value}:{context.element_id or context.item_id or context.section_id or ''}"
