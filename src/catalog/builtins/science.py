from __future__ import annotations

from src.catalog.base import ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel, has_science_content


class PeriodicTableTool(ToolDescriptor):
    @property
    def tool_id(self) -> str:
        return "periodicTable"

    @property
    def name(self) -> str:
        return "Periodic Table"

    @property
    def description(self) -> str:
        return "Reference periodic table of the elements"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.section, ToolLevel.item, ToolLevel.element})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("periodicTable", "x-periodic-table")

    def is_relevant(self, context: StructuralContext) -> bool:
        return has_science_content(context)
