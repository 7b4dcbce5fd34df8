from __future__ import annotations

from src.catalog.base import ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel, has_geometry_content
from src.runtime.bands import ZBand


class RulerTool(ToolDescriptor):
    """On-screen ruler. Offered only where there is something to measure."""

    @property
    def tool_id(self) -> str:
        return "ruler"

    @property
    def name(self) -> str:
        return "Ruler"

    @property
    def description(self) -> str:
        return "On-screen ruler for measurements"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.item, ToolLevel.passage, ToolLevel.element})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("ruler", "measurement")

    @property
    def band(self) -> ZBand:
        return ZBand.tool

    def is_relevant(self, context: StructuralContext) -> bool:
        return has_geometry_content(context)


class ProtractorTool(ToolDescriptor):
    """On-screen protractor for angle measurement."""

    @property
    def tool_id(self) -> str:
        return "protractor"

    @property
    def name(self) -> str:
        return "Protractor"

    @property
    def description(self) -> str:
        return "On-screen protractor for angle measurements"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.item, ToolLevel.element})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("protractor", "angleMeasurement")

    @property
    def band(self) -> ZBand:
        return ZBand.tool

    def is_relevant(self, context: StructuralContext) -> bool:
        return has_geometry_content(context)
