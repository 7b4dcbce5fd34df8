from __future__ import annotations

from src.catalog.base import ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel


class ColorSchemeTool(ToolDescriptor):
    """Contrast and color themes. Applies to the whole surface, so always relevant."""

    @property
    def tool_id(self) -> str:
        return "colorScheme"

    @property
    def name(self) -> str:
        return "Color Scheme"

    @property
    def description(self) -> str:
        return "Accessible color themes and contrast"

    @property
    def icon(self) -> str:
        return "swatch"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.assessment, ToolLevel.section})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("highContrastDisplay", "colorContrast", "invertColors", "colorScheme")

    def is_relevant(self, context: StructuralContext) -> bool:
        return True
