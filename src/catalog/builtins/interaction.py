from __future__ import annotations

from src.catalog.base import ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel, has_choice_interaction
from src.runtime.bands import ZBand


class AnswerEliminatorTool(ToolDescriptor):
    """Strike-through for answer choices. Item-scoped: state is kept per element."""

    @property
    def tool_id(self) -> str:
        return "answerEliminator"

    @property
    def name(self) -> str:
        return "Answer Eliminator"

    @property
    def description(self) -> str:
        return "Strike through answer choices"

    @property
    def icon(self) -> str:
        return "strikethrough"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.item, ToolLevel.element})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("answerMasking", "answerEliminator", "strikethrough", "choiceMasking")

    @property
    def band(self) -> ZBand:
        return ZBand.tool

    def is_relevant(self, context: StructuralContext) -> bool:
        return has_choice_interaction(context)
