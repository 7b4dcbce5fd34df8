from __future__ import annotations

from src.catalog.base import ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel, has_readable_text
from src.runtime.bands import ZBand


class TextToSpeechTool(ToolDescriptor):
    """Read-aloud controls. Speech synthesis itself lives outside the engine."""

    @property
    def tool_id(self) -> str:
        return "textToSpeech"

    @property
    def name(self) -> str:
        return "Read Aloud"

    @property
    def description(self) -> str:
        return "Text-to-speech playback of passages and items"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({
            ToolLevel.section,
            ToolLevel.item,
            ToolLevel.passage,
            ToolLevel.rubric,
            ToolLevel.element,
        })

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("textToSpeech", "readAloud", "spokenText")

    @property
    def band(self) -> ZBand:
        return ZBand.control

    def is_relevant(self, context: StructuralContext) -> bool:
        if context.level == ToolLevel.section:
            return True
        return has_readable_text(context)


class LineReaderTool(ToolDescriptor):
    @property
    def tool_id(self) -> str:
        return "lineReader"

    @property
    def name(self) -> str:
        return "Line Reader"

    @property
    def description(self) -> str:
        return "Reading guide overlay"

    @property
    def icon(self) -> str:
        return "bars-3"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.passage, ToolLevel.rubric, ToolLevel.item})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("readingMask", "readingGuide", "readingRuler", "lineReader")

    @property
    def band(self) -> ZBand:
        return ZBand.tool

    def is_relevant(self, context: StructuralContext) -> bool:
        return has_readable_text(context)


class HighlighterTool(ToolDescriptor):
    """Annotation toolbar for highlighting text."""

    @property
    def tool_id(self) -> str:
        return "highlighter"

    @property
    def name(self) -> str:
        return "Highlighter"

    @property
    def description(self) -> str:
        return "Highlight and annotate text"

    @property
    def supported_levels(self) -> frozenset[ToolLevel]:
        return frozenset({ToolLevel.passage, ToolLevel.rubric, ToolLevel.item, ToolLevel.element})

    @property
    def external_support_ids(self) -> tuple[str, ...]:
        return ("highlighting", "annotations", "highlighter", "textHighlight")

    @property
    def band(self) -> ZBand:
        return ZBand.highlight

    def is_relevant(self, context: StructuralContext) -> bool:
        return has_readable_text(context)
