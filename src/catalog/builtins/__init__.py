from __future__ import annotations

from src.catalog.builtins.calculator import CalculatorTool
from src.catalog.builtins.display import ColorSchemeTool
from src.catalog.builtins.interaction import AnswerEliminatorTool
from src.catalog.builtins.measurement import ProtractorTool, RulerTool
from src.catalog.builtins.reading import HighlighterTool, LineReaderTool, TextToSpeechTool
from src.catalog.builtins.science import PeriodicTableTool
from src.catalog.registry import ToolCatalog


def register_builtins(catalog: ToolCatalog, *, include_science: bool = True) -> None:
    """Register all built-in tool descriptors with the catalog.

    Integrators may register their own descriptors afterwards; a later
    registration under the same tool_id replaces the built-in.
    """
    catalog.register(CalculatorTool())
    catalog.register(RulerTool())
    catalog.register(ProtractorTool())
    catalog.register(TextToSpeechTool())
    catalog.register(LineReaderTool())
    catalog.register(HighlighterTool())
    catalog.register(ColorSchemeTool())
    catalog.register(AnswerEliminatorTool())

    if include_science:
        catalog.register(PeriodicTableTool())
