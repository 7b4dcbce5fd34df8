"""Shared pytest fixtures: a catalog with the built-in tools and sample contexts."""

from __future__ import annotations

import pytest

from src.catalog.builtins import register_builtins
from src.catalog.content import StructuralContext, ToolLevel
from src.catalog.registry import ToolCatalog
from src.resolution.context import ResolutionContextBuilder
from src.resolution.resolver import PrecedenceResolver
from src.visibility.coordinator import VisibilityCoordinator

PLAIN_PASSAGE = (
    "<p>Maya walked to the market with her grandmother on a sunny morning. "
    "They bought fresh bread and talked about the old days.</p>"
)

GEOMETRY_ITEM_CONFIG = {
    "markup": "<p>Measure the figure below.</p><svg width='200'></svg>",
    "elements": {"q1": "<multiple-choice id='q1'></multiple-choice>"},
    "models": [
        {
            "id": "q1",
            "element": "multiple-choice",
            "prompt": "What is the length of the rectangle in cm?",
            "choices": [{"label": "4 cm", "value": "a"}, {"label": "6 cm", "value": "b"}],
        }
    ],
}


@pytest.fixture()
def catalog() -> ToolCatalog:
    cat = ToolCatalog()
    register_builtins(cat)
    return cat


@pytest.fixture()
def resolver(catalog: ToolCatalog) -> PrecedenceResolver:
    return PrecedenceResolver(catalog)


@pytest.fixture()
def visibility(catalog: ToolCatalog) -> VisibilityCoordinator:
    return VisibilityCoordinator(catalog)


@pytest.fixture()
def builder() -> ResolutionContextBuilder:
    return ResolutionContextBuilder("assess-1").for_section("sec-1").for_item("item-7")


@pytest.fixture()
def plain_passage() -> StructuralContext:
    return StructuralContext(
        level=ToolLevel.passage,
        assessment_id="assess-1",
        section_id="sec-1",
        passage_markup=PLAIN_PASSAGE,
    )


@pytest.fixture()
def geometry_item() -> StructuralContext:
    return StructuralContext(
        level=ToolLevel.item,
        assessment_id="assess-1",
        section_id="sec-1",
        item_id="item-8",
        item_config=GEOMETRY_ITEM_CONFIG,
    )
