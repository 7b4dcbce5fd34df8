"""Tests for structural contexts and content heuristics used by relevance predicates."""

from __future__ import annotations

from src.catalog.content import (
    StructuralContext,
    ToolLevel,
    extract_text_content,
    has_choice_interaction,
    has_geometry_content,
    has_math_content,
    has_readable_text,
    has_science_content,
)


def _item(config, **kwargs) -> StructuralContext:
    return StructuralContext(level=ToolLevel.item, assessment_id="a", item_id="i1", item_config=config, **kwargs)


class TestCompleteness:
    def test_item_without_config_is_incomplete(self) -> None:
        assert StructuralContext(level=ToolLevel.item, assessment_id="a").is_complete is False

    def test_section_is_always_complete(self) -> None:
        assert StructuralContext(level=ToolLevel.section, assessment_id="a").is_complete is True

    def test_rubric_accepts_passage_markup(self) -> None:
        ctx = StructuralContext(level=ToolLevel.rubric, assessment_id="a", passage_markup="<p>x</p>")
        assert ctx.is_complete is True

    def test_content_not_loaded(self) -> None:
        assert _item({"markup": ""}, content_loaded=False).is_complete is False


class TestSubContexts:
    def test_elements_derived_from_models(self, geometry_item) -> None:
        subs = list(geometry_item.iter_sub_contexts())
        assert [s.element_id for s in subs] == ["q1"]
        assert subs[0].level == ToolLevel.element
        assert subs[0].item_id == "item-8"

    def test_incomplete_item_has_no_sub_contexts(self) -> None:
        ctx = StructuralContext(level=ToolLevel.item, assessment_id="a")
        assert list(ctx.iter_sub_contexts()) == []


class TestHeuristics:
    def test_text_extraction_strips_markup(self) -> None:
        ctx = _item({"markup": "<p>Hello <b>world</b></p>"})
        assert extract_text_content(ctx).split() == ["Hello", "world"]

    def test_math_detection(self) -> None:
        assert has_math_content(_item({"markup": "<p>What is 3 + 4?</p>"})) is True
        assert has_math_content(_item({"markup": "<math><mn>2</mn></math>"})) is True
        assert has_math_content(_item({"markup": "<p>A well-known story.</p>"})) is False

    def test_html_tags_are_not_math(self, plain_passage) -> None:
        assert has_math_content(plain_passage) is False

    def test_geometry_detection(self, plain_passage, geometry_item) -> None:
        assert has_geometry_content(geometry_item) is True
        assert has_geometry_content(plain_passage) is False
        assert has_geometry_content(_item({"markup": "<p>The board is 12 cm long.</p>"})) is True

    def test_readable_text(self) -> None:
        assert has_readable_text(_item({"markup": "<p>Hi</p>"})) is False
        assert has_readable_text(_item({"markup": "<p>Read the following sentence.</p>"})) is True

    def test_science_detection(self) -> None:
        assert has_science_content(_item({"markup": "<p>Each molecule of H₂O has three atoms.</p>"})) is True
        assert has_science_content(_item({"markup": "<p>Write a poem about autumn.</p>"})) is False

    def test_choice_interaction(self, geometry_item) -> None:
        assert has_choice_interaction(geometry_item) is True
        assert has_choice_interaction(geometry_item.for_element("q1")) is True
        essay = _item({"models": [{"id": "e1", "element": "extended-text-entry"}]})
        assert has_choice_interaction(essay) is False
