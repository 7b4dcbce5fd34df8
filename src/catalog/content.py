"""Structural context handed to relevance predicates, plus content heuristics.

A StructuralContext describes what is currently on screen at one placement
level (a section toolbar, an item, a passage header, a single interaction).
Predicates inspect it synchronously; nothing here performs I/O.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any


class ToolLevel(StrEnum):
    assessment = "assessment"
    section = "section"
    item = "item"
    passage = "passage"
    rubric = "rubric"
    element = "element"


@dataclass(frozen=True)
class StructuralContext:
    """Snapshot of the structural slot a tool may render into.

    item_config follows the item markup shape: {"markup": str,
    "elements": {element_id: markup}, "models": [{"id": ..., "element": ...}]}.
    content_loaded=False marks content that has not arrived yet; the
    visibility coordinator skips relevance checks for such contexts.
    """

    level: ToolLevel
    assessment_id: str
    section_id: str | None = None
    item_id: str | None = None
    element_id: str | None = None
    item_config: Mapping[str, Any] | None = None
    passage_markup: str | None = None
    rubric_content: str | None = None
    content_loaded: bool = True
    sub_contexts: tuple[StructuralContext, ...] = field(default=())

    @property
    def is_complete(self) -> bool:
        """True when the content needed to judge relevance is present."""
        if not self.content_loaded:
            return False
        if self.level in (ToolLevel.item, ToolLevel.element):
            return self.item_config is not None
        if self.level == ToolLevel.passage:
            return self.passage_markup is not None
        if self.level == ToolLevel.rubric:
            return self.rubric_content is not None or self.passage_markup is not None
        return True

    def element_ids(self) -> list[str]:
        """Ids of interaction models declared in item_config, in declaration order."""
        ids: list[str] = []
        for model in _models(self.item_config):
            model_id = model.get("id")
            if isinstance(model_id, str) and model_id and model_id not in ids:
                ids.append(model_id)
        return ids

    def for_element(self, element_id: str) -> StructuralContext:
        """Derive the element-level context for one interaction within this item."""
        return replace(
            self,
            level=ToolLevel.element,
            element_id=element_id,
            sub_contexts=(),
        )

    def iter_sub_contexts(self) -> Iterator[StructuralContext]:
        """Explicit sub-contexts, or element contexts derived from item_config."""
        if self.sub_contexts:
            yield from self.sub_contexts
            return
        if self.level == ToolLevel.item and self.is_complete:
            for element_id in self.element_ids():
                yield self.for_element(element_id)


_TAG_RE = re.compile(r"<[^>]*>")

_MATH_INDICATORS = (
    re.compile(r"<math[>\s]", re.IGNORECASE),
    re.compile(r"\\\[([^\]]+)\\\]"),
    re.compile(r"\$\$[^$]+\$\$"),
    re.compile(r"\\\("),
    re.compile(r"[+*/=<>≤≥∑∫√π×÷]"),
    re.compile(r"\d+\s*[+\-*/=×÷]\s*\d+"),
)

_GEOMETRY_INDICATORS = (
    re.compile(r"<svg[>\s]", re.IGNORECASE),
    re.compile(r"\b(diagram|figure|graph|grid|coordinate plane)\b", re.IGNORECASE),
    re.compile(
        r"\b(angle|triangle|rectangle|square|polygon|circle|radius|diameter|"
        r"perimeter|area|length|width|height|segment|line)s?\b",
        re.IGNORECASE,
    ),
    re.compile(r"\b\d+(\.\d+)?\s?(mm|cm|m|in|inch|inches|ft|feet|°|degrees)\b", re.IGNORECASE),
)

_SCIENCE_INDICATORS = (
    re.compile(r"chemistry|chemical|element|atom|molecule|compound", re.IGNORECASE),
    re.compile(r"periodic\s+table", re.IGNORECASE),
    re.compile(r"H₂O|CO₂|NaCl|O₂|N₂"),
    re.compile(r"biology|organism|cell|DNA|RNA|protein", re.IGNORECASE),
    re.compile(r"physics|force|energy|velocity|acceleration", re.IGNORECASE),
)

CHOICE_INTERACTION_TYPES = frozenset({
    "multiple-choice",
    "inline-choice",
    "select-text",
    "pie-multiple-choice",
    "pie-inline-choice",
    "pie-select-text",
})

# Minimum characters of text before read-aloud style tools are offered.
READABLE_TEXT_MIN_CHARS = 10


def _strip_html(value: str) -> str:
    return _TAG_RE.sub(" ", value).strip()


def _models(config: Mapping[str, Any] | None) -> list[Mapping[str, Any]]:
    if not config:
        return []
    raw = config.get("models")
    if isinstance(raw, Mapping):
        raw = list(raw.values())
    if not isinstance(raw, list):
        return []
    return [m for m in raw if isinstance(m, Mapping)]


def _model_text(model: Mapping[str, Any]) -> list[str]:
    chunks: list[str] = []
    for value in model.values():
        if isinstance(value, str):
            chunks.append(_strip_html(value))
        elif isinstance(value, list):
            for entry in value:
                if isinstance(entry, Mapping):
                    chunks.extend(
                        _strip_html(nested) for nested in entry.values() if isinstance(nested, str)
                    )
    return chunks


def _raw_markup(context: StructuralContext) -> str:
    """Unstripped markup, used by indicators that look at tags (MathML, SVG)."""
    parts: list[str] = []
    config = context.item_config or {}
    if context.level == ToolLevel.element:
        elements = config.get("elements")
        if isinstance(elements, Mapping) and isinstance(elements.get(context.element_id), str):
            parts.append(elements[context.element_id])
    elif context.level == ToolLevel.item:
        if isinstance(config.get("markup"), str):
            parts.append(config["markup"])
        elements = config.get("elements")
        if isinstance(elements, Mapping):
            parts.extend(v for v in elements.values() if isinstance(v, str))
    if context.passage_markup and context.level in (ToolLevel.passage, ToolLevel.rubric):
        parts.append(context.passage_markup)
    if context.rubric_content and context.level == ToolLevel.rubric:
        parts.append(context.rubric_content)
    return " ".join(parts)


def extract_text_content(context: StructuralContext) -> str:
    """Plain text visible in the context, with markup stripped."""
    chunks: list[str] = []
    config = context.item_config or {}

    if context.level == ToolLevel.element:
        elements = config.get("elements")
        if isinstance(elements, Mapping):
            markup = elements.get(context.element_id)
            if isinstance(markup, str):
                chunks.append(_strip_html(markup))
        for model in _models(config):
            if model.get("id") == context.element_id:
                chunks.extend(_model_text(model))
                break
    elif context.level == ToolLevel.item:
        if isinstance(config.get("markup"), str):
            chunks.append(_strip_html(config["markup"]))
        elements = config.get("elements")
        if isinstance(elements, Mapping):
            chunks.extend(_strip_html(v) for v in elements.values() if isinstance(v, str))
        for model in _models(config):
            chunks.extend(_model_text(model))
    elif context.level == ToolLevel.passage:
        chunks.append(_strip_html(context.passage_markup or ""))
    elif context.level == ToolLevel.rubric:
        # embedded passage wins over the plain rubric content
        source = context.passage_markup or context.rubric_content or ""
        chunks.append(_strip_html(source))

    return " ".join(c for c in chunks if c).strip()


def has_math_content(context: StructuralContext) -> bool:
    # tags themselves contain < and >, so only MathML is looked for in markup
    if _MATH_INDICATORS[0].search(_raw_markup(context)):
        return True
    text = extract_text_content(context)
    return any(p.search(text) for p in _MATH_INDICATORS[1:])


def has_geometry_content(context: StructuralContext) -> bool:
    """Measurable content: diagrams, shapes, or quantities with length/angle units."""
    text = extract_text_content(context)
    markup = _raw_markup(context)
    if _GEOMETRY_INDICATORS[0].search(markup):
        return True
    return any(p.search(text) for p in _GEOMETRY_INDICATORS[1:])


def has_readable_text(context: StructuralContext) -> bool:
    return len(extract_text_content(context)) >= READABLE_TEXT_MIN_CHARS


def has_science_content(context: StructuralContext) -> bool:
    text = extract_text_content(context)
    return any(p.search(text) for p in _SCIENCE_INDICATORS)


def has_choice_interaction(context: StructuralContext) -> bool:
    models = _models(context.item_config)
    if context.level == ToolLevel.element:
        for model in models:
            if model.get("id") == context.element_id:
                return model.get("element", "") in CHOICE_INTERACTION_TYPES
        return False
    if context.level == ToolLevel.item:
        for model in models:
            if model.get("element", "") in CHOICE_INTERACTION_TYPES:
                return True
            # configs without canonical element names still carry choices
            choices = model.get("choices")
            if isinstance(choices, list) and choices:
                return True
    return False
