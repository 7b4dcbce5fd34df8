"""Ordered precedence rules.

Each rule is a (predicate, outcome) pair evaluated in fixed order for one
external support id; the first matching rule decides and the rest are
recorded as skipped. The table is data: the resolver never branches on
rule names.

Precedence (highest first):
 1. district-block           absolute veto
 2. administration-block     veto for this sitting
 3. item-restriction         veto for this item
 4. item-requirement         enabled, required, carries item config
 5. district-requirement     enabled, required
 6. legal-requirement        enabled, always available
 7. student-accommodation    enabled
 8. assessment-default       enabled
 9. system-default           blocked (deny by default)
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from src.resolution.context import ResolutionContext


class RuleAction(StrEnum):
    enable = "enable"
    block = "block"
    skip = "skip"


class RuleSource(StrEnum):
    organization = "organization"
    administration = "administration"
    item = "item"
    student = "student"
    assessment = "assessment"
    system = "system"


@dataclass(frozen=True)
class RuleInput:
    support_id: str
    tool_id: str
    context: ResolutionContext


@dataclass(frozen=True)
class RuleOutcome:
    action: RuleAction
    required: bool = False
    always_available: bool = False
    config: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class PrecedenceRule:
    """One row of the precedence table."""

    step: int
    name: str
    source: RuleSource
    matches: Callable[[RuleInput], bool]
    outcome: Callable[[RuleInput], RuleOutcome]
    fired_reason: str
    skipped_reason: str
    # vetoes beat enables contributed by other support ids of the same tool
    veto: bool = False
    # reason used instead of fired_reason when the final rule enables
    allowed_reason: str = ""


def resolve_config(inp: RuleInput) -> Mapping[str, Any] | None:
    """Merge tool config: assessment default < administration override < item."""
    ctx = inp.context
    sid = inp.support_id
    merged: dict[str, Any] = {}
    if ctx.assessment_defaults is not None:
        merged.update(ctx.assessment_defaults.tool_configs.get(sid) or {})
    override = ctx.administration.get(sid)
    if override is not None and override.config:
        merged.update(override.config)
    if ctx.item is not None:
        merged.update(ctx.item.per_support_config.get(sid) or {})
    return merged or None


def _blocked() -> Callable[[RuleInput], RuleOutcome]:
    return lambda _inp: RuleOutcome(action=RuleAction.block)


def _enabled(*, required: bool = False, always_available: bool = False) -> Callable[[RuleInput], RuleOutcome]:
    def factory(inp: RuleInput) -> RuleOutcome:
        return RuleOutcome(
            action=RuleAction.enable,
            required=required,
            always_available=always_available,
            config=resolve_config(inp),
        )

    return factory


def _district_blocks(inp: RuleInput) -> bool:
    d = inp.context.district
    return d is not None and inp.support_id in d.blocked


def _administration_blocks(inp: RuleInput) -> bool:
    override = inp.context.administration.get(inp.support_id)
    return override is not None and override.blocked


def _item_restricts(inp: RuleInput) -> bool:
    item = inp.context.item
    return item is not None and inp.support_id in item.restricted


def _item_requires(inp: RuleInput) -> bool:
    item = inp.context.item
    return item is not None and inp.support_id in item.required


def _district_requires(inp: RuleInput) -> bool:
    d = inp.context.district
    return d is not None and inp.support_id in d.required


def _student_allows(inp: RuleInput, field: str) -> bool:
    student = inp.context.student
    if student is None or inp.support_id in student.prohibited:
        return False
    return inp.support_id in getattr(student, field)


def _legally_required(inp: RuleInput) -> bool:
    return _student_allows(inp, "legal_requirements")


def _student_prefers(inp: RuleInput) -> bool:
    return _student_allows(inp, "accommodations")


def _assessment_default(inp: RuleInput) -> bool:
    defaults = inp.context.assessment_defaults
    return defaults is not None and inp.support_id in defaults.default_support_ids


def build_rules(allow_by_default: Collection[str] = ()) -> tuple[PrecedenceRule, ...]:
    """Build the precedence table.

    allow_by_default names tool ids (or support ids) that the final rule
    enables instead of blocking; empty means strict deny-by-default.
    """
    allowed = frozenset(allow_by_default)

    def _system_outcome(inp: RuleInput) -> RuleOutcome:
        if inp.tool_id in allowed or inp.support_id in allowed:
            return RuleOutcome(action=RuleAction.enable, config=resolve_config(inp))
        return RuleOutcome(action=RuleAction.block)

    return (
        PrecedenceRule(
            step=1,
            name="district-block",
            source=RuleSource.organization,
            matches=_district_blocks,
            outcome=_blocked(),
            fired_reason="Blocked by district policy",
            skipped_reason="No district block",
            veto=True,
        ),
        PrecedenceRule(
            step=2,
            name="administration-block",
            source=RuleSource.administration,
            matches=_administration_blocks,
            outcome=_blocked(),
            fired_reason="Blocked by test administration override",
            skipped_reason="No administration block",
            veto=True,
        ),
        PrecedenceRule(
            step=3,
            name="item-restriction",
            source=RuleSource.item,
            matches=_item_restricts,
            outcome=_blocked(),
            fired_reason="Restricted for this item",
            skipped_reason="No item restriction",
            veto=True,
        ),
        PrecedenceRule(
            step=4,
            name="item-requirement",
            source=RuleSource.item,
            matches=_item_requires,
            outcome=_enabled(required=True),
            fired_reason="Required by this item",
            skipped_reason="Not required by this item",
        ),
        PrecedenceRule(
            step=5,
            name="district-requirement",
            source=RuleSource.organization,
            matches=_district_requires,
            outcome=_enabled(required=True),
            fired_reason="Required by district policy",
            skipped_reason="Not required by district policy",
        ),
        PrecedenceRule(
            step=6,
            name="legal-requirement",
            source=RuleSource.student,
            matches=_legally_required,
            outcome=_enabled(always_available=True),
            fired_reason="Legally mandated student accommodation",
            skipped_reason="Not a legally mandated accommodation",
        ),
        PrecedenceRule(
            step=7,
            name="student-accommodation",
            source=RuleSource.student,
            matches=_student_prefers,
            outcome=_enabled(),
            fired_reason="Enabled by student accommodation profile",
            skipped_reason="Not in student accommodation profile",
        ),
        PrecedenceRule(
            step=8,
            name="assessment-default",
            source=RuleSource.assessment,
            matches=_assessment_default,
            outcome=_enabled(),
            fired_reason="Enabled by assessment default tool list",
            skipped_reason="Not in assessment default tool list",
        ),
        PrecedenceRule(
            step=9,
            name="system-default",
            source=RuleSource.system,
            matches=lambda _inp: True,
            outcome=_system_outcome,
            fired_reason="Not configured in any source",
            skipped_reason="",
            allowed_reason="Allowed by default posture",
        ),
    )


DEFAULT_RULES = build_rules()
