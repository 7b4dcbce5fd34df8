"""Tests for PrecedenceResolver: rule order, combination, config merge, provenance."""

from __future__ import annotations

import pytest

from src.catalog.registry import ToolCatalog
from src.config.settings import ResolverSettings
from src.resolution.context import ResolutionContextBuilder
from src.resolution.resolver import PrecedenceResolver
from src.resolution.rules import DEFAULT_RULES, RuleAction, build_rules


class TestScenarios:
    def test_district_block_beats_item_requirement(self, resolver, builder) -> None:
        ctx = (
            builder.with_district_policy(blocked=["calculator"])
            .with_item_requirements(required=["calculator"])
            .build()
        )
        result = resolver.resolve(ctx)

        decision = result.decision("calculator")
        assert decision is not None
        assert decision.enabled is False
        assert decision.restricted is True
        assert decision.rule == "district-block"

        trail = result.provenance.trail("calculator")
        assert trail.winning_index == 0
        assert trail.records[0].step == 1
        assert trail.records[0].action == RuleAction.block
        later = trail.records[1:]
        assert [r.step for r in later] == list(range(2, 10))
        assert all(r.action == RuleAction.skip for r in later)
        assert all("district-block" in r.reason for r in later)

    def test_legal_requirement_is_always_available(self, resolver, builder) -> None:
        ctx = builder.with_student(legal_requirements=["textToSpeech"]).build()
        decision = resolver.resolve(ctx).decision("textToSpeech")

        assert decision.enabled is True
        assert decision.always_available is True
        assert decision.required is False
        assert decision.rule == "legal-requirement"


class TestPrecedence:
    def test_unmentioned_tool_has_no_decision(self, resolver, builder) -> None:
        result = resolver.resolve(builder.build())
        assert result.decisions == {}
        assert result.is_enabled("calculator") is False

    def test_administration_block_beats_student(self, resolver, builder) -> None:
        ctx = (
            builder.with_student(accommodations=["calculator"])
            .with_administration_override("calculator", blocked=True)
            .build()
        )
        decision = resolver.resolve(ctx).decision("calculator")
        assert decision.enabled is False
        assert decision.rule == "administration-block"

    def test_item_restriction_beats_legal_requirement(self, resolver, builder) -> None:
        ctx = (
            builder.with_student(legal_requirements=["textToSpeech"])
            .with_item_requirements(restricted=["textToSpeech"])
            .build()
        )
        decision = resolver.resolve(ctx).decision("textToSpeech")
        assert decision.enabled is False
        assert decision.restricted is True

    def test_item_requirement_is_required(self, resolver, builder) -> None:
        ctx = builder.with_item_requirements(required=["ruler"]).build()
        decision = resolver.resolve(ctx).decision("ruler")
        assert decision.enabled is True
        assert decision.required is True
        assert decision.rule == "item-requirement"

    def test_district_requirement_is_required(self, resolver, builder) -> None:
        ctx = builder.with_district_policy(required=["highlighter"]).build()
        decision = resolver.resolve(ctx).decision("highlighter")
        assert decision.enabled is True
        assert decision.required is True
        assert decision.rule == "district-requirement"

    def test_assessment_default_enables(self, resolver, builder) -> None:
        ctx = builder.with_assessment_defaults(default_support_ids=["ruler"]).build()
        decision = resolver.resolve(ctx).decision("ruler")
        assert decision.enabled is True
        assert decision.rule == "assessment-default"

    def test_prohibited_support_skips_student_rules(self, resolver, builder) -> None:
        ctx = builder.with_student(
            accommodations=["calculator"], prohibited=["calculator"]
        ).build()
        decision = resolver.resolve(ctx).decision("calculator")
        assert decision.enabled is False
        assert decision.restricted is False
        assert decision.rule == "system-default"

    @pytest.mark.parametrize(
        "configure",
        [
            lambda b: b.with_student(accommodations=["calculator"]),
            lambda b: b.with_student(legal_requirements=["calculator"]),
            lambda b: b.with_item_requirements(required=["calculator"]),
            lambda b: b.with_assessment_defaults(default_support_ids=["calculator"]),
            lambda b: b.with_administration_override("calculator", config={"type": "basic"}),
        ],
    )
    def test_district_block_is_monotone(self, resolver, configure) -> None:
        base = configure(ResolutionContextBuilder("a").for_section("s").for_item("i"))
        with_block = base.with_district_policy(blocked=["calculator"])
        decision = resolver.resolve(with_block.build()).decision("calculator")
        assert decision.enabled is False


class TestCombination:
    def test_veto_on_one_alias_blocks_the_tool(self, resolver, builder) -> None:
        ctx = (
            builder.with_student(accommodations=["basicCalculator"])
            .with_district_policy(blocked=["graphingCalculator"])
            .build()
        )
        decision = resolver.resolve(ctx).decision("calculator")
        assert decision.enabled is False
        assert decision.support_id == "graphingCalculator"

    def test_strongest_enable_wins_across_aliases(self, resolver, builder) -> None:
        ctx = (
            builder.with_student(accommodations=["basicCalculator"])
            .with_item_requirements(required=["scientificCalculator"])
            .build()
        )
        decision = resolver.resolve(ctx).decision("calculator")
        assert decision.enabled is True
        assert decision.required is True
        assert decision.support_id == "scientificCalculator"

    def test_losing_alias_is_listed_as_overridden(self, resolver, builder) -> None:
        ctx = (
            builder.with_student(accommodations=["basicCalculator"])
            .with_district_policy(blocked=["graphingCalculator"])
            .build()
        )
        trail = resolver.resolve(ctx).provenance.trail("calculator")
        overridden = trail.overridden()
        assert [r.support_id for r in overridden] == ["basicCalculator"]


class TestConfigMerge:
    def test_item_config_overrides_administration_and_defaults(self, resolver, builder) -> None:
        ctx = (
            builder.with_assessment_defaults(
                default_support_ids=["calculator"],
                tool_configs={"calculator": {"type": "basic", "precision": 2}},
            )
            .with_administration_override("calculator", config={"type": "scientific", "memory": True})
            .with_item_requirements(
                required=["calculator"],
                per_support_config={"calculator": {"type": "graphing"}},
            )
            .build()
        )
        result = resolver.resolve(ctx)
        assert dict(result.config_for("calculator")) == {
            "type": "graphing",
            "precision": 2,
            "memory": True,
        }

    def test_blocked_tool_has_no_config(self, resolver, builder) -> None:
        ctx = (
            builder.with_district_policy(blocked=["calculator"])
            .with_administration_override("calculator", config={"type": "basic"})
            .build()
        )
        assert resolver.resolve(ctx).config_for("calculator") is None


class TestUnmappedSupportIds:
    def test_unmapped_id_is_excluded_and_recorded(self, resolver, builder) -> None:
        ctx = builder.with_student(accommodations=["brailleDisplay", "calculator"]).build()
        result = resolver.resolve(ctx)

        assert set(result.decisions) == {"calculator"}
        assert result.provenance.unmapped_support_ids == ["brailleDisplay"]

    def test_unmapped_id_does_not_raise(self, resolver, builder) -> None:
        ctx = builder.with_district_policy(blocked=["unknownTool"]).build()
        result = resolver.resolve(ctx)
        assert result.decisions == {}


class TestDeterminism:
    def test_same_context_same_result(self, resolver, builder) -> None:
        ctx = (
            builder.with_student(accommodations=["calculator", "highlighting", "readAloud"])
            .with_district_policy(blocked=["highlighting"], required=["ruler"])
            .with_assessment_defaults(default_support_ids=["lineReader"])
            .build()
        )
        first = resolver.resolve(ctx)
        second = resolver.resolve(ctx)

        assert first.decisions == second.decisions
        assert first.provenance.decision_log == second.provenance.decision_log

    def test_fragment_order_does_not_matter(self, resolver) -> None:
        a = (
            ResolutionContextBuilder("a")
            .with_student(accommodations=["ruler", "calculator"])
            .with_district_policy(blocked=["ruler"])
            .build()
        )
        b = (
            ResolutionContextBuilder("a")
            .with_district_policy(blocked=["ruler"])
            .with_student(accommodations=["calculator", "ruler"])
            .build()
        )
        assert resolver.resolve(a).decisions == resolver.resolve(b).decisions


class TestResolverConfiguration:
    def test_without_skipped_steps(self, catalog, builder) -> None:
        resolver = PrecedenceResolver(catalog, include_skipped_steps=False)
        ctx = builder.with_student(accommodations=["calculator"]).build()
        trail = resolver.resolve(ctx).provenance.trail("calculator")
        assert len(trail.records) == 1
        assert trail.records[0].rule == "student-accommodation"

    def test_rules_must_be_ordered(self, catalog) -> None:
        with pytest.raises(ValueError, match="unique and ascending"):
            PrecedenceResolver(catalog, rules=tuple(reversed(DEFAULT_RULES)))

    def test_allow_posture_enables_listed_tools(self, catalog) -> None:
        settings = ResolverSettings(default_posture="allow", allow_by_default_tools="highlighter")
        resolver = PrecedenceResolver.from_settings(catalog, settings)
        # mentioned only as prohibited for the student, so no rule enables it
        ctx = (
            ResolutionContextBuilder("a")
            .with_student(accommodations=["highlighting", "calculator"], prohibited=["highlighting", "calculator"])
            .build()
        )
        result = resolver.resolve(ctx)
        assert result.is_enabled("highlighter") is True
        assert result.is_enabled("calculator") is False
        assert result.provenance.trail("highlighter").winning_decision.reason == "Allowed by default posture"

    def test_allow_list_ignored_under_deny_posture(self) -> None:
        settings = ResolverSettings(allow_by_default_tools="highlighter")
        assert settings.allow_by_default == frozenset()

    def test_build_rules_has_nine_steps(self) -> None:
        rules = build_rules()
        assert [r.step for r in rules] == list(range(1, 10))


class TestAutoActivate:
    def test_only_enabled_tools_activate(self, catalog: ToolCatalog) -> None:
        resolver = PrecedenceResolver(catalog)
        ctx = (
            ResolutionContextBuilder("a")
            .with_student(
                accommodations=["calculator", "ruler"],
                activate_at_init=["calculator", "ruler"],
            )
            .with_district_policy(blocked=["ruler"])
            .build()
        )
        result = resolver.resolve(ctx)
        assert resolver.auto_activate_tools(ctx, result) == ["calculator"]
