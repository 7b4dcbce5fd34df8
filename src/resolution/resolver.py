from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog

from src.infra.errors import ConfigurationError
from src.resolution.context import ResolutionContext
from src.resolution.provenance import ProvenanceBuilder, ProvenanceRecord, ResolutionProvenance
from src.resolution.rules import (
    DEFAULT_RULES,
    PrecedenceRule,
    RuleAction,
    RuleInput,
    RuleOutcome,
    RuleSource,
    build_rules,
)

if TYPE_CHECKING:
    from src.catalog.registry import ToolCatalog
    from src.config.settings import ResolverSettings

logger = structlog.get_logger()

_NO_MATCH_RULE = PrecedenceRule(
    step=10_000,
    name="no-rule-matched",
    source=RuleSource.system,
    matches=lambda _inp: True,
    outcome=lambda _inp: RuleOutcome(action=RuleAction.block),
    fired_reason="No rule matched",
    skipped_reason="",
)


@dataclass(frozen=True)
class ToolDecision:
    """Final decision for one tool in one resolution.

    required: must be offered and cannot be hidden.
    always_available: cannot be turned off, but using it is optional.
    restricted: explicitly vetoed (district, administration or item), as
    opposed to blocked merely because nothing enabled it.
    """

    tool_id: str
    enabled: bool
    required: bool = False
    always_available: bool = False
    restricted: bool = False
    config: Mapping[str, Any] | None = None
    rule: str = ""
    support_id: str = ""

    @property
    def blocked(self) -> bool:
        return not self.enabled


@dataclass(frozen=True)
class ResolutionResult:
    decisions: dict[str, ToolDecision]
    provenance: ResolutionProvenance

    def decision(self, tool_id: str) -> ToolDecision | None:
        return self.decisions.get(tool_id)

    def is_enabled(self, tool_id: str) -> bool:
        """Tools with no decision are not enabled (deny by default)."""
        d = self.decisions.get(tool_id)
        return d is not None and d.enabled

    def enabled_tool_ids(self) -> list[str]:
        return [t for t, d in self.decisions.items() if d.enabled]

    def required_tool_ids(self) -> list[str]:
        """Tools that must stay available: required or always_available."""
        return [
            t for t, d in self.decisions.items()
            if d.enabled and (d.required or d.always_available)
        ]

    def config_for(self, tool_id: str) -> Mapping[str, Any] | None:
        d = self.decisions.get(tool_id)
        return d.config if d is not None and d.enabled else None


@dataclass(frozen=True)
class _SupportEvaluation:
    support_id: str
    rule: PrecedenceRule
    outcome: RuleOutcome
    record_index: int


class PrecedenceResolver:
    """Pure resolution of a ResolutionContext into per-tool decisions.

    Each mentioned support id is walked through the rule table in order;
    the first matching rule decides. Support ids that share a tool are
    then combined: any veto wins, else the highest-precedence enable, else
    blocked. No I/O; identical context in, identical result out.
    """

    def __init__(
        self,
        catalog: ToolCatalog,
        *,
        rules: Sequence[PrecedenceRule] = DEFAULT_RULES,
        include_skipped_steps: bool = True,
    ) -> None:
        steps = [r.step for r in rules]
        if steps != sorted(steps) or len(set(steps)) != len(steps):
            raise ValueError(f"Rule steps must be unique and ascending (got {steps})")
        self._catalog = catalog
        self._rules = tuple(rules)
        self._include_skipped = include_skipped_steps

    @classmethod
    def from_settings(cls, catalog: ToolCatalog, settings: ResolverSettings) -> PrecedenceResolver:
        return cls(
            catalog,
            rules=build_rules(settings.allow_by_default),
            include_skipped_steps=settings.include_skipped_steps,
        )

    @property
    def rules(self) -> tuple[PrecedenceRule, ...]:
        return self._rules

    def resolve(
        self,
        context: ResolutionContext,
        support_ids: Iterable[str] | None = None,
    ) -> ResolutionResult:
        """Resolve every support id mentioned in the context (plus any extra ids given)."""
        mentioned = set(context.mentioned_support_ids())
        if support_ids is not None:
            mentioned.update(s for s in support_ids if s)

        builder = ProvenanceBuilder(context.context_id)
        by_tool: dict[str, list[_SupportEvaluation]] = {}

        for support_id in sorted(mentioned):
            tool_id = self._catalog.resolve_tool_id(support_id)
            if tool_id is None:
                error = ConfigurationError(support_id)
                logger.warning(
                    "support_id_unmapped",
                    error_code=error.code,
                    support_id=support_id,
                    context_id=context.context_id,
                )
                builder.add_unmapped(support_id)
                continue
            evaluation = self._evaluate(RuleInput(support_id, tool_id, context), builder)
            by_tool.setdefault(tool_id, []).append(evaluation)

        decisions: dict[str, ToolDecision] = {}
        for tool_id in sorted(by_tool):
            winner = self._pick_winner(by_tool[tool_id])
            builder.set_winner(tool_id, winner.record_index)
            outcome = winner.outcome
            enabled = outcome.action == RuleAction.enable
            decisions[tool_id] = ToolDecision(
                tool_id=tool_id,
                enabled=enabled,
                required=enabled and outcome.required,
                always_available=enabled and outcome.always_available,
                restricted=winner.rule.veto,
                config=outcome.config if enabled else None,
                rule=winner.rule.name,
                support_id=winner.support_id,
            )

        result = ResolutionResult(decisions=decisions, provenance=builder.build())
        logger.debug(
            "resolution_completed",
            context_id=context.context_id,
            tools=len(decisions),
            enabled=len(result.enabled_tool_ids()),
        )
        return result

    def auto_activate_tools(self, context: ResolutionContext, result: ResolutionResult) -> list[str]:
        """Tool ids the student's profile asks to open at start, limited to enabled tools."""
        if context.student is None:
            return []
        tool_ids: list[str] = []
        for support_id in context.student.activate_at_init:
            tool_id = self._catalog.resolve_tool_id(support_id)
            if tool_id and result.is_enabled(tool_id) and tool_id not in tool_ids:
                tool_ids.append(tool_id)
        return tool_ids

    def _evaluate(self, inp: RuleInput, builder: ProvenanceBuilder) -> _SupportEvaluation:
        for position, rule in enumerate(self._rules):
            if not rule.matches(inp):
                if self._include_skipped:
                    builder.add(ProvenanceRecord(
                        step=rule.step,
                        rule=rule.name,
                        action=RuleAction.skip,
                        reason=rule.skipped_reason,
                        source=rule.source.value,
                        support_id=inp.support_id,
                        tool_id=inp.tool_id,
                    ))
                continue

            outcome = rule.outcome(inp)
            reason = rule.fired_reason
            if outcome.action == RuleAction.enable and rule.allowed_reason:
                reason = rule.allowed_reason
            index = builder.add(ProvenanceRecord(
                step=rule.step,
                rule=rule.name,
                action=outcome.action,
                reason=reason,
                source=rule.source.value,
                support_id=inp.support_id,
                tool_id=inp.tool_id,
                value=outcome.config,
            ))
            if self._include_skipped:
                # short-circuited rules are recorded, not evaluated
                for later in self._rules[position + 1:]:
                    builder.add(ProvenanceRecord(
                        step=later.step,
                        rule=later.name,
                        action=RuleAction.skip,
                        reason=f"Not evaluated: decided by {rule.name}",
                        source=later.source.value,
                        support_id=inp.support_id,
                        tool_id=inp.tool_id,
                    ))
            return _SupportEvaluation(inp.support_id, rule, outcome, index)

        # a table without a catch-all rule still fails closed
        fallback = _NO_MATCH_RULE
        index = builder.add(ProvenanceRecord(
            step=fallback.step,
            rule=fallback.name,
            action=RuleAction.block,
            reason=fallback.fired_reason,
            source=fallback.source.value,
            support_id=inp.support_id,
            tool_id=inp.tool_id,
        ))
        return _SupportEvaluation(inp.support_id, fallback, RuleOutcome(action=RuleAction.block), index)

    @staticmethod
    def _pick_winner(evaluations: list[_SupportEvaluation]) -> _SupportEvaluation:
        vetoes = [e for e in evaluations if e.rule.veto]
        if vetoes:
            return min(vetoes, key=lambda e: (e.rule.step, e.support_id))
        enables = [e for e in evaluations if e.outcome.action == RuleAction.enable]
        if enables:
            return min(enables, key=lambda e: (e.rule.step, e.support_id))
        return min(evaluations, key=lambda e: (e.rule.step, e.support_id))

