"""Provenance of a resolution: which rules were evaluated for each tool and why.

The trail holds no timestamps, so identical contexts produce identical
trails. Callers that persist provenance for audit add their own clock.
"""

from __future__ import annotations

import json
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.resolution.rules import RuleAction


@dataclass(frozen=True)
class ProvenanceRecord:
    """One rule evaluation for one support id."""

    step: int
    rule: str
    action: RuleAction
    reason: str
    source: str
    support_id: str
    tool_id: str
    value: Any = None


@dataclass
class ProvenanceTrail:
    """Ordered rule evaluations for a single tool, with a pointer to the winner."""

    tool_id: str
    records: list[ProvenanceRecord] = field(default_factory=list)
    winning_index: int | None = None

    @property
    def winning_decision(self) -> ProvenanceRecord | None:
        if self.winning_index is None:
            return None
        return self.records[self.winning_index]

    @property
    def final_state(self) -> str:
        winner = self.winning_decision
        if winner is None:
            return "not-configured"
        return "enabled" if winner.action == RuleAction.enable else "blocked"

    def overridden(self) -> list[ProvenanceRecord]:
        """Deciding records that lost to the winner (other support ids of this tool)."""
        winner = self.winning_decision
        return [
            r for r in self.records
            if r.action != RuleAction.skip and r is not winner
        ]


@dataclass
class ResolutionProvenance:
    """Provenance for a whole resolution call."""

    context_id: str
    trails: dict[str, ProvenanceTrail] = field(default_factory=dict)
    decision_log: list[ProvenanceRecord] = field(default_factory=list)
    unmapped_support_ids: list[str] = field(default_factory=list)

    def trail(self, tool_id: str) -> ProvenanceTrail | None:
        return self.trails.get(tool_id)

    def summary(self) -> dict[str, Any]:
        states = Counter(t.final_state for t in self.trails.values())
        winners = [t.winning_decision for t in self.trails.values() if t.winning_decision]
        return {
            "total": len(self.trails),
            "enabled": states.get("enabled", 0),
            "blocked": states.get("blocked", 0),
            "not_configured": states.get("not-configured", 0),
            "by_rule": dict(sorted(Counter(w.rule for w in winners).items())),
            "by_source": dict(sorted(Counter(w.source for w in winners).items())),
            "unmapped": len(self.unmapped_support_ids),
        }


class ProvenanceBuilder:
    """Accumulates records during resolution; build() hands the result to the caller."""

    def __init__(self, context_id: str) -> None:
        self._provenance = ResolutionProvenance(context_id=context_id)

    def add(self, record: ProvenanceRecord) -> int:
        """Append a record to the tool's trail and the global log. Returns its trail index."""
        trail = self._provenance.trails.get(record.tool_id)
        if trail is None:
            trail = ProvenanceTrail(tool_id=record.tool_id)
            self._provenance.trails[record.tool_id] = trail
        trail.records.append(record)
        self._provenance.decision_log.append(record)
        return len(trail.records) - 1

    def set_winner(self, tool_id: str, index: int) -> None:
        self._provenance.trails[tool_id].winning_index = index

    def add_unmapped(self, support_id: str) -> None:
        self._provenance.unmapped_support_ids.append(support_id)

    def build(self) -> ResolutionProvenance:
        return self._provenance


def explain_tool(provenance: ResolutionProvenance, tool_id: str) -> str | None:
    """Human-readable explanation of one tool's decision, or None if unknown."""
    trail = provenance.trail(tool_id)
    if trail is None:
        return None
    winner = trail.winning_decision
    if winner is None:
        return f'Tool "{tool_id}" was not configured at any level.'

    lines = [
        f'Tool "{tool_id}" is {trail.final_state}.',
        f"Primary reason ({winner.rule}, step {winner.step}): {winner.reason}",
        f"Source: {winner.source} via support id '{winner.support_id}'",
    ]
    overridden = trail.overridden()
    if overridden:
        lines.append("Overridden:")
        lines.extend(
            f"- {r.rule} for '{r.support_id}': {r.reason}" for r in overridden
        )
    return "\n".join(lines)


def format_provenance_markdown(provenance: ResolutionProvenance) -> str:
    summary = provenance.summary()
    out = [
        "# Accommodation Resolution Report",
        "",
        f"**Context**: {provenance.context_id}",
        "",
        "## Summary",
        "",
        f"- Total tools: {summary['total']}",
        f"- Enabled: {summary['enabled']}",
        f"- Blocked: {summary['blocked']}",
        f"- Unmapped support ids: {summary['unmapped']}",
        "",
        "## Tool Resolution",
        "",
    ]
    for tool_id in provenance.trails:
        out.append(f"### {tool_id}")
        out.append("")
        out.append(explain_tool(provenance, tool_id) or "")
        out.append("")

    if provenance.unmapped_support_ids:
        out.append("## Unmapped Support Ids")
        out.append("")
        out.extend(f"- {sid}" for sid in provenance.unmapped_support_ids)
        out.append("")

    out.append("## Decision Log")
    out.append("")
    for n, r in enumerate(provenance.decision_log, start=1):
        out.append(
            f"{n}. **{r.rule}** (step {r.step}) {r.action.value} "
            f"{r.tool_id} [{r.support_id}] - {r.reason}"
        )
    return "\n".join(out) + "\n"


def _record_to_dict(record: ProvenanceRecord) -> dict[str, Any]:
    value = record.value
    if isinstance(value, Mapping):
        value = dict(value)
    return {
        "step": record.step,
        "rule": record.rule,
        "action": record.action.value,
        "reason": record.reason,
        "source": record.source,
        "support_id": record.support_id,
        "tool_id": record.tool_id,
        "value": value,
    }


def provenance_to_dict(provenance: ResolutionProvenance) -> dict[str, Any]:
    return {
        "context_id": provenance.context_id,
        "summary": provenance.summary(),
        "tools": [
            {
                "tool_id": trail.tool_id,
                "final_state": trail.final_state,
                "winning_index": trail.winning_index,
                "records": [_record_to_dict(r) for r in trail.records],
            }
            for trail in provenance.trails.values()
        ],
        "unmapped_support_ids": list(provenance.unmapped_support_ids),
    }


def format_provenance_json(provenance: ResolutionProvenance) -> str:
    return json.dumps(provenance_to_dict(provenance), indent=2, default=str)
