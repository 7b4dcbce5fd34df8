"""Tool instance ids: "{tool_id}:{scope_level}:{scope_id}" with an optional ":inline" suffix.

The same tool type gets one instance per scope (e.g. one calculator per
item), so the scope is part of the id. Scope levels are held by a
ScopeLevels object owned by the session rather than a module global.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from src.constants import INLINE_ROLE_SUFFIX, INSTANCE_ID_DELIMITER

DEFAULT_SCOPE_LEVELS = ("assessment", "section", "item", "passage", "rubric", "element")


class InstanceRole(StrEnum):
    overlay = "overlay"
    inline = "inline"


@dataclass(frozen=True)
class ParsedInstanceId:
    tool_id: str
    scope_level: str
    scope_id: str
    role: InstanceRole = InstanceRole.overlay


class ScopeLevels:
    """Known scope levels; integrators may add custom ones."""

    def __init__(self, levels: Iterable[str] = DEFAULT_SCOPE_LEVELS) -> None:
        self._levels = set(levels)

    def register(self, level: str) -> None:
        normalized = level.strip()
        if not normalized:
            raise ValueError("Tool scope level must be a non-empty string")
        if INSTANCE_ID_DELIMITER in normalized:
            raise ValueError(f"Tool scope level must not contain '{INSTANCE_ID_DELIMITER}'")
        self._levels.add(normalized)

    def __contains__(self, level: object) -> bool:
        return level in self._levels

    def all(self) -> list[str]:
        return sorted(self._levels)


_DEFAULT_LEVELS = ScopeLevels()


def create_instance_id(
    tool_id: str,
    scope_level: str,
    scope_id: str,
    role: InstanceRole = InstanceRole.overlay,
    *,
    levels: ScopeLevels = _DEFAULT_LEVELS,
) -> str:
    """Build an instance id. Raises ValueError on empty parts or an unknown level."""
    base = tool_id.strip()
    scope = scope_id.strip()
    if not base or not scope:
        raise ValueError("Tool instance ids require non-empty tool and scope ids")
    if INSTANCE_ID_DELIMITER in base or INSTANCE_ID_DELIMITER in scope:
        raise ValueError(
            f"Tool and scope ids must not contain '{INSTANCE_ID_DELIMITER}' "
            f"(got '{base}', '{scope}')"
        )
    if scope_level not in levels:
        raise ValueError(
            f"Unknown tool scope level '{scope_level}'. Register custom levels first."
        )
    parts = [base, scope_level, scope]
    if role == InstanceRole.inline:
        parts.append(INLINE_ROLE_SUFFIX)
    return INSTANCE_ID_DELIMITER.join(parts)


def parse_instance_id(
    instance_id: str, *, levels: ScopeLevels = _DEFAULT_LEVELS
) -> ParsedInstanceId | None:
    """Inverse of create_instance_id. None for ids not in the scoped format."""
    parts = instance_id.split(INSTANCE_ID_DELIMITER)
    if len(parts) not in (3, 4):
        return None
    tool_id, scope_level, scope_id = parts[:3]
    if not tool_id or not scope_id or scope_level not in levels:
        return None
    if len(parts) == 4:
        if parts[3] != INLINE_ROLE_SUFFIX:
            return None
        return ParsedInstanceId(tool_id, scope_level, scope_id, InstanceRole.inline)
    return ParsedInstanceId(tool_id, scope_level, scope_id)


def to_overlay_id(instance_id: str, *, levels: ScopeLevels = _DEFAULT_LEVELS) -> str:
    parsed = parse_instance_id(instance_id, levels=levels)
    if parsed is None:
        return instance_id
    return create_instance_id(parsed.tool_id, parsed.scope_level, parsed.scope_id, levels=levels)


def base_tool_id(instance_id: str, *, levels: ScopeLevels = _DEFAULT_LEVELS) -> str:
    """Tool id behind an instance id; unscoped ids are their own tool id."""
    parsed = parse_instance_id(instance_id, levels=levels)
    return parsed.tool_id if parsed is not None else instance_id
