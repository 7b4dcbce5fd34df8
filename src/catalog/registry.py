from __future__ import annotations

from collections.abc import Iterable

import structlog

from src.catalog.base import ToolDescriptor
from src.catalog.content import StructuralContext, ToolLevel
from src.infra.errors import CatalogFrozenError, DuplicateRegistrationError, RelevancePredicateError

logger = structlog.get_logger()


class ToolCatalog:
    """Registry of tool descriptors plus the support id → tool id reverse index.

    One catalog per session. Registration is idempotent by tool_id
    (last write wins); a support id keeps its first claimant.
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}
        self._support_index: dict[str, str] = {}
        self._conflicts: list[DuplicateRegistrationError] = []
        self._frozen = False

    def register(self, descriptor: ToolDescriptor) -> None:
        """Register or replace a descriptor.

        Raises CatalogFrozenError after freeze(). Support id conflicts are
        logged and recorded, never raised.
        """
        tool_id = descriptor.tool_id
        if self._frozen:
            raise CatalogFrozenError(tool_id)

        if tool_id in self._tools:
            self._drop_index_entries(tool_id)
            logger.info("tool_registration_replaced", tool_id=tool_id)

        if not descriptor.supported_levels:
            logger.warning(
                "tool_registered_without_levels",
                tool_id=tool_id,
                msg="Tool has empty supported_levels (fail-closed default); "
                "it will not be relevant at any level.",
            )

        self._tools[tool_id] = descriptor
        for support_id in descriptor.external_support_ids:
            owner = self._support_index.get(support_id)
            if owner is not None and owner != tool_id:
                conflict = DuplicateRegistrationError(support_id, owner, tool_id)
                self._conflicts.append(conflict)
                logger.error(
                    "support_id_conflict",
                    error_code=conflict.code,
                    support_id=support_id,
                    kept_tool_id=owner,
                    rejected_tool_id=tool_id,
                )
                continue
            self._support_index[support_id] = tool_id

        logger.info("tool_registered", tool_id=tool_id)

    def unregister(self, tool_id: str) -> None:
        if self._frozen:
            raise CatalogFrozenError(tool_id)
        if self._tools.pop(tool_id, None) is None:
            return
        self._drop_index_entries(tool_id)

    def freeze(self) -> None:
        """Reject further registration changes for the rest of the session."""
        self._frozen = True
        logger.info("catalog_frozen", tool_count=len(self._tools))

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def conflicts(self) -> list[DuplicateRegistrationError]:
        """Support id conflicts seen at registration time, oldest first."""
        return list(self._conflicts)

    def get(self, tool_id: str) -> ToolDescriptor | None:
        return self._tools.get(tool_id)

    def has(self, tool_id: str) -> bool:
        return tool_id in self._tools

    def resolve_tool_id(self, support_id: str) -> str | None:
        """Map an external support id to its tool id. None if unclaimed."""
        return self._support_index.get(support_id)

    def by_level(self, level: ToolLevel) -> list[ToolDescriptor]:
        return [t for t in self._tools.values() if level in t.supported_levels]

    def all_tools(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def tool_ids(self) -> list[str]:
        return list(self._tools.keys())

    def support_ids_for_tools(self, tool_ids: Iterable[str]) -> list[str]:
        """Support ids indexed to the given tools, e.g. for building a student profile."""
        wanted = set(tool_ids)
        return [sid for sid, tid in self._support_index.items() if tid in wanted]

    def tool_metadata(self) -> list[dict]:
        """Descriptor metadata for configuration UIs."""
        return [
            {
                "tool_id": tool.tool_id,
                "name": tool.name,
                "description": tool.description,
                "supported_levels": sorted(level.value for level in tool.supported_levels),
                "external_support_ids": [
                    sid for sid in tool.external_support_ids
                    if self._support_index.get(sid) == tool.tool_id
                ],
                "band": tool.band.name,
            }
            for tool in self._tools.values()
        ]

    def is_relevant(self, tool_id: str, context: StructuralContext) -> bool:
        """Evaluate a descriptor's predicate. Unknown tools and failures are not relevant."""
        tool = self._tools.get(tool_id)
        if tool is None:
            return False
        try:
            return bool(tool.is_relevant(context))
        except Exception as exc:
            error = RelevancePredicateError(tool_id, exc)
            logger.exception(
                "relevance_predicate_failed",
                error_code=error.code,
                tool_id=tool_id,
                level=context.level.value,
                item_id=context.item_id,
            )
            return False

    def _drop_index_entries(self, tool_id: str) -> None:
        for support_id in [s for s, t in self._support_index.items() if t == tool_id]:
            del self._support_index[support_id]
