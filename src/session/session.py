"""Per-session composition root.

One AccommodationSession per active assessment sitting. It owns the
catalog, resolver, visibility coordinator, runtime coordinator, state
store and loader; nothing here is process-global. Call dispose() when
the sitting ends.
"""

from __future__ import annotations

import dataclasses
import uuid
from collections.abc import Awaitable, Callable, Collection
from typing import Any

import structlog

from src.catalog.base import scope_id_for
from src.catalog.builtins import register_builtins
from src.catalog.content import StructuralContext
from src.catalog.registry import ToolCatalog
from src.config.settings import Settings, get_settings
from src.infra.errors import StaleContextError
from src.infra.logging import bind_session, clear_session
from src.resolution.context import ResolutionContext
from src.resolution.inputs import ResolutionInput, parse_resolution_input
from src.resolution.resolver import PrecedenceResolver, ResolutionResult
from src.runtime.bands import ZBand
from src.runtime.coordinator import ToolRuntimeCoordinator
from src.runtime.instance_id import ScopeLevels, create_instance_id
from src.runtime.loader import ToolModuleLoader
from src.state.store import ScopedStateStore
from src.visibility.coordinator import VisibilityCoordinator, VisibilityReport

logger = structlog.get_logger()

PolicyPayload = ResolutionContext | ResolutionInput | dict[str, Any]
PolicyFetch = Callable[[], Awaitable[PolicyPayload]]


class AccommodationSession:
    def __init__(
        self,
        settings: Settings | None = None,
        *,
        session_id: str | None = None,
        assessment_id: str | None = None,
        catalog: ToolCatalog | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.session_id = session_id or uuid.uuid4().hex

        if catalog is None:
            catalog = ToolCatalog()
            if self._settings.catalog.register_builtins:
                register_builtins(catalog)
            if self._settings.catalog.freeze_after_builtins:
                catalog.freeze()
        self.catalog = catalog

        self.scope_levels = ScopeLevels()
        self.resolver = PrecedenceResolver.from_settings(catalog, self._settings.resolver)
        self.visibility = VisibilityCoordinator(catalog)
        self.runtime = ToolRuntimeCoordinator(
            default_band=ZBand.parse(self._settings.runtime.default_band),
            scope_levels=self.scope_levels,
        )
        self.store = ScopedStateStore(section_scope_marker=self._settings.state.section_scope_marker)
        self.loader = ToolModuleLoader(timeout_s=self._settings.runtime.tool_load_timeout_s)

        self._version = 0
        self._result: ResolutionResult | None = None
        self._report: VisibilityReport | None = None
        bind_session(self.session_id, assessment_id=assessment_id)
        logger.info("accommodation_session_started", tools=len(catalog.tool_ids()))

    @property
    def current_version(self) -> int:
        return self._version

    @property
    def last_result(self) -> ResolutionResult | None:
        return self._result

    @property
    def last_report(self) -> VisibilityReport | None:
        return self._report

    def begin_context(self) -> int:
        """Start a new context (e.g. navigation). Returns its version token."""
        self._version += 1
        return self._version

    def is_current(self, version: int) -> bool:
        return version == self._version

    def resolve(self, context: ResolutionContext) -> ResolutionResult:
        """Resolve a context synchronously. Supersedes any pending resolve_async."""
        self.begin_context()
        return self._apply(context)

    def _apply(self, context: ResolutionContext) -> ResolutionResult:
        self._result = self.resolver.resolve(context)
        return self._result

    async def resolve_async(self, fetch: PolicyFetch) -> ResolutionResult | None:
        """Await policy data and resolve it, unless a newer context began meanwhile.

        Returns None when the fetched data is stale; it is never applied.
        """
        version = self.begin_context()
        payload = await fetch()
        if not self.is_current(version):
            stale = StaleContextError(version, self._version)
            logger.info(
                "stale_context_discarded",
                error_code=stale.code,
                version=version,
                current_version=self._version,
            )
            return None
        return self._apply(_to_context(payload, version))

    def refresh_visibility(
        self,
        structural_context: StructuralContext,
        result: ResolutionResult | None = None,
        placement: Collection[str] | None = None,
    ) -> VisibilityReport:
        """Recompute the visible set for one placement.

        Running instances scoped to that placement whose tool fell out of the
        set are hidden; instances in other scopes are left alone.
        """
        result = result or self._result
        decisions = result.decisions if result is not None else {}
        report = self.visibility.evaluate(structural_context, decisions, placement)
        self.runtime.enforce_visibility(
            report.visible,
            scope_level=structural_context.level.value,
            scope_id=scope_id_for(structural_context),
        )
        self._report = report
        return report

    async def activate_tool(self, tool_id: str, structural_context: StructuralContext) -> str | None:
        """Load (if needed), register and show a tool instance for this context.

        Returns the instance id, or None if the tool is not currently visible.
        """
        report = self._report
        if report is None or tool_id not in report.visible:
            logger.warning("tool_activation_refused", tool_id=tool_id)
            return None
        descriptor = self.catalog.get(tool_id)
        if descriptor is None:
            return None
        if self.loader.has_factory(tool_id):
            await self.loader.load(tool_id)

        spec = descriptor.create_instance(structural_context)
        instance_id = create_instance_id(
            tool_id, spec.level.value, spec.scope_id, levels=self.scope_levels
        )
        self.runtime.register_tool(
            instance_id, tool_id=tool_id, name=descriptor.name, band=spec.band, handle=spec
        )
        self.runtime.show_tool(instance_id)
        return instance_id

    async def auto_activate(self, context: ResolutionContext, structural_context: StructuralContext) -> list[str]:
        """Open the tools the student profile asks for at start."""
        if self._result is None:
            return []
        opened: list[str] = []
        for tool_id in self.resolver.auto_activate_tools(context, self._result):
            instance_id = await self.activate_tool(tool_id, structural_context)
            if instance_id is not None:
                opened.append(instance_id)
        return opened

    def dispose(self) -> None:
        self.runtime.dispose()
        self.loader.reset()
        self._result = None
        self._report = None
        logger.info("accommodation_session_disposed")
        clear_session()


def _to_context(payload: PolicyPayload, version: int) -> ResolutionContext:
    if isinstance(payload, ResolutionContext):
        return dataclasses.replace(payload, version=version)
    if isinstance(payload, ResolutionInput):
        return payload.to_context(version=version)
    return parse_resolution_input(payload).to_context(version=version)
