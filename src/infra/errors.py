"""Custom exception hierarchy for the accommodation engine.

All application-specific exceptions inherit from AccommodationError,
which carries an error code used in log records and provenance entries.

Data-shape errors (unmapped support ids, failing relevance predicates,
conflicting registrations, stale policy responses) are built and logged
but never raised to resolution or visibility callers. Only contract
violations propagate.
"""

from __future__ import annotations


class AccommodationError(Exception):
    """Base exception for all accommodation engine errors."""

    def __init__(self, message: str, *, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message)
        self.code = code


class CatalogError(AccommodationError):
    """Errors in the Tool Catalog."""

    def __init__(self, message: str, *, code: str = "CATALOG_ERROR") -> None:
        super().__init__(message, code=code)


class DuplicateRegistrationError(CatalogError):
    """Two descriptors claim the same external support id. First registrant wins."""

    def __init__(self, support_id: str, kept_tool_id: str, rejected_tool_id: str) -> None:
        super().__init__(
            f"Support id '{support_id}' already claimed by '{kept_tool_id}'; "
            f"ignored claim from '{rejected_tool_id}'",
            code="DUPLICATE_SUPPORT_ID",
        )
        self.support_id = support_id
        self.kept_tool_id = kept_tool_id
        self.rejected_tool_id = rejected_tool_id


class CatalogFrozenError(CatalogError):
    """Registration attempted after the catalog was frozen."""

    def __init__(self, tool_id: str) -> None:
        super().__init__(
            f"Cannot register '{tool_id}': catalog is frozen",
            code="CATALOG_FROZEN",
        )
        self.tool_id = tool_id


class ResolutionError(AccommodationError):
    """Errors in accommodation resolution."""

    def __init__(self, message: str, *, code: str = "RESOLUTION_ERROR") -> None:
        super().__init__(message, code=code)


class ConfigurationError(ResolutionError):
    """An external support id has no registered tool."""

    def __init__(self, support_id: str) -> None:
        super().__init__(
            f"No registered tool claims support id '{support_id}'",
            code="SUPPORT_ID_UNMAPPED",
        )
        self.support_id = support_id


class StaleContextError(ResolutionError):
    """An async policy fetch completed after its context was superseded."""

    def __init__(self, version: int, current_version: int) -> None:
        super().__init__(
            f"Context version {version} superseded by {current_version}",
            code="STALE_CONTEXT",
        )
        self.version = version
        self.current_version = current_version


class VisibilityError(AccommodationError):
    """Errors in the two-pass visibility filter."""

    def __init__(self, message: str, *, code: str = "VISIBILITY_ERROR") -> None:
        super().__init__(message, code=code)


class RelevancePredicateError(VisibilityError):
    """A descriptor's relevance predicate raised."""

    def __init__(self, tool_id: str, cause: BaseException) -> None:
        super().__init__(
            f"Relevance predicate for '{tool_id}' failed: {cause!r}",
            code="RELEVANCE_PREDICATE_FAILED",
        )
        self.tool_id = tool_id
        self.cause = cause


class RuntimeCoordinatorError(AccommodationError):
    """Errors in the Tool Runtime Coordinator."""

    def __init__(self, message: str, *, code: str = "RUNTIME_ERROR") -> None:
        super().__init__(message, code=code)


class ReentrantMutationError(RuntimeCoordinatorError):
    """A subscriber tried to mutate the coordinator during notification."""

    def __init__(self, operation: str) -> None:
        super().__init__(
            f"'{operation}' called from inside a runtime listener",
            code="REENTRANT_MUTATION",
        )
        self.operation = operation


class ToolLoadError(RuntimeCoordinatorError):
    """Lazy loading of a tool implementation failed."""

    def __init__(self, tool_id: str, cause: BaseException | None = None) -> None:
        detail = f": {cause!r}" if cause is not None else ""
        super().__init__(f"Failed to load tool '{tool_id}'{detail}", code="TOOL_LOAD_FAILED")
        self.tool_id = tool_id
        self.cause = cause


class StateKeyError(AccommodationError):
    """A scoped state key could not be built from the given segments."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="INVALID_STATE_KEY")
