"""Tests for the exception hierarchy and error codes."""

from __future__ import annotations

import pytest

from src.infra.errors import (
    AccommodationError,
    CatalogError,
    CatalogFrozenError,
    ConfigurationError,
    DuplicateRegistrationError,
    ReentrantMutationError,
    RelevancePredicateError,
    ResolutionError,
    RuntimeCoordinatorError,
    StaleContextError,
    StateKeyError,
    ToolLoadError,
    VisibilityError,
)


class TestErrorCodes:
    @pytest.mark.parametrize(
        "error,parent,code",
        [
            (DuplicateRegistrationError("s", "a", "b"), CatalogError, "DUPLICATE_SUPPORT_ID"),
            (CatalogFrozenError("t"), CatalogError, "CATALOG_FROZEN"),
            (ConfigurationError("s"), ResolutionError, "SUPPORT_ID_UNMAPPED"),
            (StaleContextError(1, 2), ResolutionError, "STALE_CONTEXT"),
            (RelevancePredicateError("t", ValueError()), VisibilityError, "RELEVANCE_PREDICATE_FAILED"),
            (ReentrantMutationError("show"), RuntimeCoordinatorError, "REENTRANT_MUTATION"),
            (ToolLoadError("t"), RuntimeCoordinatorError, "TOOL_LOAD_FAILED"),
            (StateKeyError("bad"), AccommodationError, "INVALID_STATE_KEY"),
        ],
    )
    def test_hierarchy_and_code(self, error, parent, code) -> None:
        assert isinstance(error, parent)
        assert isinstance(error, AccommodationError)
        assert error.code == code

    def test_base_default_code(self) -> None:
        assert AccommodationError("x").code == "INTERNAL_ERROR"

    def test_messages_name_the_subject(self) -> None:
        assert "brailleDisplay" in str(ConfigurationError("brailleDisplay"))
        assert "superseded by 3" in str(StaleContextError(2, 3))
