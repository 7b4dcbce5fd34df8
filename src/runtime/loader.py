"""Lazy, load-once tool implementation loading.

A pending load is memoized per tool id, so concurrent activations await
one in-flight task. Failed loads are forgotten and may be retried.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from src.infra.errors import ToolLoadError

logger = structlog.get_logger()

LoadFactory = Callable[[], Awaitable[Any]]


class ToolModuleLoader:
    def __init__(self, *, timeout_s: float | None = None) -> None:
        self._factories: dict[str, LoadFactory] = {}
        self._pending: dict[str, asyncio.Task[Any]] = {}
        self._loaded: dict[str, Any] = {}
        self._timeout_s = timeout_s

    def register(self, tool_id: str, factory: LoadFactory) -> None:
        self._factories[tool_id] = factory

    def has_factory(self, tool_id: str) -> bool:
        return tool_id in self._factories

    def is_loaded(self, tool_id: str) -> bool:
        return tool_id in self._loaded

    def get_loaded(self, tool_id: str) -> Any | None:
        return self._loaded.get(tool_id)

    async def load(self, tool_id: str) -> Any:
        """Return the tool implementation, loading it at most once.

        Raises ToolLoadError if no factory is registered or the load fails.
        """
        if tool_id in self._loaded:
            return self._loaded[tool_id]

        task = self._pending.get(tool_id)
        if task is None:
            factory = self._factories.get(tool_id)
            if factory is None:
                raise ToolLoadError(tool_id)
            logger.info("tool_load_started", tool_id=tool_id)
            task = asyncio.ensure_future(self._run(tool_id, factory))
            self._pending[tool_id] = task

        # shield so one cancelled waiter does not cancel the shared load
        return await asyncio.shield(task)

    async def _run(self, tool_id: str, factory: LoadFactory) -> Any:
        try:
            if self._timeout_s is not None:
                module = await asyncio.wait_for(factory(), timeout=self._timeout_s)
            else:
                module = await factory()
        except Exception as exc:
            logger.error("tool_load_failed", tool_id=tool_id, error=repr(exc))
            raise ToolLoadError(tool_id, exc) from exc
        finally:
            self._pending.pop(tool_id, None)
        self._loaded[tool_id] = module
        logger.debug("tool_load_completed", tool_id=tool_id)
        return module

    def reset(self) -> None:
        """Forget loaded implementations and cancel in-flight loads."""
        for task in self._pending.values():
            task.cancel()
        self._pending.clear()
        self._loaded.clear()
