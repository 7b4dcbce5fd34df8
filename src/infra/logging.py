"""Structured logging configuration using structlog.

Call setup_logging() once at session or process startup before any log calls.
"""

from __future__ import annotations

import logging
from typing import TextIO

import structlog


def setup_logging(
    *,
    json_output: bool = True,
    log_level: str = "INFO",
    file: TextIO | None = None,
    cache_loggers: bool = True,
) -> None:
    """Configure structlog for the engine.

    Args:
        json_output: If True, render logs as JSON. If False, use dev-friendly console output.
        log_level: Minimum log level to emit (DEBUG, INFO, WARNING, ERROR).
        file: Stream to print log lines to. Defaults to stdout; CLIs whose
            stdout is a report should pass sys.stderr.
        cache_loggers: Cache bound loggers on first use. Short-lived tools that
            may be reconfigured in-process pass False.
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=file),
        cache_logger_on_first_use=cache_loggers,
    )


def bind_session(session_id: str, assessment_id: str | None = None) -> None:
    """Bind session identity into contextvars so every log line carries it."""
    structlog.contextvars.bind_contextvars(
        session_id=session_id, assessment_id=assessment_id
    )


def clear_session() -> None:
    """Drop the session identity; other context bindings are kept."""
    structlog.contextvars.unbind_contextvars("session_id", "assessment_id")
