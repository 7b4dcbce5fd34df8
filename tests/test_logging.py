"""Tests for logging setup and session-bound logging context."""

from __future__ import annotations

import io
import json

import structlog

from src.infra.logging import bind_session, clear_session, setup_logging


class TestSessionContext:
    def test_bind_and_clear(self) -> None:
        bind_session("sess-9", assessment_id="assess-1")
        assert structlog.contextvars.get_contextvars() == {
            "session_id": "sess-9",
            "assessment_id": "assess-1",
        }
        clear_session()
        assert structlog.contextvars.get_contextvars() == {}

    def test_clear_keeps_other_bindings(self) -> None:
        structlog.contextvars.bind_contextvars(request_id="req-1")
        try:
            bind_session("sess-9", assessment_id="assess-1")
            clear_session()
            assert structlog.contextvars.get_contextvars() == {"request_id": "req-1"}
        finally:
            structlog.contextvars.clear_contextvars()


class TestSetupLogging:
    def test_writes_json_to_given_stream(self) -> None:
        stream = io.StringIO()
        setup_logging(json_output=True, log_level="INFO", file=stream, cache_loggers=False)
        try:
            structlog.get_logger().info("tool_registered", tool_id="calculator")
        finally:
            structlog.reset_defaults()
        record = json.loads(stream.getvalue())
        assert record["event"] == "tool_registered"
        assert record["tool_id"] == "calculator"
        assert record["level"] == "info"

    def test_level_filters(self) -> None:
        stream = io.StringIO()
        setup_logging(log_level="ERROR", file=stream, cache_loggers=False)
        try:
            structlog.get_logger().info("tool_registered")
        finally:
            structlog.reset_defaults()
        assert stream.getvalue() == ""
