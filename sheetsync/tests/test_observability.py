"""
Unit Tests: Structured Logging

Tests:
    - JSON formatting with bound context
    - Nested log_context scopes
    - Plain-text output with context column
"""

import io
import json
import logging

import pytest

from sheetsync.observability import (
    JsonFormatter,
    LogLevel,
    StructuredLogger,
    current_log_context,
    log_context,
    setup_logging,
)


def make_record(message: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "sheetsync.test", logging.INFO, __file__, 1, message, None, None,
    )
    record.__dict__.update(extra)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_basic_fields(self):
        data = json.loads(JsonFormatter().format(make_record("Wrote 3 field(s)")))

        assert data["message"] == "Wrote 3 field(s)"
        assert data["level"] == "INFO"
        assert data["logger"] == "sheetsync.test"
        assert "@timestamp" in data

    def test_context_and_extra(self):
        """Bound context and per-record extras both reach the output."""
        with log_context(session_id="abc123"):
            output = JsonFormatter().format(make_record("Triggered", handler="setup"))

        data = json.loads(output)
        assert data["session_id"] == "abc123"
        assert data["handler"] == "setup"


class TestLogContext:
    """Tests for log_context."""

    def test_nesting_and_reset(self):
        assert current_log_context() == {}
        with log_context(session_id="s1"):
            with log_context(trigger="sheet:opened"):
                assert current_log_context() == {"session_id": "s1", "trigger": "sheet:opened"}
            assert current_log_context() == {"session_id": "s1"}
        assert current_log_context() == {}

    def test_inner_scope_overrides(self):
        with log_context(handler="outer"):
            with log_context(handler="inner"):
                assert current_log_context()["handler"] == "inner"
            assert current_log_context()["handler"] == "outer"


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_plain_text_includes_context(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(LogLevel.DEBUG, json_output=False, stream=stream)

        with log_context(session_id="s1"):
            logging.getLogger("sheetsync.test").info("Finalized")

        line = stream.getvalue()
        assert "session_id=s1" in line
        assert "Finalized" in line

    def test_json_output_and_level(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(LogLevel.WARNING, stream=stream)

        logger = StructuredLogger("sheetsync.test")
        logger.info("hidden")
        logger.warning("shown", handler="refresh")

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["handler"] == "refresh"

    def test_with_extra(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(LogLevel.INFO, stream=stream)

        StructuredLogger("sheetsync.test").with_extra(trigger="drop").info("Imported")

        assert json.loads(stream.getvalue())["trigger"] == "drop"


class TestLogLevel:
    def test_from_name(self):
        assert LogLevel.from_name("debug") is LogLevel.DEBUG

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            LogLevel.from_name("verbose")
