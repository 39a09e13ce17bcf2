"""Tests for structured logging."""

import json
from io import StringIO

import pytest
import structlog

from frontdesk.observability.logging import (
    PIIRedactor,
    bind_call_context,
    clear_call_context,
    get_logger,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_json_format(self) -> None:
        """Should configure JSON format for production."""
        setup_logging(level="INFO", format="json", redact_pii=False)
        logger = get_logger("test")
        # Should not raise
        logger.info("test_message")

    def test_setup_console_format(self) -> None:
        """Should configure console format for development."""
        setup_logging(level="DEBUG", format="console", redact_pii=False)
        logger = get_logger("test")
        # Should not raise
        logger.debug("test_message")

    def test_setup_with_pii_redaction(self) -> None:
        """Should configure PII redaction when enabled."""
        setup_logging(level="INFO", format="json", redact_pii=True)
        logger = get_logger("test")
        # Should not raise
        logger.info("test_message", caller_number="+15551234567")


class TestCallContext:
    """Tests for call context binding."""

    def test_bind_and_clear(self) -> None:
        """Bound identifiers are visible until cleared."""
        bind_call_context("call-1", "tenant-1", turn=3)
        context = structlog.contextvars.get_contextvars()
        assert context["call_id"] == "call-1"
        assert context["tenant_id"] == "tenant-1"
        assert context["turn"] == 3

        clear_call_context()
        context = structlog.contextvars.get_contextvars()
        assert "call_id" not in context
        assert "turn" not in context

    def test_turn_optional(self) -> None:
        """Turn is only bound when given."""
        bind_call_context("call-1", "tenant-1")
        assert "turn" not in structlog.contextvars.get_contextvars()
        clear_call_context()


class TestPIIRedactor:
    """Tests for PII redaction."""

    @pytest.fixture
    def redactor(self) -> PIIRedactor:
        """Create a PIIRedactor instance."""
        return PIIRedactor()

    def test_redacts_caller_number_by_key(self, redactor: PIIRedactor) -> None:
        """Should redact values for caller phone number keys."""
        event_dict = {"caller_number": "+15551234567", "call_id": "call-0001"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["caller_number"] == "[REDACTED]"
        assert result["call_id"] == "call-0001"

    def test_redacts_connection_url_by_key(self, redactor: PIIRedactor) -> None:
        """Should redact connection strings."""
        event_dict = {"connection_url": "redis://:secret@host:6379/0"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["connection_url"] == "[REDACTED]"

    def test_none_values_left_alone(self, redactor: PIIRedactor) -> None:
        """A sensitive key with no value stays None."""
        result = redactor(None, None, {"email": None})  # type: ignore
        assert result["email"] is None

    def test_redacts_email_pattern_in_transcript(self, redactor: PIIRedactor) -> None:
        """Should redact email patterns found in string values."""
        event_dict = {"text": "my email is jane.doe@example.com thanks"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert "jane.doe@example.com" not in result["text"]
        assert "[EMAIL]" in result["text"]

    def test_redacts_phone_pattern_in_transcript(self, redactor: PIIRedactor) -> None:
        """Should redact phone patterns found in string values."""
        event_dict = {"text": "Call me back at +1-555-123-4567 please"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert "+1-555-123-4567" not in result["text"]
        assert "[PHONE]" in result["text"]

    def test_handles_nested_dicts(self, redactor: PIIRedactor) -> None:
        """Should handle nested dictionaries."""
        event_dict = {"facts": {"phone": "5551234567", "name": "Jane"}}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["facts"]["phone"] == "[REDACTED]"
        assert result["facts"]["name"] == "Jane"

    def test_handles_lists(self, redactor: PIIRedactor) -> None:
        """Should redact strings inside lists."""
        event_dict = {"history": ["reach me at jane@example.com", "ok"]}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["history"] == ["reach me at [EMAIL]", "ok"]

    def test_preserves_non_pii_data(self, redactor: PIIRedactor) -> None:
        """Should preserve non-PII data."""
        event_dict = {
            "event": "turn_processed",
            "latency_ms": 150,
            "handler": "fallback",
            "turn": 4,
        }
        result = redactor(None, None, event_dict)  # type: ignore
        assert result == event_dict


class TestJSONLogging:
    """Tests for JSON log output format."""

    def test_json_output_is_valid_json(self) -> None:
        """Should produce valid JSON output with an unredacted timestamp."""
        output = StringIO()
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                structlog.processors.add_log_level,
                PIIRedactor(),
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(0),
            context_class=dict,
            logger_factory=structlog.PrintLoggerFactory(output),
            cache_logger_on_first_use=False,
        )

        logger = structlog.get_logger("test")
        logger.info("test_event", caller_number="+15551234567", handler="booking")

        parsed = json.loads(output.getvalue().strip())
        assert parsed["event"] == "test_event"
        assert parsed["caller_number"] == "[REDACTED]"
        assert parsed["handler"] == "booking"
        assert "[PHONE]" not in parsed["timestamp"]

        setup_logging(level="INFO", format="json", redact_pii=True)
