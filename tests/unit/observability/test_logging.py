"""Tests for structured logging."""

import json

import pytest
import structlog

from rapport.config.models import LoggingConfig
from rapport.observability.logging import (
    PIIRedactor,
    configure_logging,
    get_logger,
    setup_logging,
)


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_json_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Should render one JSON object per event."""
        setup_logging(level="INFO", format="json", redact_pii=False)

        get_logger("test").info("friendship_requested", local_id="alice")

        line = capsys.readouterr().err.strip().splitlines()[-1]
        event = json.loads(line)
        assert event["event"] == "friendship_requested"
        assert event["local_id"] == "alice"
        assert event["level"] == "info"
        assert "timestamp" in event

    def test_level_filters_events(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="WARNING", format="json", redact_pii=False)

        get_logger("test").info("dropped")

        assert capsys.readouterr().err == ""

    def test_console_format(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="DEBUG", format="console", redact_pii=False)

        get_logger("test").debug("console_message")

        assert "console_message" in capsys.readouterr().err

    def test_context_vars_merged(self, capsys: pytest.CaptureFixture[str]) -> None:
        setup_logging(level="INFO", format="json", redact_pii=False)
        structlog.contextvars.bind_contextvars(request_id="req-1")

        get_logger("test").info("with_context")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["request_id"] == "req-1"

    def test_configure_from_config(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(LoggingConfig(level="INFO", format="json", redact_pii=True))

        get_logger("test").info("signup", contact="user@example.com")

        event = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert event["contact"] == "[EMAIL]"


class TestPIIRedactor:
    """Tests for PIIRedactor processor."""

    @pytest.fixture
    def redactor(self) -> PIIRedactor:
        return PIIRedactor()

    def test_redacts_sensitive_keys(self, redactor: PIIRedactor) -> None:
        result = redactor(None, "info", {"event": "x", "password": "hunter2", "Token": "t"})

        assert result["password"] == "[REDACTED]"
        assert result["Token"] == "[REDACTED]"
        assert result["event"] == "x"

    def test_scrubs_emails_in_values(self, redactor: PIIRedactor) -> None:
        result = redactor(None, "info", {"event": "mail bob@example.com now"})

        assert result["event"] == "mail [EMAIL] now"

    def test_scrubs_connection_credentials(self, redactor: PIIRedactor) -> None:
        result = redactor(
            None, "info", {"event": "connect", "url": "mongodb+srv://admin:pw@cluster0/db"}
        )

        assert result["url"] == "mongodb+srv://[CREDENTIALS]@cluster0/db"

    def test_recurses_into_nested_values(self, redactor: PIIRedactor) -> None:
        result = redactor(
            None,
            "info",
            {"event": "x", "friend": {"email": "a@b.io", "tags": ["c@d.io", 3]}},
        )

        assert result["friend"] == {"email": "[REDACTED]", "tags": ["[EMAIL]", 3]}

    def test_leaves_non_strings(self, redactor: PIIRedactor) -> None:
        result = redactor(None, "info", {"event": "x", "count": 2, "ok": True})

        assert result["count"] == 2
        assert result["ok"] is True
