"""Unit tests for logging configuration."""

import structlog

from switchboard.observability.logging import PIIRedactor, get_logger, setup_logging


class TestPIIRedactor:
    """Tests for phone number redaction."""

    def test_sensitive_keys_replaced(self) -> None:
        event = PIIRedactor()(
            None,
            "info",
            {"event": "contact_started", "CustomerPhoneNumber": "+61400000000", "token": "abc"},
        )

        assert event["CustomerPhoneNumber"] == "[REDACTED]"
        assert event["token"] == "[REDACTED]"
        assert event["event"] == "contact_started"

    def test_numbers_in_values_masked(self) -> None:
        event = PIIRedactor()(None, "info", {"event": "x", "note": "called from +61400000000"})

        assert event["note"] == "called from [PHONE]"

    def test_nested_values(self) -> None:
        event = PIIRedactor()(
            None,
            "info",
            {"event": "x", "state": {"phone": "+61400000000", "items": ["+61399999999", 3]}},
        )

        assert event["state"] == {"phone": "[REDACTED]", "items": ["[PHONE]", 3]}

    def test_short_numbers_kept(self) -> None:
        event = PIIRedactor()(None, "info", {"event": "x", "digits": "+1234"})

        assert event["digits"] == "+1234"


class TestSetupLogging:
    """Tests for structlog configuration."""

    def test_redactor_installed(self) -> None:
        setup_logging(level="DEBUG", format="json", redact_pii=True)

        processors = structlog.get_config()["processors"]
        assert any(isinstance(p, PIIRedactor) for p in processors)
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_redaction_optional(self) -> None:
        setup_logging(level="INFO", format="console", redact_pii=False)

        processors = structlog.get_config()["processors"]
        assert not any(isinstance(p, PIIRedactor) for p in processors)
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_get_logger(self) -> None:
        assert get_logger("switchboard.test") is not None
