"""
Tests for the structlog privacy redactor.
"""

from finguard.shared.infrastructure import logging as logging_module
from finguard.shared.infrastructure.logging import get_logger, privacy_redactor


class TestPrivacyRedactor:
    def test_redacts_email_and_ip(self):
        event = privacy_redactor(None, "info", {"event": "login", "user": "jane@example.com", "ip": "10.0.0.12"})

        assert event["event"] == "login"
        assert event["user"] == "[EMAIL_REDACTED]"
        assert event["ip"] == "[IP_REDACTED]"

    def test_redacts_api_keys(self):
        event = privacy_redactor(
            None,
            "info",
            {"event": "config", "raw": "api_key=AIzaSyD-abcdefghijklmnop", "header": "Bearer eyJhbGciOi.payload"},
        )

        assert "AIza" not in event["raw"]
        assert event["raw"] == "api_key=[REDACTED]"
        assert event["header"] == "Bearer [TOKEN_REDACTED]"

    def test_redacts_nested_values(self):
        event = privacy_redactor(None, "info", {"metadata": {"ip": "192.168.0.1", "items": ["a@b.io", 3]}})

        assert event["metadata"] == {"ip": "[IP_REDACTED]", "items": ["[EMAIL_REDACTED]", 3]}

    def test_non_strings_untouched(self):
        event = privacy_redactor(None, "info", {"duration_ms": 42, "ok": True, "missing": None})

        assert event == {"duration_ms": 42, "ok": True, "missing": None}

    def test_disabled_redaction(self, monkeypatch):
        monkeypatch.setattr(logging_module.settings, "log_redaction_enabled", False)

        event = privacy_redactor(None, "info", {"user": "jane@example.com"})

        assert event["user"] == "jane@example.com"


def test_get_logger_returns_bindable_logger():
    logger = get_logger("finguard.tests")

    assert logger.bind(domain="fraud") is not None
