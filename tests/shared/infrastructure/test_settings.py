"""
Tests for environment-driven Settings.
"""

import pytest
from pydantic import ValidationError

from finguard.shared.infrastructure.config import Settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("API_KEY", "GEMINI_API_KEY", "AI_ENABLED", "APP_ENV"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.api_key is None
        assert settings.ai_enabled is True
        assert settings.rate_limit_per_minute == 60
        assert settings.timeout_ms == 10000
        assert settings.retry_attempts == 3
        assert settings.circuit_breaker_threshold == 5
        assert settings.cache_max_entries == 100
        assert settings.is_development is True

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("API_KEY", "env-key-1234567890")
        monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "30")
        monkeypatch.setenv("APP_ENV", "production")

        settings = Settings(_env_file=None)

        assert settings.api_key == "env-key-1234567890"
        assert settings.rate_limit_per_minute == 30
        assert settings.is_production is True

    def test_gemini_key_alias(self, monkeypatch):
        monkeypatch.delenv("API_KEY", raising=False)
        monkeypatch.setenv("GEMINI_API_KEY", "gemini-key-1234567890")

        assert Settings(_env_file=None).api_key == "gemini-key-1234567890"

    @pytest.mark.parametrize(
        "field, value",
        [
            ("rate_limit_per_minute", 0),
            ("rate_limit_per_minute", 1001),
            ("timeout_ms", 60001),
            ("retry_attempts", 11),
            ("cache_max_entries", 0),
        ],
    )
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})
