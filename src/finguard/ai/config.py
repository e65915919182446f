"""
AI Configuration

Explicit, per-instance configuration for the AI service and its collaborators.
Built from environment ``Settings`` in production and constructed directly in
tests, so every service instance is isolated.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from finguard.shared.infrastructure.config import Settings

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


@dataclass
class AIConfig:
    """
    Remote model and resilience configuration.

    Security: the API key should come from the environment (``API_KEY``).
    """

    api_key: str | None = None
    enabled: bool = True
    rate_limit_per_minute: int = 60
    timeout_ms: int = 10000
    retry_attempts: int = 3
    retry_initial_delay: float = 1.0
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    circuit_breaker_threshold: int = 5
    circuit_breaker_timeout_ms: int = 60000
    circuit_breaker_window_ms: int = 60000
    cache_max_entries: int = 100
    log_max_entries: int = 1000
    status_check_interval_ms: int = 30000

    @classmethod
    def from_settings(cls, settings: Settings) -> AIConfig:
        return cls(
            api_key=settings.api_key,
            enabled=settings.ai_enabled,
            rate_limit_per_minute=settings.rate_limit_per_minute,
            timeout_ms=settings.timeout_ms,
            retry_attempts=settings.retry_attempts,
            model=settings.gemini_model,
            base_url=settings.gemini_base_url,
            circuit_breaker_threshold=settings.circuit_breaker_threshold,
            circuit_breaker_timeout_ms=settings.circuit_breaker_timeout_ms,
            circuit_breaker_window_ms=settings.circuit_breaker_window_ms,
            cache_max_entries=settings.cache_max_entries,
            log_max_entries=settings.log_max_entries,
            status_check_interval_ms=settings.status_check_interval_ms,
        )

    @property
    def fallback_only(self) -> bool:
        """True when the remote model must not be called at all."""
        return not self.enabled or not self.api_key

    def validate(self) -> list[str]:
        """
        Validate configuration

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.enabled:
            if not self.api_key:
                errors.append("API key is required but not configured")
            elif len(self.api_key) < 10:
                errors.append("API key appears invalid (too short)")

        if not 1 <= self.rate_limit_per_minute <= 1000:
            errors.append("Rate limit must be between 1 and 1000 requests per minute")
        if not 1 <= self.timeout_ms <= 60000:
            errors.append("Timeout must be between 1ms and 60 seconds")
        if not 0 <= self.retry_attempts <= 10:
            errors.append("Retry attempts must be between 0 and 10")
        if self.circuit_breaker_threshold < 1:
            errors.append("Circuit breaker threshold must be at least 1")
        if self.cache_max_entries < 1:
            errors.append("Cache size must be at least 1")
        if not self.base_url.startswith(("http://", "https://")):
            errors.append("Endpoint must use HTTP or HTTPS protocol")

        return errors

    def __str__(self) -> str:
        """Safe string representation without exposing API key"""
        api_key_mask = "not set" if not self.api_key else f"***{self.api_key[-4:]}"
        return (
            f"Enabled={self.enabled}, "
            f"ApiKey={api_key_mask}, "
            f"Model={self.model}, "
            f"RateLimit={self.rate_limit_per_minute}/min, "
            f"TimeoutMs={self.timeout_ms}"
        )

    __repr__ = __str__


@dataclass
class AIServiceOptions:
    """Options accepted by ``AIService.initialize``."""

    enable_fallback: bool = True
    cache_results: bool = True
    max_retries: int | None = None
