"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables and .env file.
"""

import structlog
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field(default="finguard", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")

    # Remote model
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("api_key", "gemini_api_key"),
        description="Generative language API key (required unless fallback-only)",
    )
    ai_enabled: bool = Field(default=True, description="Enable remote AI analysis")
    rate_limit_per_minute: int = Field(default=60, ge=1, le=1000, description="Remote requests per minute")
    timeout_ms: int = Field(default=10000, ge=1, le=60000, description="Remote call timeout in milliseconds")
    retry_attempts: int = Field(default=3, ge=0, le=10, description="Retries for transient remote failures")
    gemini_model: str = Field(default="gemini-1.5-flash", description="Gemini model name")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/models",
        description="Gemini REST endpoint",
    )

    # Circuit breaker
    circuit_breaker_threshold: int = Field(default=5, ge=1, description="Failures before the circuit opens")
    circuit_breaker_timeout_ms: int = Field(default=60000, ge=1, description="Open duration before a trial call")
    circuit_breaker_window_ms: int = Field(default=60000, ge=1, description="Trailing window for failure counting")

    # Bounded in-memory state
    cache_max_entries: int = Field(default=100, ge=1, description="Analysis cache capacity")
    log_max_entries: int = Field(default=1000, ge=1, description="Operation log capacity")
    status_check_interval_ms: int = Field(default=30000, ge=1, description="Status monitor poll interval")

    # Logging / Privacy
    log_redaction_enabled: bool = Field(default=True, description="Enable PII redaction in logs")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env.lower() == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env.lower() == "production"

    @model_validator(mode="after")
    def _warn_on_missing_api_key(self) -> "Settings":
        """A missing key is not fatal: the service degrades to fallback-only mode."""
        if self.ai_enabled and not self.api_key:
            structlog.get_logger(__name__).warning(
                "ai_api_key_missing",
                message="API_KEY is not set. AI analysis will run in fallback-only mode.",
            )
        return self


# Global settings instance
settings = Settings()
