"""
Structured logging configuration using structlog.

Provides consistent, structured logging across all modules, with a redaction
processor so API keys and personal data never reach the log sink.
"""

import logging
import re
import sys
from typing import Any

import structlog

from finguard.shared.infrastructure.config import settings

_REDACTION_PATTERNS = {
    r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b": "[EMAIL_REDACTED]",
    r"\b(?:\d{1,3}\.){3}\d{1,3}\b": "[IP_REDACTED]",
    r"\bAIza[0-9A-Za-z_\-]{10,}\b": "[API_KEY_REDACTED]",
    r"(api[_-]?key|token|password|secret)['\"]?\s*[:=]\s*['\"]?([^'\"\s]+)": r"\1=[REDACTED]",
    r"Bearer\s+\S+": "Bearer [TOKEN_REDACTED]",
}


def _redact_string(text: str) -> str:
    for pattern, replacement in _REDACTION_PATTERNS.items():
        text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)
    return text


def _redact_value(value: Any) -> Any:
    if isinstance(value, str):
        return _redact_string(value)
    if isinstance(value, dict):
        return {k: _redact_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact_value(v) for v in value]
    return value


def privacy_redactor(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Redact sensitive information from log events.

    Redacts:
    - Email addresses
    - IP addresses
    - Gemini-style API keys
    - key/token/password/secret assignments
    - Bearer tokens

    Args:
        logger: Logger instance
        method_name: Logging method name
        event_dict: Event dictionary to process

    Returns:
        Redacted event dictionary
    """
    if not getattr(settings, "log_redaction_enabled", True):
        return event_dict
    return {key: _redact_value(value) for key, value in event_dict.items()}


def configure_logging(stream: Any = sys.stderr) -> None:
    """
    Configure structlog for the application.

    Sets up:
    - Pretty console output for development
    - JSON output for production
    - Log level from settings
    """
    shared_processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        privacy_redactor,
    ]

    if settings.is_development:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    else:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream,
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        force=True,
    )


def get_logger(name: str) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("analysis_completed", domain="fraud", duration_ms=42)
    """
    return structlog.get_logger(name)
