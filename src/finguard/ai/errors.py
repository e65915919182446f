"""
AI service error taxonomy.

Typed errors are raised up to the orchestrator boundary only; ``AIService``
catches every one of them and resolves the call through the fallback provider.
"""

from dataclasses import dataclass
from typing import Any


class ErrorCode:
    INITIALIZATION_ERROR = "INITIALIZATION_ERROR"
    MISSING_API_KEY = "MISSING_API_KEY"
    AUTH_ERROR = "AUTH_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    API_ERROR = "API_ERROR"
    MODEL_ERROR = "MODEL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    CIRCUIT_BREAKER_OPEN = "CIRCUIT_BREAKER_OPEN"


class AIServiceError(Exception):
    """Remote or service-level failure (auth, timeout, unclassified fault)."""

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.API_ERROR,
        retryable: bool = False,
        context: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.retryable = retryable
        self.context = context
        super().__init__(message)


class RateLimitError(AIServiceError):
    """Request quota exhausted; ``retry_after_ms`` hints when to try again."""

    def __init__(self, message: str, retry_after_ms: int = 60000):
        super().__init__(message, ErrorCode.RATE_LIMIT_EXCEEDED, retryable=True)
        self.retry_after_ms = retry_after_ms


class ValidationError(AIServiceError):
    """Malformed input or empty/unparseable model output. Never retried."""

    def __init__(self, message: str, field_errors: dict[str, str] | None = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, retryable=False)
        self.field_errors = field_errors


class ConfigurationError(AIServiceError):
    def __init__(self, message: str):
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, retryable=False)


class CircuitOpenError(AIServiceError):
    """The circuit breaker short-circuited the remote call."""

    def __init__(self, retry_after_ms: int):
        super().__init__(
            f"Circuit breaker is open. Retry after {retry_after_ms}ms",
            ErrorCode.CIRCUIT_BREAKER_OPEN,
            retryable=False,
        )
        self.retry_after_ms = retry_after_ms


@dataclass(frozen=True)
class ErrorAnalysis:
    category: str
    severity: str  # low | medium | high | critical
    recoverable: bool
    suggested_action: str


def classify_error(error: BaseException) -> ErrorAnalysis:
    """Map an error onto a category, severity and operator action."""
    if isinstance(error, RateLimitError):
        return ErrorAnalysis("Rate Limiting", "medium", True, "Wait and retry automatically")
    if isinstance(error, ValidationError):
        return ErrorAnalysis("Data Validation", "low", False, "Check input data format")
    if isinstance(error, ConfigurationError):
        return ErrorAnalysis("Configuration", "high", False, "Check AI service configuration")
    if isinstance(error, CircuitOpenError):
        return ErrorAnalysis("Circuit Breaker", "medium", True, "Wait for the circuit to recover")
    if isinstance(error, AIServiceError):
        if error.retryable:
            return ErrorAnalysis("AI Service", "medium", True, "Retry operation")
        return ErrorAnalysis("AI Service", "high", False, "Use fallback mode")

    message = str(error).lower()
    if "network" in message or "timeout" in message:
        return ErrorAnalysis("Network", "medium", True, "Check network connection and retry")

    return ErrorAnalysis("Unknown", "critical", False, "Contact support if issue persists")


def create_error_response(error: BaseException) -> dict:
    """Standardized error payload for UI collaborators."""
    if isinstance(error, AIServiceError):
        return {
            "success": False,
            "error": error.message,
            "code": error.code,
            "retryable": error.retryable,
        }
    return {
        "success": False,
        "error": "An unexpected error occurred",
        "code": "UNKNOWN_ERROR",
        "retryable": False,
    }
