"""
AI analysis resilience layer.

Remote model analysis guarded by a rate limiter and a circuit breaker, with a
bounded cache, an operation log and a deterministic fallback provider.
"""

from .cache import AnalysisCache, make_cache_key
from .circuit_breaker import CircuitBreaker, CircuitBreakerStatus, CircuitState
from .client import GeminiAnalysisClient, estimate_confidence
from .config import AIConfig, AIServiceOptions
from .error_handler import AIErrorHandler, ErrorHandlingOptions, ErrorNotification
from .errors import (
    AIServiceError,
    CircuitOpenError,
    ConfigurationError,
    ErrorCode,
    RateLimitError,
    ValidationError,
    classify_error,
    create_error_response,
)
from .fallback import FallbackDataProvider
from .operation_log import LogEntry, OperationLog, PerformanceMetrics
from .rate_limiter import RateLimiter, RateLimitStatus
from .service import AIService
from .status_monitor import AIServiceStatus, AIStatusMonitor
from .types import (
    AnalysisContext,
    AnalysisDomain,
    AnalysisFactor,
    AnalysisRequest,
    AnalysisResponse,
    CreditEnhancement,
    FraudAnalysis,
    GeneralInsight,
    Priority,
    RawModelResponse,
    RiskLevel,
    SecurityAssessment,
    ServiceStatus,
    ServiceTestResult,
)

__all__ = [
    "AIConfig",
    "AIErrorHandler",
    "AIService",
    "AIServiceError",
    "AIServiceOptions",
    "AIServiceStatus",
    "AIStatusMonitor",
    "AnalysisCache",
    "AnalysisContext",
    "AnalysisDomain",
    "AnalysisFactor",
    "AnalysisRequest",
    "AnalysisResponse",
    "CircuitBreaker",
    "CircuitBreakerStatus",
    "CircuitOpenError",
    "CircuitState",
    "ConfigurationError",
    "CreditEnhancement",
    "ErrorCode",
    "ErrorHandlingOptions",
    "ErrorNotification",
    "FallbackDataProvider",
    "FraudAnalysis",
    "GeminiAnalysisClient",
    "GeneralInsight",
    "LogEntry",
    "OperationLog",
    "PerformanceMetrics",
    "Priority",
    "RateLimitError",
    "RateLimitStatus",
    "RateLimiter",
    "RawModelResponse",
    "RiskLevel",
    "SecurityAssessment",
    "ServiceStatus",
    "ServiceTestResult",
    "ValidationError",
    "classify_error",
    "create_error_response",
    "estimate_confidence",
    "make_cache_key",
]
