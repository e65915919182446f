"""
FinGuard AI - resilient AI analysis layer for fraud, credit and security dashboards.

Public API:
- AIService: orchestrator (cache -> remote model -> parse -> fallback)
- AIConfig / AIServiceOptions: configuration
- Assessment types and error taxonomy
"""

from .ai import (
    AIConfig,
    AIService,
    AIServiceError,
    AIServiceOptions,
    AnalysisContext,
    AnalysisDomain,
    CreditEnhancement,
    FraudAnalysis,
    GeneralInsight,
    RateLimitError,
    RiskLevel,
    SecurityAssessment,
    ValidationError,
)

__all__ = [
    "AIService",
    "AIConfig",
    "AIServiceOptions",
    "AnalysisContext",
    "AnalysisDomain",
    "RiskLevel",
    "FraudAnalysis",
    "CreditEnhancement",
    "SecurityAssessment",
    "GeneralInsight",
    "AIServiceError",
    "RateLimitError",
    "ValidationError",
]

__version__ = "0.1.0"
