"""
AI Analysis Type Definitions

Request, response and assessment types shared by the remote client, the
fallback provider and the orchestrator.

All result types are frozen dataclasses; ``to_dict()`` produces camelCase keys
for dashboard JSON compatibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisDomain(str, Enum):
    """Analysis domain - selects the prompt role and the result shape."""

    FRAUD = "fraud"
    CREDIT = "credit"
    SECURITY = "security"
    GENERAL = "general"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class AnalysisContext:
    """Caller-supplied context attached to an analysis request."""

    user_id: str | None = None
    session_id: str | None = None
    priority: Priority = Priority.MEDIUM
    analysis_type: AnalysisDomain | None = None

    def with_analysis_type(self, domain: AnalysisDomain) -> AnalysisContext:
        return AnalysisContext(
            user_id=self.user_id,
            session_id=self.session_id,
            priority=self.priority,
            analysis_type=domain,
        )

    def to_dict(self) -> dict:
        return {
            "userId": self.user_id,
            "sessionId": self.session_id,
            "priority": self.priority.value,
            "analysisType": self.analysis_type.value if self.analysis_type else None,
        }


@dataclass(frozen=True)
class AnalysisRequest:
    """
    A domain-tagged payload awaiting analysis.

    Issued by the orchestrator and never mutated afterwards; the payload is
    opaque JSON-like data owned by the caller.
    """

    payload: Any
    domain: AnalysisDomain
    context: AnalysisContext | None = None


@dataclass(frozen=True)
class TokenUsage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> dict:
        return {
            "promptTokens": self.prompt_tokens,
            "completionTokens": self.completion_tokens,
            "totalTokens": self.total_tokens,
        }


@dataclass(frozen=True)
class RawModelResponse:
    """Free text returned by one remote call, with a heuristic confidence (0-100)."""

    text: str
    confidence_hint: float
    latency_ms: int = 0
    usage: TokenUsage | None = None

    def to_dict(self) -> dict:
        return {
            "text": self.text,
            "confidenceHint": self.confidence_hint,
            "latencyMs": self.latency_ms,
            "usage": self.usage.to_dict() if self.usage else None,
        }


@dataclass(frozen=True)
class AnalysisFactor:
    factor: str
    impact: float  # 0-100
    explanation: str

    def to_dict(self) -> dict:
        return {"factor": self.factor, "impact": self.impact, "explanation": self.explanation}


@dataclass(frozen=True)
class AnalysisResponse:
    """
    Structured assessment common to every domain.

    Produced either from parsed model text or by the fallback provider; callers
    cannot tell the two apart except through ``confidence``.
    """

    confidence: float  # 0-100
    risk_level: RiskLevel
    reasoning: str
    recommendations: tuple[str, ...]  # at most 5
    factors: tuple[AnalysisFactor, ...]
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "confidence": self.confidence,
            "riskLevel": self.risk_level.value,
            "reasoning": self.reasoning,
            "recommendations": list(self.recommendations),
            "factors": [f.to_dict() for f in self.factors],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class GeneralInsight(AnalysisResponse):
    """General-purpose insight; carries only the common fields."""


@dataclass(frozen=True)
class FraudAnalysis(AnalysisResponse):
    fraud_probability: float = 25.0  # 0-100
    suspicious_patterns: tuple[str, ...] = ()
    prevention_actions: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "fraudProbability": self.fraud_probability,
                "suspiciousPatterns": list(self.suspicious_patterns),
                "preventionActions": list(self.prevention_actions),
            }
        )
        return data


@dataclass(frozen=True)
class CreditEnhancement(AnalysisResponse):
    enhanced_score: int = 650  # 300-850
    score_factors: tuple[AnalysisFactor, ...] = ()
    lending_recommendation: str = "Standard lending terms recommended"

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "enhancedScore": self.enhanced_score,
                "scoreFactors": [f.to_dict() for f in self.score_factors],
                "lendingRecommendation": self.lending_recommendation,
            }
        )
        return data


@dataclass(frozen=True)
class SecurityAssessment(AnalysisResponse):
    threat_level: float = 30.0  # 0-100
    vulnerabilities: tuple[str, ...] = ()
    mitigation_steps: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "threatLevel": self.threat_level,
                "vulnerabilities": list(self.vulnerabilities),
                "mitigationSteps": list(self.mitigation_steps),
            }
        )
        return data


@dataclass(frozen=True)
class ServiceStatus:
    """Snapshot returned by ``AIService.get_status``."""

    initialized: bool
    ai_available: bool
    fallback_enabled: bool
    cache_size: int

    def to_dict(self) -> dict:
        return {
            "initialized": self.initialized,
            "aiAvailable": self.ai_available,
            "fallbackEnabled": self.fallback_enabled,
            "cacheSize": self.cache_size,
        }


@dataclass(frozen=True)
class ServiceTestResult:
    success: bool
    message: str
    details: dict | None = None

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message, "details": self.details}


@dataclass(frozen=True)
class ConnectionTestResult:
    success: bool
    message: str
    latency_ms: int | None = None

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message, "latencyMs": self.latency_ms}
