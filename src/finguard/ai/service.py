"""
AI Service

Public façade over the analysis stack. Every ``analyze*`` call runs the same
pipeline:

    cache lookup -> circuit breaker gate -> remote client (rate limited,
    timed out, retried) -> field extraction -> cache store

and any failure along the way resolves to the deterministic fallback provider,
so callers always receive a structured assessment.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, TypeVar

from finguard.shared.infrastructure.logging import get_logger

from .cache import AnalysisCache, make_cache_key
from .circuit_breaker import CircuitBreaker, CircuitBreakerStatus
from .client import GeminiAnalysisClient
from .config import AIConfig, AIServiceOptions
from .error_handler import AIErrorHandler, ErrorHandlingOptions
from .errors import AIServiceError, CircuitOpenError, ErrorCode
from .extraction import parse_assessment
from .fallback import FallbackDataProvider
from .operation_log import OperationLog, PerformanceMetrics
from .rate_limiter import DEFAULT_KEY, RateLimiter, RateLimitStatus
from .types import (
    AnalysisContext,
    AnalysisDomain,
    AnalysisRequest,
    AnalysisResponse,
    CreditEnhancement,
    FraudAnalysis,
    GeneralInsight,
    Priority,
    SecurityAssessment,
    ServiceStatus,
    ServiceTestResult,
    utc_now,
)

logger = get_logger(__name__)

T = TypeVar("T", bound=AnalysisResponse)


class AIService:
    """
    AI analysis orchestrator.

    Collaborators not passed in are built from ``config``; nothing is shared
    between instances unless the caller shares it.

    Usage:
        service = AIService(AIConfig.from_settings(settings))
        await service.initialize()
        analysis = await service.analyze_fraud_risk({"amount": 2500, "currency": "USD"})
    """

    def __init__(
        self,
        config: AIConfig | None = None,
        client: GeminiAnalysisClient | None = None,
        rate_limiter: RateLimiter | None = None,
        error_handler: AIErrorHandler | None = None,
        operation_log: OperationLog | None = None,
        cache: AnalysisCache | None = None,
        fallback_provider: FallbackDataProvider | None = None,
    ):
        if config is None:
            from finguard.shared.infrastructure.config import settings

            config = AIConfig.from_settings(settings)

        self.config = config
        self.operation_log = operation_log or OperationLog(max_entries=config.log_max_entries)
        self.rate_limiter = rate_limiter or RateLimiter(max_requests=config.rate_limit_per_minute)
        self.client = client or GeminiAnalysisClient(
            config, rate_limiter=self.rate_limiter, operation_log=self.operation_log
        )
        self.error_handler = error_handler or AIErrorHandler(
            CircuitBreaker(
                failure_threshold=config.circuit_breaker_threshold,
                retry_after_ms=config.circuit_breaker_timeout_ms,
                window_ms=config.circuit_breaker_window_ms,
            )
        )
        self.cache = cache or AnalysisCache(max_entries=config.cache_max_entries)
        self.fallback = fallback_provider or FallbackDataProvider()

        self._initialized = False
        self._ai_ready = False
        self._fallback_enabled = True
        self._cache_results = True

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self, options: AIServiceOptions | None = None) -> None:
        """
        Prepare the remote client.

        With AI disabled the service comes up in fallback-only mode and needs
        no credentials.

        Raises:
            AIServiceError: ``INITIALIZATION_ERROR`` when the client cannot be
                initialized and ``options.enable_fallback`` is False
        """
        opts = options or AIServiceOptions()
        self._fallback_enabled = opts.enable_fallback
        self._cache_results = opts.cache_results
        if opts.max_retries is not None:
            self.client.retry_attempts = opts.max_retries

        if not self.config.enabled:
            self._ai_ready = False
            self._initialized = True
            logger.info("ai_service_initialized", mode="fallback_only", reason="ai_disabled")
            return

        try:
            await self.client.initialize()
            self._ai_ready = True
        except Exception as e:
            self._ai_ready = False
            self.operation_log.error("AI Service Initialization", e)
            if not self._fallback_enabled:
                if isinstance(e, AIServiceError) and e.code == ErrorCode.INITIALIZATION_ERROR:
                    raise
                raise AIServiceError(
                    f"Failed to initialize AI service: {e}", ErrorCode.INITIALIZATION_ERROR
                ) from e
            logger.warning("ai_service_init_degraded", error=str(e), mode="fallback_only")

        self._initialized = True
        logger.info(
            "ai_service_initialized",
            mode="remote" if self._ai_ready else "fallback_only",
            fallback_enabled=self._fallback_enabled,
            cache_results=self._cache_results,
        )

    # Analysis operations

    async def analyze_fraud_risk(self, payload: Any, context: AnalysisContext | None = None) -> FraudAnalysis:
        return await self._run_analysis(
            AnalysisDomain.FRAUD,
            payload,
            context,
            "Fraud Risk Analysis",
            lambda: self.fallback.generate_fraud_analysis(payload),
        )

    async def enhance_credit_scoring(
        self, payload: Any, context: AnalysisContext | None = None
    ) -> CreditEnhancement:
        return await self._run_analysis(
            AnalysisDomain.CREDIT,
            payload,
            context,
            "Credit Scoring Enhancement",
            lambda: self.fallback.generate_credit_enhancement(payload),
        )

    async def analyze_security_pattern(
        self, payload: Any, context: AnalysisContext | None = None
    ) -> SecurityAssessment:
        return await self._run_analysis(
            AnalysisDomain.SECURITY,
            payload,
            context,
            "Security Pattern Analysis",
            lambda: self.fallback.generate_security_assessment(payload),
        )

    async def generate_insights(
        self, payload: Any, analysis_context: str = "general", context: AnalysisContext | None = None
    ) -> GeneralInsight:
        return await self._run_analysis(
            AnalysisDomain.GENERAL,
            payload,
            context,
            f"General Insights - {analysis_context}",
            lambda: self.fallback.generate_general_insights(payload, analysis_context),
        )

    async def _run_analysis(
        self,
        domain: AnalysisDomain,
        payload: Any,
        context: AnalysisContext | None,
        operation: str,
        fallback_fn: Callable[[], T],
    ) -> T:
        request = AnalysisRequest(payload=payload, domain=domain, context=context)
        end = self.operation_log.start_operation(operation, context)
        try:
            return await self._analysis_pipeline(request, fallback_fn)
        finally:
            end()

    async def _analysis_pipeline(self, request: AnalysisRequest, fallback_fn: Callable[[], T]) -> T:
        domain, context = request.domain, request.context

        if not self._initialized:
            try:
                await self.initialize()
            except Exception as e:
                self.operation_log.error(f"AI analysis failed for {domain.value}", e, context)
                return self.error_handler.handle_error(e, fallback_fn, ErrorHandlingOptions(record_failure=False))

        cache_key: str | None = None
        if self._cache_results:
            try:
                cache_key = make_cache_key(domain, request.payload)
            except Exception as e:
                # uncacheable payload: analyze it, just skip the cache
                logger.warning("analysis_cache_key_failed", domain=domain.value, error=str(e))
        if cache_key is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                self.operation_log.debug("Using cached AI analysis result", context)
                return cached

        if not self._ai_ready:
            return fallback_fn()

        try:
            if not self.error_handler.allow_request():
                status = self.error_handler.get_circuit_breaker_status()
                raise CircuitOpenError(status.time_until_retry_ms or 0)
            try:
                raw = await self.client.analyze_with_context(request.payload, domain, context)
            except asyncio.CancelledError:
                self.error_handler.release_request()
                raise
        except Exception as e:
            self.operation_log.error(f"AI analysis failed for {domain.value}", e, context)
            return self.error_handler.handle_error(
                e, fallback_fn, ErrorHandlingOptions(fallback_notice=self.fallback.fallback_notice(domain))
            )

        self.error_handler.record_success()

        try:
            result = parse_assessment(domain, raw)
        except Exception as e:
            self.operation_log.error(f"Failed to transform AI result to {domain.value} analysis", e, context)
            return self.error_handler.handle_error(e, fallback_fn, ErrorHandlingOptions(record_failure=False))

        if cache_key is not None:
            self.cache.put(cache_key, result)
        return result

    # Status and maintenance

    def get_status(self) -> ServiceStatus:
        client_status = self.client.get_status()
        return ServiceStatus(
            initialized=self._initialized,
            ai_available=bool(
                self._ai_ready
                and client_status.get("healthy")
                and not self.error_handler.get_circuit_breaker_status().is_open
            ),
            fallback_enabled=self._fallback_enabled,
            cache_size=len(self.cache),
        )

    def clear_cache(self) -> None:
        self.cache.clear()
        self.operation_log.info("AI Service cache cleared")

    def get_rate_limit_status(self, key: str = DEFAULT_KEY) -> RateLimitStatus:
        return self.rate_limiter.get_rate_limit_status(key)

    def get_circuit_breaker_status(self) -> CircuitBreakerStatus:
        return self.error_handler.get_circuit_breaker_status()

    def reset_circuit_breaker(self) -> None:
        self.error_handler.reset_circuit_breaker()
        self.operation_log.info("Circuit breaker manually reset")

    def get_performance_metrics(self) -> PerformanceMetrics:
        return self.operation_log.get_performance_metrics()

    async def test_service(self) -> ServiceTestResult:
        """
        Run one minimal insight generation outside the cache and the breaker.

        Remote failures are reported as ``success=False`` with the reason
        rather than masked by the fallback provider.
        """
        test_data = {"test": True, "timestamp": utc_now().isoformat()}
        try:
            if not self._initialized:
                await self.initialize()

            if not self._ai_ready:
                insight = self.fallback.generate_general_insights(test_data, "service-test")
                mode = "fallback"
            else:
                raw = await self.client.analyze_with_context(
                    test_data, AnalysisDomain.GENERAL, AnalysisContext(priority=Priority.LOW)
                )
                insight = parse_assessment(AnalysisDomain.GENERAL, raw)
                mode = "remote"
        except Exception as e:
            logger.warning("ai_service_test_failed", error=str(e))
            return ServiceTestResult(success=False, message=f"AI Service test failed: {e}")

        return ServiceTestResult(
            success=True,
            message="AI Service test completed successfully",
            details={
                "mode": mode,
                "confidence": insight.confidence,
                "hasRecommendations": len(insight.recommendations) > 0,
                "riskLevel": insight.risk_level.value,
            },
        )
