"""
Gemini Analysis Client

Direct integration with the Google Generative Language API via HTTPX. Turns a
domain-tagged payload into a role prompt, performs the remote call under a
hard timeout with bounded retries, and returns the raw text with a heuristic
confidence score.
"""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from finguard.shared.infrastructure.logging import get_logger
from finguard.shared.infrastructure.resilience import (
    OperationTimeoutError,
    RetryConfig,
    with_retry_async,
    with_timeout_async,
)

from .config import AIConfig
from .errors import AIServiceError, ErrorCode, RateLimitError, ValidationError
from .operation_log import OperationLog
from .prompts import CONNECTION_TEST_PROMPT, build_prompt, role_prompt
from .rate_limiter import DEFAULT_KEY, RateLimiter
from .types import (
    AnalysisContext,
    AnalysisDomain,
    ConnectionTestResult,
    Priority,
    RawModelResponse,
    TokenUsage,
)
from .validation import sanitize_input, validate_generation_params, validate_payload, validate_prompt, validate_response

logger = get_logger(__name__)

ANALYSIS_TEMPERATURE = 0.3
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048

_PERCENTAGE = re.compile(r"\d+(?:\.\d+)?\s*%")
_STRUCTURED_LINE = re.compile(r"^\s*(?:[-*•]|\d+[.)]|[A-Za-z][A-Za-z ]{0,40}:)")


def estimate_confidence(text: str, domain: AnalysisDomain | None = None) -> float:
    """
    Heuristic confidence (0-100) for raw model text.

    Never lower for a longer or more structured response: length adds up to 20
    points, and percentages, an explicit confidence/probability figure and
    three or more structured lines each add a fixed bonus.
    """
    lowered = text.lower()
    confidence = 60.0
    confidence += min(20, len(text) // 50)
    if _PERCENTAGE.search(text):
        confidence += 5
    if "confidence" in lowered or "probability" in lowered:
        confidence += 10
    structured_lines = sum(1 for line in text.splitlines() if _STRUCTURED_LINE.match(line))
    if structured_lines >= 3:
        confidence += 5
    if domain in (AnalysisDomain.FRAUD, AnalysisDomain.SECURITY):
        confidence += 5
    return max(0.0, min(100.0, confidence))


def _retry_after_ms(response: httpx.Response, default: int = 60000) -> int:
    value = response.headers.get("retry-after")
    try:
        return max(1, int(float(value) * 1000)) if value else default
    except ValueError:
        return default


def map_remote_error(error: BaseException) -> AIServiceError:
    """Translate a transport or API failure into the typed error taxonomy."""
    if isinstance(error, AIServiceError):
        return error

    if isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        detail = (error.response.text or "")[:200]
        lowered = detail.lower()
        if status == 429 or "quota" in lowered or "rate limit" in lowered:
            return RateLimitError("Gemini API rate limit exceeded", retry_after_ms=_retry_after_ms(error.response))
        if status in (401, 403) or "api key" in lowered:
            return AIServiceError(
                "Invalid API key or unauthorized access", ErrorCode.AUTH_ERROR, context={"status": status}
            )
        if status >= 500:
            return AIServiceError(
                f"Gemini API error: HTTP {status}",
                ErrorCode.SERVICE_UNAVAILABLE,
                retryable=True,
                context={"status": status, "detail": detail},
            )
        return AIServiceError(
            f"Gemini API error: HTTP {status}: {detail or 'No response body'}",
            ErrorCode.API_ERROR,
            context={"status": status},
        )

    if isinstance(error, (OperationTimeoutError, httpx.TimeoutException, asyncio.TimeoutError)):
        return AIServiceError("Request timeout", ErrorCode.TIMEOUT_ERROR, retryable=True)

    message = str(error).lower()
    if "quota" in message or "rate limit" in message:
        return RateLimitError("Gemini API rate limit exceeded")
    if "invalid" in message or "unauthorized" in message:
        return AIServiceError("Invalid API key or unauthorized access", ErrorCode.AUTH_ERROR)
    if "timeout" in message:
        return AIServiceError("Request timeout", ErrorCode.TIMEOUT_ERROR, retryable=True)

    return AIServiceError(f"Gemini API error: {error}", ErrorCode.API_ERROR, retryable=True)


class GeminiAnalysisClient:
    """
    Google Gemini analysis client (REST API).

    Collaborators are injected so that several isolated clients can coexist;
    ``transport`` accepts an ``httpx`` transport (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        config: AIConfig,
        rate_limiter: RateLimiter | None = None,
        operation_log: OperationLog | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self.rate_limiter = rate_limiter or RateLimiter(max_requests=config.rate_limit_per_minute)
        self.operation_log = operation_log or OperationLog(max_entries=config.log_max_entries)
        self.retry_attempts = config.retry_attempts
        self._transport = transport
        self._sleep = sleep
        self._initialized = False
        self._last_error: str | None = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Validate credentials and configuration.

        Raises:
            AIServiceError: ``INITIALIZATION_ERROR`` when the key is missing or
                the configuration is invalid
        """
        if self._initialized:
            return

        if not self.config.api_key:
            self._last_error = "API key is required but not configured"
            raise AIServiceError(
                "Gemini API key is required",
                ErrorCode.INITIALIZATION_ERROR,
                context={"reason": ErrorCode.MISSING_API_KEY},
            )

        errors = self.config.validate()
        if errors:
            self._last_error = "; ".join(errors)
            raise AIServiceError(
                f"Invalid AI configuration: {self._last_error}",
                ErrorCode.INITIALIZATION_ERROR,
                context={"errors": errors},
            )

        self._initialized = True
        logger.info("gemini_client_initialized", model=self.config.model, config=str(self.config))

    async def analyze_with_context(
        self,
        data: Any,
        domain: AnalysisDomain,
        context: AnalysisContext | None = None,
    ) -> RawModelResponse:
        """Run a role-conditioned analysis of ``data`` for ``domain``."""
        return await self.generate_content(
            role_prompt(domain),
            data=data,
            context=(context or AnalysisContext()).with_analysis_type(domain),
            temperature=ANALYSIS_TEMPERATURE,
        )

    async def generate_content(
        self,
        prompt: str,
        data: Any = None,
        context: AnalysisContext | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> RawModelResponse:
        """
        Send one prompt to the model.

        Raises:
            RateLimitError: Local window exhausted or remote quota error
            ValidationError: Bad prompt, parameters, payload or empty output
            AIServiceError: Authentication failure, timeout or other remote fault
        """
        domain = (context.analysis_type if context else None) or AnalysisDomain.GENERAL
        end = self.operation_log.start_operation(f"Gemini Generate Content - {domain.value}", context)

        try:
            if not self._initialized:
                await self.initialize()

            self.rate_limiter.check_rate_limit((context.user_id if context else None) or DEFAULT_KEY)

            validate_prompt(prompt)
            validate_generation_params(temperature, max_tokens)
            if data is not None:
                data = sanitize_input(data)
                validate_payload(domain, data)

            full_prompt = build_prompt(prompt, context, data)

            retry_config = RetryConfig(
                max_attempts=self.retry_attempts + 1,
                initial_delay=self.config.retry_initial_delay,
                retryable_exceptions=(AIServiceError,),
                non_retryable_exceptions=(RateLimitError, ValidationError),
            )
            body, latency_ms = await with_retry_async(
                lambda: self._call_api(full_prompt, temperature, max_tokens),
                config=retry_config,
                operation_name="gemini_generate_content",
                sleep=self._sleep,
            )

            response = self._process_response(body, latency_ms, domain)
            validate_response(response)

        except Exception as e:
            mapped = map_remote_error(e)
            self._last_error = mapped.message
            if mapped is e:
                raise
            raise mapped from e
        finally:
            end()

        self._last_error = None
        self.operation_log.info(
            "Gemini content generated successfully",
            context,
            metadata={
                "promptLength": len(full_prompt),
                "responseLength": len(response.text),
                "confidence": response.confidence_hint,
            },
        )
        return response

    async def _call_api(
        self, prompt: str, temperature: float | None, max_tokens: int | None
    ) -> tuple[dict, int]:
        url = f"{self.config.base_url}/{self.config.model}:generateContent"
        payload: dict[str, Any] = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature if temperature is not None else DEFAULT_TEMPERATURE,
                "maxOutputTokens": max_tokens or DEFAULT_MAX_TOKENS,
            },
        }
        # API key goes in a header, never the URL
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.config.api_key or ""}
        timeout_seconds = self.config.timeout_ms / 1000.0

        start_time = time.monotonic()
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=timeout_seconds) as client:
                response = await with_timeout_async(
                    client.post(url, json=payload, headers=headers),
                    timeout_seconds,
                    operation_name="gemini_generate_content",
                )
                response.raise_for_status()
                body = response.json()
        except Exception as e:
            raise map_remote_error(e) from e

        return body, int((time.monotonic() - start_time) * 1000)

    def _process_response(self, body: Any, latency_ms: int, domain: AnalysisDomain) -> RawModelResponse:
        if not isinstance(body, dict):
            raise ValidationError("Invalid response from Gemini API")

        # Response: { candidates: [ { content: { parts: [ { text: "..." } ] } } ] }
        text = ""
        candidates = body.get("candidates") or []
        if candidates:
            parts = (candidates[0].get("content") or {}).get("parts") or []
            text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))

        if not text.strip():
            block_reason = (body.get("promptFeedback") or {}).get("blockReason")
            if block_reason:
                raise ValidationError(f"Empty response from Gemini API (blocked: {block_reason})")
            raise ValidationError("Empty response from Gemini API")

        usage = body.get("usageMetadata") or {}
        return RawModelResponse(
            text=text.strip(),
            confidence_hint=estimate_confidence(text, domain),
            latency_ms=latency_ms,
            usage=TokenUsage(
                prompt_tokens=usage.get("promptTokenCount", 0),
                completion_tokens=usage.get("candidatesTokenCount", 0),
                total_tokens=usage.get("totalTokenCount", 0),
            ),
        )

    async def test_connection(self) -> ConnectionTestResult:
        """Minimal round trip. Never raises."""
        started = time.monotonic()
        try:
            response = await self.generate_content(
                CONNECTION_TEST_PROMPT,
                context=AnalysisContext(priority=Priority.LOW, analysis_type=AnalysisDomain.GENERAL),
            )
        except Exception as e:
            return ConnectionTestResult(success=False, message=f"Connection test failed: {e}")

        latency_ms = int((time.monotonic() - started) * 1000)
        if "connection successful" in response.text.lower():
            return ConnectionTestResult(success=True, message="Gemini API connection successful", latency_ms=latency_ms)
        return ConnectionTestResult(success=False, message="Unexpected response from Gemini API", latency_ms=latency_ms)

    def get_status(self) -> dict:
        return {
            "initialized": self._initialized,
            "healthy": self._initialized and bool(self.config.api_key),
            "lastError": self._last_error,
        }

    def reset(self) -> None:
        self._initialized = False
        self._last_error = None
        logger.info("gemini_client_reset")
