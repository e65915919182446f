"""Shared test fixtures for the FinGuard test suite."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from finguard.ai.client import GeminiAnalysisClient
from finguard.ai.config import AIConfig
from finguard.ai.operation_log import OperationLog
from finguard.ai.rate_limiter import RateLimiter
from finguard.ai.service import AIService
from finguard.ai.types import RawModelResponse

TEST_API_KEY = "test-api-key-1234567890"


class FakeClock:
    """Manually advanced epoch clock (seconds)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def advance_ms(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000.0


def gemini_body(text: str, prompt_tokens: int = 12, completion_tokens: int = 34) -> dict:
    """A generateContent response body carrying ``text``."""
    return {
        "candidates": [{"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}],
        "usageMetadata": {
            "promptTokenCount": prompt_tokens,
            "candidatesTokenCount": completion_tokens,
            "totalTokenCount": prompt_tokens + completion_tokens,
        },
    }


def raw_response(text: str, confidence: float = 85.0) -> RawModelResponse:
    return RawModelResponse(text=text, confidence_hint=confidence, latency_ms=120)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ai_config():
    """Remote-enabled configuration with instant retries."""
    return AIConfig(api_key=TEST_API_KEY, retry_attempts=2, retry_initial_delay=0.0)


@pytest.fixture
def operation_log():
    return OperationLog(max_entries=1000)


@pytest.fixture
def rate_limiter():
    return RateLimiter(max_requests=60)


@pytest.fixture
def mock_client():
    """Remote client double; ``analyze_with_context`` returns a low-risk fraud text."""
    client = MagicMock(spec=GeminiAnalysisClient)
    client.initialize = AsyncMock(return_value=None)
    client.analyze_with_context = AsyncMock(
        return_value=raw_response("Fraud probability: 15%\nRisk level: low\nRecommendations: Continue monitoring")
    )
    client.get_status = MagicMock(return_value={"initialized": True, "healthy": True, "lastError": None})
    return client


@pytest.fixture
def service(ai_config, mock_client, operation_log):
    return AIService(ai_config, client=mock_client, operation_log=operation_log)
