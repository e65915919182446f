"""Retry Resilience Pattern."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from finguard.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    ``max_attempts`` counts the first call, so ``max_attempts=1`` means no retry.
    """

    max_attempts: int = 3
    initial_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple = (Exception,)
    non_retryable_exceptions: tuple = ()


async def with_retry_async(
    coro_factory: Callable[[], Awaitable[Any]],
    config: RetryConfig | None = None,
    operation_name: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Execute an async operation with retry logic.

    The last error is re-raised unchanged once attempts are exhausted, so
    callers keep their typed exceptions. Errors carrying ``retryable=False``
    are never retried.
    """
    config = config or RetryConfig()
    attempts = max(1, config.max_attempts)

    for attempt in range(1, attempts + 1):
        try:
            return await coro_factory()
        except config.retryable_exceptions as e:
            if (
                isinstance(e, config.non_retryable_exceptions)
                or getattr(e, "retryable", True) is False
                or attempt >= attempts
            ):
                if attempt > 1:
                    logger.error(
                        "retry_exhausted",
                        operation=operation_name,
                        attempt=attempt,
                        error=str(e),
                    )
                raise

            delay = min(
                config.initial_delay * (config.exponential_base ** (attempt - 1)),
                config.max_delay,
            )
            if config.jitter:
                delay = delay * (0.5 + random.random())

            logger.warning(
                "retry_attempt",
                operation=operation_name,
                attempt=attempt,
                max_attempts=attempts,
                delay=f"{delay:.2f}s",
                error=str(e),
            )
            await sleep(delay)
