"""
AI Status Monitor

Background asyncio task that periodically derives an availability flag from
rate-limit headroom and recent errors in the operation log. Each check also
drops expired rate-limit windows. It reads shared
state without coordinating with in-flight analysis calls, so its snapshot may
lag slightly behind.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from finguard.shared.infrastructure.logging import get_logger

from .operation_log import OperationLog
from .rate_limiter import DEFAULT_KEY, RateLimiter

logger = get_logger(__name__)

ERROR_WINDOW = timedelta(minutes=5)
MAX_RECENT_ERRORS = 5
MAX_HEALTHY_ERROR_RATE = 50
MAX_HEALTHY_RESPONSE_MS = 10000


@dataclass(frozen=True)
class AIServiceStatus:
    available: bool
    rate_limit_remaining: int
    error_count: int
    last_check: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "available": self.available,
            "lastCheck": self.last_check.isoformat(),
            "rateLimitRemaining": self.rate_limit_remaining,
            "errorCount": self.error_count,
        }


class AIStatusMonitor:
    """
    Periodic availability check.

    Usage:
        monitor = AIStatusMonitor(rate_limiter, operation_log)
        monitor.start_monitoring()      # inside a running event loop
        ...
        await monitor.stop_monitoring()
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        operation_log: OperationLog,
        interval_ms: int = 30000,
        rate_limit_key: str = DEFAULT_KEY,
    ) -> None:
        self.rate_limiter = rate_limiter
        self.operation_log = operation_log
        self.interval_ms = interval_ms
        self.rate_limit_key = rate_limit_key
        self._status = AIServiceStatus(available=False, rate_limit_remaining=0, error_count=0)
        self._task: asyncio.Task | None = None

    @property
    def is_monitoring(self) -> bool:
        return self._task is not None and not self._task.done()

    def start_monitoring(self) -> None:
        """Run an initial check and schedule periodic ones. No-op if already running."""
        if self.is_monitoring:
            return
        self.check_status()
        self._task = asyncio.create_task(self._monitor_loop_async())
        logger.info("ai_status_monitor_started", interval_ms=self.interval_ms)

    async def stop_monitoring(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("ai_status_monitor_stopped")

    async def _monitor_loop_async(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000.0)
            self.check_status()

    def check_status(self) -> AIServiceStatus:
        try:
            self.rate_limiter.cleanup()
            remaining = self.rate_limiter.get_rate_limit_status(self.rate_limit_key).remaining
            recent_errors = len(self.operation_log.get_error_logs(since=ERROR_WINDOW))
            self._status = AIServiceStatus(
                available=recent_errors < MAX_RECENT_ERRORS and remaining > 0,
                rate_limit_remaining=remaining,
                error_count=recent_errors,
            )
            logger.debug(
                "ai_status_check",
                available=self._status.available,
                rate_limit_remaining=remaining,
                error_count=recent_errors,
            )
        except Exception as e:
            logger.error("ai_status_check_failed", error=str(e))
            self._status = AIServiceStatus(
                available=False,
                rate_limit_remaining=0,
                error_count=self._status.error_count + 1,
            )
        return self._status

    async def force_update(self) -> AIServiceStatus:
        return self.check_status()

    def get_status(self) -> AIServiceStatus:
        return self._status

    def get_health_metrics(self) -> dict:
        performance = self.operation_log.get_performance_metrics()
        total_logs = len(self.operation_log)
        error_logs = len(self.operation_log.get_error_logs())
        return {
            "uptime": 100 if self._status.available else 0,
            "availability": ((total_logs - error_logs) / total_logs) * 100 if total_logs else 100.0,
            "averageResponseTime": performance.average_response_time,
            "errorRate": performance.error_rate,
        }

    def is_healthy(self) -> bool:
        metrics = self.get_health_metrics()
        return (
            self._status.available
            and metrics["errorRate"] < MAX_HEALTHY_ERROR_RATE
            and metrics["averageResponseTime"] < MAX_HEALTHY_RESPONSE_MS
            and self._status.rate_limit_remaining > 0
        )
