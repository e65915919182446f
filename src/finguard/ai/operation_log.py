"""
AI Operation Log

Append-only, bounded record of AI operation events (start / completion /
failure) from which performance metrics are derived. Every entry is also
forwarded to structlog, so the buffer is a queryable mirror of the log stream
rather than a replacement for it.
"""

import threading
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, TypeVar

from finguard.shared.infrastructure.logging import get_logger

from .types import AnalysisContext

logger = get_logger(__name__)

T = TypeVar("T")

LOG_LEVELS = ("debug", "info", "warn", "error")


@dataclass(frozen=True)
class LogEntry:
    """Single operation event. Never mutated after append."""

    level: str
    operation: str
    context: AnalysisContext | None = None
    duration_ms: int | None = None
    error: str | None = None
    metadata: dict[str, Any] | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "operation": self.operation,
            "context": self.context.to_dict() if self.context else None,
            "durationMs": self.duration_ms,
            "error": self.error,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class PerformanceMetrics:
    average_response_time: int
    total_operations: int
    error_rate: float  # percent
    operation_counts: dict[str, int]

    def to_dict(self) -> dict:
        return {
            "averageResponseTime": self.average_response_time,
            "totalOperations": self.total_operations,
            "errorRate": self.error_rate,
            "operationCounts": dict(self.operation_counts),
        }


class OperationLog:
    """
    Ring buffer of ``LogEntry`` records (oldest silently dropped past ``max_entries``).

    Usage:
        log = OperationLog()
        end = log.start_operation("Fraud Risk Analysis", context)
        try:
            ...
        finally:
            end()
    """

    def __init__(self, max_entries: int = 1000, forward_to_structlog: bool = True) -> None:
        self.max_entries = max_entries
        self.forward_to_structlog = forward_to_structlog
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def info(self, operation: str, context: AnalysisContext | None = None, metadata: dict | None = None) -> None:
        self._append("info", operation, context, metadata=metadata)

    def warn(self, operation: str, context: AnalysisContext | None = None, metadata: dict | None = None) -> None:
        self._append("warn", operation, context, metadata=metadata)

    def debug(self, operation: str, context: AnalysisContext | None = None, metadata: dict | None = None) -> None:
        self._append("debug", operation, context, metadata=metadata)

    def error(
        self,
        operation: str,
        error: BaseException,
        context: AnalysisContext | None = None,
        metadata: dict | None = None,
        duration_ms: int | None = None,
    ) -> None:
        self._append("error", operation, context, duration_ms=duration_ms, error=str(error), metadata=metadata)

    def start_operation(self, operation: str, context: AnalysisContext | None = None) -> Callable[[], None]:
        """Record the start of ``operation`` and return a callable that records completion."""
        started = time.monotonic()
        self.info(f"{operation} - Started", context)

        def end() -> None:
            duration_ms = int((time.monotonic() - started) * 1000)
            self._append("info", f"{operation} - Completed", context, duration_ms=duration_ms)

        return end

    async def log_operation(
        self,
        operation: str,
        coro_factory: Callable[[], Awaitable[T]],
        context: AnalysisContext | None = None,
    ) -> T:
        """Await ``coro_factory()`` with timing; failures are recorded and re-raised."""
        started = time.monotonic()
        self.info(f"{operation} - Started", context)
        try:
            result = await coro_factory()
        except Exception as e:
            duration_ms = int((time.monotonic() - started) * 1000)
            self.error(f"{operation} - Failed", e, context, duration_ms=duration_ms)
            raise
        duration_ms = int((time.monotonic() - started) * 1000)
        self._append("info", f"{operation} - Completed", context, duration_ms=duration_ms)
        return result

    def _append(
        self,
        level: str,
        operation: str,
        context: AnalysisContext | None,
        duration_ms: int | None = None,
        error: str | None = None,
        metadata: dict | None = None,
    ) -> None:
        entry = LogEntry(
            level=level,
            operation=operation,
            context=context,
            duration_ms=duration_ms,
            error=error,
            metadata=dict(metadata) if metadata else None,
        )
        with self._lock:
            self._entries.append(entry)

        if self.forward_to_structlog:
            log_method = getattr(logger, "warning" if level == "warn" else level, logger.info)
            log_method(
                "ai_operation",
                operation=operation,
                duration_ms=duration_ms,
                error=error,
                user_id=context.user_id if context else None,
                metadata=metadata,
            )

    def _snapshot(self) -> list[LogEntry]:
        with self._lock:
            return list(self._entries)

    def get_recent_logs(self, count: int = 50) -> list[LogEntry]:
        entries = self._snapshot()
        return entries[-count:] if count > 0 else []

    def get_logs_by_level(self, level: str) -> list[LogEntry]:
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {level}")
        return [entry for entry in self._snapshot() if entry.level == level]

    def get_error_logs(self, since: timedelta | None = None) -> list[LogEntry]:
        errors = self.get_logs_by_level("error")
        if since is None:
            return errors
        cutoff = datetime.now(timezone.utc) - since
        return [entry for entry in errors if entry.timestamp >= cutoff]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def get_performance_metrics(self) -> PerformanceMetrics:
        """Average latency, error rate (% of timed operations) and per-operation counts."""
        entries = self._snapshot()

        timed = [entry for entry in entries if entry.duration_ms is not None]
        total_operations = len(timed)
        error_count = sum(1 for entry in entries if entry.level == "error")

        average = sum(entry.duration_ms for entry in timed) / total_operations if total_operations else 0
        error_rate = (error_count / total_operations) * 100 if total_operations else 0.0

        operation_counts: dict[str, int] = {}
        for entry in entries:
            name = entry.operation.split(" - ")[0]
            operation_counts[name] = operation_counts.get(name, 0) + 1

        return PerformanceMetrics(
            average_response_time=round(average),
            total_operations=total_operations,
            error_rate=round(error_rate, 2),
            operation_counts=operation_counts,
        )
