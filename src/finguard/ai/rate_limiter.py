"""
Fixed-window rate limiter for remote model calls.

Each key (typically a user id) owns one window of ``window_ms``. A check inside
an expired window starts a new one; a check at the limit fails fast with the
time remaining in the current window instead of sleeping.
"""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from finguard.shared.infrastructure.logging import get_logger

from .errors import RateLimitError

logger = get_logger(__name__)

DEFAULT_KEY = "default"
# Tracked keys above which expired windows are swept, at most once per window
SWEEP_THRESHOLD = 1000


@dataclass
class RateLimitWindow:
    window_start: float  # epoch seconds
    count: int
    limit: int


@dataclass(frozen=True)
class RateLimitStatus:
    requests: int
    limit: int
    remaining: int
    reset_at: datetime

    def to_dict(self) -> dict:
        return {
            "requests": self.requests,
            "limit": self.limit,
            "remaining": self.remaining,
            "resetAt": self.reset_at.isoformat(),
        }


class RateLimiter:
    """
    Fixed-window request limiter.

    Parameters:
        max_requests: Requests allowed per window.
        window_ms: Window length in milliseconds.
        clock: Returns epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        max_requests: int = 60,
        window_ms: int = 60000,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    @property
    def _window_seconds(self) -> float:
        return self.window_ms / 1000.0

    def _is_expired(self, window: RateLimitWindow, now: float) -> bool:
        return now >= window.window_start + self._window_seconds

    def _drop_expired(self, now: float) -> int:
        expired = [key for key, window in self._windows.items() if self._is_expired(window, now)]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def check_rate_limit(self, key: str = DEFAULT_KEY) -> None:
        """
        Count one request against ``key``.

        Raises:
            RateLimitError: the window is exhausted; ``retry_after_ms`` is the
                time until the window resets (always > 0).
        """
        with self._lock:
            now = self._clock()
            if len(self._windows) >= SWEEP_THRESHOLD and now - self._last_sweep >= self._window_seconds:
                self._drop_expired(now)
                self._last_sweep = now
            window = self._windows.get(key)
            if window is None or self._is_expired(window, now):
                window = RateLimitWindow(window_start=now, count=0, limit=self.max_requests)
                self._windows[key] = window

            if window.count >= window.limit:
                remaining_s = window.window_start + self._window_seconds - now
                retry_after_ms = max(1, int(remaining_s * 1000))
                logger.warning(
                    "rate_limit_exceeded",
                    key=key,
                    count=window.count,
                    limit=window.limit,
                    retry_after_ms=retry_after_ms,
                )
                raise RateLimitError(
                    f"Rate limit exceeded. {window.count}/{window.limit} requests "
                    f"in the current {self.window_ms}ms window",
                    retry_after_ms=retry_after_ms,
                )

            window.count += 1

    def get_rate_limit_status(self, key: str = DEFAULT_KEY) -> RateLimitStatus:
        """Current usage for ``key``. Pure read: an expired window is reported, not reset."""
        with self._lock:
            now = self._clock()
            window = self._windows.get(key)
            if window is None or self._is_expired(window, now):
                return RateLimitStatus(
                    requests=0,
                    limit=self.max_requests,
                    remaining=self.max_requests,
                    reset_at=datetime.fromtimestamp(now + self._window_seconds, tz=timezone.utc),
                )
            return RateLimitStatus(
                requests=window.count,
                limit=window.limit,
                remaining=max(0, window.limit - window.count),
                reset_at=datetime.fromtimestamp(window.window_start + self._window_seconds, tz=timezone.utc),
            )

    def reset(self, key: str = DEFAULT_KEY) -> None:
        with self._lock:
            self._windows.pop(key, None)

    def reset_all(self) -> None:
        with self._lock:
            self._windows.clear()

    def cleanup(self) -> int:
        """Drop expired windows. Returns the number removed."""
        with self._lock:
            removed = self._drop_expired(self._clock())
        if removed:
            logger.debug("rate_limit_windows_cleaned", removed=removed)
        return removed

    def get_stats(self) -> dict:
        with self._lock:
            total_keys = len(self._windows)
            total_requests = sum(window.count for window in self._windows.values())
        return {
            "totalKeys": total_keys,
            "totalRequests": total_requests,
            "averageRequestsPerKey": total_requests / total_keys if total_keys else 0,
        }
