"""
Circuit breaker for the remote analysis path.

Stops calling a failing model endpoint until a cool-down elapses, so analysis
requests resolve immediately through the fallback provider instead of waiting
out one timeout after another.

States:
    CLOSED    - Remote calls flow normally.
    OPEN      - Failure threshold reached inside the trailing window; calls are
                short-circuited.
    HALF_OPEN - ``retry_after_ms`` has elapsed since opening; one trial call is
                admitted. Success closes the circuit, failure re-opens it with a
                doubled cool-down (capped at ``max_backoff_multiplier``).

Usage:
    breaker = CircuitBreaker()
    if not breaker.allow_request():
        use fallback
    try:
        response = await client.analyze(...)
        breaker.record_success()
    except Exception as e:
        breaker.record_failure(e)
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from finguard.shared.infrastructure.logging import get_logger

from .errors import CircuitOpenError, RateLimitError, ValidationError

logger = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass(frozen=True)
class CircuitBreakerStatus:
    """Read-only snapshot. ``is_open`` is True exactly when ``state`` is OPEN."""

    is_open: bool
    state: CircuitState
    failures: int
    time_until_retry_ms: int | None
    retry_after_ms: int
    opened_at: float | None

    def to_dict(self) -> dict:
        return {
            "isOpen": self.is_open,
            "state": self.state.value,
            "failures": self.failures,
            "timeUntilRetry": self.time_until_retry_ms,
            "retryAfterMs": self.retry_after_ms,
            "openedAt": self.opened_at,
        }


class CircuitBreaker:
    """Enumerated-state circuit breaker.

    Parameters:
        failure_threshold: Failures inside ``window_ms`` that open the circuit.
        retry_after_ms: Base open duration before a half-open trial call.
        window_ms: Trailing window in which failures are counted.
        max_backoff_multiplier: Cap on the doubling of ``retry_after_ms``
            after failed trial calls.
        excluded_exceptions: Errors that never count as remote failures.
        clock: Returns epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        retry_after_ms: int = 60000,
        window_ms: int = 60000,
        max_backoff_multiplier: int = 8,
        excluded_exceptions: tuple[type[BaseException], ...] = (ValidationError, RateLimitError, CircuitOpenError),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.base_retry_after_ms = retry_after_ms
        self.window_ms = window_ms
        self.max_backoff_multiplier = max_backoff_multiplier
        self.excluded_exceptions = excluded_exceptions
        self._clock = clock
        self._lock = threading.RLock()
        self._reset_state()

    def _reset_state(self) -> None:
        self._state = CircuitState.CLOSED
        self._failure_times: deque[float] = deque()
        self._opened_at: float | None = None
        self._retry_after_ms = self.base_retry_after_ms
        self._trial_in_flight = False

    def _prune_failures(self, now: float) -> None:
        cutoff = now - self.window_ms / 1000.0
        while self._failure_times and self._failure_times[0] < cutoff:
            self._failure_times.popleft()

    def _transition_to(self, new_state: CircuitState) -> None:
        old_state = self._state
        self._state = new_state
        now = self._clock()
        if new_state == CircuitState.OPEN:
            self._opened_at = now
            self._trial_in_flight = False
        elif new_state == CircuitState.HALF_OPEN:
            self._trial_in_flight = False
        elif new_state == CircuitState.CLOSED:
            self._failure_times.clear()
            self._opened_at = None
            self._retry_after_ms = self.base_retry_after_ms
            self._trial_in_flight = False
        logger.info(
            "circuit_state_change",
            from_state=old_state.value,
            to_state=new_state.value,
            failures=len(self._failure_times),
            retry_after_ms=self._retry_after_ms,
        )

    def _maybe_transition_to_half_open(self) -> None:
        if self._state != CircuitState.OPEN or self._opened_at is None:
            return
        elapsed_ms = (self._clock() - self._opened_at) * 1000
        if elapsed_ms >= self._retry_after_ms:
            self._transition_to(CircuitState.HALF_OPEN)

    @property
    def state(self) -> CircuitState:
        """Current state, applying the time-based OPEN -> HALF_OPEN transition."""
        with self._lock:
            self._maybe_transition_to_half_open()
            return self._state

    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def allow_request(self) -> bool:
        """Whether a remote call may proceed now.

        In HALF_OPEN only one trial call is admitted until its outcome is recorded.
        """
        with self._lock:
            self._maybe_transition_to_half_open()
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.HALF_OPEN and not self._trial_in_flight:
                self._trial_in_flight = True
                return True
            return False

    def release_slot(self) -> None:
        """Free the half-open slot without recording an outcome, e.g. when the call was cancelled."""
        with self._lock:
            if self._trial_in_flight:
                self._trial_in_flight = False
                logger.debug("circuit_slot_released", state=self._state.value)

    def time_until_retry_ms(self) -> int | None:
        with self._lock:
            self._maybe_transition_to_half_open()
            if self._state != CircuitState.OPEN or self._opened_at is None:
                return None
            elapsed_ms = (self._clock() - self._opened_at) * 1000
            return max(0, int(self._retry_after_ms - elapsed_ms))

    def record_success(self) -> bool:
        """Record a successful remote call. Returns True if this closed a half-open circuit."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._transition_to(CircuitState.CLOSED)
                return True
            if self._state == CircuitState.CLOSED:
                self._failure_times.clear()
            return False

    def record_failure(self, error: BaseException | None = None) -> bool:
        """Record a failed remote call.

        Returns False when ``error`` is excluded and therefore not counted.
        In CLOSED: opens the circuit when the windowed count reaches the threshold.
        In HALF_OPEN: the trial call failed, re-open with doubled cool-down.
        """
        with self._lock:
            if error is not None and isinstance(error, self.excluded_exceptions):
                self._trial_in_flight = False
                return False

            now = self._clock()
            self._failure_times.append(now)
            self._prune_failures(now)

            if self._state == CircuitState.HALF_OPEN:
                self._retry_after_ms = min(
                    self._retry_after_ms * 2,
                    self.base_retry_after_ms * self.max_backoff_multiplier,
                )
                self._transition_to(CircuitState.OPEN)
                logger.warning("circuit_reopened", retry_after_ms=self._retry_after_ms)
            elif self._state == CircuitState.CLOSED and len(self._failure_times) >= self.failure_threshold:
                self._transition_to(CircuitState.OPEN)
                logger.warning(
                    "circuit_opened",
                    failure_count=len(self._failure_times),
                    retry_after_ms=self._retry_after_ms,
                )
            return True

    def reset(self) -> None:
        """Operator override: force CLOSED with a zero failure count."""
        with self._lock:
            self._reset_state()
        logger.info("circuit_reset", message="Circuit manually reset to closed")

    def get_status(self) -> CircuitBreakerStatus:
        with self._lock:
            time_until_retry = self.time_until_retry_ms()
            if self._state == CircuitState.CLOSED:
                self._prune_failures(self._clock())
            return CircuitBreakerStatus(
                is_open=self._state == CircuitState.OPEN,
                state=self._state,
                failures=len(self._failure_times),
                time_until_retry_ms=time_until_retry,
                retry_after_ms=self._retry_after_ms,
                opened_at=self._opened_at,
            )
