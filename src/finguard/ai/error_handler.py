"""
AI Error Handler

Turns any failure on the remote analysis path into a usable result: the error
is classified, recorded against the circuit breaker, surfaced to dashboard
listeners as a notification, and answered with the fallback result.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import TypeVar

from finguard.shared.infrastructure.logging import get_logger

from .circuit_breaker import CircuitBreaker, CircuitBreakerStatus, CircuitState
from .errors import classify_error

logger = get_logger(__name__)

T = TypeVar("T")

NotificationListener = Callable[[list["ErrorNotification"]], None]


@dataclass
class ErrorHandlingOptions:
    fallback_enabled: bool = True
    notify_user: bool = True
    record_failure: bool = True
    # {title, message, type} shown instead of the generic error notice
    fallback_notice: dict[str, str] | None = None


@dataclass(frozen=True)
class ErrorNotification:
    type: str  # error | warning | info
    title: str
    message: str
    retryable: bool
    id: str = field(default_factory=lambda: f"notification_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    dismissed: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "dismissed": self.dismissed,
            "retryable": self.retryable,
        }


class AIErrorHandler:
    """Failure policy around the remote call path.

    Owns the circuit breaker; the orchestrator asks it whether a remote call
    may proceed and reports every outcome back to it.
    """

    def __init__(self, circuit_breaker: CircuitBreaker | None = None, max_notifications: int = 10) -> None:
        self.circuit_breaker = circuit_breaker or CircuitBreaker()
        self.max_notifications = max_notifications
        self._notifications: list[ErrorNotification] = []
        self._listeners: list[NotificationListener] = []
        self._lock = threading.Lock()

    def allow_request(self) -> bool:
        return self.circuit_breaker.allow_request()

    def release_request(self) -> None:
        """Give back an admitted call that ended without an outcome."""
        self.circuit_breaker.release_slot()

    def record_success(self) -> None:
        if self.circuit_breaker.record_success():
            self._add_notification(
                ErrorNotification(
                    type="info",
                    title="AI Service Restored",
                    message="AI service is back online and functioning normally.",
                    retryable=False,
                )
            )

    def handle_error(
        self,
        error: BaseException,
        fallback_fn: Callable[[], T],
        options: ErrorHandlingOptions | None = None,
    ) -> T:
        """
        Record ``error`` and answer with ``fallback_fn()``.

        Args:
            error: The failure raised on the remote path
            fallback_fn: Produces the substitute result; must not raise
            options: Fallback / notification / breaker-accounting switches

        Returns:
            The fallback result

        Raises:
            The original error when ``fallback_enabled`` is False
        """
        opts = options or ErrorHandlingOptions()
        analysis = classify_error(error)

        was_open = self.circuit_breaker.state == CircuitState.OPEN
        counted = self.circuit_breaker.record_failure(error) if opts.record_failure else False
        now_open = self.circuit_breaker.state == CircuitState.OPEN

        logger.warning(
            "ai_error_handled",
            error=str(error),
            error_type=type(error).__name__,
            category=analysis.category,
            severity=analysis.severity,
            counted_failure=counted,
            circuit_open=now_open,
            fallback_enabled=opts.fallback_enabled,
        )

        if not opts.fallback_enabled:
            raise error

        if opts.notify_user:
            if now_open and not was_open:
                notification = ErrorNotification(
                    type="warning",
                    title="AI Service Temporarily Unavailable",
                    message="AI service is temporarily disabled due to repeated failures. Using fallback mode.",
                    retryable=True,
                )
            elif opts.fallback_notice:
                notification = ErrorNotification(
                    type=opts.fallback_notice.get("type", "info"),
                    title=opts.fallback_notice["title"],
                    message=opts.fallback_notice["message"],
                    retryable=analysis.recoverable,
                )
            else:
                notification = ErrorNotification(
                    type="warning",
                    title="AI Service Error",
                    message=f"AI analysis failed ({analysis.category}). Using fallback analysis instead.",
                    retryable=analysis.recoverable,
                )
            self._add_notification(notification)

        try:
            return fallback_fn()
        except Exception as fallback_err:
            logger.error(
                "ai_fallback_failed",
                original_error=str(error),
                fallback_error=str(fallback_err),
            )
            raise

    def get_circuit_breaker_status(self) -> CircuitBreakerStatus:
        return self.circuit_breaker.get_status()

    def reset_circuit_breaker(self) -> None:
        self.circuit_breaker.reset()
        self._add_notification(
            ErrorNotification(
                type="info",
                title="Circuit Breaker Reset",
                message="AI service circuit breaker has been manually reset.",
                retryable=False,
            )
        )

    # Notifications

    def _add_notification(self, notification: ErrorNotification) -> None:
        with self._lock:
            self._notifications.insert(0, notification)
            del self._notifications[self.max_notifications :]
        self._notify_listeners()

    def _notify_listeners(self) -> None:
        with self._lock:
            snapshot = list(self._notifications)
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(list(snapshot))
            except Exception as e:
                logger.error("notification_listener_failed", error=str(e))

    def subscribe(self, listener: NotificationListener) -> Callable[[], None]:
        """Register ``listener``; it is called immediately and on every change.

        Returns:
            A function that unsubscribes the listener
        """
        with self._lock:
            self._listeners.append(listener)
            snapshot = list(self._notifications)
        listener(snapshot)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def dismiss(self, notification_id: str) -> bool:
        with self._lock:
            for index, notification in enumerate(self._notifications):
                if notification.id == notification_id:
                    self._notifications[index] = replace(notification, dismissed=True)
                    break
            else:
                return False
        self._notify_listeners()
        return True

    def clear_notifications(self) -> None:
        with self._lock:
            self._notifications.clear()
        self._notify_listeners()

    def get_notifications(self) -> list[ErrorNotification]:
        with self._lock:
            return list(self._notifications)

    def get_active_notifications(self) -> list[ErrorNotification]:
        return [n for n in self.get_notifications() if not n.dismissed]
