"""
Resilience Patterns for FinGuard.

Provides common fault-tolerance patterns:
- Timeout
- Retry
"""

from .retry import RetryConfig, with_retry_async
from .timeout import OperationTimeoutError, with_timeout_async

__all__ = [
    "OperationTimeoutError",
    "with_timeout_async",
    "RetryConfig",
    "with_retry_async",
]
