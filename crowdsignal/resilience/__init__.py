"""Resilience helpers: retry, bounded fan-out, provider call guards."""

from .config import RetryStrategy, RetryConfig
from .retry import MaxRetriesExceeded, call_with_retry, compute_delay, retry
from .concurrency import (
    CancellationToken,
    PartialResult,
    TaskFailure,
    call_provider,
    gather_bounded,
)

__all__ = [
    # Config
    "RetryStrategy",
    "RetryConfig",
    # Retry
    "MaxRetriesExceeded",
    "call_with_retry",
    "compute_delay",
    "retry",
    # Concurrency
    "CancellationToken",
    "PartialResult",
    "TaskFailure",
    "call_provider",
    "gather_bounded",
]
