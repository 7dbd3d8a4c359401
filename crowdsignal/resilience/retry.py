"""Retry with exponential backoff.

Provider-side throttling is retried within the same cycle; once the
retry budget is exhausted the call fails with MaxRetriesExceeded and the
work is deferred to the next cycle.
"""

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, Optional

from crowdsignal.errors import ProviderUnavailableError, RateLimitExceededError
from crowdsignal.resilience.config import RetryConfig, RetryStrategy

logger = logging.getLogger(__name__)


class MaxRetriesExceeded(ProviderUnavailableError):
    """Raised when all retry attempts have been exhausted."""

    def __init__(self, attempts: int, last_exception: Exception, provider: str = ""):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(
            provider or "provider",
            f"Max retries ({attempts}) exceeded. Last error: {last_exception}",
        )


def compute_delay(attempt: int, config: RetryConfig, exc: Optional[Exception] = None) -> float:
    """Compute the delay for the given zero-based retry attempt.

    A provider's retry_after hint is honored as a lower bound.
    """
    if config.strategy == RetryStrategy.EXPONENTIAL:
        delay = config.base_delay * (2 ** attempt)
    elif config.strategy == RetryStrategy.LINEAR:
        delay = config.base_delay * (attempt + 1)
    else:  # CONSTANT
        delay = config.base_delay

    if config.jitter_max > 0:
        delay += random.uniform(0, config.jitter_max)

    if isinstance(exc, RateLimitExceededError):
        delay = max(delay, exc.retry_after)

    return min(delay, config.max_delay)


async def call_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    config: Optional[RetryConfig] = None,
    provider: str = "",
    **kwargs: Any,
) -> Any:
    """Await func(*args, **kwargs), retrying retryable failures with backoff."""
    cfg = config or RetryConfig()
    last_exc: Optional[Exception] = None
    for attempt in range(cfg.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except cfg.retryable_exceptions as exc:
            last_exc = exc
            if attempt < cfg.max_retries:
                delay = compute_delay(attempt, cfg, exc)
                logger.warning(
                    "Retry %d/%d for %s after %.2fs: %s",
                    attempt + 1,
                    cfg.max_retries,
                    provider or getattr(func, "__name__", "call"),
                    delay,
                    exc,
                )
                await asyncio.sleep(delay)
            else:
                logger.error(
                    "All %d retries exhausted for %s: %s",
                    cfg.max_retries,
                    provider or getattr(func, "__name__", "call"),
                    exc,
                )
    raise MaxRetriesExceeded(cfg.max_retries, last_exc, provider)  # type: ignore[arg-type]


def retry(config: Optional[RetryConfig] = None, provider: str = "") -> Callable:
    """Decorator form of call_with_retry for async functions.

    Usage:
        @retry(RetryConfig(max_retries=2))
        async def search(...):
            ...
    """
    cfg = config or RetryConfig()

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await call_with_retry(
                func, *args, config=cfg, provider=provider or func.__name__, **kwargs
            )

        wrapper._retry_config = cfg  # type: ignore[attr-defined]
        return wrapper

    return decorator
