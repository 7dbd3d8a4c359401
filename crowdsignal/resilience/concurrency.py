"""Bounded fan-out, provider call guards and cooperative cancellation.

gather_bounded runs work in waves of a fixed size with a delay between
waves, joining each wave with partial-failure tolerance. Every failure is
kept on the returned PartialResult; nothing is silently dropped.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar

from crowdsignal.errors import CrowdSignalError, ProviderUnavailableError
from crowdsignal.resilience.config import RetryConfig
from crowdsignal.resilience.retry import call_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class CancellationToken:
    """Cooperative cancellation flag checked between units of work."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str = ""

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class TaskFailure(Generic[T]):
    """One failed unit of work."""
    item: T
    error: str
    error_type: str = ""

    def to_dict(self) -> dict:
        return {"item": str(self.item), "error": self.error, "error_type": self.error_type}


@dataclass
class PartialResult(Generic[T, R]):
    """Outcome of a bounded fan-out: successes, failures and unstarted items."""
    succeeded: list = field(default_factory=list)  # list[tuple[T, R]]
    failed: list = field(default_factory=list)  # list[TaskFailure[T]]
    skipped: list = field(default_factory=list)  # list[T], not started due to cancellation
    cancelled: bool = False

    @property
    def results(self) -> list:
        return [r for _, r in self.succeeded]

    @property
    def all_failed(self) -> bool:
        return bool(self.failed) and not self.succeeded

    def to_dict(self) -> dict:
        return {
            "succeeded": len(self.succeeded),
            "failed": [f.to_dict() for f in self.failed],
            "skipped": [str(s) for s in self.skipped],
            "cancelled": self.cancelled,
        }


async def gather_bounded(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    limit: int = 3,
    wave_delay: float = 0.0,
    timeout: Optional[float] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> PartialResult:
    """Run worker over items in waves of `limit`.

    Args:
        items: Work units.
        worker: Async callable per unit.
        limit: Units per wave.
        wave_delay: Seconds to sleep between waves.
        timeout: Optional per-unit timeout in seconds.
        cancel_token: Checked before each wave; remaining units are skipped.

    Returns:
        PartialResult with succeeded (item, result) pairs and failures.
    """
    pending = list(items)
    result = PartialResult()
    limit = max(1, limit)

    async def run(item: T) -> R:
        if timeout is not None:
            return await asyncio.wait_for(worker(item), timeout=timeout)
        return await worker(item)

    for start in range(0, len(pending), limit):
        if cancel_token is not None and cancel_token.cancelled:
            result.cancelled = True
            result.skipped.extend(pending[start:])
            logger.info(
                "Fan-out cancelled (%s); skipping %d units",
                cancel_token.reason, len(pending) - start,
            )
            break

        wave = pending[start:start + limit]
        outcomes = await asyncio.gather(*(run(i) for i in wave), return_exceptions=True)
        for item, outcome in zip(wave, outcomes):
            if isinstance(outcome, asyncio.TimeoutError):
                result.failed.append(TaskFailure(item, f"timed out after {timeout}s", "TimeoutError"))
            elif isinstance(outcome, Exception):
                result.failed.append(TaskFailure(item, str(outcome), type(outcome).__name__))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.succeeded.append((item, outcome))

        if wave_delay > 0 and start + limit < len(pending):
            await asyncio.sleep(wave_delay)

    return result


async def call_provider(
    func: Callable[..., Awaitable[R]],
    *args: Any,
    provider: str,
    timeout: Optional[float] = None,
    retry_config: Optional[RetryConfig] = None,
) -> R:
    """Call an enrichment provider with a timeout and rate-limit retries.

    Raises:
        ProviderUnavailableError: On timeout, exhausted retries, or any
            unexpected provider exception.
    """

    async def attempt() -> R:
        if timeout is None:
            return await func(*args)
        try:
            return await asyncio.wait_for(func(*args), timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise ProviderUnavailableError(provider, f"timed out after {timeout}s") from exc

    try:
        return await call_with_retry(attempt, config=retry_config, provider=provider)
    except CrowdSignalError:
        raise
    except Exception as exc:
        raise ProviderUnavailableError(provider, f"{type(exc).__name__}: {exc}") from exc
