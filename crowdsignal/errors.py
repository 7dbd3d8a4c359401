"""Exception Hierarchy.

Typed exceptions for the signal pipeline. Every error carries a context
dict so log lines and cycle statistics can reproduce the failing unit of
work (community, item id, ticker, provider).

Only ConfigurationError is fatal to a processing cycle; the rest are
contained to the item, community, ticker or component that raised them.
"""

from typing import Any, Dict, Optional


class CrowdSignalError(Exception):
    """Base exception for all CrowdSignal errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "message": self.message,
            "context": self.context,
        }


class InsufficientDataError(CrowdSignalError):
    """Raised when a sample is below its minimum mention/sample threshold.

    Callers convert this into a neutral or low-confidence result; it is
    never surfaced to the consumer of a confidence or trending result.
    """

    def __init__(self, message: str, required: int = 0, available: int = 0):
        super().__init__(message, {"required": required, "available": available})
        self.required = required
        self.available = available


class ProviderUnavailableError(CrowdSignalError):
    """Raised when an enrichment provider times out or errors."""

    def __init__(self, provider: str, message: str = "Provider unavailable"):
        super().__init__(f"{provider}: {message}", {"provider": provider})
        self.provider = provider


class MalformedItemError(CrowdSignalError):
    """Raised when a raw platform item cannot be parsed."""

    def __init__(self, message: str, item_id: str = ""):
        super().__init__(message, {"item_id": item_id})
        self.item_id = item_id


class RateLimitExceededError(CrowdSignalError):
    """Raised when a provider throttles the caller."""

    def __init__(self, provider: str = "", retry_after: float = 0.0):
        super().__init__(
            f"Rate limit exceeded for {provider or 'provider'}. "
            f"Retry after {retry_after:.1f}s.",
            {"provider": provider, "retry_after": retry_after},
        )
        self.provider = provider
        self.retry_after = retry_after


class ConfigurationError(CrowdSignalError):
    """Raised for invalid or missing configuration. Fatal to a cycle."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, {"field": field} if field else {})
        self.field = field


class ConcurrentUpdateError(CrowdSignalError):
    """Raised when an aggregate write loses an optimistic version check."""

    def __init__(self, ticker: str, expected: int, actual: int):
        super().__init__(
            f"Aggregate for {ticker} changed concurrently "
            f"(expected version {expected}, found {actual})",
            {"ticker": ticker, "expected": expected, "actual": actual},
        )
        self.ticker = ticker
        self.expected = expected
        self.actual = actual
