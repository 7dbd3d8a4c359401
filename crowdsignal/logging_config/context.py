"""Cycle Context.

contextvars-based binding of the processing cycle id and the unit of
work (community, ticker) to every log line emitted inside a cycle. Each
asyncio task inherits a copy of the context, so concurrent communities
log under their own names.
"""

import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Optional

_cycle_id_var: ContextVar[str] = ContextVar("cycle_id", default="")
_community_var: ContextVar[str] = ContextVar("community", default="")
_ticker_var: ContextVar[str] = ContextVar("ticker", default="")


def generate_cycle_id() -> str:
    """Short random cycle identifier."""
    return uuid.uuid4().hex[:12]


def get_cycle_id() -> str:
    return _cycle_id_var.get()


def get_context_dict() -> dict[str, Any]:
    """Bound context values for log enrichment; empty values are omitted."""
    ctx = {}
    for key, var in (
        ("cycle_id", _cycle_id_var),
        ("community", _community_var),
        ("ticker", _ticker_var),
    ):
        value = var.get()
        if value:
            ctx[key] = value
    return ctx


@dataclass
class CycleContext:
    """Context manager binding cycle_id (and optionally a community or
    ticker) to log records for the duration of a block.

    Example:
        with CycleContext(cycle_id="a1b2c3"):
            with CycleContext.for_community("stocks"):
                logger.info("fetched 50 posts")  # cycle_id=a1b2c3 community=stocks
    """

    cycle_id: Optional[str] = None
    community: Optional[str] = None
    ticker: Optional[str] = None

    _tokens: list = field(default_factory=list, repr=False)

    def __enter__(self) -> "CycleContext":
        for var, value in (
            (_cycle_id_var, self.cycle_id),
            (_community_var, self.community),
            (_ticker_var, self.ticker),
        ):
            if value is not None:
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    @classmethod
    def for_community(cls, community: str) -> "CycleContext":
        return cls(community=community)

    @classmethod
    def for_ticker(cls, ticker: str) -> "CycleContext":
        return cls(ticker=ticker)

