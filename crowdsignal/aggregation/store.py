"""Item and Aggregate Stores.

Storage protocols the pipeline depends on, plus in-memory reference
implementations. The in-memory item store also answers the noise
filter's velocity lookback.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional, Protocol, runtime_checkable

from crowdsignal.aggregation.state import EntityAggregateState
from crowdsignal.errors import ConcurrentUpdateError
from crowdsignal.models import ScoredItem

logger = logging.getLogger(__name__)


@runtime_checkable
class ItemStore(Protocol):
    """Persistence for scored items."""

    async def save(self, item: ScoredItem) -> bool:
        ...

    async def exists(self, item_id: str) -> bool:
        ...

    async def get(self, item_id: str) -> Optional[ScoredItem]:
        ...

    async def query(
        self,
        ticker: Optional[str] = None,
        community: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        accepted_only: bool = True,
    ) -> list[ScoredItem]:
        ...

    async def update_decay(self, updates: dict[str, float]) -> int:
        ...

    async def delete(self, item_ids: Iterable[str]) -> int:
        ...

    async def count_author_posts(self, author: str, community: str, since: datetime) -> int:
        ...

    async def count_community_posts(self, community: str, since: datetime) -> int:
        ...


@runtime_checkable
class AggregateStore(Protocol):
    """Persistence for per-ticker aggregates with optimistic versioning."""

    async def get(self, ticker: str) -> Optional[EntityAggregateState]:
        ...

    async def save(self, state: EntityAggregateState, expected_version: int) -> EntityAggregateState:
        ...

    async def all(self) -> list[EntityAggregateState]:
        ...


class InMemoryItemStore:
    """Dict-backed ItemStore keyed by item id."""

    def __init__(self) -> None:
        self._items: dict[str, ScoredItem] = {}

    async def save(self, item: ScoredItem) -> bool:
        """Upsert an item. Returns True if it was not stored before."""
        is_new = item.item_id not in self._items
        self._items[item.item_id] = item
        return is_new

    async def exists(self, item_id: str) -> bool:
        return item_id in self._items

    async def get(self, item_id: str) -> Optional[ScoredItem]:
        return self._items.get(item_id)

    async def query(
        self,
        ticker: Optional[str] = None,
        community: Optional[str] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        accepted_only: bool = True,
    ) -> list[ScoredItem]:
        """Items matching every given filter, oldest first."""
        ticker = ticker.upper() if ticker else None
        matches = []
        for item in self._items.values():
            if accepted_only and not item.accepted:
                continue
            if ticker and ticker not in item.tickers:
                continue
            if community and item.community != community:
                continue
            if since and item.created_at < since:
                continue
            if until and item.created_at > until:
                continue
            matches.append(item)
        matches.sort(key=lambda i: (i.created_at, i.item_id))
        return matches

    async def update_decay(self, updates: dict[str, float]) -> int:
        count = 0
        for item_id, decay in updates.items():
            item = self._items.get(item_id)
            if item is not None:
                item.score.decay_factor = decay
                count += 1
        return count

    async def delete(self, item_ids: Iterable[str]) -> int:
        count = 0
        for item_id in item_ids:
            if self._items.pop(item_id, None) is not None:
                count += 1
        return count

    async def count_author_posts(self, author: str, community: str, since: datetime) -> int:
        return sum(
            1 for i in self._items.values()
            if i.accepted and i.item.author == author
            and i.community == community and i.created_at >= since
        )

    async def count_community_posts(self, community: str, since: datetime) -> int:
        return sum(
            1 for i in self._items.values()
            if i.community == community and i.created_at >= since
        )

    def __len__(self) -> int:
        return len(self._items)


class InMemoryAggregateStore:
    """Dict-backed AggregateStore. Reads and writes copies."""

    def __init__(self) -> None:
        self._states: dict[str, EntityAggregateState] = {}

    async def get(self, ticker: str) -> Optional[EntityAggregateState]:
        state = self._states.get(ticker.upper())
        return state.copy() if state else None

    async def save(self, state: EntityAggregateState, expected_version: int) -> EntityAggregateState:
        """Persist state if the stored version still equals expected_version.

        Raises:
            ConcurrentUpdateError: If another writer got there first.
        """
        key = state.ticker.upper()
        current = self._states.get(key)
        actual = current.version if current else 0
        if actual != expected_version:
            raise ConcurrentUpdateError(key, expected_version, actual)

        stored = state.copy()
        stored.version = actual + 1
        self._states[key] = stored
        return stored.copy()

    async def all(self) -> list[EntityAggregateState]:
        return [s.copy() for _, s in sorted(self._states.items())]

    def __len__(self) -> int:
        return len(self._states)
