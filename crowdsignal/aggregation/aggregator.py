"""Entity Aggregator.

Folds accepted, scored posts into one rolling state per ticker. Writes to
a ticker are serialized by a per-ticker asyncio.Lock and guarded by the
aggregate store's optimistic version check, so two communities updating
the same ticker in one cycle never lose an update.

A failure on one ticker is recorded and does not stop the others.
"""

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

from crowdsignal.aggregation.config import AggregatorConfig
from crowdsignal.aggregation.state import CommunityStats, EntityAggregateState, MentionCount
from crowdsignal.aggregation.store import AggregateStore, ItemStore
from crowdsignal.errors import ConcurrentUpdateError
from crowdsignal.models import ScoredItem, time_decay, utcnow

logger = logging.getLogger(__name__)


@dataclass
class AggregationBatchResult:
    """Per-ticker outcome of applying a batch of items."""
    updated: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    items_applied: int = 0
    items_skipped: int = 0

    def merge(self, other: "AggregationBatchResult") -> None:
        for ticker in other.updated:
            if ticker not in self.updated:
                self.updated.append(ticker)
        self.errors.update(other.errors)
        self.items_applied += other.items_applied
        self.items_skipped += other.items_skipped

    def to_dict(self) -> dict:
        return {
            "updated": sorted(self.updated),
            "errors": dict(self.errors),
            "items_applied": self.items_applied,
            "items_skipped": self.items_skipped,
        }


class EntityAggregator:
    """Maintains per-ticker aggregate state.

    Example:
        aggregator = EntityAggregator(item_store, aggregate_store)
        result = await aggregator.apply_batch(scored_items)
        print(result.updated, result.errors)
    """

    def __init__(
        self,
        item_store: ItemStore,
        aggregate_store: AggregateStore,
        config: Optional[AggregatorConfig] = None,
    ):
        self.item_store = item_store
        self.aggregate_store = aggregate_store
        self.config = config or AggregatorConfig()
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    # ── Incremental path ─────────────────────────────────────────────

    async def apply(self, item: ScoredItem, now: Optional[datetime] = None) -> AggregationBatchResult:
        """Fold one item into the state of each of its tickers."""
        result = AggregationBatchResult()
        if not item.accepted or not item.tickers:
            result.items_skipped += 1
            return result

        now = now or utcnow()
        for ticker in item.tickers:
            ticker = ticker.upper()
            try:
                await self._update_ticker(ticker, item, now)
                if ticker not in result.updated:
                    result.updated.append(ticker)
            except Exception as exc:
                logger.error(
                    "Aggregate update failed for %s from item %s: %s",
                    ticker, item.item_id, exc,
                    extra={"item_id": item.item_id},
                )
                result.errors[ticker] = str(exc)
        result.items_applied += 1
        return result

    async def apply_batch(
        self, items: Iterable[ScoredItem], now: Optional[datetime] = None
    ) -> AggregationBatchResult:
        """Apply many items. Never raises for per-ticker failures."""
        now = now or utcnow()
        result = AggregationBatchResult()
        for item in items:
            result.merge(await self.apply(item, now))
        if result.errors:
            logger.warning(
                "Aggregation batch: %d tickers updated, %d failed",
                len(result.updated), len(result.errors),
            )
        return result

    async def _update_ticker(self, ticker: str, item: ScoredItem, now: datetime) -> EntityAggregateState:
        async with self._locks[ticker]:
            last_error: Optional[ConcurrentUpdateError] = None
            for _ in range(self.config.max_update_retries):
                state = await self.aggregate_store.get(ticker) or EntityAggregateState(ticker=ticker)
                expected = state.version
                self._fold(state, item, now)
                try:
                    return await self.aggregate_store.save(state, expected_version=expected)
                except ConcurrentUpdateError as exc:
                    last_error = exc
                    logger.info("Retrying %s after concurrent update: %s", ticker, exc)
            raise last_error  # type: ignore[misc]

    def _fold(self, state: EntityAggregateState, item: ScoredItem, now: datetime) -> None:
        cfg = self.config
        score = item.score
        age = now - item.created_at

        state.mention_count.total += 1
        if age <= timedelta(hours=cfg.short_window_hours):
            state.mention_count.last_24h += 1
        if age <= timedelta(hours=cfg.long_window_hours):
            state.mention_count.last_7d += 1

        trend = state.sentiment_trend
        existing_weight = trend.confidence * cfg.confidence_weight_scale or cfg.min_existing_weight
        item_weight = score.quality_score * score.decay_factor / 100.0
        new_weight = existing_weight + item_weight

        trend.previous = trend.current
        trend.current = (trend.current * existing_weight + score.sentiment_score * item_weight) / new_weight
        trend.change = trend.current - trend.previous
        trend.confidence = min(1.0, new_weight / cfg.confidence_weight_scale)

        if score.quality_score >= cfg.quality_mention_threshold:
            state.quality_mention_count += 1

        stats = state.community_breakdown.setdefault(item.community, CommunityStats())
        stats.add(score.sentiment_score)

        state.last_updated_at = now

    # ── Recompute and decay ──────────────────────────────────────────

    async def recompute_mention_counts(
        self, now: Optional[datetime] = None, tickers: Optional[Iterable[str]] = None
    ) -> dict[str, MentionCount]:
        """Rebuild 24h/7d mention counts from the item store.

        Corrects drift from the incremental path, e.g. backfilled items or
        posts aging out of the windows.
        """
        now = now or utcnow()
        if tickers is None:
            tickers = [s.ticker for s in await self.aggregate_store.all()]

        rebuilt: dict[str, MentionCount] = {}
        for ticker in tickers:
            ticker = ticker.upper()
            try:
                rebuilt[ticker] = await self._recompute_ticker(ticker, now)
            except Exception as exc:
                logger.error("Mention recompute failed for %s: %s", ticker, exc)
        logger.info("Recomputed mention counts for %d tickers", len(rebuilt))
        return rebuilt

    async def _recompute_ticker(self, ticker: str, now: datetime) -> MentionCount:
        cfg = self.config
        week_ago = now - timedelta(hours=cfg.long_window_hours)
        day_ago = now - timedelta(hours=cfg.short_window_hours)
        items = await self.item_store.query(ticker=ticker, since=week_ago)

        async with self._locks[ticker]:
            last_error: Optional[ConcurrentUpdateError] = None
            for _ in range(cfg.max_update_retries):
                state = await self.aggregate_store.get(ticker) or EntityAggregateState(ticker=ticker)
                expected = state.version
                state.mention_count.last_7d = len(items)
                state.mention_count.last_24h = sum(1 for i in items if i.created_at >= day_ago)
                state.mention_count.total = max(state.mention_count.total, len(items))
                try:
                    saved = await self.aggregate_store.save(state, expected_version=expected)
                    return saved.mention_count
                except ConcurrentUpdateError as exc:
                    last_error = exc
                    logger.info("Retrying recompute for %s: %s", ticker, exc)
            raise last_error  # type: ignore[misc]

    async def refresh_decay(self, now: Optional[datetime] = None) -> int:
        """Recompute decay factors for accepted items of the last week.

        Only changes larger than the configured threshold are persisted.

        Returns:
            Number of items updated.
        """
        now = now or utcnow()
        since = now - timedelta(days=self.config.decay_refresh_window_days)
        items = await self.item_store.query(since=since)

        updates = {}
        for item in items:
            decay = time_decay(item.item.age_hours(now))
            if abs(decay - item.score.decay_factor) > self.config.decay_change_threshold:
                updates[item.item_id] = decay

        updated = await self.item_store.update_decay(updates) if updates else 0
        logger.info("Refreshed decay for %d of %d items", updated, len(items))
        return updated
