"""Tests for per-ticker aggregation.

5 test classes covering the sentiment blend, concurrent updates with
optimistic versioning, per-ticker error containment, mention count
recompute and decay refresh.
"""

import asyncio
import math
from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════


def _make_scored(
    item_id="p1", tickers=("XYZ",), community="stocks", sentiment=50.0,
    quality=80.0, decay=1.0, accepted=True, created_at=NOW,
):
    from crowdsignal.models import ItemScore, RawItem, ScoredItem
    raw = RawItem(
        item_id=item_id, community=community, title="", body="body text",
        author=f"user_{item_id}", upvotes=10, comments=3, awards=0,
        created_at=created_at,
    )
    return ScoredItem(
        item=raw,
        tickers=list(tickers),
        score=ItemScore(
            quality_score=quality, passes_filter=accepted,
            sentiment_score=sentiment, decay_factor=decay,
        ),
    )


class _FlakyAggregateStore:
    """Wraps a store and loses the first `conflicts` version checks."""

    def __init__(self, inner, conflicts=1):
        self.inner = inner
        self.conflicts = conflicts
        self.saves = 0

    async def get(self, ticker):
        return await self.inner.get(ticker)

    async def save(self, state, expected_version):
        from crowdsignal.errors import ConcurrentUpdateError
        self.saves += 1
        if self.conflicts > 0:
            self.conflicts -= 1
            raise ConcurrentUpdateError(state.ticker, expected_version, expected_version + 1)
        return await self.inner.save(state, expected_version)

    async def all(self):
        return await self.inner.all()


class _BrokenTickerStore:
    """Fails every write for one ticker."""

    def __init__(self, inner, broken):
        self.inner = inner
        self.broken = broken

    async def get(self, ticker):
        return await self.inner.get(ticker)

    async def save(self, state, expected_version):
        if state.ticker == self.broken:
            raise RuntimeError("disk full")
        return await self.inner.save(state, expected_version)

    async def all(self):
        return await self.inner.all()


# ═══════════════════════════════════════════════════════════════════════
# Test: Sentiment blend
# ═══════════════════════════════════════════════════════════════════════


class TestSentimentBlend:

    @pytest.mark.asyncio
    async def test_first_item(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        result = await aggregator.apply(_make_scored(), NOW)
        assert result.updated == ["XYZ"]

        state = await aggregate_store.get("XYZ")
        assert state.sentiment_trend.current == pytest.approx(50 * 0.8 / 0.9)
        assert state.sentiment_trend.previous == 0
        assert state.sentiment_trend.confidence == pytest.approx(0.09)
        assert state.mention_count.total == 1
        assert state.mention_count.last_24h == 1
        assert state.mention_count.last_7d == 1
        assert state.quality_mention_count == 1
        assert state.version == 1

    @pytest.mark.asyncio
    async def test_second_item_uses_confidence_weight(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        await aggregator.apply(_make_scored("p1"), NOW)
        await aggregator.apply(_make_scored("p2"), NOW)

        trend = (await aggregate_store.get("XYZ")).sentiment_trend
        first = 50 * 0.8 / 0.9
        assert trend.current == pytest.approx((first * 0.9 + 50 * 0.8) / 1.7)
        assert trend.previous == pytest.approx(first)
        assert trend.change == pytest.approx(trend.current - first)
        assert trend.confidence == pytest.approx(0.17)

    @pytest.mark.asyncio
    async def test_confidence_capped(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        for i in range(20):
            await aggregator.apply(_make_scored(f"p{i}", quality=100), NOW)
        state = await aggregate_store.get("XYZ")
        assert state.sentiment_trend.confidence == 1.0

    @pytest.mark.asyncio
    async def test_low_quality_is_not_quality_mention(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        await aggregator.apply(_make_scored("p1", quality=59.9), NOW)
        await aggregator.apply(_make_scored("p2", quality=60.0), NOW)
        state = await aggregate_store.get("XYZ")
        assert state.quality_mention_count == 1
        assert state.quality_mention_ratio == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_community_running_average(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        await aggregator.apply(_make_scored("p1", sentiment=10), NOW)
        await aggregator.apply(_make_scored("p2", sentiment=30), NOW)
        await aggregator.apply(_make_scored("p3", sentiment=80, community="investing"), NOW)
        state = await aggregate_store.get("XYZ")
        assert state.community_count == 2
        assert state.community_breakdown["stocks"].count == 2
        assert state.community_breakdown["stocks"].avg_sentiment == pytest.approx(20)
        assert state.community_breakdown["investing"].avg_sentiment == pytest.approx(80)

    @pytest.mark.asyncio
    async def test_old_item_outside_windows(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        await aggregator.apply(_make_scored(created_at=NOW - timedelta(days=3)), NOW)
        counts = (await aggregate_store.get("XYZ")).mention_count
        assert (counts.total, counts.last_24h, counts.last_7d) == (1, 0, 1)

    @pytest.mark.asyncio
    async def test_rejected_items_skipped(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        result = await aggregator.apply(_make_scored(accepted=False), NOW)
        assert result.items_skipped == 1
        assert await aggregate_store.get("XYZ") is None

    @pytest.mark.asyncio
    async def test_multi_ticker_item(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        result = await aggregator.apply(_make_scored(tickers=("XYZ", "ABC")), NOW)
        assert sorted(result.updated) == ["ABC", "XYZ"]
        assert [s.ticker for s in await aggregate_store.all()] == ["ABC", "XYZ"]


# ═══════════════════════════════════════════════════════════════════════
# Test: Concurrency
# ═══════════════════════════════════════════════════════════════════════


class TestConcurrentUpdates:

    @pytest.mark.asyncio
    async def test_no_lost_updates(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, aggregate_store)
        items = [
            _make_scored(f"p{i}", community="stocks" if i % 2 else "investing")
            for i in range(12)
        ]
        await asyncio.gather(*(aggregator.apply(item, NOW) for item in items))
        state = await aggregate_store.get("XYZ")
        assert state.mention_count.total == 12
        assert state.version == 12
        assert sum(s.count for s in state.community_breakdown.values()) == 12

    @pytest.mark.asyncio
    async def test_stale_version_rejected(self, aggregate_store):
        from crowdsignal.aggregation import EntityAggregateState
        from crowdsignal.errors import ConcurrentUpdateError
        await aggregate_store.save(EntityAggregateState(ticker="XYZ"), expected_version=0)
        with pytest.raises(ConcurrentUpdateError):
            await aggregate_store.save(EntityAggregateState(ticker="XYZ"), expected_version=0)

    @pytest.mark.asyncio
    async def test_conflict_is_retried(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        flaky = _FlakyAggregateStore(aggregate_store, conflicts=2)
        aggregator = EntityAggregator(item_store, flaky)
        result = await aggregator.apply(_make_scored(), NOW)
        assert result.updated == ["XYZ"]
        assert flaky.saves == 3
        assert (await aggregate_store.get("XYZ")).mention_count.total == 1

    @pytest.mark.asyncio
    async def test_conflicts_exhaust_retries(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        flaky = _FlakyAggregateStore(aggregate_store, conflicts=10)
        aggregator = EntityAggregator(item_store, flaky)
        result = await aggregator.apply(_make_scored(), NOW)
        assert result.updated == []
        assert "XYZ" in result.errors


# ═══════════════════════════════════════════════════════════════════════
# Test: Error containment
# ═══════════════════════════════════════════════════════════════════════


class TestErrorContainment:

    @pytest.mark.asyncio
    async def test_one_ticker_failure_does_not_block_others(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        aggregator = EntityAggregator(item_store, _BrokenTickerStore(aggregate_store, "BAD"))
        result = await aggregator.apply_batch([
            _make_scored("p1", tickers=("BAD", "XYZ")),
            _make_scored("p2", tickers=("ABC",)),
        ], NOW)
        assert sorted(result.updated) == ["ABC", "XYZ"]
        assert result.errors == {"BAD": "disk full"}
        assert result.items_applied == 2
        assert result.to_dict()["updated"] == ["ABC", "XYZ"]


# ═══════════════════════════════════════════════════════════════════════
# Test: Recompute and decay
# ═══════════════════════════════════════════════════════════════════════


class TestRecomputeAndDecay:

    @pytest.mark.asyncio
    async def test_recompute_mention_counts(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        ages = [1, 5, 20, 50, 100, 24 * 10]
        for i, hours in enumerate(ages):
            await item_store.save(_make_scored(f"p{i}", created_at=NOW - timedelta(hours=hours)))
        aggregator = EntityAggregator(item_store, aggregate_store)
        await aggregator.apply(_make_scored("p0", created_at=NOW - timedelta(hours=1)), NOW)

        rebuilt = await aggregator.recompute_mention_counts(NOW)
        assert rebuilt["XYZ"].last_24h == 3
        assert rebuilt["XYZ"].last_7d == 5
        assert rebuilt["XYZ"].total == 5

    @pytest.mark.asyncio
    async def test_recompute_selected_tickers(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        await item_store.save(_make_scored("p1", tickers=("ABC",)))
        aggregator = EntityAggregator(item_store, aggregate_store)
        rebuilt = await aggregator.recompute_mention_counts(NOW, tickers=["abc"])
        assert list(rebuilt) == ["ABC"]
        assert (await aggregate_store.get("ABC")).mention_count.last_24h == 1

    @pytest.mark.asyncio
    async def test_refresh_decay(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        await item_store.save(_make_scored("old", created_at=NOW - timedelta(hours=48)))
        await item_store.save(_make_scored("new", created_at=NOW))
        aggregator = EntityAggregator(item_store, aggregate_store)

        assert await aggregator.refresh_decay(NOW) == 1
        old = await item_store.get("old")
        assert old.score.decay_factor == pytest.approx(math.exp(-2))
        assert (await item_store.get("new")).score.decay_factor == 1.0

    @pytest.mark.asyncio
    async def test_refresh_decay_ignores_small_changes(self, item_store, aggregate_store):
        from crowdsignal.aggregation import EntityAggregator
        await item_store.save(_make_scored("p1", created_at=NOW - timedelta(minutes=10)))
        aggregator = EntityAggregator(item_store, aggregate_store)
        assert await aggregator.refresh_decay(NOW) == 0
