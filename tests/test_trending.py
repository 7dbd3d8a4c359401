"""Tests for the trending calculator.

3 test classes covering the composite formula, ranking with
cross-validation, and the degraded path when validation fails.
"""

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════


async def _seed(store, ticker, n, community="stocks", sentiment=40.0, quality=55.0, hours_ago=1):
    from crowdsignal.models import ItemScore, RawItem, ScoredItem
    for i in range(n):
        raw = RawItem(
            item_id=f"{ticker}-{community}-{i}", community=community, title="",
            body=f"${ticker}", author=f"user_{i}", upvotes=10, comments=3, awards=0,
            created_at=NOW - timedelta(hours=hours_ago),
        )
        await store.save(ScoredItem(
            item=raw, tickers=[ticker],
            score=ItemScore(quality_score=quality, passes_filter=True, sentiment_score=sentiment),
        ))


def _engine(provider, communities=("stocks", "investing")):
    from crowdsignal.cross_validation import CrossValidationConfig, CrossValidationEngine
    from crowdsignal.resilience import RetryConfig
    config = CrossValidationConfig(retry=RetryConfig(max_retries=0, base_delay=0.0, jitter_max=0.0))
    return CrossValidationEngine(provider, list(communities), config)


# ═══════════════════════════════════════════════════════════════════════
# Test: Formula
# ═══════════════════════════════════════════════════════════════════════


class TestTrendingFormula:

    def test_score(self):
        from crowdsignal.trending import TickerActivity, TrendingCalculator
        activity = TickerActivity(
            ticker="XYZ", mention_count=4, avg_sentiment=-40, avg_quality=55,
            communities=["stocks"], total_upvotes=40, total_comments=12,
        )
        calc = TrendingCalculator(item_store=None)
        expected = 4 * 0.3 + 40 * 0.25 + 55 * 0.2 + 1 * 0.15 + 52 / 100 * 0.1
        assert calc.score(activity, False) == pytest.approx(expected)
        assert calc.score(activity, True) == pytest.approx(expected * 1.3)

    def test_degraded_score(self):
        from crowdsignal.trending import TickerActivity, TrendingCalculator
        activity = TickerActivity(ticker="XYZ", mention_count=4, avg_sentiment=-40)
        assert TrendingCalculator(item_store=None).degraded_score(activity) == pytest.approx(14)

    @pytest.mark.asyncio
    async def test_activity_from_store(self, item_store):
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "XYZ", 3)
        await _seed(item_store, "XYZ", 2, community="investing", sentiment=10)
        activities = await TrendingCalculator(item_store).collect(24, 3, 30, NOW)
        assert len(activities) == 1
        activity = activities[0]
        assert activity.mention_count == 5
        assert activity.avg_sentiment == pytest.approx(28)
        assert activity.communities == ["investing", "stocks"]
        assert activity.engagement == 65


# ═══════════════════════════════════════════════════════════════════════
# Test: Ranking
# ═══════════════════════════════════════════════════════════════════════


class TestRanking:

    @pytest.mark.asyncio
    async def test_ranks_and_order(self, item_store):
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "AAA", 3)
        await _seed(item_store, "BBB", 8)
        await _seed(item_store, "CCC", 5)
        results = await TrendingCalculator(item_store).rank(now=NOW)
        assert [r.ticker for r in results] == ["BBB", "CCC", "AAA"]
        assert [r.rank for r in results] == [1, 2, 3]
        assert all(not r.is_cross_validated for r in results)

    @pytest.mark.asyncio
    async def test_filters(self, item_store):
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "FEW", 2)
        await _seed(item_store, "LOWQ", 5, quality=20)
        await _seed(item_store, "OLD", 5, hours_ago=30)
        await _seed(item_store, "OK", 3)
        results = await TrendingCalculator(item_store).rank(now=NOW)
        assert [r.ticker for r in results] == ["OK"]

    @pytest.mark.asyncio
    async def test_limit(self, item_store):
        from crowdsignal.trending import TrendingCalculator
        for i, ticker in enumerate(["AAA", "BBB", "CCC", "DDD"]):
            await _seed(item_store, ticker, 3 + i)
        results = await TrendingCalculator(item_store).rank(limit=2, now=NOW)
        assert [r.ticker for r in results] == ["DDD", "CCC"]

    @pytest.mark.asyncio
    async def test_cross_validation_boost(self, item_store):
        from conftest import StoreSearchProvider
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "XYZ", 3)
        await _seed(item_store, "XYZ", 3, community="investing")
        await _seed(item_store, "ABC", 6)
        calc = TrendingCalculator(item_store, _engine(StoreSearchProvider(item_store)))
        results = {r.ticker: r for r in await calc.rank(now=NOW)}

        assert results["XYZ"].is_cross_validated
        assert not results["ABC"].is_cross_validated
        assert results["XYZ"].cross_validation_score > 0
        assert results["XYZ"].rank == 1

    @pytest.mark.asyncio
    async def test_require_cross_validation(self, item_store):
        from conftest import StoreSearchProvider
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "XYZ", 3)
        await _seed(item_store, "XYZ", 3, community="investing")
        await _seed(item_store, "ABC", 6)
        calc = TrendingCalculator(item_store, _engine(StoreSearchProvider(item_store)))
        results = await calc.rank(require_cross_validation=True, now=NOW)
        assert [r.ticker for r in results] == ["XYZ"]
        assert results[0].rank == 1

    @pytest.mark.asyncio
    async def test_idempotent(self, item_store):
        from conftest import StoreSearchProvider
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "XYZ", 4)
        await _seed(item_store, "ABC", 3, community="investing", sentiment=-60)
        calc = TrendingCalculator(item_store, _engine(StoreSearchProvider(item_store)))
        first = [r.to_dict() for r in await calc.rank(now=NOW)]
        second = [r.to_dict() for r in await calc.rank(now=NOW)]
        assert first == second

    @pytest.mark.asyncio
    async def test_tie_broken_by_ticker(self, item_store):
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "ZZZ", 3)
        await _seed(item_store, "AAA", 3)
        results = await TrendingCalculator(item_store).rank(now=NOW)
        assert [r.ticker for r in results] == ["AAA", "ZZZ"]


# ═══════════════════════════════════════════════════════════════════════
# Test: Degraded validation
# ═══════════════════════════════════════════════════════════════════════


class TestDegradedRanking:

    @pytest.mark.asyncio
    async def test_all_communities_failed(self, item_store):
        from conftest import FakeSearchProvider
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "XYZ", 4)
        provider = FakeSearchProvider({
            "stocks": RuntimeError("search down"),
            "investing": RuntimeError("search down"),
        })
        results = await TrendingCalculator(item_store, _engine(provider)).rank(now=NOW)

        assert len(results) == 1
        result = results[0]
        assert result.degraded
        assert "search down" in result.error
        assert not result.is_cross_validated
        assert result.trending_score == pytest.approx(4 * 0.5 + 40 * 0.3)

    @pytest.mark.asyncio
    async def test_engine_exception_degrades_only_that_ticker(self, item_store):
        from crowdsignal.trending import TrendingCalculator
        await _seed(item_store, "XYZ", 4)
        await _seed(item_store, "ABC", 3)

        class _Engine:
            async def validate(self, ticker, window_hours=None):
                if ticker == "XYZ":
                    raise RuntimeError("validator crashed")
                from crowdsignal.cross_validation import CrossValidationResult
                return CrossValidationResult(ticker=ticker)

        results = {r.ticker: r for r in await TrendingCalculator(item_store, _Engine()).rank(now=NOW)}
        assert results["XYZ"].degraded
        assert results["XYZ"].error == "validator crashed"
        assert not results["ABC"].degraded
