"""Tests for cross-community validation.

3 test classes covering per-community confidence, validation outcomes
against a store-backed search, and provider failure handling.
"""

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 3, 2, 15, 0, tzinfo=timezone.utc)


# ═══════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════


def _fast_config(**kwargs):
    from crowdsignal.cross_validation import CrossValidationConfig
    from crowdsignal.resilience import RetryConfig
    return CrossValidationConfig(
        retry=RetryConfig(max_retries=2, base_delay=0.01, jitter_max=0.0),
        **kwargs,
    )


async def _seed(item_store, ticker, community, n, start=0):
    from crowdsignal.models import ItemScore, RawItem, ScoredItem
    for i in range(n):
        raw = RawItem(
            item_id=f"{community}-{start + i}", community=community, title="",
            body=f"${ticker} post", author=f"user_{i}", upvotes=10, comments=3,
            awards=0, created_at=NOW - timedelta(hours=i + 1),
        )
        await item_store.save(ScoredItem(
            item=raw, tickers=[ticker],
            score=ItemScore(quality_score=55, passes_filter=True, sentiment_score=40),
        ))


# ═══════════════════════════════════════════════════════════════════════
# Test: Community confidence
# ═══════════════════════════════════════════════════════════════════════


class TestCommunityConfidence:

    def test_formula(self):
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.providers import SearchResult
        engine = CrossValidationEngine(search_provider=None)
        assert engine.community_confidence(SearchResult(3, 50.0)) == pytest.approx(35.0)

    def test_capped_at_100(self):
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.providers import SearchResult
        engine = CrossValidationEngine(search_provider=None)
        assert engine.community_confidence(SearchResult(20, 900.0)) == 100.0

    def test_no_hits_is_zero(self):
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.providers import SearchResult
        engine = CrossValidationEngine(search_provider=None)
        assert engine.community_confidence(SearchResult(0, 500.0)) == 0.0

    def test_search_result_from_items(self):
        from crowdsignal.models import RawItem
        from crowdsignal.providers import SearchResult
        items = [
            RawItem(f"p{i}", "stocks", "", "", "a", upvotes=10 * i, comments=i, awards=0, created_at=NOW)
            for i in range(1, 4)
        ]
        result = SearchResult.from_items(items, sample_size=2)
        assert result.mention_count == 3
        assert result.avg_engagement == pytest.approx(22.0)
        assert len(result.sample_posts) == 2


# ═══════════════════════════════════════════════════════════════════════
# Test: Validation outcomes
# ═══════════════════════════════════════════════════════════════════════


class TestValidation:

    @pytest.mark.asyncio
    async def test_single_community_not_validated(self, item_store):
        from conftest import StoreSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine, ValidationReason
        await _seed(item_store, "XYZ", "stocks", 6)
        engine = CrossValidationEngine(
            StoreSearchProvider(item_store), ["stocks", "investing"], _fast_config(),
        )
        result = await engine.validate("xyz")
        assert result.ticker == "XYZ"
        assert not result.is_validated
        assert result.reason == ValidationReason.INSUFFICIENT_COMMUNITIES
        assert result.communities_with_hits == 1
        assert result.cross_validation_score == pytest.approx((60 + 1.3) * 0.5)

    @pytest.mark.asyncio
    async def test_second_community_validates(self, item_store):
        from conftest import StoreSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine, ValidationReason
        await _seed(item_store, "XYZ", "stocks", 6)
        await _seed(item_store, "XYZ", "investing", 4)
        engine = CrossValidationEngine(
            StoreSearchProvider(item_store), ["stocks", "investing"], _fast_config(),
        )
        result = await engine.validate("XYZ")
        assert result.is_validated
        assert result.reason == ValidationReason.VALIDATED
        assert result.total_mentions == 10
        assert result.cross_validation_score == pytest.approx((61.3 + 41.3) / 2)

    @pytest.mark.asyncio
    async def test_insufficient_mentions(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine, ValidationReason
        from crowdsignal.providers import SearchResult
        provider = FakeSearchProvider({"a": SearchResult(1, 0.0), "b": SearchResult(1, 0.0)})
        engine = CrossValidationEngine(provider, ["a", "b"], _fast_config())
        result = await engine.validate("XYZ")
        assert not result.is_validated
        assert result.reason == ValidationReason.INSUFFICIENT_MENTIONS

    @pytest.mark.asyncio
    async def test_no_hits_anywhere(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine, ValidationReason
        engine = CrossValidationEngine(FakeSearchProvider(), ["a", "b"], _fast_config())
        result = await engine.validate("XYZ")
        assert result.cross_validation_score == 0
        assert result.reason == ValidationReason.INSUFFICIENT_COMMUNITIES
        assert not result.all_failed

    @pytest.mark.asyncio
    async def test_defaults_to_active_communities(self):
        from conftest import FakeSearchProvider
        from crowdsignal.config import CommunityConfig
        from crowdsignal.cross_validation import CrossValidationEngine
        provider = FakeSearchProvider()
        engine = CrossValidationEngine(provider, [
            CommunityConfig(name="stocks"),
            CommunityConfig(name="retired", is_active=False),
        ], _fast_config())
        await engine.validate("XYZ", window_hours=12)
        assert provider.calls == [("stocks", "XYZ", 12)]

    @pytest.mark.asyncio
    async def test_no_target_communities(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine, ValidationReason
        result = await CrossValidationEngine(FakeSearchProvider(), [], _fast_config()).validate("XYZ")
        assert result.per_community == []
        assert result.reason == ValidationReason.NO_DATA
        assert not result.all_failed

    @pytest.mark.asyncio
    async def test_to_dict(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.providers import SearchResult
        provider = FakeSearchProvider({"a": SearchResult(2, 10.0), "b": SearchResult(3, 20.0)})
        result = await CrossValidationEngine(provider, ["a", "b"], _fast_config()).validate("XYZ")
        data = result.to_dict()
        assert data["reason"] == "validated"
        assert data["communities_checked"] == 2
        assert [c["community"] for c in data["per_community"]] == ["a", "b"]


# ═══════════════════════════════════════════════════════════════════════
# Test: Failures
# ═══════════════════════════════════════════════════════════════════════


class TestValidationFailures:

    @pytest.mark.asyncio
    async def test_partial_failure_recorded(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.providers import SearchResult
        provider = FakeSearchProvider({
            "a": SearchResult(4, 10.0),
            "b": RuntimeError("search backend down"),
            "c": SearchResult(2, 10.0),
        })
        result = await CrossValidationEngine(provider, ["a", "b", "c"], _fast_config()).validate("XYZ")
        assert result.is_validated
        assert not result.all_failed
        assert "b" in result.errors
        assert "search backend down" in result.errors["b"]
        assert result.communities_checked == 3

    @pytest.mark.asyncio
    async def test_all_failed(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine, ValidationReason
        provider = FakeSearchProvider({"a": RuntimeError("down"), "b": RuntimeError("down")})
        result = await CrossValidationEngine(provider, ["a", "b"], _fast_config()).validate("XYZ")
        assert result.all_failed
        assert result.reason == ValidationReason.NO_DATA
        assert not result.is_validated
        assert set(result.errors) == {"a", "b"}

    @pytest.mark.asyncio
    async def test_timeout_is_a_failure(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine
        provider = FakeSearchProvider(delay=0.5)
        engine = CrossValidationEngine(provider, ["a"], _fast_config(timeout_seconds=0.05))
        result = await engine.validate("XYZ")
        assert result.all_failed
        assert "timed out" in result.errors["a"]

    @pytest.mark.asyncio
    async def test_rate_limit_retried(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.errors import RateLimitExceededError
        from crowdsignal.providers import SearchResult

        responses = [RateLimitExceededError("search"), SearchResult(3, 10.0)]
        provider = FakeSearchProvider({"a": lambda: responses.pop(0), "b": SearchResult(3, 10.0)})
        result = await CrossValidationEngine(provider, ["a", "b"], _fast_config()).validate("XYZ")
        assert result.is_validated
        assert [c[0] for c in provider.calls].count("a") == 2

    @pytest.mark.asyncio
    async def test_rate_limit_exhausted(self):
        from conftest import FakeSearchProvider
        from crowdsignal.cross_validation import CrossValidationEngine
        from crowdsignal.errors import RateLimitExceededError
        provider = FakeSearchProvider({"a": RateLimitExceededError("search")})
        result = await CrossValidationEngine(provider, ["a"], _fast_config()).validate("XYZ")
        assert result.all_failed
        assert "Max retries" in result.errors["a"]
        assert len(provider.calls) == 3
