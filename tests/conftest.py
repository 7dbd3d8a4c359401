"""Pytest configuration and shared fakes for collaborator protocols."""

import asyncio
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from crowdsignal.providers.base import (  # noqa: E402
    EconomicCorrelation,
    NewsCorrelation,
    SearchResult,
)


# ═══════════════════════════════════════════════════════════════════════
# Fake providers
# ═══════════════════════════════════════════════════════════════════════


class FakeSearchProvider:
    """Per-community canned search results; an Exception value is raised."""

    def __init__(self, results=None, delay=0.0):
        self.results = results or {}
        self.delay = delay
        self.calls = []

    async def search_community_for_ticker(self, community, ticker, window_hours):
        self.calls.append((community, ticker, window_hours))
        if self.delay:
            await asyncio.sleep(self.delay)
        value = self.results.get(community, SearchResult())
        if callable(value) and not isinstance(value, SearchResult):
            value = value()
        if isinstance(value, Exception):
            raise value
        return value


class StoreSearchProvider:
    """Answers searches from an item store, like a platform search would."""

    def __init__(self, item_store):
        self.item_store = item_store

    async def search_community_for_ticker(self, community, ticker, window_hours):
        items = await self.item_store.query(ticker=ticker, community=community)
        return SearchResult.from_items([i.item for i in items])


class FakeNewsProvider:
    def __init__(self, result=None, delay=0.0, error=None):
        self.result = result or NewsCorrelation()
        self.delay = delay
        self.error = error
        self.calls = 0

    async def get_news_correlation(self, ticker, sentiment, window_hours):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


class FakeEconomicProvider:
    def __init__(self, result=None, error=None):
        self.result = result if result is not None else EconomicCorrelation()
        self.error = error

    async def get_economic_correlation(self, ticker, sentiment):
        if self.error is not None:
            raise self.error
        return self.result


class FakePriceProvider:
    def __init__(self, points=None, error=None):
        self.points = points or []
        self.error = error

    async def get_historical_price_series(self, ticker):
        if self.error is not None:
            raise self.error
        return list(self.points)


class FakePlatformClient:
    """Posts per community; an Exception value is raised on fetch."""

    def __init__(self, posts=None, delay=0.0):
        self.posts = posts or {}
        self.delay = delay
        self.fetched = []

    async def fetch_posts(self, community, limit):
        self.fetched.append(community)
        if self.delay:
            await asyncio.sleep(self.delay)
        value = self.posts.get(community, [])
        if isinstance(value, Exception):
            raise value
        return list(value)[:limit]


class FakeReputationStore:
    def __init__(self, profiles=None, error=None, delay=0.0):
        self.profiles = profiles or {}
        self.error = error
        self.delay = delay

    async def get_profile(self, username):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.profiles.get(username)


# ═══════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════


@pytest.fixture
def item_store():
    from crowdsignal.aggregation import InMemoryItemStore
    return InMemoryItemStore()


@pytest.fixture
def aggregate_store():
    from crowdsignal.aggregation import InMemoryAggregateStore
    return InMemoryAggregateStore()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are cached process-wide; isolate env overrides per test."""
    from crowdsignal.config import get_settings
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
