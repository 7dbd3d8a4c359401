"""Collaborator Protocols.

In-process call contracts for everything the core consumes but does not
implement: the platform client, reputation store, and the enrichment
providers (platform search, news, macro, price history, AI sentiment).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

from crowdsignal.models import AuthorProfile, RawItem
from crowdsignal.text.sentiment import SentimentReading


class CorrelationClass(str, Enum):
    """Alignment between community sentiment and news sentiment."""
    POSITIVE_ALIGNED = "positive_aligned"
    NEGATIVE_ALIGNED = "negative_aligned"
    DIVERGENT = "divergent"
    MIXED = "mixed"


class MacroAssessment(str, Enum):
    """Overall macro-economic assessment."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass
class SearchResult:
    """Mentions of a ticker found in one community."""
    mention_count: int = 0
    avg_engagement: float = 0.0
    sample_posts: list = field(default_factory=list)

    @classmethod
    def from_items(cls, items: Sequence[RawItem], sample_size: int = 5) -> "SearchResult":
        """Summarize matching items: avg engagement is (upvotes+comments)/count."""
        if not items:
            return cls()
        total = sum(i.upvotes + i.comments for i in items)
        return cls(
            mention_count=len(items),
            avg_engagement=total / len(items),
            sample_posts=list(items[:sample_size]),
        )


@dataclass
class NewsCorrelation:
    correlation_class: CorrelationClass = CorrelationClass.MIXED
    strength: float = 0.0  # -1 to 1
    article_count: int = 0
    news_sentiment: Optional[float] = None


@dataclass
class EconomicCorrelation:
    overall_assessment: MacroAssessment = MacroAssessment.NEUTRAL
    risk_factors: list = field(default_factory=list)
    opportunities: list = field(default_factory=list)


@dataclass
class PricePoint:
    timestamp: datetime
    close: float


@runtime_checkable
class PlatformClient(Protocol):
    """Fetches recent posts from one community."""

    async def fetch_posts(
        self, community: str, limit: int
    ) -> Sequence[Union[RawItem, dict[str, Any]]]:
        ...


@runtime_checkable
class ReputationStore(Protocol):
    async def get_profile(self, username: str) -> Optional[AuthorProfile]:
        ...


@runtime_checkable
class PlatformSearchProvider(Protocol):
    async def search_community_for_ticker(
        self, community: str, ticker: str, window_hours: int
    ) -> SearchResult:
        ...


@runtime_checkable
class NewsProvider(Protocol):
    async def get_news_correlation(
        self, ticker: str, sentiment: float, window_hours: int
    ) -> NewsCorrelation:
        ...


@runtime_checkable
class EconomicProvider(Protocol):
    async def get_economic_correlation(
        self, ticker: str, sentiment: float
    ) -> Optional[EconomicCorrelation]:
        ...


@runtime_checkable
class PriceProvider(Protocol):
    async def get_historical_price_series(self, ticker: str) -> Sequence[PricePoint]:
        ...


@runtime_checkable
class SentimentProvider(Protocol):
    """AI-based text sentiment."""

    async def analyze(self, text: str) -> SentimentReading:
        ...
