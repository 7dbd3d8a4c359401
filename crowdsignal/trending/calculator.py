"""Trending / Ranking Calculator.

Ranks tickers by a composite of mention volume, sentiment magnitude,
quality, community spread and engagement, boosted when the ticker is
cross-validated. Tickers whose validation failed stay in the ranking
under a reduced formula with the failure recorded.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

import numpy as np

from crowdsignal.aggregation.store import ItemStore
from crowdsignal.cross_validation.engine import CrossValidationEngine, CrossValidationResult
from crowdsignal.models import ScoredItem, utcnow
from crowdsignal.resilience import gather_bounded
from crowdsignal.trending.config import TrendingConfig

logger = logging.getLogger(__name__)


@dataclass
class TickerActivity:
    """Accepted mentions of one ticker inside the ranking window."""
    ticker: str
    mention_count: int = 0
    avg_sentiment: float = 0.0
    avg_quality: float = 0.0
    communities: list[str] = field(default_factory=list)
    total_upvotes: int = 0
    total_comments: int = 0
    latest_mention: Optional[datetime] = None

    @property
    def community_count(self) -> int:
        return len(self.communities)

    @property
    def engagement(self) -> int:
        return self.total_upvotes + self.total_comments

    @classmethod
    def from_items(cls, ticker: str, items: list[ScoredItem]) -> "TickerActivity":
        return cls(
            ticker=ticker,
            mention_count=len(items),
            avg_sentiment=float(np.mean([i.score.sentiment_score for i in items])),
            avg_quality=float(np.mean([i.score.quality_score for i in items])),
            communities=sorted({i.community for i in items}),
            total_upvotes=sum(i.item.upvotes for i in items),
            total_comments=sum(i.item.comments for i in items),
            latest_mention=max(i.created_at for i in items),
        )


@dataclass
class TrendingScoreResult:
    """One ranked ticker."""
    ticker: str
    trending_score: float = 0.0
    is_cross_validated: bool = False
    cross_validation_score: float = 0.0
    mention_count: int = 0
    avg_sentiment: float = 0.0
    avg_quality: float = 0.0
    community_count: int = 0
    communities: list[str] = field(default_factory=list)
    engagement: int = 0
    latest_mention: Optional[datetime] = None
    rank: int = 0
    degraded: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "trending_score": round(self.trending_score, 2),
            "is_cross_validated": self.is_cross_validated,
            "cross_validation_score": round(self.cross_validation_score, 2),
            "mention_count": self.mention_count,
            "avg_sentiment": round(self.avg_sentiment, 2),
            "avg_quality": round(self.avg_quality, 2),
            "community_count": self.community_count,
            "communities": list(self.communities),
            "engagement": self.engagement,
            "latest_mention": self.latest_mention.isoformat() if self.latest_mention else None,
            "rank": self.rank,
            "degraded": self.degraded,
            "error": self.error,
        }


class TrendingCalculator:
    """Computes ranked trending tickers.

    Example:
        calc = TrendingCalculator(item_store, validation_engine)
        for row in await calc.rank(limit=10):
            print(row.rank, row.ticker, row.trending_score)
    """

    def __init__(
        self,
        item_store: ItemStore,
        validation_engine: Optional[CrossValidationEngine] = None,
        config: Optional[TrendingConfig] = None,
    ):
        self.item_store = item_store
        self.validation_engine = validation_engine
        self.config = config or TrendingConfig()

    def score(self, activity: TickerActivity, is_cross_validated: bool) -> float:
        cfg = self.config
        score = (
            activity.mention_count * cfg.mention_weight
            + abs(activity.avg_sentiment) * cfg.sentiment_weight
            + activity.avg_quality * cfg.quality_weight
            + activity.community_count * cfg.community_weight
            + activity.engagement / cfg.engagement_divisor * cfg.engagement_weight
        )
        if is_cross_validated:
            score *= cfg.cross_validated_boost
        return score

    def degraded_score(self, activity: TickerActivity) -> float:
        cfg = self.config
        return (
            activity.mention_count * cfg.degraded_mention_weight
            + abs(activity.avg_sentiment) * cfg.degraded_sentiment_weight
        )

    async def collect(
        self,
        window_hours: int,
        min_mentions: int,
        min_quality: float,
        now: datetime,
    ) -> list[TickerActivity]:
        """Per-ticker activity passing the mention and quality floors."""
        items = await self.item_store.query(since=now - timedelta(hours=window_hours))
        grouped: dict[str, list[ScoredItem]] = {}
        for item in items:
            for ticker in item.tickers:
                grouped.setdefault(ticker.upper(), []).append(item)

        activities = [TickerActivity.from_items(t, group) for t, group in grouped.items()]
        return [
            a for a in activities
            if a.mention_count >= min_mentions and a.avg_quality >= min_quality
        ]

    async def rank(
        self,
        limit: Optional[int] = None,
        window_hours: Optional[int] = None,
        min_mentions: Optional[int] = None,
        min_quality: Optional[float] = None,
        require_cross_validation: bool = False,
        now: Optional[datetime] = None,
    ) -> list[TrendingScoreResult]:
        """Rank trending tickers.

        Args:
            limit: Maximum results.
            window_hours: Lookback window.
            min_mentions: Minimum accepted mentions in the window.
            min_quality: Minimum average quality.
            require_cross_validation: Drop tickers that are not validated.
            now: Reference time.

        Returns:
            Results sorted by trending score descending, ranks starting at 1.
        """
        cfg = self.config
        limit = limit or cfg.default_limit
        window = window_hours or cfg.default_window_hours
        now = now or utcnow()

        activities = await self.collect(
            window,
            cfg.min_mentions if min_mentions is None else min_mentions,
            cfg.min_quality if min_quality is None else min_quality,
            now,
        )
        activities.sort(key=lambda a: (-a.mention_count, -a.avg_sentiment, a.ticker))
        candidates = activities[: limit * cfg.candidate_multiplier]

        validations: dict[str, CrossValidationResult] = {}
        failures: dict[str, str] = {}
        if self.validation_engine is not None and candidates:
            outcome = await gather_bounded(
                [a.ticker for a in candidates],
                lambda t: self.validation_engine.validate(t, window_hours=window),
                limit=cfg.fan_out,
                wave_delay=cfg.wave_delay,
            )
            for ticker, validation in outcome.succeeded:
                if validation.all_failed:
                    failures[ticker] = "; ".join(
                        f"{c}: {e}" for c, e in sorted(validation.errors.items())
                    ) or "all communities failed"
                else:
                    validations[ticker] = validation
            for failure in outcome.failed:
                failures[failure.item] = failure.error

        results = []
        for activity in candidates:
            result = TrendingScoreResult(
                ticker=activity.ticker,
                mention_count=activity.mention_count,
                avg_sentiment=activity.avg_sentiment,
                avg_quality=activity.avg_quality,
                community_count=activity.community_count,
                communities=list(activity.communities),
                engagement=activity.engagement,
                latest_mention=activity.latest_mention,
            )
            if activity.ticker in failures:
                result.degraded = True
                result.error = failures[activity.ticker]
                result.trending_score = round(self.degraded_score(activity), 2)
                logger.warning("Trending score for %s degraded: %s", activity.ticker, result.error)
            else:
                validation = validations.get(activity.ticker)
                if validation is not None:
                    result.is_cross_validated = validation.is_validated
                    result.cross_validation_score = validation.cross_validation_score
                result.trending_score = round(self.score(activity, result.is_cross_validated), 2)

            if require_cross_validation and not result.is_cross_validated:
                continue
            results.append(result)

        results.sort(key=lambda r: (-r.trending_score, r.ticker))
        results = results[:limit]
        for rank, result in enumerate(results, start=1):
            result.rank = rank

        logger.info("Ranked %d trending tickers from %d candidates", len(results), len(candidates))
        return results
