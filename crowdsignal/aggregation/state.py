"""Per-ticker Aggregate State."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class MentionCount:
    total: int = 0
    last_24h: int = 0
    last_7d: int = 0

    def to_dict(self) -> dict:
        return {"total": self.total, "last_24h": self.last_24h, "last_7d": self.last_7d}


@dataclass
class SentimentTrend:
    """Exponentially blended sentiment for a ticker."""
    current: float = 0.0
    previous: float = 0.0
    change: float = 0.0
    confidence: float = 0.0

    def to_dict(self) -> dict:
        return {
            "current": round(self.current, 2),
            "previous": round(self.previous, 2),
            "change": round(self.change, 2),
            "confidence": round(self.confidence, 4),
        }


@dataclass
class CommunityStats:
    """Running mention count and average sentiment for one community."""
    count: int = 0
    avg_sentiment: float = 0.0

    def add(self, sentiment: float) -> None:
        self.avg_sentiment = (self.avg_sentiment * self.count + sentiment) / (self.count + 1)
        self.count += 1

    def to_dict(self) -> dict:
        return {"count": self.count, "avg_sentiment": round(self.avg_sentiment, 2)}


@dataclass
class EntityAggregateState:
    """Rolling aggregate for one ticker.

    `version` increments on every persisted write and backs the store's
    optimistic concurrency check.
    """
    ticker: str
    mention_count: MentionCount = field(default_factory=MentionCount)
    sentiment_trend: SentimentTrend = field(default_factory=SentimentTrend)
    quality_mention_count: int = 0
    community_breakdown: dict[str, CommunityStats] = field(default_factory=dict)
    last_updated_at: Optional[datetime] = None
    version: int = 0

    @property
    def quality_mention_ratio(self) -> float:
        if self.mention_count.total == 0:
            return 0.0
        return self.quality_mention_count / self.mention_count.total

    @property
    def community_count(self) -> int:
        return len(self.community_breakdown)

    def copy(self) -> "EntityAggregateState":
        return EntityAggregateState(
            ticker=self.ticker,
            mention_count=MentionCount(**vars(self.mention_count)),
            sentiment_trend=SentimentTrend(**vars(self.sentiment_trend)),
            quality_mention_count=self.quality_mention_count,
            community_breakdown={
                name: CommunityStats(stats.count, stats.avg_sentiment)
                for name, stats in self.community_breakdown.items()
            },
            last_updated_at=self.last_updated_at,
            version=self.version,
        )

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "mention_count": self.mention_count.to_dict(),
            "sentiment_trend": self.sentiment_trend.to_dict(),
            "quality_mention_count": self.quality_mention_count,
            "quality_mention_ratio": round(self.quality_mention_ratio, 4),
            "community_breakdown": {
                name: stats.to_dict() for name, stats in self.community_breakdown.items()
            },
            "last_updated_at": self.last_updated_at.isoformat() if self.last_updated_at else None,
            "version": self.version,
        }
