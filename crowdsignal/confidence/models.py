"""Confidence Data Models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Optional

import numpy as np

from crowdsignal.confidence.config import ConfidenceConfig
from crowdsignal.models import ReputationTier, ScoredItem


class ConfidenceLevel(str, Enum):
    """Discrete confidence tiers, lowest to highest."""
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @property
    def description(self) -> str:
        return self.value.replace("_", " ").title() + " Confidence"


_LEVEL_RANK = {level: i for i, level in enumerate(ConfidenceLevel)}


def confidence_level(score: float, config: Optional[ConfidenceConfig] = None) -> ConfidenceLevel:
    """Map a 0-100 score to a level. Non-decreasing in score."""
    cfg = config or ConfidenceConfig()
    if score >= cfg.very_high_threshold:
        return ConfidenceLevel.VERY_HIGH
    if score >= cfg.high_threshold:
        return ConfidenceLevel.HIGH
    if score >= cfg.medium_threshold:
        return ConfidenceLevel.MEDIUM
    if score >= cfg.low_threshold:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.VERY_LOW


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


_SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}


class RiskType(str, Enum):
    INSUFFICIENT_DATA = "insufficient_data"
    LOW_USER_QUALITY = "low_user_quality"
    POOR_CROSS_VALIDATION = "poor_cross_validation"
    NEWS_DIVERGENCE = "news_divergence"
    ECONOMIC_HEADWINDS = "economic_headwinds"
    POOR_TRACK_RECORD = "poor_track_record"


class RecommendationType(str, Enum):
    ACTION = "action"
    CAUTION = "caution"
    WARNING = "warning"
    RISK_MANAGEMENT = "risk_management"
    DATA_COLLECTION = "data_collection"
    VALIDATION = "validation"


@dataclass
class RiskFactor:
    type: RiskType
    severity: Severity
    description: str

    @property
    def severity_rank(self) -> int:
        return _SEVERITY_RANK[self.severity]

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
        }


@dataclass
class Recommendation:
    type: RecommendationType
    priority: Severity
    message: str

    @property
    def priority_rank(self) -> int:
        return _SEVERITY_RANK[self.priority]

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "priority": self.priority.value,
            "message": self.message,
        }


@dataclass
class ConfidenceComponent:
    """One scored evidence channel."""
    name: str
    score: float = 50.0
    details: dict[str, Any] = field(default_factory=dict)
    confidence_impact: str = ""
    degraded: bool = False
    error: Optional[str] = None

    def __post_init__(self) -> None:
        self.score = float(np.clip(self.score, 0.0, 100.0))

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "score": round(self.score, 2),
            "details": self.details,
            "confidence_impact": self.confidence_impact,
            "degraded": self.degraded,
            "error": self.error,
        }


@dataclass
class AuthorSummary:
    username: str
    quality_score: float
    reputation_tier: ReputationTier
    sentiment: float

    @property
    def is_expert(self) -> bool:
        return self.reputation_tier in (ReputationTier.EXPERT, ReputationTier.LEGEND)

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "quality_score": round(self.quality_score, 2),
            "reputation_tier": self.reputation_tier.value,
            "sentiment": round(self.sentiment, 2),
        }


@dataclass
class CommunitySentiment:
    count: int = 0
    avg_sentiment: float = 0.0

    def to_dict(self) -> dict:
        return {"count": self.count, "avg_sentiment": round(self.avg_sentiment, 2)}


@dataclass
class TickerSnapshot:
    """Accepted mentions of one ticker within the scoring window."""
    ticker: str
    mention_count: int = 0
    avg_sentiment: float = 0.0
    avg_quality: float = 0.0
    community_breakdown: dict[str, CommunitySentiment] = field(default_factory=dict)
    top_authors: list[AuthorSummary] = field(default_factory=list)

    @property
    def communities(self) -> list[str]:
        return sorted(self.community_breakdown)

    @property
    def data_quality(self) -> str:
        if self.mention_count == 0:
            return "insufficient"
        if self.mention_count >= 10:
            return "good"
        if self.mention_count >= 5:
            return "fair"
        return "limited"

    @classmethod
    def from_items(cls, ticker: str, items: Iterable[ScoredItem], top_n: int = 10) -> "TickerSnapshot":
        items = list(items)
        snapshot = cls(ticker=ticker.upper())
        if not items:
            return snapshot

        sentiments = np.array([i.score.sentiment_score for i in items], dtype=float)
        qualities = np.array([i.score.quality_score for i in items], dtype=float)
        snapshot.mention_count = len(items)
        snapshot.avg_sentiment = float(sentiments.mean())
        snapshot.avg_quality = float(qualities.mean())

        grouped: dict[str, list[float]] = {}
        for item in items:
            grouped.setdefault(item.community, []).append(item.score.sentiment_score)
        snapshot.community_breakdown = {
            name: CommunitySentiment(count=len(vals), avg_sentiment=float(np.mean(vals)))
            for name, vals in grouped.items()
        }

        best: dict[str, AuthorSummary] = {}
        for item in items:
            if item.author is None:
                continue
            current = best.get(item.author.username)
            if current is None or item.author.quality_score > current.quality_score:
                best[item.author.username] = AuthorSummary(
                    username=item.author.username,
                    quality_score=item.author.quality_score,
                    reputation_tier=item.author.reputation_tier,
                    sentiment=item.score.sentiment_score,
                )
        snapshot.top_authors = sorted(
            best.values(), key=lambda a: (-a.quality_score, a.username)
        )[:top_n]
        return snapshot

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "mention_count": self.mention_count,
            "avg_sentiment": round(self.avg_sentiment, 2),
            "avg_quality": round(self.avg_quality, 2),
            "communities": self.communities,
            "community_breakdown": {k: v.to_dict() for k, v in self.community_breakdown.items()},
            "top_authors": [a.to_dict() for a in self.top_authors],
            "data_quality": self.data_quality,
        }


@dataclass
class ConfidenceInsights:
    summary: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    overall_assessment: str = ""
    reliability_factors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "summary": list(self.summary),
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "overall_assessment": self.overall_assessment,
            "reliability_factors": list(self.reliability_factors),
        }


@dataclass
class ConfidenceResult:
    """Composite confidence for one ticker."""
    ticker: str
    confidence_score: float = 0.0
    level: ConfidenceLevel = ConfidenceLevel.VERY_LOW
    components: dict[str, ConfidenceComponent] = field(default_factory=dict)
    insights: ConfidenceInsights = field(default_factory=ConfidenceInsights)
    risk_factors: list[RiskFactor] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    sentiment_snapshot: Optional[TickerSnapshot] = None
    weights_used: dict[str, float] = field(default_factory=dict)
    window_hours: int = 24
    calculated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def __post_init__(self) -> None:
        self.confidence_score = float(np.clip(self.confidence_score, 0.0, 100.0))

    @property
    def degraded_components(self) -> list[str]:
        return [name for name, c in self.components.items() if c.degraded]

    @property
    def is_degraded(self) -> bool:
        return bool(self.degraded_components)

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "confidence_score": round(self.confidence_score, 2),
            "level": self.level.value,
            "level_description": self.level.description,
            "components": {k: c.to_dict() for k, c in self.components.items()},
            "degraded_components": self.degraded_components,
            "insights": self.insights.to_dict(),
            "risk_factors": [r.to_dict() for r in self.risk_factors],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "sentiment_snapshot": self.sentiment_snapshot.to_dict() if self.sentiment_snapshot else None,
            "weights_used": {k: round(v, 4) for k, v in self.weights_used.items()},
            "window_hours": self.window_hours,
            "calculated_at": self.calculated_at.isoformat(),
            "error": self.error,
        }
