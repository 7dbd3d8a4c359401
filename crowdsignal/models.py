"""Core data models.

Raw platform items, author reputation snapshots, and the per-item score
produced by the quality and noise filter.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from crowdsignal.errors import MalformedItemError

DEFAULT_DECAY_HOURS = 24.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def time_decay(age_hours: float, decay_hours: float = DEFAULT_DECAY_HOURS) -> float:
    """Exponential recency weight exp(-age/decay_hours), capped at 1.0."""
    if age_hours <= 0:
        return 1.0
    return min(1.0, math.exp(-age_hours / decay_hours))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class ReputationTier(str, Enum):
    """Author reputation tiers, lowest to highest."""
    NOVICE = "novice"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    LEGEND = "legend"


def _parse_timestamp(value: Any, item_id: str) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise MalformedItemError(f"Unparsable created_at: {value!r}", item_id) from exc
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise MalformedItemError(f"Missing or invalid created_at: {value!r}", item_id)


def _parse_count(payload: dict, key: str, item_id: str) -> int:
    value = payload.get(key, 0)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedItemError(f"Field {key!r} must be numeric, got {value!r}", item_id)
    return int(value)


@dataclass(frozen=True)
class RawItem:
    """A post as fetched from a community. Immutable once fetched."""

    item_id: str
    community: str
    title: str
    body: str
    author: str
    upvotes: int
    comments: int
    awards: int
    created_at: datetime
    flair: str = ""

    @property
    def text(self) -> str:
        return f"{self.title} {self.body}".strip()

    @property
    def char_count(self) -> int:
        return len(self.title) + len(self.body)

    @property
    def engagement(self) -> int:
        return self.upvotes + self.comments

    def age_hours(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        return max(0.0, (now - self.created_at).total_seconds() / 3600.0)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "RawItem":
        """Parse a platform payload.

        Accepts both the core field names and the platform client's
        aliases (reddit_id, subreddit, content, created_utc, author_flair).

        Raises:
            MalformedItemError: If required fields are missing or mistyped.
        """
        if not isinstance(payload, dict):
            raise MalformedItemError(f"Item payload must be a dict, got {type(payload).__name__}")

        item_id = str(payload.get("item_id") or payload.get("id") or payload.get("reddit_id") or "")
        if not item_id:
            raise MalformedItemError("Item has no id")

        community = payload.get("community") or payload.get("subreddit")
        author = payload.get("author")
        title = payload.get("title")
        body = payload.get("body", payload.get("content", ""))

        if not isinstance(community, str) or not community:
            raise MalformedItemError("Item has no community", item_id)
        if not isinstance(author, str) or not author:
            raise MalformedItemError("Item has no author", item_id)
        if not isinstance(title, str):
            raise MalformedItemError("Item title must be a string", item_id)
        if body is None:
            body = ""
        if not isinstance(body, str):
            raise MalformedItemError("Item body must be a string", item_id)

        created = payload.get("created_at", payload.get("created_utc"))

        return cls(
            item_id=item_id,
            community=community.lower(),
            title=title,
            body=body,
            author=author,
            upvotes=_parse_count(payload, "upvotes", item_id),
            comments=_parse_count(payload, "comments", item_id),
            awards=_parse_count(payload, "awards", item_id),
            created_at=_parse_timestamp(created, item_id),
            flair=str(payload.get("flair") or payload.get("author_flair") or ""),
        )

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "community": self.community,
            "title": self.title,
            "author": self.author,
            "upvotes": self.upvotes,
            "comments": self.comments,
            "awards": self.awards,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class AuthorProfile:
    """Reputation snapshot for a poster."""

    username: str = ""
    account_age_days: float = 0.0
    karma: int = 0
    quality_score: float = 0.0
    reputation_tier: ReputationTier = ReputationTier.NOVICE

    @property
    def is_high_quality(self) -> bool:
        return self.quality_score >= 70

    @property
    def is_expert(self) -> bool:
        return self.reputation_tier in (ReputationTier.EXPERT, ReputationTier.LEGEND)

    @classmethod
    def default(cls, username: str) -> "AuthorProfile":
        """Conservative profile for authors unknown to the reputation store."""
        from crowdsignal.reputation import compute_quality_score, tier_for_score

        score = compute_quality_score(account_age_days=30, karma=100)
        return cls(
            username=username,
            account_age_days=30,
            karma=100,
            quality_score=score,
            reputation_tier=tier_for_score(score),
        )

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "account_age_days": self.account_age_days,
            "karma": self.karma,
            "quality_score": round(self.quality_score, 2),
            "reputation_tier": self.reputation_tier.value,
        }


@dataclass
class ItemScore:
    """Scores attached to one item at ingestion."""

    quality_score: float = 0.0
    passes_filter: bool = False
    sentiment_score: float = 0.0
    sentiment_confidence: float = 0.0
    decay_factor: float = 1.0
    rejection_reasons: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.quality_score = clamp(self.quality_score, 0.0, 100.0)
        self.sentiment_score = clamp(self.sentiment_score, -100.0, 100.0)
        self.sentiment_confidence = clamp(self.sentiment_confidence, 0.0, 1.0)
        self.decay_factor = clamp(self.decay_factor, 0.0, 1.0)

    def to_dict(self) -> dict:
        return {
            "quality_score": round(self.quality_score, 2),
            "passes_filter": self.passes_filter,
            "sentiment_score": round(self.sentiment_score, 2),
            "sentiment_confidence": round(self.sentiment_confidence, 2),
            "decay_factor": round(self.decay_factor, 4),
            "rejection_reasons": list(self.rejection_reasons),
        }


@dataclass
class ScoredItem:
    """A raw item with its tickers, score and author snapshot."""

    item: RawItem
    tickers: list[str] = field(default_factory=list)
    score: ItemScore = field(default_factory=ItemScore)
    author: Optional[AuthorProfile] = None

    @property
    def item_id(self) -> str:
        return self.item.item_id

    @property
    def community(self) -> str:
        return self.item.community

    @property
    def created_at(self) -> datetime:
        return self.item.created_at

    @property
    def accepted(self) -> bool:
        return self.score.passes_filter

    def refresh_decay(self, now: Optional[datetime] = None) -> float:
        """Recompute the decay factor for the current time."""
        self.score.decay_factor = time_decay(self.item.age_hours(now))
        return self.score.decay_factor

    def to_dict(self) -> dict:
        return {
            **self.item.to_dict(),
            "tickers": list(self.tickers),
            **self.score.to_dict(),
            "author_quality": round(self.author.quality_score, 2) if self.author else None,
        }
