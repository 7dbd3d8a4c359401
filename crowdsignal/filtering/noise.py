"""Noise Filter.

Hard accept/reject decision for a scored post. Checks run in a fixed
order: engagement minimums, quality threshold, excluded flairs, keyword
filters, minimum length, spam heuristics and finally velocity abuse.
Rejection is all-or-nothing; the decision still lists every failed check
so rejected posts can be diagnosed.

Everything but the velocity lookback is pure. The lookback is an injected
VelocityLookup and is only consulted once every other check has passed.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Protocol, runtime_checkable

from crowdsignal.config import CommunityConfig
from crowdsignal.filtering.config import FilterConfig
from crowdsignal.models import RawItem, utcnow

logger = logging.getLogger(__name__)

_EMOJI_RE = re.compile(
    "[\U0001F600-\U0001F64F"
    "\U0001F300-\U0001F5FF"
    "\U0001F680-\U0001F6FF"
    "\U0001F900-\U0001F9FF"
    "\U0001F1E0-\U0001F1FF]"
)


class RejectionReason(str, Enum):
    """Why the noise filter rejected a post."""
    BELOW_MIN_UPVOTES = "below_min_upvotes"
    BELOW_MIN_COMMENTS = "below_min_comments"
    BELOW_QUALITY_THRESHOLD = "below_quality_threshold"
    EXCLUDED_FLAIR = "excluded_flair"
    KEYWORD_MISMATCH = "keyword_mismatch"
    TOO_SHORT = "too_short"
    SPAM_PATTERN = "spam_pattern"
    AUTHOR_VELOCITY = "author_velocity"
    COMMUNITY_VELOCITY = "community_velocity"


class SpamPattern(str, Enum):
    """Detected spam heuristics."""
    REPEATED_WORD = "repeated_word"
    EXCESSIVE_CAPS = "excessive_caps"
    EMOJI_DENSITY = "emoji_density"


@runtime_checkable
class VelocityLookup(Protocol):
    """Trailing-window post counts, typically backed by the item store."""

    async def count_author_posts(self, author: str, community: str, since: datetime) -> int:
        ...

    async def count_community_posts(self, community: str, since: datetime) -> int:
        ...


@dataclass
class FilterDecision:
    """Outcome of the noise filter for one post."""
    passed: bool = False
    reasons: list[RejectionReason] = field(default_factory=list)
    spam_patterns: list[SpamPattern] = field(default_factory=list)
    velocity_checked: bool = False

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "reasons": [r.value for r in self.reasons],
            "spam_patterns": [p.value for p in self.spam_patterns],
            "velocity_checked": self.velocity_checked,
        }


def detect_spam_patterns(text: str, config: Optional[FilterConfig] = None) -> list[SpamPattern]:
    """Return every spam heuristic the text trips.

    Args:
        text: Combined title and body, original case.
        config: Ratios and minimum lengths.
    """
    cfg = config or FilterConfig()
    tokens = text.split()
    if not tokens:
        return []

    patterns = []

    counts = Counter(t.lower() for t in tokens if len(t) >= cfg.repeat_min_word_length)
    top = max(counts.values(), default=0)
    if top >= 2 and top > len(tokens) * cfg.repeat_ratio:
        patterns.append(SpamPattern.REPEATED_WORD)

    if len(text) >= cfg.caps_min_length:
        caps = sum(1 for ch in text if "A" <= ch <= "Z")
        if caps / len(text) > cfg.caps_ratio:
            patterns.append(SpamPattern.EXCESSIVE_CAPS)

    emoji_count = len(_EMOJI_RE.findall(text))
    if emoji_count > len(tokens) * cfg.emoji_ratio:
        patterns.append(SpamPattern.EMOJI_DENSITY)

    return patterns


class NoiseFilter:
    """Accept/reject gate for scored posts.

    Example:
        noise = NoiseFilter(velocity=item_store)
        decision = await noise.evaluate(item, quality, community)
        if not decision.passed:
            print([r.value for r in decision.reasons])
    """

    def __init__(
        self,
        config: Optional[FilterConfig] = None,
        velocity: Optional[VelocityLookup] = None,
    ):
        self.config = config or FilterConfig()
        self.velocity = velocity

    def static_checks(
        self, item: RawItem, quality_score: float, community: CommunityConfig
    ) -> FilterDecision:
        """All checks that need no lookback, in filter order."""
        reasons: list[RejectionReason] = []

        if item.upvotes < community.min_upvotes:
            reasons.append(RejectionReason.BELOW_MIN_UPVOTES)
        if item.comments < community.min_comments:
            reasons.append(RejectionReason.BELOW_MIN_COMMENTS)
        if quality_score < community.quality_threshold:
            reasons.append(RejectionReason.BELOW_QUALITY_THRESHOLD)

        flair = item.flair.lower()
        if flair and any(excluded in flair for excluded in community.excluded_flairs):
            reasons.append(RejectionReason.EXCLUDED_FLAIR)

        if community.keyword_filters:
            lowered = item.text.lower()
            if not any(k in lowered for k in community.keyword_filters):
                reasons.append(RejectionReason.KEYWORD_MISMATCH)

        if item.char_count < self.config.min_chars:
            reasons.append(RejectionReason.TOO_SHORT)

        patterns = detect_spam_patterns(f"{item.title} {item.body}", self.config)
        if patterns:
            reasons.append(RejectionReason.SPAM_PATTERN)

        return FilterDecision(passed=not reasons, reasons=reasons, spam_patterns=patterns)

    async def evaluate(
        self,
        item: RawItem,
        quality_score: float,
        community: CommunityConfig,
        now: Optional[datetime] = None,
    ) -> FilterDecision:
        """Full decision including the velocity lookback."""
        decision = self.static_checks(item, quality_score, community)
        if not decision.passed or self.velocity is None:
            return decision

        since = (now or utcnow()) - timedelta(minutes=self.config.velocity_window_minutes)
        decision.velocity_checked = True

        author_posts = await self.velocity.count_author_posts(item.author, community.name, since)
        if author_posts > self.config.author_max_posts_per_hour:
            decision.reasons.append(RejectionReason.AUTHOR_VELOCITY)
        else:
            community_posts = await self.velocity.count_community_posts(community.name, since)
            if community_posts > community.max_posts_per_hour:
                decision.reasons.append(RejectionReason.COMMUNITY_VELOCITY)

        if decision.reasons:
            decision.passed = False
            logger.debug(
                "Velocity rejection for %s by %s: %s",
                item.item_id, item.author, [r.value for r in decision.reasons],
            )
        return decision
