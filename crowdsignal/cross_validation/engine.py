"""Cross-Validation Engine.

Re-queries each target community for mentions of a ticker and decides
whether the signal is corroborated by independent communities. A
per-community failure is recorded on that community's entry; if every
community fails the result says so instead of raising.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Union

import numpy as np

from crowdsignal.config import CommunityConfig
from crowdsignal.cross_validation.config import CrossValidationConfig
from crowdsignal.providers.base import PlatformSearchProvider, SearchResult
from crowdsignal.resilience import call_provider, gather_bounded

logger = logging.getLogger(__name__)


class ValidationReason(str, Enum):
    """Why a ticker is or is not cross-validated."""
    VALIDATED = "validated"
    INSUFFICIENT_COMMUNITIES = "insufficient_communities"
    INSUFFICIENT_MENTIONS = "insufficient_mentions"
    NO_DATA = "no_data"


@dataclass
class CommunityValidation:
    """Mentions of the ticker in one community."""
    community: str
    mention_count: int = 0
    avg_engagement: float = 0.0
    confidence_score: float = 0.0
    error: Optional[str] = None

    @property
    def has_hits(self) -> bool:
        return self.error is None and self.mention_count > 0

    def to_dict(self) -> dict:
        return {
            "community": self.community,
            "mention_count": self.mention_count,
            "avg_engagement": round(self.avg_engagement, 2),
            "confidence_score": round(self.confidence_score, 2),
            "error": self.error,
        }


@dataclass
class CrossValidationResult:
    """Outcome of validating one ticker across communities."""
    ticker: str
    window_hours: int = 24
    per_community: list[CommunityValidation] = field(default_factory=list)
    cross_validation_score: float = 0.0
    is_validated: bool = False
    reason: ValidationReason = ValidationReason.NO_DATA
    all_failed: bool = False
    validated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def communities_checked(self) -> int:
        return len(self.per_community)

    @property
    def communities_with_hits(self) -> int:
        return sum(1 for c in self.per_community if c.has_hits)

    @property
    def total_mentions(self) -> int:
        return sum(c.mention_count for c in self.per_community if c.has_hits)

    @property
    def errors(self) -> dict[str, str]:
        return {c.community: c.error for c in self.per_community if c.error}

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "window_hours": self.window_hours,
            "per_community": [c.to_dict() for c in self.per_community],
            "communities_checked": self.communities_checked,
            "communities_with_hits": self.communities_with_hits,
            "total_mentions": self.total_mentions,
            "cross_validation_score": round(self.cross_validation_score, 2),
            "is_validated": self.is_validated,
            "reason": self.reason.value,
            "all_failed": self.all_failed,
            "validated_at": self.validated_at.isoformat(),
        }


class CrossValidationEngine:
    """Corroborates ticker mentions across communities.

    Example:
        engine = CrossValidationEngine(search_provider, communities)
        result = await engine.validate("AAPL", window_hours=24)
        if result.is_validated:
            print(result.cross_validation_score)
    """

    def __init__(
        self,
        search_provider: PlatformSearchProvider,
        communities: Optional[Iterable[Union[CommunityConfig, str]]] = None,
        config: Optional[CrossValidationConfig] = None,
    ):
        self.search_provider = search_provider
        self.config = config or CrossValidationConfig()
        self._communities: list[CommunityConfig] = []
        if communities is not None:
            self.set_communities(communities)

    def set_communities(self, communities: Iterable[Union[CommunityConfig, str]]) -> None:
        self._communities = [
            c if isinstance(c, CommunityConfig) else CommunityConfig(name=c)
            for c in communities
        ]

    @property
    def active_communities(self) -> list[str]:
        return [c.name for c in self._communities if c.is_active]

    def community_confidence(self, search: SearchResult) -> float:
        """min(100, mentions*10 + avg_engagement/10); zero without hits."""
        if search.mention_count <= 0:
            return 0.0
        cfg = self.config
        score = search.mention_count * cfg.points_per_mention + search.avg_engagement / cfg.engagement_divisor
        return float(min(100.0, max(0.0, score)))

    async def validate(
        self,
        ticker: str,
        communities: Optional[Iterable[str]] = None,
        window_hours: Optional[int] = None,
    ) -> CrossValidationResult:
        """Validate a ticker across communities.

        Args:
            ticker: Ticker symbol.
            communities: Target communities. Defaults to the active ones.
            window_hours: Lookback window.

        Returns:
            CrossValidationResult; never raises for provider failures.
        """
        ticker = ticker.upper()
        window = window_hours or self.config.default_window_hours
        targets = [c.lower() for c in communities] if communities is not None else self.active_communities
        targets = list(dict.fromkeys(targets))

        result = CrossValidationResult(ticker=ticker, window_hours=window)
        if not targets:
            logger.warning("No communities to cross-validate %s against", ticker)
            return result

        async def search(community: str) -> SearchResult:
            return await call_provider(
                self.search_provider.search_community_for_ticker,
                community, ticker, window,
                provider=f"search:{community}",
                timeout=self.config.timeout_seconds,
                retry_config=self.config.retry,
            )

        outcome = await gather_bounded(
            targets, search, limit=self.config.fan_out, wave_delay=self.config.wave_delay
        )

        entries: dict[str, CommunityValidation] = {}
        for community, found in outcome.succeeded:
            entries[community] = CommunityValidation(
                community=community,
                mention_count=found.mention_count,
                avg_engagement=found.avg_engagement,
                confidence_score=self.community_confidence(found),
            )
        for failure in outcome.failed:
            logger.warning(
                "Cross-validation query failed for %s in %s: %s",
                ticker, failure.item, failure.error,
            )
            entries[failure.item] = CommunityValidation(community=failure.item, error=failure.error)

        result.per_community = [entries[c] for c in targets if c in entries]
        self._score(result)
        return result

    def _score(self, result: CrossValidationResult) -> None:
        cfg = self.config
        if result.per_community and all(c.error for c in result.per_community):
            result.all_failed = True
            result.reason = ValidationReason.NO_DATA
            return

        hits = [c.confidence_score for c in result.per_community if c.has_hits]
        if hits:
            score = float(np.mean(hits))
            if len(hits) < cfg.min_communities:
                score *= cfg.single_community_penalty
            result.cross_validation_score = min(100.0, score)

        if len(hits) < cfg.min_communities:
            result.reason = ValidationReason.INSUFFICIENT_COMMUNITIES
        elif result.total_mentions < cfg.min_total_mentions:
            result.reason = ValidationReason.INSUFFICIENT_MENTIONS
        else:
            result.is_validated = True
            result.reason = ValidationReason.VALIDATED
