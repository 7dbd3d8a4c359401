"""Author Reputation.

Derives an author quality score and reputation tier from account
activity, for authors the reputation store has not already scored.
Also flags activity patterns typical of bots and shill accounts.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional

from crowdsignal.models import AuthorProfile, ReputationTier, clamp

logger = logging.getLogger(__name__)

# (min score, tier), checked in descending order
TIER_THRESHOLDS = (
    (90.0, ReputationTier.LEGEND),
    (80.0, ReputationTier.EXPERT),
    (65.0, ReputationTier.ADVANCED),
    (45.0, ReputationTier.INTERMEDIATE),
)


@dataclass
class AuthorActivity:
    """Observed posting activity for an author."""
    username: str = ""
    account_age_days: float = 0.0
    karma: int = 0
    post_count: int = 0
    finance_post_frequency: float = 0.0  # 0-1, share of posts in finance communities
    predictions_made: int = 0
    correct_predictions: int = 0

    @property
    def accuracy_score(self) -> float:
        if self.predictions_made == 0:
            return 0.0
        return self.correct_predictions / self.predictions_made * 100


def compute_quality_score(
    account_age_days: float,
    karma: int,
    finance_post_frequency: float = 0.0,
    accuracy_score: float = 0.0,
) -> float:
    """Weighted author quality score in [0, 100].

    Account age saturates at one year, karma is log-scaled.
    """
    age_score = min(100.0, max(0.0, account_age_days) / 365 * 100)
    karma_score = min(100.0, math.log10(max(1, karma + 1)) * 20)
    finance_score = clamp(finance_post_frequency, 0.0, 1.0) * 100
    score = (
        age_score * 0.2
        + karma_score * 0.3
        + finance_score * 0.3
        + clamp(accuracy_score, 0.0, 100.0) * 0.2
    )
    return clamp(score, 0.0, 100.0)


def tier_for_score(score: float) -> ReputationTier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return ReputationTier.NOVICE


def profile_from_activity(activity: AuthorActivity) -> AuthorProfile:
    """Build an AuthorProfile from raw activity."""
    score = compute_quality_score(
        activity.account_age_days,
        activity.karma,
        activity.finance_post_frequency,
        activity.accuracy_score,
    )
    return AuthorProfile(
        username=activity.username,
        account_age_days=activity.account_age_days,
        karma=activity.karma,
        quality_score=score,
        reputation_tier=tier_for_score(score),
    )


def suspicious_activity_flags(
    activity: AuthorActivity,
    quality_score: Optional[float] = None,
) -> list[str]:
    """Return flags for bot-like or shill-like posting patterns."""
    if quality_score is None:
        quality_score = profile_from_activity(activity).quality_score

    flags = []
    if activity.account_age_days < 30 and activity.post_count > 100:
        flags.append("new_account_high_activity")
    if activity.karma > 10000 and quality_score < 30:
        flags.append("high_karma_low_quality")
    if activity.post_count / max(1.0, activity.account_age_days) > 10:
        flags.append("extremely_high_frequency")
    if activity.finance_post_frequency > 0.95 and activity.post_count > 50:
        flags.append("finance_only_posting")

    if flags:
        logger.debug("Suspicious activity for %s: %s", activity.username, flags)
    return flags
