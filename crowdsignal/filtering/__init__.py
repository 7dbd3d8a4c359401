"""Quality scoring and noise filtering for raw posts."""

from crowdsignal.filtering.config import DEFAULT_FILTER_CONFIG, FilterConfig
from crowdsignal.filtering.quality import QualityBreakdown, QualityScorer
from crowdsignal.filtering.noise import (
    FilterDecision,
    NoiseFilter,
    RejectionReason,
    SpamPattern,
    VelocityLookup,
    detect_spam_patterns,
)

__all__ = [
    "DEFAULT_FILTER_CONFIG",
    "FilterConfig",
    "QualityBreakdown",
    "QualityScorer",
    "FilterDecision",
    "NoiseFilter",
    "RejectionReason",
    "SpamPattern",
    "VelocityLookup",
    "detect_spam_patterns",
]
