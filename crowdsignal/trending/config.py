"""Trending Calculator Configuration."""

from dataclasses import dataclass


@dataclass
class TrendingConfig:
    """Configuration for trending scores and ranking."""
    # Composite weights
    mention_weight: float = 0.30
    sentiment_weight: float = 0.25
    quality_weight: float = 0.20
    community_weight: float = 0.15
    engagement_weight: float = 0.10
    engagement_divisor: float = 100.0
    cross_validated_boost: float = 1.3

    # Fallback when cross-validation failed
    degraded_mention_weight: float = 0.5
    degraded_sentiment_weight: float = 0.3

    # Candidate filtering
    min_mentions: int = 3
    min_quality: float = 30.0
    default_limit: int = 20
    candidate_multiplier: int = 2
    default_window_hours: int = 24

    # Cross-validation fan-out
    fan_out: int = 3
    wave_delay: float = 0.0


DEFAULT_TRENDING_CONFIG = TrendingConfig()
