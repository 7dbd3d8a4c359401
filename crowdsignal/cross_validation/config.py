"""Cross-Validation Configuration."""

from dataclasses import dataclass, field

from crowdsignal.resilience.config import RetryConfig


@dataclass
class CrossValidationConfig:
    """Configuration for cross-community validation."""
    # Validation rule
    min_communities: int = 2
    min_total_mentions: int = 3

    # Per-community confidence = min(100, mentions*10 + avg_engagement/10)
    points_per_mention: float = 10.0
    engagement_divisor: float = 10.0
    single_community_penalty: float = 0.5

    # Provider fan-out
    fan_out: int = 3
    wave_delay: float = 0.0
    timeout_seconds: float = 10.0
    retry: RetryConfig = field(default_factory=lambda: RetryConfig(max_retries=2, base_delay=0.5))

    default_window_hours: int = 24


DEFAULT_CROSS_VALIDATION_CONFIG = CrossValidationConfig()
