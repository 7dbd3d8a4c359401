"""Confidence Scorer Configuration."""

from dataclasses import dataclass, field

from crowdsignal.resilience.config import RetryConfig

DATA_POINTS = "data_points"
USER_REPUTATION = "user_reputation"
CROSS_VALIDATION = "cross_validation"
HISTORICAL_ACCURACY = "historical_accuracy"
NEWS_CORRELATION = "news_correlation"
ECONOMIC_CONTEXT = "economic_context"

COMPONENT_ORDER = (
    DATA_POINTS,
    USER_REPUTATION,
    CROSS_VALIDATION,
    HISTORICAL_ACCURACY,
    NEWS_CORRELATION,
    ECONOMIC_CONTEXT,
)

COMPONENT_DESCRIPTIONS = {
    DATA_POINTS: "Volume and quality of community mentions",
    USER_REPUTATION: "Credibility of posting authors",
    CROSS_VALIDATION: "Consensus across multiple communities",
    HISTORICAL_ACCURACY: "Track record of sentiment direction against price moves",
    NEWS_CORRELATION: "Alignment with news sentiment",
    ECONOMIC_CONTEXT: "Support from macro-economic conditions",
}


@dataclass
class BacktestConfig:
    """Sentiment-vs-price backtest for the historical accuracy component."""
    lookback_days: int = 30
    horizon_days: int = 3
    min_abs_sentiment: float = 10.0
    materiality_pct: float = 1.0
    min_predictions: int = 5
    max_sample_bonus: float = 10.0
    # (minimum accuracy %, score), checked top-down
    accuracy_tiers: tuple = ((80.0, 90.0), (70.0, 75.0), (60.0, 60.0), (50.0, 45.0))
    floor_score: float = 20.0


@dataclass
class ConfidenceConfig:
    """Configuration for composite confidence scoring."""
    weights: dict = field(default_factory=lambda: {
        DATA_POINTS: 0.20,
        USER_REPUTATION: 0.25,
        CROSS_VALIDATION: 0.20,
        HISTORICAL_ACCURACY: 0.15,
        NEWS_CORRELATION: 0.10,
        ECONOMIC_CONTEXT: 0.10,
    })

    # Level thresholds (descending)
    very_high_threshold: float = 85.0
    high_threshold: float = 70.0
    medium_threshold: float = 50.0
    low_threshold: float = 30.0

    neutral_score: float = 50.0

    # Data points: (minimum mentions, volume points), checked top-down
    volume_tiers: tuple = ((50, 40.0), (20, 30.0), (10, 20.0), (5, 10.0))
    quality_factor: float = 0.4
    max_quality_points: float = 30.0
    points_per_community: float = 8.0
    max_diversity_points: float = 30.0

    # User reputation
    top_authors: int = 10
    reputation_factor: float = 0.6
    max_reputation_points: float = 50.0
    high_quality_author_score: float = 70.0
    high_quality_bonus: float = 30.0
    expert_bonus: float = 20.0
    no_authors_score: float = 20.0

    # Cross-validation: (minimum communities, distribution points), checked top-down
    distribution_tiers: tuple = ((5, 40.0), (3, 25.0), (2, 15.0))
    consistency_factor: float = 0.25
    consensus_band: float = 20.0
    consensus_points: float = 35.0
    single_community_score: float = 20.0

    # News correlation: base score per class
    news_base_scores: dict = field(default_factory=lambda: {
        "positive_aligned": 80.0,
        "negative_aligned": 75.0,
        "divergent": 25.0,
        "mixed": 45.0,
    })
    news_strength_factor: float = 20.0
    points_per_article: float = 2.0
    max_article_bonus: float = 15.0

    # Economic context
    macro_adjustment: float = 10.0
    opportunity_points: float = 5.0
    risk_factor_discount: float = 0.5

    # Insights
    strength_threshold: float = 75.0
    weakness_threshold: float = 35.0
    reliability_threshold: float = 70.0

    # Risk triggers
    min_mentions: int = 5
    low_user_quality_below: float = 40.0
    poor_cross_validation_below: float = 30.0
    news_divergence_below: float = 40.0
    economic_headwinds_below: float = 35.0
    poor_track_record_below: float = 40.0

    # Providers and batching
    default_window_hours: int = 24
    provider_timeout_seconds: float = 10.0
    retry: RetryConfig = field(default_factory=lambda: RetryConfig(max_retries=2, base_delay=0.5))
    batch_size: int = 3
    batch_delay_seconds: float = 1.0

    # Result cache
    cache_ttl_seconds: float = 300.0
    cache_max_size: int = 512

    backtest: BacktestConfig = field(default_factory=BacktestConfig)


DEFAULT_CONFIDENCE_CONFIG = ConfidenceConfig()
