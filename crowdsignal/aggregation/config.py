"""Aggregator Configuration."""

from dataclasses import dataclass


@dataclass
class AggregatorConfig:
    """Configuration for per-ticker aggregation."""
    quality_mention_threshold: float = 60.0

    # Sentiment blending: confidence 1.0 corresponds to weight 10
    confidence_weight_scale: float = 10.0
    min_existing_weight: float = 0.1

    # Mention windows
    short_window_hours: int = 24
    long_window_hours: int = 24 * 7

    # Optimistic-concurrency retries per ticker update
    max_update_retries: int = 3

    # Batch decay refresh
    decay_refresh_window_days: int = 7
    decay_change_threshold: float = 0.01


DEFAULT_AGGREGATOR_CONFIG = AggregatorConfig()
