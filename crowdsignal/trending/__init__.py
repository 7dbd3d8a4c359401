"""Trending score computation and ranking."""

from crowdsignal.trending.config import DEFAULT_TRENDING_CONFIG, TrendingConfig
from crowdsignal.trending.calculator import (
    TickerActivity,
    TrendingCalculator,
    TrendingScoreResult,
)

__all__ = [
    "DEFAULT_TRENDING_CONFIG",
    "TrendingConfig",
    "TickerActivity",
    "TrendingCalculator",
    "TrendingScoreResult",
]
