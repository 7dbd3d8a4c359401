"""Multi-factor confidence scoring."""

from crowdsignal.confidence.config import (
    COMPONENT_ORDER,
    DEFAULT_CONFIDENCE_CONFIG,
    BacktestConfig,
    ConfidenceConfig,
)
from crowdsignal.confidence.models import (
    AuthorSummary,
    ConfidenceComponent,
    ConfidenceInsights,
    ConfidenceLevel,
    ConfidenceResult,
    Recommendation,
    RecommendationType,
    RiskFactor,
    RiskType,
    Severity,
    TickerSnapshot,
    confidence_level,
)
from crowdsignal.confidence.history import (
    BacktestResult,
    HistoricalAccuracyBacktester,
    backtest,
    price_series,
)
from crowdsignal.confidence.scorer import ConfidenceOptions, ConfidenceScorer

__all__ = [
    "COMPONENT_ORDER",
    "DEFAULT_CONFIDENCE_CONFIG",
    "BacktestConfig",
    "ConfidenceConfig",
    "AuthorSummary",
    "ConfidenceComponent",
    "ConfidenceInsights",
    "ConfidenceLevel",
    "ConfidenceResult",
    "Recommendation",
    "RecommendationType",
    "RiskFactor",
    "RiskType",
    "Severity",
    "TickerSnapshot",
    "confidence_level",
    "BacktestResult",
    "HistoricalAccuracyBacktester",
    "backtest",
    "price_series",
    "ConfidenceOptions",
    "ConfidenceScorer",
]
