"""Pluggable collaborator contracts."""

from crowdsignal.providers.base import (
    CorrelationClass,
    MacroAssessment,
    SearchResult,
    NewsCorrelation,
    EconomicCorrelation,
    PricePoint,
    PlatformClient,
    ReputationStore,
    PlatformSearchProvider,
    NewsProvider,
    EconomicProvider,
    PriceProvider,
    SentimentProvider,
)

__all__ = [
    "CorrelationClass",
    "MacroAssessment",
    "SearchResult",
    "NewsCorrelation",
    "EconomicCorrelation",
    "PricePoint",
    "PlatformClient",
    "ReputationStore",
    "PlatformSearchProvider",
    "NewsProvider",
    "EconomicProvider",
    "PriceProvider",
    "SentimentProvider",
]
