"""Per-ticker aggregation of accepted posts."""

from crowdsignal.aggregation.config import DEFAULT_AGGREGATOR_CONFIG, AggregatorConfig
from crowdsignal.aggregation.state import (
    CommunityStats,
    EntityAggregateState,
    MentionCount,
    SentimentTrend,
)
from crowdsignal.aggregation.store import (
    AggregateStore,
    InMemoryAggregateStore,
    InMemoryItemStore,
    ItemStore,
)
from crowdsignal.aggregation.aggregator import AggregationBatchResult, EntityAggregator

__all__ = [
    "DEFAULT_AGGREGATOR_CONFIG",
    "AggregatorConfig",
    "CommunityStats",
    "EntityAggregateState",
    "MentionCount",
    "SentimentTrend",
    "AggregateStore",
    "InMemoryAggregateStore",
    "InMemoryItemStore",
    "ItemStore",
    "AggregationBatchResult",
    "EntityAggregator",
]
