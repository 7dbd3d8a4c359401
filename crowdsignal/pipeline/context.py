"""Per-cycle Pipeline Context.

A cycle receives an immutable snapshot of configuration taken when it
starts and a stats accumulator scoped to that cycle only.
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from crowdsignal.config import CommunityConfig
from crowdsignal.resilience import CancellationToken


@dataclass(frozen=True)
class ConfigSnapshot:
    """Configuration frozen at cycle start."""
    communities: tuple[CommunityConfig, ...]
    fetch_limit: int = 50
    provider_timeout_seconds: float = 10.0

    @property
    def community_names(self) -> list[str]:
        return [c.name for c in self.communities]


@dataclass
class CycleStats:
    """Mutable counters for one cycle."""
    items_fetched: int = 0
    items_processed: int = 0
    items_accepted: int = 0
    items_rejected: int = 0
    items_duplicate: int = 0
    items_without_tickers: int = 0
    malformed_items: int = 0
    item_errors: int = 0
    tickers_extracted: int = 0
    sentiment_fallbacks: int = 0
    communities_processed: int = 0
    communities_failed: int = 0
    tickers_updated: set[str] = field(default_factory=set)
    aggregation_errors: dict[str, str] = field(default_factory=dict)
    rejection_reasons: Counter = field(default_factory=Counter)

    @property
    def errors(self) -> int:
        return (
            self.malformed_items + self.item_errors
            + self.communities_failed + len(self.aggregation_errors)
        )

    def to_dict(self) -> dict:
        return {
            "items_fetched": self.items_fetched,
            "items_processed": self.items_processed,
            "items_accepted": self.items_accepted,
            "items_rejected": self.items_rejected,
            "items_duplicate": self.items_duplicate,
            "items_without_tickers": self.items_without_tickers,
            "malformed_items": self.malformed_items,
            "item_errors": self.item_errors,
            "tickers_extracted": self.tickers_extracted,
            "sentiment_fallbacks": self.sentiment_fallbacks,
            "communities_processed": self.communities_processed,
            "communities_failed": self.communities_failed,
            "tickers_updated": sorted(self.tickers_updated),
            "aggregation_errors": dict(self.aggregation_errors),
            "rejection_reasons": dict(self.rejection_reasons),
            "errors": self.errors,
        }


@dataclass
class PipelineContext:
    """Everything a stage needs for the current cycle."""
    cycle_id: str
    snapshot: ConfigSnapshot
    stats: CycleStats = field(default_factory=CycleStats)
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def cancelled(self) -> bool:
        return self.cancel_token.cancelled


@dataclass
class CycleReport:
    """Outcome of one processing cycle."""
    cycle_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    stats: CycleStats = field(default_factory=CycleStats)
    community_failures: dict[str, str] = field(default_factory=dict)
    skipped_communities: list[str] = field(default_factory=list)
    cancelled: bool = False
    decay_refreshed: int = 0

    @property
    def duration_ms(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds() * 1000

    def to_dict(self) -> dict:
        return {
            "cycle_id": self.cycle_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_ms": round(self.duration_ms, 1),
            "stats": self.stats.to_dict(),
            "community_failures": dict(self.community_failures),
            "skipped_communities": list(self.skipped_communities),
            "cancelled": self.cancelled,
            "decay_refreshed": self.decay_refreshed,
        }


@dataclass
class CleanupReport:
    """Outcome of a retention cleanup."""
    cutoff: datetime
    matched: int = 0
    deleted: int = 0
    dry_run: bool = False

    def to_dict(self) -> dict:
        return {
            "cutoff": self.cutoff.isoformat(),
            "matched": self.matched,
            "deleted": self.deleted,
            "dry_run": self.dry_run,
        }
