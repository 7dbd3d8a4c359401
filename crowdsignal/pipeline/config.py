"""Pipeline Configuration."""

from dataclasses import dataclass
from typing import Optional

from crowdsignal.config import PipelineSettings, get_settings


@dataclass
class PipelineConfig:
    """Configuration for processing cycles and retention."""
    interval_seconds: float = 900.0
    community_fan_out: int = 3
    wave_delay_seconds: float = 1.0
    fetch_limit: int = 50
    provider_timeout_seconds: float = 10.0

    # Post-cycle maintenance
    refresh_decay: bool = True
    recompute_mentions: bool = True

    # Retention cleanup
    retention_days: int = 30
    cleanup_quality_below: float = 30.0

    @classmethod
    def from_settings(cls, settings: Optional[PipelineSettings] = None) -> "PipelineConfig":
        s = settings or get_settings()
        return cls(
            interval_seconds=float(s.cycle_interval_seconds),
            community_fan_out=s.community_fan_out,
            wave_delay_seconds=s.wave_delay_seconds,
            fetch_limit=s.fetch_limit,
            provider_timeout_seconds=s.provider_timeout_seconds,
            retention_days=s.retention_days,
        )
