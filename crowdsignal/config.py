"""Top-level configuration for CrowdSignal.

Community configuration is an explicit dataclass with documented defaults,
validated at construction time. Runtime settings (intervals, fan-out,
timeouts) load from environment variables prefixed CROWDSIGNAL_ using
pydantic-settings.
"""

import re
from dataclasses import dataclass, field, fields
from functools import lru_cache
from typing import Any, Iterable

from pydantic_settings import BaseSettings

from crowdsignal.errors import ConfigurationError

_COMMUNITY_NAME_RE = re.compile(r"^[a-zA-Z0-9_]{1,21}$")


@dataclass
class CommunityConfig:
    """Filtering configuration for one community (subreddit-like venue).

    Attributes:
        name: Community identifier, lowercase.
        min_upvotes: Hard minimum upvotes for a post to be accepted.
        min_comments: Hard minimum comments for a post to be accepted.
        quality_threshold: Minimum quality score (0-100).
        max_posts_per_hour: Community-wide velocity ceiling.
        excluded_flairs: Author flairs that cause rejection (substring match).
        keyword_filters: If non-empty, accepted posts must contain one of these.
        is_active: Inactive communities are skipped by cycles and validation.
    """

    name: str
    min_upvotes: int = 5
    min_comments: int = 2
    quality_threshold: float = 30.0
    max_posts_per_hour: int = 100
    excluded_flairs: list[str] = field(default_factory=list)
    keyword_filters: list[str] = field(default_factory=list)
    is_active: bool = True

    def __post_init__(self) -> None:
        self.name = (self.name or "").lower()
        if not _COMMUNITY_NAME_RE.match(self.name):
            raise ConfigurationError(
                f"Invalid community name: {self.name!r}", field="name"
            )
        if self.min_upvotes < 0:
            raise ConfigurationError("min_upvotes must be >= 0", field="min_upvotes")
        if self.min_comments < 0:
            raise ConfigurationError("min_comments must be >= 0", field="min_comments")
        if not 0 <= self.quality_threshold <= 100:
            raise ConfigurationError(
                "quality_threshold must be within [0, 100]", field="quality_threshold"
            )
        if self.max_posts_per_hour < 1:
            raise ConfigurationError(
                "max_posts_per_hour must be >= 1", field="max_posts_per_hour"
            )
        self.excluded_flairs = [f.lower() for f in self.excluded_flairs]
        self.keyword_filters = [k.lower() for k in self.keyword_filters]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommunityConfig":
        """Build from a storage record, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown community config keys: {sorted(unknown)}"
            )
        if "name" not in data:
            raise ConfigurationError("Community config requires a name", field="name")
        return cls(**data)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "min_upvotes": self.min_upvotes,
            "min_comments": self.min_comments,
            "quality_threshold": self.quality_threshold,
            "max_posts_per_hour": self.max_posts_per_hour,
            "excluded_flairs": list(self.excluded_flairs),
            "keyword_filters": list(self.keyword_filters),
            "is_active": self.is_active,
        }


def load_community_configs(records: Iterable[dict[str, Any]]) -> list[CommunityConfig]:
    """Load and validate community configs, rejecting duplicate names."""
    configs: list[CommunityConfig] = []
    seen: set[str] = set()
    for record in records:
        cfg = CommunityConfig.from_dict(record)
        if cfg.name in seen:
            raise ConfigurationError(f"Duplicate community: {cfg.name}", field="name")
        seen.add(cfg.name)
        configs.append(cfg)
    return configs


class PipelineSettings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    cycle_interval_seconds: int = 900
    community_fan_out: int = 3
    wave_delay_seconds: float = 1.0
    provider_timeout_seconds: float = 10.0
    fetch_limit: int = 50
    confidence_cache_ttl_seconds: float = 300.0
    confidence_cache_max_size: int = 512
    default_window_hours: int = 24
    retention_days: int = 30

    model_config = {
        "env_prefix": "CROWDSIGNAL_",
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> PipelineSettings:
    """Get cached settings singleton."""
    return PipelineSettings()
