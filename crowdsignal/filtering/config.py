"""Filtering Configuration.

Weights and thresholds for per-post quality scoring and the noise filter.
Community-specific minimums live on CommunityConfig; these values are
shared by every community.
"""

from dataclasses import dataclass


@dataclass
class FilterConfig:
    """Configuration for quality scoring and noise filtering."""
    # Quality factor weights (sum to 1.0)
    upvote_weight: float = 0.25
    comment_weight: float = 0.25
    author_weight: float = 0.30
    content_weight: float = 0.15
    awards_weight: float = 0.05

    # Engagement ratio scale: meeting the minimum is worth 25 points
    engagement_scale: float = 25.0
    chars_per_depth_point: float = 10.0
    points_per_award: float = 5.0
    max_awards_bonus: float = 20.0

    # Hard content rules
    min_chars: int = 50

    # Spam heuristics
    repeat_min_word_length: int = 4
    repeat_ratio: float = 0.30
    caps_ratio: float = 0.50
    caps_min_length: int = 21
    emoji_ratio: float = 0.20

    # Velocity abuse
    velocity_window_minutes: int = 60
    author_max_posts_per_hour: int = 5


DEFAULT_FILTER_CONFIG = FilterConfig()
