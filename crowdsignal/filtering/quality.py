"""Per-post Quality Scoring.

Five weighted factors against the owning community's minimums:
upvotes, comment engagement, author reputation, content depth and awards.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from crowdsignal.config import CommunityConfig
from crowdsignal.filtering.config import FilterConfig
from crowdsignal.models import AuthorProfile, RawItem, clamp

logger = logging.getLogger(__name__)


@dataclass
class QualityBreakdown:
    """Factor scores behind one quality score."""
    upvote_score: float = 0.0
    comment_engagement: float = 0.0
    author_quality: float = 0.0
    content_depth: float = 0.0
    awards_bonus: float = 0.0
    total: float = 0.0

    def to_dict(self) -> dict:
        return {
            "upvote_score": round(self.upvote_score, 2),
            "comment_engagement": round(self.comment_engagement, 2),
            "author_quality": round(self.author_quality, 2),
            "content_depth": round(self.content_depth, 2),
            "awards_bonus": round(self.awards_bonus, 2),
            "total": round(self.total, 2),
        }


class QualityScorer:
    """Scores a post 0-100 relative to its community's thresholds.

    Example:
        scorer = QualityScorer()
        breakdown = scorer.breakdown(item, author, community)
        print(breakdown.total)
    """

    def __init__(self, config: Optional[FilterConfig] = None):
        self.config = config or FilterConfig()

    def score(self, item: RawItem, author: AuthorProfile, community: CommunityConfig) -> float:
        return self.breakdown(item, author, community).total

    def breakdown(
        self, item: RawItem, author: AuthorProfile, community: CommunityConfig
    ) -> QualityBreakdown:
        cfg = self.config
        upvote_score = min(100.0, item.upvotes / max(1, community.min_upvotes) * cfg.engagement_scale)
        comment_engagement = min(100.0, item.comments / max(1, community.min_comments) * cfg.engagement_scale)
        author_quality = clamp(author.quality_score, 0.0, 100.0)
        content_depth = min(100.0, item.char_count / cfg.chars_per_depth_point)
        awards_bonus = min(cfg.max_awards_bonus, item.awards * cfg.points_per_award)

        total = (
            max(0.0, upvote_score) * cfg.upvote_weight
            + max(0.0, comment_engagement) * cfg.comment_weight
            + author_quality * cfg.author_weight
            + content_depth * cfg.content_weight
            + max(0.0, awards_bonus) * cfg.awards_weight
        )

        return QualityBreakdown(
            upvote_score=upvote_score,
            comment_engagement=comment_engagement,
            author_quality=author_quality,
            content_depth=content_depth,
            awards_bonus=awards_bonus,
            total=clamp(total, 0.0, 100.0),
        )
