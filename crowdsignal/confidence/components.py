"""Confidence Component Calculators.

Pure functions turning a ticker snapshot or a provider response into one
0-100 component score with details and a short impact note.
"""

from typing import Optional

import numpy as np

from crowdsignal.confidence.config import (
    CROSS_VALIDATION,
    DATA_POINTS,
    ECONOMIC_CONTEXT,
    HISTORICAL_ACCURACY,
    NEWS_CORRELATION,
    USER_REPUTATION,
    BacktestConfig,
    ConfidenceConfig,
)
from crowdsignal.confidence.models import ConfidenceComponent, TickerSnapshot
from crowdsignal.providers.base import (
    CorrelationClass,
    EconomicCorrelation,
    MacroAssessment,
    NewsCorrelation,
)


def _tiered(value: float, tiers: tuple, default: float = 0.0) -> float:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return default


def neutral_component(
    name: str,
    config: ConfidenceConfig,
    reason: str,
    impact: str,
    degraded: bool = False,
    error: Optional[str] = None,
) -> ConfidenceComponent:
    """Neutral-score placeholder for missing or failed evidence."""
    return ConfidenceComponent(
        name=name,
        score=config.neutral_score,
        details={"reason": reason},
        confidence_impact=impact,
        degraded=degraded,
        error=error,
    )


# ── Local components ────────────────────────────────────────────────


def data_points_component(snapshot: TickerSnapshot, config: ConfidenceConfig) -> ConfidenceComponent:
    volume = _tiered(snapshot.mention_count, config.volume_tiers)
    quality = min(config.max_quality_points, snapshot.avg_quality * config.quality_factor)
    community_count = len(snapshot.community_breakdown)
    diversity = min(config.max_diversity_points, community_count * config.points_per_community)

    return ConfidenceComponent(
        name=DATA_POINTS,
        score=volume + quality + diversity,
        details={
            "volume_score": volume,
            "quality_points": round(quality, 2),
            "diversity_score": diversity,
            "mention_count": snapshot.mention_count,
            "avg_quality": round(snapshot.avg_quality, 2),
            "community_count": community_count,
        },
        confidence_impact="Data volume and quality foundation",
    )


def user_reputation_component(snapshot: TickerSnapshot, config: ConfidenceConfig) -> ConfidenceComponent:
    authors = snapshot.top_authors
    if not authors:
        return ConfidenceComponent(
            name=USER_REPUTATION,
            score=config.no_authors_score,
            details={"reason": "No author reputation data available"},
            confidence_impact="Cannot assess author credibility",
        )

    scores = np.array([a.quality_score for a in authors], dtype=float)
    avg_reputation = float(scores.mean())
    high_quality_ratio = float((scores >= config.high_quality_author_score).mean())
    expert_ratio = sum(1 for a in authors if a.is_expert) / len(authors)

    score = (
        min(config.max_reputation_points, avg_reputation * config.reputation_factor)
        + high_quality_ratio * config.high_quality_bonus
        + expert_ratio * config.expert_bonus
    )

    if expert_ratio > 0.2:
        impact = "Strong expert consensus"
    elif high_quality_ratio > 0.5:
        impact = "Good author quality"
    else:
        impact = "Mixed author quality"

    return ConfidenceComponent(
        name=USER_REPUTATION,
        score=score,
        details={
            "avg_reputation": round(avg_reputation, 2),
            "authors_considered": len(authors),
            "high_quality_ratio": round(high_quality_ratio, 4),
            "expert_ratio": round(expert_ratio, 4),
            "top_authors": [a.to_dict() for a in authors[:5]],
        },
        confidence_impact=impact,
    )


def cross_validation_component(snapshot: TickerSnapshot, config: ConfidenceConfig) -> ConfidenceComponent:
    community_count = len(snapshot.community_breakdown)
    if community_count < 2:
        return ConfidenceComponent(
            name=CROSS_VALIDATION,
            score=config.single_community_score,
            details={
                "community_count": community_count,
                "reason": "Single-community signal, no cross-validation possible",
            },
            confidence_impact="No cross-validation available",
        )

    sentiments = np.array(
        [c.avg_sentiment for c in snapshot.community_breakdown.values()], dtype=float
    )
    mean = float(sentiments.mean())
    variance = float(sentiments.var())
    consistency = max(0.0, 100.0 - variance)
    distribution = _tiered(community_count, config.distribution_tiers)
    consensus_ratio = float((np.abs(sentiments - mean) < config.consensus_band).mean())
    consensus = consensus_ratio * config.consensus_points

    score = min(100.0, distribution + consistency * config.consistency_factor + consensus)

    if consensus_ratio > 0.8:
        impact = "Strong cross-community consensus"
    elif consensus_ratio > 0.6:
        impact = "Good cross-validation"
    else:
        impact = "Mixed signals across communities"

    return ConfidenceComponent(
        name=CROSS_VALIDATION,
        score=score,
        details={
            "community_count": community_count,
            "distribution_score": distribution,
            "sentiment_variance": round(variance, 2),
            "sentiment_consistency": round(consistency, 2),
            "consensus_ratio": round(consensus_ratio, 4),
            "avg_sentiment": round(mean, 2),
        },
        confidence_impact=impact,
    )


# ── Enrichment components ───────────────────────────────────────────


def historical_accuracy_component(
    correct: int, total: int, config: BacktestConfig, details: Optional[dict] = None
) -> ConfidenceComponent:
    """Tiered accuracy score plus a sample-size bonus."""
    accuracy_rate = correct / total * 100.0 if total else 0.0
    base = _tiered(accuracy_rate, config.accuracy_tiers, config.floor_score)
    bonus = min(config.max_sample_bonus, float(total))

    if accuracy_rate >= 70:
        impact = "Strong historical accuracy"
    elif accuracy_rate >= 55:
        impact = "Moderate historical accuracy"
    else:
        impact = "Poor historical accuracy"

    return ConfidenceComponent(
        name=HISTORICAL_ACCURACY,
        score=min(100.0, base + bonus),
        details={
            "accuracy_rate": round(accuracy_rate, 2),
            "correct_predictions": correct,
            "total_predictions": total,
            "sample_size_bonus": bonus,
            **(details or {}),
        },
        confidence_impact=impact,
    )


def news_correlation_component(news: NewsCorrelation, config: ConfidenceConfig) -> ConfidenceComponent:
    if news.article_count <= 0:
        return neutral_component(
            NEWS_CORRELATION, config,
            reason="No news articles found for correlation",
            impact="No news validation available",
        )

    cls = CorrelationClass(news.correlation_class)
    base = config.news_base_scores.get(cls.value, config.news_base_scores["mixed"])
    strength = float(np.clip(news.strength, -1.0, 1.0))
    article_bonus = min(config.max_article_bonus, news.article_count * config.points_per_article)
    score = base + strength * config.news_strength_factor + article_bonus

    if cls == CorrelationClass.POSITIVE_ALIGNED:
        impact = "News confirms community sentiment"
    elif cls == CorrelationClass.NEGATIVE_ALIGNED:
        impact = "News confirms bearish community sentiment"
    elif cls == CorrelationClass.DIVERGENT:
        impact = "News contradicts community sentiment"
    else:
        impact = "Mixed news correlation"

    return ConfidenceComponent(
        name=NEWS_CORRELATION,
        score=score,
        details={
            "correlation_class": cls.value,
            "correlation_strength": round(strength, 4),
            "article_count": news.article_count,
            "article_bonus": article_bonus,
            "news_sentiment": news.news_sentiment,
        },
        confidence_impact=impact,
    )


def economic_context_component(
    econ: Optional[EconomicCorrelation], config: ConfidenceConfig
) -> ConfidenceComponent:
    if econ is None:
        return neutral_component(
            ECONOMIC_CONTEXT, config,
            reason="No economic data available",
            impact="No economic context validation",
        )

    assessment = MacroAssessment(econ.overall_assessment)
    risks = len(econ.risk_factors)
    opportunities = len(econ.opportunities)

    score = config.neutral_score
    if assessment == MacroAssessment.POSITIVE:
        score += config.macro_adjustment
    elif assessment == MacroAssessment.NEGATIVE:
        score -= config.macro_adjustment
    score += (opportunities - config.risk_factor_discount * risks) * config.opportunity_points

    if assessment == MacroAssessment.POSITIVE:
        impact = "Economic conditions support sentiment"
    elif assessment == MacroAssessment.NEGATIVE:
        impact = "Economic headwinds challenge sentiment"
    else:
        impact = "Mixed economic signals"

    return ConfidenceComponent(
        name=ECONOMIC_CONTEXT,
        score=score,
        details={
            "overall_assessment": assessment.value,
            "risk_factors": risks,
            "opportunities": opportunities,
        },
        confidence_impact=impact,
    )
