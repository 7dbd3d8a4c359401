"""Insights, Risk Factors and Recommendations.

Derived from the computed components and the composite level. Degraded
components carry a neutral placeholder score, so they never trigger
strengths, weaknesses or risks.
"""

from crowdsignal.confidence.config import (
    CROSS_VALIDATION,
    DATA_POINTS,
    ECONOMIC_CONTEXT,
    HISTORICAL_ACCURACY,
    NEWS_CORRELATION,
    USER_REPUTATION,
    ConfidenceConfig,
)
from crowdsignal.confidence.models import (
    ConfidenceComponent,
    ConfidenceInsights,
    ConfidenceLevel,
    Recommendation,
    RecommendationType,
    RiskFactor,
    RiskType,
    Severity,
    TickerSnapshot,
)
from crowdsignal.providers.base import CorrelationClass

_RELIABILITY_LABELS = {
    DATA_POINTS: "Sufficient data volume",
    USER_REPUTATION: "High-quality author sources",
    CROSS_VALIDATION: "Cross-community validation",
    HISTORICAL_ACCURACY: "Strong historical accuracy",
    NEWS_CORRELATION: "News sentiment alignment",
    ECONOMIC_CONTEXT: "Economic context support",
}


def _label(name: str) -> str:
    return name.replace("_", " ")


def _scored(components: dict[str, ConfidenceComponent]) -> list[ConfidenceComponent]:
    return [c for c in components.values() if not c.degraded]


def build_insights(
    components: dict[str, ConfidenceComponent],
    level: ConfidenceLevel,
    config: ConfidenceConfig,
) -> ConfidenceInsights:
    strengths = [
        f"Strong {_label(c.name)}: {c.confidence_impact}"
        for c in _scored(components) if c.score >= config.strength_threshold
    ]
    weaknesses = [
        f"Weak {_label(c.name)}: {c.confidence_impact}"
        for c in _scored(components) if c.score <= config.weakness_threshold
    ]

    if level in (ConfidenceLevel.VERY_HIGH, ConfidenceLevel.HIGH):
        summary = ["High-confidence signal with strong supporting evidence"]
    elif level == ConfidenceLevel.MEDIUM:
        summary = ["Moderate confidence, monitor for additional confirmation"]
    else:
        summary = ["Low confidence, exercise caution and seek more data"]

    if strengths:
        summary.append("Key strengths: " + ", ".join(strengths[:2]))
    if weaknesses:
        summary.append("Areas of concern: " + ", ".join(weaknesses[:2]))

    degraded = [c.name for c in components.values() if c.degraded]
    if degraded:
        summary.append("Unavailable evidence: " + ", ".join(_label(n) for n in degraded))

    reliability = [
        _RELIABILITY_LABELS[c.name]
        for c in _scored(components)
        if c.score >= config.reliability_threshold and c.name in _RELIABILITY_LABELS
    ]

    return ConfidenceInsights(
        summary=summary,
        strengths=strengths,
        weaknesses=weaknesses,
        overall_assessment=level.value,
        reliability_factors=reliability or ["Limited reliability factors"],
    )


def identify_risk_factors(
    components: dict[str, ConfidenceComponent],
    snapshot: TickerSnapshot,
    config: ConfidenceConfig,
) -> list[RiskFactor]:
    """Risk factors sorted by severity, high first."""
    risks: list[RiskFactor] = []

    def below(name: str, threshold: float) -> bool:
        component = components.get(name)
        return component is not None and not component.degraded and component.score < threshold

    if snapshot.mention_count < config.min_mentions:
        risks.append(RiskFactor(
            RiskType.INSUFFICIENT_DATA, Severity.HIGH,
            "Very few mentions, sample size too small for reliable analysis",
        ))
    if below(USER_REPUTATION, config.low_user_quality_below):
        risks.append(RiskFactor(
            RiskType.LOW_USER_QUALITY, Severity.MEDIUM,
            "Low average author reputation, sources may not be credible",
        ))
    if below(CROSS_VALIDATION, config.poor_cross_validation_below):
        risks.append(RiskFactor(
            RiskType.POOR_CROSS_VALIDATION, Severity.MEDIUM,
            "Signal not confirmed across multiple communities",
        ))

    news = components.get(NEWS_CORRELATION)
    if news is not None and not news.degraded and (
        news.details.get("correlation_class") == CorrelationClass.DIVERGENT.value
        or news.score < config.news_divergence_below
    ):
        risks.append(RiskFactor(
            RiskType.NEWS_DIVERGENCE, Severity.MEDIUM,
            "Community sentiment diverges from news sentiment",
        ))

    if below(ECONOMIC_CONTEXT, config.economic_headwinds_below):
        risks.append(RiskFactor(
            RiskType.ECONOMIC_HEADWINDS, Severity.LOW,
            "Economic conditions may not support the sentiment direction",
        ))
    if below(HISTORICAL_ACCURACY, config.poor_track_record_below):
        risks.append(RiskFactor(
            RiskType.POOR_TRACK_RECORD, Severity.MEDIUM,
            "Past sentiment for this ticker has not matched price moves",
        ))

    return sorted(risks, key=lambda r: r.severity_rank)


def build_recommendations(level: ConfidenceLevel, risks: list[RiskFactor]) -> list[Recommendation]:
    """Recommendations sorted by priority, high first."""
    if level == ConfidenceLevel.VERY_HIGH:
        recs = [Recommendation(
            RecommendationType.ACTION, Severity.HIGH,
            "Strong signal, consider position sizing based on conviction",
        )]
    elif level == ConfidenceLevel.HIGH:
        recs = [Recommendation(
            RecommendationType.ACTION, Severity.MEDIUM,
            "Good signal strength, appropriate for a moderate position",
        )]
    elif level == ConfidenceLevel.MEDIUM:
        recs = [Recommendation(
            RecommendationType.CAUTION, Severity.MEDIUM,
            "Monitor for additional confirmation before acting",
        )]
    else:
        recs = [Recommendation(
            RecommendationType.WARNING, Severity.HIGH,
            "Low confidence, avoid large positions or wait for better signals",
        )]

    types = {r.type for r in risks}
    if any(r.severity == Severity.HIGH for r in risks):
        recs.append(Recommendation(
            RecommendationType.RISK_MANAGEMENT, Severity.HIGH,
            "High-risk factors detected, apply strict risk management",
        ))
    if RiskType.INSUFFICIENT_DATA in types:
        recs.append(Recommendation(
            RecommendationType.DATA_COLLECTION, Severity.MEDIUM,
            "Insufficient data, wait for more mentions before acting",
        ))
    if types & {RiskType.POOR_CROSS_VALIDATION, RiskType.NEWS_DIVERGENCE}:
        recs.append(Recommendation(
            RecommendationType.VALIDATION, Severity.MEDIUM,
            "Seek additional validation from other sources before acting",
        ))

    return sorted(recs, key=lambda r: r.priority_rank)
