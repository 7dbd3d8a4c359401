"""Confidence Scorer.

Combines six weighted evidence channels into one 0-100 confidence score
and a discrete level:

1. Data points: mention volume, average quality and community diversity
2. User reputation: credibility of the contributing authors
3. Cross-validation: sentiment consensus across communities
4. Historical accuracy: sentiment direction against later price moves
5. News correlation: alignment with news sentiment
6. Economic context: macro-economic support

Enrichment channels (4-6) are fetched concurrently. A failing channel is
reported as a degraded component with a neutral score and left out of the
weighted average; the calculation itself never fails because of it.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from crowdsignal.aggregation.store import ItemStore
from crowdsignal.cache import TTLCache
from crowdsignal.confidence.components import (
    cross_validation_component,
    data_points_component,
    economic_context_component,
    historical_accuracy_component,
    neutral_component,
    news_correlation_component,
    user_reputation_component,
)
from crowdsignal.confidence.config import (
    COMPONENT_DESCRIPTIONS,
    COMPONENT_ORDER,
    CROSS_VALIDATION,
    DATA_POINTS,
    ECONOMIC_CONTEXT,
    HISTORICAL_ACCURACY,
    NEWS_CORRELATION,
    USER_REPUTATION,
    ConfidenceConfig,
)
from crowdsignal.confidence.history import BacktestResult, HistoricalAccuracyBacktester
from crowdsignal.confidence.insights import (
    build_insights,
    build_recommendations,
    identify_risk_factors,
)
from crowdsignal.confidence.models import (
    ConfidenceComponent,
    ConfidenceLevel,
    ConfidenceResult,
    TickerSnapshot,
    confidence_level,
)
from crowdsignal.errors import InsufficientDataError
from crowdsignal.logging_config import CycleContext
from crowdsignal.models import utcnow
from crowdsignal.providers.base import EconomicProvider, NewsProvider, PriceProvider
from crowdsignal.resilience import call_provider, gather_bounded

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfidenceOptions:
    """Which channels to include, and over which window."""
    window_hours: Optional[int] = None
    include_user_reputation: bool = True
    include_cross_validation: bool = True
    include_historical: bool = True
    include_news: bool = True
    include_economic: bool = True


class ConfidenceScorer:
    """Multi-factor confidence scorer for ticker signals.

    Example:
        scorer = ConfidenceScorer(item_store, news_provider=news, economic_provider=fred)
        result = await scorer.calculate("AAPL")
        print(result.confidence_score, result.level.value, result.degraded_components)
    """

    def __init__(
        self,
        item_store: ItemStore,
        news_provider: Optional[NewsProvider] = None,
        economic_provider: Optional[EconomicProvider] = None,
        price_provider: Optional[PriceProvider] = None,
        config: Optional[ConfidenceConfig] = None,
        cache: Optional[TTLCache] = None,
    ):
        self.item_store = item_store
        self.news_provider = news_provider
        self.economic_provider = economic_provider
        self.config = config or ConfidenceConfig()
        self.cache = cache or TTLCache(
            ttl_seconds=self.config.cache_ttl_seconds,
            max_size=self.config.cache_max_size,
        )
        self.backtester: Optional[HistoricalAccuracyBacktester] = None
        if price_provider is not None:
            self.backtester = HistoricalAccuracyBacktester(
                price_provider,
                item_store,
                config=self.config.backtest,
                timeout_seconds=self.config.provider_timeout_seconds,
                retry_config=self.config.retry,
            )

    async def calculate(
        self,
        ticker: str,
        options: Optional[ConfidenceOptions] = None,
        now: Optional[datetime] = None,
        use_cache: bool = True,
    ) -> ConfidenceResult:
        """Compute the composite confidence for a ticker.

        Args:
            ticker: Ticker symbol.
            options: Window and channel toggles.
            now: Reference time; defaults to the current UTC time.
            use_cache: Serve and store results in the TTL cache.

        Returns:
            ConfidenceResult, with degraded channels flagged.
        """
        ticker = ticker.upper()
        options = options or ConfidenceOptions()
        with CycleContext.for_ticker(ticker):
            return await self._calculate(ticker, options, now, use_cache)

    async def _calculate(
        self,
        ticker: str,
        options: ConfidenceOptions,
        now: Optional[datetime],
        use_cache: bool,
    ) -> ConfidenceResult:
        window = options.window_hours or self.config.default_window_hours
        key = (ticker, window, options, now)

        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        now = now or utcnow()
        items = await self.item_store.query(ticker=ticker, since=now - timedelta(hours=window))
        snapshot = TickerSnapshot.from_items(ticker, items, top_n=self.config.top_authors)

        computed = {DATA_POINTS: data_points_component(snapshot, self.config)}
        if options.include_user_reputation:
            computed[USER_REPUTATION] = user_reputation_component(snapshot, self.config)
        if options.include_cross_validation:
            computed[CROSS_VALIDATION] = cross_validation_component(snapshot, self.config)
        computed.update(await self._enrichment(ticker, snapshot, options, window, now))

        components = {name: computed[name] for name in COMPONENT_ORDER if name in computed}
        score, weights_used = self.composite(components)
        level = confidence_level(score, self.config)
        risks = identify_risk_factors(components, snapshot, self.config)

        result = ConfidenceResult(
            ticker=ticker,
            confidence_score=score,
            level=level,
            components=components,
            insights=build_insights(components, level, self.config),
            risk_factors=risks,
            recommendations=build_recommendations(level, risks),
            sentiment_snapshot=snapshot,
            weights_used=weights_used,
            window_hours=window,
            calculated_at=now,
        )

        if result.degraded_components:
            logger.warning(
                "Confidence for %s computed with degraded components: %s",
                ticker, result.degraded_components,
            )
        logger.info("Confidence for %s: %.1f (%s)", ticker, result.confidence_score, level.value)

        if use_cache:
            self.cache.set(key, result)
        return result

    def composite(self, components: dict[str, ConfidenceComponent]) -> tuple[float, dict[str, float]]:
        """Weighted average over non-degraded components, weights renormalized."""
        active = {
            name: self.config.weights.get(name, 0.0)
            for name, c in components.items() if not c.degraded
        }
        total = sum(active.values())
        if total <= 0:
            return self.config.neutral_score, {}
        weights = {name: w / total for name, w in active.items()}
        score = sum(components[name].score * w for name, w in weights.items())
        return score, weights

    # ── Enrichment ──────────────────────────────────────────────────

    async def _enrichment(
        self,
        ticker: str,
        snapshot: TickerSnapshot,
        options: ConfidenceOptions,
        window: int,
        now: datetime,
    ) -> dict[str, ConfidenceComponent]:
        timeout = self.config.provider_timeout_seconds
        retry_config = self.config.retry
        calls: dict[str, Any] = {}

        if options.include_historical and self.backtester is not None:
            calls[HISTORICAL_ACCURACY] = self.backtester.evaluate(ticker, now)
        if options.include_news and self.news_provider is not None:
            calls[NEWS_CORRELATION] = call_provider(
                self.news_provider.get_news_correlation,
                ticker, snapshot.avg_sentiment, window,
                provider="news", timeout=timeout, retry_config=retry_config,
            )
        if options.include_economic and self.economic_provider is not None:
            calls[ECONOMIC_CONTEXT] = call_provider(
                self.economic_provider.get_economic_correlation,
                ticker, snapshot.avg_sentiment,
                provider="economic", timeout=timeout, retry_config=retry_config,
            )

        if not calls:
            return {}

        outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)
        return {
            name: self._resolve(name, outcome, ticker)
            for name, outcome in zip(calls, outcomes)
        }

    def _resolve(self, name: str, outcome: Any, ticker: str) -> ConfidenceComponent:
        if isinstance(outcome, InsufficientDataError):
            return neutral_component(
                name, self.config,
                reason=outcome.message,
                impact="Limited historical prediction data",
            )
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, Exception):
            return self._degraded(name, outcome, ticker)

        try:
            if name == HISTORICAL_ACCURACY:
                backtest: BacktestResult = outcome
                return historical_accuracy_component(
                    backtest.correct_predictions,
                    backtest.total_predictions,
                    self.config.backtest,
                    details={
                        "immaterial_moves": backtest.immaterial_moves,
                        "items_considered": backtest.items_considered,
                        "horizon_days": backtest.horizon_days,
                    },
                )
            if name == NEWS_CORRELATION:
                return news_correlation_component(outcome, self.config)
            return economic_context_component(outcome, self.config)
        except (AttributeError, TypeError, ValueError) as exc:
            return self._degraded(name, exc, ticker)

    def _degraded(self, name: str, exc: Exception, ticker: str) -> ConfidenceComponent:
        logger.warning(
            "Component %s degraded for %s: %s", name, ticker, exc,
            extra={"provider": name},
        )
        return neutral_component(
            name, self.config,
            reason="Provider unavailable",
            impact=f"{name.replace('_', ' ').capitalize()} assessment unavailable",
            degraded=True,
            error=f"{type(exc).__name__}: {exc}",
        )

    # ── Batch and methodology ───────────────────────────────────────

    async def batch_calculate(
        self,
        tickers: Iterable[str],
        options: Optional[ConfidenceOptions] = None,
        now: Optional[datetime] = None,
    ) -> list[ConfidenceResult]:
        """Score many tickers in waves; failures become error entries.

        Returns:
            Results sorted by confidence score descending.
        """
        unique = list(dict.fromkeys(t.upper() for t in tickers))
        outcome = await gather_bounded(
            unique,
            lambda t: self.calculate(t, options, now),
            limit=self.config.batch_size,
            wave_delay=self.config.batch_delay_seconds,
        )

        results = outcome.results
        for failure in outcome.failed:
            logger.error("Confidence failed for %s: %s", failure.item, failure.error)
            results.append(ConfidenceResult(
                ticker=failure.item,
                confidence_score=0.0,
                level=ConfidenceLevel.VERY_LOW,
                error=failure.error,
            ))

        logger.info("Batch confidence complete: %d tickers", len(results))
        return sorted(results, key=lambda r: (-r.confidence_score, r.ticker))

    def methodology(self) -> dict:
        cfg = self.config
        return {
            "component_weights": dict(cfg.weights),
            "confidence_levels": {
                ConfidenceLevel.VERY_HIGH.value: cfg.very_high_threshold,
                ConfidenceLevel.HIGH.value: cfg.high_threshold,
                ConfidenceLevel.MEDIUM.value: cfg.medium_threshold,
                ConfidenceLevel.LOW.value: cfg.low_threshold,
                ConfidenceLevel.VERY_LOW.value: 0.0,
            },
            "components": dict(COMPONENT_DESCRIPTIONS),
            "degraded_policy": "excluded from the weighted average, weights renormalized",
            "historical_accuracy": {
                "lookback_days": cfg.backtest.lookback_days,
                "horizon_days": cfg.backtest.horizon_days,
                "materiality_pct": cfg.backtest.materiality_pct,
                "min_predictions": cfg.backtest.min_predictions,
            },
        }
