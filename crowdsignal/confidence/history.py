"""Historical Accuracy Backtest.

Compares the sentiment direction of past accepted mentions with the
subsequent close-to-close price move. A mention counts as a prediction
when it is at least `horizon_days` old and its absolute sentiment is at
least `min_abs_sentiment`; moves smaller than `materiality_pct` are not
counted either way.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from crowdsignal.aggregation.store import ItemStore
from crowdsignal.confidence.config import BacktestConfig
from crowdsignal.errors import InsufficientDataError
from crowdsignal.models import ScoredItem, utcnow
from crowdsignal.providers.base import PricePoint, PriceProvider
from crowdsignal.resilience import RetryConfig, call_provider

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    """Outcome of one ticker's sentiment-vs-price backtest."""
    ticker: str
    correct_predictions: int = 0
    total_predictions: int = 0
    immaterial_moves: int = 0
    items_considered: int = 0
    horizon_days: int = 3

    @property
    def accuracy_rate(self) -> float:
        if self.total_predictions == 0:
            return 0.0
        return self.correct_predictions / self.total_predictions * 100.0

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "correct_predictions": self.correct_predictions,
            "total_predictions": self.total_predictions,
            "accuracy_rate": round(self.accuracy_rate, 2),
            "immaterial_moves": self.immaterial_moves,
            "items_considered": self.items_considered,
            "horizon_days": self.horizon_days,
        }


def price_series(points: Sequence[PricePoint]) -> pd.Series:
    """Closing prices indexed by UTC timestamp, sorted, last value wins."""
    if not points:
        return pd.Series(dtype=float)
    index = pd.to_datetime([p.timestamp for p in points], utc=True)
    series = pd.Series([float(p.close) for p in points], index=index, dtype=float)
    series = series[~series.index.duplicated(keep="last")].sort_index()
    return series[series > 0]


def backtest(
    ticker: str,
    items: Sequence[ScoredItem],
    prices: pd.Series,
    now: datetime,
    config: Optional[BacktestConfig] = None,
) -> BacktestResult:
    """Score sentiment direction against the following price move.

    Raises:
        InsufficientDataError: If fewer than `min_predictions` qualify.
    """
    cfg = config or BacktestConfig()
    result = BacktestResult(ticker=ticker, horizon_days=cfg.horizon_days)
    horizon = timedelta(days=cfg.horizon_days)

    candidates = [
        i for i in items
        if abs(i.score.sentiment_score) >= cfg.min_abs_sentiment
        and i.created_at + horizon <= now
    ]
    result.items_considered = len(candidates)

    if prices.empty or not candidates:
        raise InsufficientDataError(
            f"No price history or qualifying mentions for {ticker}",
            required=cfg.min_predictions,
            available=0,
        )

    last_price_at = prices.index[-1]
    starts = pd.to_datetime([i.created_at for i in candidates], utc=True)
    ends = starts + pd.Timedelta(days=cfg.horizon_days)
    p0 = prices.asof(starts).to_numpy(dtype=float)
    p1 = prices.asof(ends).to_numpy(dtype=float)
    sentiment = np.array([i.score.sentiment_score for i in candidates], dtype=float)

    usable = ~np.isnan(p0) & ~np.isnan(p1) & (ends <= last_price_at)
    returns = np.where(usable, (p1 - p0) / np.where(usable, p0, 1.0) * 100.0, 0.0)
    material = usable & (np.abs(returns) >= cfg.materiality_pct)

    result.immaterial_moves = int((usable & ~material).sum())
    result.total_predictions = int(material.sum())
    result.correct_predictions = int(
        (material & (np.sign(sentiment) == np.sign(returns))).sum()
    )

    if result.total_predictions < cfg.min_predictions:
        raise InsufficientDataError(
            f"Only {result.total_predictions} qualifying predictions for {ticker}",
            required=cfg.min_predictions,
            available=result.total_predictions,
        )
    return result


class HistoricalAccuracyBacktester:
    """Fetches price history and backtests stored mentions of a ticker.

    Example:
        tester = HistoricalAccuracyBacktester(price_provider, item_store)
        result = await tester.evaluate("AAPL")
        print(result.accuracy_rate)
    """

    def __init__(
        self,
        price_provider: PriceProvider,
        item_store: ItemStore,
        config: Optional[BacktestConfig] = None,
        timeout_seconds: Optional[float] = None,
        retry_config: Optional[RetryConfig] = None,
    ):
        self.price_provider = price_provider
        self.item_store = item_store
        self.config = config or BacktestConfig()
        self.timeout_seconds = timeout_seconds
        self.retry_config = retry_config

    async def evaluate(self, ticker: str, now: Optional[datetime] = None) -> BacktestResult:
        """Run the backtest.

        Raises:
            InsufficientDataError: Too few qualifying predictions.
            ProviderUnavailableError: The price provider failed.
        """
        now = now or utcnow()
        ticker = ticker.upper()
        since = now - timedelta(days=self.config.lookback_days)
        items = await self.item_store.query(ticker=ticker, since=since)
        if not items:
            raise InsufficientDataError(
                f"No mentions of {ticker} in the last {self.config.lookback_days} days",
                required=self.config.min_predictions,
            )

        points = await call_provider(
            self.price_provider.get_historical_price_series, ticker,
            provider="price",
            timeout=self.timeout_seconds,
            retry_config=self.retry_config,
        )
        result = backtest(ticker, items, price_series(points), now, self.config)
        logger.debug(
            "Backtest %s: %d/%d correct", ticker,
            result.correct_predictions, result.total_predictions,
        )
        return result
