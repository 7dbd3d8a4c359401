"""Signal Pipeline.

One cycle fetches recent posts from every active community, extracts
tickers, scores sentiment, resolves the author profile, scores quality,
applies the noise filter, stores the item and folds accepted items into
the per-ticker aggregates.

Communities run in bounded waves. Failures are contained to the item or
community that raised them and counted on the cycle stats; only a
ConfigurationError aborts a cycle.
"""

import asyncio
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Union

from crowdsignal.aggregation import EntityAggregator
from crowdsignal.aggregation.store import AggregateStore, ItemStore
from crowdsignal.config import CommunityConfig
from crowdsignal.errors import ConfigurationError, CrowdSignalError, MalformedItemError
from crowdsignal.filtering import FilterConfig, NoiseFilter, QualityScorer
from crowdsignal.logging_config import CycleContext, generate_cycle_id
from crowdsignal.models import AuthorProfile, ItemScore, RawItem, ScoredItem, time_decay, utcnow
from crowdsignal.pipeline.config import PipelineConfig
from crowdsignal.pipeline.context import (
    CleanupReport,
    ConfigSnapshot,
    CycleReport,
    PipelineContext,
)
from crowdsignal.providers.base import PlatformClient, ReputationStore, SentimentProvider
from crowdsignal.resilience import CancellationToken, call_provider, gather_bounded
from crowdsignal.text import LexiconSentimentAnalyzer, SentimentReading, extract_tickers

logger = logging.getLogger(__name__)


class SignalPipeline:
    """Batch processing of community posts into scored items and aggregates.

    Example:
        pipeline = SignalPipeline(client, item_store, aggregate_store, communities)
        report = await pipeline.run_cycle()
        print(report.stats.items_accepted)
    """

    def __init__(
        self,
        platform_client: PlatformClient,
        item_store: ItemStore,
        aggregate_store: AggregateStore,
        communities: Iterable[CommunityConfig],
        reputation_store: Optional[ReputationStore] = None,
        sentiment_provider: Optional[SentimentProvider] = None,
        config: Optional[PipelineConfig] = None,
        filter_config: Optional[FilterConfig] = None,
        aggregator: Optional[EntityAggregator] = None,
    ):
        self.platform_client = platform_client
        self.item_store = item_store
        self.aggregate_store = aggregate_store
        self.communities = list(communities)
        self.reputation_store = reputation_store
        self.sentiment_provider = sentiment_provider
        self.config = config or PipelineConfig()
        self.quality_scorer = QualityScorer(filter_config)
        self.noise_filter = NoiseFilter(filter_config, velocity=item_store)
        self.lexicon = LexiconSentimentAnalyzer()
        self.aggregator = aggregator or EntityAggregator(item_store, aggregate_store)
        self._cycle_lock = asyncio.Lock()
        self._current: Optional[PipelineContext] = None
        self.last_report: Optional[CycleReport] = None

    @property
    def is_processing(self) -> bool:
        return self._cycle_lock.locked()

    def snapshot(self) -> ConfigSnapshot:
        """Freeze the active community configuration for one cycle.

        Raises:
            ConfigurationError: If no community is active.
        """
        active = tuple(replace(c) for c in self.communities if c.is_active)
        if not active:
            raise ConfigurationError("No active communities configured", field="communities")
        return ConfigSnapshot(
            communities=active,
            fetch_limit=self.config.fetch_limit,
            provider_timeout_seconds=self.config.provider_timeout_seconds,
        )

    def cancel(self, reason: str = "cancelled") -> bool:
        """Cancel the in-flight cycle between community units."""
        if self._current is None:
            return False
        self._current.cancel_token.cancel(reason)
        return True

    # ── Cycle ───────────────────────────────────────────────────────

    async def run_cycle(
        self,
        cancel_token: Optional[CancellationToken] = None,
        now: Optional[datetime] = None,
    ) -> Optional[CycleReport]:
        """Run one processing cycle.

        Returns:
            The cycle report, or None if a cycle is already running.

        Raises:
            ConfigurationError: If there is nothing to process.
        """
        if self._cycle_lock.locked():
            logger.info("Processing cycle already in progress, skipping")
            return None

        async with self._cycle_lock:
            ctx = PipelineContext(
                cycle_id=generate_cycle_id(),
                snapshot=self.snapshot(),
                cancel_token=cancel_token or CancellationToken(),
            )
            self._current = ctx
            try:
                with CycleContext(cycle_id=ctx.cycle_id):
                    report = await self._run(ctx, now)
            finally:
                self._current = None
            self.last_report = report
            return report

    async def _run(self, ctx: PipelineContext, now: Optional[datetime]) -> CycleReport:
        report = CycleReport(cycle_id=ctx.cycle_id, started_at=ctx.started_at, stats=ctx.stats)
        logger.info(
            "Starting cycle over %d communities: %s",
            len(ctx.snapshot.communities), ", ".join(ctx.snapshot.community_names),
        )

        outcome = await gather_bounded(
            ctx.snapshot.communities,
            lambda community: self.process_community(ctx, community, now),
            limit=self.config.community_fan_out,
            wave_delay=self.config.wave_delay_seconds,
            cancel_token=ctx.cancel_token,
        )

        for failure in outcome.failed:
            ctx.stats.communities_failed += 1
            report.community_failures[failure.item.name] = failure.error
            logger.error("Community %s failed: %s", failure.item.name, failure.error)

        report.skipped_communities = [c.name for c in outcome.skipped]
        report.cancelled = outcome.cancelled

        if not report.cancelled:
            if self.config.recompute_mentions and ctx.stats.tickers_updated:
                await self.aggregator.recompute_mention_counts(now, ctx.stats.tickers_updated)
            if self.config.refresh_decay:
                report.decay_refreshed = await self.aggregator.refresh_decay(now)

        report.finished_at = utcnow()
        logger.info(
            "Cycle finished in %.0fms: %d accepted, %d rejected, %d errors",
            report.duration_ms,
            ctx.stats.items_accepted,
            ctx.stats.items_rejected,
            ctx.stats.errors,
            extra={"duration_ms": report.duration_ms, "stats": ctx.stats.to_dict()},
        )
        return report

    async def process_community(
        self,
        ctx: PipelineContext,
        community: CommunityConfig,
        now: Optional[datetime] = None,
    ) -> int:
        """Fetch and process one community's posts. Returns items accepted."""
        with CycleContext.for_community(community.name):
            posts = await call_provider(
                self.platform_client.fetch_posts,
                community.name, ctx.snapshot.fetch_limit,
                provider=f"platform:{community.name}",
                timeout=ctx.snapshot.provider_timeout_seconds,
            )
            ctx.stats.items_fetched += len(posts)

            accepted = 0
            for payload in posts:
                try:
                    scored = await self.process_item(ctx, payload, community, now)
                except MalformedItemError as exc:
                    ctx.stats.malformed_items += 1
                    logger.warning(
                        "Skipping malformed item: %s", exc.message,
                        extra={"item_id": exc.item_id},
                    )
                    continue
                except Exception as exc:
                    ctx.stats.item_errors += 1
                    logger.exception(
                        "Error processing item: %s", exc,
                        extra={"item_id": _payload_id(payload)},
                    )
                    continue
                if scored is not None and scored.accepted:
                    accepted += 1

            ctx.stats.communities_processed += 1
            logger.info("Processed %d posts, %d accepted", len(posts), accepted)
            return accepted

    async def process_item(
        self,
        ctx: PipelineContext,
        payload: Union[RawItem, dict[str, Any]],
        community: CommunityConfig,
        now: Optional[datetime] = None,
    ) -> Optional[ScoredItem]:
        """Score, filter, store and aggregate one post.

        Returns:
            The stored ScoredItem, or None for duplicates and posts
            without ticker mentions.

        Raises:
            MalformedItemError: If the payload cannot be parsed.
        """
        item = payload if isinstance(payload, RawItem) else RawItem.from_dict(payload)
        now = now or utcnow()

        if await self.item_store.exists(item.item_id):
            ctx.stats.items_duplicate += 1
            return None

        tickers = extract_tickers(item.text)
        if not tickers:
            ctx.stats.items_without_tickers += 1
            return None
        ctx.stats.tickers_extracted += len(tickers)

        reading = await self._sentiment(ctx, item)
        author = await self._author(ctx, item.author)
        quality = self.quality_scorer.score(item, author, community)
        decision = await self.noise_filter.evaluate(item, quality, community, now)

        scored = ScoredItem(
            item=item,
            tickers=tickers,
            score=ItemScore(
                quality_score=quality,
                passes_filter=decision.passed,
                sentiment_score=reading.score,
                sentiment_confidence=reading.confidence,
                decay_factor=time_decay(item.age_hours(now)),
                rejection_reasons=[r.value for r in decision.reasons],
            ),
            author=author,
        )
        await self.item_store.save(scored)
        ctx.stats.items_processed += 1

        if not decision.passed:
            ctx.stats.items_rejected += 1
            ctx.stats.rejection_reasons.update(r.value for r in decision.reasons)
            return scored

        ctx.stats.items_accepted += 1
        result = await self.aggregator.apply(scored, now)
        ctx.stats.tickers_updated.update(result.updated)
        ctx.stats.aggregation_errors.update(result.errors)
        return scored

    async def _sentiment(self, ctx: PipelineContext, item: RawItem) -> SentimentReading:
        if self.sentiment_provider is None:
            return self.lexicon.analyze(item.body, item.title)
        try:
            return await call_provider(
                self.sentiment_provider.analyze, item.text,
                provider="sentiment",
                timeout=ctx.snapshot.provider_timeout_seconds,
            )
        except CrowdSignalError as exc:
            ctx.stats.sentiment_fallbacks += 1
            logger.warning(
                "Sentiment provider failed, using lexicon: %s", exc,
                extra={"item_id": item.item_id},
            )
            return self.lexicon.analyze(item.body, item.title)

    async def _author(self, ctx: PipelineContext, username: str) -> AuthorProfile:
        if self.reputation_store is None:
            return AuthorProfile.default(username)
        try:
            profile = await call_provider(
                self.reputation_store.get_profile, username,
                provider="reputation",
                timeout=ctx.snapshot.provider_timeout_seconds,
            )
        except CrowdSignalError as exc:
            logger.warning("Reputation lookup failed for %s: %s", username, exc)
            profile = None
        return profile or AuthorProfile.default(username)

    # ── Retention ───────────────────────────────────────────────────

    async def cleanup_old_data(
        self,
        retention_days: Optional[int] = None,
        dry_run: bool = False,
        now: Optional[datetime] = None,
    ) -> CleanupReport:
        """Delete old items that were rejected, low quality or ticker-less."""
        days = retention_days if retention_days is not None else self.config.retention_days
        cutoff = (now or utcnow()) - timedelta(days=days)

        old = await self.item_store.query(until=cutoff, accepted_only=False)
        doomed = [
            i.item_id for i in old
            if i.created_at < cutoff and (
                not i.accepted
                or i.score.quality_score < self.config.cleanup_quality_below
                or not i.tickers
            )
        ]

        report = CleanupReport(cutoff=cutoff, matched=len(doomed), dry_run=dry_run)
        if dry_run:
            logger.info("Cleanup dry run: would delete %d items older than %s", len(doomed), cutoff)
            return report

        report.deleted = await self.item_store.delete(doomed)
        logger.info("Cleanup deleted %d items older than %s", report.deleted, cutoff)
        return report


def _payload_id(payload: Union[RawItem, dict[str, Any]]) -> str:
    if isinstance(payload, RawItem):
        return payload.item_id
    if isinstance(payload, dict):
        return str(payload.get("item_id") or payload.get("id") or payload.get("reddit_id") or "")
    return ""
