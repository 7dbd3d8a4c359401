"""Cycle Scheduler.

Runs the pipeline at a fixed interval with an on-demand trigger. Stopping
the scheduler cancels the in-flight cycle cooperatively: it finishes the
community wave it is on and skips the rest.
"""

import asyncio
import logging
from typing import Optional

from crowdsignal.errors import ConfigurationError
from crowdsignal.pipeline.context import CycleReport
from crowdsignal.pipeline.processor import SignalPipeline

logger = logging.getLogger(__name__)


class CycleScheduler:
    """Periodic driver for SignalPipeline.

    Example:
        scheduler = CycleScheduler(pipeline, interval_seconds=900)
        await scheduler.start()
        report = await scheduler.trigger_now()
        await scheduler.stop()
    """

    def __init__(self, pipeline: SignalPipeline, interval_seconds: Optional[float] = None):
        self.pipeline = pipeline
        self.interval_seconds = interval_seconds or pipeline.config.interval_seconds
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._wakeup = asyncio.Event()
        self.cycles_run = 0
        self.cycles_failed = 0
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, run_immediately: bool = True) -> None:
        if self._running:
            return
        self._running = True
        if run_immediately:
            self._wakeup.set()
        self._task = asyncio.create_task(self._loop())
        logger.info("Scheduler started, interval %.0fs", self.interval_seconds)

    async def stop(self) -> None:
        """Stop the loop, cancelling any in-flight cycle between communities."""
        if not self._running:
            return
        self._running = False
        self.pipeline.cancel("scheduler stopped")
        self._wakeup.set()
        if self._task is not None:
            await self._task
            self._task = None
        logger.info("Scheduler stopped after %d cycles", self.cycles_run)

    async def trigger_now(self) -> Optional[CycleReport]:
        """Run a cycle immediately. Returns None if one is already running."""
        return await self._run_once()

    async def _loop(self) -> None:
        while self._running:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()
            if not self._running:
                break
            await self._run_once()

    async def _run_once(self) -> Optional[CycleReport]:
        try:
            report = await self.pipeline.run_cycle()
        except ConfigurationError as exc:
            self.cycles_failed += 1
            self.last_error = exc.message
            logger.error("Cycle aborted by configuration error: %s", exc.message)
            return None
        except Exception as exc:
            self.cycles_failed += 1
            self.last_error = str(exc)
            logger.exception("Cycle failed: %s", exc)
            return None
        if report is not None:
            self.cycles_run += 1
        return report
