"""Processing cycles: fetch, score, filter, store, aggregate."""

from crowdsignal.pipeline.config import PipelineConfig
from crowdsignal.pipeline.context import (
    CleanupReport,
    ConfigSnapshot,
    CycleReport,
    CycleStats,
    PipelineContext,
)
from crowdsignal.pipeline.processor import SignalPipeline
from crowdsignal.pipeline.scheduler import CycleScheduler

__all__ = [
    "PipelineConfig",
    "CleanupReport",
    "ConfigSnapshot",
    "CycleReport",
    "CycleStats",
    "PipelineContext",
    "SignalPipeline",
    "CycleScheduler",
]
