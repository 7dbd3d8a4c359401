"""Structured logging for the signal pipeline."""

from crowdsignal.logging_config.config import (
    DEFAULT_LOGGING_CONFIG,
    LogFormat,
    LoggingConfig,
    LogLevel,
)
from crowdsignal.logging_config.context import (
    CycleContext,
    generate_cycle_id,
    get_context_dict,
    get_cycle_id,
)
from crowdsignal.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    resolve_config,
)

__all__ = [
    "DEFAULT_LOGGING_CONFIG",
    "LogFormat",
    "LoggingConfig",
    "LogLevel",
    "CycleContext",
    "generate_cycle_id",
    "get_context_dict",
    "get_cycle_id",
    "ConsoleFormatter",
    "StructuredFormatter",
    "configure_logging",
    "resolve_config",
]
