"""Utility modules for Journey Replay.

Provides:
- Structured logging configuration
- Display formatters for timestamps, durations and sizes
"""

from .formatters import (
    clamp_percent,
    format_bytes,
    format_ms,
    format_timestamp,
    format_waterfall_duration,
)
from .logging import (
    LogContext,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    log_operation,
)

__all__ = [
    # Logging
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "LogContext",
    "log_operation",
    # Formatters
    "clamp_percent",
    "format_bytes",
    "format_ms",
    "format_timestamp",
    "format_waterfall_duration",
]
