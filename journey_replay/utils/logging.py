"""Structured logging for Journey Replay.

Everything logs through structlog. Recompute passes, trace loads and
exports are wrapped in ``log_operation`` so each one produces a
started/completed (or failed) pair with its duration.
"""

import logging
import sys
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Optional

import structlog

if TYPE_CHECKING:
    from journey_replay.config import Settings

# Diagram scripts and captured bodies can be very long.
MAX_LOGGED_VALUE_LENGTH = 500


def truncate_long_values(logger, method_name: str, event_dict: dict) -> dict:
    """Shorten oversized string values so a single line stays readable."""
    for key, value in event_dict.items():
        if key != "event" and isinstance(value, str) and len(value) > MAX_LOGGED_VALUE_LENGTH:
            event_dict[key] = f"{value[:MAX_LOGGED_VALUE_LENGTH]}... ({len(value)} chars)"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        json_format: Render one JSON object per line instead of console output
        include_timestamp: Prefix events with an ISO timestamp
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        truncate_long_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(settings: Optional["Settings"] = None) -> None:
    """Apply the ``JOURNEY_LOG_*`` settings."""
    if settings is None:
        from journey_replay.config import get_settings

        settings = get_settings()
    configure_logging(settings.log_level.value, json_format=settings.log_json)


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Return a logger, bound to ``context`` when given."""
    logger = structlog.get_logger(name)
    return logger.bind(**context) if context else logger


class LogContext:
    """Bind context variables for every log call inside a ``with`` block.

    Usage:
        with LogContext(trace_name="checkout.json"):
            session.load_trace(trace)
    """

    def __init__(self, **context):
        self.context = context
        self._manager = None

    def __enter__(self) -> "LogContext":
        self._manager = structlog.contextvars.bound_contextvars(**self.context)
        self._manager.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._manager is not None:
            self._manager.__exit__(exc_type, exc_val, exc_tb)
            self._manager = None


@contextmanager
def log_operation(
    operation: str,
    logger: Optional[structlog.BoundLogger] = None,
    **context,
):
    """Log the start, end and duration of ``operation``.

    Yields a dict the caller can fill with results; its contents are logged
    on completion. Exceptions are logged and re-raised.

    Example:
        with log_operation("recompute", logger=self.log) as op:
            view = build_view()
            op["markers"] = len(view.markers)
    """
    log = (logger or get_logger()).bind(operation=operation, **context)
    log.debug(f"{operation} started")
    result = {"success": False, "error": None}
    started = time.perf_counter()

    try:
        yield result
    except Exception as e:
        result["error"] = str(e)
        log.error(f"{operation} failed", duration_ms=_elapsed_ms(started), **result)
        raise

    result["success"] = True
    log.debug(f"{operation} completed", duration_ms=_elapsed_ms(started), **result)


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
