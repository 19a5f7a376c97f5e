"""Formatting helpers for timestamps, durations and sizes shown next to markers."""

import math
from datetime import datetime
from typing import Optional

PLACEHOLDER = "—"


def clamp_percent(value: float) -> float:
    """Clamp a percentage into the 0-100 range."""
    return min(100.0, max(0.0, value))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)


def format_timestamp(ts: Optional[float]) -> str:
    """Format an epoch-millisecond timestamp as ``Mon DD · HH:MM:SS`` local time."""
    if not ts:
        return PLACEHOLDER
    moment = datetime.fromtimestamp(ts / 1000)
    return moment.strftime("%b %d · %H:%M:%S")


def format_ms(value: Optional[float]) -> str:
    if not _is_number(value):
        return PLACEHOLDER
    return f"{value:.2f} ms"


def format_bytes(value: Optional[float]) -> str:
    if not _is_number(value):
        return PLACEHOLDER
    if value >= 1024 * 1024:
        return f"{value / (1024 * 1024):.2f} MB"
    if value >= 1024:
        return f"{value / 1024:.2f} KB"
    return f"{value:,} bytes"


def format_waterfall_duration(ms: float) -> str:
    """Compact duration used on waterfall bars."""
    if ms < 1:
        return "<1ms"
    if ms < 1000:
        return f"{round(ms)}ms"
    return f"{ms / 1000:.2f}s"
