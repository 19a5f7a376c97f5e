"""Timing analysis for the requests an interaction triggered.

Requests without a ``status`` (``data:`` URLs, aborted requests) are never
counted as failed, and requests without a ``duration`` contribute zero time,
so neither is ever flagged as slow.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from ..trace.models import NetworkTimings, TraceEvent
from ..utils.formatters import format_ms

SLOW_REQUEST_FACTOR = 1.5
WATERFALL_LABEL_LENGTH = 50

TIMING_ORDER: tuple[str, ...] = (
    "blocked",
    "dns",
    "connect",
    "ssl",
    "send",
    "wait",
    "receive",
    "_blocked_queueing",
    "_workerStart",
    "_workerReady",
    "_workerFetchStart",
    "_workerRespondWithSettled",
)

TIMING_LABELS: dict[str, str] = {
    "blocked": "Blocked",
    "dns": "DNS",
    "connect": "Connect",
    "ssl": "SSL",
    "send": "Send",
    "wait": "Wait / TTFB",
    "receive": "Receive",
    "_blocked_queueing": "Queueing",
    "_workerStart": "Worker start",
    "_workerReady": "Worker ready",
    "_workerFetchStart": "Worker fetch",
    "_workerRespondWithSettled": "Worker respond",
}


class PerformanceRating(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    ACCEPTABLE = "Acceptable"
    SLOW = "Slow"
    VERY_SLOW = "Very Slow"
    UNKNOWN = "Unknown"


def _number(value) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _timings(event: TraceEvent) -> NetworkTimings | None:
    return getattr(event, "timings", None)


def _is_failed(event: TraceEvent) -> bool:
    status = _number(getattr(event, "status", None))
    return status is not None and status >= 400


@dataclass
class InteractionTimingAnalysis:
    """User-facing timing summary for one interaction."""

    request_count: int
    time_to_first_response: float | None
    time_to_all_complete: float | None
    total_blocked: float
    avg_wait_ttfb: float | None
    slowest_request: TraceEvent | None
    total_transferred: float
    failed_requests: int
    requests_with_timings: int

    @property
    def rating(self) -> PerformanceRating:
        return performance_rating(self.time_to_all_complete)

    def to_dict(self) -> dict:
        return {
            "requestCount": self.request_count,
            "timeToFirstResponse": self.time_to_first_response,
            "timeToAllComplete": self.time_to_all_complete,
            "totalBlocked": self.total_blocked,
            "avgWaitTTFB": self.avg_wait_ttfb,
            "slowestRequest": self.slowest_request.internal_id if self.slowest_request else None,
            "totalTransferred": self.total_transferred,
            "failedRequests": self.failed_requests,
            "requestsWithTimings": self.requests_with_timings,
            "rating": self.rating.value,
        }


def analyze_interaction_timing(
    interaction_ts: float | None,
    requests: Sequence[TraceEvent],
) -> InteractionTimingAnalysis | None:
    """Summarize how long the requests behind one interaction took.

    Args:
        interaction_ts: Timestamp of the interaction (epoch ms)
        requests: Requests attributed to the interaction

    Returns:
        InteractionTimingAnalysis, or None when there are no requests
    """
    if not requests:
        return None

    base_ts = interaction_ts or 0
    with_timings = [
        r for r in requests
        if _timings(r) is not None or _number(getattr(r, "duration", None)) is not None
    ]

    response_starts = []
    response_ends = []
    for request in requests:
        ts = _number(request.ts)
        timings = _timings(request)
        if ts and timings is not None:
            start = ts - base_ts + (timings.blocked or 0) + (timings.wait or 0)
            if start >= 0:
                response_starts.append(start)
        duration = _number(getattr(request, "duration", None))
        if ts and duration is not None:
            end = ts - base_ts + duration
            if end >= 0:
                response_ends.append(end)

    total_blocked = 0.0
    waits = []
    for request in with_timings:
        timings = _timings(request)
        if timings is None:
            continue
        total_blocked += (timings.blocked or 0) + (timings.blocked_queueing or 0)
        wait = _number(timings.wait)
        if wait is not None and wait >= 0:
            waits.append(wait)

    slowest = None
    max_duration = 0
    for request in requests:
        duration = _number(getattr(request, "duration", None)) or 0
        if duration > max_duration:
            max_duration = duration
            slowest = request

    return InteractionTimingAnalysis(
        request_count=len(requests),
        time_to_first_response=min(response_starts) if response_starts else None,
        time_to_all_complete=max(response_ends) if response_ends else None,
        total_blocked=total_blocked,
        avg_wait_ttfb=sum(waits) / len(waits) if waits else None,
        slowest_request=slowest,
        total_transferred=sum(
            _number(getattr(r, "transfer_size", None)) or 0 for r in requests
        ),
        failed_requests=sum(1 for r in requests if _is_failed(r)),
        requests_with_timings=len(with_timings),
    )


def performance_rating(time_to_all_complete: float | None) -> PerformanceRating:
    if time_to_all_complete is None:
        return PerformanceRating.UNKNOWN
    if time_to_all_complete < 200:
        return PerformanceRating.EXCELLENT
    if time_to_all_complete < 500:
        return PerformanceRating.GOOD
    if time_to_all_complete < 1000:
        return PerformanceRating.ACCEPTABLE
    if time_to_all_complete < 2000:
        return PerformanceRating.SLOW
    return PerformanceRating.VERY_SLOW


# =============================================================================
# Waterfall
# =============================================================================


@dataclass
class WaterfallBar:
    request: TraceEvent
    start_percent: float
    blocked_percent: float
    waiting_percent: float
    receiving_percent: float
    total_percent: float
    start_ms: float
    duration_ms: float
    label: str
    method: str
    status: int | None
    is_slow_request: bool
    is_failed: bool

    def to_dict(self) -> dict:
        return {
            "requestId": self.request.internal_id,
            "startPercent": self.start_percent,
            "blockedPercent": self.blocked_percent,
            "waitingPercent": self.waiting_percent,
            "receivingPercent": self.receiving_percent,
            "totalPercent": self.total_percent,
            "startMs": self.start_ms,
            "durationMs": self.duration_ms,
            "label": self.label,
            "method": self.method,
            "status": self.status,
            "isSlowRequest": self.is_slow_request,
            "isFailed": self.is_failed,
        }


@dataclass
class WaterfallData:
    bars: list[WaterfallBar] = field(default_factory=list)
    total_duration_ms: float = 1
    request_count: int = 0

    def to_dict(self) -> dict:
        return {
            "bars": [bar.to_dict() for bar in self.bars],
            "totalDurationMs": self.total_duration_ms,
            "requestCount": self.request_count,
        }


def _waterfall_label(event: TraceEvent) -> str:
    full_path = event.path or event.url or "Unknown"
    if len(full_path) > WATERFALL_LABEL_LENGTH:
        return f"{full_path[:WATERFALL_LABEL_LENGTH - 3]}..."
    return full_path


def compute_waterfall(
    interaction_ts: float | None,
    requests: Sequence[TraceEvent],
) -> WaterfallData | None:
    """Lay the requests of one interaction out as waterfall bars.

    Bars are positioned relative to the interaction and sorted by start.
    Without phase timings a request's duration is split 70/30 between
    waiting and receiving; otherwise untimed remainder counts as waiting.
    """
    if not requests or interaction_ts is None:
        return None

    spans = []
    for request in requests:
        ts = _number(request.ts)
        start = (ts if ts is not None else interaction_ts) - interaction_ts
        duration = _number(getattr(request, "duration", None)) or 0
        spans.append((request, max(0, start), max(0, start + duration), duration))

    total = max([end for _, _, end, _ in spans] + [1])
    average = sum(duration for *_, duration in spans) / len(spans)

    bars = []
    for request, start, _, duration in spans:
        timings = _timings(request)
        blocked = waiting = receiving = 0.0
        if timings is not None:
            blocked = (timings.blocked or 0) + (timings.blocked_queueing or 0)
            waiting = timings.wait or 0
            receiving = timings.receive or 0

        timed_total = blocked + waiting + receiving
        if timed_total < duration and duration > 0:
            if timed_total == 0:
                waiting = duration * 0.7
                receiving = duration * 0.3
            else:
                waiting += duration - timed_total

        status = _number(getattr(request, "status", None))
        bars.append(
            WaterfallBar(
                request=request,
                start_percent=start / total * 100,
                blocked_percent=blocked / total * 100,
                waiting_percent=waiting / total * 100,
                receiving_percent=receiving / total * 100,
                total_percent=duration / total * 100,
                start_ms=start,
                duration_ms=duration,
                label=_waterfall_label(request),
                method=getattr(request, "method", None) or "GET",
                status=int(status) if status is not None else None,
                is_slow_request=duration > average * SLOW_REQUEST_FACTOR,
                is_failed=_is_failed(request),
            )
        )

    bars.sort(key=lambda bar: bar.start_ms)
    return WaterfallData(bars=bars, total_duration_ms=total, request_count=len(requests))


def build_timing_entries(timings: NetworkTimings | None) -> list[tuple[str, str]]:
    """``(label, formatted value)`` pairs for every recorded timing phase."""
    if timings is None:
        return []
    entries = []
    for key in TIMING_ORDER:
        value = _number(timings.phase(key))
        if value is not None and math.isfinite(value):
            entries.append((TIMING_LABELS.get(key, key), format_ms(value)))
    return entries
