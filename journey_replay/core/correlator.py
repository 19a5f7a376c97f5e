"""Timeline correlation.

Projects a trace onto a shared time axis and links every request to the
interaction that caused it. Attribution walks the events once, in array
order: a request belongs to the most recent interaction before it, and an
interaction's window closes (exclusive) at the next interaction. Events are
never re-sorted, because sorting would change attribution.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Literal

from ..trace.hosts import PLACEHOLDER_HOST, describe_participants, resolve_current_host
from ..trace.models import TraceEvent, TraceFile
from ..utils.formatters import clamp_percent


class ColorTag(str, Enum):
    """Marker colors used by the timeline tracks."""

    INTERACTION = "#f5d742"
    REQUEST = "#4aa3ff"


@dataclass
class TimelineMarker:
    """One event placed on the timeline."""

    id: str
    position: float
    timestamp: float | None
    label: str
    details: str
    trace_id: int | str | None
    color: ColorTag
    from_participant: str
    to_participant: str
    event: TraceEvent
    current_host: str = PLACEHOLDER_HOST
    related_requests: list[TraceEvent] = field(default_factory=list)
    triggered_by: TraceEvent | None = None

    @property
    def is_interaction(self) -> bool:
        return self.event.is_interaction

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "position": self.position,
            "timestamp": self.timestamp,
            "label": self.label,
            "details": self.details,
            "traceId": self.trace_id,
            "color": self.color.value,
            "from": self.from_participant,
            "to": self.to_participant,
            "kind": self.event.kind,
            "event": self.event.to_dict(),
        }
        if self.is_interaction:
            data["relatedRequests"] = [e.internal_id for e in self.related_requests]
        else:
            data["currentHost"] = self.current_host
            data["triggeredBy"] = self.triggered_by.internal_id if self.triggered_by else None
        return data


@dataclass
class TimelineComputation:
    """Markers for one pass plus the time axis they were placed on."""

    interaction_markers: list[TimelineMarker] = field(default_factory=list)
    request_markers: list[TimelineMarker] = field(default_factory=list)
    time_range_ms: float | None = None
    start_ts: float | None = None
    end_ts: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.time_range_ms is None

    def to_dict(self) -> dict:
        return {
            "interactionMarkers": [m.to_dict() for m in self.interaction_markers],
            "requestMarkers": [m.to_dict() for m in self.request_markers],
            "timeRangeMs": self.time_range_ms,
            "startTs": self.start_ts,
            "endTs": self.end_ts,
        }


def _marker_label(event: TraceEvent) -> str:
    return (
        event.label
        or event.text
        or event.path
        or getattr(event, "method", None)
        or event.kind
        or "event"
    )


def build_details(event: TraceEvent) -> str:
    """Multi-line summary shown in a marker's tooltip."""
    details = []
    if event.label or event.text:
        details.append(event.label or event.text)
    if event.selector:
        details.append(f"Selector: {event.selector}")
    method = getattr(event, "method", None)
    if method or event.path:
        details.append(f"{method or ''} {event.path or ''}".strip())
    status = getattr(event, "status", None)
    if isinstance(status, (int, float)):
        details.append(f"Status: {status}")
    if event.ts:
        details.append(f"ts: {event.ts}")
    return "\n".join(line for line in details if line)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def compute_timeline(
    trace: TraceFile | None,
    video_anchor_ms: float | None = None,
    video_duration_ms: float | None = None,
) -> TimelineComputation:
    """Place every interaction and request of ``trace`` on the time axis.

    Args:
        trace: Filtered, overridden trace (``None`` when nothing is loaded)
        video_anchor_ms: Wall-clock time the video started
        video_duration_ms: Decoded video length

    Returns:
        TimelineComputation with interaction and request markers
    """
    events = list(trace.events) if trace else []
    timestamps = [event.ts for event in events if _is_number(event.ts)]
    has_anchor = _is_number(video_anchor_ms)

    if not timestamps and not has_anchor and video_duration_ms is None:
        return TimelineComputation()

    min_event_ts = min(timestamps) if timestamps else (video_anchor_ms if has_anchor else 0)
    start_ts = min(video_anchor_ms, min_event_ts) if has_anchor else min_event_ts

    max_event_ts = max(timestamps) if timestamps else start_ts
    video_end_ts = None
    if has_anchor and _is_number(video_duration_ms):
        video_end_ts = video_anchor_ms + video_duration_ms
    end_ts = max(
        max_event_ts,
        video_end_ts if video_end_ts is not None else max_event_ts,
        start_ts + 1,
    )
    time_range = end_ts - start_ts

    # One forward pass: each interaction opens a bucket, requests land in the
    # most recently opened one. Keys are array indices so missing ids are safe.
    related_by_index: dict[int, list[TraceEvent]] = {}
    trigger_by_index: dict[int, TraceEvent | None] = {}
    host_by_index: dict[int, str] = {}

    last_interaction: TraceEvent | None = None
    bucket: list[TraceEvent] | None = None
    current_host = PLACEHOLDER_HOST
    for index, event in enumerate(events):
        if event.is_interaction:
            host_by_index[index] = current_host
            current_host = resolve_current_host(event, fallback=current_host)
            last_interaction = event
            bucket = []
            related_by_index[index] = bucket
        elif event.is_request:
            trigger_by_index[index] = last_interaction
            host_by_index[index] = current_host
            if bucket is not None:
                bucket.append(event)

    def to_marker(index: int, event: TraceEvent) -> TimelineMarker:
        ts = event.ts if _is_number(event.ts) else start_ts
        position = clamp_percent((ts - start_ts) / time_range * 100)
        # For interactions this is the host *before* the interaction ran.
        host_context = host_by_index.get(index, PLACEHOLDER_HOST)
        from_participant, to_participant = describe_participants(event, host_context)
        marker_id = event.internal_id or f"{event.kind}-{event.id if event.id is not None else index}"
        return TimelineMarker(
            id=marker_id,
            position=position,
            timestamp=event.ts if _is_number(event.ts) else None,
            label=_marker_label(event),
            details=build_details(event),
            trace_id=event.id,
            color=ColorTag.INTERACTION if event.is_interaction else ColorTag.REQUEST,
            from_participant=from_participant,
            to_participant=to_participant,
            event=event,
            current_host=host_context,
            related_requests=list(related_by_index.get(index, [])),
            triggered_by=trigger_by_index.get(index),
        )

    interaction_markers = [
        to_marker(index, event) for index, event in enumerate(events) if event.is_interaction
    ]
    request_markers = [
        to_marker(index, event) for index, event in enumerate(events) if event.is_request
    ]

    return TimelineComputation(
        interaction_markers=interaction_markers,
        request_markers=request_markers,
        time_range_ms=time_range,
        start_ts=start_ts,
        end_ts=end_ts,
    )


# =============================================================================
# Marker navigation and video sync
# =============================================================================


def combined_markers(computation: TimelineComputation) -> list[TimelineMarker]:
    """All timestamped markers, interactions and requests, in time order."""
    markers = [
        marker
        for marker in (*computation.interaction_markers, *computation.request_markers)
        if marker.timestamp is not None
    ]
    # sorted() is stable, so equal timestamps keep interaction-first order.
    return sorted(markers, key=lambda marker: marker.timestamp)


def find_marker(markers: Iterable[TimelineMarker], marker_id: str | None) -> TimelineMarker | None:
    if marker_id is None:
        return None
    for marker in markers:
        if marker.id == marker_id:
            return marker
    return None


def navigate_markers(
    markers: list[TimelineMarker],
    active_id: str | None,
    direction: Literal["prev", "next"],
) -> TimelineMarker | None:
    """Marker reached by stepping once from ``active_id``.

    With nothing active, ``next`` goes to the first marker and ``prev`` to
    the last. Steps clamp at both ends.
    """
    if not markers:
        return None
    index = next((i for i, m in enumerate(markers) if m.id == active_id), -1)
    if direction == "next":
        target = 0 if index < 0 else min(len(markers) - 1, index + 1)
    else:
        target = len(markers) - 1 if index < 0 else max(0, index - 1)
    return markers[target]


def playback_percent(
    computation: TimelineComputation,
    video_anchor_ms: float | None,
    video_progress_ms: float | None,
) -> float | None:
    """Where the video playhead sits on the timeline, in percent."""
    if not computation.time_range_ms or computation.start_ts is None:
        return None
    if not _is_number(video_progress_ms):
        return None
    anchor = video_anchor_ms if _is_number(video_anchor_ms) else computation.start_ts
    playback_ts = anchor + video_progress_ms
    return (playback_ts - computation.start_ts) / computation.time_range_ms * 100


def marker_seek_seconds(
    marker: TimelineMarker,
    video_anchor_ms: float | None,
    video_duration_ms: float | None = None,
) -> float | None:
    """Video time to seek to for ``marker``, or ``None`` if it is off the video."""
    if marker.timestamp is None or not _is_number(video_anchor_ms):
        return None
    seconds = (marker.timestamp - video_anchor_ms) / 1000
    if seconds < 0:
        return None
    if _is_number(video_duration_ms) and seconds > video_duration_ms / 1000:
        return None
    return seconds
