"""Data models for recorded browser session traces."""

import math
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Optional, Union

EventId = Union[int, str]

INTERNAL_ID_KEY = "jrInternalId"


class EventKind(str, Enum):
    """Known trace event kinds."""

    CLICK = "click"
    NAVIGATION = "navigation"
    SPA_NAVIGATION = "spa-navigation"
    REQUEST = "request"


INTERACTION_KINDS = frozenset(
    {EventKind.CLICK.value, EventKind.NAVIGATION.value, EventKind.SPA_NAVIGATION.value}
)


def _key(name: str, *types: type) -> dict:
    return {"key": name, "types": types}


def _accepts(value: Any, types: tuple) -> bool:
    if value is None:
        return True
    if isinstance(value, bool) and bool not in types:
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return isinstance(value, types)


def _split_known(cls, data: dict) -> tuple[dict, dict]:
    """Split a raw dict into dataclass kwargs and leftover keys.

    Values with an unexpected type stay in the leftovers untouched so that
    serializing the event again reproduces the input.
    """
    kwargs: dict[str, Any] = {}
    consumed: set[str] = set()
    for f in fields(cls):
        meta = f.metadata
        if "key" not in meta:
            continue
        json_key = meta["key"]
        if json_key not in data:
            continue
        value = data[json_key]
        if not _accepts(value, meta["types"]):
            continue
        kwargs[f.name] = value
        consumed.add(json_key)
    extra = {k: v for k, v in data.items() if k not in consumed}
    return kwargs, extra


def _dump_known(obj) -> dict:
    out: dict[str, Any] = {}
    for f in fields(obj):
        json_key = f.metadata.get("key")
        if not json_key:
            continue
        value = getattr(obj, f.name)
        if value is None:
            continue
        out[json_key] = value.to_dict() if hasattr(value, "to_dict") else value
    return out


@dataclass(frozen=True)
class NetworkTimings:
    """HAR-style timing breakdown of a request, in milliseconds."""

    blocked: Optional[float] = field(default=None, metadata=_key("blocked", int, float))
    dns: Optional[float] = field(default=None, metadata=_key("dns", int, float))
    connect: Optional[float] = field(default=None, metadata=_key("connect", int, float))
    ssl: Optional[float] = field(default=None, metadata=_key("ssl", int, float))
    send: Optional[float] = field(default=None, metadata=_key("send", int, float))
    wait: Optional[float] = field(default=None, metadata=_key("wait", int, float))
    receive: Optional[float] = field(default=None, metadata=_key("receive", int, float))
    blocked_queueing: Optional[float] = field(
        default=None, metadata=_key("_blocked_queueing", int, float)
    )
    worker_start: Optional[float] = field(default=None, metadata=_key("_workerStart", int, float))
    worker_ready: Optional[float] = field(default=None, metadata=_key("_workerReady", int, float))
    worker_fetch_start: Optional[float] = field(
        default=None, metadata=_key("_workerFetchStart", int, float)
    )
    worker_respond_with_settled: Optional[float] = field(
        default=None, metadata=_key("_workerRespondWithSettled", int, float)
    )
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "NetworkTimings":
        kwargs, extra = _split_known(cls, data)
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict:
        return {**_dump_known(self), **self.extra}

    def phase(self, json_key: str) -> Optional[float]:
        """Look up a phase by its trace-file key (``wait``, ``_workerStart`` ...)."""
        for f in fields(self):
            if f.metadata.get("key") == json_key:
                return getattr(self, f.name)
        return None


@dataclass(frozen=True)
class CapturedBody:
    """A request or response body captured with the trace."""

    mime_type: Optional[str] = field(default=None, metadata=_key("mimeType", str))
    encoding: Optional[str] = field(default=None, metadata=_key("encoding", str))
    text: Optional[str] = field(default=None, metadata=_key("text", str))
    size: Optional[int] = field(default=None, metadata=_key("size", int, float))
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "CapturedBody":
        kwargs, extra = _split_known(cls, data)
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict:
        return {**_dump_known(self), **self.extra}

    @property
    def is_base64(self) -> bool:
        return (self.encoding or "").lower() == "base64"


@dataclass(frozen=True)
class TraceEvent:
    """Fields shared by every event in a trace.

    ``internal_id`` is the stable identity assigned at load time and is the
    only key used for overrides and diagram cross-referencing. ``id`` is the
    recorder's own identifier and is neither guaranteed unique nor present.
    """

    kind: Optional[str] = field(default=None, metadata=_key("kind", str))
    id: Optional[EventId] = field(default=None, metadata=_key("id", int, str))
    internal_id: Optional[str] = field(default=None, metadata=_key(INTERNAL_ID_KEY, str))
    ts: Optional[float] = field(default=None, metadata=_key("ts", int, float))
    label: Optional[str] = field(default=None, metadata=_key("label", str))
    text: Optional[str] = field(default=None, metadata=_key("text", str))
    selector: Optional[str] = field(default=None, metadata=_key("selector", str))
    path: Optional[str] = field(default=None, metadata=_key("path", str))
    url: Optional[str] = field(default=None, metadata=_key("url", str))
    host: Optional[str] = field(default=None, metadata=_key("host", str))
    target_host: Optional[str] = field(default=None, metadata=_key("targetHost", str))
    target_url: Optional[str] = field(default=None, metadata=_key("targetUrl", str))
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "TraceEvent":
        kwargs, extra = _split_known(cls, data)
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict:
        """Serialize back to the trace-file shape, unknown keys included."""
        return {**_dump_known(self), **self.extra}

    @property
    def is_interaction(self) -> bool:
        return self.kind in INTERACTION_KINDS

    @property
    def is_request(self) -> bool:
        return self.kind == EventKind.REQUEST.value

    def with_label(self, label: str) -> "TraceEvent":
        return replace(self, label=label)

    def with_internal_id(self, internal_id: str) -> "TraceEvent":
        return replace(self, internal_id=internal_id)


@dataclass(frozen=True)
class ClickEvent(TraceEvent):
    """A user click. ``target_host`` is set when the click left the page's host."""

    kind: Optional[str] = field(default=EventKind.CLICK.value, metadata=_key("kind", str))


@dataclass(frozen=True)
class NavigationEvent(TraceEvent):
    """A full page navigation; ``host`` is the destination."""

    kind: Optional[str] = field(default=EventKind.NAVIGATION.value, metadata=_key("kind", str))
    transition_type: Optional[str] = field(default=None, metadata=_key("transitionType", str))


@dataclass(frozen=True)
class SpaNavigationEvent(TraceEvent):
    """A client-side route change (history API or hash change)."""

    kind: Optional[str] = field(
        default=EventKind.SPA_NAVIGATION.value, metadata=_key("kind", str)
    )
    navigation_type: Optional[str] = field(default=None, metadata=_key("navigationType", str))
    previous_host: Optional[str] = field(default=None, metadata=_key("previousHost", str))
    previous_url: Optional[str] = field(default=None, metadata=_key("previousUrl", str))


@dataclass(frozen=True)
class RequestEvent(TraceEvent):
    """A network request observed during the session."""

    kind: Optional[str] = field(default=EventKind.REQUEST.value, metadata=_key("kind", str))
    method: Optional[str] = field(default=None, metadata=_key("method", str))
    status: Optional[int] = field(default=None, metadata=_key("status", int, float))
    status_text: Optional[str] = field(default=None, metadata=_key("statusText", str))
    duration: Optional[float] = field(default=None, metadata=_key("duration", int, float))
    timings: Optional[NetworkTimings] = None
    transfer_size: Optional[int] = field(default=None, metadata=_key("transferSize", int, float))
    request_body: Optional[CapturedBody] = None
    response_body: Optional[CapturedBody] = None

    @classmethod
    def from_dict(cls, data: dict) -> "RequestEvent":
        kwargs, extra = _split_known(cls, data)
        for attr, json_key, model in (
            ("timings", "timings", NetworkTimings),
            ("request_body", "requestBody", CapturedBody),
            ("response_body", "responseBody", CapturedBody),
        ):
            raw = extra.get(json_key)
            if isinstance(raw, dict):
                kwargs[attr] = model.from_dict(raw)
                del extra[json_key]
        return cls(**kwargs, extra=extra)

    def to_dict(self) -> dict:
        out = _dump_known(self)
        if self.timings is not None:
            out["timings"] = self.timings.to_dict()
        if self.request_body is not None:
            out["requestBody"] = self.request_body.to_dict()
        if self.response_body is not None:
            out["responseBody"] = self.response_body.to_dict()
        return {**out, **self.extra}

    @property
    def is_data_url(self) -> bool:
        return (self.url or "").startswith("data:")


@dataclass(frozen=True)
class OtherEvent(TraceEvent):
    """Any event kind this model does not know; carried through untouched."""


EVENT_TYPES: dict[str, type[TraceEvent]] = {
    EventKind.CLICK.value: ClickEvent,
    EventKind.NAVIGATION.value: NavigationEvent,
    EventKind.SPA_NAVIGATION.value: SpaNavigationEvent,
    EventKind.REQUEST.value: RequestEvent,
}


def event_from_dict(data: dict) -> TraceEvent:
    """Create the right TraceEvent variant for a raw event dict."""
    kind = data.get("kind")
    event_cls = EVENT_TYPES.get(kind, OtherEvent) if isinstance(kind, str) else OtherEvent
    return event_cls.from_dict(data)


@dataclass(frozen=True)
class TraceFile:
    """A loaded trace: events plus the wall-clock anchor of the video."""

    video_started_at: Optional[float] = None
    video_available: Optional[bool] = None
    events: tuple[TraceEvent, ...] = ()
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "TraceFile":
        extra = {
            k: v for k, v in data.items()
            if k not in ("videoStartedAt", "videoAvailable", "events")
        }
        started = data.get("videoStartedAt")
        if not _accepts(started, (int, float)):
            extra["videoStartedAt"] = started
            started = None
        available = data.get("videoAvailable")
        if not _accepts(available, (bool,)):
            extra["videoAvailable"] = available
            available = None
        events = tuple(event_from_dict(item) for item in data.get("events") or [])
        return cls(
            video_started_at=started,
            video_available=available,
            events=events,
            extra=extra,
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {}
        if self.video_started_at is not None:
            out["videoStartedAt"] = self.video_started_at
        if self.video_available is not None:
            out["videoAvailable"] = self.video_available
        out.update(self.extra)
        out["events"] = [event.to_dict() for event in self.events]
        return out

    def with_events(self, events) -> "TraceFile":
        return replace(self, events=tuple(events))

    @property
    def event_count(self) -> int:
        return len(self.events)
