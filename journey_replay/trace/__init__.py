"""Trace event model and loading."""

from .hosts import (
    EMBEDDED_ASSET_HOST,
    FALLBACK_ENDPOINT,
    PLACEHOLDER_HOST,
    USER_PARTICIPANT,
    describe_participants,
    endpoint_host,
    normalize_host,
    resolve_current_host,
    safe_url,
)
from .loader import (
    TraceLoadError,
    TraceLoader,
    ensure_internal_ids,
    load_trace_file,
    load_trace_text,
    parse_trace,
)
from .models import (
    INTERACTION_KINDS,
    INTERNAL_ID_KEY,
    CapturedBody,
    ClickEvent,
    EventKind,
    NavigationEvent,
    NetworkTimings,
    OtherEvent,
    RequestEvent,
    SpaNavigationEvent,
    TraceEvent,
    TraceFile,
    event_from_dict,
)

__all__ = [
    # Models
    "EventKind",
    "INTERACTION_KINDS",
    "INTERNAL_ID_KEY",
    "TraceEvent",
    "ClickEvent",
    "NavigationEvent",
    "SpaNavigationEvent",
    "RequestEvent",
    "OtherEvent",
    "NetworkTimings",
    "CapturedBody",
    "TraceFile",
    "event_from_dict",
    # Loading
    "TraceLoader",
    "TraceLoadError",
    "ensure_internal_ids",
    "parse_trace",
    "load_trace_text",
    "load_trace_file",
    # Hosts
    "PLACEHOLDER_HOST",
    "FALLBACK_ENDPOINT",
    "EMBEDDED_ASSET_HOST",
    "USER_PARTICIPANT",
    "normalize_host",
    "safe_url",
    "endpoint_host",
    "resolve_current_host",
    "describe_participants",
]
