"""Journey Replay - replay recorded browser journeys as timelines and sequence diagrams."""

__version__ = "0.1.0"

from .session import ReplaySession, SessionNotLoadedError, SessionView, UnknownEventError
from .trace.loader import TraceLoadError, load_trace_file, load_trace_text, parse_trace
from .trace.models import TraceEvent, TraceFile

__all__ = [
    "__version__",
    "ReplaySession",
    "SessionView",
    "SessionNotLoadedError",
    "UnknownEventError",
    "TraceLoadError",
    "TraceEvent",
    "TraceFile",
    "load_trace_file",
    "load_trace_text",
    "parse_trace",
]
