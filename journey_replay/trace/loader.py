"""Trace file loading.

Reads a recorded session's trace JSON, turns it into a ``TraceFile`` and
stamps every event with a stable internal id. Loading is all-or-nothing: any
problem raises ``TraceLoadError`` and nothing is returned, so callers can keep
whatever trace they already had.
"""

import asyncio
import json
from pathlib import Path

import structlog

from .models import TraceFile

logger = structlog.get_logger()

INTERNAL_ID_PREFIX = "jr"


class TraceLoadError(Exception):
    """Raised when a trace file cannot be read or has the wrong shape."""


def reject_non_finite(token: str):
    """``parse_constant`` hook refusing the non-standard NaN and Infinity tokens."""
    raise ValueError(f"Non-standard JSON constant: {token}")


def ensure_internal_ids(trace: TraceFile) -> TraceFile:
    """Give every event without an internal id a positional one.

    Ids are ``jr-<index>``; if that id is already used elsewhere in the file a
    ``-<n>`` suffix is added. A trace whose events all carry ids is returned
    as-is, so running this twice is a no-op.
    """
    if all(event.internal_id for event in trace.events):
        return trace

    taken = {event.internal_id for event in trace.events if event.internal_id}
    events = []
    for index, event in enumerate(trace.events):
        if event.internal_id:
            events.append(event)
            continue
        candidate = f"{INTERNAL_ID_PREFIX}-{index}"
        suffix = 1
        while candidate in taken:
            candidate = f"{INTERNAL_ID_PREFIX}-{index}-{suffix}"
            suffix += 1
        taken.add(candidate)
        events.append(event.with_internal_id(candidate))
    return trace.with_events(events)


class TraceLoader:
    """Loads trace JSON into ``TraceFile`` objects.

    Example:
        loader = TraceLoader(max_events=50_000)
        trace = await loader.load("session.json")
    """

    def __init__(self, max_events: int | None = None):
        """Initialize loader.

        Args:
            max_events: Reject traces with more events than this
        """
        self.max_events = max_events
        self.log = logger.bind(component="trace_loader")

    def parse(self, data) -> TraceFile:
        """Build a TraceFile from already-decoded JSON.

        Args:
            data: Decoded top-level JSON value

        Returns:
            TraceFile with internal ids assigned

        Raises:
            TraceLoadError: If the value is not a trace object
        """
        if not isinstance(data, dict):
            raise TraceLoadError("Trace file must contain a JSON object")

        raw_events = data.get("events")
        if raw_events is None:
            raw_events = []
        if not isinstance(raw_events, list):
            raise TraceLoadError("Trace 'events' must be a list")

        for index, item in enumerate(raw_events):
            if not isinstance(item, dict):
                raise TraceLoadError(f"Trace event at index {index} is not an object")

        if self.max_events is not None and len(raw_events) > self.max_events:
            raise TraceLoadError(
                f"Trace has {len(raw_events)} events, more than the limit of {self.max_events}"
            )

        trace = TraceFile.from_dict({**data, "events": raw_events})
        trace = ensure_internal_ids(trace)

        self.log.info(
            "Trace parsed",
            event_count=trace.event_count,
            video_started_at=trace.video_started_at,
        )
        return trace

    def loads(self, text: str | bytes) -> TraceFile:
        """Parse trace JSON text."""
        try:
            data = json.loads(text, parse_constant=reject_non_finite)
        except ValueError as e:
            self.log.warning("Trace JSON decode failed", error=str(e))
            raise TraceLoadError("Unable to parse the trace JSON file.") from e
        return self.parse(data)

    async def load(self, path: str | Path) -> TraceFile:
        """Read and parse a trace file without blocking the event loop."""
        path = Path(path)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.log.warning("Trace file read failed", path=str(path), error=str(e))
            raise TraceLoadError(f"Unable to read trace file: {path.name}") from e
        return self.loads(text)


def parse_trace(data, max_events: int | None = None) -> TraceFile:
    """Convenience wrapper around ``TraceLoader.parse``."""
    return TraceLoader(max_events=max_events).parse(data)


def load_trace_text(text: str | bytes, max_events: int | None = None) -> TraceFile:
    """Convenience wrapper around ``TraceLoader.loads``."""
    return TraceLoader(max_events=max_events).loads(text)


async def load_trace_file(path: str | Path, max_events: int | None = None) -> TraceFile:
    """Convenience wrapper around ``TraceLoader.load``."""
    return await TraceLoader(max_events=max_events).load(path)
