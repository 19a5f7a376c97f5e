"""Replay session state and the recompute entry point.

A ``ReplaySession`` owns the loaded trace and the user's edits (overrides,
filter settings, video timing). Everything shown to the user is derived from
that state by ``recompute()``, which builds a complete ``SessionView`` and
swaps it in with a single assignment. If building the view fails, the last
committed view and state stay in place.
"""

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Literal, Optional

import structlog

from .core.correlator import (
    TimelineComputation,
    TimelineMarker,
    combined_markers,
    compute_timeline,
    find_marker,
    marker_seek_seconds,
    navigate_markers,
    playback_percent,
)
from .core.filters import (
    FilterResult,
    FilterSettings,
    add_filter_pattern,
    apply_trace_filters,
    create_default_filter_settings,
    has_filter_changes,
)
from .core.overrides import OverrideTable, apply_overrides
from .diagram.renderer import DiagramRenderer, DiagramRenderResult, render_diagram
from .diagram.synthesizer import generate_mermaid_from_trace
from .diagram.trace_map import build_sequence_trace_map
from .export.engine import ExportEngine
from .export.models import ExportResult
from .trace.loader import TraceLoader
from .trace.models import TraceEvent, TraceFile
from .utils.logging import log_operation

logger = structlog.get_logger()

SessionObserver = Callable[["SessionView"], None]


class SessionNotLoadedError(Exception):
    """Raised when an operation needs a trace and none is loaded."""


class UnknownEventError(Exception):
    """Raised when an internal id does not belong to the loaded trace."""


@dataclass(frozen=True)
class SessionView:
    """Everything derived from the session state in one recompute pass."""

    overridden_events: tuple[TraceEvent, ...] = ()
    filter_result: FilterResult = field(default_factory=lambda: FilterResult(filtered_events=[]))
    filtered_trace: TraceFile | None = None
    timeline: TimelineComputation = field(default_factory=TimelineComputation)
    markers: tuple[TimelineMarker, ...] = ()
    diagram: str = ""
    sequence_map: dict[int, str] = field(default_factory=dict)
    removed_events: tuple[TraceEvent, ...] = ()
    label_edit_count: int = 0
    has_overrides: bool = False
    has_filter_changes: bool = False

    @property
    def has_modifications(self) -> bool:
        return self.filtered_trace is not None and (self.has_overrides or self.has_filter_changes)

    @property
    def ignored_counts(self) -> dict[str, int]:
        return self.filter_result.ignored_counts

    def modification_summary(self) -> str | None:
        """Short description of edits, e.g. ``2 labels edited • 1 event removed``."""
        if not self.has_modifications:
            return None
        parts = []
        if self.label_edit_count:
            parts.append(f"{self.label_edit_count} label{'s' if self.label_edit_count > 1 else ''} edited")
        removed = len(self.removed_events)
        if removed:
            parts.append(f"{removed} event{'s' if removed > 1 else ''} removed")
        filtered = self.filter_result.total_ignored
        if filtered:
            parts.append(f"{filtered} event{'s' if filtered > 1 else ''} filtered")
        return " • ".join(parts) if parts else "Trace modified"


class ReplaySession:
    """One loaded trace plus the user's edits over it.

    Example:
        session = ReplaySession()
        await session.load_trace_file("checkout.json")
        session.update_label("jr-3", "Add to cart")
        print(session.view.diagram)
    """

    def __init__(
        self,
        session_id: Optional[str] = None,
        apply_filters_by_default: bool = True,
        max_trace_events: Optional[int] = None,
    ):
        """Initialize an empty session.

        Args:
            session_id: Identifier used in logs and the API
            apply_filters_by_default: Whether default filter settings start active
            max_trace_events: Reject traces larger than this
        """
        self.id = session_id or str(uuid.uuid4())
        self.apply_filters_by_default = apply_filters_by_default
        self.trace: TraceFile | None = None
        self.trace_name: str | None = None
        self.overrides = OverrideTable()
        self.filter_settings = create_default_filter_settings(apply_filters_by_default)
        self.video_duration_ms: float | None = None
        self.video_progress_ms: float | None = None
        self.active_marker_id: str | None = None
        self.render_result: DiagramRenderResult | None = None
        self._rendered_script = ""

        self._originals: dict[str, TraceEvent] = {}
        self._view = SessionView()
        self._observers: list[SessionObserver] = []
        self._loader = TraceLoader(max_events=max_trace_events)
        self._exporter = ExportEngine()
        self.log = logger.bind(component="replay_session", session_id=self.id)

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def view(self) -> SessionView:
        return self._view

    @property
    def is_loaded(self) -> bool:
        return self.trace is not None

    @property
    def video_anchor_ms(self) -> float | None:
        return self.trace.video_started_at if self.trace else None

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Call ``observer`` with every newly committed view.

        Returns:
            Function that removes the observer again
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _build_view(
        self,
        trace: TraceFile | None,
        overrides: OverrideTable,
        settings: FilterSettings,
        video_duration_ms: float | None,
    ) -> SessionView:
        if trace is None:
            return SessionView(has_filter_changes=has_filter_changes(settings))

        overridden = apply_overrides(trace.events, overrides)
        filter_result = apply_trace_filters(overridden, settings)
        filtered_trace = trace.with_events(filter_result.filtered_events)
        timeline = compute_timeline(filtered_trace, filtered_trace.video_started_at, video_duration_ms)
        diagram = generate_mermaid_from_trace(filtered_trace.events)
        return SessionView(
            overridden_events=tuple(overridden),
            filter_result=filter_result,
            filtered_trace=filtered_trace,
            timeline=timeline,
            markers=tuple(combined_markers(timeline)),
            diagram=diagram,
            sequence_map=build_sequence_trace_map(diagram),
            removed_events=tuple(overrides.removed_events(trace.events)),
            label_edit_count=overrides.label_edit_count(trace.events),
            has_overrides=overrides.has_modifications,
            has_filter_changes=has_filter_changes(settings),
        )

    def _commit(self, **changes) -> SessionView:
        """Build a view from the current state with ``changes`` applied, then swap it in."""
        trace = changes.get("trace", self.trace)
        overrides = changes.get("overrides", self.overrides)
        settings = changes.get("filter_settings", self.filter_settings)
        duration = changes.get("video_duration_ms", self.video_duration_ms)

        with log_operation("recompute", logger=self.log) as op:
            view = self._build_view(trace, overrides, settings, duration)
            op["events"] = len(view.overridden_events)
            op["markers"] = len(view.markers)

        for name, value in changes.items():
            setattr(self, name, value)
        self._view = view

        if self.render_result is not None and view.diagram != self._rendered_script:
            self.render_result = None

        for observer in list(self._observers):
            observer(view)
        return view

    def recompute(self) -> SessionView:
        """Rebuild the view from the current state."""
        return self._commit()

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    def load_trace(self, trace: TraceFile, name: Optional[str] = None) -> SessionView:
        """Replace the loaded trace and drop edits made to the previous one."""
        view = self._commit(
            trace=trace,
            _originals={e.internal_id: e for e in trace.events if e.internal_id},
            trace_name=name,
            overrides=OverrideTable(),
            filter_settings=create_default_filter_settings(self.apply_filters_by_default),
            active_marker_id=None,
        )
        self.log.info("Trace loaded", trace_name=name, event_count=trace.event_count)
        return view

    def load_trace_data(self, data: dict, name: Optional[str] = None) -> SessionView:
        """Validate and load an already-decoded trace object."""
        return self.load_trace(self._loader.parse(data), name)

    def load_trace_text(self, text: str | bytes, name: Optional[str] = None) -> SessionView:
        """Parse and load trace JSON; on failure the current trace is kept."""
        return self.load_trace(self._loader.loads(text), name)

    async def load_trace_file(self, path: str | Path) -> SessionView:
        """Read, parse and load a trace file; on failure the current trace is kept."""
        trace = await self._loader.load(path)
        return self.load_trace(trace, Path(path).name)

    def set_video_duration(self, duration_ms: float | None) -> SessionView:
        return self._commit(video_duration_ms=duration_ms)

    def set_video_progress(self, progress_ms: float | None) -> None:
        # Playback position does not change any derived structure.
        self.video_progress_ms = progress_ms

    @property
    def playback_percent(self) -> float | None:
        return playback_percent(self._view.timeline, self.video_anchor_ms, self.video_progress_ms)

    # -------------------------------------------------------------------------
    # Overrides
    # -------------------------------------------------------------------------

    def _require_trace(self) -> TraceFile:
        if self.trace is None:
            raise SessionNotLoadedError("No trace loaded")
        return self.trace

    def original_event(self, internal_id: str) -> TraceEvent:
        """The loaded (unedited) event with ``internal_id``."""
        self._require_trace()
        event = self._originals.get(internal_id)
        if event is None:
            raise UnknownEventError(f"Unknown event: {internal_id}")
        return event

    def _apply_overrides(self, overrides: OverrideTable) -> SessionView:
        if overrides is self.overrides:
            return self._view
        return self._commit(overrides=overrides)

    def update_label(self, internal_id: str, label: str) -> SessionView:
        original = self.original_event(internal_id)
        return self._apply_overrides(self.overrides.update_label(original, label))

    def set_removed(self, internal_id: str, removed: bool) -> SessionView:
        original = self.original_event(internal_id)
        return self._apply_overrides(self.overrides.set_removed(original, removed))

    def reset_event(self, internal_id: str) -> SessionView:
        self.original_event(internal_id)
        return self._apply_overrides(self.overrides.reset(internal_id))

    def reset_overrides(self) -> SessionView:
        self._require_trace()
        if not self.overrides.has_modifications:
            return self._view
        return self._commit(overrides=OverrideTable())

    # -------------------------------------------------------------------------
    # Filters
    # -------------------------------------------------------------------------

    def update_filter_settings(self, settings: FilterSettings) -> SessionView:
        return self._commit(filter_settings=settings)

    def reset_filters(self) -> SessionView:
        return self._commit(
            filter_settings=create_default_filter_settings(self.apply_filters_by_default)
        )

    def add_filter_pattern(self, pattern: str, group_id: str) -> SessionView:
        """Append a pattern to a filter group (``ValueError`` on bad input)."""
        return self._commit(filter_settings=add_filter_pattern(self.filter_settings, pattern, group_id))

    def import_filter_settings(self, data: str | bytes | dict) -> SessionView:
        return self._commit(filter_settings=self._exporter.import_filter_settings(data))

    # -------------------------------------------------------------------------
    # Selection and navigation
    # -------------------------------------------------------------------------

    @property
    def active_marker(self) -> TimelineMarker | None:
        """The selected marker as of the latest view (labels stay current)."""
        return find_marker(self._all_markers(), self.active_marker_id)

    def _all_markers(self) -> list[TimelineMarker]:
        timeline = self._view.timeline
        return [*timeline.interaction_markers, *timeline.request_markers]

    def select_marker(self, marker_id: str) -> TimelineMarker:
        marker = find_marker(self._all_markers(), marker_id)
        if marker is None:
            raise UnknownEventError(f"No marker for event: {marker_id}")
        self.active_marker_id = marker.id
        return marker

    def navigate(self, direction: Literal["prev", "next"]) -> TimelineMarker | None:
        marker = navigate_markers(list(self._view.markers), self.active_marker_id, direction)
        if marker is not None:
            self.active_marker_id = marker.id
        return marker

    def select_sequence(self, sequence_number: int) -> TimelineMarker:
        """Select the marker behind a rendered diagram message."""
        trace_id = self._view.sequence_map.get(sequence_number)
        if trace_id is None:
            raise UnknownEventError(f"Diagram message {sequence_number} has no trace id")
        return self.select_marker(trace_id)

    def seek_seconds(self, marker: TimelineMarker) -> float | None:
        """Video time for ``marker`` under the current view."""
        return marker_seek_seconds(marker, self.video_anchor_ms, self.video_duration_ms)

    # -------------------------------------------------------------------------
    # Rendering and export
    # -------------------------------------------------------------------------

    def render(self, renderer: DiagramRenderer) -> DiagramRenderResult:
        """Render the current diagram; a failure leaves no rendered nodes."""
        result = render_diagram(self._view.diagram, renderer)
        self.render_result = result
        self._rendered_script = self._view.diagram
        if not result.success:
            self.log.warning("Diagram render failed", error=result.error)
        return result

    def export_filtered_trace(self) -> ExportResult:
        self._require_trace()
        return self._exporter.export_filtered_trace(self._view.filtered_trace, self.trace_name)

    def export_diagram(self) -> ExportResult:
        self._require_trace()
        return self._exporter.export_diagram(self._view.diagram, self.trace_name)

    def export_filter_settings(self) -> ExportResult:
        return self._exporter.export_filter_settings(self.filter_settings)
