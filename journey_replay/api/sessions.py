"""Replay session API endpoints used by the browser UI."""

from typing import Any, Literal

import structlog
from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from journey_replay.config import get_settings
from journey_replay.core.analysis import (
    analyze_interaction_timing,
    build_timing_entries,
    compute_waterfall,
)
from journey_replay.core.filters import (
    FilterSettings,
    count_pattern_matches,
    escape_domain_pattern,
    suggest_domain,
)
from journey_replay.core.search import host_stats, search_interactions
from journey_replay.export.models import FilterSettingsImportError
from journey_replay.session import ReplaySession, SessionNotLoadedError, UnknownEventError
from journey_replay.trace.loader import TraceLoadError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/sessions", tags=["Sessions"])


# =============================================================================
# In-memory Storage (sessions live for the life of the process)
# =============================================================================

_sessions: dict[str, ReplaySession] = {}


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateSessionRequest(BaseModel):
    """Request to start a replay session, optionally with a trace."""

    trace: dict[str, Any] | None = Field(None, description="Trace JSON object")
    name: str | None = Field(None, description="Trace file name, used for export names")
    video_duration_ms: float | None = Field(None, ge=0, description="Decoded video length")


class LoadTraceRequest(BaseModel):
    trace: dict[str, Any] = Field(..., description="Trace JSON object")
    name: str | None = Field(None, description="Trace file name")


class VideoStateRequest(BaseModel):
    duration_ms: float | None = Field(None, ge=0, description="Decoded video length")
    progress_ms: float | None = Field(None, ge=0, description="Current playback position")


class EventEditRequest(BaseModel):
    """Label and/or removal edit for one event."""

    label: str | None = Field(None, description="New label; the original label reverts the edit")
    removed: bool | None = Field(None, description="Soft-delete (true) or restore (false)")


class FilterGroupModel(BaseModel):
    id: str
    label: str
    description: str = ""
    enabled: bool = True
    patternsText: str = ""


class FilterSettingsModel(BaseModel):
    applyFilters: bool = True
    customRegexText: str = ""
    groups: list[FilterGroupModel] = Field(default_factory=list)


class AddFilterPatternRequest(BaseModel):
    pattern: str = Field(..., min_length=1, description="Rule line to add")
    group_id: str = Field(..., description="Filter group to add it to")


class NavigateRequest(BaseModel):
    direction: Literal["prev", "next"]


class SessionSummary(BaseModel):
    """Overview of a session's state."""

    id: str
    trace_name: str | None = None
    loaded: bool
    event_count: int = 0
    visible_event_count: int = 0
    ignored_counts: dict[str, int] = Field(default_factory=dict)
    removed_count: int = 0
    label_edit_count: int = 0
    has_modifications: bool = False
    modification_summary: str | None = None
    active_marker_id: str | None = None


# =============================================================================
# Helpers
# =============================================================================


def _get_session(session_id: str) -> ReplaySession:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session


def _summary(session: ReplaySession) -> SessionSummary:
    view = session.view
    return SessionSummary(
        id=session.id,
        trace_name=session.trace_name,
        loaded=session.is_loaded,
        event_count=session.trace.event_count if session.trace else 0,
        visible_event_count=view.filtered_trace.event_count if view.filtered_trace else 0,
        ignored_counts=view.ignored_counts,
        removed_count=len(view.removed_events),
        label_edit_count=view.label_edit_count,
        has_modifications=view.has_modifications,
        modification_summary=view.modification_summary(),
        active_marker_id=session.active_marker_id,
    )


def _not_loaded(e: SessionNotLoadedError) -> HTTPException:
    return HTTPException(status_code=409, detail=str(e))


def _unknown(e: UnknownEventError) -> HTTPException:
    return HTTPException(status_code=404, detail=str(e))


# =============================================================================
# Session lifecycle
# =============================================================================


@router.post("", response_model=SessionSummary, status_code=201)
async def create_session(request: CreateSessionRequest):
    """Create a session, loading the trace when one is given."""
    settings = get_settings()
    session = ReplaySession(
        apply_filters_by_default=settings.apply_filters_by_default,
        max_trace_events=settings.max_trace_events,
    )
    try:
        if request.trace is not None:
            session.load_trace_data(request.trace, request.name)
        if request.video_duration_ms is not None:
            session.set_video_duration(request.video_duration_ms)
    except TraceLoadError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _sessions[session.id] = session
    logger.info("Session created", session_id=session.id, loaded=session.is_loaded)
    return _summary(session)


@router.get("", response_model=list[SessionSummary])
async def list_sessions():
    return [_summary(session) for session in _sessions.values()]


@router.get("/{session_id}", response_model=SessionSummary)
async def get_session(session_id: str):
    return _summary(_get_session(session_id))


@router.delete("/{session_id}")
async def delete_session(session_id: str):
    _get_session(session_id)
    del _sessions[session_id]
    logger.info("Session deleted", session_id=session_id)
    return {"success": True, "message": f"Session {session_id} deleted"}


@router.put("/{session_id}/trace", response_model=SessionSummary)
async def load_trace(session_id: str, request: LoadTraceRequest):
    """Replace the session's trace. A bad trace leaves the current one loaded."""
    session = _get_session(session_id)
    try:
        session.load_trace_data(request.trace, request.name)
    except TraceLoadError as e:
        logger.warning("Trace load rejected", session_id=session_id, error=str(e))
        raise HTTPException(status_code=400, detail=str(e))
    return _summary(session)


@router.put("/{session_id}/video", response_model=SessionSummary)
async def update_video_state(session_id: str, request: VideoStateRequest):
    session = _get_session(session_id)
    if "duration_ms" in request.model_fields_set:
        session.set_video_duration(request.duration_ms)
    if "progress_ms" in request.model_fields_set:
        session.set_video_progress(request.progress_ms)
    return _summary(session)


# =============================================================================
# Timeline and diagram
# =============================================================================


@router.get("/{session_id}/timeline")
async def get_timeline(session_id: str):
    session = _get_session(session_id)
    data = session.view.timeline.to_dict()
    data["playbackPercent"] = session.playback_percent
    data["activeMarkerId"] = session.active_marker_id
    data["markerOrder"] = [marker.id for marker in session.view.markers]
    return data


@router.get("/{session_id}/diagram")
async def get_diagram(session_id: str):
    session = _get_session(session_id)
    return {
        "script": session.view.diagram,
        "sequenceMap": {str(k): v for k, v in session.view.sequence_map.items()},
    }


@router.post("/{session_id}/markers/{marker_id}/select")
async def select_marker(session_id: str, marker_id: str):
    session = _get_session(session_id)
    try:
        marker = session.select_marker(marker_id)
    except UnknownEventError as e:
        raise _unknown(e)
    return {"marker": marker.to_dict(), "seekSeconds": session.seek_seconds(marker)}


@router.post("/{session_id}/navigate")
async def navigate(session_id: str, request: NavigateRequest):
    session = _get_session(session_id)
    marker = session.navigate(request.direction)
    if marker is None:
        return {"marker": None, "seekSeconds": None}
    return {"marker": marker.to_dict(), "seekSeconds": session.seek_seconds(marker)}


@router.post("/{session_id}/diagram/{sequence_number}/select")
async def select_diagram_message(session_id: str, sequence_number: int):
    """Select the marker behind a rendered diagram message."""
    session = _get_session(session_id)
    try:
        marker = session.select_sequence(sequence_number)
    except UnknownEventError as e:
        raise _unknown(e)
    return {"marker": marker.to_dict(), "seekSeconds": session.seek_seconds(marker)}


@router.get("/{session_id}/markers/{marker_id}/analysis")
async def get_marker_analysis(session_id: str, marker_id: str):
    """Timing summary and waterfall for an interaction, or timings for a request."""
    session = _get_session(session_id)
    try:
        marker = session.select_marker(marker_id)
    except UnknownEventError as e:
        raise _unknown(e)

    if marker.is_interaction:
        timing = analyze_interaction_timing(marker.timestamp, marker.related_requests)
        waterfall = compute_waterfall(marker.timestamp, marker.related_requests)
        return {
            "markerId": marker.id,
            "timing": timing.to_dict() if timing else None,
            "waterfall": waterfall.to_dict() if waterfall else None,
        }
    return {
        "markerId": marker.id,
        "timings": [
            {"label": label, "value": value}
            for label, value in build_timing_entries(getattr(marker.event, "timings", None))
        ],
        "suggestedFilter": escape_domain_pattern(suggest_domain(marker.event)),
    }


@router.get("/{session_id}/search")
async def search(session_id: str, q: str = Query("", description="Search term")):
    session = _get_session(session_id)
    timeline = session.view.timeline
    return {
        "interactions": [m.id for m in search_interactions(timeline.interaction_markers, q)],
        "hosts": [stat.to_dict() for stat in host_stats(timeline.request_markers, q)],
    }


# =============================================================================
# Event overrides
# =============================================================================


@router.patch("/{session_id}/events/{internal_id}", response_model=SessionSummary)
async def edit_event(session_id: str, internal_id: str, request: EventEditRequest):
    session = _get_session(session_id)
    try:
        if request.label is not None:
            session.update_label(internal_id, request.label)
        if request.removed is not None:
            session.set_removed(internal_id, request.removed)
    except SessionNotLoadedError as e:
        raise _not_loaded(e)
    except UnknownEventError as e:
        raise _unknown(e)
    return _summary(session)


@router.delete("/{session_id}/events/{internal_id}/override", response_model=SessionSummary)
async def reset_event(session_id: str, internal_id: str):
    session = _get_session(session_id)
    try:
        session.reset_event(internal_id)
    except SessionNotLoadedError as e:
        raise _not_loaded(e)
    except UnknownEventError as e:
        raise _unknown(e)
    return _summary(session)


@router.delete("/{session_id}/overrides", response_model=SessionSummary)
async def reset_overrides(session_id: str):
    session = _get_session(session_id)
    try:
        session.reset_overrides()
    except SessionNotLoadedError as e:
        raise _not_loaded(e)
    return _summary(session)


@router.get("/{session_id}/removed")
async def list_removed_events(session_id: str):
    session = _get_session(session_id)
    return {"events": [event.to_dict() for event in session.view.removed_events]}


# =============================================================================
# Filters
# =============================================================================


@router.get("/{session_id}/filters")
async def get_filters(session_id: str):
    session = _get_session(session_id)
    return {
        "settings": session.filter_settings.to_dict(),
        "ignoredCounts": session.view.ignored_counts,
        "hasChanges": session.view.has_filter_changes,
    }


@router.put("/{session_id}/filters", response_model=SessionSummary)
async def replace_filters(session_id: str, request: FilterSettingsModel):
    session = _get_session(session_id)
    session.update_filter_settings(FilterSettings.from_dict(request.model_dump()))
    return _summary(session)


@router.post("/{session_id}/filters/reset", response_model=SessionSummary)
async def reset_filters(session_id: str):
    session = _get_session(session_id)
    session.reset_filters()
    return _summary(session)


@router.post("/{session_id}/filters/patterns", response_model=SessionSummary)
async def add_filter_pattern(session_id: str, request: AddFilterPatternRequest):
    session = _get_session(session_id)
    try:
        session.add_filter_pattern(request.pattern, request.group_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _summary(session)


@router.get("/{session_id}/filters/preview")
async def preview_filter_pattern(session_id: str, pattern: str = Query(..., min_length=1)):
    """How many visible requests a rule line would remove."""
    session = _get_session(session_id)
    return {"pattern": pattern, "matches": count_pattern_matches(session.view.overridden_events, pattern)}


@router.post("/{session_id}/filters/import", response_model=SessionSummary)
async def import_filters(session_id: str, payload: dict[str, Any]):
    session = _get_session(session_id)
    try:
        session.import_filter_settings(payload)
    except FilterSettingsImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _summary(session)


@router.get("/{session_id}/filters/export")
async def export_filters(session_id: str):
    return _get_session(session_id).export_filter_settings().to_dict()


# =============================================================================
# Exports
# =============================================================================


@router.get("/{session_id}/export/trace")
async def export_trace(session_id: str):
    session = _get_session(session_id)
    try:
        return session.export_filtered_trace().to_dict()
    except SessionNotLoadedError as e:
        raise _not_loaded(e)


@router.get("/{session_id}/export/diagram")
async def export_diagram(session_id: str):
    session = _get_session(session_id)
    try:
        return session.export_diagram().to_dict()
    except SessionNotLoadedError as e:
        raise _not_loaded(e)
