"""Export Engine - filtered traces, diagram scripts and filter settings."""

import json
import re
from datetime import datetime, timezone
from typing import Optional

import structlog

from ..core.filters import FilterSettings
from ..trace.loader import reject_non_finite
from ..trace.models import TraceFile
from .models import (
    DEFAULT_TRACE_BASENAME,
    FILE_EXTENSIONS,
    FILTER_SETTINGS_VERSION,
    MEDIA_TYPES,
    ExportFormat,
    ExportResult,
    FilterSettingsImportError,
)

logger = structlog.get_logger()

_JSON_SUFFIX = re.compile(r"\.json$", re.IGNORECASE)


def trace_basename(source_name: Optional[str]) -> str:
    """Name of the loaded trace file without its ``.json`` suffix."""
    if not source_name:
        return DEFAULT_TRACE_BASENAME
    return _JSON_SUFFIX.sub("", source_name) or DEFAULT_TRACE_BASENAME


def _iso_timestamp(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ExportEngine:
    """Produces the downloadable artifacts of a replay session.

    Example:
        engine = ExportEngine()
        result = engine.export_filtered_trace(view.filtered_trace, "checkout.json")
        Path(result.filename).write_text(result.content)
    """

    def __init__(self):
        """Initialize the export engine."""
        self.log = logger.bind(component="export_engine")

    def export_filtered_trace(
        self,
        trace: TraceFile,
        source_name: Optional[str] = None,
    ) -> ExportResult:
        """Serialize the filtered, overridden trace.

        The output has the same shape as a trace input and keeps internal
        ids, so it can be loaded again as-is.

        Args:
            trace: Trace with overrides and filters applied
            source_name: File name the trace was loaded from

        Returns:
            ExportResult with pretty-printed JSON
        """
        content = json.dumps(trace.to_dict(), indent=2, ensure_ascii=False)
        filename = f"{trace_basename(source_name)}-filtered{FILE_EXTENSIONS[ExportFormat.FILTERED_TRACE]}"

        self.log.info("Filtered trace exported", filename=filename, event_count=trace.event_count)

        return ExportResult(
            success=True,
            format=ExportFormat.FILTERED_TRACE,
            content=content,
            filename=filename,
            media_type=MEDIA_TYPES[ExportFormat.FILTERED_TRACE],
            metadata={"event_count": trace.event_count},
        )

    def export_diagram(self, script: str, source_name: Optional[str] = None) -> ExportResult:
        """Export the sequence-diagram script as a ``.mmd`` file."""
        if not script or not script.strip():
            return ExportResult(
                success=False,
                format=ExportFormat.DIAGRAM,
                error="No diagram to export",
            )

        filename = f"{trace_basename(source_name)}-diagram{FILE_EXTENSIONS[ExportFormat.DIAGRAM]}"
        content = script if script.endswith("\n") else f"{script}\n"

        self.log.info("Diagram exported", filename=filename, line_count=content.count("\n"))

        return ExportResult(
            success=True,
            format=ExportFormat.DIAGRAM,
            content=content,
            filename=filename,
            media_type=MEDIA_TYPES[ExportFormat.DIAGRAM],
        )

    def export_filter_settings(
        self,
        settings: FilterSettings,
        exported_at: Optional[datetime] = None,
    ) -> ExportResult:
        """Export filter settings in the versioned, re-importable format."""
        moment = exported_at or datetime.now(timezone.utc)
        payload = {
            "version": FILTER_SETTINGS_VERSION,
            "exportedAt": _iso_timestamp(moment),
            "filters": settings.to_dict(),
        }
        filename = f"journey-filters-{moment.astimezone(timezone.utc).date().isoformat()}.json"

        self.log.info("Filter settings exported", filename=filename, group_count=len(settings.groups))

        return ExportResult(
            success=True,
            format=ExportFormat.FILTER_SETTINGS,
            content=json.dumps(payload, indent=2, ensure_ascii=False),
            filename=filename,
            media_type=MEDIA_TYPES[ExportFormat.FILTER_SETTINGS],
            metadata={"version": FILTER_SETTINGS_VERSION},
        )

    def import_filter_settings(self, data: str | bytes | dict) -> FilterSettings:
        """Read filter settings produced by ``export_filter_settings``.

        Missing fields fall back to defaults: filters on, empty custom text,
        groups enabled with no patterns.

        Raises:
            FilterSettingsImportError: If the content is not a filter-settings file
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data, parse_constant=reject_non_finite)
            except ValueError as e:
                raise FilterSettingsImportError("Filter settings file is not valid JSON") from e

        if not isinstance(data, dict):
            raise FilterSettingsImportError("Invalid filter file format")
        filters = data.get("filters")
        if not isinstance(filters, dict) or not isinstance(filters.get("groups"), list):
            raise FilterSettingsImportError("Invalid filter file format")
        for index, group in enumerate(filters["groups"]):
            if not isinstance(group, dict) or not group.get("id"):
                raise FilterSettingsImportError(f"Filter group at index {index} has no id")

        settings = FilterSettings.from_dict(filters)
        self.log.info(
            "Filter settings imported",
            version=data.get("version"),
            group_count=len(settings.groups),
        )
        return settings
