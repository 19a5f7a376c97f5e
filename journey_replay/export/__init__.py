"""Export of filtered traces, diagram scripts and filter settings."""

from .engine import ExportEngine, trace_basename
from .models import (
    FILTER_SETTINGS_VERSION,
    ExportFormat,
    ExportResult,
    FilterSettingsImportError,
)

__all__ = [
    "ExportEngine",
    "ExportFormat",
    "ExportResult",
    "FilterSettingsImportError",
    "FILTER_SETTINGS_VERSION",
    "trace_basename",
]
