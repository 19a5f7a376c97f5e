"""Data models for session exports."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

FILTER_SETTINGS_VERSION = 1
DEFAULT_TRACE_BASENAME = "trace"


class ExportFormat(str, Enum):
    """Downloadable artifacts a session can produce."""

    FILTERED_TRACE = "filtered-trace"
    DIAGRAM = "diagram"
    FILTER_SETTINGS = "filter-settings"


MEDIA_TYPES = {
    ExportFormat.FILTERED_TRACE: "application/json",
    ExportFormat.DIAGRAM: "text/plain",
    ExportFormat.FILTER_SETTINGS: "application/json",
}

FILE_EXTENSIONS = {
    ExportFormat.FILTERED_TRACE: ".json",
    ExportFormat.DIAGRAM: ".mmd",
    ExportFormat.FILTER_SETTINGS: ".json",
}


class FilterSettingsImportError(Exception):
    """Raised when an imported filter-settings file is malformed."""


@dataclass
class ExportResult:
    """Result from exporting a session artifact.

    Attributes:
        success: Whether export succeeded
        format: Which artifact was produced
        content: File content
        filename: Suggested download name
        media_type: MIME type for the download
        error: Error message if failed
        metadata: Additional export metadata
    """

    success: bool
    format: ExportFormat | None = None
    content: str = ""
    filename: str = ""
    media_type: str = "application/octet-stream"
    error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "success": self.success,
            "format": self.format.value if self.format else None,
            "content": self.content,
            "filename": self.filename,
            "media_type": self.media_type,
            "error": self.error,
            "metadata": self.metadata,
        }
