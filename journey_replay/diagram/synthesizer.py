"""Mermaid sequence-diagram synthesis from trace events.

The script is line-oriented:

    sequenceDiagram
      autonumber
      %%jr-0
      User->>app.com: Click "Buy"
      %%jr-1
      app.com->>api.app.com: POST /cart
      api.app.com-->>app.com: 201 Created

A ``%%<id>`` comment precedes the first message line of each event so the
rendered sequence numbers can be mapped back to events (see ``trace_map``).
Requests are only drawn once an interaction has been drawn; earlier traffic
stays on the timeline but not in the diagram.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Sequence

from ..trace.hosts import (
    EMBEDDED_ASSET_HOST,
    PLACEHOLDER_HOST,
    USER_PARTICIPANT,
    click_hosts,
    destination_host,
    normalize_host,
    safe_url,
    url_host,
)
from ..trace.models import TraceEvent

HEADER_LINES = ("sequenceDiagram", "  autonumber")
MAX_LABEL_LENGTH = 140
DATA_MIME_LENGTH = 40
UNKNOWN_SERVER = "server"

TELEMETRY_HOST_PATTERNS = ("online-metrix", "doubleclick", "pixel")
TELEMETRY_PATH_PATTERNS = ("pixel", "clear", "beacon", "collect")

NO_EVENTS_NOTE = "No events recorded"
NO_INTERACTIONS_NOTE = "No interaction-driven events recorded"

TRANSITION_LABELS = {
    "typed": "Typed URL",
    "reload": "Reload",
    "link": "Link",
    "auto_bookmark": "Bookmark",
    "form_submit": "Form submit",
    "back_forward": "Back/Forward",
}

SPA_NAVIGATION_LABELS = {
    "pushState": "Route to",
    "replaceState": "Replace route",
    "popstate": "Back/Forward",
    "hashchange": "Hash change",
}

DEFAULT_NAVIGATION_LABEL = "Navigate"

_WHITESPACE = re.compile(r"\s+")
_LINE_BREAKS = re.compile(r"[\r\n]+")
_SLASHES = re.compile(r"/+")
_QUERY_OR_FRAGMENT = re.compile(r"[?#]")
_DATA_MIME = re.compile(r"^data:([^;,]+)")
_UNSAFE_PARTICIPANT = re.compile(r"[^\w.\-]")


def sanitize(text) -> str:
    """Escape the quote delimiter and keep the text on one line."""
    return _LINE_BREAKS.sub(" ", str(text if text is not None else "")).replace('"', '\\"')


def truncate(text: str, length: int = MAX_LABEL_LENGTH) -> str:
    if len(text) <= length:
        return text
    return f"{text[:length - 1]}…"


def participant(name: str) -> str:
    """Make a host usable as a participant id (ports and odd characters become ``_``)."""
    return _UNSAFE_PARTICIPANT.sub("_", name) or PLACEHOLDER_HOST


def strip_matrix_params(pathname: str) -> str:
    return "/".join(segment.split(";")[0] for segment in pathname.split("/"))


def normalize_path(pathname: str | None) -> str:
    """Drop ``;`` matrix params and collapse repeated slashes."""
    if not pathname:
        return "/"
    normalized = _SLASHES.sub("/", strip_matrix_params(pathname))
    return normalized or "/"


def strip_query_and_fragment(value: str) -> str:
    if not value:
        return ""
    match = _QUERY_OR_FRAGMENT.search(value)
    base = value if match is None else value[:match.start()]
    return strip_matrix_params(base)


def summarize_data_url(value: str) -> str:
    match = _DATA_MIME.match(value)
    mime = match.group(1) if match else "embedded asset"
    if len(mime) > DATA_MIME_LENGTH:
        return f"{mime[:DATA_MIME_LENGTH - 1]}…"
    return f"data:{mime}"


def is_telemetry_url(host: str, path: str) -> bool:
    host = host.lower()
    path = path.lower()
    if not host and not path:
        return False
    return any(p in host for p in TELEMETRY_HOST_PATTERNS) or any(
        p in path for p in TELEMETRY_PATH_PATTERNS
    )


def click_label(event: TraceEvent) -> str:
    explicit = _WHITESPACE.sub(" ", event.label).strip() if isinstance(event.label, str) else ""
    if explicit:
        return explicit
    base = _WHITESPACE.sub(" ", event.text or event.selector or event.label or "Click").strip()
    return base or "Click"


def _format_status(status) -> str:
    if status is None:
        return "unknown"
    if isinstance(status, float) and status.is_integer():
        return str(int(status))
    return str(status)


@dataclass(frozen=True)
class RequestLine:
    """Endpoint and message text for one request."""

    host: str
    description: str
    skip_response: bool = False


def format_request(event: TraceEvent) -> RequestLine:
    """Work out where a request goes and how to describe it."""
    method = getattr(event, "method", None) or "GET"
    url_string = event.url or event.target_url or event.path or ""

    if not url_string:
        return RequestLine(host=UNKNOWN_SERVER, description=f"{method} request")

    if url_string.startswith("data:"):
        return RequestLine(
            host=EMBEDDED_ASSET_HOST,
            description=f"{method} {summarize_data_url(url_string)}",
            skip_response=True,
        )

    parts = safe_url(url_string)
    if parts is None:
        path = truncate(strip_query_and_fragment(url_string))
        return RequestLine(host=UNKNOWN_SERVER, description=f"{method} {path}")

    host = normalize_host(url_host(parts)) or UNKNOWN_SERVER
    path = normalize_path(parts.path or "/")
    if is_telemetry_url(url_host(parts), parts.path or ""):
        path = f"Beacon {path}"
    return RequestLine(host=host, description=f"{method} {truncate(path)}")


def _event_path(event: TraceEvent) -> str:
    if event.path:
        return truncate(normalize_path(strip_query_and_fragment(event.path)))
    parts = safe_url(event.url or event.target_url)
    return truncate(normalize_path(parts.path if parts else None))


def extract_site_host(events: Sequence[TraceEvent] | None) -> str:
    """Host used in the placeholder note: the first interaction that has one."""
    for event in events or ():
        if event.is_interaction and event.host:
            return normalize_host(event.host) or PLACEHOLDER_HOST
    return PLACEHOLDER_HOST


class SequenceDiagramSynthesizer:
    """Walks events in order and emits the Mermaid script.

    Example:
        script = SequenceDiagramSynthesizer().synthesize(events)
    """

    def __init__(self):
        self._lines: list[str] = []
        self._current_host = PLACEHOLDER_HOST
        self._gate_open = False
        self._message_count = 0

    def synthesize(self, events: Iterable[TraceEvent] | None) -> str:
        events = list(events or [])
        self._lines = list(HEADER_LINES)
        self._current_host = PLACEHOLDER_HOST
        self._gate_open = False
        self._message_count = 0

        if not events:
            self._note(extract_site_host(events), NO_EVENTS_NOTE)
            return "\n".join(self._lines)

        for event in events:
            if event.kind == "click":
                self._click(event)
            elif event.kind == "navigation":
                self._navigation(event)
            elif event.kind == "spa-navigation":
                self._spa_navigation(event)
            elif event.kind == "request" and self._gate_open:
                self._request(event)

        if self._message_count == 0:
            self._note(extract_site_host(events), NO_INTERACTIONS_NOTE)
        return "\n".join(self._lines)

    # -------------------------------------------------------------------------

    def _note(self, site_host: str, text: str) -> None:
        self._lines.append(f"  Note over {USER_PARTICIPANT},{participant(site_host)}: {text}")

    def _comment(self, event: TraceEvent) -> None:
        trace_id = event.internal_id if event.internal_id else event.id
        if trace_id is not None and str(trace_id).strip():
            self._lines.append(f"  %%{trace_id}")

    def _message(self, source: str, arrow: str, target: str, text: str) -> None:
        self._lines.append(f"  {participant(source)}{arrow}{participant(target)}: {text}")
        self._message_count += 1

    def _click(self, event: TraceEvent) -> None:
        own, target = click_hosts(event)
        click_host = own or self._current_host
        self._comment(event)
        self._message(USER_PARTICIPANT, "->>", click_host, f'Click "{sanitize(click_label(event))}"')
        if target and target != click_host:
            self._message(click_host, "->>", target, DEFAULT_NAVIGATION_LABEL)
            self._current_host = target
        else:
            self._current_host = click_host
        self._gate_open = True

    def _navigation(self, event: TraceEvent) -> None:
        host = destination_host(event) or self._current_host
        transition = getattr(event, "transition_type", None)
        label = TRANSITION_LABELS.get(transition, DEFAULT_NAVIGATION_LABEL)
        self._comment(event)
        self._message(USER_PARTICIPANT, "->>", host, f'{label} "{sanitize(_event_path(event))}"')
        self._current_host = host
        self._gate_open = True

    def _spa_navigation(self, event: TraceEvent) -> None:
        source = self._current_host
        if not self._gate_open:
            source = normalize_host(getattr(event, "previous_host", None)) or source
        target = destination_host(event) or source
        nav_type = getattr(event, "navigation_type", None)
        label = SPA_NAVIGATION_LABELS.get(nav_type, DEFAULT_NAVIGATION_LABEL)
        self._comment(event)
        self._message(source, "->>", target, f'{label} "{sanitize(_event_path(event))}"')
        self._current_host = target
        self._gate_open = True

    def _request(self, event: TraceEvent) -> None:
        line = format_request(event)
        self._comment(event)
        self._message(self._current_host, "->>", line.host, sanitize(line.description))
        if not line.skip_response:
            status = _format_status(getattr(event, "status", None))
            status_text = (getattr(event, "status_text", None) or "").strip()
            text = f"{status} {status_text}" if status_text else status
            self._message(line.host, "-->>", self._current_host, sanitize(text))


def generate_mermaid_from_trace(events: Iterable[TraceEvent] | None) -> str:
    """Synthesize the sequence-diagram script for ``events``.

    Args:
        events: Filtered, overridden events in trace order

    Returns:
        Mermaid script text
    """
    return SequenceDiagramSynthesizer().synthesize(events)
