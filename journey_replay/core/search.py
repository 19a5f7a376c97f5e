"""Search over timeline markers: interactions by text, requests by host."""

from dataclasses import dataclass, field
from typing import Iterable

from ..trace.hosts import event_domain
from ..trace.models import TraceEvent
from .correlator import TimelineMarker

SUBTITLE_PATH_LENGTH = 50


def _normalize_term(term: str | None) -> str:
    return (term or "").strip().lower()


def interaction_label(marker: TimelineMarker) -> str:
    """Headline shown for an interaction in search results."""
    event = marker.event
    if event.kind == "click":
        return event.text or event.label or event.selector or "Click"
    if event.kind == "navigation":
        transition = getattr(event, "transition_type", None) or "navigate"
        return f"{event.host or 'Unknown'} ({transition})"
    if event.kind == "spa-navigation":
        nav_type = getattr(event, "navigation_type", None) or "navigate"
        return f"{event.host or 'Unknown'} ({nav_type})"
    return marker.label or "Event"


def search_interactions(markers: Iterable[TimelineMarker], term: str | None) -> list[TimelineMarker]:
    """Interactions whose label, text, selector, host or URL contain ``term``."""
    markers = list(markers)
    needle = _normalize_term(term)
    if not needle:
        return markers

    def matches(marker: TimelineMarker) -> bool:
        event = marker.event
        haystacks = (
            interaction_label(marker),
            event.text,
            event.selector,
            event.host,
            event.url,
        )
        return any(needle in (value or "").lower() for value in haystacks)

    return [marker for marker in markers if matches(marker)]


def request_host(event: TraceEvent) -> str:
    """Host a request is grouped under; empty when nothing is known."""
    return event_domain(event)


def _request_matches(marker: TimelineMarker, needle: str) -> bool:
    event = marker.event
    return any(
        needle in (value or "").lower()
        for value in (event.url, event.path, event.target_url, event.extra.get("targetPath"))
        if value is None or isinstance(value, str)
    )


@dataclass
class HostStats:
    """Requests to one host, with the marker a click on the row jumps to."""

    host: str
    markers: list[TimelineMarker] = field(default_factory=list)
    target: TimelineMarker | None = None
    subtitle: str = ""

    @property
    def count(self) -> int:
        return len(self.markers)

    def to_dict(self) -> dict:
        return {
            "host": self.host,
            "count": self.count,
            "targetMarkerId": self.target.id if self.target else None,
            "subtitle": self.subtitle,
        }


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def host_stats(request_markers: Iterable[TimelineMarker], term: str | None = None) -> list[HostStats]:
    """Group request markers by host, busiest first.

    With a search term, a host is kept when its name matches or any of its
    requests' URL or path matches, and the target marker is the first
    matching request.
    """
    needle = _normalize_term(term)
    grouped: dict[str, HostStats] = {}
    for marker in request_markers:
        host = request_host(marker.event)
        if not host:
            continue
        grouped.setdefault(host, HostStats(host=host)).markers.append(marker)

    # Stable sort keeps first-seen order among hosts with equal counts.
    stats = sorted(grouped.values(), key=lambda s: s.count, reverse=True)

    results = []
    for stat in stats:
        host_hit = needle and needle in stat.host.lower()
        matching = [m for m in stat.markers if needle and _request_matches(m, needle)]
        if needle and not host_hit and not matching:
            continue

        if not needle:
            stat.target = stat.markers[0]
            stat.subtitle = f"First of {_plural(stat.count, 'request')}"
        elif host_hit:
            stat.target = stat.markers[0]
            stat.subtitle = _plural(stat.count, "request")
        else:
            stat.target = matching[0]
            path = stat.target.event.path or stat.target.event.url or ""
            if len(path) > SUBTITLE_PATH_LENGTH:
                path = f"...{path[-(SUBTITLE_PATH_LENGTH - 3):]}"
            stat.subtitle = f"{path} (+{len(matching) - 1} more)" if len(matching) > 1 else path
        results.append(stat)
    return results
