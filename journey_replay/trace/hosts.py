"""Host and URL helpers shared by the correlator, synthesizer and filters.

URL parsing here is lenient: anything without a scheme is retried with an
``https://`` prefix, and callers get ``None`` instead of an exception when a
value cannot be read as a URL.
"""

import re
from urllib.parse import SplitResult, urlsplit

from .models import TraceEvent

PLACEHOLDER_HOST = "WebApp"
EMBEDDED_ASSET_HOST = "embedded_asset"
FALLBACK_ENDPOINT = "Service"
USER_PARTICIPANT = "User"

_WWW_PREFIX = re.compile(r"^www\.", re.IGNORECASE)
_SCHEME_PREFIX = re.compile(r"^https?://", re.IGNORECASE)


def normalize_host(host: str | None) -> str | None:
    """Strip a leading ``www.`` (any case). Empty hosts come back as ``None``."""
    if not host:
        return None
    return _WWW_PREFIX.sub("", host) or None


def _split(value: str) -> SplitResult | None:
    try:
        parts = urlsplit(value)
        # Accessing .port validates it; bad ports raise here.
        parts.port
    except ValueError:
        return None
    if not parts.scheme or not parts.netloc:
        return None
    return parts


def safe_url(value: str | None) -> SplitResult | None:
    """Parse ``value`` as an absolute URL, retrying with ``https://``."""
    if not value:
        return None
    parsed = _split(value)
    if parsed is None and "://" not in value:
        parsed = _split(f"https://{value}")
    return parsed


def url_host(parts: SplitResult) -> str:
    """Host with port, lowercased, the way browsers report ``URL.host``."""
    host = (parts.hostname or "").lower()
    if parts.port is not None:
        host = f"{host}:{parts.port}"
    return host


def host_from_url(value: str | None) -> str | None:
    parts = safe_url(value)
    if parts is None:
        return None
    return url_host(parts) or None


def endpoint_host(event: TraceEvent) -> str:
    """Host a request talks to.

    Looks at the target URL, then URL, path and label. Values that do not
    parse keep everything before the first ``/``; nothing at all gives
    ``Service``.
    """
    candidate = event.target_url or event.url or event.path or event.label or ""
    if not candidate:
        return FALLBACK_ENDPOINT
    if candidate.startswith("data:"):
        return EMBEDDED_ASSET_HOST

    if candidate.lower().startswith("http"):
        parts = _split(candidate)
    else:
        parts = _split(f"https://{candidate}")
    if parts is not None and url_host(parts):
        return normalize_host(url_host(parts)) or FALLBACK_ENDPOINT

    head = _SCHEME_PREFIX.sub("", candidate).split("/")[0]
    return normalize_host(head) or FALLBACK_ENDPOINT


def event_domain(event: TraceEvent) -> str:
    """Raw domain of an event: its host, else the host of its URL.

    Unlike ``endpoint_host`` nothing is normalized and an unknown domain is
    the empty string.
    """
    if event.host:
        return event.host
    url = event.url or event.target_url or ""
    if not url:
        return ""
    candidate = url if url.lower().startswith("http") else f"https://{url}"
    return host_from_url(candidate) or url.split("/")[0]


def destination_host(event: TraceEvent) -> str | None:
    """Where a navigation or SPA route change landed."""
    return normalize_host(
        event.host or host_from_url(event.target_url) or host_from_url(event.url)
    )


def click_hosts(event: TraceEvent) -> tuple[str | None, str | None]:
    """Return ``(own_host, target_host)`` for a click.

    ``target_host`` is only set when the click left its own host.
    """
    own = normalize_host(event.host)
    target = normalize_host(event.target_host)
    if target and target != own:
        return own, target
    return own, None


def resolve_current_host(
    interaction: TraceEvent | None,
    fallback: str = PLACEHOLDER_HOST,
) -> str:
    """Host context that requests triggered by ``interaction`` run under.

    Navigations land on their destination. A click that jumped hosts lands
    on its target, otherwise on its own host. ``fallback`` is used when the
    interaction carries no host at all.
    """
    if interaction is None:
        return PLACEHOLDER_HOST
    if interaction.kind == "click":
        own, target = click_hosts(interaction)
        return target or own or fallback
    return destination_host(interaction) or fallback


def describe_participants(event: TraceEvent, current_host: str | None = None) -> tuple[str, str]:
    """``(from, to)`` participant labels shown next to a marker."""
    kind = event.kind
    if kind == "click":
        own, target = click_hosts(event)
        own = own or current_host or PLACEHOLDER_HOST
        return USER_PARTICIPANT, f"{own} → {target}" if target else own

    if kind == "navigation":
        host = destination_host(event) or PLACEHOLDER_HOST
        transition = getattr(event, "transition_type", None) or "navigate"
        return USER_PARTICIPANT, f"{host} ({transition})"

    if kind == "spa-navigation":
        host = destination_host(event) or PLACEHOLDER_HOST
        previous = normalize_host(getattr(event, "previous_host", None))
        nav_type = getattr(event, "navigation_type", None) or "navigate"
        if previous and previous != host:
            return USER_PARTICIPANT, f"{previous} → {host} ({nav_type})"
        return USER_PARTICIPANT, f"{host} ({nav_type})"

    if kind == "request":
        return current_host or PLACEHOLDER_HOST, endpoint_host(event)

    return "System", "System"
