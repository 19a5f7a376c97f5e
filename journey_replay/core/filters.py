"""Regex noise filters for request events.

Filter settings are plain, user-editable text: one rule per line, grouped
into named presets plus a free-form ``custom`` group. Rules are compiled on
every pass. A line that does not compile is dropped and never raises.

Rule grammar (per line):
    method:<regex>   match the request method
    status:<regex>   match the numeric status as a string
    <regex>          match the URL, falling back to the path
    /<regex>/<flags> literal form; flags i, m, s apply, g, u, y are ignored

Bare patterns are case-insensitive.
"""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable

import structlog

from ..trace.hosts import event_domain
from ..trace.models import TraceEvent

logger = structlog.get_logger()

CUSTOM_GROUP_ID = "custom"
CUSTOM_GROUP_LABEL = "Custom"

_LITERAL_PATTERN = re.compile(r"^/(.+)/([gimsuy]*)$", re.DOTALL)
_REGEX_SPECIALS = re.compile(r"[.*+?^${}()|\[\]\\]")
_FLAG_MAP = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}


class RuleTarget(str, Enum):
    """Request field a rule is matched against."""

    URL = "url"
    METHOD = "method"
    STATUS = "status"


@dataclass(frozen=True)
class FilterRule:
    target: RuleTarget
    regex: re.Pattern
    source: str = ""

    def matches(self, event: TraceEvent) -> bool:
        value = rule_target_value(event, self.target)
        return bool(value) and self.regex.search(value) is not None


@dataclass(frozen=True)
class FilterGroupSetting:
    """Editable settings for one filter group."""

    id: str
    label: str
    description: str = ""
    enabled: bool = True
    patterns_text: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "label": self.label,
            "description": self.description,
            "enabled": self.enabled,
            "patternsText": self.patterns_text,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FilterGroupSetting":
        enabled = data.get("enabled")
        patterns = data.get("patternsText")
        return cls(
            id=str(data.get("id", "")),
            label=str(data.get("label") or data.get("id") or ""),
            description=str(data.get("description") or ""),
            enabled=True if enabled is None else bool(enabled),
            patterns_text=patterns if isinstance(patterns, str) else "",
        )


@dataclass(frozen=True)
class FilterSettings:
    """Complete filter configuration for a session."""

    apply_filters: bool = True
    custom_regex_text: str = ""
    groups: tuple[FilterGroupSetting, ...] = ()

    def to_dict(self) -> dict:
        return {
            "applyFilters": self.apply_filters,
            "customRegexText": self.custom_regex_text,
            "groups": [group.to_dict() for group in self.groups],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FilterSettings":
        apply_filters = data.get("applyFilters")
        custom = data.get("customRegexText")
        return cls(
            apply_filters=True if apply_filters is None else bool(apply_filters),
            custom_regex_text=custom if isinstance(custom, str) else "",
            groups=tuple(
                FilterGroupSetting.from_dict(group)
                for group in data.get("groups") or []
                if isinstance(group, dict)
            ),
        )

    def group(self, group_id: str) -> FilterGroupSetting | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def with_group(self, updated: FilterGroupSetting) -> "FilterSettings":
        """Replace the group with ``updated.id``."""
        groups = tuple(updated if g.id == updated.id else g for g in self.groups)
        return replace(self, groups=groups)


@dataclass(frozen=True)
class CompiledFilterGroup:
    id: str
    label: str
    rules: tuple[FilterRule, ...]


@dataclass
class FilterResult:
    """Requests left after filtering, and how many each group removed."""

    filtered_events: list[TraceEvent]
    ignored_counts: dict[str, int] = field(default_factory=dict)

    @property
    def total_ignored(self) -> int:
        return sum(self.ignored_counts.values())


@dataclass(frozen=True)
class FilterGroupTemplate:
    id: str
    label: str
    description: str
    patterns: tuple[str, ...]
    default_enabled: bool = True


FILTER_GROUP_TEMPLATES: tuple[FilterGroupTemplate, ...] = (
    FilterGroupTemplate(
        id="static-assets",
        label="Static assets",
        description="Images, CSS, fonts, and Next.js chunks.",
        patterns=(
            r"\.(png|jpg|jpeg|gif|svg|webp|ico)(\?.*)?$",
            r"\.(css|scss|woff2?|ttf|otf)(\?.*)?$",
            r"/_next/static/",
            r"assets-event-page\.svc\.sympla\.com\.br/_next/",
        ),
    ),
    FilterGroupTemplate(
        id="tracking",
        label="Tracking & analytics",
        description="GA, TikTok, Facebook, Bing, etc.",
        patterns=(
            r"google-analytics\.com",
            r"googletagmanager\.com",
            r"g\.doubleclick\.net",
            r"pagead2\.googlesyndication\.com",
            r"facebook\.net",
            r"analytics\.tiktok\.com",
            r"clarity\.ms",
            r"bat\.bing\.com",
            r"topsort",
            r"cdn\.cookielaw\.org",
        ),
    ),
    FilterGroupTemplate(
        id="extensions",
        label="Chrome extensions",
        description="Extension self-requests (chrome-extension://).",
        patterns=(r"^chrome-extension://",),
    ),
    FilterGroupTemplate(
        id="preflight",
        label="CORS preflight & cached",
        description="OPTIONS requests and 304 responses.",
        patterns=(r"method:^OPTIONS$",),
    ),
)


def create_default_filter_settings(apply_filters: bool = True) -> FilterSettings:
    """Fresh settings with every preset group at its default."""
    return FilterSettings(
        apply_filters=apply_filters,
        custom_regex_text="",
        groups=tuple(
            FilterGroupSetting(
                id=template.id,
                label=template.label,
                description=template.description,
                enabled=template.default_enabled,
                patterns_text="\n".join(template.patterns),
            )
            for template in FILTER_GROUP_TEMPLATES
        ),
    )


def has_filter_changes(settings: FilterSettings) -> bool:
    """True when ``settings`` differ from the defaults in any way that matters."""
    baseline = create_default_filter_settings()
    if settings.apply_filters != baseline.apply_filters:
        return True
    if settings.custom_regex_text != baseline.custom_regex_text:
        return True
    if len(settings.groups) != len(baseline.groups):
        return True
    for group, base in zip(settings.groups, baseline.groups):
        if (
            group.id != base.id
            or group.enabled != base.enabled
            or group.patterns_text != base.patterns_text
        ):
            return True
    return False


def _build_regex(pattern: str) -> re.Pattern | None:
    literal = _LITERAL_PATTERN.match(pattern)
    if literal:
        body, flag_text = literal.groups()
        flags = 0
        for flag in flag_text:
            flags |= _FLAG_MAP.get(flag, 0)
    else:
        body, flags = pattern, re.IGNORECASE
    try:
        return re.compile(body, flags)
    except re.error as e:
        logger.debug("Dropping invalid filter pattern", pattern=pattern, error=str(e))
        return None


def compile_rule(line: str) -> FilterRule | None:
    """Compile one rule line, or return ``None`` if it is empty or invalid."""
    target = RuleTarget.URL
    pattern = line
    if line.startswith("method:"):
        target = RuleTarget.METHOD
        pattern = line[7:].strip()
    elif line.startswith("status:"):
        target = RuleTarget.STATUS
        pattern = line[7:].strip()

    if not pattern:
        return None
    regex = _build_regex(pattern)
    if regex is None:
        return None
    return FilterRule(target=target, regex=regex, source=line)


def parse_rules(text: str | None) -> list[FilterRule]:
    """Compile every usable line of ``text``; bad lines are skipped."""
    if not text:
        return []
    rules = []
    for raw_line in text.split("\n"):
        line = raw_line.strip()
        if not line:
            continue
        rule = compile_rule(line)
        if rule is not None:
            rules.append(rule)
    return rules


def compile_active_groups(settings: FilterSettings) -> list[CompiledFilterGroup]:
    """Enabled groups with at least one rule, in order, custom group last."""
    groups = []
    for group in settings.groups:
        if not group.enabled:
            continue
        rules = parse_rules(group.patterns_text)
        if rules:
            groups.append(CompiledFilterGroup(id=group.id, label=group.label, rules=tuple(rules)))

    custom_rules = parse_rules(settings.custom_regex_text)
    if custom_rules:
        groups.append(
            CompiledFilterGroup(id=CUSTOM_GROUP_ID, label=CUSTOM_GROUP_LABEL, rules=tuple(custom_rules))
        )
    return groups


def rule_target_value(event: TraceEvent, target: RuleTarget) -> str:
    if target == RuleTarget.METHOD:
        return getattr(event, "method", None) or ""
    if target == RuleTarget.STATUS:
        status = getattr(event, "status", None)
        if status is None:
            return ""
        if isinstance(status, float) and status.is_integer():
            status = int(status)
        return str(status)
    return event.url or event.path or ""


def match_event(event: TraceEvent, groups: Iterable[CompiledFilterGroup]) -> str | None:
    """Id of the first group with a rule matching ``event``."""
    for group in groups:
        for rule in group.rules:
            if rule.matches(event):
                return group.id
    return None


def apply_trace_filters(events: Iterable[TraceEvent], settings: FilterSettings) -> FilterResult:
    """Drop request events matched by an active filter group.

    Non-request events always pass. Each dropped request is counted against
    the first group that matched it, and only that group. When filtering is
    off or no group has a usable rule, every event is returned and the counts
    are empty.
    """
    events = list(events)
    if not settings.apply_filters:
        return FilterResult(filtered_events=events)

    active_groups = compile_active_groups(settings)
    if not active_groups:
        return FilterResult(filtered_events=events)

    ignored_counts: dict[str, int] = {}
    filtered: list[TraceEvent] = []
    for event in events:
        if not event.is_request:
            filtered.append(event)
            continue
        group_id = match_event(event, active_groups)
        if group_id:
            ignored_counts[group_id] = ignored_counts.get(group_id, 0) + 1
            continue
        filtered.append(event)

    return FilterResult(filtered_events=filtered, ignored_counts=ignored_counts)


# =============================================================================
# "Filter this host" helpers
# =============================================================================


def escape_domain_pattern(domain: str) -> str:
    """Escape regex metacharacters so ``domain`` matches literally."""
    return _REGEX_SPECIALS.sub(lambda m: "\\" + m.group(0), domain)


def suggest_domain(event: TraceEvent) -> str:
    """Domain offered when the user asks to filter a request's host."""
    return event_domain(event)


def add_filter_pattern(settings: FilterSettings, pattern: str, group_id: str) -> FilterSettings:
    """Append ``pattern`` to a group and make sure that group is enabled.

    Raises:
        ValueError: If the pattern is blank or the group does not exist
    """
    pattern = pattern.strip()
    if not pattern:
        raise ValueError("Filter pattern must not be empty")

    if group_id == CUSTOM_GROUP_ID:
        existing = settings.custom_regex_text.rstrip("\n")
        text = f"{existing}\n{pattern}" if existing else pattern
        return replace(settings, custom_regex_text=text)

    group = settings.group(group_id)
    if group is None:
        raise ValueError(f"Unknown filter group: {group_id}")
    existing = group.patterns_text.rstrip("\n")
    text = f"{existing}\n{pattern}" if existing else pattern
    return settings.with_group(replace(group, patterns_text=text, enabled=True))


def count_pattern_matches(events: Iterable[TraceEvent], pattern: str) -> int:
    """How many request events one rule line would remove."""
    rule = compile_rule(pattern.strip())
    if rule is None:
        return 0
    return sum(1 for event in events if event.is_request and rule.matches(event))
