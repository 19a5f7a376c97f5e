"""Pure trace transforms: overrides, filters, correlation, analysis and search."""

from .analysis import (
    InteractionTimingAnalysis,
    PerformanceRating,
    WaterfallBar,
    WaterfallData,
    analyze_interaction_timing,
    build_timing_entries,
    compute_waterfall,
    performance_rating,
)
from .correlator import (
    ColorTag,
    TimelineComputation,
    TimelineMarker,
    combined_markers,
    compute_timeline,
    find_marker,
    marker_seek_seconds,
    navigate_markers,
    playback_percent,
)
from .filters import (
    CUSTOM_GROUP_ID,
    FILTER_GROUP_TEMPLATES,
    FilterGroupSetting,
    FilterResult,
    FilterRule,
    FilterSettings,
    RuleTarget,
    add_filter_pattern,
    apply_trace_filters,
    compile_rule,
    count_pattern_matches,
    create_default_filter_settings,
    escape_domain_pattern,
    has_filter_changes,
    parse_rules,
    suggest_domain,
)
from .overrides import EventOverride, OverrideTable, apply_overrides
from .search import HostStats, host_stats, search_interactions

__all__ = [
    # Overrides
    "EventOverride",
    "OverrideTable",
    "apply_overrides",
    # Filters
    "CUSTOM_GROUP_ID",
    "FILTER_GROUP_TEMPLATES",
    "FilterGroupSetting",
    "FilterResult",
    "FilterRule",
    "FilterSettings",
    "RuleTarget",
    "add_filter_pattern",
    "apply_trace_filters",
    "compile_rule",
    "count_pattern_matches",
    "create_default_filter_settings",
    "escape_domain_pattern",
    "has_filter_changes",
    "parse_rules",
    "suggest_domain",
    # Correlation
    "ColorTag",
    "TimelineComputation",
    "TimelineMarker",
    "combined_markers",
    "compute_timeline",
    "find_marker",
    "marker_seek_seconds",
    "navigate_markers",
    "playback_percent",
    # Analysis
    "InteractionTimingAnalysis",
    "PerformanceRating",
    "WaterfallBar",
    "WaterfallData",
    "analyze_interaction_timing",
    "build_timing_entries",
    "compute_waterfall",
    "performance_rating",
    # Search
    "HostStats",
    "host_stats",
    "search_interactions",
]
