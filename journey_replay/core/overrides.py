"""Per-event label and removal edits layered over a loaded trace.

Edits never touch the loaded events. They live in an ``OverrideTable`` keyed
by internal id and are projected onto the events with ``apply_overrides``.
An override is dropped from the table as soon as it stops differing from the
original event, so an empty table always means "no edits".
"""

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping

from ..trace.models import TraceEvent


@dataclass(frozen=True)
class EventOverride:
    """A user edit for one event."""

    label: str | None = None
    removed: bool = False

    def to_dict(self) -> dict:
        out: dict = {}
        if self.label is not None:
            out["label"] = self.label
        if self.removed:
            out["removed"] = True
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "EventOverride":
        return cls(label=data.get("label"), removed=bool(data.get("removed", False)))


class OverrideTable:
    """Immutable map of internal id to ``EventOverride``.

    Every edit returns a new table, or this same table when the edit changes
    nothing, so callers can detect no-ops with ``is``.
    """

    def __init__(self, entries: Mapping[str, EventOverride] | None = None):
        self._entries: dict[str, EventOverride] = dict(entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, internal_id: object) -> bool:
        return internal_id in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OverrideTable):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"OverrideTable({self._entries!r})"

    def get(self, internal_id: str | None) -> EventOverride | None:
        if not internal_id:
            return None
        return self._entries.get(internal_id)

    def items(self):
        return self._entries.items()

    @property
    def has_modifications(self) -> bool:
        return bool(self._entries)

    def _with(self, internal_id: str, override: EventOverride | None) -> "OverrideTable":
        entries = dict(self._entries)
        if override is None:
            entries.pop(internal_id, None)
        else:
            entries[internal_id] = override
        return OverrideTable(entries)

    def update_label(self, original: TraceEvent, label: str | None) -> "OverrideTable":
        """Set a label edit for ``original``.

        Setting the label back to the original drops the label edit, and the
        whole override unless the event is also removed.
        """
        internal_id = original.internal_id
        if not internal_id:
            return self
        original_label = original.label or ""
        label = label or ""
        current = self._entries.get(internal_id)

        if label == original_label:
            if current is None:
                return self
            if current.removed:
                if current.label is None:
                    return self
                return self._with(internal_id, EventOverride(removed=True))
            return self._with(internal_id, None)

        if current is not None and current.label == label:
            return self
        removed = current.removed if current else False
        return self._with(internal_id, EventOverride(label=label, removed=removed))

    def set_removed(self, original: TraceEvent, removed: bool) -> "OverrideTable":
        """Soft-delete or restore ``original``.

        Restoring keeps a label edit that still differs from the original
        label; otherwise the override goes away.
        """
        internal_id = original.internal_id
        if not internal_id:
            return self
        current = self._entries.get(internal_id)

        if removed:
            if current is not None and current.removed:
                return self
            label = current.label if current else None
            return self._with(internal_id, EventOverride(label=label, removed=True))

        if current is None:
            return self
        if current.label and current.label != (original.label or ""):
            if not current.removed:
                return self
            return self._with(internal_id, EventOverride(label=current.label))
        return self._with(internal_id, None)

    def reset(self, internal_id: str | None) -> "OverrideTable":
        """Drop every edit for one event."""
        if not internal_id or internal_id not in self._entries:
            return self
        return self._with(internal_id, None)

    def label_edit_count(self, originals: Iterable[TraceEvent]) -> int:
        """Number of events whose visible label differs from the original."""
        by_id = {event.internal_id: event for event in originals if event.internal_id}
        count = 0
        for internal_id, override in self._entries.items():
            if override.label is None or override.removed:
                continue
            original = by_id.get(internal_id)
            original_label = (original.label if original else None) or ""
            if override.label != original_label:
                count += 1
        return count

    def removed_events(self, events: Iterable[TraceEvent]) -> list[TraceEvent]:
        """Events (in trace order) that are currently soft-deleted."""
        removed = []
        for event in events:
            override = self.get(event.internal_id)
            if override is not None and override.removed:
                removed.append(event)
        return removed

    def to_dict(self) -> dict[str, dict]:
        return {internal_id: o.to_dict() for internal_id, o in self._entries.items()}

    @classmethod
    def from_dict(cls, data: Mapping[str, dict]) -> "OverrideTable":
        return cls({key: EventOverride.from_dict(value) for key, value in data.items()})


def apply_overrides(events: Iterable[TraceEvent], overrides: OverrideTable) -> list[TraceEvent]:
    """Project ``overrides`` onto ``events``.

    Removed events are dropped. Relabelled events are replaced by a copy with
    the new label. Everything else is passed through as the same object and
    order is kept.
    """
    result: list[TraceEvent] = []
    for event in events:
        override = overrides.get(event.internal_id)
        if override is None:
            result.append(event)
            continue
        if override.removed:
            continue
        if override.label is not None and override.label != event.label:
            result.append(event.with_label(override.label))
            continue
        result.append(event)
    return result
