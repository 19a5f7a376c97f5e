"""Map rendered sequence numbers back to trace ids.

The renderer labels each message with its 1-based ``autonumber`` value and
nothing else. Re-reading the script and counting message lines recovers
which event each number belongs to: a ``%%<id>`` comment tags the next
message line, and message lines without a pending comment map to nothing.
"""

import re

MESSAGE_LINE_PATTERN = re.compile(r"-->>|-->|->>|->|--x|--o")
COMMENT_PREFIX = "%%"


def is_message_line(line: str) -> bool:
    stripped = line.strip()
    if not stripped or stripped.startswith(COMMENT_PREFIX):
        return False
    return MESSAGE_LINE_PATTERN.search(stripped) is not None


def build_sequence_trace_map(script: str | None) -> dict[int, str]:
    """Return ``{sequence_number: trace_id}`` for ``script``."""
    mapping: dict[int, str] = {}
    if not script or not script.strip():
        return mapping

    pending: str | None = None
    sequence = 0
    for raw_line in script.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line.startswith(COMMENT_PREFIX):
            pending = line[len(COMMENT_PREFIX):].strip() or None
            continue
        if not MESSAGE_LINE_PATTERN.search(line):
            continue
        sequence += 1
        if pending:
            mapping[sequence] = pending
            pending = None
    return mapping


def sequence_for_trace_id(mapping: dict[int, str], trace_id: str) -> int | None:
    """First sequence number carrying ``trace_id`` (for highlighting)."""
    for sequence, mapped in sorted(mapping.items()):
        if mapped == trace_id:
            return sequence
    return None
