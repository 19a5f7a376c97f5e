"""Boundary to the external sequence-diagram renderer.

Drawing the diagram is someone else's job. A renderer takes the script and
returns one node per drawn message, numbered the way ``autonumber`` numbers
them. ``render_diagram`` attaches trace ids to those nodes and turns any
renderer exception into a failed result instead of propagating it.
"""

from dataclasses import dataclass, field, replace
from typing import Protocol, Sequence

import structlog

from .trace_map import build_sequence_trace_map

logger = structlog.get_logger()


@dataclass(frozen=True)
class RenderedNode:
    """A drawn message, identified by its 1-based sequence number."""

    sequence_number: int
    text: str | None = None
    trace_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "sequenceNumber": self.sequence_number,
            "text": self.text,
            "traceId": self.trace_id,
        }


class DiagramRenderer(Protocol):
    def render(self, script: str) -> Sequence[RenderedNode]:
        ...


@dataclass
class DiagramRenderResult:
    success: bool
    nodes: list[RenderedNode] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "nodes": [node.to_dict() for node in self.nodes],
            "error": self.error,
        }


def render_diagram(script: str, renderer: DiagramRenderer) -> DiagramRenderResult:
    """Render ``script`` and tag each drawn message with its trace id.

    Args:
        script: Mermaid script from the synthesizer
        renderer: External renderer

    Returns:
        DiagramRenderResult; on failure ``nodes`` is empty and ``error`` set
    """
    if not script or not script.strip():
        return DiagramRenderResult(success=True)

    try:
        rendered = list(renderer.render(script))
    except Exception as e:
        logger.warning("Diagram render failed", error=str(e), renderer=type(renderer).__name__)
        return DiagramRenderResult(success=False, error=f"Unable to render diagram: {e}")

    trace_map = build_sequence_trace_map(script)
    nodes = [
        replace(node, trace_id=trace_map.get(node.sequence_number, node.trace_id))
        for node in rendered
    ]
    return DiagramRenderResult(success=True, nodes=nodes)
