"""Sequence-diagram synthesis and the trace-id back-map."""

from .renderer import DiagramRenderer, DiagramRenderResult, RenderedNode, render_diagram
from .synthesizer import (
    MAX_LABEL_LENGTH,
    SequenceDiagramSynthesizer,
    format_request,
    generate_mermaid_from_trace,
)
from .trace_map import build_sequence_trace_map, is_message_line, sequence_for_trace_id

__all__ = [
    "MAX_LABEL_LENGTH",
    "SequenceDiagramSynthesizer",
    "format_request",
    "generate_mermaid_from_trace",
    "build_sequence_trace_map",
    "is_message_line",
    "sequence_for_trace_id",
    "DiagramRenderer",
    "DiagramRenderResult",
    "RenderedNode",
    "render_diagram",
]
