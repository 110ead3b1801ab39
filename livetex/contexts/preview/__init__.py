"""
Preview Context

Responsibilities:
- Splits source text into text and math segments without a TeX engine
- Renders math segments to MathML, containing failures to the segment that caused them
- Offers the inline preview as a CompilerService so sessions can drive it

Owns: delimiter lexing, inline HTML rendering
Never: Invokes the external TeX engine
"""

from livetex.contexts.preview.renderer import (
    MathPreviewCompiler,
    RenderedSegment,
    render_preview,
    render_preview_async,
    render_segment,
)
from livetex.contexts.preview.segmenter import Segment, SegmentKind, segment_math

__all__ = [
    "MathPreviewCompiler",
    "RenderedSegment",
    "Segment",
    "SegmentKind",
    "render_preview",
    "render_preview_async",
    "render_segment",
    "segment_math",
]
