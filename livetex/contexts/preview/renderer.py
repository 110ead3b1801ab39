"""
Inline preview rendering.

Text segments are HTML-escaped; math segments are converted to MathML with
latex2mathml. Each math segment is rendered on its own: a formula that fails
to convert is replaced by a visible error marker and the rest of the preview
still renders.
"""

import asyncio
import html
from dataclasses import dataclass
from typing import List, Optional

from latex2mathml.converter import convert as latex_to_mathml

from livetex.contexts.preview.logger import _log_debug, _log_warning
from livetex.contexts.preview.segmenter import Segment, SegmentKind, segment_math
from livetex.contexts.rendering.compiler import CompileOutcome, CompilerService, CompileSuccess

ERROR_MARKER = '<span class="math-error">Error rendering math: {message}</span>'


@dataclass(frozen=True)
class RenderedSegment:
    """
    Rendered HTML for one segment.

    Attributes:
        segment: Source segment
        html: HTML (or MathML) fragment, the error marker on failure
        error: Conversion error message, None on success
    """

    segment: Segment
    html: str
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {**self.segment.to_dict(), "html": self.html, "error": self.error}


def _render_text(text: str) -> str:
    return html.escape(text, quote=False).replace("\n", "<br>")


def render_segment(segment: Segment) -> RenderedSegment:
    """Render one segment, containing any math conversion failure to this segment."""
    if segment.kind is SegmentKind.TEXT:
        return RenderedSegment(segment, _render_text(segment.raw))

    display = "block" if segment.display_mode else "inline"
    try:
        markup = latex_to_mathml(segment.body.strip(), display=display)
    except Exception as e:
        message = str(e) or type(e).__name__
        _log_warning(f"Could not render {segment.raw[:40]!r}: {message}")
        return RenderedSegment(segment, ERROR_MARKER.format(message=html.escape(message)), message)

    return RenderedSegment(segment, markup)


def render_segments(segments: List[Segment]) -> List[RenderedSegment]:
    return [render_segment(segment) for segment in segments]


def render_preview(source: str) -> str:
    """Render source to preview HTML."""
    return "".join(rendered.html for rendered in render_segments(segment_math(source)))


async def render_segments_async(segments: List[Segment]) -> List[RenderedSegment]:
    """
    Render segments concurrently, one worker-thread job per math segment.

    Results come back in source order regardless of completion order.
    """

    async def render_one(segment: Segment) -> RenderedSegment:
        if segment.kind is SegmentKind.TEXT:
            return render_segment(segment)
        return await asyncio.to_thread(render_segment, segment)

    return list(await asyncio.gather(*(render_one(segment) for segment in segments)))


async def render_preview_async(source: str) -> str:
    rendered = await render_segments_async(segment_math(source))
    return "".join(r.html for r in rendered)


class MathPreviewCompiler(CompilerService):
    """
    CompilerService producing the inline preview instead of a PDF.

    The artifact is UTF-8 HTML. Segments that failed to render are reported as
    warnings; the compile itself always succeeds.
    """

    async def compile(self, source: str) -> CompileOutcome:
        rendered = await render_segments_async(segment_math(source))
        warnings = [f"{r.segment.raw}: {r.error}" for r in rendered if r.error]
        _log_debug(f"Rendered preview: {len(rendered)} segments, {len(warnings)} failed")
        markup = "".join(r.html for r in rendered)
        return CompileSuccess(artifact=markup.encode("utf-8"), warnings=warnings)
