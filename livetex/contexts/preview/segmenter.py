"""
Text/math segmentation for the inline preview.

Splits raw LaTeX source into an ordered list of text and math segments without
invoking a TeX engine. The segments always partition the input: joining every
segment's raw text gives back the source exactly.

Delimiters, tried in priority order at each position (leftmost match wins):
    $$...$$   display
    \\[...\\]   display
    \\(...\\)   inline
    $...$     inline (non-empty, may not cross a line break)

Escapes: outside math a backslash escapes the next character, so \\$ is a
literal dollar and \\\\[2pt] is a line break rather than display math. Inside
math an escaped delimiter does not close the span. An opening delimiter with
no valid closer is left as plain text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple


class SegmentKind(str, Enum):
    TEXT = "text"
    MATH = "math"


@dataclass(frozen=True)
class Segment:
    """
    Contiguous span of source text.

    Attributes:
        kind: TEXT or MATH
        raw: Exact source text of the span, delimiters included
        display_mode: True for $$...$$ and \\[...\\]
    """

    kind: SegmentKind
    raw: str
    display_mode: bool = False

    @property
    def body(self) -> str:
        """Math content with its delimiters stripped (raw text for TEXT segments)."""
        if self.kind is SegmentKind.TEXT:
            return self.raw
        for opener, closer, _, _ in DELIMITERS:
            if self.raw.startswith(opener) and self.raw.endswith(closer):
                return self.raw[len(opener) : len(self.raw) - len(closer)]
        return self.raw

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "raw": self.raw, "display_mode": self.display_mode}


# (opener, closer, display_mode, single_line)
DELIMITERS: List[Tuple[str, str, bool, bool]] = [
    ("$$", "$$", True, False),
    ("\\[", "\\]", True, False),
    ("\\(", "\\)", False, False),
    ("$", "$", False, True),
]


def _find_closer(source: str, pos: int, opener: str, closer: str, single_line: bool) -> int:
    """
    Find where closer starts, scanning from pos. Returns -1 if the span is invalid.

    A span is invalid when it runs off the end of the input, crosses a line
    break (single_line), or for $$...$$ contains a stray unescaped $.
    """
    while pos < len(source):
        char = source[pos]
        if source.startswith(closer, pos):
            return pos
        if char == "\\":
            pos += 2  # Skip escaped char
            continue
        if char == "$" and opener == "$$":
            # A lone $ inside $$...$$
            return -1
        if single_line and char == "\n":
            return -1
        pos += 1
    return -1


def _match_at(source: str, pos: int) -> Optional[Tuple[int, bool]]:
    """
    Try every delimiter pair at pos in priority order.

    Returns:
        (end position, display_mode) of the first pair that closes, or None
    """
    for opener, closer, display_mode, single_line in DELIMITERS:
        if not source.startswith(opener, pos):
            continue
        body_start = pos + len(opener)
        close = _find_closer(source, body_start, opener, closer, single_line)
        if close == -1:
            continue
        if single_line and close == body_start:
            # Empty $ $ body is not math
            continue
        return close + len(closer), display_mode
    return None


def segment_math(source: str) -> List[Segment]:
    """
    Partition source into ordered text and math segments.

    Args:
        source: Raw LaTeX source

    Returns:
        Segments in source order; "".join(s.raw for s in segments) == source

    Examples:
        >>> segment_math("a $x^2$ b")
        [Segment(kind=<SegmentKind.TEXT: 'text'>, raw='a ', display_mode=False),
         Segment(kind=<SegmentKind.MATH: 'math'>, raw='$x^2$', display_mode=False),
         Segment(kind=<SegmentKind.TEXT: 'text'>, raw=' b', display_mode=False)]
    """
    segments = []
    text_start = 0
    pos = 0

    while pos < len(source):
        match = _match_at(source, pos)
        if match is not None:
            end, display_mode = match
            if text_start < pos:
                segments.append(Segment(SegmentKind.TEXT, source[text_start:pos]))
            segments.append(Segment(SegmentKind.MATH, source[pos:end], display_mode))
            pos = text_start = end
        elif source[pos] == "\\":
            pos += 2  # Skip escaped char
        else:
            pos += 1

    if text_start < len(source):
        segments.append(Segment(SegmentKind.TEXT, source[text_start:]))

    return segments
