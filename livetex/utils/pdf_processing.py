"""
PDF probing helpers.

Used to confirm a freshly compiled artifact actually opens before it replaces
the one the user is looking at.
"""

from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from PyPDF2 import PdfReader


def page_count(pdf: Union[Path, bytes]) -> Optional[int]:
    """Get page count from a PDF path or raw PDF bytes, or None if unreadable."""
    try:
        source = BytesIO(pdf) if isinstance(pdf, (bytes, bytearray)) else str(pdf)
        reader = PdfReader(source)
        return len(reader.pages)
    except Exception:
        return None


def is_readable_pdf(data: bytes) -> bool:
    """True when data starts with a PDF header and parses to at least one page."""
    if not data.startswith(b"%PDF"):
        return False
    count = page_count(data)
    return count is not None and count > 0
