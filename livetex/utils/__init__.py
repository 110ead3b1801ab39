"""
Shared utilities for LiveTeX.

Common functionality used across contexts:
- Logger setup
- Timestamps
- Session event log
- PDF probing
"""

from livetex.utils.timestamp import format_timestamp, now, now_exact

__all__ = ["format_timestamp", "now", "now_exact"]
