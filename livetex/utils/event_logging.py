"""
Session event logging utilities for LiveTeX.

Appends compile lifecycle events to a JSON Lines file (one JSON object per
line) so a session can be replayed or inspected after the fact.

For detailed within-context logging, use livetex.utils.logger instead.

Usage:
    from livetex.utils.event_logging import log_session_event, get_recent_events

    log_session_event(
        events_file=Path("outs/logs/session_events.log"),
        event_type="compile_completed",
        document_id="doc_1f2e",
        source="session",
        sequence_number=4,
        outcome="success",
    )
"""

import json
from pathlib import Path
from typing import Optional

from livetex.utils.timestamp import now_exact

# Event types emitted by the session context
SESSION_EVENT_TYPES = {
    "compile_issued",
    "compile_completed",
    "stale_discarded",
    "persistence_failed",
    "session_closed",
}


def log_session_event(
    events_file: Path,
    event_type: str,
    document_id: Optional[str],
    source: str,
    **extra_fields,
) -> None:
    """
    Log an event to the session event log.

    Args:
        events_file: JSON Lines file to append to (parent directory is created)
        event_type: Type of event (e.g., "compile_issued", "stale_discarded")
        document_id: Document identifier, or None for unsaved documents
        source: Event source (e.g., "session", "api", "cli")
        **extra_fields: Additional event-specific fields
    """
    events_file = Path(events_file)
    events_file.parent.mkdir(parents=True, exist_ok=True)

    event = {
        "timestamp": now_exact(),
        "event_type": event_type,
        "document_id": document_id,
        "source": source,
        **extra_fields,
    }

    with open(events_file, "a", encoding="utf-8") as f:
        f.write(json.dumps(event) + "\n")


def get_recent_events(
    events_file: Path,
    n: int = 10,
    document_id: Optional[str] = None,
    event_type: Optional[str] = None,
) -> list[dict]:
    """
    Get the last n events from the session log, optionally filtered.

    Args:
        events_file: JSON Lines file to read
        n: Number of recent events to return (default: 10)
        document_id: Filter to only events for this document (optional)
        event_type: Filter to only events of this type (optional)

    Returns:
        List of event dicts (most recent last)

    Example:
        # Last 20 discarded results
        events = get_recent_events(path, 20, event_type="stale_discarded")
    """
    events_file = Path(events_file)
    if not events_file.exists():
        return []

    events = []
    with open(events_file, "r", encoding="utf-8") as f:
        for line in f:
            try:
                events.append(json.loads(line.strip()))
            except json.JSONDecodeError:
                # Skip malformed lines
                continue

    if document_id:
        events = [e for e in events if e.get("document_id") == document_id]

    if event_type:
        events = [e for e in events if e.get("event_type") == event_type]

    return events[-n:] if len(events) > n else events
