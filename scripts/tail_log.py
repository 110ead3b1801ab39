#!/usr/bin/env python3
"""
View recent session events from the JSON Lines event log.

Provides filtered access to the event log with options to filter by
document and event type.
"""

import json
from pathlib import Path
from typing import Optional

import typer

from livetex.config import load_settings
from livetex.utils.event_logging import SESSION_EVENT_TYPES, get_recent_events
from livetex.utils.timestamp import format_timestamp

app = typer.Typer(
    add_completion=False,
    help="View recent session events",
)


@app.command()
def main(
    n: int = typer.Option(10, "--num", "-n", help="Number of recent events to show"),
    document: Optional[str] = typer.Option(
        None, "--document", "-d", help="Filter to events for this document"
    ),
    event_type: Optional[str] = typer.Option(
        None, "--event-type", "-e", help="Filter to events of this type"
    ),
    compact: bool = typer.Option(
        False, "--compact", "-c", help="Print one event per line (no pretty formatting)"
    ),
    relative: bool = typer.Option(
        False, "--relative", "-r", help="Show relative timestamps (e.g., '2m ago')"
    ),
    events_file: Optional[Path] = typer.Option(
        None, "--file", "-f", help="Event log (default: SESSION_EVENTS_FILE setting)"
    ),
):
    """
    Show the last n events from the session log.

    Examples:\n

        $ python scripts/tail_log.py                          # Last 10 events

        $ python scripts/tail_log.py --num 20                 # Last 20 events

        $ python scripts/tail_log.py -e stale_discarded       # Last 10 discarded results

        $ python scripts/tail_log.py -n 5 -d doc_3fa2c1       # Last 5 events for a document

        $ python scripts/tail_log.py -n 20 --compact          # One line per event
    """
    if events_file is None:
        configured = load_settings().session_events_file
        if not configured:
            typer.secho(
                "No event log configured (set SESSION_EVENTS_FILE or pass --file)",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1)
        events_file = Path(configured)

    if event_type and event_type not in SESSION_EVENT_TYPES:
        typer.secho(
            f"Unknown event type '{event_type}'. Known: {', '.join(sorted(SESSION_EVENT_TYPES))}",
            fg=typer.colors.RED,
            err=True,
        )
        raise typer.Exit(code=1)

    events = get_recent_events(events_file, n=n, document_id=document, event_type=event_type)

    if not events:
        typer.secho("No events found", fg=typer.colors.YELLOW, err=True)
        raise typer.Exit(code=1)

    if not compact:
        filters = []
        if document:
            filters.append(f"document={document}")
        if event_type:
            filters.append(f"type={event_type}")

        if filters:
            typer.secho(
                f"\nShowing last {len(events)} event(s) [{', '.join(filters)}]:",
                fg=typer.colors.BLUE,
            )
        else:
            typer.secho(f"\nShowing last {len(events)} event(s):", fg=typer.colors.BLUE)

        typer.echo("")

    for event in events:
        if relative:
            event = {**event, "timestamp": format_timestamp(event["timestamp"], relative=True)}
        if compact:
            typer.echo(json.dumps(event))
        else:
            typer.echo(json.dumps(event, indent=2))
            typer.echo("")


if __name__ == "__main__":
    app()
