#!/usr/bin/env python3
"""
Command-line interface for managing the document store.

Commands:
    list    - List stored documents
    show    - Print a document's content
    new     - Create a document (from a file, or the default template)
    export  - Write a document's content to a .tex file
    delete  - Delete a document
"""

from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from livetex.config import load_settings
from livetex.contexts.documents.store import DocumentStore, PersistenceFailure, default_document
from livetex.utils.timestamp import format_timestamp

app = typer.Typer(
    add_completion=False,
    help="Manage stored LaTeX documents",
    invoke_without_command=True,
)


def _store(config: Optional[Path]) -> DocumentStore:
    return DocumentStore(Path(load_settings(config).documents_path))


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="YAML settings file", exists=True, dir_okay=False),
]


@app.callback()
def main(ctx: typer.Context):
    """Show help by default when no command is provided."""
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
        raise typer.Exit()


@app.command("list")
def list_command(
    relative: bool = typer.Option(False, "--relative", "-r", help="Show relative timestamps"),
    config: ConfigOption = None,
):
    """
    List documents, most recently updated first.

    Examples:\n

        $ manage_documents.py list

        $ manage_documents.py list --relative
    """
    documents = _store(config).list_documents()
    if not documents:
        typer.secho("No documents found", fg=typer.colors.YELLOW)
        return

    typer.secho(f"\n{len(documents)} document(s):\n", fg=typer.colors.BLUE)
    for doc in documents:
        updated = format_timestamp(doc.updated_at, relative=relative)
        typer.echo(f"  {doc.id}  {doc.title:<40}  {updated}  ({len(doc.content)} chars)")
    typer.echo("")


@app.command("show")
def show_command(
    doc_id: str = typer.Argument(..., help="Document identifier"),
    config: ConfigOption = None,
):
    """Print a document's content."""
    doc = _store(config).get_document(doc_id)
    if doc is None:
        typer.secho(f"Document '{doc_id}' not found", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"# {doc.title} ({doc.id})", fg=typer.colors.BLUE, err=True)
    typer.echo(doc.content)


@app.command("new")
def new_command(
    source: Optional[Path] = typer.Argument(
        None, help="LaTeX file to import (default: starter template)", exists=True, dir_okay=False
    ),
    title: Optional[str] = typer.Option(None, "--title", "-t", help="Document title"),
    config: ConfigOption = None,
):
    """
    Create a document.

    Examples:\n

        $ manage_documents.py new                          # Starter template

        $ manage_documents.py new notes.tex -t "Notes"     # Import a file
    """
    if source is not None:
        content = source.read_text(encoding="utf-8")
        title = title or source.stem
    else:
        template = default_document()
        content = template["content"]
        title = title or template["title"]

    try:
        doc = _store(config).save_document(content, title=title)
    except PersistenceFailure as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"✓ Created {doc.id} ({doc.title})", fg=typer.colors.GREEN)


@app.command("export")
def export_command(
    doc_id: str = typer.Argument(..., help="Document identifier"),
    output: Path = typer.Argument(..., help="Destination .tex file"),
    config: ConfigOption = None,
):
    """Write a document's content to a file (e.g., to watch it with live_preview.py)."""
    doc = _store(config).get_document(doc_id)
    if doc is None:
        typer.secho(f"Document '{doc_id}' not found", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(doc.content, encoding="utf-8")
    typer.secho(f"✓ Exported {doc.id} to {output}", fg=typer.colors.GREEN)


@app.command("delete")
def delete_command(
    doc_id: str = typer.Argument(..., help="Document identifier"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    config: ConfigOption = None,
):
    """Delete a document."""
    store = _store(config)
    doc = store.get_document(doc_id)
    if doc is None:
        typer.secho(f"Document '{doc_id}' not found", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    if not yes:
        typer.confirm(f"Delete '{doc.title}' ({doc.id})?", abort=True)

    try:
        store.delete_document(doc_id)
    except PersistenceFailure as e:
        typer.secho(f"Error: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    typer.secho(f"✓ Deleted {doc_id}", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()
