#!/usr/bin/env python3
"""
Live preview of a LaTeX file.

Watches a .tex file for changes and feeds every change into a compile session:
edits are debounced, stale compiles are discarded, and each new artifact is
written to the output path as it becomes live. Stop with Ctrl+C.

Modes:
    pdf   - full compile with the TeX engine (default)
    html  - inline math preview, no TeX engine needed

Examples:\n

    live_preview.py notes.tex                         # Writes notes.pdf on every change

    live_preview.py notes.tex --mode html             # Writes notes.html (inline math preview)

    live_preview.py notes.tex --debounce 300 --save   # Faster refresh, persist to the document store
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from livetex.config import load_settings
from livetex.contexts.documents.store import DocumentStore
from livetex.contexts.preview.renderer import MathPreviewCompiler
from livetex.contexts.rendering.compiler import LatexCompiler
from livetex.contexts.session.artifacts import ArtifactLifecycle
from livetex.contexts.session.logger import setup_session_logger
from livetex.contexts.session.orchestrator import CompileOrchestrator
from livetex.contexts.session.state import Failure, ViewState
from livetex.utils.pdf_processing import is_readable_pdf
from livetex.utils.timestamp import now

HTML_PAGE = """<!DOCTYPE html>
<html><head><meta charset="utf-8"><title>{title}</title>
<style>body {{ font-family: serif; max-width: 48em; margin: 2em auto; }}
.math-error {{ color: #b91c1c; }}</style></head>
<body>{body}</body></html>
"""

app = typer.Typer(help="Watch a LaTeX file and keep a rendered preview up to date", add_completion=False)


def _make_writer(output: Path, html_mode: bool, title: str):
    """Observer writing each newly live artifact to output."""
    written = {"handle": None, "failure": None}

    def on_view(view: ViewState) -> None:
        handle = view.artifact
        if handle is not None and handle is not written["handle"]:
            data = handle.read()
            if html_mode:
                data = HTML_PAGE.format(title=title, body=data.decode("utf-8")).encode("utf-8")
            output.write_bytes(data)
            written["handle"] = handle
            typer.secho(f"✓ Updated {output} (request {handle.sequence_number})", fg=typer.colors.GREEN)

        if isinstance(view.result, Failure) and view.result is not written["failure"]:
            written["failure"] = view.result
            typer.secho(
                f"✗ Request {view.result.sequence_number} failed ({view.result.reason.value})",
                fg=typer.colors.RED,
            )
            for line in view.result.diagnostic_text.strip().splitlines()[:5]:
                typer.echo(f"    {line}")

        if view.persistence_warning:
            typer.secho(f"! {view.persistence_warning}", fg=typer.colors.YELLOW)

    return on_view


async def _watch(session: CompileOrchestrator, tex_file: Path, poll_s: float) -> None:
    last_mtime = None
    while True:
        try:
            mtime = tex_file.stat().st_mtime_ns
        except FileNotFoundError:
            # Editors that save via rename briefly remove the file
            mtime = None
        if mtime is not None and mtime != last_mtime:
            last_mtime = mtime
            session.edit(tex_file.read_text(encoding="utf-8"))
        await asyncio.sleep(poll_s)


async def _run(session: CompileOrchestrator, tex_file: Path, poll_s: float) -> None:
    async with session:
        await _watch(session, tex_file, poll_s)


@app.command()
def main(
    tex_file: Annotated[
        Path,
        typer.Argument(help="LaTeX source file to watch", exists=True, dir_okay=False, readable=True),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Where to write the preview (default: next to the source)"),
    ] = None,
    mode: Annotated[
        str,
        typer.Option("--mode", "-m", help="pdf (TeX engine) or html (inline math preview)"),
    ] = "pdf",
    debounce_ms: Annotated[
        Optional[int],
        typer.Option("--debounce", "-d", help="Debounce window in ms (default: from settings)", min=0),
    ] = None,
    poll_ms: Annotated[
        int,
        typer.Option("--poll", help="File polling interval in ms", min=10),
    ] = 100,
    save: Annotated[
        bool,
        typer.Option("--save", help="Save every compiled revision to the document store"),
    ] = False,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML settings file", exists=True, dir_okay=False),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
):
    """
    Watch TEX_FILE and rewrite the preview after each pause in editing.
    """
    if mode not in ("pdf", "html"):
        typer.secho(f"Unknown mode '{mode}', expected 'pdf' or 'html'", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)

    overrides = {"debounce_ms": debounce_ms} if debounce_ms is not None else {}
    settings = load_settings(config, overrides=overrides)

    setup_session_logger(
        Path(settings.logs_path) / f"session_{now()}" if verbose else None,
        engine=settings.latex_compiler if mode == "pdf" else "none (inline preview)",
        debounce_ms=settings.debounce_ms,
    )

    html_mode = mode == "html"
    if html_mode:
        compiler = MathPreviewCompiler()
        lifecycle = ArtifactLifecycle(validator=None)
    else:
        compiler = LatexCompiler.from_settings(settings, verbose=verbose)
        lifecycle = ArtifactLifecycle(validator=is_readable_pdf)

    output = output or tex_file.with_suffix(".html" if html_mode else ".pdf")
    store = DocumentStore(Path(settings.documents_path)) if save else None

    session = CompileOrchestrator.from_settings(
        compiler, settings, store=store, lifecycle=lifecycle, title=tex_file.stem
    )
    session.subscribe(_make_writer(output, html_mode, tex_file.stem))

    typer.secho(f"\nWatching {tex_file} -> {output}", fg=typer.colors.BLUE, bold=True)
    typer.echo("Press Ctrl+C to stop.\n")

    try:
        asyncio.run(_run(session, tex_file, poll_ms / 1000.0))
    except KeyboardInterrupt:
        typer.echo("\nStopped.")


if __name__ == "__main__":
    app()
