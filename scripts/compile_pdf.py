#!/usr/bin/env python3
"""
One-shot PDF compilation CLI

Compiles a LaTeX file to PDF through the same CompilerService the live
session uses: isolated scratch directory, no artifacts left next to the source.

Examples:\n

    compile_pdf.py notes.tex                          # Writes notes.pdf

    compile_pdf.py notes.tex -o build/notes.pdf       # Custom output path

    compile_pdf.py notes.tex --passes 2 --verbose     # Resolve cross-references, show engine output
"""

import asyncio
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from typing_extensions import Annotated

from livetex.config import load_settings
from livetex.contexts.rendering.compiler import LatexCompiler, compile_file
from livetex.utils.logger import setup_logger
from livetex.utils.timestamp import now

load_dotenv()
PROJECT_ROOT = Path(os.getenv("PROJECT_ROOT", Path.cwd()))


def display_path(path: Path) -> str:
    """Return path relative to PROJECT_ROOT for cleaner display."""
    try:
        return str(Path(path).resolve().relative_to(PROJECT_ROOT.resolve()))
    except ValueError:
        return str(path)


app = typer.Typer(
    help="Compile a LaTeX file to PDF in an isolated scratch directory",
    add_completion=False,
)


@app.command()
def compile_command(
    tex_file: Annotated[
        Path,
        typer.Argument(help="LaTeX source file", exists=True, dir_okay=False, readable=True),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="PDF destination (default: next to the source)"),
    ] = None,
    num_passes: Annotated[
        Optional[int],
        typer.Option(
            "--passes",
            "-p",
            help="Number of compiler passes (default: from settings)",
            min=1,
            max=5,
        ),
    ] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", "-t", help="Wall-clock limit in seconds (default: from settings)"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML settings file", exists=True, dir_okay=False),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show detailed compilation output"),
    ] = False,
):
    """
    Compile a LaTeX file to PDF.

    Exits with status 1 if compilation fails.
    """
    overrides = {}
    if num_passes is not None:
        overrides["num_passes"] = num_passes
    if timeout is not None:
        overrides["compile_timeout_s"] = timeout
    settings = load_settings(config, overrides=overrides)

    log_file = setup_logger(
        context_name="render",
        log_dir=Path(settings.logs_path) / f"compile_{now()}",
        extra_provenance={"LaTeX compiler": settings.latex_compiler},
        console_level="DEBUG" if verbose else "WARNING",
    )

    typer.secho(f"\nCompiling: {display_path(tex_file)}", fg=typer.colors.BLUE, bold=True)
    typer.echo(f"Engine: {settings.latex_compiler}  Passes: {settings.num_passes}")
    typer.echo("")

    compiler = LatexCompiler.from_settings(settings, verbose=verbose)
    outcome = asyncio.run(compile_file(tex_file, output_pdf=output, compiler=compiler))

    if outcome.ok:
        pdf_path = output or tex_file.with_suffix(".pdf")
        typer.secho("✓ Compilation succeeded", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  Warnings: {len(outcome.warnings)}")
        if verbose and outcome.warnings:
            for warning in outcome.warnings[:10]:
                typer.echo(f"  - {warning}")
            if len(outcome.warnings) > 10:
                typer.echo(f"  ... and {len(outcome.warnings) - 10} more")
        typer.echo(f"  PDF: {display_path(pdf_path)}")
    else:
        typer.secho(
            f"✗ Compilation failed ({outcome.reason.value})", fg=typer.colors.RED, bold=True
        )
        if outcome.errors:
            typer.echo("\nErrors:")
            for error in outcome.errors[:10]:
                typer.secho(f"  - {error}", fg=typer.colors.RED)
            if len(outcome.errors) > 10:
                typer.echo(f"  ... and {len(outcome.errors) - 10} more")
        elif outcome.diagnostic_text:
            typer.echo(f"\n{outcome.diagnostic_text.strip()}")

    if log_file:
        typer.echo(f"  Log: {display_path(log_file)}")
    typer.echo("")

    raise typer.Exit(code=0 if outcome.ok else 1)


if __name__ == "__main__":
    app()
