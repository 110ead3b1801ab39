#!/usr/bin/env python3
"""
Run the LiveTeX HTTP API.

Examples:\n

    serve.py                          # Host/port from settings (default 127.0.0.1:8000)

    serve.py --port 9000 --reload     # Development server
"""

import os
from pathlib import Path
from typing import Optional

import typer
import uvicorn
from typing_extensions import Annotated

from livetex.config import load_settings
from livetex.utils.logger import setup_logger

app = typer.Typer(help="Serve the LiveTeX compile endpoint", add_completion=False)


@app.command()
def main(
    host: Annotated[Optional[str], typer.Option("--host", help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", "-p", help="Bind port")] = None,
    reload: Annotated[bool, typer.Option("--reload", help="Reload on code changes")] = False,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="YAML settings file", exists=True, dir_okay=False),
    ] = None,
):
    """Start uvicorn on the FastAPI app."""
    if config is not None:
        # create_app resolves settings itself inside the uvicorn process
        os.environ["LIVETEX_CONFIG"] = str(config.resolve())
    settings = load_settings(config)
    setup_logger(
        context_name="api",
        log_dir=Path(settings.logs_path),
        extra_provenance={"LaTeX compiler": settings.latex_compiler},
    )

    uvicorn.run(
        "livetex.api.app:create_app",
        factory=True,
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    app()
