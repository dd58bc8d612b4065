"""Run the HTTP API."""

from __future__ import annotations

import click
import uvicorn

from tablehand.config import settings


@click.command()
@click.option("--host", default=None, help="Bind address (defaults to API_HOST)")
@click.option("--port", default=None, type=int, help="Bind port (defaults to API_PORT)")
@click.option("--reload", is_flag=True, help="Reload on code changes (development only)")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Serve the chat API with uvicorn."""
    uvicorn.run(
        "tablehand.api.server:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


def register(cli: click.Group) -> None:
    cli.add_command(serve)
