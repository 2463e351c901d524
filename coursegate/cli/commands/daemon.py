"""CLI — Daemon commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

console = Console()


def serve(
    host: Annotated[str | None, typer.Option(help="Host to bind to.")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on.")] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    log_level: Annotated[str | None, typer.Option(help="Log level.")] = None,
) -> None:
    """Start the CourseGate daemon."""
    from coursegate.api.server import create_app
    from coursegate.config import Settings

    settings = Settings.load(config_file=config)
    if host is not None:
        settings.server.host = host
    if port is not None:
        settings.server.port = port
    if log_level is not None:
        settings.server.log_level = log_level  # type: ignore[assignment]

    console.print(
        f"[bold green]Starting CourseGate on {settings.server.host}:{settings.server.port}[/bold green]"
    )

    uvicorn.run(
        create_app(settings=settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.server.log_level,
    )


def status(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8040),
) -> None:
    """Check daemon status."""
    import httpx

    try:
        resp = httpx.get(f"http://{host}:{port}/health", timeout=5.0)
        data = resp.json()
    except (httpx.HTTPError, ValueError) as exc:
        console.print(f"[red]Daemon unreachable: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="CourseGate Status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for k, v in data.items():
        table.add_row(str(k), str(v))
    console.print(table)
