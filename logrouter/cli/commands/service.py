"""CLI: run and inspect the service."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.table import Table

console = Console()


def serve(
    host: Annotated[str | None, typer.Option(help="Host to bind to (default from config).")] = None,
    port: Annotated[int | None, typer.Option(help="Port to listen on (default from config).")] = None,
    config: Annotated[
        Path | None, typer.Option("--config", "-c", help="Path to config.yaml.")
    ] = None,
    bus_url: Annotated[str | None, typer.Option("--bus-url", help="Override bus.url.")] = None,
    log_level: str = typer.Option("info", help="Uvicorn log level."),
) -> None:
    """Run the log router (bus consumers + HTTP/websocket surface)."""
    from logrouter.api.server import create_app
    from logrouter.config import Settings

    settings = Settings.load(config_file=config)
    if host is not None:
        settings.server.host = host
    if port is not None:
        settings.server.port = port
    if bus_url is not None:
        settings.bus.url = bus_url

    console.print(
        f"[bold green]Starting logrouter on {settings.server.host}:{settings.server.port}"
        f" (bus {settings.bus.url})[/bold green]"
    )

    uvicorn.run(
        create_app(settings=settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=log_level,
    )


def status(
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(22001),
) -> None:
    """Show the health of a running service."""
    import httpx

    try:
        resp = httpx.get(f"http://{host}:{port}/health", timeout=5.0)
        resp.raise_for_status()
        data = resp.json()
    except httpx.HTTPError as exc:
        console.print(f"[red]Service unreachable: {exc}[/red]")
        raise typer.Exit(1)

    table = Table(title="logrouter status")
    table.add_column("Key", style="cyan")
    table.add_column("Value", style="green")
    for key, value in data.items():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value) or "-"
        table.add_row(str(key), str(value))
    console.print(table)
