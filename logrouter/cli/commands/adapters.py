"""CLI: manage the adapters of a running service over the bus."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import typer
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from logrouter.bus import create_bus
from logrouter.exceptions import LogRouterError
from logrouter.subjects import LOGGER_DEL, LOGGER_FIND, LOGGER_SET

app = typer.Typer(help="List, set and delete adapters on a running service.")
console = Console()

BusUrl = typer.Option("nats://127.0.0.1:4222", "--bus-url", help="Bus the service listens on.")
Timeout = typer.Option(2.0, help="Seconds to wait for the service to answer.")


def parse_params(pairs: list[str]) -> dict[str, Any]:
    """Turn ``key=value`` pairs into a config dict.

    Values that parse as JSON (numbers, booleans, quoted strings) keep their
    type; anything else is taken as a plain string.
    """
    params: dict[str, Any] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got '{pair}'")
        try:
            params[key] = json.loads(value)
        except ValueError:
            params[key] = value
    return params


def _request(bus_url: str, subject: str, payload: dict[str, Any], timeout: float) -> Any:
    async def _run() -> Any:
        bus = create_bus(bus_url)
        await bus.connect()
        try:
            reply = await bus.request(subject, json.dumps(payload).encode(), timeout=timeout)
        finally:
            await bus.close()
        return json.loads(reply.data)

    try:
        return asyncio.run(_run())
    except (LogRouterError, ValueError) as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise typer.Exit(1)


def _fail_on_error(reply: Any) -> None:
    if isinstance(reply, dict) and "error" in reply:
        console.print(f"[red]Error: {reply['error']}[/red]")
        raise typer.Exit(1)


@app.command("list")
def list_adapters(
    bus_url: str = BusUrl,
    timeout: float = Timeout,
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON."),
) -> None:
    """List active adapters."""
    reply = _request(bus_url, LOGGER_FIND, {}, timeout)
    _fail_on_error(reply)

    if as_json:
        console.print(Syntax(json.dumps(reply, indent=2), "json"))
        return

    table = Table(title="Active adapters")
    table.add_column("Type", style="cyan")
    table.add_column("Config")
    for adapter in reply:
        config = {k: v for k, v in adapter.items() if k != "type"}
        table.add_row(adapter.get("type", "?"), json.dumps(config))
    console.print(table)


@app.command("set")
def set_adapter(
    kind: str = typer.Argument(help="Adapter type: basic, logstash, sentry or stream."),
    params: list[str] = typer.Argument(None, help="Config as key=value pairs."),
    bus_url: str = BusUrl,
    timeout: float = Timeout,
) -> None:
    """Create or replace the adapter of KIND."""
    payload = {**parse_params(params or []), "type": kind}
    reply = _request(bus_url, LOGGER_SET, payload, timeout)
    _fail_on_error(reply)
    console.print(f"[green]Adapter '{kind}' set.[/green]")
    console.print(Syntax(json.dumps(reply, indent=2), "json"))


@app.command("delete")
def delete_adapter(
    kind: str = typer.Argument(help="Adapter type to remove."),
    bus_url: str = BusUrl,
    timeout: float = Timeout,
) -> None:
    """Stop and remove the adapter of KIND."""
    reply = _request(bus_url, LOGGER_DEL, {"type": kind}, timeout)
    _fail_on_error(reply)
    console.print(f"[green]Adapter '{kind}' deleted.[/green]")
