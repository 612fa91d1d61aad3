"""logrouter CLI: entry point.

Usage:
    logrouter serve
    logrouter status
    logrouter adapters list
    logrouter adapters set <kind> [key=value ...]
    logrouter adapters delete <kind>
"""

from __future__ import annotations

import typer

from logrouter.cli.commands import adapters, service

app = typer.Typer(
    name="logrouter",
    help="logrouter: redacting log router for a publish/subscribe bus.",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)

app.command("serve")(service.serve)
app.command("status")(service.status)
app.add_typer(adapters.app, name="adapters")


if __name__ == "__main__":
    app()
