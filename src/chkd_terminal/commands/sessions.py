"""Sessions command - list running chkd tmux sessions."""

import json
from typing import Annotated

import typer

from chkd_terminal.console import console, create_sessions_table
from chkd_terminal.models.config import get_config
from chkd_terminal.services.tmux import TmuxService


def sessions(
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print sessions as JSON"),
    ] = False,
) -> None:
    """List all running chkd tmux sessions.

    Shows creation time, attached state and window count as reported by tmux.
    """
    running = TmuxService(get_config()).list_sessions()

    if as_json:
        typer.echo(
            json.dumps({"sessions": [s.to_dict() for s in running], "count": len(running)})
        )
        return

    if not running:
        console.print("[yellow]No running chkd sessions found.[/yellow]")
        return

    table = create_sessions_table("Running chkd Sessions")
    for session in running:
        created = session.created.strftime("%Y-%m-%d %H:%M:%S") if session.created else "-"
        attached = "[green]yes[/green]" if session.attached else "no"
        table.add_row(session.name, created, str(session.windows), attached)
    console.print(table)
