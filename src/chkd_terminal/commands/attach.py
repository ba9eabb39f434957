"""Attach command - open a workspace's durable session in this terminal."""

from pathlib import Path
from typing import Annotated

import typer

from chkd_terminal.console import console, print_error
from chkd_terminal.exceptions import TmuxError
from chkd_terminal.models.config import get_config
from chkd_terminal.services.naming import resolve_session_name
from chkd_terminal.services.tmux import TmuxService


def attach(
    workspace: Annotated[
        Path,
        typer.Argument(help="Workspace directory (defaults to the current directory)"),
    ] = Path("."),
) -> None:
    """Attach to the workspace's running tmux session.

    Use Ctrl+B D to detach without stopping the session.
    """
    tmux_service = TmuxService(get_config())
    session = resolve_session_name(str(workspace.resolve()))

    try:
        console.print(f"\n[bold green]Attaching to session:[/bold green] {session}")
        console.print("[dim]Use Ctrl+B D to detach without stopping the session[/dim]\n")
        exit_code = tmux_service.attach_foreground(session)
    except TmuxError as e:
        print_error(str(e))
        raise typer.Exit(1) from e
    raise typer.Exit(exit_code)
