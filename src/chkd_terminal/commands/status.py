"""Status command - report whether a workspace has a durable session."""

from pathlib import Path
from typing import Annotated

import typer

from chkd_terminal.console import console
from chkd_terminal.models.config import get_config
from chkd_terminal.services.manager import SessionManager


def status(
    workspace: Annotated[
        Path,
        typer.Argument(help="Workspace directory (defaults to the current directory)"),
    ] = Path("."),
) -> None:
    """Show whether the workspace's tmux session is running.

    Exits with code 1 when no session exists.
    """
    manager = SessionManager(config=get_config())
    path = str(workspace.resolve())
    session = manager.session_name(path)

    if manager.has_active_session(path):
        console.print(f"[green]●[/green] [cyan]{session}[/cyan] is running")
        return
    console.print(f"[dim]○[/dim] [cyan]{session}[/cyan] is not running")
    raise typer.Exit(1)
