"""Destroy command - end a workspace's durable session for good."""

from pathlib import Path
from typing import Annotated

import typer

from chkd_terminal.console import print_error, print_info, print_success
from chkd_terminal.exceptions import ExternalToolUnavailableError, TmuxError
from chkd_terminal.models.config import get_config
from chkd_terminal.services.manager import SessionManager


def destroy(
    workspace: Annotated[
        Path,
        typer.Argument(help="Workspace directory (defaults to the current directory)"),
    ] = Path("."),
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Kill the workspace's tmux session, including every shell running in it.

    Unlike closing a terminal, this cannot be undone.
    """
    manager = SessionManager(config=get_config())
    path = str(workspace.resolve())
    session = manager.session_name(path)

    if not yes:
        typer.confirm(f"Kill tmux session {session} and everything running in it?", abort=True)

    try:
        killed = manager.destroy_durable(path)
    except (ExternalToolUnavailableError, TmuxError) as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if killed:
        print_success(f"Session {session} destroyed")
    else:
        print_info(f"Session {session} was not running")
