"""Name command - show the durable session name for a workspace."""

from pathlib import Path
from typing import Annotated

import typer

from chkd_terminal.services.naming import resolve_session_name


def name(
    workspace: Annotated[
        Path,
        typer.Argument(help="Workspace directory (defaults to the current directory)"),
    ] = Path("."),
) -> None:
    """Print the tmux session name used for a workspace."""
    typer.echo(resolve_session_name(str(workspace.resolve())))
