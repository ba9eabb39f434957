"""Kill command - end a chkd tmux session by name."""

from typing import Annotated

import typer

from chkd_terminal.console import print_error, print_success, print_warning
from chkd_terminal.exceptions import ExternalToolUnavailableError, NamespaceError, TmuxError
from chkd_terminal.models.config import get_config
from chkd_terminal.services.tmux import TmuxService


def kill(
    session: Annotated[str, typer.Argument(help="Name of the chkd_ session to kill")],
) -> None:
    """Kill a running chkd tmux session by name.

    Only sessions whose name starts with chkd_ can be killed.
    """
    try:
        killed = TmuxService(get_config()).kill_by_name(session)
    except (NamespaceError, ExternalToolUnavailableError, TmuxError) as e:
        print_error(str(e))
        raise typer.Exit(1) from e

    if killed:
        print_success(f"Session {session} killed")
    else:
        print_warning(f"Session {session} was not running")
