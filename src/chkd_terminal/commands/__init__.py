"""CLI commands for chkd-terminal."""

from chkd_terminal.commands.attach import attach
from chkd_terminal.commands.destroy import destroy
from chkd_terminal.commands.kill import kill
from chkd_terminal.commands.name import name
from chkd_terminal.commands.sessions import sessions
from chkd_terminal.commands.status import status

__all__ = ["attach", "destroy", "kill", "name", "sessions", "status"]
