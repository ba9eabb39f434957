"""Service layer: naming, tmux, PTY handles and the session manager."""

from chkd_terminal.services.manager import SessionManager
from chkd_terminal.services.naming import is_namespaced, resolve_session_name
from chkd_terminal.services.pty import PtyHandle
from chkd_terminal.services.registry import SessionRegistry
from chkd_terminal.services.tmux import MultiplexerClient, TmuxService

__all__ = [
    "MultiplexerClient",
    "PtyHandle",
    "SessionManager",
    "SessionRegistry",
    "TmuxService",
    "is_namespaced",
    "resolve_session_name",
]
