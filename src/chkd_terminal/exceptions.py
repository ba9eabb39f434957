"""Custom exceptions for chkd-terminal."""


class ChkdTerminalError(Exception):
    """Base exception for all chkd-terminal errors."""


class ExternalToolUnavailableError(ChkdTerminalError):
    """Raised when the terminal multiplexer binary is missing or not executable."""

    def __init__(self, tools: list[str]) -> None:
        self.tools = tools
        tools_str = ", ".join(tools)
        super().__init__(f"Missing required external tools: {tools_str}")


class SpawnError(ChkdTerminalError):
    """Raised when a pseudo-terminal or its child process cannot be created."""


class UnknownSessionError(ChkdTerminalError):
    """Raised when an ephemeral session id is not in the registry."""

    def __init__(self, ephemeral_id: str) -> None:
        self.ephemeral_id = ephemeral_id
        super().__init__(f"Unknown terminal session: {ephemeral_id}")


class TmuxError(ChkdTerminalError):
    """Raised when a tmux operation fails."""


class NamespaceError(ChkdTerminalError):
    """Raised when a session name lies outside the chkd namespace."""
