"""Runtime configuration for chkd-terminal."""

from dataclasses import dataclass


@dataclass
class Config:
    """Runtime configuration for the terminal session manager."""

    # Tmux settings
    tmux_bin: str = "tmux"
    probe_timeout: float = 5.0  # seconds allowed for has-session / kill-session
    mouse: bool = False  # enable tmux mouse mode on spawned clients
    web_scrollback: bool = False  # disable alternate screen for xterm* outer terminals

    # PTY settings
    term: str = "xterm-256color"
    default_cols: int = 120
    default_rows: int = 30

    # Lifecycle settings
    detach_grace: float = 0.1  # seconds between detach keystroke and kill
    attach_wait: float = 2.0  # max seconds to wait for a new session to appear
    idle_timeout: float | None = None  # seconds; None disables idle eviction
    sweep_interval: float = 30.0

    # Output settings
    verbose: bool = False


# Global config instance (can be overridden via CLI)
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration, creating a default if none exists."""
    global _config  # noqa: PLW0603
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration."""
    global _config  # noqa: PLW0603
    _config = config
