"""chkd-terminal - durable tmux-backed terminals for workspaces."""

__version__ = "0.1.0"
