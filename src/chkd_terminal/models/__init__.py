"""Data models for chkd-terminal."""

from chkd_terminal.models.config import Config
from chkd_terminal.models.session import (
    RunningSession,
    SessionRecord,
    SessionSnapshot,
    SessionState,
)

__all__ = ["Config", "RunningSession", "SessionRecord", "SessionSnapshot", "SessionState"]
