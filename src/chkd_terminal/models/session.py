"""Session records and snapshots tracked by the session registry."""

import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chkd_terminal.services.pty import PtyHandle


class SessionState(Enum):
    """Lifecycle of an ephemeral terminal handle."""

    ATTACHING = "attaching"
    ACTIVE = "active"
    DETACHING = "detaching"
    CLOSED = "closed"


def _now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class SessionRecord:
    """One ephemeral viewer attached to a durable tmux session.

    The record exclusively owns its PTY handle. ``lock`` serializes writes,
    resizes and state transitions for this record only.
    """

    handle: "PtyHandle"
    durable_name: str
    workspace_path: str
    ephemeral_id: str = ""
    state: SessionState = SessionState.ATTACHING
    last_activity: datetime = field(default_factory=_now)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def touch(self) -> None:
        """Refresh the last-activity timestamp."""
        self.last_activity = _now()

    def snapshot(self) -> "SessionSnapshot":
        return SessionSnapshot(
            ephemeral_id=self.ephemeral_id,
            durable_name=self.durable_name,
            last_activity=self.last_activity,
            state=self.state,
        )


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a registry entry."""

    ephemeral_id: str
    durable_name: str
    last_activity: datetime
    state: SessionState

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.ephemeral_id,
            "tmuxSession": self.durable_name,
            "lastActivity": self.last_activity.isoformat(),
            "state": self.state.value,
        }


@dataclass
class RunningSession:
    """A durable session as reported by the tmux server itself."""

    name: str
    windows: int = 1
    attached: bool = False
    created: datetime | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "name": self.name,
            "created": self.created.isoformat() if self.created else None,
            "attached": self.attached,
            "windows": self.windows,
        }
