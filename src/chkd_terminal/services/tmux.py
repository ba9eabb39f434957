"""Tmux multiplexer client: probing, listing, and killing durable sessions."""

import os
import shutil
import subprocess
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from chkd_terminal.exceptions import ExternalToolUnavailableError, NamespaceError, TmuxError
from chkd_terminal.logging_config import get_logger, log_subprocess_result
from chkd_terminal.models.config import Config, get_config
from chkd_terminal.models.session import RunningSession
from chkd_terminal.services.naming import is_namespaced

logger = get_logger("chkd_terminal.services.tmux")

LIST_FORMAT = "#{session_name}:#{session_created}:#{session_attached}:#{session_windows}"
SCROLLBACK_OVERRIDES = ",xterm*:smcup@:rmcup@"


class MultiplexerClient(Protocol):
    """The two multiplexer capabilities the session manager depends on."""

    def exists(self, name: str) -> bool: ...

    def kill_session(self, name: str) -> bool: ...


def tmux_environment() -> dict[str, str]:
    """Environment for every tmux invocation, probes and PTY clients alike.

    Without ``TMUX`` all commands talk to the default server for this user,
    even when the manager itself runs inside a tmux pane.
    """
    env = dict(os.environ)
    env.pop("TMUX", None)
    return env


def _target(name: str) -> str:
    # "=" makes tmux match the session name exactly instead of by prefix
    return f"={name}"


@dataclass
class TmuxService:
    """Service for talking to the tmux server through its CLI."""

    config: Config = field(default_factory=get_config)

    @property
    def binary(self) -> str:
        return self.config.tmux_bin

    def check_available(self) -> list[str]:
        """Return the list of missing external tools (empty when tmux is usable)."""
        if shutil.which(self.binary) is None:
            logger.warning(f"{self.binary} not found on PATH")
            return [self.binary]
        return []

    def ensure_available(self) -> None:
        """Raise if the tmux binary cannot be executed."""
        missing = self.check_available()
        if missing:
            raise ExternalToolUnavailableError(missing)

    def exists(self, name: str) -> bool:
        """Check whether a tmux session exists.

        A failed query (tmux missing, no server, timeout, permission error)
        is reported as ``False``, the same as a missing session. Callers only
        use this to pick between attaching and creating, and creating is the
        safe fallback in both cases.

        Args:
            name: Exact session name

        Returns:
            True if tmux confirmed the session exists
        """
        cmd = [self.binary, "has-session", "-t", _target(name)]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                check=False,
                text=True,
                timeout=self.config.probe_timeout,
                env=tmux_environment(),
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"exists({name}): probe failed, treating as missing: {e}")
            return False
        exists = result.returncode == 0
        logger.debug(f"exists({name}): {exists}")
        return exists

    def kill_session(self, name: str, wait_for_cleanup: bool = True) -> bool:
        """Kill a tmux session if it exists.

        Args:
            name: Exact session name
            wait_for_cleanup: If True, wait briefly for tmux to drop the session

        Returns:
            True if tmux reported the session was killed

        Raises:
            ExternalToolUnavailableError: If the tmux binary is missing.
            TmuxError: If tmux does not answer within the probe timeout.
        """
        cmd = [self.binary, "kill-session", "-t", _target(name)]
        logger.info(f"Killing tmux session: {name}")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                check=False,
                text=True,
                timeout=self.config.probe_timeout,
                env=tmux_environment(),
            )
        except FileNotFoundError as e:
            raise ExternalToolUnavailableError([self.binary]) from e
        except subprocess.TimeoutExpired as e:
            raise TmuxError(f"tmux kill-session timed out for '{name}'") from e

        killed = result.returncode == 0
        log_subprocess_result(
            logger, cmd, result.returncode, result.stdout, result.stderr, success=killed
        )
        if killed and wait_for_cleanup:
            for _ in range(10):  # Up to 0.5 seconds
                if not self.exists(name):
                    break
                time.sleep(0.05)
        elif not killed:
            logger.debug(f"Session '{name}' kill returned {result.returncode} (may not exist)")
        return killed

    def kill_by_name(self, name: str) -> bool:
        """Kill a durable session by name, refusing names outside the namespace.

        Raises:
            NamespaceError: If ``name`` lacks the chkd prefix.
        """
        if not is_namespaced(name):
            raise NamespaceError(f"Refusing to kill '{name}': only chkd_ sessions can be killed")
        return self.kill_session(name)

    def list_sessions(self) -> list[RunningSession]:
        """List running tmux sessions that belong to the chkd namespace.

        Returns:
            RunningSession entries; empty when tmux is missing or has no server.
        """
        cmd = [self.binary, "list-sessions", "-F", LIST_FORMAT]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                check=True,
                text=True,
                timeout=self.config.probe_timeout,
                env=tmux_environment(),
            )
        except subprocess.CalledProcessError:
            return []  # No server running
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.debug(f"list-sessions failed: {e}")
            return []

        sessions: list[RunningSession] = []
        for line in result.stdout.strip().split("\n"):
            session = parse_session_line(line)
            if session is not None and is_namespaced(session.name):
                sessions.append(session)
        return sessions

    def attach_command(self, name: str) -> list[str]:
        """Build the argv for a client attaching to an existing session."""
        return [self.binary, "attach-session", "-t", _target(name), *self._mouse_args(name)]

    def new_session_command(self, name: str, cwd: str) -> list[str]:
        """Build the argv for a client creating a session rooted at ``cwd``."""
        return [
            self.binary,
            *self._scrollback_args(),
            "new-session",
            "-s",
            name,
            "-c",
            cwd,
            *self._mouse_args(name),
        ]

    def _mouse_args(self, name: str) -> list[str]:
        if not self.config.mouse:
            return []
        return [";", "set-option", "-t", _target(name), "mouse", "on"]

    def _scrollback_args(self) -> list[str]:
        # Overrides are read when a client opens its terminal, so they must be
        # set before new-session; later attaches inherit the server option.
        if not self.config.web_scrollback:
            return []
        return [
            "start-server",
            ";",
            "set-option",
            "-ga",
            "terminal-overrides",
            SCROLLBACK_OVERRIDES,
            ";",
        ]

    def attach_foreground(self, name: str) -> int:
        """Attach the current terminal to a session (raw tmux attach).

        Returns:
            The exit code from tmux attach.

        Raises:
            TmuxError: If the session doesn't exist.
        """
        if not self.exists(name):
            raise TmuxError(f"Session '{name}' does not exist.")
        result = subprocess.run(
            [self.binary, "attach-session", "-t", _target(name)],
            check=False,
            env=tmux_environment(),
        )
        return result.returncode


def parse_session_line(line: str) -> RunningSession | None:
    """Parse one ``list-sessions`` line in LIST_FORMAT.

    Session names cannot contain ':' so splitting from the right is safe.
    """
    if not line.strip():
        return None
    parts = line.strip().rsplit(":", 3)
    if len(parts) < 4:
        return None
    name, created, attached, windows = parts
    return RunningSession(
        name=name,
        windows=int(windows) if windows.isdigit() else 1,
        attached=attached not in ("", "0"),
        created=datetime.fromtimestamp(int(created), tz=UTC) if created.isdigit() else None,
    )
