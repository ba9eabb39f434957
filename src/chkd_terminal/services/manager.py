"""Session manager: maps workspaces onto durable tmux sessions via PTY viewers."""

from __future__ import annotations

import atexit
import os
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime

from chkd_terminal.exceptions import (
    ChkdTerminalError,
    NamespaceError,
    SpawnError,
    UnknownSessionError,
)
from chkd_terminal.logging_config import get_logger
from chkd_terminal.models.config import Config, get_config
from chkd_terminal.models.session import SessionRecord, SessionSnapshot, SessionState
from chkd_terminal.services.naming import is_namespaced, resolve_session_name
from chkd_terminal.services.pty import PtyHandle
from chkd_terminal.services.registry import SessionRegistry
from chkd_terminal.services.tmux import MultiplexerClient, TmuxService, tmux_environment

logger = get_logger("chkd_terminal.services.manager")

# Ctrl+B, d: the default tmux detach binding
DETACH_SEQUENCE = b"\x02d"

Spawner = Callable[..., PtyHandle]


class _NameLock:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.users = 0


class SessionManager:
    """Creates, feeds, detaches and destroys terminal sessions for workspaces.

    Each ``create`` spawns a new tmux client on its own PTY; many clients may
    share one durable session. ``close`` only detaches a client, while
    ``destroy_durable`` ends the tmux session itself.

    Args:
        registry: Table of ephemeral handles. A private one is created if omitted.
        client: Multiplexer probe/kill implementation (defaults to tmux).
        config: Runtime configuration (defaults to the global config).
        spawner: Factory with the signature of ``PtyHandle.spawn``.
    """

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        client: MultiplexerClient | None = None,
        config: Config | None = None,
        spawner: Spawner | None = None,
    ) -> None:
        self.config = config or get_config()
        self.registry = registry if registry is not None else SessionRegistry()
        self.tmux = TmuxService(self.config)
        self.client: MultiplexerClient = client or self.tmux
        self._spawner: Spawner = spawner or PtyHandle.spawn
        self._name_locks: dict[str, _NameLock] = {}
        self._name_locks_guard = threading.Lock()
        self._shutdown = threading.Event()
        self._sweeper: threading.Thread | None = None

    def session_name(self, workspace_path: str) -> str:
        """Return the durable session name for a workspace."""
        return resolve_session_name(workspace_path)

    def create(self, workspace_path: str, session_name: str | None = None) -> str:
        """Open a new viewer on the workspace's durable session.

        Attaches if tmux already has the session, otherwise creates it rooted
        at ``workspace_path``. Concurrent calls for the same session are
        serialized so only the first one creates it.

        Args:
            workspace_path: Directory the session belongs to.
            session_name: Explicit namespaced session to target instead of
                the one derived from ``workspace_path``.

        Returns:
            The ephemeral id of the new viewer.

        Raises:
            NamespaceError: If ``session_name`` lacks the chkd prefix.
            SpawnError: If the workspace is not a directory, the PTY fails, or
                tmux exits before the new session exists.
            ExternalToolUnavailableError: If the tmux binary is missing.
        """
        if self._shutdown.is_set():
            raise ChkdTerminalError("Session manager is shut down")
        if session_name is not None and not is_namespaced(session_name):
            raise NamespaceError(f"Session '{session_name}' is not a chkd session")
        if not os.path.isdir(workspace_path):
            raise SpawnError(f"Workspace path is not a directory: {workspace_path}")

        name = session_name or resolve_session_name(workspace_path)

        with self._serialized(name):
            exists = self.client.exists(name)
            if exists:
                command = self.tmux.attach_command(name)
            else:
                command = self.tmux.new_session_command(name, workspace_path)
            logger.info(
                f"{'Attaching to' if exists else 'Creating'} tmux session {name} "
                f"for {workspace_path}"
            )
            handle = self._spawner(
                command,
                workspace_path,
                env=tmux_environment(),
                cols=self.config.default_cols,
                rows=self.config.default_rows,
                term=self.config.term,
            )
            if not exists:
                self._wait_for_session(name, handle)

        record = SessionRecord(handle, name, workspace_path)
        ephemeral_id = self.registry.add(record)
        if self._shutdown.is_set():
            # shutdown() drained the registry while this spawn was in flight
            self._discard(record)
            raise ChkdTerminalError("Session manager is shut down")
        logger.info(f"Registered terminal {ephemeral_id} (pid={handle.pid})")
        return ephemeral_id

    def write(self, ephemeral_id: str, data: bytes | str) -> None:
        """Send input to a viewer. Unknown or closing ids are ignored."""
        record = self.registry.get(ephemeral_id)
        if record is None:
            return
        with record.lock:
            if record.state is not SessionState.ACTIVE:
                return
            try:
                record.handle.write(data)
            except OSError as e:
                logger.info(f"Write to {ephemeral_id} failed, discarding: {e}")
            else:
                record.touch()
                return
        self._discard(record)

    def resize(self, ephemeral_id: str, cols: int, rows: int) -> None:
        """Resize a viewer's terminal. Does not count as activity."""
        record = self.registry.get(ephemeral_id)
        if record is None:
            return
        with record.lock:
            if record.state is SessionState.ACTIVE:
                record.handle.resize(cols, rows)

    def close(self, ephemeral_id: str) -> None:
        """Detach a viewer, leaving the durable session running.

        Sends the tmux detach keys, waits ``detach_grace`` seconds for the
        client to process them, then kills the PTY and drops the record.
        Returns early from the grace period only on shutdown.
        """
        record = self.registry.begin_detach(ephemeral_id)
        if record is None:
            return
        logger.info(f"Detaching terminal {ephemeral_id} from {record.durable_name}")
        with record.lock:
            try:
                record.handle.write(DETACH_SEQUENCE)
            except OSError as e:
                logger.debug(f"Detach keys not delivered to {ephemeral_id}: {e}")
        self._shutdown.wait(self.config.detach_grace)
        self._discard(record)

    def destroy_durable(self, workspace_path: str) -> bool:
        """Kill the workspace's tmux session and every viewer attached to it.

        Returns:
            True if tmux reported the session was killed.
        """
        name = resolve_session_name(workspace_path)
        killed = self.client.kill_session(name)
        for record in self.registry.by_durable_name(name):
            self._discard(record)
        logger.info(f"Destroyed durable session {name} (killed={killed})")
        return killed

    def list(self) -> list[SessionSnapshot]:
        return self.registry.snapshot()

    def has_active_session(self, workspace_path: str) -> bool:
        """Whether tmux has the workspace's durable session, regardless of viewers."""
        return self.client.exists(resolve_session_name(workspace_path))

    def describe(self, ephemeral_id: str) -> SessionSnapshot:
        """Raises UnknownSessionError for ids not in the registry."""
        return self._require(ephemeral_id).snapshot()

    def stream(self, ephemeral_id: str, poll_interval: float = 0.1) -> Iterator[bytes]:
        """Return the raw output stream of a viewer.

        Raises:
            UnknownSessionError: If the id is not in the registry.
        """
        return self._require(ephemeral_id).handle.iter_output(poll_interval)

    def exit_code(self, ephemeral_id: str) -> int | None:
        """Exit code of a viewer's tmux client; None while running or once removed."""
        record = self.registry.get(ephemeral_id)
        return None if record is None else record.handle.exit_code

    def sweep(self) -> int:
        """Reap exited viewers and close idle ones.

        Returns:
            Number of records removed.
        """
        idle_timeout = self.config.idle_timeout
        now = datetime.now(tz=UTC)
        removed = 0
        for record in self.registry.records():
            if record.state is not SessionState.ACTIVE:
                continue
            if not record.handle.alive:
                logger.info(
                    f"Terminal {record.ephemeral_id} exited (code={record.handle.exit_code})"
                )
                self._discard(record)
                removed += 1
            elif (
                idle_timeout is not None
                and (now - record.last_activity).total_seconds() > idle_timeout
            ):
                logger.info(f"Closing idle terminal {record.ephemeral_id}")
                self.close(record.ephemeral_id)
                removed += 1
        return removed

    def start_sweeper(self) -> None:
        """Run ``sweep`` every ``sweep_interval`` seconds on a daemon thread."""
        if self._sweeper is not None and self._sweeper.is_alive():
            return
        self._sweeper = threading.Thread(
            target=self._sweep_loop, name="chkd-terminal-sweeper", daemon=True
        )
        self._sweeper.start()

    def _sweep_loop(self) -> None:
        while not self._shutdown.wait(self.config.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Idle sweep failed")

    def shutdown(self) -> None:
        """Force-kill every viewer, including those mid-detach. Idempotent."""
        self._shutdown.set()
        records = self.registry.drain()
        for record in records:
            self._discard(record)
        if records:
            logger.info(f"Shut down {len(records)} terminal(s)")

    def install_shutdown_hook(self) -> None:
        atexit.register(self.shutdown)

    def __enter__(self) -> "SessionManager":
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()

    def _require(self, ephemeral_id: str) -> SessionRecord:
        record = self.registry.get(ephemeral_id)
        if record is None:
            raise UnknownSessionError(ephemeral_id)
        return record

    def _discard(self, record: SessionRecord) -> None:
        """Close a record: drop it from the registry, then kill its PTY."""
        with record.lock:
            if record.state is SessionState.CLOSED:
                return
            record.state = SessionState.CLOSED
            self.registry.remove(record.ephemeral_id)
            record.handle.kill()

    @contextmanager
    def _serialized(self, name: str) -> Iterator[None]:
        """Hold the per-name lock; the entry is dropped once nobody waits on it."""
        with self._name_locks_guard:
            entry = self._name_locks.get(name)
            if entry is None:
                entry = self._name_locks[name] = _NameLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._name_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._name_locks[name]

    def _wait_for_session(self, name: str, handle: PtyHandle) -> None:
        """Block until tmux reports a freshly created session, bounded by attach_wait.

        Raises:
            SpawnError: If the tmux client exits without the session appearing.
        """
        deadline = time.monotonic() + self.config.attach_wait
        while time.monotonic() < deadline:
            if self.client.exists(name):
                return
            if not handle.alive:
                if self.client.exists(name):
                    return
                code = handle.exit_code
                handle.kill()
                logger.error(f"tmux client for {name} exited (code={code}) before the session appeared")
                raise SpawnError(
                    f"tmux failed to create session {name} (exit code {code})"
                )
            time.sleep(0.05)
        logger.warning(f"Session {name} not visible after {self.config.attach_wait}s")
