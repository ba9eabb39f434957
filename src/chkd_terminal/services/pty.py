"""PTY handle: a pseudo-terminal wired to a tmux client process."""

import errno
import fcntl
import os
import pty
import select
import signal
import struct
import subprocess
import termios
import threading
from collections.abc import Iterator, Mapping

from chkd_terminal.exceptions import ExternalToolUnavailableError, SpawnError
from chkd_terminal.logging_config import get_logger

logger = get_logger("chkd_terminal.services.pty")

READ_CHUNK = 4096


def _set_winsize(fd: int, cols: int, rows: int) -> None:
    fcntl.ioctl(fd, termios.TIOCSWINSZ, struct.pack("HHHH", rows, cols, 0, 0))


class PtyHandle:
    """A pseudo-terminal pair plus the child process attached to its slave side.

    The child runs in its own process group so ``kill()`` takes down the
    whole tree. Output from stdout and stderr arrives merged on the master fd.

    The master fd is only closed once no reader or writer is using it: reads
    hold ``_read_lock`` and are woken through a pipe, writes hold
    ``_write_lock``, and ``kill()`` takes both before closing.
    """

    def __init__(self, proc: subprocess.Popen, master_fd: int, cols: int, rows: int) -> None:
        self._proc = proc
        self._master_fd = master_fd
        self._cols = cols
        self._rows = rows
        self._killed = False
        self._kill_lock = threading.Lock()
        self._read_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._wake_r, self._wake_w = os.pipe()

    @classmethod
    def spawn(
        cls,
        command: list[str],
        cwd: str,
        env: Mapping[str, str] | None = None,
        cols: int = 120,
        rows: int = 30,
        term: str = "xterm-256color",
    ) -> "PtyHandle":
        """Spawn ``command`` on a fresh PTY.

        Args:
            command: Command and arguments.
            cwd: Working directory of the child.
            env: Base environment for the child (defaults to ``os.environ``).
                ``TERM`` is always overridden with ``term``.
            cols: Initial terminal width.
            rows: Initial terminal height.
            term: Terminal type advertised to the child.

        Raises:
            SpawnError: If the PTY cannot be allocated or the process cannot start.
            ExternalToolUnavailableError: If the executable does not exist.
        """
        child_env = dict(os.environ if env is None else env)
        child_env["TERM"] = term

        try:
            master_fd, slave_fd = pty.openpty()
        except OSError as e:
            raise SpawnError(f"Failed to allocate a pseudo-terminal: {e}") from e

        try:
            _set_winsize(slave_fd, cols, rows)
            proc = subprocess.Popen(
                command,
                stdin=slave_fd,
                stdout=slave_fd,
                stderr=slave_fd,
                cwd=cwd,
                env=child_env,
                start_new_session=True,
            )
        except FileNotFoundError as e:
            os.close(master_fd)
            if e.filename == cwd:
                raise SpawnError(f"Working directory does not exist: {cwd}") from e
            raise ExternalToolUnavailableError([command[0]]) from e
        except OSError as e:
            os.close(master_fd)
            raise SpawnError(f"Failed to spawn {' '.join(command)!r} in {cwd}: {e}") from e
        finally:
            # Parent never uses the slave side
            os.close(slave_fd)

        logger.info(f"PTY started: pid={proc.pid} cmd={' '.join(command)}")
        return cls(proc, master_fd, cols, rows)

    @property
    def pid(self) -> int:
        return self._proc.pid

    @property
    def size(self) -> tuple[int, int]:
        """Current (cols, rows)."""
        return self._cols, self._rows

    @property
    def exit_code(self) -> int | None:
        return self._proc.poll()

    @property
    def alive(self) -> bool:
        return not self._killed and self._proc.poll() is None

    def write(self, data: bytes | str) -> None:
        """Forward raw input to the child. Strings are UTF-8 encoded.

        Raises:
            OSError: If the handle was killed or the PTY is broken.
        """
        if isinstance(data, str):
            data = data.encode("utf-8")
        with self._write_lock:
            if self._killed:
                raise OSError(errno.EBADF, "PTY handle is closed")
            view = memoryview(data)
            while view:
                written = os.write(self._master_fd, view)
                view = view[written:]

    def resize(self, cols: int, rows: int) -> None:
        """Set new terminal dimensions and notify the child. Ignored once dead.

        The child is a session leader without a controlling terminal, so the
        kernel does not deliver SIGWINCH for it; the signal is sent here.
        """
        with self._write_lock:
            if self._killed:
                return
            try:
                _set_winsize(self._master_fd, cols, rows)
            except OSError as e:
                logger.debug(f"Resize of pid={self.pid} ignored: {e}")
                return
            self._cols, self._rows = cols, rows
            try:
                os.killpg(self._proc.pid, signal.SIGWINCH)
            except ProcessLookupError:
                pass

    def read(self, timeout: float | None = None) -> bytes | None:
        """Read the next chunk of output.

        Returns:
            The bytes read, ``None`` if nothing arrived before ``timeout``,
            or ``b""`` once the child has exited or the handle was killed.
        """
        with self._read_lock:
            if self._killed:
                return b""
            try:
                ready, _, _ = select.select([self._master_fd, self._wake_r], [], [], timeout)
            except (OSError, ValueError):
                return b""
            if self._wake_r in ready or self._killed:
                return b""
            if not ready:
                return None
            try:
                return os.read(self._master_fd, READ_CHUNK)
            except OSError as e:
                # Linux reports EIO on the master once the slave side is closed
                if e.errno not in (errno.EIO, errno.EBADF):
                    logger.debug(f"PTY read error on pid={self.pid}: {e}")
                return b""

    def iter_output(self, poll_interval: float = 0.1) -> Iterator[bytes]:
        """Yield output chunks until the child exits or the handle is killed."""
        while True:
            chunk = self.read(timeout=poll_interval)
            if chunk is None:
                continue
            if not chunk:
                return
            yield chunk

    def kill(self) -> None:
        """Kill the child's process group and release the PTY. Idempotent."""
        with self._kill_lock:
            if self._killed:
                return
            self._killed = True
        os.write(self._wake_w, b"\0")

        try:
            os.killpg(self._proc.pid, signal.SIGKILL)
        except ProcessLookupError:
            logger.debug(f"Process group already gone: {self._proc.pid}")
        except OSError as e:
            logger.warning(f"Error killing pid={self._proc.pid}: {e}")

        try:
            self._proc.wait(timeout=2)
        except subprocess.TimeoutExpired:
            logger.warning(f"pid={self._proc.pid} did not exit after SIGKILL")

        with self._read_lock, self._write_lock:
            for fd in (self._master_fd, self._wake_r, self._wake_w):
                try:
                    os.close(fd)
                except OSError:
                    pass
        logger.info(f"PTY killed: pid={self._proc.pid}")
