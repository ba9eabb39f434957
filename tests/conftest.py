"""Shared test fixtures for chkd-terminal tests."""

import errno
import os
from collections.abc import Iterator, Mapping
from pathlib import Path

import pytest

from chkd_terminal import logging_config
from chkd_terminal.models.config import Config, set_config
from chkd_terminal.services import config_loader
from chkd_terminal.services.manager import SessionManager
from chkd_terminal.services.registry import SessionRegistry


class FakeMultiplexer:
    """In-memory stand-in for the tmux server."""

    def __init__(self) -> None:
        self.sessions: set[str] = set()
        self.probes: list[str] = []
        self.killed: list[str] = []

    def exists(self, name: str) -> bool:
        self.probes.append(name)
        return name in self.sessions

    def kill_session(self, name: str) -> bool:
        self.killed.append(name)
        if name in self.sessions:
            self.sessions.remove(name)
            return True
        return False


class FakePtyHandle:
    """Records everything the manager does to a PTY."""

    _next_pid = 1000

    def __init__(self, command: list[str], cwd: str, cols: int, rows: int) -> None:
        FakePtyHandle._next_pid += 1
        self.pid = FakePtyHandle._next_pid
        self.command = command
        self.cwd = cwd
        self.size = (cols, rows)
        self.written: list[bytes] = []
        self.output: list[bytes] = []
        self.kill_count = 0
        self.exit_code: int | None = None
        self._killed = False

    @property
    def alive(self) -> bool:
        return not self._killed and self.exit_code is None

    def write(self, data: bytes | str) -> None:
        if not self.alive:
            raise OSError(errno.EIO, "Input/output error")
        self.written.append(data.encode() if isinstance(data, str) else data)

    def resize(self, cols: int, rows: int) -> None:
        if self.alive:
            self.size = (cols, rows)

    def kill(self) -> None:
        self.kill_count += 1
        if not self._killed:
            self._killed = True
            if self.exit_code is None:
                self.exit_code = -9

    def iter_output(self, poll_interval: float = 0.1) -> Iterator[bytes]:
        yield from self.output


class FakeSpawner:
    """PtyHandle.spawn replacement; new-session clients create the session.

    Set ``fail_new_session`` to an exit code to make new-session clients die
    without creating anything, as tmux does when the server cannot start.
    """

    def __init__(self, multiplexer: FakeMultiplexer) -> None:
        self.multiplexer = multiplexer
        self.handles: list[FakePtyHandle] = []
        self.envs: list[Mapping[str, str] | None] = []
        self.fail_new_session: int | None = None

    def __call__(
        self,
        command: list[str],
        cwd: str,
        env: Mapping[str, str] | None = None,
        cols: int = 120,
        rows: int = 30,
        term: str = "xterm-256color",
    ) -> FakePtyHandle:
        handle = FakePtyHandle(command, cwd, cols, rows)
        if "new-session" in command:
            if self.fail_new_session is None:
                self.multiplexer.sessions.add(command[command.index("-s") + 1])
            else:
                handle.exit_code = self.fail_new_session
        self.handles.append(handle)
        self.envs.append(env)
        return handle


@pytest.fixture(autouse=True)
def isolated_home(tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep logs and config files out of the real home directory."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setattr(config_loader, "CONFIG_FILE", home / ".chkd" / "terminal.json")
    monkeypatch.setattr(logging_config, "_log_dir", None)
    monkeypatch.setattr(logging_config, "_run_log_file", None)
    monkeypatch.setattr(logging_config, "_initialized", False)
    for key in list(os.environ):
        if key.startswith(config_loader.ENV_PREFIX):
            monkeypatch.delenv(key)
    set_config(Config())
    return home


@pytest.fixture
def config() -> Config:
    """Config with a zero detach grace period so tests run fast."""
    return Config(detach_grace=0.0, attach_wait=0.2)


@pytest.fixture
def multiplexer() -> FakeMultiplexer:
    return FakeMultiplexer()


@pytest.fixture
def spawner(multiplexer: FakeMultiplexer) -> FakeSpawner:
    return FakeSpawner(multiplexer)


@pytest.fixture
def manager(
    multiplexer: FakeMultiplexer, spawner: FakeSpawner, config: Config
) -> Iterator[SessionManager]:
    with SessionManager(
        registry=SessionRegistry(), client=multiplexer, config=config, spawner=spawner
    ) as manager:
        yield manager


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """A real workspace directory."""
    path = tmp_path / "projects" / "widget"
    path.mkdir(parents=True)
    return path
