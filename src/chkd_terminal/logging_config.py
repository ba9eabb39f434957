"""Logging configuration for chkd-terminal."""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chkd_terminal.models.config import Config

# Module-level state for run tracking
_run_id: str | None = None
_log_dir: Path | None = None
_run_log_file: Path | None = None
_initialized: bool = False

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_log_dir() -> Path:
    """Get the logging directory, creating it if necessary."""
    global _log_dir  # noqa: PLW0603
    if _log_dir is None:
        _log_dir = Path.home() / ".chkd" / "logs"
        _log_dir.mkdir(parents=True, exist_ok=True)
    return _log_dir


def get_run_id() -> str:
    """Get the current run ID, creating one if necessary."""
    global _run_id  # noqa: PLW0603
    if _run_id is None:
        timestamp = datetime.now(tz=UTC).strftime("%Y%m%d-%H%M%S")
        _run_id = f"{timestamp}-{uuid.uuid4().hex[:8]}"
    return _run_id


def get_run_log_file() -> Path:
    """Get the run-specific log file path."""
    global _run_log_file  # noqa: PLW0603
    if _run_log_file is None:
        _run_log_file = get_log_dir() / f"terminal-{get_run_id()}.log"
    return _run_log_file


def setup_logging(config: Config | None = None) -> None:
    """Initialize the logging system.

    Args:
        config: Optional config to determine verbosity. If verbose=True,
                logs DEBUG to the run file; otherwise INFO.
    """
    global _initialized  # noqa: PLW0603
    if _initialized:
        return

    log_level = logging.DEBUG if (config and config.verbose) else logging.INFO

    root_logger = logging.getLogger("chkd_terminal")
    root_logger.setLevel(logging.DEBUG)  # Handlers filter
    root_logger.handlers.clear()

    run_file = get_run_log_file()
    run_handler = logging.FileHandler(run_file, encoding="utf-8")
    run_handler.setLevel(log_level)
    run_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    root_logger.addHandler(run_handler)

    combined_log = get_log_dir() / "terminal.log"
    rotating_handler = RotatingFileHandler(
        combined_log,
        maxBytes=10 * 1024 * 1024,  # 10 MB per file
        backupCount=5,
        encoding="utf-8",
    )
    rotating_handler.setLevel(logging.INFO)
    rotating_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))
    root_logger.addHandler(rotating_handler)

    _initialized = True

    root_logger.info(f"chkd-terminal run started: {get_run_id()}")
    root_logger.info(f"Run log file: {run_file}")
    root_logger.info(f"Python: {sys.version.split()[0]}")


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a specific module.

    Args:
        name: Module name (e.g., "chkd_terminal.services.tmux")

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


def log_subprocess_result(
    logger: logging.Logger,
    cmd: list[str] | str,
    exit_code: int,
    stdout: str | None = None,
    stderr: str | None = None,
    success: bool = True,
) -> None:
    """Log the result of a subprocess call.

    Args:
        logger: The logger to use
        cmd: Command that was executed
        exit_code: Process exit code
        stdout: Captured stdout (if any)
        stderr: Captured stderr (if any)
        success: Whether the operation succeeded
    """
    cmd_str = cmd if isinstance(cmd, str) else " ".join(cmd)
    level = logging.DEBUG if success else logging.WARNING

    logger.log(level, f"Subprocess: {cmd_str}")
    logger.log(level, f"  Exit code: {exit_code}")

    if stdout and stdout.strip():
        for line in stdout.strip().split("\n")[:20]:
            logger.log(level, f"  stdout: {line}")
    if stderr and stderr.strip():
        for line in stderr.strip().split("\n")[:20]:
            logger.log(level, f"  stderr: {line}")


def cleanup_old_logs(max_age_days: int = 30) -> None:
    """Remove run log files older than max_age_days.

    Args:
        max_age_days: Delete logs older than this many days
    """
    log_dir = get_log_dir()
    cutoff = datetime.now(tz=UTC).timestamp() - (max_age_days * 24 * 60 * 60)
    logger = get_logger("chkd_terminal.logging")

    for log_file in log_dir.glob("terminal-*.log"):
        if _run_log_file and log_file == _run_log_file:
            continue
        try:
            if log_file.stat().st_mtime < cutoff:
                log_file.unlink()
                logger.debug(f"Cleaned up old log file: {log_file}")
        except OSError as e:
            logger.warning(f"Failed to clean up log file {log_file}: {e}")
