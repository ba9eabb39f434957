"""Configuration file loader for chkd-terminal."""

import json
import os
from dataclasses import fields
from pathlib import Path

from chkd_terminal.logging_config import get_logger
from chkd_terminal.models.config import Config

logger = get_logger("chkd_terminal.services.config_loader")

CONFIG_FILE = Path.home() / ".chkd" / "terminal.json"
ENV_PREFIX = "CHKD_TERMINAL_"


def load_config(config_file: Path | None = None) -> Config:
    """Load configuration from the config file and environment.

    Environment variables override file config, one per field, named
    ``CHKD_TERMINAL_<FIELD>`` (e.g. ``CHKD_TERMINAL_TMUX_BIN``,
    ``CHKD_TERMINAL_IDLE_TIMEOUT``). An empty ``IDLE_TIMEOUT`` or the value
    ``none`` disables idle eviction.

    Args:
        config_file: Override for the default ``~/.chkd/terminal.json``.

    Returns:
        Config with values from file, environment, or defaults.
    """
    values = _load_from_file(config_file or CONFIG_FILE)

    for f in fields(Config):
        raw = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if raw is None:
            continue
        try:
            values[f.name] = _coerce(f.name, raw)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {ENV_PREFIX}{f.name.upper()}: {raw!r}")

    return Config(**values)


def _load_from_file(config_file: Path) -> dict[str, object]:
    """Load known Config fields from a JSON file.

    Returns:
        Mapping of field name to value; empty when the file is missing or broken.
    """
    if not config_file.exists():
        logger.debug(f"Config file not found: {config_file}")
        return {}

    try:
        with config_file.open() as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to load config file: {e}")
        return {}

    if not isinstance(data, dict):
        logger.warning(f"Config file {config_file} does not contain an object")
        return {}

    known = {f.name for f in fields(Config)}
    unknown = set(data) - known
    if unknown:
        logger.debug(f"Ignoring unknown config keys: {sorted(unknown)}")
    return {k: v for k, v in data.items() if k in known}


def _coerce(name: str, raw: str) -> object:
    """Convert an environment string to the type of the named Config field."""
    if name in ("mouse", "web_scrollback", "verbose"):
        return raw.lower() in ("1", "true", "yes")
    if name in ("default_cols", "default_rows"):
        return int(raw)
    if name == "idle_timeout":
        if raw.strip().lower() in ("", "none"):
            return None
        return float(raw)
    if name in ("probe_timeout", "detach_grace", "attach_wait", "sweep_interval"):
        return float(raw)
    return raw
