"""Durable session names derived from workspace paths."""

import hashlib
import re

NAMESPACE_PREFIX = "chkd_"
MAX_NAME_LENGTH = 50
HASH_LENGTH = 8

_HOME_PREFIX = re.compile(r"^/(?:Users|home)/[^/]+/")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9]")


def resolve_session_name(workspace_path: str) -> str:
    """Derive the tmux session name for a workspace path.

    The home-directory prefix is stripped for readability only, and every
    character outside ``[A-Za-z0-9]`` becomes an underscore. Names longer
    than 50 characters keep their head and end in a short hash of the full
    path so that long paths sharing a prefix do not collide.

    Args:
        workspace_path: Filesystem path of the workspace.

    Returns:
        A name like ``chkd_projects_widget``.
    """
    safe = _UNSAFE_CHARS.sub("_", _HOME_PREFIX.sub("", workspace_path))
    if len(safe) > MAX_NAME_LENGTH:
        digest = hashlib.sha1(workspace_path.encode("utf-8")).hexdigest()[:HASH_LENGTH]
        safe = f"{safe[: MAX_NAME_LENGTH - HASH_LENGTH - 1]}_{digest}"
    return f"{NAMESPACE_PREFIX}{safe}"


def is_namespaced(name: str) -> bool:
    """Return True if a session name belongs to the chkd namespace."""
    return name.startswith(NAMESPACE_PREFIX)
