"""Bridge between one frontend connection and the session manager.

Frontends exchange JSON text messages:

* inbound: ``{"type": "input", "data": str}``,
  ``{"type": "resize", "cols": int, "rows": int}``, ``{"type": "ping"}``
* outbound: ``ready``, ``output``, ``exit``, ``error`` and ``pong``

The transport (WebSocket, SSE, ...) is up to the caller.
"""

import codecs
import json
from collections.abc import Iterator

from chkd_terminal.exceptions import ChkdTerminalError, UnknownSessionError
from chkd_terminal.logging_config import get_logger
from chkd_terminal.services.manager import SessionManager

logger = get_logger("chkd_terminal.services.connection")


def _encode(message: dict[str, object]) -> str:
    return json.dumps(message)


class TerminalConnection:
    """One frontend viewer: opens a session, routes its messages, pumps output."""

    def __init__(self, manager: SessionManager) -> None:
        self.manager = manager
        self.ephemeral_id: str | None = None
        self.session_name: str | None = None

    def open(self, workspace_path: str, session_name: str | None = None) -> str:
        """Create the viewer and return the ``ready`` (or ``error``) message."""
        try:
            self.ephemeral_id = self.manager.create(workspace_path, session_name)
        except ChkdTerminalError as e:
            logger.error(f"Error creating terminal for {workspace_path}: {e}")
            return _encode({"type": "error", "message": str(e)})
        self.session_name = self.manager.describe(self.ephemeral_id).durable_name
        return _encode({"type": "ready", "sessionName": self.session_name})

    def handle_message(self, raw: str | bytes) -> str | None:
        """Apply one inbound message.

        Returns:
            A reply message for ``ping``, otherwise None.
        """
        if self.ephemeral_id is None:
            return None
        try:
            message = json.loads(raw)
        except ValueError as e:
            logger.warning(f"Message parse error: {e}")
            return None
        if not isinstance(message, dict):
            logger.warning(f"Ignoring non-object message: {message!r}")
            return None

        kind = message.get("type")
        if kind == "input":
            data = message.get("data")
            if isinstance(data, str):
                self.manager.write(self.ephemeral_id, data)
        elif kind == "resize":
            cols, rows = message.get("cols"), message.get("rows")
            if isinstance(cols, int) and isinstance(rows, int) and cols > 0 and rows > 0:
                self.manager.resize(self.ephemeral_id, cols, rows)
            else:
                logger.debug(f"Ignoring invalid resize: cols={cols!r} rows={rows!r}")
        elif kind == "ping":
            return _encode({"type": "pong"})
        else:
            logger.debug(f"Ignoring unknown message type: {kind!r}")
        return None

    def output_messages(self, poll_interval: float = 0.1) -> Iterator[str]:
        """Yield ``output`` messages until the viewer ends, then one ``exit`` message."""
        if self.ephemeral_id is None:
            return
        ephemeral_id = self.ephemeral_id
        try:
            stream = self.manager.stream(ephemeral_id, poll_interval)
        except UnknownSessionError:
            return

        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        for chunk in stream:
            text = decoder.decode(chunk)
            if text:
                yield _encode({"type": "output", "data": text})
        tail = decoder.decode(b"", final=True)
        if tail:
            yield _encode({"type": "output", "data": tail})

        code = self.manager.exit_code(ephemeral_id)
        logger.info(f"PTY for {ephemeral_id} ended (code={code})")
        yield _encode({"type": "exit", "code": code})

    def close(self) -> None:
        """Detach the viewer; the durable session keeps running."""
        if self.ephemeral_id is None:
            return
        ephemeral_id, self.ephemeral_id = self.ephemeral_id, None
        self.manager.close(ephemeral_id)
