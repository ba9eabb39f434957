"""Process-wide table of ephemeral terminal handles."""

import threading
import time

from chkd_terminal.models.session import SessionRecord, SessionSnapshot, SessionState


class SessionRegistry:
    """Maps ephemeral ids to session records.

    Every method holds the registry lock for a single dict operation and
    never across an external process call.
    """

    def __init__(self) -> None:
        self._records: dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def add(self, record: SessionRecord) -> str:
        """Insert a record under a fresh id and mark it active.

        Ids take the form ``<durable_name>_<epoch-ms>``; a second record in
        the same millisecond gets a ``_<n>`` suffix.

        Returns:
            The allocated ephemeral id.
        """
        base = f"{record.durable_name}_{int(time.time() * 1000)}"
        with self._lock:
            ephemeral_id = base
            n = 1
            while ephemeral_id in self._records:
                ephemeral_id = f"{base}_{n}"
                n += 1
            record.ephemeral_id = ephemeral_id
            record.state = SessionState.ACTIVE
            self._records[ephemeral_id] = record
        return ephemeral_id

    def get(self, ephemeral_id: str) -> SessionRecord | None:
        with self._lock:
            return self._records.get(ephemeral_id)

    def remove(self, ephemeral_id: str) -> SessionRecord | None:
        with self._lock:
            return self._records.pop(ephemeral_id, None)

    def begin_detach(self, ephemeral_id: str) -> SessionRecord | None:
        """Move an active record to DETACHING.

        Returns:
            The record if this call performed the transition, None if the id
            is unknown or another caller is already closing it.
        """
        with self._lock:
            record = self._records.get(ephemeral_id)
            if record is None or record.state is not SessionState.ACTIVE:
                return None
            record.state = SessionState.DETACHING
            return record

    def records(self) -> list[SessionRecord]:
        with self._lock:
            return list(self._records.values())

    def by_durable_name(self, durable_name: str) -> list[SessionRecord]:
        with self._lock:
            return [r for r in self._records.values() if r.durable_name == durable_name]

    def snapshot(self) -> list[SessionSnapshot]:
        with self._lock:
            return [r.snapshot() for r in self._records.values()]

    def drain(self) -> list[SessionRecord]:
        """Remove and return every record."""
        with self._lock:
            records = list(self._records.values())
            self._records.clear()
        return records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, ephemeral_id: object) -> bool:
        with self._lock:
            return ephemeral_id in self._records
