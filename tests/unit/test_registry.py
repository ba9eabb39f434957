"""Tests for the session registry."""

import pytest

from chkd_terminal.models.session import SessionRecord, SessionState
from chkd_terminal.services import registry as registry_module
from chkd_terminal.services.registry import SessionRegistry


def make_record(name: str = "chkd_a") -> SessionRecord:
    return SessionRecord(handle=object(), durable_name=name, workspace_path="/w")  # type: ignore[arg-type]


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_add_marks_active_and_assigns_id(self) -> None:
        """Test that a new record becomes ACTIVE under a traceable id."""
        registry = SessionRegistry()
        record = make_record()
        assert record.state is SessionState.ATTACHING

        ephemeral_id = registry.add(record)

        assert ephemeral_id.startswith("chkd_a_")
        assert record.ephemeral_id == ephemeral_id
        assert record.state is SessionState.ACTIVE
        assert ephemeral_id in registry
        assert registry.get(ephemeral_id) is record

    def test_same_millisecond_ids_are_unique(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that a frozen clock still yields distinct ids."""
        monkeypatch.setattr(registry_module.time, "time", lambda: 1700000000.5)
        registry = SessionRegistry()

        ids = [registry.add(make_record()) for _ in range(3)]

        assert ids == ["chkd_a_1700000000500", "chkd_a_1700000000500_1", "chkd_a_1700000000500_2"]
        assert len(registry) == 3

    def test_remove(self) -> None:
        registry = SessionRegistry()
        ephemeral_id = registry.add(make_record())

        assert registry.remove(ephemeral_id) is not None
        assert registry.remove(ephemeral_id) is None
        assert len(registry) == 0

    def test_begin_detach_only_once(self) -> None:
        """Test that only the first close request wins the transition."""
        registry = SessionRegistry()
        ephemeral_id = registry.add(make_record())

        record = registry.begin_detach(ephemeral_id)
        assert record is not None
        assert record.state is SessionState.DETACHING
        assert registry.begin_detach(ephemeral_id) is None
        assert registry.begin_detach("unknown") is None

    def test_by_durable_name_and_snapshot(self) -> None:
        registry = SessionRegistry()
        registry.add(make_record("chkd_a"))
        registry.add(make_record("chkd_a"))
        registry.add(make_record("chkd_b"))

        assert len(registry.by_durable_name("chkd_a")) == 2
        snapshots = registry.snapshot()
        assert sorted(s.durable_name for s in snapshots) == ["chkd_a", "chkd_a", "chkd_b"]
        assert all(s.state is SessionState.ACTIVE for s in snapshots)

    def test_drain(self) -> None:
        registry = SessionRegistry()
        registry.add(make_record())
        registry.add(make_record())

        assert len(registry.drain()) == 2
        assert len(registry) == 0
        assert registry.records() == []
