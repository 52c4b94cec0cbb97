"""Contract tests run against both session repository implementations."""

from datetime import datetime, timedelta, timezone

import pytest

from remittance_broker.db import Database, InMemorySessionRepository, SqlSessionRepository
from remittance_broker.models import VerificationSession

T0 = datetime(2025, 1, 15, 8, 0, tzinfo=timezone.utc)


@pytest.fixture(params=["sql", "memory"])
def repository(request, tmp_path):
    if request.param == "memory":
        yield InMemorySessionRepository()
        return
    database = Database(f"sqlite:///{tmp_path / 'sessions.db'}")
    database.create_all()
    yield SqlSessionRepository(database)
    database.dispose()


def session_for(user_id, verified_at=T0, ttl=timedelta(minutes=5)):
    return VerificationSession(
        user_id=user_id,
        subject_reference="1",
        masked_id="784-****-****-4321",
        verified_at=verified_at,
        expires_at=verified_at + ttl,
    )


class TestSessionRepository:
    def test_replace_active_assigns_id(self, repository):
        stored = repository.replace_active(session_for("agent1"))
        assert stored.id is not None
        assert stored.is_active

    def test_replace_active_deactivates_previous(self, repository):
        first = repository.replace_active(session_for("agent1"))
        second = repository.replace_active(session_for("agent1", T0 + timedelta(minutes=1)))

        active = repository.list_active(T0 + timedelta(minutes=1), "agent1")
        assert [s.id for s in active] == [second.id]
        assert first.id != second.id

    def test_other_users_are_untouched(self, repository):
        repository.replace_active(session_for("agent1"))
        repository.replace_active(session_for("agent2"))
        assert len(repository.list_active(T0)) == 2

    def test_find_latest(self, repository):
        repository.replace_active(session_for("agent1"))
        latest = repository.replace_active(session_for("agent1", T0 + timedelta(minutes=2)))
        assert repository.find_latest("agent1").id == latest.id
        assert repository.find_latest("nobody") is None

    def test_timestamps_round_trip_as_utc(self, repository):
        stored = repository.replace_active(session_for("agent1"))
        found = repository.find_latest("agent1")
        assert found.expires_at == stored.expires_at
        assert found.expires_at.tzinfo is not None

    def test_deactivate(self, repository):
        stored = repository.replace_active(session_for("agent1"))
        assert repository.deactivate(stored.id) is True
        assert repository.deactivate(stored.id) is False
        assert repository.find_latest("agent1").is_active is False

    def test_deactivate_user(self, repository):
        repository.replace_active(session_for("agent1"))
        assert repository.deactivate_user("agent1") == 1
        assert repository.deactivate_user("agent1") == 0

    def test_deactivate_expired(self, repository):
        repository.replace_active(session_for("agent1"))
        repository.replace_active(session_for("agent2", ttl=timedelta(minutes=10)))

        assert repository.deactivate_expired(T0 + timedelta(minutes=4)) == 0
        assert repository.deactivate_expired(T0 + timedelta(minutes=5)) == 1
        assert [s.user_id for s in repository.list_active(T0 + timedelta(minutes=5))] == ["agent2"]

    def test_list_active_excludes_expired_but_unswept(self, repository):
        repository.replace_active(session_for("agent1"))
        assert repository.list_active(T0 + timedelta(minutes=6)) == []
