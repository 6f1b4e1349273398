"""Unit tests for InMemoryUnitOfWork transaction emulation."""

from clinobs.adapters.obs_store import InMemoryObsData
from clinobs.adapters.unit_of_work import InMemoryUnitOfWork


def test_commit_keeps_writes(make_obs):
    """Committed writes are visible to the next unit of work."""
    data = InMemoryObsData()
    with InMemoryUnitOfWork(data) as uow:
        persisted = uow.obs.add(make_obs())
        uow.commit()
        assert uow.committed is True

    with InMemoryUnitOfWork(data) as uow:
        assert uow.obs.get(persisted.obs_id) == persisted


def test_exit_without_commit_discards_writes(make_obs):
    """Uncommitted writes vanish when the unit closes, ids included."""
    data = InMemoryObsData()
    with InMemoryUnitOfWork(data) as uow:
        uow.obs.add(make_obs())
        uow.obs.allocate_group_id()
        assert uow.committed is False

    assert not data.observations
    assert data.last_obs_id == 0
    assert data.last_group_id == 0


def test_rollback_returns_to_last_commit(make_obs):
    """rollback restores the state of the last commit, not of entry."""
    data = InMemoryObsData()
    with InMemoryUnitOfWork(data) as uow:
        kept = uow.obs.add(make_obs())
        uow.commit()
        uow.obs.add(make_obs())
        uow.rollback()
        assert [o.obs_id for o in uow.obs.list_by_person(kept.person)] == [kept.obs_id]


def test_mime_types_are_seeded():
    """A fresh unit exposes the default mime types."""
    with InMemoryUnitOfWork() as uow:
        assert uow.mime_types.get(1).mime_type == "text/plain"
