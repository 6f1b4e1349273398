"""Unit tests for SqlAlchemyUnitOfWork error translation.

Connecting and committing happen outside any store call; failures there must
still surface as CLINOBS persistence errors.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import partial
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.engine import Connection
from sqlalchemy.exc import OperationalError

from clinobs.adapters.authorization import StaticAuthorizer
from clinobs.adapters.db.engine import make_engine
from clinobs.adapters.evaluators import RuleEvaluator
from clinobs.adapters.unit_of_work import SqlAlchemyUnitOfWork
from clinobs.domain.errors import PersistenceError, StoreUnavailableError
from clinobs.service_layer import ObsService

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

# pylint: disable=redefined-outer-name

UNREACHABLE_URL = "sqlite+pysqlite:////nonexistent_dir/x/y.db"


@pytest.fixture
def unreachable_engine() -> Iterator[Engine]:
    """An engine whose database file cannot be opened."""
    engine = make_engine(UNREACHABLE_URL)
    yield engine
    engine.dispose()


def test_connect_failure_raises_store_unavailable(unreachable_engine):
    """A database that cannot be opened is reported as unavailable."""
    with pytest.raises(StoreUnavailableError):
        with SqlAlchemyUnitOfWork(unreachable_engine):
            pass


def test_service_logs_unreachable_database(unreachable_engine, caplog):
    """The service logs the failed operation and re-raises a PersistenceError."""
    uow_factory = partial(SqlAlchemyUnitOfWork, unreachable_engine)
    service = ObsService(
        uow_factory=uow_factory,
        evaluator=RuleEvaluator(uow_factory),
        authorizer=StaticAuthorizer(set()),
    )

    with caplog.at_level("ERROR"), pytest.raises(PersistenceError):
        service.get_voided_observations()

    messages = [r.getMessage() for r in caplog.records if r.levelname == "ERROR"]
    assert "Storage failure during get_voided_observations" in messages


def test_commit_failure_is_translated(sqlite_engine_memory: Engine, monkeypatch):
    """A failing COMMIT raises StoreUnavailableError, not a SQLAlchemy error."""

    def locked_commit(self):
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(Connection, "commit", locked_commit)

    with SqlAlchemyUnitOfWork(sqlite_engine_memory) as uow:
        with pytest.raises(StoreUnavailableError, match="database is locked"):
            uow.commit()
