"""Units of work for CLINOBS.

- `SqlAlchemyUnitOfWork`: one Connection (and so one transaction) per unit.
  Connecting, committing and rolling back raise CLINOBS persistence errors,
  never raw SQLAlchemy ones.
- `InMemoryUnitOfWork`: snapshot/restore over an `InMemoryObsData`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from clinobs.adapters.obs_store import (
    InMemoryMimeTypeCatalog,
    InMemoryObsData,
    InMemoryObsStore,
    SqlAlchemyMimeTypeCatalog,
    SqlAlchemyObsStore,
)
from clinobs.adapters.obs_store.sqlalchemy_store import translate_errors
from clinobs.interfaces.unit_of_work import AbstractUnitOfWork

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """SQLAlchemy-backed Unit of Work."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.connection: Connection

    def __enter__(self):
        with translate_errors():
            self.connection = self.engine.connect()
        self.obs = SqlAlchemyObsStore(self.connection)
        self.mime_types = SqlAlchemyMimeTypeCatalog(self.connection)
        return super().__enter__()

    def __exit__(self, *args):
        try:
            super().__exit__(*args)
        finally:
            self.connection.close()

    def commit(self):
        with translate_errors():
            self.connection.commit()

    def rollback(self):
        with translate_errors():
            self.connection.rollback()


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Unit of Work over shared in-memory data.

    The data is snapshotted on enter and after each commit; rollback restores
    the last snapshot, so uncommitted writes vanish as they would in a
    database transaction.

    Note: not thread-safe; intended for single-threaded use.
    """

    def __init__(self, data: InMemoryObsData | None = None):
        self.data = data if data is not None else InMemoryObsData()
        self.obs = InMemoryObsStore(self.data)
        self.mime_types = InMemoryMimeTypeCatalog(self.data)
        self._checkpoint = self.data.snapshot()
        self.committed = False

    def __enter__(self):
        self._checkpoint = self.data.snapshot()
        self.committed = False
        return super().__enter__()

    def commit(self):
        self._checkpoint = self.data.snapshot()
        self.committed = True

    def rollback(self):
        self.data.restore(self._checkpoint)
