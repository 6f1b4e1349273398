"""Fixtures for ObsStore/MimeTypeCatalog contract tests.

Every test runs once per backend. The store is reached through a unit of
work that stays open for the whole test, so writes are visible to later
reads without committing.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest

from clinobs.adapters.unit_of_work import InMemoryUnitOfWork, SqlAlchemyUnitOfWork
from clinobs.interfaces.unit_of_work import AbstractUnitOfWork

# pylint: disable=redefined-outer-name


@pytest.fixture(params=["memory", "sqlite_memory", "sqlite_file", "postgres"])
def uow(request: pytest.FixtureRequest) -> Iterator[AbstractUnitOfWork]:
    """An entered unit of work over each backend."""
    match request.param:
        case "memory":
            unit: AbstractUnitOfWork = InMemoryUnitOfWork()
        case "sqlite_memory":
            unit = SqlAlchemyUnitOfWork(request.getfixturevalue("sqlite_engine_memory"))
        case "sqlite_file":
            unit = SqlAlchemyUnitOfWork(request.getfixturevalue("sqlite_engine_file"))
        case "postgres":
            unit = SqlAlchemyUnitOfWork(request.getfixturevalue("postgres_engine"))
        case _:
            raise ValueError(f"Unknown backend: {request.param}")
    with unit:
        yield unit
