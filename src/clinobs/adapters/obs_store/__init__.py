"""Observation store adapters.

- `memory`: ephemeral dict-backed store for tests and prototyping.
- `sqlalchemy_store`: durable store over the tables in `schema`.
"""

from .memory import InMemoryMimeTypeCatalog, InMemoryObsData, InMemoryObsStore
from .sqlalchemy_store import SqlAlchemyMimeTypeCatalog, SqlAlchemyObsStore

__all__ = [
    "InMemoryMimeTypeCatalog",
    "InMemoryObsData",
    "InMemoryObsStore",
    "SqlAlchemyMimeTypeCatalog",
    "SqlAlchemyObsStore",
]
