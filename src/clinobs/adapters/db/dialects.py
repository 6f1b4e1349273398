"""Supported database dialects.

The observation store runs on SQLite (development, tests, single-user
installs) and PostgreSQL (shared deployments). Dialect checks go through
`DialectName` rather than comparing raw strings.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Engine


class UnsupportedDialect(Exception):
    """Raised for a database backend CLINOBS does not support."""


class DialectName(str, Enum):
    """SQLAlchemy dialect names supported by CLINOBS.

    Attributes:
        POSTGRES: PostgreSQL (``"postgresql"``).
        SQLITE:   SQLite (``"sqlite"``).
    """

    POSTGRES = "postgresql"
    SQLITE = "sqlite"

    @classmethod
    def from_string(cls, dialect_str: str) -> DialectName:
        """Resolve a dialect or driver-qualified name (``postgresql+psycopg``).

        Raises:
            UnsupportedDialect: If the backend is not supported.
        """
        base = (dialect_str or "").strip().lower().split("+", 1)[0]
        if base in {"postgres", "postgresql", "pg"}:
            return cls.POSTGRES
        if base == "sqlite":
            return cls.SQLITE
        raise UnsupportedDialect(f"Unsupported dialect: {dialect_str!r}")

    @classmethod
    def from_sqlalchemy(cls, obj: Engine | Connection) -> DialectName:
        """Resolve the dialect of an Engine or Connection.

        Raises:
            UnsupportedDialect: If `obj` has no dialect or it is unsupported.
        """
        try:
            name = obj.dialect.name
        except AttributeError as e:
            raise UnsupportedDialect(
                f"Object {type(obj).__name__} does not expose .dialect.name"
            ) from e
        return cls.from_string(name)
