"""Engine factory for the CLINOBS database.

Always build engines through `make_engine` so every connection gets the same
backend tuning. On SQLite that means enforcing foreign keys (the `obs` table
references `mime_type`) plus WAL journaling for concurrent readers.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, make_url

if TYPE_CHECKING:
    from sqlite3 import Connection as SQLiteConnection

    from sqlalchemy.engine import Engine

SQLITE_NAMES = {"sqlite", "sqlite+pysqlite"}


def is_sqlite(url: str | URL) -> bool:
    """Return True if `url` points at a SQLite database."""
    return make_url(str(url)).get_backend_name() in SQLITE_NAMES


def make_engine(url: str | URL, *, echo: bool = False) -> Engine:
    """Create an Engine for `url`.

    SQLite connections get these PRAGMAs:
        - ``foreign_keys=ON``
        - ``journal_mode=WAL``
        - ``synchronous=NORMAL``
        - ``temp_store=MEMORY``

    Args:
        url: Database URL.
        echo: If True, log emitted SQL.
    """
    engine = create_engine(url, echo=echo)

    if is_sqlite(url):

        @event.listens_for(engine, "connect")
        def _sqlite_pragmas(dbapi_conn: SQLiteConnection, conn_record):  # type: ignore #pylint: disable=W0613
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA temp_store=MEMORY;")
            cur.close()

    return engine
