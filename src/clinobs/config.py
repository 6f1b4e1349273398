"""Configuration helpers for CLINOBS.

Settings come from the environment:

- ``CLINOBS_DB_URL``: SQLAlchemy URL of the observation database.
- ``CLINOBS_PRIVILEGES``: privileges granted to the local operator,
  separated by commas (e.g. ``"View Person, Manage Observations"``).
"""

import os
import sys
from importlib.resources import files
from typing import TextIO

from alembic.config import Config

DB_URL_ENV = "CLINOBS_DB_URL"  # pragma: no mutate
PRIVILEGES_ENV = "CLINOBS_PRIVILEGES"  # pragma: no mutate

ALEMBIC_URL_KEY = "sqlalchemy.url"  # pragma: no mutate
ALEMBIC_SCRIPT_LOCATION_KEY = "script_location"  # pragma: no mutate


class DatabaseUrlNotSetError(Exception):
    """Raised when the CLINOBS_DB_URL environment variable is not set."""


def get_db_url() -> str:
    """Get the database URL from the environment.

    Raises:
        DatabaseUrlNotSetError: If `CLINOBS_DB_URL` is not set.
    """
    if not (url := os.environ.get(DB_URL_ENV)):
        raise DatabaseUrlNotSetError
    return url


def get_privileges() -> frozenset[str]:
    """Privileges granted through `CLINOBS_PRIVILEGES` (empty when unset)."""
    raw = os.environ.get(PRIVILEGES_ENV, "")
    return frozenset(p.strip() for p in raw.split(",") if p.strip())


def build_alembic_config(
    db_url: str | None = None, stdout: TextIO = sys.stdout
) -> Config:
    """Build an Alembic `Config` for the packaged migrations.

    Sets only Alembic "main" options:
    - `sqlalchemy.url` → the database URL you pass
    - `script_location` → the migration scripts shipped in `clinobs`

    Args:
        db_url: SQLAlchemy database URL. May be `None` only where Alembic will
            not connect (e.g. listing heads).
        stdout: Stream Alembic writes status lines to; override in tests.
    """
    cfg = Config(stdout=stdout)
    if db_url is not None:
        # ConfigParser interpolation: escape "%" in passwords
        cfg.set_main_option(ALEMBIC_URL_KEY, db_url.replace("%", "%%"))
    cfg.set_main_option(
        ALEMBIC_SCRIPT_LOCATION_KEY,
        str(files("clinobs.adapters.db.alembic")),
    )
    return cfg
