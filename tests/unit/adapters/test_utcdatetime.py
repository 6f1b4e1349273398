"""Unit tests for the UTCDateTime column type.

Exercises the type decorator directly against the SQLite and PostgreSQL
dialects, without a database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import dialect as PostgresDialect
from sqlalchemy.dialects.sqlite import dialect as SQLiteDialect

from clinobs.adapters.db.sa_types import UTCDateTime

NOON_UTC = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
DIALECTS = pytest.mark.parametrize(
    "dialect", [SQLiteDialect(), PostgresDialect()], ids=["sqlite", "postgres"]
)


def test_python_type():
    """The column holds datetimes."""
    assert UTCDateTime().python_type is datetime


@DIALECTS
def test_none_passes_through(dialect):
    """NULL stays NULL in both directions."""
    column_type = UTCDateTime()
    assert column_type.process_bind_param(None, dialect) is None
    assert column_type.process_result_value(None, dialect) is None


def test_sqlite_binds_naive_utc_wall_time():
    """SQLite receives naive UTC, converted from any offset."""
    clinic_time = datetime(2024, 3, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
    bound = UTCDateTime().process_bind_param(clinic_time, SQLiteDialect())
    assert bound == datetime(2024, 3, 1, 12, 0)
    assert bound.tzinfo is None


def test_postgres_binds_aware_utc():
    """PostgreSQL receives an aware UTC datetime."""
    clinic_time = datetime(2024, 3, 1, 7, 0, tzinfo=timezone(timedelta(hours=-5)))
    bound = UTCDateTime().process_bind_param(clinic_time, PostgresDialect())
    assert bound == NOON_UTC
    assert bound.utcoffset() == timedelta(0)


@DIALECTS
def test_naive_bind_is_taken_as_utc(dialect):
    """A naive datetime is interpreted as UTC, not local time."""
    bound = UTCDateTime().process_bind_param(datetime(2024, 3, 1, 12, 0), dialect)
    assert bound.replace(tzinfo=timezone.utc) == NOON_UTC


@DIALECTS
def test_results_are_tagged_utc(dialect):
    """Naive results from SQLite and aware results from PostgreSQL come back UTC."""
    column_type = UTCDateTime()
    naive = column_type.process_result_value(datetime(2024, 3, 1, 12, 0), dialect)
    shifted = column_type.process_result_value(
        datetime(2024, 3, 1, 13, 0, tzinfo=timezone(timedelta(hours=1))), dialect
    )
    assert naive == shifted == NOON_UTC
    assert naive.tzinfo is timezone.utc
    assert shifted.tzinfo is timezone.utc


def test_literal_compile_sqlite_uses_utc_wall_time():
    """Literal SQL for SQLite renders the UTC wall time."""
    stmt = sa.select(
        sa.literal(
            datetime(2024, 3, 1, 5, 0, tzinfo=timezone(timedelta(hours=-7))),
            type_=UTCDateTime(),
        )
    )
    sql = str(stmt.compile(dialect=SQLiteDialect(), compile_kwargs={"literal_binds": True}))
    assert "2024-03-01 12:00:00" in sql


def test_non_datetime_result_is_returned_unchanged():
    """Unexpected driver values are not coerced."""
    assert UTCDateTime().process_result_value("garbage", SQLiteDialect()) == "garbage"
