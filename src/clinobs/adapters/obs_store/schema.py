"""Observation store schema.

Tables:

- ``obs``: one row per observation. The typed value is flattened into
  ``value_*`` columns discriminated by ``value_type``. Referenced entities
  (subject, concept, encounter, location) are owned elsewhere and stored as
  snapshots, so there are no foreign keys to them.
- ``mime_type``: tags for complex (binary) values; seeded by the migration.
- ``obs_group``: every observation group id in use, allocated or reserved.

``person_identifier_folded`` is written by the store, not the database:
Python case folding is Unicode-aware where SQLite `lower()` is ASCII-only.

Constraints (enforced here):

| Constraint                           | Purpose                           |
|--------------------------------------|-----------------------------------|
| CHECK(value_type IN (...))           | known value discriminators        |
| CHECK(person_kind IN (...))          | known subject kinds               |
| FK(value_mime_type_id -> mime_type)  | complex values carry a known type |
| UNIQUE(mime_type.mime_type)          | one row per media type            |
"""

from __future__ import annotations

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Float,
    ForeignKey,
    Identity,
    Index,
    Integer,
    LargeBinary,
    String,
    Table,
    Text,
    text,
)

from clinobs.adapters.db.metadata import metadata
from clinobs.adapters.db.sa_types import BIGINT_PK, UTCDateTime

__all__ = ["mime_type", "obs", "obs_group"]

mime_type = Table(
    "mime_type",
    metadata,
    Column("mime_type_id", Integer, primary_key=True, autoincrement=False),
    Column(
        "mime_type",
        String(75),
        nullable=False,
        unique=True,
        comment="Media type, e.g. image/png.",
    ),
    Column("description", Text, nullable=True),
    comment="Tags for the payload of complex observation values.",
)

obs_group = Table(
    "obs_group",
    metadata,
    Column("obs_group_id", BIGINT_PK, Identity(start=1), primary_key=True),
    Column(
        "date_created",
        UTCDateTime(),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    ),
    comment="One row per allocated observation group id.",
)

obs = Table(
    "obs",
    metadata,
    Column("obs_id", BIGINT_PK, Identity(start=1), primary_key=True),
    # subject snapshot
    Column("person_id", Integer, nullable=False),
    Column("person_kind", String(16), nullable=False),
    Column(
        "person_identifier",
        String(64),
        nullable=True,
        comment="Human-facing identifier used by free-text search.",
    ),
    Column(
        "person_identifier_folded",
        String(192),
        nullable=True,
        comment="person_identifier after str.casefold(); searched instead of it.",
    ),
    # question
    Column("concept_id", Integer, nullable=False),
    Column("concept_name", String(255), nullable=False, server_default=""),
    # context
    Column("encounter_id", Integer, nullable=True),
    Column("location_id", Integer, nullable=True),
    Column("obs_datetime", UTCDateTime(), nullable=False),
    Column(
        "obs_group_id",
        BIGINT_PK,
        nullable=True,
        comment="Shared by every member of an observation group.",
    ),
    # typed value
    Column("value_type", String(16), nullable=False),
    Column("value_coded_id", Integer, nullable=True),
    Column("value_coded_name", String(255), nullable=True),
    Column("value_numeric", Float, nullable=True),
    Column(
        "value_text",
        Text,
        nullable=True,
        comment="Free text, or the title of a complex value.",
    ),
    Column("value_complex", LargeBinary, nullable=True),
    Column(
        "value_mime_type_id",
        Integer,
        ForeignKey("mime_type.mime_type_id"),
        nullable=True,
    ),
    Column("comment", Text, nullable=True),
    # lifecycle
    Column("date_created", UTCDateTime(), nullable=False),
    Column("voided", Boolean, nullable=False, server_default=text("false")),
    Column("void_reason", String(255), nullable=True),
    Column("voided_date", UTCDateTime(), nullable=True),
    CheckConstraint(
        "value_type IN ('coded', 'numeric', 'text', 'complex')",
        name="known_value_type",
    ),
    CheckConstraint(
        "person_kind IN ('person', 'patient', 'user')",
        name="known_person_kind",
    ),
    Index(None, "person_id"),
    Index(None, "person_identifier_folded"),
    Index(None, "concept_id"),
    Index(None, "encounter_id"),
    Index(None, "obs_group_id"),
    Index(None, "voided", "voided_date"),
    comment="Observations. Voided rows stay for the audit trail.",
)
