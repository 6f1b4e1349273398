"""Create obs, obs_group and mime_type tables

Revision ID: 3f2a9c1d7b42
Revises:
Create Date: 2026-09-28

"""

# pylint: disable=invalid-name

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from clinobs.adapters.db.sa_types import BIGINT_PK, UTCDateTime

# deal with alembic stuff
# pylint: disable=no-member

# revision identifiers, used by Alembic.
revision: str = "3f2a9c1d7b42"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SEED_MIME_TYPES = [
    {"mime_type_id": 1, "mime_type": "text/plain", "description": "Plain text"},
    {"mime_type_id": 2, "mime_type": "text/xml", "description": "XML document"},
    {"mime_type_id": 3, "mime_type": "application/pdf", "description": "PDF document"},
    {"mime_type_id": 4, "mime_type": "image/jpeg", "description": "JPEG image"},
    {"mime_type_id": 5, "mime_type": "image/png", "description": "PNG image"},
    {"mime_type_id": 6, "mime_type": "image/gif", "description": "GIF image"},
]


def upgrade() -> None:
    """Upgrade schema."""

    mime_type = op.create_table(
        "mime_type",
        sa.Column("mime_type_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column(
            "mime_type",
            sa.String(length=75),
            nullable=False,
            comment="Media type, e.g. image/png.",
        ),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("mime_type_id", name=op.f("pk_mime_type")),
        sa.UniqueConstraint("mime_type", name=op.f("uq_mime_type_mime_type")),
        comment="Tags for the payload of complex observation values.",
    )
    op.bulk_insert(mime_type, SEED_MIME_TYPES)

    op.create_table(
        "obs_group",
        sa.Column(
            "obs_group_id",
            BIGINT_PK,
            sa.Identity(always=False, start=1),
            nullable=False,
        ),
        sa.Column(
            "date_created",
            UTCDateTime(),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("obs_group_id", name=op.f("pk_obs_group")),
        comment="One row per allocated observation group id.",
    )

    op.create_table(
        "obs",
        sa.Column(
            "obs_id", BIGINT_PK, sa.Identity(always=False, start=1), nullable=False
        ),
        sa.Column("person_id", sa.Integer(), nullable=False),
        sa.Column("person_kind", sa.String(length=16), nullable=False),
        sa.Column(
            "person_identifier",
            sa.String(length=64),
            nullable=True,
            comment="Human-facing identifier used by free-text search.",
        ),
        sa.Column("concept_id", sa.Integer(), nullable=False),
        sa.Column(
            "concept_name", sa.String(length=255), server_default="", nullable=False
        ),
        sa.Column("encounter_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("obs_datetime", UTCDateTime(), nullable=False),
        sa.Column(
            "obs_group_id",
            BIGINT_PK,
            nullable=True,
            comment="Shared by every member of an observation group.",
        ),
        sa.Column("value_type", sa.String(length=16), nullable=False),
        sa.Column("value_coded_id", sa.Integer(), nullable=True),
        sa.Column("value_coded_name", sa.String(length=255), nullable=True),
        sa.Column("value_numeric", sa.Float(), nullable=True),
        sa.Column(
            "value_text",
            sa.Text(),
            nullable=True,
            comment="Free text, or the title of a complex value.",
        ),
        sa.Column("value_complex", sa.LargeBinary(), nullable=True),
        sa.Column("value_mime_type_id", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("date_created", UTCDateTime(), nullable=False),
        sa.Column("voided", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("void_reason", sa.String(length=255), nullable=True),
        sa.Column("voided_date", UTCDateTime(), nullable=True),
        sa.CheckConstraint(
            "value_type IN ('coded', 'numeric', 'text', 'complex')",
            name=op.f("ck_obs_known_value_type"),
        ),
        sa.CheckConstraint(
            "person_kind IN ('person', 'patient', 'user')",
            name=op.f("ck_obs_known_person_kind"),
        ),
        sa.ForeignKeyConstraint(
            ["value_mime_type_id"],
            ["mime_type.mime_type_id"],
            name=op.f("fk_obs_value_mime_type_id_mime_type"),
        ),
        sa.PrimaryKeyConstraint("obs_id", name=op.f("pk_obs")),
        comment="Observations. Voided rows stay for the audit trail.",
    )
    op.create_index(op.f("ix_obs_person_id"), "obs", ["person_id"], unique=False)
    op.create_index(op.f("ix_obs_concept_id"), "obs", ["concept_id"], unique=False)
    op.create_index(op.f("ix_obs_encounter_id"), "obs", ["encounter_id"], unique=False)
    op.create_index(op.f("ix_obs_obs_group_id"), "obs", ["obs_group_id"], unique=False)
    op.create_index(
        op.f("ix_obs_voided_voided_date"),
        "obs",
        ["voided", "voided_date"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index(op.f("ix_obs_voided_voided_date"), table_name="obs")
    op.drop_index(op.f("ix_obs_obs_group_id"), table_name="obs")
    op.drop_index(op.f("ix_obs_encounter_id"), table_name="obs")
    op.drop_index(op.f("ix_obs_concept_id"), table_name="obs")
    op.drop_index(op.f("ix_obs_person_id"), table_name="obs")
    op.drop_table("obs")
    op.drop_table("obs_group")
    op.drop_table("mime_type")
