"""Add obs.person_identifier_folded for case-insensitive search

Revision ID: 8c41e6d2a9f0
Revises: 3f2a9c1d7b42
Create Date: 2026-10-16

"""

# pylint: disable=invalid-name

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import context, op

# deal with alembic stuff
# pylint: disable=no-member

# revision identifiers, used by Alembic.
revision: str = "8c41e6d2a9f0"
down_revision: str | Sequence[str] | None = "3f2a9c1d7b42"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

obs = sa.table(
    "obs",
    sa.column("obs_id", sa.BigInteger()),
    sa.column("person_identifier", sa.String()),
    sa.column("person_identifier_folded", sa.String()),
)


def upgrade() -> None:
    """Upgrade schema."""

    op.add_column(
        "obs",
        sa.Column(
            "person_identifier_folded",
            sa.String(length=192),
            nullable=True,
            comment="person_identifier after str.casefold(); searched instead of it.",
        ),
    )
    _backfill_folded()
    op.create_index(
        op.f("ix_obs_person_identifier_folded"),
        "obs",
        ["person_identifier_folded"],
        unique=False,
    )


def downgrade() -> None:
    """Downgrade schema."""

    op.drop_index(op.f("ix_obs_person_identifier_folded"), table_name="obs")
    op.drop_column("obs", "person_identifier_folded")


def _backfill_folded() -> None:
    if context.is_offline_mode():
        # No rows to read in --sql mode; lower() is the closest SQL spelling.
        op.execute(
            obs.update().values(
                person_identifier_folded=sa.func.lower(obs.c.person_identifier)
            )
        )
        return

    bind = op.get_bind()
    rows = bind.execute(
        sa.select(obs.c.obs_id, obs.c.person_identifier).where(
            obs.c.person_identifier.is_not(None)
        )
    ).all()
    if not rows:
        return
    bind.execute(
        obs.update()
        .where(obs.c.obs_id == sa.bindparam("b_obs_id"))
        .values(person_identifier_folded=sa.bindparam("b_folded")),
        [{"b_obs_id": obs_id, "b_folded": ident.casefold()} for obs_id, ident in rows],
    )
