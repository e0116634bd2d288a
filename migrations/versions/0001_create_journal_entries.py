"""create journal entries table

Revision ID: 0001_create_journal_entries
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_create_journal_entries"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "journal_entries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("owner_id", sa.Text(), nullable=False),
        sa.Column("journal_date", sa.Date(), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("mood", sa.SmallInteger(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint("mood BETWEEN 1 AND 5", name="journal_entries_mood_range"),
    )
    op.create_unique_constraint(
        "journal_entries_owner_date_key",
        "journal_entries",
        ["owner_id", "journal_date"],
    )


def downgrade() -> None:
    op.drop_constraint("journal_entries_owner_date_key", "journal_entries", type_="unique")
    op.drop_table("journal_entries")
