"""Programs - training programmes listed on the paths screen.

Revision ID: 002_programs
Revises: 001_profiles_and_clans
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_programs"
down_revision: Union[str, None] = "001_profiles_and_clans"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "programs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("duration_days", sa.Integer, nullable=False, server_default="0"),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column(
            "clan_id", sa.String(36), sa.ForeignKey("clans.id"), nullable=True,
        ),
        sa.Column("difficulty", sa.Text, nullable=True),
        sa.Column("results", sa.JSON, nullable=True),
        sa.Column("journey_summary", sa.JSON, nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True),
            nullable=False, server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_programs_type", "programs", ["type"])


def downgrade() -> None:
    op.drop_index("ix_programs_type", table_name="programs")
    op.drop_table("programs")
