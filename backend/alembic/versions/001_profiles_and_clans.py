"""Profiles and clans - profile row per identity, seeded clan catalog.

Revision ID: 001_profiles_and_clans
Revises: None
Create Date: 2026-10-19

"""
import uuid
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_profiles_and_clans"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_SEED_CLANS = [
    {
        "name": "ONOTKA",
        "tagline": "La force brute. La résistance mentale.",
        "description": (
            "Pour ceux qui veulent prendre en masse, construire un corps solide "
            "et fiable. Tu forges ta structure. Tu deviens le socle."
        ),
        "entry_ritual": "Rituel de force et de persévérance",
        "image_url": "https://images.pexels.com/photos/7674497/pexels-photo-7674497.jpeg",
        "theme_color": "#F77C6F",
    },
    {
        "name": "EKLOA",
        "tagline": "La vitesse. L'explosivité.",
        "description": (
            "Pour ceux qui veulent bondir, frapper, performer. Un corps rapide, "
            "réactif, pensé pour l'action du sportif."
        ),
        "entry_ritual": "Rituel de vitesse et d'agilité",
        "image_url": "https://images.pexels.com/photos/2468339/pexels-photo-2468339.jpeg",
        "theme_color": "#4CC3FF",
    },
    {
        "name": "OKWÁHO",
        "tagline": "La fluidité. L'adaptabilité. L'équilibre.",
        "description": (
            "Pour ceux qui veulent bouger mieux, plus librement, sans contrainte. "
            "Tu construis un corps souple, mobile, intelligent."
        ),
        "entry_ritual": "Rituel de fluidité et d'équilibre",
        "image_url": "https://images.pexels.com/photos/2123573/pexels-photo-2123573.jpeg",
        "theme_color": "#4FD1C5",
    },
]


def upgrade() -> None:
    clans = op.create_table(
        "clans",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("tagline", sa.Text, nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("entry_ritual", sa.Text, nullable=True),
        sa.Column("image_url", sa.Text, nullable=True),
        sa.Column("theme_color", sa.String(16), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("display_name", sa.Text, nullable=False),
        sa.Column("clan_id", sa.String(36), sa.ForeignKey("clans.id"), nullable=True),
        sa.Column("total_days_completed", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.bulk_insert(clans, [{"id": str(uuid.uuid4()), **c} for c in _SEED_CLANS])


def downgrade() -> None:
    op.drop_table("profiles")
    op.drop_table("clans")
