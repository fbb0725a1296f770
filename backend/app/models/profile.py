"""Profile ORM - one row per identity, keyed by the identity service's user id.

Invariants:
    - id is the identity id (primary key): a second insert for the same identity
      violates the key and surfaces as StoreError(write_conflict)
    - clan_id is nullable until onboarding assigns a clan
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    clan_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clans.id"), nullable=True,
    )
    total_days_completed: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    clan: Mapped["Clan | None"] = relationship(
        "Clan", back_populates="profiles", lazy="selectin",
    )
