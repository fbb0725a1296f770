"""Program ORM - training programmes listed on the paths screen."""

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base


class Program(Base):
    __tablename__ = "programs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # JSON array, or JSON array text from older imports
    tags: Mapped[Any] = mapped_column(JSON, nullable=True)
    clan_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("clans.id"), nullable=True,
    )
    difficulty: Mapped[str | None] = mapped_column(Text, nullable=True)
    results: Mapped[Any] = mapped_column(JSON, nullable=True)
    journey_summary: Mapped[Any] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
