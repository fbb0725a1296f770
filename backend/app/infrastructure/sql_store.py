"""SQL Store - ProfileStore, ClanCatalog and ProgramCatalog over async SQLAlchemy.

Invariants:
    - Every call opens its own session via DatabaseSessionManager (auto-rollback,
      exception mapping to StoreError)
    - update() of a missing row raises StoreError(not_found); nothing is upserted
    - Only ProfileField columns are writable through update()
    - Programme tags are normalized to a list of strings on read
"""

import logging
from typing import Any

from sqlalchemy import select, update

from app.core.domain_types import ClanId, IdentityId, ProfileField
from app.core.errors import StoreError, StoreErrorReason
from app.core.profile import Clan, ProfileRecord
from app.core.program import Program, normalize_tags
from app.infrastructure.database import DatabaseSessionManager
from app.models.clan import Clan as ClanModel
from app.models.profile import Profile as ProfileModel
from app.models.program import Program as ProgramModel

logger = logging.getLogger(__name__)

_WRITABLE_COLUMNS = {f.value for f in ProfileField}


def _to_record(row: ProfileModel) -> ProfileRecord:
    return ProfileRecord(
        id=IdentityId(row.id),
        display_name=row.display_name,
        clan_id=ClanId(row.clan_id) if row.clan_id else None,
        total_days_completed=row.total_days_completed,
    )


class SqlProfileStore:
    """ProfileStore backed by the `profiles` table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def insert(self, record: ProfileRecord) -> None:
        async with self._db.session() as session:
            session.add(ProfileModel(
                id=record.id,
                display_name=record.display_name,
                clan_id=record.clan_id,
                total_days_completed=record.total_days_completed,
            ))
            await session.commit()

    async def find_by_id(self, identity_id: IdentityId) -> ProfileRecord | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(ProfileModel).where(ProfileModel.id == identity_id).limit(1),
            )
            row = result.scalar_one_or_none()
            return _to_record(row) if row is not None else None

    async def update(
        self, identity_id: IdentityId, patch: dict[str, Any],
    ) -> None:
        unknown = set(patch) - _WRITABLE_COLUMNS
        if unknown:
            raise StoreError(
                f"unknown columns {sorted(unknown)}", "update",
                StoreErrorReason.UNKNOWN,
            )
        async with self._db.session() as session:
            result = await session.execute(
                update(ProfileModel)
                .where(ProfileModel.id == identity_id)
                .values(**patch),
            )
            if result.rowcount == 0:
                await session.rollback()
                raise StoreError(
                    f"profile '{identity_id}' does not exist", "update",
                    StoreErrorReason.NOT_FOUND,
                )
            await session.commit()


class SqlClanCatalog:
    """ClanCatalog backed by the `clans` table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def list_clans(self) -> list[Clan]:
        async with self._db.session() as session:
            result = await session.execute(
                select(ClanModel).order_by(ClanModel.created_at, ClanModel.name),
            )
            return [
                Clan(
                    id=ClanId(row.id),
                    name=row.name,
                    tagline=row.tagline,
                    description=row.description,
                    entry_ritual=row.entry_ritual,
                    image_url=row.image_url,
                    theme_color=row.theme_color,
                )
                for row in result.scalars().all()
            ]


class SqlProgramCatalog:
    """ProgramCatalog backed by the `programs` table."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def list_programs(self) -> list[Program]:
        async with self._db.session() as session:
            result = await session.execute(
                select(ProgramModel).order_by(ProgramModel.created_at, ProgramModel.name),
            )
            return [
                Program(
                    id=row.id,
                    name=row.name,
                    type=row.type,
                    description=row.description,
                    image_url=row.image_url,
                    duration_days=row.duration_days,
                    tags=normalize_tags(row.tags),
                    clan_id=ClanId(row.clan_id) if row.clan_id else None,
                    difficulty=row.difficulty,
                    results=row.results,
                    journey_summary=row.journey_summary,
                )
                for row in result.scalars().all()
            ]
