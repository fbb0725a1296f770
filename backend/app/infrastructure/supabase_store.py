"""Supabase Profile Store - ProfileStore and catalogs over the Supabase REST tables.

Invariants:
    - Rows use the Supabase schema's column names; domain records keep their own
      (profiles.name <-> display_name, clans.nom_clan <-> name, programmes.nom <-> name)
    - Unique violation (Postgres 23505) -> StoreError(write_conflict);
      transport failures -> StoreError(network); other API errors -> unknown
    - A row missing a required column -> StoreError(unknown), never a KeyError
    - update() that matches no row raises StoreError(not_found)
"""

import logging
from typing import Any

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import AsyncClient

from app.core.domain_types import ClanId, IdentityId
from app.core.errors import StoreError, StoreErrorReason
from app.core.profile import Clan, ProfileRecord
from app.core.program import Program, normalize_tags

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION = "23505"

# ProfileField value -> profiles column
_PROFILE_COLUMNS = {
    "display_name": "name",
    "clan_id": "clan_id",
    "total_days_completed": "total_days_completed",
}


def _map_store_error(e: Exception, operation: str) -> StoreError:
    if isinstance(e, PostgrestAPIError):
        reason = (
            StoreErrorReason.WRITE_CONFLICT if e.code == _UNIQUE_VIOLATION
            else StoreErrorReason.UNKNOWN
        )
        return StoreError(e.message or "API error", operation, reason)
    return StoreError(str(e), operation, StoreErrorReason.NETWORK)


def _malformed(table: str, operation: str, e: Exception) -> StoreError:
    logger.error(f"Malformed {table} row: {e!r}", extra={"operation": operation})
    return StoreError(f"malformed {table} row ({e})", operation)


def _optional_id(value) -> ClanId | None:
    return ClanId(str(value)) if value else None


def _row_to_record(row: dict) -> ProfileRecord:
    return ProfileRecord(
        id=IdentityId(str(row["id"])),
        display_name=row["name"],
        clan_id=_optional_id(row.get("clan_id")),
        total_days_completed=row.get("total_days_completed") or 0,
    )


def _row_to_clan(row: dict) -> Clan:
    return Clan(
        id=ClanId(str(row["id"])),
        name=row["nom_clan"],
        tagline=row.get("tagline"),
        description=row.get("description"),
        entry_ritual=row.get("rituel_entree"),
        image_url=row.get("image_url"),
        theme_color=row.get("couleur_theme"),
    )


def _row_to_program(row: dict) -> Program:
    return Program(
        id=str(row["id"]),
        name=row["nom"],
        type=row["type"],
        description=row.get("description"),
        image_url=row.get("image_url"),
        duration_days=row.get("duree_jours") or 0,
        tags=normalize_tags(row.get("tags")),
        clan_id=_optional_id(row.get("clan_id")),
        difficulty=row.get("niveau_difficulte"),
        results=row.get("resultats"),
        journey_summary=row.get("parcours_resume"),
    )


class SupabaseProfileStore:
    """ProfileStore backed by the Supabase `profiles` table."""

    def __init__(self, client: AsyncClient, table: str = "profiles"):
        self._client = client
        self._table = table

    async def insert(self, record: ProfileRecord) -> None:
        try:
            await self._client.table(self._table).insert({
                "id": record.id,
                "name": record.display_name,
                "clan_id": record.clan_id,
                "total_days_completed": record.total_days_completed,
            }).execute()
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _map_store_error(e, "insert")

    async def find_by_id(self, identity_id: IdentityId) -> ProfileRecord | None:
        try:
            result = await (
                self._client.table(self._table)
                .select("*")
                .eq("id", identity_id)
                .limit(1)
                .maybe_single()
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _map_store_error(e, "find_by_id")
        # maybe_single() yields no response at all when the row is missing
        if result is None or not result.data:
            return None
        try:
            return _row_to_record(result.data)
        except KeyError as e:
            raise _malformed(self._table, "find_by_id", e)

    async def update(
        self, identity_id: IdentityId, patch: dict[str, Any],
    ) -> None:
        unknown = set(patch) - set(_PROFILE_COLUMNS)
        if unknown:
            raise StoreError(f"unknown columns {sorted(unknown)}", "update")
        try:
            result = await (
                self._client.table(self._table)
                .update({_PROFILE_COLUMNS[k]: v for k, v in patch.items()})
                .eq("id", identity_id)
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _map_store_error(e, "update")
        if not result.data:
            raise StoreError(
                f"profile '{identity_id}' does not exist", "update",
                StoreErrorReason.NOT_FOUND,
            )


class SupabaseClanCatalog:
    """ClanCatalog backed by the Supabase `clans` table."""

    def __init__(self, client: AsyncClient, table: str = "clans"):
        self._client = client
        self._table = table

    async def list_clans(self) -> list[Clan]:
        try:
            result = await (
                self._client.table(self._table)
                .select("*")
                .order("created_at")
                .execute()
            )
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _map_store_error(e, "list_clans")
        try:
            return [_row_to_clan(row) for row in result.data or []]
        except KeyError as e:
            raise _malformed(self._table, "list_clans", e)


class SupabaseProgramCatalog:
    """ProgramCatalog backed by the Supabase `programmes` table."""

    def __init__(self, client: AsyncClient, table: str = "programmes"):
        self._client = client
        self._table = table

    async def list_programs(self) -> list[Program]:
        try:
            result = await self._client.table(self._table).select("*").execute()
        except (PostgrestAPIError, httpx.HTTPError) as e:
            raise _map_store_error(e, "list_programs")
        try:
            return [_row_to_program(row) for row in result.data or []]
        except KeyError as e:
            raise _malformed(self._table, "list_programs", e)
