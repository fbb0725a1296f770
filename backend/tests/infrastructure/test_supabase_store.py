"""Supabase Profile Store - REST table calls, column mapping and StoreError mapping.

Rows use the Supabase schema (profiles.name, clans.nom_clan, programmes.nom, ...).
"""

from types import SimpleNamespace

import httpx
import pytest
from postgrest.exceptions import APIError

from app.core.errors import StoreError, StoreErrorReason
from app.infrastructure.supabase_store import (
    SupabaseClanCatalog,
    SupabaseProfileStore,
    SupabaseProgramCatalog,
)

from tests.fakes import profile


class FakeQuery:
    """Chainable stand-in for the postgrest request builder."""

    def __init__(self, table, result=None, error=None):
        self.table = table
        self.result = result
        self.error = error
        self.ops = []

    def __getattr__(self, name):
        def step(*args, **kwargs):
            self.ops.append((name, args))
            return self
        return step

    async def execute(self):
        if self.error is not None:
            raise self.error
        return self.result


class FakeClient:
    def __init__(self, query: FakeQuery):
        self.query = query

    def table(self, name):
        assert name == self.query.table
        return self.query


def _store(result=None, error=None):
    query = FakeQuery("profiles", result, error)
    return SupabaseProfileStore(FakeClient(query)), query


async def test_insert_sends_row():
    store, query = _store(SimpleNamespace(data=[{}]))

    await store.insert(profile("u1", name="Alice"))

    assert query.ops[0] == ("insert", ({
        "id": "u1", "name": "Alice",
        "clan_id": None, "total_days_completed": 0,
    },))


async def test_insert_unique_violation_is_write_conflict():
    store, _ = _store(error=APIError({"message": "duplicate key", "code": "23505"}))

    with pytest.raises(StoreError) as exc:
        await store.insert(profile("u1"))

    assert exc.value.reason is StoreErrorReason.WRITE_CONFLICT


async def test_find_by_id_maps_row():
    store, _ = _store(SimpleNamespace(data={
        "id": "u1", "name": "Bob", "clan": "onotka", "clan_id": "c1",
        "total_days_completed": 2,
    }))

    assert await store.find_by_id("u1") == profile("u1", clan_id="c1", days=2)


async def test_find_by_id_missing_row():
    store, _ = _store(None)
    assert await store.find_by_id("u1") is None


async def test_transport_failure_is_network():
    store, _ = _store(error=httpx.ConnectError("refused"))

    with pytest.raises(StoreError) as exc:
        await store.find_by_id("u1")

    assert exc.value.reason is StoreErrorReason.NETWORK


async def test_update_of_missing_row_is_not_found():
    store, _ = _store(SimpleNamespace(data=[]))

    with pytest.raises(StoreError) as exc:
        await store.update("u1", {"clan_id": "c1"})

    assert exc.value.reason is StoreErrorReason.NOT_FOUND


async def test_clan_catalog():
    query = FakeQuery("clans", SimpleNamespace(data=[
        {
            "id": "c1", "nom_clan": "EKLOA", "tagline": "La vitesse.",
            "rituel_entree": "Rituel de vitesse", "couleur_theme": "#4CC3FF",
            "image_url": None, "description": None, "created_at": "2025-05-07",
        },
    ]))

    [clan] = await SupabaseClanCatalog(FakeClient(query)).list_clans()

    assert (clan.id, clan.name, clan.entry_ritual, clan.theme_color) == (
        "c1", "EKLOA", "Rituel de vitesse", "#4CC3FF",
    )


async def test_update_maps_display_name_column():
    store, query = _store(SimpleNamespace(data=[{"id": "u1"}]))

    await store.update("u1", {"display_name": "Robert"})

    assert query.ops[0] == ("update", ({"name": "Robert"},))


async def test_row_missing_required_column_is_store_error():
    query = FakeQuery("clans", SimpleNamespace(data=[{"id": "c1", "name": "EKLOA"}]))

    with pytest.raises(StoreError) as exc:
        await SupabaseClanCatalog(FakeClient(query)).list_clans()

    assert exc.value.reason is StoreErrorReason.UNKNOWN


async def test_program_catalog_maps_programmes_rows():
    query = FakeQuery("programmes", SimpleNamespace(data=[
        {
            "id": "p1", "nom": "Fondations", "type": "Découverte",
            "description": "Bases", "image_url": "https://img/p1.jpg",
            "duree_jours": 21, "tags": '["force", "mobilité"]', "clan_id": "c1",
            "niveau_difficulte": "débutant", "resultats": {"semaine_1": "x"},
            "parcours_resume": None,
        },
        {"id": "p2", "nom": "Elite", "type": "Premium", "tags": ["vitesse"]},
    ]))

    first, second = await SupabaseProgramCatalog(FakeClient(query)).list_programs()

    assert (first.name, first.duration_days, first.tags, first.difficulty) == (
        "Fondations", 21, ["force", "mobilité"], "débutant",
    )
    assert first.results == {"semaine_1": "x"}
    assert (second.type, second.tags, second.duration_days) == ("Premium", ["vitesse"], 0)
