"""API test fixtures - FastAPI app over a fake-backed SessionRuntime.

Invariants:
    - Lifespan is not run; get_session_runtime is overridden per test
    - HTTP calls go through httpx ASGITransport, no network
"""

import httpx
import pytest

from app.core.domain_types import ClanId
from app.core.profile import Clan
from app.core.program import Program
from app.main import app
from app.services.session_runtime import SessionRuntime, get_session_runtime

from tests.fakes import (
    FakeClanCatalog,
    FakeIdentityClient,
    FakeProfileStore,
    FakeProgramCatalog,
    RecordingSleep,
)


@pytest.fixture
def identity():
    return FakeIdentityClient()


@pytest.fixture
def store():
    return FakeProfileStore()


@pytest.fixture
async def runtime(identity, store):
    catalog = FakeClanCatalog([
        Clan(id=ClanId("c1"), name="ONOTKA", tagline="Silence forges"),
    ])
    programs = FakeProgramCatalog([
        Program(id="p1", name="Fondations", type="Découverte", tags=["force"]),
        Program(id="p2", name="Elite", type="Premium", duration_days=30),
        Program(id="p3", name="Brouillon", type="Beta"),
    ])
    rt = SessionRuntime(
        identity, store, clans=catalog, programs=programs, sleep=RecordingSleep(),
    )
    await rt.start()
    app.dependency_overrides[get_session_runtime] = lambda: rt
    yield rt
    app.dependency_overrides.clear()
    await rt.aclose()


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(
        transport=transport, base_url="http://test",
    ) as c:
        yield c
