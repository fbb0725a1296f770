"""Session Routes - HTTP surface over the session facade and state snapshot.

Tests:
    - GET returns the current snapshot
    - Explicit-call errors become structured JSON envelopes
    - PATCH /profile merges only after the store accepted the write
"""

import pytest

import app.services.session_runtime as runtime_module
from app.api.routes.session import sse_line
from app.core.domain_types import AuthEvent
from app.core.errors import (
    AccountExistsError,
    AuthNetworkError,
    InvalidCredentialError,
)
from app.core.session_state import SessionState

from tests.fakes import profile, session_for

SIGN_IN = {"email": "alice@test.dev", "password": "s3cret-pass"}


async def _settle(identity, store, identity_id="u1"):
    store.rows[identity_id] = profile(identity_id)
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for(identity_id))
    await task


async def test_get_state_unauthenticated(runtime, client):
    r = await client.get("/api/v1/session")

    assert r.status_code == 200
    body = r.json()
    assert body["current_user"] is None
    assert body["is_settling"] is False
    assert body["phase"] == "unauthenticated"


async def test_get_state_settled(runtime, client, identity, store):
    await _settle(identity, store)

    body = (await client.get("/api/v1/session")).json()

    assert body["current_user"] == {
        "id": "u1", "name": "Bob", "clan": None, "total_days_completed": 0,
    }


async def test_sign_in_accepted_returns_settling_snapshot(runtime, client, identity):
    identity.sign_in_result = session_for("u1")

    r = await client.post("/api/v1/session/sign-in", json=SIGN_IN)

    assert r.status_code == 200
    assert r.json()["is_settling"] is True


async def test_sign_in_invalid_credentials(runtime, client, identity):
    identity.sign_in_result = InvalidCredentialError()

    r = await client.post("/api/v1/session/sign-in", json=SIGN_IN)

    assert r.status_code == 401
    assert r.json()["error"]["code"] == "INVALID_CREDENTIAL"


async def test_identity_outage_is_retryable(runtime, client, identity):
    identity.sign_in_result = AuthNetworkError("timeout")

    r = await client.post("/api/v1/session/sign-in", json=SIGN_IN)

    assert r.status_code == 503
    assert r.headers["retry-after"] == "5"
    assert r.json()["error"]["reason"] == "network"


async def test_sign_in_validation_error(runtime, client):
    r = await client.post(
        "/api/v1/session/sign-in", json={"email": "nope", "password": "x"},
    )

    assert r.status_code == 400
    assert r.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_sign_up_stages_name(runtime, client, identity):
    identity.sign_up_result = session_for("u2")

    r = await client.post(
        "/api/v1/session/sign-up", json={**SIGN_IN, "name": "  Alice "},
    )

    assert r.status_code == 201
    assert r.json()["confirmation_required"] is False
    assert runtime.reconciler.pending_registration.display_name == "Alice"


async def test_sign_up_pending_confirmation(runtime, client, identity):
    identity.sign_up_result = None

    r = await client.post(
        "/api/v1/session/sign-up", json={**SIGN_IN, "name": "Alice"},
    )

    assert r.json()["confirmation_required"] is True
    assert r.json()["state"]["is_settling"] is False


async def test_sign_up_account_exists(runtime, client, identity):
    identity.sign_up_result = AccountExistsError()

    r = await client.post(
        "/api/v1/session/sign-up", json={**SIGN_IN, "name": "Alice"},
    )

    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ACCOUNT_EXISTS"


async def test_sign_out(runtime, client, identity, store):
    await _settle(identity, store)

    r = await client.post("/api/v1/session/sign-out")

    assert r.status_code == 200
    assert r.json()["current_user"] is None


async def test_update_profile(runtime, client, identity, store):
    await _settle(identity, store)

    r = await client.patch(
        "/api/v1/session/profile", json={"field": "clan_id", "value": "c1"},
    )

    assert r.status_code == 200
    assert r.json()["clan"] == "c1"
    assert store.updates == [("u1", {"clan_id": "c1"})]


async def test_update_profile_requires_settled_user(runtime, client):
    r = await client.patch(
        "/api/v1/session/profile", json={"field": "clan_id", "value": "c1"},
    )

    assert r.status_code == 409
    assert r.json()["error"]["code"] == "NOT_SETTLED"


@pytest.mark.parametrize("payload", [
    {"field": "id", "value": "u9"},
    {"field": "total_days_completed", "value": -1},
    {"field": "display_name", "value": "   "},
])
async def test_update_profile_rejects_bad_payload(runtime, client, payload):
    r = await client.patch("/api/v1/session/profile", json=payload)

    assert r.status_code == 400


async def test_routes_unavailable_without_runtime(client, monkeypatch):
    monkeypatch.setattr(runtime_module, "session_runtime", None)

    r = await client.get("/api/v1/session")

    assert r.status_code == 503
    assert r.json()["error"]["code"] == "SESSION_UNAVAILABLE"


def test_sse_line_format():
    line = sse_line(SessionState.unauthenticated())

    assert line.startswith("event: state\ndata: {")
    assert line.endswith("\n\n")
    assert '"phase": "unauthenticated"' in line
