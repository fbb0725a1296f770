"""SessionReconciler - notification-driven reconciliation into CurrentUser.

Invariants:
    - CurrentUser always belongs to the last delivered SIGNED_IN identity
    - Fresh sign-in with a staged registration inserts exactly one profile row
    - Insert failure and retry exhaustion settle into FAILED with a recorded error
    - Signed-out notifications clear user and staged registration
"""

import asyncio

from app.core.domain_types import AuthEvent, SessionPhase
from app.core.errors import AuthNetworkError, StoreError, StoreErrorReason
from app.core.profile import PendingRegistration, ProfileRecord

from tests.fakes import drain, profile, session_for


# -- Boot -------------------------------------------------------------------------

async def test_boot_with_existing_session_settles_to_profile(identity, store, runtime):
    identity.current = session_for("u1")
    store.rows["u1"] = profile("u1", "Bob", clan_id="c9", days=12)

    await runtime.start()

    state = runtime.state.snapshot
    assert state.phase is SessionPhase.SETTLED
    assert state.is_settling is False
    assert state.current_user.id == "u1"
    assert state.current_user.name == "Bob"
    assert state.current_user.clan == "c9"
    assert state.current_user.total_days_completed == 12


async def test_boot_without_session_is_unauthenticated(runtime):
    await runtime.start()

    state = runtime.state.snapshot
    assert state.phase is SessionPhase.UNAUTHENTICATED
    assert state.is_settling is False
    assert state.current_user is None


async def test_boot_session_lookup_failure_is_unauthenticated(identity, runtime):
    identity.current_error = AuthNetworkError("offline")

    await runtime.start()

    assert runtime.state.snapshot.phase is SessionPhase.UNAUTHENTICATED
    assert runtime.state.snapshot.error is None


async def test_boot_without_profile_fails_after_retries(identity, store, sleep, runtime):
    identity.current = session_for("u1")

    await runtime.start()

    state = runtime.state.snapshot
    assert state.phase is SessionPhase.FAILED
    assert state.error.code == "RECONCILIATION_TIMEOUT"
    assert state.is_settling is False
    assert state.current_user is None
    assert len(store.find_calls) == 5


async def test_initial_state_is_settling_before_boot(runtime):
    assert runtime.state.snapshot.is_settling is True
    assert runtime.state.snapshot.phase is SessionPhase.IDLE


# -- Signed in ---------------------------------------------------------------------

async def test_signed_in_without_stage_fetches_profile(store, started, identity):
    store.rows["u1"] = profile("u1", "Bob")

    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    assert started.state.snapshot.is_settling is True
    assert started.state.snapshot.phase is SessionPhase.AWAITING_PROFILE
    await task

    assert started.state.snapshot.current_user.name == "Bob"
    assert store.inserted == []


async def test_signed_in_with_stage_creates_profile(store, started, identity):
    started.reconciler.stage_registration("Alice")
    phases = []
    started.state.subscribe(lambda s: phases.append(s.phase))

    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    await task

    assert store.inserted == [ProfileRecord(
        id="u2", display_name="Alice", clan_id=None, total_days_completed=0,
    )]
    assert started.state.snapshot.current_user.name == "Alice"
    assert started.reconciler.pending_registration is None
    assert phases == [
        SessionPhase.CREATING_PROFILE,
        SessionPhase.AWAITING_PROFILE,
        SessionPhase.SETTLED,
    ]


async def test_later_notification_wins_over_slower_earlier_one(store, started, identity):
    store.rows["u1"] = profile("u1", "One")
    store.rows["u2"] = profile("u2", "Two")
    store.gate("u1")

    identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await asyncio.sleep(0)
    [second] = identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    await second
    assert started.state.snapshot.current_user.id == "u2"

    store.release("u1")
    await drain(started.reconciler)

    assert started.state.snapshot.current_user.id == "u2"
    assert started.state.snapshot.phase is SessionPhase.SETTLED


async def test_new_identity_drops_previous_user_while_settling(store, started, identity):
    store.rows["u1"] = profile("u1")
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await task
    store.gate("u2")

    identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))

    assert started.state.snapshot.current_user is None
    assert started.state.snapshot.identity_id == "u2"
    store.release("u2")
    await drain(started.reconciler)


async def test_failure_of_superseded_attempt_is_discarded(store, started, identity):
    store.rows["u2"] = profile("u2", "Two")
    store.gate("u1")

    identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await asyncio.sleep(0)
    identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    store.release("u1")
    await drain(started.reconciler)

    assert started.state.snapshot.phase is SessionPhase.SETTLED
    assert started.state.snapshot.error is None


# -- Profile creation failures --------------------------------------------------------

async def test_insert_failure_records_error_and_keeps_stage(store, started, identity):
    started.reconciler.stage_registration("Alice")
    store.insert_error = StoreError("offline", "insert", StoreErrorReason.NETWORK)

    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    await task

    state = started.state.snapshot
    assert state.phase is SessionPhase.FAILED
    assert state.error.code == "STORE_NETWORK"
    assert state.is_settling is False
    assert state.current_user is None
    assert started.reconciler.pending_registration == PendingRegistration("Alice")
    assert store.find_calls == []


async def test_next_sign_in_retries_insert_with_kept_stage(store, started, identity):
    started.reconciler.stage_registration("Alice")
    store.insert_error = StoreError("offline", "insert", StoreErrorReason.NETWORK)
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    await task

    store.insert_error = None
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    await task

    assert [r.id for r in store.inserted] == ["u2"]
    assert started.state.snapshot.current_user.name == "Alice"
    assert started.reconciler.pending_registration is None


async def test_existing_profile_on_insert_is_reused(store, started, identity):
    store.rows["u3"] = profile("u3", "Existing")
    started.reconciler.stage_registration("Stale name")

    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u3"))
    await task

    assert store.inserted == []
    assert started.state.snapshot.current_user.name == "Existing"
    assert started.reconciler.pending_registration is None


async def test_stage_overwritten_during_insert_is_not_cleared(store, started, identity):
    started.reconciler.stage_registration("Alice")
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u2"))
    started.reconciler.stage_registration("Carol")
    await task

    assert store.inserted[0].display_name == "Alice"
    assert started.reconciler.pending_registration == PendingRegistration("Carol")


async def test_unexpected_store_exception_records_internal_error(store, started, identity):
    store.find_script = [RuntimeError("boom")]

    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await task

    assert started.state.snapshot.phase is SessionPhase.FAILED
    assert started.state.snapshot.error.code == "INTERNAL_ERROR"


# -- Signed out / token refresh -------------------------------------------------------

async def test_signed_out_clears_user_and_stage(store, started, identity):
    store.rows["u1"] = profile("u1")
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await task
    started.reconciler.stage_registration("Alice")

    assert identity.emit(AuthEvent.SIGNED_OUT, None) == [None]

    state = started.state.snapshot
    assert state.current_user is None
    assert state.phase is SessionPhase.UNAUTHENTICATED
    assert state.is_settling is False
    assert started.reconciler.pending_registration is None


async def test_signed_out_during_fetch_is_not_resurrected(store, started, identity):
    store.rows["u1"] = profile("u1")
    store.gate("u1")

    identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await asyncio.sleep(0)
    identity.emit(AuthEvent.SIGNED_OUT, None)
    store.release("u1")
    await drain(started.reconciler)

    assert started.state.snapshot.current_user is None
    assert started.state.snapshot.phase is SessionPhase.UNAUTHENTICATED


async def test_token_refresh_for_settled_user_is_noop(store, started, identity):
    store.rows["u1"] = profile("u1")
    [task] = identity.emit(AuthEvent.SIGNED_IN, session_for("u1"))
    await task
    generation = started.reconciler.generation
    calls = len(store.find_calls)

    assert identity.emit(AuthEvent.TOKEN_REFRESHED, session_for("u1")) == [None]

    assert started.reconciler.generation == generation
    assert len(store.find_calls) == calls
    assert started.state.snapshot.is_settling is False


async def test_token_refresh_without_settled_user_reconciles(store, started, identity):
    store.rows["u1"] = profile("u1", "Bob")
    started.reconciler.stage_registration("Ignored")

    [task] = identity.emit(AuthEvent.TOKEN_REFRESHED, session_for("u1"))
    await task

    assert store.inserted == []
    assert started.state.snapshot.current_user.name == "Bob"
    assert started.reconciler.pending_registration == PendingRegistration("Ignored")
