"""Session Reconciler - turns session-change notifications into a settled CurrentUser.

Invariants:
    - Notifications are handled in delivery order; each one that changes the
      session advances the generation synchronously, before any suspension
    - An attempt commits (Settled or Failed) only if its generation is still current;
      stale results are discarded, never merged
    - PendingRegistration is a single slot: last write wins, cleared on a successful
      (or already-existing) profile insert and on sign-out, kept on insert failure
    - Event-driven failures are recorded into SessionState, never raised
    - SessionState is replaced only between suspension points
    - A profile write confirmed while a fetch for the same identity is in flight
      is applied on top of the fetched row before settling

Design Decisions:
    - One asyncio.Task per notification; superseding is implicit through the
      generation check, there is no cancellation token
    - Insert write_conflict means the profile row already exists (retry after an
      earlier failed attempt, or a stale stage): treated as success
"""

import asyncio
import logging
from dataclasses import replace
from typing import Any

from app.core.domain_types import (
    AuthEvent,
    Generation,
    IdentityId,
    ProfileField,
    SessionPhase,
)
from app.core.errors import (
    ClanSyncError,
    ReconciliationTimeoutError,
    SessionError,
    StoreError,
    StoreErrorReason,
)
from app.core.generation import GenerationCounter
from app.core.profile import (
    AuthSession,
    CurrentUser,
    PendingRegistration,
    ProfileRecord,
)
from app.core.repository_protocols import IdentityClient, ProfileStore
from app.core.session_state import SessionState, SessionStateHolder
from app.services.profile_fetcher import ProfileFetcher

logger = logging.getLogger(__name__)

_INTERNAL_ERROR = SessionError(
    code="INTERNAL_ERROR", message="Session could not be restored",
)


class SessionReconciler:
    """State machine over IdentityClient notifications and ProfileStore reads."""

    def __init__(
        self,
        identity: IdentityClient,
        store: ProfileStore,
        fetcher: ProfileFetcher,
        state: SessionStateHolder,
    ):
        self._identity = identity
        self._store = store
        self._fetcher = fetcher
        self._state = state
        self._generations = GenerationCounter()
        self._pending: PendingRegistration | None = None
        self._tasks: set[asyncio.Task] = set()
        # identity -> field -> (write sequence, value) of store-confirmed writes
        self._confirmed_writes: dict[IdentityId, dict[ProfileField, tuple[int, Any]]] = {}
        self._write_seq = 0

    # --- Read-only views ------------------------------------------------------

    @property
    def generation(self) -> Generation:
        return self._generations.latest

    @property
    def pending_registration(self) -> PendingRegistration | None:
        return self._pending

    @property
    def in_flight(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def is_current(self, generation: Generation) -> bool:
        return self._generations.is_current(generation)

    # --- Pending registration slot --------------------------------------------

    def stage_registration(self, display_name: str) -> PendingRegistration:
        """Stage the display name for the next fresh sign-in (last write wins)."""
        if self._pending is not None:
            logger.info("Overwriting staged registration")
        self._pending = PendingRegistration(display_name=display_name)
        return self._pending

    def _release_registration(self, registration: PendingRegistration) -> None:
        # A newer sign_up may have replaced the slot while the insert was in flight
        if self._pending is registration:
            self._pending = None

    # --- Confirmed profile writes ---------------------------------------------

    def record_confirmed_write(
        self, identity_id: IdentityId, field: ProfileField, value: Any,
    ) -> None:
        """Record a store-accepted write; settling overlays writes newer than its fetch."""
        self._write_seq += 1
        self._confirmed_writes.setdefault(identity_id, {})[field] = (
            self._write_seq, value,
        )

    def _apply_confirmed_writes(self, user: CurrentUser, since: int) -> CurrentUser:
        writes = self._confirmed_writes.get(user.id, {})
        changes = {
            f.user_attribute: value
            for f, (seq, value) in writes.items() if seq > since
        }
        return replace(user, **changes) if changes else user

    # --- Entry points ---------------------------------------------------------

    async def boot(self) -> None:
        """Restore an existing session on startup."""
        generation = self._generations.advance()
        self._state.update(is_settling=True, phase=SessionPhase.IDLE)
        try:
            session = await self._identity.get_current_session()
        except ClanSyncError as e:
            logger.warning(
                f"Session lookup failed on boot: {e.message}",
                extra={"error_code": e.code, "generation": generation},
            )
            session = None

        if not self.is_current(generation):
            logger.debug("Boot superseded by a notification")
            return
        if session is None:
            self._transition(SessionState.unauthenticated(), generation)
            return

        self._transition(
            self._state.snapshot.settling(
                SessionPhase.AWAITING_PROFILE, session.identity_id,
            ),
            generation,
        )
        await self._reconcile(session.identity_id, None, generation)

    def handle_event(
        self, event: AuthEvent, session: AuthSession | None,
    ) -> asyncio.Task | None:
        """Notification listener. Returns the reconciliation task, if one started."""
        if event is AuthEvent.SIGNED_OUT or session is None:
            self.clear()
            return None

        identity_id = session.identity_id
        if event is AuthEvent.TOKEN_REFRESHED and self._is_settled_for(identity_id):
            logger.debug("Token refreshed for settled user", extra={"identity_id": identity_id})
            return None

        generation = self._generations.advance()
        # Writes confirmed for a previous identity can no longer apply
        self._confirmed_writes = {
            k: v for k, v in self._confirmed_writes.items() if k == identity_id
        }
        registration = self._pending if event is AuthEvent.SIGNED_IN else None
        phase = (
            SessionPhase.CREATING_PROFILE if registration is not None
            else SessionPhase.AWAITING_PROFILE
        )
        self._transition(
            self._state.snapshot.settling(phase, identity_id), generation,
            event=event.value,
        )

        task = asyncio.create_task(
            self._reconcile(identity_id, registration, generation),
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def clear(self) -> None:
        """Sign-out: drop user and stage, supersede anything in flight."""
        generation = self._generations.advance()
        self._pending = None
        self._confirmed_writes.clear()
        self._transition(SessionState.unauthenticated(), generation)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()

    # --- Reconciliation -------------------------------------------------------

    async def _reconcile(
        self,
        identity_id: IdentityId,
        registration: PendingRegistration | None,
        generation: Generation,
    ) -> None:
        writes_seen = self._write_seq
        try:
            if registration is not None:
                await self._create_profile(identity_id, registration)
                if not self.is_current(generation):
                    self._discard(identity_id, generation)
                    return
                self._transition(
                    self._state.snapshot.settling(
                        SessionPhase.AWAITING_PROFILE, identity_id,
                    ),
                    generation,
                )

            record = await self._fetcher.fetch_with_retry(
                identity_id, is_current=lambda: self.is_current(generation),
            )
            if not self.is_current(generation):
                self._discard(identity_id, generation)
                return
            if record is None:
                raise ReconciliationTimeoutError(
                    identity_id, self._fetcher.policy.retries,
                )
            user = self._apply_confirmed_writes(
                CurrentUser.from_record(record), writes_seen,
            )
            self._transition(SessionState.settled(user), generation)
        except ClanSyncError as e:
            self._fail(identity_id, generation, e.to_state(), e.code)
        except Exception:
            logger.error(
                "Unexpected reconciliation failure",
                exc_info=True,
                extra={"identity_id": identity_id, "generation": generation},
            )
            self._fail(identity_id, generation, _INTERNAL_ERROR, _INTERNAL_ERROR.code)

    async def _create_profile(
        self, identity_id: IdentityId, registration: PendingRegistration,
    ) -> None:
        record = ProfileRecord.for_registration(identity_id, registration)
        try:
            await self._store.insert(record)
        except StoreError as e:
            if e.reason is not StoreErrorReason.WRITE_CONFLICT:
                logger.error(
                    f"Profile insert failed: {e.message}",
                    extra={"identity_id": identity_id, "error_code": e.code},
                )
                raise
            logger.info(
                "Profile already exists, skipping insert",
                extra={"identity_id": identity_id},
            )
        else:
            logger.info("Profile created", extra={"identity_id": identity_id})
        self._release_registration(registration)

    # --- State helpers --------------------------------------------------------

    def _is_settled_for(self, identity_id: IdentityId) -> bool:
        snapshot = self._state.snapshot
        return snapshot.is_authenticated and snapshot.identity_id == identity_id

    def _transition(
        self, state: SessionState, generation: Generation, event: str | None = None,
    ) -> None:
        logger.info(
            f"Session -> {state.phase.value}",
            extra={
                "identity_id": state.identity_id,
                "generation": generation,
                "phase": state.phase.value,
                "event": event,
            },
        )
        self._state.replace(state)

    def _fail(
        self,
        identity_id: IdentityId,
        generation: Generation,
        error: SessionError,
        code: str,
    ) -> None:
        if not self.is_current(generation):
            self._discard(identity_id, generation)
            return
        logger.warning(
            f"Reconciliation failed: {error.message}",
            extra={
                "identity_id": identity_id,
                "generation": generation,
                "error_code": code,
            },
        )
        self._state.replace(SessionState.failed(error, identity_id))

    def _discard(self, identity_id: IdentityId, generation: Generation) -> None:
        logger.debug(
            "Discarding stale reconciliation",
            extra={"identity_id": identity_id, "generation": generation},
        )
