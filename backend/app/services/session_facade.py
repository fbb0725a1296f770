"""Session Facade - the operations the view layer calls.

Invariants:
    - sign_in never sets CurrentUser; the following SIGNED_IN notification does
    - sign_up stages PendingRegistration BEFORE calling the identity service
    - AuthError from explicit calls is re-raised to the caller, never swallowed
    - sign_out clears local state even when the remote sign-out fails
    - update_profile_field merges into CurrentUser only after the store accepted the
      write, and only while the same identity is still current (a re-login of that
      identity keeps the write)

Design Decisions:
    - is_settling is released by an explicit call only when no reconciliation is in
      flight; otherwise the reconciler owns the flag
"""

import logging
from dataclasses import replace
from typing import Any

from app.core.domain_types import ProfileField
from app.core.errors import (
    AuthError,
    InvalidProfileFieldError,
    NotSettledError,
    StoreError,
)
from app.core.profile import AuthSession, Credential, CurrentUser
from app.core.repository_protocols import IdentityClient, ProfileStore
from app.core.session_state import SessionStateHolder
from app.services.session_reconciler import SessionReconciler

logger = logging.getLogger(__name__)


class SessionFacade:
    """Translates user intent into identity-service calls and reconciler priming."""

    def __init__(
        self,
        identity: IdentityClient,
        store: ProfileStore,
        reconciler: SessionReconciler,
        state: SessionStateHolder,
    ):
        self._identity = identity
        self._store = store
        self._reconciler = reconciler
        self._state = state

    async def sign_in(self, credential: Credential) -> AuthSession:
        self._state.update(is_settling=True)
        try:
            session = await self._identity.sign_in(credential)
        except AuthError as e:
            logger.warning(
                f"Sign in rejected: {e.message}", extra={"error_code": e.code},
            )
            self._release_settling()
            raise
        logger.info("Sign in accepted", extra={"identity_id": session.identity_id})
        return session

    async def sign_up(
        self, display_name: str, credential: Credential,
    ) -> AuthSession | None:
        """Register a new account. Returns None when confirmation is pending."""
        # Stage first: SIGNED_IN may be delivered before sign_up returns
        self._reconciler.stage_registration(display_name)
        self._state.update(is_settling=True)
        try:
            session = await self._identity.sign_up(credential)
        except AuthError as e:
            logger.warning(
                f"Sign up rejected: {e.message}", extra={"error_code": e.code},
            )
            self._release_settling()
            raise
        if session is None:
            logger.info("Sign up accepted, awaiting account confirmation")
            self._release_settling()
        return session

    async def sign_out(self) -> None:
        try:
            await self._identity.sign_out()
        except AuthError as e:
            logger.warning(
                f"Remote sign out failed, clearing local session anyway: {e.message}",
                extra={"error_code": e.code},
            )
        self._reconciler.clear()

    async def update_profile_field(
        self, field: ProfileField | str, value: Any,
    ) -> CurrentUser | None:
        """Write one profile field through to the store, then merge it locally.

        Returns the merged user, or None when the session changed during the write.
        """
        try:
            profile_field = ProfileField(field)
        except ValueError:
            raise InvalidProfileFieldError(str(field))

        snapshot = self._state.snapshot
        user = snapshot.current_user
        if not snapshot.is_authenticated or user is None:
            raise NotSettledError("update_profile_field")

        try:
            await self._store.update(user.id, {profile_field.value: value})
        except StoreError as e:
            logger.warning(
                f"Profile update rejected: {e.message}",
                extra={"identity_id": user.id, "error_code": e.code},
            )
            raise

        current = self._state.snapshot.current_user
        if current is None or current.id != user.id:
            logger.info(
                "Session changed during profile update, not merging",
                extra={"identity_id": user.id},
            )
            return None

        self._reconciler.record_confirmed_write(user.id, profile_field, value)
        merged = replace(current, **{profile_field.user_attribute: value})
        self._state.update(current_user=merged)
        return merged

    def _release_settling(self) -> None:
        if not self._reconciler.in_flight:
            self._state.update(is_settling=False)
