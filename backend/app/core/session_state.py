"""Session State - process-wide session snapshot and its replace-only container.

Invariants:
    - SessionState is frozen; every mutation is a whole-snapshot replace
    - Listeners run synchronously after the replace, in subscription order
    - current_user, when present, belongs to identity_id
    - is_settling is False in every resting phase (SETTLED, UNAUTHENTICATED, FAILED)

Design Decisions:
    - Subscribe/notify instead of a module-level global: consumers (SSE stream,
      tests) observe snapshots, they never mutate fields
    - A listener that raises is logged and skipped so one consumer cannot block others
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from app.core.domain_types import IdentityId, SessionPhase
from app.core.errors import SessionError
from app.core.profile import CurrentUser

logger = logging.getLogger(__name__)

StateListener = Callable[["SessionState"], None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class SessionState:
    """Snapshot exposed to the view layer."""

    current_user: CurrentUser | None = None
    is_settling: bool = True
    phase: SessionPhase = SessionPhase.IDLE
    # Identity the reconciler is working on (or settled for)
    identity_id: IdentityId | None = None
    error: SessionError | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.phase is SessionPhase.SETTLED and self.current_user is not None

    def settling(self, phase: SessionPhase, identity_id: IdentityId) -> "SessionState":
        """Transient state for a reconciliation of identity_id.

        Keeps current_user only when it already belongs to identity_id.
        """
        user = self.current_user
        if user is not None and user.id != identity_id:
            user = None
        return SessionState(
            current_user=user, is_settling=True, phase=phase,
            identity_id=identity_id, error=None,
        )

    @classmethod
    def settled(cls, user: CurrentUser) -> "SessionState":
        return cls(
            current_user=user, is_settling=False,
            phase=SessionPhase.SETTLED, identity_id=user.id,
        )

    @classmethod
    def unauthenticated(cls) -> "SessionState":
        return cls(
            current_user=None, is_settling=False,
            phase=SessionPhase.UNAUTHENTICATED,
        )

    @classmethod
    def failed(
        cls, error: SessionError, identity_id: IdentityId | None = None,
    ) -> "SessionState":
        return cls(
            current_user=None, is_settling=False, phase=SessionPhase.FAILED,
            identity_id=identity_id, error=error,
        )

    def to_dict(self) -> dict:
        user = self.current_user
        return {
            "current_user": None if user is None else {
                "id": user.id,
                "name": user.name,
                "clan": user.clan,
                "total_days_completed": user.total_days_completed,
            },
            "is_settling": self.is_settling,
            "phase": self.phase.value,
            "identity_id": self.identity_id,
            "error": None if self.error is None else {
                "code": self.error.code, "message": self.error.message,
            },
        }


class SessionStateHolder:
    """Owns the single SessionState instance and notifies subscribers."""

    def __init__(self, initial: SessionState | None = None):
        self._state = initial or SessionState()
        self._listeners: list[StateListener] = []

    @property
    def snapshot(self) -> SessionState:
        return self._state

    def replace(self, state: SessionState) -> SessionState:
        """Swap in a new snapshot and notify listeners. Returns the new snapshot."""
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.error("Session state listener failed", exc_info=True)
        return state

    def update(self, **changes) -> SessionState:
        """Replace with a copy of the current snapshot carrying `changes`."""
        return self.replace(replace(self._state, **changes))

    def subscribe(self, listener: StateListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
