"""Session Runtime - process-wide wiring and lifecycle of the session engine.

Invariants:
    - One runtime per process; start() subscribes BEFORE booting so no notification
      delivered during boot is lost
    - aclose() unsubscribes and cancels in-flight reconciliation
    - get_session_runtime() raises SessionUnavailableError until init_session_runtime()

Design Decisions:
    - Module-level singleton initialized by the FastAPI lifespan, same shape as
      infrastructure/database.py db_manager
"""

import logging
from collections.abc import Callable

from app.core.errors import SessionUnavailableError
from app.core.repository_protocols import (
    ClanCatalog,
    IdentityClient,
    ProfileStore,
    ProgramCatalog,
)
from app.core.session_state import SessionStateHolder
from app.services.profile_fetcher import (
    PROFILE_FETCH_POLICY,
    ProfileFetcher,
    RetryPolicy,
    Sleep,
)
from app.services.session_facade import SessionFacade
from app.services.session_reconciler import SessionReconciler

logger = logging.getLogger(__name__)


class SessionRuntime:
    """Owns the state holder, reconciler, facade, catalogs and the notification subscription."""

    def __init__(
        self,
        identity: IdentityClient,
        store: ProfileStore,
        clans: ClanCatalog | None = None,
        programs: ProgramCatalog | None = None,
        policy: RetryPolicy = PROFILE_FETCH_POLICY,
        sleep: Sleep | None = None,
    ):
        self.state = SessionStateHolder()
        fetcher = (
            ProfileFetcher(store, policy) if sleep is None
            else ProfileFetcher(store, policy, sleep=sleep)
        )
        self.reconciler = SessionReconciler(identity, store, fetcher, self.state)
        self.facade = SessionFacade(identity, store, self.reconciler, self.state)
        self.clans = clans
        self.programs = programs
        self._identity = identity
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        if self.started:
            return
        self._unsubscribe = self._identity.subscribe(self.reconciler.handle_event)
        logger.info("Session runtime subscribed to identity notifications")
        await self.reconciler.boot()

    async def aclose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        await self.reconciler.aclose()
        logger.info("Session runtime closed")


# Singleton (initialized on startup)
session_runtime: SessionRuntime | None = None


def init_session_runtime(runtime: SessionRuntime) -> SessionRuntime:
    global session_runtime
    session_runtime = runtime
    return runtime


def get_session_runtime() -> SessionRuntime:
    """FastAPI dependency for the process-wide session runtime."""
    if session_runtime is None:
        raise SessionUnavailableError()
    return session_runtime
