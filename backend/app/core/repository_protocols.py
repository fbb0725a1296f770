"""Boundary Protocols - contracts between core and the external collaborators.

Invariants:
    - Core NEVER imports from shell - dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Failures cross the boundary as AuthError / StoreError (core/errors.py), never
      as library exceptions

Design Decisions:
    - Protocol over ABC: structural subtyping, adapters and test fakes need no base class
    - subscribe() takes a synchronous listener: identity SDKs deliver callbacks
      synchronously, the reconciler schedules its own async work
"""

from collections.abc import Callable
from typing import Any, Protocol

from app.core.domain_types import AuthEvent, IdentityId
from app.core.profile import AuthSession, Clan, Credential, ProfileRecord
from app.core.program import Program

AuthListener = Callable[[AuthEvent, AuthSession | None], None]
Unsubscribe = Callable[[], None]


class IdentityClient(Protocol):
    """Contract for the identity service (credential checks, session feed)."""
    async def get_current_session(self) -> AuthSession | None: ...
    def subscribe(self, on_change: AuthListener) -> Unsubscribe: ...
    async def sign_in(self, credential: Credential) -> AuthSession: ...
    async def sign_up(self, credential: Credential) -> AuthSession | None: ...
    async def sign_out(self) -> None: ...


class ProfileStore(Protocol):
    """Contract for the keyed profile store - one row per identity."""
    async def insert(self, record: ProfileRecord) -> None: ...
    async def find_by_id(self, identity_id: IdentityId) -> ProfileRecord | None: ...
    async def update(
        self, identity_id: IdentityId, patch: dict[str, Any],
    ) -> None: ...


class ClanCatalog(Protocol):
    """Contract for the read-only clan list used by onboarding."""
    async def list_clans(self) -> list[Clan]: ...


class ProgramCatalog(Protocol):
    """Contract for the read-only programme list of the paths screen."""
    async def list_programs(self) -> list[Program]: ...
