"""Profile Model - domain records shared by the reconciler, fetcher and facade.

Invariants:
    - ProfileRecord mirrors one `profiles` row; at most one exists per identity
    - CurrentUser is a projection of ProfileRecord, never built from partial data
    - All records are frozen: updates produce new instances (dataclasses.replace)
"""

from dataclasses import dataclass

from app.core.domain_types import ClanId, IdentityId


@dataclass(frozen=True)
class Credential:
    """Email/password pair handed to the identity service."""
    email: str
    password: str

    def __repr__(self) -> str:
        return f"Credential(email={self.email!r}, password='***')"


@dataclass(frozen=True)
class AuthSession:
    """Session issued by the identity service, reduced to what the core reads."""
    identity_id: IdentityId
    email: str | None = None


@dataclass(frozen=True)
class PendingRegistration:
    """Display name staged by sign_up before the identity is confirmed."""
    display_name: str


@dataclass(frozen=True)
class ProfileRecord:
    id: IdentityId
    display_name: str
    clan_id: ClanId | None = None
    total_days_completed: int = 0

    @classmethod
    def for_registration(
        cls, identity_id: IdentityId, registration: PendingRegistration,
    ) -> "ProfileRecord":
        """Initial row inserted after a fresh sign-up."""
        return cls(
            id=identity_id,
            display_name=registration.display_name,
            clan_id=None,
            total_days_completed=0,
        )


@dataclass(frozen=True)
class CurrentUser:
    """UI-facing user, projected from ProfileRecord."""
    id: IdentityId
    name: str
    clan: ClanId | None
    total_days_completed: int

    @classmethod
    def from_record(cls, record: ProfileRecord) -> "CurrentUser":
        return cls(
            id=record.id,
            name=record.display_name,
            clan=record.clan_id,
            total_days_completed=record.total_days_completed,
        )


@dataclass(frozen=True)
class Clan:
    """Clan offered during onboarding."""
    id: ClanId
    name: str
    tagline: str | None = None
    description: str | None = None
    entry_ritual: str | None = None
    image_url: str | None = None
    theme_color: str | None = None
