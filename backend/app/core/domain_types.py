"""Domain Types - rich types that replace bare primitives across the codebase.

Invariants:
    - IdentityId and ClanId wrap the ids issued by external systems (opaque strings)
    - Generation is monotonic per process, never reused
    - All valid states encoded as Enums - no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType


# --- Identity Types -----------------------------------------------------------

IdentityId = NewType("IdentityId", str)
ClanId = NewType("ClanId", str)


# --- Value Types --------------------------------------------------------------

Generation = NewType("Generation", int)


# --- Enums --------------------------------------------------------------------

class AuthEvent(str, Enum):
    """Session-change notifications consumed by the reconciler."""
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


class SessionPhase(str, Enum):
    """Reconciler states. SETTLED, UNAUTHENTICATED and FAILED are resting states."""
    IDLE = "idle"
    AWAITING_PROFILE = "awaiting_profile"
    CREATING_PROFILE = "creating_profile"
    SETTLED = "settled"
    UNAUTHENTICATED = "unauthenticated"
    FAILED = "failed"


class ProfileField(str, Enum):
    """Profile columns writable through update_profile_field."""
    DISPLAY_NAME = "display_name"
    CLAN_ID = "clan_id"
    TOTAL_DAYS_COMPLETED = "total_days_completed"

    @property
    def user_attribute(self) -> str:
        """Name of the matching CurrentUser attribute."""
        return _USER_ATTRIBUTES[self]


_USER_ATTRIBUTES = {
    ProfileField.DISPLAY_NAME: "name",
    ProfileField.CLAN_ID: "clan",
    ProfileField.TOTAL_DAYS_COMPLETED: "total_days_completed",
}
