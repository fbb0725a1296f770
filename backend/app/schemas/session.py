"""Session Schemas - Pydantic models with field-level validation for API boundaries.

Invariants:
    - Credentials: email must contain '@', password 6-72 chars (Supabase limits)
    - SignUpRequest.name: 1-80 chars, stripped, non-empty
    - ProfileFieldUpdate cross-validates value type against the field
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from app.core.profile import Clan, Credential
from app.core.program import Program
from app.core.session_state import SessionState


class SignInRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6, max_length=72)

    def to_credential(self) -> Credential:
        return Credential(email=self.email.strip().lower(), password=self.password)


class SignUpRequest(SignInRequest):
    name: str = Field(min_length=1, max_length=80)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty or whitespace")
        return v


class ProfileFieldUpdate(BaseModel):
    """Single-field profile write (clan selection, rename, progress)."""
    field: Literal["display_name", "clan_id", "total_days_completed"]
    value: str | int | None

    @model_validator(mode="after")
    def check_value_type(self) -> "ProfileFieldUpdate":
        if self.field == "total_days_completed":
            if not isinstance(self.value, int) or self.value < 0:
                raise ValueError("total_days_completed must be a non-negative integer")
        elif self.field == "display_name":
            if not isinstance(self.value, str) or not self.value.strip():
                raise ValueError("display_name must be a non-empty string")
            self.value = self.value.strip()
        elif self.value is not None and not isinstance(self.value, str):
            raise ValueError("clan_id must be a string or null")
        return self


class CurrentUserResponse(BaseModel):
    id: str
    name: str
    clan: str | None
    total_days_completed: int


class SessionErrorResponse(BaseModel):
    code: str
    message: str


class SessionStateResponse(BaseModel):
    """Snapshot of process-wide session state for the view layer."""
    current_user: CurrentUserResponse | None
    is_settling: bool
    phase: str
    identity_id: str | None
    error: SessionErrorResponse | None

    @classmethod
    def from_state(cls, state: SessionState) -> "SessionStateResponse":
        return cls.model_validate(state.to_dict())


class SignUpResponse(BaseModel):
    confirmation_required: bool
    state: SessionStateResponse


class ClanResponse(BaseModel):
    id: str
    name: str
    tagline: str | None = None
    description: str | None = None
    entry_ritual: str | None = None
    image_url: str | None = None
    theme_color: str | None = None

    @classmethod
    def from_clan(cls, clan: Clan) -> "ClanResponse":
        return cls(
            id=clan.id, name=clan.name, tagline=clan.tagline,
            description=clan.description, entry_ritual=clan.entry_ritual,
            image_url=clan.image_url, theme_color=clan.theme_color,
        )


class ProgramResponse(BaseModel):
    id: str
    name: str
    type: str
    description: str | None = None
    image_url: str | None = None
    duration_days: int
    tags: list[str]
    clan_id: str | None = None
    difficulty: str | None = None
    results: Any = None
    journey_summary: Any = None

    @classmethod
    def from_program(cls, program: Program) -> "ProgramResponse":
        return cls(
            id=program.id, name=program.name, type=program.type,
            description=program.description, image_url=program.image_url,
            duration_days=program.duration_days, tags=list(program.tags),
            clan_id=program.clan_id, difficulty=program.difficulty,
            results=program.results, journey_summary=program.journey_summary,
        )


class ProgramCatalogResponse(BaseModel):
    """Programmes split the way the paths screen shows them."""
    discovery: list[ProgramResponse]
    premium: list[ProgramResponse]
