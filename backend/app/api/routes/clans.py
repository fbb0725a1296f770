"""Clan Routes - clan catalog for the onboarding screen."""

from fastapi import APIRouter, Depends

from app.core.errors import SessionUnavailableError
from app.schemas.session import ClanResponse
from app.services.session_runtime import SessionRuntime, get_session_runtime

router = APIRouter(prefix="/api/v1/clans", tags=["clans"])


@router.get("", response_model=list[ClanResponse])
async def list_clans(runtime: SessionRuntime = Depends(get_session_runtime)):
    if runtime.clans is None:
        raise SessionUnavailableError()
    clans = await runtime.clans.list_clans()
    return [ClanResponse.from_clan(c) for c in clans]
