"""Program Routes - programme catalog for the paths screen.

Invariants:
    - Programmes are returned split into discovery and premium lists; other
      types are not listed
    - tags are always a list of strings
"""

from fastapi import APIRouter, Depends

from app.core.errors import SessionUnavailableError
from app.core.program import ProgramType, split_programs
from app.schemas.session import ProgramCatalogResponse, ProgramResponse
from app.services.session_runtime import SessionRuntime, get_session_runtime

router = APIRouter(prefix="/api/v1/programs", tags=["programs"])


@router.get("", response_model=ProgramCatalogResponse)
async def list_programs(runtime: SessionRuntime = Depends(get_session_runtime)):
    if runtime.programs is None:
        raise SessionUnavailableError()
    split = split_programs(await runtime.programs.list_programs())
    return ProgramCatalogResponse(
        discovery=[ProgramResponse.from_program(p) for p in split[ProgramType.DISCOVERY]],
        premium=[ProgramResponse.from_program(p) for p in split[ProgramType.PREMIUM]],
    )
