"""Session Routes - the view-layer surface of the process-wide session state.

Invariants:
    - Routes never mutate SessionState directly; they call SessionFacade
    - Explicit-call errors (AuthError, StoreError, NotSettledError) propagate to the
      global ClanSyncError handler as structured JSON
    - sign-in / sign-up return the snapshot at call completion; reconciliation may
      still be settling (is_settling=true), the stream delivers the outcome

Design Decisions:
    - SSE stream pushes a full snapshot on every replace; clients never merge deltas
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from app.core.session_state import SessionState
from app.schemas.session import (
    CurrentUserResponse,
    ProfileFieldUpdate,
    SessionStateResponse,
    SignInRequest,
    SignUpRequest,
    SignUpResponse,
)
from app.services.session_runtime import SessionRuntime, get_session_runtime

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/session", tags=["session"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
    "Connection": "keep-alive",
}


def sse_line(state: SessionState) -> str:
    """Format one snapshot as an SSE `state` event."""
    payload = SessionStateResponse.from_state(state).model_dump(mode="json")
    return f"event: state\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


@router.get("", response_model=SessionStateResponse)
async def get_state(runtime: SessionRuntime = Depends(get_session_runtime)):
    return SessionStateResponse.from_state(runtime.state.snapshot)


@router.post("/sign-in", response_model=SessionStateResponse)
async def sign_in(
    body: SignInRequest, runtime: SessionRuntime = Depends(get_session_runtime),
):
    await runtime.facade.sign_in(body.to_credential())
    return SessionStateResponse.from_state(runtime.state.snapshot)


@router.post(
    "/sign-up", response_model=SignUpResponse,
    status_code=status.HTTP_201_CREATED,
)
async def sign_up(
    body: SignUpRequest, runtime: SessionRuntime = Depends(get_session_runtime),
):
    session = await runtime.facade.sign_up(body.name, body.to_credential())
    return SignUpResponse(
        confirmation_required=session is None,
        state=SessionStateResponse.from_state(runtime.state.snapshot),
    )


@router.post("/sign-out", response_model=SessionStateResponse)
async def sign_out(runtime: SessionRuntime = Depends(get_session_runtime)):
    await runtime.facade.sign_out()
    return SessionStateResponse.from_state(runtime.state.snapshot)


@router.patch("/profile", response_model=CurrentUserResponse | None)
async def update_profile(
    body: ProfileFieldUpdate,
    runtime: SessionRuntime = Depends(get_session_runtime),
):
    user = await runtime.facade.update_profile_field(body.field, body.value)
    if user is None:
        return None
    return CurrentUserResponse(
        id=user.id, name=user.name, clan=user.clan,
        total_days_completed=user.total_days_completed,
    )


@router.get("/stream")
async def stream_state(runtime: SessionRuntime = Depends(get_session_runtime)):
    """SSE stream: current snapshot first, then one event per state replace."""
    queue: asyncio.Queue[SessionState] = asyncio.Queue()
    unsubscribe = runtime.state.subscribe(queue.put_nowait)

    async def event_generator():
        try:
            yield sse_line(runtime.state.snapshot)
            while True:
                yield sse_line(await queue.get())
        except asyncio.CancelledError:
            logger.info("Client disconnected from session stream")
        finally:
            unsubscribe()

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
