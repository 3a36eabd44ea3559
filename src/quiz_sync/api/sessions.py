"""Session creation and lookup endpoints."""

from typing import TYPE_CHECKING

from fastapi import APIRouter, Header, Request, status
from fastapi.responses import JSONResponse

from quiz_sync.api.responses import json_response
from quiz_sync.domain.errors import SessionNotFound

if TYPE_CHECKING:
    from quiz_sync.containers import AppContainer

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("")
async def create_session(
    request: Request, authorization: str | None = Header(default=None)
) -> JSONResponse:
    """Create a session hosted by the caller."""
    container: AppContainer = request.app.state.container
    auth = container.authenticate(authorization)
    identity = auth.require_identity()
    session = container.session_creator(auth.store).create(identity.user_id)
    return json_response(session.summary(), status_code=status.HTTP_201_CREATED)


@router.get("/{session_id}")
async def get_session(
    session_id: str, request: Request, authorization: str | None = Header(default=None)
) -> JSONResponse:
    """Return the authoritative session, as a client poll would see it."""
    container: AppContainer = request.app.state.container
    auth = container.authenticate(authorization)
    auth.require_identity()
    session = auth.store.get_session(session_id)
    if session is None:
        raise SessionNotFound("Session not found", extra={"sessionId": session_id})
    return json_response(session.summary())
