"""Game-event endpoints, current and retired."""

import json
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Header, Request
from fastapi.responses import JSONResponse, Response

from quiz_sync.api.responses import json_response, preflight_response
from quiz_sync.services.authorization import (
    EventChannel,
    EventRequest,
    deprecated_endpoint_error,
)

if TYPE_CHECKING:
    from quiz_sync.containers import AppContainer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["events"])

_NON_PREFLIGHT_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


@router.options("/game-event")
async def game_event_preflight() -> Response:
    return preflight_response()


@router.api_route("/game-event", methods=_NON_PREFLIGHT_METHODS)
async def game_event(
    request: Request, authorization: str | None = Header(default=None)
) -> JSONResponse:
    """Authorize and apply one game event."""
    container: AppContainer = request.app.state.container
    event_request = EventRequest(
        method=request.method,
        channel=EventChannel.CURRENT,
        body=_parse_body(await request.body()),
    )
    container.gate.admit(event_request)
    auth = container.authenticate(authorization)
    authorized = container.gate.authorize(event_request, auth)
    session = container.reconciler(authorized.store).apply(authorized)
    return json_response({"success": True, "session": session.summary()})


@router.options("/game-event-deprecated")
async def deprecated_game_event_preflight() -> Response:
    return preflight_response()


@router.api_route("/game-event-deprecated", methods=_NON_PREFLIGHT_METHODS)
async def deprecated_game_event() -> JSONResponse:
    """Retired endpoint; answers 410 without reading the request."""
    raise deprecated_endpoint_error()


def _parse_body(raw: bytes) -> dict[str, object] | None:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None
