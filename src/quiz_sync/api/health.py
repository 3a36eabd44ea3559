"""Health endpoint."""

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from quiz_sync.api.responses import json_response, preflight_response

if TYPE_CHECKING:
    from quiz_sync.containers import AppContainer

router = APIRouter(tags=["health"])


@router.options("/health")
async def health_preflight() -> Response:
    return preflight_response()


@router.api_route("/health", methods=["GET", "POST"])
async def health(request: Request) -> JSONResponse:
    """Report store connectivity.

    Degraded health is reported in the body with a 200 so monitors can tell a
    failing dependency from a failing check.
    """
    container: AppContainer = request.app.state.container
    status = await container.health_monitor.probe()
    return json_response(status.to_body())
