"""Shared HTTP response helpers."""

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from quiz_sync.domain.errors import SyncError

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "POST, GET, OPTIONS",
    "Access-Control-Max-Age": "86400",
}


def preflight_response() -> Response:
    """Fixed answer to CORS pre-flight requests."""
    return Response(status_code=200, headers=PREFLIGHT_HEADERS)


def json_response(content: dict[str, object], status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=CORS_HEADERS)


async def sync_error_handler(_request: Request, exc: SyncError) -> JSONResponse:
    """Render a ``SyncError`` as ``{error, code, ...}`` with its status."""
    return json_response(exc.to_body(), status_code=exc.status_code)
