"""HydroGuard API sub-routers.

Shared helpers and router modules for the FastAPI application.
"""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from hydroguard.log import logger


def error_response(status_code: int, message: str, detail: str | None = None, **extra: object) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict = {"error": message}
    if detail:
        body["detail"] = detail
    body.update(extra)
    return JSONResponse(status_code=status_code, content=body)


async def read_json_body(request: Request) -> dict:
    """Parse the request body as a JSON object. Anything else becomes {}."""
    try:
        payload = await request.json()
    except Exception:
        logger.debug("Request body on %s is not valid JSON", request.url.path)
        return {}
    return payload if isinstance(payload, dict) else {}
