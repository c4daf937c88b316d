"""Response classes for federation endpoints."""

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from accord.core.errors import FederationError
from accord.schemas.activitypub import ACTIVITY_JSON


class ActivityJSONResponse(JSONResponse):
    """JSON response served with the ActivityPub media type."""

    media_type = f"{ACTIVITY_JSON}; charset=utf-8"


def error_body(message: str) -> dict[str, Any]:
    return {"message": message, "code": 0}


async def federation_error_handler(request: Request, exc: FederationError) -> ActivityJSONResponse:
    """Render a `FederationError` as ``{"message", "code"}`` with its status code."""
    return ActivityJSONResponse(status_code=exc.status_code, content=error_body(str(exc)))
