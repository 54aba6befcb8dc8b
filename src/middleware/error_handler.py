"""
Error handling middleware for the webhook API.

Every request gets a short request id (``request.state.request_id`` and the
``X-Request-ID`` response header). Exceptions that escape an endpoint are
logged with that id and answered with a generic JSON 500 body, so nothing
about the failure leaks to the caller.
"""

import logging
import uuid
from typing import Callable, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns unhandled endpoint exceptions into JSON 500 responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = new_request_id()
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except HTTPException:
            raise
        except Exception as e:
            logger.error(
                f"Unhandled exception [{request_id}] on {request.method} "
                f"{request.url.path}: {type(e).__name__}: {e}",
                exc_info=True,
            )
            response = JSONResponse(
                status_code=500, content=get_error_response(request_id)
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


def get_error_response(request_id: Optional[str] = None) -> dict:
    """Body returned for unhandled exceptions."""
    body = {"error": {"message": "Internal server error"}}
    if request_id:
        body["request_id"] = request_id
    return body
