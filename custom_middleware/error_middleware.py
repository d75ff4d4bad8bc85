"""
Last-resort handler for faults that escape the routes.

Client mistakes and broker trouble are answered by the handlers in
``error_handlers``; anything reaching this middleware is a server bug, so it is
logged with its traceback and answered with a 500 in the same ``{"error": ...}``
shape, carrying the request id for correlation with the logs.
"""
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from support.constants import APP_NAME


logger = logging.getLogger(APP_NAME)

INTERNAL_ERROR_MESSAGE = "Internal server error"


class ErrorMiddleware(BaseHTTPMiddleware):
    """Turns unhandled exceptions into a 500 JSON response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", None)
            logger.error(
                "Unhandled %s while serving %s %s [%s]: %s",
                type(e).__name__,
                request.method,
                request.url.path,
                request_id,
                e,
                exc_info=True,
            )
            return JSONResponse(
                status_code=500,
                content={"error": INTERNAL_ERROR_MESSAGE, "request_id": request_id},
            )
