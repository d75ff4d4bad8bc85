"""
Exception handlers turning status update failures into JSON error responses.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status as H

from support.constants import APP_NAME
from support.errors import StatusUpdateError


logger = logging.getLogger(APP_NAME)


def register_error_handlers(app: FastAPI):
    @app.exception_handler(StatusUpdateError)
    async def status_update_exc_handler(request: Request, exc: StatusUpdateError):
        logger.warning(
            "%s path=%s error=%s",
            type(exc).__name__, request.url.path, exc
        )
        return JSONResponse(
            status_code=H.HTTP_400_BAD_REQUEST,
            content={"error": str(exc) or type(exc).__name__},
        )
