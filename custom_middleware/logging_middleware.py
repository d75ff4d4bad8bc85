"""
Request/response logging for the status endpoints.

Every response is tagged with a short request id, its processing time and the
service name; job agents can quote the id when an update goes missing.
"""
import time
import logging
from typing import Callable
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from user_agents import parse


def _new_request_id() -> str:
    return uuid.uuid4().hex[:8]


def _describe_client(request: Request, with_user_agent: bool) -> dict:
    client = {"client_ip": request.client.host if request.client else "unknown"}
    if with_user_agent:
        # Agents report with plain HTTP clients; the family still tells them apart
        user_agent = parse(request.headers.get("user-agent", ""))
        client["user_agent"] = user_agent.browser.family
        client["user_agent_os"] = user_agent.os.family
    return client


class EnhancedLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each exchange on the service logger and adds tracing headers."""

    def __init__(self, app, service_name: str, enable_user_agent: bool = True):
        super().__init__(app)
        self.service_name = service_name
        self.enable_user_agent = enable_user_agent
        self.logger = logging.getLogger(service_name)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _new_request_id()
        request.state.request_id = request_id
        context = {
            "request_id": request_id,
            "service": self.service_name,
            "method": request.method,
            "path": request.url.path,
        }
        self.logger.debug(
            "Request received",
            extra={"request_data": {**context, **_describe_client(request, self.enable_user_agent)}},
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "%s %s failed with %s",
                request.method,
                request.url.path,
                type(e).__name__,
                extra={"error_data": {**context, "elapsed": round(time.perf_counter() - started, 3)}},
                exc_info=True,
            )
            raise
        elapsed = time.perf_counter() - started

        level = logging.INFO if response.status_code < 400 else logging.WARNING
        self.logger.log(
            level,
            "%s %s -> %s", request.method, request.url.path, response.status_code,
            extra={"response_data": {**context, "status_code": response.status_code,
                                     "process_time": round(elapsed, 3)}},
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{elapsed:.3f}"
        response.headers["X-Service"] = self.service_name
        return response
