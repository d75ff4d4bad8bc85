"""
Job Status Listener
-------------------
Accepts job status updates from job-execution agents over HTTP and republishes
them as canonical update messages on the job updates exchange, so the agents
never need broker credentials.

Routers:
    - status: POST /{uuid}/status, POST /status/batch
    - debug: GET /debug/vars

Middleware:
    - ErrorMiddleware: JSON 500 for anything unhandled
    - EnhancedLoggingMiddleware: request/response logging and tracing headers

App State:
    - settings: ServiceSettings (loaded from the environment when not preset)
    - job_update_publisher: the process-wide JobUpdatePublisher, connected at startup

To run:
    python main.py --config /etc/job-status-listener/service.env
    uvicorn main:app --port 60000
"""
import os
import argparse
import logging
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI

from custom_middleware.error_middleware import ErrorMiddleware
from custom_middleware.logging_middleware import EnhancedLoggingMiddleware
from error_handlers import register_error_handlers
from logging_management import LoggingManager
from messaging_management.broker_connections import create_broker_connection
from messaging_management.job_update_publisher import JobUpdatePublisher
from needs.ResolveNeedsManager import ResolveNeedsManager
from routers import debug_router, status_router
from support.constants import APP_NAME, LOG_FILE_PATH
from support.errors import ConfigurationError, ReconnectError
from support.settings import load_settings


logger = LoggingManager.setup_logging(
    service_name=APP_NAME,
    log_file_path=os.getenv("LOG_FILE_PATH", LOG_FILE_PATH),
    log_level=logging.INFO,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Connect the publisher before serving traffic and close it on shutdown.
    A configuration or broker failure here aborts startup.
    """
    logger.info("Starting up the %s service.", APP_NAME)

    settings = getattr(app.state, "settings", None)
    if settings is None:
        try:
            settings = load_settings()
        except ConfigurationError as e:
            logger.critical("Unable to load configuration: %s", e)
            raise
        app.state.settings = settings

    connection_factory = getattr(app.state, "connection_factory", create_broker_connection)
    publisher = JobUpdatePublisher.from_settings(settings, connection_factory=connection_factory)
    try:
        await publisher.connect()
    except (ReconnectError, ConfigurationError) as e:
        logger.critical("Unable to connect to the broker: %s", e)
        raise

    app.state.job_update_publisher = publisher
    ResolveNeedsManager.resolve_needs(status_router.views_manager, publisher)

    try:
        yield
    finally:
        logger.info("Shutting down the %s service.", APP_NAME)
        await publisher.close()
        app.state.job_update_publisher = None
        status_router.views_manager.job_update_publisher = None


# FastAPI app setup
app = FastAPI(title=APP_NAME, version="1.0.0", lifespan=lifespan)


# Middleware
app.add_middleware(ErrorMiddleware)
app.add_middleware(EnhancedLoggingMiddleware, service_name=APP_NAME)
register_error_handlers(app)


# Include routers
app.include_router(debug_router.router)
app.include_router(status_router.router)


# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Service status
    """
    return {"status": "ok"}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Republish job status updates posted over HTTP onto the job updates exchange.",
    )
    parser.add_argument("--config", default=None, help="Path to the configuration (dotenv) file.")
    parser.add_argument("--host", default=None, help="Address to listen on (overrides LISTEN_HOST).")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (overrides LISTEN_PORT).")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    try:
        settings = load_settings(args.config)
    except ConfigurationError as e:
        logger.critical("Unable to load configuration: %s", e)
        raise SystemExit(1) from e

    LoggingManager.setup_from_settings(APP_NAME, settings)
    app.state.settings = settings

    host = args.host or settings.listen_host
    port = args.port or settings.listen_port
    logger.info("Listening on %s:%s", host, port)
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower(), log_config=None)


if __name__ == "__main__":
    main()
