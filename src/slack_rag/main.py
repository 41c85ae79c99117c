"""
Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and starts the Slack event worker.

Design Goals
------------
- Explicit dependency initialization order
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator

from fastapi import FastAPI

from .config import get_settings
from .core.errors import (
    ConfigurationError,
    ProtocolError,
    UpstreamError,
    configuration_error_handler,
    unhandled_exception_handler,
    upstream_error_handler,
)
from .core.logging import configure_logging
from .slack.queue import event_queue, process_events_worker_task

from .api import (
    health_routes,
    index_routes,
    ask_routes,
    slack_routes,
)
from .api.dependencies import get_event_handler


logger = logging.getLogger("slackrag.app")

REQUIRED_SETTINGS = (
    "openai_api_key",
    "turbopuffer_api_key",
    "slack_bot_token",
    "slack_signing_secret",
    "jwt_secret",
)


def _missing_settings() -> list[str]:
    settings = get_settings()
    return [name for name in REQUIRED_SETTINGS if not getattr(settings, name)]


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Startup: report missing credentials and start the event worker.
    Shutdown: cancel the worker.
    """
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info("Starting slack-rag (namespace=%s)", settings.turbopuffer_namespace)

    missing = _missing_settings()
    if missing:
        logger.warning("Missing configuration: %s", ", ".join(missing))

    worker = None
    try:
        handler = get_event_handler()
    except ConfigurationError as exc:
        logger.warning("Slack event worker disabled: %s", exc)
    else:
        worker = asyncio.create_task(process_events_worker_task(handler, event_queue))

    yield

    logger.info("Shutting down slack-rag")
    if worker is not None:
        worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await worker


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="slack-rag",
        version="1.0.0",
        lifespan=lifespan,
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(ConfigurationError, configuration_error_handler)
    app.add_exception_handler(UpstreamError, upstream_error_handler)
    app.add_exception_handler(ProtocolError, upstream_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(index_routes.router)
    app.include_router(ask_routes.router)
    app.include_router(slack_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn)
# ---------------------------------------------------------------------

app = create_app()
