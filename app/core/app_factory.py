"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
lifespan) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import health_router
from app.core.config import parse_csv, settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.rate_limit import (
    get_rate_limiter,
    rate_limit_middleware,
    reset_rate_limiter,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "rate_limit_store": settings.app.rate_limit_store,
            "window_ms": settings.app.rate_limit_window_ms,
            "max_requests": settings.app.rate_limit_max_requests,
        },
    )
    # Builds the limiter now so an unknown store backend fails at startup
    await get_rate_limiter()
    yield
    # Closes the Redis connection pool, if one was opened
    await reset_rate_limiter()
    logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title=settings.app.service_name,
        description=(
            "Habit tracking REST API gateway. Every request passes a per-client "
            "sliding-window rate limiter backed by Redis."
        ),
        version="1.0.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    # Middleware: the last registered runs first. Order from the outside:
    # request id, CORS (answers preflights), rate limiter
    app.middleware("http")(rate_limit_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_csv(settings.app.cors_origins) or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)

    return app
