"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
rate limiter lifecycle) to improve testability.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.routes import health_router, rate_limit_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import get_rate_limiter, shutdown_rate_limiter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Build the limiter up front so the sweeper runs even with zero traffic
    if settings.app.rate_limit_enabled:
        get_rate_limiter()
    logger.info("app.startup", extra={"app_env": settings.app_env})
    try:
        yield
    finally:
        shutdown_rate_limiter()
        logger.info("app.shutdown")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Rate Limit Gateway API",
        description=(
            "Admission control per client identity: sliding-window quotas with "
            "X-RateLimit-* headers, HTTP 429 with Retry-After when exceeded, and "
            "a read-only usage endpoint."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(rate_limit_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
