"""FastAPI application factory for cacheaside.

Creates the application with:
- Product endpoint served through the lock-guarded cache-aside loader
- Health probes and a ping endpoint
- Prometheus metrics
- Consistent error responses (core failures map to 5xx)
- Lifecycle management for Redis and database connections
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from cacheaside.api.errors import (
    ApiError,
    api_exception_handler,
    cacheaside_exception_handler,
    generic_exception_handler,
)
from cacheaside.api.middleware import CorrelationMiddleware
from cacheaside.api.routers import health, products, system
from cacheaside.api.routers import metrics as metrics_router
from cacheaside.cache.redis import close_redis, get_redis
from cacheaside.config import settings
from cacheaside.errors import CacheAsideError
from cacheaside.observability import configure_logging
from cacheaside.observability.metrics import MetricsMiddleware, get_metrics
from cacheaside.persistence.db import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle.

    On startup: configure logging, initialize metrics, create the products
    table, open the Redis pool. On shutdown: close Redis and the database.
    """
    configure_logging(
        json_format=settings.env != "dev",
        level=settings.log_level,
    )
    get_metrics()

    logger.info(f"Starting {settings.app_name} ({settings.env})")
    await init_db()
    await get_redis()
    logger.info(f"{settings.app_name} startup complete")

    yield

    logger.info(f"Shutting down {settings.app_name}")
    await close_redis()
    await close_db()
    logger.info(f"{settings.app_name} shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="cacheaside",
        description="Lock-guarded cache-aside product service",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    # Last added runs outermost
    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)

    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(
        CacheAsideError, cast(ExceptionHandler, cacheaside_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    app.include_router(system.router)
    app.include_router(products.router)

    if settings.enable_metrics:
        app.include_router(metrics_router.router)

    return app
