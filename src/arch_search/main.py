"""
Search API Application Entry Point

Defines the FastAPI application, registers routers, the global exception
handler and per-IP rate limiting, and owns the lifetime of shared
connections (Redis client, database engine).

Run with::

    uvicorn arch_search.main:app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from . import __version__
from .api import health_routes, search_routes
from .config import settings
from .core.errors import unhandled_exception_handler
from .core.logging import configure_logging
from .core.rate_limiting import setup_rate_limiting
from .db.session import async_engine, init_models
from .search.cache import create_redis_client


logger = logging.getLogger("arch_search.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Open shared clients on startup and release them on shutdown.

    Provider credentials are checked up front so a misconfigured server
    fails at boot rather than on the first search. Missing tables are
    created; an unreachable database only degrades the analytics routes.
    """
    configure_logging(settings.log_level)
    logger.info("Starting arch-search API")
    settings.validate_context_api()

    try:
        await init_models()
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Could not prepare database schema: %s", exc)

    app.state.redis = create_redis_client()
    try:
        yield
    finally:
        logger.info("Shutting down arch-search API")
        await app.state.redis.aclose()
        app.state.redis = None
        await async_engine.dispose()


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests instantiate the app through this factory and replace the lifespan
    and dependencies as needed.
    """
    app = FastAPI(
        title="arch-search",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.redis = None

    app.add_exception_handler(Exception, unhandled_exception_handler)
    setup_rate_limiting(app)

    app.include_router(health_routes.router)
    app.include_router(search_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
