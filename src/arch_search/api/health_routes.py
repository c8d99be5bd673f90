import logging
from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .dependencies import get_context_service, get_search_cache
from .models import HealthResponse
from ..config import settings
from ..context import ContextAPIError, ContextService
from ..db.session import get_async_session
from ..search.cache import SearchCache

logger = logging.getLogger("arch_search.api.health")

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    cache: Annotated[SearchCache, Depends(get_search_cache)],
    context_service: Annotated[ContextService, Depends(get_context_service)],
) -> HealthResponse:
    services = {}

    try:
        await session.execute(text("SELECT 1"))
        services["postgresql"] = "healthy"
    except (SQLAlchemyError, OSError) as exc:
        logger.warning("PostgreSQL health check failed: %s", exc)
        await session.rollback()
        services["postgresql"] = "unhealthy"

    if not cache.enabled:
        services["redis"] = "disabled"
    elif await cache.ping():
        services["redis"] = "healthy"
    else:
        services["redis"] = "unhealthy"

    if not settings.context_api_base_url:
        services["context_provider"] = "disabled"
    else:
        try:
            await context_service.ping()
            services["context_provider"] = "healthy"
        except ContextAPIError as exc:
            logger.warning("Context provider health check failed: %s", exc)
            services["context_provider"] = "unhealthy"

    degraded = "unhealthy" in services.values()
    return HealthResponse(
        status="degraded" if degraded else "ok",
        service=request.app.title,
        timestamp=datetime.now(timezone.utc),
        services=services,
    )
