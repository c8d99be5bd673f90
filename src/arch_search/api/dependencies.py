from functools import lru_cache

from fastapi import Depends, Request

from ..context import ContextService
from ..search.analytics import AnalyticsRecorder
from ..search.cache import SearchCache
from ..search.service import SearchService


@lru_cache
def get_context_service() -> ContextService:
    return ContextService()


@lru_cache
def get_analytics() -> AnalyticsRecorder:
    return AnalyticsRecorder()


def get_search_cache(request: Request) -> SearchCache:
    # Redis client is opened in the app lifespan; absent means caching is off
    return SearchCache(getattr(request.app.state, "redis", None))


def get_search_service(
    context_service: ContextService = Depends(get_context_service),
    cache: SearchCache = Depends(get_search_cache),
) -> SearchService:
    return SearchService(context_service=context_service, cache=cache)
