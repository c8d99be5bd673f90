"""
Search Service

Query pipeline behind ``POST /api/v1/search``:

    cache lookup -> preprocess -> provider search (bounded) -> rank -> cache store

Provider failures and timeouts surface as ``SearchUnavailableError``;
cache problems never fail a search.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..config import settings
from ..context import (
    ContextAPIError,
    ContextService,
    RetryCancelledError,
    RetryExhaustedError,
)
from .cache import SearchCache
from .models import SearchResult
from .query import preprocess_query
from .ranking import rank

logger = logging.getLogger("arch_search.search")

_PROVIDER_ERRORS = (ContextAPIError, RetryExhaustedError, RetryCancelledError)


class SearchUnavailableError(RuntimeError):
    """Raised when the context provider cannot answer a search."""


class SearchService:
    def __init__(
        self,
        context_service: Optional[ContextService] = None,
        cache: Optional[SearchCache] = None,
        apply_filter: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.context_service = context_service or ContextService()
        self.cache = cache or SearchCache(None)
        self.apply_filter = (
            apply_filter if apply_filter is not None else settings.search_filter_results
        )
        self.timeout = timeout if timeout is not None else settings.search_request_timeout

    async def search(self, query: str) -> List[SearchResult]:
        """
        Return at most 10 ranked results for ``query``.

        Raises
        ------
        SearchUnavailableError
            If the provider fails or does not answer within ``timeout``.
        """
        cached = await self.cache.get(query)
        if cached is not None:
            logger.debug("Search results served from cache")
            return cached

        processed = preprocess_query(query)
        logger.info("Searching: original=%r processed=%r", query, processed)

        try:
            raw = await asyncio.wait_for(
                self.context_service.search_for_solution(processed),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SearchUnavailableError(
                f"search timed out after {self.timeout:.0f}s"
            ) from exc
        except _PROVIDER_ERRORS as exc:
            logger.error("Context search failed: %s", exc)
            raise SearchUnavailableError(f"search service unavailable: {exc}") from exc

        results = rank(raw, query, apply_filter=self.apply_filter)
        logger.info("Ranked %d of %d provider results", len(results), len(raw))

        await self.cache.set(query, results)
        return results
