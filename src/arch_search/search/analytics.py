"""
Search Analytics

Write-behind recording of executed searches and popular-query
aggregates. These run as background tasks after the response has been
sent; each write uses its own session, and failures are logged and
dropped rather than retried.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..db.repositories import PopularQueryRepository, SearchQueryRepository
from ..db.session import AsyncSessionLocal

logger = logging.getLogger("arch_search.analytics")

_DB_ERRORS = (SQLAlchemyError, OSError)


def normalize_query_text(query: str) -> str:
    """Popular queries are aggregated case- and whitespace-insensitively."""
    return " ".join(query.lower().split())


class AnalyticsRecorder:
    def __init__(self, session_factory: Callable[[], AsyncSession] = AsyncSessionLocal) -> None:
        self._session_factory = session_factory

    async def track_search_query(
        self,
        query: str,
        results_count: int,
        response_time_ms: int,
        user_session: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> None:
        try:
            async with self._session_factory() as session:
                await SearchQueryRepository(session).create(
                    query_text=query,
                    results_count=results_count,
                    response_time_ms=response_time_ms,
                    user_session=user_session,
                    user_agent=user_agent,
                    ip_address=ip_address,
                )
                await session.commit()
        except _DB_ERRORS as exc:
            logger.error("Failed to track search query: %s", exc)

    async def update_popular_queries(
        self,
        query: str,
        results_count: int,
        response_time_ms: int,
    ) -> None:
        text = normalize_query_text(query)
        if not text:
            return
        try:
            async with self._session_factory() as session:
                await PopularQueryRepository(session).record_search(
                    text,
                    results_count=results_count,
                    response_time_ms=response_time_ms,
                )
                await session.commit()
        except _DB_ERRORS as exc:
            logger.error("Failed to update popular queries: %s", exc)
