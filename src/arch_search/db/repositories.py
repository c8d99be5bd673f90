"""
Repositories

Query helpers over the ORM models. Each repository wraps one
``AsyncSession`` supplied by the caller; none of them commit, so the
caller decides the transaction boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.dialects.postgresql import insert as pg_insert

from .models import ContentMetadata, PopularQuery, SearchQuery, UserFeedback


# ---------------------------------------------------------------------
# Content Metadata
# ---------------------------------------------------------------------

class ContentMetadataRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_title(self, title: str) -> Optional[ContentMetadata]:
        result = await self._session.execute(
            select(ContentMetadata).where(ContentMetadata.wiki_page_title == title)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        title: str,
        page_url: str,
        content_hash: str,
        error_patterns: Sequence[str],
        word_count: int,
        section_count: int,
        crawl_status: str = "completed",
        crawled_at: Optional[datetime] = None,
    ) -> None:
        """
        Insert or update the record for ``title`` in a single statement.

        ``is_active`` and ``created_at`` are only set on insert.
        """
        crawled_at = crawled_at or datetime.now(timezone.utc)
        values = {
            "page_url": page_url,
            "content_hash": content_hash,
            "error_patterns": list(error_patterns),
            "word_count": word_count,
            "section_count": section_count,
            "crawl_status": crawl_status,
            "last_crawled": crawled_at,
            "last_updated": crawled_at,
        }

        stmt = pg_insert(ContentMetadata).values(
            wiki_page_title=title,
            content_type="wiki_page",
            is_active=True,
            **values,
        ).on_conflict_do_update(
            index_elements=[ContentMetadata.wiki_page_title],
            set_=values,
        )

        await self._session.execute(stmt)
        await self._session.flush()

    async def list_active(self) -> List[ContentMetadata]:
        result = await self._session.execute(
            select(ContentMetadata)
            .where(ContentMetadata.is_active.is_(True))
            .order_by(ContentMetadata.wiki_page_title)
        )
        return list(result.scalars().all())

    async def deactivate(self, title: str) -> None:
        """Mark a page as no longer served; the record itself is kept."""
        await self._session.execute(
            update(ContentMetadata)
            .where(ContentMetadata.wiki_page_title == title)
            .values(is_active=False, last_updated=datetime.now(timezone.utc))
        )
        await self._session.flush()


# ---------------------------------------------------------------------
# Search Analytics
# ---------------------------------------------------------------------

class SearchQueryRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        query_text: str,
        results_count: int,
        response_time_ms: int,
        user_session: Optional[str] = None,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> SearchQuery:
        record = SearchQuery(
            query_text=query_text,
            results_count=results_count,
            response_time_ms=response_time_ms,
            user_session=user_session,
            user_agent=user_agent,
            ip_address=ip_address,
        )
        self._session.add(record)
        await self._session.flush()
        return record

    async def get(self, query_id: int) -> Optional[SearchQuery]:
        return await self._session.get(SearchQuery, query_id)


class FeedbackRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(
        self,
        query_id: int,
        feedback_type: str,
        feedback_text: Optional[str] = None,
        user_session: Optional[str] = None,
    ) -> UserFeedback:
        record = UserFeedback(
            query_id=query_id,
            feedback_type=feedback_type,
            feedback_text=feedback_text,
            user_session=user_session,
        )
        self._session.add(record)
        await self._session.flush()
        return record


class PopularQueryRepository:
    """
    Running aggregates per distinct (normalized) query text.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record_search(
        self,
        query_text: str,
        results_count: int,
        response_time_ms: int,
    ) -> None:
        """
        Count one search and fold its stats into the running averages.

        Uses a PostgreSQL upsert so concurrent writers cannot lose
        increments.
        """
        now = datetime.now(timezone.utc)
        table = PopularQuery.__table__
        count = table.c.search_count

        stmt = pg_insert(PopularQuery).values(
            query_text=query_text,
            search_count=1,
            avg_results_count=results_count,
            avg_response_time_ms=response_time_ms,
            last_searched=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PopularQuery.query_text],
            set_={
                "search_count": count + 1,
                "avg_results_count": (
                    table.c.avg_results_count * count + stmt.excluded.avg_results_count
                ) / (count + 1),
                "avg_response_time_ms": (
                    table.c.avg_response_time_ms * count + stmt.excluded.avg_response_time_ms
                ) / (count + 1),
                "last_searched": now,
            },
        )

        await self._session.execute(stmt)
        await self._session.flush()

    async def get_top(self, limit: int, contains: Optional[str] = None) -> List[PopularQuery]:
        """Most searched queries, optionally those containing ``contains``."""
        stmt = select(PopularQuery)
        if contains:
            stmt = stmt.where(PopularQuery.query_text.icontains(contains, autoescape=True))
        stmt = stmt.order_by(
            PopularQuery.search_count.desc(),
            PopularQuery.last_searched.desc(),
        ).limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())
