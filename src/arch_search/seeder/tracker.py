"""
Content Metadata Tracker

Records the outcome of each page crawl in ``content_metadata`` so later
runs can tell whether a page's content has changed.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from ..db.repositories import ContentMetadataRepository
from ..db.session import AsyncSessionLocal
from ..wiki.models import WikiPageSpec

logger = logging.getLogger("arch_search.seeder.tracker")


class ContentMetadataTracker:
    """
    Upserts crawl results keyed by page title.

    Every call runs in its own session and transaction, so a failure for
    one page never leaves another page's record half written.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession] = AsyncSessionLocal) -> None:
        self._session_factory = session_factory

    async def record_crawl(
        self,
        page: WikiPageSpec,
        content_hash: str,
        error_patterns: Sequence[str],
        word_count: int,
        section_count: int,
    ) -> None:
        """
        Mark ``page`` as crawled.

        Updates hash, patterns, counts, ``last_crawled`` and sets the status
        to ``completed``; a page seen for the first time gets a new active
        record.
        """
        async with self._session_factory() as session:
            await ContentMetadataRepository(session).upsert(
                title=page.title,
                page_url=page.url,
                content_hash=content_hash,
                error_patterns=error_patterns,
                word_count=word_count,
                section_count=section_count,
                crawl_status="completed",
            )
            await session.commit()

        logger.debug("Recorded crawl of %s (hash %s)", page.title, content_hash)

    async def is_unchanged(self, title: str, content_hash: str) -> bool:
        """True if the stored hash for ``title`` equals ``content_hash``."""
        async with self._session_factory() as session:
            record = await ContentMetadataRepository(session).get_by_title(title)
        return record is not None and record.content_hash == content_hash

    async def active_titles(self) -> List[str]:
        async with self._session_factory() as session:
            records = await ContentMetadataRepository(session).list_active()
        return [record.wiki_page_title for record in records]

    async def mark_inactive(self, title: str) -> None:
        async with self._session_factory() as session:
            await ContentMetadataRepository(session).deactivate(title)
            await session.commit()

        logger.debug("Marked %s inactive", title)
