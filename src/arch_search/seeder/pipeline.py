"""
Content Seeding Pipeline

Crawl -> derive metadata -> record crawl -> upload page -> upload sections.
Optionally, pages dropped from the catalog are removed afterwards.

A failed main-content upload fails the page; a failed section upload or
metadata write is logged and skipped. Page failures are collected by the
crawler and reported at the end of the run.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ..context import ContextAPIError, ContextService, RetryExhaustedError
from ..wiki.catalog import ARCH_WIKI_PAGES
from ..wiki.crawler import CrawlReport, PageCrawler, PageCrawlError
from ..wiki.models import CrawledPage, WikiPageSpec
from ..wiki.text import content_hash, content_tags, count_words, extract_error_patterns
from .tracker import ContentMetadataTracker

logger = logging.getLogger("arch_search.seeder")

_UPLOAD_ERRORS = (ContextAPIError, RetryExhaustedError)
_TRACKER_ERRORS = (SQLAlchemyError, OSError)
_PRUNE_ERRORS = (ContextAPIError,) + _TRACKER_ERRORS


class ContentSeeder:
    def __init__(
        self,
        crawler: PageCrawler,
        context_service: Optional[ContextService] = None,
        tracker: Optional[ContentMetadataTracker] = None,
        dry_run: bool = False,
        skip_unchanged: bool = False,
    ) -> None:
        """
        Parameters
        ----------
        crawler : PageCrawler
            Fetches and parses catalog pages.

        context_service : Optional[ContextService]
            Upload target. Required unless ``dry_run``.

        tracker : Optional[ContentMetadataTracker]
            Metadata store; without one no crawl state is recorded.

        dry_run : bool
            Crawl and log what would be uploaded without uploading.

        skip_unchanged : bool
            Skip pages whose content hash matches the recorded one.
        """
        if context_service is None and not dry_run:
            raise ValueError("context_service is required unless dry_run is set")
        self.crawler = crawler
        self.context_service = context_service
        self.tracker = tracker
        self.dry_run = dry_run
        self.skip_unchanged = skip_unchanged

    async def run(
        self,
        pages: Sequence[WikiPageSpec] = ARCH_WIKI_PAGES,
        limit: Optional[int] = None,
    ) -> CrawlReport:
        logger.info("Starting content seeding process (dry_run=%s)", self.dry_run)
        return await self.crawler.crawl(pages, limit=limit, on_page=self.process_page)

    async def process_page(self, page: CrawledPage) -> None:
        spec = page.spec
        content = page.content
        digest = content_hash(content)
        patterns = extract_error_patterns(content)

        unchanged = False
        if self.skip_unchanged and self.tracker is not None:
            try:
                unchanged = await self.tracker.is_unchanged(spec.title, digest)
            except _TRACKER_ERRORS as exc:
                logger.warning("Could not compare content hash for %s: %s", spec.title, exc)

        if self.tracker is not None:
            try:
                await self.tracker.record_crawl(
                    spec,
                    content_hash=digest,
                    error_patterns=patterns,
                    word_count=count_words(content),
                    section_count=len(page.sections),
                )
            except _TRACKER_ERRORS as exc:
                logger.warning("Failed to update content metadata for %s: %s", spec.title, exc)

        if unchanged:
            logger.info("Content unchanged, skipping upload: %s", spec.title)
            return

        tags = content_tags(content)

        if self.dry_run:
            logger.info(
                "Dry run - would upload %s: %d chars, %d sections, %d error patterns (%s, %s)",
                spec.title,
                len(content),
                len(page.sections),
                len(patterns),
                tags["category"],
                tags["difficulty"],
            )
            return

        try:
            await self.context_service.add_wiki_content(spec.title, content, spec.url, tags=tags)
        except _UPLOAD_ERRORS as exc:
            raise PageCrawlError(spec.title, f"failed to upload main content: {exc}") from exc

        logger.info("Uploaded main content for %s", spec.title)

        for section in page.sections:
            section_title = f"{spec.title}/{section.title}"
            section_url = f"{spec.url}#{section.anchor}" if section.anchor else spec.url
            try:
                await self.context_service.add_wiki_content(
                    section_title,
                    section.content,
                    section_url,
                    tags=content_tags(section.content),
                )
            except _UPLOAD_ERRORS as exc:
                logger.warning("Failed to upload section %s: %s", section_title, exc)
                continue
            logger.debug("Uploaded section %s", section_title)

    async def prune(self, pages: Sequence[WikiPageSpec] = ARCH_WIKI_PAGES) -> List[str]:
        """
        Retire tracked pages that are no longer in ``pages``.

        Each such page is deleted from the context provider and its metadata
        record marked inactive. A page whose delete fails stays active and is
        retried on the next run. Returns the retired titles.
        """
        if self.tracker is None:
            logger.warning("Pruning needs a metadata tracker; skipped")
            return []

        wanted = {page.title for page in pages}
        try:
            stale = [title for title in await self.tracker.active_titles() if title not in wanted]
        except _TRACKER_ERRORS as exc:
            logger.warning("Could not list tracked pages: %s", exc)
            return []

        if self.dry_run:
            for title in stale:
                logger.info("Dry run - would remove %s", title)
            return stale

        pruned: List[str] = []
        for title in stale:
            try:
                await self.context_service.delete_wiki_content(title)
                await self.tracker.mark_inactive(title)
            except _PRUNE_ERRORS as exc:
                logger.warning("Failed to remove %s: %s", title, exc)
                continue
            logger.info("Removed page no longer in the catalog: %s", title)
            pruned.append(title)

        return pruned
