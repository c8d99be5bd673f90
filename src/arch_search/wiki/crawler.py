"""
Arch Wiki Page Crawler

Fetches catalog pages, strips MediaWiki boilerplate and splits each page
into a flattened main body plus titled sections.

Politeness
----------
- Per-domain concurrency cap and inter-request delay (``DomainThrottle``)
- Bounded request timeout
- Fixed pause between consecutive pages

Failure Policy
--------------
A page that cannot be fetched or parsed is recorded as a ``PageCrawlError``
and the run moves on to the next page. Errors are reported together at the
end of the run.
"""

from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup, Tag

from .catalog import order_pages
from .models import CrawledPage, ExtractedSection, WikiPageSpec
from .text import clean_content
from ..config import settings

logger = logging.getLogger("arch_search.crawler")


# ---------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------

CONTENT_SELECTOR = "#mw-content-text"

BOILERPLATE_SELECTOR = ", ".join(
    (
        ".navbox", ".infobox", ".ambox", ".toc", ".printfooter", ".catlinks",
        "#toc", ".noprint", ".editlink", ".mw-editsection",
    )
)

SKIPPED_SECTION_CLASSES = frozenset({"navbox", "ambox"})

MIN_SECTION_LENGTH = 50

_HEADING_TAG = re.compile(r"^h([1-6])$")


# ---------------------------------------------------------------------
# Exceptions & Results
# ---------------------------------------------------------------------

class PageCrawlError(RuntimeError):
    """Raised when a single page cannot be fetched, parsed or processed."""

    def __init__(self, title: str, message: str) -> None:
        super().__init__(f"failed to process {title}: {message}")
        self.title = title


@dataclass
class CrawlReport:
    """Outcome of one crawl run."""

    pages: List[CrawledPage] = field(default_factory=list)
    errors: List[PageCrawlError] = field(default_factory=list)

    @property
    def processed(self) -> List[str]:
        return [page.spec.title for page in self.pages]


PageHandler = Callable[[CrawledPage], Awaitable[None]]


# ---------------------------------------------------------------------
# Politeness
# ---------------------------------------------------------------------

class DomainThrottle:
    """
    Per-domain request gate.

    At most ``concurrency`` requests to one domain are in flight, and
    consecutive request starts to a domain are spaced at least ``delay``
    seconds apart.
    """

    def __init__(self, concurrency: int = 2, delay: float = 2.0) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._concurrency = concurrency
        self._delay = max(0.0, delay)
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._last_request: Dict[str, float] = {}
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def slot(self, url: str) -> AsyncIterator[None]:
        domain = urlparse(url).netloc
        semaphore = self._semaphores.setdefault(domain, asyncio.Semaphore(self._concurrency))
        async with semaphore:
            await self._wait_turn(domain)
            yield

    async def _wait_turn(self, domain: str) -> None:
        loop = asyncio.get_running_loop()
        async with self._lock:
            now = loop.time()
            last = self._last_request.get(domain)
            start = now if last is None else max(now, last + self._delay)
            # Reserve the start time so the next caller queues behind it
            self._last_request[domain] = start

        wait = start - now
        if wait > 0:
            logger.debug("Rate limiting %s: sleeping %.2fs", domain, wait)
            await asyncio.sleep(wait)


# ---------------------------------------------------------------------
# DOM helpers
# ---------------------------------------------------------------------

def _classes(tag: Tag) -> List[str]:
    return tag.get("class") or []


def _is_heading_wrapper(tag: Optional[Tag]) -> bool:
    return tag is not None and tag.name == "div" and "mw-heading" in _classes(tag)


def _heading_level(tag: Tag) -> Optional[int]:
    """Level of a heading element or of a ``div.mw-heading`` wrapper."""
    match = _HEADING_TAG.match(tag.name or "")
    if match:
        return int(match.group(1))
    if _is_heading_wrapper(tag):
        inner = tag.find(_HEADING_TAG)
        if inner is not None:
            return int(inner.name[1])
    return None


def _heading_label(heading: Tag) -> Tuple[str, str]:
    """Return ``(title, anchor)`` for legacy and current MediaWiki markup."""
    headline = heading.find(class_="mw-headline")
    if headline is not None:
        return headline.get_text(" ", strip=True), headline.get("id") or heading.get("id") or ""
    return heading.get_text(" ", strip=True), heading.get("id") or ""


def extract_sections(root: Tag, page: WikiPageSpec) -> List[ExtractedSection]:
    """
    Walk ``h2``-``h4`` headings and collect the content beneath each.

    Sibling elements are gathered until the next heading of the same or a
    higher level. Tables, navboxes and message boxes are skipped, and only
    sections with more than 50 characters of text are kept.
    """
    wanted = set(page.sections)
    sections: List[ExtractedSection] = []

    for heading in root.find_all(["h2", "h3", "h4"]):
        title, anchor = _heading_label(heading)
        if not title:
            continue
        if wanted and title not in wanted and title.replace(" ", "_") not in wanted:
            continue

        level = int(heading.name[1])
        start = heading.parent if _is_heading_wrapper(heading.parent) else heading

        parts: List[str] = []
        for sibling in start.find_next_siblings():
            sibling_level = _heading_level(sibling)
            if sibling_level is not None and sibling_level <= level:
                break
            if sibling.name == "table" or SKIPPED_SECTION_CLASSES.intersection(_classes(sibling)):
                continue
            text = sibling.get_text().strip()
            if text:
                parts.append(text)

        content = clean_content("\n".join(parts))
        if len(content) > MIN_SECTION_LENGTH:
            sections.append(
                ExtractedSection(title=title, content=content, anchor=anchor, level=level)
            )

    logger.debug("Extracted %d sections from %s", len(sections), page.title)
    return sections


def parse_page(page: WikiPageSpec, html: str) -> CrawledPage:
    """
    Turn a fetched wiki page into a ``CrawledPage``.

    Raises
    ------
    PageCrawlError
        If the page has no content container or no text survives cleanup.
    """
    soup = BeautifulSoup(html, "html.parser")
    root = soup.select_one(CONTENT_SELECTOR)
    if root is None:
        raise PageCrawlError(page.title, "content container not found")

    for element in root.select(BOILERPLATE_SELECTOR):
        element.decompose()

    sections = extract_sections(root, page)
    content = clean_content(root.get_text())
    if not content:
        raise PageCrawlError(page.title, "no content extracted from page")

    return CrawledPage(spec=page, content=content, sections=sections)


# ---------------------------------------------------------------------
# Crawler
# ---------------------------------------------------------------------

class PageCrawler:
    """
    Sequential, throttled crawler over a fixed page catalog.

    Each page is fetched with its own short-lived HTTP client so no
    connection or cookie state is shared between pages.
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        concurrency: Optional[int] = None,
        delay: Optional[float] = None,
        page_pause: Optional[float] = None,
        domain: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        user_agent, timeout, concurrency, delay, page_pause, domain
            Optional overrides for the ``crawler_*`` settings.

        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport for the per-page clients (tests use
            ``httpx.MockTransport``).
        """
        self.user_agent = user_agent or settings.crawler_user_agent
        self.timeout = timeout if timeout is not None else settings.crawler_timeout
        self.page_pause = page_pause if page_pause is not None else settings.crawler_page_pause
        self.domain = domain or settings.crawler_domain
        self._throttle = DomainThrottle(
            concurrency=concurrency if concurrency is not None else settings.crawler_concurrency,
            delay=delay if delay is not None else settings.crawler_delay,
        )
        self._transport = transport

    async def fetch_page(self, page: WikiPageSpec) -> CrawledPage:
        """Fetch and parse a single page."""
        host = urlparse(page.url).hostname
        if host != self.domain:
            raise PageCrawlError(page.title, f"URL {page.url} is outside {self.domain}")

        async with self._throttle.slot(page.url):
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                try:
                    response = await client.get(page.url)
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    raise PageCrawlError(
                        page.title, f"failed to visit page: {type(exc).__name__}: {exc}"
                    ) from exc

        crawled = parse_page(page, response.text)
        logger.debug(
            "Content extracted from %s: %d chars, %d sections",
            page.title,
            len(crawled.content),
            len(crawled.sections),
        )
        return crawled

    async def crawl(
        self,
        pages: Sequence[WikiPageSpec],
        limit: Optional[int] = None,
        on_page: Optional[PageHandler] = None,
    ) -> CrawlReport:
        """
        Crawl ``pages`` in priority order, one at a time.

        ``on_page`` is awaited for every successfully crawled page; an
        exception it raises counts as that page's failure.
        """
        ordered = order_pages(pages, limit)
        report = CrawlReport()
        logger.info("Processing %d wiki pages", len(ordered))

        for index, page in enumerate(ordered, start=1):
            logger.info(
                "Processing page %s (priority %d, %d/%d)",
                page.title,
                page.priority,
                index,
                len(ordered),
            )
            try:
                crawled = await self.fetch_page(page)
                if on_page is not None:
                    await on_page(crawled)
            except PageCrawlError as exc:
                logger.error("%s", exc)
                report.errors.append(exc)
                continue
            except Exception as exc:
                logger.exception("Failed to process page %s", page.title)
                error = PageCrawlError(page.title, f"{type(exc).__name__}: {exc}")
                error.__cause__ = exc
                report.errors.append(error)
                continue

            report.pages.append(crawled)
            logger.info("Page processed successfully: %s", page.title)

            if self.page_pause > 0 and index < len(ordered):
                await asyncio.sleep(self.page_pause)

        logger.info(
            "Crawl completed: %d processed, %d errors",
            len(report.pages),
            len(report.errors),
        )
        for error in report.errors:
            logger.warning("Processing error: %s", error)

        return report
