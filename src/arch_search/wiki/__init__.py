"""
Wiki Package

Static page catalog, page crawler and text processing for Arch Wiki content.
"""

from .catalog import ARCH_WIKI_PAGES, WIKI_BASE_URL, order_pages
from .crawler import CrawlReport, DomainThrottle, PageCrawler, PageCrawlError
from .models import CrawledPage, ExtractedSection, WikiPageSpec

__all__ = [
    "ARCH_WIKI_PAGES",
    "WIKI_BASE_URL",
    "order_pages",
    "CrawlReport",
    "DomainThrottle",
    "PageCrawler",
    "PageCrawlError",
    "CrawledPage",
    "ExtractedSection",
    "WikiPageSpec",
]
