"""Command-line interface for the Arch Wiki content seeder."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from ..config import ConfigurationError, settings
from ..core.logging import configure_logging
from ..wiki.catalog import ARCH_WIKI_PAGES
from ..wiki.crawler import CrawlReport, PageCrawler

logger = logging.getLogger("arch_search.seeder.cli")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    p = argparse.ArgumentParser(
        prog="arch-search-seed",
        description="Crawl high-priority Arch Wiki pages and upload them to the context provider.",
    )
    p.add_argument(
        "--dry-run",
        action="store_true",
        help="Crawl and report what would be uploaded, without uploading or touching the database",
    )
    p.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )
    p.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Limit number of pages to process (0 = all)",
    )
    p.add_argument(
        "--concurrent",
        type=int,
        default=settings.crawler_concurrency,
        help=f"Concurrent requests per domain (default: {settings.crawler_concurrency})",
    )
    p.add_argument(
        "--delay",
        type=float,
        default=settings.crawler_delay,
        help=f"Seconds between requests to the wiki (default: {settings.crawler_delay})",
    )
    p.add_argument(
        "--skip-unchanged",
        action="store_true",
        help="Skip uploading pages whose content hash matches the last crawl",
    )
    p.add_argument(
        "--prune",
        action="store_true",
        help="Remove previously seeded pages that are no longer in the catalog",
    )
    return p


async def _seed(args: argparse.Namespace) -> CrawlReport:
    # Imported here so --dry-run never needs the database driver configured
    from ..context import ContextService
    from .pipeline import ContentSeeder
    from .tracker import ContentMetadataTracker

    crawler = PageCrawler(concurrency=args.concurrent, delay=args.delay)

    if args.dry_run:
        if args.prune:
            logger.info("--prune is ignored in dry-run mode")
        seeder = ContentSeeder(crawler, dry_run=True)
        return await seeder.run(ARCH_WIKI_PAGES, limit=args.limit)

    from ..db.session import async_engine, init_models

    seeder = ContentSeeder(
        crawler,
        context_service=ContextService(),
        tracker=ContentMetadataTracker(),
        skip_unchanged=args.skip_unchanged,
    )
    try:
        try:
            await init_models()
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("Database unavailable, crawl state will not be recorded: %s", exc)
            seeder.tracker = None
        report = await seeder.run(ARCH_WIKI_PAGES, limit=args.limit)
        if args.prune:
            removed = await seeder.prune(ARCH_WIKI_PAGES)
            logger.info("Pruned %d page(s) no longer in the catalog", len(removed))
        return report
    finally:
        await async_engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the CLI."""
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level, verbose=args.verbose)

    if args.concurrent < 1:
        logger.error("--concurrent must be at least 1")
        return 2

    if not args.dry_run:
        try:
            settings.validate_context_api()
        except ConfigurationError as exc:
            logger.error("Context provider configuration is invalid: %s", exc)
            return 1

    logger.info("Starting Arch Wiki content seeder")
    report = asyncio.run(_seed(args))

    if report.errors and not report.pages:
        logger.error("Content seeding failed: no page was processed")
        return 1

    logger.info(
        "Content seeding completed: %d processed, %d failed",
        len(report.pages),
        len(report.errors),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
