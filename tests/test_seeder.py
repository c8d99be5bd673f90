"""
Content Seeder Tests

The pipeline is exercised with mocked collaborators; the tracker runs
against a mocked session factory.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from arch_search.context import ContextAPIError, ContextService, RetryExhaustedError
from arch_search.seeder.cli import build_parser, main
from arch_search.seeder.pipeline import ContentSeeder
from arch_search.seeder.tracker import ContentMetadataTracker
from arch_search.wiki.crawler import CrawlReport, PageCrawler, PageCrawlError
from arch_search.wiki.models import CrawledPage, ExtractedSection, WikiPageSpec
from arch_search.wiki.text import content_hash


PAGE_URL = "https://wiki.archlinux.org/title/Pacman"
CONTENT = "Pacman is the package manager.\nerror: failed to commit transaction"


def _page(sections=None):
    return CrawledPage(
        spec=WikiPageSpec(title="Pacman", url=PAGE_URL, priority=9),
        content=CONTENT,
        sections=sections
        if sections is not None
        else [
            ExtractedSection(title="Troubleshooting", content="x" * 60, anchor="Troubleshooting"),
            ExtractedSection(title="Tips", content="y" * 60, anchor=""),
        ],
    )


@pytest.fixture
def service():
    return AsyncMock(spec=ContextService)


@pytest.fixture
def tracker():
    mock = AsyncMock(spec=ContentMetadataTracker)
    mock.is_unchanged.return_value = False
    return mock


@pytest.fixture
def crawler():
    return MagicMock(spec=PageCrawler)


# ---------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------

class TestContentSeeder:

    def test_service_required_unless_dry_run(self, crawler):
        with pytest.raises(ValueError):
            ContentSeeder(crawler)
        ContentSeeder(crawler, dry_run=True)

    @pytest.mark.asyncio
    async def test_run_delegates_to_crawler(self, crawler, service):
        report = CrawlReport()
        crawler.crawl = AsyncMock(return_value=report)
        seeder = ContentSeeder(crawler, context_service=service)

        pages = [WikiPageSpec(title="Pacman", url=PAGE_URL)]
        assert await seeder.run(pages, limit=3) is report

        crawler.crawl.assert_awaited_once_with(pages, limit=3, on_page=seeder.process_page)

    @pytest.mark.asyncio
    async def test_uploads_page_then_sections(self, crawler, service, tracker):
        seeder = ContentSeeder(crawler, context_service=service, tracker=tracker)

        await seeder.process_page(_page())

        calls = [call.args for call in service.add_wiki_content.await_args_list]
        assert calls == [
            ("Pacman", CONTENT, PAGE_URL),
            ("Pacman/Troubleshooting", "x" * 60, PAGE_URL + "#Troubleshooting"),
            ("Pacman/Tips", "y" * 60, PAGE_URL),
        ]

        kwargs = tracker.record_crawl.await_args.kwargs
        assert kwargs["content_hash"] == content_hash(CONTENT)
        assert kwargs["section_count"] == 2
        assert "error: failed to commit transaction" in kwargs["error_patterns"]

        page_tags = service.add_wiki_content.await_args_list[0].kwargs["tags"]
        assert page_tags["category"] == "general"
        assert page_tags["topic"] == "pacman"
        assert "error" in page_tags["error_keywords"]
        assert 0 <= page_tags["readability"] <= 100
        assert "file_paths" in page_tags

    @pytest.mark.asyncio
    async def test_section_failure_is_skipped(self, crawler, service):
        service.add_wiki_content.side_effect = [
            None,
            ContextAPIError("API request failed with status 500: boom"),
            None,
        ]
        seeder = ContentSeeder(crawler, context_service=service)

        await seeder.process_page(_page())

        assert service.add_wiki_content.await_count == 3

    @pytest.mark.asyncio
    async def test_main_upload_failure_fails_page(self, crawler, service):
        cause = ContextAPIError("API request failed with status 500: boom")
        service.add_wiki_content.side_effect = RetryExhaustedError(4, 5, cause)
        seeder = ContentSeeder(crawler, context_service=service)

        with pytest.raises(PageCrawlError) as excinfo:
            await seeder.process_page(_page())

        assert excinfo.value.title == "Pacman"
        assert "failed to upload main content" in str(excinfo.value)
        assert service.add_wiki_content.await_count == 1

    @pytest.mark.asyncio
    async def test_dry_run_uploads_nothing(self, crawler, tracker):
        seeder = ContentSeeder(crawler, tracker=tracker, dry_run=True)

        await seeder.process_page(_page())

        tracker.record_crawl.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_tracker_failure_does_not_block_upload(self, crawler, service, tracker):
        tracker.record_crawl.side_effect = OperationalError("INSERT", {}, Exception("db down"))
        seeder = ContentSeeder(crawler, context_service=service, tracker=tracker)

        await seeder.process_page(_page(sections=[]))

        service.add_wiki_content.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_skip_unchanged(self, crawler, service, tracker):
        tracker.is_unchanged.return_value = True
        seeder = ContentSeeder(crawler, context_service=service, tracker=tracker, skip_unchanged=True)

        await seeder.process_page(_page())

        tracker.is_unchanged.assert_awaited_once_with("Pacman", content_hash(CONTENT))
        service.add_wiki_content.assert_not_awaited()
        # last_crawled still advances for unchanged pages
        tracker.record_crawl.assert_awaited_once()
        assert tracker.record_crawl.await_args.kwargs["content_hash"] == content_hash(CONTENT)


class TestPrune:

    CATALOG = [WikiPageSpec(title="Pacman", url=PAGE_URL), WikiPageSpec(title="GRUB", url=PAGE_URL)]

    @pytest.mark.asyncio
    async def test_removes_pages_dropped_from_catalog(self, crawler, service, tracker):
        tracker.active_titles.return_value = ["GRUB", "Old page", "Pacman", "Retired"]
        seeder = ContentSeeder(crawler, context_service=service, tracker=tracker)

        removed = await seeder.prune(self.CATALOG)

        assert removed == ["Old page", "Retired"]
        deleted = [call.args[0] for call in service.delete_wiki_content.await_args_list]
        assert deleted == ["Old page", "Retired"]
        inactive = [call.args[0] for call in tracker.mark_inactive.await_args_list]
        assert inactive == ["Old page", "Retired"]

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_page_active(self, crawler, service, tracker):
        tracker.active_titles.return_value = ["Old page", "Retired"]
        service.delete_wiki_content.side_effect = [
            ContextAPIError("API request failed with status 500: boom"),
            None,
        ]
        seeder = ContentSeeder(crawler, context_service=service, tracker=tracker)

        assert await seeder.prune(self.CATALOG) == ["Retired"]
        tracker.mark_inactive.assert_awaited_once_with("Retired")

    @pytest.mark.asyncio
    async def test_dry_run_only_reports(self, crawler, tracker):
        tracker.active_titles.return_value = ["Old page"]
        seeder = ContentSeeder(crawler, tracker=tracker, dry_run=True)

        assert await seeder.prune(self.CATALOG) == ["Old page"]
        tracker.mark_inactive.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_without_tracker_nothing_happens(self, crawler, service):
        seeder = ContentSeeder(crawler, context_service=service)

        assert await seeder.prune(self.CATALOG) == []
        service.delete_wiki_content.assert_not_awaited()


# ---------------------------------------------------------------------
# Tracker
# ---------------------------------------------------------------------

class TestContentMetadataTracker:

    @pytest.mark.asyncio
    async def test_record_crawl_upserts_and_commits(self, session_factory, mock_session):
        tracker = ContentMetadataTracker(session_factory=session_factory)

        await tracker.record_crawl(
            WikiPageSpec(title="Pacman", url=PAGE_URL),
            content_hash="abc",
            error_patterns=["permission denied"],
            word_count=10,
            section_count=2,
        )

        mock_session.execute.assert_awaited_once()
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("stored, expected", [(None, False), ("abc", True), ("old", False)])
    async def test_is_unchanged(self, session_factory, mock_session, stored, expected):
        record = None if stored is None else MagicMock(content_hash=stored)
        result = MagicMock()
        result.scalar_one_or_none.return_value = record
        mock_session.execute.return_value = result

        tracker = ContentMetadataTracker(session_factory=session_factory)
        assert await tracker.is_unchanged("Pacman", "abc") is expected

    @pytest.mark.asyncio
    async def test_active_titles(self, session_factory, mock_session):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [
            MagicMock(wiki_page_title="GRUB"),
            MagicMock(wiki_page_title="Pacman"),
        ]
        mock_session.execute.return_value = result

        tracker = ContentMetadataTracker(session_factory=session_factory)
        assert await tracker.active_titles() == ["GRUB", "Pacman"]

    @pytest.mark.asyncio
    async def test_mark_inactive_commits(self, session_factory, mock_session):
        tracker = ContentMetadataTracker(session_factory=session_factory)

        await tracker.mark_inactive("Old page")

        mock_session.execute.assert_awaited_once()
        mock_session.flush.assert_awaited_once()
        mock_session.commit.assert_awaited_once()


# ---------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------

class TestCli:

    def test_parser_flags(self):
        args = build_parser().parse_args(
            ["--dry-run", "-v", "--limit", "5", "--concurrent", "3", "--delay", "0.5", "--skip-unchanged"]
        )
        assert args.dry_run and args.verbose and args.skip_unchanged
        assert args.limit == 5
        assert args.concurrent == 3
        assert args.delay == 0.5

    def test_prune_flag(self):
        assert build_parser().parse_args(["--prune"]).prune is True

    def test_parser_defaults(self):
        args = build_parser().parse_args([])
        assert args.dry_run is False
        assert args.prune is False
        assert args.limit == 0
        assert args.concurrent >= 1

    def test_invalid_concurrency_exit_code(self):
        assert main(["--dry-run", "--concurrent", "0"]) == 2

    def test_exit_code_reflects_report(self, monkeypatch):
        import arch_search.seeder.cli as cli

        failed = CrawlReport(errors=[PageCrawlError("Pacman", "boom")])
        monkeypatch.setattr(cli, "_seed", AsyncMock(return_value=failed))
        assert main(["--dry-run"]) == 1

        partial = CrawlReport(pages=[_page()], errors=[PageCrawlError("AUR", "boom")])
        monkeypatch.setattr(cli, "_seed", AsyncMock(return_value=partial))
        assert main(["--dry-run"]) == 0

    def test_missing_credentials_exit_code(self, monkeypatch):
        import arch_search.seeder.cli as cli

        monkeypatch.setattr(cli.settings, "context_api_base_url", "")
        assert main([]) == 1
