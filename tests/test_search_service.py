"""
Search Pipeline Tests

``SearchService`` with a stubbed context service and an in-memory Redis
double, plus the write-behind analytics recorder.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from arch_search.context import ContextAPIError, ContextService, RetryExhaustedError
from arch_search.context.models import ContextSearchResult
from arch_search.search.analytics import AnalyticsRecorder, normalize_query_text
from arch_search.search.cache import SearchCache
from arch_search.search.service import SearchService, SearchUnavailableError


QUERY = "pacman: error: failed to commit transaction (conflicting files)"


class FakeRedis:
    """Dict-backed stand-in for the subset of ``redis.asyncio.Redis`` in use."""

    def __init__(self):
        self.store = {}
        self.expiry = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        self.expiry[key] = ex

    async def ping(self):
        return True


def _good_hits(count):
    return [
        ContextSearchResult(
            context_id=f"arch-wiki/Pacman_{i}",
            context_data=(
                f"Pacman error {i}: failed to commit transaction because of conflicting files. "
                "Remove the file or run pacman with --overwrite."
            ),
        )
        for i in range(count)
    ]


@pytest.fixture
def context_service():
    mock = AsyncMock(spec=ContextService)
    mock.search_for_solution.return_value = _good_hits(12)
    return mock


class TestSearchService:

    @pytest.mark.asyncio
    async def test_results_are_capped_at_ten(self, context_service):
        service = SearchService(context_service, SearchCache(None), apply_filter=True, timeout=5)

        results = await service.search(QUERY)

        assert len(results) == 10
        assert all(0.0 <= r.score <= 1.0 for r in results)
        assert all(r.url.startswith("https://wiki.archlinux.org/") for r in results)
        sent = context_service.search_for_solution.await_args.args[0]
        assert sent == "pacman: error: failed to commit transaction conflicting files"

    @pytest.mark.asyncio
    async def test_second_search_is_served_from_cache(self, context_service):
        redis = FakeRedis()
        service = SearchService(context_service, SearchCache(redis, ttl=60), timeout=5)

        first = await service.search(QUERY)
        second = await service.search("  " + QUERY.upper() + " ")

        assert second == first
        context_service.search_for_solution.assert_awaited_once()
        assert list(redis.expiry.values()) == [60]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ContextAPIError("API request failed with status 500: boom"),
            RetryExhaustedError(4, 5, ContextAPIError("boom")),
        ],
    )
    async def test_provider_failure(self, context_service, error):
        context_service.search_for_solution.side_effect = error
        service = SearchService(context_service, SearchCache(None), timeout=5)

        with pytest.raises(SearchUnavailableError):
            await service.search(QUERY)

    @pytest.mark.asyncio
    async def test_provider_timeout(self, context_service):
        async def slow(query):
            await asyncio.sleep(1)
            return []

        context_service.search_for_solution.side_effect = slow
        service = SearchService(context_service, SearchCache(None), timeout=0.01)

        with pytest.raises(SearchUnavailableError):
            await service.search(QUERY)

    @pytest.mark.asyncio
    async def test_failed_search_is_not_cached(self, context_service):
        redis = FakeRedis()
        context_service.search_for_solution.side_effect = ContextAPIError("boom")
        service = SearchService(context_service, SearchCache(redis), timeout=5)

        with pytest.raises(SearchUnavailableError):
            await service.search(QUERY)
        assert redis.store == {}


# ---------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------

def test_normalize_query_text():
    assert normalize_query_text("  Pacman   ERROR\tkeyring ") == "pacman error keyring"


class TestAnalyticsRecorder:

    @pytest.mark.asyncio
    async def test_track_search_query(self, session_factory, mock_session):
        recorder = AnalyticsRecorder(session_factory=session_factory)

        await recorder.track_search_query(QUERY, 3, 120, user_session="abc", ip_address="127.0.0.1")

        record = mock_session.add.call_args.args[0]
        assert record.query_text == QUERY
        assert record.results_count == 3
        assert record.response_time_ms == 120
        assert record.ip_address == "127.0.0.1"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_popular_query_upsert(self, session_factory, mock_session):
        recorder = AnalyticsRecorder(session_factory=session_factory)

        await recorder.update_popular_queries("  Pacman  Error ", 3, 120)

        stmt = mock_session.execute.await_args.args[0]
        assert stmt.compile(dialect=postgresql.dialect()).params["query_text"] == "pacman error"
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_blank_query_is_not_aggregated(self, session_factory, mock_session):
        await AnalyticsRecorder(session_factory=session_factory).update_popular_queries("   ", 0, 1)
        mock_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_errors_are_swallowed(self, session_factory, mock_session):
        mock_session.commit.side_effect = OperationalError("COMMIT", {}, Exception("db down"))
        recorder = AnalyticsRecorder(session_factory=session_factory)

        await recorder.track_search_query(QUERY, 0, 10)
        await recorder.update_popular_queries(QUERY, 0, 10)
