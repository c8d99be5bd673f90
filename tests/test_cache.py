from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from arch_search.search.models import SearchResult
from arch_search.search.cache import SearchCache, cache_key


RESULT = SearchResult(
    context_id="arch-wiki/Pacman",
    title="Pacman",
    content="Pacman troubleshooting notes",
    url="https://wiki.archlinux.org/title/Pacman",
    score=0.7,
    relevance="medium",
)


def test_cache_key_normalizes_case_and_whitespace():
    assert cache_key("Pacman Error") == cache_key("  pacman error \n")
    assert cache_key("pacman error") != cache_key("pacman  error")
    assert cache_key("x").startswith("search:results:")


@pytest.mark.asyncio
async def test_disabled_cache():
    cache = SearchCache(None)
    assert cache.enabled is False
    assert await cache.get("q") is None
    await cache.set("q", [RESULT])
    assert await cache.ping() is False


@pytest.mark.asyncio
async def test_set_then_get():
    client = AsyncMock()
    cache = SearchCache(client, ttl=300)

    await cache.set("pacman", [RESULT])
    key, payload = client.set.await_args.args
    assert key == cache_key("pacman")
    assert client.set.await_args.kwargs == {"ex": 300}

    client.get.return_value = payload
    assert await cache.get("pacman") == [RESULT]


@pytest.mark.asyncio
async def test_read_errors_are_misses():
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("down")
    assert await SearchCache(client).get("pacman") is None


@pytest.mark.asyncio
async def test_malformed_entry_is_a_miss():
    client = AsyncMock()
    client.get.return_value = b'[{"title": 1}]'
    assert await SearchCache(client).get("pacman") is None


@pytest.mark.asyncio
async def test_write_and_ping_errors_are_swallowed():
    client = AsyncMock()
    client.set.side_effect = RedisConnectionError("down")
    client.ping.side_effect = RedisConnectionError("down")
    cache = SearchCache(client)

    await cache.set("pacman", [RESULT])
    assert await cache.ping() is False
