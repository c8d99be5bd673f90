"""
Search Result Cache

Redis-backed cache of ranked results keyed by a fingerprint of the
normalized query text. The cache is best effort: read errors count as a
miss and write errors are logged, never raised.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import List, Optional

import redis.asyncio as aioredis
from pydantic import TypeAdapter, ValidationError
from redis.exceptions import RedisError

from .models import SearchResult
from ..config import settings

logger = logging.getLogger("arch_search.cache")

_RESULTS = TypeAdapter(List[SearchResult])


def cache_key(query: str) -> str:
    """Queries differing only in case or surrounding whitespace share a key."""
    digest = hashlib.md5(query.strip().lower().encode("utf-8")).hexdigest()
    return f"search:results:{digest}"


class SearchCache:
    def __init__(self, client: Optional[aioredis.Redis], ttl: Optional[int] = None) -> None:
        """
        Parameters
        ----------
        client : Optional[aioredis.Redis]
            Connected client, or ``None`` to disable caching.

        ttl : Optional[int]
            Entry lifetime in seconds; defaults to ``search_cache_ttl``.
        """
        self._client = client
        self.ttl = ttl if ttl is not None else settings.search_cache_ttl

    @property
    def enabled(self) -> bool:
        return self._client is not None

    async def get(self, query: str) -> Optional[List[SearchResult]]:
        if self._client is None:
            return None
        key = cache_key(query)
        try:
            data = await self._client.get(key)
        except (RedisError, OSError) as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            return None
        if data is None:
            return None
        try:
            return _RESULTS.validate_json(data)
        except ValidationError as exc:
            logger.warning("Discarding malformed cache entry %s: %s", key, exc)
            return None

    async def set(self, query: str, results: List[SearchResult]) -> None:
        if self._client is None:
            return
        key = cache_key(query)
        payload = json.dumps([result.model_dump() for result in results])
        try:
            await self._client.set(key, payload, ex=self.ttl)
        except (RedisError, OSError) as exc:
            logger.warning("Failed to cache search results for %s: %s", key, exc)

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except (RedisError, OSError):
            return False


def create_redis_client(url: Optional[str] = None) -> aioredis.Redis:
    """Client for ``redis_url``; connections are opened lazily on first use."""
    return aioredis.from_url(
        url or settings.redis_url,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
