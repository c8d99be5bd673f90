"""
Context Service

Wiki-aware operations on top of ``ContextClient``: upload a page, search
for a solution, delete a page, check the provider is up. Uploads and
searches run under the retry policy; the pre-upload delete is best effort.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..config import settings
from ..wiki.text import split_into_chunks
from .client import ContextAPIError, ContextClient
from .models import (
    AddContextRequest,
    ContextSearchResult,
    DeleteContextRequest,
    Document,
    SearchRequest,
)
from .retry import RetryPolicy, rename_on_conflict, retry_async

logger = logging.getLogger("arch_search.context.service")

SOURCE_PREFIX = "arch-wiki/"
CONTENT_TYPE = "text/plain"
WIKI_SOURCE_TAG = "arch_linux_wiki"
SEARCH_SOURCE_TAG = "arch_search_system"


def source_key(title: str) -> str:
    """Provider source key for a wiki page; used for both upload and delete."""
    return f"{SOURCE_PREFIX}{title}"


class ContextService:
    def __init__(
        self,
        client: Optional[ContextClient] = None,
        policy: Optional[RetryPolicy] = None,
        cancel_event: Optional[asyncio.Event] = None,
        max_document_chars: Optional[int] = None,
    ) -> None:
        self.client = client or ContextClient()
        self.policy = policy or RetryPolicy.from_settings()
        self.cancel_event = cancel_event
        self.max_document_chars = max_document_chars or settings.context_document_max_chars

    def _documents(self, title: str, content: str, now: str) -> List[Document]:
        """One document per chunk; a single chunk keeps the plain ``<title>.txt`` name."""
        chunks = split_into_chunks(content, self.max_document_chars) or [content]
        documents = []
        for index, chunk in enumerate(chunks, start=1):
            name = f"{title}.txt" if len(chunks) == 1 else f"{title}-part{index}.txt"
            documents.append(
                Document(
                    content=chunk,
                    file_name=name,
                    file_type=CONTENT_TYPE,
                    file_size=len(chunk.encode("utf-8")),
                    last_modified=now,
                )
            )
        return documents

    async def add_wiki_content(
        self,
        title: str,
        content: str,
        url: str,
        tags: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Replace the stored content for ``title``.

        Any existing document under the page's source key is deleted first;
        a failed delete is logged and ignored since the page may not exist
        yet. Content longer than ``max_document_chars`` is sent as several
        documents under the same source. The add itself is retried,
        renaming the documents on name conflicts.

        ``tags`` (category, difficulty, readability and the like) are added
        to the upload metadata without overriding the standard keys.
        """
        source = source_key(title)
        size = len(content.encode("utf-8"))
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")
        file_name = f"{title}.txt"

        try:
            await self.client.delete_context(DeleteContextRequest(source=source))
        except ContextAPIError as exc:
            logger.debug("Pre-upload delete of %s failed (ignored): %s", source, exc)

        documents = self._documents(title, content, now)
        metadata: Dict[str, Any] = {
            "fileName": file_name,
            "fileSize": size,
            "fileType": CONTENT_TYPE,
            "lastModified": now,
            "file_name": file_name,
            "doc_type": CONTENT_TYPE,
            "modalities": ["text"],
            "size": size,
            "wiki_title": title,
            "wiki_url": url,
            "source": WIKI_SOURCE_TAG,
            "extracted": now,
            "chunk_count": len(documents),
        }
        for key, value in (tags or {}).items():
            metadata.setdefault(key, value)

        request = AddContextRequest(
            documents=documents,
            source=source,
            context_type="resource",
            scope="internal",
            chained=False,
            metadata=metadata,
        )

        logger.debug("Uploading %s (%d bytes, %d documents) from %s", source, size, len(documents), url)

        await retry_async(
            self.client.add_context,
            request,
            self.policy,
            on_conflict=rename_on_conflict,
            cancel_event=self.cancel_event,
            description=f"upload of {source}",
        )

    async def search_for_solution(self, query: str) -> List[ContextSearchResult]:
        """Search the provider for content matching an error query."""
        request = SearchRequest(
            query=query,
            similarity_threshold=settings.similarity_threshold,
            minimum_similarity_threshold=settings.minimum_similarity_threshold,
            scope=settings.context_scope,
            metadata={
                "size": len(query),
                "doc_type": CONTENT_TYPE,
                "file_name": "search_query.txt",
                "search_type": "error_query",
                "source": SEARCH_SOURCE_TAG,
                "modalities": ["text"],
            },
        )

        logger.debug(
            "Searching context for %r (thresholds %.2f/%.2f)",
            query,
            request.similarity_threshold,
            request.minimum_similarity_threshold,
        )

        response = await retry_async(
            self.client.search_context,
            request,
            self.policy,
            cancel_event=self.cancel_event,
            description="context search",
        )
        return response.results

    async def delete_wiki_content(self, title: str) -> None:
        source = source_key(title)
        logger.debug("Deleting context %s", source)
        await self.client.delete_context(DeleteContextRequest(source=source))

    async def ping(self) -> None:
        """Check that the provider is reachable; raises ``ContextAPIError`` if not."""
        await self.client.health()
