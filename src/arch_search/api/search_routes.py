"""
Search Routes

Public troubleshooting search API: run a search, leave feedback on a
past search, and fetch query suggestions from popular searches.

Analytics for every search (including failed ones) are recorded in
background tasks after the response is sent.
"""

import hashlib
import ipaddress
import logging
import time
from datetime import datetime, timezone
from typing import Annotated, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from .dependencies import get_analytics, get_search_service
from .models import (
    FeedbackRequest,
    FeedbackResponse,
    SearchRequest,
    SearchResponse,
    Suggestion,
)
from ..config import settings
from ..core.errors import error_response
from ..db.repositories import FeedbackRepository, PopularQueryRepository, SearchQueryRepository
from ..db.session import get_async_session
from ..search.analytics import AnalyticsRecorder
from ..search.service import SearchService, SearchUnavailableError

logger = logging.getLogger("arch_search.api.search")

router = APIRouter(prefix="/api/v1", tags=["search"])

DEFAULT_SUGGESTIONS = 5
MAX_SUGGESTIONS = 10


# ---------------------------------------------------------------------
# Request helpers
# ---------------------------------------------------------------------

def client_ip(request: Request) -> Optional[str]:
    """The peer address, or ``None`` if it is not a valid IP."""
    if request.client is None:
        return None
    try:
        return str(ipaddress.ip_address(request.client.host))
    except ValueError:
        return None


def get_user_session(request: Request) -> str:
    """
    Session id from ``X-Session-ID``, else a fingerprint of client address
    and user agent that rotates every hour.
    """
    header = request.headers.get("X-Session-ID")
    if header:
        return header
    host = request.client.host if request.client else ""
    user_agent = request.headers.get("User-Agent", "")
    hour = datetime.now(timezone.utc).strftime("%Y%m%d%H")
    return hashlib.md5(f"{host}{user_agent}{hour}".encode("utf-8")).hexdigest()[:16]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.post(
    "/search",
    response_model=SearchResponse,
    summary="Search Arch Wiki content for a troubleshooting query",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    service: Annotated[SearchService, Depends(get_search_service)],
    analytics: Annotated[AnalyticsRecorder, Depends(get_analytics)],
):
    """
    Run a troubleshooting search.

    Returns
    -------
    SearchResponse
        Up to 10 ranked results, their count and the elapsed time.

    Errors
    ------
    - 400 if the trimmed query is empty or longer than ``max_query_length``
    - 502 if the context provider fails or times out
    """
    started = time.perf_counter()

    query = req.query.strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query cannot be empty")
    if len(query) > settings.max_query_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query too long (max {settings.max_query_length} characters)",
        )

    user_session = get_user_session(request)
    user_agent = request.headers.get("User-Agent")
    ip_address = client_ip(request)

    logger.info("Processing search request (session %s)", user_session)

    try:
        results = await service.search(query)
    except SearchUnavailableError as exc:
        logger.error("Search failed: %s", exc)
        background_tasks.add_task(
            analytics.track_search_query,
            query, 0, _elapsed_ms(started), user_session, user_agent, ip_address,
        )
        return error_response(
            status.HTTP_502_BAD_GATEWAY,
            "search_unavailable",
            "Search service unavailable",
            background=background_tasks,
        )

    elapsed = _elapsed_ms(started)

    background_tasks.add_task(
        analytics.track_search_query,
        query, len(results), elapsed, user_session, user_agent, ip_address,
    )
    background_tasks.add_task(analytics.update_popular_queries, query, len(results), elapsed)

    logger.info("Search completed: %d results in %d ms", len(results), elapsed)

    return SearchResponse(results=results, total=len(results), response_time_ms=elapsed)


@router.post(
    "/feedback",
    response_model=FeedbackResponse,
    summary="Record feedback on a past search",
    status_code=status.HTTP_201_CREATED,
)
async def submit_feedback(
    req: FeedbackRequest,
    request: Request,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> FeedbackResponse:
    if await SearchQueryRepository(session).get(req.query_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Search query not found")

    user_session = get_user_session(request)
    record = await FeedbackRepository(session).create(
        query_id=req.query_id,
        feedback_type=req.feedback_type,
        feedback_text=req.feedback_text,
        user_session=user_session,
    )

    logger.info(
        "Feedback recorded: query_id=%d type=%s session=%s",
        req.query_id,
        req.feedback_type,
        user_session,
    )
    return FeedbackResponse(feedback_id=record.id)


@router.get(
    "/suggestions",
    response_model=List[Suggestion],
    summary="Popular past queries containing the given text",
)
async def suggestions(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    q: str = "",
    limit: int = DEFAULT_SUGGESTIONS,
) -> List[Suggestion]:
    q = q.strip()
    if not q:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query parameter 'q' is required",
        )
    limit = max(1, min(limit, MAX_SUGGESTIONS))

    rows = await PopularQueryRepository(session).get_top(limit, contains=q)
    return [Suggestion.model_validate(row) for row in rows]
