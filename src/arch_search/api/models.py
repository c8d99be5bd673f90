"""
API Models for the Search Service

Pydantic models for request/response validation across the search,
feedback and suggestion endpoints.

``SearchResult`` itself lives in ``arch_search.search.models``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict

from ..search.models import SearchResult


# ---------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    """
    Free-text error query.

    Emptiness and length are checked by the route (after trimming) so they
    produce 400 responses rather than schema errors.
    """
    query: str

    model_config = ConfigDict(extra="forbid")


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    response_time_ms: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Feedback
# ---------------------------------------------------------------------

FeedbackType = Literal["helpful", "not_helpful", "partially_helpful"]


class FeedbackRequest(BaseModel):
    query_id: int = Field(..., ge=1)
    feedback_type: FeedbackType
    feedback_text: Optional[str] = Field(default=None, max_length=2000)

    model_config = ConfigDict(extra="forbid")


class FeedbackResponse(BaseModel):
    status: Literal["created"] = "created"
    feedback_id: int

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------

class Suggestion(BaseModel):
    """A previously searched query offered as a completion."""
    query_text: str
    search_count: int = Field(..., ge=0)
    avg_results_count: float = Field(default=0.0, ge=0.0)
    last_searched: Optional[datetime] = None

    model_config = ConfigDict(extra="forbid", from_attributes=True)


# ---------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------

class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    service: str
    timestamp: datetime
    services: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")
