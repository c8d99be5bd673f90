"""
Search Result Model

``SearchResult`` is the ranker's output and the cache's stored value; the
HTTP layer returns it unchanged.
"""

from __future__ import annotations

from typing import Literal
from pydantic import BaseModel, Field, ConfigDict


Relevance = Literal["high", "medium", "low"]


class SearchResult(BaseModel):
    """
    One display-ready search hit.
    """
    context_id: str
    title: str = Field(..., min_length=1)
    content: str
    url: str
    score: float = Field(..., ge=0.0, le=1.0)
    relevance: Relevance

    model_config = ConfigDict(extra="forbid")
