"""
Wiki Crawl Data Models

Canonical models for the static page catalog and the content extracted from
a single crawl of a page. None of these are persisted; a crawled page lives
only until its content has been uploaded.
"""

from __future__ import annotations

from typing import List, Tuple
from pydantic import BaseModel, Field, ConfigDict


class WikiPageSpec(BaseModel):
    """
    A page in the crawl catalog.

    The title is the page's unique key: it names the metadata record and the
    ``arch-wiki/<title>`` source key its content is uploaded under.
    """

    title: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    priority: int = Field(
        default=0,
        description="Higher priority pages are crawled first.",
    )
    sections: Tuple[str, ...] = Field(
        default=(),
        description="Section titles to keep. Empty keeps every section.",
    )

    model_config = ConfigDict(extra="forbid", frozen=True)


class ExtractedSection(BaseModel):
    """A titled section of a crawled page."""

    title: str = Field(..., min_length=1)
    content: str
    anchor: str = ""
    level: int = Field(default=2, ge=2, le=4)

    model_config = ConfigDict(extra="forbid", frozen=True)


class CrawledPage(BaseModel):
    """Main body text plus extracted sections for one catalog page."""

    spec: WikiPageSpec
    content: str
    sections: List[ExtractedSection] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")
