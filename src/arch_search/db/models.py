"""
SQLAlchemy Models

Defines the database schema for:
- Per-page crawl metadata (change detection, derived stats)
- Search query analytics and user feedback
- Aggregated popular queries (suggestions)
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import ARRAY, INET
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


CRAWL_STATUSES = ("pending", "crawling", "completed", "failed")
FEEDBACK_TYPES = ("helpful", "not_helpful", "partially_helpful")


def _in_clause(column: str, values: tuple) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ---------------------------------------------------------------------
# Content Metadata
# ---------------------------------------------------------------------

class ContentMetadata(Base):
    """
    Crawl state of one wiki page.

    The page title is unique and matches the ``arch-wiki/<title>`` source
    key the page content is stored under at the context provider.
    """
    __tablename__ = "content_metadata"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wiki_page_title: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    context_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    error_patterns: Mapped[List[str]] = mapped_column(ARRAY(Text), nullable=False, default=list)
    content_hash: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    page_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    content_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="wiki_page", server_default="wiki_page"
    )
    last_crawled: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    crawl_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending", server_default="pending"
    )
    word_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    section_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(_in_clause("crawl_status", CRAWL_STATUSES), name="ck_content_crawl_status"),
        Index("idx_content_metadata_active", "is_active"),
        Index("idx_content_metadata_status", "crawl_status"),
    )


# ---------------------------------------------------------------------
# Search Analytics
# ---------------------------------------------------------------------

class SearchQuery(Base):
    """One executed search, recorded after the response is sent."""
    __tablename__ = "search_queries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query_text: Mapped[str] = mapped_column(Text, nullable=False)
    user_session: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    results_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicked_result_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    search_timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    response_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(INET, nullable=True)

    feedback: Mapped[List["UserFeedback"]] = relationship(
        "UserFeedback",
        back_populates="query",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("idx_search_queries_timestamp", "search_timestamp"),
        Index("idx_search_queries_session", "user_session"),
    )


class UserFeedback(Base):
    __tablename__ = "user_feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("search_queries.id", ondelete="CASCADE"),
        nullable=False,
    )
    feedback_type: Mapped[str] = mapped_column(String(50), nullable=False)
    feedback_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_session: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    query: Mapped["SearchQuery"] = relationship("SearchQuery", back_populates="feedback")

    __table_args__ = (
        CheckConstraint(_in_clause("feedback_type", FEEDBACK_TYPES), name="ck_feedback_type"),
        Index("idx_user_feedback_query", "query_id"),
    )


# ---------------------------------------------------------------------
# Popular Queries
# ---------------------------------------------------------------------

class PopularQuery(Base):
    """
    Aggregate per distinct query text.

    ``avg_results_count`` and ``avg_response_time_ms`` are running averages
    over ``search_count`` searches.
    """
    __tablename__ = "popular_queries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    query_text: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    search_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    avg_results_count: Mapped[Decimal] = mapped_column(
        Numeric(7, 2), nullable=False, default=Decimal("0")
    )
    avg_response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_searched: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("idx_popular_queries_count", "search_count"),
    )
