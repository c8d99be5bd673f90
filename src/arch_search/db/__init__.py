"""
Database Package

Provides SQLAlchemy async session management, model definitions and
repositories for PostgreSQL.
"""

from .session import get_async_session, async_engine, AsyncSessionLocal, build_engine, init_models
from .models import Base, ContentMetadata, SearchQuery, UserFeedback, PopularQuery
from .repositories import (
    ContentMetadataRepository,
    SearchQueryRepository,
    FeedbackRepository,
    PopularQueryRepository,
)

__all__ = [
    "get_async_session",
    "async_engine",
    "AsyncSessionLocal",
    "build_engine",
    "init_models",
    "Base",
    "ContentMetadata",
    "SearchQuery",
    "UserFeedback",
    "PopularQuery",
    "ContentMetadataRepository",
    "SearchQueryRepository",
    "FeedbackRepository",
    "PopularQueryRepository",
]
