"""
Database Engine & Sessions

One async engine per process, a session factory bound to it, and schema
bootstrap.

``init_models`` creates any missing tables from the ORM metadata. It is
idempotent and runs at API startup and before a seeding run, so a fresh
database needs no separate migration step.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import settings
from .models import Base

logger = logging.getLogger("arch_search.db")


def build_engine(url: str, pool_size: int = 10) -> AsyncEngine:
    """Engine for ``url``; nothing connects until the first query."""
    return create_async_engine(
        url,
        pool_pre_ping=True,
        pool_size=pool_size,
        max_overflow=pool_size,
    )


async_engine = build_engine(settings.database_url)

AsyncSessionLocal = async_sessionmaker(
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def init_models(engine: Optional[AsyncEngine] = None) -> None:
    """Create the tables that do not exist yet; existing ones are left alone."""
    engine = engine or async_engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ready (%d tables)", len(Base.metadata.tables))


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session; commits on success and rolls back on error.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
