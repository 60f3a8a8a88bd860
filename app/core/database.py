"""Async SQLAlchemy 2.0 engine and sessions.

The bulk document stores open one short session per record operation, so
a concurrent batch of N records needs up to N connections at once. The
pool is sized from settings to cover the largest allowed batch.
"""

from collections.abc import AsyncGenerator
from functools import lru_cache

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    """Declarative base for the catalog tables."""


@lru_cache
def get_engine() -> AsyncEngine:
    """Process-wide async engine, pooled for concurrent bulk batches."""
    settings = get_settings()
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout_seconds,
    )


@lru_cache
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine.

    Sessions keep attributes loaded after commit so a created row's id can
    be read once its session has closed.
    """
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def dispose_engine() -> None:
    """Close pooled connections on shutdown.

    Safe to call when no engine was ever created.
    """
    if get_engine.cache_info().currsize == 0:
        return
    await get_engine().dispose()
    get_session_maker.cache_clear()
    get_engine.cache_clear()
    logger.info("database.engine_disposed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency yielding a read-only session.

    Writes go through the document stores, which own their transactions;
    anything left open here is rolled back when the request ends.
    """
    async with get_session_maker()() as session:
        try:
            yield session
        finally:
            await session.rollback()
