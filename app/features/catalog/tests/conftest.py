"""Fixtures for catalog store tests: session doubles and a real database."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import get_settings
from app.core.database import Base
from app.features.catalog import models  # noqa: F401  (register tables on Base.metadata)


class AsyncContext:
    """Async context manager yielding a fixed value."""

    def __init__(self, value: Any = None) -> None:
        self.value = value

    async def __aenter__(self) -> Any:
        return self.value

    async def __aexit__(self, *exc_info: Any) -> bool:
        return False


@pytest.fixture
def mock_session() -> MagicMock:
    """AsyncSession double supporting ``async with session.begin()``."""
    session = MagicMock()
    session.begin.return_value = AsyncContext()
    session.get = AsyncMock(return_value=None)
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    return session


@pytest.fixture
def mock_session_maker(mock_session: MagicMock) -> MagicMock:
    """Session factory whose sessions are ``mock_session``."""
    return MagicMock(side_effect=lambda: AsyncContext(mock_session))


@pytest.fixture
async def db_engine():
    """Async engine with the catalog tables created for the test.

    Requires PostgreSQL to be running (docker-compose up -d).
    """
    engine = create_async_engine(get_settings().database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def db_session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the integration test engine."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(db_session_maker: async_sessionmaker[AsyncSession]):
    """Session for reading back what the stores wrote."""
    async with db_session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()
