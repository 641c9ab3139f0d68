"""
Async database engine and session factory.

All application code obtains sessions through get_async_session():

    async with get_async_session() as session:
        ...

The engine is built once from settings.DATABASE_URL. Production runs on
PostgreSQL (asyncpg); the test suite points DATABASE_URL at SQLite (aiosqlite).
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from database.models import Base
from shared.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DATABASE_ECHO,
    pool_pre_ping=True,
)

# expire_on_commit=False keeps returned entities readable after the session closes
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


@asynccontextmanager
async def get_async_session() -> AsyncIterator[AsyncSession]:
    """
    Provide an AsyncSession bound to the shared engine.

    The session is closed on exit. Callers own commit/rollback.
    """
    async with AsyncSessionLocal() as session:
        yield session


async def create_all() -> None:
    """Create every table and index declared on Base.metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema created")


async def drop_all() -> None:
    """Drop every table declared on Base.metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("Database schema dropped")
