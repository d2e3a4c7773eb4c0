"""
Database engine and session factory.

Single async engine per process; sessions are created per operation.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from app.config.settings import settings


def create_engine(null_pool: bool = False) -> AsyncEngine:
    """
    Create async engine from settings.

    Args:
        null_pool: Disable pooling (used by Dramatiq workers, where
            each actor runs in its own event loop)
    """
    kwargs = {"echo": settings.database_echo}
    if null_pool:
        kwargs["poolclass"] = NullPool
    return create_async_engine(settings.async_database_url, **kwargs)


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to the engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session; services commit, anything left is rolled back."""
    async with session_maker() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()
