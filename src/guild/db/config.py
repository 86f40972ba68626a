"""Database engine and session factory construction."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from guild.config.settings import Settings, get_settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(settings: Settings) -> AsyncEngine:
    """Create an async engine for the configured database.

    Pool sizing only applies to server databases; SQLite and the test
    environment run without a pool.
    """
    if settings.ENVIRONMENT == "test" or settings.DATABASE_URL.startswith("sqlite"):
        return create_async_engine(settings.DATABASE_URL, echo=False, poolclass=NullPool)
    return create_async_engine(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def get_engine(settings: Settings | None = None) -> AsyncEngine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine(settings or get_settings())
    return _engine


def get_session_factory(settings: Settings | None = None) -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine(settings))
    return _session_factory


async def init_db(engine: AsyncEngine) -> None:
    """Verify connectivity before accepting requests."""
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db(engine: AsyncEngine) -> None:
    """Release every pooled connection."""
    await engine.dispose()


@asynccontextmanager
async def get_async_session(
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession, None]:
    """Session for use outside FastAPI dependency injection (middleware, scripts).

    Usage:
        async with get_async_session(factory) as session:
            result = await session.execute(query)
    """
    factory = session_factory or get_session_factory()
    async with factory() as session:
        yield session
