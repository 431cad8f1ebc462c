"""Database engine, session, and table management for the template store.

SQLite (aiosqlite) is the local default; any SQLAlchemy async URL works.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_maker: async_sessionmaker[AsyncSession] | None = None


def create_engine(database_url: str | None = None) -> AsyncEngine:
    settings = get_settings()
    url = database_url or settings.database_url

    engine_kwargs: dict = {"echo": settings.db_echo}
    if "sqlite" in url:
        # SQLite doesn't support connection pooling
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_pre_ping"] = True

    return create_async_engine(url, **engine_kwargs)


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the process-wide engine (lazy initialization).

    This allows tests to override settings before the engine is created.
    """
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_maker() -> async_sessionmaker[AsyncSession]:
    global _session_maker
    if _session_maker is None:
        _session_maker = create_session_maker(get_engine())
    return _session_maker


@asynccontextmanager
async def session_scope(
    session_maker: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncGenerator[AsyncSession]:
    """Auto-commits on success, rolls back on exception.

    Notes:
        - Repositories call flush(), never commit()
        - Pass a session_maker to use something other than the global engine
    """
    maker = session_maker or get_session_maker()
    async with maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            try:
                await session.rollback()
            except Exception as rollback_err:
                logger.warning("db.rollback.failed", error=str(rollback_err))
            raise


async def create_tables(engine: AsyncEngine | None = None) -> None:
    """Create any missing tables."""
    # Registers the mapped classes on Base.metadata
    import models  # noqa: F401

    engine = engine or get_engine()
    async with asyncio.timeout(30):
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    logger.info("db.tables.created")


async def reset_engine() -> None:
    """Dispose the global engine; the next get_engine() builds a fresh one."""
    global _engine, _session_maker
    if _engine is not None:
        await _engine.dispose()
        logger.info("db.engine.disposed")
    _engine = None
    _session_maker = None
