"""
Database configuration (async SQLAlchemy; PostgreSQL via asyncpg, SQLite via aiosqlite).
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from slidecraft.config import get_settings

logger = logging.getLogger(__name__)

_engine = None
_session_maker = None
_initialized = False


class Base(DeclarativeBase):
    pass


class DatabaseNotConfigured(RuntimeError):
    pass


def get_engine():
    global _engine
    settings = get_settings()
    if _engine is None and settings.database_url:
        options = {"pool_pre_ping": True}
        if settings.database_url.startswith("postgresql"):
            options.update(pool_size=3, max_overflow=5)
        _engine = create_async_engine(settings.database_url, **options)
        logger.info("Database engine created for: %s...", settings.database_url.split("@")[-1][:50])
    return _engine


def get_session_maker():
    global _session_maker
    if _session_maker is None:
        engine = get_engine()
        if engine:
            _session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    return _session_maker


async def init_db() -> bool:
    """Create tables on first use."""
    global _initialized
    if _initialized:
        return True

    engine = get_engine()
    if not engine:
        logger.warning("No database engine available (DATABASE_URL is empty)")
        return False

    from slidecraft import models  # noqa: F401  (registers tables)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    _initialized = True
    logger.info("Database tables created")
    return True


async def dispose_db():
    global _engine, _session_maker, _initialized
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_maker = None
    _initialized = False


async def get_db():
    """Dependency for getting database session."""
    if not _initialized and not await init_db():
        raise DatabaseNotConfigured("Database not configured")

    session_maker = get_session_maker()
    if session_maker is None:
        raise DatabaseNotConfigured("Database not configured")

    async with session_maker() as session:
        yield session
