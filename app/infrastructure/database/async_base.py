"""Async SQLAlchemy engine and session factory for the restaurant store.

The map controller issues bounds, cluster and list queries concurrently, so
each query opens its own short-lived session from this factory.
"""

import logging
from typing import Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings

logger = logging.getLogger(__name__)


def _build_async_db_url() -> str:
    url = settings.DATABASE_URL or "sqlite+aiosqlite:///./restaurants.db"
    # normalize bare sqlite scheme to the async driver
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


_ASYNC_ENGINE: Optional[AsyncEngine] = None
_ASYNC_SESSION_LOCAL: Optional[async_sessionmaker] = None


def get_async_engine() -> Optional[AsyncEngine]:
    """Lazily create async engine if DB is enabled."""
    global _ASYNC_ENGINE
    if not settings.DB_ENABLED:
        logger.info("Async DB disabled by configuration (DB_ENABLED=false).")
        return None
    if _ASYNC_ENGINE is None:
        _ASYNC_ENGINE = create_async_engine(
            _build_async_db_url(),
            pool_pre_ping=settings.DB_POOL_PRE_PING,
            echo=settings.DEBUG,
        )
    return _ASYNC_ENGINE


def get_async_session_factory() -> Optional[async_sessionmaker]:
    global _ASYNC_SESSION_LOCAL
    engine = get_async_engine()
    if engine is None:
        return None
    if _ASYNC_SESSION_LOCAL is None:
        _ASYNC_SESSION_LOCAL = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
    return _ASYNC_SESSION_LOCAL


async def dispose_async_engine() -> None:
    """Close pooled connections on shutdown."""
    global _ASYNC_ENGINE, _ASYNC_SESSION_LOCAL
    if _ASYNC_ENGINE is not None:
        await _ASYNC_ENGINE.dispose()
    _ASYNC_ENGINE = None
    _ASYNC_SESSION_LOCAL = None


async def check_async_database_connection(engine: Optional[AsyncEngine] = None) -> bool:
    try:
        engine = engine or get_async_engine()
        if engine is None:
            return False
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
            row = result.scalar()
            return row == 1
    except Exception as e:
        logger.error(f"Async DB connection check failed: {e}")
        return False
