"""Database engine and session management.

Services reach the catalog store through repositories built on
``async_session_factory``; FastAPI endpoints use ``get_session``.
"""

from collections.abc import AsyncGenerator
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from catalog_items.infrastructure.config import settings

logger = structlog.get_logger()


def create_engine(database_url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine for a database URL.

    SQLite databases share one connection so that an in-memory database
    outlives single sessions.

    Args:
        database_url: Async SQLAlchemy URL.
        **kwargs: Extra engine options.

    Returns:
        Configured engine.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("poolclass", StaticPool)
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        kwargs.setdefault("pool_pre_ping", True)
    kwargs.setdefault("echo", settings.debug)
    return create_async_engine(database_url, **kwargs)


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay readable after commit."""
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = create_engine(settings.database_url)
async_session_factory = create_session_factory(engine)

# Base class for models
Base = declarative_base()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.warning("Rolling back session", error=str(e))
            await session.rollback()
            raise
