"""Async engine and request-scoped sessions."""
from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..core.config import settings

logger = logging.getLogger(__name__)


def _connect_args() -> dict[str, object]:
    if settings.database_ssl_required:
        return {"ssl": True}
    return {}


engine = create_async_engine(
    settings.database_url,
    echo=settings.database_echo,
    pool_pre_ping=True,
    connect_args=_connect_args(),
)
# Objects stay readable after commit; the room service commits between provider calls.
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""

    async with SessionLocal() as session:
        yield session


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""

    logger.info("Disposing database engine")
    await engine.dispose()
