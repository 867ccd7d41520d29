# src/edumanager/db/session.py
from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from edumanager.observability import get_logger
from edumanager.settings import get_settings

from .base import Base

logger = get_logger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    if not url.startswith("sqlite"):
        return False
    return ":memory:" in url or url.split("://", 1)[-1] in ("", "/")


def create_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> AsyncEngine:
    """
    Build an async engine.

    In-memory SQLite URLs get a StaticPool so every session shares the one
    connection that holds the database.
    """
    settings = get_settings()
    url = url or settings.DATABASE_URL
    engine_kwargs: dict = {
        "echo": settings.DB_ECHO if echo is None else echo,
    }
    if _is_memory_sqlite(url):
        engine_kwargs["poolclass"] = StaticPool
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        engine_kwargs["pool_pre_ping"] = True  # protects against stale connections
    return create_async_engine(url, **engine_kwargs)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401  (register tables on Base.metadata)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")
