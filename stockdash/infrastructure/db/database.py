"""
Database Configuration
SQLAlchemy async engine and session factory

PostgreSQL (asyncpg) in deployment; SQLite (aiosqlite) for tests and local runs.
"""

import os
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from stockdash.config import settings


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


def async_url(url: str) -> str:
    """Point plain postgres URLs at the asyncpg driver"""
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    url = async_url(url)
    if url.startswith("sqlite"):
        # SQLite has no connection pool to size
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
    )


# Alembic runs against a sync engine of its own
ALEMBIC_MODE = os.getenv("ALEMBIC_MODE") == "1"

engine = None if ALEMBIC_MODE else create_engine_for(settings.DATABASE_URL, echo=settings.DEBUG)
async_session_factory = (
    async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False) if engine is not None else None
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session: committed when the route returns,
    rolled back when it raises.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create tables directly (dev/test); production schemas come from Alembic"""
    if not settings.AUTO_CREATE_TABLES or engine is None:
        return
    from stockdash.infrastructure.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    if engine is not None:
        await engine.dispose()
