"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine with the asyncpg driver for the hosted
PostgreSQL database. Also derives the plain asyncpg DSN used by the
LISTEN/NOTIFY change feed from the same ``DATABASE_URL``.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-010)
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        database_url: SQLAlchemy URL, e.g. ``postgresql+asyncpg://...``.

    Returns:
        AsyncEngine: Configured async engine for PostgreSQL via asyncpg.
    """
    return create_async_engine(database_url, echo=False, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to *engine*.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def asyncpg_dsn(database_url: str) -> str:
    """Convert a SQLAlchemy URL into a DSN accepted by ``asyncpg.connect``.

    Strips the ``+asyncpg`` driver suffix, keeping credentials, host,
    port, database and query parameters.

    Args:
        database_url: SQLAlchemy URL.

    Returns:
        str: ``postgresql://...`` DSN.
    """
    url = make_url(database_url).set(drivername="postgresql")
    return url.render_as_string(hide_password=False)
