"""
Database connection management.

Builds the async SQLAlchemy engine and session factory from settings and
creates the chunk record schema.

Dependencies: sqlalchemy, knowledge_rag.configs
System role: Database connection lifecycle management
"""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from knowledge_rag.boundary.db.base import Base
from knowledge_rag.configs import get_settings

logger = logging.getLogger(__name__)


def get_async_engine(database_url: str | None = None) -> AsyncEngine:
    """
    Create async SQLAlchemy engine.

    Pool sizing from settings applies to server databases only; SQLite
    URLs get SQLAlchemy's default pool.

    Args:
        database_url: Optional URL overriding the configured one

    Returns:
        AsyncEngine: Configured async SQLAlchemy engine

    Usage:
        engine = get_async_engine()
        async with engine.connect() as conn:
            result = await conn.execute(text("SELECT 1"))
    """
    db_config = get_settings().database
    url = database_url or db_config.async_database_url

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=db_config.echo_sql)

    return create_async_engine(
        url,
        echo=db_config.echo_sql,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_pre_ping=True,
    )


def get_async_session_factory(engine: AsyncEngine | None = None) -> async_sessionmaker:
    """
    Create async session factory for chunk record operations.

    Sessions use autoflush=False and expire_on_commit=False so records stay
    readable after the ingestor commits them.

    Args:
        engine: Engine to bind (built from settings when omitted)

    Returns:
        async_sessionmaker: Async session factory

    Usage:
        SessionFactory = get_async_session_factory()
        async with SessionFactory() as session:
            session.add(obj)
            await session.commit()
    """
    return async_sessionmaker(
        bind=engine or get_async_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


async def create_tables(engine: AsyncEngine) -> None:
    """Create all registered tables that do not exist yet."""
    # Registers ChunkRecordModel on Base.metadata
    from knowledge_rag.boundary.db import models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"{__name__}:create_tables - Schema ensured")
