"""
Async database engine management — PostgreSQL, MySQL, SQLite.

Driver mapping:
  postgresql://  → postgresql+asyncpg://     (requires asyncpg)
  mysql://       → mysql+aiomysql://         (requires aiomysql)
  sqlite://      → sqlite+aiosqlite://       (requires aiosqlite)

Engines are created explicitly and owned by the caller (normally a
``table_queue.context.QueueContext``); nothing here is cached at module level.

Usage:
    engine = create_engine("postgresql://u:p@h/db")
    await init_db(engine)
    async with get_session(engine) as db:
        result = await db.execute(...)
    await engine.dispose()
"""
from __future__ import annotations

import structlog
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    create_async_engine, AsyncEngine, AsyncSession,
)

from config.settings import Settings, get_settings
from database.models import Base

logger = structlog.get_logger()


def _to_async_url(db_url: str) -> str:
    """Convert a sync database URL to its async driver equivalent."""
    replacements = [
        ("postgresql://", "postgresql+asyncpg://"),
        ("postgres://", "postgresql+asyncpg://"),
        ("mysql://", "mysql+aiomysql://"),
        ("mysql+pymysql://", "mysql+aiomysql://"),
        ("sqlite://", "sqlite+aiosqlite://"),
    ]
    for sync_prefix, async_prefix in replacements:
        if db_url.startswith(sync_prefix):
            return db_url.replace(sync_prefix, async_prefix, 1)
    # Already has async driver or unknown — return as-is
    return db_url


def _engine_kwargs(
    db_url: str, debug: bool = False, lock_timeout: float = 30.0,
    pool_size: int = 10, max_overflow: int = 20,
) -> dict:
    """Return database-specific engine configuration."""
    base = {"echo": debug}

    if "sqlite" in db_url:
        # timeout = how long a claimant blocks on the write lock
        return {**base, "connect_args": {"check_same_thread": False, "timeout": lock_timeout}}

    # PostgreSQL / MySQL: connection pool tuning
    return {
        **base,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "pool_pre_ping": True,
    }


def _install_sqlite_claim_locking(engine: AsyncEngine) -> None:
    """
    SQLite has no row locks and ignores FOR UPDATE. Start every transaction
    with BEGIN IMMEDIATE instead, so a second claimant blocks on the busy
    timeout until the first one commits and then re-runs its select.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine(
    db_url: str, debug: bool = False, lock_timeout: float = 30.0,
    pool_size: int = 10, max_overflow: int = 20,
) -> AsyncEngine:
    """Create an async engine for the queue table. The caller disposes it."""
    db_url = _to_async_url(db_url)
    kwargs = _engine_kwargs(
        db_url, debug=debug, lock_timeout=lock_timeout,
        pool_size=pool_size, max_overflow=max_overflow,
    )
    engine = create_async_engine(db_url, **kwargs)
    if engine.dialect.name == "sqlite":
        _install_sqlite_claim_locking(engine)

    logger.info("database_engine_created",
                dialect=engine.dialect.name,
                url=str(engine.url).split("@")[-1] if "@" in str(engine.url) else str(engine.url))
    return engine


def create_engine_from_settings(settings: Settings = None) -> AsyncEngine:
    settings = settings or get_settings()
    db = settings.database
    return create_engine(
        db.url, debug=settings.debug, lock_timeout=db.lock_timeout,
        pool_size=db.pool_size, max_overflow=db.max_overflow,
    )


@asynccontextmanager
async def get_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional async session scope."""
    async with AsyncSession(engine, expire_on_commit=False) as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db(engine: AsyncEngine) -> None:
    """Create the queue table and its indexes if missing."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("database_initialized",
                dialect=engine.dialect.name,
                tables=list(Base.metadata.tables.keys()))


async def drop_db(engine: AsyncEngine) -> None:
    """Drop the queue table. Intended for tests and teardown scripts."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    logger.info("database_dropped", dialect=engine.dialect.name)
