"""
Async engine and session factory.

PostgreSQL (asyncpg) gets a sized, recycled pool.  SQLite (aiosqlite,
used by the test suite and local runs) keeps the driver's own pool.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (AsyncEngine, AsyncSession,
                                    async_sessionmaker, create_async_engine)

from cleantrack.core.config import Settings, settings


def build_engine(config: Settings, **overrides) -> AsyncEngine:
    engine_args: dict = {"echo": config.DB_ECHO, "pool_pre_ping": True}
    if config.DATABASE_URL.startswith("postgresql"):
        engine_args.update(
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_recycle=config.DB_POOL_RECYCLE,
        )
    elif config.DATABASE_URL.startswith("sqlite"):
        engine_args["connect_args"] = {"check_same_thread": False}
    engine_args.update(overrides)
    return create_async_engine(config.DATABASE_URL, **engine_args)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Mutations read their own results back after commit.
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings)
async_session_factory = build_session_factory(engine)
