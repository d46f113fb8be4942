"""
Database connection management and session handling.

The engine and its connection pool are owned by a ``DatabaseManager`` that is
created at application startup, stored on ``app.state`` and disposed at
shutdown. Every request borrows exactly one session (and therefore one pooled
connection) and gives it back when the request finishes.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)

from .config import Settings, get_settings
from .models.base import Base

logger = logging.getLogger(__name__)


def create_database_engine(settings: Settings) -> AsyncEngine:
    """Create and configure the database engine with connection pooling."""
    if settings.is_sqlite:
        # Lock waits end before the unit of work deadline; a cancelled task
        # cannot interrupt the driver thread
        busy_timeout = min(settings.sqlite_busy_timeout, settings.transaction_timeout_seconds)
        engine_kwargs = {
            "echo": settings.debug,
            "connect_args": {"timeout": busy_timeout},
        }
        # In-memory databases use a single static connection, no pool sizing
        if ":memory:" not in settings.database_url:
            engine_kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_timeout=settings.database_pool_timeout,
            )
        engine = create_async_engine(settings.database_url, **engine_kwargs)
        _configure_sqlite_locking(engine)
        return engine

    return create_async_engine(
        settings.database_url,
        # Connection pool configuration for concurrent access
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        pool_timeout=settings.database_pool_timeout,
        pool_pre_ping=True,  # Validate connections before use
        pool_recycle=3600,   # Recycle connections every hour
        echo=settings.debug,
        connect_args={
            "server_settings": {
                "application_name": settings.service_name,
            }
        }
    )


def _configure_sqlite_locking(engine: AsyncEngine) -> None:
    """
    Make SQLite transactions take the write lock up front.

    SQLite has no row locks and ignores FOR UPDATE. Starting every transaction
    with BEGIN IMMEDIATE serializes writers across the whole database, which is
    coarser than a row lock but keeps lock-before-check ordering intact.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let us emit BEGIN ourselves
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory for database sessions."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=True,
    )


class DatabaseManager:
    """Owns the engine, the connection pool and the session factory."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None

    async def initialize(self, create_tables: Optional[bool] = None) -> None:
        """Create the engine and, if configured, the schema."""
        if create_tables is None:
            create_tables = self.settings.create_tables_on_startup

        self.engine = create_database_engine(self.settings)
        self.session_factory = create_session_factory(self.engine)

        if create_tables:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        logger.info("Database manager initialized")

    async def close(self) -> None:
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
            logger.info("Database manager closed")

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get a database session with automatic cleanup.

        Usage:
            async with db_manager.get_session() as session:
                result = await session.execute(query)
        """
        if self.session_factory is None:
            raise RuntimeError("Database manager not initialized")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Run a trivial query to check connectivity."""
        async with self.get_session() as session:
            result = await session.execute(text("SELECT 1"))
            return result.scalar() == 1

    def pool_status(self) -> str:
        """Human readable pool status."""
        if self.engine is None:
            return "not initialized"
        return self.engine.pool.status()


def get_db_manager(request: Request) -> DatabaseManager:
    """FastAPI dependency returning the application's database manager."""
    return request.app.state.db_manager


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency for getting database sessions.

    Usage in FastAPI endpoints:
        @router.get("/endpoint")
        async def endpoint(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_db_manager(request).get_session() as session:
        yield session
