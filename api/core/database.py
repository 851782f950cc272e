"""Database connection cache and session management.

The application owns one ``ConnectionCache`` (stored on ``app.state``). The
engine behind it is created lazily on first use, so importing the app or
resolving request dependencies never touches the database. Concurrent first
callers wait on a single lock and share one connection attempt.

The first connection creates every table registered on ``Base.metadata``,
so ``models`` must be imported before then (``main`` does this).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from core.config import get_settings
from core.logger import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class DatabaseConfigError(RuntimeError):
    """DATABASE_URL is missing. Not retried."""


class DatabaseUnavailableError(RuntimeError):
    """The connection cache could not produce an engine."""


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


def _default_engine_options(database_url: str) -> dict[str, Any]:
    settings = get_settings()
    options: dict[str, Any] = {"echo": settings.db_echo}
    if "sqlite" not in database_url:
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_pool_max_overflow,
            pool_recycle=settings.db_pool_recycle,
        )
    return options


class ConnectionCache:
    """Lazily-initialized, process-wide database engine.

    Args:
        database_url: Overrides ``DATABASE_URL`` from settings.
        **engine_options: Passed to ``create_async_engine`` instead of the
            pool settings derived from configuration.
    """

    def __init__(self, database_url: str | None = None, **engine_options: Any):
        self._database_url = database_url
        self._engine_options = engine_options
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _resolve_database_url(self) -> str:
        database_url = self._database_url or get_settings().database_url
        if not database_url:
            raise DatabaseConfigError(
                "DATABASE_URL is not defined in environment variables."
            )
        return database_url

    async def get_connection(self) -> AsyncEngine | None:
        """Return the shared engine, connecting on first use.

        Returns None if the connection attempt fails; the failure is logged
        and the next call tries again.

        Raises:
            DatabaseConfigError: No database URL is configured.
        """
        if self._engine is not None:
            return self._engine

        async with self._lock:
            # Another caller may have connected while we waited
            if self._engine is not None:
                return self._engine

            database_url = self._resolve_database_url()

            engine = create_async_engine(
                database_url,
                **(self._engine_options or _default_engine_options(database_url)),
            )

            try:
                async with asyncio.timeout(get_settings().db_connect_timeout):
                    async with engine.begin() as conn:
                        await conn.execute(text("SELECT 1"))
                        await conn.run_sync(Base.metadata.create_all)
            except Exception:
                logger.exception("db.connection.failed", dialect=engine.dialect.name)
                await engine.dispose()
                return None

            self._engine = engine
            self._session_maker = create_session_maker(engine)
            logger.info("db.connection.established", dialect=engine.dialect.name)
            return engine

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Auto-commits on success, rolls back on exception.

        Raises:
            DatabaseUnavailableError: No engine could be established.
        """
        engine = await self.get_connection()
        if engine is None or self._session_maker is None:
            raise DatabaseUnavailableError("Database connection is not available")

        async with self._session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                try:
                    await session.rollback()
                except Exception as rollback_err:
                    logger.warning("db.rollback.failed", error=str(rollback_err))
                raise

    async def check_connection(self) -> bool:
        """Health probe. Never raises."""
        try:
            engine = await self.get_connection()
            if engine is None:
                return False
            async with asyncio.timeout(get_settings().db_connect_timeout):
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                    await conn.rollback()
        except Exception:
            logger.warning("db.health_check.failed", exc_info=True)
            return False
        return True

    async def dispose(self) -> None:
        async with self._lock:
            if self._engine is None:
                return
            await self._engine.dispose()
            self._engine = None
            self._session_maker = None
        logger.info("db.engine.disposed")


def get_connection_cache(request: Request) -> ConnectionCache:
    """FastAPI dependency. Performs no I/O."""
    return request.app.state.connection_cache
