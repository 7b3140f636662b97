"""
MarkNotes Backend - Database Handle
=====================================

What:  Async SQLAlchemy engine, session factory and lifecycle for one database.
How:   `Database` is constructed by the app factory, connected during lifespan
       startup and disposed at shutdown. It is handed to the NoteStore and
       exposed to routes through `app.state`, so there is no module-level engine.
Who:   Used by NoteStore (sessions), the health route (ping) and Alembic (Base).

Connection Pooling (PostgreSQL):
    pool_size=20:      Persistent connections for normal load
    max_overflow=10:   Temporary connections for traffic spikes (total max = 30)
    pool_pre_ping:     Validates connections before use
    pool_recycle=3600: Recycles connections every hour

    SQLite URLs (tests, local runs) use SQLAlchemy's default pool for the
    aiosqlite dialect and take no sizing arguments.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from marknotes.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object, which Alembic reads for --autogenerate.
    """
    pass


class Database:
    """
    Explicit handle over an async engine and its session factory.

    Lifecycle:
        db = Database(settings)
        await db.connect()        # build engine + session factory
        async with db.session() as session:
            ...                   # commit on success, rollback on error
        await db.dispose()        # close pooled connections
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    async def connect(self) -> None:
        """Create the engine and session factory. Calling twice is a no-op."""
        if self._engine is not None:
            return

        engine_kwargs = {"echo": self.settings.log_level == "DEBUG"}
        if not self.settings.is_sqlite:
            engine_kwargs.update(
                pool_size=self.settings.db_pool_size,
                max_overflow=self.settings.db_max_overflow,
                pool_pre_ping=self.settings.db_pool_pre_ping,
                pool_recycle=3600,
            )

        self._engine = create_async_engine(self.settings.database_url, **engine_kwargs)
        # expire_on_commit=False: records stay readable after the session closes
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database engine created (%s)", self._engine.url.render_as_string(hide_password=True))

        if self.settings.db_auto_create:
            await self.create_all()

    async def create_all(self) -> None:
        """Create all tables registered on Base.metadata (idempotent)."""
        # Models must be imported so they register with Base.metadata
        from marknotes.models import note  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        from marknotes.models import note  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Provide a transactional session.

        How it works:
            1. Creates a new session from the factory
            2. Yields it to the caller
            3. On success: commits the transaction
            4. On error: rolls back and re-raises
            5. Always: closes the session (returns connection to pool)
        """
        if self._session_factory is None:
            raise RuntimeError("Database is not connected; call connect() first")

        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    async def ping(self) -> bool:
        """Run SELECT 1; False if the database is unreachable."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning("Database ping failed: %s", str(e))
            return False

    async def dispose(self) -> None:
        """Close all pooled connections. Safe to call when not connected."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database engine disposed")
