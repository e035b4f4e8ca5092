"""
Database session and engine management.

Provides async database connections with proper connection pooling,
transaction management, and context managers.

Responsibility: Manage database connections and sessions
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import (
    create_async_engine,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker
)
from sqlalchemy import event
from sqlalchemy.pool import NullPool, AsyncAdaptedQueuePool
import logging

from ..config import DatabaseConfig, settings

logger = logging.getLogger(__name__)


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy emit BEGIN itself so SAVEPOINT works on SQLite.

    Also turns on foreign key enforcement, which SQLite leaves off.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def on_begin(conn):
        conn.exec_driver_sql("BEGIN")


class Database:
    """
    Database connection manager.

    Handles engine creation, connection pooling, and session management
    for both local (SQLite) and production (PostgreSQL) environments.

    Example:
        # Initialize
        db = Database()
        await db.initialize()

        # Use session
        async with db.session() as session:
            result = await session.execute(query)

        # Cleanup
        await db.close()
    """

    def __init__(self, config: Optional[DatabaseConfig] = None, url: Optional[str] = None):
        """
        Initialize database manager.

        Args:
            config: Database settings (defaults to the global settings)
            url: Explicit async connection string, overrides config
        """
        self.config = config or settings.db
        self.url = url or self.config.connection_string
        self.engine: AsyncEngine | None = None
        self.session_factory: async_sessionmaker[AsyncSession] | None = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Initialize database engine and session factory.

        Creates async engine with appropriate pool settings based on
        the configured database driver (SQLite vs PostgreSQL).
        """
        if self._initialized:
            logger.warning("Database already initialized")
            return

        logger.info(f"Initializing database: {self.url.split('://')[0]}")

        if self.url.startswith("sqlite"):
            # SQLite: No connection pooling (single-file database)
            pool_class = NullPool
            pool_kwargs = {}
            logger.info("Using SQLite with NullPool")
        else:
            pool_class = AsyncAdaptedQueuePool
            pool_kwargs = {
                "pool_size": self.config.pool_size,
                "max_overflow": self.config.max_overflow,
                "pool_timeout": self.config.pool_timeout,
                "pool_recycle": self.config.pool_recycle,
                "pool_pre_ping": True,
            }
            logger.info(
                f"Using PostgreSQL with AsyncAdaptedQueuePool "
                f"(size={self.config.pool_size}, "
                f"max_overflow={self.config.max_overflow})"
            )

        self.engine = create_async_engine(
            self.url,
            echo=self.config.echo,
            echo_pool=self.config.echo_pool,
            poolclass=pool_class,
            **pool_kwargs
        )

        if self.url.startswith("sqlite"):
            _enable_sqlite_savepoints(self.engine)

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        self._initialized = True
        logger.info("Database initialized successfully")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a new database session with automatic cleanup.

        Commits on success and rolls back on error, so every
        `async with db.session()` block is one self-contained transaction.

        Yields:
            AsyncSession for database operations

        Example:
            async with db.session() as session:
                session.add(model)
        """
        if not self._initialized or not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self.session_factory()

        try:
            yield session
            if session.in_transaction():
                await session.commit()
        except Exception as e:
            logger.error(f"Session error, rolling back: {e}")
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self) -> None:
        """
        Create all database tables.

        Uses SQLAlchemy metadata to create tables if they don't exist.
        For production, use Alembic migrations instead.
        """
        if not self._initialized or not self.engine:
            raise RuntimeError("Database not initialized")

        from .models import Base

        logger.info("Creating database tables...")

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info("Database tables created successfully")

    async def close(self) -> None:
        """
        Close database engine and cleanup connections.

        Should be called during application shutdown.
        """
        if not self._initialized:
            return

        if self.engine:
            logger.info("Closing database connections...")
            await self.engine.dispose()
            self.engine = None

        self.session_factory = None
        self._initialized = False

        logger.info("Database closed")


# Global database instance (API process)
db = Database()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency yielding a transactional session.

    Example:
        @router.get("/bills")
        async def list_bills(session: AsyncSession = Depends(get_session)):
            ...
    """
    if not db.is_initialized:
        await db.initialize()
    async with db.session() as session:
        yield session
