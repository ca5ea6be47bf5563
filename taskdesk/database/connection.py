"""
Async engine and unit-of-work sessions.

``Database.session()`` is the transaction boundary for the whole
application: statements issued inside one ``async with`` block commit
together, and any exception escaping the block rolls all of them back.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from config import settings
from .exceptions import DatabaseConnectionError
from .models import Base

logger = logging.getLogger(__name__)

ASYNCPG_PREFIX = "postgresql+asyncpg://"


def normalize_database_url(database_url: str) -> str:
    """Point bare PostgreSQL URLs at the asyncpg driver."""
    for prefix in ("postgres://", "postgresql://"):
        if database_url.startswith(prefix):
            return ASYNCPG_PREFIX + database_url[len(prefix):]
    return database_url


def engine_options(database_url: str) -> Dict[str, Any]:
    """Pool and driver keyword arguments for ``create_async_engine``."""
    if settings.environment == "test":
        # Connections must not outlive a test case
        options: Dict[str, Any] = {"poolclass": NullPool}
    else:
        options = {
            "poolclass": AsyncAdaptedQueuePool,
            "pool_size": settings.db_pool_size,
            "max_overflow": settings.db_max_overflow,
            "pool_timeout": settings.db_pool_timeout,
            "pool_recycle": settings.db_pool_recycle,
            "pool_pre_ping": True,
        }

    if database_url.startswith(ASYNCPG_PREFIX):
        options["connect_args"] = {
            "server_settings": {"application_name": "taskdesk", "jit": "off"}
        }
    return options


class Database:
    """Owns the engine and hands out transactional sessions."""

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None

    @property
    def ready(self) -> bool:
        return self.session_factory is not None

    async def initialize(self) -> bool:
        """Create the engine and any missing tables. Returns False if unconfigured or unreachable."""
        if self.ready:
            return True

        database_url = normalize_database_url(self.database_url or settings.database_url)
        if not database_url:
            logger.warning("DATABASE_URL not configured")
            return False

        engine: Optional[AsyncEngine] = None
        try:
            engine = create_async_engine(
                database_url,
                echo=settings.database_echo,
                **engine_options(database_url)
            )
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except Exception as e:
            logger.error(f"Database initialization failed: {e}")
            if engine is not None:
                await engine.dispose()
            return False

        self.engine = engine
        self.session_factory = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info(f"Database ready ({engine.url.get_backend_name()})")
        return True

    async def close(self):
        if self.engine:
            await self.engine.dispose()
            logger.info("Database connection closed")
        self.engine = None
        self.session_factory = None

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Open a session that commits on normal exit.

        Application errors such as NotFoundError roll back too, then
        propagate unchanged.
        """
        if not self.ready and not await self.initialize():
            raise DatabaseConnectionError()

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.debug(f"Session rolled back: {type(e).__name__}")
                raise

    async def health_check(self) -> dict:
        """Round-trip a trivial query."""
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return {"status": "unhealthy"}
        return {"status": "healthy"}


# Singleton
_database: Optional[Database] = None


def get_database() -> Database:
    """Get the database singleton."""
    global _database
    if _database is None:
        _database = Database()
    return _database


async def init_database() -> bool:
    return await get_database().initialize()


async def close_database():
    global _database
    if _database:
        await _database.close()
        _database = None
