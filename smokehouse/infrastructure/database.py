"""Database Session Manager — async engine, per-request sessions and readiness ping.

Invariants:
    - A session that raises is rolled back before it is closed
    - Unique-constraint violations that escape a route surface as ResourceConflictError (409);
      routes that expect one (order and quote-payment replay) catch IntegrityError themselves
    - Pool sizing applies to server databases only; SQLite URLs get the driver's default pool

Design Decisions:
    - Module-level db_manager set in the lifespan, never at import time
    - expire_on_commit=False: ORM rows are serialized after commit in the routes
    - from_factory lets tests wrap an existing engine without opening a second pool
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from smokehouse.core.errors import DatabaseError, ResourceConflictError

logger = logging.getLogger(__name__)


def _engine_options(database_url: str, pool_size: int, max_overflow: int) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
    }


class DatabaseSessionManager:
    """Owns the storefront engine and hands out sessions."""

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker):
        self.engine = engine
        self._session_factory = session_factory

    @classmethod
    def from_url(
        cls, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ) -> "DatabaseSessionManager":
        engine = create_async_engine(
            database_url, **_engine_options(database_url, pool_size, max_overflow),
        )
        return cls.from_factory(
            engine, async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False),
        )

    @classmethod
    def from_factory(
        cls, engine: AsyncEngine, session_factory: async_sessionmaker,
    ) -> "DatabaseSessionManager":
        return cls(engine, session_factory)

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except IntegrityError as e:
            await session.rollback()
            logger.error(f"Constraint violation: {e.orig}", extra={"error_code": "RESOURCE_CONFLICT"})
            raise ResourceConflictError("Record conflicts with existing data")
        except OperationalError as e:
            await session.rollback()
            logger.error(f"Database unavailable: {e.orig}", extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError("server unreachable", "connect")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error: {e}", extra={"error_code": "DATABASE_ERROR"})
            raise DatabaseError(type(e).__name__, "query")
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def ping(self) -> float | None:
        """Round-trip time of SELECT 1 in milliseconds, None when unreachable."""
        started = time.perf_counter()
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database ping failed: {e}")
            return None
        return round((time.perf_counter() - started) * 1000, 2)

    async def close(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager.from_url(database_url, **kwargs)
    return db_manager


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: one session per request."""
    if db_manager is None:
        raise DatabaseError("engine not initialized", "connect")
    async with db_manager.session() as session:
        yield session
