"""Audit Database — async engine and session scope for the audit_events table.

Invariants:
    - A session that raises is rolled back before the error leaves the scope
    - Driver and ORM failures surface as DatabaseError (core/errors.py), with the
      operation that failed; the raw driver message only reaches the log
    - Only the audit trail, /stats, /history and readiness touch the database;
      the conversation path never waits on it

Design Decisions:
    - Module-level db_manager set by init_db() during lifespan startup (no import
      side effects); health routes read it at call time
    - expire_on_commit=False: rows are read after the session closes
    - SQLite URLs get no pool sizing (tests and single-process deployments)
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from chatshop.core.errors import DatabaseError
from chatshop.db.base import Base

logger = logging.getLogger(__name__)

# Most specific first: IntegrityError and OperationalError are DBAPIErrors
_FAILURES: tuple[tuple[type[SQLAlchemyError], str, str], ...] = (
    (IntegrityError, "insert", "constraint violated"),
    (OperationalError, "connect", "database unreachable"),
    (DBAPIError, "query", "driver rejected the statement"),
    (SQLAlchemyError, "session", "unexpected ORM failure"),
)


class DatabaseSessionManager:
    """Owns the async engine; hands out sessions that roll back on failure."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.database_url = database_url
        self.engine = create_async_engine(
            database_url, **_pool_options(database_url, pool_size, max_overflow),
        )
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            await db.rollback()
            operation, summary = _classify(e)
            logger.error(
                f"Audit database {operation} failed: {e}",
                extra={"error_code": "DATABASE_ERROR", "event": operation},
            )
            raise DatabaseError(summary, operation) from e
        finally:
            await db.close()

    async def create_schema(self) -> None:
        """create_all for SQLite and local runs; PostgreSQL deployments use alembic."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        return await self.ping() is not None

    async def ping(self) -> float | None:
        """Round-trip time of SELECT 1 in milliseconds, or None when unreachable."""
        started = time.perf_counter()
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except Exception as e:
            logger.warning(f"Audit database ping failed: {e}")
            return None
        return (time.perf_counter() - started) * 1000

    async def close(self) -> None:
        await self.engine.dispose()


def _classify(error: SQLAlchemyError) -> tuple[str, str]:
    for kind, operation, summary in _FAILURES:
        if isinstance(error, kind):
            return operation, summary
    return "session", "unexpected ORM failure"


def _pool_options(database_url: str, pool_size: int, max_overflow: int) -> dict:
    if database_url.startswith("sqlite"):
        return {}
    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    }


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager
