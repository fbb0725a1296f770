"""Database Session Manager - async connection pool with automatic rollback and health checks.

Invariants:
    - Every session auto-rolls-back on exception (no partial commits leak)
    - Connection pool uses pool_pre_ping for stale connection detection
    - SQLAlchemy exceptions leave a session as StoreError (core/errors.py):
      IntegrityError -> write_conflict, OperationalError -> network, others -> unknown
    - StoreError raised inside a session (e.g. by an adapter) passes through unchanged

Design Decisions:
    - Singleton db_manager initialized on startup: FastAPI lifespan manages lifecycle
    - expire_on_commit=False: prevents lazy-load issues in async context
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from app.core.errors import StoreError, StoreErrorReason

logger = logging.getLogger(__name__)

# Ordered: subclasses before their bases
_ERROR_MAP: tuple[tuple[type[SQLAlchemyError], str, str, StoreErrorReason], ...] = (
    (IntegrityError, "Integrity constraint violated", "commit",
     StoreErrorReason.WRITE_CONFLICT),
    (OperationalError, "Connection or operational error", "execute",
     StoreErrorReason.NETWORK),
    (DBAPIError, "Database driver error", "query", StoreErrorReason.UNKNOWN),
    (SQLAlchemyError, "Database operation failed", "unknown",
     StoreErrorReason.UNKNOWN),
)


def to_store_error(e: SQLAlchemyError) -> StoreError:
    for exc_type, message, operation, reason in _ERROR_MAP:
        if isinstance(e, exc_type):
            return StoreError(message, operation, reason)
    return StoreError(str(e), "unknown")


class DatabaseSessionManager:
    """Manages async database sessions with pooling, rollback, and health checks."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide session with auto-rollback on exception."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            error = to_store_error(e)
            log = (
                logger.warning
                if error.reason is StoreErrorReason.WRITE_CONFLICT
                else logger.error
            )
            log(f"DB error ({type(e).__name__}): {e}", extra={"error_code": error.code})
            raise error from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


# Singleton (initialized on startup)
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager
