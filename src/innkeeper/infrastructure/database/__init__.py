"""
Database Infrastructure
=======================

One async engine per process, created at startup and disposed at shutdown.

PostgreSQL through asyncpg is the production backend; SQLite through
aiosqlite serves single-node deployments and the test suite. Repositories
wrap their methods with `store_operation` so that driver errors surface
as RepositoryException.
"""

import functools
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from innkeeper.config import settings
from innkeeper.core import RepositoryException

T = TypeVar("T")

NOT_INITIALIZED = "Database not initialized; init_database() runs at startup"

# Dialects whose INSERT supports ON CONFLICT DO UPDATE.
UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class Base(DeclarativeBase):
    """Declarative base shared by the reservations and cluster tables."""


_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker[AsyncSession]] = None


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_pre_ping": True,
    }


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Build the engine and session factory.

    Args:
        database_url: Overrides settings.database_url
    """
    global _engine, _sessions

    url = database_url or settings.database_url
    # asyncpg takes ssl=, not libpq's sslmode=
    url = url.replace("sslmode=", "ssl=")

    _engine = create_async_engine(url, echo=settings.debug, **_engine_options(url))
    _sessions = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return _engine


def get_engine() -> AsyncEngine:
    if _engine is None:
        raise RuntimeError(NOT_INITIALIZED)
    return _engine


async def close_database() -> None:
    """Dispose pooled connections; safe to call twice."""
    global _engine, _sessions

    engine, _engine, _sessions = _engine, None, None
    if engine is not None:
        await engine.dispose()


@asynccontextmanager
async def get_session_context() -> AsyncIterator[AsyncSession]:
    """
    Session scope for background jobs and startup code.

    Pending changes are committed on exit and rolled back if the block raised.

    Usage:
        async with get_session_context() as session:
            await alerter.evaluate(session)
    """
    if _sessions is None:
        raise RuntimeError(NOT_INITIALIZED)

    async with _sessions() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency form of get_session_context()."""
    async with get_session_context() as session:
        yield session


async def create_tables() -> None:
    """Create every table registered on Base.metadata."""
    # Model modules register their tables on import.
    from innkeeper.cluster.infrastructure import models as _cluster_models  # noqa: F401
    from innkeeper.reservations.infrastructure import models as _reservation_models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def store_operation(description: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Repository method decorator turning SQLAlchemyError into RepositoryException.

    The message reads "Unable to <description>"; the driver error goes
    into `details` for logging.
    """

    def decorator(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(method)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return await method(self, *args, **kwargs)
            except SQLAlchemyError as e:
                raise RepositoryException(
                    f"Unable to {description}",
                    {"error_type": type(e).__name__, "error": str(e)}
                ) from e
        return wrapper

    return decorator


def upsert_insert(session: AsyncSession, model: type):
    """
    Dialect-specific INSERT for `model` exposing `on_conflict_do_update`.

    The conflict is resolved by the database in one statement, so two
    sessions creating the same row concurrently both succeed.

    Raises:
        RepositoryException: the bound dialect has no upsert support
    """
    dialect = session.get_bind().dialect.name
    insert = UPSERT_INSERTS.get(dialect)
    if insert is None:
        raise RepositoryException(
            f"Upsert not supported for {dialect}",
            {"dialect": dialect}
        )
    return insert(model)
