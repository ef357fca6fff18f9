"""Database connection management for Studioflow.

This module provides factory functions for creating SQLAlchemy async engines
and session factories from DatabaseConfig, plus the session_scope unit of
work used by the API and CLI.

PostgreSQL (asyncpg) is the production driver; SQLite (aiosqlite) is
accepted for local use and tests.

Example usage:
    >>> from studioflow.config import DatabaseConfig
    >>> from studioflow.database.connection import get_engine, get_session_factory
    >>>
    >>> engine = get_engine(DatabaseConfig(url="postgresql+asyncpg://localhost/studioflow"))
    >>> SessionFactory = get_session_factory(engine)
    >>>
    >>> async with session_scope(SessionFactory) as session:
    ...     stage = await get_stage(session, stage_id)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm.exc import StaleDataError

from studioflow.config import DatabaseConfig
from studioflow.errors import ConflictError, StaleVersionError, TransientIOError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

logger = structlog.get_logger(__name__)


def get_engine(config: DatabaseConfig) -> AsyncEngine:
    """Create an async SQLAlchemy engine from database configuration.

    Pool sizing applies to server databases only; SQLite engines keep the
    dialect's default pool.

    Args:
        config: Database configuration containing URL, pool settings,
                and SQL echo preference.

    Returns:
        Configured AsyncEngine instance.
    """
    if make_url(config.url).get_backend_name() == "sqlite":
        return create_async_engine(config.url, echo=config.echo)

    return create_async_engine(
        config.url,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_pre_ping=True,
        echo=config.echo,
    )


def get_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the given engine.

    Sessions use expire_on_commit=False so attributes stay readable after
    commit without triggering lazy loads.

    Args:
        engine: AsyncEngine to bind sessions to.

    Returns:
        Configured async_sessionmaker that produces AsyncSession instances.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def session_scope(
    session_factory: Callable[[], AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Run one unit of work and commit it.

    Workflow functions only add and flush; this scope owns the commit. Storage
    failures are translated into the workflow error taxonomy:

    - StaleDataError (a concurrent writer bumped the row revision) and
      IntegrityError (e.g. a duplicate version sequence) become ConflictError
    - OperationalError and connection-level DBAPIError become TransientIOError

    Args:
        session_factory: Factory producing AsyncSession instances.

    Yields:
        The session for the unit of work.

    Raises:
        ConflictError: Concurrent modification detected.
        TransientIOError: The database could not be reached.
    """
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except StaleDataError as exc:
            await session.rollback()
            logger.warning("session_stale_data", error=str(exc))
            raise StaleVersionError(
                "The record was modified by another request; reload and retry"
            ) from exc
        except IntegrityError as exc:
            await session.rollback()
            logger.warning("session_integrity_conflict", error=str(exc.orig))
            raise ConflictError(
                "The change conflicts with existing data", reason=str(exc.orig)
            ) from exc
        except OperationalError as exc:
            await session.rollback()
            logger.error("session_storage_unavailable", error=str(exc.orig))
            raise TransientIOError("Database temporarily unavailable") from exc
        except DBAPIError as exc:
            await session.rollback()
            if exc.connection_invalidated:
                logger.error("session_connection_invalidated", error=str(exc.orig))
                raise TransientIOError("Database connection lost") from exc
            raise
        except BaseException:
            await session.rollback()
            raise
