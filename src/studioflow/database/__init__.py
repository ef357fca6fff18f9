"""Database layer for Studioflow.

This module handles database connections and session scoping, and exposes
the SQLAlchemy models.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    session_scope: Commit-or-rollback unit of work with error translation.
    Base: SQLAlchemy declarative base for all models.
"""

from studioflow.database.connection import get_engine, get_session_factory, session_scope
from studioflow.database.models import Base, TimestampMixin

__all__ = [
    "get_engine",
    "get_session_factory",
    "session_scope",
    "Base",
    "TimestampMixin",
]
