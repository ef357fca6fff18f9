"""Health endpoints for Studioflow.

GET /health/ answers as long as the process is up. GET /health/ready also
checks that the database is reachable and that every studio table exists,
so an instance pointed at an empty database (before ``studioflow init-db``
or ``alembic upgrade head``) reports itself as not ready instead of failing
on the first request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from studioflow.database.models import Base
from studioflow.logging import get_logger
from studioflow.web.dependencies import get_session_factory

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
    from sqlalchemy.orm import Session

logger = get_logger(__name__)


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    """Readiness report.

    Attributes:
        status: "ok" or "unhealthy".
        database: "connected" or "disconnected".
        missing_tables: Studio tables not present in the database.
    """

    status: str
    database: str
    missing_tables: list[str] = Field(default_factory=list)


def _table_names(sync_session: Session) -> list[str]:
    return inspect(sync_session.connection()).get_table_names()


async def missing_studio_tables(session: AsyncSession) -> list[str]:
    """Studio tables the connected database does not have, sorted."""
    present = set(await session.run_sync(_table_names))
    return sorted(set(Base.metadata.tables) - present)


def create_health_router() -> APIRouter:
    """Create the health router.

    Routes:
        GET /health/ - Liveness
        GET /health/ready - Database connectivity and schema check
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @router.get("/ready", response_model=ReadinessResponse)
    async def readiness(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> ReadinessResponse:
        try:
            async with session_factory() as session:
                missing = await missing_studio_tables(session)
        except (SQLAlchemyError, OSError) as exc:
            logger.warning("readiness_check_failed", database="disconnected", error=str(exc))
            return ReadinessResponse(status="unhealthy", database="disconnected")

        if missing:
            logger.warning("readiness_check_failed", missing_tables=missing)
            return ReadinessResponse(
                status="unhealthy", database="connected", missing_tables=missing
            )
        return ReadinessResponse(status="ok", database="connected")

    return router
