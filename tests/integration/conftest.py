"""Pytest fixtures for integration tests.

Provides async database fixtures for exercising workflow operations and
the HTTP API against an in-memory SQLite database. The production system
runs on PostgreSQL; SQLite keeps these tests fast and isolated. SQLite does
not enforce foreign keys here, so tests never rely on database cascades.

The ``studio`` fixture seeds a roster of two team members and one project
with a single room and its five stages.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator
from dataclasses import dataclass

import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from studioflow.config import StudioflowConfig
from studioflow.database.connection import get_session_factory, session_scope
from studioflow.database.models.base import Base
from studioflow.database.models.stage import StageType
from studioflow.web.app import create_app
from studioflow.web.dependencies import WorkflowRunner
from studioflow.web.webhooks import WebhookDispatcher
from studioflow.workflow.orchestration import StageOrchestrator
from studioflow.workflow.projects import add_room, add_team_member, start_project


@dataclass
class Studio:
    """Identifiers of the seeded roster, project and room."""

    sammy_id: uuid.UUID
    aaron_id: uuid.UUID
    project_id: uuid.UUID
    room_id: uuid.UUID
    stage_ids: dict[StageType, uuid.UUID]

    @property
    def rendering_stage_id(self) -> uuid.UUID:
        return self.stage_ids[StageType.THREE_D]

    @property
    def approval_stage_id(self) -> uuid.UUID:
        return self.stage_ids[StageType.CLIENT_APPROVAL]

    @property
    def design_stage_id(self) -> uuid.UUID:
        return self.stage_ids[StageType.DESIGN]

    def actor(self, member_id: uuid.UUID | None = None) -> dict[str, str]:
        """X-Actor-Id header for API calls, defaulting to Sammy."""
        return {"X-Actor-Id": str(member_id or self.sammy_id)}


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create an in-memory SQLite async engine for testing.

    StaticPool keeps the single in-memory database alive across sessions.

    Yields:
        Configured AsyncEngine instance using in-memory SQLite.
    """
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return get_session_factory(engine)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create a new async database session for each test.

    The session is rolled back after the test completes.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def studio(session_factory: async_sessionmaker[AsyncSession]) -> Studio:
    """Seed the roster, a project and one room, committed."""
    async with session_scope(session_factory) as session:
        sammy = (await add_team_member(session, None, "Sammy Lee", "Sammy@Example.com")).value
        aaron = (await add_team_member(session, None, "Aaron Smith", "aaron@example.com")).value
        project = (
            await start_project(
                session,
                sammy.id,
                "Harbour House",
                client_name="Jo Harbour",
                client_email="jo@example.com",
            )
        ).value
        room, stages = (await add_room(session, project.id, sammy.id, "Living Room")).value

    return Studio(
        sammy_id=sammy.id,
        aaron_id=aaron.id,
        project_id=project.id,
        room_id=room.id,
        stage_ids={stage.type: stage.id for stage in stages},
    )


@pytest_asyncio.fixture
async def runner(session_factory: async_sessionmaker[AsyncSession]) -> WorkflowRunner:
    """Unit-of-work runner with the default orchestrator and no webhook endpoints."""
    return WorkflowRunner(session_factory, StageOrchestrator(), WebhookDispatcher())


@pytest_asyncio.fixture
async def app(session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    """Application wired to the test database.

    ASGITransport does not run the lifespan, so the session factory is set
    on app.state directly.
    """
    application = create_app(StudioflowConfig())
    application.state.session_factory = session_factory
    return application


@pytest_asyncio.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
