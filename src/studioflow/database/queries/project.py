"""Project and room query functions for Studioflow.

Provides async functions for creating and reading Project and Room records.
Creating a room also creates its stages, one per StageType.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.project import Project, Room
from studioflow.database.models.stage import STAGE_SEQUENCE, Stage, StageStatus

logger = structlog.get_logger(__name__)


async def create_project(
    session: AsyncSession,
    name: str,
    client_name: str | None = None,
    client_email: str | None = None,
) -> Project:
    """Create a new project.

    Args:
        session: Active async database session.
        name: Human-readable project name.
        client_name: Optional client name.
        client_email: Optional client email address.

    Returns:
        The newly created Project instance.
    """
    project = Project(
        name=name,
        client_name=client_name,
        client_email=client_email,
        floorplan_version_counter=0,
    )
    session.add(project)
    await session.flush()

    logger.info("project_created", project_id=str(project.id), name=name)
    return project


async def get_project(session: AsyncSession, project_id: UUID) -> Project | None:
    """Retrieve a project by ID.

    Args:
        session: Active async database session.
        project_id: UUID of the project to retrieve.

    Returns:
        The Project instance if found, None otherwise.
    """
    result = await session.execute(select(Project).where(Project.id == project_id))
    return result.scalar_one_or_none()


async def list_projects(session: AsyncSession) -> list[Project]:
    """List all projects, newest first."""
    result = await session.execute(select(Project).order_by(Project.created_at.desc()))
    return list(result.scalars().all())


async def create_room(
    session: AsyncSession,
    project_id: UUID,
    name: str,
    room_type: str | None = None,
) -> tuple[Room, list[Stage]]:
    """Create a room and one NOT_STARTED stage per stage type.

    Args:
        session: Active async database session.
        project_id: UUID of the owning project.
        name: Room display name.
        room_type: Optional room category.

    Returns:
        Tuple of the new Room and its stages in workflow order.
    """
    room = Room(project_id=project_id, name=name, room_type=room_type)
    session.add(room)
    await session.flush()

    stages = [
        Stage(
            room_id=room.id,
            type=stage_type,
            status=StageStatus.NOT_STARTED,
            rendering_version_counter=0,
        )
        for stage_type in STAGE_SEQUENCE
    ]
    session.add_all(stages)
    await session.flush()

    logger.info(
        "room_created",
        room_id=str(room.id),
        project_id=str(project_id),
        stage_count=len(stages),
    )
    return room, stages


async def get_room(session: AsyncSession, room_id: UUID) -> Room | None:
    """Retrieve a room by ID."""
    result = await session.execute(select(Room).where(Room.id == room_id))
    return result.scalar_one_or_none()


async def list_rooms(session: AsyncSession, project_id: UUID) -> list[Room]:
    """List rooms of a project in creation order."""
    result = await session.execute(
        select(Room).where(Room.project_id == project_id).order_by(Room.created_at.asc())
    )
    return list(result.scalars().all())
