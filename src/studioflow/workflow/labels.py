"""Sequence label allocation for versions.

Labels come from a counter stored on the owner (the stage for rendering
versions, the project for floorplan versions). The counter is incremented
with a single UPDATE inside the caller's transaction, which row-locks the
owner until commit, so concurrent creates serialise and a deleted version's
label is never handed out again.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.project import Project
from studioflow.database.models.stage import Stage


def format_label(sequence: int) -> str:
    """Render a sequence number as a version label."""
    return f"v{sequence}"


async def allocate_rendering_sequence(session: AsyncSession, stage_id: UUID) -> int:
    """Reserve the next rendering version sequence for a stage.

    Args:
        session: Active async database session.
        stage_id: The THREE_D stage.

    Returns:
        The newly reserved sequence number (1 for the first version).
    """
    await session.execute(
        update(Stage)
        .where(Stage.id == stage_id)
        .values(rendering_version_counter=Stage.rendering_version_counter + 1)
    )
    return await session.scalar(
        select(Stage.rendering_version_counter).where(Stage.id == stage_id)
    )


async def allocate_floorplan_sequence(session: AsyncSession, project_id: UUID) -> int:
    """Reserve the next floorplan version sequence for a project.

    Args:
        session: Active async database session.
        project_id: The owning project.

    Returns:
        The newly reserved sequence number (1 for the first version).
    """
    await session.execute(
        update(Project)
        .where(Project.id == project_id)
        .values(floorplan_version_counter=Project.floorplan_version_counter + 1)
    )
    return await session.scalar(
        select(Project.floorplan_version_counter).where(Project.id == project_id)
    )
