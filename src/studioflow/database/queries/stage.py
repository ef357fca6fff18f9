"""Stage query functions for Studioflow."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.stage import STAGE_SEQUENCE, Stage, StageType


async def get_stage(session: AsyncSession, stage_id: UUID) -> Stage | None:
    """Retrieve a stage by ID.

    Args:
        session: Active async database session.
        stage_id: UUID of the stage.

    Returns:
        The Stage instance if found, None otherwise.
    """
    result = await session.execute(select(Stage).where(Stage.id == stage_id))
    return result.scalar_one_or_none()


async def list_room_stages(session: AsyncSession, room_id: UUID) -> list[Stage]:
    """List a room's stages in workflow order.

    Args:
        session: Active async database session.
        room_id: UUID of the room.

    Returns:
        Stages sorted by their position in STAGE_SEQUENCE.
    """
    result = await session.execute(select(Stage).where(Stage.room_id == room_id))
    order = {stage_type: index for index, stage_type in enumerate(STAGE_SEQUENCE)}
    return sorted(result.scalars().all(), key=lambda stage: order[stage.type])


async def get_room_stage(
    session: AsyncSession,
    room_id: UUID,
    stage_type: StageType,
) -> Stage | None:
    """Retrieve the stage of a given type within a room."""
    result = await session.execute(
        select(Stage).where(Stage.room_id == room_id, Stage.type == stage_type)
    )
    return result.scalar_one_or_none()
