"""Rendering version query functions for Studioflow.

Provides async functions for creating, reading and deleting RenderingVersion
records. Status changes go through the rendering workflow, not through
these functions.
"""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.asset import Asset
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.rendering import RenderingVersion, RenderingVersionStatus
from studioflow.database.queries.approval import delete_client_approvals
from studioflow.database.queries.comment import delete_comments_for_target

logger = structlog.get_logger(__name__)


async def create_rendering_version(
    session: AsyncSession,
    stage_id: UUID,
    room_id: UUID,
    sequence: int,
    label: str,
    created_by: UUID | None = None,
    custom_name: str | None = None,
    source_file_path: str | None = None,
) -> RenderingVersion:
    """Create a rendering version with an already-allocated sequence.

    Args:
        session: Active async database session.
        stage_id: The THREE_D stage.
        room_id: The room owning the stage.
        sequence: Sequence number from the stage counter.
        label: Display label for the sequence.
        created_by: Creating team member.
        custom_name: Optional custom name.
        source_file_path: Optional cloud drive path of the working file.

    Returns:
        The newly created RenderingVersion in IN_PROGRESS.
    """
    version = RenderingVersion(
        stage_id=stage_id,
        room_id=room_id,
        sequence=sequence,
        label=label,
        custom_name=custom_name,
        status=RenderingVersionStatus.IN_PROGRESS,
        created_by=created_by,
        updated_by=created_by,
        source_file_path=source_file_path,
    )
    session.add(version)
    await session.flush()

    logger.info(
        "rendering_version_created",
        version_id=str(version.id),
        stage_id=str(stage_id),
        label=version.label,
    )
    return version


async def get_rendering_version(
    session: AsyncSession,
    version_id: UUID,
) -> RenderingVersion | None:
    """Retrieve a rendering version by ID."""
    result = await session.execute(
        select(RenderingVersion).where(RenderingVersion.id == version_id)
    )
    return result.scalar_one_or_none()


async def list_rendering_versions(
    session: AsyncSession,
    stage_id: UUID,
) -> list[RenderingVersion]:
    """List a stage's rendering versions, newest (highest sequence) first."""
    result = await session.execute(
        select(RenderingVersion)
        .where(RenderingVersion.stage_id == stage_id)
        .order_by(RenderingVersion.sequence.desc())
    )
    return list(result.scalars().all())


async def delete_rendering_version(
    session: AsyncSession,
    version: RenderingVersion,
) -> dict[str, int]:
    """Delete a rendering version and everything hanging off it.

    Removes the version's notes (with mentions), approval snapshots (with
    their asset rows) and assets, then the version itself. Activity entries
    are left untouched.

    Args:
        session: Active async database session.
        version: The version to delete.

    Returns:
        Counts of deleted notes, approvals and assets.
    """
    notes = await delete_comments_for_target(
        session, CommentTarget.RENDERING_VERSION, version.id
    )
    approvals = await delete_client_approvals(session, rendering_version_id=version.id)
    asset_result = await session.execute(
        delete(Asset).where(Asset.rendering_version_id == version.id)
    )
    await session.delete(version)
    await session.flush()

    counts = {"notes": notes, "approvals": approvals, "assets": asset_result.rowcount or 0}
    logger.info("rendering_version_deleted", version_id=str(version.id), **counts)
    return counts
