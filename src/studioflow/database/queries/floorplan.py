"""Floorplan version query functions for Studioflow."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.approval import ClientApprovalAsset
from studioflow.database.models.asset import Asset
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.floorplan import (
    FloorplanVersion,
    FloorplanVersionAsset,
    FloorplanVersionStatus,
)
from studioflow.database.queries.approval import delete_client_approvals
from studioflow.database.queries.comment import delete_comments_for_target

logger = structlog.get_logger(__name__)


async def create_floorplan_version(
    session: AsyncSession,
    project_id: UUID,
    sequence: int,
    label: str,
    created_by: UUID | None = None,
    notes: str | None = None,
    source_file_path: str | None = None,
) -> FloorplanVersion:
    """Create a floorplan version with an already-allocated sequence.

    Args:
        session: Active async database session.
        project_id: Owning project.
        sequence: Sequence number from the project counter.
        label: Display label for the sequence.
        created_by: Creating team member.
        notes: Initial internal notes.
        source_file_path: Optional cloud drive path of the CAD file.

    Returns:
        The newly created FloorplanVersion in DRAFT.
    """
    version = FloorplanVersion(
        project_id=project_id,
        sequence=sequence,
        label=label,
        status=FloorplanVersionStatus.DRAFT,
        notes=notes,
        created_by=created_by,
        revision_items=[],
        source_file_path=source_file_path,
    )
    session.add(version)
    await session.flush()

    logger.info(
        "floorplan_version_created",
        version_id=str(version.id),
        project_id=str(project_id),
        label=version.label,
    )
    return version


async def get_floorplan_version(
    session: AsyncSession,
    version_id: UUID,
) -> FloorplanVersion | None:
    """Retrieve a floorplan version by ID."""
    result = await session.execute(
        select(FloorplanVersion).where(FloorplanVersion.id == version_id)
    )
    return result.scalar_one_or_none()


async def list_floorplan_versions(
    session: AsyncSession,
    project_id: UUID,
) -> list[FloorplanVersion]:
    """List a project's floorplan versions, newest first."""
    result = await session.execute(
        select(FloorplanVersion)
        .where(FloorplanVersion.project_id == project_id)
        .order_by(FloorplanVersion.sequence.desc())
    )
    return list(result.scalars().all())


async def get_current_floorplan_version(
    session: AsyncSession,
    project_id: UUID,
) -> FloorplanVersion | None:
    """Return the project's current floorplan version (highest sequence)."""
    result = await session.execute(
        select(FloorplanVersion)
        .where(FloorplanVersion.project_id == project_id)
        .order_by(FloorplanVersion.sequence.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def link_floorplan_asset(
    session: AsyncSession,
    version_id: UUID,
    asset_id: UUID,
    include_in_email: bool = True,
) -> FloorplanVersionAsset:
    """Attach an asset to a floorplan version at the end of the list."""
    max_order = await session.scalar(
        select(func.max(FloorplanVersionAsset.display_order)).where(
            FloorplanVersionAsset.version_id == version_id
        )
    )
    link = FloorplanVersionAsset(
        version_id=version_id,
        asset_id=asset_id,
        include_in_email=include_in_email,
        display_order=0 if max_order is None else max_order + 1,
    )
    session.add(link)
    await session.flush()
    return link


async def get_floorplan_link(
    session: AsyncSession,
    version_id: UUID,
    asset_id: UUID,
) -> FloorplanVersionAsset | None:
    """Retrieve the link row between a floorplan version and an asset."""
    result = await session.execute(
        select(FloorplanVersionAsset).where(
            FloorplanVersionAsset.version_id == version_id,
            FloorplanVersionAsset.asset_id == asset_id,
        )
    )
    return result.scalar_one_or_none()


async def list_floorplan_assets(
    session: AsyncSession,
    version_id: UUID,
) -> list[tuple[FloorplanVersionAsset, Asset]]:
    """List a floorplan version's attachments in display order."""
    result = await session.execute(
        select(FloorplanVersionAsset, Asset)
        .join(Asset, Asset.id == FloorplanVersionAsset.asset_id)
        .where(FloorplanVersionAsset.version_id == version_id)
        .order_by(FloorplanVersionAsset.display_order.asc())
    )
    return [(link, asset) for link, asset in result.all()]


async def list_floorplan_versions_for_asset(
    session: AsyncSession,
    asset_id: UUID,
) -> list[FloorplanVersion]:
    """List the floorplan versions an asset is attached to."""
    result = await session.execute(
        select(FloorplanVersion)
        .join(FloorplanVersionAsset, FloorplanVersionAsset.version_id == FloorplanVersion.id)
        .where(FloorplanVersionAsset.asset_id == asset_id)
    )
    return list(result.scalars().all())


async def delete_floorplan_version(
    session: AsyncSession,
    version: FloorplanVersion,
) -> dict[str, int]:
    """Delete a floorplan version, its notes, snapshots and attached assets.

    Assets still linked to another floorplan version are kept.

    Returns:
        Counts of deleted notes, approvals and assets.
    """
    notes = await delete_comments_for_target(
        session, CommentTarget.FLOORPLAN_VERSION, version.id
    )
    approvals = await delete_client_approvals(session, floorplan_version_id=version.id)

    asset_ids = list(
        (
            await session.execute(
                select(FloorplanVersionAsset.asset_id).where(
                    FloorplanVersionAsset.version_id == version.id
                )
            )
        ).scalars()
    )
    await session.execute(
        delete(FloorplanVersionAsset).where(FloorplanVersionAsset.version_id == version.id)
    )
    orphaned: list[UUID] = []
    if asset_ids:
        shared_ids = set(
            (
                await session.execute(
                    select(FloorplanVersionAsset.asset_id).where(
                        FloorplanVersionAsset.asset_id.in_(asset_ids)
                    )
                )
            ).scalars()
        )
        orphaned = [asset_id for asset_id in asset_ids if asset_id not in shared_ids]
    if orphaned:
        await session.execute(
            update(ClientApprovalAsset)
            .where(ClientApprovalAsset.asset_id.in_(orphaned))
            .values(asset_id=None)
        )
        await session.execute(delete(Asset).where(Asset.id.in_(orphaned)))

    await session.delete(version)
    await session.flush()

    counts = {"notes": notes, "approvals": approvals, "assets": len(orphaned)}
    logger.info("floorplan_version_deleted", version_id=str(version.id), **counts)
    return counts
