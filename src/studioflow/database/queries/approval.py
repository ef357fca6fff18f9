"""Client approval snapshot query functions for Studioflow."""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.approval import (
    ApprovalDecision,
    ClientApprovalAsset,
    ClientApprovalVersion,
)
from studioflow.database.models.asset import Asset

logger = structlog.get_logger(__name__)


async def create_client_approval(
    session: AsyncSession,
    project_id: UUID,
    label: str,
    assets: Sequence[Asset],
    sent_by: UUID | None,
    rendering_version_id: UUID | None = None,
    floorplan_version_id: UUID | None = None,
    stage_id: UUID | None = None,
) -> tuple[ClientApprovalVersion, list[ClientApprovalAsset]]:
    """Create an approval snapshot holding exactly the given assets.

    Args:
        session: Active async database session.
        project_id: Owning project.
        label: Label of the originating version.
        assets: Assets to freeze into the snapshot, in display order.
        sent_by: Who pushed the version.
        rendering_version_id: Originating rendering version, if any.
        floorplan_version_id: Originating floorplan version, if any.
        stage_id: CLIENT_APPROVAL stage the snapshot is filed under.

    Returns:
        Tuple of the snapshot and its asset rows.
    """
    approval = ClientApprovalVersion(
        project_id=project_id,
        label=label,
        rendering_version_id=rendering_version_id,
        floorplan_version_id=floorplan_version_id,
        stage_id=stage_id,
        decision=ApprovalDecision.PENDING,
        sent_by=sent_by,
    )
    session.add(approval)
    await session.flush()

    snapshot_assets = [
        ClientApprovalAsset(
            approval_id=approval.id,
            asset_id=asset.id,
            title=asset.title,
            url=asset.url,
            asset_type=asset.asset_type,
            include_in_email=True,
            display_order=position,
        )
        for position, asset in enumerate(assets)
    ]
    session.add_all(snapshot_assets)
    await session.flush()

    logger.info(
        "client_approval_created",
        approval_id=str(approval.id),
        label=label,
        asset_count=len(snapshot_assets),
    )
    return approval, snapshot_assets


async def get_client_approval(
    session: AsyncSession,
    approval_id: UUID,
) -> ClientApprovalVersion | None:
    """Retrieve an approval snapshot by ID."""
    result = await session.execute(
        select(ClientApprovalVersion).where(ClientApprovalVersion.id == approval_id)
    )
    return result.scalar_one_or_none()


async def list_approval_assets(
    session: AsyncSession,
    approval_id: UUID,
) -> list[ClientApprovalAsset]:
    """List the frozen assets of a snapshot in display order."""
    result = await session.execute(
        select(ClientApprovalAsset)
        .where(ClientApprovalAsset.approval_id == approval_id)
        .order_by(ClientApprovalAsset.display_order.asc())
    )
    return list(result.scalars().all())


async def list_client_approvals(
    session: AsyncSession,
    stage_id: UUID | None = None,
    rendering_version_id: UUID | None = None,
    floorplan_version_id: UUID | None = None,
) -> list[ClientApprovalVersion]:
    """List approval snapshots, newest first, filtered by owner.

    Args:
        session: Active async database session.
        stage_id: Only snapshots filed under this stage.
        rendering_version_id: Only snapshots of this rendering version.
        floorplan_version_id: Only snapshots of this floorplan version.

    Returns:
        Matching snapshots ordered by creation time, newest first.
    """
    stmt = select(ClientApprovalVersion)
    if stage_id is not None:
        stmt = stmt.where(ClientApprovalVersion.stage_id == stage_id)
    if rendering_version_id is not None:
        stmt = stmt.where(ClientApprovalVersion.rendering_version_id == rendering_version_id)
    if floorplan_version_id is not None:
        stmt = stmt.where(ClientApprovalVersion.floorplan_version_id == floorplan_version_id)
    result = await session.execute(stmt.order_by(ClientApprovalVersion.created_at.desc()))
    return list(result.scalars().all())


async def delete_client_approvals(
    session: AsyncSession,
    rendering_version_id: UUID | None = None,
    floorplan_version_id: UUID | None = None,
) -> int:
    """Delete every snapshot (and its asset rows) of one version.

    Returns:
        Number of snapshots deleted.
    """
    if rendering_version_id is None and floorplan_version_id is None:
        return 0
    approvals = await list_client_approvals(
        session,
        rendering_version_id=rendering_version_id,
        floorplan_version_id=floorplan_version_id,
    )
    approval_ids = [approval.id for approval in approvals]
    if approval_ids:
        await session.execute(
            delete(ClientApprovalAsset).where(ClientApprovalAsset.approval_id.in_(approval_ids))
        )
        await session.execute(
            delete(ClientApprovalVersion).where(ClientApprovalVersion.id.in_(approval_ids))
        )
    return len(approval_ids)
