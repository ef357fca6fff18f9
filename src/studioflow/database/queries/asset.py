"""Asset query functions for Studioflow.

Provides async functions for creating, reading, updating and deleting Asset
records for rendering versions, stage sections and floorplan libraries.
Lock checks are the caller's job; these functions only touch rows.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.approval import ClientApprovalAsset
from studioflow.database.models.asset import Asset, AssetType
from studioflow.database.models.floorplan import FloorplanVersionAsset

logger = structlog.get_logger(__name__)


async def create_asset(
    session: AsyncSession,
    title: str,
    url: str,
    asset_type: AssetType = AssetType.OTHER,
    size_bytes: int | None = None,
    mime_type: str | None = None,
    description: str | None = None,
    uploaded_by: UUID | None = None,
    rendering_version_id: UUID | None = None,
    stage_id: UUID | None = None,
    section: str | None = None,
    project_id: UUID | None = None,
) -> Asset:
    """Create an asset row for an already-stored file.

    Args:
        session: Active async database session.
        title: Display title.
        url: Object storage URL returned by the upload service.
        asset_type: File category.
        size_bytes: File size in bytes.
        mime_type: MIME type.
        description: Optional description.
        uploaded_by: Uploading team member.
        rendering_version_id: Owning rendering version.
        stage_id: Owning stage.
        section: Stage section key.
        project_id: Owning project (floorplan library).

    Returns:
        The newly created Asset.
    """
    asset = Asset(
        title=title,
        url=url,
        asset_type=asset_type,
        size_bytes=size_bytes,
        mime_type=mime_type,
        description=description,
        uploaded_by=uploaded_by,
        rendering_version_id=rendering_version_id,
        stage_id=stage_id,
        section=section,
        project_id=project_id,
    )
    session.add(asset)
    await session.flush()

    logger.info(
        "asset_created",
        asset_id=str(asset.id),
        asset_type=asset_type.value,
        rendering_version_id=str(rendering_version_id) if rendering_version_id else None,
        stage_id=str(stage_id) if stage_id else None,
    )
    return asset


async def get_asset(session: AsyncSession, asset_id: UUID) -> Asset | None:
    """Retrieve an asset by ID."""
    result = await session.execute(select(Asset).where(Asset.id == asset_id))
    return result.scalar_one_or_none()


async def get_assets(session: AsyncSession, asset_ids: Sequence[UUID]) -> list[Asset]:
    """Retrieve several assets, preserving the order of asset_ids.

    Unknown ids are silently skipped; callers compare lengths to detect them.
    """
    if not asset_ids:
        return []
    result = await session.execute(select(Asset).where(Asset.id.in_(list(asset_ids))))
    by_id = {asset.id: asset for asset in result.scalars().all()}
    return [by_id[asset_id] for asset_id in asset_ids if asset_id in by_id]


async def list_rendering_assets(session: AsyncSession, version_id: UUID) -> list[Asset]:
    """List the assets of a rendering version in upload order."""
    result = await session.execute(
        select(Asset)
        .where(Asset.rendering_version_id == version_id)
        .order_by(Asset.created_at.asc())
    )
    return list(result.scalars().all())


async def list_stage_assets(
    session: AsyncSession,
    stage_id: UUID,
    section: str | None = None,
) -> list[Asset]:
    """List assets filed directly under a stage, optionally for one section."""
    stmt = select(Asset).where(Asset.stage_id == stage_id)
    if section is not None:
        stmt = stmt.where(Asset.section == section)
    result = await session.execute(stmt.order_by(Asset.created_at.asc()))
    return list(result.scalars().all())


async def update_asset(
    session: AsyncSession,
    asset: Asset,
    title: str | None = None,
    description: str | None = None,
) -> Asset:
    """Apply title/description changes to an asset.

    Args:
        session: Active async database session.
        asset: The asset to modify.
        title: New title, or None to keep the current one.
        description: New description, or None to keep the current one.

    Returns:
        The updated Asset.
    """
    if title is not None:
        asset.title = title
    if description is not None:
        asset.description = description
    await session.flush()
    return asset


async def delete_asset(session: AsyncSession, asset: Asset) -> None:
    """Delete an asset and detach it from floorplans and approval snapshots.

    Approval snapshots keep their copied title and URL; only the link to
    the live asset is cleared.
    """
    await session.execute(
        update(ClientApprovalAsset)
        .where(ClientApprovalAsset.asset_id == asset.id)
        .values(asset_id=None)
    )
    await session.execute(
        delete(FloorplanVersionAsset).where(FloorplanVersionAsset.asset_id == asset.id)
    )
    await session.delete(asset)
    await session.flush()

    logger.info("asset_deleted", asset_id=str(asset.id))
