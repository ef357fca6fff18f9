"""Asset uploads, edits and deletes with the version lock applied uniformly.

An asset belongs to at most one rendering version, or to a stage section,
or to a project's floorplan library (where it can be attached to several
floorplan versions). Edits and deletes are refused while any owning
version is locked, no matter which endpoint they come through.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.asset import Asset, AssetType
from studioflow.database.models.floorplan import FloorplanVersion
from studioflow.database.models.rendering import RenderingVersion
from studioflow.database.queries.asset import create_asset, get_asset, update_asset
from studioflow.database.queries.asset import delete_asset as delete_asset_row
from studioflow.database.queries.floorplan import list_floorplan_versions_for_asset
from studioflow.database.queries.project import get_room
from studioflow.database.queries.rendering import get_rendering_version
from studioflow.database.queries.stage import get_stage
from studioflow.errors import NotFoundError, ValidationError
from studioflow.workflow.activity import (
    AssetDeleteDetails,
    AssetUpdateDetails,
    UploadDetails,
    record_activity,
)
from studioflow.workflow.events import OperationResult
from studioflow.workflow.locks import ensure_unlocked, touch_version


async def owning_versions(
    session: AsyncSession,
    asset: Asset,
) -> list[RenderingVersion | FloorplanVersion]:
    """Every version whose lock governs the asset."""
    owners: list[RenderingVersion | FloorplanVersion] = []
    if asset.rendering_version_id is not None:
        version = await get_rendering_version(session, asset.rendering_version_id)
        if version is not None:
            owners.append(version)
    owners.extend(await list_floorplan_versions_for_asset(session, asset.id))
    return owners


async def ensure_asset_editable(
    session: AsyncSession,
    asset: Asset,
    operation: str,
) -> list[RenderingVersion | FloorplanVersion]:
    """Raise VersionLockedError if any owning version is locked.

    Returns:
        The owning versions, all unlocked.
    """
    owners = await owning_versions(session, asset)
    for version in owners:
        ensure_unlocked(version, operation)
    return owners


async def _timeline_context(
    session: AsyncSession,
    asset: Asset,
) -> tuple[UUID | None, UUID | None]:
    """Stage and project an asset's activity entries are filed under."""
    if asset.rendering_version_id is not None:
        version = await get_rendering_version(session, asset.rendering_version_id)
        if version is not None:
            room = await get_room(session, version.room_id)
            return version.stage_id, room.project_id if room else None
    if asset.stage_id is not None:
        stage = await get_stage(session, asset.stage_id)
        room = await get_room(session, stage.room_id) if stage else None
        return asset.stage_id, room.project_id if room else None
    return None, asset.project_id


async def upload_stage_asset(
    session: AsyncSession,
    stage_id: UUID,
    actor_id: UUID,
    title: str,
    url: str,
    section: str | None = None,
    asset_type: AssetType = AssetType.OTHER,
    size_bytes: int | None = None,
    mime_type: str | None = None,
    description: str | None = None,
) -> OperationResult[Asset]:
    """File an uploaded reference under a stage section.

    Args:
        session: Active async database session.
        stage_id: The stage.
        actor_id: Uploading team member.
        title: Display title.
        url: Storage URL returned by the upload service.
        section: Section key within the stage workspace.
        asset_type: File category.
        size_bytes: File size.
        mime_type: MIME type.
        description: Optional description.

    Returns:
        Result holding the new asset.
    """
    stage = await get_stage(session, stage_id)
    if stage is None:
        raise NotFoundError("Stage", stage_id)
    if not title.strip():
        raise ValidationError("Asset title must not be empty")

    asset = await create_asset(
        session,
        title=title.strip(),
        url=url,
        asset_type=asset_type,
        size_bytes=size_bytes,
        mime_type=mime_type,
        description=description,
        uploaded_by=actor_id,
        stage_id=stage.id,
        section=section,
    )
    room = await get_room(session, stage.room_id)
    activity = await record_activity(
        session,
        UploadDetails(asset_id=asset.id, title=asset.title, asset_type=asset.asset_type.value),
        entity_type="asset",
        entity_id=asset.id,
        actor_id=actor_id,
        stage_id=stage.id,
        project_id=room.project_id if room else None,
    )
    return OperationResult(asset, activity)


async def describe_asset(
    session: AsyncSession,
    asset_id: UUID,
    actor_id: UUID,
    title: str | None = None,
    description: str | None = None,
) -> OperationResult[Asset]:
    """Edit an asset's title or description.

    Raises:
        NotFoundError: If the asset does not exist.
        ValidationError: If the new title is blank.
        VersionLockedError: If an owning version is locked.
    """
    asset = await get_asset(session, asset_id)
    if asset is None:
        raise NotFoundError("Asset", asset_id)
    owners = await ensure_asset_editable(session, asset, "edit assets")
    if title is not None and not title.strip():
        raise ValidationError("Asset title must not be empty")

    fields = []
    new_title = title.strip() if title is not None else None
    if new_title is not None and new_title != asset.title:
        fields.append("title")
    if description is not None and description != asset.description:
        fields.append("description")
    if not fields:
        return OperationResult(asset)

    await update_asset(session, asset, title=new_title, description=description)
    for version in owners:
        touch_version(version, actor_id)
    stage_id, project_id = await _timeline_context(session, asset)
    activity = await record_activity(
        session,
        AssetUpdateDetails(asset_id=asset.id, title=asset.title, fields=fields),
        entity_type="asset",
        entity_id=asset.id,
        actor_id=actor_id,
        stage_id=stage_id,
        project_id=project_id,
    )
    return OperationResult(asset, activity)


async def delete_asset(
    session: AsyncSession,
    asset_id: UUID,
    actor_id: UUID,
) -> OperationResult[UUID]:
    """Delete an asset that no locked version depends on.

    Approval snapshots that froze the asset keep their copy.

    Raises:
        NotFoundError: If the asset does not exist.
        VersionLockedError: If an owning version is locked.
    """
    asset = await get_asset(session, asset_id)
    if asset is None:
        raise NotFoundError("Asset", asset_id)
    owners = await ensure_asset_editable(session, asset, "delete assets")
    for version in owners:
        touch_version(version, actor_id)

    stage_id, project_id = await _timeline_context(session, asset)
    title = asset.title
    await delete_asset_row(session, asset)
    activity = await record_activity(
        session,
        AssetDeleteDetails(asset_id=asset_id, title=title),
        entity_type="asset",
        entity_id=asset_id,
        actor_id=actor_id,
        stage_id=stage_id,
        project_id=project_id,
    )
    return OperationResult(asset_id, activity)
