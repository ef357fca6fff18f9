"""Activity log query functions for Studioflow.

The log is append-only: there are insert and read functions here, and no
update or delete.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.activity import ActivityAction, ActivityLog


async def insert_activity(
    session: AsyncSession,
    action: ActivityAction,
    entity_type: str,
    entity_id: UUID,
    details: dict[str, Any],
    actor_id: UUID | None = None,
    stage_id: UUID | None = None,
    project_id: UUID | None = None,
) -> ActivityLog:
    """Append one activity entry.

    Args:
        session: Active async database session.
        action: Activity tag.
        entity_type: Kind of entity described.
        entity_id: Identifier of the entity.
        details: JSON-ready detail payload.
        actor_id: Acting user, None for system changes.
        stage_id: Stage to file the entry under.
        project_id: Project to file the entry under.

    Returns:
        The persisted ActivityLog row.
    """
    entry = ActivityLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=details,
        actor_id=actor_id,
        stage_id=stage_id,
        project_id=project_id,
    )
    session.add(entry)
    await session.flush()
    return entry


async def list_activity(
    session: AsyncSession,
    stage_id: UUID | None = None,
    project_id: UUID | None = None,
    entity_id: UUID | None = None,
    limit: int = 100,
) -> list[ActivityLog]:
    """Read activity entries newest first.

    Args:
        session: Active async database session.
        stage_id: Only entries filed under this stage.
        project_id: Only entries filed under this project.
        entity_id: Only entries about this entity.
        limit: Maximum number of entries.

    Returns:
        Entries in reverse insertion order.
    """
    stmt = select(ActivityLog)
    if stage_id is not None:
        stmt = stmt.where(ActivityLog.stage_id == stage_id)
    if project_id is not None:
        stmt = stmt.where(ActivityLog.project_id == project_id)
    if entity_id is not None:
        stmt = stmt.where(ActivityLog.entity_id == entity_id)
    result = await session.execute(stmt.order_by(ActivityLog.id.desc()).limit(limit))
    return list(result.scalars().all())
