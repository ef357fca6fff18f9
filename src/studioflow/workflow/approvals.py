"""Client approval snapshots: reading and deciding them by snapshot id."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.approval import (
    ApprovalDecision,
    ClientApprovalAsset,
    ClientApprovalVersion,
)
from studioflow.database.queries.approval import get_client_approval, list_approval_assets
from studioflow.errors import NotFoundError
from studioflow.workflow.decisions import RevisionItemInput
from studioflow.workflow.events import OperationResult
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.renderings import RenderingWorkflow


@dataclass(frozen=True)
class ApprovalSnapshot:
    """A snapshot with its frozen assets."""

    approval: ClientApprovalVersion
    assets: list[ClientApprovalAsset]

    @property
    def version_kind(self) -> str:
        return "rendering" if self.approval.rendering_version_id else "floorplan"


async def load_snapshot(session: AsyncSession, approval_id: UUID) -> ApprovalSnapshot:
    """Load a snapshot and its assets or raise NotFoundError."""
    approval = await get_client_approval(session, approval_id)
    if approval is None:
        raise NotFoundError("Client approval", approval_id)
    return ApprovalSnapshot(approval, await list_approval_assets(session, approval.id))


async def record_client_decision(
    session: AsyncSession,
    approval_id: UUID,
    actor_id: UUID,
    decision: ApprovalDecision | str,
    message: str | None = None,
    revision_items: Sequence[RevisionItemInput] | None = None,
    renderings: RenderingWorkflow | None = None,
    floorplans: FloorplanWorkflow | None = None,
) -> OperationResult[ClientApprovalVersion]:
    """Apply a client decision to whichever kind of version the snapshot came from.

    Revision items only apply to floorplan snapshots and are ignored for
    renderings.
    """
    approval = await get_client_approval(session, approval_id)
    if approval is None:
        raise NotFoundError("Client approval", approval_id)

    if approval.rendering_version_id is not None:
        return await (renderings or RenderingWorkflow()).record_client_decision(
            session, approval.id, actor_id, decision, message
        )

    return await (floorplans or FloorplanWorkflow()).record_client_decision(
        session,
        approval.floorplan_version_id,
        actor_id,
        decision,
        message,
        revision_items,
        approval_id=approval.id,
    )
