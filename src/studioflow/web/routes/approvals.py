"""Client approval snapshot endpoints.

A decision posted here is applied to whichever version the snapshot was
taken from: rendering snapshots move the rendering version (and, through
the orchestrator, the room's stages), floorplan snapshots move the
floorplan version.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.approval import ApprovalDecision
from studioflow.logging import get_logger
from studioflow.web.dependencies import (
    WorkflowRunner,
    get_floorplans,
    get_renderings,
    get_runner,
    require_actor,
)
from studioflow.web.schemas import ApprovalResponse
from studioflow.workflow.approvals import (
    ApprovalSnapshot,
    load_snapshot,
    record_client_decision,
)
from studioflow.workflow.decisions import RevisionItem
from studioflow.workflow.events import OperationResult
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.renderings import RenderingWorkflow

logger = get_logger(__name__)


class DecisionCreate(BaseModel):
    """Request schema for recording the client's answer.

    Attributes:
        decision: APPROVED or REVISION_REQUESTED.
        message: Client message; required when revisions are requested,
            except for floorplans that list revision_items instead.
        revision_items: Itemised floorplan changes, as plain strings or
            {"text", "completed"} objects.
    """

    decision: ApprovalDecision
    message: str | None = Field(default=None, max_length=10_000)
    revision_items: list[RevisionItem | str] | None = None


async def decide(
    runner: WorkflowRunner,
    approval_id: UUID,
    actor_id: UUID,
    body: DecisionCreate,
    renderings: RenderingWorkflow,
    floorplans: FloorplanWorkflow,
) -> ApprovalResponse:
    """Record a decision on a snapshot and return the updated snapshot."""

    async def operation(session: AsyncSession) -> OperationResult[ApprovalSnapshot]:
        result = await record_client_decision(
            session,
            approval_id,
            actor_id,
            body.decision,
            message=body.message,
            revision_items=body.revision_items,
            renderings=renderings,
            floorplans=floorplans,
        )
        snapshot = await load_snapshot(session, result.value.id)
        return OperationResult(snapshot, result.activity, result.events)

    result = await runner.run(operation)
    logger.info(
        "client_decision_via_api",
        approval_id=str(result.value.approval.id),
        decision=body.decision.value,
        version_kind=result.value.version_kind,
    )
    return ApprovalResponse.from_snapshot(result.value)


def create_approvals_router() -> APIRouter:
    """Create the client approvals router.

    Routes:
        GET /approvals/{approval_id} - Snapshot with its frozen assets
        POST /approvals/{approval_id}/decision - Record the client's decision
    """
    router = APIRouter(prefix="/approvals", tags=["approvals"])

    @router.get("/{approval_id}", response_model=ApprovalResponse)
    async def read_approval(
        approval_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> ApprovalResponse:
        snapshot = await runner.read(lambda session: load_snapshot(session, approval_id))
        return ApprovalResponse.from_snapshot(snapshot)

    @router.post("/{approval_id}/decision", response_model=ApprovalResponse)
    async def post_decision(
        approval_id: UUID,
        body: DecisionCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        renderings: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
        floorplans: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> ApprovalResponse:
        return await decide(runner, approval_id, actor_id, body, renderings, floorplans)

    return router
