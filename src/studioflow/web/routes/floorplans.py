"""Floorplan approval endpoints.

Floorplan versions belong to a project rather than a room. Each version
collects drawings, is signed off by the principal, sent to the client with
the attachments flagged for the email, chased if the client is slow, and
finally approved or sent back with itemised revisions.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.asset import AssetType
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.floorplan import FloorplanVersion, FloorplanVersionAsset
from studioflow.database.queries.approval import list_approval_assets, list_client_approvals
from studioflow.database.queries.floorplan import list_floorplan_assets, list_floorplan_versions
from studioflow.database.queries.project import get_project
from studioflow.errors import ConflictError, NotFoundError, ValidationError
from studioflow.logging import get_logger
from studioflow.web.dependencies import (
    WorkflowRunner,
    get_floorplans,
    get_renderings,
    get_runner,
    require_actor,
)
from studioflow.web.routes.approvals import DecisionCreate, decide
from studioflow.web.routes.comments import CommentCreate, post_and_render, read_thread
from studioflow.web.schemas import (
    ApprovalResponse,
    AssetResponse,
    CommentResponse,
    DeletionResponse,
    FloorplanVersionResponse,
)
from studioflow.workflow.approvals import ApprovalSnapshot
from studioflow.workflow.decisions import RevisionItem
from studioflow.workflow.events import OperationResult
from studioflow.workflow.floorplans import FloorplanWorkflow
from studioflow.workflow.renderings import RenderingWorkflow

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class FloorplanCreate(BaseModel):
    notes: str | None = None
    source_file_path: str | None = None


class FloorplanUpdate(BaseModel):
    """Request schema for PATCH /floorplan-approvals/{id}.

    Notes are editable in every status; revision items until the client
    approves.
    """

    notes: str | None = None
    revision_items: list[RevisionItem | str] | None = None
    expected_revision: int | None = None


class FloorplanActionName(str, Enum):
    COMPLETE = "complete"
    REOPEN = "reopen"
    SEND_TO_CLIENT = "send_to_client"
    MARK_SENT = "mark_sent"
    FOLLOW_UP = "follow_up"


class FloorplanAction(BaseModel):
    """Request schema for POST /floorplan-approvals/{id}/actions.

    Attributes:
        action: complete, reopen, send_to_client, mark_sent or follow_up.
        notes: What was said when chasing the client (follow_up only).
        expected_revision: Revision the caller last read.
    """

    action: FloorplanActionName
    notes: str | None = None
    expected_revision: int | None = None


class FloorplanAssetCreate(BaseModel):
    """Request schema for adding a drawing to a version.

    Either upload a new file (title and url) or attach an existing project
    asset by asset_id.
    """

    asset_id: UUID | None = None
    title: str | None = Field(default=None, max_length=255)
    url: str | None = None
    asset_type: AssetType = AssetType.FLOORPLAN_PDF
    size_bytes: int | None = Field(default=None, ge=0)
    mime_type: str | None = None
    description: str | None = None
    include_in_email: bool = True
    expected_revision: int | None = None

    @model_validator(mode="after")
    def check_source(self) -> FloorplanAssetCreate:
        if self.asset_id is None and not (self.title and self.url):
            raise ValueError("Provide asset_id, or title and url for a new upload")
        return self


class FloorplanAssetUpdate(BaseModel):
    include_in_email: bool | None = None
    display_order: int | None = Field(default=None, ge=0)
    expected_revision: int | None = None


class FloorplanAttachmentResponse(BaseModel):
    """A drawing attached to a floorplan version."""

    asset_id: UUID
    include_in_email: bool
    display_order: int
    asset: AssetResponse | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class FloorplanDetailResponse(BaseModel):
    """A floorplan version with its attachments and snapshots."""

    version: FloorplanVersionResponse
    attachments: list[FloorplanAttachmentResponse]
    approvals: list[ApprovalResponse]


def _attachment(
    link: FloorplanVersionAsset,
    asset: AssetResponse | None = None,
) -> FloorplanAttachmentResponse:
    return FloorplanAttachmentResponse(
        asset_id=link.asset_id,
        include_in_email=link.include_in_email,
        display_order=link.display_order,
        asset=asset,
        created_at=link.created_at,
    )


# --- Router ---


def create_floorplans_router() -> APIRouter:
    """Create the floorplan approvals router.

    Routes:
        GET /projects/{project_id}/floorplan-approvals - List versions, newest first
        POST /projects/{project_id}/floorplan-approvals - Start a new version
        GET /floorplan-approvals/{version_id} - Version with attachments and snapshots
        PATCH /floorplan-approvals/{version_id} - Edit notes or revision items
        DELETE /floorplan-approvals/{version_id} - Delete a version
        POST /floorplan-approvals/{version_id}/actions - Move the version
        POST /floorplan-approvals/{version_id}/decision - Decide the newest snapshot
        POST /floorplan-approvals/{version_id}/assets - Upload or attach a drawing
        PATCH /floorplan-approvals/{version_id}/assets/{asset_id} - Inclusion and order
        GET /floorplan-approvals/{version_id}/notes - Version notes, newest first
        POST /floorplan-approvals/{version_id}/notes - Add a version note
    """
    router = APIRouter(tags=["floorplans"])

    @router.get(
        "/projects/{project_id}/floorplan-approvals",
        response_model=list[FloorplanVersionResponse],
    )
    async def list_versions(
        project_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[FloorplanVersionResponse]:
        async def query(session: AsyncSession) -> list[FloorplanVersion]:
            if await get_project(session, project_id) is None:
                raise NotFoundError("Project", project_id)
            return await list_floorplan_versions(session, project_id)

        return [FloorplanVersionResponse.model_validate(v) for v in await runner.read(query)]

    @router.post(
        "/projects/{project_id}/floorplan-approvals",
        response_model=FloorplanVersionResponse,
        status_code=201,
    )
    async def create_version(
        project_id: UUID,
        body: FloorplanCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> FloorplanVersionResponse:
        result = await runner.run(
            lambda session: workflow.create(
                session,
                project_id,
                actor_id,
                notes=body.notes,
                source_file_path=body.source_file_path,
            )
        )
        return FloorplanVersionResponse.model_validate(result.value)

    @router.get("/floorplan-approvals/{version_id}", response_model=FloorplanDetailResponse)
    async def read_version(
        version_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> FloorplanDetailResponse:
        async def query(session: AsyncSession) -> FloorplanDetailResponse:
            version = await workflow.get(session, version_id)
            approvals = await list_client_approvals(session, floorplan_version_id=version.id)
            return FloorplanDetailResponse(
                version=FloorplanVersionResponse.model_validate(version),
                attachments=[
                    _attachment(link, AssetResponse.model_validate(asset))
                    for link, asset in await list_floorplan_assets(session, version.id)
                ],
                approvals=[
                    ApprovalResponse.from_snapshot(
                        ApprovalSnapshot(a, await list_approval_assets(session, a.id))
                    )
                    for a in approvals
                ],
            )

        return await runner.read(query)

    @router.patch("/floorplan-approvals/{version_id}", response_model=FloorplanVersionResponse)
    async def patch_version(
        version_id: UUID,
        body: FloorplanUpdate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> FloorplanVersionResponse:
        fields = body.model_fields_set - {"expected_revision"}
        if not fields:
            raise ValidationError("Nothing to update; send notes or revision_items")

        async def operation(session: AsyncSession) -> OperationResult[FloorplanVersion]:
            revision = body.expected_revision
            if "notes" in fields:
                result = await workflow.update_notes(
                    session, version_id, actor_id, body.notes, expected_revision=revision
                )
                if "revision_items" not in fields:
                    return result
                revision = None
            return await workflow.update_revision_items(
                session,
                version_id,
                actor_id,
                body.revision_items or [],
                expected_revision=revision,
            )

        result = await runner.run(operation)
        return FloorplanVersionResponse.model_validate(result.value)

    @router.delete("/floorplan-approvals/{version_id}", response_model=DeletionResponse)
    async def delete_version(
        version_id: UUID,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> DeletionResponse:
        result = await runner.run(lambda session: workflow.delete(session, version_id, actor_id))
        return DeletionResponse.from_report(result.value)

    @router.post(
        "/floorplan-approvals/{version_id}/actions",
        response_model=FloorplanVersionResponse,
    )
    async def apply_action(
        version_id: UUID,
        body: FloorplanAction,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> FloorplanVersionResponse:
        revision = body.expected_revision

        async def operation(session: AsyncSession) -> OperationResult[FloorplanVersion]:
            action = body.action
            if action is FloorplanActionName.COMPLETE:
                return await workflow.complete(
                    session, version_id, actor_id, expected_revision=revision
                )
            if action is FloorplanActionName.REOPEN:
                return await workflow.reopen(
                    session, version_id, actor_id, expected_revision=revision
                )
            if action is FloorplanActionName.FOLLOW_UP:
                return await workflow.record_follow_up(
                    session, version_id, actor_id, notes=body.notes, expected_revision=revision
                )
            sent = await workflow.send_to_client(
                session,
                version_id,
                actor_id,
                mark_only=action is FloorplanActionName.MARK_SENT,
                expected_revision=revision,
            )
            version = await workflow.get(session, version_id)
            return OperationResult(version, sent.activity, sent.events)

        result = await runner.run(operation)
        return FloorplanVersionResponse.model_validate(result.value)

    @router.post("/floorplan-approvals/{version_id}/decision", response_model=ApprovalResponse)
    async def post_decision(
        version_id: UUID,
        body: DecisionCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        renderings: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
        floorplans: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> ApprovalResponse:
        async def newest_snapshot(session: AsyncSession) -> UUID:
            await floorplans.get(session, version_id)
            approvals = await list_client_approvals(session, floorplan_version_id=version_id)
            if not approvals:
                raise ConflictError(f"Floorplan version {version_id} has not been sent")
            return approvals[0].id

        approval_id = await runner.read(newest_snapshot)
        return await decide(runner, approval_id, actor_id, body, renderings, floorplans)

    @router.post(
        "/floorplan-approvals/{version_id}/assets",
        response_model=FloorplanAttachmentResponse,
        status_code=201,
    )
    async def add_asset(
        version_id: UUID,
        body: FloorplanAssetCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> FloorplanAttachmentResponse:
        async def operation(session: AsyncSession) -> OperationResult[FloorplanAttachmentResponse]:
            if body.asset_id is not None:
                linked = await workflow.attach_asset(
                    session,
                    version_id,
                    body.asset_id,
                    actor_id,
                    include_in_email=body.include_in_email,
                    expected_revision=body.expected_revision,
                )
                asset_id = body.asset_id
                activity, events = linked.activity, linked.events
            else:
                uploaded = await workflow.upload_asset(
                    session,
                    version_id,
                    actor_id,
                    title=body.title or "",
                    url=body.url or "",
                    asset_type=body.asset_type,
                    size_bytes=body.size_bytes,
                    mime_type=body.mime_type,
                    description=body.description,
                    include_in_email=body.include_in_email,
                    expected_revision=body.expected_revision,
                )
                asset_id = uploaded.value.id
                activity, events = uploaded.activity, uploaded.events
            for link, asset in await list_floorplan_assets(session, version_id):
                if link.asset_id == asset_id:
                    response = _attachment(link, AssetResponse.model_validate(asset))
                    return OperationResult(response, activity, events)
            raise NotFoundError("Floorplan attachment", asset_id)

        result = await runner.run(operation)
        return result.value

    @router.patch(
        "/floorplan-approvals/{version_id}/assets/{asset_id}",
        response_model=FloorplanAttachmentResponse,
    )
    async def patch_asset(
        version_id: UUID,
        asset_id: UUID,
        body: FloorplanAssetUpdate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> FloorplanAttachmentResponse:
        result = await runner.run(
            lambda session: workflow.set_asset_inclusion(
                session,
                version_id,
                asset_id,
                actor_id,
                include_in_email=body.include_in_email,
                display_order=body.display_order,
                expected_revision=body.expected_revision,
            )
        )
        return _attachment(result.value)

    @router.get("/floorplan-approvals/{version_id}/notes", response_model=list[CommentResponse])
    async def read_notes(
        version_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: FloorplanWorkflow = Depends(get_floorplans),  # noqa: B008
    ) -> list[CommentResponse]:
        await runner.read(lambda session: workflow.get(session, version_id))
        return await read_thread(runner, CommentTarget.FLOORPLAN_VERSION, version_id)

    @router.post(
        "/floorplan-approvals/{version_id}/notes",
        response_model=CommentResponse,
        status_code=201,
    )
    async def add_note(
        version_id: UUID,
        body: CommentCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> CommentResponse:
        return await post_and_render(
            runner, actor_id, CommentTarget.FLOORPLAN_VERSION, version_id, body
        )

    return router
