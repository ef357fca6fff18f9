"""Rendering version endpoints.

Rendering versions live in a room's THREE_D stage. Mutating requests may
carry ``expected_revision``; a mismatch returns 409 so the client can
reload instead of overwriting a concurrent change.
"""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.asset import AssetType
from studioflow.database.models.comment import CommentTarget
from studioflow.database.models.rendering import RenderingVersion
from studioflow.database.queries.approval import list_approval_assets, list_client_approvals
from studioflow.database.queries.asset import list_rendering_assets
from studioflow.database.queries.rendering import list_rendering_versions
from studioflow.errors import ValidationError
from studioflow.logging import bind_stage_context, get_logger
from studioflow.web.dependencies import (
    WorkflowRunner,
    get_renderings,
    get_runner,
    require_actor,
)
from studioflow.web.routes.comments import CommentCreate, post_and_render, read_thread
from studioflow.web.schemas import (
    ApprovalResponse,
    AssetResponse,
    CommentResponse,
    DeletionResponse,
    RenderingVersionResponse,
)
from studioflow.workflow.approvals import ApprovalSnapshot, load_snapshot
from studioflow.workflow.events import OperationResult
from studioflow.workflow.renderings import RenderingWorkflow
from studioflow.workflow.stages import load_stage

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class RenderingCreate(BaseModel):
    custom_name: str | None = None
    source_file_path: str | None = None


class RenderingActionName(str, Enum):
    COMPLETE = "complete"
    REOPEN = "reopen"
    RENAME = "rename"


class RenderingAction(BaseModel):
    """Request schema for POST /renderings/{id}/actions.

    Attributes:
        action: complete, reopen or rename.
        custom_name: New name for rename; empty clears it.
        expected_revision: Revision the caller last read.
    """

    action: RenderingActionName
    custom_name: str | None = None
    expected_revision: int | None = None


class RenderingAssetCreate(BaseModel):
    """Request schema for uploading a render to a version."""

    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    asset_type: AssetType = AssetType.RENDER
    size_bytes: int | None = Field(default=None, ge=0)
    mime_type: str | None = None
    description: str | None = None
    expected_revision: int | None = None


class PushToClient(BaseModel):
    """Request schema for sending selected renders to the client."""

    asset_ids: list[UUID]
    expected_revision: int | None = None


class RenderingDetailResponse(BaseModel):
    """A rendering version with its files and approval snapshots."""

    version: RenderingVersionResponse
    assets: list[AssetResponse]
    approvals: list[ApprovalResponse]


# --- Router ---


def create_renderings_router() -> APIRouter:
    """Create the rendering versions router.

    Routes:
        GET /stages/{stage_id}/renderings - List versions, newest first
        POST /stages/{stage_id}/renderings - Start a new version
        GET /renderings/{version_id} - Version with assets and snapshots
        DELETE /renderings/{version_id} - Delete a version
        POST /renderings/{version_id}/actions - complete, reopen or rename
        POST /renderings/{version_id}/assets - Upload a render
        POST /renderings/{version_id}/push-to-client - Snapshot selected renders
        GET /renderings/{version_id}/notes - Version notes, newest first
        POST /renderings/{version_id}/notes - Add a version note
    """
    router = APIRouter(tags=["renderings"])

    @router.get("/stages/{stage_id}/renderings", response_model=list[RenderingVersionResponse])
    async def list_versions(
        stage_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[RenderingVersionResponse]:
        async def query(session: AsyncSession) -> list[RenderingVersion]:
            await load_stage(session, stage_id)
            return await list_rendering_versions(session, stage_id)

        return [RenderingVersionResponse.model_validate(v) for v in await runner.read(query)]

    @router.post(
        "/stages/{stage_id}/renderings",
        response_model=RenderingVersionResponse,
        status_code=201,
    )
    async def create_version(
        stage_id: UUID,
        body: RenderingCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> RenderingVersionResponse:
        bind_stage_context(str(stage_id))
        result = await runner.run(
            lambda session: workflow.create(
                session,
                stage_id,
                actor_id,
                custom_name=body.custom_name,
                source_file_path=body.source_file_path,
            )
        )
        return RenderingVersionResponse.model_validate(result.value)

    @router.get("/renderings/{version_id}", response_model=RenderingDetailResponse)
    async def read_version(
        version_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> RenderingDetailResponse:
        async def query(session: AsyncSession) -> RenderingDetailResponse:
            version = await workflow.get(session, version_id)
            approvals = await list_client_approvals(session, rendering_version_id=version.id)
            return RenderingDetailResponse(
                version=RenderingVersionResponse.model_validate(version),
                assets=[
                    AssetResponse.model_validate(a)
                    for a in await list_rendering_assets(session, version.id)
                ],
                approvals=[
                    ApprovalResponse.from_snapshot(
                        ApprovalSnapshot(a, await list_approval_assets(session, a.id))
                    )
                    for a in approvals
                ],
            )

        return await runner.read(query)

    @router.delete("/renderings/{version_id}", response_model=DeletionResponse)
    async def delete_version(
        version_id: UUID,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> DeletionResponse:
        result = await runner.run(lambda session: workflow.delete(session, version_id, actor_id))
        return DeletionResponse.from_report(result.value)

    @router.post("/renderings/{version_id}/actions", response_model=RenderingVersionResponse)
    async def apply_action(
        version_id: UUID,
        body: RenderingAction,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> RenderingVersionResponse:
        async def operation(session: AsyncSession) -> OperationResult[RenderingVersion]:
            if body.action is RenderingActionName.COMPLETE:
                return await workflow.complete(
                    session, version_id, actor_id, expected_revision=body.expected_revision
                )
            if body.action is RenderingActionName.REOPEN:
                return await workflow.reopen(
                    session, version_id, actor_id, expected_revision=body.expected_revision
                )
            if "custom_name" not in body.model_fields_set:
                raise ValidationError("rename requires custom_name")
            return await workflow.rename(
                session,
                version_id,
                actor_id,
                body.custom_name,
                expected_revision=body.expected_revision,
            )

        result = await runner.run(operation)
        return RenderingVersionResponse.model_validate(result.value)

    @router.post(
        "/renderings/{version_id}/assets",
        response_model=AssetResponse,
        status_code=201,
    )
    async def upload_asset(
        version_id: UUID,
        body: RenderingAssetCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> AssetResponse:
        result = await runner.run(
            lambda session: workflow.upload_asset(
                session,
                version_id,
                actor_id,
                title=body.title,
                url=body.url,
                asset_type=body.asset_type,
                size_bytes=body.size_bytes,
                mime_type=body.mime_type,
                description=body.description,
                expected_revision=body.expected_revision,
            )
        )
        return AssetResponse.model_validate(result.value)

    @router.post(
        "/renderings/{version_id}/push-to-client",
        response_model=ApprovalResponse,
        status_code=201,
    )
    async def push_to_client(
        version_id: UUID,
        body: PushToClient,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> ApprovalResponse:
        async def operation(session: AsyncSession) -> OperationResult[ApprovalSnapshot]:
            result = await workflow.push_to_client(
                session,
                version_id,
                actor_id,
                body.asset_ids,
                expected_revision=body.expected_revision,
            )
            snapshot = await load_snapshot(session, result.value.id)
            return OperationResult(snapshot, result.activity, result.events)

        result = await runner.run(operation)
        logger.info(
            "rendering_pushed_via_api",
            version_id=str(version_id),
            approval_id=str(result.value.approval.id),
            automatic_events=len(result.events),
        )
        return ApprovalResponse.from_snapshot(result.value)

    @router.get("/renderings/{version_id}/notes", response_model=list[CommentResponse])
    async def read_notes(
        version_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
        workflow: RenderingWorkflow = Depends(get_renderings),  # noqa: B008
    ) -> list[CommentResponse]:
        await runner.read(lambda session: workflow.get(session, version_id))
        return await read_thread(runner, CommentTarget.RENDERING_VERSION, version_id)

    @router.post(
        "/renderings/{version_id}/notes",
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
            runner, actor_id, CommentTarget.RENDERING_VERSION, version_id, body
        )

    return router
