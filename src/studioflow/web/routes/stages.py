"""Stage endpoints: status workflow, workspace routing, notes and files.

``GET /stages/{id}/workspace`` returns the payload of the workspace the
stage routes to: rendering versions for THREE_D, approval snapshots for
CLIENT_APPROVAL, and notes plus files for the other stages.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.asset import AssetType
from studioflow.database.models.comment import CommentTarget
from studioflow.logging import bind_stage_context, get_logger
from studioflow.web.dependencies import WorkflowRunner, get_runner, require_actor
from studioflow.web.routes.comments import CommentCreate, post_and_render
from studioflow.web.schemas import (
    ActivityEntryResponse,
    ApprovalResponse,
    AssetResponse,
    CommentResponse,
    RenderingVersionResponse,
    StageResponse,
)
from studioflow.workflow.activity import timeline
from studioflow.workflow.assets import upload_stage_asset
from studioflow.workflow.comments import list_thread
from studioflow.workflow.stages import (
    StageWorkspace,
    WorkspaceKind,
    build_workspace,
    load_stage,
    transition_stage,
    update_stage,
)
from studioflow.workflow.state_machine import StageAction

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class StageUpdate(BaseModel):
    """Request schema for PATCH /stages/{id}.

    Only fields present in the body are changed; an explicit null clears one.
    """

    assigned_to: UUID | None = None
    due_date: date | None = None


class StageStatusChange(BaseModel):
    action: StageAction


class StageAssetCreate(BaseModel):
    """Request schema for attaching a file or link to a stage section."""

    title: str = Field(..., min_length=1, max_length=255)
    url: str = Field(..., min_length=1)
    section: str | None = None
    asset_type: AssetType = AssetType.OTHER
    size_bytes: int | None = Field(default=None, ge=0)
    mime_type: str | None = None
    description: str | None = None


class WorkspaceResponse(BaseModel):
    """The stage and the collections its workspace shows."""

    stage: StageResponse
    kind: WorkspaceKind
    renderings: list[RenderingVersionResponse]
    approvals: list[ApprovalResponse]
    notes: list[CommentResponse]
    assets: list[AssetResponse]

    @classmethod
    def from_workspace(cls, workspace: StageWorkspace) -> WorkspaceResponse:
        return cls(
            stage=StageResponse.model_validate(workspace.stage),
            kind=workspace.kind,
            renderings=[RenderingVersionResponse.model_validate(v) for v in workspace.renderings],
            approvals=[ApprovalResponse.from_snapshot(s) for s in workspace.approvals],
            notes=[CommentResponse.from_view(n) for n in workspace.notes],
            assets=[AssetResponse.model_validate(a) for a in workspace.assets],
        )


# --- Router ---


def create_stages_router() -> APIRouter:
    """Create the stages router.

    Routes:
        GET /stages/{stage_id} - Get a stage
        PATCH /stages/{stage_id} - Change assignee or due date
        POST /stages/{stage_id}/status - Apply a status action
        GET /stages/{stage_id}/workspace - Workspace payload for the stage type
        GET /stages/{stage_id}/activity - Stage timeline, newest first
        GET /stages/{stage_id}/notes - Section notes, newest first
        POST /stages/{stage_id}/notes - Add a section note
        POST /stages/{stage_id}/assets - Attach a file to a section
    """
    router = APIRouter(prefix="/stages", tags=["stages"])

    @router.get("/{stage_id}", response_model=StageResponse)
    async def read_stage(
        stage_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> StageResponse:
        stage = await runner.read(lambda session: load_stage(session, stage_id))
        return StageResponse.model_validate(stage)

    @router.patch("/{stage_id}", response_model=StageResponse)
    async def patch_stage(
        stage_id: UUID,
        body: StageUpdate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> StageResponse:
        bind_stage_context(str(stage_id))
        changes = body.model_dump(exclude_unset=True)
        result = await runner.run(lambda session: update_stage(session, stage_id, actor_id, changes))
        return StageResponse.model_validate(result.value)

    @router.post("/{stage_id}/status", response_model=StageResponse)
    async def change_status(
        stage_id: UUID,
        body: StageStatusChange,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> StageResponse:
        bind_stage_context(str(stage_id))
        result = await runner.run(
            lambda session: transition_stage(session, stage_id, body.action, actor_id)
        )
        return StageResponse.model_validate(result.value)

    @router.get("/{stage_id}/workspace", response_model=WorkspaceResponse)
    async def read_workspace(
        stage_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> WorkspaceResponse:
        workspace = await runner.read(lambda session: build_workspace(session, stage_id))
        logger.debug("workspace_routed", stage_id=str(stage_id), kind=workspace.kind.value)
        return WorkspaceResponse.from_workspace(workspace)

    @router.get("/{stage_id}/activity", response_model=list[ActivityEntryResponse])
    async def read_activity(
        stage_id: UUID,
        limit: int = Query(default=100, ge=1, le=500),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[ActivityEntryResponse]:
        async def query(session: AsyncSession) -> list[ActivityEntryResponse]:
            await load_stage(session, stage_id)
            entries = await timeline(session, stage_id=stage_id, limit=limit)
            return [ActivityEntryResponse.model_validate(e) for e in entries]

        return await runner.read(query)

    @router.get("/{stage_id}/notes", response_model=list[CommentResponse])
    async def read_notes(
        stage_id: UUID,
        section: str | None = None,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[CommentResponse]:
        async def query(session: AsyncSession) -> list[CommentResponse]:
            await load_stage(session, stage_id)
            views = await list_thread(session, CommentTarget.STAGE, stage_id, section=section)
            return [CommentResponse.from_view(v) for v in views]

        return await runner.read(query)

    @router.post("/{stage_id}/notes", response_model=CommentResponse, status_code=201)
    async def add_note(
        stage_id: UUID,
        body: CommentCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> CommentResponse:
        bind_stage_context(str(stage_id))
        return await post_and_render(runner, actor_id, CommentTarget.STAGE, stage_id, body)

    @router.post("/{stage_id}/assets", response_model=AssetResponse, status_code=201)
    async def add_asset(
        stage_id: UUID,
        body: StageAssetCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> AssetResponse:
        bind_stage_context(str(stage_id))
        result = await runner.run(
            lambda session: upload_stage_asset(
                session,
                stage_id,
                actor_id,
                title=body.title,
                url=body.url,
                section=body.section,
                asset_type=body.asset_type,
                size_bytes=body.size_bytes,
                mime_type=body.mime_type,
                description=body.description,
            )
        )
        return AssetResponse.model_validate(result.value)

    return router
