"""Stage chat and comment editing endpoints.

Version notes are posted through the rendering and floorplan routers and
section notes through the stages router; they all share post_and_render()
so every surface resolves @mentions the same way.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.comment import Comment, CommentTarget
from studioflow.database.queries.comment import list_mentions
from studioflow.logging import bind_stage_context
from studioflow.web.dependencies import WorkflowRunner, get_runner, require_actor
from studioflow.web.schemas import CommentResponse
from studioflow.workflow.comments import (
    MAX_COMMENT_LENGTH,
    CommentView,
    delete_comment,
    edit_comment,
    list_thread,
    post_comment,
)
from studioflow.workflow.events import OperationResult
from studioflow.workflow.stages import load_stage


class CommentCreate(BaseModel):
    """Request schema for a note or chat message.

    Attributes:
        content: Text, possibly containing @mentions.
        section: Stage section key (stage notes only).
        parent_id: Message being replied to (chat only).
    """

    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)
    section: str | None = None
    parent_id: UUID | None = None


class CommentEdit(BaseModel):
    content: str = Field(..., min_length=1, max_length=MAX_COMMENT_LENGTH)


async def _with_mentions(
    session: AsyncSession,
    result: OperationResult[Comment],
) -> OperationResult[CommentView]:
    comment = result.value
    mentions = await list_mentions(session, [comment.id])
    return OperationResult(CommentView(comment, mentions[comment.id]), result.activity, result.events)


async def post_and_render(
    runner: WorkflowRunner,
    actor_id: UUID,
    target_type: CommentTarget,
    target_id: UUID,
    body: CommentCreate,
) -> CommentResponse:
    """Post a comment and return it with its resolved mentions."""

    async def operation(session: AsyncSession) -> OperationResult[CommentView]:
        result = await post_comment(
            session,
            actor_id,
            target_type,
            target_id,
            body.content,
            section=body.section,
            parent_id=body.parent_id,
        )
        return await _with_mentions(session, result)

    result = await runner.run(operation)
    return CommentResponse.from_view(result.value)


async def read_thread(
    runner: WorkflowRunner,
    target_type: CommentTarget,
    target_id: UUID,
) -> list[CommentResponse]:
    """List a version's notes, newest first."""
    views = await runner.read(lambda session: list_thread(session, target_type, target_id))
    return [CommentResponse.from_view(v) for v in views]


def create_comments_router() -> APIRouter:
    """Create the chat and comments router.

    Routes:
        GET /chat/{stage_id} - Threaded stage chat, oldest first
        POST /chat/{stage_id} - Post a chat message or reply
        PATCH /comments/{comment_id} - Edit own comment
        DELETE /comments/{comment_id} - Delete own comment
    """
    router = APIRouter(tags=["comments"])

    @router.get("/chat/{stage_id}", response_model=list[CommentResponse])
    async def read_chat(
        stage_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[CommentResponse]:
        async def query(session: AsyncSession) -> list[CommentView]:
            await load_stage(session, stage_id)
            return await list_thread(session, CommentTarget.CHAT, stage_id)

        return [CommentResponse.from_view(v) for v in await runner.read(query)]

    @router.post("/chat/{stage_id}", response_model=CommentResponse, status_code=201)
    async def post_chat(
        stage_id: UUID,
        body: CommentCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> CommentResponse:
        bind_stage_context(str(stage_id))
        return await post_and_render(runner, actor_id, CommentTarget.CHAT, stage_id, body)

    @router.patch("/comments/{comment_id}", response_model=CommentResponse)
    async def patch_comment(
        comment_id: UUID,
        body: CommentEdit,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> CommentResponse:
        async def operation(session: AsyncSession) -> OperationResult[CommentView]:
            result = await edit_comment(session, comment_id, actor_id, body.content)
            return await _with_mentions(session, result)

        result = await runner.run(operation)
        return CommentResponse.from_view(result.value)

    @router.delete("/comments/{comment_id}", status_code=204)
    async def remove_comment(
        comment_id: UUID,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> Response:
        await runner.run(lambda session: delete_comment(session, comment_id, actor_id))
        return Response(status_code=204)

    return router
