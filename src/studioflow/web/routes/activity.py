"""Project and entity timelines.

Stage timelines are served by the stages router; this module covers the
project-wide feed and the history of a single entity.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.queries.project import get_project
from studioflow.errors import NotFoundError
from studioflow.web.dependencies import WorkflowRunner, get_runner
from studioflow.web.schemas import ActivityEntryResponse
from studioflow.workflow.activity import timeline


def create_activity_router() -> APIRouter:
    """Create the activity router.

    Routes:
        GET /projects/{project_id}/activity - Project timeline, newest first
        GET /activity/{entity_id} - Everything recorded about one entity
    """
    router = APIRouter(tags=["activity"])

    @router.get("/projects/{project_id}/activity", response_model=list[ActivityEntryResponse])
    async def project_activity(
        project_id: UUID,
        limit: int = Query(default=100, ge=1, le=500),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[ActivityEntryResponse]:
        async def query(session: AsyncSession) -> list[ActivityEntryResponse]:
            if await get_project(session, project_id) is None:
                raise NotFoundError("Project", project_id)
            entries = await timeline(session, project_id=project_id, limit=limit)
            return [ActivityEntryResponse.model_validate(e) for e in entries]

        return await runner.read(query)

    @router.get("/activity/{entity_id}", response_model=list[ActivityEntryResponse])
    async def entity_activity(
        entity_id: UUID,
        limit: int = Query(default=100, ge=1, le=500),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[ActivityEntryResponse]:
        entries = await runner.read(
            lambda session: timeline(session, entity_id=entity_id, limit=limit)
        )
        return [ActivityEntryResponse.model_validate(e) for e in entries]

    return router
