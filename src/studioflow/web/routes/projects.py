"""Project and room endpoints for Studioflow.

Creating a room also creates its five stages; room responses include them
in workflow order with the workspace each stage opens in.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.project import Project, Room
from studioflow.database.models.stage import Stage
from studioflow.database.queries.project import get_project, get_room, list_projects, list_rooms
from studioflow.database.queries.stage import list_room_stages
from studioflow.errors import NotFoundError
from studioflow.logging import get_logger
from studioflow.web.dependencies import WorkflowRunner, get_runner, require_actor
from studioflow.web.schemas import StageResponse
from studioflow.workflow.projects import add_room, start_project

logger = get_logger(__name__)


# --- Pydantic Schemas ---


class ProjectCreate(BaseModel):
    """Request schema for creating a project."""

    name: str = Field(..., min_length=1, max_length=255)
    client_name: str | None = None
    client_email: str | None = None


class ProjectResponse(BaseModel):
    id: UUID
    name: str
    client_name: str | None
    client_email: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RoomCreate(BaseModel):
    """Request schema for adding a room to a project."""

    name: str = Field(..., min_length=1, max_length=255)
    room_type: str | None = None


class RoomResponse(BaseModel):
    """A room with its stages in workflow order."""

    id: UUID
    project_id: UUID
    name: str
    room_type: str | None
    created_at: datetime
    stages: list[StageResponse]

    @classmethod
    def build(cls, room: Room, stages: list[Stage]) -> RoomResponse:
        return cls(
            id=room.id,
            project_id=room.project_id,
            name=room.name,
            room_type=room.room_type,
            created_at=room.created_at,
            stages=[StageResponse.model_validate(stage) for stage in stages],
        )


# --- Router ---


def create_projects_router() -> APIRouter:
    """Create the projects and rooms router.

    Routes:
        GET /projects - List projects
        POST /projects - Create a project
        GET /projects/{project_id} - Get a project
        GET /projects/{project_id}/rooms - List a project's rooms with stages
        POST /projects/{project_id}/rooms - Add a room and its stages
        GET /rooms/{room_id} - Get a room with its stages
    """
    router = APIRouter(tags=["projects"])

    @router.get("/projects", response_model=list[ProjectResponse])
    async def list_all_projects(
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[ProjectResponse]:
        projects = await runner.read(list_projects)
        return [ProjectResponse.model_validate(p) for p in projects]

    @router.post("/projects", response_model=ProjectResponse, status_code=201)
    async def create_project(
        body: ProjectCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> ProjectResponse:
        result = await runner.run(
            lambda session: start_project(
                session,
                actor_id,
                name=body.name,
                client_name=body.client_name,
                client_email=body.client_email,
            )
        )
        logger.info("project_created_via_api", project_id=str(result.value.id))
        return ProjectResponse.model_validate(result.value)

    @router.get("/projects/{project_id}", response_model=ProjectResponse)
    async def read_project(
        project_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> ProjectResponse:
        async def query(session: AsyncSession) -> Project:
            project = await get_project(session, project_id)
            if project is None:
                raise NotFoundError("Project", project_id)
            return project

        return ProjectResponse.model_validate(await runner.read(query))

    @router.get("/projects/{project_id}/rooms", response_model=list[RoomResponse])
    async def list_project_rooms(
        project_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[RoomResponse]:
        async def query(session: AsyncSession) -> list[RoomResponse]:
            if await get_project(session, project_id) is None:
                raise NotFoundError("Project", project_id)
            return [
                RoomResponse.build(room, await list_room_stages(session, room.id))
                for room in await list_rooms(session, project_id)
            ]

        return await runner.read(query)

    @router.post("/projects/{project_id}/rooms", response_model=RoomResponse, status_code=201)
    async def create_room(
        project_id: UUID,
        body: RoomCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> RoomResponse:
        result = await runner.run(
            lambda session: add_room(
                session, project_id, actor_id, name=body.name, room_type=body.room_type
            )
        )
        room, stages = result.value
        return RoomResponse.build(room, stages)

    @router.get("/rooms/{room_id}", response_model=RoomResponse)
    async def read_room(
        room_id: UUID,
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> RoomResponse:
        async def query(session: AsyncSession) -> RoomResponse:
            room = await get_room(session, room_id)
            if room is None:
                raise NotFoundError("Room", room_id)
            return RoomResponse.build(room, await list_room_stages(session, room.id))

        return await runner.read(query)

    return router
