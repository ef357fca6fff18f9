"""Team roster endpoints.

The roster is the set of people @mentions resolve against.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from studioflow.database.models.team import TeamRole
from studioflow.database.queries.team import list_team_members
from studioflow.web.dependencies import WorkflowRunner, get_runner, require_actor
from studioflow.web.schemas import TeamMemberResponse
from studioflow.workflow.projects import add_team_member


class TeamMemberCreate(BaseModel):
    """Request schema for adding a team member.

    Attributes:
        id: Identifier issued by the auth provider, if the member already has one.
    """

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320)
    role: TeamRole = TeamRole.DESIGNER
    id: UUID | None = None


def create_team_router() -> APIRouter:
    """Create the team roster router.

    Routes:
        GET /team - List team members in mention-matching order
        POST /team - Add a team member
    """
    router = APIRouter(prefix="/team", tags=["team"])

    @router.get("", response_model=list[TeamMemberResponse])
    async def list_team(
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> list[TeamMemberResponse]:
        members = await runner.read(list_team_members)
        return [TeamMemberResponse.model_validate(m) for m in members]

    @router.post("", response_model=TeamMemberResponse, status_code=201)
    async def create_member(
        body: TeamMemberCreate,
        actor_id: UUID = Depends(require_actor),  # noqa: B008
        runner: WorkflowRunner = Depends(get_runner),  # noqa: B008
    ) -> TeamMemberResponse:
        result = await runner.run(
            lambda session: add_team_member(
                session,
                actor_id,
                name=body.name,
                email=body.email,
                role=body.role,
                member_id=body.id,
            )
        )
        return TeamMemberResponse.model_validate(result.value)

    return router
