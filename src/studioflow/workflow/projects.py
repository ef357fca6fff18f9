"""Project, room and roster setup."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.project import Project, Room
from studioflow.database.models.stage import Stage
from studioflow.database.models.team import TeamMember, TeamRole
from studioflow.database.queries.project import create_project, create_room, get_project
from studioflow.database.queries.team import create_team_member
from studioflow.errors import NotFoundError, ValidationError
from studioflow.workflow.activity import CreateDetails, record_activity
from studioflow.workflow.events import OperationResult


def _required(value: str, what: str) -> str:
    cleaned = value.strip() if value else ""
    if not cleaned:
        raise ValidationError(f"{what} must not be empty")
    return cleaned


async def start_project(
    session: AsyncSession,
    actor_id: UUID,
    name: str,
    client_name: str | None = None,
    client_email: str | None = None,
) -> OperationResult[Project]:
    """Create a project."""
    project = await create_project(
        session,
        name=_required(name, "Project name"),
        client_name=client_name,
        client_email=client_email,
    )
    activity = await record_activity(
        session,
        CreateDetails(entity="project", name=project.name),
        entity_type="project",
        entity_id=project.id,
        actor_id=actor_id,
        project_id=project.id,
    )
    return OperationResult(project, activity)


async def add_room(
    session: AsyncSession,
    project_id: UUID,
    actor_id: UUID,
    name: str,
    room_type: str | None = None,
) -> OperationResult[tuple[Room, list[Stage]]]:
    """Create a room with its five stages, all NOT_STARTED.

    Raises:
        NotFoundError: If the project does not exist.
    """
    if await get_project(session, project_id) is None:
        raise NotFoundError("Project", project_id)
    room, stages = await create_room(
        session, project_id=project_id, name=_required(name, "Room name"), room_type=room_type
    )
    activity = await record_activity(
        session,
        CreateDetails(entity="room", name=room.name),
        entity_type="room",
        entity_id=room.id,
        actor_id=actor_id,
        project_id=project_id,
    )
    return OperationResult((room, stages), activity)


async def add_team_member(
    session: AsyncSession,
    actor_id: UUID | None,
    name: str,
    email: str,
    role: TeamRole = TeamRole.DESIGNER,
    member_id: UUID | None = None,
) -> OperationResult[TeamMember]:
    """Add someone to the mentionable roster.

    A duplicate email surfaces as ConflictError from session_scope().
    """
    member = await create_team_member(
        session,
        name=_required(name, "Name"),
        email=_required(email, "Email").lower(),
        role=role,
        member_id=member_id,
    )
    activity = await record_activity(
        session,
        CreateDetails(entity="team_member", name=member.name),
        entity_type="team_member",
        entity_id=member.id,
        actor_id=actor_id,
    )
    return OperationResult(member, activity)
