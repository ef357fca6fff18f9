"""Team roster query functions for Studioflow."""

from __future__ import annotations

from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.team import TeamMember, TeamRole

logger = structlog.get_logger(__name__)


async def create_team_member(
    session: AsyncSession,
    name: str,
    email: str,
    role: TeamRole = TeamRole.DESIGNER,
    member_id: UUID | None = None,
) -> TeamMember:
    """Add a team member to the roster.

    Args:
        session: Active async database session.
        name: Full display name.
        email: Unique contact address.
        role: Studio role.
        member_id: Identifier issued by the auth provider, if known.

    Returns:
        The newly created TeamMember.
    """
    member = TeamMember(name=name, email=email, role=role)
    if member_id is not None:
        member.id = member_id
    session.add(member)
    await session.flush()

    logger.info("team_member_created", member_id=str(member.id), role=role.value)
    return member


async def get_team_member(session: AsyncSession, member_id: UUID) -> TeamMember | None:
    """Retrieve a team member by ID."""
    result = await session.execute(select(TeamMember).where(TeamMember.id == member_id))
    return result.scalar_one_or_none()


async def list_team_members(session: AsyncSession) -> list[TeamMember]:
    """List the roster in the order used for mention matching.

    Members are ordered by when they joined, then by name, so earlier
    members win ties during @mention resolution.
    """
    result = await session.execute(
        select(TeamMember).order_by(TeamMember.created_at.asc(), TeamMember.name.asc())
    )
    return list(result.scalars().all())
