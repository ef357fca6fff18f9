"""Team roster model for Studioflow.

Team members are the people comments can mention. Identity and sessions
belong to the external auth provider; this table only mirrors the id,
display name and role needed by the workflow.
"""

from __future__ import annotations

import enum

from sqlalchemy import Enum, Text
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, TimestampMixin


class TeamRole(enum.Enum):
    """Studio role of a team member."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    DESIGNER = "DESIGNER"
    RENDERER = "RENDERER"
    DRAFTER = "DRAFTER"
    FFE = "FFE"
    VIEWER = "VIEWER"


class TeamMember(TimestampMixin, Base):
    """A studio team member.

    Attributes:
        name: Full display name used for @mention matching.
        email: Contact address, unique across the roster.
        role: Studio role.
    """

    __tablename__ = "team_members"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[TeamRole] = mapped_column(
        Enum(TeamRole, name="team_role"),
        default=TeamRole.DESIGNER,
        nullable=False,
    )
