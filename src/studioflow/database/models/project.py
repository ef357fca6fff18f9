"""Project and Room models for Studioflow.

A Project is one client engagement. It owns Rooms, and each Room owns one
Stage per workflow phase. Projects also own the floorplan approval versions
and carry the counter that labels them.
"""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, TimestampMixin


class Project(TimestampMixin, Base):
    """A client engagement tracked by the studio.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        name: Human-readable project name.
        client_name: Name of the client the work is for.
        client_email: Address used for client-facing approval emails.
        floorplan_version_counter: Highest floorplan sequence ever allocated;
            only ever increases.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    client_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    client_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    floorplan_version_counter: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )


class Room(TimestampMixin, Base):
    """A room within a project; the unit that owns workflow stages.

    Attributes:
        project_id: Foreign key to the owning project.
        name: Display name, e.g. "Master Bedroom".
        room_type: Free-form room category, e.g. "LIVING_ROOM".
    """

    __tablename__ = "rooms"

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(Text, nullable=False)
    room_type: Mapped[str | None] = mapped_column(Text, nullable=True)
