"""Stage model for Studioflow.

A Stage is one workflow phase of one room. Stages are created with their
room, never deleted, and only move between StageStatus values.
"""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, TimestampMixin


class StageType(enum.Enum):
    """Workflow phase discriminator.

    Values:
        DESIGN: Design concept boards and references.
        THREE_D: 3D rendering, tracked through rendering versions.
        CLIENT_APPROVAL: Client review of pushed renderings.
        DRAWINGS: Technical drawings.
        FFE: Furniture, fixtures and equipment selection.
    """

    DESIGN = "DESIGN"
    THREE_D = "THREE_D"
    CLIENT_APPROVAL = "CLIENT_APPROVAL"
    DRAWINGS = "DRAWINGS"
    FFE = "FFE"


class StageStatus(enum.Enum):
    """Lifecycle status for a stage."""

    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    NOT_APPLICABLE = "NOT_APPLICABLE"


# Order in which a new room's stages are created and listed
STAGE_SEQUENCE: tuple[StageType, ...] = (
    StageType.DESIGN,
    StageType.THREE_D,
    StageType.CLIENT_APPROVAL,
    StageType.DRAWINGS,
    StageType.FFE,
)


class Stage(TimestampMixin, Base):
    """One workflow phase of one room.

    Attributes:
        room_id: Foreign key to the owning room.
        type: Which workspace this stage is (see StageType).
        status: Current lifecycle status.
        assigned_to: Team member responsible for the stage.
        due_date: Optional target date.
        started_at: Set the first time the stage enters IN_PROGRESS.
        completed_at: Set on completion, cleared on reopen.
        completed_by: Who completed the stage.
        rendering_version_counter: Highest rendering version sequence ever
            allocated in this stage; only ever increases.
    """

    __tablename__ = "stages"
    __table_args__ = (UniqueConstraint("room_id", "type", name="uq_stages_room_type"),)

    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[StageType] = mapped_column(
        Enum(StageType, name="stage_type"),
        nullable=False,
    )
    status: Mapped[StageStatus] = mapped_column(
        Enum(StageStatus, name="stage_status"),
        default=StageStatus.NOT_STARTED,
        nullable=False,
    )
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    rendering_version_counter: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )
