"""Rendering version model for Studioflow.

Rendering versions live inside a room's THREE_D stage. Each one collects
render assets, is completed by the renderer, pushed to the client as an
approval snapshot, and finally approved or sent back for revision.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, TimestampMixin


class RenderingVersionStatus(enum.Enum):
    """Lifecycle status for a rendering version.

    States:
        IN_PROGRESS: Initial state; assets can be uploaded and edited.
        COMPLETED: Renderer signed off; may still be reopened.
        PUSHED_TO_CLIENT: A client approval snapshot is awaiting a decision.
        CLIENT_APPROVED: Terminal; the client accepted the renders.
        REVISION_REQUESTED: The client asked for changes; reopen to continue.
    """

    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    PUSHED_TO_CLIENT = "PUSHED_TO_CLIENT"
    CLIENT_APPROVED = "CLIENT_APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class RenderingVersion(TimestampMixin, Base):
    """A numbered batch of renders for one room.

    Attributes:
        stage_id: The THREE_D stage this version belongs to.
        room_id: Denormalised room reference for cross-stage lookups.
        sequence: Monotonic per-stage sequence number.
        label: Display label derived from sequence ("v1", "v2", ...).
        custom_name: Optional human name shown instead of the label.
        status: Current lifecycle status.
        created_by: Who created the version.
        updated_by: Who last changed it.
        completed_at: Completion timestamp, cleared on reopen.
        completed_by: Who completed it, cleared on reopen.
        pushed_to_client_at: Set when the version is pushed to the client.
        source_file_path: Optional link to the working file in the cloud drive.
        revision: Optimistic concurrency counter, bumped on every update.
    """

    __tablename__ = "rendering_versions"
    __table_args__ = (
        UniqueConstraint("stage_id", "sequence", name="uq_rendering_versions_stage_sequence"),
    )

    stage_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("stages.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    room_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    custom_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[RenderingVersionStatus] = mapped_column(
        Enum(RenderingVersionStatus, name="rendering_version_status"),
        default=RenderingVersionStatus.IN_PROGRESS,
        nullable=False,
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    updated_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    completed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    pushed_to_client_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    source_file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": revision}

    @property
    def display_name(self) -> str:
        """Custom name when set, otherwise the sequence label."""
        return self.custom_name or self.label
