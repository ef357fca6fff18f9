"""Floorplan approval version models for Studioflow.

Floorplan versions belong to a project rather than a stage. They gather
floorplan drawings, get principal sign-off, are emailed to the client with
a chosen subset of attachments, and then wait for the client's decision.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, JSONType, TimestampMixin


class FloorplanVersionStatus(enum.Enum):
    """Lifecycle status for a floorplan approval version.

    States:
        DRAFT: Initial state; drawings and notes are editable.
        READY_FOR_CLIENT: Principal approved; may still be reopened.
        SENT_TO_CLIENT: Emailed (or marked as sent) to the client.
        FOLLOW_UP_REQUIRED: Client has been chased and a reply is pending.
        CLIENT_APPROVED: Terminal; the client accepted the floorplan.
        REVISION_REQUESTED: The client asked for changes; reopen to continue.
    """

    DRAFT = "DRAFT"
    READY_FOR_CLIENT = "READY_FOR_CLIENT"
    SENT_TO_CLIENT = "SENT_TO_CLIENT"
    FOLLOW_UP_REQUIRED = "FOLLOW_UP_REQUIRED"
    CLIENT_APPROVED = "CLIENT_APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class FloorplanVersion(TimestampMixin, Base):
    """A numbered floorplan package for a project.

    Attributes:
        project_id: Owning project.
        sequence: Monotonic per-project sequence number.
        label: Display label derived from sequence ("v1", "v2", ...).
        status: Current lifecycle status.
        notes: Free-form internal notes.
        created_by: Who created the version.
        principal_approved_at: When the principal signed off.
        principal_approved_by: Who signed off.
        sent_to_client_at: When the package went to the client.
        sent_by: Who sent it.
        follow_up_completed_at: When the client was last chased.
        follow_up_notes: What was said when chasing.
        revision_items: Itemised changes requested by the client, each a
            {"text", "completed"} object.
        source_file_path: Optional link to the CAD file in the cloud drive.
        revision: Optimistic concurrency counter.
    """

    __tablename__ = "floorplan_versions"
    __table_args__ = (
        UniqueConstraint("project_id", "sequence", name="uq_floorplan_versions_project_sequence"),
    )

    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    label: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[FloorplanVersionStatus] = mapped_column(
        Enum(FloorplanVersionStatus, name="floorplan_version_status"),
        default=FloorplanVersionStatus.DRAFT,
        nullable=False,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    principal_approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    principal_approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    sent_to_client_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    sent_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    follow_up_completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    follow_up_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision_items: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType,
        nullable=False,
        default=list,
    )
    source_file_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    revision: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": revision}


class FloorplanVersionAsset(TimestampMixin, Base):
    """Attachment of an asset to a floorplan version.

    Attributes:
        version_id: The floorplan version.
        asset_id: The attached asset.
        include_in_email: Whether the asset goes out with the client email.
        display_order: Position in the attachment list.
    """

    __tablename__ = "floorplan_version_assets"
    __table_args__ = (
        UniqueConstraint("version_id", "asset_id", name="uq_floorplan_version_assets"),
    )

    version_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("floorplan_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    asset_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("assets.id", ondelete="CASCADE"),
        nullable=False,
    )
    include_in_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
