"""Client approval snapshot models for Studioflow.

A ClientApprovalVersion is created each time a rendering or floorplan
version goes to the client. It freezes the selected assets and holds the
client's decision, which in turn drives the originating version.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.asset import AssetType
from studioflow.database.models.base import Base, TimestampMixin


class ApprovalDecision(enum.Enum):
    """Client-facing decision state of an approval snapshot."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REVISION_REQUESTED = "REVISION_REQUESTED"


class ClientApprovalVersion(TimestampMixin, Base):
    """Snapshot of what the client was asked to approve.

    Exactly one of rendering_version_id and floorplan_version_id is set.

    Attributes:
        rendering_version_id: Originating rendering version.
        floorplan_version_id: Originating floorplan version.
        stage_id: CLIENT_APPROVAL stage of the room (renderings only).
        project_id: Owning project.
        label: Label of the originating version at push time.
        decision: PENDING until the client responds.
        decided_at: When the decision was recorded.
        client_message: The client's comments with the decision.
        decided_by: Team member who recorded the decision.
        sent_by: Who pushed the version to the client.
    """

    __tablename__ = "client_approval_versions"
    __table_args__ = (
        CheckConstraint(
            "(rendering_version_id IS NULL) <> (floorplan_version_id IS NULL)",
            name="ck_client_approval_single_origin",
        ),
    )

    rendering_version_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("rendering_versions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    floorplan_version_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("floorplan_versions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    stage_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("stages.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
    )
    label: Mapped[str] = mapped_column(Text, nullable=False)
    decision: Mapped[ApprovalDecision] = mapped_column(
        Enum(ApprovalDecision, name="approval_decision"),
        default=ApprovalDecision.PENDING,
        nullable=False,
    )
    decided_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    client_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    decided_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    sent_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)


class ClientApprovalAsset(TimestampMixin, Base):
    """One asset frozen into an approval snapshot.

    Title, URL and type are copied at push time so the snapshot still reads
    correctly after the source asset is edited or deleted.

    Attributes:
        approval_id: The owning snapshot.
        asset_id: Source asset, nulled if the asset is later deleted.
        title: Asset title at push time.
        url: Asset URL at push time.
        asset_type: Asset type at push time.
        include_in_email: Whether the asset is attached to the client email.
        display_order: Position within the snapshot.
    """

    __tablename__ = "client_approval_assets"

    approval_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("client_approval_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    asset_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("assets.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    asset_type: Mapped[AssetType] = mapped_column(
        Enum(AssetType, name="asset_type"),
        nullable=False,
    )
    include_in_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
