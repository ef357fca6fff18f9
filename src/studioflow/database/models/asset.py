"""Asset model for Studioflow.

An asset is a stored file (or link) attached to a rendering version, a
stage section, or a project's floorplan library. Storage itself is external;
the row keeps the object URL returned by the upload service.
"""

from __future__ import annotations

import enum
import uuid

from sqlalchemy import BigInteger, Enum, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, TimestampMixin


class AssetType(enum.Enum):
    """Kind of file an asset points at."""

    IMAGE = "IMAGE"
    PDF = "PDF"
    DOCUMENT = "DOCUMENT"
    LINK = "LINK"
    RENDER = "RENDER"
    DRAWING = "DRAWING"
    FLOORPLAN_PDF = "FLOORPLAN_PDF"
    FLOORPLAN_CAD = "FLOORPLAN_CAD"
    OTHER = "OTHER"


class Asset(TimestampMixin, Base):
    """A file attached to a workflow entity.

    Exactly one owner is expected: rendering_version_id for renders,
    stage_id (plus optional section) for stage workspace files, or
    project_id for floorplan drawings linked through floorplan_version_assets.

    Attributes:
        title: Display title, usually the original filename.
        url: Object storage URL.
        asset_type: File category.
        size_bytes: Size reported by the upload service.
        mime_type: MIME type reported by the upload service.
        description: Optional free-text description.
        uploaded_by: Who uploaded the file.
        rendering_version_id: Owning rendering version, if any.
        stage_id: Owning stage, if any.
        section: Stage section key (e.g. "references", "elevations").
        project_id: Owning project for floorplan assets.
    """

    __tablename__ = "assets"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    asset_type: Mapped[AssetType] = mapped_column(
        Enum(AssetType, name="asset_type"),
        default=AssetType.OTHER,
        nullable=False,
    )
    size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    rendering_version_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("rendering_versions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    stage_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("stages.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    section: Mapped[str | None] = mapped_column(Text, nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
