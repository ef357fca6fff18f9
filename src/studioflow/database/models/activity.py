"""Activity log model for Studioflow.

The activity log is append-only. Rows reference the entity they describe
by type and id only, without foreign keys, so history survives deletion of
the versions and assets it mentions.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, Enum, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, JSONType, utcnow


class ActivityAction(enum.Enum):
    """Fixed vocabulary of activity tags."""

    CREATE = "CREATE"
    UPLOAD = "UPLOAD"
    COMPLETE = "COMPLETE"
    REOPEN = "REOPEN"
    PUSH_TO_CLIENT = "PUSH_TO_CLIENT"
    CLIENT_DECISION = "CLIENT_DECISION"
    DELETE = "DELETE"
    RENAME = "RENAME"
    UPDATE = "UPDATE"
    FOLLOW_UP = "FOLLOW_UP"
    REVISION_PROGRESS = "REVISION_PROGRESS"
    ASSET_UPDATE = "ASSET_UPDATE"
    ASSET_DELETE = "ASSET_DELETE"
    COMMENT = "COMMENT"
    STAGE_STATUS = "STAGE_STATUS"


class ActivityLog(Base):
    """One immutable activity entry.

    Attributes:
        id: Monotonic integer key; also the timeline ordering.
        actor_id: Who acted, or None for system (orchestrated) changes.
        action: Activity tag.
        entity_type: Kind of entity described, e.g. "rendering_version".
        entity_id: Identifier of that entity.
        stage_id: Stage the entry is filed under, if any.
        project_id: Project the entry is filed under, if any.
        details: Validated detail payload for the action tag.
        created_at: When the action happened.
    """

    __tablename__ = "activity_log"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    action: Mapped[ActivityAction] = mapped_column(
        Enum(ActivityAction, name="activity_action"),
        nullable=False,
    )
    entity_type: Mapped[str] = mapped_column(Text, nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    stage_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    details: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
