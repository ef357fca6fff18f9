"""Comment and mention models for Studioflow.

Comments cover version notes, stage section notes and the per-stage chat
thread. Mentions are the resolved @name references derived from a
comment's text at write time.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from studioflow.database.models.base import Base, TimestampMixin


class CommentTarget(enum.Enum):
    """What a comment is attached to.

    Values:
        RENDERING_VERSION: A note on a rendering version.
        FLOORPLAN_VERSION: A note on a floorplan version.
        STAGE: A note in a stage workspace section.
        CHAT: A message in a stage's team chat (target_id is the stage).
    """

    RENDERING_VERSION = "RENDERING_VERSION"
    FLOORPLAN_VERSION = "FLOORPLAN_VERSION"
    STAGE = "STAGE"
    CHAT = "CHAT"


class Comment(TimestampMixin, Base):
    """A note or chat message.

    Attributes:
        target_type: Kind of entity the comment is attached to.
        target_id: Identifier of that entity.
        stage_id: Stage the comment belongs to, when there is one.
        section: Stage workspace section key for STAGE notes.
        parent_id: Parent message for threaded chat replies.
        author_id: Who wrote the comment.
        content: Raw text as written.
        is_edited: Whether the content changed after posting.
        edited_at: Time of the last edit.
        is_deleted: Soft-delete flag for chat messages.
        deleted_at: Time of the soft delete.
    """

    __tablename__ = "comments"

    target_type: Mapped[CommentTarget] = mapped_column(
        Enum(CommentTarget, name="comment_target"),
        nullable=False,
    )
    target_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    stage_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    section: Mapped[str | None] = mapped_column(Text, nullable=True)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=True,
    )
    author_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )


class Mention(TimestampMixin, Base):
    """A team member resolved from an @token in a comment.

    Attributes:
        comment_id: The comment containing the mention.
        user_id: The mentioned team member.
        display_name: Roster name at resolution time.
        position: Order of the mention within the comment.
    """

    __tablename__ = "mentions"

    comment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    display_name: Mapped[str] = mapped_column(Text, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
