"""Version notes, stage notes and stage chat.

All comment surfaces share one mention parser. Posting or editing resolves
@mentions against the team roster, stores them in order, and emits a
MentionCreated event for each newly mentioned member other than the author.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.comment import Comment, CommentTarget, Mention
from studioflow.database.queries.comment import (
    create_comment,
    delete_comment as delete_comment_row,
    get_comment,
    list_comments,
    list_mentions,
    replace_mentions,
)
from studioflow.database.queries.floorplan import get_floorplan_version
from studioflow.database.queries.project import get_room
from studioflow.database.queries.rendering import get_rendering_version
from studioflow.database.queries.stage import get_stage
from studioflow.database.queries.team import list_team_members
from studioflow.errors import NotFoundError, PermissionDeniedError, ValidationError
from studioflow.workflow.activity import CommentDetails, record_activity
from studioflow.workflow.events import MentionCreated, OperationResult
from studioflow.workflow.locks import ensure_unlocked
from studioflow.workflow.mentions import RosterMember, highlight_mentions, resolve_mentions

logger = structlog.get_logger(__name__)

MAX_COMMENT_LENGTH = 10_000


@dataclass(frozen=True)
class CommentContext:
    """Where a comment lives, for lock checks and timeline filing."""

    stage_id: UUID | None
    project_id: UUID | None


@dataclass
class CommentView:
    """A comment prepared for display.

    Attributes:
        comment: The stored comment.
        mentions: Stored mentions in order.
        replies: Chat replies, oldest first.
    """

    comment: Comment
    mentions: list[Mention]
    replies: list[CommentView] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "" if self.comment.is_deleted else self.comment.content

    @property
    def html(self) -> str:
        roster = [RosterMember(m.user_id, m.display_name) for m in self.mentions]
        return highlight_mentions(self.text, roster)


async def load_roster(session: AsyncSession) -> list[RosterMember]:
    """The mentionable team, in matching priority order."""
    return [RosterMember(member.id, member.name) for member in await list_team_members(session)]


async def _project_for_room(session: AsyncSession, room_id: UUID) -> UUID | None:
    room = await get_room(session, room_id)
    return room.project_id if room else None


async def _resolve_target(
    session: AsyncSession,
    target_type: CommentTarget,
    target_id: UUID,
    operation: str,
) -> CommentContext:
    """Check the target exists (and is unlocked, for version notes)."""
    if target_type is CommentTarget.RENDERING_VERSION:
        version = await get_rendering_version(session, target_id)
        if version is None:
            raise NotFoundError("Rendering version", target_id)
        ensure_unlocked(version, operation)
        return CommentContext(version.stage_id, await _project_for_room(session, version.room_id))

    if target_type is CommentTarget.FLOORPLAN_VERSION:
        floorplan = await get_floorplan_version(session, target_id)
        if floorplan is None:
            raise NotFoundError("Floorplan version", target_id)
        ensure_unlocked(floorplan, operation)
        return CommentContext(None, floorplan.project_id)

    stage = await get_stage(session, target_id)
    if stage is None:
        raise NotFoundError("Stage", target_id)
    return CommentContext(stage.id, await _project_for_room(session, stage.room_id))


def _clean_content(content: str) -> str:
    cleaned = content.strip()
    if not cleaned:
        raise ValidationError("Comment must not be empty")
    if len(cleaned) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"Comment is longer than {MAX_COMMENT_LENGTH} characters")
    return cleaned


def _mention_events(
    comment: Comment,
    user_ids: list[UUID],
) -> list[MentionCreated]:
    return [
        MentionCreated(
            comment_id=comment.id,
            user_id=user_id,
            author_id=comment.author_id,
            target_type=comment.target_type.value,
            target_id=comment.target_id,
            stage_id=comment.stage_id,
        )
        for user_id in user_ids
        if user_id != comment.author_id
    ]


async def post_comment(
    session: AsyncSession,
    actor_id: UUID,
    target_type: CommentTarget,
    target_id: UUID,
    content: str,
    section: str | None = None,
    parent_id: UUID | None = None,
) -> OperationResult[Comment]:
    """Post a note or chat message and record its mentions.

    Args:
        session: Active async database session.
        actor_id: Author.
        target_type: What the comment is attached to.
        target_id: The version or stage id (chat uses the stage id).
        content: Raw text, possibly with @mentions.
        section: Stage section key for STAGE notes.
        parent_id: Parent message for chat replies.

    Returns:
        Result holding the comment and one MentionCreated per mentioned member.

    Raises:
        NotFoundError: If the target does not exist.
        VersionLockedError: If a version note targets a locked version.
        ValidationError: Empty content or an invalid reply parent.
    """
    text = _clean_content(content)
    context = await _resolve_target(session, target_type, target_id, "add notes")

    if parent_id is not None:
        if target_type is not CommentTarget.CHAT:
            raise ValidationError("Only chat messages can be replies")
        parent = await get_comment(session, parent_id)
        if (
            parent is None
            or parent.target_type is not CommentTarget.CHAT
            or parent.target_id != target_id
        ):
            raise ValidationError(f"Message {parent_id} is not in this chat")
        if parent.parent_id is not None:
            parent_id = parent.parent_id

    comment = await create_comment(
        session,
        target_type=target_type,
        target_id=target_id,
        author_id=actor_id,
        content=text,
        stage_id=context.stage_id,
        section=section if target_type is CommentTarget.STAGE else None,
        parent_id=parent_id,
    )

    resolved = resolve_mentions(text, await load_roster(session))
    await replace_mentions(session, comment.id, [(m.user_id, m.display_name) for m in resolved])
    mention_ids = [m.user_id for m in resolved]

    activity = await record_activity(
        session,
        CommentDetails(
            comment_id=comment.id,
            target_type=target_type.value,
            change="posted",
            mention_ids=mention_ids,
        ),
        entity_type="comment",
        entity_id=comment.id,
        actor_id=actor_id,
        stage_id=context.stage_id,
        project_id=context.project_id,
    )
    return OperationResult(comment, activity, _mention_events(comment, mention_ids))


async def _own_comment(session: AsyncSession, comment_id: UUID, actor_id: UUID) -> Comment:
    comment = await get_comment(session, comment_id)
    if comment is None or comment.is_deleted:
        raise NotFoundError("Comment", comment_id)
    if comment.author_id != actor_id:
        raise PermissionDeniedError(
            "Only the author can change this comment", comment_id=str(comment_id)
        )
    return comment


async def edit_comment(
    session: AsyncSession,
    comment_id: UUID,
    actor_id: UUID,
    content: str,
) -> OperationResult[Comment]:
    """Replace a comment's text; only the author may edit.

    Mentions are re-resolved. Only members who were not mentioned before
    produce MentionCreated events.

    Raises:
        PermissionDeniedError: If the actor is not the author.
        VersionLockedError: If the note belongs to a locked version.
    """
    comment = await _own_comment(session, comment_id, actor_id)
    text = _clean_content(content)
    context = await _resolve_target(session, comment.target_type, comment.target_id, "edit notes")

    previous = {m.user_id for m in (await list_mentions(session, [comment.id]))[comment.id]}
    resolved = resolve_mentions(text, await load_roster(session))
    await replace_mentions(session, comment.id, [(m.user_id, m.display_name) for m in resolved])
    mention_ids = [m.user_id for m in resolved]
    added = [user_id for user_id in mention_ids if user_id not in previous]

    comment.content = text
    comment.is_edited = True
    comment.edited_at = datetime.now(timezone.utc)
    await session.flush()

    activity = await record_activity(
        session,
        CommentDetails(
            comment_id=comment.id,
            target_type=comment.target_type.value,
            change="edited",
            mention_ids=added,
        ),
        entity_type="comment",
        entity_id=comment.id,
        actor_id=actor_id,
        stage_id=context.stage_id,
        project_id=context.project_id,
    )
    return OperationResult(comment, activity, _mention_events(comment, added))


async def delete_comment(
    session: AsyncSession,
    comment_id: UUID,
    actor_id: UUID,
) -> OperationResult[UUID]:
    """Delete a comment; only the author may delete.

    Chat messages are soft-deleted so their replies keep a parent. Notes are
    removed with their mentions.
    """
    comment = await _own_comment(session, comment_id, actor_id)
    context = await _resolve_target(
        session, comment.target_type, comment.target_id, "delete notes"
    )
    target_type = comment.target_type

    if target_type is CommentTarget.CHAT:
        comment.is_deleted = True
        comment.deleted_at = datetime.now(timezone.utc)
        await replace_mentions(session, comment.id, [])
    else:
        await delete_comment_row(session, comment)

    activity = await record_activity(
        session,
        CommentDetails(comment_id=comment_id, target_type=target_type.value, change="deleted"),
        entity_type="comment",
        entity_id=comment_id,
        actor_id=actor_id,
        stage_id=context.stage_id,
        project_id=context.project_id,
    )
    logger.info(
        "comment_deleted",
        comment_id=str(comment_id),
        soft=target_type is CommentTarget.CHAT,
    )
    return OperationResult(comment_id, activity)


async def list_thread(
    session: AsyncSession,
    target_type: CommentTarget,
    target_id: UUID,
    section: str | None = None,
) -> list[CommentView]:
    """Comments on a target, ready for display.

    Chat is threaded and reads oldest first; notes are flat, newest first.
    """
    chat = target_type is CommentTarget.CHAT
    comments = await list_comments(
        session, target_type, target_id, section=section, newest_first=not chat
    )
    mentions = await list_mentions(session, [comment.id for comment in comments])
    views = {c.id: CommentView(c, mentions.get(c.id, [])) for c in comments}
    if not chat:
        return list(views.values())

    roots = []
    for view in views.values():
        parent = views.get(view.comment.parent_id) if view.comment.parent_id else None
        if parent is None:
            roots.append(view)
        else:
            parent.replies.append(view)
    return roots
