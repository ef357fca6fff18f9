"""Comment and mention query functions for Studioflow.

Provides async functions for persisting notes and chat messages together
with their resolved mentions.
"""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from studioflow.database.models.comment import Comment, CommentTarget, Mention

logger = structlog.get_logger(__name__)


async def create_comment(
    session: AsyncSession,
    target_type: CommentTarget,
    target_id: UUID,
    author_id: UUID,
    content: str,
    stage_id: UUID | None = None,
    section: str | None = None,
    parent_id: UUID | None = None,
) -> Comment:
    """Create a comment.

    Args:
        session: Active async database session.
        target_type: Kind of entity the comment is attached to.
        target_id: Identifier of that entity.
        author_id: Author of the comment.
        content: Raw comment text.
        stage_id: Stage the comment belongs to, if any.
        section: Stage section key for STAGE notes.
        parent_id: Parent chat message for replies.

    Returns:
        The newly created Comment.
    """
    comment = Comment(
        target_type=target_type,
        target_id=target_id,
        author_id=author_id,
        content=content,
        stage_id=stage_id,
        section=section,
        parent_id=parent_id,
        is_edited=False,
        is_deleted=False,
    )
    session.add(comment)
    await session.flush()

    logger.info(
        "comment_created",
        comment_id=str(comment.id),
        target_type=target_type.value,
        target_id=str(target_id),
    )
    return comment


async def get_comment(session: AsyncSession, comment_id: UUID) -> Comment | None:
    """Retrieve a comment by ID."""
    result = await session.execute(select(Comment).where(Comment.id == comment_id))
    return result.scalar_one_or_none()


async def list_comments(
    session: AsyncSession,
    target_type: CommentTarget,
    target_id: UUID,
    section: str | None = None,
    newest_first: bool = True,
) -> list[Comment]:
    """List comments attached to one target.

    Args:
        session: Active async database session.
        target_type: Kind of target.
        target_id: Identifier of the target.
        section: Restrict STAGE notes to one section.
        newest_first: Sort order; chat threads read oldest first.

    Returns:
        Matching comments.
    """
    stmt = select(Comment).where(
        Comment.target_type == target_type,
        Comment.target_id == target_id,
    )
    if section is not None:
        stmt = stmt.where(Comment.section == section)
    order = Comment.created_at.desc() if newest_first else Comment.created_at.asc()
    result = await session.execute(stmt.order_by(order))
    return list(result.scalars().all())


async def replace_mentions(
    session: AsyncSession,
    comment_id: UUID,
    mentions: Sequence[tuple[UUID, str]],
) -> list[Mention]:
    """Replace the stored mentions of a comment.

    Args:
        session: Active async database session.
        comment_id: The comment.
        mentions: Ordered (user_id, display_name) pairs.

    Returns:
        The new Mention rows in order.
    """
    await session.execute(delete(Mention).where(Mention.comment_id == comment_id))
    rows = [
        Mention(comment_id=comment_id, user_id=user_id, display_name=name, position=index)
        for index, (user_id, name) in enumerate(mentions)
    ]
    session.add_all(rows)
    await session.flush()
    return rows


async def list_mentions(
    session: AsyncSession,
    comment_ids: Sequence[UUID],
) -> dict[UUID, list[Mention]]:
    """Load mentions for several comments, keyed by comment id."""
    grouped: dict[UUID, list[Mention]] = {comment_id: [] for comment_id in comment_ids}
    if not comment_ids:
        return grouped
    result = await session.execute(
        select(Mention)
        .where(Mention.comment_id.in_(list(comment_ids)))
        .order_by(Mention.position.asc())
    )
    for mention in result.scalars().all():
        grouped.setdefault(mention.comment_id, []).append(mention)
    return grouped


async def delete_comment(session: AsyncSession, comment: Comment) -> None:
    """Hard-delete a comment, its replies, and their mentions."""
    reply_ids = list(
        (
            await session.execute(select(Comment.id).where(Comment.parent_id == comment.id))
        ).scalars()
    )
    doomed = [comment.id, *reply_ids]
    await session.execute(delete(Mention).where(Mention.comment_id.in_(doomed)))
    if reply_ids:
        await session.execute(delete(Comment).where(Comment.id.in_(reply_ids)))
    await session.delete(comment)
    await session.flush()


async def delete_comments_for_target(
    session: AsyncSession,
    target_type: CommentTarget,
    target_id: UUID,
) -> int:
    """Delete every comment (and mention) attached to a target.

    Returns:
        Number of comments deleted.
    """
    comment_ids = list(
        (
            await session.execute(
                select(Comment.id).where(
                    Comment.target_type == target_type,
                    Comment.target_id == target_id,
                )
            )
        ).scalars()
    )
    if comment_ids:
        await session.execute(delete(Mention).where(Mention.comment_id.in_(comment_ids)))
        await session.execute(delete(Comment).where(Comment.id.in_(comment_ids)))
    return len(comment_ids)
