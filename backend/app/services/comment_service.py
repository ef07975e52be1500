"""
Comment thread of an event.

Commenting requires a confirmed or attended participation on a published or
completed event (organizers may always comment). Authors edit their own
comments; authors and the organizer may delete them (soft delete).
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import CommentNotFound, PermissionDenied
from app.core.logging import get_logger
from app.db.base import utcnow
from app.models.comment import EventComment
from app.schemas.notifications import EventUpdated
from app.services.event_store import EventStore
from app.services.interfaces.notification import LiveUpdateChannel
from app.services.notification_service import broadcast_event_update
from app.services.permission_policy import (
    can_comment,
    can_delete_comment,
    can_edit,
    can_edit_comment,
)

logger = get_logger(__name__)


async def _get_comment(db: AsyncSession, event_id: int, comment_id: int) -> EventComment:
    result = await db.execute(
        select(EventComment).where(
            EventComment.id == comment_id,
            EventComment.event_id == event_id,
            EventComment.deleted_at.is_(None),
        )
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise CommentNotFound(f"Comment {comment_id} not found for event {event_id}")
    return comment


async def list_comments(
    db: AsyncSession,
    event_id: int,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[EventComment], int]:
    """Newest first."""
    await EventStore(db).require_event(event_id)

    query = select(EventComment).where(
        EventComment.event_id == event_id,
        EventComment.deleted_at.is_(None),
    )
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(EventComment.created_at.desc(), EventComment.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def add_comment(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    content: str,
    live_updates: LiveUpdateChannel,
) -> EventComment:
    store = EventStore(db)
    async with store.transaction():
        event = await store.require_event(event_id)
        participation = await store.find_participation(event_id, user_id)
        if not can_comment(event, participation, can_edit(event, user_id)):
            raise PermissionDenied("You must be a confirmed participant to comment on this event")

        comment = EventComment(event_id=event_id, user_id=user_id, content=content)
        db.add(comment)
        await db.flush()

    logger.info("comment_added", event_id=event_id, comment_id=comment.id, user_id=user_id)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event_id, type="comment_added", payload={"comment_id": comment.id, "user_id": user_id}),
    )
    return comment


async def update_comment(
    db: AsyncSession,
    event_id: int,
    comment_id: int,
    user_id: int,
    content: str,
    live_updates: LiveUpdateChannel,
) -> EventComment:
    store = EventStore(db)
    async with store.transaction():
        await store.require_event(event_id)
        comment = await _get_comment(db, event_id, comment_id)
        if not can_edit_comment(comment, user_id):
            raise PermissionDenied("Only the author can edit this comment")
        comment.content = content
        await db.flush()

    logger.info("comment_updated", event_id=event_id, comment_id=comment_id)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event_id, type="comment_updated", payload={"comment_id": comment_id}),
    )
    return comment


async def delete_comment(
    db: AsyncSession,
    event_id: int,
    comment_id: int,
    user_id: int,
    live_updates: LiveUpdateChannel,
) -> None:
    store = EventStore(db)
    async with store.transaction():
        comment = await _get_comment(db, event_id, comment_id)
        event = await store.require_event(event_id)
        if not can_delete_comment(comment, event, user_id):
            raise PermissionDenied("Only the author or the organizer can delete this comment")
        comment.deleted_at = utcnow()
        await db.flush()

    logger.info("comment_deleted", event_id=event_id, comment_id=comment_id, deleted_by=user_id)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event_id, type="comment_deleted", payload={"comment_id": comment_id}),
    )
