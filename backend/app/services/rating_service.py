"""
Ratings of an event and their aggregate.

Only attendees of a completed event may rate it, once. The organizer cannot
rate their own event. Ratings are edited and deleted by their author only.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import AlreadyRated, PermissionDenied, RatingNotFound
from app.core.logging import get_logger
from app.models.rating import EventRating
from app.schemas.notifications import EventUpdated
from app.schemas.rating import RatingCreate, RatingSummary, RatingUpdate
from app.services.event_store import EventStore
from app.services.interfaces.notification import LiveUpdateChannel
from app.services.notification_service import broadcast_event_update
from app.services.permission_policy import can_delete_rating, can_edit, can_edit_rating, can_rate

logger = get_logger(__name__)


async def _get_rating(db: AsyncSession, event_id: int, rating_id: int) -> EventRating:
    result = await db.execute(
        select(EventRating).where(EventRating.id == rating_id, EventRating.event_id == event_id)
    )
    rating = result.scalar_one_or_none()
    if rating is None:
        raise RatingNotFound(f"Rating {rating_id} not found for event {event_id}")
    return rating


async def list_ratings(
    db: AsyncSession,
    event_id: int,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[EventRating], int]:
    await EventStore(db).require_event(event_id)

    query = select(EventRating).where(EventRating.event_id == event_id)
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar()
    result = await db.execute(
        query.order_by(EventRating.created_at.desc(), EventRating.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def add_rating(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    rating_data: RatingCreate,
    live_updates: LiveUpdateChannel,
) -> EventRating:
    store = EventStore(db)
    async with store.transaction():
        event = await store.require_event(event_id)
        participation = await store.find_participation(event_id, user_id)
        if not can_rate(event, participation, can_edit(event, user_id)):
            raise PermissionDenied("Only attendees of a completed event can rate it")

        existing = await db.execute(
            select(EventRating.id).where(EventRating.event_id == event_id, EventRating.user_id == user_id)
        )
        if existing.scalar_one_or_none() is not None:
            raise AlreadyRated()

        rating = EventRating(
            event_id=event_id,
            user_id=user_id,
            rating=rating_data.rating,
            comment=rating_data.comment,
        )
        db.add(rating)
        try:
            await db.flush()
        except IntegrityError as e:
            raise AlreadyRated() from e

    logger.info("rating_added", event_id=event_id, rating_id=rating.id, rating=rating.rating)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event_id, type="rating_added", payload={"rating_id": rating.id}),
    )
    return rating


async def update_rating(
    db: AsyncSession,
    event_id: int,
    rating_id: int,
    user_id: int,
    rating_data: RatingUpdate,
    live_updates: LiveUpdateChannel,
) -> EventRating:
    store = EventStore(db)
    async with store.transaction():
        await store.require_event(event_id)
        rating = await _get_rating(db, event_id, rating_id)
        if not can_edit_rating(rating, user_id):
            raise PermissionDenied("Only the author can edit this rating")
        rating.rating = rating_data.rating
        rating.comment = rating_data.comment
        await db.flush()

    logger.info("rating_updated", event_id=event_id, rating_id=rating_id)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event_id, type="rating_updated", payload={"rating_id": rating_id}),
    )
    return rating


async def delete_rating(
    db: AsyncSession,
    event_id: int,
    rating_id: int,
    user_id: int,
    live_updates: LiveUpdateChannel,
) -> None:
    store = EventStore(db)
    async with store.transaction():
        rating = await _get_rating(db, event_id, rating_id)
        event = await store.require_event(event_id)
        if not can_delete_rating(rating, event, user_id):
            raise PermissionDenied("Only the author can delete this rating")
        await db.delete(rating)
        await db.flush()

    logger.info("rating_deleted", event_id=event_id, rating_id=rating_id)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event_id, type="rating_deleted", payload={"rating_id": rating_id}),
    )


async def rating_summary(db: AsyncSession, event_id: int) -> RatingSummary:
    """Average, count and 1-5 star distribution of an event's ratings."""
    await EventStore(db).require_event(event_id)

    result = await db.execute(
        select(EventRating.rating, func.count())
        .where(EventRating.event_id == event_id)
        .group_by(EventRating.rating)
    )
    distribution = {stars: 0 for stars in range(1, 6)}
    for stars, count in result.all():
        distribution[stars] = count

    total = sum(distribution.values())
    average = None
    if total:
        average = round(sum(stars * count for stars, count in distribution.items()) / total, 2)

    return RatingSummary(event_id=event_id, count=total, average=average, distribution=distribution)
