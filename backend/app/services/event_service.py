"""
Event service handling CRUD operations.

Participant counts are never written here; see participation_engine.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import EventNotFound, InvalidCapacity, InvalidSchedule, PermissionDenied
from app.core.logging import get_logger
from app.db.base import utcnow
from app.models.event import Event, EventStatus
from app.models.participant import EventParticipant, ParticipantStatus
from app.schemas.event import EventCreate, EventDetailResponse, EventResponse, EventUpdate
from app.schemas.notifications import EventUpdated
from app.services.category_service import resolve_categories
from app.services.event_store import EventStore
from app.services.interfaces.notification import LiveUpdateChannel
from app.services.notification_service import broadcast_event_update
from app.services.permission_policy import can_edit, can_manage_participants, viewer_permissions

logger = get_logger(__name__)


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: int) -> Event:
    """Create a new event with no confirmed participants."""
    store = EventStore(db)
    async with store.transaction():
        categories = await resolve_categories(db, event_data.category_ids)
        event = Event(
            title=event_data.title,
            description=event_data.description,
            location=event_data.location,
            date=event_data.date,
            start_time=event_data.start_time,
            end_time=event_data.end_time,
            max_participants=event_data.max_participants,
            current_participants=0,
            organizer_id=organizer_id,
            status=event_data.status.value,
            categories=categories,
        )
        db.add(event)
        await db.flush()

    logger.info("event_created", event_id=event.id, title=event.title, max_participants=event.max_participants)
    return event


async def get_event_detail(
    db: AsyncSession,
    event_id: int,
    acting_user_id: Optional[int] = None,
) -> EventDetailResponse:
    """
    Single event as seen by the acting user (anonymous when None).
    Drafts are only visible to their organizer.
    """
    store = EventStore(db)
    event = await store.require_event(event_id)
    if event.status == EventStatus.DRAFT.value and not can_edit(event, acting_user_id):
        raise EventNotFound(f"Event {event_id} not found")

    participation = None
    if acting_user_id is not None:
        participation = await store.find_participation(event.id, acting_user_id)

    permissions = viewer_permissions(event, participation, acting_user_id)
    return EventDetailResponse(
        **EventResponse.model_validate(event).model_dump(),
        is_organizer=permissions.is_organizer,
        is_registered=permissions.is_registered,
        registration_status=permissions.registration_status,
        can_comment=permissions.can_comment,
        can_rate=permissions.can_rate,
    )


async def list_events(
    db: AsyncSession,
    page: int = 1,
    page_size: int = 20,
    upcoming_only: bool = True,
    viewer_id: Optional[int] = None,
) -> tuple[list[Event], int]:
    """
    Non-deleted events with pagination, soonest first.

    Anonymous callers see published events only. An authenticated viewer
    also sees their own events in any status (drafts included).
    """
    visible = Event.status == EventStatus.PUBLISHED.value
    if viewer_id is not None:
        visible = or_(visible, Event.organizer_id == viewer_id)

    query = select(Event).where(Event.deleted_at.is_(None), visible)

    if upcoming_only:
        query = query.where(Event.date >= datetime.now(timezone.utc))

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar()

    events_query = (
        query
        .order_by(Event.date.asc(), Event.start_time.asc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    result = await db.execute(events_query)
    events = list(result.scalars().all())

    return events, total


async def update_event(
    db: AsyncSession,
    event_id: int,
    event_data: EventUpdate,
    acting_user_id: int,
    live_updates: LiveUpdateChannel,
) -> Event:
    """Apply organizer edits. Capacity may not drop below confirmed participants."""
    store = EventStore(db)
    changes = event_data.model_dump(exclude_unset=True, exclude_none=True)
    updated_fields = sorted(changes)
    category_ids = changes.pop("category_ids", None)

    async with store.event_lock(event_id) as event:
        if not can_edit(event, acting_user_id):
            raise PermissionDenied("Only the organizer can edit this event")

        new_max = changes.get("max_participants")
        if new_max is not None and new_max < event.current_participants:
            raise InvalidCapacity(
                f"max_participants ({new_max}) cannot be lower than the "
                f"{event.current_participants} confirmed participants"
            )

        start = changes.get("start_time", event.start_time)
        end = changes.get("end_time", event.end_time)
        if end <= start:
            raise InvalidSchedule()

        for field, value in changes.items():
            setattr(event, field, value.value if isinstance(value, EventStatus) else value)
        if category_ids is not None:
            event.categories = await resolve_categories(db, category_ids)
        await db.flush()

    logger.info("event_updated", event_id=event.id, fields=updated_fields)
    await broadcast_event_update(
        live_updates,
        EventUpdated(event_id=event.id, type="event_updated", payload={"fields": updated_fields}),
    )
    return event


async def delete_event(
    db: AsyncSession,
    event_id: int,
    acting_user_id: int,
    live_updates: LiveUpdateChannel,
) -> None:
    """Soft-delete an event. Participants, comments and ratings are kept."""
    store = EventStore(db)
    async with store.event_lock(event_id) as event:
        if not can_edit(event, acting_user_id):
            raise PermissionDenied("Only the organizer can delete this event")
        event.deleted_at = utcnow()
        await db.flush()

    logger.info("event_deleted", event_id=event_id)
    await broadcast_event_update(live_updates, EventUpdated(event_id=event_id, type="event_deleted"))


async def list_event_participants(
    db: AsyncSession,
    event_id: int,
    acting_user_id: int,
    status: Optional[ParticipantStatus] = None,
    page: int = 1,
    page_size: int = 10,
) -> tuple[list[EventParticipant], int]:
    """Roster of an event, visible to its organizer only."""
    store = EventStore(db)
    event = await store.require_event(event_id)
    if not can_manage_participants(event, acting_user_id):
        raise PermissionDenied("Only the organizer can view the participant list")
    return await store.list_participants(event_id, status, page, page_size)


async def get_event_participant(
    db: AsyncSession,
    event_id: int,
    participant_id: int,
    acting_user_id: int,
) -> EventParticipant:
    """A single participation, visible to the organizer and to the participant."""
    store = EventStore(db)
    event = await store.require_event(event_id)
    participant = await store.get_participant(event_id, participant_id, with_user=True)
    if participant.user_id != acting_user_id and not can_manage_participants(event, acting_user_id):
        raise PermissionDenied("You cannot view this participation")
    return participant
