"""
Per-user dashboard: events a user organizes, events they registered for,
the next few upcoming ones and counts by status.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.event import Event, EventStatus
from app.models.participant import EventParticipant, ParticipantStatus
from app.schemas.dashboard import DashboardStatistics

UPCOMING_LIMIT = 5


async def organized_events(
    db: AsyncSession,
    user_id: int,
    status: Optional[EventStatus] = None,
) -> list[Event]:
    query = select(Event).where(Event.organizer_id == user_id, Event.deleted_at.is_(None))
    if status is not None:
        query = query.where(Event.status == status.value)
    result = await db.execute(query.order_by(Event.date.asc()))
    return list(result.scalars().all())


async def registered_events(
    db: AsyncSession,
    user_id: int,
    status: Optional[ParticipantStatus] = None,
) -> list[tuple[Event, EventParticipant]]:
    """Events the user has a participation row for, cancelled ones included unless filtered."""
    query = (
        select(Event, EventParticipant)
        .join(EventParticipant, EventParticipant.event_id == Event.id)
        .where(EventParticipant.user_id == user_id, Event.deleted_at.is_(None))
    )
    if status is not None:
        query = query.where(EventParticipant.status == status.value)
    result = await db.execute(query.order_by(Event.date.asc()))
    return [(event, participant) for event, participant in result.all()]


async def upcoming_events(db: AsyncSession, user_id: int) -> tuple[list[Event], list[Event]]:
    """
    The next published events from the start of today (UTC): up to
    UPCOMING_LIMIT the user organizes and up to UPCOMING_LIMIT they are
    confirmed for.
    """
    today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    upcoming = (
        select(Event)
        .where(
            Event.deleted_at.is_(None),
            Event.status == EventStatus.PUBLISHED.value,
            Event.date >= today,
        )
    )
    soonest = (Event.date.asc(), Event.start_time.asc())

    organized = await db.execute(
        upcoming.where(Event.organizer_id == user_id).order_by(*soonest).limit(UPCOMING_LIMIT)
    )
    registered = await db.execute(
        upcoming.join(EventParticipant, EventParticipant.event_id == Event.id)
        .where(
            EventParticipant.user_id == user_id,
            EventParticipant.status == ParticipantStatus.CONFIRMED.value,
        )
        .order_by(*soonest)
        .limit(UPCOMING_LIMIT)
    )
    return list(organized.scalars().all()), list(registered.scalars().all())


async def statistics(db: AsyncSession, user_id: int) -> DashboardStatistics:
    organized = await db.execute(
        select(Event.status, func.count())
        .where(Event.organizer_id == user_id, Event.deleted_at.is_(None))
        .group_by(Event.status)
    )
    organized_by_status = {s.value: 0 for s in EventStatus}
    organized_by_status.update({status: count for status, count in organized.all()})

    total_participants = await db.scalar(
        select(func.coalesce(func.sum(Event.current_participants), 0)).where(
            Event.organizer_id == user_id, Event.deleted_at.is_(None)
        )
    )

    participations = await db.execute(
        select(EventParticipant.status, func.count())
        .join(Event, Event.id == EventParticipant.event_id)
        .where(EventParticipant.user_id == user_id, Event.deleted_at.is_(None))
        .group_by(EventParticipant.status)
    )
    participations_by_status = {s.value: 0 for s in ParticipantStatus}
    participations_by_status.update({status: count for status, count in participations.all()})

    return DashboardStatistics(
        organized_total=sum(organized_by_status.values()),
        organized_by_status=organized_by_status,
        total_participants=total_participants,
        participations_total=sum(participations_by_status.values()),
        participations_by_status=participations_by_status,
    )
