"""
Persistence accessor for events and their participants.

LOCKING STRATEGY
================

Problem:
  Two users try to take the last seat of an event at the same time.
  Both read current_participants=max-1, both increment, both succeed.
  Result: the event is over capacity.

Solution (two layers):
  1. `event_lock()` reads the Event row with SELECT ... FOR UPDATE inside the
     transaction. Every participation operation on the same event queues
     behind that lock, so the capacity check, the participant row write and
     the counter update are serialized per event. Different events never
     contend.
  2. Counter changes go through a conditional UPDATE:

       UPDATE events SET current_participants = current_participants + 1
       WHERE id = :id AND current_participants < max_participants

     A zero-row result means the seat is gone and is reported as EventFull.
     This still holds on backends that ignore FOR UPDATE (SQLite in tests).

  The CHECK constraints on the events table are the final safety net.

Transactions:
  `transaction()` commits on success and rolls back on any exception, so a
  failed operation never leaves a participant row without its counter
  update (or the reverse).
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.errors import EventNotFound, ParticipantNotFound
from app.models.event import Event
from app.models.participant import EventParticipant, ParticipantStatus

# Attributes a counter UPDATE changes; reloaded after each write
COUNTER_COLUMNS = ["current_participants", "updated_at"]


class EventStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            yield self.session
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    @asynccontextmanager
    async def event_lock(self, event_id: int) -> AsyncIterator[Event]:
        """Yield the exclusively locked, non-deleted event inside a transaction."""
        async with self.transaction():
            event = await self.lock_event(event_id)
            yield event

    async def lock_event(self, event_id: int) -> Event:
        result = await self.session.execute(
            select(Event)
            .where(Event.id == event_id, Event.deleted_at.is_(None))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        event = result.scalar_one_or_none()
        if event is None:
            raise EventNotFound(f"Event {event_id} not found", event_id=event_id)
        return event

    async def get_event(self, event_id: int) -> Optional[Event]:
        result = await self.session.execute(
            select(Event).where(Event.id == event_id, Event.deleted_at.is_(None))
        )
        return result.scalar_one_or_none()

    async def require_event(self, event_id: int) -> Event:
        event = await self.get_event(event_id)
        if event is None:
            raise EventNotFound(f"Event {event_id} not found", event_id=event_id)
        return event

    async def find_participation(self, event_id: int, user_id: int) -> Optional[EventParticipant]:
        result = await self.session.execute(
            select(EventParticipant)
            .where(EventParticipant.event_id == event_id, EventParticipant.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_participant(
        self,
        event_id: int,
        participant_id: int,
        with_user: bool = False,
    ) -> EventParticipant:
        query = (
            select(EventParticipant)
            .where(EventParticipant.id == participant_id, EventParticipant.event_id == event_id)
            .execution_options(populate_existing=True)
        )
        if with_user:
            query = query.options(selectinload(EventParticipant.user))
        result = await self.session.execute(query)
        participant = result.scalar_one_or_none()
        if participant is None:
            raise ParticipantNotFound(
                f"Participant {participant_id} does not belong to event {event_id}",
                event_id=event_id,
                participant_id=participant_id,
            )
        return participant

    async def upsert_participation(self, participant: EventParticipant) -> EventParticipant:
        self.session.add(participant)
        await self.session.flush()
        return participant

    async def update_event_counters(self, event: Event, delta: int) -> bool:
        """
        Atomically apply `delta` to current_participants.

        Increments only succeed while the event has a free seat, decrements
        only while the counter is positive. Returns False when the guard
        rejected the change; `event` is refreshed either way.
        """
        if delta == 0:
            return True

        stmt = update(Event).where(Event.id == event.id)
        if delta > 0:
            stmt = stmt.where(Event.current_participants + delta <= Event.max_participants)
        else:
            stmt = stmt.where(Event.current_participants + delta >= 0)

        result = await self.session.execute(
            stmt.values(current_participants=Event.current_participants + delta)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(event, COUNTER_COLUMNS)
        return result.rowcount > 0

    async def set_event_counter(self, event: Event, value: int) -> None:
        await self.session.execute(
            update(Event)
            .where(Event.id == event.id)
            .values(current_participants=value)
            .execution_options(synchronize_session=False)
        )
        await self.session.refresh(event, COUNTER_COLUMNS)

    async def count_participants(self, event_id: int, status: ParticipantStatus) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(EventParticipant)
            .where(EventParticipant.event_id == event_id, EventParticipant.status == status.value)
        )
        return result.scalar_one()

    async def list_participants(
        self,
        event_id: int,
        status: Optional[ParticipantStatus] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[EventParticipant], int]:
        query = select(EventParticipant).where(EventParticipant.event_id == event_id)
        if status is not None:
            query = query.where(EventParticipant.status == status.value)

        total = (await self.session.execute(
            select(func.count()).select_from(query.subquery())
        )).scalar_one()

        result = await self.session.execute(
            query.options(selectinload(EventParticipant.user))
            .order_by(EventParticipant.registration_date.asc(), EventParticipant.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(result.scalars().all()), total
