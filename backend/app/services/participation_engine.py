"""
Participation engine: the only writer of participant status and of
Event.current_participants.

COUNTER POLICY
==============

current_participants counts CONFIRMED participants, nothing else.

  register           -> pending, counter unchanged
  cancel (self)      -> cancelled, -1 if the participant was confirmed
  organizer status   -> +1 into confirmed, -1 out of confirmed, else 0

A pending participant therefore does not hold a seat; the seat is claimed
when the organizer confirms. Registration is still refused while the event
is full, and confirmation is refused with EventFull when the last seat was
taken in the meantime (conditional increment, see EventStore).

STATUS MACHINE (organizer transitions)
======================================

  pending   -> confirmed | cancelled
  confirmed -> attended  | cancelled
  attended  -> cancelled
  cancelled -> pending

pending -> attended is refused: attendance requires a confirmed seat.
Re-applying the current status is a no-op. Participants may only register
(creating or reactivating their own row) and cancel their own row.

NOTIFICATIONS
=============

Domain events are dispatched after the transaction committed. Delivery
failures and timeouts are logged and returned as warnings on the result;
the committed state change is never rolled back because of them.
"""

import asyncio
import time
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from app.core.config import get_settings
from app.core.errors import (
    AlreadyRegistered,
    ConcurrencyConflict,
    DomainError,
    EventFull,
    InvalidCapacity,
    InvalidStatus,
    NotRegistered,
    PermissionDenied,
    StorageUnavailable,
)
from app.core.logging import get_logger
from app.core.metrics import (
    counter_drift_repairs,
    counter_underflows,
    participation_latency,
    participation_retries,
    record_notification_failure,
    record_participation,
)
from app.db.base import utcnow
from app.models.event import Event
from app.models.participant import EventParticipant, ParticipantStatus
from app.schemas.event import EventResponse
from app.schemas.notifications import DomainEventType, EventUpdated, ParticipationEvent
from app.schemas.participant import (
    CancelCommand,
    CancellationResult,
    ParticipantResponse,
    ReconcileResult,
    RegisterCommand,
    RegistrationResult,
    StatusUpdateCommand,
    StatusUpdateResult,
)
from app.services.event_store import EventStore
from app.services.interfaces.notification import LiveUpdateChannel, NotificationDispatcher
from app.services.notification_service import broadcast_event_update
from app.services.permission_policy import can_manage_participants

logger = get_logger(__name__)
settings = get_settings()

T = TypeVar("T")

ALLOWED_TRANSITIONS: dict[ParticipantStatus, frozenset[ParticipantStatus]] = {
    ParticipantStatus.PENDING: frozenset({ParticipantStatus.CONFIRMED, ParticipantStatus.CANCELLED}),
    ParticipantStatus.CONFIRMED: frozenset({ParticipantStatus.ATTENDED, ParticipantStatus.CANCELLED}),
    ParticipantStatus.ATTENDED: frozenset({ParticipantStatus.CANCELLED}),
    ParticipantStatus.CANCELLED: frozenset({ParticipantStatus.PENDING}),
}

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


def is_full(event: Event) -> bool:
    return event.is_full


def counter_delta(old_status: ParticipantStatus, new_status: ParticipantStatus) -> int:
    """Change to current_participants implied by a status transition."""
    if old_status != ParticipantStatus.CONFIRMED and new_status == ParticipantStatus.CONFIRMED:
        return 1
    if old_status == ParticipantStatus.CONFIRMED and new_status != ParticipantStatus.CONFIRMED:
        return -1
    return 0


def parse_status(value: str) -> ParticipantStatus:
    try:
        return ParticipantStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in ParticipantStatus)
        raise InvalidStatus(f"'{value}' is not a valid participant status (expected one of: {allowed})")


def _is_retryable(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code in RETRYABLE_SQLSTATES:
        return True
    # SQLite reports writer contention this way
    return "database is locked" in str(orig)


class ParticipationEngine:
    def __init__(
        self,
        store: EventStore,
        dispatcher: NotificationDispatcher,
        live_updates: LiveUpdateChannel,
        max_retries: Optional[int] = None,
        notification_timeout: Optional[float] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.live_updates = live_updates
        self.max_retries = settings.PARTICIPATION_MAX_RETRIES if max_retries is None else max_retries
        self.notification_timeout = (
            settings.NOTIFICATION_TIMEOUT_SECONDS if notification_timeout is None else notification_timeout
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def register(self, command: RegisterCommand) -> RegistrationResult:
        return await self._run(
            "register", command.event_id, command.user_id, lambda: self._register(command)
        )

    async def cancel(self, command: CancelCommand) -> CancellationResult:
        return await self._run(
            "cancel", command.event_id, command.user_id, lambda: self._cancel(command)
        )

    async def set_participant_status(self, command: StatusUpdateCommand) -> StatusUpdateResult:
        return await self._run(
            "set_status", command.event_id, command.acting_user_id, lambda: self._set_status(command)
        )

    async def reconcile_counter(self, event_id: int, acting_user_id: int) -> ReconcileResult:
        """Recount confirmed participants and repair current_participants."""
        return await self._run(
            "reconcile", event_id, acting_user_id, lambda: self._reconcile(event_id, acting_user_id)
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def _register(self, command: RegisterCommand) -> RegistrationResult:
        async with self.store.event_lock(command.event_id) as event:
            if is_full(event):
                raise EventFull(
                    f"Event {event.id} is full ({event.current_participants}/{event.max_participants})"
                )

            participant = await self.store.find_participation(event.id, command.user_id)
            reused = participant is not None
            if participant is None:
                participant = EventParticipant(
                    event_id=event.id,
                    user_id=command.user_id,
                    status=ParticipantStatus.PENDING.value,
                    registration_date=utcnow(),
                )
            elif participant.is_active:
                raise AlreadyRegistered()
            else:
                participant.status = ParticipantStatus.PENDING.value
                participant.registration_date = utcnow()

            try:
                await self.store.upsert_participation(participant)
            except IntegrityError as e:
                # A concurrent registration by the same user won the unique constraint
                raise AlreadyRegistered() from e

        logger.info(
            "participant_registered",
            participant_id=participant.id,
            reused=reused,
            current_participants=event.current_participants,
        )
        warnings = await self._notify(
            ParticipationEvent(
                type=DomainEventType.PARTICIPANT_REGISTERED,
                event_id=event.id,
                participant_id=participant.id,
                user_id=participant.user_id,
                organizer_id=event.organizer_id,
                new_status=participant.status,
            ),
            self._live_update(event, "participant_registered", participant),
        )
        return RegistrationResult(
            participant=ParticipantResponse.model_validate(participant),
            event=EventResponse.model_validate(event),
            reused=reused,
            warnings=warnings,
        )

    async def _cancel(self, command: CancelCommand) -> CancellationResult:
        async with self.store.event_lock(command.event_id) as event:
            participant = await self.store.find_participation(event.id, command.user_id)
            if participant is None or not participant.is_active:
                raise NotRegistered()

            previous_status = ParticipantStatus(participant.status)
            participant.status = ParticipantStatus.CANCELLED.value
            await self.store.upsert_participation(participant)

            if counter_delta(previous_status, ParticipantStatus.CANCELLED) < 0:
                await self._release_seat(event, participant)

        logger.info(
            "participant_unregistered",
            participant_id=participant.id,
            previous_status=previous_status.value,
            current_participants=event.current_participants,
        )
        warnings = await self._notify(
            ParticipationEvent(
                type=DomainEventType.PARTICIPANT_UNREGISTERED,
                event_id=event.id,
                participant_id=participant.id,
                user_id=participant.user_id,
                organizer_id=event.organizer_id,
                old_status=previous_status.value,
                new_status=participant.status,
            ),
            self._live_update(event, "participant_unregistered", participant),
        )
        return CancellationResult(
            participant=ParticipantResponse.model_validate(participant),
            event=EventResponse.model_validate(event),
            previous_status=previous_status.value,
            warnings=warnings,
        )

    async def _set_status(self, command: StatusUpdateCommand) -> StatusUpdateResult:
        async with self.store.event_lock(command.event_id) as event:
            if not can_manage_participants(event, command.acting_user_id):
                raise PermissionDenied("Only the organizer can manage participants")

            new_status = parse_status(command.new_status)
            participant = await self.store.get_participant(event.id, command.participant_id)
            old_status = ParticipantStatus(participant.status)

            if old_status == new_status:
                return StatusUpdateResult(
                    participant=ParticipantResponse.model_validate(participant),
                    event=EventResponse.model_validate(event),
                    old_status=old_status.value,
                    new_status=new_status.value,
                    changed=False,
                )

            if new_status not in ALLOWED_TRANSITIONS[old_status]:
                raise InvalidStatus(
                    f"Cannot change participant status from '{old_status.value}' to '{new_status.value}'"
                )

            delta = counter_delta(old_status, new_status)
            if delta > 0:
                await self._claim_seat(event)

            participant.status = new_status.value
            await self.store.upsert_participation(participant)

            if delta < 0:
                await self._release_seat(event, participant)

        logger.info(
            "participant_status_changed",
            participant_id=participant.id,
            old_status=old_status.value,
            new_status=new_status.value,
            current_participants=event.current_participants,
        )
        warnings = await self._notify(
            ParticipationEvent(
                type=DomainEventType.PARTICIPANT_STATUS_CHANGED,
                event_id=event.id,
                participant_id=participant.id,
                user_id=participant.user_id,
                organizer_id=event.organizer_id,
                old_status=old_status.value,
                new_status=new_status.value,
            ),
            self._live_update(event, "participant_status_changed", participant, old_status=old_status.value),
        )
        return StatusUpdateResult(
            participant=ParticipantResponse.model_validate(participant),
            event=EventResponse.model_validate(event),
            old_status=old_status.value,
            new_status=new_status.value,
            warnings=warnings,
        )

    async def _reconcile(self, event_id: int, acting_user_id: int) -> ReconcileResult:
        async with self.store.event_lock(event_id) as event:
            if not can_manage_participants(event, acting_user_id):
                raise PermissionDenied("Only the organizer can reconcile participants")

            confirmed = await self.store.count_participants(event.id, ParticipantStatus.CONFIRMED)
            previous = event.current_participants
            if confirmed > event.max_participants:
                logger.error(
                    "capacity_invariant_violated",
                    confirmed=confirmed,
                    max_participants=event.max_participants,
                )
                raise InvalidCapacity(
                    f"{confirmed} confirmed participants exceed max_participants "
                    f"({event.max_participants}); raise the capacity first"
                )
            if confirmed != previous:
                await self.store.set_event_counter(event, confirmed)

        drift = confirmed - previous
        if drift:
            counter_drift_repairs.inc()
            logger.warning("counter_drift_repaired", previous=previous, confirmed=confirmed)
            await self._notify(
                None,
                EventUpdated(
                    event_id=event.id,
                    type="participants_reconciled",
                    payload={"current_participants": confirmed},
                ),
            )
        return ReconcileResult(
            event_id=event.id,
            previous_count=previous,
            confirmed_count=confirmed,
            drift=drift,
            checked_at=utcnow(),
        )

    # ------------------------------------------------------------------
    # Counter helpers (call inside event_lock)
    # ------------------------------------------------------------------

    async def _claim_seat(self, event: Event) -> None:
        if not await self.store.update_event_counters(event, +1):
            raise EventFull(
                f"Event {event.id} is full ({event.current_participants}/{event.max_participants})"
            )

    async def _release_seat(self, event: Event, participant: EventParticipant) -> None:
        if not await self.store.update_event_counters(event, -1):
            # The counter drifted below the confirmed rows; keep it at zero and
            # leave the repair to reconcile_counter.
            counter_underflows.inc()
            logger.error("counter_underflow", participant_id=participant.id)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        event_id: int,
        acting_user_id: int,
        action: Callable[[], Awaitable[T]],
    ) -> T:
        start = time.perf_counter()
        with structlog.contextvars.bound_contextvars(
            operation=operation, event_id=event_id, acting_user_id=acting_user_id
        ):
            try:
                # One initial attempt plus up to max_retries retries
                for attempt in range(self.max_retries + 1):
                    try:
                        result = await action()
                    except DomainError as e:
                        record_participation(operation, e.kind.value)
                        logger.info("participation_rejected", kind=e.kind.value, reason=e.message)
                        raise
                    except DBAPIError as e:
                        if not _is_retryable(e):
                            raise
                        if attempt == self.max_retries:
                            record_participation(operation, ConcurrencyConflict.kind.value)
                            logger.warning("participation_conflict", attempts=attempt + 1, error=str(e.orig))
                            raise ConcurrencyConflict() from e
                        participation_retries.inc()
                        logger.info("participation_retry", retry=attempt + 1, reason="lock_conflict")
                        continue
                    record_participation(operation, "success")
                    return result
            except SQLAlchemyError as e:
                record_participation(operation, StorageUnavailable.kind.value)
                logger.exception("participation_storage_failure", error=str(e))
                raise StorageUnavailable() from e
            finally:
                participation_latency.labels(operation=operation).observe(time.perf_counter() - start)
        raise ConcurrencyConflict()

    def _live_update(
        self,
        event: Event,
        update_type: str,
        participant: EventParticipant,
        **extra,
    ) -> EventUpdated:
        return EventUpdated(
            event_id=event.id,
            type=update_type,
            payload={
                "participant_id": participant.id,
                "user_id": participant.user_id,
                "status": participant.status,
                "current_participants": event.current_participants,
                "max_participants": event.max_participants,
                **extra,
            },
        )

    async def _notify(
        self,
        domain_event: Optional[ParticipationEvent],
        update: Optional[EventUpdated],
    ) -> list[str]:
        warnings: list[str] = []

        if domain_event is not None:
            try:
                await asyncio.wait_for(self.dispatcher.dispatch(domain_event), self.notification_timeout)
            except Exception as e:
                record_notification_failure("dispatcher")
                logger.warning(
                    "notification_dispatch_failed",
                    type=domain_event.type.value,
                    participant_id=domain_event.participant_id,
                    error=repr(e),
                )
                warnings.append(f"Notification {domain_event.type.value} could not be delivered")

        if update is not None:
            warning = await broadcast_event_update(self.live_updates, update, self.notification_timeout)
            if warning:
                warnings.append(warning)

        return warnings
