"""
Domain events emitted by the participation core.

ParticipationEvent goes to the NotificationDispatcher (mail / in-app delivery).
EventUpdated goes to the LiveUpdateChannel (real-time subscribers of one event).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field

from app.db.base import utcnow


class DomainEventType(str, Enum):
    PARTICIPANT_REGISTERED = "ParticipantRegistered"
    PARTICIPANT_UNREGISTERED = "ParticipantUnregistered"
    PARTICIPANT_STATUS_CHANGED = "ParticipantStatusChanged"


class ParticipationEvent(BaseModel):
    type: DomainEventType
    event_id: int
    participant_id: int
    user_id: int
    organizer_id: int
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def recipient_ids(self) -> list[int]:
        """Users to notify: status changes go to the participant only."""
        if self.type == DomainEventType.PARTICIPANT_STATUS_CHANGED:
            return [self.user_id]
        if self.organizer_id == self.user_id:
            return [self.user_id]
        return [self.user_id, self.organizer_id]


class EventUpdated(BaseModel):
    event_id: int
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def channel(self) -> str:
        return f"event.{self.event_id}"
