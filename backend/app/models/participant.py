"""
EventParticipant: the participation record between a user and an event.

- Unique on (event_id, user_id): re-registering after a cancellation reuses the
  same row, so there is never more than one active participation per pair.
- Rows are never deleted by the application; cancellation is a status.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, utcnow


class ParticipantStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    ATTENDED = "attended"


class EventParticipant(Base, TimestampMixin):
    __tablename__ = "event_participants"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=ParticipantStatus.PENDING.value)
    registration_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    event = relationship("Event", back_populates="participants")
    user = relationship("User", back_populates="participations")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_participant_user"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'attended')",
            name="check_participant_status",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status != ParticipantStatus.CANCELLED.value

    def __repr__(self) -> str:
        return f"<EventParticipant(id={self.id}, event={self.event_id}, user={self.user_id}, status={self.status})>"
