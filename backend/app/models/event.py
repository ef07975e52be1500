"""
Event model with participant capacity tracking.

Key design decisions:
- `current_participants` is denormalized (avoids COUNT over participants) and
  counts confirmed participants only. It is written exclusively by the
  participation engine, in the same transaction as the participant row.
- CHECK constraints keep 0 <= current_participants <= max_participants even if
  application code misbehaves.
- Soft delete via `deleted_at`; deleted events are invisible to the engine.
"""

from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Event(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    location = Column(String(255), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    max_participants = Column(Integer, nullable=False)
    current_participants = Column(Integer, nullable=False, default=0)
    organizer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=EventStatus.DRAFT.value)

    organizer = relationship("User", back_populates="events")
    participants = relationship(
        "EventParticipant",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    comments = relationship(
        "EventComment",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    ratings = relationship(
        "EventRating",
        back_populates="event",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    # Loaded eagerly; async sessions cannot lazy-load
    categories = relationship(
        "EventCategory",
        secondary="event_category_relationships",
        lazy="selectin",
        order_by="EventCategory.name",
    )

    __table_args__ = (
        CheckConstraint("current_participants >= 0", name="check_current_participants_non_negative"),
        CheckConstraint("max_participants >= 1", name="check_max_participants_positive"),
        CheckConstraint("current_participants <= max_participants", name="check_current_lte_max"),
        CheckConstraint(
            "status IN ('draft', 'published', 'cancelled', 'completed')",
            name="check_event_status",
        ),
        Index("ix_events_status_date", "status", "date"),
    )

    @property
    def is_full(self) -> bool:
        return self.current_participants >= self.max_participants

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, status={self.status}, "
            f"participants={self.current_participants}/{self.max_participants})>"
        )
