"""
Event ratings: one per (event, user), 1 to 5 stars with an optional remark.
"""

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class EventRating(Base, TimestampMixin):
    __tablename__ = "event_ratings"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    comment = Column(String(1000), nullable=True)

    event = relationship("Event", back_populates="ratings")
    user = relationship("User")

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_rating_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="check_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<EventRating(id={self.id}, event={self.event_id}, user={self.user_id}, rating={self.rating})>"
