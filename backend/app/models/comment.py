"""
Comments on an event. Only the author edits; author or organizer deletes (soft).
"""

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from app.db.base import Base, SoftDeleteMixin, TimestampMixin


class EventComment(Base, TimestampMixin, SoftDeleteMixin):
    __tablename__ = "event_comments"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)

    event = relationship("Event", back_populates="comments")
    user = relationship("User")

    def __repr__(self) -> str:
        return f"<EventComment(id={self.id}, event={self.event_id}, user={self.user_id})>"
