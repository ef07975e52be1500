"""
Event categories and the event/category association table.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text

from app.db.base import Base, TimestampMixin

event_category_relationships = Table(
    "event_category_relationships",
    Base.metadata,
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("event_categories.id", ondelete="CASCADE"), primary_key=True),
)


class EventCategory(Base, TimestampMixin):
    __tablename__ = "event_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<EventCategory(id={self.id}, name={self.name})>"
