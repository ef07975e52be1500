from app.models.user import User
from app.models.category import EventCategory, event_category_relationships
from app.models.event import Event, EventStatus
from app.models.participant import EventParticipant, ParticipantStatus
from app.models.comment import EventComment
from app.models.rating import EventRating

__all__ = [
    "User",
    "EventCategory", "event_category_relationships",
    "Event", "EventStatus",
    "EventParticipant", "ParticipantStatus",
    "EventComment",
    "EventRating",
]
