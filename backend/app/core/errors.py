"""
Domain error taxonomy.

Every expected failure of the participation core is a DomainError with a
stable machine-readable `kind` and a human-readable message. Services raise
them; the API layer maps kinds to HTTP status codes in one place
(app/api/errors.py). Storage connectivity problems surface as
StorageUnavailable after being logged by the caller.
"""

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    EVENT_NOT_FOUND = "event_not_found"
    EVENT_FULL = "event_full"
    ALREADY_REGISTERED = "already_registered"
    NOT_REGISTERED = "not_registered"
    PERMISSION_DENIED = "permission_denied"
    PARTICIPANT_NOT_FOUND = "participant_not_found"
    INVALID_STATUS = "invalid_status"
    CONCURRENCY_CONFLICT = "concurrency_conflict"
    COMMENT_NOT_FOUND = "comment_not_found"
    RATING_NOT_FOUND = "rating_not_found"
    ALREADY_RATED = "already_rated"
    INVALID_CAPACITY = "invalid_capacity"
    INVALID_SCHEDULE = "invalid_schedule"
    INVALID_CATEGORY = "invalid_category"
    STORAGE_UNAVAILABLE = "storage_unavailable"


class DomainError(Exception):
    kind: ErrorKind = ErrorKind.STORAGE_UNAVAILABLE
    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None, **context: Any):
        self.message = message or self.default_message
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": self.message}

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(kind={self.kind.value}, message={self.message!r})>"


class EventNotFound(DomainError):
    kind = ErrorKind.EVENT_NOT_FOUND
    default_message = "Event not found"


class EventFull(DomainError):
    kind = ErrorKind.EVENT_FULL
    default_message = "Event has reached its maximum number of participants"


class AlreadyRegistered(DomainError):
    kind = ErrorKind.ALREADY_REGISTERED
    default_message = "You are already registered for this event"


class NotRegistered(DomainError):
    kind = ErrorKind.NOT_REGISTERED
    default_message = "You are not registered for this event"


class PermissionDenied(DomainError):
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Permission denied"


class ParticipantNotFound(DomainError):
    kind = ErrorKind.PARTICIPANT_NOT_FOUND
    default_message = "Participant not found for this event"


class InvalidStatus(DomainError):
    kind = ErrorKind.INVALID_STATUS
    default_message = "Invalid participant status"


class ConcurrencyConflict(DomainError):
    kind = ErrorKind.CONCURRENCY_CONFLICT
    default_message = "The event is being modified concurrently. Please try again."


class CommentNotFound(DomainError):
    kind = ErrorKind.COMMENT_NOT_FOUND
    default_message = "Comment not found"


class RatingNotFound(DomainError):
    kind = ErrorKind.RATING_NOT_FOUND
    default_message = "Rating not found"


class AlreadyRated(DomainError):
    kind = ErrorKind.ALREADY_RATED
    default_message = "You have already rated this event"


class InvalidCapacity(DomainError):
    kind = ErrorKind.INVALID_CAPACITY
    default_message = "max_participants cannot be lower than the confirmed participant count"


class InvalidSchedule(DomainError):
    kind = ErrorKind.INVALID_SCHEDULE
    default_message = "end_time must be after start_time"


class InvalidCategory(DomainError):
    kind = ErrorKind.INVALID_CATEGORY
    default_message = "Unknown event category"


class StorageUnavailable(DomainError):
    kind = ErrorKind.STORAGE_UNAVAILABLE
    default_message = "Storage is temporarily unavailable"
