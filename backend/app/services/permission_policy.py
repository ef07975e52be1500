"""
Permission policy for events, participations, comments and ratings.

Pure functions of (event, participation, acting user). They perform no I/O so
they can be used both to reject a mutation up front and to decide what a read
response exposes to a given viewer.
"""

from dataclasses import dataclass
from typing import Optional

from app.models.comment import EventComment
from app.models.event import Event, EventStatus
from app.models.participant import EventParticipant, ParticipantStatus
from app.models.rating import EventRating

COMMENTABLE_EVENT_STATUSES = frozenset({EventStatus.PUBLISHED.value, EventStatus.COMPLETED.value})
COMMENTING_PARTICIPANT_STATUSES = frozenset({ParticipantStatus.CONFIRMED.value, ParticipantStatus.ATTENDED.value})


def can_comment(event: Event, participation: Optional[EventParticipant], is_organizer: bool) -> bool:
    if is_organizer:
        return True
    if event.status not in COMMENTABLE_EVENT_STATUSES:
        return False
    return participation is not None and participation.status in COMMENTING_PARTICIPANT_STATUSES


def can_rate(event: Event, participation: Optional[EventParticipant], is_organizer: bool) -> bool:
    # Organizers never rate their own events, whatever their participation
    if is_organizer:
        return False
    if event.status != EventStatus.COMPLETED.value:
        return False
    return participation is not None and participation.status == ParticipantStatus.ATTENDED.value


def can_edit(event: Event, acting_user_id: Optional[int]) -> bool:
    return acting_user_id is not None and event.organizer_id == acting_user_id


def can_manage_participants(event: Event, acting_user_id: Optional[int]) -> bool:
    return can_edit(event, acting_user_id)


def can_edit_comment(comment: EventComment, acting_user_id: int) -> bool:
    return comment.user_id == acting_user_id


def can_delete_comment(comment: EventComment, event: Event, acting_user_id: int) -> bool:
    return comment.user_id == acting_user_id or event.organizer_id == acting_user_id


def can_edit_rating(rating: EventRating, acting_user_id: int) -> bool:
    return rating.user_id == acting_user_id


def can_delete_rating(rating: EventRating, event: Event, acting_user_id: int) -> bool:
    """Ratings are removable by their author only, never by the organizer."""
    return rating.user_id == acting_user_id


@dataclass(frozen=True)
class ViewerPermissions:
    is_organizer: bool
    is_registered: bool
    registration_status: Optional[str]
    can_comment: bool
    can_rate: bool


def viewer_permissions(
    event: Event,
    participation: Optional[EventParticipant],
    acting_user_id: Optional[int],
) -> ViewerPermissions:
    if acting_user_id is None:
        return ViewerPermissions(False, False, None, False, False)

    is_organizer = can_edit(event, acting_user_id)
    return ViewerPermissions(
        is_organizer=is_organizer,
        is_registered=participation is not None and participation.is_active,
        registration_status=participation.status if participation is not None else None,
        can_comment=can_comment(event, participation, is_organizer),
        can_rate=can_rate(event, participation, is_organizer),
    )
