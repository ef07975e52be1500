from app.schemas.category import CategoryCreate, CategoryResponse, CategoryWithCountResponse, CategoryListResponse
from app.schemas.event import EventCreate, EventUpdate, EventResponse, EventDetailResponse, EventListResponse
from app.schemas.participant import (
    RegisterCommand, CancelCommand, StatusUpdateCommand,
    ParticipantResponse, ParticipantListResponse,
    RegistrationResult, CancellationResult, StatusUpdateResult, ReconcileResult,
)
from app.schemas.notifications import DomainEventType, ParticipationEvent, EventUpdated

__all__ = [
    "CategoryCreate", "CategoryResponse", "CategoryWithCountResponse", "CategoryListResponse",
    "EventCreate", "EventUpdate", "EventResponse", "EventDetailResponse", "EventListResponse",
    "RegisterCommand", "CancelCommand", "StatusUpdateCommand",
    "ParticipantResponse", "ParticipantListResponse",
    "RegistrationResult", "CancellationResult", "StatusUpdateResult", "ReconcileResult",
    "DomainEventType", "ParticipationEvent", "EventUpdated",
]
