"""
Pydantic schemas for participation: commands entering the engine, the
results it returns, and the participant roster responses.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.event import EventResponse
from app.schemas.user import UserSummary


class RegisterCommand(BaseModel):
    event_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)

    model_config = {"frozen": True}


class CancelCommand(BaseModel):
    event_id: int = Field(..., gt=0)
    user_id: int = Field(..., gt=0)

    model_config = {"frozen": True}


class StatusUpdateCommand(BaseModel):
    event_id: int = Field(..., gt=0)
    participant_id: int = Field(..., gt=0)
    # Checked against ParticipantStatus by the engine, which reports InvalidStatus
    new_status: str
    acting_user_id: int = Field(..., gt=0)

    model_config = {"frozen": True}


class ParticipantStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1, max_length=20)


class ParticipantResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: str
    registration_date: datetime

    model_config = {"from_attributes": True}


class ParticipantWithUserResponse(ParticipantResponse):
    user: UserSummary


class ParticipantListResponse(BaseModel):
    items: list[ParticipantWithUserResponse]
    total: int
    page: int
    page_size: int


class RegistrationResult(BaseModel):
    participant: ParticipantResponse
    event: EventResponse
    reused: bool = False  # an earlier cancelled participation was reactivated
    warnings: list[str] = []


class CancellationResult(BaseModel):
    participant: ParticipantResponse
    event: EventResponse
    previous_status: str
    warnings: list[str] = []


class StatusUpdateResult(BaseModel):
    participant: ParticipantResponse
    event: EventResponse
    old_status: str
    new_status: str
    changed: bool = True
    warnings: list[str] = []


class ReconcileResult(BaseModel):
    event_id: int
    previous_count: int
    confirmed_count: int
    drift: int
    checked_at: Optional[datetime] = None
