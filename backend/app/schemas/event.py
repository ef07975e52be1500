"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime, time, timezone
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.event import EventStatus
from app.schemas.category import CategoryResponse


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field("", max_length=10000)
    location: str = Field(..., min_length=1, max_length=255)
    date: datetime
    start_time: time
    end_time: time
    max_participants: int = Field(..., gt=0, le=100000)
    status: EventStatus = EventStatus.DRAFT
    category_ids: list[int] = Field(default_factory=list)

    @field_validator("date")
    @classmethod
    def date_in_future(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= datetime.now(timezone.utc):
            raise ValueError("Event date must be in the future")
        return value

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=10000)
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    date: Optional[datetime] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    max_participants: Optional[int] = Field(None, gt=0, le=100000)
    status: Optional[EventStatus] = None
    category_ids: Optional[list[int]] = None

    @field_validator("date")
    @classmethod
    def date_in_future(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        if value <= datetime.now(timezone.utc):
            raise ValueError("Event date must be in the future")
        return value

    @model_validator(mode="after")
    def end_after_start(self):
        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventResponse(BaseModel):
    id: int
    title: str
    description: str
    location: str
    date: datetime
    start_time: time
    end_time: time
    max_participants: int
    current_participants: int
    is_full: bool
    organizer_id: int
    status: EventStatus
    created_at: datetime
    categories: list[CategoryResponse] = []

    model_config = {"from_attributes": True}


class EventDetailResponse(EventResponse):
    """Event as seen by a specific viewer."""

    is_organizer: bool = False
    is_registered: bool = False
    registration_status: Optional[str] = None
    can_comment: bool = False
    can_rate: bool = False


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
    cached: bool = False
