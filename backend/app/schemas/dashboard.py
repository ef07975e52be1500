"""
Pydantic schemas for the per-user dashboard.
"""

from datetime import datetime
from pydantic import BaseModel

from app.schemas.event import EventResponse


class RegisteredEvent(BaseModel):
    event: EventResponse
    registration_status: str
    registration_date: datetime


class DashboardStatistics(BaseModel):
    organized_total: int
    organized_by_status: dict[str, int]
    total_participants: int
    participations_total: int
    participations_by_status: dict[str, int]


class UpcomingEvents(BaseModel):
    organized_events: list[EventResponse]
    registered_events: list[EventResponse]
