"""
Dashboard endpoints for the authenticated user.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_user_id
from app.db.session import get_db
from app.models.event import EventStatus
from app.models.participant import ParticipantStatus
from app.schemas.dashboard import DashboardStatistics, RegisteredEvent, UpcomingEvents
from app.schemas.event import EventResponse
from app.services import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/statistics", response_model=DashboardStatistics)
async def statistics_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.statistics(db, user_id)


@router.get("/organized-events", response_model=list[EventResponse])
async def organized_events_endpoint(
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.organized_events(db, user_id, event_status)


@router.get("/registered-events", response_model=list[RegisteredEvent])
async def registered_events_endpoint(
    registration_status: Optional[ParticipantStatus] = Query(None, alias="status"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    rows = await dashboard_service.registered_events(db, user_id, registration_status)
    return [
        RegisteredEvent(
            event=EventResponse.model_validate(event),
            registration_status=participant.status,
            registration_date=participant.registration_date,
        )
        for event, participant in rows
    ]


@router.get("/upcoming-events", response_model=UpcomingEvents)
async def upcoming_events_endpoint(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Next published events the caller organizes and is confirmed for."""
    organized, registered = await dashboard_service.upcoming_events(db, user_id)
    return UpcomingEvents(
        organized_events=[EventResponse.model_validate(e) for e in organized],
        registered_events=[EventResponse.model_validate(e) for e in registered],
    )
