"""
Participation endpoints: registration, cancellation and the organizer's
roster management. Every state change goes through ParticipationEngine.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_participation_engine
from app.core.security import get_current_user_id
from app.db.session import get_db
from app.models.participant import ParticipantStatus
from app.schemas.participant import (
    CancelCommand,
    CancellationResult,
    ParticipantListResponse,
    ParticipantStatusUpdate,
    ParticipantWithUserResponse,
    ReconcileResult,
    RegisterCommand,
    RegistrationResult,
    StatusUpdateCommand,
    StatusUpdateResult,
)
from app.services.cache_service import invalidate_event_cache
from app.services.event_service import get_event_participant, list_event_participants
from app.services.participation_engine import ParticipationEngine

router = APIRouter(prefix="/events/{event_id}", tags=["Participants"])


@router.post("/register", response_model=RegistrationResult, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: ParticipationEngine = Depends(get_participation_engine),
):
    """
    Register the caller for an event. The participation starts as pending;
    a previously cancelled participation is reactivated.
    """
    result = await engine.register(RegisterCommand(event_id=event_id, user_id=user_id))
    await invalidate_event_cache()
    return result


@router.post("/unregister", response_model=CancellationResult)
async def unregister_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: ParticipationEngine = Depends(get_participation_engine),
):
    result = await engine.cancel(CancelCommand(event_id=event_id, user_id=user_id))
    await invalidate_event_cache()
    return result


@router.get("/participants", response_model=ParticipantListResponse)
async def list_participants_endpoint(
    event_id: int,
    participant_status: Optional[ParticipantStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Organizer only. Oldest registrations first."""
    items, total = await list_event_participants(db, event_id, user_id, participant_status, page, page_size)
    return ParticipantListResponse(
        items=[ParticipantWithUserResponse.model_validate(p) for p in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/participants/{participant_id}", response_model=ParticipantWithUserResponse)
async def get_participant_endpoint(
    event_id: int,
    participant_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_event_participant(db, event_id, participant_id, user_id)


@router.put("/participants/{participant_id}/status", response_model=StatusUpdateResult)
async def update_participant_status_endpoint(
    event_id: int,
    participant_id: int,
    body: ParticipantStatusUpdate,
    user_id: int = Depends(get_current_user_id),
    engine: ParticipationEngine = Depends(get_participation_engine),
):
    result = await engine.set_participant_status(
        StatusUpdateCommand(
            event_id=event_id,
            participant_id=participant_id,
            new_status=body.status,
            acting_user_id=user_id,
        )
    )
    if result.changed:
        await invalidate_event_cache()
    return result


@router.post("/participants/reconcile", response_model=ReconcileResult)
async def reconcile_participants_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: ParticipationEngine = Depends(get_participation_engine),
):
    """Recount confirmed participants and repair the event's counter."""
    result = await engine.reconcile_counter(event_id, user_id)
    if result.drift:
        await invalidate_event_cache()
    return result
