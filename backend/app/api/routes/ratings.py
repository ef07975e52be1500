"""
Rating endpoints and the per-event rating summary.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_user_id
from app.db.session import get_db
from app.schemas.rating import RatingCreate, RatingListResponse, RatingResponse, RatingSummary, RatingUpdate
from app.services.dispatch_factory import get_live_update_channel
from app.services.interfaces.notification import LiveUpdateChannel
from app.services.rating_service import add_rating, delete_rating, list_ratings, rating_summary, update_rating

router = APIRouter(prefix="/events/{event_id}/ratings", tags=["Ratings"])


@router.get("/", response_model=RatingListResponse)
async def list_ratings_endpoint(
    event_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await list_ratings(db, event_id, page, page_size)
    return RatingListResponse(
        items=[RatingResponse.model_validate(r) for r in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/summary", response_model=RatingSummary)
async def rating_summary_endpoint(
    event_id: int,
    db: AsyncSession = Depends(get_db),
):
    return await rating_summary(db, event_id)


@router.post("/", response_model=RatingResponse, status_code=status.HTTP_201_CREATED)
async def add_rating_endpoint(
    event_id: int,
    body: RatingCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    """Attendees of a completed event only, one rating per user."""
    return await add_rating(db, event_id, user_id, body, live_updates)


@router.put("/{rating_id}", response_model=RatingResponse)
async def update_rating_endpoint(
    event_id: int,
    rating_id: int,
    body: RatingUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    return await update_rating(db, event_id, rating_id, user_id, body, live_updates)


@router.delete("/{rating_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_rating_endpoint(
    event_id: int,
    rating_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    await delete_rating(db, event_id, rating_id, user_id, live_updates)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
