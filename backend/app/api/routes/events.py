"""
Event endpoints with Redis caching on list operations.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.core.security import get_current_user_id, get_optional_user_id
from app.db.session import get_db
from app.schemas.category import CategoryListResponse, CategoryResponse, CategoryWithCountResponse
from app.schemas.event import EventCreate, EventDetailResponse, EventListResponse, EventResponse, EventUpdate
from app.services.cache_service import (
    get_cached_events,
    get_listing_generation,
    invalidate_event_cache,
    set_cached_events,
)
from app.services.category_service import list_categories
from app.services.dispatch_factory import get_live_update_channel
from app.services.event_service import create_event, delete_event, get_event_detail, list_events, update_event
from app.services.interfaces.notification import LiveUpdateChannel

logger = get_logger(__name__)
router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a new event owned by the caller."""
    event = await create_event(db, event_data, user_id)
    await invalidate_event_cache()
    return event


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories_endpoint(db: AsyncSession = Depends(get_db)):
    """All event categories by name, with the number of events using each."""
    categories = await list_categories(db)
    return CategoryListResponse(
        items=[
            CategoryWithCountResponse(
                **CategoryResponse.model_validate(category).model_dump(),
                events_count=count,
            )
            for category, count in categories
        ]
    )


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    upcoming_only: bool = Query(True),
    user_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    List visible events with pagination.

    Anonymous listings (published events only) are cached in Redis; any event
    or participation change drops the cache. Authenticated callers also see
    their own events and are never served from the cache.
    """
    generation = None
    if user_id is None:
        generation = await get_listing_generation()
        cached = await get_cached_events(generation, page, page_size, upcoming_only)
        if cached:
            logger.info("events_list_cache_hit", page=page)
            cached["cached"] = True
            return EventListResponse(**cached)

    events, total = await list_events(db, page, page_size, upcoming_only, viewer_id=user_id)

    response_data = {
        "events": [EventResponse.model_validate(e).model_dump(mode="json") for e in events],
        "total": total,
        "page": page,
        "page_size": page_size,
        "cached": False,
    }
    await set_cached_events(generation, page, page_size, upcoming_only, response_data)

    return EventListResponse(**response_data)


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event_endpoint(
    event_id: int,
    user_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Single event with the caller's permissions. Not cached."""
    return await get_event_detail(db, event_id, user_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: int,
    event_data: EventUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    event = await update_event(db, event_id, event_data, user_id, live_updates)
    await invalidate_event_cache()
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    await delete_event(db, event_id, user_id, live_updates)
    await invalidate_event_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
