"""
Comment endpoints.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import get_current_user_id
from app.db.session import get_db
from app.schemas.comment import CommentCreate, CommentListResponse, CommentResponse, CommentUpdate
from app.services.comment_service import add_comment, delete_comment, list_comments, update_comment
from app.services.dispatch_factory import get_live_update_channel
from app.services.interfaces.notification import LiveUpdateChannel

router = APIRouter(prefix="/events/{event_id}/comments", tags=["Comments"])


@router.get("/", response_model=CommentListResponse)
async def list_comments_endpoint(
    event_id: int,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    items, total = await list_comments(db, event_id, page, page_size)
    return CommentListResponse(
        items=[CommentResponse.model_validate(c) for c in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment_endpoint(
    event_id: int,
    body: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    return await add_comment(db, event_id, user_id, body.content, live_updates)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment_endpoint(
    event_id: int,
    comment_id: int,
    body: CommentUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    return await update_comment(db, event_id, comment_id, user_id, body.content, live_updates)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(
    event_id: int,
    comment_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
):
    await delete_comment(db, event_id, comment_id, user_id, live_updates)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
