"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from app.api.routes import comments, dashboard, events, participants, ratings

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(participants.router)
api_router.include_router(comments.router)
api_router.include_router(ratings.router)
api_router.include_router(dashboard.router)
