"""
Shared FastAPI dependencies for the route modules.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.services.dispatch_factory import get_live_update_channel, get_notification_dispatcher
from app.services.event_store import EventStore
from app.services.interfaces.notification import LiveUpdateChannel, NotificationDispatcher
from app.services.participation_engine import ParticipationEngine


async def get_participation_engine(
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
    live_updates: LiveUpdateChannel = Depends(get_live_update_channel),
) -> ParticipationEngine:
    return ParticipationEngine(EventStore(db), dispatcher, live_updates)
