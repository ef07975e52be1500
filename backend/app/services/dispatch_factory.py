"""
Notification backend factory.
Configures which dispatcher and live update channel the engine receives.
"""

from typing import Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.services.interfaces.log_notification import LogLiveUpdateChannel, LogNotificationDispatcher
from app.services.interfaces.notification import LiveUpdateChannel, NotificationDispatcher
from app.services.notification_service import RedisLiveUpdateChannel, RedisNotificationDispatcher

logger = get_logger(__name__)
settings = get_settings()


def build_notification_dispatcher() -> NotificationDispatcher:
    """
    Backend selection via NOTIFICATION_BACKEND:
    - "log": log only (default)
    - "redis": Redis outbox, requires REDIS_ENABLED
    """
    if settings.NOTIFICATION_BACKEND == "redis":
        if settings.REDIS_ENABLED:
            return RedisNotificationDispatcher()
        logger.warning("notification_backend_fallback", requested="redis", reason="redis_disabled")
    return LogNotificationDispatcher()


def build_live_update_channel() -> LiveUpdateChannel:
    if settings.LIVE_UPDATE_BACKEND == "redis":
        if settings.REDIS_ENABLED:
            return RedisLiveUpdateChannel()
        logger.warning("live_update_backend_fallback", requested="redis", reason="redis_disabled")
    return LogLiveUpdateChannel()


# Singleton instances
_dispatcher: Optional[NotificationDispatcher] = None
_live_updates: Optional[LiveUpdateChannel] = None


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency: dispatcher singleton."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_notification_dispatcher()
    return _dispatcher


def get_live_update_channel() -> LiveUpdateChannel:
    """FastAPI dependency: live update channel singleton."""
    global _live_updates
    if _live_updates is None:
        _live_updates = build_live_update_channel()
    return _live_updates
