"""
Redis-backed notification delivery.

Participation domain events are pushed onto a Redis list (the outbox) that
the mail / in-app notification worker drains with BRPOP. Live updates are
published on the per-event pub/sub channel `event.{event_id}`.

Failure handling:
  Both backends raise NotificationDeliveryError when Redis is unreachable.
  The participation engine runs them after commit and turns failures into
  warnings, so a Redis outage never blocks or reverts a registration.
  The database stays the source of truth.
"""

import asyncio
from typing import Optional

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_notification_failure
from app.infrastructure.redis_client import get_redis
from app.schemas.notifications import EventUpdated, ParticipationEvent
from app.services.interfaces.notification import (
    LiveUpdateChannel,
    NotificationDeliveryError,
    NotificationDispatcher,
)

logger = get_logger(__name__)
settings = get_settings()


class RedisNotificationDispatcher(NotificationDispatcher):
    """Outbox producer. One JSON document per domain event."""

    def __init__(self, outbox_key: Optional[str] = None):
        self.outbox_key = outbox_key or settings.NOTIFICATION_OUTBOX_KEY

    async def dispatch(self, event: ParticipationEvent) -> None:
        client = await get_redis()
        if client is None:
            raise NotificationDeliveryError("Redis is unavailable")

        message = event.model_dump_json()
        try:
            await client.lpush(self.outbox_key, message)
        except Exception as e:
            raise NotificationDeliveryError(str(e)) from e

        logger.debug(
            "notification_enqueued",
            key=self.outbox_key,
            type=event.type.value,
            event_id=event.event_id,
        )


class RedisLiveUpdateChannel(LiveUpdateChannel):
    """Publishes EventUpdated on `event.{event_id}`."""

    async def publish(self, update: EventUpdated) -> None:
        client = await get_redis()
        if client is None:
            raise NotificationDeliveryError("Redis is unavailable")

        try:
            receivers = await client.publish(update.channel, update.model_dump_json())
        except Exception as e:
            raise NotificationDeliveryError(str(e)) from e

        logger.debug("live_update_published", channel=update.channel, type=update.type, receivers=receivers)


async def broadcast_event_update(
    channel: LiveUpdateChannel,
    update: EventUpdated,
    timeout: Optional[float] = None,
) -> Optional[str]:
    """
    Publish a live update without letting delivery problems escape.
    Returns a warning message when delivery failed, None otherwise.
    """
    try:
        await asyncio.wait_for(channel.publish(update), timeout or settings.NOTIFICATION_TIMEOUT_SECONDS)
    except Exception as e:
        record_notification_failure("live_update")
        logger.warning("live_update_failed", channel=update.channel, type=update.type, error=repr(e))
        return f"Live update {update.type} could not be delivered"
    return None
