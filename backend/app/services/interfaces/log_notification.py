"""
Log-only notification backends.
Default for development and for deployments without a notification worker.
"""

from app.core.logging import get_logger
from app.schemas.notifications import EventUpdated, ParticipationEvent
from app.services.interfaces.notification import LiveUpdateChannel, NotificationDispatcher

logger = get_logger(__name__)


class LogNotificationDispatcher(NotificationDispatcher):
    async def dispatch(self, event: ParticipationEvent) -> None:
        logger.info(
            "notification_dispatched",
            type=event.type.value,
            event_id=event.event_id,
            participant_id=event.participant_id,
            recipients=event.recipient_ids,
            old_status=event.old_status,
            new_status=event.new_status,
        )


class LogLiveUpdateChannel(LiveUpdateChannel):
    async def publish(self, update: EventUpdated) -> None:
        logger.debug("live_update_published", channel=update.channel, type=update.type)
