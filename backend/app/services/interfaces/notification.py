"""
Notification boundaries of the participation core.
Allows swapping delivery mechanisms without changing business logic.
"""

from abc import ABC, abstractmethod

from app.schemas.notifications import EventUpdated, ParticipationEvent


class NotificationDeliveryError(Exception):
    """A dispatcher could not hand the notification to its backend."""


class NotificationDispatcher(ABC):
    """
    Receives participation domain events after their transaction committed.

    Implementations:
    - LogNotificationDispatcher: structured log line only
    - RedisNotificationDispatcher: pushes to a Redis outbox list consumed by
      the mail / in-app notification worker
    """

    @abstractmethod
    async def dispatch(self, event: ParticipationEvent) -> None:
        """
        Deliver one domain event.

        Raising is allowed: the engine logs the failure and reports it to the
        caller as a warning, the state transition stands.
        """


class LiveUpdateChannel(ABC):
    """
    Best-effort broadcast to real-time subscribers of a single event.

    Implementations:
    - LogLiveUpdateChannel: structured log line only
    - RedisLiveUpdateChannel: Redis PUBLISH on channel `event.{event_id}`
    """

    @abstractmethod
    async def publish(self, update: EventUpdated) -> None:
        """Broadcast an EventUpdated message."""
