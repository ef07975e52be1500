"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .notification import LiveUpdateChannel, NotificationDeliveryError, NotificationDispatcher
from .log_notification import LogLiveUpdateChannel, LogNotificationDispatcher

__all__ = [
    'NotificationDispatcher', 'LiveUpdateChannel', 'NotificationDeliveryError',
    'LogNotificationDispatcher', 'LogLiveUpdateChannel',
]
