"""Notification port and adapters."""

from remitdex.notifications.base import (
    CallbackNotifier,
    CompositeNotifier,
    EventType,
    LoggingNotifier,
    NotificationEvent,
    NotificationPort,
)

__all__ = [
    "CallbackNotifier",
    "CompositeNotifier",
    "EventType",
    "LoggingNotifier",
    "NotificationEvent",
    "NotificationPort",
]
