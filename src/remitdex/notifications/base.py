"""Notification port and in-process notifier implementations."""

import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Events emitted by the orchestrator and the delivery error handler."""

    DELIVERY_ERROR = "delivery_error"
    DELIVERY_RETRY = "delivery_retry"
    REFUND_REQUIRED = "refund_required"
    MANUAL_REVIEW_REQUIRED = "manual_review_required"
    USER_NOTIFICATION = "user_notification"
    DELIVERY_RECOVERED = "delivery_recovered"
    ORDER_COMPLETED = "order_completed"


@dataclass
class NotificationEvent:
    type: EventType
    order_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventCallback = Callable[[NotificationEvent], Union[None, Awaitable[None]]]


class NotificationPort(ABC):
    """Outbound port for pipeline events.

    Callers await ``notify`` in emission order.
    """

    @abstractmethod
    async def notify(self, event: NotificationEvent) -> None:
        pass


class LoggingNotifier(NotificationPort):
    """Writes every event to the log."""

    WARNING_EVENTS = {
        EventType.DELIVERY_ERROR,
        EventType.REFUND_REQUIRED,
        EventType.MANUAL_REVIEW_REQUIRED,
    }

    async def notify(self, event: NotificationEvent) -> None:
        level = logging.WARNING if event.type in self.WARNING_EVENTS else logging.INFO
        logger.log(level, f"[{event.type.value}] order={event.order_id} {event.payload}")


class CallbackNotifier(NotificationPort):
    """Ordered registry of subscriber callbacks.

    Callbacks may be plain functions or coroutines. A subscriber that raises
    is logged and skipped so later subscribers still run.
    """

    def __init__(self):
        self._callbacks: list[tuple[Optional[EventType], EventCallback]] = []

    def subscribe(self, callback: EventCallback, event_type: Optional[EventType] = None) -> None:
        """Register a callback for one event type, or for all when ``event_type`` is None."""
        self._callbacks.append((event_type, callback))

    def unsubscribe(self, callback: EventCallback) -> None:
        self._callbacks = [(t, cb) for t, cb in self._callbacks if cb is not callback]

    async def notify(self, event: NotificationEvent) -> None:
        for event_type, callback in list(self._callbacks):
            if event_type is not None and event_type != event.type:
                continue
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Notification callback failed for {event.type.value}: {e}")


class CompositeNotifier(NotificationPort):
    """Fans an event out to several notifiers in order.

    A notifier that raises is logged and skipped; the rest still run.
    """

    def __init__(self, notifiers: list[NotificationPort]):
        self.notifiers = list(notifiers)

    def add(self, notifier: NotificationPort) -> None:
        self.notifiers.append(notifier)

    async def notify(self, event: NotificationEvent) -> None:
        for notifier in self.notifiers:
            try:
                await notifier.notify(event)
            except Exception as e:
                logger.error(f"{type(notifier).__name__} failed on {event.type.value}: {e}")
