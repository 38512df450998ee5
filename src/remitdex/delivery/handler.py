"""Delivery failure handling: classify, notify, then retry or escalate."""

import logging
from typing import Optional

from remitdex.delivery.errors import DeliveryError, classify
from remitdex.delivery.retry import (
    RetryCallback,
    RetryScheduler,
    RetryStatus,
    SettlementProgress,
)
from remitdex.notifications.base import EventType, NotificationEvent, NotificationPort

logger = logging.getLogger(__name__)

REFUND_USER_MESSAGE = "Your transaction could not be completed. A refund will be processed."
REVIEW_USER_MESSAGE = "Your transaction is being reviewed. We'll update you within 24 hours."


class DeliveryErrorHandler:
    """Routes classified delivery failures to retries, refunds or manual review.

    Events are emitted through the notification port in this order:
    ``delivery_error`` first, then either a scheduled retry (``delivery_retry``
    when the timer fires), ``refund_required`` + ``user_notification`` for
    permanent failures, or ``manual_review_required`` + ``user_notification``
    once attempts are exhausted.
    """

    def __init__(self, scheduler: RetryScheduler, notifier: NotificationPort):
        self.scheduler = scheduler
        self.notifier = notifier
        self._retry_callback: Optional[RetryCallback] = None
        scheduler.set_callback(self._on_retry_fired)

    def set_retry_callback(self, callback: Optional[RetryCallback]) -> None:
        """Wire the function that re-runs an order's pipeline on retry."""
        self._retry_callback = callback

    async def handle_failure(
        self,
        order_id: str,
        exc: BaseException,
        error: Optional[DeliveryError] = None,
    ) -> DeliveryError:
        """Classify a pipeline failure and decide what happens next.

        Pass ``error`` when the caller already classified ``exc``. The raw
        exception text is logged here and never leaves this method.
        """
        error = error or classify(exc)
        logger.error(
            f"Delivery error for order {order_id}: {error.kind.value} "
            f"(code={error.code}) - {type(exc).__name__}: {exc}"
        )

        await self._emit(
            EventType.DELIVERY_ERROR,
            order_id,
            {"kind": error.kind.value, "code": error.code, "retryable": error.retryable},
        )

        policy = self.scheduler.policy_for(error.kind)
        if not error.retryable or policy.max_attempts == 0:
            await self._handle_permanent(order_id, error)
            return error

        decision = self.scheduler.schedule(order_id, error)
        if decision.exhausted:
            await self._handle_exhausted(order_id, error)

        return error

    async def _handle_permanent(self, order_id: str, error: DeliveryError) -> None:
        await self._emit(
            EventType.REFUND_REQUIRED,
            order_id,
            {"reason": error.message, "kind": error.kind.value},
        )
        await self._emit(
            EventType.USER_NOTIFICATION,
            order_id,
            {
                "type": "delivery_failed",
                "message": error.user_action or REFUND_USER_MESSAGE,
                "severity": "error",
            },
        )

    async def _handle_exhausted(self, order_id: str, error: DeliveryError) -> None:
        logger.warning(f"Retries exhausted for order {order_id}, escalating to manual review")
        await self._emit(
            EventType.MANUAL_REVIEW_REQUIRED,
            order_id,
            {"reason": "Max retries exceeded", "kind": error.kind.value, "last_error": error.to_dict()},
        )
        await self._emit(
            EventType.USER_NOTIFICATION,
            order_id,
            {"type": "delivery_delayed", "message": REVIEW_USER_MESSAGE, "severity": "warning"},
        )

    async def _on_retry_fired(
        self, order_id: str, attempt: int, max_attempts: int, error: DeliveryError
    ) -> None:
        await self._emit(
            EventType.DELIVERY_RETRY,
            order_id,
            {"attempt": attempt, "max_attempts": max_attempts, "kind": error.kind.value},
        )
        if self._retry_callback is not None:
            await self._retry_callback(order_id, attempt, max_attempts, error)

    async def record_recovery(self, order_id: str, payout_tx_id: str, attempt: int) -> None:
        self.scheduler.record_recovery(order_id, payout_tx_id)
        await self._emit(
            EventType.DELIVERY_RECOVERED,
            order_id,
            {"payout_tx_id": payout_tx_id, "attempt": attempt},
        )

    def cancel_retries(self, order_id: str) -> None:
        self.scheduler.cancel(order_id)

    def get_retry_status(self, order_id: str) -> RetryStatus:
        return self.scheduler.get_retry_status(order_id)

    def track_progress(self, order_id: str, progress: SettlementProgress) -> None:
        self.scheduler.track_progress(order_id, progress)

    def get_progress(self, order_id: str) -> Optional[SettlementProgress]:
        return self.scheduler.get_progress(order_id)

    async def _emit(self, event_type: EventType, order_id: str, payload: dict) -> None:
        try:
            await self.notifier.notify(
                NotificationEvent(type=event_type, order_id=order_id, payload=payload)
            )
        except Exception as e:
            logger.error(f"Failed to emit {event_type.value} for order {order_id}: {e}")
