"""Retry policies and the per-order retry scheduler.

Each order moves through ``no-retry -> pending(attempt=n) ->
{pending(attempt=n+1) | exhausted}``. Pending retries are asyncio tasks keyed
by order id so they can be cancelled individually or all at shutdown.
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Optional

from remitdex.delivery.errors import DeliveryError, DeliveryErrorKind

logger = logging.getLogger(__name__)

# Oldest recovery/settlement records are evicted past this many orders
MAX_TRACKED_ORDERS = 10_000

# Called when a retry timer fires: (order_id, attempt, max_attempts, error)
RetryCallback = Callable[[str, int, int, DeliveryError], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff policy."""

    name: str
    max_attempts: int
    initial_delay_ms: int
    backoff_multiplier: float
    max_delay_ms: int

    def delay_ms(self, attempt: int) -> int:
        """Delay before retry number ``attempt + 1`` (attempt is zero-based)."""
        delay = self.initial_delay_ms * (self.backoff_multiplier ** attempt)
        return int(min(delay, self.max_delay_ms))


DEFAULT_RETRY_POLICY = RetryPolicy(
    name="default",
    max_attempts=3,
    initial_delay_ms=5000,
    backoff_multiplier=2,
    max_delay_ms=300000,
)

RATE_EXPIRED_POLICY = RetryPolicy(
    name="rate_expired",
    max_attempts=1,
    initial_delay_ms=0,
    backoff_multiplier=1,
    max_delay_ms=0,
)

COMPLIANCE_POLICY = RetryPolicy(
    name="compliance",
    max_attempts=0,
    initial_delay_ms=0,
    backoff_multiplier=1,
    max_delay_ms=0,
)


def policy_for(
    kind: DeliveryErrorKind,
    default: RetryPolicy = DEFAULT_RETRY_POLICY,
) -> RetryPolicy:
    """Select the retry policy for an error kind."""
    if kind == DeliveryErrorKind.RATE_EXPIRED:
        return RATE_EXPIRED_POLICY
    if kind in (DeliveryErrorKind.COMPLIANCE_BLOCKED, DeliveryErrorKind.KYC_REQUIRED):
        return COMPLIANCE_POLICY
    return default


@dataclass(frozen=True)
class RetryDecision:
    """Outcome of asking the scheduler for another attempt."""

    scheduled: bool
    attempt: int  # 1-based number of the attempt that was (or would be) scheduled
    max_attempts: int
    delay_ms: int = 0

    @property
    def exhausted(self) -> bool:
        return not self.scheduled


@dataclass
class SettlementProgress:
    """Bridge-leg results known for an order.

    Retries resume from here instead of touching the failed order: a set
    ``settlement_tx_hash`` means only the payout is left, a bare
    ``bridge_tx_id`` means a submitted transfer is still awaiting confirmation.
    """

    bridge_tx_id: Optional[str] = None
    settlement_tx_hash: Optional[str] = None
    settlement_account: Optional[str] = None

    @property
    def is_settled(self) -> bool:
        return bool(self.settlement_tx_hash)


@dataclass(frozen=True)
class RetryStatus:
    is_retrying: bool
    attempts: int
    next_retry_at: Optional[datetime] = None
    recovered_payout_tx_id: Optional[str] = None
    bridge_tx_id: Optional[str] = None
    settlement_tx_hash: Optional[str] = None


class RetryScheduler:
    """Tracks retry attempts per order and runs backoff timers.

    The callback wired with ``set_callback`` is awaited when a timer fires.
    Exceptions from the callback are logged; the callback is expected to
    route its own failures back through the delivery error handler.

    Recovery and settlement records are kept for the ``max_tracked`` most
    recently touched orders.
    """

    def __init__(
        self,
        default_policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        max_tracked: int = MAX_TRACKED_ORDERS,
    ):
        self.default_policy = default_policy
        self.max_tracked = max_tracked
        self._timers: dict[str, asyncio.Task] = {}
        self._attempts: dict[str, int] = {}
        self._due: dict[str, datetime] = {}
        self._recovered: OrderedDict[str, str] = OrderedDict()
        self._progress: OrderedDict[str, SettlementProgress] = OrderedDict()
        self._callback: Optional[RetryCallback] = None

    def _remember(self, records: OrderedDict, order_id: str, value) -> None:
        records[order_id] = value
        records.move_to_end(order_id)
        while len(records) > self.max_tracked:
            records.popitem(last=False)

    def set_callback(self, callback: Optional[RetryCallback]) -> None:
        self._callback = callback

    def policy_for(self, kind: DeliveryErrorKind) -> RetryPolicy:
        return policy_for(kind, self.default_policy)

    def schedule(self, order_id: str, error: DeliveryError) -> RetryDecision:
        """Schedule the next retry for an order, or report exhaustion.

        Exhaustion clears the attempt counter for the order.
        """
        policy = self.policy_for(error.kind)
        attempts = self._attempts.get(order_id, 0)

        if attempts >= policy.max_attempts:
            logger.info(f"Max retry attempts reached for order {order_id}")
            self._attempts.pop(order_id, None)
            self._due.pop(order_id, None)
            return RetryDecision(
                scheduled=False, attempt=attempts, max_attempts=policy.max_attempts
            )

        delay = policy.delay_ms(attempts)
        attempt = attempts + 1
        logger.info(
            f"Scheduling retry for order {order_id} in {delay}ms "
            f"(attempt {attempt}/{policy.max_attempts})"
        )

        existing = self._timers.pop(order_id, None)
        if existing is not None and not existing.done():
            existing.cancel()

        self._attempts.setdefault(order_id, attempts)
        self._due[order_id] = datetime.now(timezone.utc) + timedelta(milliseconds=delay)
        self._timers[order_id] = asyncio.create_task(
            self._fire(order_id, attempt, policy.max_attempts, delay, error),
            name=f"retry-{order_id}",
        )

        return RetryDecision(
            scheduled=True, attempt=attempt, max_attempts=policy.max_attempts, delay_ms=delay
        )

    async def _fire(
        self,
        order_id: str,
        attempt: int,
        max_attempts: int,
        delay_ms: int,
        error: DeliveryError,
    ) -> None:
        await asyncio.sleep(delay_ms / 1000)

        # Drop our own entry first so a reschedule from the callback doesn't cancel us
        self._timers.pop(order_id, None)
        self._due.pop(order_id, None)
        self._attempts[order_id] = attempt

        if self._callback is None:
            logger.warning(f"Retry fired for order {order_id} but no retry callback is wired")
            return

        try:
            await self._callback(order_id, attempt, max_attempts, error)
        except Exception as e:
            logger.exception(f"Retry callback failed for order {order_id}: {e}")

    def record_recovery(self, order_id: str, payout_tx_id: str) -> None:
        """Remember a successful retry and stop tracking attempts."""
        self._remember(self._recovered, order_id, payout_tx_id)
        self._attempts.pop(order_id, None)

    def track_progress(self, order_id: str, progress: SettlementProgress) -> None:
        """Keep an order's bridge-leg results for later retries."""
        self._remember(self._progress, order_id, progress)

    def get_progress(self, order_id: str) -> Optional[SettlementProgress]:
        return self._progress.get(order_id)

    def cancel(self, order_id: str) -> None:
        """Cancel any pending retry and clear the attempt counter."""
        timer = self._timers.pop(order_id, None)
        if timer is not None and not timer.done():
            timer.cancel()
        self._attempts.pop(order_id, None)
        self._due.pop(order_id, None)

    def get_retry_status(self, order_id: str) -> RetryStatus:
        progress = self._progress.get(order_id) or SettlementProgress()
        return RetryStatus(
            is_retrying=order_id in self._timers,
            attempts=self._attempts.get(order_id, 0),
            next_retry_at=self._due.get(order_id),
            recovered_payout_tx_id=self._recovered.get(order_id),
            bridge_tx_id=progress.bridge_tx_id,
            settlement_tx_hash=progress.settlement_tx_hash,
        )

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    async def shutdown(self) -> None:
        """Cancel all pending timers and wait for them to finish."""
        timers = list(self._timers.values())
        self._timers.clear()
        self._due.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            await asyncio.gather(*timers, return_exceptions=True)
