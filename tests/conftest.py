"""Pytest configuration and fixtures."""

import asyncio
import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DRY_RUN"] = "true"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["ADMIN_CHAT_IDS"] = ""
os.environ["DEBUG"] = "true"

from remitdex.anchors.dry_run import SimulatedInteractiveAnchor, SimulatedSyncAnchor
from remitdex.anchors.gateway import AnchorGateway
from remitdex.bridge import SimulatedBridge
from remitdex.delivery.handler import DeliveryErrorHandler
from remitdex.delivery.retry import DEFAULT_RETRY_POLICY, RetryPolicy, RetryScheduler
from remitdex.engine import RemittanceOrchestrator
from remitdex.monitoring.metrics import MetricsCollector
from remitdex.notifications.base import CallbackNotifier, EventType, NotificationEvent
from remitdex.orders.store import InMemoryOrderStore
from remitdex.routing.dry_run import SimulatedAggregator

SENDER = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"

# Zero-delay policy so retries fire on the next loop iteration
IMMEDIATE_RETRY_POLICY = RetryPolicy(
    name="immediate",
    max_attempts=3,
    initial_delay_ms=0,
    backoff_multiplier=2,
    max_delay_ms=0,
)


class EventRecorder:
    """Collects notification events and lets tests wait for one."""

    def __init__(self, notifier: CallbackNotifier):
        self.events: list[NotificationEvent] = []
        self._waiters: dict[EventType, asyncio.Event] = {}
        notifier.subscribe(self._record)

    def _record(self, event: NotificationEvent) -> None:
        self.events.append(event)
        waiter = self._waiters.get(event.type)
        if waiter:
            waiter.set()

    def types(self, order_id: str = None) -> list[EventType]:
        return [e.type for e in self.events if order_id is None or e.order_id == order_id]

    def of_type(self, event_type: EventType) -> list[NotificationEvent]:
        return [e for e in self.events if e.type == event_type]

    async def wait_for(self, event_type: EventType, timeout: float = 2.0) -> NotificationEvent:
        if not self.of_type(event_type):
            waiter = self._waiters.setdefault(event_type, asyncio.Event())
            await asyncio.wait_for(waiter.wait(), timeout)
        return self.of_type(event_type)[-1]


class Pipeline:
    """An orchestrator plus direct handles on its simulated collaborators."""

    def __init__(self, retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY):
        self.aggregator = SimulatedAggregator()
        self.bridge = SimulatedBridge()
        self.sync_anchor = SimulatedSyncAnchor()
        self.interactive_anchor = SimulatedInteractiveAnchor()
        self.store = InMemoryOrderStore()
        self.metrics = MetricsCollector()
        self.notifier = CallbackNotifier()
        self.recorder = EventRecorder(self.notifier)
        self.scheduler = RetryScheduler(default_policy=retry_policy)
        self.error_handler = DeliveryErrorHandler(self.scheduler, self.notifier)
        self.orchestrator = RemittanceOrchestrator(
            aggregator=self.aggregator,
            bridge=self.bridge,
            anchors=AnchorGateway(self.sync_anchor, self.interactive_anchor),
            store=self.store,
            error_handler=self.error_handler,
            metrics=self.metrics,
            notifier=self.notifier,
        )


@pytest.fixture
def gcash_recipient() -> dict:
    return {
        "delivery_method": "gcash",
        "name": "Juan Dela Cruz",
        "phone_number": "+639171234567",
        "account_name": "Juan Dela Cruz",
    }


@pytest.fixture
def bank_ph_recipient() -> dict:
    return {
        "delivery_method": "bank_transfer",
        "name": "Maria Santos",
        "account_name": "Maria Santos",
        "account_number": "1234567890",
        "bank_name": "BDO",
    }


@pytest_asyncio.fixture
async def pipeline() -> AsyncGenerator[Pipeline, None]:
    """Dry-run pipeline with the default 5s/10s/20s retry policy."""
    p = Pipeline()
    yield p
    await p.orchestrator.shutdown()


@pytest_asyncio.fixture
async def fast_pipeline() -> AsyncGenerator[Pipeline, None]:
    """Dry-run pipeline whose retries fire immediately."""
    p = Pipeline(retry_policy=IMMEDIATE_RETRY_POLICY)
    yield p
    await p.orchestrator.shutdown()
