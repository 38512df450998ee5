"""Factory for the remittance pipeline collaborators.

Creates real clients when credentials are available and dry-run is off,
otherwise falls back to simulated ones.
"""

import logging
from typing import Optional

from remitdex.anchors.gateway import AnchorGateway
from remitdex.bridge import BridgeClient, SimulatedBridge
from remitdex.config import Settings, get_settings
from remitdex.delivery.handler import DeliveryErrorHandler
from remitdex.delivery.methods import DeliveryMethodRegistry
from remitdex.delivery.retry import RetryPolicy, RetryScheduler
from remitdex.engine import RemittanceOrchestrator
from remitdex.monitoring.metrics import MetricsCollector
from remitdex.notifications.base import CompositeNotifier, LoggingNotifier, NotificationPort
from remitdex.orders.store import InMemoryOrderStore
from remitdex.routing.base import AggregatorClient

logger = logging.getLogger(__name__)


def create_aggregator_client(settings: Optional[Settings] = None) -> AggregatorClient:
    """Create the DEX aggregator client.

    1inch requires an API key, so the simulated aggregator is used without one.
    """
    settings = settings or get_settings()

    if settings.has_aggregator_key and not settings.dry_run:
        from remitdex.routing.oneinch import OneInchAggregator

        return OneInchAggregator(
            api_key=settings.oneinch_api_key,
            base_url=settings.oneinch_api_url,
            timeout=settings.aggregator_timeout,
            max_retries=settings.aggregator_max_retries,
            backoff_base=settings.aggregator_backoff_base,
        )

    if not settings.dry_run:
        logger.warning("ONEINCH_API_KEY not set - using simulated aggregator")

    from remitdex.routing.dry_run import SimulatedAggregator

    return SimulatedAggregator()


def create_anchor_gateway(settings: Optional[Settings] = None) -> AnchorGateway:
    """Create the anchor gateway with SEP-6 and SEP-24 clients."""
    settings = settings or get_settings()

    if not settings.dry_run:
        from remitdex.anchors.sep6 import Sep6AnchorClient
        from remitdex.anchors.sep24 import Sep24AnchorClient

        return AnchorGateway(
            sync_client=Sep6AnchorClient(timeout=settings.anchor_timeout),
            interactive_client=Sep24AnchorClient(timeout=settings.anchor_timeout),
        )

    from remitdex.anchors.dry_run import SimulatedInteractiveAnchor, SimulatedSyncAnchor

    return AnchorGateway(
        sync_client=SimulatedSyncAnchor(),
        interactive_client=SimulatedInteractiveAnchor(),
    )


def create_bridge(settings: Optional[Settings] = None) -> BridgeClient:
    """Create the bridge client.

    HTLC settlement is stubbed; only the simulated bridge exists.
    """
    settings = settings or get_settings()
    if not settings.dry_run:
        logger.warning("No live bridge client available - using simulated bridge")
    return SimulatedBridge(confirmation_timeout=settings.bridge_confirmation_timeout)


def create_notifier(settings: Optional[Settings] = None) -> NotificationPort:
    """Logging notifier, plus Telegram ops alerts when a bot and admins are configured."""
    settings = settings or get_settings()
    notifier = CompositeNotifier([LoggingNotifier()])

    if settings.telegram_bot_token and settings.admin_ids:
        from remitdex.notifications.telegram import TelegramNotifier

        notifier.add(TelegramNotifier(admin_ids=settings.admin_ids))
        logger.info(f"Telegram ops alerts enabled for {len(settings.admin_ids)} chat(s)")

    return notifier


def create_retry_scheduler(settings: Optional[Settings] = None) -> RetryScheduler:
    settings = settings or get_settings()
    policy = RetryPolicy(
        name="default",
        max_attempts=settings.retry_max_attempts,
        initial_delay_ms=settings.retry_initial_delay_ms,
        backoff_multiplier=settings.retry_backoff_multiplier,
        max_delay_ms=settings.retry_max_delay_ms,
    )
    return RetryScheduler(default_policy=policy)


def create_orchestrator(
    settings: Optional[Settings] = None,
    notifier: Optional[NotificationPort] = None,
) -> RemittanceOrchestrator:
    """Wire a complete orchestrator from settings.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        notifier: Notification port override (defaults to create_notifier())

    Returns:
        RemittanceOrchestrator with its own store, scheduler and metrics
    """
    settings = settings or get_settings()
    notifier = notifier or create_notifier(settings)

    error_handler = DeliveryErrorHandler(create_retry_scheduler(settings), notifier)
    orchestrator = RemittanceOrchestrator(
        aggregator=create_aggregator_client(settings),
        bridge=create_bridge(settings),
        anchors=create_anchor_gateway(settings),
        store=InMemoryOrderStore(),
        error_handler=error_handler,
        metrics=MetricsCollector(),
        notifier=notifier,
        registry=DeliveryMethodRegistry(),
        origin_country=settings.origin_country,
        slippage=settings.default_slippage,
    )

    mode = "dry-run" if settings.dry_run else "live"
    logger.info(f"Remittance orchestrator ready ({mode}, aggregator={orchestrator.aggregator.name})")
    return orchestrator
