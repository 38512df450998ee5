"""Remittance orchestrator.

Flow:
1. Quote: source token -> wrapped settlement USDC (DEX aggregator),
   bridge to the settlement network, anchor payout in local currency
2. Execute: validate, create the order, then run swap-build, bridge and
   payout strictly in sequence
3. Any stage failure is classified once by the delivery error handler,
   which decides between a retry, a refund or manual review

Fees (fractions of the settled amount):
- swap: 0.3%
- bridge: 0.1%
- anchor payout: 0.5%
"""

import logging
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any, Optional, Union

from remitdex.anchors.base import PayoutResult
from remitdex.anchors.gateway import AnchorGateway
from remitdex.bridge import BridgeClient, BridgeResult
from remitdex.corridors import (
    QUOTE_FROM_ADDRESS,
    SETTLEMENT_ASSET,
    SETTLEMENT_CURRENCY,
    SETTLEMENT_NETWORK,
    SUPPORTED_CORRIDORS,
    AnchorConfig,
    Corridor,
    estimate_delivery_minutes,
    find_anchor_for_corridor,
    get_anchor,
    get_chain_id,
    get_exchange_rate,
    get_wrapped_settlement_token,
    resolve_token,
)
from remitdex.delivery.errors import DeliveryError, classify, user_message
from remitdex.delivery.handler import DeliveryErrorHandler
from remitdex.delivery.methods import DeliveryMethod, DeliveryMethodRegistry
from remitdex.delivery.recipients import parse_recipient_details
from remitdex.delivery.retry import RetryStatus, SettlementProgress
from remitdex.errors import (
    BridgeTimeout,
    DeliveryValidationError,
    InvalidAmount,
    InvalidDeliveryMethod,
    NoAnchorAvailable,
    RateUnavailable,
    RemittanceFailed,
    UnsupportedChain,
    UnsupportedToken,
)
from remitdex.monitoring.metrics import MetricsCollector
from remitdex.notifications.base import EventType, NotificationEvent, NotificationPort
from remitdex.orders.models import (
    Order,
    OrderStatus,
    Recipient,
    Sender,
    generate_order_id,
)
from remitdex.orders.store import InMemoryOrderStore
from remitdex.routing.base import AggregatorClient, Quote, RouteStep, StepKind, require_evm_address

logger = logging.getLogger(__name__)

SWAP_FEE = Decimal("0.003")
BRIDGE_FEE = Decimal("0.001")
ANCHOR_FEE = Decimal("0.005")

SWAP_MINUTES = 1
BRIDGE_MINUTES = 2

SWAP_PROTOCOL = "1inch"
BRIDGE_PROTOCOL = "HTLC"

DEFAULT_DELIVERY_METHOD = "bank_transfer"

CENTS = Decimal("0.01")


class RemittanceOrchestrator:
    """Quotes and executes cross-chain remittances."""

    def __init__(
        self,
        aggregator: AggregatorClient,
        bridge: BridgeClient,
        anchors: AnchorGateway,
        store: InMemoryOrderStore,
        error_handler: DeliveryErrorHandler,
        metrics: MetricsCollector,
        notifier: NotificationPort,
        registry: Optional[DeliveryMethodRegistry] = None,
        origin_country: str = "US",
        slippage: float = 1.0,
    ):
        self.aggregator = aggregator
        self.bridge = bridge
        self.anchors = anchors
        self.store = store
        self.error_handler = error_handler
        self.metrics = metrics
        self.notifier = notifier
        self.registry = registry or DeliveryMethodRegistry()
        self.origin_country = origin_country.upper()
        self.slippage = slippage

        error_handler.set_retry_callback(self._retry_order)

    # ======================
    # Quotes
    # ======================

    async def get_quote(
        self,
        source_chain: str,
        source_token: str,
        source_amount: Union[Decimal, str, int],
        dest_country: str,
        dest_currency: str,
        delivery_method: Optional[str] = None,
    ) -> Quote:
        """Price a remittance. Read-only; identical inputs give equal quotes."""
        amount = Decimal(str(source_amount))
        if amount <= 0:
            raise InvalidAmount(source_amount)

        chain = source_chain.lower()
        dest_country = dest_country.upper()
        dest_currency = dest_currency.upper()
        method = delivery_method or DEFAULT_DELIVERY_METHOD

        anchor = find_anchor_for_corridor(self.origin_country, dest_country, dest_currency)
        if anchor is None:
            raise NoAnchorAvailable(dest_country, dest_currency)

        settlement_token = get_wrapped_settlement_token(chain)
        chain_id = get_chain_id(chain)
        if settlement_token is None or chain_id is None:
            raise UnsupportedChain(chain)

        token = resolve_token(chain, source_token)
        if token is None:
            raise UnsupportedToken(chain, source_token)

        rate = get_exchange_rate(SETTLEMENT_CURRENCY, dest_currency)
        if rate is None:
            raise RateUnavailable(SETTLEMENT_CURRENCY, dest_currency)

        base_amount = int(
            (amount * (Decimal(10) ** token.decimals)).to_integral_value(rounding=ROUND_DOWN)
        )
        aggregator_quote = await self.aggregator.get_quote(
            chain_id=chain_id,
            src_token=token.address,
            dst_token=settlement_token.address,
            amount=base_amount,
            from_address=QUOTE_FROM_ADDRESS,
            slippage=self.slippage,
        )
        settlement_amount = Decimal(aggregator_quote.dst_amount) / (
            Decimal(10) ** settlement_token.decimals
        )

        route = (
            RouteStep(
                kind=StepKind.SWAP,
                source=f"{chain}:{token.symbol}",
                destination=f"{chain}:{SETTLEMENT_ASSET}",
                protocol=SWAP_PROTOCOL,
                fee=SWAP_FEE,
                estimated_minutes=SWAP_MINUTES,
            ),
            RouteStep(
                kind=StepKind.BRIDGE,
                source=f"{chain}:{SETTLEMENT_ASSET}",
                destination=f"{SETTLEMENT_NETWORK}:{SETTLEMENT_ASSET}",
                protocol=BRIDGE_PROTOCOL,
                fee=BRIDGE_FEE,
                estimated_minutes=BRIDGE_MINUTES,
            ),
            RouteStep(
                kind=StepKind.ANCHOR_PAYOUT,
                source=f"{SETTLEMENT_NETWORK}:{SETTLEMENT_ASSET}",
                destination=f"{method}:{dest_currency}",
                protocol=anchor.code,
                fee=ANCHOR_FEE,
                estimated_minutes=estimate_delivery_minutes(anchor.code, method),
            ),
        )

        fee_fraction = sum((step.fee for step in route), Decimal("0"))
        dest_amount = (settlement_amount * rate * (1 - fee_fraction)).quantize(
            CENTS, rounding=ROUND_HALF_UP
        )

        quote = Quote(
            source_chain=chain,
            source_token=token.symbol,
            source_amount=amount,
            dest_country=dest_country,
            dest_currency=dest_currency,
            dest_amount=dest_amount,
            exchange_rate=rate,
            total_fees=fee_fraction * 100,
            estimated_minutes=sum(step.estimated_minutes for step in route),
            route=route,
            anchor_code=anchor.code,
            delivery_method=method,
            settlement_amount=settlement_amount,
        )

        logger.info(
            f"Quote {amount} {token.symbol} ({chain}) -> {dest_amount} {dest_currency} "
            f"via {anchor.code}/{method}, fees {quote.total_fees}%"
        )
        return quote

    # ======================
    # Execution
    # ======================

    async def execute_remittance(
        self,
        quote: Quote,
        sender_address: str,
        recipient_details: Any,
    ) -> Order:
        """Execute a quote. The returned order is always ``completed``.

        Raises:
            InvalidAddress, NoAnchorAvailable, InvalidDeliveryMethod,
            DeliveryValidationError: before any order exists
            RemittanceFailed: pipeline failure; the order is already ``failed``
        """
        require_evm_address(sender_address, "sender address")

        anchor = get_anchor(quote.anchor_code)
        if anchor is None:
            raise NoAnchorAvailable(quote.dest_country, quote.dest_currency)

        details = parse_recipient_details(recipient_details)
        method = details.delivery_method
        if not anchor.supports_method(method):
            raise InvalidDeliveryMethod(method, f"not offered by {anchor.code}")

        delivery_method = self.registry.find(quote.dest_country, quote.dest_currency, method)
        if delivery_method is None:
            raise InvalidDeliveryMethod(
                method, f"not available for {quote.dest_country}/{quote.dest_currency}"
            )

        errors = self.registry.validate(delivery_method.id, quote.dest_amount, details.to_field_values())
        if errors:
            raise DeliveryValidationError(delivery_method.id, errors)

        order = Order(
            id=generate_order_id(),
            sender=Sender(address=sender_address, chain=quote.source_chain),
            recipient=Recipient(
                name=details.name,
                country=quote.dest_country,
                currency=quote.dest_currency,
                details=details,
            ),
            quote=quote,
        )
        await self.store.save(order)

        order.transition(OrderStatus.PROCESSING)
        await self.store.save(order)
        logger.info(f"Order {order.id} processing: {quote.source_amount} {quote.source_token} -> {quote.dest_currency}")

        progress = SettlementProgress()
        try:
            payout = await self._run_pipeline(order, progress)
        except Exception as e:
            error = classify(e)
            self._apply_progress(order, progress)
            await self._fail(order, error)
            self.error_handler.track_progress(order.id, progress)
            try:
                await self.error_handler.handle_failure(order.id, e, error)
            except Exception as handler_error:
                logger.error(f"Failure handling for order {order.id} raised: {handler_error}")
            raise RemittanceFailed(user_message(error), error.kind, order) from None

        self._apply_progress(order, progress)
        order.payout_tx_id = payout.transaction_id
        order.payout_protocol = payout.protocol
        order.interactive_url = payout.interactive_url
        order.transition(OrderStatus.COMPLETED)
        await self.store.save(order)
        self.metrics.record_order(order)

        logger.info(f"Order {order.id} completed: payout {payout.transaction_id} ({payout.protocol.value})")
        await self._notify(
            NotificationEvent(
                type=EventType.ORDER_COMPLETED,
                order_id=order.id,
                payload={
                    "payout_tx_id": payout.transaction_id,
                    "protocol": payout.protocol.value,
                    "dest_amount": str(quote.dest_amount),
                    "dest_currency": quote.dest_currency,
                },
            )
        )
        return order

    async def _notify(self, event: NotificationEvent) -> None:
        try:
            await self.notifier.notify(event)
        except Exception as e:
            logger.error(f"Failed to send {event.type.value} for order {event.order_id}: {e}")

    async def _fail(self, order: Order, error: DeliveryError) -> None:
        order.mark_failed(error.kind)
        await self.store.save(order)
        self.metrics.record_order(order)

    @staticmethod
    def _apply_progress(order: Order, progress: SettlementProgress) -> None:
        order.bridge_tx_id = progress.bridge_tx_id
        order.settlement_tx_hash = progress.settlement_tx_hash
        order.settlement_account = progress.settlement_account

    async def _run_pipeline(self, order: Order, progress: SettlementProgress) -> PayoutResult:
        """Swap-build, bridge, then payout, recording bridge results in ``progress``.

        A settled ``progress`` skips straight to the payout; a submitted but
        unconfirmed transfer is resumed rather than bridged again.
        """
        if not progress.is_settled:
            if progress.bridge_tx_id:
                result = await self.bridge.resume(progress.bridge_tx_id)
            else:
                await self._build_swap(order)
                result = await self._bridge(order, progress)
            progress.bridge_tx_id = result.bridge_tx_id
            progress.settlement_tx_hash = result.settlement_tx_hash
            progress.settlement_account = result.settlement_account
        return await self._payout(order, progress.settlement_account)

    async def _build_swap(self, order: Order) -> None:
        quote = order.quote
        token = resolve_token(quote.source_chain, quote.source_token)
        settlement_token = get_wrapped_settlement_token(quote.source_chain)
        chain_id = get_chain_id(quote.source_chain)
        if token is None:
            raise UnsupportedToken(quote.source_chain, quote.source_token)
        if settlement_token is None or chain_id is None:
            raise UnsupportedChain(quote.source_chain)

        base_amount = int(
            (quote.source_amount * (Decimal(10) ** token.decimals)).to_integral_value(rounding=ROUND_DOWN)
        )
        swap = await self.aggregator.build_swap(
            chain_id=chain_id,
            src_token=token.address,
            dst_token=settlement_token.address,
            amount=base_amount,
            from_address=order.sender.address,
            slippage=self.slippage,
        )
        logger.debug(f"Order {order.id}: swap transaction built ({len(swap.tx)} fields)")

    async def _bridge(self, order: Order, progress: SettlementProgress) -> BridgeResult:
        try:
            return await self.bridge.bridge(
                order.sender.address,
                order.quote.settlement_amount,
                order.quote.source_chain,
            )
        except BridgeTimeout as e:
            # Submitted transfer may still settle; keep its id for resume
            progress.bridge_tx_id = e.bridge_tx_id
            raise

    def _resolve_payout_anchor(self, quote: Quote) -> AnchorConfig:
        anchor = find_anchor_for_corridor(self.origin_country, quote.dest_country, quote.dest_currency)
        if anchor is None:
            raise NoAnchorAvailable(quote.dest_country, quote.dest_currency)
        return anchor

    async def _payout(self, order: Order, settlement_account: Optional[str]) -> PayoutResult:
        anchor = self._resolve_payout_anchor(order.quote)
        return await self.anchors.payout(
            anchor,
            asset_code=order.quote.dest_currency,
            amount=order.quote.dest_amount,
            details=order.recipient.details,
            settlement_account=settlement_account or "",
        )

    # ======================
    # Retries
    # ======================

    async def _retry_order(
        self,
        order_id: str,
        attempt: int,
        max_attempts: int,
        error: DeliveryError,
    ) -> None:
        """Re-run the idempotent remainder of a failed order's pipeline.

        The stored order is left exactly as it failed. Bridge results from the
        retry go to the scheduler's settlement records; a successful retry is
        recorded as a recovery, a failed one goes back through the handler.
        """
        order = await self.store.get(order_id)
        if order is None:
            logger.warning(f"Retry fired for unknown order {order_id}")
            return

        progress = self.error_handler.get_progress(order_id)
        if progress is None:
            progress = SettlementProgress(
                bridge_tx_id=order.bridge_tx_id,
                settlement_tx_hash=order.settlement_tx_hash,
                settlement_account=order.settlement_account,
            )
            self.error_handler.track_progress(order_id, progress)

        if progress.is_settled:
            stage = "payout"
        elif progress.bridge_tx_id:
            stage = f"bridge confirmation {progress.bridge_tx_id} and payout"
        else:
            stage = "swap, bridge and payout"
        logger.info(f"Retrying order {order_id} ({stage}), attempt {attempt}/{max_attempts}")

        try:
            payout = await self._run_pipeline(order, progress)
        except Exception as e:
            await self.error_handler.handle_failure(order_id, e)
            return

        logger.info(f"Order {order_id} recovered on attempt {attempt}: payout {payout.transaction_id}")
        await self.error_handler.record_recovery(order_id, payout.transaction_id, attempt)

    def cancel_retries(self, order_id: str) -> None:
        self.error_handler.cancel_retries(order_id)

    def get_retry_status(self, order_id: str) -> RetryStatus:
        return self.error_handler.get_retry_status(order_id)

    # ======================
    # Queries
    # ======================

    async def get_order_status(self, order_id: str) -> Optional[Order]:
        return await self.store.get(order_id)

    async def get_orders_for_sender(self, address: str) -> list[Order]:
        return await self.store.list_for_sender(address)

    def get_supported_corridors(self) -> list[Corridor]:
        return list(SUPPORTED_CORRIDORS)

    def get_delivery_methods(self, country: str, currency: str) -> list[DeliveryMethod]:
        return self.registry.get_available(country, currency)

    async def get_payout_status(self, order_id: str) -> Optional[OrderStatus]:
        """Poll the anchor for an order's payout. Never modifies the order."""
        order = await self.store.get(order_id)
        if order is None or not order.payout_tx_id or order.payout_protocol is None:
            return None

        anchor = get_anchor(order.quote.anchor_code)
        if anchor is None:
            return None

        transaction = await self.anchors.get_transaction(anchor, order.payout_tx_id, order.payout_protocol)
        return transaction.normalized_status

    async def shutdown(self) -> None:
        """Cancel pending retry timers."""
        await self.error_handler.scheduler.shutdown()
