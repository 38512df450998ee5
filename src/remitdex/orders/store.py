"""In-memory order store with a per-sender index."""

import asyncio
import logging
from typing import Optional

from remitdex.orders.models import Order

logger = logging.getLogger(__name__)


class InMemoryOrderStore:
    """Order map keyed by id plus a sender-address index.

    One asyncio.Lock guards both maps so an insert and its index update are
    seen together by concurrent pipelines.
    """

    def __init__(self):
        self._orders: dict[str, Order] = {}
        self._by_sender: dict[str, list[str]] = {}
        self._lock = asyncio.Lock()

    async def save(self, order: Order) -> None:
        """Insert or update an order."""
        async with self._lock:
            is_new = order.id not in self._orders
            self._orders[order.id] = order
            if is_new:
                key = order.sender.address.lower()
                self._by_sender.setdefault(key, []).append(order.id)
                logger.debug(f"Order {order.id} stored for sender {key}")

    async def get(self, order_id: str) -> Optional[Order]:
        async with self._lock:
            return self._orders.get(order_id)

    async def list_for_sender(self, address: str) -> list[Order]:
        """Orders created by a sender, oldest first."""
        async with self._lock:
            ids = self._by_sender.get(address.lower(), [])
            return [self._orders[order_id] for order_id in ids]

    async def count(self) -> int:
        async with self._lock:
            return len(self._orders)
