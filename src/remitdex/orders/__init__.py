"""Remittance orders and their storage."""

from remitdex.orders.models import (
    Order,
    OrderStatus,
    PayoutProtocol,
    Recipient,
    Sender,
    generate_order_id,
)
from remitdex.orders.store import InMemoryOrderStore

__all__ = [
    "InMemoryOrderStore",
    "Order",
    "OrderStatus",
    "PayoutProtocol",
    "Recipient",
    "Sender",
    "generate_order_id",
]
