"""Remittance order model and its status state machine."""

import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from remitdex.delivery.errors import DeliveryErrorKind
from remitdex.delivery.recipients import BankTransferDetails, EWalletDetails, MobileMoneyDetails
from remitdex.errors import InvalidStatusTransition
from remitdex.routing.base import Quote

_BASE36 = string.digits + string.ascii_lowercase


class OrderStatus(str, Enum):
    """Order state machine states."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.FAILED)


ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.FAILED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.FAILED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.FAILED: set(),
}


class PayoutProtocol(str, Enum):
    SYNC = "sync"  # SEP-6
    INTERACTIVE = "interactive"  # SEP-24


def generate_order_id() -> str:
    """RMT-<ms timestamp>-<9 random base36 chars>."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"RMT-{int(time.time() * 1000)}-{suffix}"


@dataclass
class Sender:
    address: str
    chain: str


@dataclass
class Recipient:
    name: str
    country: str
    currency: str
    details: Union[BankTransferDetails, MobileMoneyDetails, EWalletDetails]


@dataclass
class Order:
    """A remittance order.

    Created in ``pending`` and mutated only by the pipeline run that owns it.
    """

    id: str
    sender: Sender
    recipient: Recipient
    quote: Quote
    status: OrderStatus = OrderStatus.PENDING
    bridge_tx_id: Optional[str] = None
    settlement_tx_hash: Optional[str] = None
    settlement_account: Optional[str] = None
    payout_tx_id: Optional[str] = None
    payout_protocol: Optional[PayoutProtocol] = None
    interactive_url: Optional[str] = None
    error_kind: Optional[DeliveryErrorKind] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def transition(self, target: OrderStatus) -> None:
        """Move to ``target``, rejecting backward or post-terminal moves."""
        if target not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidStatusTransition(self.id, self.status.value, target.value)
        self.status = target
        if target == OrderStatus.COMPLETED:
            self.completed_at = datetime.now(timezone.utc)

    def mark_failed(self, kind: DeliveryErrorKind) -> None:
        self.transition(OrderStatus.FAILED)
        self.error_kind = kind

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "sender": {"address": self.sender.address, "chain": self.sender.chain},
            "recipient": {
                "name": self.recipient.name,
                "country": self.recipient.country,
                "currency": self.recipient.currency,
                "delivery_method": self.recipient.details.delivery_method,
            },
            "quote": self.quote.to_dict(),
            "bridge_tx_id": self.bridge_tx_id,
            "settlement_tx_hash": self.settlement_tx_hash,
            "settlement_account": self.settlement_account,
            "payout_tx_id": self.payout_tx_id,
            "payout_protocol": self.payout_protocol.value if self.payout_protocol else None,
            "interactive_url": self.interactive_url,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "created_at": self.created_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }
