"""Quote and route types plus the abstract DEX aggregator interface."""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from remitdex.errors import InvalidAddress

logger = logging.getLogger(__name__)

EVM_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_evm_address(address: str) -> bool:
    return bool(address) and EVM_ADDRESS_PATTERN.match(address) is not None


def require_evm_address(address: str, role: str = "address") -> str:
    """Raise InvalidAddress unless ``address`` is a 0x-prefixed 20-byte hex string."""
    if not is_evm_address(address):
        raise InvalidAddress(address, role)
    return address


class StepKind(str, Enum):
    """Legs of a remittance route."""

    SWAP = "swap"
    BRIDGE = "bridge"
    ANCHOR_PAYOUT = "anchor_payout"


@dataclass(frozen=True)
class RouteStep:
    """One leg of a quote's execution plan."""

    kind: StepKind
    source: str  # "<network>:<asset>"
    destination: str
    protocol: str
    fee: Decimal  # fraction, 0.003 = 0.3%
    estimated_minutes: int


@dataclass(frozen=True)
class Quote:
    """A remittance quote: three chained legs ending in a local-currency payout."""

    source_chain: str
    source_token: str
    source_amount: Decimal
    dest_country: str
    dest_currency: str
    dest_amount: Decimal
    exchange_rate: Decimal
    total_fees: Decimal  # percent
    estimated_minutes: int
    route: tuple[RouteStep, ...]
    anchor_code: str
    delivery_method: str
    settlement_amount: Decimal

    @property
    def total_fee_fraction(self) -> Decimal:
        return self.total_fees / 100

    def step(self, kind: StepKind) -> Optional[RouteStep]:
        for step in self.route:
            if step.kind == kind:
                return step
        return None

    def to_dict(self) -> dict:
        """Convert to dictionary for display or export."""
        return {
            "source_chain": self.source_chain,
            "source_token": self.source_token,
            "source_amount": str(self.source_amount),
            "dest_country": self.dest_country,
            "dest_currency": self.dest_currency,
            "dest_amount": str(self.dest_amount),
            "exchange_rate": str(self.exchange_rate),
            "total_fees": str(self.total_fees),
            "estimated_minutes": self.estimated_minutes,
            "anchor_code": self.anchor_code,
            "delivery_method": self.delivery_method,
            "route": [
                {
                    "kind": step.kind.value,
                    "from": step.source,
                    "to": step.destination,
                    "protocol": step.protocol,
                    "fee": str(step.fee),
                    "estimated_minutes": step.estimated_minutes,
                }
                for step in self.route
            ],
        }


@dataclass
class AggregatorQuote:
    """Indicative swap quote from a DEX aggregator (amounts in base units)."""

    dst_amount: int
    estimated_gas: int = 0
    protocols: list = field(default_factory=list)


@dataclass
class SwapTransaction:
    """Unsigned swap transaction payload, signed client-side."""

    tx: dict
    dst_amount: Optional[int] = None


class AggregatorClient(ABC):
    """Abstract DEX aggregation client."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    async def get_quote(
        self,
        chain_id: int,
        src_token: str,
        dst_token: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> AggregatorQuote:
        """
        Get an indicative swap quote.

        Args:
            chain_id: EVM chain ID
            src_token: Source token contract address
            dst_token: Destination token contract address
            amount: Amount of src_token in base units
            from_address: Address the swap would be sent from
            slippage: Slippage tolerance in percent

        Returns:
            AggregatorQuote with dst_amount in base units
        """
        pass

    @abstractmethod
    async def build_swap(
        self,
        chain_id: int,
        src_token: str,
        dst_token: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> SwapTransaction:
        """Build the swap transaction for the sender to sign."""
        pass

    @staticmethod
    def validate_tokens(src_token: str, dst_token: str) -> None:
        require_evm_address(src_token, "source token address")
        require_evm_address(dst_token, "destination token address")
