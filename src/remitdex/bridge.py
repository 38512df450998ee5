"""Bridge from the source chain onto the settlement network.

A bridge call locks value on the source chain and waits for the matching
settlement transfer to confirm. The HTLC mechanics are stubbed; only the
call contract (single attempt, bounded submit and confirmation waits) is
modelled. A transfer whose confirmation wait expired can be awaited again
with ``resume`` instead of being submitted twice.
"""

import asyncio
import base64
import logging
import secrets
import string
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from remitdex.errors import BridgeTimeout

logger = logging.getLogger(__name__)

BRIDGE_BASE_FEE = Decimal("0.50")
BRIDGE_FEE_RATE = Decimal("0.001")

_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class BridgeResult:
    bridge_tx_id: str
    settlement_tx_hash: str
    settlement_account: str


def estimate_fee(amount: Decimal) -> Decimal:
    """Bridge fee in settlement units: $0.50 plus 0.1%."""
    fee = BRIDGE_BASE_FEE + amount * BRIDGE_FEE_RATE
    return fee.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class BridgeClient(ABC):
    """Abstract bridge onto the settlement network."""

    def __init__(self, confirmation_timeout: float = 180.0, submit_timeout: float = 30.0):
        self.confirmation_timeout = confirmation_timeout
        self.submit_timeout = submit_timeout

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def _submit(self, sender: str, amount: Decimal, source_chain: str) -> str:
        """Lock funds on the source chain. Returns the bridge transfer id."""
        pass

    @abstractmethod
    async def _await_confirmation(self, bridge_tx_id: str) -> BridgeResult:
        """Wait until the settlement leg is confirmed."""
        pass

    async def bridge(self, sender: str, amount: Decimal, source_chain: str) -> BridgeResult:
        """Bridge ``amount`` settlement units from ``source_chain``.

        Single attempt; no retry here. The submit is bounded by
        ``submit_timeout`` and the confirmation wait by ``confirmation_timeout``.

        Raises:
            BridgeTimeout: Submit or settlement not confirmed in time. When the
                transfer was submitted, its id is carried on the exception.
        """
        try:
            bridge_tx_id = await asyncio.wait_for(
                self._submit(sender, amount, source_chain),
                timeout=self.submit_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"Bridge submit from {source_chain} not acknowledged within {self.submit_timeout}s")
            raise BridgeTimeout(
                self.submit_timeout,
                message=f"Bridge submit not acknowledged within {self.submit_timeout:.0f}s",
            )
        logger.info(f"Bridge transfer {bridge_tx_id} submitted: {amount} from {source_chain}")

        return await self.resume(bridge_tx_id)

    async def resume(self, bridge_tx_id: str) -> BridgeResult:
        """Wait again for an already submitted transfer to settle.

        Raises:
            BridgeTimeout: Settlement still not confirmed in time
        """
        try:
            result = await asyncio.wait_for(
                self._await_confirmation(bridge_tx_id),
                timeout=self.confirmation_timeout,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"Bridge transfer {bridge_tx_id} not confirmed within {self.confirmation_timeout}s"
            )
            raise BridgeTimeout(self.confirmation_timeout, bridge_tx_id=bridge_tx_id)

        logger.info(f"Bridge transfer {bridge_tx_id} settled: {result.settlement_tx_hash}")
        return result

    def estimate_fee(self, amount: Decimal) -> Decimal:
        return estimate_fee(amount)


class SimulatedBridge(BridgeClient):
    """Bridge stub that fabricates transfer ids and settlement hashes."""

    def __init__(
        self,
        confirmation_timeout: float = 180.0,
        confirmation_delay: float = 0.0,
        settlement_account: str = "",
        submit_timeout: float = 30.0,
        submit_delay: float = 0.0,
    ):
        super().__init__(confirmation_timeout, submit_timeout)
        self.confirmation_delay = confirmation_delay
        self.submit_delay = submit_delay
        self.settlement_account = settlement_account or self._random_account()
        self._transfers: dict[str, dict] = {}

    @property
    def name(self) -> str:
        return "simulated"

    @staticmethod
    def _random_account() -> str:
        """Random settlement-network style account (G + 55 base32 chars)."""
        raw = base64.b32encode(secrets.token_bytes(35)).decode().rstrip("=")
        return ("G" + raw)[:56]

    async def _submit(self, sender: str, amount: Decimal, source_chain: str) -> str:
        if self.submit_delay:
            await asyncio.sleep(self.submit_delay)
        suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
        bridge_tx_id = f"HTLC-{int(time.time() * 1000)}-{suffix}"
        self._transfers[bridge_tx_id] = {
            "sender": sender,
            "amount": amount,
            "source_chain": source_chain,
            "status": "pending",
        }
        return bridge_tx_id

    async def _await_confirmation(self, bridge_tx_id: str) -> BridgeResult:
        if self.confirmation_delay:
            await asyncio.sleep(self.confirmation_delay)
        self._transfers[bridge_tx_id]["status"] = "completed"
        return BridgeResult(
            bridge_tx_id=bridge_tx_id,
            settlement_tx_hash=secrets.token_hex(32),
            settlement_account=self.settlement_account,
        )

    async def check_status(self, bridge_tx_id: str) -> str:
        transfer = self._transfers.get(bridge_tx_id)
        return transfer["status"] if transfer else "unknown"
