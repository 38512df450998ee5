"""Anchor client interfaces, shared response types and HTTP plumbing."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from remitdex.corridors import AnchorConfig
from remitdex.errors import AnchorError, transport_error_code
from remitdex.orders.models import OrderStatus, PayoutProtocol

logger = logging.getLogger(__name__)


def normalize_anchor_status(status: Optional[str]) -> OrderStatus:
    """Map anchor transaction status vocabulary onto order statuses."""
    if status == "completed":
        return OrderStatus.COMPLETED
    if status in ("error", "expired"):
        return OrderStatus.FAILED
    # incomplete, pending_* and anything unknown
    return OrderStatus.PROCESSING


@dataclass(frozen=True)
class WithdrawResponse:
    """Programmatic (SEP-6) withdrawal instructions."""

    id: str
    account_id: Optional[str] = None
    memo: Optional[str] = None
    memo_type: Optional[str] = None
    eta: Optional[int] = None


@dataclass(frozen=True)
class InteractiveWithdrawal:
    """Interactive (SEP-24) withdrawal: the customer finishes at ``url``."""

    id: str
    url: str


@dataclass(frozen=True)
class AnchorTransaction:
    id: str
    status: str
    amount_in: Optional[str] = None
    amount_out: Optional[str] = None
    amount_fee: Optional[str] = None
    message: Optional[str] = None
    raw: dict = field(default_factory=dict, compare=False)

    @property
    def normalized_status(self) -> OrderStatus:
        return normalize_anchor_status(self.status)

    @classmethod
    def from_response(cls, data: dict) -> "AnchorTransaction":
        tx = data.get("transaction", data)
        return cls(
            id=str(tx.get("id", "")),
            status=tx.get("status", ""),
            amount_in=tx.get("amount_in"),
            amount_out=tx.get("amount_out"),
            amount_fee=tx.get("amount_fee"),
            message=tx.get("message"),
            raw=tx,
        )


@dataclass(frozen=True)
class PayoutResult:
    transaction_id: str
    protocol: PayoutProtocol
    interactive_url: Optional[str] = None


class SyncAnchorClient(ABC):
    """Programmatic withdrawal protocol (SEP-6 style)."""

    @abstractmethod
    async def authenticate(self, anchor: AnchorConfig, account: str) -> str:
        """Obtain (and cache) an auth token for ``account`` at ``anchor``."""
        pass

    @abstractmethod
    async def get_info(self, anchor: AnchorConfig) -> dict:
        pass

    @abstractmethod
    async def withdraw(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: str,
        type: str,
        account: str,
        fields: dict[str, str],
    ) -> WithdrawResponse:
        """Start a withdrawal; ``fields`` carries ``dest``/``dest_extra``."""
        pass

    @abstractmethod
    async def get_transaction(self, anchor: AnchorConfig, transaction_id: str) -> AnchorTransaction:
        pass


class InteractiveAnchorClient(ABC):
    """Interactive withdrawal protocol (SEP-24 style)."""

    @abstractmethod
    async def get_info(self, anchor: AnchorConfig) -> dict:
        pass

    @abstractmethod
    async def withdraw_interactive(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: str,
        account: str,
        sep9_fields: dict[str, Any],
    ) -> InteractiveWithdrawal:
        pass

    @abstractmethod
    async def get_transaction(self, anchor: AnchorConfig, transaction_id: str) -> AnchorTransaction:
        pass


async def request_json(
    method: str,
    url: str,
    *,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    headers: Optional[dict] = None,
    params: Optional[dict] = None,
    json: Optional[dict] = None,
) -> dict:
    """Perform one anchor HTTP call and convert failures into AnchorError.

    Transport failures carry socket-style codes (ETIMEDOUT, ECONNREFUSED...);
    error responses carry the anchor's ``error_code`` when it sends one.
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.request(method, url, headers=headers, params=params, json=json)
    except httpx.TransportError as e:
        code = transport_error_code(e)
        logger.warning(f"Anchor request {method} {url} failed: {type(e).__name__} ({code})")
        raise AnchorError(f"Anchor request failed: {type(e).__name__}", code=code) from e

    if response.status_code >= 400:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        detail = body.get("error") or f"HTTP {response.status_code}"
        code = body.get("error_code")
        if body.get("type") == "non_interactive_customer_info_needed":
            code = code or "NEEDS_INFO"
        logger.warning(f"Anchor error from {url}: {response.status_code} - {detail}")
        raise AnchorError(
            f"Anchor error: {detail}",
            code=code,
            status_code=response.status_code,
            required_info=body.get("fields"),
        )

    return response.json()
