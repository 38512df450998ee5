"""Interactive (hosted) anchor withdrawals (SEP-24)."""

import logging
from typing import Any, Optional

import httpx

from remitdex.anchors.base import (
    AnchorTransaction,
    InteractiveAnchorClient,
    InteractiveWithdrawal,
    request_json,
)
from remitdex.corridors import AnchorConfig
from remitdex.errors import AnchorError

logger = logging.getLogger(__name__)


class Sep24AnchorClient(InteractiveAnchorClient):
    """SEP-24 client: starts hosted withdrawals and polls their status."""

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    def _url(self, anchor: AnchorConfig, path: str) -> str:
        return f"{anchor.api_endpoint.rstrip('/')}{path}"

    async def get_info(self, anchor: AnchorConfig) -> dict:
        return await request_json(
            "GET",
            self._url(anchor, "/sep24/info"),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def withdraw_interactive(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: str,
        account: str,
        sep9_fields: dict[str, Any],
    ) -> InteractiveWithdrawal:
        """Start a hosted withdrawal, pre-filling KYC fields as ``sep9_*``."""
        payload: dict[str, Any] = {
            "asset_code": asset_code,
            "account": account,
        }
        if amount:
            payload["amount"] = amount
        for key, value in sep9_fields.items():
            if value:
                payload[f"sep9_{key}"] = value

        data = await request_json(
            "POST",
            self._url(anchor, "/sep24/transactions/withdraw/interactive"),
            timeout=self.timeout,
            transport=self._transport,
            json=payload,
        )

        if not data.get("id") or not data.get("url"):
            raise AnchorError(
                f"{anchor.code} returned an incomplete interactive response",
                code="INVALID_RESPONSE",
            )

        logger.info(f"SEP-24 withdrawal {data['id']} started at {anchor.code}")
        return InteractiveWithdrawal(id=data["id"], url=data["url"])

    async def get_transaction(self, anchor: AnchorConfig, transaction_id: str) -> AnchorTransaction:
        data = await request_json(
            "GET",
            self._url(anchor, "/sep24/transaction"),
            timeout=self.timeout,
            transport=self._transport,
            params={"id": transaction_id},
        )
        return AnchorTransaction.from_response(data)
