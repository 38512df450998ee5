"""Programmatic anchor withdrawals (SEP-6) with SEP-10 style auth.

Docs: https://github.com/stellar/stellar-protocol/blob/master/ecosystem/sep-0006.md
"""

import logging
from typing import Optional

import httpx

from remitdex.anchors.base import (
    AnchorTransaction,
    SyncAnchorClient,
    WithdrawResponse,
    request_json,
)
from remitdex.corridors import AnchorConfig
from remitdex.errors import AnchorError

logger = logging.getLogger(__name__)


class Sep6AnchorClient(SyncAnchorClient):
    """SEP-6 client.

    Auth tokens are cached per instance, keyed by anchor code. Challenge
    signing happens on the settlement account's side and is not modelled:
    the challenge transaction is returned as-is.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport
        self._tokens: dict[str, str] = {}

    def _url(self, anchor: AnchorConfig, path: str) -> str:
        return f"{anchor.api_endpoint.rstrip('/')}{path}"

    def _auth_headers(self, anchor: AnchorConfig) -> dict:
        token = self._tokens.get(anchor.code)
        if not token:
            raise AnchorError(f"Not authenticated with {anchor.code}", code="NOT_AUTHENTICATED")
        return {"Authorization": f"Bearer {token}"}

    def has_token(self, anchor: AnchorConfig) -> bool:
        return anchor.code in self._tokens

    async def authenticate(self, anchor: AnchorConfig, account: str) -> str:
        """Fetch a challenge, return it, and cache the issued token."""
        cached = self._tokens.get(anchor.code)
        if cached:
            return cached

        try:
            challenge = await request_json(
                "GET",
                self._url(anchor, "/auth"),
                timeout=self.timeout,
                transport=self._transport,
                params={"account": account},
            )
            signed_transaction = challenge.get("transaction")

            data = await request_json(
                "POST",
                self._url(anchor, "/auth"),
                timeout=self.timeout,
                transport=self._transport,
                json={"transaction": signed_transaction},
            )
        except AnchorError as e:
            logger.error(f"Auth failed for {anchor.code}: {e}")
            raise AnchorError(
                f"Authentication failed for {anchor.code}: {e}",
                code=e.code,
                status_code=e.status_code,
            ) from e

        token = data.get("token")
        if not token:
            raise AnchorError(f"No token issued by {anchor.code}", code="AUTH_FAILED")

        self._tokens[anchor.code] = token
        logger.info(f"Authenticated with anchor {anchor.code}")
        return token

    async def get_info(self, anchor: AnchorConfig) -> dict:
        return await request_json(
            "GET",
            self._url(anchor, "/sep6/info"),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def withdraw(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: str,
        type: str,
        account: str,
        fields: dict[str, str],
    ) -> WithdrawResponse:
        """Start a withdrawal to the recipient described by ``fields``."""
        await self.authenticate(anchor, account)

        payload = {
            "asset_code": asset_code,
            "amount": amount,
            "type": type,
            "account": account,
        }
        payload.update({k: v for k, v in fields.items() if v})

        data = await request_json(
            "POST",
            self._url(anchor, "/sep6/withdraw"),
            timeout=self.timeout,
            transport=self._transport,
            headers=self._auth_headers(anchor),
            json=payload,
        )

        if not data.get("id"):
            raise AnchorError(f"{anchor.code} returned no transaction id", code="INVALID_RESPONSE")

        logger.info(f"SEP-6 withdrawal {data['id']} created at {anchor.code}")
        return WithdrawResponse(
            id=data["id"],
            account_id=data.get("account_id"),
            memo=data.get("memo"),
            memo_type=data.get("memo_type"),
            eta=data.get("eta"),
        )

    async def get_transaction(self, anchor: AnchorConfig, transaction_id: str) -> AnchorTransaction:
        data = await request_json(
            "GET",
            self._url(anchor, "/sep6/transaction"),
            timeout=self.timeout,
            transport=self._transport,
            headers=self._auth_headers(anchor),
            params={"id": transaction_id},
        )
        return AnchorTransaction.from_response(data)
