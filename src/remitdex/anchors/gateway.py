"""Anchor payout gateway: protocol selection and dispatch."""

import logging
from decimal import Decimal
from typing import Optional, Union

from remitdex.anchors.base import (
    AnchorTransaction,
    InteractiveAnchorClient,
    PayoutResult,
    SyncAnchorClient,
)
from remitdex.corridors import AnchorConfig
from remitdex.delivery.recipients import BankTransferDetails, EWalletDetails, MobileMoneyDetails
from remitdex.orders.models import PayoutProtocol

logger = logging.getLogger(__name__)

RecipientVariant = Union[BankTransferDetails, MobileMoneyDetails, EWalletDetails]


class AnchorGateway:
    """Chooses SEP-6 or SEP-24 per anchor and runs the payout.

    Protocol choice asks each advertised info endpoint in turn:
    - only one responds: use it
    - both respond and the interactive info marks the asset
      ``authentication_required``: interactive (KYC happens in the hosted flow)
    - both respond otherwise: programmatic
    - neither responds: interactive
    """

    def __init__(self, sync_client: SyncAnchorClient, interactive_client: InteractiveAnchorClient):
        self.sync_client = sync_client
        self.interactive_client = interactive_client

    async def _fetch_info(self, label: str, coro) -> Optional[dict]:
        try:
            return await coro
        except Exception as e:
            logger.debug(f"{label} info request failed: {e}")
            return None

    async def choose_protocol(self, anchor: AnchorConfig, asset_code: str) -> PayoutProtocol:
        sync_info = None
        interactive_info = None
        if anchor.sep6:
            sync_info = await self._fetch_info("SEP-6", self.sync_client.get_info(anchor))
        if anchor.sep24:
            interactive_info = await self._fetch_info("SEP-24", self.interactive_client.get_info(anchor))

        if sync_info is not None and interactive_info is None:
            return PayoutProtocol.SYNC
        if sync_info is None and interactive_info is not None:
            return PayoutProtocol.INTERACTIVE
        if sync_info is None and interactive_info is None:
            logger.warning(f"No info endpoint answered for {anchor.code}, defaulting to interactive")
            return PayoutProtocol.INTERACTIVE

        asset_info = (interactive_info.get("withdraw") or {}).get(asset_code) or {}
        if asset_info.get("authentication_required"):
            return PayoutProtocol.INTERACTIVE
        return PayoutProtocol.SYNC

    async def payout(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: Decimal,
        details: RecipientVariant,
        settlement_account: str,
    ) -> PayoutResult:
        """Start the local-currency payout for a recipient."""
        protocol = await self.choose_protocol(anchor, asset_code)
        logger.info(f"Paying out {amount} {asset_code} via {anchor.code} ({protocol.value})")

        if protocol == PayoutProtocol.SYNC:
            payload = details.to_sep6_payload()
            await self.sync_client.authenticate(anchor, settlement_account)
            response = await self.sync_client.withdraw(
                anchor,
                asset_code=asset_code,
                amount=str(amount),
                type=payload["type"],
                account=settlement_account,
                fields={"dest": payload["dest"], "dest_extra": payload["dest_extra"]},
            )
            return PayoutResult(transaction_id=response.id, protocol=protocol)

        withdrawal = await self.interactive_client.withdraw_interactive(
            anchor,
            asset_code=asset_code,
            amount=str(amount),
            account=settlement_account,
            sep9_fields=details.to_sep9_fields(),
        )
        return PayoutResult(
            transaction_id=withdrawal.id,
            protocol=protocol,
            interactive_url=withdrawal.url,
        )

    async def get_transaction(
        self,
        anchor: AnchorConfig,
        transaction_id: str,
        protocol: PayoutProtocol,
    ) -> AnchorTransaction:
        if protocol == PayoutProtocol.SYNC:
            return await self.sync_client.get_transaction(anchor, transaction_id)
        return await self.interactive_client.get_transaction(anchor, transaction_id)
