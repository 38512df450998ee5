"""Simulated anchors for dry-run mode.

Both protocols keep their transactions in memory. ``fail_next`` queues an
exception for the next withdrawal so failure paths can be exercised without
a network.
"""

import logging
import secrets
from typing import Any

from remitdex.anchors.base import (
    AnchorTransaction,
    InteractiveAnchorClient,
    InteractiveWithdrawal,
    SyncAnchorClient,
    WithdrawResponse,
)
from remitdex.corridors import AnchorConfig

logger = logging.getLogger(__name__)


class _FailureQueue:
    def __init__(self):
        self._failures: list[BaseException] = []

    def fail_next(self, exc: BaseException, times: int = 1) -> None:
        """Raise ``exc`` on the next ``times`` withdrawals."""
        self._failures.extend([exc] * times)

    def _maybe_fail(self) -> None:
        if self._failures:
            raise self._failures.pop(0)


class SimulatedSyncAnchor(_FailureQueue, SyncAnchorClient):
    """Programmatic anchor stub: withdrawals complete immediately."""

    def __init__(self):
        super().__init__()
        self._tokens: dict[str, str] = {}
        self.transactions: dict[str, dict] = {}

    async def authenticate(self, anchor: AnchorConfig, account: str) -> str:
        token = self._tokens.get(anchor.code)
        if not token:
            token = f"sim-{secrets.token_hex(16)}"
            self._tokens[anchor.code] = token
        return token

    async def get_info(self, anchor: AnchorConfig) -> dict:
        return {
            "withdraw": {
                currency: {
                    "enabled": True,
                    "min_amount": float(anchor.minimum_amount),
                    "max_amount": float(anchor.maximum_amount),
                    "types": {method: {"fields": {}} for method in anchor.withdraw_methods},
                }
                for currency in anchor.supported_currencies
            }
        }

    async def withdraw(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: str,
        type: str,
        account: str,
        fields: dict[str, str],
    ) -> WithdrawResponse:
        await self.authenticate(anchor, account)
        self._maybe_fail()

        tx_id = f"{anchor.code.lower()}-{secrets.token_hex(8)}"
        self.transactions[tx_id] = {
            "id": tx_id,
            "kind": "withdrawal",
            "status": "completed",
            "amount_in": amount,
            "amount_out": amount,
            "amount_fee": "0",
            "asset_code": asset_code,
            "type": type,
            "dest": fields.get("dest"),
        }
        logger.info(f"[dry-run] SEP-6 withdrawal {tx_id}: {amount} {asset_code} via {type}")
        return WithdrawResponse(id=tx_id, account_id=account, memo=tx_id[:28], memo_type="text")

    async def get_transaction(self, anchor: AnchorConfig, transaction_id: str) -> AnchorTransaction:
        tx = self.transactions.get(transaction_id, {"id": transaction_id, "status": "incomplete"})
        return AnchorTransaction.from_response({"transaction": tx})


class SimulatedInteractiveAnchor(_FailureQueue, InteractiveAnchorClient):
    """Interactive anchor stub: withdrawals wait for the customer."""

    def __init__(self, authentication_required: bool = False):
        super().__init__()
        self.authentication_required = authentication_required
        self.transactions: dict[str, dict] = {}

    async def get_info(self, anchor: AnchorConfig) -> dict:
        return {
            "withdraw": {
                currency: {
                    "enabled": True,
                    "authentication_required": self.authentication_required,
                }
                for currency in anchor.supported_currencies
            },
            "fee": {"enabled": False},
        }

    async def withdraw_interactive(
        self,
        anchor: AnchorConfig,
        asset_code: str,
        amount: str,
        account: str,
        sep9_fields: dict[str, Any],
    ) -> InteractiveWithdrawal:
        self._maybe_fail()

        tx_id = secrets.token_hex(16)
        self.transactions[tx_id] = {
            "id": tx_id,
            "kind": "withdrawal",
            "status": "pending_user_transfer_start",
            "amount_in": amount,
            "asset_code": asset_code,
        }
        url = f"https://{anchor.domain}/sep24/withdraw/interactive?id={tx_id}"
        logger.info(f"[dry-run] SEP-24 withdrawal {tx_id}: {amount} {asset_code}")
        return InteractiveWithdrawal(id=tx_id, url=url)

    async def get_transaction(self, anchor: AnchorConfig, transaction_id: str) -> AnchorTransaction:
        tx = self.transactions.get(transaction_id, {"id": transaction_id, "status": "incomplete"})
        return AnchorTransaction.from_response({"transaction": tx})

    def complete(self, transaction_id: str, status: str = "completed") -> None:
        """Advance a simulated transaction, as the customer finishing the flow would."""
        if transaction_id in self.transactions:
            self.transactions[transaction_id]["status"] = status
