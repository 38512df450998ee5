"""Tests for the settlement bridge."""

from decimal import Decimal

import pytest

from remitdex.bridge import SimulatedBridge, estimate_fee
from remitdex.errors import BridgeTimeout


class TestBridge:
    @pytest.mark.asyncio
    async def test_bridge_settles(self):
        bridge = SimulatedBridge(settlement_account="GSETTLE")

        result = await bridge.bridge("0x742d35Cc6634C0532925a3b844Bc454e4438f44e", Decimal("99.7"), "ethereum")

        assert result.bridge_tx_id.startswith("HTLC-")
        assert len(result.settlement_tx_hash) == 64
        assert result.settlement_account == "GSETTLE"
        assert await bridge.check_status(result.bridge_tx_id) == "completed"

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self):
        bridge = SimulatedBridge(confirmation_timeout=0.01, confirmation_delay=1.0)

        with pytest.raises(BridgeTimeout) as exc_info:
            await bridge.bridge("0x742d35Cc6634C0532925a3b844Bc454e4438f44e", Decimal("10"), "polygon")

        assert exc_info.value.code == "ETIMEDOUT"
        transfer_id = next(iter(bridge._transfers))
        assert await bridge.check_status(transfer_id) == "pending"

    @pytest.mark.asyncio
    async def test_unknown_transfer(self):
        assert await SimulatedBridge().check_status("HTLC-missing") == "unknown"

    def test_random_settlement_account(self):
        account = SimulatedBridge().settlement_account

        assert account.startswith("G")
        assert len(account) == 56

    @pytest.mark.parametrize(
        "amount,fee",
        [("0", "0.50"), ("100", "0.60"), ("1000", "1.50"), ("12.345", "0.51")],
    )
    def test_estimate_fee(self, amount, fee):
        assert estimate_fee(Decimal(amount)) == Decimal(fee)
        assert SimulatedBridge().estimate_fee(Decimal(amount)) == Decimal(fee)

    @pytest.mark.asyncio
    async def test_submit_timeout_has_no_transfer(self):
        bridge = SimulatedBridge(submit_timeout=0.01, submit_delay=1.0)

        with pytest.raises(BridgeTimeout) as exc_info:
            await bridge.bridge("0x742d35Cc6634C0532925a3b844Bc454e4438f44e", Decimal("10"), "polygon")

        assert exc_info.value.bridge_tx_id is None
        assert "submit" in str(exc_info.value)
        assert bridge._transfers == {}

    @pytest.mark.asyncio
    async def test_resume_after_confirmation_timeout(self):
        bridge = SimulatedBridge(confirmation_timeout=0.01, confirmation_delay=1.0)

        with pytest.raises(BridgeTimeout) as exc_info:
            await bridge.bridge("0x742d35Cc6634C0532925a3b844Bc454e4438f44e", Decimal("10"), "polygon")

        transfer_id = exc_info.value.bridge_tx_id
        assert list(bridge._transfers) == [transfer_id]

        bridge.confirmation_delay = 0
        result = await bridge.resume(transfer_id)

        assert result.bridge_tx_id == transfer_id
        assert await bridge.check_status(transfer_id) == "completed"
        assert len(bridge._transfers) == 1
