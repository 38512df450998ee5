"""Tests for anchor clients and the payout gateway."""

import asyncio
import json
from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest

from remitdex.anchors.base import AnchorTransaction, normalize_anchor_status
from remitdex.anchors.gateway import AnchorGateway
from remitdex.anchors.sep6 import Sep6AnchorClient
from remitdex.anchors.sep24 import Sep24AnchorClient
from remitdex.corridors import ANCHORS
from remitdex.delivery.recipients import BankTransferDetails, EWalletDetails
from remitdex.errors import AnchorError
from remitdex.orders.models import OrderStatus, PayoutProtocol

CLICK = ANCHORS["CLICK_PHP"]
VIBRANT = ANCHORS["VIBRANT_USD"]
ACCOUNT = "GBSETTLEMENTACCOUNT"


def sep6_server(calls: list, withdraw_response=None):
    """Mock SEP-6 anchor: auth challenge, token, withdraw and transaction endpoints."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path
        if path == "/auth" and request.method == "GET":
            return httpx.Response(200, json={"transaction": "challenge-xdr"})
        if path == "/auth" and request.method == "POST":
            return httpx.Response(200, json={"token": "jwt-123"})
        if path == "/sep6/info":
            return httpx.Response(200, json={"withdraw": {"PHP": {"enabled": True}}})
        if path == "/sep6/withdraw":
            return withdraw_response or httpx.Response(200, json={"id": "tx-1", "account_id": ACCOUNT, "eta": 60})
        if path == "/sep6/transaction":
            return httpx.Response(200, json={"transaction": {"id": "tx-1", "status": "pending_anchor"}})
        return httpx.Response(404)

    return handler


class TestNormalizeStatus:
    """Tests for anchor status normalisation."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            ("incomplete", OrderStatus.PROCESSING),
            ("pending_user_transfer_start", OrderStatus.PROCESSING),
            ("pending_anchor", OrderStatus.PROCESSING),
            ("completed", OrderStatus.COMPLETED),
            ("error", OrderStatus.FAILED),
            ("expired", OrderStatus.FAILED),
            ("refunded", OrderStatus.PROCESSING),
            (None, OrderStatus.PROCESSING),
        ],
    )
    def test_mapping(self, status, expected):
        assert normalize_anchor_status(status) == expected

    def test_transaction_wrapper(self):
        tx = AnchorTransaction.from_response({"transaction": {"id": 42, "status": "completed", "amount_out": "10"}})

        assert tx.id == "42"
        assert tx.normalized_status == OrderStatus.COMPLETED
        assert tx.amount_out == "10"


class TestSep6AnchorClient:
    """Tests for the programmatic anchor client."""

    @pytest.mark.asyncio
    async def test_withdraw_authenticates_first(self):
        calls = []
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server(calls)))

        response = await client.withdraw(
            CLICK, "PHP", "5599.15", "gcash", ACCOUNT, {"dest": "+639171234567", "dest_extra": ""}
        )

        assert response.id == "tx-1"
        assert response.eta == 60
        assert [(c.method, c.url.path) for c in calls] == [
            ("GET", "/auth"),
            ("POST", "/auth"),
            ("POST", "/sep6/withdraw"),
        ]
        withdraw = calls[-1]
        assert withdraw.headers["Authorization"] == "Bearer jwt-123"
        body = json.loads(withdraw.content)
        assert body["type"] == "gcash"
        assert body["dest"] == "+639171234567"
        assert "dest_extra" not in body

    @pytest.mark.asyncio
    async def test_token_cached_per_anchor(self):
        calls = []
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server(calls)))

        await client.authenticate(CLICK, ACCOUNT)
        await client.authenticate(CLICK, ACCOUNT)

        assert client.has_token(CLICK)
        assert len([c for c in calls if c.url.path == "/auth"]) == 2

    @pytest.mark.asyncio
    async def test_get_transaction_requires_auth(self):
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server([])))

        with pytest.raises(AnchorError) as exc_info:
            await client.get_transaction(CLICK, "tx-1")

        assert exc_info.value.code == "NOT_AUTHENTICATED"

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server([])))
        await client.authenticate(CLICK, ACCOUNT)

        tx = await client.get_transaction(CLICK, "tx-1")

        assert tx.status == "pending_anchor"
        assert tx.normalized_status == OrderStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_customer_info_needed(self):
        response = httpx.Response(
            403,
            json={"type": "non_interactive_customer_info_needed", "fields": ["id_number"], "error": "KYC needed"},
        )
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server([], withdraw_response=response)))

        with pytest.raises(AnchorError) as exc_info:
            await client.withdraw(CLICK, "PHP", "100", "gcash", ACCOUNT, {"dest": "+639171234567"})

        assert exc_info.value.code == "NEEDS_INFO"
        assert exc_info.value.status_code == 403
        assert exc_info.value.required_info == ["id_number"]

    @pytest.mark.asyncio
    async def test_anchor_error_code(self):
        response = httpx.Response(400, json={"error": "Invalid destination", "error_code": "INVALID_DEST"})
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server([], withdraw_response=response)))

        with pytest.raises(AnchorError) as exc_info:
            await client.withdraw(CLICK, "PHP", "100", "gcash", ACCOUNT, {"dest": "x"})

        assert exc_info.value.code == "INVALID_DEST"
        assert str(exc_info.value) == "Anchor error: Invalid destination"

    @pytest.mark.asyncio
    async def test_missing_transaction_id(self):
        response = httpx.Response(200, json={"account_id": ACCOUNT})
        client = Sep6AnchorClient(transport=httpx.MockTransport(sep6_server([], withdraw_response=response)))

        with pytest.raises(AnchorError) as exc_info:
            await client.withdraw(CLICK, "PHP", "100", "gcash", ACCOUNT, {"dest": "x"})

        assert exc_info.value.code == "INVALID_RESPONSE"

    @pytest.mark.asyncio
    async def test_connection_refused_during_auth(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = Sep6AnchorClient(transport=httpx.MockTransport(handler))

        with pytest.raises(AnchorError) as exc_info:
            await client.authenticate(CLICK, ACCOUNT)

        assert exc_info.value.code == "ECONNREFUSED"
        assert "Authentication failed for CLICK_PHP" in str(exc_info.value)
        assert not client.has_token(CLICK)

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = Sep6AnchorClient(transport=httpx.MockTransport(handler))

        with pytest.raises(AnchorError) as exc_info:
            await client.get_info(CLICK)

        assert exc_info.value.code == "ETIMEDOUT"


class TestSep24AnchorClient:
    """Tests for the interactive anchor client."""

    @pytest.mark.asyncio
    async def test_withdraw_interactive(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"type": "interactive_customer_info_needed", "url": "https://a/x", "id": "w-1"})

        client = Sep24AnchorClient(transport=httpx.MockTransport(handler))
        withdrawal = await client.withdraw_interactive(
            VIBRANT, "ARS", "84235.00", ACCOUNT, {"first_name": "Lucia", "last_name": "", "bank_name": None}
        )

        assert withdrawal.id == "w-1"
        assert withdrawal.url == "https://a/x"
        assert seen[0].url.path == "/sep24/transactions/withdraw/interactive"
        body = json.loads(seen[0].content)
        assert body == {"asset_code": "ARS", "account": ACCOUNT, "amount": "84235.00", "sep9_first_name": "Lucia"}

    @pytest.mark.asyncio
    async def test_incomplete_response(self):
        client = Sep24AnchorClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"id": "w-1"})))

        with pytest.raises(AnchorError) as exc_info:
            await client.withdraw_interactive(VIBRANT, "ARS", "1", ACCOUNT, {})

        assert exc_info.value.code == "INVALID_RESPONSE"

    @pytest.mark.asyncio
    async def test_get_transaction(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["id"] == "w-1"
            return httpx.Response(200, json={"transaction": {"id": "w-1", "status": "completed"}})

        client = Sep24AnchorClient(transport=httpx.MockTransport(handler))
        tx = await client.get_transaction(VIBRANT, "w-1")

        assert tx.normalized_status == OrderStatus.COMPLETED


class TestAnchorGateway:
    """Tests for protocol selection and payload dispatch."""

    def _gateway(self, sync_info=None, interactive_info=None):
        sync_client = AsyncMock()
        interactive_client = AsyncMock()
        sync_client.get_info.side_effect = [sync_info] if sync_info else AnchorError("down")
        interactive_client.get_info.side_effect = [interactive_info] if interactive_info else AnchorError("down")
        return AnchorGateway(sync_client, interactive_client), sync_client, interactive_client

    @pytest.mark.asyncio
    async def test_only_sync_responds(self):
        gateway, _, _ = self._gateway(sync_info={"withdraw": {}})

        assert await gateway.choose_protocol(CLICK, "PHP") == PayoutProtocol.SYNC

    @pytest.mark.asyncio
    async def test_only_interactive_responds(self):
        gateway, _, _ = self._gateway(interactive_info={"withdraw": {}})

        assert await gateway.choose_protocol(CLICK, "PHP") == PayoutProtocol.INTERACTIVE

    @pytest.mark.asyncio
    async def test_both_respond_prefers_sync(self):
        gateway, _, _ = self._gateway(
            sync_info={"withdraw": {}},
            interactive_info={"withdraw": {"PHP": {"enabled": True, "authentication_required": False}}},
        )

        assert await gateway.choose_protocol(CLICK, "PHP") == PayoutProtocol.SYNC

    @pytest.mark.asyncio
    async def test_authentication_required_prefers_interactive(self):
        gateway, _, _ = self._gateway(
            sync_info={"withdraw": {}},
            interactive_info={"withdraw": {"PHP": {"enabled": True, "authentication_required": True}}},
        )

        assert await gateway.choose_protocol(CLICK, "PHP") == PayoutProtocol.INTERACTIVE

    @pytest.mark.asyncio
    async def test_nothing_responds_defaults_to_interactive(self):
        gateway, _, _ = self._gateway()

        assert await gateway.choose_protocol(CLICK, "PHP") == PayoutProtocol.INTERACTIVE

    @pytest.mark.asyncio
    async def test_sep6_not_advertised_is_not_queried(self):
        gateway, sync_client, _ = self._gateway(sync_info={"withdraw": {}}, interactive_info={"withdraw": {}})

        assert await gateway.choose_protocol(VIBRANT, "ARS") == PayoutProtocol.INTERACTIVE
        sync_client.get_info.assert_not_called()

    @pytest.mark.asyncio
    async def test_info_endpoints_queried_one_after_another(self):
        calls = []
        gateway, sync_client, interactive_client = self._gateway()

        async def sync_info(anchor):
            calls.append("sep6 start")
            await asyncio.sleep(0)
            calls.append("sep6 end")
            return {"withdraw": {}}

        async def interactive_info(anchor):
            calls.append("sep24 start")
            return {"withdraw": {}}

        sync_client.get_info.side_effect = sync_info
        interactive_client.get_info.side_effect = interactive_info

        assert await gateway.choose_protocol(CLICK, "PHP") == PayoutProtocol.SYNC
        assert calls == ["sep6 start", "sep6 end", "sep24 start"]

    @pytest.mark.asyncio
    async def test_sync_payout_maps_bank_details(self):
        gateway, sync_client, _ = self._gateway(sync_info={"withdraw": {}})
        sync_client.withdraw.return_value = AsyncMock(id="tx-9")
        details = BankTransferDetails(
            name="Maria Santos", account_name="Maria Santos", account_number="1234567890", bank_name="BDO"
        )

        result = await gateway.payout(CLICK, "PHP", Decimal("2000.00"), details, ACCOUNT)

        assert result.transaction_id == "tx-9"
        assert result.protocol == PayoutProtocol.SYNC
        sync_client.authenticate.assert_awaited_once_with(CLICK, ACCOUNT)
        kwargs = sync_client.withdraw.await_args.kwargs
        assert kwargs["type"] == "bank_account"
        assert kwargs["amount"] == "2000.00"
        assert kwargs["fields"]["dest"] == "1234567890"
        assert json.loads(kwargs["fields"]["dest_extra"]) == {
            "bank_name": "BDO",
            "bank_code": "BDO_UNIBANK",
            "account_name": "Maria Santos",
        }

    @pytest.mark.asyncio
    async def test_interactive_payout_sends_sep9_fields(self):
        gateway, _, interactive_client = self._gateway(interactive_info={"withdraw": {}})
        interactive_client.withdraw_interactive.return_value = AsyncMock(id="w-2", url="https://anchor/w-2")
        details = EWalletDetails(
            delivery_method="gcash", name="Juan Dela Cruz", phone_number="+639171234567", account_name="Juan"
        )

        result = await gateway.payout(CLICK, "PHP", Decimal("500"), details, ACCOUNT)

        assert result.protocol == PayoutProtocol.INTERACTIVE
        assert result.interactive_url == "https://anchor/w-2"
        sep9 = interactive_client.withdraw_interactive.await_args.kwargs["sep9_fields"]
        assert sep9 == {"first_name": "Juan", "last_name": "Dela Cruz", "mobile_number": "+639171234567"}
