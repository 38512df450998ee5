"""Tests for the DEX aggregator clients."""

from decimal import Decimal
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from remitdex.corridors import TOKENS, WRAPPED_SETTLEMENT_USDC
from remitdex.errors import AggregatorError, InvalidAddress
from remitdex.routing.dry_run import SimulatedAggregator
from remitdex.routing.oneinch import OneInchAggregator

USDC = TOKENS["ethereum"]["USDC"].address
ETH = TOKENS["ethereum"]["ETH"].address
SUSDC = WRAPPED_SETTLEMENT_USDC["ethereum"].address
FROM = "0x0000000000000000000000000000000000000000"


def make_client(handler, **kwargs) -> OneInchAggregator:
    return OneInchAggregator(api_key="test-key", transport=httpx.MockTransport(handler), **kwargs)


class TestOneInchAggregator:
    """Tests for OneInchAggregator against a mock transport."""

    @pytest.mark.asyncio
    async def test_get_quote(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"dstAmount": "99700000", "gas": 180000, "protocols": [["UNISWAP_V3"]]})

        client = make_client(handler)
        quote = await client.get_quote(1, ETH, SUSDC, 10**17, FROM, 1.0)

        assert quote.dst_amount == 99_700000
        assert quote.estimated_gas == 180000
        assert quote.protocols == [["UNISWAP_V3"]]

        request = seen[0]
        assert request.url.path == "/swap/v6.0/1/quote"
        assert request.url.params["src"] == ETH
        assert request.url.params["amount"] == str(10**17)
        assert request.headers["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_build_swap(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/137/swap")
            assert request.url.params["disableEstimate"] == "true"
            return httpx.Response(200, json={"dstAmount": "5000000", "tx": {"to": "0x1111", "data": "0xabc"}})

        client = make_client(handler)
        swap = await client.build_swap(137, USDC, SUSDC, 5_000000, FROM, 0.5)

        assert swap.tx == {"to": "0x1111", "data": "0xabc"}
        assert swap.dst_amount == 5_000000

    @pytest.mark.asyncio
    async def test_invalid_token_address_rejected_before_request(self):
        handler = AsyncMock()
        client = make_client(handler)

        with pytest.raises(InvalidAddress):
            await client.get_quote(1, "USDC", SUSDC, 1, FROM, 1.0)

        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_server_error_retried_with_backoff(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"dstAmount": "1"})

        client = make_client(handler)
        with patch("remitdex.routing.oneinch.asyncio.sleep", new_callable=AsyncMock) as sleep:
            quote = await client.get_quote(1, USDC, SUSDC, 1, FROM, 1.0)

        assert quote.dst_amount == 1
        assert len(calls) == 3
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_server_error_exhausts_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        client = make_client(handler)
        with patch("remitdex.routing.oneinch.asyncio.sleep", new_callable=AsyncMock) as sleep:
            with pytest.raises(AggregatorError) as exc_info:
                await client.get_quote(1, USDC, SUSDC, 1, FROM, 1.0)

        assert len(calls) == 4
        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0, 4.0]
        assert exc_info.value.code == "AGGREGATOR_UNAVAILABLE"
        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_timeout_maps_to_etimedout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = make_client(handler, backoff_base=0)
        with pytest.raises(AggregatorError) as exc_info:
            await client.get_quote(1, USDC, SUSDC, 1, FROM, 1.0)

        assert exc_info.value.code == "ETIMEDOUT"

    @pytest.mark.asyncio
    async def test_connect_error_maps_to_econnrefused(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = make_client(handler, backoff_base=0)
        with pytest.raises(AggregatorError) as exc_info:
            await client.get_quote(1, USDC, SUSDC, 1, FROM, 1.0)

        assert exc_info.value.code == "ECONNREFUSED"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,code,message",
        [
            (401, "AGGREGATOR_UNAUTHORIZED", "Invalid 1inch API key"),
            (403, "AGGREGATOR_UNAUTHORIZED", "Invalid 1inch API key"),
            (404, "AGGREGATOR_NO_ROUTE", "No swap route found"),
            (429, "AGGREGATOR_RATE_LIMITED", "1inch rate limit exceeded"),
        ],
    )
    async def test_client_errors_not_retried(self, status, code, message):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(status, json={})

        client = make_client(handler)
        with pytest.raises(AggregatorError) as exc_info:
            await client.get_quote(1, USDC, SUSDC, 1, FROM, 1.0)

        assert len(calls) == 1
        assert exc_info.value.code == code
        assert str(exc_info.value) == message

    @pytest.mark.asyncio
    async def test_bad_request_includes_description(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"description": "insufficient liquidity"})

        client = make_client(handler)
        with pytest.raises(AggregatorError) as exc_info:
            await client.get_quote(1, USDC, SUSDC, 1, FROM, 1.0)

        assert exc_info.value.code == "AGGREGATOR_BAD_REQUEST"
        assert "insufficient liquidity" in str(exc_info.value)


class TestSimulatedAggregator:
    """Tests for the dry-run aggregator."""

    @pytest.mark.asyncio
    async def test_stablecoin_one_to_one(self):
        aggregator = SimulatedAggregator()

        quote = await aggregator.get_quote(1, USDC, SUSDC, 100_000000, FROM, 1.0)

        assert quote.dst_amount == 100_000000

    @pytest.mark.asyncio
    async def test_eth_priced(self):
        aggregator = SimulatedAggregator()

        quote = await aggregator.get_quote(1, ETH, SUSDC, 10**18, FROM, 1.0)

        assert quote.dst_amount == 3900_000000

    @pytest.mark.asyncio
    async def test_set_price(self):
        aggregator = SimulatedAggregator()
        aggregator.set_price("ETH", Decimal("2000"))

        quote = await aggregator.get_quote(1, ETH, SUSDC, 10**18, FROM, 1.0)

        assert quote.dst_amount == 2000_000000

    @pytest.mark.asyncio
    async def test_unknown_token(self):
        aggregator = SimulatedAggregator()

        with pytest.raises(AggregatorError) as exc_info:
            await aggregator.get_quote(1, "0x" + "ab" * 20, SUSDC, 1, FROM, 1.0)

        assert exc_info.value.code == "AGGREGATOR_NO_ROUTE"

    @pytest.mark.asyncio
    async def test_build_swap_deterministic(self):
        aggregator = SimulatedAggregator()
        sender = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"

        first = await aggregator.build_swap(1, USDC, SUSDC, 5_000000, sender, 1.0)
        second = await aggregator.build_swap(1, USDC, SUSDC, 5_000000, sender, 1.0)

        assert first.tx == second.tx
        assert first.tx["simulated"] is True
        assert first.dst_amount == 5_000000
