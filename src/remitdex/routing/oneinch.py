"""1inch DEX aggregator integration.

Quotes and builds swaps from the sender's token into wrapped settlement USDC.
API docs: https://portal.1inch.dev/documentation/apis/swap/introduction
"""

import asyncio
import logging
from typing import Optional

import httpx

from remitdex.errors import AggregatorError, transport_error_code
from remitdex.routing.base import AggregatorClient, AggregatorQuote, SwapTransaction

logger = logging.getLogger(__name__)

# 1inch API endpoints
ONEINCH_API_V6 = "https://api.1inch.dev/swap/v6.0"

# Client errors are never retried
CLIENT_ERROR_MESSAGES = {
    400: ("AGGREGATOR_BAD_REQUEST", "1inch rejected the request"),
    401: ("AGGREGATOR_UNAUTHORIZED", "Invalid 1inch API key"),
    403: ("AGGREGATOR_UNAUTHORIZED", "Invalid 1inch API key"),
    404: ("AGGREGATOR_NO_ROUTE", "No swap route found"),
    429: ("AGGREGATOR_RATE_LIMITED", "1inch rate limit exceeded"),
}


class OneInchAggregator(AggregatorClient):
    """1inch swap API client.

    Every request carries an explicit timeout. Server (5xx) and network
    failures are retried with exponential backoff; 4xx responses fail
    immediately with a descriptive AggregatorError.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = ONEINCH_API_V6,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize 1inch client.

        Args:
            api_key: 1inch API key (required for production)
            base_url: Swap API base URL, without chain ID
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first attempt for 5xx/network errors
            backoff_base: First backoff wait in seconds (doubled per retry)
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._transport = transport

    @property
    def name(self) -> str:
        return "1inch"

    def _get_headers(self) -> dict:
        """Get API headers with authorization."""
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def get_quote(
        self,
        chain_id: int,
        src_token: str,
        dst_token: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> AggregatorQuote:
        """Get an indicative quote from 1inch."""
        self.validate_tokens(src_token, dst_token)

        data = await self._request(
            f"/{chain_id}/quote",
            {
                "src": src_token,
                "dst": dst_token,
                "amount": str(amount),
                "from": from_address,
                "slippage": str(slippage),
            },
        )

        return AggregatorQuote(
            dst_amount=int(data.get("dstAmount") or data.get("toAmount") or "0"),
            estimated_gas=int(data.get("gas") or data.get("estimatedGas") or 0),
            protocols=data.get("protocols", []),
        )

    async def build_swap(
        self,
        chain_id: int,
        src_token: str,
        dst_token: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> SwapTransaction:
        """Build the swap transaction via 1inch.

        Note: the returned payload must be signed and broadcast by the
        sender's wallet.
        """
        self.validate_tokens(src_token, dst_token)

        data = await self._request(
            f"/{chain_id}/swap",
            {
                "src": src_token,
                "dst": dst_token,
                "amount": str(amount),
                "from": from_address,
                "slippage": str(slippage),
                "disableEstimate": "true",
            },
        )

        dst_amount = data.get("dstAmount") or data.get("toAmount")
        return SwapTransaction(
            tx=data.get("tx", {}),
            dst_amount=int(dst_amount) if dst_amount else None,
        )

    async def _request(self, path: str, params: dict) -> dict:
        """GET with retry for server/network failures."""
        url = f"{self.base_url}{path}"
        last_error: Optional[AggregatorError] = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = self.backoff_base * (2 ** (attempt - 1))  # 1s, 2s, 4s
                logger.warning(
                    f"1inch request failed (attempt {attempt}/{self.max_retries + 1}), "
                    f"retrying in {delay:.1f}s: {last_error}"
                )
                await asyncio.sleep(delay)

            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self._transport
                ) as client:
                    response = await client.get(url, headers=self._get_headers(), params=params)
            except httpx.TransportError as e:
                code = transport_error_code(e)
                last_error = AggregatorError(f"1inch request failed: {type(e).__name__}", code=code)
                continue

            if response.status_code == 200:
                return response.json()

            if response.status_code >= 500:
                last_error = AggregatorError(
                    f"1inch server error: {response.status_code}",
                    code="AGGREGATOR_UNAVAILABLE",
                    status_code=response.status_code,
                )
                continue

            raise self._client_error(response)

        logger.error(f"1inch request to {path} failed after {self.max_retries + 1} attempts")
        raise last_error

    @staticmethod
    def _client_error(response: httpx.Response) -> AggregatorError:
        """Map a 4xx response to a descriptive error."""
        code, message = CLIENT_ERROR_MESSAGES.get(
            response.status_code, ("AGGREGATOR_CLIENT_ERROR", "1inch request rejected")
        )
        if response.status_code == 400:
            try:
                description = response.json().get("description")
            except ValueError:
                description = None
            if description:
                message = f"{message}: {description}"

        logger.warning(f"1inch API error: {response.status_code} - {message}")
        return AggregatorError(message, code=code, status_code=response.status_code)
