"""Simulated DEX aggregator for dry-run mode."""

import hashlib
import logging
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from remitdex.corridors import CHAIN_IDS, TOKENS, TokenInfo, WRAPPED_SETTLEMENT_USDC
from remitdex.errors import AggregatorError
from remitdex.routing.base import AggregatorClient, AggregatorQuote, SwapTransaction

logger = logging.getLogger(__name__)


# Simulated market prices in USD
# These are for demonstration purposes only and should not be used for real trading
SIMULATED_PRICES: dict[str, Decimal] = {
    # Native / wrapped
    "ETH": Decimal("3900.00"),
    "WETH": Decimal("3900.00"),
    "BNB": Decimal("710.00"),
    "MATIC": Decimal("0.62"),
    "AVAX": Decimal("52.00"),

    # Stablecoins
    "USDC": Decimal("1.00"),
    "USDT": Decimal("1.00"),
    "DAI": Decimal("1.00"),
    "BUSD": Decimal("1.00"),
    "sUSDC": Decimal("1.00"),
}


class SimulatedAggregator(AggregatorClient):
    """Deterministic aggregator quoting from a static price table.

    No fees or slippage are applied, so stablecoin swaps into the settlement
    asset come back 1:1. Route fees are accounted for in the quote itself.
    """

    def __init__(self):
        self._prices = SIMULATED_PRICES.copy()

    @property
    def name(self) -> str:
        return "dry_run"

    def set_price(self, symbol: str, price: Decimal) -> None:
        """Set simulated price for a token symbol."""
        self._prices[symbol] = price

    def _lookup(self, chain_id: int, address: str) -> tuple[str, int]:
        """Find symbol and decimals for a token address on a chain."""
        chain = next((name for name, cid in CHAIN_IDS.items() if cid == chain_id), None)
        if chain is None:
            raise AggregatorError(f"Unsupported chain id {chain_id}", code="AGGREGATOR_NO_ROUTE")

        token: Optional[TokenInfo] = next(
            (t for t in TOKENS.get(chain, {}).values() if t.address.lower() == address.lower()),
            None,
        )
        if token is not None:
            return token.symbol, token.decimals

        wrapped = WRAPPED_SETTLEMENT_USDC.get(chain)
        if wrapped and wrapped.address.lower() == address.lower():
            return wrapped.symbol, wrapped.decimals

        raise AggregatorError(f"No simulated price for token {address}", code="AGGREGATOR_NO_ROUTE")

    def _convert(self, chain_id: int, src_token: str, dst_token: str, amount: int) -> int:
        src_symbol, src_decimals = self._lookup(chain_id, src_token)
        dst_symbol, dst_decimals = self._lookup(chain_id, dst_token)

        src_price = self._prices.get(src_symbol)
        dst_price = self._prices.get(dst_symbol)
        if src_price is None or dst_price is None:
            raise AggregatorError(
                f"No simulated price for {src_symbol}/{dst_symbol}", code="AGGREGATOR_NO_ROUTE"
            )

        human_amount = Decimal(amount) / (Decimal(10) ** src_decimals)
        dst_human = human_amount * src_price / dst_price
        return int((dst_human * (Decimal(10) ** dst_decimals)).to_integral_value(rounding=ROUND_DOWN))

    async def get_quote(
        self,
        chain_id: int,
        src_token: str,
        dst_token: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> AggregatorQuote:
        self.validate_tokens(src_token, dst_token)
        dst_amount = self._convert(chain_id, src_token, dst_token, amount)
        return AggregatorQuote(dst_amount=dst_amount, estimated_gas=150000, protocols=[])

    async def build_swap(
        self,
        chain_id: int,
        src_token: str,
        dst_token: str,
        amount: int,
        from_address: str,
        slippage: float,
    ) -> SwapTransaction:
        """Simulate building a swap transaction."""
        self.validate_tokens(src_token, dst_token)
        dst_amount = self._convert(chain_id, src_token, dst_token, amount)

        tx_data = f"{chain_id}{src_token}{dst_token}{amount}{from_address}"
        calldata = hashlib.sha256(tx_data.encode()).hexdigest()
        logger.debug(f"Simulated swap tx built for {from_address} on chain {chain_id}")

        return SwapTransaction(
            tx={
                "from": from_address,
                "to": "0x1111111254EEB25477B68fb85Ed929f73A960582",
                "data": f"0x{calldata}",
                "value": "0",
                "gas": 150000,
                "simulated": True,
            },
            dst_amount=dst_amount,
        )
