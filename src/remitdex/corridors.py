"""Static routing tables for remittance corridors.

Chains, source tokens, the wrapped settlement asset per chain, payout anchors,
the corridor map, exchange rates and anchor delivery times. These are demo
values: rates are fixed constants, not live market data.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

# Settlement leg: value is bridged as USDC and priced in USD
SETTLEMENT_ASSET = "USDC"
SETTLEMENT_CURRENCY = "USD"
SETTLEMENT_NETWORK = "stellar"

# Native gas token placeholder used by 1inch
NATIVE_TOKEN_ADDRESS = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

# Zero address used as the sender when requesting indicative quotes
QUOTE_FROM_ADDRESS = "0x0000000000000000000000000000000000000000"


# ======================
# Chains & tokens
# ======================

CHAIN_IDS: dict[str, int] = {
    "ethereum": 1,
    "bsc": 56,
    "polygon": 137,
    "arbitrum": 42161,
    "optimism": 10,
    "avalanche": 43114,
}


@dataclass(frozen=True)
class TokenInfo:
    """An ERC-20 (or native) token on an EVM chain."""

    symbol: str
    address: str
    decimals: int


@dataclass(frozen=True)
class WrappedSettlementToken:
    """Wrapped representation of settlement USDC on a source chain."""

    address: str
    decimals: int
    symbol: str = "sUSDC"
    name: str = "Wrapped Stellar USDC"


TOKENS: dict[str, dict[str, TokenInfo]] = {
    "ethereum": {
        "ETH": TokenInfo("ETH", NATIVE_TOKEN_ADDRESS, 18),
        "WETH": TokenInfo("WETH", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", 18),
        "USDC": TokenInfo("USDC", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
        "USDT": TokenInfo("USDT", "0xdAC17F958D2ee523a2206206994597C13D831ec7", 6),
        "DAI": TokenInfo("DAI", "0x6B175474E89094C44Da98b954EedeAC495271d0F", 18),
    },
    "bsc": {
        "BNB": TokenInfo("BNB", NATIVE_TOKEN_ADDRESS, 18),
        "USDC": TokenInfo("USDC", "0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18),
        "USDT": TokenInfo("USDT", "0x55d398326f99059fF775485246999027B3197955", 18),
        "BUSD": TokenInfo("BUSD", "0xe9e7CEA3DedcA5984780Bafc599bD69ADd087D56", 18),
    },
    "polygon": {
        "MATIC": TokenInfo("MATIC", NATIVE_TOKEN_ADDRESS, 18),
        "USDC": TokenInfo("USDC", "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", 6),
        "USDT": TokenInfo("USDT", "0xc2132D05D31c914a87C6611C10748AEb04B58e8F", 6),
        "DAI": TokenInfo("DAI", "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063", 18),
    },
    "arbitrum": {
        "ETH": TokenInfo("ETH", NATIVE_TOKEN_ADDRESS, 18),
        "USDC": TokenInfo("USDC", "0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8", 6),
    },
    "optimism": {
        "ETH": TokenInfo("ETH", NATIVE_TOKEN_ADDRESS, 18),
        "USDC": TokenInfo("USDC", "0x7F5c764cBc14f9669B88837ca1490cCa17c31607", 6),
    },
    "avalanche": {
        "AVAX": TokenInfo("AVAX", NATIVE_TOKEN_ADDRESS, 18),
        "USDC": TokenInfo("USDC", "0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", 6),
    },
}

# Placeholders: the bridge contracts currently accept plain USDC
WRAPPED_SETTLEMENT_USDC: dict[str, WrappedSettlementToken] = {
    "ethereum": WrappedSettlementToken("0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", 6),
    "bsc": WrappedSettlementToken("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d", 18),
    "polygon": WrappedSettlementToken("0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", 6),
    "arbitrum": WrappedSettlementToken("0xFF970A61A04b1cA14834A43f5dE4533eBDDB5CC8", 6),
    "optimism": WrappedSettlementToken("0x7F5c764cBc14f9669B88837ca1490cCa17c31607", 6),
    "avalanche": WrappedSettlementToken("0xB97EF9Ef8734C71904D8002F8b6Bc66Dd9c48a6E", 6),
}


def get_chain_id(chain: str) -> Optional[int]:
    return CHAIN_IDS.get(chain.lower())


def get_wrapped_settlement_token(chain: str) -> Optional[WrappedSettlementToken]:
    """Get the wrapped settlement USDC for a source chain."""
    return WRAPPED_SETTLEMENT_USDC.get(chain.lower())


def resolve_token(chain: str, token: str) -> Optional[TokenInfo]:
    """Resolve a token by symbol or contract address on a chain."""
    chain_tokens = TOKENS.get(chain.lower(), {})
    by_symbol = chain_tokens.get(token.upper())
    if by_symbol:
        return by_symbol
    for info in chain_tokens.values():
        if info.address.lower() == token.lower():
            return info
    return None


# ======================
# Anchors
# ======================


@dataclass(frozen=True)
class AnchorConfig:
    """A payout anchor and the rails it offers."""

    code: str
    name: str
    domain: str
    api_endpoint: str
    supported_currencies: tuple[str, ...]
    supported_countries: tuple[str, ...]
    withdraw_methods: tuple[str, ...]
    minimum_amount: Decimal
    maximum_amount: Decimal
    kyc_required: bool = True
    sep6: bool = True
    sep24: bool = True
    delivery_minutes: dict[str, int] = field(default_factory=dict, hash=False, compare=False)

    def supports_currency(self, currency: str) -> bool:
        return currency.upper() in self.supported_currencies

    def supports_method(self, method: str) -> bool:
        return method in self.withdraw_methods


ANCHORS: dict[str, AnchorConfig] = {
    "VIBRANT_USD": AnchorConfig(
        code="VIBRANT_USD",
        name="Vibrant (Argentina)",
        domain="vibrant.stellar.org",
        api_endpoint="https://vibrant.stellar.org",
        supported_currencies=("USD", "ARS"),
        supported_countries=("AR", "MX", "CO"),
        withdraw_methods=("bank_transfer", "mobile_wallet"),
        minimum_amount=Decimal("10"),
        maximum_amount=Decimal("10000"),
        sep6=False,  # interactive only
        delivery_minutes={"bank_transfer": 1440, "mobile_wallet": 5},
    ),
    "CLICK_PHP": AnchorConfig(
        code="CLICK_PHP",
        name="Click (Philippines)",
        domain="clickpeso.com",
        api_endpoint="https://api.clickpeso.com",
        supported_currencies=("PHP", "USD"),
        supported_countries=("PH",),
        withdraw_methods=("bank_transfer", "gcash", "paymaya"),
        minimum_amount=Decimal("500"),
        maximum_amount=Decimal("500000"),
        delivery_minutes={"bank_transfer": 60, "gcash": 1, "paymaya": 1},
    ),
    "COWRIE_NGN": AnchorConfig(
        code="COWRIE_NGN",
        name="Cowrie (Nigeria)",
        domain="cowrie.exchange",
        api_endpoint="https://api.cowrie.exchange",
        supported_currencies=("NGN", "USD"),
        supported_countries=("NG",),
        withdraw_methods=("bank_transfer", "mobile_money"),
        minimum_amount=Decimal("1000"),
        maximum_amount=Decimal("5000000"),
        delivery_minutes={"bank_transfer": 120, "mobile_money": 5},
    ),
    "SETTLE_EUR": AnchorConfig(
        code="SETTLE_EUR",
        name="Settle Network (Europe)",
        domain="settle.network",
        api_endpoint="https://api.settle.network",
        supported_currencies=("EUR", "USD"),
        supported_countries=("EU", "GB"),
        withdraw_methods=("sepa", "wire"),
        minimum_amount=Decimal("10"),
        maximum_amount=Decimal("50000"),
        delivery_minutes={"sepa": 1440, "wire": 2880},
    ),
}

# (origin, destination country) -> anchor code
CORRIDOR_ANCHORS: dict[tuple[str, str], str] = {
    ("US", "AR"): "VIBRANT_USD",
    ("US", "PH"): "CLICK_PHP",
    ("US", "NG"): "COWRIE_NGN",
    ("US", "EU"): "SETTLE_EUR",
    ("EU", "NG"): "COWRIE_NGN",
    ("EU", "PH"): "CLICK_PHP",
}

DEFAULT_DELIVERY_MINUTES = 60


def get_anchor(code: str) -> Optional[AnchorConfig]:
    return ANCHORS.get(code)


def find_anchor_for_corridor(
    origin_country: str,
    dest_country: str,
    currency: str,
) -> Optional[AnchorConfig]:
    """Find the payout anchor for a corridor.

    Uses the corridor map first, then falls back to the first anchor that
    supports the destination currency.
    """
    code = CORRIDOR_ANCHORS.get((origin_country.upper(), dest_country.upper()))
    if code:
        return ANCHORS.get(code)

    for anchor in ANCHORS.values():
        if anchor.supports_currency(currency):
            return anchor

    return None


def estimate_delivery_minutes(anchor_code: str, method: str) -> int:
    """Delivery time of the anchor payout leg, in minutes."""
    anchor = ANCHORS.get(anchor_code)
    if not anchor:
        return DEFAULT_DELIVERY_MINUTES
    return anchor.delivery_minutes.get(method, DEFAULT_DELIVERY_MINUTES)


# ======================
# Exchange rates
# ======================

EXCHANGE_RATES: dict[tuple[str, str], Decimal] = {
    ("USD", "PHP"): Decimal("56.50"),
    ("USD", "NGN"): Decimal("1520.00"),
    ("USD", "ARS"): Decimal("850.00"),
    ("USD", "EUR"): Decimal("0.92"),
    ("EUR", "PHP"): Decimal("61.41"),
    ("EUR", "NGN"): Decimal("1652.17"),
}


def get_exchange_rate(from_currency: str, to_currency: str) -> Optional[Decimal]:
    if from_currency.upper() == to_currency.upper():
        return Decimal("1")
    return EXCHANGE_RATES.get((from_currency.upper(), to_currency.upper()))


# ======================
# Corridor summaries
# ======================


@dataclass(frozen=True)
class Corridor:
    """A supported send corridor, as shown to customers."""

    origin: str
    destination: str
    currencies: tuple[str, ...]
    methods: tuple[str, ...]
    estimated_time: str
    max_amount: Decimal
    anchor_code: str


SUPPORTED_CORRIDORS: tuple[Corridor, ...] = (
    Corridor("US", "PH", ("PHP",), ("bank_transfer", "gcash", "paymaya"),
             "1-60 minutes", Decimal("10000"), "CLICK_PHP"),
    Corridor("US", "NG", ("NGN",), ("bank_transfer", "mobile_money"),
             "5-120 minutes", Decimal("10000"), "COWRIE_NGN"),
    Corridor("US", "AR", ("ARS",), ("bank_transfer", "mobile_wallet"),
             "5 minutes - 24 hours", Decimal("10000"), "VIBRANT_USD"),
    Corridor("EU", "PH", ("PHP",), ("bank_transfer", "gcash"),
             "1-60 minutes", Decimal("50000"), "CLICK_PHP"),
)
