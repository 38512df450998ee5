"""Domain exceptions raised by the remittance pipeline."""

import asyncio
from typing import TYPE_CHECKING, Optional

import httpx

if TYPE_CHECKING:
    from remitdex.delivery.errors import DeliveryErrorKind
    from remitdex.orders.models import Order


class RemittanceError(Exception):
    """Base class for all remittance errors.

    ``code`` is an optional machine-readable code used by the delivery error
    classifier alongside the message text.
    """

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


# ======================
# Fail-fast caller errors
# ======================


class NoAnchorAvailable(RemittanceError):
    """No payout anchor serves the requested corridor."""

    def __init__(self, country: str, currency: str):
        super().__init__(f"No anchor available for {country} {currency}", code="NO_ANCHOR")
        self.country = country
        self.currency = currency


class UnsupportedChain(RemittanceError):
    """The settlement asset has no wrapped representation on the chain."""

    def __init__(self, chain: str):
        super().__init__(f"Wrapped settlement USDC not available on {chain}", code="UNSUPPORTED_CHAIN")
        self.chain = chain


class UnsupportedToken(RemittanceError):
    def __init__(self, chain: str, token: str):
        super().__init__(f"Token {token} is not supported on {chain}", code="UNSUPPORTED_TOKEN")
        self.chain = chain
        self.token = token


class RateUnavailable(RemittanceError):
    def __init__(self, from_currency: str, to_currency: str):
        super().__init__(
            f"No exchange rate configured for {from_currency}/{to_currency}",
            code="RATE_UNAVAILABLE",
        )


class InvalidAmount(RemittanceError):
    def __init__(self, amount):
        super().__init__(f"Amount must be positive, got {amount}", code="INVALID_AMOUNT")


class InvalidAddress(RemittanceError):
    def __init__(self, address: str, role: str = "address"):
        super().__init__(f"Malformed {role}: {address!r}", code="INVALID_ADDRESS")
        self.address = address


class InvalidDeliveryMethod(RemittanceError):
    def __init__(self, method: Optional[str], detail: str = ""):
        message = f"Invalid delivery method: {method}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message, code="INVALID_DELIVERY_METHOD")
        self.method = method


class DeliveryValidationError(RemittanceError):
    """Recipient fields or amount violate the delivery method's rules."""

    def __init__(self, method_id: str, errors: list[str]):
        super().__init__(f"{method_id}: {', '.join(errors)}", code="DELIVERY_VALIDATION")
        self.method_id = method_id
        self.errors = errors


# ======================
# Collaborator errors
# ======================


class AggregatorError(RemittanceError):
    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message, code=code)
        self.status_code = status_code


class BridgeError(RemittanceError):
    pass


class BridgeTimeout(BridgeError):
    """A bridge leg did not finish in time.

    ``bridge_tx_id`` is set when the transfer was submitted and only the
    confirmation wait expired; that transfer may still settle.
    """

    def __init__(
        self,
        timeout: float,
        bridge_tx_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        super().__init__(
            message or f"Settlement not confirmed within {timeout:.0f}s", code="ETIMEDOUT"
        )
        self.timeout = timeout
        self.bridge_tx_id = bridge_tx_id


class AnchorError(RemittanceError):
    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        required_info: Optional[list] = None,
    ):
        super().__init__(message, code=code)
        self.status_code = status_code
        self.required_info = required_info


# ======================
# Pipeline outcome / state machine
# ======================


class RemittanceFailed(RemittanceError):
    """Raised by execute_remittance once the order has been marked failed.

    Only carries the fixed user-facing message for the classified kind; the
    original exception is logged, not exposed.
    """

    def __init__(self, user_message: str, kind: "DeliveryErrorKind", order: "Order"):
        super().__init__(user_message, code=kind.value)
        self.user_message = user_message
        self.kind = kind
        self.order = order


class InvalidStatusTransition(RemittanceError):
    def __init__(self, order_id: str, current: str, target: str):
        super().__init__(
            f"Order {order_id}: cannot move from {current} to {target}",
            code="INVALID_TRANSITION",
        )


def transport_error_code(exc: BaseException) -> Optional[str]:
    """Map transport-level exceptions to socket-style error codes.

    Explicit ``code`` attributes win; otherwise httpx and asyncio timeout and
    connection errors are translated so the classifier sees one vocabulary.
    """
    code = getattr(exc, "code", None)
    if isinstance(code, str) and code:
        return code
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError, TimeoutError)):
        return "ETIMEDOUT"
    if isinstance(exc, httpx.ConnectError):
        return "ECONNREFUSED"
    if isinstance(exc, httpx.TransportError):
        return "ENETWORK"
    if isinstance(exc, ConnectionRefusedError):
        return "ECONNREFUSED"
    return None
