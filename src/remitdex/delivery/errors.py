"""Delivery error classification.

Maps any exception raised by the swap, bridge or payout legs onto a closed set
of error kinds, each with retry guidance and a fixed customer-facing message.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from remitdex.errors import transport_error_code

logger = logging.getLogger(__name__)


class DeliveryErrorKind(str, Enum):
    """Closed set of delivery failure categories."""

    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    INVALID_RECIPIENT = "INVALID_RECIPIENT"
    KYC_REQUIRED = "KYC_REQUIRED"
    COMPLIANCE_BLOCKED = "COMPLIANCE_BLOCKED"
    ANCHOR_UNAVAILABLE = "ANCHOR_UNAVAILABLE"
    RATE_EXPIRED = "RATE_EXPIRED"
    LIMIT_EXCEEDED = "LIMIT_EXCEEDED"
    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"


@dataclass(frozen=True)
class DeliveryError:
    """A classified delivery failure."""

    kind: DeliveryErrorKind
    message: str
    retryable: bool
    code: Optional[str] = None
    user_action: Optional[str] = None
    estimated_resolution_minutes: Optional[int] = None
    details: Any = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "code": self.code,
            "retryable": self.retryable,
            "user_action": self.user_action,
            "estimated_resolution_minutes": self.estimated_resolution_minutes,
        }


USER_MESSAGES: dict[DeliveryErrorKind, str] = {
    DeliveryErrorKind.INSUFFICIENT_FUNDS: "Service temporarily unavailable. Please try again in 15 minutes.",
    DeliveryErrorKind.INVALID_RECIPIENT: "The recipient information provided is invalid. Please check and try again.",
    DeliveryErrorKind.KYC_REQUIRED: "Additional verification is required to complete this transaction.",
    DeliveryErrorKind.COMPLIANCE_BLOCKED: "This transaction cannot be processed due to regulatory requirements.",
    DeliveryErrorKind.ANCHOR_UNAVAILABLE: "Our delivery partner is temporarily unavailable. We're working on it.",
    DeliveryErrorKind.RATE_EXPIRED: "The exchange rate has expired. Getting you a new quote...",
    DeliveryErrorKind.LIMIT_EXCEEDED: "This amount exceeds your transaction limit.",
    DeliveryErrorKind.TECHNICAL_ERROR: "Something went wrong. Our team has been notified.",
    DeliveryErrorKind.NETWORK_ERROR: "Connection issue. Please check your internet and try again.",
    DeliveryErrorKind.TIMEOUT: "The request took too long. Please try again.",
}


def error_code(exc: BaseException) -> Optional[str]:
    """Machine code of an exception: explicit ``code`` or derived from its type."""
    return transport_error_code(exc)


def classify(exc: BaseException) -> DeliveryError:
    """Classify a raw exception into a DeliveryError.

    Rules are checked in a fixed priority order and the first match wins, so
    an "insufficient" message beats a connection-refused code.
    """
    message = str(exc) or type(exc).__name__
    text = message.lower()
    code = error_code(exc)

    if "insufficient" in text or code == "INSUFFICIENT_BALANCE":
        return DeliveryError(
            kind=DeliveryErrorKind.INSUFFICIENT_FUNDS,
            message="Insufficient funds in anchor reserve",
            code=code,
            retryable=True,
            user_action="Please try again in a few minutes",
            estimated_resolution_minutes=15,
        )

    if "invalid recipient" in text or code == "INVALID_DEST":
        return DeliveryError(
            kind=DeliveryErrorKind.INVALID_RECIPIENT,
            message="Recipient details are invalid or incomplete",
            code=code,
            retryable=False,
            user_action="Please verify recipient information and try again",
        )

    if "kyc" in text or code == "NEEDS_INFO":
        return DeliveryError(
            kind=DeliveryErrorKind.KYC_REQUIRED,
            message="Additional KYC information required",
            code=code,
            retryable=False,
            user_action="Please complete KYC verification",
            details=getattr(exc, "required_info", None),
        )

    if "compliance" in text or "blocked" in text:
        return DeliveryError(
            kind=DeliveryErrorKind.COMPLIANCE_BLOCKED,
            message="Transaction blocked for compliance reasons",
            code=code,
            retryable=False,
            user_action="Please contact support for assistance",
        )

    if code in ("ECONNREFUSED", "ENOTFOUND"):
        return DeliveryError(
            kind=DeliveryErrorKind.ANCHOR_UNAVAILABLE,
            message="Anchor service temporarily unavailable",
            code=code,
            retryable=True,
            estimated_resolution_minutes=30,
        )

    if "rate expired" in text or code == "RATE_EXPIRED":
        return DeliveryError(
            kind=DeliveryErrorKind.RATE_EXPIRED,
            message="Exchange rate expired",
            code=code,
            retryable=True,
            user_action="Getting new rate...",
        )

    if "limit exceeded" in text or code == "LIMIT_EXCEEDED":
        return DeliveryError(
            kind=DeliveryErrorKind.LIMIT_EXCEEDED,
            message="Transaction limit exceeded",
            code=code,
            retryable=False,
            user_action="Please reduce amount or complete additional verification",
            details=getattr(exc, "limits", None),
        )

    if code in ("ETIMEDOUT", "ECONNABORTED"):
        return DeliveryError(
            kind=DeliveryErrorKind.TIMEOUT,
            message="Request timed out",
            code=code,
            retryable=True,
            estimated_resolution_minutes=5,
        )

    if code and code.startswith("E"):
        return DeliveryError(
            kind=DeliveryErrorKind.NETWORK_ERROR,
            message="Network error occurred",
            code=code,
            retryable=True,
            estimated_resolution_minutes=10,
        )

    return DeliveryError(
        kind=DeliveryErrorKind.TECHNICAL_ERROR,
        message="An unexpected error occurred",
        code=code,
        retryable=True,
        estimated_resolution_minutes=60,
        details=message,
    )


def user_message(error: DeliveryError) -> str:
    """Fixed customer-facing text for a classified error."""
    return USER_MESSAGES.get(error.kind, error.message)
