"""Delivery methods, recipient payloads, error classification and retries."""

from remitdex.delivery.errors import (
    DeliveryError,
    DeliveryErrorKind,
    classify,
    user_message,
)
from remitdex.delivery.handler import DeliveryErrorHandler
from remitdex.delivery.methods import DeliveryMethod, DeliveryMethodRegistry
from remitdex.delivery.recipients import (
    BankTransferDetails,
    EWalletDetails,
    MobileMoneyDetails,
    RecipientDetails,
    parse_recipient_details,
)
from remitdex.delivery.retry import RetryDecision, RetryPolicy, RetryScheduler, policy_for

__all__ = [
    "BankTransferDetails",
    "DeliveryError",
    "DeliveryErrorHandler",
    "DeliveryErrorKind",
    "DeliveryMethod",
    "DeliveryMethodRegistry",
    "EWalletDetails",
    "MobileMoneyDetails",
    "RecipientDetails",
    "RetryDecision",
    "RetryPolicy",
    "RetryScheduler",
    "classify",
    "parse_recipient_details",
    "policy_for",
    "user_message",
]
