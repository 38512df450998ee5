"""Tests for delivery error classification."""

import asyncio

import httpx
import pytest

from remitdex.delivery.errors import (
    USER_MESSAGES,
    DeliveryErrorKind,
    classify,
    error_code,
    user_message,
)
from remitdex.errors import AnchorError, BridgeTimeout, RemittanceError


class CodedError(Exception):
    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class TestErrorCode:
    """Tests for machine code derivation."""

    def test_explicit_code_wins(self):
        assert error_code(AnchorError("boom", code="INVALID_DEST")) == "INVALID_DEST"

    def test_httpx_timeout(self):
        assert error_code(httpx.ReadTimeout("read timed out")) == "ETIMEDOUT"

    def test_asyncio_timeout(self):
        assert error_code(asyncio.TimeoutError()) == "ETIMEDOUT"

    def test_httpx_connect_error(self):
        assert error_code(httpx.ConnectError("connection refused")) == "ECONNREFUSED"

    def test_other_transport_error(self):
        assert error_code(httpx.RemoteProtocolError("peer closed")) == "ENETWORK"

    def test_plain_exception(self):
        assert error_code(ValueError("nope")) is None


class TestClassify:
    """Tests for the fixed-priority classifier."""

    def test_insufficient_beats_connection_refused(self):
        error = classify(CodedError("Insufficient reserve at anchor", "ECONNREFUSED"))

        assert error.kind == DeliveryErrorKind.INSUFFICIENT_FUNDS
        assert error.retryable is True
        assert error.estimated_resolution_minutes == 15

    def test_insufficient_balance_code(self):
        assert classify(CodedError("reserve low", "INSUFFICIENT_BALANCE")).kind == DeliveryErrorKind.INSUFFICIENT_FUNDS

    def test_invalid_recipient(self):
        error = classify(RemittanceError("Invalid recipient account"))

        assert error.kind == DeliveryErrorKind.INVALID_RECIPIENT
        assert error.retryable is False

    def test_invalid_dest_code(self):
        assert classify(CodedError("rejected", "INVALID_DEST")).kind == DeliveryErrorKind.INVALID_RECIPIENT

    def test_kyc_carries_required_info(self):
        exc = AnchorError("Anchor error: more info", code="NEEDS_INFO", required_info=["first_name", "id_number"])
        error = classify(exc)

        assert error.kind == DeliveryErrorKind.KYC_REQUIRED
        assert error.retryable is False
        assert error.details == ["first_name", "id_number"]

    def test_kyc_message_case_insensitive(self):
        assert classify(RuntimeError("KYC check pending")).kind == DeliveryErrorKind.KYC_REQUIRED

    @pytest.mark.parametrize("message", ["Compliance hold", "Account BLOCKED by provider"])
    def test_compliance(self, message):
        error = classify(RuntimeError(message))

        assert error.kind == DeliveryErrorKind.COMPLIANCE_BLOCKED
        assert error.retryable is False

    @pytest.mark.parametrize("code", ["ECONNREFUSED", "ENOTFOUND"])
    def test_anchor_unavailable(self, code):
        error = classify(CodedError("connect failed", code))

        assert error.kind == DeliveryErrorKind.ANCHOR_UNAVAILABLE
        assert error.retryable is True
        assert error.estimated_resolution_minutes == 30

    def test_httpx_connect_error_is_anchor_unavailable(self):
        assert classify(httpx.ConnectError("refused")).kind == DeliveryErrorKind.ANCHOR_UNAVAILABLE

    def test_rate_expired(self):
        error = classify(RuntimeError("Quote Rate Expired"))

        assert error.kind == DeliveryErrorKind.RATE_EXPIRED
        assert error.retryable is True

    def test_limit_exceeded_not_retryable(self):
        error = classify(CodedError("too much", "LIMIT_EXCEEDED"))

        assert error.kind == DeliveryErrorKind.LIMIT_EXCEEDED
        assert error.retryable is False

    def test_timeout(self):
        error = classify(BridgeTimeout(180))

        assert error.kind == DeliveryErrorKind.TIMEOUT
        assert error.code == "ETIMEDOUT"
        assert error.estimated_resolution_minutes == 5

    def test_aborted_is_timeout(self):
        assert classify(CodedError("aborted", "ECONNABORTED")).kind == DeliveryErrorKind.TIMEOUT

    def test_other_e_code_is_network(self):
        error = classify(CodedError("reset", "ECONNRESET"))

        assert error.kind == DeliveryErrorKind.NETWORK_ERROR
        assert error.estimated_resolution_minutes == 10

    def test_default_technical(self):
        error = classify(RuntimeError("something odd"))

        assert error.kind == DeliveryErrorKind.TECHNICAL_ERROR
        assert error.retryable is True
        assert error.estimated_resolution_minutes == 60
        assert error.details == "something odd"

    def test_to_dict_omits_details(self):
        data = classify(RuntimeError("secret detail")).to_dict()

        assert data["kind"] == "TECHNICAL_ERROR"
        assert "details" not in data


class TestUserMessage:
    """Tests for customer-facing messages."""

    def test_every_kind_has_message(self):
        assert set(USER_MESSAGES) == set(DeliveryErrorKind)

    def test_anchor_unavailable_text(self):
        error = classify(CodedError("connect failed", "ECONNREFUSED"))

        assert user_message(error) == "Our delivery partner is temporarily unavailable. We're working on it."

    def test_message_does_not_include_raw_text(self):
        error = classify(RuntimeError("stack trace with internals"))

        assert "internals" not in user_message(error)
