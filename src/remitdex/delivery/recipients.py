"""Recipient payload variants.

Recipient details arrive as a tagged union discriminated on
``delivery_method``. Each variant knows how to present itself to the delivery
method registry and how to map onto SEP-6 ``dest``/``dest_extra`` or SEP-9
KYC fields.
"""

import json
import logging
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from remitdex.errors import DeliveryValidationError, InvalidDeliveryMethod

logger = logging.getLogger(__name__)

# Bank name -> Click (PH) institution code
CLICK_BANK_CODES: dict[str, str] = {
    "BDO": "BDO_UNIBANK",
    "BPI": "BPI",
    "Metrobank": "MBTC",
    "UnionBank": "UBP",
    "Security Bank": "SECB",
    "PNB": "PNB",
    "Landbank": "LBP",
}


def _compact_json(data: dict) -> str:
    return json.dumps({k: v for k, v in data.items() if v is not None})


def _split_name(name: str) -> tuple[str, str]:
    parts = name.strip().split(None, 1)
    if not parts:
        return "", ""
    return parts[0], parts[1] if len(parts) > 1 else ""


class _RecipientBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1)
    email: Optional[str] = None

    @property
    def method(self) -> str:
        return self.delivery_method  # type: ignore[attr-defined]

    def to_field_values(self) -> dict[str, Any]:
        """Flat field map checked against the delivery method registry."""
        return self.model_dump(exclude_none=True)

    def _sep9_name(self) -> dict[str, Any]:
        first, last = _split_name(self.name)
        return {"first_name": first, "last_name": last, "email_address": self.email}


class BankTransferDetails(_RecipientBase):
    delivery_method: Literal["bank_transfer"] = "bank_transfer"
    account_name: str
    account_number: Optional[str] = None
    bank_name: Optional[str] = None
    routing_number: Optional[str] = None
    swift_code: Optional[str] = None
    bank_branch: Optional[str] = None
    cbu_cvu: Optional[str] = None  # Argentina
    cuit_cuil: Optional[str] = None  # Argentina tax id

    def to_sep6_payload(self) -> dict[str, str]:
        extra = {
            "bank_name": self.bank_name,
            "bank_code": CLICK_BANK_CODES.get(self.bank_name) if self.bank_name else None,
            "account_name": self.account_name,
            "bank_branch": self.bank_branch,
            "routing_number": self.routing_number,
            "swift_code": self.swift_code,
            "cuit_cuil": self.cuit_cuil,
        }
        return {
            "type": "bank_account",
            "dest": self.cbu_cvu or self.account_number or "",
            "dest_extra": _compact_json(extra),
        }

    def to_sep9_fields(self) -> dict[str, Any]:
        fields = self._sep9_name()
        fields["bank_account_number"] = self.cbu_cvu or self.account_number
        fields["bank_name"] = self.bank_name
        if self.cuit_cuil:
            fields["tax_id"] = self.cuit_cuil
        return {k: v for k, v in fields.items() if v}


class MobileMoneyDetails(_RecipientBase):
    delivery_method: Literal["mobile_money"] = "mobile_money"
    phone_number: str
    provider: str
    account_name: str

    def to_sep6_payload(self) -> dict[str, str]:
        return {
            "type": "mobile_money",
            "dest": self.phone_number,
            "dest_extra": _compact_json(
                {"provider": self.provider, "account_name": self.account_name}
            ),
        }

    def to_sep9_fields(self) -> dict[str, Any]:
        fields = self._sep9_name()
        fields["mobile_number"] = self.phone_number
        return {k: v for k, v in fields.items() if v}


class EWalletDetails(_RecipientBase):
    delivery_method: Literal["gcash", "paymaya", "mobile_wallet"]
    phone_number: str
    account_name: str

    def to_sep6_payload(self) -> dict[str, str]:
        return {
            "type": self.delivery_method,
            "dest": self.phone_number,
            "dest_extra": _compact_json(
                {"account_name": self.account_name, "provider": self.delivery_method}
            ),
        }

    def to_sep9_fields(self) -> dict[str, Any]:
        fields = self._sep9_name()
        fields["mobile_number"] = self.phone_number
        return {k: v for k, v in fields.items() if v}


RecipientDetails = Annotated[
    Union[BankTransferDetails, MobileMoneyDetails, EWalletDetails],
    Field(discriminator="delivery_method"),
]

_recipient_adapter: TypeAdapter = TypeAdapter(RecipientDetails)

_TAG_ERRORS = {"union_tag_invalid", "union_tag_not_found"}


def parse_recipient_details(data: Any) -> Union[BankTransferDetails, MobileMoneyDetails, EWalletDetails]:
    """Parse raw recipient details into a payload variant.

    Raises:
        InvalidDeliveryMethod: Missing or unknown delivery method
        DeliveryValidationError: Variant recognised but fields malformed
    """
    if isinstance(data, (BankTransferDetails, MobileMoneyDetails, EWalletDetails)):
        return data
    if not isinstance(data, dict):
        raise InvalidDeliveryMethod(None, "recipient details must be a mapping")

    try:
        return _recipient_adapter.validate_python(data)
    except ValidationError as e:
        method = data.get("delivery_method")
        errors = e.errors()
        if any(err["type"] in _TAG_ERRORS for err in errors):
            raise InvalidDeliveryMethod(method, "unknown recipient payload type") from e
        messages = [
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'details'}: {err['msg']}"
            for err in errors
        ]
        raise DeliveryValidationError(str(method), messages) from e
