"""Delivery method registry.

Static catalog of the payout rails offered per country/currency, with the
recipient fields each rail needs, their validation rules and the rail fee.
"""

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional

from remitdex.errors import InvalidDeliveryMethod

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldValidation:
    pattern: Optional[str] = None
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    options: tuple[str, ...] = ()


@dataclass(frozen=True)
class DeliveryField:
    """A recipient field required by a delivery method."""

    name: str
    label: str
    type: str = "text"  # text, tel, email, select
    required: bool = True
    validation: Optional[FieldValidation] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None


@dataclass(frozen=True)
class DeliveryFee:
    fixed: Decimal
    percentage: Decimal  # percent, 0.5 = 0.5%


@dataclass(frozen=True)
class FeeBreakdown:
    fixed: Decimal
    percentage: Decimal  # amount charged by the percentage component
    total: Decimal


@dataclass(frozen=True)
class DeliveryMethod:
    """A payout rail for one country/currency."""

    id: str
    name: str
    type: str
    country_code: str
    currency: str
    min_amount: Decimal
    max_amount: Decimal
    estimated_minutes: int
    fee: DeliveryFee
    required_fields: tuple[DeliveryField, ...] = field(default_factory=tuple)
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "country_code": self.country_code,
            "currency": self.currency,
            "min_amount": str(self.min_amount),
            "max_amount": str(self.max_amount),
            "estimated_minutes": self.estimated_minutes,
            "fee": {"fixed": str(self.fee.fixed), "percentage": str(self.fee.percentage)},
            "required_fields": [f.name for f in self.required_fields],
        }


# Shared field definitions

ACCOUNT_NAME = DeliveryField(
    name="account_name",
    label="Account Name",
    validation=FieldValidation(min_length=2, max_length=100),
    placeholder="Juan Dela Cruz",
)

PH_MOBILE = FieldValidation(pattern=r"^\+639\d{9}$", min_length=13, max_length=13)

PH_BANKS = ("BDO", "BPI", "Metrobank", "UnionBank", "Security Bank", "PNB", "Landbank")
NG_BANKS = ("First Bank", "GTBank", "Access Bank", "Zenith Bank", "UBA", "Sterling Bank")
NG_MOBILE_MONEY_PROVIDERS = ("MTN MoMo", "Airtel Money", "Glo Cash", "9mobile Cash")


DELIVERY_METHODS: dict[str, DeliveryMethod] = {
    # ========== Philippines ==========
    "gcash_php": DeliveryMethod(
        id="gcash_php",
        name="GCash",
        type="gcash",
        country_code="PH",
        currency="PHP",
        min_amount=Decimal("100"),
        max_amount=Decimal("500000"),
        estimated_minutes=1,
        fee=DeliveryFee(fixed=Decimal("0"), percentage=Decimal("0.5")),
        required_fields=(
            DeliveryField(
                name="phone_number",
                label="GCash Mobile Number",
                type="tel",
                validation=PH_MOBILE,
                placeholder="+639123456789",
                help_text="Philippine mobile number registered with GCash",
            ),
            ACCOUNT_NAME,
        ),
        description="Instant transfer to GCash mobile wallet",
    ),
    "paymaya_php": DeliveryMethod(
        id="paymaya_php",
        name="PayMaya",
        type="paymaya",
        country_code="PH",
        currency="PHP",
        min_amount=Decimal("100"),
        max_amount=Decimal("500000"),
        estimated_minutes=1,
        fee=DeliveryFee(fixed=Decimal("0"), percentage=Decimal("0.5")),
        required_fields=(
            DeliveryField(
                name="phone_number",
                label="PayMaya Mobile Number",
                type="tel",
                validation=PH_MOBILE,
                placeholder="+639123456789",
                help_text="Philippine mobile number registered with PayMaya",
            ),
            ACCOUNT_NAME,
        ),
        description="Instant transfer to PayMaya wallet",
    ),
    "bank_ph": DeliveryMethod(
        id="bank_ph",
        name="Bank Transfer",
        type="bank_transfer",
        country_code="PH",
        currency="PHP",
        min_amount=Decimal("1000"),
        max_amount=Decimal("1000000"),
        estimated_minutes=60,
        fee=DeliveryFee(fixed=Decimal("50"), percentage=Decimal("0.3")),
        required_fields=(
            DeliveryField(
                name="bank_name",
                label="Bank Name",
                type="select",
                validation=FieldValidation(options=PH_BANKS),
            ),
            DeliveryField(
                name="account_number",
                label="Account Number",
                validation=FieldValidation(pattern=r"^[0-9]{10,16}$", min_length=10, max_length=16),
                placeholder="1234567890",
            ),
            ACCOUNT_NAME,
        ),
        description="Direct transfer to Philippine bank account",
    ),
    # ========== Nigeria ==========
    "mobile_money_ngn": DeliveryMethod(
        id="mobile_money_ngn",
        name="Mobile Money",
        type="mobile_money",
        country_code="NG",
        currency="NGN",
        min_amount=Decimal("1000"),
        max_amount=Decimal("5000000"),
        estimated_minutes=5,
        fee=DeliveryFee(fixed=Decimal("100"), percentage=Decimal("0.6")),
        required_fields=(
            DeliveryField(
                name="phone_number",
                label="Mobile Number",
                type="tel",
                validation=FieldValidation(pattern=r"^\+234[789]\d{9}$", min_length=14, max_length=14),
                placeholder="+2348012345678",
                help_text="Nigerian mobile number",
            ),
            DeliveryField(
                name="provider",
                label="Mobile Money Provider",
                type="select",
                validation=FieldValidation(options=NG_MOBILE_MONEY_PROVIDERS),
            ),
            ACCOUNT_NAME,
        ),
        description="Transfer to Nigerian mobile money wallet",
    ),
    "bank_ngn": DeliveryMethod(
        id="bank_ngn",
        name="Bank Transfer",
        type="bank_transfer",
        country_code="NG",
        currency="NGN",
        min_amount=Decimal("5000"),
        max_amount=Decimal("10000000"),
        estimated_minutes=120,
        fee=DeliveryFee(fixed=Decimal("200"), percentage=Decimal("0.4")),
        required_fields=(
            DeliveryField(
                name="bank_name",
                label="Bank Name",
                type="select",
                validation=FieldValidation(options=NG_BANKS),
            ),
            DeliveryField(
                name="account_number",
                label="NUBAN Account Number",
                validation=FieldValidation(pattern=r"^[0-9]{10}$", min_length=10, max_length=10),
                placeholder="0123456789",
                help_text="10-digit NUBAN account number",
            ),
            DeliveryField(name="account_name", label="Account Name"),
        ),
        description="Direct transfer to Nigerian bank account",
    ),
    # ========== Argentina ==========
    "bank_ars": DeliveryMethod(
        id="bank_ars",
        name="Bank Transfer",
        type="bank_transfer",
        country_code="AR",
        currency="ARS",
        min_amount=Decimal("1000"),
        max_amount=Decimal("5000000"),
        estimated_minutes=1440,
        fee=DeliveryFee(fixed=Decimal("500"), percentage=Decimal("0.7")),
        required_fields=(
            DeliveryField(
                name="cbu_cvu",
                label="CBU/CVU",
                validation=FieldValidation(pattern=r"^[0-9]{22}$", min_length=22, max_length=22),
                placeholder="0123456789012345678901",
                help_text="22-digit CBU or CVU number",
            ),
            DeliveryField(name="account_name", label="Account Name"),
            DeliveryField(
                name="cuit_cuil",
                label="CUIT/CUIL",
                validation=FieldValidation(pattern=r"^[0-9]{11}$", min_length=11, max_length=11),
                placeholder="20123456789",
                help_text="Tax identification number",
            ),
        ),
        description="Transfer to Argentine bank account",
    ),
}


class DeliveryMethodRegistry:
    """Lookup, validation and fee calculation over the delivery method catalog."""

    def __init__(self, methods: Optional[Mapping[str, DeliveryMethod]] = None):
        self._methods = dict(methods if methods is not None else DELIVERY_METHODS)

    def get(self, method_id: str) -> Optional[DeliveryMethod]:
        return self._methods.get(method_id)

    def get_available(self, country_code: str, currency: str) -> list[DeliveryMethod]:
        """Delivery methods offered for a country/currency pair."""
        return [
            m
            for m in self._methods.values()
            if m.country_code == country_code.upper() and m.currency == currency.upper()
        ]

    def find(self, country_code: str, currency: str, method_type: str) -> Optional[DeliveryMethod]:
        """Find the method of a given rail type (gcash, bank_transfer...) for a corridor."""
        for method in self.get_available(country_code, currency):
            if method.type == method_type:
                return method
        return None

    def validate(self, method_id: str, amount: Decimal, fields: Mapping[str, object]) -> list[str]:
        """Check an amount and recipient fields against a method's rules.

        Returns:
            List of human-readable errors, empty when valid
        """
        method = self._methods.get(method_id)
        if not method:
            return ["Invalid delivery method"]

        errors = []
        if amount < method.min_amount:
            errors.append(f"Amount below minimum of {method.min_amount} {method.currency}")
        if amount > method.max_amount:
            errors.append(f"Amount exceeds maximum of {method.max_amount} {method.currency}")

        for delivery_field in method.required_fields:
            raw = fields.get(delivery_field.name)
            value = str(raw) if raw is not None else ""

            if delivery_field.required and not value:
                errors.append(f"{delivery_field.label} is required")
                continue

            rules = delivery_field.validation
            if not value or rules is None:
                continue

            if rules.pattern and not re.match(rules.pattern, value):
                errors.append(f"{delivery_field.label} format is invalid")
            if rules.min_length is not None and len(value) < rules.min_length:
                errors.append(f"{delivery_field.label} is too short")
            if rules.max_length is not None and len(value) > rules.max_length:
                errors.append(f"{delivery_field.label} is too long")
            if rules.options and value not in rules.options:
                errors.append(f"{delivery_field.label} must be one of: {', '.join(rules.options)}")

        return errors

    def calculate_fee(self, method_id: str, amount: Decimal) -> FeeBreakdown:
        """Rail fee for an amount in the method's currency."""
        method = self._methods.get(method_id)
        if not method:
            raise InvalidDeliveryMethod(method_id)

        percentage = amount * method.fee.percentage / 100
        return FeeBreakdown(
            fixed=method.fee.fixed,
            percentage=percentage,
            total=method.fee.fixed + percentage,
        )
