"""Transaction field validation, sanitizing and display formatting.

Every function here is pure: validators never raise and never stop at the
first problem, all violations are collected into a ``ValidationResult``.
"""

import math
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any
from urllib.parse import urlsplit

from src.models.transaction import TransactionStatus

MAX_AMOUNT = 1_000_000
MAX_DECIMAL_PLACES = 2

CURRENCY_PATTERN = re.compile(r"[A-Z]{3}")
ALLPAY_ID_PATTERN = re.compile(r"[a-zA-Z0-9_-]+")
UUID_PATTERN = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)

CURRENCY_SYMBOLS = {
    "ILS": "₪",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "UGX": "USh",
}


@dataclass
class ValidationResult:
    """Aggregated outcome of a validation run."""

    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass
class CreateTransactionData:
    """Raw data for a new transaction, as received from a caller.

    Fields are intentionally loosely typed so the validator can report
    type problems instead of the constructor raising.
    """

    user_id: Any
    amount: Any
    currency: Any
    payment_url: Any
    allpay_transaction_id: Any = None
    description: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    success_url: str | None = None
    cancel_url: str | None = None
    webhook_url: str | None = None
    metadata: dict[str, Any] | None = None
    expires_at: datetime | None = None
    api_key_id: uuid.UUID | None = None


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float | Decimal) and not isinstance(value, bool)


def _is_finite(value: int | float | Decimal) -> bool:
    if isinstance(value, Decimal):
        return value.is_finite()
    return math.isfinite(value)


def count_decimal_places(amount: int | float | Decimal) -> int:
    """Count fraction digits in the decimal string form of a number.

    Floats use their shortest round-trip representation, so ``0.1 + 0.2``
    has 17 places while ``100.1`` has one. Decimals keep their literal
    digits, ``Decimal("1.10")`` has two.
    """
    if isinstance(amount, int):
        return 0
    text = repr(amount) if isinstance(amount, float) else str(amount)
    exponent = Decimal(text).as_tuple().exponent
    if not isinstance(exponent, int):
        return 0
    return max(0, -exponent)


def validate_amount(amount: Any) -> ValidationResult:
    """Validate a payment amount.

    Must be a finite number, greater than zero, at most 1,000,000 and
    with no more than two decimal places.
    """
    errors: list[str] = []

    if not _is_number(amount):
        errors.append("Amount must be a number")
        return ValidationResult(errors)

    if not _is_finite(amount):
        errors.append("Amount must be a valid number")
        return ValidationResult(errors)

    if amount <= 0:
        errors.append("Amount must be greater than zero")

    if amount > MAX_AMOUNT:
        errors.append("Amount exceeds maximum allowed value")

    if count_decimal_places(amount) > MAX_DECIMAL_PLACES:
        errors.append("Amount cannot have more than 2 decimal places")

    return ValidationResult(errors)


def validate_currency(currency: Any) -> bool:
    """Validate an ISO 4217 currency code (three uppercase letters)."""
    if not currency or not isinstance(currency, str):
        return False
    return CURRENCY_PATTERN.fullmatch(currency.strip()) is not None


def validate_payment_url(url: Any) -> bool:
    """Validate that a payment URL is absolute and uses HTTPS."""
    if not url or not isinstance(url, str):
        return False
    try:
        parsed = urlsplit(url.strip())
    except ValueError:
        return False
    return parsed.scheme == "https" and bool(parsed.hostname)


def validate_transaction_status(status: Any) -> bool:
    """Validate that a value names a known transaction status."""
    try:
        TransactionStatus(status)
    except ValueError:
        return False
    return True


def validate_allpay_transaction_id(value: Any) -> bool:
    """Validate an AllPay transaction reference (3-100 of [A-Za-z0-9_-])."""
    if not value or not isinstance(value, str):
        return False
    trimmed = value.strip()
    return 3 <= len(trimmed) <= 100 and ALLPAY_ID_PATTERN.fullmatch(trimmed) is not None


def validate_user_id(value: Any) -> bool:
    """Validate a canonical UUID (8-4-4-4-12 hex groups, any case)."""
    if isinstance(value, uuid.UUID):
        return True
    if not value or not isinstance(value, str):
        return False
    return UUID_PATTERN.fullmatch(value.strip()) is not None


def validate_create_transaction_data(data: CreateTransactionData) -> ValidationResult:
    """Validate everything needed to create a transaction."""
    errors: list[str] = []

    if not validate_user_id(data.user_id):
        errors.append("Invalid user ID format")

    errors.extend(validate_amount(data.amount).errors)

    if not validate_currency(data.currency):
        errors.append("Currency must be a valid 3-letter ISO code (e.g., ILS, USD)")

    if not validate_payment_url(data.payment_url):
        errors.append("Payment URL must be a valid HTTPS URL")

    if data.allpay_transaction_id and not validate_allpay_transaction_id(
        data.allpay_transaction_id
    ):
        errors.append("Invalid AllPay transaction ID format")

    return ValidationResult(errors)


def validate_transaction(transaction: Any) -> ValidationResult:
    """Validate a complete transaction record.

    Accepts a ``Transaction`` row or any object with the same attributes.
    Unlike creation data, the AllPay reference is required here.
    """
    errors: list[str] = []

    if not validate_user_id(getattr(transaction, "id", None)):
        errors.append("Invalid transaction ID format")

    if not validate_user_id(getattr(transaction, "user_id", None)):
        errors.append("Invalid user ID format")

    errors.extend(validate_amount(getattr(transaction, "amount", None)).errors)

    if not validate_currency(getattr(transaction, "currency", None)):
        errors.append("Currency must be a valid 3-letter ISO code")

    if not validate_payment_url(getattr(transaction, "payment_url", None)):
        errors.append("Payment URL must be a valid HTTPS URL")

    if not validate_transaction_status(getattr(transaction, "status", None)):
        errors.append("Invalid transaction status")

    if not validate_allpay_transaction_id(getattr(transaction, "allpay_transaction_id", None)):
        errors.append("Invalid AllPay transaction ID format")

    created_at = getattr(transaction, "created_at", None)
    updated_at = getattr(transaction, "updated_at", None)
    created_ok = isinstance(created_at, datetime)
    updated_ok = isinstance(updated_at, datetime)

    if not created_ok:
        errors.append("Invalid created date")

    if not updated_ok:
        errors.append("Invalid updated date")

    if created_ok and updated_ok:
        try:
            if updated_at < created_at:
                errors.append("Updated date cannot be before created date")
        except TypeError:
            # naive vs aware datetimes
            errors.append("Invalid updated date")

    return ValidationResult(errors)


def round_amount(amount: int | float | Decimal) -> Decimal:
    """Round to two decimals, halves away from zero (2.345 -> 2.35)."""
    text = repr(amount) if isinstance(amount, float) else str(amount)
    return Decimal(text).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def sanitize_create_transaction_data(data: CreateTransactionData) -> CreateTransactionData:
    """Normalize creation data.

    Trims strings, upper-cases the currency and rounds the amount to two
    decimals. Applying it to already sanitized data returns equal data.
    """
    amount = data.amount
    if _is_number(amount) and _is_finite(amount):
        try:
            amount = round_amount(amount)
        except InvalidOperation:
            pass

    currency = data.currency.strip().upper() if isinstance(data.currency, str) else data.currency

    return replace(
        data,
        user_id=_strip(data.user_id),
        amount=amount,
        currency=currency,
        payment_url=_strip(data.payment_url),
        allpay_transaction_id=_strip(data.allpay_transaction_id),
        description=_strip(data.description),
        customer_email=_strip(data.customer_email),
        customer_name=_strip(data.customer_name),
        customer_phone=_strip(data.customer_phone),
    )


def format_transaction_amount(amount: int | float | Decimal, currency: str) -> str:
    """Format an amount for display with its currency symbol.

    Unknown currency codes are used as the symbol as-is.

    Example:
        format_transaction_amount(100, "ILS") -> "₪100.00"
        format_transaction_amount(100, "XYZ") -> "XYZ100.00"
    """
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency)
    return f"{symbol}{round_amount(amount)}"
