from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from resale_wallet.time_utils import parse_iso_date, parse_iso_datetime, normalize_datetime


# Maximum price: 9,999,999.99 per unit
MAX_PRICE = Decimal("9999999.99")
MAX_QUANTITY = 1_000_000
MAX_LABEL_LENGTH = 64
MAX_NAME_LENGTH = 255

CENT = Decimal("0.01")


class WalletError(Exception):
    """Base for all domain errors; carries a message and structured details."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(WalletError, ValueError):
    """400-level input problem. Raised before any mutation."""


class InvariantViolation(WalletError):
    """409-level: the change would break sold_quantity <= total_quantity."""


class InsufficientStockError(WalletError):
    """409-level: a sale asks for more units than are available."""


class NotFoundError(WalletError, LookupError):
    """404-level: the id does not exist for the caller's user."""


class CapabilityUnavailableError(WalletError):
    """The backing store cannot serve this kind of data (e.g. table not provisioned)."""


def require_text(value: Any, field: str, *, max_length: int = MAX_NAME_LENGTH) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    s = str(value).strip()
    if not s:
        raise ValidationError(f"{field} must not be empty")
    if len(s) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return s


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def coerce_int(value: Any, field: str) -> int:
    """Strict integer coercion - rejects floats, decimals and scientific notation."""
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def coerce_quantity(value: Any, field: str = "quantity", *, minimum: int = 1) -> int:
    qty = coerce_int(value, field)
    if qty < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", details={field: qty})
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} must be at most {MAX_QUANTITY}", details={field: qty})
    return qty


def coerce_money(value: Any, field: str, *, allow_zero: bool = False) -> Decimal:
    """
    Parse a money amount into a Decimal with at most two decimal places.

    Floats are routed through str() so 12.5 becomes Decimal("12.5") rather
    than its binary approximation.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        raw = str(value).strip().replace(",", ".") if isinstance(value, str) else str(value)
        try:
            amount = Decimal(raw)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if amount < 0 or (amount == 0 and not allow_zero):
        bound = "zero or more" if allow_zero else "greater than zero"
        raise ValidationError(f"{field} must be {bound}", details={field: str(amount)})
    # range first: quantize() on an exponent past the context precision raises InvalidOperation
    if amount > MAX_PRICE:
        raise ValidationError(f"{field} exceeds maximum of {MAX_PRICE}")
    if amount != amount.quantize(CENT):
        raise ValidationError(f"{field} must have at most two decimal places")
    return amount.quantize(CENT)


def coerce_date(value: Any, field: str) -> date:
    if isinstance(value, datetime):
        return normalize_datetime(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            d = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        if d is None:
            raise ValidationError(f"{field} is required")
        return d
    raise ValidationError(f"{field} must be a date")


def coerce_datetime(value: Any, field: str) -> datetime:
    if isinstance(value, datetime):
        return normalize_datetime(value)
    if isinstance(value, str):
        try:
            dt = parse_iso_datetime(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 datetime")
        if dt is None:
            raise ValidationError(f"{field} is required")
        return dt
    raise ValidationError(f"{field} must be a datetime")
