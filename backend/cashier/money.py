"""
Exact money handling.

Amounts are persisted as integer cents and exposed as two-place Decimals.
Binary floats never take part in arithmetic: a float coming from JSON is
converted through its shortest repr ("0.1" stays 0.1), then validated like
any other decimal string.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import ValidationError

CENT = Decimal("0.01")

# Maximum amount: 9,999,999,999.99 (fits the BigInteger columns with room to spare)
MAX_AMOUNT_CENTS = 999_999_999_999


def to_decimal(value, field: str = "amount") -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a decimal amount")

    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, int):
        dec = Decimal(value)
    elif isinstance(value, float):
        dec = Decimal(repr(value))
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be a decimal amount")
        try:
            dec = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{field} must be a decimal amount")
    else:
        raise ValidationError(f"{field} must be a decimal amount")

    if not dec.is_finite():
        raise ValidationError(f"{field} must be a finite amount")
    try:
        quantized = dec.quantize(CENT)
    except InvalidOperation:
        raise ValidationError(f"{field} is too large")
    if dec != quantized:
        raise ValidationError(f"{field} cannot have more than two decimal places")
    return quantized


def to_cents(value, field: str = "amount", *, allow_negative: bool = False) -> int:
    """Parse an amount into integer cents."""
    dec = to_decimal(value, field)
    if dec < 0 and not allow_negative:
        raise ValidationError(f"{field} cannot be negative")
    cents = int(dec * 100)
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} is too large")
    return cents


def from_cents(cents: int | None) -> Decimal:
    return (Decimal(cents or 0) / 100).quantize(CENT)


def format_cents(cents: int | None) -> str:
    """'70000' -> '700.00' (the wire form of every amount)."""
    return str(from_cents(cents))
