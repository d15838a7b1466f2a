"""
Drawer ledgers: cash count by denomination, non-cash payments by method,
and the declared income breakdown.

WHY: These are the raw inputs of a shift. Everything the shift derives
(expected cash, difference, totals) comes from here, in integer cents.

DESIGN PRINCIPLES:
- A set is always replaced whole, never patched line by line
- Zero lines are dropped; duplicates and unknown keys are rejected
- No floats: every amount goes through money.to_cents
"""

from __future__ import annotations

from typing import Iterable, Mapping

from ..constants import DENOMINATIONS_CENTS, INCOME_CATEGORIES, PAYMENT_METHODS, VOUCHER_PENDING
from ..errors import ValidationError
from ..models import CashierShift
from ..money import MAX_AMOUNT_CENTS, format_cents, to_cents

# Fits the Integer quantity column on every backend
MAX_DENOMINATION_QUANTITY = 1_000_000


def _as_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value.strip())
    raise ValidationError(f"{field} must be an integer")


# =============================================================================
# DENOMINATIONS
# =============================================================================

def parse_denomination_lines(lines: Iterable[Mapping]) -> list[tuple[int, int]]:
    """
    Validate a cash count.

    Returns (denomination_cents, quantity) pairs with quantity > 0,
    largest face value first.
    """
    if lines is None:
        raise ValidationError("denominations must be a list")

    counted: dict[int, int] = {}
    for index, line in enumerate(lines):
        if not isinstance(line, Mapping):
            raise ValidationError(f"denominations[{index}] must be an object")
        denom = to_cents(line.get("denomination"), f"denominations[{index}].denomination")
        if denom not in DENOMINATIONS_CENTS:
            raise ValidationError(f"{format_cents(denom)} is not an accepted denomination")
        quantity = _as_int(line.get("quantity"), f"denominations[{index}].quantity")
        if quantity < 0:
            raise ValidationError(f"denominations[{index}].quantity cannot be negative")
        if quantity > MAX_DENOMINATION_QUANTITY:
            raise ValidationError(
                f"denominations[{index}].quantity cannot exceed {MAX_DENOMINATION_QUANTITY}"
            )
        if denom * quantity > MAX_AMOUNT_CENTS:
            raise ValidationError(f"denominations[{index}] total is too large")
        if denom in counted:
            raise ValidationError(f"Denomination {format_cents(denom)} listed more than once")
        counted[denom] = quantity

    if denomination_total_cents(counted.items()) > MAX_AMOUNT_CENTS:
        raise ValidationError("Counted cash is too large")

    return sorted(
        ((denom, qty) for denom, qty in counted.items() if qty > 0),
        key=lambda pair: pair[0],
        reverse=True,
    )


def denomination_total_cents(parsed: Iterable[tuple[int, int]]) -> int:
    return sum(denom * qty for denom, qty in parsed)


def denomination_snapshot(shift: CashierShift) -> dict[str, int]:
    return {format_cents(d.denomination_cents): d.quantity for d in shift.denominations}


# =============================================================================
# PAYMENTS
# =============================================================================

def parse_payment_lines(lines: Iterable[Mapping]) -> list[tuple[int, int]]:
    """Validate a payment breakdown. Returns (payment_method_id, amount_cents) with amount > 0."""
    if lines is None:
        raise ValidationError("payments must be a list")

    amounts: dict[int, int] = {}
    for index, line in enumerate(lines):
        if not isinstance(line, Mapping):
            raise ValidationError(f"payments[{index}] must be an object")
        method_id = _as_int(line.get("payment_method_id"), f"payments[{index}].payment_method_id")
        if method_id not in PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method {method_id}")
        if method_id in amounts:
            raise ValidationError(f"Payment method {PAYMENT_METHODS[method_id]} listed more than once")
        amounts[method_id] = to_cents(line.get("amount"), f"payments[{index}].amount")

    return sorted((m, a) for m, a in amounts.items() if a > 0)


def payment_snapshot(shift: CashierShift) -> dict[str, str]:
    return {p.payment_method_name: format_cents(p.amount_cents) for p in shift.payments}


def payment_totals_by_method(shift: CashierShift) -> dict[int, int]:
    totals = {method_id: 0 for method_id in PAYMENT_METHODS}
    for payment in shift.payments:
        totals[payment.payment_method_id] += payment.amount_cents
    return totals


# =============================================================================
# INCOME
# =============================================================================

def parse_income_breakdown(breakdown: Mapping | None, income_cents: int) -> dict[str, int] | None:
    """
    Validate the per-category income split.

    Keys must come from INCOME_CATEGORIES; the split cannot exceed the
    declared income.
    """
    if breakdown is None:
        return None
    if not isinstance(breakdown, Mapping):
        raise ValidationError("income_breakdown must be an object")

    parsed: dict[str, int] = {}
    for key, value in breakdown.items():
        if key not in INCOME_CATEGORIES:
            raise ValidationError(
                f"Unknown income category '{key}' (allowed: {', '.join(INCOME_CATEGORIES)})"
            )
        parsed[key] = to_cents(value, f"income_breakdown.{key}")

    if sum(parsed.values()) > income_cents:
        raise ValidationError("income_breakdown exceeds the declared income")
    return {key: cents for key, cents in parsed.items() if cents > 0} or None


# =============================================================================
# DERIVED FIELDS
# =============================================================================

def pending_voucher_cents(shift: CashierShift) -> int:
    return sum(v.amount_cents for v in shift.vouchers if v.status == VOUCHER_PENDING)


def recompute_shift(shift: CashierShift) -> None:
    """
    Rewrite every derived field of a shift from its inputs.

    Never touches status, income, or the line sets themselves.
    """
    shift.cash_expected_cents = (
        (shift.initial_fund_cents or 0)
        + (shift.income_cents or 0)
        - pending_voucher_cents(shift)
    )
    shift.cash_counted_cents = denomination_total_cents(
        (d.denomination_cents, d.quantity) for d in shift.denominations
    )
    shift.difference_cents = shift.cash_counted_cents - shift.cash_expected_cents
    shift.payments_total_cents = sum(p.amount_cents for p in shift.payments)
    shift.grand_total_cents = shift.cash_counted_cents + shift.payments_total_cents
