"""
Shift State Machine Service

WHY: The shift is the atomic accounting unit: one drawer, one work period,
one set of attributed users. Its expected cash, difference and totals are
derived here and nowhere else.

STATES: open -> in_progress -> closed -> audited
- closed -> in_progress via reopen (reason required)
- audited is terminal: no mutation, no reopen

DESIGN PRINCIPLES:
- Every mutation is one unit of work: shift update, derived fields,
  day totals and history rows commit together or not at all
- Differences are flagged, never corrected
- Denomination and payment sets are replaced whole
"""

from __future__ import annotations

from datetime import date

from flask import current_app

from ..constants import (
    ACTION_ADJUSTMENT,
    ACTION_STATUS_CHANGED,
    ACTION_UPDATED,
    DAY_CLOSED,
    SHIFT_AUDITED,
    SHIFT_CLOSED,
    SHIFT_IN_PROGRESS,
    SHIFT_MUTABLE_STATUSES,
    SHIFT_OPEN,
    SHIFT_ROSTER,
)
from ..errors import InvalidStateTransitionError, NotFoundError
from ..extensions import db
from ..models import CashierDaily, CashierDenomination, CashierPayment, CashierShift
from ..money import format_cents, to_cents
from ..time_utils import utcnow
from ..validation import MAX_REASON_LENGTH, optional_text, require_actor, require_text
from .concurrency import check_version, lock_for_update, unit_of_work
from .daily_service import SHIFT_TABLE, apply_daily_totals, get_daily
from .drawer_service import (
    denomination_snapshot,
    parse_denomination_lines,
    parse_income_breakdown,
    parse_payment_lines,
    payment_snapshot,
    recompute_shift,
)
from .history_service import record_history

DENOMINATION_TABLE = "cashier_denominations"
PAYMENT_TABLE = "cashier_payments"


# =============================================================================
# LOOKUPS AND GUARDS
# =============================================================================

def get_shift(shift_id: int) -> CashierShift:
    shift = db.session.get(CashierShift, shift_id)
    if not shift:
        raise NotFoundError(f"Shift {shift_id} not found", code="CASHIER_SHIFT_NOT_FOUND")
    return shift


def list_shifts(day: date | str) -> list[CashierShift]:
    """Shifts of a day in roster order."""
    daily = get_daily(day)
    return sorted(daily.shifts, key=lambda s: SHIFT_ROSTER.index(s.shift_type))


def get_shift_for_update(shift_id: int) -> CashierShift:
    shift = lock_for_update(db.session.query(CashierShift).filter_by(id=shift_id)).first()
    if not shift:
        raise NotFoundError(f"Shift {shift_id} not found", code="CASHIER_SHIFT_NOT_FOUND")
    return shift


def _label(shift: CashierShift) -> str:
    return f"Shift {shift.id} ({shift.shift_date.isoformat()} {shift.shift_type})"


def ensure_day_open(shift: CashierShift) -> None:
    if shift.daily.status == DAY_CLOSED:
        raise InvalidStateTransitionError(
            f"Day {shift.shift_date.isoformat()} is closed; reopen the day first"
        )


def _ensure_not_audited(shift: CashierShift) -> None:
    if shift.status == SHIFT_AUDITED:
        raise InvalidStateTransitionError(f"{_label(shift)} is audited and can no longer change")


def ensure_mutable(shift: CashierShift) -> None:
    """open or in_progress, inside an open day."""
    if shift.status not in SHIFT_MUTABLE_STATUSES:
        raise InvalidStateTransitionError(f"{_label(shift)} is {shift.status}")
    ensure_day_open(shift)


def discrepancy_tolerance_cents() -> int:
    return to_cents(current_app.config.get("CASHIER_DISCREPANCY_TOLERANCE", "0.00"), "CASHIER_DISCREPANCY_TOLERANCE")


def is_beyond_tolerance(shift: CashierShift) -> bool:
    return abs(shift.difference_cents or 0) > discrepancy_tolerance_cents()


def mark_in_progress(shift: CashierShift, changed_by: str) -> None:
    """First recorded activity moves an open shift to in_progress."""
    if shift.status != SHIFT_OPEN:
        return
    shift.status = SHIFT_IN_PROGRESS
    record_history(
        action=ACTION_STATUS_CHANGED,
        changed_by=changed_by,
        shift_id=shift.id,
        table_affected=SHIFT_TABLE,
        record_id=shift.id,
        field_changed="status",
        old_value=SHIFT_OPEN,
        new_value=SHIFT_IN_PROGRESS,
    )


def touch(shift: CashierShift) -> None:
    # Always issue an UPDATE so version_id moves on every mutation
    shift.updated_at = utcnow()


def claim_day(shift: CashierShift) -> CashierDaily:
    """
    Lock the shift's day and move its version.

    Called before changing an already settled shift. A close_day that read
    the day before this commit fails its version check on flush.
    """
    daily = lock_for_update(db.session.query(CashierDaily).filter_by(id=shift.daily_id)).one()
    daily.updated_at = utcnow()
    return daily


def _record_field(shift, changed_by, field, old, new, *, action=ACTION_UPDATED, table=SHIFT_TABLE, record_id=None, notes=None):
    if old == new:
        return
    record_history(
        action=action,
        changed_by=changed_by,
        shift_id=shift.id,
        table_affected=table,
        record_id=record_id or shift.id,
        field_changed=field,
        old_value=old,
        new_value=new,
        notes=notes,
    )


def _record_derived(shift, changed_by, before: dict, *, action=ACTION_UPDATED) -> None:
    for field in ("cash_expected", "difference", "grand_total"):
        _record_field(
            shift, changed_by, field,
            before[field], format_cents(getattr(shift, f"{field}_cents")),
            action=action,
        )


def _derived_snapshot(shift: CashierShift) -> dict:
    return {
        field: format_cents(getattr(shift, f"{field}_cents"))
        for field in ("cash_expected", "difference", "grand_total")
    }


# =============================================================================
# MUTATIONS
# =============================================================================

def update_income(
    shift_id: int,
    income,
    breakdown: dict | None = None,
    *,
    changed_by: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> CashierShift:
    """
    Declare the shift's income and its per-category split.

    Requires the shift to be open or in_progress; recomputes expected cash.
    """
    changed_by = require_actor(changed_by)
    income_cents = to_cents(income, "income")
    parsed_breakdown = parse_income_breakdown(breakdown, income_cents)
    notes = optional_text(notes, "notes")

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, _label(shift))
        ensure_mutable(shift)

        before = _derived_snapshot(shift)
        old_income = format_cents(shift.income_cents)
        old_breakdown = shift.income_breakdown
        old_notes = shift.notes

        mark_in_progress(shift, changed_by)
        shift.income_cents = income_cents
        shift.income_breakdown = parsed_breakdown
        if notes is not None:
            shift.notes = notes
        recompute_shift(shift)
        touch(shift)

        _record_field(shift, changed_by, "income", old_income, format_cents(income_cents))
        _record_field(
            shift, changed_by, "income_breakdown",
            {k: format_cents(v) for k, v in (old_breakdown or {}).items()} or None,
            {k: format_cents(v) for k, v in (parsed_breakdown or {}).items()} or None,
        )
        _record_field(shift, changed_by, "notes", old_notes, shift.notes)
        _record_derived(shift, changed_by, before)

        apply_daily_totals(shift.daily)

    return shift


def _settled_action(shift: CashierShift) -> str:
    # Corrections to an already closed shift are adjustments
    return ACTION_ADJUSTMENT if shift.status == SHIFT_CLOSED else ACTION_UPDATED


def _refresh_discrepancy(shift: CashierShift) -> None:
    if shift.status == SHIFT_CLOSED:
        shift.has_discrepancy = is_beyond_tolerance(shift)


def set_denominations(
    shift_id: int,
    lines: list[dict],
    *,
    changed_by: str,
    expected_version: int | None = None,
) -> CashierShift:
    """
    Replace the shift's cash count with a new full set.

    cash_counted becomes sum(denomination * quantity) over the new lines.
    Allowed until the shift is audited; a closed shift gets an adjustment
    entry and its discrepancy flag re-evaluated.
    """
    changed_by = require_actor(changed_by)
    parsed = parse_denomination_lines(lines)

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, _label(shift))
        _ensure_not_audited(shift)
        if shift.status == SHIFT_CLOSED:
            claim_day(shift)
        ensure_day_open(shift)

        action = _settled_action(shift)
        before = _derived_snapshot(shift)
        old_snapshot = denomination_snapshot(shift)
        old_counted = format_cents(shift.cash_counted_cents)

        mark_in_progress(shift, changed_by)

        shift.denominations.clear()
        db.session.flush()  # old lines go before the new set hits the unique constraint
        for denom, quantity in parsed:
            shift.denominations.append(
                CashierDenomination(
                    denomination_cents=denom,
                    quantity=quantity,
                    total_cents=denom * quantity,
                )
            )
        recompute_shift(shift)
        _refresh_discrepancy(shift)
        touch(shift)

        record_history(
            action=action,
            changed_by=changed_by,
            shift_id=shift.id,
            table_affected=DENOMINATION_TABLE,
            record_id=shift.id,
            field_changed="denominations",
            old_value=old_snapshot,
            new_value=denomination_snapshot(shift),
        )
        _record_field(shift, changed_by, "cash_counted", old_counted, format_cents(shift.cash_counted_cents), action=action)
        _record_derived(shift, changed_by, before, action=action)

        apply_daily_totals(shift.daily)

    return shift


def set_payments(
    shift_id: int,
    lines: list[dict],
    *,
    changed_by: str,
    expected_version: int | None = None,
) -> CashierShift:
    """Replace the shift's non-cash payment breakdown with a new full set."""
    changed_by = require_actor(changed_by)
    parsed = parse_payment_lines(lines)

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, _label(shift))
        _ensure_not_audited(shift)
        if shift.status == SHIFT_CLOSED:
            claim_day(shift)
        ensure_day_open(shift)

        action = _settled_action(shift)
        before = _derived_snapshot(shift)
        old_snapshot = payment_snapshot(shift)
        old_total = format_cents(shift.payments_total_cents)

        mark_in_progress(shift, changed_by)

        shift.payments.clear()
        db.session.flush()
        for method_id, amount_cents in parsed:
            shift.payments.append(CashierPayment(payment_method_id=method_id, amount_cents=amount_cents))
        recompute_shift(shift)
        touch(shift)

        record_history(
            action=action,
            changed_by=changed_by,
            shift_id=shift.id,
            table_affected=PAYMENT_TABLE,
            record_id=shift.id,
            field_changed="payments",
            old_value=old_snapshot,
            new_value=payment_snapshot(shift),
        )
        _record_field(shift, changed_by, "payments_total", old_total, format_cents(shift.payments_total_cents), action=action)
        _record_derived(shift, changed_by, before, action=action)

        apply_daily_totals(shift.daily)

    return shift


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def close_shift(
    shift_id: int,
    *,
    closed_by: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> CashierShift:
    """
    Close a shift and freeze its totals.

    A difference beyond tolerance does not block the close: the shift is
    flagged has_discrepancy and an adjustment entry records it. Pending
    vouchers may outlive the shift.
    """
    closed_by = require_actor(closed_by, "closed_by")
    notes = optional_text(notes, "notes")

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, _label(shift))
        ensure_mutable(shift)

        old_status = shift.status
        recompute_shift(shift)
        shift.has_discrepancy = is_beyond_tolerance(shift)
        shift.status = SHIFT_CLOSED
        shift.closed_at = utcnow()
        shift.closed_by = closed_by
        if notes is not None:
            shift.notes = notes
        touch(shift)

        record_history(
            action=ACTION_STATUS_CHANGED,
            changed_by=closed_by,
            shift_id=shift.id,
            table_affected=SHIFT_TABLE,
            record_id=shift.id,
            field_changed="status",
            old_value=old_status,
            new_value=SHIFT_CLOSED,
            notes=notes,
        )
        if shift.has_discrepancy:
            record_history(
                action=ACTION_ADJUSTMENT,
                changed_by=closed_by,
                shift_id=shift.id,
                table_affected=SHIFT_TABLE,
                record_id=shift.id,
                field_changed="difference",
                old_value=format_cents(shift.cash_expected_cents),
                new_value=format_cents(shift.difference_cents),
                notes=notes or "Closed with cash discrepancy",
            )

        apply_daily_totals(shift.daily)

    if shift.has_discrepancy:
        current_app.logger.warning(
            "%s closed with difference %s", _label(shift), format_cents(shift.difference_cents)
        )
    return shift


def reopen_shift(
    shift_id: int,
    reason: str,
    *,
    changed_by: str,
    expected_version: int | None = None,
) -> CashierShift:
    """closed -> in_progress. Audited shifts cannot be reopened."""
    changed_by = require_actor(changed_by)

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, _label(shift))
        if shift.status != SHIFT_CLOSED:
            raise InvalidStateTransitionError(f"{_label(shift)} is {shift.status}; only closed shifts can be reopened")
        reason = require_text(reason, "reason", max_length=MAX_REASON_LENGTH)
        claim_day(shift)
        ensure_day_open(shift)

        shift.status = SHIFT_IN_PROGRESS
        shift.closed_at = None
        shift.closed_by = None
        shift.has_discrepancy = False
        touch(shift)

        record_history(
            action=ACTION_STATUS_CHANGED,
            changed_by=changed_by,
            shift_id=shift.id,
            table_affected=SHIFT_TABLE,
            record_id=shift.id,
            field_changed="status",
            old_value=SHIFT_CLOSED,
            new_value=SHIFT_IN_PROGRESS,
            notes=reason,
        )

    current_app.logger.info("%s reopened by %s: %s", _label(shift), changed_by, reason)
    return shift


def audit_shift(
    shift_id: int,
    *,
    audited_by: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> CashierShift:
    """closed -> audited. Terminal settlement checkpoint."""
    audited_by = require_actor(audited_by, "audited_by")
    notes = optional_text(notes, "notes")

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, _label(shift))
        if shift.status != SHIFT_CLOSED:
            raise InvalidStateTransitionError(f"{_label(shift)} is {shift.status}; only closed shifts can be audited")

        shift.status = SHIFT_AUDITED
        touch(shift)

        record_history(
            action=ACTION_STATUS_CHANGED,
            changed_by=audited_by,
            shift_id=shift.id,
            table_affected=SHIFT_TABLE,
            record_id=shift.id,
            field_changed="status",
            old_value=SHIFT_CLOSED,
            new_value=SHIFT_AUDITED,
            notes=notes,
        )

    current_app.logger.info("%s audited by %s", _label(shift), audited_by)
    return shift
