"""
Daily Aggregate and Closing Workflow Service

WHY: The day is what gets handed over to accounting. It owns its shifts,
carries their summed totals, and can only be closed once every shift is
settled and no voucher drawn that day is still pending.

DESIGN PRINCIPLES:
- Totals are derived from the shifts and rewritten on every shift mutation
- can_close is a pure probe; close_day runs the very same checks
- Reopening a day never reopens its shifts
- Every state change writes history in the same transaction
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..constants import (
    ACTION_ADJUSTMENT,
    ACTION_CREATED,
    ACTION_DAILY_CLOSED,
    ACTION_DAILY_REOPENED,
    DAY_CLOSED,
    DAY_OPEN,
    PAYMENT_METHODS,
    SHIFT_OPEN,
    SHIFT_ROSTER,
    SHIFT_SETTLED_STATUSES,
    VOUCHER_PENDING,
)
from ..errors import DailyNotReadyError, DuplicateDayError, InvalidStateTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import DAILY_TOTAL_FIELDS, CashierDaily, CashierShift, CashierShiftUser, CashierVoucher
from ..money import format_cents, from_cents, to_cents
from ..time_utils import parse_iso_date, utcnow
from ..validation import MAX_REASON_LENGTH, optional_text, require_actor, require_text
from .concurrency import check_version, lock_for_update, unit_of_work
from .drawer_service import payment_totals_by_method, recompute_shift
from .history_service import record_history

DAILY_TABLE = "cashier_daily"
SHIFT_TABLE = "cashier_shifts"

# payment_method_id -> daily total column prefix
_METHOD_TOTAL_FIELD = {method_id: f"total_{name}" for method_id, name in PAYMENT_METHODS.items()}


# =============================================================================
# LOOKUPS
# =============================================================================

def find_daily(day: date | str) -> CashierDaily | None:
    return db.session.query(CashierDaily).filter_by(date=parse_iso_date(day)).first()


def get_daily(day: date | str) -> CashierDaily:
    daily = find_daily(day)
    if not daily:
        raise NotFoundError(f"Day {parse_iso_date(day).isoformat()} is not initialized", code="CASHIER_DAY_NOT_FOUND")
    return daily


def _get_daily_for_update(day: date | str) -> CashierDaily:
    the_date = parse_iso_date(day)
    daily = lock_for_update(db.session.query(CashierDaily).filter_by(date=the_date)).first()
    if not daily:
        raise NotFoundError(f"Day {the_date.isoformat()} is not initialized", code="CASHIER_DAY_NOT_FOUND")
    return daily


def pending_vouchers_for_daily(daily: CashierDaily) -> list[CashierVoucher]:
    return (
        db.session.query(CashierVoucher)
        .join(CashierShift, CashierShift.id == CashierVoucher.shift_id)
        .filter(CashierShift.daily_id == daily.id, CashierVoucher.status == VOUCHER_PENDING)
        .order_by(CashierVoucher.id)
        .all()
    )


# =============================================================================
# INITIALIZATION
# =============================================================================

def initialize_day(
    day: date | str,
    primary_user_id: str,
    secondary_user_ids: list[str] | None = None,
    initial_fund=None,
    *,
    opened_by: str,
) -> CashierDaily:
    """
    Create the day and its full shift roster.

    Every shift starts open, seeded with the same initial fund and the same
    attributed users (primary first).

    Raises:
        DuplicateDayError: the date already has a day
        ValidationError: bad users or fund
    """
    the_date = parse_iso_date(day)
    opened_by = require_actor(opened_by, "opened_by")
    primary = require_actor(primary_user_id, "primary_user_id")

    secondaries: list[str] = []
    for index, user_id in enumerate(secondary_user_ids or []):
        user_id = require_actor(user_id, f"secondary_user_ids[{index}]")
        if user_id == primary:
            raise ValidationError("The primary user cannot also be a secondary user")
        if user_id not in secondaries:
            secondaries.append(user_id)

    if initial_fund is None:
        initial_fund = current_app.config.get("CASHIER_DEFAULT_INITIAL_FUND", "0.00")
    fund_cents = to_cents(initial_fund, "initial_fund")

    if find_daily(the_date):
        raise DuplicateDayError(f"Day {the_date.isoformat()} is already initialized")

    try:
        with unit_of_work():
            daily = CashierDaily(date=the_date, status=DAY_OPEN, opened_by=opened_by)
            db.session.add(daily)
            db.session.flush()

            record_history(
                action=ACTION_CREATED,
                changed_by=opened_by,
                table_affected=DAILY_TABLE,
                record_id=daily.id,
                new_value=the_date.isoformat(),
                notes="Day initialized",
            )

            for shift_type in SHIFT_ROSTER:
                shift = CashierShift(
                    daily=daily,
                    shift_date=the_date,
                    shift_type=shift_type,
                    status=SHIFT_OPEN,
                    initial_fund_cents=fund_cents,
                    opened_by=opened_by,
                )
                shift.users.append(CashierShiftUser(user_id=primary, is_primary=True))
                for user_id in secondaries:
                    shift.users.append(CashierShiftUser(user_id=user_id, is_primary=False))
                recompute_shift(shift)
                db.session.add(shift)
                db.session.flush()

                record_history(
                    action=ACTION_CREATED,
                    changed_by=opened_by,
                    shift_id=shift.id,
                    table_affected=SHIFT_TABLE,
                    record_id=shift.id,
                    new_value={
                        "shift_type": shift_type,
                        "initial_fund": format_cents(fund_cents),
                        "users": [primary] + secondaries,
                    },
                )

            apply_daily_totals(daily)
    except IntegrityError as exc:
        # Lost the race against another initializer of the same date
        raise DuplicateDayError(f"Day {the_date.isoformat()} is already initialized") from exc

    current_app.logger.info("Cashier day %s initialized by %s", the_date.isoformat(), opened_by)
    return daily


# =============================================================================
# TOTALS
# =============================================================================

def compute_daily_totals(daily: CashierDaily) -> dict[str, int]:
    """
    Sum the shifts of a day into per-method totals (cents).

    Pure: reads the shifts and their payment lines, writes nothing.
    """
    totals = {name: 0 for name in DAILY_TOTAL_FIELDS}
    for shift in daily.shifts:
        totals["total_cash"] += shift.cash_counted_cents or 0
        for method_id, cents in payment_totals_by_method(shift).items():
            totals[_METHOD_TOTAL_FIELD[method_id]] += cents
        totals["grand_total"] += shift.grand_total_cents or 0
    return totals


def apply_daily_totals(daily: CashierDaily) -> dict[str, tuple[int, int]]:
    """
    Store freshly computed totals on the day.

    Called inside the unit of work of every shift mutation.
    Returns {field: (old_cents, new_cents)} for the fields that changed.
    """
    changed = {}
    for name, cents in compute_daily_totals(daily).items():
        column = f"{name}_cents"
        old = getattr(daily, column) or 0
        if old != cents:
            changed[name] = (old, cents)
            setattr(daily, column, cents)
    if changed:
        daily.updated_at = utcnow()
    return changed


def recompute_totals(day: date | str) -> dict:
    """Recompute and store the day's totals; returns them as Decimals."""
    with unit_of_work():
        daily = _get_daily_for_update(day)
        apply_daily_totals(daily)
    return {name: from_cents(cents) for name, cents in daily.totals_cents().items()}


def repair_totals(day: date | str, *, changed_by: str) -> dict:
    """
    Explicit reconciliation of stored totals against the shifts.

    Every total found out of sync is corrected and logged as an adjustment.
    """
    changed_by = require_actor(changed_by)
    with unit_of_work():
        daily = _get_daily_for_update(day)
        changed = apply_daily_totals(daily)
        for name, (old, new) in changed.items():
            record_history(
                action=ACTION_ADJUSTMENT,
                changed_by=changed_by,
                table_affected=DAILY_TABLE,
                record_id=daily.id,
                field_changed=name,
                old_value=format_cents(old),
                new_value=format_cents(new),
                notes="Totals repaired from shifts",
            )

    if changed:
        current_app.logger.warning(
            "Cashier day %s totals repaired: %s", daily.date.isoformat(), ", ".join(sorted(changed))
        )
    return {
        "date": daily.date.isoformat(),
        "repaired_fields": sorted(changed),
        "totals": {name: from_cents(cents) for name, cents in daily.totals_cents().items()},
    }


# =============================================================================
# CLOSING WORKFLOW
# =============================================================================

def _blocking_discrepancy_cents() -> int | None:
    raw = current_app.config.get("CASHIER_BLOCKING_DISCREPANCY")
    if raw in (None, ""):
        return None
    return to_cents(raw, "CASHIER_BLOCKING_DISCREPANCY")


def _validation_errors(daily: CashierDaily) -> list[str]:
    errors = []
    if daily.status == DAY_CLOSED:
        errors.append(f"Day {daily.date.isoformat()} is already closed")

    for shift in daily.shifts:
        if shift.status not in SHIFT_SETTLED_STATUSES:
            errors.append(f"Shift '{shift.shift_type}' is {shift.status}; close it first")

    for voucher in pending_vouchers_for_daily(daily):
        errors.append(
            f"Voucher #{voucher.id} ({format_cents(voucher.amount_cents)}) drawn on shift "
            f"'{voucher.shift.shift_type}' is still pending; justify or cancel it first"
        )

    limit = _blocking_discrepancy_cents()
    if limit is not None:
        for shift in daily.shifts:
            if abs(shift.difference_cents or 0) > limit:
                errors.append(
                    f"Shift '{shift.shift_type}' has a cash difference of "
                    f"{format_cents(shift.difference_cents)} (limit {format_cents(limit)})"
                )
    return errors


def can_close(day: date | str) -> dict:
    """
    Probe whether the day may be closed. No side effects.

    Returns:
        {"can_close": bool, "validation_errors": [str, ...]}
    """
    errors = _validation_errors(get_daily(day))
    return {"can_close": not errors, "validation_errors": errors}


def close_day(
    day: date | str,
    notes: str | None = None,
    *,
    closed_by: str,
    expected_version: int | None = None,
) -> CashierDaily:
    """
    Close the day.

    Raises:
        InvalidStateTransitionError: day already closed
        DailyNotReadyError: shifts not settled or vouchers pending (with reasons)
    """
    closed_by = require_actor(closed_by, "closed_by")
    notes = optional_text(notes, "notes")

    with unit_of_work():
        daily = _get_daily_for_update(day)
        check_version(daily, expected_version, f"Day {daily.date.isoformat()}")

        if daily.status == DAY_CLOSED:
            raise InvalidStateTransitionError(f"Day {daily.date.isoformat()} is already closed")

        errors = _validation_errors(daily)
        if errors:
            raise DailyNotReadyError(errors, f"Day {daily.date.isoformat()} cannot be closed yet")

        apply_daily_totals(daily)
        daily.status = DAY_CLOSED
        daily.closed_at = utcnow()
        daily.closed_by = closed_by
        if notes is not None:
            daily.notes = notes
        daily.updated_at = daily.closed_at

        record_history(
            action=ACTION_DAILY_CLOSED,
            changed_by=closed_by,
            table_affected=DAILY_TABLE,
            record_id=daily.id,
            field_changed="status",
            old_value=DAY_OPEN,
            new_value=DAY_CLOSED,
            notes=notes,
        )

    current_app.logger.info(
        "Cashier day %s closed by %s (grand total %s)",
        daily.date.isoformat(), closed_by, format_cents(daily.grand_total_cents),
    )
    return daily


def reopen_day(
    day: date | str,
    reason: str,
    *,
    reopened_by: str,
    expected_version: int | None = None,
) -> CashierDaily:
    """
    Reopen a closed day for a bookkeeping adjustment.

    The shifts keep their status; each one has to be reopened on its own.
    """
    reopened_by = require_actor(reopened_by, "reopened_by")
    reason = require_text(reason, "reason", max_length=MAX_REASON_LENGTH)

    with unit_of_work():
        daily = _get_daily_for_update(day)
        check_version(daily, expected_version, f"Day {daily.date.isoformat()}")

        if daily.status != DAY_CLOSED:
            raise InvalidStateTransitionError(f"Day {daily.date.isoformat()} is not closed")

        daily.status = DAY_OPEN
        daily.closed_at = None
        daily.closed_by = None
        daily.updated_at = utcnow()

        record_history(
            action=ACTION_DAILY_REOPENED,
            changed_by=reopened_by,
            table_affected=DAILY_TABLE,
            record_id=daily.id,
            field_changed="status",
            old_value=DAY_CLOSED,
            new_value=DAY_OPEN,
            notes=reason,
        )

    current_app.logger.warning("Cashier day %s reopened by %s: %s", daily.date.isoformat(), reopened_by, reason)
    return daily


# =============================================================================
# READ MODEL
# =============================================================================

def get_daily_details(day: date | str) -> dict:
    """Day, its shifts, active vouchers and the close probe in one payload."""
    daily = get_daily(day)
    pending = pending_vouchers_for_daily(daily)
    errors = _validation_errors(daily)

    data = daily.to_dict()
    data["shifts"] = [shift.to_dict(include_details=True) for shift in daily.shifts]
    data["active_vouchers"] = [v.to_dict() for v in pending]
    data["active_vouchers_total"] = format_cents(sum(v.amount_cents for v in pending))
    data["all_shifts_closed"] = all(s.status in SHIFT_SETTLED_STATUSES for s in daily.shifts)
    data["can_close"] = not errors
    data["validation_errors"] = errors
    return data
