# Overview: Read-only cashier reports derived from the stored days; never writes.

from __future__ import annotations

import calendar
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import func

from ..constants import (
    DAY_CLOSED,
    PAYMENT_METHODS,
    SHIFT_IN_PROGRESS,
    SHIFT_OPEN,
    SHIFT_SETTLED_STATUSES,
    SHIFT_STATUSES,
    VOUCHER_JUSTIFIED,
)
from ..errors import ValidationError
from ..extensions import db
from ..models import DAILY_TOTAL_FIELDS, CashierDaily, CashierShift, CashierVoucher
from ..money import CENT, from_cents
from ..time_utils import parse_iso_date
from .voucher_service import list_active

DAY_NOT_INITIALIZED = "not_initialized"


def _zero_totals() -> dict[str, int]:
    return {name: 0 for name in DAILY_TOTAL_FIELDS}


def _as_money(totals: dict[str, int]) -> dict[str, Decimal]:
    return {name: from_cents(cents) for name, cents in totals.items()}


def _month_bounds(year: int, month: int) -> tuple[date, date]:
    if not isinstance(year, int) or isinstance(year, bool) or year < 1:
        raise ValidationError("year must be a positive integer")
    if not isinstance(month, int) or isinstance(month, bool) or not 1 <= month <= 12:
        raise ValidationError("month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def monthly_report(year: int, month: int) -> dict:
    """
    Per-day breakdown and payment-method totals for one month.

    Days that were never initialized appear zero-filled with status
    "not_initialized"; they are not an error.
    """
    start, end = _month_bounds(year, month)

    dailies = (
        db.session.query(CashierDaily)
        .filter(CashierDaily.date >= start, CashierDaily.date <= end)
        .all()
    )
    by_date = {d.date: d for d in dailies}

    flagged_dates = {
        row[0]
        for row in db.session.query(CashierShift.shift_date)
        .filter(
            CashierShift.shift_date >= start,
            CashierShift.shift_date <= end,
            CashierShift.has_discrepancy.is_(True),
        )
        .distinct()
        .all()
    }

    totals = _zero_totals()
    daily_breakdown = []
    validation_errors = []
    days_closed = days_open = 0

    current = start
    while current <= end:
        daily = by_date.get(current)
        day_totals = daily.totals_cents() if daily else _zero_totals()
        has_discrepancy = current in flagged_dates

        if daily is None:
            status = DAY_NOT_INITIALIZED
        else:
            status = daily.status
            if status == DAY_CLOSED:
                days_closed += 1
            else:
                days_open += 1
                validation_errors.append(f"Day {current.isoformat()} is not closed")
            for name, cents in day_totals.items():
                totals[name] += cents

        if has_discrepancy:
            validation_errors.append(f"Day {current.isoformat()} has shifts closed with a cash discrepancy")

        daily_breakdown.append({
            "date": current.isoformat(),
            "status": status,
            **_as_money(day_totals),
            "has_discrepancy": has_discrepancy,
        })
        current += timedelta(days=1)

    grand_total = totals["grand_total"]
    breakdown = []
    for name in ["cash"] + list(PAYMENT_METHODS.values()):
        cents = totals[f"total_{name}"]
        percentage = (
            (Decimal(cents) * 100 / Decimal(grand_total)).quantize(CENT)
            if grand_total else Decimal("0.00")
        )
        breakdown.append({
            "method_name": name,
            "total_amount": from_cents(cents),
            "percentage": percentage,
        })

    return {
        "period": {
            "year": year,
            "month": month,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "total_days": (end - start).days + 1,
            "days_closed": days_closed,
            "days_open": days_open,
            "days_not_initialized": (end - start).days + 1 - days_closed - days_open,
        },
        "totals": _as_money(totals),
        "payment_methods_breakdown": breakdown,
        "daily_breakdown": daily_breakdown,
        "validation_errors": validation_errors,
    }


def dashboard_overview(day: date | str) -> dict:
    """
    Shift counts and totals for one date, plus the standing voucher position.

    The date is always explicit; an uninitialized day reports zeros.
    """
    the_date = parse_iso_date(day)
    daily = db.session.query(CashierDaily).filter_by(date=the_date).first()

    by_status = {status: 0 for status in SHIFT_STATUSES}
    totals = _zero_totals()
    if daily:
        for shift in daily.shifts:
            by_status[shift.status] += 1
        totals = daily.totals_cents()

    active = list_active()
    repaid_cents = (
        db.session.query(func.coalesce(func.sum(CashierVoucher.amount_cents), 0))
        .filter(CashierVoucher.status == VOUCHER_JUSTIFIED)
        .scalar()
    )

    return {
        "today": {
            "date": the_date.isoformat(),
            "initialized": daily is not None,
            "status": daily.status if daily else DAY_NOT_INITIALIZED,
            "total_shifts": sum(by_status.values()),
            "open_shifts": by_status[SHIFT_OPEN] + by_status[SHIFT_IN_PROGRESS],
            "closed_shifts": sum(by_status[s] for s in SHIFT_SETTLED_STATUSES),
            "shifts_by_status": by_status,
            "total_cash": from_cents(totals["total_cash"]),
            "total_payments": from_cents(totals["grand_total"] - totals["total_cash"]),
            "grand_total": from_cents(totals["grand_total"]),
        },
        "vouchers": {
            "active_count": active["count"],
            "active_amount": active["total_amount"],
            "total_repaid_lifetime": from_cents(int(repaid_cents or 0)),
            "oldest_active_date": active["oldest_active_date"],
        },
    }
