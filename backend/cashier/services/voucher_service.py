"""
Voucher Sub-ledger Service

WHY: Cash sometimes leaves the drawer before its receipt exists. A voucher
records it: while pending it lowers the expected cash of the shift it was
drawn on and blocks closing that shift's day.

STATES: pending -> justified | cancelled (both terminal)

DESIGN PRINCIPLES:
- amount is fixed at creation
- justification may point at a later shift than the one it was drawn on
- the originating shift's expected cash is recomputed only while that shift
  is still open; a closed shift keeps its frozen totals
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import func

from ..constants import (
    ACTION_STATUS_CHANGED,
    ACTION_UPDATED,
    ACTION_VOUCHER_CREATED,
    ACTION_VOUCHER_REPAID,
    SHIFT_AUDITED,
    SHIFT_MUTABLE_STATUSES,
    VOUCHER_CANCELLED,
    VOUCHER_JUSTIFIED,
    VOUCHER_PENDING,
    VOUCHER_STATUSES,
)
from ..errors import InvalidStateTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import CashierShift, CashierVoucher
from ..money import format_cents, from_cents, to_cents
from ..time_utils import parse_iso_date, utcnow
from ..validation import MAX_REASON_LENGTH, optional_text, require_actor, require_text
from .concurrency import check_version, lock_for_update, unit_of_work
from .daily_service import SHIFT_TABLE, apply_daily_totals
from .drawer_service import recompute_shift
from .history_service import record_history
from .shift_service import ensure_day_open, ensure_mutable, get_shift_for_update, mark_in_progress, touch

VOUCHER_TABLE = "cashier_vouchers"


def get_voucher(voucher_id: int) -> CashierVoucher:
    voucher = db.session.get(CashierVoucher, voucher_id)
    if not voucher:
        raise NotFoundError(f"Voucher {voucher_id} not found", code="CASHIER_VOUCHER_NOT_FOUND")
    return voucher


def _get_voucher_for_update(voucher_id: int) -> CashierVoucher:
    voucher = lock_for_update(db.session.query(CashierVoucher).filter_by(id=voucher_id)).first()
    if not voucher:
        raise NotFoundError(f"Voucher {voucher_id} not found", code="CASHIER_VOUCHER_NOT_FOUND")
    return voucher


def _ensure_pending(voucher: CashierVoucher) -> None:
    if voucher.status != VOUCHER_PENDING:
        raise InvalidStateTransitionError(f"Voucher {voucher.id} is {voucher.status}; only pending vouchers can change")


def _refresh_origin(voucher: CashierVoucher, changed_by: str) -> None:
    """Give the drawn amount back to the originating shift's expected cash if it is still open."""
    shift = voucher.shift
    if shift is None or shift.status not in SHIFT_MUTABLE_STATUSES:
        return
    old_expected = format_cents(shift.cash_expected_cents)
    recompute_shift(shift)
    touch(shift)
    record_history(
        action=ACTION_UPDATED,
        changed_by=changed_by,
        shift_id=shift.id,
        table_affected=SHIFT_TABLE,
        record_id=shift.id,
        field_changed="cash_expected",
        old_value=old_expected,
        new_value=format_cents(shift.cash_expected_cents),
        notes=f"Voucher #{voucher.id} {voucher.status}",
    )
    apply_daily_totals(shift.daily)


def _with_shift(voucher: CashierVoucher) -> dict:
    data = voucher.to_dict()
    data["shift_date"] = voucher.shift.shift_date.isoformat() if voucher.shift else None
    data["shift_type"] = voucher.shift.shift_type if voucher.shift else None
    return data


# =============================================================================
# MUTATIONS
# =============================================================================

def create_voucher(
    shift_id: int,
    amount,
    reason: str,
    *,
    created_by: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> CashierVoucher:
    """
    Draw a voucher against an open or in-progress shift.

    Lowers that shift's expected cash by the amount.
    """
    created_by = require_actor(created_by, "created_by")
    amount_cents = to_cents(amount, "amount")
    if amount_cents <= 0:
        raise ValidationError("amount must be positive")
    reason = require_text(reason, "reason", max_length=MAX_REASON_LENGTH)
    notes = optional_text(notes, "notes")

    with unit_of_work():
        shift = get_shift_for_update(shift_id)
        check_version(shift, expected_version, f"Shift {shift.id}")
        ensure_mutable(shift)

        old_expected = format_cents(shift.cash_expected_cents)
        mark_in_progress(shift, created_by)

        voucher = CashierVoucher(
            shift=shift,
            amount_cents=amount_cents,
            reason=reason,
            notes=notes,
            status=VOUCHER_PENDING,
            created_by=created_by,
            created_at=utcnow(),
        )
        db.session.add(voucher)
        db.session.flush()

        recompute_shift(shift)
        touch(shift)

        record_history(
            action=ACTION_VOUCHER_CREATED,
            changed_by=created_by,
            shift_id=shift.id,
            table_affected=VOUCHER_TABLE,
            record_id=voucher.id,
            field_changed="amount",
            new_value=format_cents(amount_cents),
            notes=reason,
        )
        record_history(
            action=ACTION_UPDATED,
            changed_by=created_by,
            shift_id=shift.id,
            table_affected=SHIFT_TABLE,
            record_id=shift.id,
            field_changed="cash_expected",
            old_value=old_expected,
            new_value=format_cents(shift.cash_expected_cents),
            notes=f"Voucher #{voucher.id} drawn",
        )

        apply_daily_totals(shift.daily)

    return voucher


def justify_voucher(
    voucher_id: int,
    target_shift_id: int,
    *,
    justified_by: str,
    notes: str | None = None,
    expected_version: int | None = None,
) -> CashierVoucher:
    """
    pending -> justified, recording the shift where the cash was accounted for.

    The target shift may differ from (and come days after) the originating one.
    """
    justified_by = require_actor(justified_by, "justified_by")
    notes = optional_text(notes, "notes")

    with unit_of_work():
        voucher = _get_voucher_for_update(voucher_id)
        check_version(voucher, expected_version, f"Voucher {voucher.id}")
        _ensure_pending(voucher)

        target = db.session.get(CashierShift, target_shift_id)
        if not target:
            raise NotFoundError(f"Shift {target_shift_id} not found", code="CASHIER_SHIFT_NOT_FOUND")
        if target.status == SHIFT_AUDITED:
            raise InvalidStateTransitionError(f"Shift {target.id} is audited; justify against another shift")
        ensure_day_open(target)

        voucher.status = VOUCHER_JUSTIFIED
        voucher.justified_shift_id = target.id
        voucher.resolved_by = justified_by
        voucher.resolved_at = utcnow()
        if notes is not None:
            voucher.notes = notes

        _refresh_origin(voucher, justified_by)

        record_history(
            action=ACTION_VOUCHER_REPAID,
            changed_by=justified_by,
            shift_id=voucher.shift_id,
            table_affected=VOUCHER_TABLE,
            record_id=voucher.id,
            field_changed="status",
            old_value=VOUCHER_PENDING,
            new_value=VOUCHER_JUSTIFIED,
            notes=notes or f"Justified on shift {target.id}",
        )

    return voucher


def cancel_voucher(
    voucher_id: int,
    *,
    cancelled_by: str,
    reason: str | None = None,
    expected_version: int | None = None,
) -> CashierVoucher:
    """pending -> cancelled (the cash went back into the drawer, or never left)."""
    cancelled_by = require_actor(cancelled_by, "cancelled_by")
    reason = optional_text(reason, "reason", max_length=MAX_REASON_LENGTH)

    with unit_of_work():
        voucher = _get_voucher_for_update(voucher_id)
        check_version(voucher, expected_version, f"Voucher {voucher.id}")
        _ensure_pending(voucher)

        voucher.status = VOUCHER_CANCELLED
        voucher.resolved_by = cancelled_by
        voucher.resolved_at = utcnow()

        _refresh_origin(voucher, cancelled_by)

        record_history(
            action=ACTION_STATUS_CHANGED,
            changed_by=cancelled_by,
            shift_id=voucher.shift_id,
            table_affected=VOUCHER_TABLE,
            record_id=voucher.id,
            field_changed="status",
            old_value=VOUCHER_PENDING,
            new_value=VOUCHER_CANCELLED,
            notes=reason,
        )

    return voucher


def update_voucher(
    voucher_id: int,
    *,
    changed_by: str,
    reason: str | None = None,
    notes: str | None = None,
    amount=None,
    expected_version: int | None = None,
) -> CashierVoucher:
    """Edit reason/notes of a pending voucher. The amount cannot change."""
    changed_by = require_actor(changed_by)
    new_reason = require_text(reason, "reason", max_length=MAX_REASON_LENGTH) if reason is not None else None
    new_notes = optional_text(notes, "notes")

    with unit_of_work():
        voucher = _get_voucher_for_update(voucher_id)
        check_version(voucher, expected_version, f"Voucher {voucher.id}")
        _ensure_pending(voucher)

        if amount is not None and to_cents(amount, "amount") != voucher.amount_cents:
            raise ValidationError("Voucher amount cannot be changed; cancel it and draw a new one")

        changes = []
        if new_reason is not None and new_reason != voucher.reason:
            changes.append(("reason", voucher.reason, new_reason))
            voucher.reason = new_reason
        if new_notes is not None and new_notes != voucher.notes:
            changes.append(("notes", voucher.notes, new_notes))
            voucher.notes = new_notes

        for field, old, new in changes:
            record_history(
                action=ACTION_UPDATED,
                changed_by=changed_by,
                shift_id=voucher.shift_id,
                table_affected=VOUCHER_TABLE,
                record_id=voucher.id,
                field_changed=field,
                old_value=old,
                new_value=new,
            )

    return voucher


# =============================================================================
# QUERIES
# =============================================================================

def list_active() -> dict:
    """All pending vouchers, oldest first, with their running total."""
    vouchers = (
        db.session.query(CashierVoucher)
        .filter_by(status=VOUCHER_PENDING)
        .order_by(CashierVoucher.created_at, CashierVoucher.id)
        .all()
    )
    total = sum(v.amount_cents for v in vouchers)
    shift_dates = [v.shift.shift_date for v in vouchers if v.shift]
    return {
        "vouchers": [_with_shift(v) for v in vouchers],
        "count": len(vouchers),
        "total_amount": from_cents(total),
        "oldest_active_date": min(shift_dates).isoformat() if shift_dates else None,
    }


def voucher_stats() -> dict:
    rows = (
        db.session.query(
            CashierVoucher.status,
            func.count(CashierVoucher.id),
            func.coalesce(func.sum(CashierVoucher.amount_cents), 0),
        )
        .group_by(CashierVoucher.status)
        .all()
    )
    by_status = {status: (int(count), int(cents)) for status, count, cents in rows}

    stats = {"total_count": sum(count for count, _ in by_status.values())}
    for status in VOUCHER_STATUSES:
        count, cents = by_status.get(status, (0, 0))
        stats[f"{status}_count"] = count
        stats[f"{status}_amount"] = from_cents(cents)
    return stats


def vouchers_history(
    *,
    status: str | None = None,
    from_date: date | str | None = None,
    to_date: date | str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """Vouchers filtered by status and by the business date they were drawn on."""
    if status and status not in VOUCHER_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(VOUCHER_STATUSES)}")
    if limit < 1 or limit > 500 or offset < 0:
        raise ValidationError("limit must be 1-500 and offset non-negative")

    query = db.session.query(CashierVoucher).outerjoin(
        CashierShift, CashierShift.id == CashierVoucher.shift_id
    )
    if status:
        query = query.filter(CashierVoucher.status == status)
    if from_date:
        query = query.filter(CashierShift.shift_date >= parse_iso_date(from_date))
    if to_date:
        query = query.filter(CashierShift.shift_date <= parse_iso_date(to_date))

    total = query.count()
    vouchers = query.order_by(CashierVoucher.created_at.desc(), CashierVoucher.id.desc()).limit(limit).offset(offset).all()
    return {
        "vouchers": [_with_shift(v) for v in vouchers],
        "pagination": {"total": total, "limit": limit, "offset": offset},
    }
