# Overview: Service-layer operations for the cashier audit trail.

from __future__ import annotations

import json
from datetime import date, datetime, time, timedelta

from sqlalchemy import func

from ..constants import HISTORY_ACTIONS
from ..errors import ValidationError
from ..extensions import db
from ..models import CashierHistory, CashierShift
from ..time_utils import parse_iso_date, utcnow
"""
Cashier History Invariants

- record_history is the only write path; there is no update or delete API.
- Entries are flushed, never committed, here: the caller's unit of work
  commits them together with the change they describe, or not at all.
- shift_id is a weak reference kept for traceability only.
"""

HISTORY_SORT_FIELDS = {"changed_at", "id", "action", "shift_id", "changed_by"}


def _serialize(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, default=str)


def record_history(
    *,
    action: str,
    changed_by: str | None,
    shift_id: int | None = None,
    table_affected: str | None = None,
    record_id: int | None = None,
    field_changed: str | None = None,
    old_value=None,
    new_value=None,
    notes: str | None = None,
) -> CashierHistory:
    """
    Append one history entry.

    Non-string old/new values are stored as sorted JSON so snapshots
    (denomination sets, payment sets) stay comparable.
    """
    if action not in HISTORY_ACTIONS:
        raise ValidationError(f"Unknown history action '{action}'")

    entry = CashierHistory(
        shift_id=shift_id,
        action=action,
        table_affected=table_affected,
        record_id=record_id,
        field_changed=field_changed,
        old_value=_serialize(old_value),
        new_value=_serialize(new_value),
        changed_by=changed_by,
        changed_at=utcnow(),
        notes=notes,
    )
    db.session.add(entry)
    db.session.flush()  # ensures entry.id is assigned without committing
    return entry


def _day_bounds(from_date, to_date) -> tuple[datetime | None, datetime | None]:
    start = datetime.combine(parse_iso_date(from_date), time.min) if from_date else None
    end = datetime.combine(parse_iso_date(to_date) + timedelta(days=1), time.min) if to_date else None
    return start, end


def list_history(
    *,
    shift_id: int | None = None,
    action: str | None = None,
    table_affected: str | None = None,
    changed_by: str | None = None,
    from_date: date | str | None = None,
    to_date: date | str | None = None,
    limit: int = 100,
    offset: int = 0,
    sort: str = "changed_at",
    order: str = "DESC",
) -> dict:
    """Filtered, paginated audit trail with the shift's date/type/status attached."""
    if action and action not in HISTORY_ACTIONS:
        raise ValidationError(f"Unknown history action '{action}'")
    if sort not in HISTORY_SORT_FIELDS:
        raise ValidationError(f"sort must be one of {sorted(HISTORY_SORT_FIELDS)}")
    if order.upper() not in ("ASC", "DESC"):
        raise ValidationError("order must be ASC or DESC")
    if limit < 1 or limit > 1000 or offset < 0:
        raise ValidationError("limit must be 1-1000 and offset non-negative")

    query = db.session.query(CashierHistory, CashierShift).outerjoin(
        CashierShift, CashierShift.id == CashierHistory.shift_id
    )
    if shift_id is not None:
        query = query.filter(CashierHistory.shift_id == shift_id)
    if action:
        query = query.filter(CashierHistory.action == action)
    if table_affected:
        query = query.filter(CashierHistory.table_affected == table_affected)
    if changed_by:
        query = query.filter(CashierHistory.changed_by == changed_by)

    start, end = _day_bounds(from_date, to_date)
    if start:
        query = query.filter(CashierHistory.changed_at >= start)
    if end:
        query = query.filter(CashierHistory.changed_at < end)

    total = query.count()

    column = getattr(CashierHistory, sort)
    ordering = column.asc() if order.upper() == "ASC" else column.desc()
    # id breaks ties between entries written in the same instant
    tiebreak = CashierHistory.id.asc() if order.upper() == "ASC" else CashierHistory.id.desc()
    rows = query.order_by(ordering, tiebreak).limit(limit).offset(offset).all()

    return {
        "data": [_with_details(entry, shift) for entry, shift in rows],
        "total": total,
    }


def _with_details(entry: CashierHistory, shift: CashierShift | None) -> dict:
    data = entry.to_dict()
    data["shift_date"] = shift.shift_date.isoformat() if shift else None
    data["shift_type"] = shift.shift_type if shift else None
    data["shift_status"] = shift.status if shift else None
    return data


def shift_history(shift_id: int) -> list[dict]:
    """Every entry of one shift, oldest first."""
    return list_history(shift_id=shift_id, order="ASC", limit=1000)["data"]


def history_stats(*, from_date=None, to_date=None, recent_limit: int = 10) -> dict:
    start, end = _day_bounds(from_date, to_date)

    def _scoped(query):
        if start:
            query = query.filter(CashierHistory.changed_at >= start)
        if end:
            query = query.filter(CashierHistory.changed_at < end)
        return query

    total = _scoped(db.session.query(func.count(CashierHistory.id))).scalar() or 0

    actions = _scoped(
        db.session.query(CashierHistory.action, func.count(CashierHistory.id).label("count"))
    ).group_by(CashierHistory.action).order_by(func.count(CashierHistory.id).desc()).all()

    users = _scoped(
        db.session.query(CashierHistory.changed_by, func.count(CashierHistory.id).label("count"))
        .filter(CashierHistory.changed_by.isnot(None))
    ).group_by(CashierHistory.changed_by).order_by(func.count(CashierHistory.id).desc()).limit(5).all()

    recent = list_history(
        from_date=from_date,
        to_date=to_date,
        limit=recent_limit,
    )["data"]

    return {
        "total_entries": int(total),
        "actions_breakdown": [{"action": row.action, "count": int(row.count)} for row in actions],
        "most_active_users": [{"user_id": row.changed_by, "actions_count": int(row.count)} for row in users],
        "recent_activity": recent,
    }
