from __future__ import annotations

from sqlalchemy import event

from ..extensions import db
from ..time_utils import to_utc_z


class CashierHistory(db.Model):
    """
    Append-only audit trail of every cashier mutation.

    - Rows are written inside the same transaction as the change they describe.
    - shift_id is a weak reference (no FK): entries outlive their subjects.
    - No updates or deletes through the ORM (enforced by mapper events below).
    """
    __tablename__ = "cashier_history"
    __table_args__ = (
        db.Index("ix_cashier_history_shift_changed", "shift_id", "changed_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, nullable=True, index=True)

    action = db.Column(db.String(32), nullable=False, index=True)
    table_affected = db.Column(db.String(64), nullable=True, index=True)
    record_id = db.Column(db.Integer, nullable=True)
    field_changed = db.Column(db.String(64), nullable=True)
    old_value = db.Column(db.Text, nullable=True)
    new_value = db.Column(db.Text, nullable=True)

    changed_by = db.Column(db.String(64), nullable=True, index=True)
    changed_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    notes = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "action": self.action,
            "table_affected": self.table_affected,
            "record_id": self.record_id,
            "field_changed": self.field_changed,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "changed_by": self.changed_by,
            "changed_at": to_utc_z(self.changed_at),
            "notes": self.notes,
        }


class HistoryImmutableError(Exception):
    """Raised when something tries to rewrite the audit trail."""


@event.listens_for(CashierHistory, "before_update")
def _reject_history_update(mapper, connection, target):
    raise HistoryImmutableError(f"History entry {target.id} is append-only")


@event.listens_for(CashierHistory, "before_delete")
def _reject_history_delete(mapper, connection, target):
    raise HistoryImmutableError(f"History entry {target.id} is append-only")
