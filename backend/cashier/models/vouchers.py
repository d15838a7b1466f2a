from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z


class CashierVoucher(db.Model):
    """
    Cash taken out of a drawer against a promise of later justification.

    WHY: Staff borrow cash from the drawer (purchases, advances) before the
    receipt exists. While pending, the amount lowers the expected cash of the
    shift it was drawn on, and it blocks closing that shift's day.

    LIFECYCLE:
    - pending -> justified (terminal, references the justifying shift)
    - pending -> cancelled (terminal)

    IMMUTABLE: amount never changes after creation.
    """
    __tablename__ = "cashier_vouchers"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=True, index=True)
    justified_shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=True, index=True)

    amount_cents = db.Column(db.BigInteger, nullable=False)
    reason = db.Column(db.String(255), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    resolved_by = db.Column(db.String(64), nullable=True)
    resolved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    shift = db.relationship(
        "CashierShift",
        foreign_keys=[shift_id],
        backref=db.backref("vouchers", lazy=True, order_by="CashierVoucher.id"),
    )
    justified_shift = db.relationship(
        "CashierShift",
        foreign_keys=[justified_shift_id],
        backref=db.backref("justified_vouchers", lazy=True),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "justified_shift_id": self.justified_shift_id,
            "amount": format_cents(self.amount_cents),
            "reason": self.reason,
            "notes": self.notes,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "resolved_by": self.resolved_by,
            "resolved_at": to_utc_z(self.resolved_at) if self.resolved_at else None,
            "version_id": self.version_id,
        }
