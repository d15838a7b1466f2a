from __future__ import annotations

from ..extensions import db
from ..money import format_cents
from ..time_utils import to_utc_z

# Per-method totals kept on the day; each maps to a "<name>_cents" column
DAILY_TOTAL_FIELDS = (
    "total_cash",
    "total_card",
    "total_bacs",
    "total_web_payment",
    "total_transfer",
    "total_other",
    "grand_total",
)


class CashierDaily(db.Model):
    """
    Roll-up of every shift of one calendar date.

    WHY: The day is the unit that gets closed and handed to accounting.
    Its totals are derived from the shifts and rewritten in the same
    transaction as every shift mutation; they are never edited directly.

    LIFECYCLE:
    - open: shifts are being worked and counted
    - closed: every shift settled and no pending voucher left on the day
    A closed day can be reopened with a reason; its shifts stay settled.
    """
    __tablename__ = "cashier_daily"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, unique=True, index=True)

    # Totals (all amounts in cents)
    total_cash_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_card_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_bacs_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_web_payment_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_transfer_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_other_cents = db.Column(db.BigInteger, nullable=False, default=0)
    grand_total_cents = db.Column(db.BigInteger, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)  # open, closed

    opened_by = db.Column(db.String(64), nullable=True)
    closed_by = db.Column(db.String(64), nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def totals_cents(self) -> dict[str, int]:
        return {name: getattr(self, f"{name}_cents") or 0 for name in DAILY_TOTAL_FIELDS}

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "date": self.date.isoformat(),
            "status": self.status,
            "opened_by": self.opened_by,
            "closed_by": self.closed_by,
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        for name, cents in self.totals_cents().items():
            data[name] = format_cents(cents)
        return data
