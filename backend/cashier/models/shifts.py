from __future__ import annotations

from ..extensions import db
from ..constants import PAYMENT_METHODS
from ..money import format_cents
from ..time_utils import to_utc_z


class CashierShift(db.Model):
    """
    One work period's cash-drawer accounting unit.

    WHY: Cashier accountability. Each shift carries its opening fund,
    declared income, physical cash count and non-cash payments, and
    derives the expected cash and the difference from them.

    LIFECYCLE:
    - open: created with the day, nothing recorded yet
    - in_progress: first income/count/payment/voucher recorded
    - closed: totals frozen, difference flagged if beyond tolerance
    - audited: terminal settlement checkpoint, no mutation at all
    A closed shift can be reopened (with reason) back to in_progress.

    DERIVED (never written by callers):
    - cash_expected = initial_fund + income - pending vouchers drawn on this shift
    - difference = cash_counted - cash_expected
    - payments_total = sum of payment lines
    - grand_total = cash_counted + payments_total
    """
    __tablename__ = "cashier_shifts"
    __table_args__ = (
        db.UniqueConstraint("daily_id", "shift_type", name="uq_cashier_shifts_daily_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    daily_id = db.Column(db.Integer, db.ForeignKey("cashier_daily.id"), nullable=False, index=True)
    shift_date = db.Column(db.Date, nullable=False, index=True)
    shift_type = db.Column(db.String(16), nullable=False)  # night, morning, afternoon, closing

    status = db.Column(db.String(16), nullable=False, default="open", index=True)

    # Cash tracking (all amounts in cents)
    initial_fund_cents = db.Column(db.BigInteger, nullable=False, default=0)
    income_cents = db.Column(db.BigInteger, nullable=False, default=0)
    income_breakdown = db.Column(db.JSON, nullable=True)  # category -> cents
    cash_counted_cents = db.Column(db.BigInteger, nullable=False, default=0)
    cash_expected_cents = db.Column(db.BigInteger, nullable=False, default=0)
    difference_cents = db.Column(db.BigInteger, nullable=False, default=0)  # signed
    payments_total_cents = db.Column(db.BigInteger, nullable=False, default=0)
    grand_total_cents = db.Column(db.BigInteger, nullable=False, default=0)

    # Set on close when |difference| is beyond the configured tolerance
    has_discrepancy = db.Column(db.Boolean, nullable=False, default=False)

    notes = db.Column(db.Text, nullable=True)
    opened_by = db.Column(db.String(64), nullable=True)
    closed_by = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    daily = db.relationship(
        "CashierDaily",
        backref=db.backref("shifts", lazy=True, order_by="CashierShift.id"),
    )
    users = db.relationship(
        "CashierShiftUser",
        backref="shift",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CashierShiftUser.id",
    )
    denominations = db.relationship(
        "CashierDenomination",
        backref="shift",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CashierDenomination.denomination_cents.desc()",
    )
    payments = db.relationship(
        "CashierPayment",
        backref="shift",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CashierPayment.payment_method_id",
    )

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def primary_user_id(self) -> str | None:
        for user in self.users:
            if user.is_primary:
                return user.user_id
        return None

    def to_dict(self, *, include_details: bool = False) -> dict:
        data = {
            "id": self.id,
            "daily_id": self.daily_id,
            "shift_date": self.shift_date.isoformat(),
            "shift_type": self.shift_type,
            "status": self.status,
            "initial_fund": format_cents(self.initial_fund_cents),
            "income": format_cents(self.income_cents),
            "income_breakdown": (
                {key: format_cents(value) for key, value in self.income_breakdown.items()}
                if self.income_breakdown else None
            ),
            "cash_counted": format_cents(self.cash_counted_cents),
            "cash_expected": format_cents(self.cash_expected_cents),
            "difference": format_cents(self.difference_cents),
            "payments_total": format_cents(self.payments_total_cents),
            "grand_total": format_cents(self.grand_total_cents),
            "has_discrepancy": self.has_discrepancy,
            "notes": self.notes,
            "opened_by": self.opened_by,
            "closed_by": self.closed_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "version_id": self.version_id,
        }
        if include_details:
            data["users"] = [u.to_dict() for u in self.users]
            data["denominations"] = [d.to_dict() for d in self.denominations]
            data["payments"] = [p.to_dict() for p in self.payments]
            data["vouchers"] = [v.to_dict() for v in self.vouchers]
        return data


class CashierShiftUser(db.Model):
    """User attributed to a shift. Exactly one per shift is primary."""
    __tablename__ = "cashier_shift_users"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "user_id", name="uq_cashier_shift_users_shift_user"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False, index=True)
    is_primary = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "is_primary": self.is_primary,
        }


class CashierDenomination(db.Model):
    """Count of physical currency units of one face value in a shift's drawer."""
    __tablename__ = "cashier_denominations"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "denomination_cents", name="uq_cashier_denominations_shift_value"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=False, index=True)
    denomination_cents = db.Column(db.Integer, nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.BigInteger, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "denomination": format_cents(self.denomination_cents),
            "quantity": self.quantity,
            "total": format_cents(self.total_cents),
        }


class CashierPayment(db.Model):
    """Non-cash takings of a shift for one payment method."""
    __tablename__ = "cashier_payments"
    __table_args__ = (
        db.UniqueConstraint("shift_id", "payment_method_id", name="uq_cashier_payments_shift_method"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shift_id = db.Column(db.Integer, db.ForeignKey("cashier_shifts.id"), nullable=False, index=True)
    payment_method_id = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)

    @property
    def payment_method_name(self) -> str:
        return PAYMENT_METHODS.get(self.payment_method_id, "unknown")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shift_id": self.shift_id,
            "payment_method_id": self.payment_method_id,
            "payment_method_name": self.payment_method_name,
            "amount": format_cents(self.amount_cents),
        }
