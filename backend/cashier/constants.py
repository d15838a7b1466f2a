"""
Fixed vocabularies of the cashier ledger.

Values are stored as plain strings/ints in the database; these constants are
the only accepted values and are checked at the service boundary.
"""

from __future__ import annotations

# Shift roster, in the order the shifts happen during a business day
SHIFT_NIGHT = "night"
SHIFT_MORNING = "morning"
SHIFT_AFTERNOON = "afternoon"
SHIFT_CLOSING = "closing"
SHIFT_ROSTER = (SHIFT_NIGHT, SHIFT_MORNING, SHIFT_AFTERNOON, SHIFT_CLOSING)

# Shift lifecycle: open -> in_progress -> closed -> audited (closed -> in_progress on reopen)
SHIFT_OPEN = "open"
SHIFT_IN_PROGRESS = "in_progress"
SHIFT_CLOSED = "closed"
SHIFT_AUDITED = "audited"
SHIFT_STATUSES = (SHIFT_OPEN, SHIFT_IN_PROGRESS, SHIFT_CLOSED, SHIFT_AUDITED)
SHIFT_MUTABLE_STATUSES = (SHIFT_OPEN, SHIFT_IN_PROGRESS)
SHIFT_SETTLED_STATUSES = (SHIFT_CLOSED, SHIFT_AUDITED)

DAY_OPEN = "open"
DAY_CLOSED = "closed"

VOUCHER_PENDING = "pending"
VOUCHER_JUSTIFIED = "justified"
VOUCHER_CANCELLED = "cancelled"
VOUCHER_STATUSES = (VOUCHER_PENDING, VOUCHER_JUSTIFIED, VOUCHER_CANCELLED)

# Euro face values accepted in a cash count, in cents
DENOMINATIONS_CENTS = (
    50000, 20000, 10000, 5000, 2000, 1000, 500,
    200, 100, 50, 20, 10, 5, 2, 1,
)

# Non-cash payment methods; ids are the ones the front desk UI sends
PAYMENT_CARD = 1
PAYMENT_BACS = 2
PAYMENT_WEB = 3
PAYMENT_TRANSFER = 4
PAYMENT_OTHER = 5
PAYMENT_METHODS = {
    PAYMENT_CARD: "card",
    PAYMENT_BACS: "bacs",
    PAYMENT_WEB: "web_payment",
    PAYMENT_TRANSFER: "transfer",
    PAYMENT_OTHER: "other",
}

INCOME_CATEGORIES = (
    "accommodation",
    "restaurant",
    "bar",
    "parking",
    "extras",
    "other",
)

# History actions
ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_DELETED = "deleted"
ACTION_STATUS_CHANGED = "status_changed"
ACTION_ADJUSTMENT = "adjustment"
ACTION_VOUCHER_CREATED = "voucher_created"
ACTION_VOUCHER_REPAID = "voucher_repaid"
ACTION_DAILY_CLOSED = "daily_closed"
ACTION_DAILY_REOPENED = "daily_reopened"
HISTORY_ACTIONS = (
    ACTION_CREATED,
    ACTION_UPDATED,
    ACTION_DELETED,
    ACTION_STATUS_CHANGED,
    ACTION_ADJUSTMENT,
    ACTION_VOUCHER_CREATED,
    ACTION_VOUCHER_REPAID,
    ACTION_DAILY_CLOSED,
    ACTION_DAILY_REOPENED,
)
