import random
from decimal import Decimal

import pytest

from cashier.constants import DENOMINATIONS_CENTS
from cashier.errors import InvalidStateTransitionError, NotFoundError, ValidationError
from cashier.extensions import db
from cashier.models import CashierHistory
from cashier.money import from_cents
from cashier.services import daily_service, shift_service
from cashier.services.drawer_service import denomination_total_cents, parse_denomination_lines
from conftest import ACTOR, DAY, MANAGER, close_all_shifts

# 500 + 100 + 50 + 20 + 10 = 680
COUNT_680 = [
    {"denomination": "500.00", "quantity": 1},
    {"denomination": "100.00", "quantity": 1},
    {"denomination": "50.00", "quantity": 1},
    {"denomination": "20.00", "quantity": 1},
    {"denomination": "10.00", "quantity": 1},
]


def test_initialized_shifts_start_open_with_the_fund(day, shifts):
    assert list(shifts) == ["night", "morning", "afternoon", "closing"]
    for shift in shifts.values():
        assert shift.status == "open"
        assert shift.initial_fund_cents == 20000
        assert shift.cash_expected_cents == 20000
        assert shift.difference_cents == -20000
        assert shift.primary_user_id == ACTOR
        assert sorted(u.user_id for u in shift.users) == ["u-back", ACTOR]


def test_get_shift_unknown_id():
    with pytest.raises(NotFoundError) as exc:
        shift_service.get_shift(999_999)
    assert exc.value.code == "CASHIER_SHIFT_NOT_FOUND"


def test_happy_path_close_flags_short_drawer(shifts):
    """Fund 200, income 500, counted 680: expected 700, difference -20."""
    shift = shifts["morning"]

    shift_service.update_income(shift.id, "500.00", changed_by=ACTOR)
    assert shift.status == "in_progress"
    assert from_cents(shift.cash_expected_cents) == Decimal("700.00")

    shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)
    assert from_cents(shift.cash_counted_cents) == Decimal("680.00")

    closed = shift_service.close_shift(shift.id, closed_by=ACTOR)
    assert closed.status == "closed"
    assert closed.closed_by == ACTOR
    assert closed.closed_at is not None
    assert from_cents(closed.cash_expected_cents) == Decimal("700.00")
    assert from_cents(closed.difference_cents) == Decimal("-20.00")
    assert closed.has_discrepancy is True

    adjustments = db.session.query(CashierHistory).filter_by(shift_id=shift.id, action="adjustment").all()
    assert len(adjustments) == 1
    assert adjustments[0].field_changed == "difference"
    assert adjustments[0].new_value == "-20.00"


def test_exact_drawer_closes_without_discrepancy(shifts):
    shift = shifts["night"]
    shift_service.update_income(shift.id, "480.00", changed_by=ACTOR)
    shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)

    closed = shift_service.close_shift(shift.id, closed_by=ACTOR)
    assert closed.difference_cents == 0
    assert closed.has_discrepancy is False
    assert db.session.query(CashierHistory).filter_by(shift_id=shift.id, action="adjustment").count() == 0


def test_tolerance_setting_widens_the_discrepancy_threshold(app, shifts, monkeypatch):
    monkeypatch.setitem(app.config, "CASHIER_DISCREPANCY_TOLERANCE", "25.00")
    shift = shifts["morning"]
    shift_service.update_income(shift.id, "500.00", changed_by=ACTOR)
    shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)

    closed = shift_service.close_shift(shift.id, closed_by=ACTOR)
    assert closed.difference_cents == -2000
    assert closed.has_discrepancy is False


def test_income_breakdown_is_stored_per_category(shifts):
    shift = shifts["afternoon"]
    shift_service.update_income(
        shift.id,
        "350.00",
        {"accommodation": "300.00", "bar": "50.00"},
        changed_by=ACTOR,
        notes="two check-ins",
    )
    data = shift.to_dict()
    assert data["income"] == "350.00"
    assert data["income_breakdown"] == {"accommodation": "300.00", "bar": "50.00"}
    assert data["notes"] == "two check-ins"


def test_income_rejects_negative_and_malformed(shifts):
    shift = shifts["night"]
    with pytest.raises(ValidationError):
        shift_service.update_income(shift.id, "-1.00", changed_by=ACTOR)
    with pytest.raises(ValidationError):
        shift_service.update_income(shift.id, "12.345", changed_by=ACTOR)
    with pytest.raises(ValidationError):
        shift_service.update_income(shift.id, "10.00", changed_by="  ")
    assert shift.income_cents == 0
    assert shift.status == "open"


def test_update_income_requires_open_shift(shifts):
    shift = shifts["night"]
    shift_service.close_shift(shift.id, closed_by=ACTOR)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.update_income(shift.id, "10.00", changed_by=ACTOR)


def test_denomination_set_is_replaced_whole(shifts):
    shift = shifts["night"]
    shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)
    shift_service.set_denominations(
        shift.id,
        [{"denomination": "0.50", "quantity": 4}, {"denomination": "5.00", "quantity": 0}],
        changed_by=ACTOR,
    )
    assert [(d.denomination_cents, d.quantity) for d in shift.denominations] == [(50, 4)]
    assert shift.cash_counted_cents == 200


def test_invalid_denomination_leaves_shift_untouched(shifts):
    shift = shifts["night"]
    shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)
    with pytest.raises(ValidationError):
        shift_service.set_denominations(shift.id, [{"denomination": "3.00", "quantity": 1}], changed_by=ACTOR)
    assert shift.cash_counted_cents == 68000
    assert len(shift.denominations) == 5


def test_payments_feed_shift_and_day_totals(shifts):
    shift = shifts["morning"]
    shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)
    shift_service.set_payments(
        shift.id,
        [
            {"payment_method_id": 1, "amount": "120.50"},
            {"payment_method_id": 3, "amount": "30.00"},
        ],
        changed_by=ACTOR,
    )
    assert shift.payments_total_cents == 15050
    assert shift.grand_total_cents == 68000 + 15050
    assert {p.payment_method_name for p in shift.payments} == {"card", "web_payment"}

    daily = daily_service.get_daily(DAY)
    assert daily.total_cash_cents == 68000
    assert daily.total_card_cents == 12050
    assert daily.total_web_payment_cents == 3000
    assert daily.grand_total_cents == 68000 + 15050


def test_closed_shift_correction_is_an_adjustment(shifts):
    shift = shifts["morning"]
    shift_service.update_income(shift.id, "500.00", changed_by=ACTOR)
    shift_service.close_shift(shift.id, closed_by=ACTOR)
    assert shift.has_discrepancy is True

    shift_service.set_denominations(shift.id, COUNT_680, changed_by=MANAGER)
    assert shift.has_discrepancy is True
    shift_service.set_denominations(
        shift.id,
        [{"denomination": "500.00", "quantity": 1}, {"denomination": "100.00", "quantity": 2}],
        changed_by=MANAGER,
    )
    assert shift.status == "closed"
    assert shift.difference_cents == 0
    assert shift.has_discrepancy is False

    entries = db.session.query(CashierHistory).filter_by(
        shift_id=shift.id, table_affected="cashier_denominations"
    ).all()
    assert entries
    assert {e.action for e in entries} == {"adjustment"}


def test_audited_shift_is_immutable(shifts):
    shift = shifts["closing"]
    shift_service.update_income(shift.id, "100.00", changed_by=ACTOR)
    shift_service.close_shift(shift.id, closed_by=ACTOR)
    shift_service.audit_shift(shift.id, audited_by=MANAGER, notes="checked")
    assert shift.status == "audited"
    version = shift.version_id

    with pytest.raises(InvalidStateTransitionError):
        shift_service.update_income(shift.id, "1.00", changed_by=ACTOR)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.set_denominations(shift.id, COUNT_680, changed_by=ACTOR)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.set_payments(shift.id, [{"payment_method_id": 1, "amount": 1}], changed_by=ACTOR)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.close_shift(shift.id, closed_by=ACTOR)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.reopen_shift(shift.id, "typo", changed_by=MANAGER)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.audit_shift(shift.id, audited_by=MANAGER)

    assert shift.status == "audited"
    assert shift.income_cents == 10000
    assert shift.version_id == version


def test_audit_requires_closed_shift(shifts):
    with pytest.raises(InvalidStateTransitionError):
        shift_service.audit_shift(shifts["night"].id, audited_by=MANAGER)


def test_reopen_closed_shift(shifts):
    shift = shifts["night"]
    shift_service.close_shift(shift.id, closed_by=ACTOR)

    with pytest.raises(ValidationError):
        shift_service.reopen_shift(shift.id, "   ", changed_by=MANAGER)

    reopened = shift_service.reopen_shift(shift.id, "late receipt", changed_by=MANAGER)
    assert reopened.status == "in_progress"
    assert reopened.closed_at is None
    assert reopened.closed_by is None

    entry = (
        db.session.query(CashierHistory).filter_by(shift_id=shift.id, action="status_changed")
        .order_by(CashierHistory.id.desc())
        .first()
    )
    assert (entry.old_value, entry.new_value, entry.notes) == ("closed", "in_progress", "late receipt")


def test_reopen_then_audit_lifecycle(shifts):
    shift = shifts["night"]
    shift_service.close_shift(shift.id, closed_by=ACTOR)
    assert shift_service.reopen_shift(shift.id, "recount required", changed_by=MANAGER).status == "in_progress"

    with pytest.raises(InvalidStateTransitionError):
        shift_service.audit_shift(shift.id, audited_by=MANAGER)

    shift_service.close_shift(shift.id, closed_by=ACTOR)
    assert shift_service.audit_shift(shift.id, audited_by=MANAGER).status == "audited"

    with pytest.raises(InvalidStateTransitionError):
        shift_service.reopen_shift(shift.id, "recount required", changed_by=MANAGER)


def test_reopen_requires_closed_shift(shifts):
    with pytest.raises(InvalidStateTransitionError):
        shift_service.reopen_shift(shifts["night"].id, "nothing to reopen", changed_by=MANAGER)


def test_reopen_shift_on_closed_day_is_rejected(shifts):
    close_all_shifts()
    daily_service.close_day(DAY, closed_by=MANAGER)
    with pytest.raises(InvalidStateTransitionError):
        shift_service.reopen_shift(shifts["night"].id, "late receipt", changed_by=MANAGER)


def test_counted_cash_is_exact_for_random_counts():
    rng = random.Random(20250110)
    for _ in range(10_000):
        picked = rng.sample(DENOMINATIONS_CENTS, rng.randint(1, len(DENOMINATIONS_CENTS)))
        lines = [
            {"denomination": rng.choice([from_cents(d), str(from_cents(d)), float(from_cents(d))]),
             "quantity": rng.randint(0, 500)}
            for d in picked
        ]
        expected = sum((Decimal(str(line["denomination"])) * line["quantity"] for line in lines), Decimal("0"))
        total = denomination_total_cents(parse_denomination_lines(lines))
        assert from_cents(total) == expected


def test_counted_cash_round_trips_through_the_database(shifts):
    rng = random.Random(7)
    shift = shifts["night"]
    for _ in range(100):
        picked = rng.sample(DENOMINATIONS_CENTS, rng.randint(1, len(DENOMINATIONS_CENTS)))
        lines = [{"denomination": str(from_cents(d)), "quantity": rng.randint(0, 99)} for d in picked]
        expected = sum((from_cents(d) * line["quantity"] for d, line in zip(picked, lines)), Decimal("0"))

        shift_service.set_denominations(shift.id, lines, changed_by=ACTOR)
        assert from_cents(shift_service.get_shift(shift.id).cash_counted_cents) == expected
