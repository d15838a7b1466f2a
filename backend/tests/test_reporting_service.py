from datetime import date
from decimal import Decimal

import pytest

from cashier.errors import ValidationError
from cashier.services import daily_service, reporting_service, shift_service, voucher_service
from conftest import ACTOR, DAY, MANAGER, close_all_shifts


def _method(report, name):
    return next(row for row in report["payment_methods_breakdown"] if row["method_name"] == name)


def test_monthly_report_zero_fills_missing_days(shifts):
    night = shifts["night"]
    shift_service.set_denominations(night.id, [{"denomination": "100.00", "quantity": 3}], changed_by=ACTOR)
    shift_service.set_payments(night.id, [{"payment_method_id": 1, "amount": "100.00"}], changed_by=ACTOR)
    close_all_shifts()
    daily_service.close_day(DAY, closed_by=MANAGER)
    daily_service.initialize_day(date(2025, 1, 12), ACTOR, initial_fund="0.00", opened_by=MANAGER)

    report = reporting_service.monthly_report(2025, 1)

    assert len(report["daily_breakdown"]) == 31
    by_date = {row["date"]: row for row in report["daily_breakdown"]}
    assert by_date["2025-01-01"]["status"] == "not_initialized"
    assert by_date["2025-01-01"]["grand_total"] == Decimal("0.00")
    assert by_date["2025-01-10"]["status"] == "closed"
    assert by_date["2025-01-10"]["total_cash"] == Decimal("300.00")
    assert by_date["2025-01-10"]["has_discrepancy"] is True
    assert by_date["2025-01-12"]["status"] == "open"

    assert report["totals"]["grand_total"] == Decimal("400.00")
    assert _method(report, "cash")["percentage"] == Decimal("75.00")
    assert _method(report, "card")["total_amount"] == Decimal("100.00")
    assert _method(report, "card")["percentage"] == Decimal("25.00")
    assert _method(report, "bacs")["percentage"] == Decimal("0.00")

    period = report["period"]
    assert (period["total_days"], period["days_closed"], period["days_open"], period["days_not_initialized"]) == (31, 1, 1, 29)
    assert any("2025-01-12" in error for error in report["validation_errors"])


def test_monthly_report_for_empty_month(db_session):
    report = reporting_service.monthly_report(2024, 2)
    assert len(report["daily_breakdown"]) == 29
    assert report["totals"]["grand_total"] == Decimal("0.00")
    assert all(row["percentage"] == Decimal("0.00") for row in report["payment_methods_breakdown"])
    assert report["validation_errors"] == []


@pytest.mark.parametrize("year, month", [(2025, 0), (2025, 13), (0, 1), ("2025", 1)])
def test_monthly_report_validates_period(db_session, year, month):
    with pytest.raises(ValidationError):
        reporting_service.monthly_report(year, month)


def test_dashboard_overview(shifts):
    night, morning = shifts["night"], shifts["morning"]
    shift_service.set_denominations(night.id, [{"denomination": "20.00", "quantity": 2}], changed_by=ACTOR)
    shift_service.set_payments(morning.id, [{"payment_method_id": 4, "amount": "60.00"}], changed_by=ACTOR)
    shift_service.close_shift(night.id, closed_by=ACTOR)
    repaid = voucher_service.create_voucher(morning.id, "8.00", "parcel", created_by=ACTOR)
    voucher_service.justify_voucher(repaid.id, morning.id, justified_by=ACTOR)
    voucher_service.create_voucher(morning.id, "3.00", "stamps", created_by=ACTOR)

    overview = reporting_service.dashboard_overview(DAY)
    today = overview["today"]
    assert today["initialized"] is True
    assert today["total_shifts"] == 4
    assert today["closed_shifts"] == 1
    assert today["open_shifts"] == 3
    assert today["shifts_by_status"]["in_progress"] == 1
    assert today["total_cash"] == Decimal("40.00")
    assert today["total_payments"] == Decimal("60.00")
    assert today["grand_total"] == Decimal("100.00")

    vouchers = overview["vouchers"]
    assert vouchers["active_count"] == 1
    assert vouchers["active_amount"] == Decimal("3.00")
    assert vouchers["total_repaid_lifetime"] == Decimal("8.00")
    assert vouchers["oldest_active_date"] == DAY.isoformat()


def test_dashboard_for_uninitialized_day(db_session):
    today = reporting_service.dashboard_overview("2030-06-01")["today"]
    assert today["initialized"] is False
    assert today["status"] == "not_initialized"
    assert today["grand_total"] == Decimal("0.00")
