import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from cashier.errors import ConcurrentModificationError
from cashier.services import daily_service, shift_service, voucher_service
from cashier.services.concurrency import run_with_retry, unit_of_work
from conftest import ACTOR, DAY, MANAGER, close_all_shifts


def test_second_writer_with_stale_version_is_rejected(shifts):
    shift = shifts["night"]
    version = shift.version_id

    shift_service.set_payments(
        shift.id, [{"payment_method_id": 1, "amount": "100.00"}],
        changed_by=ACTOR, expected_version=version,
    )

    with pytest.raises(ConcurrentModificationError) as exc:
        shift_service.set_payments(
            shift.id, [{"payment_method_id": 1, "amount": "250.00"}],
            changed_by="u-other", expected_version=version,
        )
    assert exc.value.retryable is True
    assert exc.value.status_code == 409

    fresh = shift_service.get_shift(shift.id)
    assert fresh.payments_total_cents == 10000
    assert fresh.version_id > version

    # a writer that re-read the shift goes through
    shift_service.set_payments(
        shift.id, [{"payment_method_id": 1, "amount": "250.00"}],
        changed_by="u-other", expected_version=fresh.version_id,
    )
    assert shift_service.get_shift(shift.id).payments_total_cents == 25000


def test_every_mutation_moves_the_version(shifts):
    shift = shifts["morning"]
    seen = [shift.version_id]
    shift_service.update_income(shift.id, "0.00", changed_by=ACTOR)
    seen.append(shift.version_id)
    shift_service.set_denominations(shift.id, [], changed_by=ACTOR)
    seen.append(shift.version_id)
    shift_service.close_shift(shift.id, closed_by=ACTOR)
    seen.append(shift.version_id)
    assert seen == sorted(set(seen))


def test_stale_day_version_blocks_close(day):
    close_all_shifts()
    stale = daily_service.get_daily(DAY).version_id
    daily_service.close_day(DAY, closed_by=MANAGER, expected_version=stale)

    with pytest.raises(ConcurrentModificationError):
        daily_service.reopen_day(DAY, "fix", reopened_by=MANAGER, expected_version=stale)


def test_stale_voucher_version(shifts):
    voucher = voucher_service.create_voucher(shifts["night"].id, "3.00", "stamps", created_by=ACTOR)
    version = voucher.version_id
    voucher_service.update_voucher(voucher.id, changed_by=ACTOR, notes="first", expected_version=version)
    with pytest.raises(ConcurrentModificationError):
        voucher_service.cancel_voucher(voucher.id, cancelled_by=ACTOR, expected_version=version)
    assert voucher_service.get_voucher(voucher.id).status == "pending"


def test_unit_of_work_translates_lost_race(db_session):
    with pytest.raises(ConcurrentModificationError):
        with unit_of_work():
            raise StaleDataError("UPDATE statement on table 'cashier_shifts' expected to update 1 row(s); 0 were matched.")


def test_run_with_retry_retries_lock_errors(db_session):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise OperationalError("UPDATE", {}, Exception("database is locked"))
        return "ok"

    assert run_with_retry(flaky, backoff_base=0) == "ok"
    assert len(calls) == 3


def test_unversioned_writers_race_on_the_same_shift(app, shifts):
    shift = shifts["night"]
    assert shift.status == "open"

    # another request commits first, from its own session
    with app.app_context():
        shift_service.set_payments(
            shift.id, [{"payment_method_id": 1, "amount": "100.00"}], changed_by=ACTOR,
        )

    with pytest.raises(ConcurrentModificationError):
        shift_service.set_payments(
            shift.id, [{"payment_method_id": 1, "amount": "250.00"}], changed_by="u-other",
        )

    fresh = shift_service.get_shift(shift.id)
    assert fresh.payments_total_cents == 10000
    assert [(p.payment_method_id, p.amount_cents) for p in fresh.payments] == [(1, 10000)]


def test_shift_reopened_while_day_closes(app, shifts, monkeypatch):
    close_all_shifts()
    night_id = shifts["night"].id
    validate = daily_service._validation_errors

    def validate_then_reopen(daily):
        errors = validate(daily)
        with app.app_context():
            shift_service.reopen_shift(night_id, "recount", changed_by="u-other")
        return errors

    monkeypatch.setattr(daily_service, "_validation_errors", validate_then_reopen)
    with pytest.raises(ConcurrentModificationError):
        daily_service.close_day(DAY, closed_by=MANAGER)

    assert daily_service.get_daily(DAY).status == "open"
    assert shift_service.get_shift(night_id).status == "in_progress"


def test_day_closed_while_shift_reopens(app, shifts, monkeypatch):
    close_all_shifts()
    night_id = shifts["night"].id
    check_day = shift_service.ensure_day_open

    def check_then_close(shift):
        check_day(shift)
        with app.app_context():
            daily_service.close_day(DAY, closed_by=MANAGER)

    monkeypatch.setattr(shift_service, "ensure_day_open", check_then_close)
    with pytest.raises(ConcurrentModificationError):
        shift_service.reopen_shift(night_id, "recount", changed_by="u-other")

    assert daily_service.get_daily(DAY).status == "closed"
    assert shift_service.get_shift(night_id).status == "closed"
