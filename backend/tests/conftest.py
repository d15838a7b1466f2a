"""
Pytest fixtures for the cashier backend tests.

Provides the application over an in-memory SQLite database, a per-test
clean database, and a couple of day builders.
"""

from datetime import date

import pytest

from cashier import create_app
from cashier.extensions import db
from cashier.services import daily_service, shift_service

DAY = date(2025, 1, 10)
ACTOR = "u-front"
MANAGER = "u-manager"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CASHIER_DISCREPANCY_TOLERANCE': '0.00',
        'CASHIER_BLOCKING_DISCREPANCY': '',
        'CASHIER_DEFAULT_INITIAL_FUND': '0.00',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        db.session.expunge_all()
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def day(db_session):
    """2025-01-10 initialized with a 200.00 fund on every shift."""
    return daily_service.initialize_day(
        DAY,
        ACTOR,
        ["u-back"],
        "200.00",
        opened_by=MANAGER,
    )


@pytest.fixture(scope='function')
def shifts(day):
    """The day's shifts keyed by shift type."""
    return {shift.shift_type: shift for shift in shift_service.list_shifts(DAY)}


def close_all_shifts(the_day=DAY, actor=ACTOR):
    for shift in shift_service.list_shifts(the_day):
        if shift.status in ("open", "in_progress"):
            shift_service.close_shift(shift.id, closed_by=actor)


def actor_headers(user_id: str = ACTOR, **extra) -> dict:
    """Helper to create the identity header."""
    headers = {'X-User-Id': user_id}
    headers.update(extra)
    return headers
