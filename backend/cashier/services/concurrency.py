# Overview: Transaction and optimistic-locking helpers shared by the cashier services.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentModificationError
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    The version_id columns still catch conflicting writers there.
    """
    return query.with_for_update()


def check_version(entity, expected_version: int | None, label: str) -> None:
    """
    Optimistic check against the version the caller last read.

    None means the caller did not read first; the version_id_col check at
    flush time still applies.
    """
    if expected_version is None:
        return
    if entity.version_id != expected_version:
        raise ConcurrentModificationError(
            f"{label} was modified concurrently "
            f"(expected version {expected_version}, found {entity.version_id})"
        )


@contextmanager
def unit_of_work():
    """
    One atomic cashier mutation.

    The entity update, its derived-field recomputation and its history rows
    are committed together. Any exception rolls everything back; a lost
    optimistic-lock race surfaces as ConcurrentModificationError.
    """
    try:
        yield db.session
        db.session.commit()
    except StaleDataError as exc:
        db.session.rollback()
        raise ConcurrentModificationError("Record was modified by another request; reload and retry") from exc
    except Exception:
        db.session.rollback()
        raise


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on lock contention.

    Retries on OperationalError (deadlocks, locks) only. Optimistic-lock
    losses are not retried here: the caller must re-read before trying again.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
