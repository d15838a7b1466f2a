"""
Typed failures raised by the cashier services.

Every failure is surfaced to the caller as-is; nothing here is retried or
corrected automatically. The HTTP layer renders them with ``to_dict`` and
``status_code``.
"""

from __future__ import annotations


class CashierError(Exception):
    """Base class for cashier failures."""

    status_code = 400
    code = "CASHIER_ERROR"
    retryable = False

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }


class ValidationError(CashierError, ValueError):
    """400-level input problem (negative amount, unknown category, ...)."""

    status_code = 400
    code = "CASHIER_VALIDATION_ERROR"


class NotFoundError(CashierError, LookupError):
    """No shift, day or voucher for the given id/date."""

    status_code = 404
    code = "CASHIER_NOT_FOUND"


class InvalidStateTransitionError(CashierError):
    """Operation not allowed from the current status."""

    status_code = 409
    code = "CASHIER_INVALID_STATE"


class DuplicateDayError(CashierError):
    status_code = 409
    code = "CASHIER_DAY_EXISTS"


class ConcurrentModificationError(CashierError):
    """Lost an optimistic-lock race. Safe to retry after re-reading."""

    status_code = 409
    code = "CASHIER_CONCURRENT_MODIFICATION"
    retryable = True


class DailyNotReadyError(CashierError):
    """The day cannot be closed yet; ``validation_errors`` says why."""

    status_code = 422
    code = "CASHIER_DAY_NOT_READY"

    def __init__(self, validation_errors: list[str], message: str | None = None):
        super().__init__(message or "Day cannot be closed yet")
        self.validation_errors = list(validation_errors)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["validation_errors"] = self.validation_errors
        return data
