from .daily import CashierDaily, DAILY_TOTAL_FIELDS
from .shifts import CashierShift, CashierShiftUser, CashierDenomination, CashierPayment
from .vouchers import CashierVoucher
from .history import CashierHistory, HistoryImmutableError

__all__ = [
    'CashierDaily', 'DAILY_TOTAL_FIELDS',
    'CashierShift', 'CashierShiftUser', 'CashierDenomination', 'CashierPayment',
    'CashierVoucher',
    'CashierHistory', 'HistoryImmutableError',
]
