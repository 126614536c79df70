from smb_ledger.services.allocation import AllocationServiceImpl
from smb_ledger.services.balances import BalanceServiceImpl
from smb_ledger.services.closing import PeriodClosingServiceImpl
from smb_ledger.services.interfaces import (
    AccountingPeriodService,
    AllocationService,
    BalanceService,
    LedgerService,
    PeriodClosingService,
    ReconciliationService,
)
from smb_ledger.services.ledger import LedgerServiceImpl
from smb_ledger.services.periods import AccountingPeriodServiceImpl
from smb_ledger.services.reconciliation import ReconciliationServiceImpl

__all__ = [
    "AccountingPeriodService",
    "AccountingPeriodServiceImpl",
    "AllocationService",
    "AllocationServiceImpl",
    "BalanceService",
    "BalanceServiceImpl",
    "LedgerService",
    "LedgerServiceImpl",
    "PeriodClosingService",
    "PeriodClosingServiceImpl",
    "ReconciliationService",
    "ReconciliationServiceImpl",
]
