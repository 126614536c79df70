from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import (
    AgingReport,
    AllocatableDocument,
    Allocation,
    AllocationRequest,
    AllocationSource,
    DocumentKind,
    DocumentStatus,
    SourceKind,
    SourceStatus,
)
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine, LedgerLine
from smb_ledger.domain.periods import (
    AccountBalance,
    AccountingPeriod,
    ClosingPreview,
    TrialBalance,
    TrialBalanceRow,
    YearEndCloseEntry,
)
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    CandidateItem,
    ReconciliationItem,
    ReconciliationItemType,
    ReconciliationStatus,
    ReconciliationSummary,
)
from smb_ledger.domain.value_objects import (
    AccountType,
    BalanceMode,
    Currency,
    JournalEntryStatus,
    Money,
    NormalBalance,
)

__all__ = [
    "Account",
    "AccountBalance",
    "AccountType",
    "AccountingPeriod",
    "AgingReport",
    "AllocatableDocument",
    "Allocation",
    "AllocationRequest",
    "AllocationSource",
    "BalanceMode",
    "BankReconciliation",
    "BankTransaction",
    "CandidateItem",
    "ClosingPreview",
    "Currency",
    "DocumentKind",
    "DocumentStatus",
    "JournalEntry",
    "JournalEntryLine",
    "JournalEntryStatus",
    "LedgerLine",
    "Money",
    "NormalBalance",
    "ReconciliationItem",
    "ReconciliationItemType",
    "ReconciliationStatus",
    "ReconciliationSummary",
    "SourceKind",
    "SourceStatus",
    "TrialBalance",
    "TrialBalanceRow",
    "YearEndCloseEntry",
]
