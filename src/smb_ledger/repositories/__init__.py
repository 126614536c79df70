from smb_ledger.repositories.interfaces import (
    AccountingPeriodRepository,
    AccountRepository,
    AllocationRepository,
    AllocationSourceRepository,
    BankTransactionRepository,
    DocumentRepository,
    JournalEntryRepository,
    ReconciliationRepository,
    TransactionManager,
    YearEndCloseRepository,
)
from smb_ledger.repositories.sqlite import (
    SQLiteAccountingPeriodRepository,
    SQLiteAccountRepository,
    SQLiteAllocationRepository,
    SQLiteAllocationSourceRepository,
    SQLiteBankTransactionRepository,
    SQLiteDatabase,
    SQLiteDocumentRepository,
    SQLiteJournalEntryRepository,
    SQLiteReconciliationRepository,
    SQLiteYearEndCloseRepository,
)

__all__ = [
    "AccountRepository",
    "AccountingPeriodRepository",
    "AllocationRepository",
    "AllocationSourceRepository",
    "BankTransactionRepository",
    "DocumentRepository",
    "JournalEntryRepository",
    "ReconciliationRepository",
    "TransactionManager",
    "YearEndCloseRepository",
    "SQLiteAccountRepository",
    "SQLiteAccountingPeriodRepository",
    "SQLiteAllocationRepository",
    "SQLiteAllocationSourceRepository",
    "SQLiteBankTransactionRepository",
    "SQLiteDatabase",
    "SQLiteDocumentRepository",
    "SQLiteJournalEntryRepository",
    "SQLiteReconciliationRepository",
    "SQLiteYearEndCloseRepository",
]
