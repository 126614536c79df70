from smb_ledger.domain.accounts import Account
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.value_objects import AccountType, BalanceMode, Currency, Money

__all__ = [
    "Account",
    "AccountType",
    "BalanceMode",
    "Currency",
    "JournalEntry",
    "JournalEntryLine",
    "Money",
]

__version__ = "0.1.0"
