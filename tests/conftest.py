from datetime import date
from decimal import Decimal

import pytest

from smb_ledger.config import Settings
from smb_ledger.container import Container
from smb_ledger.domain.accounts import Account
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.value_objects import AccountType
from smb_ledger.repositories.sqlite import SQLiteDatabase


@pytest.fixture
def db() -> SQLiteDatabase:
    """Create an in-memory SQLite database for testing."""
    database = SQLiteDatabase(":memory:")
    database.initialize()
    return database


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, environment="testing")


@pytest.fixture
def container(db: SQLiteDatabase, settings: Settings) -> Container:
    return Container(settings=settings, database=db)


@pytest.fixture
def chart(container: Container) -> dict[str, Account]:
    """A small chart of accounts, persisted."""
    accounts = {
        "cash": Account(code="1000", name="Checking", account_type=AccountType.ASSET),
        "ar": Account(code="1200", name="Accounts Receivable", account_type=AccountType.ASSET),
        "ap": Account(code="2000", name="Accounts Payable", account_type=AccountType.LIABILITY),
        "deposits": Account(
            code="2100", name="Customer Deposits", account_type=AccountType.LIABILITY
        ),
        "retained": Account(
            code="3100", name="Retained Earnings", account_type=AccountType.EQUITY
        ),
        "sales": Account(code="4000", name="Sales", account_type=AccountType.REVENUE),
        "services": Account(
            code="4100", name="Service Revenue", account_type=AccountType.REVENUE
        ),
        "rent": Account(code="6000", name="Rent", account_type=AccountType.EXPENSE),
        "supplies": Account(code="6100", name="Supplies", account_type=AccountType.EXPENSE),
    }
    for account in accounts.values():
        container.ledger_service.create_account(account)
    return accounts


def make_entry(
    transaction_date: date,
    debit_account: Account,
    credit_account: Account,
    amount: str,
    reference: str = "",
) -> JournalEntry:
    """A two-line entry moving amount from credit_account to debit_account."""
    return JournalEntry(
        transaction_date=transaction_date,
        lines=[
            JournalEntryLine.debit_line(debit_account.id, Decimal(amount)),
            JournalEntryLine.credit_line(credit_account.id, Decimal(amount)),
        ],
        reference=reference,
    )


@pytest.fixture(name="make_entry")
def make_entry_fixture():
    return make_entry
