"""Tests for the SQLite repositories and transaction handling."""

import sqlite3
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import (
    AllocatableDocument,
    AllocationSource,
    DocumentKind,
    SourceKind,
)
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.periods import AccountingPeriod
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    ReconciliationItem,
    ReconciliationItemType,
)
from smb_ledger.domain.value_objects import AccountType, JournalEntryStatus
from smb_ledger.exceptions import ConcurrentModificationError
from smb_ledger.repositories.sqlite import (
    SQLiteAccountingPeriodRepository,
    SQLiteAccountRepository,
    SQLiteAllocationSourceRepository,
    SQLiteDatabase,
    SQLiteDocumentRepository,
    SQLiteJournalEntryRepository,
    SQLiteReconciliationRepository,
)


@pytest.fixture
def account_repo(db: SQLiteDatabase) -> SQLiteAccountRepository:
    return SQLiteAccountRepository(db)


@pytest.fixture
def cash(account_repo: SQLiteAccountRepository) -> Account:
    account = Account(code="1000", name="Checking", account_type=AccountType.ASSET)
    account_repo.add(account)
    return account


class TestTransactions:
    def test_rollback_on_error(self, db, account_repo):
        with pytest.raises(RuntimeError):
            with db.transaction():
                account_repo.add(
                    Account(code="1000", name="Checking", account_type=AccountType.ASSET)
                )
                raise RuntimeError("boom")

        assert account_repo.get_by_code("1000") is None
        assert not db.in_transaction

    def test_commit(self, db, account_repo):
        with db.transaction():
            account_repo.add(Account(code="1000", name="Checking", account_type=AccountType.ASSET))
            assert db.in_transaction

        assert account_repo.get_by_code("1000") is not None

    def test_nested_scope_rolls_back_alone(self, db, account_repo):
        with db.transaction():
            account_repo.add(Account(code="1000", name="Checking", account_type=AccountType.ASSET))
            with pytest.raises(ValueError):
                with db.transaction():
                    account_repo.add(
                        Account(code="1100", name="Savings", account_type=AccountType.ASSET)
                    )
                    raise ValueError("inner")

        assert account_repo.get_by_code("1000") is not None
        assert account_repo.get_by_code("1100") is None

    def test_outer_failure_discards_inner_work(self, db, account_repo):
        with pytest.raises(ValueError):
            with db.transaction():
                with db.transaction():
                    account_repo.add(
                        Account(code="1100", name="Savings", account_type=AccountType.ASSET)
                    )
                raise ValueError("outer")

        assert account_repo.get_by_code("1100") is None

    def test_initialize_is_idempotent(self, db):
        db.initialize()

        tables = {
            row["name"]
            for row in db.get_connection().execute(
                "SELECT name FROM sqlite_master WHERE type = 'table'"
            )
        }
        assert {"accounts", "journal_entries", "year_end_closes", "allocations"} <= tables


class TestAccountRepository:
    def test_round_trip(self, account_repo, cash):
        loaded = account_repo.get(cash.id)

        assert loaded.code == "1000"
        assert loaded.account_type == AccountType.ASSET
        assert loaded.is_active

    def test_code_is_unique(self, account_repo, cash):
        with pytest.raises(sqlite3.IntegrityError):
            account_repo.add(Account(code="1000", name="Other", account_type=AccountType.ASSET))

    def test_list_by_type(self, account_repo, cash):
        account_repo.add(Account(code="4000", name="Sales", account_type=AccountType.REVENUE))

        assert [a.code for a in account_repo.list_by_type(AccountType.REVENUE)] == ["4000"]


class TestJournalEntryRepository:
    def test_round_trip_keeps_line_order(self, db, account_repo, cash):
        sales = Account(code="4000", name="Sales", account_type=AccountType.REVENUE)
        account_repo.add(sales)
        repo = SQLiteJournalEntryRepository(db)
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(cash.id, Decimal("125.50"), "deposit"),
                JournalEntryLine.credit_line(sales.id, Decimal("125.50")),
            ],
            reference="INV-7",
        )
        entry.mark_posted()

        repo.add(entry)
        loaded = repo.get(entry.id)

        assert loaded.status == JournalEntryStatus.POSTED
        assert loaded.reference == "INV-7"
        assert [line.account_id for line in loaded.lines] == [cash.id, sales.id]
        assert loaded.lines[0].debit.amount == Decimal("125.50")
        assert loaded.lines[0].description == "deposit"
        assert account_repo.has_posted_lines(cash.id)

    def test_draft_lines_not_posted(self, db, account_repo, cash):
        sales = Account(code="4000", name="Sales", account_type=AccountType.REVENUE)
        account_repo.add(sales)
        repo = SQLiteJournalEntryRepository(db)
        repo.add(
            JournalEntry(
                transaction_date=date(2024, 2, 1),
                lines=[
                    JournalEntryLine.debit_line(cash.id, Decimal("10")),
                    JournalEntryLine.credit_line(sales.id, Decimal("10")),
                ],
            )
        )

        assert repo.list_posted_lines(account_id=cash.id) == []
        assert not account_repo.has_posted_lines(cash.id)

    def test_get_posted_line(self, db, account_repo, cash):
        sales = Account(code="4000", name="Sales", account_type=AccountType.REVENUE)
        account_repo.add(sales)
        repo = SQLiteJournalEntryRepository(db)
        posted = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(cash.id, Decimal("40")),
                JournalEntryLine.credit_line(sales.id, Decimal("40")),
            ],
            reference="INV-8",
        )
        posted.mark_posted()
        repo.add(posted)
        draft = JournalEntry(
            transaction_date=date(2024, 2, 2),
            lines=[
                JournalEntryLine.debit_line(cash.id, Decimal("5")),
                JournalEntryLine.credit_line(sales.id, Decimal("5")),
            ],
        )
        repo.add(draft)

        line = repo.get_posted_line(posted.lines[0].id)

        assert line.journal_entry_id == posted.id
        assert line.account_id == cash.id
        assert line.signed_amount == Decimal("40.00")
        assert line.reference == "INV-8"
        assert repo.get_posted_line(draft.lines[0].id) is None
        assert repo.get_posted_line(uuid4()) is None


class TestPeriodRepository:
    def test_find_for_date(self, db):
        repo = SQLiteAccountingPeriodRepository(db)
        period = AccountingPeriod(date(2024, 1, 1), date(2024, 12, 31))
        repo.add(period)

        assert repo.find_for_date(date(2024, 12, 31)).id == period.id
        assert repo.find_for_date(date(2025, 1, 1)) is None
        assert repo.find_overlapping(date(2024, 6, 1), date(2025, 5, 31)).id == period.id

    def test_lock_persisted(self, db):
        repo = SQLiteAccountingPeriodRepository(db)
        period = AccountingPeriod(date(2024, 1, 1), date(2024, 12, 31))
        repo.add(period)

        period.lock("controller")
        repo.update(period)
        loaded = repo.get(period.id)

        assert loaded.is_locked
        assert loaded.closed_by == "controller"
        assert loaded.closing_date == date(2024, 12, 31)


class TestVersionedUpdates:
    def test_document_version_increments(self, db):
        repo = SQLiteDocumentRepository(db)
        document = AllocatableDocument(kind=DocumentKind.INVOICE, total_amount=Decimal("100"))
        repo.add(document)

        document.apply_payment(Decimal("40"))
        repo.update(document)

        assert document.version == 2
        loaded = repo.get(document.id)
        assert loaded.version == 2
        assert loaded.amount_paid == Decimal("40")

    def test_stale_document_rejected(self, db):
        repo = SQLiteDocumentRepository(db)
        document = AllocatableDocument(kind=DocumentKind.INVOICE, total_amount=Decimal("100"))
        repo.add(document)
        first = repo.get(document.id)
        second = repo.get(document.id)

        first.apply_payment(Decimal("60"))
        repo.update(first)
        second.apply_payment(Decimal("60"))

        with pytest.raises(ConcurrentModificationError) as exc_info:
            repo.update(second)

        assert exc_info.value.retryable
        assert repo.get(document.id).amount_paid == Decimal("60")

    def test_stale_source_rejected(self, db):
        repo = SQLiteAllocationSourceRepository(db)
        source = AllocationSource(kind=SourceKind.PAYMENT, amount=Decimal("50"))
        repo.add(source)
        stale = repo.get(source.id)

        source.apply(Decimal("20"))
        repo.update(source)
        stale.apply(Decimal("50"))

        with pytest.raises(ConcurrentModificationError):
            repo.update(stale)
        assert repo.get(source.id).amount_applied == Decimal("20")


class TestReconciliationRepository:
    def test_items_upserted_by_transaction(self, db, cash):
        repo = SQLiteReconciliationRepository(db)
        reconciliation = BankReconciliation(
            bank_account_id=cash.id,
            statement_date=date(2024, 3, 31),
            statement_ending_balance=Decimal("0"),
        )
        repo.add(reconciliation)
        item = ReconciliationItem(
            reconciliation.id,
            ReconciliationItemType.BANK_TRANSACTION,
            cash.id,
            Decimal("10"),
        )
        item.set_cleared(True)
        repo.save_item(item)

        duplicate = ReconciliationItem(
            reconciliation.id,
            ReconciliationItemType.BANK_TRANSACTION,
            cash.id,
            Decimal("10"),
        )
        repo.save_item(duplicate)

        items = repo.get(reconciliation.id).items
        assert len(items) == 1
        assert items[0].id == item.id
        assert not items[0].is_cleared
