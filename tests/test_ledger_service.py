"""Tests for LedgerService implementation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.value_objects import AccountType, JournalEntryStatus
from smb_ledger.exceptions import (
    AccountInUseError,
    DuplicateAccountCodeError,
    EmptyEntryError,
    EntryAlreadyReversedError,
    EntryImmutableError,
    EntryNotPostedError,
    InactiveAccountError,
    InvalidLineError,
    JournalEntryNotFoundError,
    MixedCurrencyError,
    PeriodLockedError,
    UnbalancedEntryError,
    UnknownAccountError,
)


@pytest.fixture
def ledger(container):
    return container.ledger_service


class TestAccounts:
    def test_create_and_get(self, ledger):
        account = Account(code="1000", name="Cash", account_type=AccountType.ASSET)
        ledger.create_account(account)

        assert ledger.get_account(account.id).code == "1000"

    def test_duplicate_code_rejected(self, ledger, chart):
        with pytest.raises(DuplicateAccountCodeError):
            ledger.create_account(
                Account(code="1000", name="Other", account_type=AccountType.ASSET)
            )

    def test_list_accounts_ordered_by_code(self, ledger, chart):
        codes = [a.code for a in ledger.list_accounts()]

        assert codes == sorted(codes)

    def test_get_unknown_account(self, ledger):
        with pytest.raises(UnknownAccountError):
            ledger.get_account(uuid4())

    def test_rename_allowed_after_posting(self, ledger, chart, make_entry):
        ledger.post_entry(make_entry(date(2024, 1, 5), chart["cash"], chart["sales"], "10"))
        cash = ledger.get_account(chart["cash"].id)
        cash.name = "Operating Checking"

        ledger.update_account(cash)

        assert ledger.get_account(cash.id).name == "Operating Checking"

    def test_code_frozen_after_posting(self, ledger, chart, make_entry):
        ledger.post_entry(make_entry(date(2024, 1, 5), chart["cash"], chart["sales"], "10"))
        cash = ledger.get_account(chart["cash"].id)
        cash.code = "1001"

        with pytest.raises(AccountInUseError):
            ledger.update_account(cash)

    def test_type_frozen_after_posting(self, ledger, chart, make_entry):
        ledger.post_entry(make_entry(date(2024, 1, 5), chart["cash"], chart["sales"], "10"))
        sales = ledger.get_account(chart["sales"].id)
        sales.account_type = AccountType.LIABILITY

        with pytest.raises(AccountInUseError):
            ledger.update_account(sales)

    def test_code_change_allowed_without_postings(self, ledger, chart):
        rent = ledger.get_account(chart["rent"].id)
        rent.code = "6010"

        ledger.update_account(rent)

        assert ledger.get_account(rent.id).code == "6010"


class TestPostEntry:
    def test_posts_balanced_entry(self, ledger, chart, make_entry, container):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "250.00")

        entry_id = ledger.post_entry(entry)

        stored = container.journal_repo.get(entry_id)
        assert stored is not None
        assert stored.status == JournalEntryStatus.POSTED
        assert stored.posted_at is not None
        assert len(stored.lines) == 2
        assert stored.total_debits.amount == Decimal("250.00")

    def test_unbalanced_entry_rejected_and_nothing_written(self, ledger, chart, container):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(chart["cash"].id, Decimal("100")),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("90")),
            ],
        )

        with pytest.raises(UnbalancedEntryError) as exc_info:
            ledger.post_entry(entry)

        assert exc_info.value.context["difference"] == "10.00"
        assert container.journal_repo.get(entry.id) is None
        assert entry.status == JournalEntryStatus.DRAFT

    def test_single_line_rejected(self, ledger, chart):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[JournalEntryLine.debit_line(chart["cash"].id, Decimal("100"))],
        )

        with pytest.raises(EmptyEntryError):
            ledger.post_entry(entry)

    def test_line_with_both_sides_rejected(self, ledger, chart):
        both = JournalEntryLine.debit_line(chart["cash"].id, Decimal("100"))
        both.credit = JournalEntryLine.credit_line(chart["cash"].id, Decimal("5")).credit
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[both, JournalEntryLine.credit_line(chart["sales"].id, Decimal("95"))],
        )

        with pytest.raises(InvalidLineError) as exc_info:
            ledger.post_entry(entry)

        assert exc_info.value.context["line_number"] == 1

    def test_negative_amount_rejected(self, ledger, chart):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(chart["cash"].id, Decimal("-100")),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("-100")),
            ],
        )

        with pytest.raises(InvalidLineError):
            ledger.post_entry(entry)

    def test_zero_line_rejected(self, ledger, chart):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(chart["cash"].id, Decimal("0")),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("0")),
            ],
        )

        with pytest.raises(InvalidLineError):
            ledger.post_entry(entry)

    def test_mixed_currency_rejected(self, ledger, chart):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(chart["cash"].id, Decimal("100"), currency="EUR"),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("100")),
            ],
        )

        with pytest.raises(MixedCurrencyError):
            ledger.post_entry(entry)

    def test_unknown_account_rejected(self, ledger, chart):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(uuid4(), Decimal("100")),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("100")),
            ],
        )

        with pytest.raises(UnknownAccountError):
            ledger.post_entry(entry)

    def test_inactive_account_rejected(self, ledger, chart, make_entry):
        rent = ledger.get_account(chart["rent"].id)
        rent.deactivate()
        ledger.update_account(rent)

        with pytest.raises(InactiveAccountError):
            ledger.post_entry(make_entry(date(2024, 2, 1), chart["rent"], chart["cash"], "5"))

    def test_closing_entry_may_zero_inactive_revenue(self, ledger, chart, make_entry):
        ledger.post_entry(make_entry(date(2024, 2, 1), chart["cash"], chart["services"], "5"))
        services = ledger.get_account(chart["services"].id)
        services.deactivate()
        ledger.update_account(services)
        closing_entry = make_entry(date(2024, 12, 31), chart["services"], chart["retained"], "5")
        closing_entry.is_closing_entry = True

        ledger.post_entry(closing_entry)

        assert closing_entry.status == JournalEntryStatus.POSTED

    def test_closing_entry_still_rejects_inactive_balance_sheet_account(
        self, ledger, chart, make_entry
    ):
        cash = ledger.get_account(chart["cash"].id)
        cash.deactivate()
        ledger.update_account(cash)
        entry = make_entry(date(2024, 12, 31), chart["sales"], chart["cash"], "5")
        entry.is_closing_entry = True

        with pytest.raises(InactiveAccountError):
            ledger.post_entry(entry)

    def test_failed_write_leaves_entry_a_draft(
        self, ledger, chart, make_entry, container, monkeypatch
    ):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "25")

        def fail_add(entry):
            raise RuntimeError("disk full")

        monkeypatch.setattr(container.journal_repo, "add", fail_add)
        with pytest.raises(RuntimeError):
            ledger.post_entry(entry)

        assert entry.status == JournalEntryStatus.DRAFT
        assert entry.posted_at is None

        monkeypatch.undo()
        assert ledger.post_entry(entry) == entry.id
        assert ledger.get_entry(entry.id).status == JournalEntryStatus.POSTED

    def test_locked_period_rejected(self, ledger, chart, make_entry, container):
        period = container.period_service.create_period(date(2024, 1, 1), date(2024, 12, 31))
        container.period_service.lock_period(period.id)
        entry = make_entry(date(2024, 6, 30), chart["cash"], chart["sales"], "100")

        with pytest.raises(PeriodLockedError) as exc_info:
            ledger.post_entry(entry)

        assert exc_info.value.context["fiscal_year"] == 2024
        assert container.journal_repo.get(entry.id) is None

    def test_date_outside_periods_is_open(self, ledger, chart, make_entry, container):
        period = container.period_service.create_period(date(2024, 1, 1), date(2024, 12, 31))
        container.period_service.lock_period(period.id)

        entry_id = ledger.post_entry(
            make_entry(date(2025, 1, 2), chart["cash"], chart["sales"], "100")
        )

        assert container.journal_repo.get(entry_id) is not None

    def test_reposting_rejected(self, ledger, chart, make_entry):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.post_entry(entry)

        with pytest.raises(EntryImmutableError):
            ledger.post_entry(entry)


class TestDrafts:
    def test_unbalanced_draft_can_be_saved(self, ledger, chart, container):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(chart["cash"].id, Decimal("100")),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("60")),
            ],
        )

        ledger.save_draft(entry)

        stored = container.journal_repo.get(entry.id)
        assert stored.status == JournalEntryStatus.DRAFT

    def test_draft_excluded_from_balances(self, ledger, chart, make_entry, container):
        ledger.save_draft(make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100"))

        balance = container.balance_service.account_balance(chart["cash"].id)

        assert balance.amount == Decimal("0")

    def test_update_then_post_draft(self, ledger, chart, container):
        entry = JournalEntry(
            transaction_date=date(2024, 2, 1),
            lines=[
                JournalEntryLine.debit_line(chart["cash"].id, Decimal("100")),
                JournalEntryLine.credit_line(chart["sales"].id, Decimal("60")),
            ],
        )
        ledger.save_draft(entry)

        with pytest.raises(UnbalancedEntryError):
            ledger.post_draft(entry.id)

        entry.lines[1] = JournalEntryLine.credit_line(chart["sales"].id, Decimal("100"))
        entry.lines[1].line_number = 2
        ledger.update_draft(entry)
        ledger.post_draft(entry.id)

        assert ledger.get_entry(entry.id).status == JournalEntryStatus.POSTED
        assert container.balance_service.account_balance(chart["sales"].id).amount == Decimal(
            "100"
        )

    def test_void_draft(self, ledger, chart, make_entry):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.save_draft(entry)

        ledger.void_draft(entry.id)

        assert ledger.get_entry(entry.id).status == JournalEntryStatus.VOIDED

    def test_posted_entry_cannot_be_voided(self, ledger, chart, make_entry):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.post_entry(entry)

        with pytest.raises(EntryImmutableError):
            ledger.void_draft(entry.id)

    def test_posted_entry_cannot_be_updated(self, ledger, chart, make_entry):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.post_entry(entry)

        with pytest.raises(EntryImmutableError):
            ledger.update_draft(entry)

    def test_get_missing_entry(self, ledger):
        with pytest.raises(JournalEntryNotFoundError):
            ledger.get_entry(uuid4())


class TestReverseEntry:
    def test_reversal_swaps_sides(self, ledger, chart, make_entry, container):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100", "INV-1")
        ledger.post_entry(entry)

        reversal = ledger.reverse_entry(entry.id, date(2024, 2, 15))

        assert reversal.reverses_entry_id == entry.id
        assert reversal.reference == "REV-INV-1"
        assert reversal.status == JournalEntryStatus.POSTED
        assert reversal.lines[0].credit.amount == Decimal("100.00")
        assert reversal.lines[1].debit.amount == Decimal("100.00")
        assert container.balance_service.account_balance(chart["cash"].id).amount == Decimal("0")
        assert ledger.get_entry(entry.id).status == JournalEntryStatus.POSTED

    def test_second_reversal_rejected(self, ledger, chart, make_entry):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.post_entry(entry)
        ledger.reverse_entry(entry.id, date(2024, 2, 15))

        with pytest.raises(EntryAlreadyReversedError):
            ledger.reverse_entry(entry.id, date(2024, 2, 16))

    def test_draft_cannot_be_reversed(self, ledger, chart, make_entry):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.save_draft(entry)

        with pytest.raises(EntryNotPostedError):
            ledger.reverse_entry(entry.id, date(2024, 2, 15))

    def test_reversal_into_locked_period_rejected(self, ledger, chart, make_entry, container):
        entry = make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "100")
        ledger.post_entry(entry)
        period = container.period_service.create_period(date(2024, 1, 1), date(2024, 12, 31))
        container.period_service.lock_period(period.id)

        with pytest.raises(PeriodLockedError):
            ledger.reverse_entry(entry.id, date(2024, 3, 1))

        assert container.journal_repo.get_reversal(entry.id) is None
