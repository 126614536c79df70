from datetime import date
from decimal import Decimal
from uuid import uuid4

from smb_ledger.domain.journal import JournalEntry, JournalEntryLine, LedgerLine
from smb_ledger.domain.value_objects import JournalEntryStatus, Money


class TestJournalEntryLine:
    def test_debit_line(self):
        line = JournalEntryLine.debit_line(uuid4(), Decimal("100"))

        assert line.is_debit
        assert not line.is_credit
        assert line.net_amount == Money(Decimal("100"))

    def test_credit_line(self):
        line = JournalEntryLine.credit_line(uuid4(), Decimal("40"))

        assert line.is_credit
        assert line.net_amount == Money(Decimal("-40"))

    def test_amounts_rounded_to_cents(self):
        line = JournalEntryLine.debit_line(uuid4(), Decimal("10.005"))

        assert line.debit.amount == Decimal("10.01")


class TestJournalEntry:
    def test_lines_numbered_and_linked(self):
        entry = JournalEntry(
            transaction_date=date(2024, 3, 1),
            lines=[
                JournalEntryLine.debit_line(uuid4(), Decimal("50")),
                JournalEntryLine.credit_line(uuid4(), Decimal("50")),
            ],
        )

        assert [line.line_number for line in entry.lines] == [1, 2]
        assert all(line.journal_entry_id == entry.id for line in entry.lines)

    def test_balanced_entry(self):
        entry = JournalEntry(
            transaction_date=date(2024, 3, 1),
            lines=[
                JournalEntryLine.debit_line(uuid4(), Decimal("50")),
                JournalEntryLine.credit_line(uuid4(), Decimal("30")),
                JournalEntryLine.credit_line(uuid4(), Decimal("20")),
            ],
        )

        assert entry.is_balanced
        assert entry.total_debits == Money(Decimal("50"))
        assert entry.total_credits == Money(Decimal("50"))

    def test_unbalanced_entry(self):
        entry = JournalEntry(
            transaction_date=date(2024, 3, 1),
            lines=[
                JournalEntryLine.debit_line(uuid4(), Decimal("50")),
                JournalEntryLine.credit_line(uuid4(), Decimal("49.99")),
            ],
        )

        assert not entry.is_balanced

    def test_add_line_sets_number(self):
        entry = JournalEntry(transaction_date=date(2024, 3, 1))
        entry.add_line(JournalEntryLine.debit_line(uuid4(), Decimal("1")))
        entry.add_line(JournalEntryLine.credit_line(uuid4(), Decimal("1")))

        assert entry.lines[1].line_number == 2

    def test_status_transitions(self):
        entry = JournalEntry(transaction_date=date(2024, 3, 1))
        assert entry.is_draft

        entry.mark_posted()
        assert entry.status == JournalEntryStatus.POSTED
        assert entry.posted_at is not None


class TestLedgerLine:
    def test_signed_amount(self):
        line = LedgerLine(
            line_id=uuid4(),
            journal_entry_id=uuid4(),
            account_id=uuid4(),
            transaction_date=date(2024, 1, 5),
            debit=Decimal("0"),
            credit=Decimal("75.00"),
        )

        assert line.signed_amount == Decimal("-75.00")
