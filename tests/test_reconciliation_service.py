"""Tests for ReconciliationService implementation."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    ReconciliationItem,
    ReconciliationItemType,
    ReconciliationStatus,
)
from smb_ledger.exceptions import (
    AlreadyReconciledError,
    BankTransactionNotFoundError,
    InvalidBankAccountError,
    ReconciliationCompletedError,
    ReconciliationInProgressError,
    ReconciliationNotBalancedError,
    ReconciliationNotFoundError,
    UnknownAccountError,
)

BANK = ReconciliationItemType.BANK_TRANSACTION
JOURNAL = ReconciliationItemType.JOURNAL_ENTRY


@pytest.fixture
def reconciliations(container):
    return container.reconciliation_service


@pytest.fixture
def bank_feed(reconciliations, chart) -> list[BankTransaction]:
    """Two deposits totalling 250 and one 100 payment, plus a later deposit."""
    cash_id = chart["cash"].id
    return reconciliations.import_bank_transactions(
        cash_id,
        [
            BankTransaction(cash_id, date(2024, 3, 2), Decimal("150"), description="Deposit"),
            BankTransaction(cash_id, date(2024, 3, 9), Decimal("100"), description="Deposit"),
            BankTransaction(cash_id, date(2024, 3, 15), Decimal("-100"), description="Check 101"),
            BankTransaction(cash_id, date(2024, 4, 3), Decimal("75"), description="April"),
        ],
    )


def _clear_all(reconciliations, reconciliation, transactions):
    for txn in transactions:
        reconciliations.set_cleared(reconciliation.id, BANK, txn.id, True)


class TestSummarize:
    def test_cleared_balance_equation(self):
        reconciliation = BankReconciliation(
            bank_account_id=uuid4(),
            statement_date=date(2024, 3, 31),
            statement_ending_balance=Decimal("500"),
            beginning_balance=Decimal("200"),
        )
        for amount, cleared in [("400", True), ("-150", True), ("999", False)]:
            item = ReconciliationItem(reconciliation.id, BANK, uuid4(), Decimal(amount))
            item.set_cleared(cleared)
            reconciliation.items.append(item)

        summary = reconciliation.summarize()

        assert summary.cleared_deposits == Decimal("400")
        assert summary.cleared_payments == Decimal("150")
        assert summary.cleared_balance == Decimal("450")
        assert summary.difference == Decimal("50")
        assert not summary.is_balanced
        assert summary.cleared_count == 2
        assert summary.item_count == 3

    def test_balanced_within_tolerance(self):
        reconciliation = BankReconciliation(
            bank_account_id=uuid4(),
            statement_date=date(2024, 3, 31),
            statement_ending_balance=Decimal("100.005"),
            beginning_balance=Decimal("100"),
        )

        assert reconciliation.summarize().is_balanced


class TestStart:
    def test_start(self, reconciliations, chart):
        reconciliation = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1140"), Decimal("1000")
        )

        loaded = reconciliations.get_reconciliation(reconciliation.id)
        assert loaded.status == ReconciliationStatus.IN_PROGRESS
        assert loaded.beginning_balance == Decimal("1000")
        assert loaded.statement_ending_balance == Decimal("1140")

    def test_one_in_progress_per_account(self, reconciliations, chart):
        reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))

        with pytest.raises(ReconciliationInProgressError):
            reconciliations.start(chart["cash"].id, date(2024, 4, 30), Decimal("0"))

    def test_other_account_can_start(self, reconciliations, chart):
        reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))

        other = reconciliations.start(chart["ar"].id, date(2024, 3, 31), Decimal("0"))

        assert other.bank_account_id == chart["ar"].id

    def test_first_beginning_balance_is_zero(self, reconciliations, chart):
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))

        assert reconciliation.beginning_balance == Decimal("0")

    def test_beginning_balance_carries_forward(self, reconciliations, chart, bank_feed):
        march = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1150"), Decimal("1000")
        )
        _clear_all(reconciliations, march, bank_feed[:3])
        reconciliations.complete(march.id)

        april = reconciliations.start(chart["cash"].id, date(2024, 4, 30), Decimal("1225"))

        assert april.beginning_balance == Decimal("1150")

    def test_non_asset_account_rejected(self, reconciliations, chart):
        with pytest.raises(InvalidBankAccountError):
            reconciliations.start(chart["sales"].id, date(2024, 3, 31), Decimal("0"))

    def test_unknown_account_rejected(self, reconciliations):
        with pytest.raises(UnknownAccountError):
            reconciliations.start(uuid4(), date(2024, 3, 31), Decimal("0"))

    def test_get_missing(self, reconciliations):
        with pytest.raises(ReconciliationNotFoundError):
            reconciliations.get_reconciliation(uuid4())


class TestCandidates:
    def test_bank_and_journal_candidates(
        self, reconciliations, container, chart, make_entry, bank_feed
    ):
        container.ledger_service.post_entry(
            make_entry(date(2024, 3, 20), chart["cash"], chart["sales"], "300")
        )
        container.ledger_service.post_entry(
            make_entry(date(2024, 3, 25), chart["rent"], chart["cash"], "80")
        )
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))

        candidates = reconciliations.candidate_items(reconciliation.id)

        assert [c.amount for c in candidates] == [
            Decimal("150"),
            Decimal("100"),
            Decimal("-100"),
            Decimal("300.00"),
            Decimal("-80.00"),
        ]
        assert [c.transaction_type for c in candidates] == [BANK, BANK, BANK, JOURNAL, JOURNAL]
        assert not any(c.is_cleared for c in candidates)

    def test_cleared_flag_reflected(self, reconciliations, chart, bank_feed):
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))
        reconciliations.set_cleared(reconciliation.id, BANK, bank_feed[0].id, True)

        candidates = reconciliations.candidate_items(reconciliation.id)

        cleared = [c.transaction_id for c in candidates if c.is_cleared]
        assert cleared == [bank_feed[0].id]

    def test_previously_reconciled_excluded(
        self, reconciliations, container, chart, make_entry, bank_feed
    ):
        entry_id = container.ledger_service.post_entry(
            make_entry(date(2024, 3, 20), chart["cash"], chart["sales"], "300")
        )
        line = next(
            line
            for line in container.ledger_service.get_entry(entry_id).lines
            if line.account_id == chart["cash"].id
        )
        march = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1450"), Decimal("1000")
        )
        _clear_all(reconciliations, march, bank_feed[:3])
        reconciliations.set_cleared(march.id, JOURNAL, line.id, True)
        reconciliations.complete(march.id)

        april = reconciliations.start(chart["cash"].id, date(2024, 4, 30), Decimal("1525"))
        candidates = reconciliations.candidate_items(april.id)

        assert [c.transaction_id for c in candidates] == [bank_feed[3].id]


class TestSetCleared:
    def test_idempotent(self, reconciliations, chart, bank_feed):
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))

        first = reconciliations.set_cleared(reconciliation.id, BANK, bank_feed[0].id, True)
        second = reconciliations.set_cleared(reconciliation.id, BANK, bank_feed[0].id, True)

        assert second.id == first.id
        assert second.cleared_at == first.cleared_at
        summary = reconciliations.summary(reconciliation.id)
        assert summary.cleared_count == 1
        assert summary.item_count == 1
        assert summary.cleared_deposits == Decimal("150")

    def test_uncleared_item_drops_out(self, reconciliations, chart, bank_feed):
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))
        reconciliations.set_cleared(reconciliation.id, BANK, bank_feed[0].id, True)

        item = reconciliations.set_cleared(reconciliation.id, BANK, bank_feed[0].id, False)

        assert not item.is_cleared
        assert item.cleared_at is None
        assert reconciliations.summary(reconciliation.id).cleared_deposits == Decimal("0")

    def test_foreign_bank_transaction_rejected(self, reconciliations, chart):
        ar_txn = reconciliations.import_bank_transactions(
            chart["ar"].id,
            [BankTransaction(chart["ar"].id, date(2024, 3, 1), Decimal("10"))],
        )[0]
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))

        with pytest.raises(BankTransactionNotFoundError):
            reconciliations.set_cleared(reconciliation.id, BANK, ar_txn.id, True)

    def test_bank_transaction_from_completed_statement_rejected(
        self, reconciliations, chart, bank_feed
    ):
        march = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1150"), Decimal("1000")
        )
        _clear_all(reconciliations, march, bank_feed[:3])
        reconciliations.complete(march.id)
        april = reconciliations.start(chart["cash"].id, date(2024, 4, 30), Decimal("1225"))

        with pytest.raises(AlreadyReconciledError) as exc_info:
            reconciliations.set_cleared(april.id, BANK, bank_feed[0].id, True)

        assert exc_info.value.context["reconciliation_id"] == str(march.id)
        assert reconciliations.summary(april.id).item_count == 0

    def test_journal_line_from_completed_statement_rejected(
        self, reconciliations, container, chart, make_entry, bank_feed
    ):
        entry_id = container.ledger_service.post_entry(
            make_entry(date(2024, 3, 20), chart["cash"], chart["sales"], "300")
        )
        line = next(
            line
            for line in container.ledger_service.get_entry(entry_id).lines
            if line.account_id == chart["cash"].id
        )
        march = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1450"), Decimal("1000")
        )
        _clear_all(reconciliations, march, bank_feed[:3])
        reconciliations.set_cleared(march.id, JOURNAL, line.id, True)
        reconciliations.complete(march.id)
        april = reconciliations.start(chart["cash"].id, date(2024, 4, 30), Decimal("1525"))

        with pytest.raises(AlreadyReconciledError):
            reconciliations.set_cleared(april.id, JOURNAL, line.id, True)

        assert reconciliations.summary(april.id).item_count == 0


class TestComplete:
    def test_out_of_balance_rejected(self, reconciliations, chart, bank_feed):
        reconciliation = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1140"), Decimal("1000")
        )
        _clear_all(reconciliations, reconciliation, bank_feed[:3])

        summary = reconciliations.summary(reconciliation.id)
        assert summary.cleared_deposits == Decimal("250")
        assert summary.cleared_payments == Decimal("100")
        assert summary.cleared_balance == Decimal("1150")
        assert summary.difference == Decimal("-10")
        assert not summary.is_balanced

        with pytest.raises(ReconciliationNotBalancedError) as exc_info:
            reconciliations.complete(reconciliation.id)

        assert exc_info.value.context["difference"] == "-10.00"
        assert not reconciliations.get_reconciliation(reconciliation.id).is_completed

    def test_balanced_completes(self, reconciliations, container, chart, bank_feed):
        reconciliation = reconciliations.start(
            chart["cash"].id, date(2024, 3, 31), Decimal("1150"), Decimal("1000")
        )
        _clear_all(reconciliations, reconciliation, bank_feed[:3])

        completed = reconciliations.complete(reconciliation.id)

        assert completed.status == ReconciliationStatus.COMPLETED
        assert completed.completed_at is not None
        repo = container.bank_transaction_repo
        assert all(repo.get(txn.id).is_reconciled for txn in bank_feed[:3])
        assert repo.get(bank_feed[0].id).reconciliation_id == reconciliation.id
        assert not repo.get(bank_feed[3].id).is_reconciled

    def test_completed_is_frozen(self, reconciliations, chart, bank_feed):
        reconciliation = reconciliations.start(chart["cash"].id, date(2024, 3, 31), Decimal("0"))
        reconciliations.complete(reconciliation.id)

        with pytest.raises(ReconciliationCompletedError):
            reconciliations.set_cleared(reconciliation.id, BANK, bank_feed[0].id, True)
        with pytest.raises(ReconciliationCompletedError):
            reconciliations.complete(reconciliation.id)
