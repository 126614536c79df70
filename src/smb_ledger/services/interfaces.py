from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import (
    AgingReport,
    AllocatableDocument,
    Allocation,
    AllocationRequest,
    AllocationSource,
    DocumentKind,
)
from smb_ledger.domain.journal import JournalEntry
from smb_ledger.domain.periods import (
    AccountBalance,
    AccountingPeriod,
    ClosingPreview,
    TrialBalance,
    YearEndCloseEntry,
)
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    CandidateItem,
    ReconciliationItem,
    ReconciliationItemType,
    ReconciliationSummary,
)
from smb_ledger.domain.value_objects import AccountType, BalanceMode, Money


class AccountingPeriodService(ABC):
    @abstractmethod
    def create_period(self, start: date, end: date) -> AccountingPeriod:
        pass

    @abstractmethod
    def get_period(self, period_id: UUID) -> AccountingPeriod:
        pass

    @abstractmethod
    def find_period_for_date(self, value: date) -> AccountingPeriod | None:
        pass

    @abstractmethod
    def list_periods(self) -> list[AccountingPeriod]:
        pass

    @abstractmethod
    def assert_period_open(self, value: date) -> None:
        pass

    @abstractmethod
    def lock_period(self, period_id: UUID, closed_by: str = "system") -> AccountingPeriod:
        pass

    @abstractmethod
    def unlock_period(self, period_id: UUID) -> AccountingPeriod:
        pass


class LedgerService(ABC):
    @abstractmethod
    def create_account(self, account: Account) -> Account:
        pass

    @abstractmethod
    def update_account(self, account: Account) -> Account:
        pass

    @abstractmethod
    def get_account(self, account_id: UUID) -> Account:
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        pass

    @abstractmethod
    def post_entry(self, entry: JournalEntry) -> UUID:
        pass

    @abstractmethod
    def validate_entry(self, entry: JournalEntry) -> None:
        pass

    @abstractmethod
    def save_draft(self, entry: JournalEntry) -> UUID:
        pass

    @abstractmethod
    def update_draft(self, entry: JournalEntry) -> None:
        pass

    @abstractmethod
    def post_draft(self, entry_id: UUID) -> UUID:
        pass

    @abstractmethod
    def void_draft(self, entry_id: UUID) -> None:
        pass

    @abstractmethod
    def reverse_entry(
        self, entry_id: UUID, reversal_date: date, description: str = ""
    ) -> JournalEntry:
        pass

    @abstractmethod
    def get_entry(self, entry_id: UUID) -> JournalEntry:
        pass


class BalanceService(ABC):
    @abstractmethod
    def account_balance(
        self,
        account_id: UUID,
        as_of: date | None = None,
        mode: BalanceMode = BalanceMode.CUMULATIVE,
    ) -> Money:
        pass

    @abstractmethod
    def account_balance_for_range(
        self,
        account_id: UUID,
        start: date,
        end: date,
        mode: BalanceMode = BalanceMode.CUMULATIVE,
    ) -> Money:
        pass

    @abstractmethod
    def net_income(
        self, start: date, end: date, mode: BalanceMode = BalanceMode.OPERATING
    ) -> Money:
        pass

    @abstractmethod
    def account_balances_by_type(
        self,
        account_type: AccountType,
        start: date | None = None,
        end: date | None = None,
        mode: BalanceMode = BalanceMode.OPERATING,
    ) -> list[AccountBalance]:
        pass

    @abstractmethod
    def trial_balance(self, as_of: date | None = None) -> TrialBalance:
        pass


class AllocationService(ABC):
    @abstractmethod
    def create_document(self, document: AllocatableDocument) -> AllocatableDocument:
        pass

    @abstractmethod
    def create_source(self, source: AllocationSource) -> AllocationSource:
        pass

    @abstractmethod
    def get_document(self, document_id: UUID) -> AllocatableDocument:
        pass

    @abstractmethod
    def get_source(self, source_id: UUID) -> AllocationSource:
        pass

    @abstractmethod
    def allocate(
        self,
        source_id: UUID,
        target_id: UUID,
        amount: Decimal,
        allocation_date: date | None = None,
        memo: str = "",
    ) -> Allocation:
        pass

    @abstractmethod
    def allocate_batch(
        self,
        source_id: UUID,
        requests: Iterable[AllocationRequest],
        allocation_date: date | None = None,
        memo: str = "",
    ) -> list[Allocation]:
        pass

    @abstractmethod
    def remove_allocation(self, allocation_id: UUID) -> None:
        pass

    @abstractmethod
    def list_allocations_for_source(self, source_id: UUID) -> list[Allocation]:
        pass

    @abstractmethod
    def list_allocations_for_target(self, target_id: UUID) -> list[Allocation]:
        pass

    @abstractmethod
    def aging_report(
        self,
        kind: DocumentKind = DocumentKind.INVOICE,
        party_id: UUID | None = None,
        as_of: date | None = None,
    ) -> AgingReport:
        pass


class PeriodClosingService(ABC):
    @abstractmethod
    def preview(self, period_id: UUID) -> ClosingPreview:
        pass

    @abstractmethod
    def close_year(
        self,
        period_id: UUID,
        retained_earnings_account_id: UUID | None,
        lock_period: bool | None = None,
        closed_by: str = "system",
    ) -> YearEndCloseEntry:
        pass

    @abstractmethod
    def get_close(self, fiscal_year: int) -> YearEndCloseEntry | None:
        pass

    @abstractmethod
    def list_closes(self) -> list[YearEndCloseEntry]:
        pass


class ReconciliationService(ABC):
    @abstractmethod
    def import_bank_transactions(
        self, bank_account_id: UUID, records: Iterable[BankTransaction]
    ) -> list[BankTransaction]:
        pass

    @abstractmethod
    def start(
        self,
        bank_account_id: UUID,
        statement_date: date,
        statement_ending_balance: Decimal,
        beginning_balance: Decimal | None = None,
    ) -> BankReconciliation:
        pass

    @abstractmethod
    def get_reconciliation(self, reconciliation_id: UUID) -> BankReconciliation:
        pass

    @abstractmethod
    def candidate_items(self, reconciliation_id: UUID) -> list[CandidateItem]:
        pass

    @abstractmethod
    def set_cleared(
        self,
        reconciliation_id: UUID,
        transaction_type: ReconciliationItemType,
        transaction_id: UUID,
        is_cleared: bool,
    ) -> ReconciliationItem:
        pass

    @abstractmethod
    def summary(self, reconciliation_id: UUID) -> ReconciliationSummary:
        pass

    @abstractmethod
    def complete(self, reconciliation_id: UUID) -> BankReconciliation:
        pass
