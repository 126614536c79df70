from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import date
from typing import Any
from uuid import UUID

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import (
    AllocatableDocument,
    Allocation,
    AllocationSource,
    DocumentKind,
)
from smb_ledger.domain.journal import JournalEntry, LedgerLine
from smb_ledger.domain.periods import AccountingPeriod, YearEndCloseEntry
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    ReconciliationItem,
    ReconciliationItemType,
)
from smb_ledger.domain.value_objects import AccountType


class TransactionManager(ABC):
    """Opens atomic scopes spanning several repository writes.

    Scopes nest: an inner scope that fails rolls back only its own writes,
    while a failure in the outermost scope rolls back everything.
    """

    @abstractmethod
    def transaction(self) -> AbstractContextManager[Any]:
        pass


class AccountRepository(ABC):
    @abstractmethod
    def add(self, account: Account) -> None:
        pass

    @abstractmethod
    def get(self, account_id: UUID) -> Account | None:
        pass

    @abstractmethod
    def get_by_code(self, code: str) -> Account | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[Account]:
        pass

    @abstractmethod
    def list_by_type(self, account_type: AccountType) -> Iterable[Account]:
        pass

    @abstractmethod
    def update(self, account: Account) -> None:
        pass

    @abstractmethod
    def has_posted_lines(self, account_id: UUID) -> bool:
        pass


class JournalEntryRepository(ABC):
    @abstractmethod
    def add(self, entry: JournalEntry) -> None:
        pass

    @abstractmethod
    def get(self, entry_id: UUID) -> JournalEntry | None:
        pass

    @abstractmethod
    def update(self, entry: JournalEntry) -> None:
        """Rewrite the header and replace all lines."""
        pass

    @abstractmethod
    def list_by_date_range(
        self, start_date: date | None = None, end_date: date | None = None
    ) -> Iterable[JournalEntry]:
        pass

    @abstractmethod
    def list_posted_lines(
        self,
        account_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        include_closing_entries: bool = True,
    ) -> list[LedgerLine]:
        pass

    @abstractmethod
    def get_posted_line(self, line_id: UUID) -> LedgerLine | None:
        """A single line of a posted entry, or None."""
        pass

    @abstractmethod
    def get_reversal(self, entry_id: UUID) -> JournalEntry | None:
        pass


class AccountingPeriodRepository(ABC):
    @abstractmethod
    def add(self, period: AccountingPeriod) -> None:
        pass

    @abstractmethod
    def get(self, period_id: UUID) -> AccountingPeriod | None:
        pass

    @abstractmethod
    def find_for_date(self, value: date) -> AccountingPeriod | None:
        pass

    @abstractmethod
    def find_overlapping(self, start: date, end: date) -> AccountingPeriod | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[AccountingPeriod]:
        pass

    @abstractmethod
    def update(self, period: AccountingPeriod) -> None:
        pass


class YearEndCloseRepository(ABC):
    @abstractmethod
    def add(self, close: YearEndCloseEntry) -> None:
        pass

    @abstractmethod
    def get_by_fiscal_year(self, fiscal_year: int) -> YearEndCloseEntry | None:
        pass

    @abstractmethod
    def list_all(self) -> Iterable[YearEndCloseEntry]:
        pass


class DocumentRepository(ABC):
    @abstractmethod
    def add(self, document: AllocatableDocument) -> None:
        pass

    @abstractmethod
    def get(self, document_id: UUID) -> AllocatableDocument | None:
        pass

    @abstractmethod
    def list_open(
        self, kind: DocumentKind | None = None, party_id: UUID | None = None
    ) -> Iterable[AllocatableDocument]:
        pass

    @abstractmethod
    def update(self, document: AllocatableDocument) -> None:
        """Version-checked update; bumps document.version on success."""
        pass


class AllocationSourceRepository(ABC):
    @abstractmethod
    def add(self, source: AllocationSource) -> None:
        pass

    @abstractmethod
    def get(self, source_id: UUID) -> AllocationSource | None:
        pass

    @abstractmethod
    def update(self, source: AllocationSource) -> None:
        """Version-checked update; bumps source.version on success."""
        pass


class AllocationRepository(ABC):
    @abstractmethod
    def add(self, allocation: Allocation) -> None:
        pass

    @abstractmethod
    def get(self, allocation_id: UUID) -> Allocation | None:
        pass

    @abstractmethod
    def delete(self, allocation_id: UUID) -> None:
        pass

    @abstractmethod
    def list_by_source(self, source_id: UUID) -> Iterable[Allocation]:
        pass

    @abstractmethod
    def list_by_target(self, target_id: UUID) -> Iterable[Allocation]:
        pass


class BankTransactionRepository(ABC):
    @abstractmethod
    def add(self, transaction: BankTransaction) -> None:
        pass

    @abstractmethod
    def get(self, transaction_id: UUID) -> BankTransaction | None:
        pass

    @abstractmethod
    def list_unreconciled(
        self, bank_account_id: UUID, through: date | None = None
    ) -> Iterable[BankTransaction]:
        pass

    @abstractmethod
    def mark_reconciled(
        self, transaction_ids: Iterable[UUID], reconciliation_id: UUID
    ) -> None:
        pass


class ReconciliationRepository(ABC):
    @abstractmethod
    def add(self, reconciliation: BankReconciliation) -> None:
        pass

    @abstractmethod
    def get(self, reconciliation_id: UUID) -> BankReconciliation | None:
        pass

    @abstractmethod
    def get_in_progress(self, bank_account_id: UUID) -> BankReconciliation | None:
        pass

    @abstractmethod
    def get_last_completed(self, bank_account_id: UUID) -> BankReconciliation | None:
        pass

    @abstractmethod
    def update(self, reconciliation: BankReconciliation) -> None:
        """Persist status and completion time. Items are saved one at a time."""
        pass

    @abstractmethod
    def get_item(
        self,
        reconciliation_id: UUID,
        transaction_type: ReconciliationItemType,
        transaction_id: UUID,
    ) -> ReconciliationItem | None:
        pass

    @abstractmethod
    def save_item(self, item: ReconciliationItem) -> None:
        pass

    @abstractmethod
    def list_items(self, reconciliation_id: UUID) -> list[ReconciliationItem]:
        pass

    @abstractmethod
    def cleared_transaction_ids(
        self, bank_account_id: UUID, transaction_type: ReconciliationItemType
    ) -> set[UUID]:
        """Ids cleared by completed reconciliations of the account."""
        pass
