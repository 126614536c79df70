"""Bank statement reconciliation domain models."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from smb_ledger.domain.value_objects import BALANCE_TOLERANCE, to_decimal


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


class ReconciliationStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReconciliationItemType(str, Enum):
    """Where a reconciliation item's transaction_id points."""

    BANK_TRANSACTION = "bank_transaction"
    JOURNAL_ENTRY = "journal_entry"


@dataclass
class BankTransaction:
    """A normalized bank-feed record. Positive amounts are deposits."""

    bank_account_id: UUID
    transaction_date: date
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    description: str = ""
    external_id: str | None = None
    is_reconciled: bool = False
    reconciliation_id: UUID | None = None
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)


@dataclass
class ReconciliationItem:
    """Cleared state of one candidate transaction within a reconciliation.

    For journal-entry items transaction_id is the journal entry line id, so
    an entry touching the bank account twice yields two items.
    """

    reconciliation_id: UUID
    transaction_type: ReconciliationItemType
    transaction_id: UUID
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    is_cleared: bool = False
    cleared_at: datetime | None = None

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)

    def set_cleared(self, is_cleared: bool) -> None:
        if is_cleared == self.is_cleared:
            return
        self.is_cleared = is_cleared
        self.cleared_at = _utc_now() if is_cleared else None


@dataclass
class BankReconciliation:
    bank_account_id: UUID
    statement_date: date
    statement_ending_balance: Decimal
    beginning_balance: Decimal = Decimal("0")
    id: UUID = field(default_factory=uuid4)
    status: ReconciliationStatus = ReconciliationStatus.IN_PROGRESS
    items: list[ReconciliationItem] = field(default_factory=list)
    created_at: datetime = field(default_factory=_utc_now)
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        self.statement_ending_balance = to_decimal(self.statement_ending_balance)
        self.beginning_balance = to_decimal(self.beginning_balance)

    @property
    def is_completed(self) -> bool:
        return self.status == ReconciliationStatus.COMPLETED

    def summarize(
        self, tolerance: Decimal = BALANCE_TOLERANCE
    ) -> "ReconciliationSummary":
        """Apply the cleared-balance equation to the current items."""
        deposits = Decimal("0")
        payments = Decimal("0")
        cleared_count = 0
        for item in self.items:
            if not item.is_cleared:
                continue
            cleared_count += 1
            if item.amount > 0:
                deposits += item.amount
            elif item.amount < 0:
                payments += -item.amount
        cleared_balance = self.beginning_balance + deposits - payments
        difference = self.statement_ending_balance - cleared_balance
        return ReconciliationSummary(
            reconciliation_id=self.id,
            beginning_balance=self.beginning_balance,
            statement_ending_balance=self.statement_ending_balance,
            cleared_deposits=deposits,
            cleared_payments=payments,
            cleared_balance=cleared_balance,
            difference=difference,
            is_balanced=abs(difference) < tolerance,
            cleared_count=cleared_count,
            item_count=len(self.items),
        )

    def mark_completed(self) -> None:
        self.status = ReconciliationStatus.COMPLETED
        self.completed_at = _utc_now()


@dataclass(frozen=True)
class ReconciliationSummary:
    reconciliation_id: UUID
    beginning_balance: Decimal
    statement_ending_balance: Decimal
    cleared_deposits: Decimal
    cleared_payments: Decimal
    cleared_balance: Decimal
    difference: Decimal
    is_balanced: bool
    cleared_count: int = 0
    item_count: int = 0


@dataclass(frozen=True)
class CandidateItem:
    """A transaction that may be cleared against a statement."""

    transaction_type: ReconciliationItemType
    transaction_id: UUID
    transaction_date: date
    description: str
    amount: Decimal
    is_cleared: bool = False
