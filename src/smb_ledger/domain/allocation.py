"""Invoices, bills, the funds applied to them, and the allocations linking both."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from smb_ledger.domain.value_objects import ALLOCATION_TOLERANCE, to_decimal


def _utc_now() -> datetime:
    return datetime.now(UTC)


class DocumentKind(str, Enum):
    INVOICE = "invoice"
    BILL = "bill"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    SENT = "sent"
    PARTIAL = "partial"
    PAID = "paid"
    VOIDED = "voided"
    CANCELLED = "cancelled"


class SourceKind(str, Enum):
    PAYMENT = "payment"
    CUSTOMER_DEPOSIT = "customer_deposit"
    CREDIT_MEMO = "credit_memo"
    BILL_PAYMENT = "bill_payment"
    VENDOR_CREDIT = "vendor_credit"

    @property
    def target_kind(self) -> DocumentKind:
        """The kind of document this source can be applied to."""
        if self in (SourceKind.BILL_PAYMENT, SourceKind.VENDOR_CREDIT):
            return DocumentKind.BILL
        return DocumentKind.INVOICE


class SourceStatus(str, Enum):
    OPEN = "open"
    PARTIALLY_APPLIED = "partially_applied"
    APPLIED = "applied"
    REFUNDED = "refunded"
    VOIDED = "voided"


NON_ALLOCATABLE_DOCUMENT_STATUSES = frozenset(
    {DocumentStatus.DRAFT, DocumentStatus.VOIDED, DocumentStatus.CANCELLED}
)
NON_ALLOCATABLE_SOURCE_STATUSES = frozenset(
    {SourceStatus.REFUNDED, SourceStatus.VOIDED}
)


@dataclass
class AllocatableDocument:
    """An invoice or bill that can be paid down by allocations."""

    kind: DocumentKind
    total_amount: Decimal
    id: UUID = field(default_factory=uuid4)
    number: str = ""
    party_id: UUID | None = None
    amount_paid: Decimal = Decimal("0")
    status: DocumentStatus = DocumentStatus.OPEN
    issue_date: date | None = None
    due_date: date | None = None
    control_account_id: UUID | None = None
    version: int = 1
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.total_amount = to_decimal(self.total_amount)
        self.amount_paid = to_decimal(self.amount_paid)

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.amount_paid

    @property
    def is_allocatable(self) -> bool:
        return self.status not in NON_ALLOCATABLE_DOCUMENT_STATUSES

    def apply_payment(
        self, amount: Decimal, tolerance: Decimal = ALLOCATION_TOLERANCE
    ) -> None:
        self.amount_paid += amount
        self.refresh_status(tolerance)

    def refresh_status(self, tolerance: Decimal = ALLOCATION_TOLERANCE) -> None:
        if not self.is_allocatable:
            return
        if self.balance_due <= tolerance:
            self.status = DocumentStatus.PAID
        elif self.amount_paid > tolerance:
            self.status = DocumentStatus.PARTIAL
        elif self.status in (DocumentStatus.PAID, DocumentStatus.PARTIAL):
            # Fully unapplied again: fall back to the open state.
            self.status = DocumentStatus.OPEN


@dataclass
class AllocationSource:
    """A payment, deposit, credit memo, bill payment or vendor credit."""

    kind: SourceKind
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    number: str = ""
    party_id: UUID | None = None
    amount_applied: Decimal = Decimal("0")
    status: SourceStatus = SourceStatus.OPEN
    received_date: date | None = None
    offset_account_id: UUID | None = None
    version: int = 1
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)
        self.amount_applied = to_decimal(self.amount_applied)

    @property
    def balance_remaining(self) -> Decimal:
        return self.amount - self.amount_applied

    @property
    def is_allocatable(self) -> bool:
        return self.status not in NON_ALLOCATABLE_SOURCE_STATUSES

    def apply(self, amount: Decimal, tolerance: Decimal = ALLOCATION_TOLERANCE) -> None:
        self.amount_applied += amount
        self.refresh_status(tolerance)

    def refresh_status(self, tolerance: Decimal = ALLOCATION_TOLERANCE) -> None:
        if not self.is_allocatable:
            return
        if self.balance_remaining <= tolerance:
            self.status = SourceStatus.APPLIED
        elif self.amount_applied > tolerance:
            self.status = SourceStatus.PARTIALLY_APPLIED
        else:
            self.status = SourceStatus.OPEN


@dataclass
class Allocation:
    """One application of a source to a document. Never edited after creation."""

    source_id: UUID
    target_id: UUID
    amount: Decimal
    id: UUID = field(default_factory=uuid4)
    allocation_date: date = field(default_factory=date.today)
    journal_entry_id: UUID | None = None
    memo: str = ""
    created_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.amount = to_decimal(self.amount)


@dataclass(frozen=True)
class AllocationRequest:
    target_id: UUID
    amount: Decimal


@dataclass
class AgingReport:
    as_of: date
    current: Decimal = Decimal("0")
    days_1_to_30: Decimal = Decimal("0")
    days_31_to_60: Decimal = Decimal("0")
    days_61_to_90: Decimal = Decimal("0")
    days_over_90: Decimal = Decimal("0")

    @property
    def total(self) -> Decimal:
        return (
            self.current
            + self.days_1_to_30
            + self.days_31_to_60
            + self.days_61_to_90
            + self.days_over_90
        )

    def add(self, balance_due: Decimal, days_past_due: int) -> None:
        if days_past_due <= 0:
            self.current += balance_due
        elif days_past_due <= 30:
            self.days_1_to_30 += balance_due
        elif days_past_due <= 60:
            self.days_31_to_60 += balance_due
        elif days_past_due <= 90:
            self.days_61_to_90 += balance_due
        else:
            self.days_over_90 += balance_due
