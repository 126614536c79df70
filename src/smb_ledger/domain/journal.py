from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from smb_ledger.domain.value_objects import JournalEntryStatus, Money


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class JournalEntryLine:
    account_id: UUID
    id: UUID = field(default_factory=uuid4)
    debit: Money = field(default_factory=lambda: Money.zero())
    credit: Money = field(default_factory=lambda: Money.zero())
    description: str = ""
    line_number: int = 0
    journal_entry_id: UUID | None = None

    def __post_init__(self) -> None:
        # Lines are kept to the cent so entry totals compare exactly.
        self.debit = self.debit.rounded()
        self.credit = self.credit.rounded()

    @property
    def net_amount(self) -> Money:
        return self.debit - self.credit

    @property
    def is_debit(self) -> bool:
        return self.debit.is_positive and self.credit.is_zero

    @property
    def is_credit(self) -> bool:
        return self.credit.is_positive and self.debit.is_zero

    @classmethod
    def debit_line(
        cls, account_id: UUID, amount: Decimal, description: str = "", currency: str = "USD"
    ) -> "JournalEntryLine":
        return cls(
            account_id=account_id,
            debit=Money(amount, currency),
            credit=Money.zero(currency),
            description=description,
        )

    @classmethod
    def credit_line(
        cls, account_id: UUID, amount: Decimal, description: str = "", currency: str = "USD"
    ) -> "JournalEntryLine":
        return cls(
            account_id=account_id,
            debit=Money.zero(currency),
            credit=Money(amount, currency),
            description=description,
        )


@dataclass
class JournalEntry:
    transaction_date: date
    lines: list[JournalEntryLine] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)
    reference: str = ""
    description: str = ""
    status: JournalEntryStatus = JournalEntryStatus.DRAFT
    created_by: str = "system"
    created_at: datetime = field(default_factory=_utc_now)
    posted_at: datetime | None = None
    is_closing_entry: bool = False
    reverses_entry_id: UUID | None = None

    def __post_init__(self) -> None:
        for number, line in enumerate(self.lines, start=1):
            line.journal_entry_id = self.id
            if not line.line_number:
                line.line_number = number

    @property
    def currency(self) -> str:
        if not self.lines:
            return "USD"
        return self.lines[0].debit.currency

    @property
    def total_debits(self) -> Money:
        total = Decimal("0")
        for line in self.lines:
            total += line.debit.amount
        return Money(total, self.currency)

    @property
    def total_credits(self) -> Money:
        total = Decimal("0")
        for line in self.lines:
            total += line.credit.amount
        return Money(total, self.currency)

    @property
    def is_balanced(self) -> bool:
        return self.total_debits.amount == self.total_credits.amount

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_reversal(self) -> bool:
        return self.reverses_entry_id is not None

    @property
    def account_ids(self) -> set[UUID]:
        return {line.account_id for line in self.lines}

    def add_line(self, line: JournalEntryLine) -> None:
        line.journal_entry_id = self.id
        line.line_number = len(self.lines) + 1
        self.lines.append(line)

    def mark_posted(self) -> None:
        self.status = JournalEntryStatus.POSTED
        self.posted_at = _utc_now()

    def mark_voided(self) -> None:
        self.status = JournalEntryStatus.VOIDED


@dataclass(frozen=True)
class LedgerLine:
    """A posted journal line joined with the header fields balance queries need."""

    line_id: UUID
    journal_entry_id: UUID
    account_id: UUID
    transaction_date: date
    debit: Decimal
    credit: Decimal
    description: str = ""
    reference: str = ""
    is_closing_entry: bool = False

    @property
    def signed_amount(self) -> Decimal:
        """Debit minus credit, the direction an asset account moves."""
        return self.debit - self.credit
