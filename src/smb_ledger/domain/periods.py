"""Accounting periods, year-end close records and report rows."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from smb_ledger.domain.value_objects import AccountType


def _utc_now() -> datetime:
    return datetime.now(UTC)


@dataclass
class AccountingPeriod:
    fiscal_year_start: date
    fiscal_year_end: date
    id: UUID = field(default_factory=uuid4)
    is_locked: bool = False
    closing_date: date | None = None
    closed_by: str | None = None
    closed_at: datetime | None = None
    created_at: datetime = field(default_factory=_utc_now)

    @property
    def fiscal_year(self) -> int:
        return self.fiscal_year_end.year

    def contains(self, value: date) -> bool:
        return self.fiscal_year_start <= value <= self.fiscal_year_end

    def overlaps(self, start: date, end: date) -> bool:
        return start <= self.fiscal_year_end and end >= self.fiscal_year_start

    def lock(self, closed_by: str = "system") -> None:
        self.is_locked = True
        self.closing_date = self.fiscal_year_end
        self.closed_by = closed_by
        self.closed_at = _utc_now()

    def unlock(self) -> None:
        self.is_locked = False
        self.closing_date = None
        self.closed_by = None
        self.closed_at = None


@dataclass
class YearEndCloseEntry:
    """Snapshot of a completed year-end close.

    Its existence for a fiscal year is what marks that year as closed.
    journal_entry_id is None when the year had no revenue or expense
    activity to zero out.
    """

    fiscal_year: int
    period_id: UUID
    close_date: date
    total_revenue: Decimal
    total_expenses: Decimal
    net_income: Decimal
    retained_earnings_account_id: UUID
    id: UUID = field(default_factory=uuid4)
    journal_entry_id: UUID | None = None
    created_by: str = "system"
    created_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class AccountBalance:
    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    balance: Decimal


@dataclass
class ClosingPreview:
    period_id: UUID
    fiscal_year: int
    fiscal_year_start: date
    fiscal_year_end: date
    revenue_accounts: list[AccountBalance] = field(default_factory=list)
    expense_accounts: list[AccountBalance] = field(default_factory=list)
    already_closed: bool = False

    @property
    def total_revenue(self) -> Decimal:
        return sum((a.balance for a in self.revenue_accounts), Decimal("0"))

    @property
    def total_expenses(self) -> Decimal:
        return sum((a.balance for a in self.expense_accounts), Decimal("0"))

    @property
    def net_income(self) -> Decimal:
        return self.total_revenue - self.total_expenses

    @property
    def has_activity(self) -> bool:
        return bool(self.revenue_accounts or self.expense_accounts)


@dataclass(frozen=True)
class TrialBalanceRow:
    account_id: UUID
    code: str
    name: str
    account_type: AccountType
    debit: Decimal
    credit: Decimal


@dataclass
class TrialBalance:
    as_of: date | None
    rows: list[TrialBalanceRow] = field(default_factory=list)

    @property
    def total_debits(self) -> Decimal:
        return sum((r.debit for r in self.rows), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((r.credit for r in self.rows), Decimal("0"))

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits
