"""Pydantic v2 schemas for API request/response models."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    status: str
    version: str | None = None


# Account Schemas
class AccountCreate(BaseModel):
    """Schema for creating an account."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str = Field(..., min_length=1, max_length=32)
    name: str = Field(..., min_length=1, max_length=255)
    account_type: str = Field(
        ..., pattern=r"^(asset|liability|equity|revenue|expense)$"
    )


class AccountUpdate(BaseModel):
    """Schema for updating an account. Omitted fields keep their value."""

    model_config = ConfigDict(str_strip_whitespace=True)

    code: str | None = Field(default=None, min_length=1, max_length=32)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    account_type: str | None = Field(
        default=None, pattern=r"^(asset|liability|equity|revenue|expense)$"
    )
    is_active: bool | None = None


class AccountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    name: str
    account_type: str
    normal_balance: str
    is_active: bool
    created_at: datetime


class AccountBalanceResponse(BaseModel):
    account_id: UUID
    balance: str
    currency: str
    as_of: date | None
    mode: str


# Journal Entry Schemas
class JournalLineCreate(BaseModel):
    """Schema for one journal entry line. Exactly one side should be non-zero."""

    account_id: UUID
    debit: str = Field(default="0")
    credit: str = Field(default="0")
    currency: str = Field(default="USD", min_length=3, max_length=3)
    description: str = ""


class JournalEntryCreate(BaseModel):
    """Schema for creating a journal entry, posted immediately unless post is false."""

    model_config = ConfigDict(str_strip_whitespace=True)

    transaction_date: date
    lines: list[JournalLineCreate]
    reference: str = ""
    description: str = ""
    created_by: str = "api"
    post: bool = True


class JournalLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    line_number: int
    debit: str
    credit: str
    currency: str
    description: str


class JournalEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    transaction_date: date
    reference: str
    description: str
    status: str
    is_closing_entry: bool
    reverses_entry_id: UUID | None
    created_by: str
    created_at: datetime
    posted_at: datetime | None
    total_debits: str
    total_credits: str
    lines: list[JournalLineResponse]


class ReversalCreate(BaseModel):
    reversal_date: date
    description: str = ""


# Report Schemas
class TrialBalanceRowResponse(BaseModel):
    account_id: UUID
    code: str
    name: str
    account_type: str
    debit: str
    credit: str


class TrialBalanceResponse(BaseModel):
    as_of: date | None
    rows: list[TrialBalanceRowResponse]
    total_debits: str
    total_credits: str
    is_balanced: bool


class NetIncomeResponse(BaseModel):
    start_date: date
    end_date: date
    mode: str
    net_income: str
    currency: str


class AgingReportResponse(BaseModel):
    kind: str
    as_of: date
    current: str
    days_1_to_30: str
    days_31_to_60: str
    days_61_to_90: str
    days_over_90: str
    total: str


# Period and Closing Schemas
class PeriodCreate(BaseModel):
    fiscal_year_start: date
    fiscal_year_end: date


class PeriodLockRequest(BaseModel):
    closed_by: str = "api"


class PeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    fiscal_year: int
    fiscal_year_start: date
    fiscal_year_end: date
    is_locked: bool
    closing_date: date | None
    closed_by: str | None
    closed_at: datetime | None


class AccountBalanceItem(BaseModel):
    account_id: UUID
    code: str
    name: str
    account_type: str
    balance: str


class ClosingPreviewResponse(BaseModel):
    period_id: UUID
    fiscal_year: int
    fiscal_year_start: date
    fiscal_year_end: date
    revenue_accounts: list[AccountBalanceItem]
    expense_accounts: list[AccountBalanceItem]
    total_revenue: str
    total_expenses: str
    net_income: str
    already_closed: bool


class YearEndCloseRequest(BaseModel):
    """Schema for closing a fiscal year."""

    retained_earnings_account_id: UUID | None = None
    lock_period: bool | None = None
    closed_by: str = "api"


class YearEndCloseResponse(BaseModel):
    id: UUID
    fiscal_year: int
    period_id: UUID
    close_date: date
    total_revenue: str
    total_expenses: str
    net_income: str
    retained_earnings_account_id: UUID
    journal_entry_id: UUID | None
    created_by: str
    created_at: datetime


# Allocation Schemas
class DocumentCreate(BaseModel):
    """Schema for registering an invoice or bill."""

    model_config = ConfigDict(str_strip_whitespace=True)

    kind: str = Field(..., pattern=r"^(invoice|bill)$")
    total_amount: str
    number: str = ""
    party_id: UUID | None = None
    status: str = Field(default="open", pattern=r"^(draft|open|sent)$")
    issue_date: date | None = None
    due_date: date | None = None
    control_account_id: UUID | None = None


class DocumentResponse(BaseModel):
    id: UUID
    kind: str
    number: str
    party_id: UUID | None
    total_amount: str
    amount_paid: str
    balance_due: str
    status: str
    issue_date: date | None
    due_date: date | None
    control_account_id: UUID | None
    version: int


class SourceCreate(BaseModel):
    """Schema for registering a payment, deposit or credit."""

    model_config = ConfigDict(str_strip_whitespace=True)

    kind: str = Field(
        ...,
        pattern=r"^(payment|customer_deposit|credit_memo|bill_payment|vendor_credit)$",
    )
    amount: str
    number: str = ""
    party_id: UUID | None = None
    received_date: date | None = None
    offset_account_id: UUID | None = None


class SourceResponse(BaseModel):
    id: UUID
    kind: str
    number: str
    party_id: UUID | None
    amount: str
    amount_applied: str
    balance_remaining: str
    status: str
    received_date: date | None
    offset_account_id: UUID | None
    version: int


class AllocationCreate(BaseModel):
    source_id: UUID
    target_id: UUID
    amount: str
    allocation_date: date | None = None
    memo: str = ""


class AllocationBatchItem(BaseModel):
    target_id: UUID
    amount: str


class AllocationBatchCreate(BaseModel):
    """Schema for applying one source to several documents at once."""

    source_id: UUID
    allocations: list[AllocationBatchItem]
    allocation_date: date | None = None
    memo: str = ""


class AllocationResponse(BaseModel):
    id: UUID
    source_id: UUID
    target_id: UUID
    amount: str
    allocation_date: date
    journal_entry_id: UUID | None
    memo: str
    created_at: datetime


# Bank Reconciliation Schemas
class BankTransactionCreate(BaseModel):
    transaction_date: date
    amount: str
    description: str = ""
    external_id: str | None = None


class BankTransactionImport(BaseModel):
    bank_account_id: UUID
    transactions: list[BankTransactionCreate]


class BankTransactionResponse(BaseModel):
    id: UUID
    bank_account_id: UUID
    transaction_date: date
    amount: str
    description: str
    external_id: str | None
    is_reconciled: bool


class ReconciliationCreate(BaseModel):
    """Schema for starting a statement reconciliation."""

    bank_account_id: UUID
    statement_date: date
    statement_ending_balance: str
    beginning_balance: str | None = None


class ReconciliationResponse(BaseModel):
    id: UUID
    bank_account_id: UUID
    statement_date: date
    statement_ending_balance: str
    beginning_balance: str
    status: str
    created_at: datetime
    completed_at: datetime | None


class CandidateItemResponse(BaseModel):
    transaction_type: str
    transaction_id: UUID
    transaction_date: date
    description: str
    amount: str
    is_cleared: bool


class ClearItemRequest(BaseModel):
    transaction_type: str = Field(..., pattern=r"^(bank_transaction|journal_entry)$")
    transaction_id: UUID
    is_cleared: bool = True


class ReconciliationItemResponse(BaseModel):
    id: UUID
    reconciliation_id: UUID
    transaction_type: str
    transaction_id: UUID
    amount: str
    is_cleared: bool
    cleared_at: datetime | None


class ReconciliationSummaryResponse(BaseModel):
    reconciliation_id: UUID
    beginning_balance: str
    statement_ending_balance: str
    cleared_deposits: str
    cleared_payments: str
    cleared_balance: str
    difference: str
    is_balanced: bool
    cleared_count: int
    item_count: int
