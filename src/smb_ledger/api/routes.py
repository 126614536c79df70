"""API routes for SMB Ledger."""

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from smb_ledger import __version__
from smb_ledger.api.schemas import (
    AccountBalanceItem,
    AccountBalanceResponse,
    AccountCreate,
    AccountResponse,
    AccountUpdate,
    AgingReportResponse,
    AllocationBatchCreate,
    AllocationCreate,
    AllocationResponse,
    BankTransactionImport,
    BankTransactionResponse,
    CandidateItemResponse,
    ClearItemRequest,
    ClosingPreviewResponse,
    DocumentCreate,
    DocumentResponse,
    HealthResponse,
    JournalEntryCreate,
    JournalEntryResponse,
    JournalLineResponse,
    NetIncomeResponse,
    PeriodCreate,
    PeriodLockRequest,
    PeriodResponse,
    ReconciliationCreate,
    ReconciliationItemResponse,
    ReconciliationResponse,
    ReconciliationSummaryResponse,
    ReversalCreate,
    SourceCreate,
    SourceResponse,
    TrialBalanceResponse,
    TrialBalanceRowResponse,
    YearEndCloseRequest,
    YearEndCloseResponse,
)
from smb_ledger.container import Container
from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import (
    AllocatableDocument,
    Allocation,
    AllocationRequest,
    AllocationSource,
    DocumentKind,
    DocumentStatus,
    SourceKind,
)
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.periods import (
    AccountBalance,
    AccountingPeriod,
    ClosingPreview,
    YearEndCloseEntry,
)
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    ReconciliationItemType,
)
from smb_ledger.domain.value_objects import AccountType, BalanceMode, Money
from smb_ledger.exceptions import ValidationError
from smb_ledger.repositories.sqlite import SQLiteDatabase

# Create routers
health_router = APIRouter(tags=["health"])
account_router = APIRouter(prefix="/accounts", tags=["accounts"])
journal_router = APIRouter(prefix="/journal-entries", tags=["journal-entries"])
report_router = APIRouter(prefix="/reports", tags=["reports"])
period_router = APIRouter(prefix="/periods", tags=["periods"])
allocation_router = APIRouter(tags=["allocations"])
reconciliation_router = APIRouter(tags=["reconciliations"])


# Dependency injection functions
def get_services(db: SQLiteDatabase) -> Container:
    """Build a container of services around the request's database."""
    return Container(database=db)


# Parsing helpers
def _parse_amount(value: str, field: str) -> Decimal:
    try:
        amount = Decimal(value)
    except InvalidOperation as e:
        raise ValidationError(
            f"Invalid amount for {field}: {value!r}",
            context={"field": field, "value": value},
        ) from e
    if not amount.is_finite():
        raise ValidationError(
            f"Invalid amount for {field}: {value!r}",
            context={"field": field, "value": value},
        )
    return amount


def _money(value: str, currency: str, field: str) -> Money:
    amount = _parse_amount(value, field)
    try:
        return Money(amount, currency.upper())
    except ValueError as e:
        raise ValidationError(
            f"Unsupported currency: {currency}", context={"currency": currency}
        ) from e


# Helper functions
def _account_to_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        code=account.code,
        name=account.name,
        account_type=account.account_type.value,
        normal_balance=account.normal_balance.value,
        is_active=account.is_active,
        created_at=account.created_at,
    )


def _entry_to_response(entry: JournalEntry) -> JournalEntryResponse:
    """Convert JournalEntry domain object to response schema."""
    return JournalEntryResponse(
        id=entry.id,
        transaction_date=entry.transaction_date,
        reference=entry.reference,
        description=entry.description,
        status=entry.status.value,
        is_closing_entry=entry.is_closing_entry,
        reverses_entry_id=entry.reverses_entry_id,
        created_by=entry.created_by,
        created_at=entry.created_at,
        posted_at=entry.posted_at,
        total_debits=str(entry.total_debits.amount),
        total_credits=str(entry.total_credits.amount),
        lines=[
            JournalLineResponse(
                id=line.id,
                account_id=line.account_id,
                line_number=line.line_number,
                debit=str(line.debit.amount),
                credit=str(line.credit.amount),
                currency=line.debit.currency.value,
                description=line.description,
            )
            for line in entry.lines
        ],
    )


def _period_to_response(period: AccountingPeriod) -> PeriodResponse:
    return PeriodResponse(
        id=period.id,
        fiscal_year=period.fiscal_year,
        fiscal_year_start=period.fiscal_year_start,
        fiscal_year_end=period.fiscal_year_end,
        is_locked=period.is_locked,
        closing_date=period.closing_date,
        closed_by=period.closed_by,
        closed_at=period.closed_at,
    )


def _balance_item(balance: AccountBalance) -> AccountBalanceItem:
    return AccountBalanceItem(
        account_id=balance.account_id,
        code=balance.code,
        name=balance.name,
        account_type=balance.account_type.value,
        balance=str(balance.balance),
    )


def _preview_to_response(preview: ClosingPreview) -> ClosingPreviewResponse:
    return ClosingPreviewResponse(
        period_id=preview.period_id,
        fiscal_year=preview.fiscal_year,
        fiscal_year_start=preview.fiscal_year_start,
        fiscal_year_end=preview.fiscal_year_end,
        revenue_accounts=[_balance_item(b) for b in preview.revenue_accounts],
        expense_accounts=[_balance_item(b) for b in preview.expense_accounts],
        total_revenue=str(preview.total_revenue),
        total_expenses=str(preview.total_expenses),
        net_income=str(preview.net_income),
        already_closed=preview.already_closed,
    )


def _close_to_response(close: YearEndCloseEntry) -> YearEndCloseResponse:
    return YearEndCloseResponse(
        id=close.id,
        fiscal_year=close.fiscal_year,
        period_id=close.period_id,
        close_date=close.close_date,
        total_revenue=str(close.total_revenue),
        total_expenses=str(close.total_expenses),
        net_income=str(close.net_income),
        retained_earnings_account_id=close.retained_earnings_account_id,
        journal_entry_id=close.journal_entry_id,
        created_by=close.created_by,
        created_at=close.created_at,
    )


def _document_to_response(document: AllocatableDocument) -> DocumentResponse:
    return DocumentResponse(
        id=document.id,
        kind=document.kind.value,
        number=document.number,
        party_id=document.party_id,
        total_amount=str(document.total_amount),
        amount_paid=str(document.amount_paid),
        balance_due=str(document.balance_due),
        status=document.status.value,
        issue_date=document.issue_date,
        due_date=document.due_date,
        control_account_id=document.control_account_id,
        version=document.version,
    )


def _source_to_response(source: AllocationSource) -> SourceResponse:
    return SourceResponse(
        id=source.id,
        kind=source.kind.value,
        number=source.number,
        party_id=source.party_id,
        amount=str(source.amount),
        amount_applied=str(source.amount_applied),
        balance_remaining=str(source.balance_remaining),
        status=source.status.value,
        received_date=source.received_date,
        offset_account_id=source.offset_account_id,
        version=source.version,
    )


def _allocation_to_response(allocation: Allocation) -> AllocationResponse:
    return AllocationResponse(
        id=allocation.id,
        source_id=allocation.source_id,
        target_id=allocation.target_id,
        amount=str(allocation.amount),
        allocation_date=allocation.allocation_date,
        journal_entry_id=allocation.journal_entry_id,
        memo=allocation.memo,
        created_at=allocation.created_at,
    )


def _bank_transaction_to_response(txn: BankTransaction) -> BankTransactionResponse:
    return BankTransactionResponse(
        id=txn.id,
        bank_account_id=txn.bank_account_id,
        transaction_date=txn.transaction_date,
        amount=str(txn.amount),
        description=txn.description,
        external_id=txn.external_id,
        is_reconciled=txn.is_reconciled,
    )


def _reconciliation_to_response(
    reconciliation: BankReconciliation,
) -> ReconciliationResponse:
    return ReconciliationResponse(
        id=reconciliation.id,
        bank_account_id=reconciliation.bank_account_id,
        statement_date=reconciliation.statement_date,
        statement_ending_balance=str(reconciliation.statement_ending_balance),
        beginning_balance=str(reconciliation.beginning_balance),
        status=reconciliation.status.value,
        created_at=reconciliation.created_at,
        completed_at=reconciliation.completed_at,
    )


# Health endpoint
@health_router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", version=__version__)


# Account endpoints
@account_router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_account(
    payload: AccountCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> AccountResponse:
    """Create a new account in the chart of accounts."""
    services = get_services(db)
    account = Account(
        code=payload.code,
        name=payload.name,
        account_type=AccountType(payload.account_type),
    )
    services.ledger_service.create_account(account)
    return _account_to_response(account)


@account_router.get("", response_model=list[AccountResponse])
def list_accounts(
    db: Annotated[SQLiteDatabase, Depends()],
    account_type: str | None = Query(default=None),
) -> list[AccountResponse]:
    """List accounts ordered by code, optionally filtered by type."""
    services = get_services(db)
    accounts = services.ledger_service.list_accounts()
    if account_type:
        accounts = [a for a in accounts if a.account_type.value == account_type]
    return [_account_to_response(a) for a in accounts]


@account_router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> AccountResponse:
    services = get_services(db)
    return _account_to_response(services.ledger_service.get_account(account_id))


@account_router.patch("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: UUID,
    payload: AccountUpdate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> AccountResponse:
    """Rename, re-code, re-type or (de)activate an account."""
    services = get_services(db)
    account = services.ledger_service.get_account(account_id)
    if payload.code is not None:
        account.code = payload.code
    if payload.name is not None:
        account.name = payload.name
    if payload.account_type is not None:
        account.account_type = AccountType(payload.account_type)
    if payload.is_active is not None:
        account.is_active = payload.is_active
    services.ledger_service.update_account(account)
    return _account_to_response(account)


@account_router.get("/{account_id}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    account_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
    as_of: date | None = Query(default=None),
    start_date: date | None = Query(default=None),
    mode: BalanceMode = Query(default=BalanceMode.CUMULATIVE),
) -> AccountBalanceResponse:
    """Balance through as_of, or over [start_date, as_of] when start_date is set."""
    services = get_services(db)
    if start_date is not None:
        balance = services.balance_service.account_balance_for_range(
            account_id, start_date, as_of or date.today(), mode
        )
    else:
        balance = services.balance_service.account_balance(account_id, as_of, mode)
    return AccountBalanceResponse(
        account_id=account_id,
        balance=str(balance.amount),
        currency=balance.currency.value,
        as_of=as_of,
        mode=mode.value,
    )


# Journal entry endpoints
@journal_router.post(
    "",
    response_model=JournalEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_journal_entry(
    payload: JournalEntryCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> JournalEntryResponse:
    """Post a journal entry, or save it as a draft when post is false."""
    services = get_services(db)
    lines = [
        JournalEntryLine(
            account_id=line.account_id,
            debit=_money(line.debit, line.currency, f"lines[{number}].debit"),
            credit=_money(line.credit, line.currency, f"lines[{number}].credit"),
            description=line.description,
        )
        for number, line in enumerate(payload.lines, start=1)
    ]
    entry = JournalEntry(
        transaction_date=payload.transaction_date,
        lines=lines,
        reference=payload.reference,
        description=payload.description,
        created_by=payload.created_by,
    )
    if payload.post:
        services.ledger_service.post_entry(entry)
    else:
        services.ledger_service.save_draft(entry)
    return _entry_to_response(entry)


@journal_router.get("", response_model=list[JournalEntryResponse])
def list_journal_entries(
    db: Annotated[SQLiteDatabase, Depends()],
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
) -> list[JournalEntryResponse]:
    services = get_services(db)
    entries = services.journal_repo.list_by_date_range(start_date, end_date)
    return [_entry_to_response(e) for e in entries]


@journal_router.get("/{entry_id}", response_model=JournalEntryResponse)
def get_journal_entry(
    entry_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> JournalEntryResponse:
    services = get_services(db)
    return _entry_to_response(services.ledger_service.get_entry(entry_id))


@journal_router.post("/{entry_id}/post", response_model=JournalEntryResponse)
def post_draft_entry(
    entry_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> JournalEntryResponse:
    services = get_services(db)
    services.ledger_service.post_draft(entry_id)
    return _entry_to_response(services.ledger_service.get_entry(entry_id))


@journal_router.post("/{entry_id}/void", response_model=JournalEntryResponse)
def void_draft_entry(
    entry_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> JournalEntryResponse:
    services = get_services(db)
    services.ledger_service.void_draft(entry_id)
    return _entry_to_response(services.ledger_service.get_entry(entry_id))


@journal_router.post(
    "/{entry_id}/reverse",
    response_model=JournalEntryResponse,
    status_code=status.HTTP_201_CREATED,
)
def reverse_journal_entry(
    entry_id: UUID,
    payload: ReversalCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> JournalEntryResponse:
    """Post a reversing entry for a posted one."""
    services = get_services(db)
    reversal = services.ledger_service.reverse_entry(
        entry_id, payload.reversal_date, payload.description
    )
    return _entry_to_response(reversal)


# Report endpoints
@report_router.get("/trial-balance", response_model=TrialBalanceResponse)
def get_trial_balance(
    db: Annotated[SQLiteDatabase, Depends()],
    as_of: date | None = Query(default=None),
) -> TrialBalanceResponse:
    """Trial balance through as_of, closing entries included."""
    services = get_services(db)
    report = services.balance_service.trial_balance(as_of)
    return TrialBalanceResponse(
        as_of=report.as_of,
        rows=[
            TrialBalanceRowResponse(
                account_id=row.account_id,
                code=row.code,
                name=row.name,
                account_type=row.account_type.value,
                debit=str(row.debit),
                credit=str(row.credit),
            )
            for row in report.rows
        ],
        total_debits=str(report.total_debits),
        total_credits=str(report.total_credits),
        is_balanced=report.is_balanced,
    )


@report_router.get("/net-income", response_model=NetIncomeResponse)
def get_net_income(
    db: Annotated[SQLiteDatabase, Depends()],
    start_date: date = Query(...),
    end_date: date = Query(...),
    mode: BalanceMode = Query(default=BalanceMode.OPERATING),
) -> NetIncomeResponse:
    services = get_services(db)
    net_income = services.balance_service.net_income(start_date, end_date, mode)
    return NetIncomeResponse(
        start_date=start_date,
        end_date=end_date,
        mode=mode.value,
        net_income=str(net_income.amount),
        currency=net_income.currency.value,
    )


@report_router.get("/aging", response_model=AgingReportResponse)
def get_aging_report(
    db: Annotated[SQLiteDatabase, Depends()],
    kind: DocumentKind = Query(default=DocumentKind.INVOICE),
    party_id: UUID | None = Query(default=None),
    as_of: date | None = Query(default=None),
) -> AgingReportResponse:
    """Open receivables (invoice) or payables (bill) by days past due."""
    services = get_services(db)
    report = services.allocation_service.aging_report(kind, party_id, as_of)
    return AgingReportResponse(
        kind=kind.value,
        as_of=report.as_of,
        current=str(report.current),
        days_1_to_30=str(report.days_1_to_30),
        days_31_to_60=str(report.days_31_to_60),
        days_61_to_90=str(report.days_61_to_90),
        days_over_90=str(report.days_over_90),
        total=str(report.total),
    )


# Period and closing endpoints
@period_router.post(
    "",
    response_model=PeriodResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_period(
    payload: PeriodCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> PeriodResponse:
    services = get_services(db)
    period = services.period_service.create_period(
        payload.fiscal_year_start, payload.fiscal_year_end
    )
    return _period_to_response(period)


@period_router.get("", response_model=list[PeriodResponse])
def list_periods(
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[PeriodResponse]:
    services = get_services(db)
    return [_period_to_response(p) for p in services.period_service.list_periods()]


@period_router.get("/closes", response_model=list[YearEndCloseResponse])
def list_year_end_closes(
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[YearEndCloseResponse]:
    services = get_services(db)
    return [_close_to_response(c) for c in services.closing_service.list_closes()]


@period_router.get("/{period_id}", response_model=PeriodResponse)
def get_period(
    period_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> PeriodResponse:
    services = get_services(db)
    return _period_to_response(services.period_service.get_period(period_id))


@period_router.get("/{period_id}/close-preview", response_model=ClosingPreviewResponse)
def preview_year_end_close(
    period_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> ClosingPreviewResponse:
    """Revenue and expense balances the close would zero out."""
    services = get_services(db)
    return _preview_to_response(services.closing_service.preview(period_id))


@period_router.post(
    "/{period_id}/close",
    response_model=YearEndCloseResponse,
    status_code=status.HTTP_201_CREATED,
)
def close_fiscal_year(
    period_id: UUID,
    payload: YearEndCloseRequest,
    db: Annotated[SQLiteDatabase, Depends()],
) -> YearEndCloseResponse:
    """Post the year-end closing entry into retained earnings."""
    services = get_services(db)
    close = services.closing_service.close_year(
        period_id,
        payload.retained_earnings_account_id,
        lock_period=payload.lock_period,
        closed_by=payload.closed_by,
    )
    return _close_to_response(close)


@period_router.post("/{period_id}/lock", response_model=PeriodResponse)
def lock_period(
    period_id: UUID,
    payload: PeriodLockRequest,
    db: Annotated[SQLiteDatabase, Depends()],
) -> PeriodResponse:
    services = get_services(db)
    period = services.period_service.lock_period(period_id, payload.closed_by)
    return _period_to_response(period)


@period_router.post("/{period_id}/unlock", response_model=PeriodResponse)
def unlock_period(
    period_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> PeriodResponse:
    services = get_services(db)
    return _period_to_response(services.period_service.unlock_period(period_id))


# Allocation endpoints
@allocation_router.post(
    "/documents",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_document(
    payload: DocumentCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> DocumentResponse:
    """Register an invoice or bill that allocations can pay down."""
    services = get_services(db)
    document = AllocatableDocument(
        kind=DocumentKind(payload.kind),
        total_amount=_parse_amount(payload.total_amount, "total_amount"),
        number=payload.number,
        party_id=payload.party_id,
        status=DocumentStatus(payload.status),
        issue_date=payload.issue_date,
        due_date=payload.due_date,
        control_account_id=payload.control_account_id,
    )
    services.allocation_service.create_document(document)
    return _document_to_response(document)


@allocation_router.get("/documents/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> DocumentResponse:
    services = get_services(db)
    return _document_to_response(services.allocation_service.get_document(document_id))


@allocation_router.get(
    "/documents/{document_id}/allocations", response_model=list[AllocationResponse]
)
def list_document_allocations(
    document_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[AllocationResponse]:
    services = get_services(db)
    services.allocation_service.get_document(document_id)
    allocations = services.allocation_service.list_allocations_for_target(document_id)
    return [_allocation_to_response(a) for a in allocations]


@allocation_router.post(
    "/sources",
    response_model=SourceResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_source(
    payload: SourceCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> SourceResponse:
    """Register a payment, deposit or credit to be applied to documents."""
    services = get_services(db)
    source = AllocationSource(
        kind=SourceKind(payload.kind),
        amount=_parse_amount(payload.amount, "amount"),
        number=payload.number,
        party_id=payload.party_id,
        received_date=payload.received_date,
        offset_account_id=payload.offset_account_id,
    )
    services.allocation_service.create_source(source)
    return _source_to_response(source)


@allocation_router.get("/sources/{source_id}", response_model=SourceResponse)
def get_source(
    source_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> SourceResponse:
    services = get_services(db)
    return _source_to_response(services.allocation_service.get_source(source_id))


@allocation_router.get(
    "/sources/{source_id}/allocations", response_model=list[AllocationResponse]
)
def list_source_allocations(
    source_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[AllocationResponse]:
    services = get_services(db)
    services.allocation_service.get_source(source_id)
    allocations = services.allocation_service.list_allocations_for_source(source_id)
    return [_allocation_to_response(a) for a in allocations]


@allocation_router.post(
    "/allocations",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_allocation(
    payload: AllocationCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> AllocationResponse:
    services = get_services(db)
    allocation = services.allocation_service.allocate(
        payload.source_id,
        payload.target_id,
        _parse_amount(payload.amount, "amount"),
        allocation_date=payload.allocation_date,
        memo=payload.memo,
    )
    return _allocation_to_response(allocation)


@allocation_router.post(
    "/allocations/batch",
    response_model=list[AllocationResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_allocation_batch(
    payload: AllocationBatchCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[AllocationResponse]:
    """Apply one source to several documents; all succeed or none do."""
    services = get_services(db)
    requests = [
        AllocationRequest(
            target_id=item.target_id,
            amount=_parse_amount(item.amount, f"allocations[{number}].amount"),
        )
        for number, item in enumerate(payload.allocations)
    ]
    allocations = services.allocation_service.allocate_batch(
        payload.source_id,
        requests,
        allocation_date=payload.allocation_date,
        memo=payload.memo,
    )
    return [_allocation_to_response(a) for a in allocations]


@allocation_router.delete(
    "/allocations/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT
)
def remove_allocation(
    allocation_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> Response:
    services = get_services(db)
    services.allocation_service.remove_allocation(allocation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Bank reconciliation endpoints
@reconciliation_router.post(
    "/bank-transactions",
    response_model=list[BankTransactionResponse],
    status_code=status.HTTP_201_CREATED,
)
def import_bank_transactions(
    payload: BankTransactionImport,
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[BankTransactionResponse]:
    """Store normalized bank-feed records for a bank account."""
    services = get_services(db)
    records = [
        BankTransaction(
            bank_account_id=payload.bank_account_id,
            transaction_date=item.transaction_date,
            amount=_parse_amount(item.amount, f"transactions[{number}].amount"),
            description=item.description,
            external_id=item.external_id,
        )
        for number, item in enumerate(payload.transactions)
    ]
    imported = services.reconciliation_service.import_bank_transactions(
        payload.bank_account_id, records
    )
    return [_bank_transaction_to_response(t) for t in imported]


@reconciliation_router.post(
    "/reconciliations",
    response_model=ReconciliationResponse,
    status_code=status.HTTP_201_CREATED,
)
def start_reconciliation(
    payload: ReconciliationCreate,
    db: Annotated[SQLiteDatabase, Depends()],
) -> ReconciliationResponse:
    services = get_services(db)
    beginning = (
        _parse_amount(payload.beginning_balance, "beginning_balance")
        if payload.beginning_balance is not None
        else None
    )
    reconciliation = services.reconciliation_service.start(
        payload.bank_account_id,
        payload.statement_date,
        _parse_amount(payload.statement_ending_balance, "statement_ending_balance"),
        beginning_balance=beginning,
    )
    return _reconciliation_to_response(reconciliation)


@reconciliation_router.get(
    "/reconciliations/{reconciliation_id}", response_model=ReconciliationResponse
)
def get_reconciliation(
    reconciliation_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> ReconciliationResponse:
    services = get_services(db)
    reconciliation = services.reconciliation_service.get_reconciliation(reconciliation_id)
    return _reconciliation_to_response(reconciliation)


@reconciliation_router.get(
    "/reconciliations/{reconciliation_id}/candidates",
    response_model=list[CandidateItemResponse],
)
def list_candidate_items(
    reconciliation_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> list[CandidateItemResponse]:
    """Transactions that can be cleared against the statement."""
    services = get_services(db)
    candidates = services.reconciliation_service.candidate_items(reconciliation_id)
    return [
        CandidateItemResponse(
            transaction_type=c.transaction_type.value,
            transaction_id=c.transaction_id,
            transaction_date=c.transaction_date,
            description=c.description,
            amount=str(c.amount),
            is_cleared=c.is_cleared,
        )
        for c in candidates
    ]


@reconciliation_router.put(
    "/reconciliations/{reconciliation_id}/items",
    response_model=ReconciliationItemResponse,
)
def set_item_cleared(
    reconciliation_id: UUID,
    payload: ClearItemRequest,
    db: Annotated[SQLiteDatabase, Depends()],
) -> ReconciliationItemResponse:
    """Mark a candidate cleared or uncleared."""
    services = get_services(db)
    item = services.reconciliation_service.set_cleared(
        reconciliation_id,
        ReconciliationItemType(payload.transaction_type),
        payload.transaction_id,
        payload.is_cleared,
    )
    return ReconciliationItemResponse(
        id=item.id,
        reconciliation_id=item.reconciliation_id,
        transaction_type=item.transaction_type.value,
        transaction_id=item.transaction_id,
        amount=str(item.amount),
        is_cleared=item.is_cleared,
        cleared_at=item.cleared_at,
    )


@reconciliation_router.get(
    "/reconciliations/{reconciliation_id}/summary",
    response_model=ReconciliationSummaryResponse,
)
def get_reconciliation_summary(
    reconciliation_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> ReconciliationSummaryResponse:
    services = get_services(db)
    summary = services.reconciliation_service.summary(reconciliation_id)
    return ReconciliationSummaryResponse(
        reconciliation_id=summary.reconciliation_id,
        beginning_balance=str(summary.beginning_balance),
        statement_ending_balance=str(summary.statement_ending_balance),
        cleared_deposits=str(summary.cleared_deposits),
        cleared_payments=str(summary.cleared_payments),
        cleared_balance=str(summary.cleared_balance),
        difference=str(summary.difference),
        is_balanced=summary.is_balanced,
        cleared_count=summary.cleared_count,
        item_count=summary.item_count,
    )


@reconciliation_router.post(
    "/reconciliations/{reconciliation_id}/complete",
    response_model=ReconciliationResponse,
)
def complete_reconciliation(
    reconciliation_id: UUID,
    db: Annotated[SQLiteDatabase, Depends()],
) -> ReconciliationResponse:
    """Complete a reconciliation whose difference is zero."""
    services = get_services(db)
    reconciliation = services.reconciliation_service.complete(reconciliation_id)
    return _reconciliation_to_response(reconciliation)
