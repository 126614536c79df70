"""Domain exception hierarchy for SMB Ledger.

All domain-specific exceptions inherit from SMBLedgerError. Four category
bases sit underneath it so callers can branch on the kind of rejection:

- ValidationError: malformed input, rejected before any write
- InvariantViolationError: the write would break a balance invariant
- StateConflictError: the target is in a state that forbids the operation
- NotFoundError: a referenced record does not exist

Every error carries an error_code, an HTTP-style status_code and a context
dict with the values the caller needs to explain or fix the rejection.
"""

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID


def _fmt(amount: Decimal) -> str:
    return f"{amount:.2f}"


class SMBLedgerError(Exception):
    """Base exception for all SMB Ledger errors."""

    error_code: str = "SMBL_ERROR"
    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        error_code: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        if status_code:
            self.status_code = status_code
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context,
        }


# =============================================================================
# Categories
# =============================================================================


class ValidationError(SMBLedgerError):
    """Malformed input. Nothing was written."""

    error_code = "VALIDATION_ERROR"
    status_code = 422


class InvariantViolationError(SMBLedgerError):
    """The operation would break a ledger or allocation invariant."""

    error_code = "INVARIANT_VIOLATION"
    status_code = 422


class StateConflictError(SMBLedgerError):
    """The record's current state forbids the operation."""

    error_code = "STATE_CONFLICT"
    status_code = 409


class NotFoundError(SMBLedgerError):
    """A referenced record does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, record_id: UUID | str) -> None:
        super().__init__(
            f"{kind} not found: {record_id}",
            context={"id": str(record_id)},
        )


# =============================================================================
# Ledger Errors
# =============================================================================


class UnknownAccountError(NotFoundError):
    error_code = "UNKNOWN_ACCOUNT"

    def __init__(self, account_id: UUID | str) -> None:
        super().__init__("Account", account_id)


class JournalEntryNotFoundError(NotFoundError):
    error_code = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: UUID | str) -> None:
        super().__init__("Journal entry", entry_id)


class EmptyEntryError(ValidationError):
    """Raised when a journal entry has fewer than two lines."""

    error_code = "EMPTY_ENTRY"

    def __init__(self, line_count: int) -> None:
        super().__init__(
            f"Journal entry needs at least two lines, got {line_count}",
            context={"line_count": line_count},
        )


class InvalidLineError(ValidationError):
    """Raised when a line's debit/credit pair is not postable."""

    error_code = "INVALID_LINE"

    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(
            f"Line {line_number}: {reason}",
            context={"line_number": line_number, "reason": reason},
        )


class MixedCurrencyError(ValidationError):
    error_code = "MIXED_CURRENCY"

    def __init__(self, currencies: list[str]) -> None:
        super().__init__(
            f"Journal entry lines use more than one currency: {', '.join(currencies)}",
            context={"currencies": currencies},
        )


class InactiveAccountError(ValidationError):
    error_code = "INACTIVE_ACCOUNT"

    def __init__(self, account_id: UUID, code: str) -> None:
        super().__init__(
            f"Account {code} is inactive and cannot receive postings",
            context={"account_id": str(account_id), "code": code},
        )


class UnbalancedEntryError(InvariantViolationError):
    """Raised when an entry's debits don't equal its credits."""

    error_code = "UNBALANCED"

    def __init__(self, debit_total: Decimal, credit_total: Decimal) -> None:
        difference = debit_total - credit_total
        super().__init__(
            f"Journal entry is unbalanced: debits={_fmt(debit_total)}, "
            f"credits={_fmt(credit_total)}, difference={_fmt(difference)}",
            context={
                "debit_total": _fmt(debit_total),
                "credit_total": _fmt(credit_total),
                "difference": _fmt(difference),
            },
        )


class PeriodLockedError(StateConflictError):
    """Raised when a date falls inside a locked accounting period."""

    error_code = "PERIOD_LOCKED"

    def __init__(
        self, transaction_date: date, fiscal_year: int, period_id: UUID
    ) -> None:
        super().__init__(
            f"{transaction_date.isoformat()} falls within locked fiscal year {fiscal_year}",
            context={
                "transaction_date": transaction_date.isoformat(),
                "fiscal_year": fiscal_year,
                "period_id": str(period_id),
            },
        )


class EntryImmutableError(StateConflictError):
    """Raised when editing, re-posting or voiding a non-draft entry."""

    error_code = "ENTRY_IMMUTABLE"

    def __init__(self, entry_id: UUID, status: str) -> None:
        super().__init__(
            f"Journal entry {entry_id} is {status}; only drafts can be changed",
            context={"entry_id": str(entry_id), "status": status},
        )


class EntryNotPostedError(StateConflictError):
    error_code = "ENTRY_NOT_POSTED"

    def __init__(self, entry_id: UUID, status: str) -> None:
        super().__init__(
            f"Journal entry {entry_id} is {status}; only posted entries can be reversed",
            context={"entry_id": str(entry_id), "status": status},
        )


class EntryAlreadyReversedError(StateConflictError):
    error_code = "ENTRY_ALREADY_REVERSED"

    def __init__(self, entry_id: UUID, reversal_id: UUID) -> None:
        super().__init__(
            f"Journal entry {entry_id} was already reversed by {reversal_id}",
            context={"entry_id": str(entry_id), "reversal_id": str(reversal_id)},
        )


class AccountInUseError(StateConflictError):
    """Raised when changing the code or type of an account with postings."""

    error_code = "ACCOUNT_IN_USE"

    def __init__(self, account_id: UUID, field: str) -> None:
        super().__init__(
            f"Account {account_id} has posted lines; its {field} can no longer change",
            context={"account_id": str(account_id), "field": field},
        )


class DuplicateAccountCodeError(StateConflictError):
    error_code = "DUPLICATE_ACCOUNT_CODE"

    def __init__(self, code: str) -> None:
        super().__init__(
            f"Account code already exists: {code}",
            context={"code": code},
        )


# =============================================================================
# Allocation Errors
# =============================================================================


class DocumentNotFoundError(NotFoundError):
    error_code = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: UUID | str) -> None:
        super().__init__("Document", document_id)


class AllocationSourceNotFoundError(NotFoundError):
    error_code = "SOURCE_NOT_FOUND"

    def __init__(self, source_id: UUID | str) -> None:
        super().__init__("Allocation source", source_id)


class AllocationNotFoundError(NotFoundError):
    error_code = "ALLOCATION_NOT_FOUND"

    def __init__(self, allocation_id: UUID | str) -> None:
        super().__init__("Allocation", allocation_id)


class ZeroOrNegativeAmountError(ValidationError):
    error_code = "ZERO_OR_NEGATIVE_AMOUNT"

    def __init__(self, amount: Decimal) -> None:
        super().__init__(
            f"Allocation amount must be greater than zero, got {_fmt(amount)}",
            context={"amount": _fmt(amount)},
        )


class SubCentAmountError(ValidationError):
    """Raised when a money amount carries more precision than one cent."""

    error_code = "SUB_CENT_AMOUNT"

    def __init__(self, amount: Decimal, field: str = "amount") -> None:
        super().__init__(
            f"{field} must be a whole number of cents, got {amount}",
            context={"field": field, "amount": str(amount)},
        )


class AllocationMismatchError(ValidationError):
    """Raised when a source cannot be applied to a document of that kind or party."""

    error_code = "ALLOCATION_MISMATCH"

    def __init__(self, source_id: UUID, target_id: UUID, reason: str) -> None:
        super().__init__(
            f"Cannot apply {source_id} to {target_id}: {reason}",
            context={
                "source_id": str(source_id),
                "target_id": str(target_id),
                "reason": reason,
            },
        )


class SourceExhaustedError(InvariantViolationError):
    error_code = "SOURCE_EXHAUSTED"

    def __init__(self, source_id: UUID, requested: Decimal, remaining: Decimal) -> None:
        super().__init__(
            f"allocation of {_fmt(requested)} exceeds remaining balance of {_fmt(remaining)}",
            context={
                "source_id": str(source_id),
                "requested": _fmt(requested),
                "remaining": _fmt(remaining),
            },
        )


class TargetOverpaidError(InvariantViolationError):
    error_code = "TARGET_OVERPAID"

    def __init__(self, target_id: UUID, requested: Decimal, balance_due: Decimal) -> None:
        super().__init__(
            f"allocation of {_fmt(requested)} exceeds balance due of {_fmt(balance_due)}",
            context={
                "target_id": str(target_id),
                "requested": _fmt(requested),
                "balance_due": _fmt(balance_due),
            },
        )


class DocumentNotAllocatableError(StateConflictError):
    """Raised when a source or target's status forbids allocation."""

    error_code = "DOCUMENT_NOT_ALLOCATABLE"

    def __init__(self, record_id: UUID, kind: str, status: str) -> None:
        super().__init__(
            f"{kind} {record_id} is {status} and cannot take part in an allocation",
            context={"id": str(record_id), "kind": kind, "status": status},
        )


class ConcurrentModificationError(StateConflictError):
    """Raised when a version-checked update finds the row changed underneath it."""

    error_code = "CONCURRENT_MODIFICATION"
    retryable = True

    def __init__(self, kind: str, record_id: UUID, expected_version: int) -> None:
        super().__init__(
            f"{kind} {record_id} was modified by another request; reload and retry",
            context={
                "kind": kind,
                "id": str(record_id),
                "expected_version": expected_version,
            },
        )


# =============================================================================
# Period and Closing Errors
# =============================================================================


class AccountingPeriodNotFoundError(NotFoundError):
    error_code = "PERIOD_NOT_FOUND"

    def __init__(self, period_id: UUID | str) -> None:
        super().__init__("Accounting period", period_id)


class InvalidPeriodError(ValidationError):
    error_code = "INVALID_PERIOD"

    def __init__(self, start: date, end: date) -> None:
        super().__init__(
            f"Fiscal year start {start.isoformat()} is after end {end.isoformat()}",
            context={"start": start.isoformat(), "end": end.isoformat()},
        )


class PeriodOverlapError(StateConflictError):
    error_code = "PERIOD_OVERLAP"

    def __init__(self, existing_id: UUID, start: date, end: date) -> None:
        super().__init__(
            f"Period overlaps existing period {start.isoformat()} to {end.isoformat()}",
            context={
                "existing_period_id": str(existing_id),
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )


class AlreadyClosedError(StateConflictError):
    error_code = "ALREADY_CLOSED"

    def __init__(self, fiscal_year: int, close_id: UUID, journal_entry_id: UUID | None) -> None:
        super().__init__(
            f"Fiscal year {fiscal_year} has already been closed",
            context={
                "fiscal_year": fiscal_year,
                "close_id": str(close_id),
                "journal_entry_id": str(journal_entry_id) if journal_entry_id else None,
            },
        )


class NoRetainedEarningsAccountSelectedError(ValidationError):
    error_code = "NO_RETAINED_EARNINGS_ACCOUNT"

    def __init__(self) -> None:
        super().__init__("Select a Retained Earnings account before closing the year")


class InvalidRetainedEarningsAccountError(ValidationError):
    error_code = "INVALID_RETAINED_EARNINGS_ACCOUNT"

    def __init__(self, account_id: UUID, reason: str) -> None:
        super().__init__(
            f"Account {account_id} cannot receive the closing balance: {reason}",
            context={"account_id": str(account_id), "reason": reason},
        )


# =============================================================================
# Reconciliation Errors
# =============================================================================


class ReconciliationNotFoundError(NotFoundError):
    error_code = "RECONCILIATION_NOT_FOUND"

    def __init__(self, reconciliation_id: UUID | str) -> None:
        super().__init__("Reconciliation", reconciliation_id)


class BankTransactionNotFoundError(NotFoundError):
    error_code = "BANK_TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: UUID | str) -> None:
        super().__init__("Bank transaction", transaction_id)


class InvalidBankAccountError(ValidationError):
    error_code = "INVALID_BANK_ACCOUNT"

    def __init__(self, account_id: UUID, reason: str) -> None:
        super().__init__(
            f"Account {account_id} cannot be reconciled: {reason}",
            context={"account_id": str(account_id), "reason": reason},
        )


class ReconciliationInProgressError(StateConflictError):
    error_code = "RECONCILIATION_IN_PROGRESS"

    def __init__(self, bank_account_id: UUID, reconciliation_id: UUID) -> None:
        super().__init__(
            f"Account {bank_account_id} already has reconciliation {reconciliation_id} in progress",
            context={
                "bank_account_id": str(bank_account_id),
                "reconciliation_id": str(reconciliation_id),
            },
        )


class ReconciliationCompletedError(StateConflictError):
    error_code = "RECONCILIATION_COMPLETED"

    def __init__(self, reconciliation_id: UUID) -> None:
        super().__init__(
            f"Reconciliation {reconciliation_id} is already completed",
            context={"reconciliation_id": str(reconciliation_id), "status": "completed"},
        )


class AlreadyReconciledError(StateConflictError):
    """Raised when clearing an item a completed reconciliation already cleared."""

    error_code = "ALREADY_RECONCILED"

    def __init__(
        self,
        transaction_type: str,
        transaction_id: UUID,
        reconciliation_id: UUID | None = None,
    ) -> None:
        super().__init__(
            f"{transaction_type} {transaction_id} was already cleared by a completed reconciliation",
            context={
                "transaction_type": transaction_type,
                "transaction_id": str(transaction_id),
                "reconciliation_id": str(reconciliation_id) if reconciliation_id else None,
            },
        )


class ReconciliationNotBalancedError(InvariantViolationError):
    """Raised when completing a reconciliation whose difference is not zero."""

    error_code = "NOT_BALANCED"

    def __init__(
        self,
        reconciliation_id: UUID,
        statement_ending_balance: Decimal,
        cleared_balance: Decimal,
        difference: Decimal,
    ) -> None:
        super().__init__(
            f"Reconciliation is out of balance by {_fmt(difference)}: statement ending "
            f"balance {_fmt(statement_ending_balance)}, cleared balance {_fmt(cleared_balance)}",
            context={
                "reconciliation_id": str(reconciliation_id),
                "statement_ending_balance": _fmt(statement_ending_balance),
                "cleared_balance": _fmt(cleared_balance),
                "difference": _fmt(difference),
            },
        )
        self.difference = difference
