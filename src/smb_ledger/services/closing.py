"""Year-end close: zero revenue and expense accounts into retained earnings."""

from decimal import Decimal
from uuid import UUID

from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.periods import AccountBalance, ClosingPreview, YearEndCloseEntry
from smb_ledger.domain.value_objects import AccountType, BalanceMode
from smb_ledger.exceptions import (
    AlreadyClosedError,
    InvalidRetainedEarningsAccountError,
    NoRetainedEarningsAccountSelectedError,
    UnknownAccountError,
)
from smb_ledger.logging_config import get_logger
from smb_ledger.repositories.interfaces import (
    AccountRepository,
    TransactionManager,
    YearEndCloseRepository,
)
from smb_ledger.services.interfaces import (
    AccountingPeriodService,
    BalanceService,
    LedgerService,
    PeriodClosingService,
)

logger = get_logger(__name__)


class PeriodClosingServiceImpl(PeriodClosingService):
    """Closes a fiscal year in one transaction.

    Steps: preview the year's revenue and expense balances (closing entries
    excluded), refuse if the year already has a close record, post one
    closing entry flagged is_closing_entry, record the snapshot, and lock
    the period when asked to.
    """

    def __init__(
        self,
        period_service: AccountingPeriodService,
        balance_service: BalanceService,
        ledger_service: LedgerService,
        account_repo: AccountRepository,
        close_repo: YearEndCloseRepository,
        transactions: TransactionManager,
        reference_prefix: str = "YE-CLOSE",
        lock_on_close: bool = False,
    ) -> None:
        self._period_service = period_service
        self._balance_service = balance_service
        self._ledger_service = ledger_service
        self._account_repo = account_repo
        self._close_repo = close_repo
        self._transactions = transactions
        self._reference_prefix = reference_prefix
        self._lock_on_close = lock_on_close

    def preview(self, period_id: UUID) -> ClosingPreview:
        period = self._period_service.get_period(period_id)
        revenue = self._balance_service.account_balances_by_type(
            AccountType.REVENUE,
            period.fiscal_year_start,
            period.fiscal_year_end,
            BalanceMode.OPERATING,
        )
        expenses = self._balance_service.account_balances_by_type(
            AccountType.EXPENSE,
            period.fiscal_year_start,
            period.fiscal_year_end,
            BalanceMode.OPERATING,
        )
        return ClosingPreview(
            period_id=period.id,
            fiscal_year=period.fiscal_year,
            fiscal_year_start=period.fiscal_year_start,
            fiscal_year_end=period.fiscal_year_end,
            revenue_accounts=revenue,
            expense_accounts=expenses,
            already_closed=self._close_repo.get_by_fiscal_year(period.fiscal_year)
            is not None,
        )

    def close_year(
        self,
        period_id: UUID,
        retained_earnings_account_id: UUID | None,
        lock_period: bool | None = None,
        closed_by: str = "system",
    ) -> YearEndCloseEntry:
        """Close the fiscal year covered by a period.

        Args:
            period_id: The accounting period to close
            retained_earnings_account_id: Active equity account receiving net income
            lock_period: Lock the period afterwards; None uses the configured default
            closed_by: Recorded on the closing entry, the close and the lock

        Returns:
            The recorded YearEndCloseEntry. Its journal_entry_id is None when
            the year had no revenue or expense activity.

        Raises:
            NoRetainedEarningsAccountSelectedError: If no account was chosen
            AccountingPeriodNotFoundError: If the period doesn't exist
            AlreadyClosedError: If the fiscal year already has a close record
            UnknownAccountError: If the retained earnings account doesn't exist
            InvalidRetainedEarningsAccountError: If it isn't an active equity account
            PeriodLockedError: If the period was locked before closing
        """
        if retained_earnings_account_id is None:
            raise NoRetainedEarningsAccountSelectedError()
        lock = self._lock_on_close if lock_period is None else lock_period

        with self._transactions.transaction():
            period = self._period_service.get_period(period_id)
            existing = self._close_repo.get_by_fiscal_year(period.fiscal_year)
            if existing is not None:
                raise AlreadyClosedError(
                    period.fiscal_year, existing.id, existing.journal_entry_id
                )

            self._check_retained_earnings_account(retained_earnings_account_id)
            preview = self.preview(period_id)

            entry_id = None
            if preview.has_activity:
                entry = JournalEntry(
                    transaction_date=period.fiscal_year_end,
                    lines=self._closing_lines(preview, retained_earnings_account_id),
                    reference=f"{self._reference_prefix}-{period.fiscal_year}",
                    description=f"Year-end close for fiscal year {period.fiscal_year}",
                    created_by=closed_by,
                    is_closing_entry=True,
                )
                entry_id = self._ledger_service.post_entry(entry)

            close = YearEndCloseEntry(
                fiscal_year=period.fiscal_year,
                period_id=period.id,
                close_date=period.fiscal_year_end,
                total_revenue=preview.total_revenue,
                total_expenses=preview.total_expenses,
                net_income=preview.net_income,
                retained_earnings_account_id=retained_earnings_account_id,
                journal_entry_id=entry_id,
                created_by=closed_by,
            )
            self._close_repo.add(close)

            if lock:
                self._period_service.lock_period(period.id, closed_by)

        logger.info(
            "fiscal_year_closed",
            fiscal_year=close.fiscal_year,
            close_id=str(close.id),
            journal_entry_id=str(entry_id) if entry_id else None,
            total_revenue=str(close.total_revenue),
            total_expenses=str(close.total_expenses),
            net_income=str(close.net_income),
            locked=lock,
        )
        return close

    def get_close(self, fiscal_year: int) -> YearEndCloseEntry | None:
        return self._close_repo.get_by_fiscal_year(fiscal_year)

    def list_closes(self) -> list[YearEndCloseEntry]:
        return list(self._close_repo.list_all())

    def _check_retained_earnings_account(self, account_id: UUID) -> None:
        account = self._account_repo.get(account_id)
        if account is None:
            raise UnknownAccountError(account_id)
        if account.account_type != AccountType.EQUITY:
            raise InvalidRetainedEarningsAccountError(
                account_id, f"{account.code} is a {account.account_type.value} account, not equity"
            )
        if not account.is_active:
            raise InvalidRetainedEarningsAccountError(
                account_id, f"{account.code} is inactive"
            )

    def _closing_lines(
        self, preview: ClosingPreview, retained_earnings_account_id: UUID
    ) -> list[JournalEntryLine]:
        lines: list[JournalEntryLine] = []
        for balance in preview.revenue_accounts:
            lines.append(self._zeroing_line(balance, debit_when_positive=True))
        for balance in preview.expense_accounts:
            lines.append(self._zeroing_line(balance, debit_when_positive=False))

        net_income = preview.net_income
        description = "Net income to retained earnings"
        if net_income > Decimal("0"):
            lines.append(
                JournalEntryLine.credit_line(
                    retained_earnings_account_id, net_income, description
                )
            )
        elif net_income < Decimal("0"):
            lines.append(
                JournalEntryLine.debit_line(
                    retained_earnings_account_id, -net_income, description
                )
            )
        return lines

    @staticmethod
    def _zeroing_line(
        balance: AccountBalance, debit_when_positive: bool
    ) -> JournalEntryLine:
        # A contra balance (e.g. net returns on a revenue account) flips side.
        amount = abs(balance.balance)
        debit = (balance.balance > 0) == debit_when_positive
        description = f"Close {balance.code} {balance.name}"
        if debit:
            return JournalEntryLine.debit_line(balance.account_id, amount, description)
        return JournalEntryLine.credit_line(balance.account_id, amount, description)
