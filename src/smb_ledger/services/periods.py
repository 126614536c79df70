"""Accounting period bookkeeping and the central posting guard."""

from datetime import date
from uuid import UUID

from smb_ledger.domain.periods import AccountingPeriod
from smb_ledger.exceptions import (
    AccountingPeriodNotFoundError,
    InvalidPeriodError,
    PeriodLockedError,
    PeriodOverlapError,
)
from smb_ledger.logging_config import get_logger
from smb_ledger.repositories.interfaces import (
    AccountingPeriodRepository,
    TransactionManager,
)
from smb_ledger.services.interfaces import AccountingPeriodService

logger = get_logger(__name__)


class AccountingPeriodServiceImpl(AccountingPeriodService):
    def __init__(
        self,
        period_repo: AccountingPeriodRepository,
        transactions: TransactionManager,
    ) -> None:
        self._period_repo = period_repo
        self._transactions = transactions

    def create_period(self, start: date, end: date) -> AccountingPeriod:
        if start > end:
            raise InvalidPeriodError(start, end)

        with self._transactions.transaction():
            existing = self._period_repo.find_overlapping(start, end)
            if existing is not None:
                raise PeriodOverlapError(
                    existing.id, existing.fiscal_year_start, existing.fiscal_year_end
                )
            period = AccountingPeriod(fiscal_year_start=start, fiscal_year_end=end)
            self._period_repo.add(period)

        logger.info(
            "accounting_period_created",
            period_id=str(period.id),
            fiscal_year=period.fiscal_year,
        )
        return period

    def get_period(self, period_id: UUID) -> AccountingPeriod:
        period = self._period_repo.get(period_id)
        if period is None:
            raise AccountingPeriodNotFoundError(period_id)
        return period

    def find_period_for_date(self, value: date) -> AccountingPeriod | None:
        return self._period_repo.find_for_date(value)

    def list_periods(self) -> list[AccountingPeriod]:
        return list(self._period_repo.list_all())

    def assert_period_open(self, value: date) -> None:
        """Raise PeriodLockedError if value falls inside a locked period.

        Dates outside every defined period are open.
        """
        period = self._period_repo.find_for_date(value)
        if period is not None and period.is_locked:
            raise PeriodLockedError(value, period.fiscal_year, period.id)

    def lock_period(self, period_id: UUID, closed_by: str = "system") -> AccountingPeriod:
        with self._transactions.transaction():
            period = self.get_period(period_id)
            if period.is_locked:
                return period
            period.lock(closed_by)
            self._period_repo.update(period)

        logger.info(
            "accounting_period_locked",
            period_id=str(period.id),
            fiscal_year=period.fiscal_year,
            closed_by=closed_by,
        )
        return period

    def unlock_period(self, period_id: UUID) -> AccountingPeriod:
        with self._transactions.transaction():
            period = self.get_period(period_id)
            if not period.is_locked:
                return period
            period.unlock()
            self._period_repo.update(period)

        logger.info(
            "accounting_period_unlocked",
            period_id=str(period.id),
            fiscal_year=period.fiscal_year,
        )
        return period
