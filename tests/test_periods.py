from datetime import date
from uuid import uuid4

import pytest

from smb_ledger.domain.periods import AccountingPeriod
from smb_ledger.exceptions import (
    AccountingPeriodNotFoundError,
    InvalidPeriodError,
    PeriodLockedError,
    PeriodOverlapError,
)


@pytest.fixture
def periods(container):
    return container.period_service


class TestAccountingPeriod:
    def test_fiscal_year_is_end_year(self):
        period = AccountingPeriod(date(2023, 7, 1), date(2024, 6, 30))

        assert period.fiscal_year == 2024

    def test_contains_is_inclusive(self):
        period = AccountingPeriod(date(2024, 1, 1), date(2024, 12, 31))

        assert period.contains(date(2024, 1, 1))
        assert period.contains(date(2024, 12, 31))
        assert not period.contains(date(2025, 1, 1))

    def test_lock_records_closing_date(self):
        period = AccountingPeriod(date(2024, 1, 1), date(2024, 12, 31))

        period.lock("controller")

        assert period.is_locked
        assert period.closing_date == date(2024, 12, 31)
        assert period.closed_by == "controller"

        period.unlock()

        assert not period.is_locked
        assert period.closing_date is None


class TestAccountingPeriodService:
    def test_create_and_find(self, periods):
        period = periods.create_period(date(2024, 1, 1), date(2024, 12, 31))

        assert periods.get_period(period.id).fiscal_year == 2024
        assert periods.find_period_for_date(date(2024, 5, 5)).id == period.id
        assert periods.find_period_for_date(date(2025, 5, 5)) is None

    def test_start_after_end_rejected(self, periods):
        with pytest.raises(InvalidPeriodError):
            periods.create_period(date(2024, 12, 31), date(2024, 1, 1))

    def test_overlap_rejected(self, periods):
        periods.create_period(date(2024, 1, 1), date(2024, 12, 31))

        with pytest.raises(PeriodOverlapError):
            periods.create_period(date(2024, 7, 1), date(2025, 6, 30))

    def test_adjacent_periods_allowed(self, periods):
        periods.create_period(date(2024, 1, 1), date(2024, 12, 31))
        periods.create_period(date(2025, 1, 1), date(2025, 12, 31))

        assert len(periods.list_periods()) == 2

    def test_get_missing_period(self, periods):
        with pytest.raises(AccountingPeriodNotFoundError):
            periods.get_period(uuid4())

    def test_assert_period_open(self, periods):
        period = periods.create_period(date(2024, 1, 1), date(2024, 12, 31))
        periods.assert_period_open(date(2024, 3, 1))

        periods.lock_period(period.id, "controller")

        with pytest.raises(PeriodLockedError):
            periods.assert_period_open(date(2024, 3, 1))
        periods.assert_period_open(date(2025, 3, 1))

    def test_lock_is_idempotent(self, periods):
        period = periods.create_period(date(2024, 1, 1), date(2024, 12, 31))

        first = periods.lock_period(period.id, "alice")
        second = periods.lock_period(period.id, "bob")

        assert second.is_locked
        assert second.closed_by == first.closed_by == "alice"

    def test_unlock_reopens_posting(self, periods):
        period = periods.create_period(date(2024, 1, 1), date(2024, 12, 31))
        periods.lock_period(period.id)

        periods.unlock_period(period.id)

        assert not periods.get_period(period.id).is_locked
        periods.assert_period_open(date(2024, 3, 1))
