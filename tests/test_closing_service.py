from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from smb_ledger.domain.value_objects import BalanceMode
from smb_ledger.exceptions import (
    AlreadyClosedError,
    InvalidRetainedEarningsAccountError,
    NoRetainedEarningsAccountSelectedError,
    PeriodLockedError,
    UnknownAccountError,
)


@pytest.fixture
def closing(container):
    return container.closing_service


@pytest.fixture
def period(container):
    return container.period_service.create_period(date(2024, 1, 1), date(2024, 12, 31))


@pytest.fixture
def activity(container, chart, make_entry, period):
    """10,000 revenue against 6,500 of expenses in fiscal 2024."""
    ledger = container.ledger_service
    ledger.post_entry(make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "10000"))
    ledger.post_entry(make_entry(date(2024, 3, 1), chart["rent"], chart["cash"], "6000"))
    ledger.post_entry(make_entry(date(2024, 4, 1), chart["supplies"], chart["cash"], "500"))
    # Outside the fiscal year; must not be closed.
    ledger.post_entry(make_entry(date(2025, 1, 5), chart["cash"], chart["sales"], "999"))
    return chart


class TestPreview:
    def test_totals(self, closing, period, activity):
        preview = closing.preview(period.id)

        assert preview.fiscal_year == 2024
        assert preview.total_revenue == Decimal("10000.00")
        assert preview.total_expenses == Decimal("6500.00")
        assert preview.net_income == Decimal("3500.00")
        assert [b.code for b in preview.expense_accounts] == ["6000", "6100"]
        assert not preview.already_closed

    def test_preview_after_close(self, closing, period, activity):
        closing.close_year(period.id, activity["retained"].id)

        preview = closing.preview(period.id)

        assert preview.already_closed
        assert preview.net_income == Decimal("3500.00")


class TestCloseYear:
    def test_posts_closing_entry(self, closing, container, period, activity):
        close = closing.close_year(period.id, activity["retained"].id, closed_by="controller")

        assert close.fiscal_year == 2024
        assert close.net_income == Decimal("3500.00")
        entry = container.ledger_service.get_entry(close.journal_entry_id)
        assert entry.is_closing_entry
        assert entry.reference == "YE-CLOSE-2024"
        assert entry.transaction_date == date(2024, 12, 31)
        assert entry.created_by == "controller"
        assert entry.total_debits.amount == Decimal("10000.00")
        assert entry.total_credits.amount == Decimal("10000.00")
        retained = [line for line in entry.lines if line.account_id == activity["retained"].id]
        assert len(retained) == 1
        assert retained[0].credit.amount == Decimal("3500.00")

    def test_zeroes_income_statement_accounts(self, closing, container, period, activity):
        closing.close_year(period.id, activity["retained"].id)
        balances = container.balance_service
        end = date(2024, 12, 31)

        assert balances.account_balance(activity["sales"].id, end).amount == Decimal("0")
        assert balances.account_balance(activity["rent"].id, end).amount == Decimal("0")
        assert balances.account_balance(activity["retained"].id).amount == Decimal("3500.00")
        assert balances.account_balance(
            activity["sales"].id, end, BalanceMode.OPERATING
        ).amount == Decimal("10000.00")

    def test_trial_balance_stays_balanced(self, closing, container, period, activity):
        closing.close_year(period.id, activity["retained"].id)

        report = container.balance_service.trial_balance(date(2024, 12, 31))

        assert report.is_balanced
        assert {row.code for row in report.rows} == {"1000", "3100"}

    def test_net_loss_debits_retained_earnings(self, closing, container, chart, make_entry, period):
        ledger = container.ledger_service
        ledger.post_entry(make_entry(date(2024, 2, 1), chart["cash"], chart["sales"], "1000"))
        ledger.post_entry(make_entry(date(2024, 3, 1), chart["rent"], chart["cash"], "1500"))

        close = closing.close_year(period.id, chart["retained"].id)

        assert close.net_income == Decimal("-500.00")
        entry = ledger.get_entry(close.journal_entry_id)
        retained = next(line for line in entry.lines if line.account_id == chart["retained"].id)
        assert retained.debit.amount == Decimal("500.00")
        assert container.balance_service.account_balance(
            chart["retained"].id
        ).amount == Decimal("-500.00")

    def test_no_activity_records_close_without_entry(self, closing, chart, period):
        close = closing.close_year(period.id, chart["retained"].id)

        assert close.journal_entry_id is None
        assert close.net_income == Decimal("0")
        assert closing.get_close(2024).id == close.id

    def test_second_close_rejected(self, closing, container, period, activity):
        first = closing.close_year(period.id, activity["retained"].id)

        with pytest.raises(AlreadyClosedError) as exc_info:
            closing.close_year(period.id, activity["retained"].id)

        assert exc_info.value.context["close_id"] == str(first.id)
        assert len(closing.list_closes()) == 1

    def test_retained_earnings_required(self, closing, period, activity):
        with pytest.raises(NoRetainedEarningsAccountSelectedError):
            closing.close_year(period.id, None)

    def test_retained_earnings_must_be_equity(self, closing, container, period, activity):
        with pytest.raises(InvalidRetainedEarningsAccountError):
            closing.close_year(period.id, activity["cash"].id)

        assert closing.get_close(2024) is None
        assert container.balance_service.account_balance(
            activity["sales"].id
        ).amount == Decimal("10999.00")

    def test_inactive_retained_earnings_rejected(self, closing, container, period, activity):
        retained = container.ledger_service.get_account(activity["retained"].id)
        retained.deactivate()
        container.ledger_service.update_account(retained)

        with pytest.raises(InvalidRetainedEarningsAccountError):
            closing.close_year(period.id, retained.id)

    def test_unknown_retained_earnings(self, closing, period, activity):
        with pytest.raises(UnknownAccountError):
            closing.close_year(period.id, uuid4())

    def test_lock_period(self, closing, container, chart, make_entry, period, activity):
        closing.close_year(period.id, activity["retained"].id, lock_period=True)

        assert container.period_service.get_period(period.id).is_locked
        with pytest.raises(PeriodLockedError):
            container.ledger_service.post_entry(
                make_entry(date(2024, 12, 15), chart["cash"], chart["sales"], "1")
            )

    def test_period_left_open_by_default(self, closing, container, period, activity):
        closing.close_year(period.id, activity["retained"].id)

        assert not container.period_service.get_period(period.id).is_locked

    def test_locked_period_cannot_be_closed(self, closing, container, period, activity):
        container.period_service.lock_period(period.id)

        with pytest.raises(PeriodLockedError):
            closing.close_year(period.id, activity["retained"].id)

        assert closing.get_close(2024) is None

    def test_deactivated_revenue_account_is_still_closed(
        self, closing, container, make_entry, period, activity
    ):
        ledger = container.ledger_service
        ledger.post_entry(
            make_entry(date(2024, 6, 1), activity["cash"], activity["services"], "500")
        )
        services = ledger.get_account(activity["services"].id)
        services.deactivate()
        ledger.update_account(services)

        close = closing.close_year(period.id, activity["retained"].id)

        assert close.total_revenue == Decimal("10500.00")
        assert closing.get_close(2024) is not None
        balances = container.balance_service
        assert balances.account_balance(services.id).amount == Decimal("0")
        entry = ledger.get_entry(close.journal_entry_id)
        closed = [line for line in entry.lines if line.account_id == services.id]
        assert closed[0].debit.amount == Decimal("500.00")

    def test_deactivated_expense_account_is_still_closed(
        self, closing, container, period, activity
    ):
        ledger = container.ledger_service
        supplies = ledger.get_account(activity["supplies"].id)
        supplies.deactivate()
        ledger.update_account(supplies)

        close = closing.close_year(period.id, activity["retained"].id)

        assert close.net_income == Decimal("3500.00")
        assert container.balance_service.account_balance(supplies.id).amount == Decimal("0")
