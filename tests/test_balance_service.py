from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.value_objects import AccountType, BalanceMode, Currency
from smb_ledger.exceptions import UnknownAccountError


@pytest.fixture
def balances(container):
    return container.balance_service


@pytest.fixture
def posted(container, chart, make_entry):
    """A year of activity: 10,000 sales, 2,500 services, 6,000 rent, 500 supplies."""
    ledger = container.ledger_service
    ledger.post_entry(make_entry(date(2024, 1, 15), chart["cash"], chart["sales"], "10000"))
    ledger.post_entry(make_entry(date(2024, 3, 10), chart["ar"], chart["services"], "2500"))
    ledger.post_entry(make_entry(date(2024, 6, 30), chart["rent"], chart["cash"], "6000"))
    ledger.post_entry(make_entry(date(2024, 9, 1), chart["supplies"], chart["cash"], "500"))
    return chart


class TestAccountBalance:
    def test_debit_normal_account(self, balances, posted):
        balance = balances.account_balance(posted["cash"].id)

        assert balance.amount == Decimal("3500.00")
        assert balance.currency == Currency.USD

    def test_credit_normal_account_is_positive(self, balances, posted):
        assert balances.account_balance(posted["sales"].id).amount == Decimal("10000.00")

    def test_as_of_is_inclusive(self, balances, posted):
        assert balances.account_balance(posted["cash"].id, date(2024, 6, 29)).amount == Decimal(
            "10000.00"
        )
        assert balances.account_balance(posted["cash"].id, date(2024, 6, 30)).amount == Decimal(
            "4000.00"
        )

    def test_range(self, balances, posted):
        balance = balances.account_balance_for_range(
            posted["cash"].id, date(2024, 6, 1), date(2024, 12, 31)
        )

        assert balance.amount == Decimal("-6500.00")

    def test_unknown_account(self, balances):
        with pytest.raises(UnknownAccountError):
            balances.account_balance(uuid4())

    def test_account_without_lines_is_zero(self, balances, posted):
        assert balances.account_balance(posted["retained"].id).amount == Decimal("0")


class TestNetIncome:
    def test_revenue_minus_expenses(self, balances, posted):
        net_income = balances.net_income(date(2024, 1, 1), date(2024, 12, 31))

        assert net_income.amount == Decimal("6000.00")

    def test_window_limits_activity(self, balances, posted):
        net_income = balances.net_income(date(2024, 1, 1), date(2024, 3, 31))

        assert net_income.amount == Decimal("12500.00")


class TestBalanceModes:
    @pytest.fixture
    def closed(self, container, posted):
        entry = JournalEntry(
            transaction_date=date(2024, 12, 31),
            lines=[
                JournalEntryLine.debit_line(posted["sales"].id, Decimal("10000")),
                JournalEntryLine.debit_line(posted["services"].id, Decimal("2500")),
                JournalEntryLine.credit_line(posted["rent"].id, Decimal("6000")),
                JournalEntryLine.credit_line(posted["supplies"].id, Decimal("500")),
                JournalEntryLine.credit_line(posted["retained"].id, Decimal("6000")),
            ],
            is_closing_entry=True,
        )
        container.ledger_service.post_entry(entry)
        return posted

    def test_operating_mode_ignores_closing_entries(self, balances, closed):
        balance = balances.account_balance(closed["sales"].id, mode=BalanceMode.OPERATING)

        assert balance.amount == Decimal("10000.00")

    def test_cumulative_mode_includes_closing_entries(self, balances, closed):
        balance = balances.account_balance(closed["sales"].id, mode=BalanceMode.CUMULATIVE)

        assert balance.amount == Decimal("0")

    def test_net_income_defaults_to_operating(self, balances, closed):
        start, end = date(2024, 1, 1), date(2024, 12, 31)

        assert balances.net_income(start, end).amount == Decimal("6000.00")
        assert balances.net_income(start, end, BalanceMode.CUMULATIVE).amount == Decimal("0")

    def test_retained_earnings_carries_net_income(self, balances, closed):
        assert balances.account_balance(closed["retained"].id).amount == Decimal("6000.00")


class TestAccountBalancesByType:
    def test_sorted_by_code(self, balances, posted):
        result = balances.account_balances_by_type(AccountType.REVENUE)

        assert [b.code for b in result] == ["4000", "4100"]
        assert [b.balance for b in result] == [Decimal("10000.00"), Decimal("2500.00")]

    def test_negligible_balances_skipped(self, balances, posted):
        result = balances.account_balances_by_type(AccountType.EQUITY)

        assert result == []

    def test_window(self, balances, posted):
        result = balances.account_balances_by_type(
            AccountType.EXPENSE, date(2024, 7, 1), date(2024, 12, 31)
        )

        assert [b.code for b in result] == ["6100"]


class TestTrialBalance:
    def test_balanced_columns(self, balances, posted):
        report = balances.trial_balance()

        assert report.is_balanced
        assert report.total_debits == Decimal("12500.00")
        rows = {row.code: row for row in report.rows}
        assert rows["1000"].debit == Decimal("3500.00")
        assert rows["4000"].credit == Decimal("10000.00")
        assert rows["4000"].debit == Decimal("0")
        assert "3100" not in rows

    def test_as_of(self, balances, posted):
        report = balances.trial_balance(date(2024, 1, 31))

        assert report.total_debits == Decimal("10000.00")
        assert report.total_credits == Decimal("10000.00")
