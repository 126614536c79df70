"""Balance calculator over posted journal lines.

Two query modes are supported and must be chosen explicitly by callers
that care about the difference:

- BalanceMode.OPERATING skips year-end closing entries, so revenue and
  expense accounts report the activity of the window. Closing previews and
  net income use this mode.
- BalanceMode.CUMULATIVE counts every posted entry, closing entries
  included. Year-over-year balances and the trial balance use this mode.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal
from uuid import UUID

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.journal import LedgerLine
from smb_ledger.domain.periods import AccountBalance, TrialBalance, TrialBalanceRow
from smb_ledger.domain.value_objects import (
    BALANCE_TOLERANCE,
    AccountType,
    BalanceMode,
    Money,
)
from smb_ledger.exceptions import UnknownAccountError
from smb_ledger.repositories.interfaces import AccountRepository, JournalEntryRepository
from smb_ledger.services.interfaces import BalanceService


class BalanceServiceImpl(BalanceService):
    def __init__(
        self,
        journal_repo: JournalEntryRepository,
        account_repo: AccountRepository,
        currency: str = "USD",
        balance_tolerance: Decimal = BALANCE_TOLERANCE,
    ) -> None:
        self._journal_repo = journal_repo
        self._account_repo = account_repo
        self._currency = currency
        self._tolerance = balance_tolerance

    def account_balance(
        self,
        account_id: UUID,
        as_of: date | None = None,
        mode: BalanceMode = BalanceMode.CUMULATIVE,
    ) -> Money:
        """Balance of an account through as_of (inclusive), sign-normalized by type."""
        account = self._get_account(account_id)
        lines = self._lines(account_id, None, as_of, mode)
        return Money(self._signed_total(account, lines), self._currency)

    def account_balance_for_range(
        self,
        account_id: UUID,
        start: date,
        end: date,
        mode: BalanceMode = BalanceMode.CUMULATIVE,
    ) -> Money:
        account = self._get_account(account_id)
        lines = self._lines(account_id, start, end, mode)
        return Money(self._signed_total(account, lines), self._currency)

    def net_income(
        self, start: date, end: date, mode: BalanceMode = BalanceMode.OPERATING
    ) -> Money:
        """Sum of revenue balances minus sum of expense balances over [start, end]."""
        revenue = self._total_for_type(AccountType.REVENUE, start, end, mode)
        expenses = self._total_for_type(AccountType.EXPENSE, start, end, mode)
        return Money(revenue - expenses, self._currency)

    def account_balances_by_type(
        self,
        account_type: AccountType,
        start: date | None = None,
        end: date | None = None,
        mode: BalanceMode = BalanceMode.OPERATING,
    ) -> list[AccountBalance]:
        """Non-negligible balances of every account of one type, ordered by code."""
        accounts = {a.id: a for a in self._account_repo.list_by_type(account_type)}
        if not accounts:
            return []

        totals = self._totals_by_account(start, end, mode)
        result: list[AccountBalance] = []
        for account in sorted(accounts.values(), key=lambda a: a.code):
            debits, credits = totals.get(account.id, (Decimal("0"), Decimal("0")))
            balance = account.account_type.signed_balance(debits, credits)
            if abs(balance) < self._tolerance:
                continue
            result.append(
                AccountBalance(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    account_type=account.account_type,
                    balance=balance,
                )
            )
        return result

    def trial_balance(self, as_of: date | None = None) -> TrialBalance:
        """Per-account balances in debit/credit columns, closing entries included."""
        totals = self._totals_by_account(None, as_of, BalanceMode.CUMULATIVE)
        rows: list[TrialBalanceRow] = []
        for account in self._account_repo.list_all():
            if account.id not in totals:
                continue
            debits, credits = totals[account.id]
            net = debits - credits
            if net >= 0:
                debit_col, credit_col = net, Decimal("0")
            else:
                debit_col, credit_col = Decimal("0"), -net
            rows.append(
                TrialBalanceRow(
                    account_id=account.id,
                    code=account.code,
                    name=account.name,
                    account_type=account.account_type,
                    debit=debit_col,
                    credit=credit_col,
                )
            )
        return TrialBalance(as_of=as_of, rows=rows)

    def _get_account(self, account_id: UUID) -> Account:
        account = self._account_repo.get(account_id)
        if account is None:
            raise UnknownAccountError(account_id)
        return account

    def _lines(
        self,
        account_id: UUID | None,
        start: date | None,
        end: date | None,
        mode: BalanceMode,
    ) -> list[LedgerLine]:
        return self._journal_repo.list_posted_lines(
            account_id=account_id,
            start_date=start,
            end_date=end,
            include_closing_entries=mode == BalanceMode.CUMULATIVE,
        )

    def _signed_total(self, account: Account, lines: list[LedgerLine]) -> Decimal:
        debits = sum((line.debit for line in lines), Decimal("0"))
        credits = sum((line.credit for line in lines), Decimal("0"))
        return account.account_type.signed_balance(debits, credits)

    def _totals_by_account(
        self, start: date | None, end: date | None, mode: BalanceMode
    ) -> dict[UUID, tuple[Decimal, Decimal]]:
        debits: dict[UUID, Decimal] = defaultdict(Decimal)
        credits: dict[UUID, Decimal] = defaultdict(Decimal)
        for line in self._lines(None, start, end, mode):
            debits[line.account_id] += line.debit
            credits[line.account_id] += line.credit
        return {
            account_id: (debits[account_id], credits[account_id])
            for account_id in debits.keys() | credits.keys()
        }

    def _total_for_type(
        self,
        account_type: AccountType,
        start: date,
        end: date,
        mode: BalanceMode,
    ) -> Decimal:
        accounts = {a.id: a for a in self._account_repo.list_by_type(account_type)}
        totals = self._totals_by_account(start, end, mode)
        total = Decimal("0")
        for account_id, (debits, credits) in totals.items():
            if account_id in accounts:
                total += account_type.signed_balance(debits, credits)
        return total
