"""Bank statement reconciliation using the cleared-balance equation."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    CandidateItem,
    ReconciliationItem,
    ReconciliationItemType,
    ReconciliationSummary,
)
from smb_ledger.domain.value_objects import BALANCE_TOLERANCE, AccountType, to_decimal
from smb_ledger.exceptions import (
    AlreadyReconciledError,
    BankTransactionNotFoundError,
    InvalidBankAccountError,
    JournalEntryNotFoundError,
    ReconciliationCompletedError,
    ReconciliationInProgressError,
    ReconciliationNotBalancedError,
    ReconciliationNotFoundError,
    UnknownAccountError,
)
from smb_ledger.logging_config import get_logger
from smb_ledger.repositories.interfaces import (
    AccountRepository,
    BankTransactionRepository,
    JournalEntryRepository,
    ReconciliationRepository,
    TransactionManager,
)
from smb_ledger.services.interfaces import ReconciliationService

logger = get_logger(__name__)


class ReconciliationServiceImpl(ReconciliationService):
    """Implementation of ReconciliationService for bank statements.

    Cleared balance:
    - ClearedDeposits = sum of cleared amounts above zero
    - ClearedPayments = sum of |amount| over cleared amounts below zero
    - ClearedBalance = BeginningBalance + ClearedDeposits - ClearedPayments
    - Difference = StatementEndingBalance - ClearedBalance

    A reconciliation is balanced when |Difference| is below the tolerance,
    and only a balanced reconciliation can be completed.
    """

    def __init__(
        self,
        reconciliation_repo: ReconciliationRepository,
        bank_transaction_repo: BankTransactionRepository,
        journal_repo: JournalEntryRepository,
        account_repo: AccountRepository,
        transactions: TransactionManager,
        tolerance: Decimal = BALANCE_TOLERANCE,
    ) -> None:
        self._reconciliation_repo = reconciliation_repo
        self._bank_transaction_repo = bank_transaction_repo
        self._journal_repo = journal_repo
        self._account_repo = account_repo
        self._transactions = transactions
        self._tolerance = tolerance

    def import_bank_transactions(
        self, bank_account_id: UUID, records: Iterable[BankTransaction]
    ) -> list[BankTransaction]:
        """Store already-normalized bank records against a bank account."""
        self._get_bank_account(bank_account_id)
        imported: list[BankTransaction] = []
        with self._transactions.transaction():
            for record in records:
                record.bank_account_id = bank_account_id
                self._bank_transaction_repo.add(record)
                imported.append(record)

        logger.info(
            "bank_transactions_imported",
            bank_account_id=str(bank_account_id),
            count=len(imported),
        )
        return imported

    def start(
        self,
        bank_account_id: UUID,
        statement_date: date,
        statement_ending_balance: Decimal,
        beginning_balance: Decimal | None = None,
    ) -> BankReconciliation:
        """Open a reconciliation for one statement.

        The beginning balance defaults to the ending balance of the last
        completed reconciliation for the account, or zero for the first one.

        Raises:
            UnknownAccountError: If the bank account doesn't exist
            InvalidBankAccountError: If it isn't an active asset account
            ReconciliationInProgressError: If the account already has one open
        """
        self._get_bank_account(bank_account_id)

        with self._transactions.transaction():
            current = self._reconciliation_repo.get_in_progress(bank_account_id)
            if current is not None:
                raise ReconciliationInProgressError(bank_account_id, current.id)

            if beginning_balance is None:
                previous = self._reconciliation_repo.get_last_completed(bank_account_id)
                beginning_balance = (
                    previous.statement_ending_balance if previous else Decimal("0")
                )

            reconciliation = BankReconciliation(
                bank_account_id=bank_account_id,
                statement_date=statement_date,
                statement_ending_balance=to_decimal(statement_ending_balance),
                beginning_balance=to_decimal(beginning_balance),
            )
            self._reconciliation_repo.add(reconciliation)

        logger.info(
            "reconciliation_started",
            reconciliation_id=str(reconciliation.id),
            bank_account_id=str(bank_account_id),
            statement_date=statement_date.isoformat(),
            beginning_balance=str(reconciliation.beginning_balance),
            statement_ending_balance=str(reconciliation.statement_ending_balance),
        )
        return reconciliation

    def get_reconciliation(self, reconciliation_id: UUID) -> BankReconciliation:
        reconciliation = self._reconciliation_repo.get(reconciliation_id)
        if reconciliation is None:
            raise ReconciliationNotFoundError(reconciliation_id)
        return reconciliation

    def candidate_items(self, reconciliation_id: UUID) -> list[CandidateItem]:
        """Transactions that can be cleared against the statement.

        Unreconciled bank transactions and posted journal lines on the bank
        account, dated on or before the statement date, minus lines already
        cleared by an earlier completed reconciliation. Signed amounts are
        positive for deposits and negative for payments.
        """
        reconciliation = self.get_reconciliation(reconciliation_id)
        cleared = {
            (item.transaction_type, item.transaction_id)
            for item in reconciliation.items
            if item.is_cleared
        }

        candidates: list[CandidateItem] = []
        for txn in self._bank_transaction_repo.list_unreconciled(
            reconciliation.bank_account_id, through=reconciliation.statement_date
        ):
            key = (ReconciliationItemType.BANK_TRANSACTION, txn.id)
            candidates.append(
                CandidateItem(
                    transaction_type=ReconciliationItemType.BANK_TRANSACTION,
                    transaction_id=txn.id,
                    transaction_date=txn.transaction_date,
                    description=txn.description,
                    amount=txn.amount,
                    is_cleared=key in cleared,
                )
            )

        previously_cleared = self._reconciliation_repo.cleared_transaction_ids(
            reconciliation.bank_account_id, ReconciliationItemType.JOURNAL_ENTRY
        )
        for line in self._journal_repo.list_posted_lines(
            account_id=reconciliation.bank_account_id,
            end_date=reconciliation.statement_date,
        ):
            if line.line_id in previously_cleared:
                continue
            key = (ReconciliationItemType.JOURNAL_ENTRY, line.line_id)
            candidates.append(
                CandidateItem(
                    transaction_type=ReconciliationItemType.JOURNAL_ENTRY,
                    transaction_id=line.line_id,
                    transaction_date=line.transaction_date,
                    description=line.description or line.reference,
                    amount=line.signed_amount,
                    is_cleared=key in cleared,
                )
            )

        candidates.sort(key=lambda c: c.transaction_date)
        return candidates

    def set_cleared(
        self,
        reconciliation_id: UUID,
        transaction_type: ReconciliationItemType,
        transaction_id: UUID,
        is_cleared: bool,
    ) -> ReconciliationItem:
        """Set one item's cleared flag. Repeating the same call changes nothing.

        Only the item's own row is written; the amount is taken from the
        underlying bank transaction or journal line.
        """
        with self._transactions.transaction():
            reconciliation = self.get_reconciliation(reconciliation_id)
            if reconciliation.is_completed:
                raise ReconciliationCompletedError(reconciliation_id)

            amount = self._resolve_amount(reconciliation, transaction_type, transaction_id)
            item = self._reconciliation_repo.get_item(
                reconciliation_id, transaction_type, transaction_id
            )
            if item is None:
                item = ReconciliationItem(
                    reconciliation_id=reconciliation_id,
                    transaction_type=transaction_type,
                    transaction_id=transaction_id,
                    amount=amount,
                )
            item.amount = amount
            item.set_cleared(is_cleared)
            self._reconciliation_repo.save_item(item)

        logger.debug(
            "reconciliation_item_toggled",
            reconciliation_id=str(reconciliation_id),
            transaction_type=transaction_type.value,
            transaction_id=str(transaction_id),
            is_cleared=is_cleared,
        )
        return item

    def summary(self, reconciliation_id: UUID) -> ReconciliationSummary:
        reconciliation = self.get_reconciliation(reconciliation_id)
        return reconciliation.summarize(self._tolerance)

    def complete(self, reconciliation_id: UUID) -> BankReconciliation:
        """Complete a balanced reconciliation.

        Items are re-read inside the transaction so the balance check runs
        against the current cleared set, not a stale one.

        Raises:
            ReconciliationNotFoundError: If the reconciliation doesn't exist
            ReconciliationCompletedError: If it is already completed
            ReconciliationNotBalancedError: If |Difference| is not below tolerance
        """
        with self._transactions.transaction():
            reconciliation = self.get_reconciliation(reconciliation_id)
            if reconciliation.is_completed:
                raise ReconciliationCompletedError(reconciliation_id)

            summary = reconciliation.summarize(self._tolerance)
            if not summary.is_balanced:
                raise ReconciliationNotBalancedError(
                    reconciliation_id,
                    summary.statement_ending_balance,
                    summary.cleared_balance,
                    summary.difference,
                )

            reconciliation.mark_completed()
            self._reconciliation_repo.update(reconciliation)
            self._bank_transaction_repo.mark_reconciled(
                [
                    item.transaction_id
                    for item in reconciliation.items
                    if item.is_cleared
                    and item.transaction_type == ReconciliationItemType.BANK_TRANSACTION
                ],
                reconciliation_id,
            )

        logger.info(
            "reconciliation_completed",
            reconciliation_id=str(reconciliation_id),
            bank_account_id=str(reconciliation.bank_account_id),
            cleared_balance=str(summary.cleared_balance),
            cleared_count=summary.cleared_count,
        )
        return reconciliation

    def _get_bank_account(self, account_id: UUID) -> Account:
        account = self._account_repo.get(account_id)
        if account is None:
            raise UnknownAccountError(account_id)
        if account.account_type != AccountType.ASSET:
            raise InvalidBankAccountError(
                account_id, f"{account.code} is a {account.account_type.value} account"
            )
        if not account.is_active:
            raise InvalidBankAccountError(account_id, f"{account.code} is inactive")
        return account

    def _resolve_amount(
        self,
        reconciliation: BankReconciliation,
        transaction_type: ReconciliationItemType,
        transaction_id: UUID,
    ) -> Decimal:
        """Signed amount of a clearable transaction on the reconciled account.

        Anything a completed reconciliation already cleared is rejected, so no
        transaction counts toward two statements.
        """
        if transaction_type == ReconciliationItemType.BANK_TRANSACTION:
            txn = self._bank_transaction_repo.get(transaction_id)
            if txn is None or txn.bank_account_id != reconciliation.bank_account_id:
                raise BankTransactionNotFoundError(transaction_id)
            if txn.is_reconciled and txn.reconciliation_id != reconciliation.id:
                raise AlreadyReconciledError(
                    transaction_type.value, transaction_id, txn.reconciliation_id
                )
            return txn.amount

        line = self._journal_repo.get_posted_line(transaction_id)
        if line is None or line.account_id != reconciliation.bank_account_id:
            raise JournalEntryNotFoundError(transaction_id)
        if transaction_id in self._reconciliation_repo.cleared_transaction_ids(
            reconciliation.bank_account_id, transaction_type
        ):
            raise AlreadyReconciledError(transaction_type.value, transaction_id)
        return line.signed_amount
