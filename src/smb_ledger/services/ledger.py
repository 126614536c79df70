"""LedgerService implementation for double-entry bookkeeping."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine
from smb_ledger.domain.value_objects import JournalEntryStatus
from smb_ledger.exceptions import (
    AccountInUseError,
    DuplicateAccountCodeError,
    EmptyEntryError,
    EntryAlreadyReversedError,
    EntryImmutableError,
    EntryNotPostedError,
    InactiveAccountError,
    InvalidLineError,
    JournalEntryNotFoundError,
    MixedCurrencyError,
    UnbalancedEntryError,
    UnknownAccountError,
)
from smb_ledger.logging_config import get_logger
from smb_ledger.repositories.interfaces import (
    AccountRepository,
    JournalEntryRepository,
    TransactionManager,
)
from smb_ledger.services.interfaces import AccountingPeriodService, LedgerService

logger = get_logger(__name__)


class LedgerServiceImpl(LedgerService):
    """Implementation of LedgerService for double-entry accounting."""

    def __init__(
        self,
        journal_repo: JournalEntryRepository,
        account_repo: AccountRepository,
        period_service: AccountingPeriodService,
        transactions: TransactionManager,
    ) -> None:
        self._journal_repo = journal_repo
        self._account_repo = account_repo
        self._period_service = period_service
        self._transactions = transactions

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, account: Account) -> Account:
        with self._transactions.transaction():
            if self._account_repo.get_by_code(account.code) is not None:
                raise DuplicateAccountCodeError(account.code)
            self._account_repo.add(account)
        logger.info(
            "account_created",
            account_id=str(account.id),
            code=account.code,
            account_type=account.account_type.value,
        )
        return account

    def update_account(self, account: Account) -> Account:
        """Persist changes to an account.

        Code and type are frozen once a posted line references the account;
        name and is_active may always change.

        Raises:
            UnknownAccountError: If the account doesn't exist
            AccountInUseError: If code or type changed on a referenced account
            DuplicateAccountCodeError: If the new code belongs to another account
        """
        with self._transactions.transaction():
            current = self.get_account(account.id)
            referenced = self._account_repo.has_posted_lines(account.id)
            if account.code != current.code:
                if referenced:
                    raise AccountInUseError(account.id, "code")
                other = self._account_repo.get_by_code(account.code)
                if other is not None and other.id != account.id:
                    raise DuplicateAccountCodeError(account.code)
            if account.account_type != current.account_type and referenced:
                raise AccountInUseError(account.id, "account_type")
            self._account_repo.update(account)
        logger.info("account_updated", account_id=str(account.id), code=account.code)
        return account

    def get_account(self, account_id: UUID) -> Account:
        account = self._account_repo.get(account_id)
        if account is None:
            raise UnknownAccountError(account_id)
        return account

    def list_accounts(self) -> list[Account]:
        return list(self._account_repo.list_all())

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post_entry(self, entry: JournalEntry) -> UUID:
        """Validate and post a journal entry.

        The header and every line persist in one transaction, or nothing does.

        Args:
            entry: The entry to post; a draft already saved may be passed too

        Returns:
            The posted entry's id

        Raises:
            EntryImmutableError: If the entry is already posted or voided
            EmptyEntryError: If the entry has fewer than two lines
            InvalidLineError: If a line is negative or has not exactly one side set
            MixedCurrencyError: If the lines use more than one currency
            UnknownAccountError: If any line references a missing account
            InactiveAccountError: If any line references an inactive account,
                other than a revenue or expense account in a closing entry
            UnbalancedEntryError: If debits don't equal credits
            PeriodLockedError: If the transaction date is in a locked period
        """
        with self._transactions.transaction():
            stored = self._journal_repo.get(entry.id)
            if stored is not None and stored.status != JournalEntryStatus.DRAFT:
                raise EntryImmutableError(entry.id, stored.status.value)

            self.validate_entry(entry)
            entry.mark_posted()
            try:
                if stored is None:
                    self._journal_repo.add(entry)
                else:
                    self._journal_repo.update(entry)
            except Exception:
                # Rolled back, so the caller's entry is still a draft.
                entry.status = JournalEntryStatus.DRAFT
                entry.posted_at = None
                raise

        logger.info(
            "journal_entry_posted",
            entry_id=str(entry.id),
            reference=entry.reference,
            transaction_date=entry.transaction_date.isoformat(),
            total=str(entry.total_debits.amount),
            is_closing_entry=entry.is_closing_entry,
        )
        return entry.id

    def validate_entry(self, entry: JournalEntry) -> None:
        """Run every posting check without writing anything."""
        if entry.status != JournalEntryStatus.DRAFT:
            raise EntryImmutableError(entry.id, entry.status.value)

        if len(entry.lines) < 2:
            raise EmptyEntryError(len(entry.lines))

        currencies: set[str] = set()
        for line in entry.lines:
            self._validate_line(line)
            currencies.add(line.debit.currency.value)
            currencies.add(line.credit.currency.value)
        if len(currencies) > 1:
            raise MixedCurrencyError(sorted(currencies))

        for account_id in self._ordered_account_ids(entry):
            account = self._account_repo.get(account_id)
            if account is None:
                raise UnknownAccountError(account_id)
            if not account.is_active and not (
                entry.is_closing_entry and account.is_income_statement_account
            ):
                raise InactiveAccountError(account.id, account.code)

        debit_total = entry.total_debits.amount
        credit_total = entry.total_credits.amount
        if debit_total != credit_total:
            raise UnbalancedEntryError(debit_total, credit_total)

        self._period_service.assert_period_open(entry.transaction_date)

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def save_draft(self, entry: JournalEntry) -> UUID:
        """Store an entry without posting it. Drafts may be unbalanced."""
        if entry.status != JournalEntryStatus.DRAFT:
            raise EntryImmutableError(entry.id, entry.status.value)
        with self._transactions.transaction():
            self._require_accounts(entry)
            self._journal_repo.add(entry)
        logger.info("journal_entry_draft_saved", entry_id=str(entry.id))
        return entry.id

    def update_draft(self, entry: JournalEntry) -> None:
        with self._transactions.transaction():
            stored = self.get_entry(entry.id)
            if stored.status != JournalEntryStatus.DRAFT:
                raise EntryImmutableError(entry.id, stored.status.value)
            if entry.status != JournalEntryStatus.DRAFT:
                raise EntryImmutableError(entry.id, entry.status.value)
            self._require_accounts(entry)
            self._journal_repo.update(entry)
        logger.info("journal_entry_draft_updated", entry_id=str(entry.id))

    def post_draft(self, entry_id: UUID) -> UUID:
        with self._transactions.transaction():
            entry = self.get_entry(entry_id)
            return self.post_entry(entry)

    def void_draft(self, entry_id: UUID) -> None:
        with self._transactions.transaction():
            entry = self.get_entry(entry_id)
            if entry.status != JournalEntryStatus.DRAFT:
                raise EntryImmutableError(entry_id, entry.status.value)
            entry.mark_voided()
            self._journal_repo.update(entry)
        logger.info("journal_entry_voided", entry_id=str(entry_id))

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def reverse_entry(
        self, entry_id: UUID, reversal_date: date, description: str = ""
    ) -> JournalEntry:
        """Post a new entry that swaps the debits and credits of a posted one.

        The original entry is left untouched; the reversal points back to it
        through reverses_entry_id.

        Raises:
            JournalEntryNotFoundError: If the original entry doesn't exist
            EntryNotPostedError: If the original entry is not posted
            EntryAlreadyReversedError: If a reversal was already posted
            PeriodLockedError: If reversal_date is in a locked period
        """
        with self._transactions.transaction():
            original = self.get_entry(entry_id)
            if original.status != JournalEntryStatus.POSTED:
                raise EntryNotPostedError(entry_id, original.status.value)

            existing = self._journal_repo.get_reversal(entry_id)
            if existing is not None:
                raise EntryAlreadyReversedError(entry_id, existing.id)

            lines = [
                JournalEntryLine(
                    account_id=line.account_id,
                    debit=line.credit,
                    credit=line.debit,
                    description=line.description,
                )
                for line in original.lines
            ]
            reversal = JournalEntry(
                transaction_date=reversal_date,
                lines=lines,
                reference=f"REV-{original.reference}" if original.reference else "",
                description=description or f"Reversal of {original.reference or original.id}",
                reverses_entry_id=original.id,
            )
            self.post_entry(reversal)

        logger.info(
            "journal_entry_reversed",
            entry_id=str(entry_id),
            reversal_id=str(reversal.id),
        )
        return reversal

    def get_entry(self, entry_id: UUID) -> JournalEntry:
        entry = self._journal_repo.get(entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(entry_id)
        return entry

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate_line(self, line: JournalEntryLine) -> None:
        debit = line.debit.amount
        credit = line.credit.amount
        if debit < Decimal("0") or credit < Decimal("0"):
            raise InvalidLineError(line.line_number, "amounts must not be negative")
        if debit == Decimal("0") and credit == Decimal("0"):
            raise InvalidLineError(line.line_number, "line has neither a debit nor a credit")
        if debit != Decimal("0") and credit != Decimal("0"):
            raise InvalidLineError(line.line_number, "line has both a debit and a credit")

    def _require_accounts(self, entry: JournalEntry) -> None:
        for account_id in self._ordered_account_ids(entry):
            if self._account_repo.get(account_id) is None:
                raise UnknownAccountError(account_id)

    @staticmethod
    def _ordered_account_ids(entry: JournalEntry) -> list[UUID]:
        # Line order, so the first offending line is the one reported.
        return list(dict.fromkeys(line.account_id for line in entry.lines))
