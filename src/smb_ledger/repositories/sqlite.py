"""SQLite implementations of repository interfaces."""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from uuid import UUID

from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import (
    NON_ALLOCATABLE_DOCUMENT_STATUSES,
    AllocatableDocument,
    Allocation,
    AllocationSource,
    DocumentKind,
    DocumentStatus,
    SourceKind,
    SourceStatus,
)
from smb_ledger.domain.journal import JournalEntry, JournalEntryLine, LedgerLine
from smb_ledger.domain.periods import AccountingPeriod, YearEndCloseEntry
from smb_ledger.domain.reconciliation import (
    BankReconciliation,
    BankTransaction,
    ReconciliationItem,
    ReconciliationItemType,
    ReconciliationStatus,
)
from smb_ledger.domain.value_objects import AccountType, JournalEntryStatus, Money
from smb_ledger.exceptions import ConcurrentModificationError
from smb_ledger.repositories.interfaces import (
    AccountingPeriodRepository,
    AccountRepository,
    AllocationRepository,
    AllocationSourceRepository,
    BankTransactionRepository,
    DocumentRepository,
    JournalEntryRepository,
    ReconciliationRepository,
    TransactionManager,
    YearEndCloseRepository,
)


def _uuid_or_none(value: str | None) -> UUID | None:
    return UUID(value) if value else None


def _date_or_none(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _datetime_or_none(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _iso_or_none(value: date | datetime | None) -> str | None:
    return value.isoformat() if value else None


def _str_or_none(value: UUID | None) -> str | None:
    return str(value) if value else None


class SQLiteDatabase(TransactionManager):
    """SQLite database connection manager.

    The connection runs in autocommit mode; every multi-statement write goes
    through transaction(), which issues BEGIN IMMEDIATE at the outermost
    level and a SAVEPOINT for nested scopes.
    """

    def __init__(
        self, path: str | Path = ":memory:", check_same_thread: bool = True
    ) -> None:
        self._path = str(path)
        self._check_same_thread = check_same_thread
        self._connection: sqlite3.Connection | None = None
        self._lock = threading.RLock()
        self._depth = 0

    @property
    def path(self) -> str:
        return self._path

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._connection is None:
            self._connection = sqlite3.connect(
                self._path,
                check_same_thread=self._check_same_thread,
                isolation_level=None,
            )
            self._connection.row_factory = sqlite3.Row
            self._connection.execute("PRAGMA foreign_keys = ON")
        return self._connection

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        conn = self.get_connection()
        with self._lock:
            savepoint = f"sp_{self._depth}" if self._depth else None
            if savepoint is None:
                conn.execute("BEGIN IMMEDIATE")
            else:
                conn.execute(f"SAVEPOINT {savepoint}")
            self._depth += 1
            try:
                yield conn
            except BaseException:
                self._depth -= 1
                if savepoint is None:
                    conn.execute("ROLLBACK")
                else:
                    conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
                    conn.execute(f"RELEASE SAVEPOINT {savepoint}")
                raise
            self._depth -= 1
            if savepoint is None:
                conn.execute("COMMIT")
            else:
                conn.execute(f"RELEASE SAVEPOINT {savepoint}")

    def initialize(self) -> None:
        """Create all database tables."""
        conn = self.get_connection()
        conn.executescript(
            """
            -- Chart of accounts
            CREATE TABLE IF NOT EXISTS accounts (
                id TEXT PRIMARY KEY,
                code TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                account_type TEXT NOT NULL,
                is_active INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            -- Journal entries
            CREATE TABLE IF NOT EXISTS journal_entries (
                id TEXT PRIMARY KEY,
                reference TEXT NOT NULL DEFAULT '',
                transaction_date TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                posted_at TEXT,
                is_closing_entry INTEGER NOT NULL DEFAULT 0,
                reverses_entry_id TEXT,
                FOREIGN KEY (reverses_entry_id) REFERENCES journal_entries(id)
            );
            CREATE INDEX IF NOT EXISTS idx_journal_entries_date ON journal_entries(transaction_date);
            CREATE INDEX IF NOT EXISTS idx_journal_entries_reverses ON journal_entries(reverses_entry_id);

            -- Journal entry lines
            CREATE TABLE IF NOT EXISTS journal_entry_lines (
                id TEXT PRIMARY KEY,
                journal_entry_id TEXT NOT NULL,
                account_id TEXT NOT NULL,
                line_number INTEGER NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                debit_amount TEXT NOT NULL,
                credit_amount TEXT NOT NULL,
                currency TEXT NOT NULL,
                FOREIGN KEY (journal_entry_id) REFERENCES journal_entries(id) ON DELETE CASCADE,
                FOREIGN KEY (account_id) REFERENCES accounts(id)
            );
            CREATE INDEX IF NOT EXISTS idx_lines_entry ON journal_entry_lines(journal_entry_id);
            CREATE INDEX IF NOT EXISTS idx_lines_account ON journal_entry_lines(account_id);

            -- Accounting periods
            CREATE TABLE IF NOT EXISTS accounting_periods (
                id TEXT PRIMARY KEY,
                fiscal_year_start TEXT NOT NULL,
                fiscal_year_end TEXT NOT NULL,
                is_locked INTEGER NOT NULL DEFAULT 0,
                closing_date TEXT,
                closed_by TEXT,
                closed_at TEXT,
                created_at TEXT NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_periods_dates ON accounting_periods(fiscal_year_start, fiscal_year_end);

            -- Year-end closes; one per fiscal year
            CREATE TABLE IF NOT EXISTS year_end_closes (
                id TEXT PRIMARY KEY,
                fiscal_year INTEGER NOT NULL UNIQUE,
                period_id TEXT NOT NULL,
                close_date TEXT NOT NULL,
                total_revenue TEXT NOT NULL,
                total_expenses TEXT NOT NULL,
                net_income TEXT NOT NULL,
                retained_earnings_account_id TEXT NOT NULL,
                journal_entry_id TEXT,
                created_by TEXT NOT NULL,
                created_at TEXT NOT NULL,
                FOREIGN KEY (period_id) REFERENCES accounting_periods(id),
                FOREIGN KEY (retained_earnings_account_id) REFERENCES accounts(id),
                FOREIGN KEY (journal_entry_id) REFERENCES journal_entries(id)
            );

            -- Invoices and bills
            CREATE TABLE IF NOT EXISTS documents (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                number TEXT NOT NULL DEFAULT '',
                party_id TEXT,
                total_amount TEXT NOT NULL,
                amount_paid TEXT NOT NULL,
                status TEXT NOT NULL,
                issue_date TEXT,
                due_date TEXT,
                control_account_id TEXT,
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                FOREIGN KEY (control_account_id) REFERENCES accounts(id)
            );
            CREATE INDEX IF NOT EXISTS idx_documents_party ON documents(party_id);

            -- Payments, deposits, credit memos, vendor credits
            CREATE TABLE IF NOT EXISTS allocation_sources (
                id TEXT PRIMARY KEY,
                kind TEXT NOT NULL,
                number TEXT NOT NULL DEFAULT '',
                party_id TEXT,
                amount TEXT NOT NULL,
                amount_applied TEXT NOT NULL,
                status TEXT NOT NULL,
                received_date TEXT,
                offset_account_id TEXT,
                version INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL,
                FOREIGN KEY (offset_account_id) REFERENCES accounts(id)
            );

            -- Allocations
            CREATE TABLE IF NOT EXISTS allocations (
                id TEXT PRIMARY KEY,
                source_id TEXT NOT NULL,
                target_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                allocation_date TEXT NOT NULL,
                journal_entry_id TEXT,
                memo TEXT NOT NULL DEFAULT '',
                created_at TEXT NOT NULL,
                FOREIGN KEY (source_id) REFERENCES allocation_sources(id),
                FOREIGN KEY (target_id) REFERENCES documents(id),
                FOREIGN KEY (journal_entry_id) REFERENCES journal_entries(id)
            );
            CREATE INDEX IF NOT EXISTS idx_allocations_source ON allocations(source_id);
            CREATE INDEX IF NOT EXISTS idx_allocations_target ON allocations(target_id);

            -- Normalized bank-feed records
            CREATE TABLE IF NOT EXISTS bank_transactions (
                id TEXT PRIMARY KEY,
                bank_account_id TEXT NOT NULL,
                transaction_date TEXT NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                external_id TEXT,
                is_reconciled INTEGER NOT NULL DEFAULT 0,
                reconciliation_id TEXT,
                created_at TEXT NOT NULL,
                FOREIGN KEY (bank_account_id) REFERENCES accounts(id)
            );
            CREATE INDEX IF NOT EXISTS idx_bank_transactions_account ON bank_transactions(bank_account_id, transaction_date);

            -- Bank reconciliations
            CREATE TABLE IF NOT EXISTS bank_reconciliations (
                id TEXT PRIMARY KEY,
                bank_account_id TEXT NOT NULL,
                statement_date TEXT NOT NULL,
                statement_ending_balance TEXT NOT NULL,
                beginning_balance TEXT NOT NULL,
                status TEXT NOT NULL,
                created_at TEXT NOT NULL,
                completed_at TEXT,
                FOREIGN KEY (bank_account_id) REFERENCES accounts(id)
            );
            CREATE INDEX IF NOT EXISTS idx_reconciliations_account ON bank_reconciliations(bank_account_id, status);

            -- Reconciliation items
            CREATE TABLE IF NOT EXISTS reconciliation_items (
                id TEXT PRIMARY KEY,
                reconciliation_id TEXT NOT NULL,
                transaction_type TEXT NOT NULL,
                transaction_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                is_cleared INTEGER NOT NULL DEFAULT 0,
                cleared_at TEXT,
                UNIQUE(reconciliation_id, transaction_type, transaction_id),
                FOREIGN KEY (reconciliation_id) REFERENCES bank_reconciliations(id) ON DELETE CASCADE
            );
            """
        )

    def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            self._connection.close()
            self._connection = None


class SQLiteAccountRepository(AccountRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, account: Account) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO accounts (id, code, name, account_type, is_active, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    str(account.id),
                    account.code,
                    account.name,
                    account.account_type.value,
                    1 if account.is_active else 0,
                    account.created_at.isoformat(),
                ),
            )

    def get(self, account_id: UUID) -> Account | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM accounts WHERE id = ?", (str(account_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    def get_by_code(self, code: str) -> Account | None:
        conn = self._db.get_connection()
        row = conn.execute("SELECT * FROM accounts WHERE code = ?", (code,)).fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    def list_all(self) -> Iterable[Account]:
        conn = self._db.get_connection()
        rows = conn.execute("SELECT * FROM accounts ORDER BY code").fetchall()
        return [self._row_to_account(row) for row in rows]

    def list_by_type(self, account_type: AccountType) -> Iterable[Account]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM accounts WHERE account_type = ? ORDER BY code",
            (account_type.value,),
        ).fetchall()
        return [self._row_to_account(row) for row in rows]

    def update(self, account: Account) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE accounts SET
                    code = ?,
                    name = ?,
                    account_type = ?,
                    is_active = ?
                WHERE id = ?
                """,
                (
                    account.code,
                    account.name,
                    account.account_type.value,
                    1 if account.is_active else 0,
                    str(account.id),
                ),
            )

    def has_posted_lines(self, account_id: UUID) -> bool:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT 1 FROM journal_entry_lines l
            JOIN journal_entries e ON e.id = l.journal_entry_id
            WHERE l.account_id = ? AND e.status = ?
            LIMIT 1
            """,
            (str(account_id), JournalEntryStatus.POSTED.value),
        ).fetchone()
        return row is not None

    def _row_to_account(self, row: sqlite3.Row) -> Account:
        return Account(
            code=row["code"],
            name=row["name"],
            account_type=AccountType(row["account_type"]),
            id=UUID(row["id"]),
            is_active=bool(row["is_active"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteJournalEntryRepository(JournalEntryRepository):
    """SQLite implementation of JournalEntryRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, entry: JournalEntry) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO journal_entries (id, reference, transaction_date, description, status,
                                             created_by, created_at, posted_at, is_closing_entry,
                                             reverses_entry_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(entry.id),
                    entry.reference,
                    entry.transaction_date.isoformat(),
                    entry.description,
                    entry.status.value,
                    entry.created_by,
                    entry.created_at.isoformat(),
                    _iso_or_none(entry.posted_at),
                    1 if entry.is_closing_entry else 0,
                    _str_or_none(entry.reverses_entry_id),
                ),
            )
            self._insert_lines(conn, entry)

    def get(self, entry_id: UUID) -> JournalEntry | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM journal_entries WHERE id = ?", (str(entry_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    def update(self, entry: JournalEntry) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE journal_entries SET
                    reference = ?,
                    transaction_date = ?,
                    description = ?,
                    status = ?,
                    posted_at = ?,
                    is_closing_entry = ?,
                    reverses_entry_id = ?
                WHERE id = ?
                """,
                (
                    entry.reference,
                    entry.transaction_date.isoformat(),
                    entry.description,
                    entry.status.value,
                    _iso_or_none(entry.posted_at),
                    1 if entry.is_closing_entry else 0,
                    _str_or_none(entry.reverses_entry_id),
                    str(entry.id),
                ),
            )
            conn.execute(
                "DELETE FROM journal_entry_lines WHERE journal_entry_id = ?",
                (str(entry.id),),
            )
            self._insert_lines(conn, entry)

    def list_by_date_range(
        self, start_date: date | None = None, end_date: date | None = None
    ) -> Iterable[JournalEntry]:
        conn = self._db.get_connection()
        query = "SELECT * FROM journal_entries WHERE 1 = 1"
        params: list[str] = []
        if start_date is not None:
            query += " AND transaction_date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND transaction_date <= ?"
            params.append(end_date.isoformat())
        query += " ORDER BY transaction_date, created_at"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_entry(row) for row in rows]

    _LINE_SELECT = """
        SELECT l.id AS line_id, l.journal_entry_id, l.account_id, l.description,
               l.debit_amount, l.credit_amount, e.transaction_date, e.reference,
               e.is_closing_entry
        FROM journal_entry_lines l
        JOIN journal_entries e ON e.id = l.journal_entry_id
        WHERE e.status = ?
    """

    def list_posted_lines(
        self,
        account_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        include_closing_entries: bool = True,
    ) -> list[LedgerLine]:
        conn = self._db.get_connection()
        query = self._LINE_SELECT
        params: list[str] = [JournalEntryStatus.POSTED.value]

        if account_id is not None:
            query += " AND l.account_id = ?"
            params.append(str(account_id))
        if start_date is not None:
            query += " AND e.transaction_date >= ?"
            params.append(start_date.isoformat())
        if end_date is not None:
            query += " AND e.transaction_date <= ?"
            params.append(end_date.isoformat())
        if not include_closing_entries:
            query += " AND e.is_closing_entry = 0"

        query += " ORDER BY e.transaction_date, e.created_at, l.line_number"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_ledger_line(row) for row in rows]

    def get_posted_line(self, line_id: UUID) -> LedgerLine | None:
        conn = self._db.get_connection()
        row = conn.execute(
            self._LINE_SELECT + " AND l.id = ?",
            (JournalEntryStatus.POSTED.value, str(line_id)),
        ).fetchone()
        return self._row_to_ledger_line(row) if row is not None else None

    @staticmethod
    def _row_to_ledger_line(row: sqlite3.Row) -> LedgerLine:
        return LedgerLine(
            line_id=UUID(row["line_id"]),
            journal_entry_id=UUID(row["journal_entry_id"]),
            account_id=UUID(row["account_id"]),
            transaction_date=date.fromisoformat(row["transaction_date"]),
            debit=Decimal(row["debit_amount"]),
            credit=Decimal(row["credit_amount"]),
            description=row["description"],
            reference=row["reference"],
            is_closing_entry=bool(row["is_closing_entry"]),
        )

    def get_reversal(self, entry_id: UUID) -> JournalEntry | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM journal_entries WHERE reverses_entry_id = ? AND status = ?",
            (str(entry_id), JournalEntryStatus.POSTED.value),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    def _insert_lines(self, conn: sqlite3.Connection, entry: JournalEntry) -> None:
        for line in entry.lines:
            conn.execute(
                """
                INSERT INTO journal_entry_lines (id, journal_entry_id, account_id, line_number,
                                                 description, debit_amount, credit_amount, currency)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(line.id),
                    str(entry.id),
                    str(line.account_id),
                    line.line_number,
                    line.description,
                    str(line.debit.amount),
                    str(line.credit.amount),
                    line.debit.currency.value,
                ),
            )

    def _row_to_entry(self, row: sqlite3.Row) -> JournalEntry:
        conn = self._db.get_connection()
        line_rows = conn.execute(
            "SELECT * FROM journal_entry_lines WHERE journal_entry_id = ? ORDER BY line_number",
            (row["id"],),
        ).fetchall()
        lines = [self._row_to_line(line_row) for line_row in line_rows]
        return JournalEntry(
            transaction_date=date.fromisoformat(row["transaction_date"]),
            lines=lines,
            id=UUID(row["id"]),
            reference=row["reference"],
            description=row["description"],
            status=JournalEntryStatus(row["status"]),
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
            posted_at=_datetime_or_none(row["posted_at"]),
            is_closing_entry=bool(row["is_closing_entry"]),
            reverses_entry_id=_uuid_or_none(row["reverses_entry_id"]),
        )

    def _row_to_line(self, row: sqlite3.Row) -> JournalEntryLine:
        return JournalEntryLine(
            account_id=UUID(row["account_id"]),
            id=UUID(row["id"]),
            debit=Money(Decimal(row["debit_amount"]), row["currency"]),
            credit=Money(Decimal(row["credit_amount"]), row["currency"]),
            description=row["description"],
            line_number=row["line_number"],
            journal_entry_id=UUID(row["journal_entry_id"]),
        )


class SQLiteAccountingPeriodRepository(AccountingPeriodRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, period: AccountingPeriod) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO accounting_periods (id, fiscal_year_start, fiscal_year_end, is_locked,
                                                closing_date, closed_by, closed_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(period.id),
                    period.fiscal_year_start.isoformat(),
                    period.fiscal_year_end.isoformat(),
                    1 if period.is_locked else 0,
                    _iso_or_none(period.closing_date),
                    period.closed_by,
                    _iso_or_none(period.closed_at),
                    period.created_at.isoformat(),
                ),
            )

    def get(self, period_id: UUID) -> AccountingPeriod | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM accounting_periods WHERE id = ?", (str(period_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_period(row)

    def find_for_date(self, value: date) -> AccountingPeriod | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM accounting_periods
            WHERE fiscal_year_start <= ? AND fiscal_year_end >= ?
            ORDER BY is_locked DESC
            LIMIT 1
            """,
            (value.isoformat(), value.isoformat()),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_period(row)

    def find_overlapping(self, start: date, end: date) -> AccountingPeriod | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM accounting_periods
            WHERE fiscal_year_start <= ? AND fiscal_year_end >= ?
            LIMIT 1
            """,
            (end.isoformat(), start.isoformat()),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_period(row)

    def list_all(self) -> Iterable[AccountingPeriod]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM accounting_periods ORDER BY fiscal_year_start"
        ).fetchall()
        return [self._row_to_period(row) for row in rows]

    def update(self, period: AccountingPeriod) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE accounting_periods SET
                    is_locked = ?,
                    closing_date = ?,
                    closed_by = ?,
                    closed_at = ?
                WHERE id = ?
                """,
                (
                    1 if period.is_locked else 0,
                    _iso_or_none(period.closing_date),
                    period.closed_by,
                    _iso_or_none(period.closed_at),
                    str(period.id),
                ),
            )

    def _row_to_period(self, row: sqlite3.Row) -> AccountingPeriod:
        return AccountingPeriod(
            fiscal_year_start=date.fromisoformat(row["fiscal_year_start"]),
            fiscal_year_end=date.fromisoformat(row["fiscal_year_end"]),
            id=UUID(row["id"]),
            is_locked=bool(row["is_locked"]),
            closing_date=_date_or_none(row["closing_date"]),
            closed_by=row["closed_by"],
            closed_at=_datetime_or_none(row["closed_at"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteYearEndCloseRepository(YearEndCloseRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, close: YearEndCloseEntry) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO year_end_closes (id, fiscal_year, period_id, close_date, total_revenue,
                                             total_expenses, net_income,
                                             retained_earnings_account_id, journal_entry_id,
                                             created_by, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(close.id),
                    close.fiscal_year,
                    str(close.period_id),
                    close.close_date.isoformat(),
                    str(close.total_revenue),
                    str(close.total_expenses),
                    str(close.net_income),
                    str(close.retained_earnings_account_id),
                    _str_or_none(close.journal_entry_id),
                    close.created_by,
                    close.created_at.isoformat(),
                ),
            )

    def get_by_fiscal_year(self, fiscal_year: int) -> YearEndCloseEntry | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM year_end_closes WHERE fiscal_year = ?", (fiscal_year,)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_close(row)

    def list_all(self) -> Iterable[YearEndCloseEntry]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM year_end_closes ORDER BY fiscal_year"
        ).fetchall()
        return [self._row_to_close(row) for row in rows]

    def _row_to_close(self, row: sqlite3.Row) -> YearEndCloseEntry:
        return YearEndCloseEntry(
            fiscal_year=row["fiscal_year"],
            period_id=UUID(row["period_id"]),
            close_date=date.fromisoformat(row["close_date"]),
            total_revenue=Decimal(row["total_revenue"]),
            total_expenses=Decimal(row["total_expenses"]),
            net_income=Decimal(row["net_income"]),
            retained_earnings_account_id=UUID(row["retained_earnings_account_id"]),
            id=UUID(row["id"]),
            journal_entry_id=_uuid_or_none(row["journal_entry_id"]),
            created_by=row["created_by"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteDocumentRepository(DocumentRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, document: AllocatableDocument) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO documents (id, kind, number, party_id, total_amount, amount_paid,
                                       status, issue_date, due_date, control_account_id,
                                       version, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(document.id),
                    document.kind.value,
                    document.number,
                    _str_or_none(document.party_id),
                    str(document.total_amount),
                    str(document.amount_paid),
                    document.status.value,
                    _iso_or_none(document.issue_date),
                    _iso_or_none(document.due_date),
                    _str_or_none(document.control_account_id),
                    document.version,
                    document.created_at.isoformat(),
                ),
            )

    def get(self, document_id: UUID) -> AllocatableDocument | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM documents WHERE id = ?", (str(document_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_document(row)

    def list_open(
        self, kind: DocumentKind | None = None, party_id: UUID | None = None
    ) -> Iterable[AllocatableDocument]:
        conn = self._db.get_connection()
        excluded = [s.value for s in NON_ALLOCATABLE_DOCUMENT_STATUSES]
        excluded.append(DocumentStatus.PAID.value)
        query = f"SELECT * FROM documents WHERE status NOT IN ({', '.join('?' * len(excluded))})"
        params: list[str] = excluded
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        if party_id is not None:
            query += " AND party_id = ?"
            params.append(str(party_id))
        query += " ORDER BY due_date, number"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_document(row) for row in rows]

    def update(self, document: AllocatableDocument) -> None:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE documents SET
                    number = ?,
                    party_id = ?,
                    total_amount = ?,
                    amount_paid = ?,
                    status = ?,
                    issue_date = ?,
                    due_date = ?,
                    control_account_id = ?,
                    version = version + 1
                WHERE id = ? AND version = ?
                """,
                (
                    document.number,
                    _str_or_none(document.party_id),
                    str(document.total_amount),
                    str(document.amount_paid),
                    document.status.value,
                    _iso_or_none(document.issue_date),
                    _iso_or_none(document.due_date),
                    _str_or_none(document.control_account_id),
                    str(document.id),
                    document.version,
                ),
            )
            if cursor.rowcount == 0:
                raise ConcurrentModificationError(
                    "Document", document.id, document.version
                )
        document.version += 1

    def _row_to_document(self, row: sqlite3.Row) -> AllocatableDocument:
        return AllocatableDocument(
            kind=DocumentKind(row["kind"]),
            total_amount=Decimal(row["total_amount"]),
            id=UUID(row["id"]),
            number=row["number"],
            party_id=_uuid_or_none(row["party_id"]),
            amount_paid=Decimal(row["amount_paid"]),
            status=DocumentStatus(row["status"]),
            issue_date=_date_or_none(row["issue_date"]),
            due_date=_date_or_none(row["due_date"]),
            control_account_id=_uuid_or_none(row["control_account_id"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteAllocationSourceRepository(AllocationSourceRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, source: AllocationSource) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO allocation_sources (id, kind, number, party_id, amount, amount_applied,
                                                status, received_date, offset_account_id,
                                                version, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(source.id),
                    source.kind.value,
                    source.number,
                    _str_or_none(source.party_id),
                    str(source.amount),
                    str(source.amount_applied),
                    source.status.value,
                    _iso_or_none(source.received_date),
                    _str_or_none(source.offset_account_id),
                    source.version,
                    source.created_at.isoformat(),
                ),
            )

    def get(self, source_id: UUID) -> AllocationSource | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM allocation_sources WHERE id = ?", (str(source_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_source(row)

    def update(self, source: AllocationSource) -> None:
        with self._db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE allocation_sources SET
                    number = ?,
                    party_id = ?,
                    amount = ?,
                    amount_applied = ?,
                    status = ?,
                    received_date = ?,
                    offset_account_id = ?,
                    version = version + 1
                WHERE id = ? AND version = ?
                """,
                (
                    source.number,
                    _str_or_none(source.party_id),
                    str(source.amount),
                    str(source.amount_applied),
                    source.status.value,
                    _iso_or_none(source.received_date),
                    _str_or_none(source.offset_account_id),
                    str(source.id),
                    source.version,
                ),
            )
            if cursor.rowcount == 0:
                raise ConcurrentModificationError(
                    "Allocation source", source.id, source.version
                )
        source.version += 1

    def _row_to_source(self, row: sqlite3.Row) -> AllocationSource:
        return AllocationSource(
            kind=SourceKind(row["kind"]),
            amount=Decimal(row["amount"]),
            id=UUID(row["id"]),
            number=row["number"],
            party_id=_uuid_or_none(row["party_id"]),
            amount_applied=Decimal(row["amount_applied"]),
            status=SourceStatus(row["status"]),
            received_date=_date_or_none(row["received_date"]),
            offset_account_id=_uuid_or_none(row["offset_account_id"]),
            version=row["version"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteAllocationRepository(AllocationRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, allocation: Allocation) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO allocations (id, source_id, target_id, amount, allocation_date,
                                         journal_entry_id, memo, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(allocation.id),
                    str(allocation.source_id),
                    str(allocation.target_id),
                    str(allocation.amount),
                    allocation.allocation_date.isoformat(),
                    _str_or_none(allocation.journal_entry_id),
                    allocation.memo,
                    allocation.created_at.isoformat(),
                ),
            )

    def get(self, allocation_id: UUID) -> Allocation | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM allocations WHERE id = ?", (str(allocation_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_allocation(row)

    def delete(self, allocation_id: UUID) -> None:
        with self._db.transaction() as conn:
            conn.execute("DELETE FROM allocations WHERE id = ?", (str(allocation_id),))

    def list_by_source(self, source_id: UUID) -> Iterable[Allocation]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM allocations WHERE source_id = ? ORDER BY created_at",
            (str(source_id),),
        ).fetchall()
        return [self._row_to_allocation(row) for row in rows]

    def list_by_target(self, target_id: UUID) -> Iterable[Allocation]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM allocations WHERE target_id = ? ORDER BY created_at",
            (str(target_id),),
        ).fetchall()
        return [self._row_to_allocation(row) for row in rows]

    def _row_to_allocation(self, row: sqlite3.Row) -> Allocation:
        return Allocation(
            source_id=UUID(row["source_id"]),
            target_id=UUID(row["target_id"]),
            amount=Decimal(row["amount"]),
            id=UUID(row["id"]),
            allocation_date=date.fromisoformat(row["allocation_date"]),
            journal_entry_id=_uuid_or_none(row["journal_entry_id"]),
            memo=row["memo"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteBankTransactionRepository(BankTransactionRepository):
    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, transaction: BankTransaction) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO bank_transactions (id, bank_account_id, transaction_date, amount,
                                               description, external_id, is_reconciled,
                                               reconciliation_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(transaction.id),
                    str(transaction.bank_account_id),
                    transaction.transaction_date.isoformat(),
                    str(transaction.amount),
                    transaction.description,
                    transaction.external_id,
                    1 if transaction.is_reconciled else 0,
                    _str_or_none(transaction.reconciliation_id),
                    transaction.created_at.isoformat(),
                ),
            )

    def get(self, transaction_id: UUID) -> BankTransaction | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM bank_transactions WHERE id = ?", (str(transaction_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_transaction(row)

    def list_unreconciled(
        self, bank_account_id: UUID, through: date | None = None
    ) -> Iterable[BankTransaction]:
        conn = self._db.get_connection()
        query = """
            SELECT * FROM bank_transactions
            WHERE bank_account_id = ? AND is_reconciled = 0
        """
        params: list[str] = [str(bank_account_id)]
        if through is not None:
            query += " AND transaction_date <= ?"
            params.append(through.isoformat())
        query += " ORDER BY transaction_date"
        rows = conn.execute(query, params).fetchall()
        return [self._row_to_transaction(row) for row in rows]

    def mark_reconciled(
        self, transaction_ids: Iterable[UUID], reconciliation_id: UUID
    ) -> None:
        with self._db.transaction() as conn:
            conn.executemany(
                """
                UPDATE bank_transactions SET is_reconciled = 1, reconciliation_id = ?
                WHERE id = ?
                """,
                [(str(reconciliation_id), str(txn_id)) for txn_id in transaction_ids],
            )

    def _row_to_transaction(self, row: sqlite3.Row) -> BankTransaction:
        return BankTransaction(
            bank_account_id=UUID(row["bank_account_id"]),
            transaction_date=date.fromisoformat(row["transaction_date"]),
            amount=Decimal(row["amount"]),
            id=UUID(row["id"]),
            description=row["description"],
            external_id=row["external_id"],
            is_reconciled=bool(row["is_reconciled"]),
            reconciliation_id=_uuid_or_none(row["reconciliation_id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


class SQLiteReconciliationRepository(ReconciliationRepository):
    """SQLite implementation of ReconciliationRepository."""

    def __init__(self, database: SQLiteDatabase) -> None:
        self._db = database

    def add(self, reconciliation: BankReconciliation) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                INSERT INTO bank_reconciliations (id, bank_account_id, statement_date,
                                                  statement_ending_balance, beginning_balance,
                                                  status, created_at, completed_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    str(reconciliation.id),
                    str(reconciliation.bank_account_id),
                    reconciliation.statement_date.isoformat(),
                    str(reconciliation.statement_ending_balance),
                    str(reconciliation.beginning_balance),
                    reconciliation.status.value,
                    reconciliation.created_at.isoformat(),
                    _iso_or_none(reconciliation.completed_at),
                ),
            )
            for item in reconciliation.items:
                self._upsert_item(conn, item)

    def get(self, reconciliation_id: UUID) -> BankReconciliation | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM bank_reconciliations WHERE id = ?", (str(reconciliation_id),)
        ).fetchone()
        if row is None:
            return None
        return self._row_to_reconciliation(row)

    def get_in_progress(self, bank_account_id: UUID) -> BankReconciliation | None:
        conn = self._db.get_connection()
        row = conn.execute(
            "SELECT * FROM bank_reconciliations WHERE bank_account_id = ? AND status = ?",
            (str(bank_account_id), ReconciliationStatus.IN_PROGRESS.value),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_reconciliation(row)

    def get_last_completed(self, bank_account_id: UUID) -> BankReconciliation | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM bank_reconciliations
            WHERE bank_account_id = ? AND status = ?
            ORDER BY statement_date DESC, completed_at DESC
            LIMIT 1
            """,
            (str(bank_account_id), ReconciliationStatus.COMPLETED.value),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_reconciliation(row)

    def update(self, reconciliation: BankReconciliation) -> None:
        with self._db.transaction() as conn:
            conn.execute(
                """
                UPDATE bank_reconciliations SET
                    statement_ending_balance = ?,
                    beginning_balance = ?,
                    status = ?,
                    completed_at = ?
                WHERE id = ?
                """,
                (
                    str(reconciliation.statement_ending_balance),
                    str(reconciliation.beginning_balance),
                    reconciliation.status.value,
                    _iso_or_none(reconciliation.completed_at),
                    str(reconciliation.id),
                ),
            )

    def get_item(
        self,
        reconciliation_id: UUID,
        transaction_type: ReconciliationItemType,
        transaction_id: UUID,
    ) -> ReconciliationItem | None:
        conn = self._db.get_connection()
        row = conn.execute(
            """
            SELECT * FROM reconciliation_items
            WHERE reconciliation_id = ? AND transaction_type = ? AND transaction_id = ?
            """,
            (str(reconciliation_id), transaction_type.value, str(transaction_id)),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_item(row)

    def save_item(self, item: ReconciliationItem) -> None:
        with self._db.transaction() as conn:
            self._upsert_item(conn, item)

    def list_items(self, reconciliation_id: UUID) -> list[ReconciliationItem]:
        conn = self._db.get_connection()
        rows = conn.execute(
            "SELECT * FROM reconciliation_items WHERE reconciliation_id = ?",
            (str(reconciliation_id),),
        ).fetchall()
        return [self._row_to_item(row) for row in rows]

    def cleared_transaction_ids(
        self, bank_account_id: UUID, transaction_type: ReconciliationItemType
    ) -> set[UUID]:
        conn = self._db.get_connection()
        rows = conn.execute(
            """
            SELECT i.transaction_id FROM reconciliation_items i
            JOIN bank_reconciliations r ON r.id = i.reconciliation_id
            WHERE r.bank_account_id = ? AND r.status = ?
              AND i.transaction_type = ? AND i.is_cleared = 1
            """,
            (
                str(bank_account_id),
                ReconciliationStatus.COMPLETED.value,
                transaction_type.value,
            ),
        ).fetchall()
        return {UUID(row["transaction_id"]) for row in rows}

    def _upsert_item(self, conn: sqlite3.Connection, item: ReconciliationItem) -> None:
        conn.execute(
            """
            INSERT INTO reconciliation_items (id, reconciliation_id, transaction_type,
                                              transaction_id, amount, is_cleared, cleared_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(reconciliation_id, transaction_type, transaction_id) DO UPDATE SET
                amount = excluded.amount,
                is_cleared = excluded.is_cleared,
                cleared_at = excluded.cleared_at
            """,
            (
                str(item.id),
                str(item.reconciliation_id),
                item.transaction_type.value,
                str(item.transaction_id),
                str(item.amount),
                1 if item.is_cleared else 0,
                _iso_or_none(item.cleared_at),
            ),
        )

    def _row_to_reconciliation(self, row: sqlite3.Row) -> BankReconciliation:
        return BankReconciliation(
            bank_account_id=UUID(row["bank_account_id"]),
            statement_date=date.fromisoformat(row["statement_date"]),
            statement_ending_balance=Decimal(row["statement_ending_balance"]),
            beginning_balance=Decimal(row["beginning_balance"]),
            id=UUID(row["id"]),
            status=ReconciliationStatus(row["status"]),
            items=self.list_items(UUID(row["id"])),
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=_datetime_or_none(row["completed_at"]),
        )

    def _row_to_item(self, row: sqlite3.Row) -> ReconciliationItem:
        return ReconciliationItem(
            reconciliation_id=UUID(row["reconciliation_id"]),
            transaction_type=ReconciliationItemType(row["transaction_type"]),
            transaction_id=UUID(row["transaction_id"]),
            amount=Decimal(row["amount"]),
            id=UUID(row["id"]),
            is_cleared=bool(row["is_cleared"]),
            cleared_at=_datetime_or_none(row["cleared_at"]),
        )
