"""Dependency injection container for SMB Ledger.

Wires the SQLite database, the repositories and the five core services
together, reading tolerances and closing options from Settings.

Usage:
    from smb_ledger.container import Container, get_container

    container = get_container()
    container.ledger_service.post_entry(entry)

For tests, build a Container around an in-memory database:

    db = SQLiteDatabase(":memory:")
    db.initialize()
    container = Container(settings=Settings(), database=db)
"""

from functools import cached_property, lru_cache

from smb_ledger.config import Settings, get_settings
from smb_ledger.logging_config import get_logger
from smb_ledger.repositories.sqlite import (
    SQLiteAccountingPeriodRepository,
    SQLiteAccountRepository,
    SQLiteAllocationRepository,
    SQLiteAllocationSourceRepository,
    SQLiteBankTransactionRepository,
    SQLiteDatabase,
    SQLiteDocumentRepository,
    SQLiteJournalEntryRepository,
    SQLiteReconciliationRepository,
    SQLiteYearEndCloseRepository,
)
from smb_ledger.services.allocation import AllocationServiceImpl
from smb_ledger.services.balances import BalanceServiceImpl
from smb_ledger.services.closing import PeriodClosingServiceImpl
from smb_ledger.services.ledger import LedgerServiceImpl
from smb_ledger.services.periods import AccountingPeriodServiceImpl
from smb_ledger.services.reconciliation import ReconciliationServiceImpl

logger = get_logger(__name__)


class Container:
    """Lazily builds and caches the database, repositories and services."""

    def __init__(
        self,
        settings: Settings | None = None,
        database: SQLiteDatabase | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._provided_database = database
        logger.debug(
            "container_created",
            environment=self._settings.environment.value,
            external_database=database is not None,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def database(self) -> SQLiteDatabase:
        """The SQLite database, created and initialized on first access."""
        if self._provided_database is not None:
            return self._provided_database

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)
        db = SQLiteDatabase(db_path, check_same_thread=False)
        db.initialize()
        return db

    # Repositories

    @cached_property
    def account_repo(self) -> SQLiteAccountRepository:
        return SQLiteAccountRepository(self.database)

    @cached_property
    def journal_repo(self) -> SQLiteJournalEntryRepository:
        return SQLiteJournalEntryRepository(self.database)

    @cached_property
    def period_repo(self) -> SQLiteAccountingPeriodRepository:
        return SQLiteAccountingPeriodRepository(self.database)

    @cached_property
    def close_repo(self) -> SQLiteYearEndCloseRepository:
        return SQLiteYearEndCloseRepository(self.database)

    @cached_property
    def document_repo(self) -> SQLiteDocumentRepository:
        return SQLiteDocumentRepository(self.database)

    @cached_property
    def source_repo(self) -> SQLiteAllocationSourceRepository:
        return SQLiteAllocationSourceRepository(self.database)

    @cached_property
    def allocation_repo(self) -> SQLiteAllocationRepository:
        return SQLiteAllocationRepository(self.database)

    @cached_property
    def bank_transaction_repo(self) -> SQLiteBankTransactionRepository:
        return SQLiteBankTransactionRepository(self.database)

    @cached_property
    def reconciliation_repo(self) -> SQLiteReconciliationRepository:
        return SQLiteReconciliationRepository(self.database)

    # Services

    @cached_property
    def period_service(self) -> AccountingPeriodServiceImpl:
        """Period bookkeeping and the posting guard."""
        return AccountingPeriodServiceImpl(self.period_repo, self.database)

    @cached_property
    def ledger_service(self) -> LedgerServiceImpl:
        return LedgerServiceImpl(
            journal_repo=self.journal_repo,
            account_repo=self.account_repo,
            period_service=self.period_service,
            transactions=self.database,
        )

    @cached_property
    def balance_service(self) -> BalanceServiceImpl:
        return BalanceServiceImpl(
            journal_repo=self.journal_repo,
            account_repo=self.account_repo,
            currency=self._settings.default_currency,
            balance_tolerance=self._settings.balance_tolerance,
        )

    @cached_property
    def allocation_service(self) -> AllocationServiceImpl:
        return AllocationServiceImpl(
            document_repo=self.document_repo,
            source_repo=self.source_repo,
            allocation_repo=self.allocation_repo,
            transactions=self.database,
            ledger_service=self.ledger_service,
            tolerance=self._settings.allocation_tolerance,
        )

    @cached_property
    def closing_service(self) -> PeriodClosingServiceImpl:
        return PeriodClosingServiceImpl(
            period_service=self.period_service,
            balance_service=self.balance_service,
            ledger_service=self.ledger_service,
            account_repo=self.account_repo,
            close_repo=self.close_repo,
            transactions=self.database,
            reference_prefix=self._settings.closing_reference_prefix,
            lock_on_close=self._settings.lock_period_on_close,
        )

    @cached_property
    def reconciliation_service(self) -> ReconciliationServiceImpl:
        return ReconciliationServiceImpl(
            reconciliation_repo=self.reconciliation_repo,
            bank_transaction_repo=self.bank_transaction_repo,
            journal_repo=self.journal_repo,
            account_repo=self.account_repo,
            transactions=self.database,
            tolerance=self._settings.balance_tolerance,
        )

    def close(self) -> None:
        """Close the database if this container opened it."""
        if self._provided_database is None and "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset the global container. Used by tests and at shutdown."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()


# FastAPI dependency functions
def get_database() -> SQLiteDatabase:
    """FastAPI dependency for the database; override it in tests."""
    return get_container().database
