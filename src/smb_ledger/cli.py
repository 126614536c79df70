"""Command-line interface for SMB Ledger."""

import argparse
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from smb_ledger import __version__
from smb_ledger.config import get_settings
from smb_ledger.container import Container
from smb_ledger.domain.accounts import Account
from smb_ledger.domain.allocation import DocumentKind
from smb_ledger.domain.value_objects import AccountType
from smb_ledger.exceptions import SMBLedgerError
from smb_ledger.logging_config import configure_logging
from smb_ledger.repositories.sqlite import SQLiteDatabase


def get_default_db_path() -> Path:
    """Database path from settings (SMBL_SQLITE_PATH)."""
    return Path(get_settings().sqlite_path)


def _db_path(args: argparse.Namespace) -> Path:
    return Path(args.database) if args.database else get_default_db_path()


def open_container(db_path: Path) -> Container:
    """Container owning the database at db_path; closes it on exit."""
    settings = get_settings().model_copy(update={"sqlite_path": db_path})
    return Container(settings=settings)


def _parse_uuid(value: str, label: str) -> UUID | None:
    try:
        return UUID(value)
    except ValueError:
        print(f"Error: Invalid {label}: {value}")
        return None


def _parse_date(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _fmt(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    db_path = _db_path(args)

    if db_path.exists() and not args.force:
        print(f"Database already exists at {db_path}")
        print("Use --force to reinitialize (WARNING: will delete existing data)")
        return 1

    if db_path.exists() and args.force:
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = SQLiteDatabase(str(db_path))
    db.initialize()
    db.close()

    print(f"Initialized database at {db_path}")
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Show database status."""
    db_path = _db_path(args)

    if not db_path.exists():
        print(f"No database found at {db_path}")
        print("Run 'smbl init' to create a new database")
        return 1

    with open_container(db_path) as container:
        accounts = container.ledger_service.list_accounts()
        periods = container.period_service.list_periods()
        closes = container.closing_service.list_closes()

        print(f"Database: {db_path}")
        print(f"Accounts: {len(accounts)}")
        for account_type in AccountType:
            count = sum(1 for a in accounts if a.account_type == account_type)
            print(f"  - {account_type.value}: {count}")
        print(f"Accounting periods: {len(periods)}")
        for period in periods:
            state = "locked" if period.is_locked else "open"
            print(
                f"  - FY{period.fiscal_year} {period.fiscal_year_start} to "
                f"{period.fiscal_year_end} [{state}]"
            )
        print(f"Year-end closes: {len(closes)}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"SMB Ledger v{__version__}")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "smb_ledger.api.app:app",
        host=args.host or settings.api_host,
        port=args.port or settings.api_port,
        reload=settings.api_reload,
    )
    return 0


def cmd_account_add(args: argparse.Namespace) -> int:
    """Add an account to the chart of accounts."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    try:
        with open_container(db_path) as container:
            account = Account(
                code=args.code,
                name=args.name,
                account_type=AccountType(args.type),
            )
            container.ledger_service.create_account(account)
        print(f"Account created: {account.id}")
        print(f"  {account.code} {account.name} ({account.account_type.value})")
        return 0
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1


def cmd_account_list(args: argparse.Namespace) -> int:
    """List the chart of accounts."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    with open_container(db_path) as container:
        accounts = container.ledger_service.list_accounts()

    if not accounts:
        print("No accounts found")
        return 0

    print(f"{'Code':<10} {'Name':<30} {'Type':<10} {'Active':<6}  ID")
    print("-" * 96)
    for account in accounts:
        active = "yes" if account.is_active else "no"
        print(
            f"{account.code:<10} {account.name[:30]:<30} "
            f"{account.account_type.value:<10} {active:<6}  {account.id}"
        )
    return 0


def cmd_period_create(args: argparse.Namespace) -> int:
    """Create an accounting period (fiscal year)."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    try:
        start = date.fromisoformat(args.start)
        end = date.fromisoformat(args.end)
    except ValueError as e:
        print(f"Error: Invalid date: {e}")
        return 1

    try:
        with open_container(db_path) as container:
            period = container.period_service.create_period(start, end)
        print(f"Period created: {period.id}")
        print(f"  Fiscal year {period.fiscal_year}: {start} to {end}")
        return 0
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1


def cmd_period_lock(args: argparse.Namespace) -> int:
    """Lock or unlock an accounting period."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    period_id = _parse_uuid(args.period_id, "period ID")
    if period_id is None:
        return 1

    try:
        with open_container(db_path) as container:
            if args.unlock:
                period = container.period_service.unlock_period(period_id)
            else:
                period = container.period_service.lock_period(period_id, args.closed_by)
        state = "locked" if period.is_locked else "unlocked"
        print(f"Fiscal year {period.fiscal_year} {state}")
        return 0
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1


def cmd_trial_balance(args: argparse.Namespace) -> int:
    """Print the trial balance."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    try:
        as_of = _parse_date(args.as_of)
    except ValueError as e:
        print(f"Error: Invalid date: {e}")
        return 1

    with open_container(db_path) as container:
        report = container.balance_service.trial_balance(as_of)

    print(f"Trial Balance{f' as of {as_of}' if as_of else ''}")
    print(f"{'Code':<10} {'Account':<30} {'Debit':>15} {'Credit':>15}")
    print("-" * 73)
    for row in report.rows:
        debit = _fmt(row.debit) if row.debit else ""
        credit = _fmt(row.credit) if row.credit else ""
        print(f"{row.code:<10} {row.name[:30]:<30} {debit:>15} {credit:>15}")
    print("-" * 73)
    print(
        f"{'Total':<41} {_fmt(report.total_debits):>15} {_fmt(report.total_credits):>15}"
    )
    if not report.is_balanced:
        print("WARNING: trial balance is out of balance")
        return 1
    return 0


def cmd_close_preview(args: argparse.Namespace) -> int:
    """Preview the year-end close for a period."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    period_id = _parse_uuid(args.period_id, "period ID")
    if period_id is None:
        return 1

    try:
        with open_container(db_path) as container:
            preview = container.closing_service.preview(period_id)
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"Year-End Close Preview: FY{preview.fiscal_year}")
    print(f"  Period: {preview.fiscal_year_start} to {preview.fiscal_year_end}")
    if preview.already_closed:
        print("  Status: already closed")
    print("  Revenue:")
    for balance in preview.revenue_accounts:
        print(f"    {balance.code:<10} {balance.name[:30]:<30} {_fmt(balance.balance):>15}")
    print("  Expenses:")
    for balance in preview.expense_accounts:
        print(f"    {balance.code:<10} {balance.name[:30]:<30} {_fmt(balance.balance):>15}")
    print(f"  Total Revenue:  {_fmt(preview.total_revenue):>15}")
    print(f"  Total Expenses: {_fmt(preview.total_expenses):>15}")
    print(f"  Net Income:     {_fmt(preview.net_income):>15}")
    return 0


def cmd_close_year(args: argparse.Namespace) -> int:
    """Close the fiscal year into a retained earnings account."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    period_id = _parse_uuid(args.period_id, "period ID")
    if period_id is None:
        return 1

    try:
        with open_container(db_path) as container:
            retained_earnings = container.account_repo.get_by_code(
                args.retained_earnings
            )
            if retained_earnings is not None:
                account_id = retained_earnings.id
            else:
                account_id = _parse_uuid(args.retained_earnings, "account")
                if account_id is None:
                    return 1
            close = container.closing_service.close_year(
                period_id,
                account_id,
                lock_period=True if args.lock else None,
                closed_by=args.closed_by,
            )
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"Fiscal year {close.fiscal_year} closed")
    print(f"  Total Revenue:  {_fmt(close.total_revenue):>15}")
    print(f"  Total Expenses: {_fmt(close.total_expenses):>15}")
    print(f"  Net Income:     {_fmt(close.net_income):>15}")
    if close.journal_entry_id:
        print(f"  Closing entry:  {close.journal_entry_id}")
    else:
        print("  No revenue or expense activity; no closing entry posted")
    return 0


def cmd_aging(args: argparse.Namespace) -> int:
    """Print the receivables or payables aging report."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    try:
        as_of = _parse_date(args.as_of)
    except ValueError as e:
        print(f"Error: Invalid date: {e}")
        return 1

    with open_container(db_path) as container:
        report = container.allocation_service.aging_report(
            DocumentKind(args.kind), as_of=as_of
        )

    title = "Receivables" if args.kind == DocumentKind.INVOICE.value else "Payables"
    print(f"{title} Aging as of {report.as_of}")
    print(f"  Current:    {_fmt(report.current):>15}")
    print(f"  1-30 days:  {_fmt(report.days_1_to_30):>15}")
    print(f"  31-60 days: {_fmt(report.days_31_to_60):>15}")
    print(f"  61-90 days: {_fmt(report.days_61_to_90):>15}")
    print(f"  90+ days:   {_fmt(report.days_over_90):>15}")
    print(f"  Total:      {_fmt(report.total):>15}")
    return 0


def cmd_reconcile_start(args: argparse.Namespace) -> int:
    """Start a bank statement reconciliation."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    account_id = _parse_uuid(args.account_id, "account ID")
    if account_id is None:
        return 1

    try:
        statement_date = date.fromisoformat(args.statement_date)
        ending_balance = Decimal(args.ending_balance)
        beginning_balance = (
            Decimal(args.beginning_balance) if args.beginning_balance else None
        )
    except (ValueError, InvalidOperation):
        print("Error: Invalid statement date or balance")
        return 1

    try:
        with open_container(db_path) as container:
            reconciliation = container.reconciliation_service.start(
                account_id, statement_date, ending_balance, beginning_balance
            )
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"Reconciliation started: {reconciliation.id}")
    print(f"  Statement date:   {reconciliation.statement_date}")
    print(f"  Beginning:        {_fmt(reconciliation.beginning_balance):>15}")
    print(f"  Statement ending: {_fmt(reconciliation.statement_ending_balance):>15}")
    return 0


def cmd_reconcile_summary(args: argparse.Namespace) -> int:
    """Show the cleared balance and difference for a reconciliation."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    reconciliation_id = _parse_uuid(args.reconciliation_id, "reconciliation ID")
    if reconciliation_id is None:
        return 1

    try:
        with open_container(db_path) as container:
            summary = container.reconciliation_service.summary(reconciliation_id)
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1

    print("Reconciliation Summary")
    print(f"  Beginning balance: {_fmt(summary.beginning_balance):>15}")
    print(f"  Cleared deposits:  {_fmt(summary.cleared_deposits):>15}")
    print(f"  Cleared payments:  {_fmt(summary.cleared_payments):>15}")
    print(f"  Cleared balance:   {_fmt(summary.cleared_balance):>15}")
    print(f"  Statement ending:  {_fmt(summary.statement_ending_balance):>15}")
    print(f"  Difference:        {_fmt(summary.difference):>15}")
    print(f"  Items cleared:     {summary.cleared_count} of {summary.item_count}")
    print(f"  Balanced:          {'yes' if summary.is_balanced else 'no'}")
    return 0


def cmd_reconcile_complete(args: argparse.Namespace) -> int:
    """Complete a balanced reconciliation."""
    db_path = _db_path(args)
    if not db_path.exists():
        print(f"Error: Database not found at {db_path}")
        return 1

    reconciliation_id = _parse_uuid(args.reconciliation_id, "reconciliation ID")
    if reconciliation_id is None:
        return 1

    try:
        with open_container(db_path) as container:
            container.reconciliation_service.complete(reconciliation_id)
    except SMBLedgerError as e:
        print(f"Error: {e.message}")
        return 1

    print(f"Reconciliation {reconciliation_id} completed")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="smbl",
        description="SMB Ledger - Double-entry bookkeeping for small businesses",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize a new database")
    init_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Force reinitialization (deletes existing data)",
    )
    init_parser.set_defaults(func=cmd_init)

    # status command
    status_parser = subparsers.add_parser("status", help="Show database status")
    status_parser.set_defaults(func=cmd_status)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    # serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.set_defaults(func=cmd_serve)

    # account command group
    account_parser = subparsers.add_parser("account", help="Chart of accounts commands")
    account_subparsers = account_parser.add_subparsers(
        dest="account_command", help="Account subcommands"
    )

    account_add_parser = account_subparsers.add_parser("add", help="Add an account")
    account_add_parser.add_argument("--code", required=True, help="Account code")
    account_add_parser.add_argument("--name", required=True, help="Account name")
    account_add_parser.add_argument(
        "--type",
        required=True,
        choices=[t.value for t in AccountType],
        help="Account type",
    )
    account_add_parser.set_defaults(func=cmd_account_add)

    account_list_parser = account_subparsers.add_parser("list", help="List accounts")
    account_list_parser.set_defaults(func=cmd_account_list)

    # period command group
    period_parser = subparsers.add_parser("period", help="Accounting period commands")
    period_subparsers = period_parser.add_subparsers(
        dest="period_command", help="Period subcommands"
    )

    period_create_parser = period_subparsers.add_parser(
        "create", help="Create a fiscal year period"
    )
    period_create_parser.add_argument("--start", required=True, help="YYYY-MM-DD")
    period_create_parser.add_argument("--end", required=True, help="YYYY-MM-DD")
    period_create_parser.set_defaults(func=cmd_period_create)

    period_lock_parser = period_subparsers.add_parser(
        "lock", help="Lock a period against posting"
    )
    period_lock_parser.add_argument("--period-id", required=True, help="Period ID")
    period_lock_parser.add_argument("--closed-by", default="cli", help="Who locked it")
    period_lock_parser.set_defaults(func=cmd_period_lock, unlock=False)

    period_unlock_parser = period_subparsers.add_parser(
        "unlock", help="Reopen a locked period"
    )
    period_unlock_parser.add_argument("--period-id", required=True, help="Period ID")
    period_unlock_parser.set_defaults(func=cmd_period_lock, unlock=True, closed_by="cli")

    # trial-balance command
    trial_balance_parser = subparsers.add_parser(
        "trial-balance", help="Print the trial balance"
    )
    trial_balance_parser.add_argument("--as-of", default=None, help="YYYY-MM-DD")
    trial_balance_parser.set_defaults(func=cmd_trial_balance)

    # aging command
    aging_parser = subparsers.add_parser("aging", help="Receivables/payables aging")
    aging_parser.add_argument(
        "--kind",
        choices=[k.value for k in DocumentKind],
        default=DocumentKind.INVOICE.value,
        help="invoice for receivables, bill for payables",
    )
    aging_parser.add_argument("--as-of", default=None, help="YYYY-MM-DD")
    aging_parser.set_defaults(func=cmd_aging)

    # close command group
    close_parser = subparsers.add_parser("close", help="Year-end close commands")
    close_subparsers = close_parser.add_subparsers(
        dest="close_command", help="Close subcommands"
    )

    close_preview_parser = close_subparsers.add_parser(
        "preview", help="Preview the year-end close"
    )
    close_preview_parser.add_argument("--period-id", required=True, help="Period ID")
    close_preview_parser.set_defaults(func=cmd_close_preview)

    close_year_parser = close_subparsers.add_parser(
        "year", help="Post the year-end closing entry"
    )
    close_year_parser.add_argument("--period-id", required=True, help="Period ID")
    close_year_parser.add_argument(
        "--retained-earnings",
        required=True,
        help="Retained earnings account code or ID",
    )
    close_year_parser.add_argument(
        "--lock", action="store_true", help="Lock the period after closing"
    )
    close_year_parser.add_argument("--closed-by", default="cli", help="Who closed it")
    close_year_parser.set_defaults(func=cmd_close_year)

    # reconcile command group
    reconcile_parser = subparsers.add_parser(
        "reconcile", help="Bank reconciliation commands"
    )
    reconcile_subparsers = reconcile_parser.add_subparsers(
        dest="reconcile_command", help="Reconciliation subcommands"
    )

    reconcile_start_parser = reconcile_subparsers.add_parser(
        "start", help="Start a statement reconciliation"
    )
    reconcile_start_parser.add_argument(
        "--account-id", required=True, help="Bank account ID"
    )
    reconcile_start_parser.add_argument(
        "--statement-date", required=True, help="YYYY-MM-DD"
    )
    reconcile_start_parser.add_argument(
        "--ending-balance", required=True, help="Statement ending balance"
    )
    reconcile_start_parser.add_argument(
        "--beginning-balance",
        default=None,
        help="Defaults to the last completed statement's ending balance",
    )
    reconcile_start_parser.set_defaults(func=cmd_reconcile_start)

    reconcile_summary_parser = reconcile_subparsers.add_parser(
        "summary", help="Show cleared balance and difference"
    )
    reconcile_summary_parser.add_argument(
        "--reconciliation-id", required=True, help="Reconciliation ID"
    )
    reconcile_summary_parser.set_defaults(func=cmd_reconcile_summary)

    reconcile_complete_parser = reconcile_subparsers.add_parser(
        "complete", help="Complete a balanced reconciliation"
    )
    reconcile_complete_parser.add_argument(
        "--reconciliation-id", required=True, help="Reconciliation ID"
    )
    reconcile_complete_parser.set_defaults(func=cmd_reconcile_complete)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    group_parsers = {
        "account": (account_parser, "account_command"),
        "period": (period_parser, "period_command"),
        "close": (close_parser, "close_command"),
        "reconcile": (reconcile_parser, "reconcile_command"),
    }
    if args.command in group_parsers:
        group_parser, dest = group_parsers[args.command]
        if getattr(args, dest, None) is None:
            group_parser.print_help()
            return 0

    configure_logging(get_settings())
    result: int = args.func(args)
    return result


if __name__ == "__main__":
    sys.exit(main())
