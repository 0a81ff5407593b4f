"""Transaction management commands."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.transaction import TransactionService
from fintrack.utils.amount_parser import parse_amount
from fintrack.utils.date_parser import parse_date


def _format_amount(amount) -> str:
    return f"{amount:,.2f}" if amount is not None else ""


@click.group()
def txn_group():
    """Manage raw and main transactions."""
    pass


@txn_group.command("add")
@click.argument("account", metavar="ACCOUNT")
@click.option("--date", "txn_date", default="today", help="Transaction date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--debit", help="Amount leaving the account")
@click.option("--credit", help="Amount entering the account")
@click.option("--description", help="Transaction description")
@click.option("--balance", help="Running balance after this transaction, as printed on the statement")
@click.option("--type", "type_code", help="Transaction type code (e.g., TRF_OUT); defaults to INC/EXP")
@click.option("--category", "category_id", type=int, help="Category ID")
@click.option("--notes", help="Notes")
@click.option("--id", "raw_transaction_id", help="Explicit raw transaction ID")
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    txn_date: str,
    debit: str | None,
    credit: str | None,
    description: str | None,
    balance: str | None,
    type_code: str | None,
    category_id: int | None,
    notes: str | None,
    raw_transaction_id: str | None,
):
    """Record a transaction on an account.

    Give exactly one of --debit or --credit.

    Examples:
        fintrack txn add "Main Bank" --debit 150,000 --description "Groceries"
        fintrack txn add 1 --credit 5,000,000 --date 2025-01-15 --type TRF_IN
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        parsed_date = parse_date(txn_date)
    except ValueError as e:
        click.echo(f"Error: Invalid date format: {e}", err=True)
        ctx.exit(1)

    try:
        raw_id = service.create_raw_transaction(
            account_id=account_id,
            transaction_date=parsed_date,
            debit_amount=parse_amount(debit) if debit is not None else None,
            credit_amount=parse_amount(credit) if credit is not None else None,
            description=description,
            balance=parse_amount(balance) if balance is not None else None,
            notes=notes,
            raw_transaction_id=raw_transaction_id,
            transaction_type_code=type_code.upper() if type_code else None,
            category_id=category_id,
        )
        main = service.list_main_transactions(raw_transaction_id=raw_id)[0]
        click.echo(f"Created transaction '{raw_id}' (main ID: {main.id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@txn_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'start of month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@click.pass_context
def list_transactions(ctx, account: str | None, start_date: str | None, end_date: str | None):
    """List raw transactions in date order."""
    db = ctx.obj["db"]
    service = TransactionService(db)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        click.echo(f"Error: Invalid date: {e}", err=True)
        ctx.exit(1)

    transactions = service.list_raw_transactions(account_id=account_id, start_date=start, end_date=end)
    if not transactions:
        click.echo("No transactions found.")
        return

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 110)
    click.echo(
        f"{'ID':<22} {'Date':<12} {'Acct':<5} {'Debit':>15} {'Credit':>15} {'Balance':>15}  Description"
    )
    click.echo("-" * 110)
    for raw in transactions:
        marker = " [adj]" if raw.is_balance_adjustment else ""
        click.echo(
            f"{raw.raw_transaction_id:<22} {str(raw.transaction_date):<12} {raw.account_id:<5} "
            f"{_format_amount(raw.debit_amount):>15} {_format_amount(raw.credit_amount):>15} "
            f"{_format_amount(raw.balance):>15}  {(raw.description or '')[:30]}{marker}"
        )


@txn_group.command("show")
@click.argument("raw_transaction_id")
@click.pass_context
def show_transaction(ctx, raw_transaction_id: str):
    """Show a raw transaction with its main rows."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    type_service = TransactionTypeService(db)

    raw = service.get_raw_transaction(raw_transaction_id)
    if raw is None:
        click.echo(f"Error: Raw transaction '{raw_transaction_id}' not found", err=True)
        ctx.exit(1)

    click.echo(f"\nRaw transaction: {raw.raw_transaction_id}")
    click.echo(f"  Account: {raw.account_id}")
    click.echo(f"  Date: {raw.transaction_date} (sequence {raw.transaction_sequence})")
    click.echo(f"  {raw.direction.capitalize()}: {_format_amount(raw.amount)}")
    if raw.balance is not None:
        click.echo(f"  Balance: {_format_amount(raw.balance)}")
    if raw.description:
        click.echo(f"  Description: {raw.description}")
    click.echo(f"  Source: {raw.transaction_source}")
    if raw.notes:
        click.echo(f"  Notes: {raw.notes}")

    click.echo("\nMain transactions:")
    for main in service.list_main_transactions(raw_transaction_id=raw_transaction_id):
        parts = [
            f"ID: {main.id}",
            f"{type_service.code_of(main.transaction_type_id) or '-'}",
            f"{main.transaction_direction} {_format_amount(main.amount)}",
        ]
        if main.is_split:
            parts.append(f"split #{main.split_sequence}")
        if main.category_id is not None:
            parts.append(f"category {main.category_id}")
        if main.transfer_matched_transaction_id is not None:
            parts.append(f"matched with {main.transfer_matched_transaction_id}")
        if main.drawdown_id is not None:
            parts.append(f"drawdown {main.drawdown_id}")
        click.echo("  " + " | ".join(parts))


@txn_group.command("categorize")
@click.argument("main_transaction_id", type=int)
@click.option("--type", "type_code", help="Transaction type code")
@click.option("--category", "category_id", type=int, help="Category ID")
@click.option("--notes", help="Notes")
@click.pass_context
def categorize_transaction(
    ctx, main_transaction_id: int, type_code: str | None, category_id: int | None, notes: str | None
):
    """Set type, category or notes of a main transaction.

    Examples:
        fintrack txn categorize 12 --type TRF_OUT
        fintrack txn categorize 12 --category 4 --notes "office rent"
    """
    if type_code is None and category_id is None and notes is None:
        click.echo("Error: Nothing to update; give --type, --category or --notes", err=True)
        ctx.exit(1)

    db = ctx.obj["db"]
    service = TransactionService(db)
    try:
        service.categorize(
            main_transaction_id,
            transaction_type_code=type_code.upper() if type_code else None,
            category_id=category_id,
            notes=notes,
        )
        click.echo(f"Updated transaction {main_transaction_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@txn_group.command("delete")
@click.argument("raw_transaction_id")
@click.pass_context
def delete_transaction(ctx, raw_transaction_id: str) -> None:
    """Delete a raw transaction and its main rows.

    Matched or drawdown-linked transactions must be unmatched first.

    Examples:
        fintrack txn delete TXN-0123456789ABCDEF
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    if service.get_raw_transaction(raw_transaction_id) is None:
        click.echo(f"Error: Raw transaction '{raw_transaction_id}' not found", err=True)
        ctx.exit(1)

    if not click.confirm(f"Are you sure you want to delete transaction '{raw_transaction_id}'?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_raw_transaction(raw_transaction_id)
        click.echo(f"Deleted transaction '{raw_transaction_id}'")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(txn_group, name="txn")
