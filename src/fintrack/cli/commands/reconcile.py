"""Reconciliation command."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.reconciliation import ReconciliationService


def _fmt(amount) -> str:
    return f"{amount:,.2f}" if amount is not None else ""


@click.command("reconcile")
@click.argument("account", metavar="ACCOUNT")
@click.option("--checkpoint", "checkpoint_id", type=int, help="Checkpoint ID (defaults to the latest)")
@click.option("--verbose", "-v", is_flag=True, help="Show the transactions of each discrepancy date")
@click.pass_context
def reconcile_command(ctx, account: str, checkpoint_id: int | None, verbose: bool):
    """Find where the ledger diverges from declared balances.

    Walks the transactions between the previous checkpoint and the chosen
    one and reports every date whose running balance disagrees with the
    ledger. Nothing is written.

    Examples:
        fintrack reconcile "Main Bank"
        fintrack reconcile 1 --checkpoint 4 -v
    """
    db = ctx.obj["db"]
    service = ReconciliationService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        report = service.investigate_discrepancies(account_id, checkpoint_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    start = report.period_start_date or "beginning"
    click.echo(
        f"\nCheckpoint {report.checkpoint_id}: {start} to {report.period_end_date} "
        f"({report.transactions_scanned} transactions scanned)"
    )
    click.echo(f"Opening balance:  {_fmt(report.opening_balance):>18}")
    click.echo(f"Expected balance: {_fmt(report.expected_balance):>18}")
    click.echo(f"Declared balance: {_fmt(report.declared_balance):>18}")

    if not report.discrepancies:
        click.echo("No discrepancies found.")
        return

    click.echo(f"\nFound {len(report.discrepancies)} discrepancy(ies):")
    click.echo("-" * 100)
    for item in report.discrepancies:
        click.echo(
            f"{item.date} [{item.checkpoint_source}] declared {_fmt(item.checkpoint_balance)} "
            f"vs calculated {_fmt(item.calculated_balance)}: difference {_fmt(item.difference)}"
        )
        if verbose:
            for txn in item.transactions_on_date:
                marker = " [adj]" if txn.is_balance_adjustment else ""
                click.echo(
                    f"    {txn.raw_transaction_id:<22} debit {_fmt(txn.debit_amount):>15} "
                    f"credit {_fmt(txn.credit_amount):>15} balance {_fmt(txn.balance):>15}"
                    f"  {(txn.description or '')[:30]}{marker}"
                )


def register_commands(cli):
    """Register reconcile command with main CLI."""
    cli.add_command(reconcile_command)
