"""Balance checkpoint commands."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.checkpoint import CheckpointService
from fintrack.domain.entities import Checkpoint
from fintrack.utils.amount_parser import parse_amount
from fintrack.utils.date_parser import parse_date


def _echo_checkpoint(checkpoint: Checkpoint) -> None:
    status = "reconciled" if checkpoint.is_reconciled else f"adjusted by {checkpoint.adjustment_amount:,.2f}"
    click.echo(
        f"ID: {checkpoint.id:<4} {str(checkpoint.checkpoint_date):<12} "
        f"declared {checkpoint.declared_balance:>18,.2f} "
        f"calculated {checkpoint.calculated_balance:>18,.2f}  {status} ({checkpoint.source})"
    )


@click.group()
def checkpoint_group():
    """Declare account balances and keep the ledger in line with them."""
    pass


@checkpoint_group.command("set")
@click.argument("account", metavar="ACCOUNT")
@click.argument("balance")
@click.option("--date", "when", default="today", help="Checkpoint date")
@click.option("--notes", help="Notes")
@click.pass_context
def set_checkpoint(ctx, account: str, balance: str, when: str, notes: str | None):
    """Declare the balance of ACCOUNT on a date.

    A checkpoint on the same date is updated. Any difference from the ledger
    is booked as a balance adjustment transaction.

    Examples:
        fintrack checkpoint set "Main Bank" 12,500,000 --date 2025-01-31
    """
    db = ctx.obj["db"]
    service = CheckpointService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        checkpoint = service.create_or_update_checkpoint(
            account_id=account_id,
            checkpoint_date=parse_date(when),
            declared_balance=parse_amount(balance),
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Checkpoint {checkpoint.id} set for {checkpoint.checkpoint_date}")
    if checkpoint.is_reconciled:
        click.echo("Ledger matches the declared balance.")
    else:
        click.echo(
            f"Calculated balance {checkpoint.calculated_balance:,.2f}; "
            f"adjustment of {checkpoint.adjustment_amount:,.2f} recorded"
        )


@checkpoint_group.command("list")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def list_checkpoints(ctx, account: str):
    """List checkpoints of ACCOUNT with a summary."""
    db = ctx.obj["db"]
    service = CheckpointService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    checkpoints = service.list_checkpoints(account_id)
    if not checkpoints:
        click.echo("No checkpoints found.")
        return

    click.echo(f"\nCheckpoints for account {account_id}:")
    click.echo("-" * 110)
    for checkpoint in checkpoints:
        _echo_checkpoint(checkpoint)

    summary = service.checkpoint_summary(account_id)
    click.echo("-" * 110)
    click.echo(
        f"Total: {summary['total_checkpoints']} | "
        f"Reconciled: {summary['reconciled_checkpoints']} | "
        f"Unreconciled: {summary['unreconciled_checkpoints']} | "
        f"Total adjustments: {summary['total_adjustment_amount']:,.2f}"
    )


@checkpoint_group.command("delete")
@click.argument("checkpoint_id", type=int)
@click.pass_context
def delete_checkpoint(ctx, checkpoint_id: int):
    """Delete a checkpoint and its adjustment transaction."""
    db = ctx.obj["db"]
    service = CheckpointService(db)

    if not click.confirm(f"Are you sure you want to delete checkpoint {checkpoint_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_checkpoint(checkpoint_id)
        click.echo(f"Deleted checkpoint {checkpoint_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@checkpoint_group.command("recalculate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def recalculate_checkpoints(ctx, account: str):
    """Recompute every checkpoint of ACCOUNT after back-dated changes."""
    db = ctx.obj["db"]
    service = CheckpointService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        checkpoints = service.recalculate_checkpoints(account_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"Recalculated {len(checkpoints)} checkpoint(s)")
    for checkpoint in checkpoints:
        _echo_checkpoint(checkpoint)


def register_commands(cli):
    """Register checkpoint commands with main CLI."""
    cli.add_command(checkpoint_group, name="checkpoint")
