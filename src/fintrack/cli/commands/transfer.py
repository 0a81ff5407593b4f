"""Transfer matching commands."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.pairing import PairingService


@click.group()
def transfer_group():
    """Match and unmatch paired transactions."""
    pass


@transfer_group.command("match")
@click.argument("transfer_out_id", type=int)
@click.argument("transfer_in_id", type=int)
@click.pass_context
def match_transfer(ctx, transfer_out_id: int, transfer_in_id: int):
    """Link two main transactions as one money movement.

    Examples:
        fintrack transfer match 12 15
    """
    db = ctx.obj["db"]
    service = PairingService(db)

    try:
        pair = service.match_transfer(transfer_out_id, transfer_in_id)
        click.echo(
            f"Matched {pair.transfer_out_id} and {pair.transfer_in_id} as {pair.pair_type}"
        )
    except ValueError as e:
        handle_domain_error(ctx, e)


@transfer_group.command("unmatch")
@click.argument("main_transaction_id", type=int)
@click.pass_context
def unmatch_transfer(ctx, main_transaction_id: int):
    """Break the link of a matched transaction.

    Unmatching a drawdown payment also reverses its settlement.
    """
    db = ctx.obj["db"]
    service = PairingService(db)

    try:
        pair = service.unmatch_transfer(main_transaction_id)
        click.echo(f"Unmatched {pair.transfer_out_id} and {pair.transfer_in_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


@transfer_group.command("unmatched")
@click.option("--account", help="Account name or ID")
@click.option("--entity", "entity_id", type=int, help="Entity ID")
@click.pass_context
def list_unmatched(ctx, account: str | None, entity_id: int | None):
    """List pairable transactions that are not matched yet."""
    db = ctx.obj["db"]
    service = PairingService(db)
    type_service = TransactionTypeService(db)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        rows = service.list_unmatched(account_id=account_id, entity_id=entity_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if not rows:
        click.echo("No unmatched transactions found.")
        return

    click.echo(f"\nFound {len(rows)} unmatched transaction(s):")
    click.echo("-" * 90)
    for main in rows:
        code = type_service.code_of(main.transaction_type_id) or "-"
        click.echo(
            f"ID: {main.id:<6} {str(main.transaction_date):<12} Acct {main.account_id:<4} "
            f"{code:<14} {main.transaction_direction:<7} {main.amount:>15,.2f}  "
            f"{(main.description or '')[:25]}"
        )


@transfer_group.command("settle")
@click.argument("payment_main_id", type=int)
@click.argument("drawdown_id", type=int)
@click.pass_context
def settle_drawdown(ctx, payment_main_id: int, drawdown_id: int):
    """Apply a DEBT_PAY or LOAN_COLLECT payment to a drawdown.

    Examples:
        fintrack transfer settle 21 3
    """
    db = ctx.obj["db"]
    service = PairingService(db)

    try:
        result = service.settle_drawdown(payment_main_id, drawdown_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    drawdown = result.drawdown
    click.echo(
        f"Applied payment {result.payment_transaction_id} to drawdown {drawdown.id} "
        f"(settlement ID: {result.settlement_transaction_id})"
    )
    click.echo(f"Remaining balance: {drawdown.remaining_balance:,.2f} ({drawdown.status})")
    if result.credit_memo_transaction_id is not None:
        click.echo(
            f"Overpayment of {result.overpayment_amount:,.2f} recorded as credit memo "
            f"{result.credit_memo_transaction_id}"
        )


def register_commands(cli):
    """Register transfer commands with main CLI."""
    cli.add_command(transfer_group, name="transfer")
