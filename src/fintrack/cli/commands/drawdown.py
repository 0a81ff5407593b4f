"""Drawdown and loan disbursement commands."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit, resolve_pair_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.drawdown import DrawdownService
from fintrack.domain.entities import Drawdown
from fintrack.domain.ledger_rules import DEBT, LOAN
from fintrack.utils.amount_parser import parse_amount
from fintrack.utils.date_parser import parse_date

STATUS_CHOICES = ["active", "overdue", "settled", "partially_written_off", "written_off"]


def _echo_drawdown(drawdown: Drawdown) -> None:
    due = drawdown.due_date or "-"
    click.echo(
        f"ID: {drawdown.id:<4} {drawdown.kind:<5} {drawdown.reference:<20} "
        f"{str(drawdown.drawdown_date):<12} due {str(due):<12} "
        f"principal {drawdown.principal_amount:>15,.2f} remaining {drawdown.remaining_balance:>15,.2f} "
        f"{drawdown.status}"
    )


def _create(ctx, source: str, counter: str, amount: str, partner_id: int, when: str,
            reference, due_date, notes, kind: str) -> None:
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = DrawdownService(db)

    source_id, counter_id = resolve_pair_or_exit(ctx, account_service, source, counter)

    try:
        parsed_amount = parse_amount(amount)
        parsed_date = parse_date(when)
        parsed_due = parse_date(due_date) if due_date else None
        if kind == DEBT:
            result = service.create_drawdown(
                source_account_id=source_id,
                debt_account_id=counter_id,
                amount=parsed_amount,
                partner_id=partner_id,
                drawdown_date=parsed_date,
                reference=reference,
                due_date=parsed_due,
                notes=notes,
            )
        else:
            result = service.create_disbursement(
                source_account_id=source_id,
                loan_account_id=counter_id,
                amount=parsed_amount,
                partner_id=partner_id,
                disbursement_date=parsed_date,
                reference=reference,
                due_date=parsed_due,
                notes=notes,
            )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    label = "drawdown" if kind == DEBT else "disbursement"
    click.echo(
        f"Created {label} '{result.drawdown.reference}' (ID: {result.drawdown.id}); "
        f"transactions {result.source_transaction_id} and {result.counter_transaction_id} matched"
    )


@click.group()
def drawdown_group():
    """Manage debt drawdowns and loan disbursements."""
    pass


@drawdown_group.command("create")
@click.argument("source", metavar="SOURCE_ACCOUNT")
@click.argument("debt", metavar="DEBT_ACCOUNT")
@click.argument("amount")
@click.option("--partner", "partner_id", type=int, required=True, help="Lender partner ID")
@click.option("--date", "when", default="today", help="Drawdown date")
@click.option("--reference", help="Drawdown reference (generated if omitted)")
@click.option("--due-date", help="Repayment due date")
@click.option("--notes", help="Notes")
@click.pass_context
def create_drawdown(ctx, source, debt, amount, partner_id, when, reference, due_date, notes):
    """Borrow from a credit line or term loan into a bank or cash account.

    Examples:
        fintrack drawdown create "Main Bank" "Credit Line" 50,000,000 --partner 1 --due-date 2025-06-30
    """
    _create(ctx, source, debt, amount, partner_id, when, reference, due_date, notes, DEBT)


@drawdown_group.command("disburse")
@click.argument("source", metavar="SOURCE_ACCOUNT")
@click.argument("loan", metavar="LOAN_ACCOUNT")
@click.argument("amount")
@click.option("--partner", "partner_id", type=int, required=True, help="Borrower partner ID")
@click.option("--date", "when", default="today", help="Disbursement date")
@click.option("--reference", help="Loan reference (generated if omitted)")
@click.option("--due-date", help="Repayment due date")
@click.option("--notes", help="Notes")
@click.pass_context
def create_disbursement(ctx, source, loan, amount, partner_id, when, reference, due_date, notes):
    """Lend money from a bank or cash account to a borrower.

    Examples:
        fintrack drawdown disburse "Main Bank" "Loans to Partners" 1,000,000 --partner 2
    """
    _create(ctx, source, loan, amount, partner_id, when, reference, due_date, notes, LOAN)


@drawdown_group.command("write-off")
@click.argument("drawdown_id", type=int)
@click.argument("amount")
@click.option("--date", "when", default="today", help="Write-off date")
@click.option("--reason", help="Reason for the write-off")
@click.pass_context
def write_off(ctx, drawdown_id: int, amount: str, when: str, reason: str | None):
    """Write off part or all of a drawdown's remaining balance."""
    db = ctx.obj["db"]
    service = DrawdownService(db)

    try:
        drawdown = service.write_off(drawdown_id, parse_amount(amount), parse_date(when), reason)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(
        f"Wrote off {parse_amount(amount):,.2f} of drawdown {drawdown.id}; "
        f"remaining {drawdown.remaining_balance:,.2f} ({drawdown.status})"
    )


@drawdown_group.command("list")
@click.option("--account", help="Debt or loan account name or ID")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Only drawdowns with this status")
@click.option("--kind", type=click.Choice([DEBT, LOAN]), help="Only debts or only loans")
@click.pass_context
def list_drawdowns(ctx, account: str | None, status: str | None, kind: str | None):
    """List drawdowns."""
    db = ctx.obj["db"]
    service = DrawdownService(db)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    drawdowns = service.list_drawdowns(account_id=account_id, status=status, kind=kind)
    if not drawdowns:
        click.echo("No drawdowns found.")
        return

    click.echo(f"\nFound {len(drawdowns)} drawdown(s):")
    click.echo("-" * 130)
    for drawdown in drawdowns:
        _echo_drawdown(drawdown)


@drawdown_group.command("show")
@click.argument("drawdown_id", type=int)
@click.pass_context
def show_drawdown(ctx, drawdown_id: int):
    """Show a drawdown with its balance breakdown."""
    db = ctx.obj["db"]
    service = DrawdownService(db)

    try:
        drawdown = service.get_drawdown(drawdown_id)
        breakdown = service.balance_breakdown(drawdown_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    click.echo(f"\nDrawdown {drawdown.id}: {drawdown.reference} ({drawdown.kind})")
    click.echo(f"  Account: {drawdown.account_id} | Partner: {drawdown.partner_id}")
    click.echo(f"  Date: {drawdown.drawdown_date} | Due: {drawdown.due_date or '-'}")
    click.echo(f"  Status: {drawdown.status}")
    click.echo(f"  Principal:      {breakdown.principal_amount:>18,.2f}")
    click.echo(f"  Principal paid: {breakdown.principal_paid:>18,.2f}")
    click.echo(f"  Written off:    {breakdown.written_off_amount:>18,.2f}")
    click.echo(f"  Remaining:      {breakdown.remaining_balance:>18,.2f}")
    if breakdown.overpayment_amount:
        click.echo(f"  Overpayment:    {breakdown.overpayment_amount:>18,.2f}")
    if not breakdown.is_consistent:
        click.echo("  Warning: principal does not equal paid + written off + remaining", err=True)
    if drawdown.notes:
        click.echo(f"  Notes: {drawdown.notes}")


@drawdown_group.command("mark-overdue")
@click.option("--as-of", default="today", help="Reference date")
@click.pass_context
def mark_overdue(ctx, as_of: str):
    """Mark active drawdowns past their due date as overdue."""
    db = ctx.obj["db"]
    service = DrawdownService(db)

    try:
        ids = service.mark_overdue(parse_date(as_of))
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if ids:
        click.echo(f"Marked {len(ids)} drawdown(s) overdue: {', '.join(str(i) for i in ids)}")
    else:
        click.echo("No drawdowns became overdue.")


def register_commands(cli):
    """Register drawdown commands with main CLI."""
    cli.add_command(drawdown_group, name="drawdown")
