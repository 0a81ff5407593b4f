"""Investment contribution and withdrawal commands."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit, resolve_pair_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.investment import InvestmentService
from fintrack.utils.amount_parser import parse_amount
from fintrack.utils.date_parser import parse_date

STATUS_CHOICES = ["active", "partial_withdrawal", "fully_withdrawn"]


@click.group()
def invest_group():
    """Manage investment contributions and withdrawals."""
    pass


@invest_group.command("contribute")
@click.argument("source", metavar="SOURCE_ACCOUNT")
@click.argument("amount")
@click.option(
    "--investment-account",
    help="Investment account name or ID (the entity's investment account if omitted)",
)
@click.option("--date", "when", default="today", help="Contribution date")
@click.option("--notes", help="Notes")
@click.pass_context
def contribute(ctx, source: str, amount: str, investment_account: str | None, when: str,
               notes: str | None):
    """Move money from a bank or cash account into an investment account.

    Examples:
        fintrack invest contribute "Main Bank" 20,000,000
        fintrack invest contribute "Main Bank" 5,000,000 --investment-account "Brokerage"
    """
    db = ctx.obj["db"]
    account_service = AccountService(db)
    service = InvestmentService(db)

    if investment_account:
        source_id, investment_id = resolve_pair_or_exit(
            ctx, account_service, source, investment_account
        )
    else:
        source_id = resolve_account_or_exit(ctx, account_service, source)
        investment_id = None

    try:
        result = service.create_investment_contribution(
            source_account_id=source_id,
            amount=parse_amount(amount),
            contribution_date=parse_date(when),
            investment_account_id=investment_id,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    contribution = result.contribution
    click.echo(
        f"Created contribution of {contribution.contribution_amount:,.2f} (ID: {contribution.id}) "
        f"into account {contribution.investment_account_id}; transactions "
        f"{result.source_transaction_id} and {result.counter_transaction_id} matched"
    )


@invest_group.command("withdraw")
@click.argument("contribution_id", type=int)
@click.argument("amount")
@click.option("--to", "destination", required=True, help="Bank or cash account receiving the money")
@click.option("--date", "when", default="today", help="Withdrawal date")
@click.option("--notes", help="Notes")
@click.pass_context
def withdraw(ctx, contribution_id: int, amount: str, destination: str, when: str,
             notes: str | None):
    """Withdraw part or all of a contribution back to a bank or cash account.

    Examples:
        fintrack invest withdraw 3 5,000,000 --to "Main Bank"
    """
    db = ctx.obj["db"]
    service = InvestmentService(db)
    destination_id = resolve_account_or_exit(ctx, AccountService(db), destination)

    try:
        result = service.create_investment_withdrawal(
            contribution_id=contribution_id,
            amount=parse_amount(amount),
            withdrawal_date=parse_date(when),
            destination_account_id=destination_id,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    contribution = result.contribution
    click.echo(
        f"Withdrew {parse_amount(amount):,.2f} from contribution {contribution.id}; "
        f"still invested {contribution.remaining_amount:,.2f} ({contribution.status})"
    )


@invest_group.command("list")
@click.option("--account", help="Investment account name or ID")
@click.option("--entity", "entity_id", type=int, help="Entity ID")
@click.option("--status", type=click.Choice(STATUS_CHOICES), help="Only contributions with this status")
@click.pass_context
def list_contributions(ctx, account: str | None, entity_id: int | None, status: str | None):
    """List investment contributions."""
    db = ctx.obj["db"]
    service = InvestmentService(db)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account, entity_id=entity_id)

    contributions = service.list_contributions(
        account_id=account_id, entity_id=entity_id, status=status
    )
    if not contributions:
        click.echo("No investment contributions found.")
        return

    click.echo(f"\nFound {len(contributions)} contribution(s):")
    click.echo("-" * 110)
    for c in contributions:
        click.echo(
            f"ID: {c.id:<4} {str(c.contribution_date):<12} account {c.investment_account_id:<4} "
            f"from {c.source_account_id:<4} contributed {c.contribution_amount:>15,.2f} "
            f"withdrawn {c.withdrawn_amount:>15,.2f} {c.status}"
        )


def register_commands(cli):
    """Register investment commands with main CLI."""
    cli.add_command(invest_group, name="invest")
