"""Account management commands."""

import click
from fintrack.cli.account_resolution import resolve_account_or_exit
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.domain.ledger_rules import ACCOUNT_TYPES
from fintrack.utils.amount_parser import parse_amount


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--entity", "entity_id", type=int, required=True, help="Owning entity ID")
@click.option(
    "--type", "account_type", type=click.Choice(ACCOUNT_TYPES), required=True, help="Account type"
)
@click.option("--currency", default="VND", show_default=True, help="Currency code")
@click.option("--credit-limit", help="Credit limit (debt accounts only)")
@click.pass_context
def create_account(
    ctx, name: str, entity_id: int, account_type: str, currency: str, credit_limit: str | None
):
    """Create a new account.

    Examples:
        fintrack account create "Main Bank" --entity 1 --type bank
        fintrack account create "Credit Line" --entity 1 --type credit_line --credit-limit 50,000,000
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        limit = parse_amount(credit_limit) if credit_limit is not None else None
        account_id = service.create_account(
            entity_id=entity_id,
            name=name,
            account_type=account_type,
            currency=currency,
            credit_limit=limit,
        )
        click.echo(f"Created account '{name}' (ID: {account_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@account_group.command("list")
@click.option("--entity", "entity_id", type=int, help="Only accounts of this entity")
@click.option("--all", "include_inactive", is_flag=True, help="Include deactivated accounts")
@click.pass_context
def list_accounts(ctx, entity_id: int | None, include_inactive: bool):
    """List accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts(entity_id=entity_id, include_inactive=include_inactive)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 72)
    for acc in accounts:
        status = "" if acc.is_active else " (inactive)"
        click.echo(
            f"ID: {acc.id:3d} | {acc.name:20s} | {acc.account_type:15s} | "
            f"Entity: {acc.entity_id} | {acc.currency}{status}"
        )


@account_group.command("deactivate")
@click.argument("account", metavar="ACCOUNT")
@click.pass_context
def deactivate_account(ctx, account: str) -> None:
    """Deactivate an account.

    ACCOUNT can be an account name or ID. Accounts are never deleted, so
    their transaction history stays intact.

    Examples:
        fintrack account deactivate "Old Savings"
        fintrack account deactivate 3
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        service.deactivate_account(account_id)
        click.echo(f"Deactivated account {account_id}")
    except ValueError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
