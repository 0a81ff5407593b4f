"""Business partner commands."""

import click
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService


@click.group()
def partner_group():
    """Manage business partners (lenders and borrowers)."""
    pass


@partner_group.command("create")
@click.argument("name", metavar="PARTNER_NAME")
@click.option("--entity", "entity_id", type=int, required=True, help="Owning entity ID")
@click.pass_context
def create_partner(ctx, name: str, entity_id: int):
    """Create a business partner.

    Examples:
        fintrack partner create "First Bank" --entity 1
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        partner_id = service.create_partner(entity_id=entity_id, name=name)
        click.echo(f"Created partner '{name}' (ID: {partner_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@partner_group.command("list")
@click.option("--entity", "entity_id", type=int, help="Only partners of this entity")
@click.pass_context
def list_partners(ctx, entity_id: int | None):
    """List business partners."""
    db = ctx.obj["db"]
    service = AccountService(db)

    partners = service.list_partners(entity_id=entity_id)
    if not partners:
        click.echo("No partners found.")
        return

    click.echo("\nPartners:")
    click.echo("-" * 50)
    for partner in partners:
        click.echo(f"ID: {partner.id:3d} | {partner.name:25s} | Entity: {partner.entity_id}")


def register_commands(cli):
    """Register partner commands with main CLI."""
    cli.add_command(partner_group, name="partner")
