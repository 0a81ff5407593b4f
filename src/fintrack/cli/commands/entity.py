"""Entity management commands."""

import click
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService


@click.group()
def entity_group():
    """Manage owning entities (people or companies)."""
    pass


@entity_group.command("create")
@click.argument("name", metavar="ENTITY_NAME")
@click.pass_context
def create_entity(ctx, name: str):
    """Create a new entity.

    Examples:
        fintrack entity create "Acme Ltd"
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    try:
        entity_id = service.create_entity(name)
        click.echo(f"Created entity '{name}' (ID: {entity_id})")
    except ValueError as e:
        handle_domain_error(ctx, e)


@entity_group.command("list")
@click.pass_context
def list_entities(ctx):
    """List all entities."""
    db = ctx.obj["db"]
    service = AccountService(db)

    entities = service.list_entities()
    if not entities:
        click.echo("No entities found.")
        return

    click.echo("\nEntities:")
    click.echo("-" * 40)
    for ent in entities:
        click.echo(f"ID: {ent.id:3d} | {ent.name}")


def register_commands(cli):
    """Register entity commands with main CLI."""
    cli.add_command(entity_group, name="entity")
