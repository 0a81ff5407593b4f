"""Initialize the transaction type catalog."""

import click
from fintrack.domain.category import TransactionTypeService


@click.command("init")
@click.pass_context
def init_command(ctx):
    """Seed the default transaction types.

    Safe to run more than once; existing types are left alone.

    Examples:
        fintrack init
    """
    db = ctx.obj["db"]
    service = TransactionTypeService(db)

    created = service.ensure_default_types()
    if created:
        click.echo(f"Created {created} transaction type(s).")
    else:
        click.echo("Transaction types already initialized.")


def register_commands(cli):
    """Register init command with main CLI."""
    cli.add_command(init_command)
