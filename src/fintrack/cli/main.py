"""Main CLI entry point."""

import click
from fintrack.database.factories import create_database
from fintrack.logging_config import setup_logging

# Import and register all commands at module level
from fintrack.cli.commands import (
    init,
    entity,
    account,
    partner,
    txn,
    split,
    transfer,
    drawdown,
    checkpoint,
    reconcile,
    invest,
)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to SQLite database file (overrides FINTRACK_DB_PATH environment variable)",
    envvar="FINTRACK_DB_PATH",
)
@click.option(
    "--database-url",
    help="SQLAlchemy database URL; takes precedence over --db-path",
    envvar="FINTRACK_DATABASE_URL",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level (overrides FINTRACK_LOG_LEVEL environment variable)",
    envvar="FINTRACK_LOG_LEVEL",
)
@click.pass_context
def cli(ctx, db_path: str | None, database_url: str | None, log_level: str):
    """Fintrack - Multi-entity ledger with paired transactions.

    Record bank, credit and loan transactions, split them into line items,
    match transfers, track drawdowns and reconcile declared balances.
    """
    ctx.ensure_object(dict)
    setup_logging(log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_database(database_path=db_path, database_url=database_url)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
init.register_commands(cli)
entity.register_commands(cli)
account.register_commands(cli)
partner.register_commands(cli)
txn.register_commands(cli)
split.register_commands(cli)
transfer.register_commands(cli)
drawdown.register_commands(cli)
checkpoint.register_commands(cli)
reconcile.register_commands(cli)
invest.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
