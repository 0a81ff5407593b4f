"""CLI error handling helpers."""

import click

from fintrack.domain.errors import CompensationError, DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, CompensationError) and error.failed_steps:
        click.echo("Manual cleanup needed:", err=True)
        for step in error.failed_steps:
            click.echo(f"  - {step}", err=True)
    ctx.exit(1)
