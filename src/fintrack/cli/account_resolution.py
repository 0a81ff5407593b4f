"""Account lookup for command arguments."""

from __future__ import annotations

from typing import Optional

import click
from fintrack.cli.error_handling import handle_domain_error
from fintrack.domain.account import AccountService
from fintrack.utils.account_resolver import resolve_account


def resolve_account_or_exit(
    ctx: click.Context,
    account_service: AccountService,
    account: str | int,
    entity_id: Optional[int] = None,
) -> int:
    """Turn an account name or ID from the command line into an account ID.

    Names are matched across all entities unless ``entity_id`` is given, so
    the second account of a pair can be looked up within the first one's
    entity. An unknown or ambiguous account ends the command with exit code 1.
    """
    try:
        return resolve_account(account_service, account, entity_id=entity_id)
    except ValueError as exc:
        handle_domain_error(ctx, exc)


def resolve_pair_or_exit(
    ctx: click.Context, account_service: AccountService, first: str, second: str
) -> tuple[int, int]:
    """Resolve two accounts of one entity; the second by name within the first's entity."""
    first_id = resolve_account_or_exit(ctx, account_service, first)
    entity_id = account_service.get_account(first_id).entity_id
    return first_id, resolve_account_or_exit(ctx, account_service, second, entity_id=entity_id)
