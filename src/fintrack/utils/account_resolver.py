"""Utility for resolving account names to IDs."""

from typing import Optional

from fintrack.domain.account import AccountService
from fintrack.domain.errors import NotFoundError


def resolve_account(
    account_service: AccountService, account: str | int, entity_id: Optional[int] = None
) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account name, or ID (int or string representation of int)
        entity_id: Optional entity to restrict name lookups to

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found or the name is ambiguous
    """
    if isinstance(account, int) or account.strip().isdigit():
        account_id = int(account)
        if account_service.get_account(account_id) is None:
            raise NotFoundError(f"Account ID {account_id} not found")
        return account_id

    matches = [
        acc
        for acc in account_service.list_accounts(entity_id=entity_id, include_inactive=True)
        if acc.name == account
    ]
    if not matches:
        raise NotFoundError(f"Account '{account}' not found")
    if len(matches) > 1:
        raise NotFoundError(
            f"Account name '{account}' exists in several entities; use the account ID"
        )
    return matches[0].id
