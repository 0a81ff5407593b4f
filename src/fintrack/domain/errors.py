"""Shared domain error messages and error types."""

from typing import Sequence


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or a violated business rule."""


class NotFoundError(DomainError):
    """Referenced entity, account, transaction or checkpoint does not exist."""


class ConflictError(DomainError):
    """Concurrent modification, such as a double match."""


class IntegrityError(DomainError):
    """A multi-step write failed part way through."""


class CompensationError(IntegrityError):
    """Rollback of a partial multi-step write did not complete.

    The ledger may be inconsistent; ``failed_steps`` names the compensations
    that raised so they can be cleaned up by hand.
    """

    def __init__(self, message: str, failed_steps: Sequence[str] = ()):
        super().__init__(message)
        self.failed_steps = list(failed_steps)


def account_not_found(account_id: int) -> str:
    """Return message for missing account."""
    return f"Account {account_id} not found"


def entity_not_found(entity_id: int) -> str:
    """Return message for missing entity."""
    return f"Entity {entity_id} not found"


def partner_not_found(partner_id: int) -> str:
    """Return message for missing business partner."""
    return f"Business partner {partner_id} not found"


def category_not_found(category_id: int) -> str:
    """Return message for missing category by ID."""
    return f"Category {category_id} not found"


def transaction_type_not_found(type_code: str) -> str:
    """Return message for a missing transaction type code."""
    return f"Transaction type '{type_code}' not found. Run 'fintrack init' first."


def raw_transaction_not_found(raw_transaction_id: str) -> str:
    """Return message for missing raw transaction."""
    return f"Raw transaction '{raw_transaction_id}' not found"


def main_transaction_not_found(main_transaction_id: int) -> str:
    """Return message for missing main transaction."""
    return f"Transaction {main_transaction_id} not found"


def drawdown_not_found(drawdown_id: int) -> str:
    """Return message for missing drawdown."""
    return f"Drawdown {drawdown_id} not found"


def investment_contribution_not_found(contribution_id: int) -> str:
    """Return message for missing investment contribution."""
    return f"Investment contribution {contribution_id} not found"


def checkpoint_not_found(checkpoint_id: int) -> str:
    """Return message for missing checkpoint."""
    return f"Checkpoint {checkpoint_id} not found"


def already_matched(main_transaction_id: int) -> str:
    """Return message when a transaction already has a matched partner."""
    return f"Transaction {main_transaction_id} is already matched to another transaction"


def duplicate_raw_transaction(raw_transaction_id: str) -> str:
    """Return message for duplicate raw transaction ID."""
    return f"Raw transaction '{raw_transaction_id}' already exists"


def too_many_decimals(amount) -> str:
    """Return message for an amount finer than one cent."""
    return f"Amount {amount} has more than two decimal places"
