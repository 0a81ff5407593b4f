"""Account, entity and business partner domain service."""

import logging
from typing import Optional
from decimal import Decimal

from fintrack.database.base import Database
from fintrack.domain.entities import (
    Account as AccountEntity,
    BusinessPartner as PartnerEntity,
    Entity as OwnerEntity,
)
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    entity_not_found,
)
from fintrack.domain.ledger_rules import ACCOUNT_TYPES, CREDIT_LIMIT_ACCOUNT_TYPES

logger = logging.getLogger(__name__)


class AccountService:
    """Service for managing entities, accounts and business partners."""

    def __init__(self, db: Database):
        """Initialize account service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_entity(self, name: str) -> int:
        """Create an owning entity.

        Args:
            name: Entity name

        Returns:
            Entity ID

        Raises:
            ValidationError: If the name is empty or already taken
        """
        name = name.strip()
        if not name:
            raise ValidationError("Entity name must not be empty")
        for existing in self.db.list_entities():
            if existing.name == name:
                raise ValidationError(f"Entity with name '{name}' already exists")

        return self.db.create_entity(name)

    def get_entity(self, entity_id: int) -> Optional[OwnerEntity]:
        """Get entity by ID."""
        return self.db.get_entity(entity_id)

    def list_entities(self) -> list[OwnerEntity]:
        """List all entities."""
        return self.db.list_entities()

    def create_account(
        self,
        entity_id: int,
        name: str,
        account_type: str,
        currency: str = "VND",
        credit_limit: Optional[Decimal] = None,
    ) -> int:
        """Create a new account.

        Args:
            entity_id: Owning entity ID
            name: Account name, unique within the entity
            account_type: One of the known account types
            currency: Currency code
            credit_limit: Optional limit, only for debt-type accounts

        Returns:
            Account ID

        Raises:
            NotFoundError: If the entity doesn't exist
            ValidationError: If type, name or credit limit is invalid
        """
        if self.db.get_entity(entity_id) is None:
            raise NotFoundError(entity_not_found(entity_id))

        if account_type not in ACCOUNT_TYPES:
            raise ValidationError(
                f"Invalid account type '{account_type}'. "
                f"Expected one of: {', '.join(ACCOUNT_TYPES)}"
            )

        if credit_limit is not None:
            if account_type not in CREDIT_LIMIT_ACCOUNT_TYPES:
                raise ValidationError(
                    f"Credit limit only applies to {', '.join(sorted(CREDIT_LIMIT_ACCOUNT_TYPES))} accounts"
                )
            if credit_limit < 0:
                raise ValidationError("Credit limit must not be negative")

        if self.db.get_account_by_name(entity_id, name) is not None:
            raise ValidationError(f"Account with name '{name}' already exists")

        account_id = self.db.create_account(
            entity_id=entity_id,
            name=name,
            account_type=account_type,
            currency=currency,
            credit_limit=credit_limit,
        )
        logger.info("Created %s account %s '%s'", account_type, account_id, name)
        return account_id

    def get_account(self, account_id: int) -> Optional[AccountEntity]:
        """Get account by ID.

        Args:
            account_id: Account ID

        Returns:
            Account entity or None if not found
        """
        return self.db.get_account(account_id)

    def require_account(self, account_id: int) -> AccountEntity:
        """Get account by ID, raising NotFoundError if it doesn't exist."""
        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        return account

    def list_accounts(
        self, entity_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[AccountEntity]:
        """List accounts.

        Args:
            entity_id: Optional entity to filter by
            include_inactive: Whether deactivated accounts are included

        Returns:
            List of account entities
        """
        return self.db.list_accounts(entity_id=entity_id, include_inactive=include_inactive)

    def deactivate_account(self, account_id: int) -> None:
        """Deactivate an account.

        Accounts are never deleted so that their transaction history stays
        intact; a deactivated account no longer accepts new transactions.

        Raises:
            NotFoundError: If the account doesn't exist
            ValidationError: If it is already inactive
        """
        account = self.require_account(account_id)
        if not account.is_active:
            raise ValidationError(f"Account {account_id} is already inactive")

        self.db.set_account_active(account_id, False)
        logger.info(
            "Deactivated account %s with %d transactions",
            account_id,
            self.db.get_account_transaction_count(account_id),
        )

    def create_partner(self, entity_id: int, name: str) -> int:
        """Create a business partner.

        Raises:
            NotFoundError: If the entity doesn't exist
            ValidationError: If the name is empty
        """
        if self.db.get_entity(entity_id) is None:
            raise NotFoundError(entity_not_found(entity_id))
        name = name.strip()
        if not name:
            raise ValidationError("Partner name must not be empty")
        return self.db.create_partner(entity_id, name)

    def get_partner(self, partner_id: int) -> Optional[PartnerEntity]:
        """Get business partner by ID."""
        return self.db.get_partner(partner_id)

    def list_partners(self, entity_id: Optional[int] = None) -> list[PartnerEntity]:
        """List business partners, optionally for one entity."""
        return self.db.list_partners(entity_id)
