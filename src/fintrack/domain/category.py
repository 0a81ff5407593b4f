"""Category and transaction type domain services."""

import logging
from typing import Optional

from fintrack.database.base import Database
from fintrack.domain.entities import Category as CategoryEntity, TransactionType
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    category_not_found,
    transaction_type_not_found,
)
from fintrack.domain.ledger_rules import DEFAULT_TRANSACTION_TYPES

logger = logging.getLogger(__name__)


class TransactionTypeService:
    """Service for the transaction type catalog."""

    def __init__(self, db: Database):
        """Initialize transaction type service.

        Args:
            db: Database instance
        """
        self.db = db

    def ensure_default_types(self) -> int:
        """Create any missing default transaction types.

        Returns:
            Number of types created
        """
        created = 0
        for type_code, name in DEFAULT_TRANSACTION_TYPES:
            if self.db.get_transaction_type_by_code(type_code) is None:
                self.db.create_transaction_type(type_code, name)
                created += 1
        if created:
            logger.info("Seeded %d transaction types", created)
        return created

    def get_by_code(self, type_code: str) -> TransactionType:
        """Get transaction type by code.

        Raises:
            NotFoundError: If no type has that code
        """
        txn_type = self.db.get_transaction_type_by_code(type_code)
        if txn_type is None:
            raise NotFoundError(transaction_type_not_found(type_code))
        return txn_type

    def code_of(self, type_id: Optional[int]) -> Optional[str]:
        """Type code for a type ID, or None for untyped rows."""
        if type_id is None:
            return None
        txn_type = self.db.get_transaction_type(type_id)
        return txn_type.type_code if txn_type is not None else None

    def list_types(self) -> list[TransactionType]:
        """List all transaction types."""
        return self.db.list_transaction_types()


class CategoryService:
    """Service for managing categories."""

    def __init__(self, db: Database):
        """Initialize category service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_category(self, name: str, parent_id: Optional[int] = None) -> int:
        """Create a category.

        Args:
            name: Category name
            parent_id: Optional parent category ID

        Returns:
            Category ID

        Raises:
            NotFoundError: If parent category doesn't exist
            ValidationError: If name is empty
        """
        if not name.strip():
            raise ValidationError("Category name must not be empty")
        if parent_id is not None and self.db.get_category(parent_id) is None:
            raise NotFoundError(category_not_found(parent_id))

        return self.db.create_category(name=name.strip(), parent_id=parent_id)

    def get_category(self, category_id: int) -> Optional[CategoryEntity]:
        """Get category by ID."""
        return self.db.get_category(category_id)

    def require_category(self, category_id: int) -> CategoryEntity:
        """Get category by ID, raising NotFoundError if it doesn't exist."""
        category = self.db.get_category(category_id)
        if category is None:
            raise NotFoundError(category_not_found(category_id))
        return category

    def list_categories(self) -> list[CategoryEntity]:
        """List all categories."""
        return self.db.list_categories()
