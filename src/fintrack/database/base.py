"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Optional, Iterator
from datetime import date
from decimal import Decimal

# Import entities directly; the domain package does not re-export services
from fintrack.domain.entities import (
    Entity,
    Account,
    BusinessPartner,
    TransactionType,
    Category,
    RawTransaction,
    MainTransaction,
    Checkpoint,
    Drawdown,
    InvestmentContribution,
)


class Database(ABC):
    """Abstract database interface for the fintrack ledger store.

    Every write method commits on its own unless it runs inside
    ``transaction()``, in which case the whole block commits or rolls back
    together.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group several writes into one atomic unit."""
        pass

    # Entity operations
    @abstractmethod
    def create_entity(self, name: str) -> int:
        """Create an owning entity. Returns entity ID."""
        pass

    @abstractmethod
    def get_entity(self, entity_id: int) -> Optional[Entity]:
        """Get entity by ID."""
        pass

    @abstractmethod
    def list_entities(self) -> list[Entity]:
        """List all entities."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self,
        entity_id: int,
        name: str,
        account_type: str,
        currency: str = "VND",
        credit_limit: Optional[Decimal] = None,
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def get_account_by_name(self, entity_id: int, name: str) -> Optional[Account]:
        """Get account by name within an entity."""
        pass

    @abstractmethod
    def list_accounts(
        self, entity_id: Optional[int] = None, include_inactive: bool = False
    ) -> list[Account]:
        """List accounts, optionally filtered by entity."""
        pass

    @abstractmethod
    def set_account_active(self, account_id: int, is_active: bool) -> None:
        """Activate or deactivate an account."""
        pass

    @abstractmethod
    def get_account_transaction_count(self, account_id: int) -> int:
        """Get count of raw transactions on an account."""
        pass

    # Business partner operations
    @abstractmethod
    def create_partner(self, entity_id: int, name: str) -> int:
        """Create a business partner. Returns partner ID."""
        pass

    @abstractmethod
    def get_partner(self, partner_id: int) -> Optional[BusinessPartner]:
        """Get business partner by ID."""
        pass

    @abstractmethod
    def list_partners(self, entity_id: Optional[int] = None) -> list[BusinessPartner]:
        """List business partners."""
        pass

    # Transaction type and category operations
    @abstractmethod
    def create_transaction_type(self, type_code: str, name: str) -> int:
        """Create a transaction type. Returns type ID."""
        pass

    @abstractmethod
    def get_transaction_type(self, type_id: int) -> Optional[TransactionType]:
        """Get transaction type by ID."""
        pass

    @abstractmethod
    def get_transaction_type_by_code(self, type_code: str) -> Optional[TransactionType]:
        """Get transaction type by code."""
        pass

    @abstractmethod
    def list_transaction_types(self) -> list[TransactionType]:
        """List all transaction types."""
        pass

    @abstractmethod
    def create_category(self, name: str, parent_id: Optional[int] = None) -> int:
        """Create a category. Returns category ID."""
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Category]:
        """Get category by ID."""
        pass

    @abstractmethod
    def list_categories(self) -> list[Category]:
        """List all categories."""
        pass

    # Raw transaction operations
    @abstractmethod
    def create_raw_transaction(
        self,
        raw_transaction_id: str,
        account_id: int,
        transaction_date: date,
        description: Optional[str],
        debit_amount: Optional[Decimal],
        credit_amount: Optional[Decimal],
        transaction_sequence: int,
        balance: Optional[Decimal] = None,
        is_balance_adjustment: bool = False,
        checkpoint_id: Optional[int] = None,
        transaction_source: str = "user_manual",
        notes: Optional[str] = None,
        transaction_type_id: Optional[int] = None,
        category_id: Optional[int] = None,
        drawdown_id: Optional[int] = None,
        transaction_subtype: Optional[str] = None,
        credit_memo_of_drawdown_id: Optional[int] = None,
        investment_contribution_id: Optional[int] = None,
    ) -> int:
        """Create a raw transaction together with its default main transaction.

        Returns the main transaction ID.
        """
        pass

    @abstractmethod
    def get_raw_transaction(self, raw_transaction_id: str) -> Optional[RawTransaction]:
        """Get raw transaction by ID."""
        pass

    @abstractmethod
    def raw_transaction_exists(self, raw_transaction_id: str) -> bool:
        """Check if a raw transaction ID is taken."""
        pass

    @abstractmethod
    def get_raw_transaction_by_checkpoint(self, checkpoint_id: int) -> Optional[RawTransaction]:
        """Get the balance adjustment transaction of a checkpoint."""
        pass

    @abstractmethod
    def next_transaction_sequence(self, account_id: int, transaction_date: date) -> int:
        """Next free same-day ordering number for an account."""
        pass

    @abstractmethod
    def list_raw_transactions(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[RawTransaction]:
        """List raw transactions in (date, sequence) order."""
        pass

    @abstractmethod
    def iter_raw_transactions(
        self,
        account_id: int,
        after_date: Optional[date],
        up_to_date: date,
        batch_size: int = 500,
    ) -> Iterator[RawTransaction]:
        """Stream raw transactions dated in (after_date, up_to_date].

        Rows come in (transaction_date, transaction_sequence) order and are
        read from the store in batches.
        """
        pass

    @abstractmethod
    def update_raw_transaction_notes(self, raw_transaction_id: str, notes: Optional[str]) -> None:
        """Update the notes of a raw transaction."""
        pass

    @abstractmethod
    def update_raw_transaction_amount(
        self,
        raw_transaction_id: str,
        debit_amount: Optional[Decimal],
        credit_amount: Optional[Decimal],
        transaction_type_id: Optional[int] = None,
    ) -> None:
        """Rewrite the amount of an unsplit raw transaction and its main row."""
        pass

    @abstractmethod
    def delete_raw_transaction(self, raw_transaction_id: str) -> None:
        """Delete a raw transaction and all of its main transactions."""
        pass

    # Main transaction operations
    @abstractmethod
    def get_main_transaction(self, main_transaction_id: int) -> Optional[MainTransaction]:
        """Get main transaction by ID."""
        pass

    @abstractmethod
    def list_main_transactions(
        self,
        raw_transaction_id: Optional[str] = None,
        account_ids: Optional[list[int]] = None,
        drawdown_id: Optional[int] = None,
        credit_memo_of_drawdown_id: Optional[int] = None,
        investment_contribution_id: Optional[int] = None,
        transaction_type_ids: Optional[list[int]] = None,
        matched: Optional[bool] = None,
    ) -> list[MainTransaction]:
        """List main transactions with optional filters."""
        pass

    @abstractmethod
    def replace_main_transactions(self, raw_transaction_id: str, rows: list[dict]) -> list[int]:
        """Delete all main rows of a raw transaction and insert ``rows``.

        The delete and insert commit together. Returns the new IDs in order.
        """
        pass

    @abstractmethod
    def update_main_transaction(self, main_transaction_id: int, **fields) -> None:
        """Update fields of a main transaction."""
        pass

    @abstractmethod
    def link_main_transactions(self, first_id: int, second_id: int) -> None:
        """Point two unmatched main transactions at each other.

        Each side is only written while its link is still empty; otherwise
        nothing is written and ConflictError is raised.
        """
        pass

    @abstractmethod
    def unlink_main_transactions(self, first_id: int, second_id: int) -> None:
        """Clear the link between two main transactions that point at each other.

        Raises ConflictError if either side no longer points at the other.
        """
        pass

    @abstractmethod
    def delete_main_transaction(self, main_transaction_id: int) -> None:
        """Delete a single main transaction."""
        pass

    # Checkpoint operations
    @abstractmethod
    def create_checkpoint(
        self,
        account_id: int,
        checkpoint_date: date,
        declared_balance: Decimal,
        calculated_balance: Decimal,
        adjustment_amount: Decimal,
        is_reconciled: bool,
        import_batch_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a checkpoint. Returns checkpoint ID."""
        pass

    @abstractmethod
    def update_checkpoint(self, checkpoint_id: int, **fields) -> None:
        """Update checkpoint fields."""
        pass

    @abstractmethod
    def get_checkpoint(self, checkpoint_id: int) -> Optional[Checkpoint]:
        """Get checkpoint by ID."""
        pass

    @abstractmethod
    def get_checkpoint_by_date(self, account_id: int, checkpoint_date: date) -> Optional[Checkpoint]:
        """Get an account's checkpoint on a date."""
        pass

    @abstractmethod
    def list_checkpoints(
        self, account_id: int, up_to_date: Optional[date] = None
    ) -> list[Checkpoint]:
        """List an account's checkpoints by ascending date."""
        pass

    @abstractmethod
    def delete_checkpoint(self, checkpoint_id: int) -> None:
        """Delete a checkpoint."""
        pass

    # Drawdown operations
    @abstractmethod
    def create_drawdown(
        self,
        kind: str,
        account_id: int,
        partner_id: int,
        reference: str,
        drawdown_date: date,
        principal_amount: Decimal,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Create a drawdown with remaining balance equal to principal."""
        pass

    @abstractmethod
    def get_drawdown(self, drawdown_id: int) -> Optional[Drawdown]:
        """Get drawdown by ID."""
        pass

    @abstractmethod
    def list_drawdowns(
        self,
        account_id: Optional[int] = None,
        status: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> list[Drawdown]:
        """List drawdowns with optional filters."""
        pass

    @abstractmethod
    def update_drawdown(
        self, drawdown_id: int, expected_remaining: Optional[Decimal] = None, **fields
    ) -> None:
        """Update drawdown fields.

        When ``expected_remaining`` is given the update only applies while the
        stored remaining balance still equals it; otherwise ConflictError.
        """
        pass

    @abstractmethod
    def delete_drawdown(self, drawdown_id: int) -> None:
        """Delete a drawdown."""
        pass

    # Investment contribution operations
    @abstractmethod
    def create_investment_contribution(
        self,
        entity_id: int,
        investment_account_id: int,
        source_account_id: int,
        contribution_amount: Decimal,
        contribution_date: date,
        notes: Optional[str] = None,
    ) -> int:
        """Create an investment contribution. Returns contribution ID."""
        pass

    @abstractmethod
    def get_investment_contribution(self, contribution_id: int) -> Optional[InvestmentContribution]:
        """Get investment contribution by ID."""
        pass

    @abstractmethod
    def list_investment_contributions(
        self,
        investment_account_ids: Optional[list[int]] = None,
        status: Optional[str] = None,
    ) -> list[InvestmentContribution]:
        """List investment contributions with optional filters."""
        pass

    @abstractmethod
    def update_investment_contribution(
        self, contribution_id: int, expected_withdrawn: Optional[Decimal] = None, **fields
    ) -> None:
        """Update contribution fields.

        When ``expected_withdrawn`` is given the update only applies while the
        stored withdrawn amount still equals it; otherwise ConflictError.
        """
        pass

    @abstractmethod
    def delete_investment_contribution(self, contribution_id: int) -> None:
        """Delete an investment contribution."""
        pass
