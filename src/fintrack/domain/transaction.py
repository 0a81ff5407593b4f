"""Transaction domain service."""

import logging
import uuid
from typing import Optional
from datetime import date
from decimal import Decimal

from fintrack.database.base import Database
from fintrack.domain.category import CategoryService, TransactionTypeService
from fintrack.domain.entities import MainTransaction, RawTransaction
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    duplicate_raw_transaction,
    main_transaction_not_found,
    raw_transaction_not_found,
    too_many_decimals,
)
from fintrack.domain.ledger_rules import SOURCE_USER, default_type_code, is_whole_cents

logger = logging.getLogger(__name__)


def new_raw_transaction_id(prefix: str = "TXN") -> str:
    """Generate a unique raw transaction ID."""
    return f"{prefix}-{uuid.uuid4().hex[:16].upper()}"


class TransactionService:
    """Service for managing raw and main transactions."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db
        self.type_service = TransactionTypeService(db)
        self.category_service = CategoryService(db)

    def create_raw_transaction(
        self,
        account_id: int,
        transaction_date: date,
        debit_amount: Optional[Decimal] = None,
        credit_amount: Optional[Decimal] = None,
        description: Optional[str] = None,
        balance: Optional[Decimal] = None,
        notes: Optional[str] = None,
        raw_transaction_id: Optional[str] = None,
        transaction_source: str = SOURCE_USER,
        transaction_type_code: Optional[str] = None,
        category_id: Optional[int] = None,
    ) -> str:
        """Record a raw transaction and its default main transaction.

        Args:
            account_id: Account ID
            transaction_date: Transaction date
            debit_amount: Amount leaving the account (exclusive with credit)
            credit_amount: Amount entering the account (exclusive with debit)
            description: Optional description
            balance: Optional declared running balance after this entry
            notes: Optional notes
            raw_transaction_id: Optional explicit ID, generated if omitted
            transaction_source: Origin of the entry
            transaction_type_code: Type of the main row; defaults to INC/EXP
            category_id: Optional category for the main row

        Returns:
            Raw transaction ID

        Raises:
            NotFoundError: If account, type or category doesn't exist
            ValidationError: If amounts are invalid, the account is inactive
                or the ID is taken
        """
        if (debit_amount is None) == (credit_amount is None):
            raise ValidationError("Exactly one of debit amount or credit amount must be given")
        amount = debit_amount if debit_amount is not None else credit_amount
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        for value in (amount, balance):
            if value is not None and not is_whole_cents(value):
                raise ValidationError(too_many_decimals(value))

        account = self.db.get_account(account_id)
        if account is None:
            raise NotFoundError(account_not_found(account_id))
        if not account.is_active:
            raise ValidationError(f"Account {account_id} is inactive")

        if raw_transaction_id is None:
            raw_transaction_id = new_raw_transaction_id()
        elif self.db.raw_transaction_exists(raw_transaction_id):
            raise ValidationError(duplicate_raw_transaction(raw_transaction_id))

        direction = "debit" if debit_amount is not None else "credit"
        txn_type = self.type_service.get_by_code(transaction_type_code or default_type_code(direction))
        if category_id is not None:
            self.category_service.require_category(category_id)

        self.db.create_raw_transaction(
            raw_transaction_id=raw_transaction_id,
            account_id=account_id,
            transaction_date=transaction_date,
            description=description,
            debit_amount=debit_amount,
            credit_amount=credit_amount,
            transaction_sequence=self.db.next_transaction_sequence(account_id, transaction_date),
            balance=balance,
            transaction_source=transaction_source,
            notes=notes,
            transaction_type_id=txn_type.id,
            category_id=category_id,
        )
        logger.debug("Created raw transaction %s on account %s", raw_transaction_id, account_id)
        return raw_transaction_id

    def get_raw_transaction(self, raw_transaction_id: str) -> Optional[RawTransaction]:
        """Get raw transaction by ID."""
        return self.db.get_raw_transaction(raw_transaction_id)

    def list_raw_transactions(
        self,
        account_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[RawTransaction]:
        """List raw transactions in ledger order.

        Args:
            account_id: Optional account to filter by
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date

        Returns:
            Raw transactions ordered by date and sequence
        """
        return self.db.list_raw_transactions(
            account_id=account_id, start_date=start_date, end_date=end_date
        )

    def get_main_transaction(self, main_transaction_id: int) -> Optional[MainTransaction]:
        """Get main transaction by ID."""
        return self.db.get_main_transaction(main_transaction_id)

    def list_main_transactions(
        self, raw_transaction_id: Optional[str] = None, account_id: Optional[int] = None
    ) -> list[MainTransaction]:
        """List main transactions for a raw transaction or an account."""
        return self.db.list_main_transactions(
            raw_transaction_id=raw_transaction_id,
            account_ids=[account_id] if account_id is not None else None,
        )

    def categorize(
        self,
        main_transaction_id: int,
        transaction_type_code: Optional[str] = None,
        category_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Set type, category or notes on a main transaction.

        Args:
            main_transaction_id: Main transaction ID
            transaction_type_code: Optional new type code
            category_id: Optional new category ID
            notes: Optional new notes

        Raises:
            NotFoundError: If transaction, type or category doesn't exist
            ValidationError: If the type of a matched transaction would change
        """
        main = self.db.get_main_transaction(main_transaction_id)
        if main is None:
            raise NotFoundError(main_transaction_not_found(main_transaction_id))

        fields = {}
        if transaction_type_code is not None:
            txn_type = self.type_service.get_by_code(transaction_type_code)
            if txn_type.id != main.transaction_type_id and main.is_matched:
                raise ValidationError(
                    f"Transaction {main_transaction_id} is matched; unmatch it before changing its type"
                )
            fields["transaction_type_id"] = txn_type.id
        if category_id is not None:
            self.category_service.require_category(category_id)
            fields["category_id"] = category_id
        if notes is not None:
            fields["notes"] = notes

        if fields:
            self.db.update_main_transaction(main_transaction_id, **fields)

    def update_notes(self, raw_transaction_id: str, notes: Optional[str]) -> None:
        """Update raw transaction notes.

        Raises:
            NotFoundError: If the raw transaction doesn't exist
        """
        if self.db.get_raw_transaction(raw_transaction_id) is None:
            raise NotFoundError(raw_transaction_not_found(raw_transaction_id))
        self.db.update_raw_transaction_notes(raw_transaction_id, notes)

    def delete_raw_transaction(self, raw_transaction_id: str) -> None:
        """Delete a raw transaction and its main rows.

        Raises:
            NotFoundError: If the raw transaction doesn't exist
            ValidationError: If any row is matched, linked to a drawdown or
                is a checkpoint adjustment
        """
        raw = self.db.get_raw_transaction(raw_transaction_id)
        if raw is None:
            raise NotFoundError(raw_transaction_not_found(raw_transaction_id))
        if raw.is_balance_adjustment:
            raise ValidationError(
                f"Raw transaction '{raw_transaction_id}' is a balance adjustment; "
                "delete or update its checkpoint instead"
            )

        for main in self.db.list_main_transactions(raw_transaction_id=raw_transaction_id):
            if main.is_matched:
                raise ValidationError(
                    f"Transaction {main.id} is matched; unmatch it before deleting"
                )
            if main.drawdown_id is not None or main.credit_memo_of_drawdown_id is not None:
                raise ValidationError(
                    f"Transaction {main.id} is linked to a drawdown and cannot be deleted"
                )
            if main.investment_contribution_id is not None:
                raise ValidationError(
                    f"Transaction {main.id} belongs to investment contribution "
                    f"{main.investment_contribution_id} and cannot be deleted"
                )

        self.db.delete_raw_transaction(raw_transaction_id)
        logger.info("Deleted raw transaction %s", raw_transaction_id)
