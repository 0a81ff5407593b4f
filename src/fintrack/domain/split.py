"""Split and unsplit of raw transactions into categorized main rows."""

import logging
from typing import Optional

from fintrack.database.base import Database
from fintrack.domain.category import CategoryService
from fintrack.domain.entities import MainTransaction, RawTransaction, SplitItem
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    raw_transaction_not_found,
    too_many_decimals,
)
from fintrack.domain.ledger_rules import is_whole_cents

logger = logging.getLogger(__name__)


class SplitService:
    """Service for splitting a raw transaction across several line items."""

    def __init__(self, db: Database):
        """Initialize split service.

        Args:
            db: Database instance
        """
        self.db = db
        self.category_service = CategoryService(db)

    def split_transaction(
        self, raw_transaction_id: str, items: list[SplitItem]
    ) -> list[MainTransaction]:
        """Replace the main rows of a raw transaction with split line items.

        Item amounts must add up to the raw amount exactly. The old rows are
        deleted and the new ones inserted in a single commit, so readers never
        see the raw transaction without main rows.

        Args:
            raw_transaction_id: Raw transaction to split
            items: Two or more line items

        Returns:
            The new main transactions, ordered by split sequence

        Raises:
            NotFoundError: If the raw transaction, a category or a type doesn't exist
            ValidationError: If the items are invalid or the current rows are
                matched or linked to a drawdown
        """
        raw = self._require_raw(raw_transaction_id)
        if raw.is_balance_adjustment:
            raise ValidationError("Balance adjustment transactions cannot be split")
        if len(items) < 2:
            raise ValidationError("A split needs at least two line items")

        for index, item in enumerate(items, start=1):
            if item.amount <= 0:
                raise ValidationError(f"Split item {index} amount must be greater than zero")
            if not is_whole_cents(item.amount):
                raise ValidationError(f"Split item {index}: {too_many_decimals(item.amount)}")
            if item.category_id is not None:
                self.category_service.require_category(item.category_id)
            if item.transaction_type_id is not None and self.db.get_transaction_type(item.transaction_type_id) is None:
                raise NotFoundError(f"Transaction type {item.transaction_type_id} not found")

        total = sum((item.amount for item in items))
        if total != raw.amount:
            raise ValidationError(
                f"Split amounts sum to {total} but transaction amount is {raw.amount}"
            )

        current = self.db.list_main_transactions(raw_transaction_id=raw_transaction_id)
        self._check_replaceable(current)
        default_type_id = current[0].transaction_type_id if current else None

        rows = [
            self._row(
                raw,
                amount=item.amount,
                transaction_type_id=item.transaction_type_id or default_type_id,
                category_id=item.category_id,
                description=item.description or raw.description,
                notes=item.notes,
                is_split=True,
                split_sequence=sequence,
            )
            for sequence, item in enumerate(items, start=1)
        ]
        self.db.replace_main_transactions(raw_transaction_id, rows)
        logger.info("Split %s into %d items", raw_transaction_id, len(rows))
        return self.get_splits(raw_transaction_id)

    def unsplit_transaction(self, raw_transaction_id: str) -> MainTransaction:
        """Collapse split rows back into a single main row.

        The restored row takes the category and type of the first split and
        the raw transaction's own amount and direction.

        Raises:
            NotFoundError: If the raw transaction or its rows don't exist
            ValidationError: If the rows are not split, or are matched or
                linked to a drawdown
        """
        raw = self._require_raw(raw_transaction_id)
        current = self.db.list_main_transactions(raw_transaction_id=raw_transaction_id)
        if not current:
            raise NotFoundError(f"No split transactions found for '{raw_transaction_id}'")
        if not any(main.is_split for main in current):
            raise ValidationError(f"Transaction '{raw_transaction_id}' is not split")
        self._check_replaceable(current)

        first = min(current, key=lambda main: main.split_sequence)
        row = self._row(
            raw,
            amount=raw.amount,
            transaction_type_id=first.transaction_type_id,
            category_id=first.category_id,
            description=raw.description,
            notes=None,
            is_split=False,
            split_sequence=1,
        )
        self.db.replace_main_transactions(raw_transaction_id, [row])
        logger.info("Unsplit %s (%d items removed)", raw_transaction_id, len(current))
        return self.get_splits(raw_transaction_id)[0]

    def get_splits(self, raw_transaction_id: str) -> list[MainTransaction]:
        """Current main rows of a raw transaction, by split sequence."""
        self._require_raw(raw_transaction_id)
        rows = self.db.list_main_transactions(raw_transaction_id=raw_transaction_id)
        return sorted(rows, key=lambda main: main.split_sequence)

    def _require_raw(self, raw_transaction_id: str) -> RawTransaction:
        raw = self.db.get_raw_transaction(raw_transaction_id)
        if raw is None:
            raise NotFoundError(raw_transaction_not_found(raw_transaction_id))
        return raw

    @staticmethod
    def _check_replaceable(rows: list[MainTransaction]) -> None:
        for main in rows:
            if main.is_matched:
                raise ValidationError(
                    f"Transaction {main.id} is matched; unmatch it before splitting"
                )
            if main.drawdown_id is not None or main.credit_memo_of_drawdown_id is not None:
                raise ValidationError(
                    f"Transaction {main.id} is linked to a drawdown and cannot be split"
                )
            if main.investment_contribution_id is not None:
                raise ValidationError(
                    f"Transaction {main.id} belongs to an investment contribution "
                    "and cannot be split"
                )

    @staticmethod
    def _row(
        raw: RawTransaction,
        amount,
        transaction_type_id: Optional[int],
        category_id: Optional[int],
        description: Optional[str],
        notes: Optional[str],
        is_split: bool,
        split_sequence: int,
    ) -> dict:
        return {
            "account_id": raw.account_id,
            "transaction_type_id": transaction_type_id,
            "category_id": category_id,
            "amount": amount,
            "transaction_direction": raw.direction,
            "transaction_date": raw.transaction_date,
            "description": description,
            "notes": notes,
            "is_split": is_split,
            "split_sequence": split_sequence,
        }
