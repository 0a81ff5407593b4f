"""Balance checkpoint domain service.

A checkpoint records the balance an account is declared to have on a date,
typically from a bank statement. The difference between the declared and the
calculated balance is booked as one balance adjustment transaction per
checkpoint, so the ledger balance matches the declared one.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from fintrack.database.base import Database
from fintrack.domain.account import AccountService
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.entities import Checkpoint
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    checkpoint_not_found,
    too_many_decimals,
)
from fintrack.domain.ledger_rules import (
    BALANCE_ADJUSTMENT_DESCRIPTION,
    RECONCILIATION_TOLERANCE,
    SOURCE_ADJUSTMENT,
    default_type_code,
    is_whole_cents,
)

logger = logging.getLogger(__name__)


def adjustment_raw_id(checkpoint_id: int) -> str:
    """Raw transaction ID of a checkpoint's balance adjustment."""
    return f"BAL-ADJ-{checkpoint_id}"


class CheckpointService:
    """Service for declared balances and their adjustment transactions."""

    def __init__(self, db: Database):
        """Initialize checkpoint service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.type_service = TransactionTypeService(db)

    def calculate_balance_up_to_date(self, account_id: int, up_to: date) -> Decimal:
        """Ledger balance of an account on a date.

        Sums credits minus debits of every transaction dated on or before
        ``up_to``. Balance adjustments are left out so that an adjustment never
        feeds into its own calculation.

        Args:
            account_id: Account ID
            up_to: Inclusive end date

        Returns:
            Calculated balance
        """
        balance = Decimal("0")
        for raw in self.db.iter_raw_transactions(account_id, None, up_to):
            if raw.is_balance_adjustment:
                continue
            balance += (raw.credit_amount or 0) - (raw.debit_amount or 0)
        return balance

    def create_or_update_checkpoint(
        self,
        account_id: int,
        checkpoint_date: date,
        declared_balance: Decimal,
        notes: Optional[str] = None,
        import_batch_id: Optional[str] = None,
    ) -> Checkpoint:
        """Declare the balance of an account on a date.

        An existing checkpoint on the same date is updated. The adjustment
        transaction is created, rewritten or removed to match the new
        adjustment amount.

        Args:
            account_id: Account ID
            checkpoint_date: Date of the declared balance
            declared_balance: Balance declared by the statement or the user
            notes: Optional notes
            import_batch_id: Import batch that produced the balance, if any

        Returns:
            The stored checkpoint

        Raises:
            NotFoundError: If the account doesn't exist
            ValidationError: If the balance has more than two decimal places
        """
        if not is_whole_cents(declared_balance):
            raise ValidationError(too_many_decimals(declared_balance))
        self.account_service.require_account(account_id)
        calculated = self.calculate_balance_up_to_date(account_id, checkpoint_date)
        adjustment = declared_balance - calculated
        is_reconciled = abs(adjustment) < RECONCILIATION_TOLERANCE

        with self.db.transaction():
            existing = self.db.get_checkpoint_by_date(account_id, checkpoint_date)
            if existing is not None:
                checkpoint_id = existing.id
                fields: dict[str, Any] = {
                    "declared_balance": declared_balance,
                    "calculated_balance": calculated,
                    "adjustment_amount": adjustment,
                    "is_reconciled": is_reconciled,
                }
                if notes is not None:
                    fields["notes"] = notes
                if import_batch_id is not None:
                    fields["import_batch_id"] = import_batch_id
                self.db.update_checkpoint(checkpoint_id, **fields)
            else:
                checkpoint_id = self.db.create_checkpoint(
                    account_id=account_id,
                    checkpoint_date=checkpoint_date,
                    declared_balance=declared_balance,
                    calculated_balance=calculated,
                    adjustment_amount=adjustment,
                    is_reconciled=is_reconciled,
                    import_batch_id=import_batch_id,
                    notes=notes,
                )
            self._sync_adjustment(checkpoint_id, account_id, checkpoint_date, adjustment)

        if is_reconciled:
            logger.info("Checkpoint %s on account %s is reconciled", checkpoint_id, account_id)
        else:
            logger.info(
                "Checkpoint %s on account %s needs adjustment of %s",
                checkpoint_id,
                account_id,
                adjustment,
            )
        return self.db.get_checkpoint(checkpoint_id)

    def recalculate_checkpoints(self, account_id: int) -> list[Checkpoint]:
        """Recompute calculated balance and adjustment of every checkpoint.

        Used after transactions were added or removed before existing
        checkpoints.

        Raises:
            NotFoundError: If the account doesn't exist
        """
        self.account_service.require_account(account_id)
        with self.db.transaction():
            for checkpoint in self.db.list_checkpoints(account_id):
                calculated = self.calculate_balance_up_to_date(
                    account_id, checkpoint.checkpoint_date
                )
                adjustment = checkpoint.declared_balance - calculated
                self.db.update_checkpoint(
                    checkpoint.id,
                    calculated_balance=calculated,
                    adjustment_amount=adjustment,
                    is_reconciled=abs(adjustment) < RECONCILIATION_TOLERANCE,
                )
                self._sync_adjustment(
                    checkpoint.id, account_id, checkpoint.checkpoint_date, adjustment
                )
        return self.db.list_checkpoints(account_id)

    def list_checkpoints(self, account_id: int) -> list[Checkpoint]:
        """An account's checkpoints by ascending date."""
        return self.db.list_checkpoints(account_id)

    def get_checkpoint(self, checkpoint_id: int) -> Optional[Checkpoint]:
        """Get checkpoint by ID."""
        return self.db.get_checkpoint(checkpoint_id)

    def delete_checkpoint(self, checkpoint_id: int) -> None:
        """Delete a checkpoint together with its adjustment transaction.

        Raises:
            NotFoundError: If the checkpoint doesn't exist
        """
        checkpoint = self.db.get_checkpoint(checkpoint_id)
        if checkpoint is None:
            raise NotFoundError(checkpoint_not_found(checkpoint_id))

        with self.db.transaction():
            adjustment = self.db.get_raw_transaction_by_checkpoint(checkpoint_id)
            if adjustment is not None:
                self.db.delete_raw_transaction(adjustment.raw_transaction_id)
            self.db.delete_checkpoint(checkpoint_id)
        logger.info("Deleted checkpoint %s of account %s", checkpoint_id, checkpoint.account_id)

    def checkpoint_summary(self, account_id: int) -> dict[str, Any]:
        """Summary statistics of an account's checkpoints.

        Returns:
            Dict with:
            - total_checkpoints
            - reconciled_checkpoints
            - unreconciled_checkpoints
            - total_adjustment_amount
            - earliest_checkpoint_date / latest_checkpoint_date (None if no checkpoints)
        """
        checkpoints = self.db.list_checkpoints(account_id)
        reconciled = sum(1 for c in checkpoints if c.is_reconciled)
        return {
            "total_checkpoints": len(checkpoints),
            "reconciled_checkpoints": reconciled,
            "unreconciled_checkpoints": len(checkpoints) - reconciled,
            "total_adjustment_amount": sum(
                (c.adjustment_amount for c in checkpoints), Decimal("0")
            ),
            "earliest_checkpoint_date": checkpoints[0].checkpoint_date if checkpoints else None,
            "latest_checkpoint_date": checkpoints[-1].checkpoint_date if checkpoints else None,
        }

    def _sync_adjustment(
        self, checkpoint_id: int, account_id: int, checkpoint_date: date, adjustment: Decimal
    ) -> None:
        existing = self.db.get_raw_transaction_by_checkpoint(checkpoint_id)

        if abs(adjustment) < RECONCILIATION_TOLERANCE:
            if existing is not None:
                self.db.delete_raw_transaction(existing.raw_transaction_id)
            return

        # Null, not zero, for the unused side
        debit = -adjustment if adjustment < 0 else None
        credit = adjustment if adjustment > 0 else None
        direction = "debit" if debit is not None else "credit"
        type_id = self.type_service.get_by_code(default_type_code(direction)).id

        if existing is not None:
            self.db.update_raw_transaction_amount(
                existing.raw_transaction_id, debit, credit, transaction_type_id=type_id
            )
            return

        self.db.create_raw_transaction(
            raw_transaction_id=adjustment_raw_id(checkpoint_id),
            account_id=account_id,
            transaction_date=checkpoint_date,
            description=BALANCE_ADJUSTMENT_DESCRIPTION,
            debit_amount=debit,
            credit_amount=credit,
            transaction_sequence=self.db.next_transaction_sequence(account_id, checkpoint_date),
            is_balance_adjustment=True,
            checkpoint_id=checkpoint_id,
            transaction_source=SOURCE_ADJUSTMENT,
            transaction_type_id=type_id,
        )
