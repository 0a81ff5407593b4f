"""Balance reconciliation: explain gaps between computed and declared balances."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.database.base import Database
from fintrack.domain.account import AccountService
from fintrack.domain.entities import (
    Checkpoint,
    Discrepancy,
    DiscrepancyReport,
    DiscrepancyTransaction,
    RawTransaction,
)
from fintrack.domain.errors import NotFoundError, checkpoint_not_found
from fintrack.domain.ledger_rules import RECONCILIATION_TOLERANCE

logger = logging.getLogger(__name__)


def _as_detail(raw: RawTransaction) -> DiscrepancyTransaction:
    return DiscrepancyTransaction(
        raw_transaction_id=raw.raw_transaction_id,
        description=raw.description,
        debit_amount=raw.debit_amount,
        credit_amount=raw.credit_amount,
        balance=raw.balance,
        is_balance_adjustment=raw.is_balance_adjustment,
    )


class ReconciliationService:
    """Service for investigating checkpoint discrepancies.

    Read-only: it never writes to the ledger.
    """

    def __init__(self, db: Database):
        """Initialize reconciliation service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)

    def investigate_discrepancies(
        self, account_id: int, checkpoint_id: Optional[int] = None
    ) -> DiscrepancyReport:
        """Find where the ledger and declared balances diverge.

        The window runs from the checkpoint before the target (exclusive) to
        the target checkpoint (inclusive). Transactions are walked one date at
        a time in (date, sequence) order, starting from the previous
        checkpoint's declared balance. A date carrying a declared running
        balance is compared against the rolled-forward balance and then
        becomes the new starting point. Finally the target's own declared
        balance is compared against the rolled-forward balance. Balance
        adjustments are shown but never counted.

        Args:
            account_id: Account ID
            checkpoint_id: Target checkpoint; defaults to the latest one

        Returns:
            Report with opening and expected balances and any discrepancies

        Raises:
            NotFoundError: If the account or checkpoint doesn't exist, the
                checkpoint is on another account, or there are no checkpoints
        """
        self.account_service.require_account(account_id)

        if checkpoint_id is not None:
            target = self.db.get_checkpoint(checkpoint_id)
            if target is None or target.account_id != account_id:
                raise NotFoundError(checkpoint_not_found(checkpoint_id))
            checkpoints = self.db.list_checkpoints(account_id, up_to_date=target.checkpoint_date)
        else:
            checkpoints = self.db.list_checkpoints(account_id)
            if not checkpoints:
                raise NotFoundError(f"No checkpoints found for account {account_id}")
            target = checkpoints[-1]

        previous = checkpoints[-2] if len(checkpoints) > 1 else None
        period_start = previous.checkpoint_date if previous is not None else None
        opening = previous.declared_balance if previous is not None else Decimal("0")

        discrepancies: list[Discrepancy] = []
        last_known = opening
        scanned = 0
        day: list[RawTransaction] = []

        for raw in self.db.iter_raw_transactions(account_id, period_start, target.checkpoint_date):
            scanned += 1
            if day and raw.transaction_date != day[0].transaction_date:
                last_known = self._close_day(day, last_known, target, period_start, discrepancies)
                day = []
            day.append(raw)
        if day:
            last_known = self._close_day(day, last_known, target, period_start, discrepancies)

        difference = target.declared_balance - last_known
        if abs(difference) > RECONCILIATION_TOLERANCE:
            on_checkpoint_date = (
                day if day and day[0].transaction_date == target.checkpoint_date else []
            )
            discrepancies.append(
                Discrepancy(
                    date=target.checkpoint_date,
                    checkpoint_id=target.id,
                    checkpoint_source=target.source,
                    checkpoint_balance=target.declared_balance,
                    calculated_balance=last_known,
                    difference=difference,
                    period_start_date=period_start,
                    period_start_balance=opening,
                    transactions_on_date=tuple(_as_detail(r) for r in on_checkpoint_date),
                )
            )

        logger.info(
            "Checkpoint %s of account %s: %d transactions scanned, %d discrepancies",
            target.id,
            account_id,
            scanned,
            len(discrepancies),
        )
        return DiscrepancyReport(
            account_id=account_id,
            checkpoint_id=target.id,
            period_start_date=period_start,
            period_end_date=target.checkpoint_date,
            opening_balance=opening,
            expected_balance=last_known,
            declared_balance=target.declared_balance,
            transactions_scanned=scanned,
            total_checkpoints=len(checkpoints),
            discrepancies=discrepancies,
        )

    @staticmethod
    def _close_day(
        rows: list[RawTransaction],
        last_known: Decimal,
        target: Checkpoint,
        period_start: Optional[date],
        discrepancies: list[Discrepancy],
    ) -> Decimal:
        """Roll the balance over one date; returns the next starting balance."""
        flows = [r for r in rows if not r.is_balance_adjustment]
        if not flows:
            return last_known

        total_debits = sum((r.debit_amount for r in flows if r.debit_amount), Decimal("0"))
        total_credits = sum((r.credit_amount for r in flows if r.credit_amount), Decimal("0"))
        expected_change = total_credits - total_debits
        expected = last_known + expected_change

        # The last declared running balance of the day wins
        declared = None
        for r in flows:
            if r.balance is not None:
                declared = r.balance
        if declared is None:
            return expected

        actual_change = declared - last_known
        difference = actual_change - expected_change
        if abs(difference) > RECONCILIATION_TOLERANCE:
            discrepancies.append(
                Discrepancy(
                    date=rows[0].transaction_date,
                    checkpoint_id=target.id,
                    checkpoint_source="transaction",
                    checkpoint_balance=declared,
                    calculated_balance=expected,
                    difference=difference,
                    period_start_date=period_start,
                    period_start_balance=last_known,
                    transactions_on_date=tuple(_as_detail(r) for r in rows),
                    total_debits=total_debits,
                    total_credits=total_credits,
                    expected_change=expected_change,
                    actual_change=actual_change,
                )
            )
        return declared
