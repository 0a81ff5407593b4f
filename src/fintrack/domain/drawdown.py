"""Debt drawdown and loan disbursement domain service."""

import logging
import uuid
from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.database.base import Database
from fintrack.domain.account import AccountService
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.entities import Account, BalanceBreakdown, Drawdown, DrawdownResult
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    drawdown_not_found,
    partner_not_found,
    too_many_decimals,
)
from fintrack.domain.ledger_rules import (
    ACTIVE,
    CASH_ACCOUNT_TYPES,
    DEBT,
    DEBT_ACCOUNT_TYPES,
    DEBT_TAKE,
    LOAN,
    LOAN_DISBURSE,
    LOAN_RECEIVABLE,
    LOAN_WRITEOFF,
    OVERDUE,
    PARTIALLY_WRITTEN_OFF,
    SETTLEMENT_TYPE_CODES,
    SOURCE_SYSTEM,
    SOURCE_USER,
    WRITTEN_OFF,
    is_whole_cents,
)
from fintrack.domain.saga import Saga
from fintrack.domain.transaction import new_raw_transaction_id

logger = logging.getLogger(__name__)


class DrawdownService:
    """Service for debt drawdowns, loan disbursements and write-offs."""

    def __init__(self, db: Database):
        """Initialize drawdown service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.type_service = TransactionTypeService(db)

    def create_drawdown(
        self,
        source_account_id: int,
        debt_account_id: int,
        amount: Decimal,
        partner_id: int,
        drawdown_date: date,
        reference: Optional[str] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> DrawdownResult:
        """Draw down debt into a bank or cash account.

        The bank side is a DEBT_TAKE credit (money in) and the debt side a
        DEBT_TAKE debit (outstanding amount grows).

        Args:
            source_account_id: Bank or cash account receiving the money
            debt_account_id: credit_line, term_loan or credit_card account
            amount: Principal, greater than zero
            partner_id: Lender
            drawdown_date: Date of the drawdown
            reference: Optional reference, generated if omitted
            due_date: Optional due date
            notes: Optional notes

        Returns:
            The drawdown and the IDs of its two matched main transactions

        Raises:
            NotFoundError: If an account or the partner doesn't exist
            ValidationError: If account types, entities or amount are invalid
            IntegrityError: If a write failed and was rolled back
            CompensationError: If the rollback itself failed
        """
        source, debt_account = self._validate(
            source_account_id, debt_account_id, amount, partner_id, DEBT_ACCOUNT_TYPES
        )
        return self._create(
            kind=DEBT,
            type_code=DEBT_TAKE,
            source=source,
            counter=debt_account,
            source_direction="credit",
            amount=amount,
            partner_id=partner_id,
            drawdown_date=drawdown_date,
            reference=reference,
            due_date=due_date,
            notes=notes,
        )

    def create_disbursement(
        self,
        source_account_id: int,
        loan_account_id: int,
        amount: Decimal,
        partner_id: int,
        disbursement_date: date,
        reference: Optional[str] = None,
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> DrawdownResult:
        """Disburse a loan from a bank or cash account.

        The bank side is a LOAN_DISBURSE debit (money out) and the loan side a
        LOAN_DISBURSE debit (receivable grows).

        Args:
            source_account_id: Bank or cash account paying out
            loan_account_id: loan_receivable account
            amount: Principal, greater than zero
            partner_id: Borrower
            disbursement_date: Date of the disbursement
            reference: Optional reference, generated if omitted
            due_date: Optional due date
            notes: Optional notes

        Returns:
            The disbursement and the IDs of its two matched main transactions

        Raises:
            NotFoundError: If an account or the partner doesn't exist
            ValidationError: If account types, entities or amount are invalid
            IntegrityError: If a write failed and was rolled back
            CompensationError: If the rollback itself failed
        """
        source, loan_account = self._validate(
            source_account_id, loan_account_id, amount, partner_id, frozenset({LOAN_RECEIVABLE})
        )
        return self._create(
            kind=LOAN,
            type_code=LOAN_DISBURSE,
            source=source,
            counter=loan_account,
            source_direction="debit",
            amount=amount,
            partner_id=partner_id,
            drawdown_date=disbursement_date,
            reference=reference,
            due_date=due_date,
            notes=notes,
        )

    def write_off(
        self,
        drawdown_id: int,
        amount: Decimal,
        writeoff_date: date,
        reason: Optional[str] = None,
    ) -> Drawdown:
        """Write off part or all of an outstanding balance.

        Records a non-cash LOAN_WRITEOFF credit on the drawdown account and
        updates the balance in the same commit.

        Args:
            drawdown_id: Drawdown ID
            amount: Amount to write off, at most the remaining balance
            writeoff_date: Date of the write-off
            reason: Optional reason, kept as notes

        Returns:
            The updated drawdown

        Raises:
            NotFoundError: If the drawdown doesn't exist
            ValidationError: If amount is not positive, exceeds the remaining
                balance, or the drawdown is already written off
        """
        drawdown = self.db.get_drawdown(drawdown_id)
        if drawdown is None:
            raise NotFoundError(drawdown_not_found(drawdown_id))
        if amount <= 0:
            raise ValidationError("Write-off amount must be greater than zero")
        if not is_whole_cents(amount):
            raise ValidationError(too_many_decimals(amount))
        if drawdown.status == WRITTEN_OFF:
            raise ValidationError(f"Drawdown {drawdown_id} is already fully written off")
        if amount > drawdown.remaining_balance:
            raise ValidationError(
                f"Write-off amount {amount} exceeds remaining balance {drawdown.remaining_balance}"
            )

        new_remaining = drawdown.remaining_balance - amount
        new_written_off = drawdown.written_off_amount + amount
        new_status = WRITTEN_OFF if new_remaining == 0 else PARTIALLY_WRITTEN_OFF

        with self.db.transaction():
            self.db.create_raw_transaction(
                raw_transaction_id=new_raw_transaction_id("WRITEOFF"),
                account_id=drawdown.account_id,
                transaction_date=writeoff_date,
                description=f"Write-off for {drawdown.reference}",
                debit_amount=None,
                credit_amount=amount,
                transaction_sequence=self.db.next_transaction_sequence(
                    drawdown.account_id, writeoff_date
                ),
                transaction_source=SOURCE_SYSTEM,
                notes=reason,
                transaction_type_id=self.type_service.get_by_code(LOAN_WRITEOFF).id,
                drawdown_id=drawdown.id,
            )
            self.db.update_drawdown(
                drawdown.id,
                expected_remaining=drawdown.remaining_balance,
                remaining_balance=new_remaining,
                written_off_amount=new_written_off,
                status=new_status,
            )

        logger.info(
            "Wrote off %s of drawdown %s, remaining %s (%s)",
            amount,
            drawdown.id,
            new_remaining,
            new_status,
        )
        return self.db.get_drawdown(drawdown.id)

    def get_drawdown(self, drawdown_id: int) -> Optional[Drawdown]:
        """Get drawdown by ID."""
        return self.db.get_drawdown(drawdown_id)

    def list_drawdowns(
        self,
        account_id: Optional[int] = None,
        status: Optional[str] = None,
        kind: Optional[str] = None,
    ) -> list[Drawdown]:
        """List drawdowns with optional account, status and kind filters."""
        return self.db.list_drawdowns(account_id=account_id, status=status, kind=kind)

    def balance_breakdown(self, drawdown_id: int) -> BalanceBreakdown:
        """Split a drawdown's balance into principal, payments and write-offs.

        Principal paid is the sum of the settlement rows on the drawdown
        account; credit memos hold the overpaid part separately.

        Raises:
            NotFoundError: If the drawdown doesn't exist
        """
        drawdown = self.db.get_drawdown(drawdown_id)
        if drawdown is None:
            raise NotFoundError(drawdown_not_found(drawdown_id))

        codes = {t.id: t.type_code for t in self.type_service.list_types()}
        principal_paid = sum(
            (
                main.amount
                for main in self.db.list_main_transactions(drawdown_id=drawdown.id)
                if main.account_id == drawdown.account_id
                and codes.get(main.transaction_type_id) in SETTLEMENT_TYPE_CODES
            ),
            Decimal("0"),
        )
        return BalanceBreakdown(
            drawdown_id=drawdown.id,
            principal_amount=drawdown.principal_amount,
            principal_paid=principal_paid,
            written_off_amount=drawdown.written_off_amount,
            remaining_balance=drawdown.remaining_balance,
            overpayment_amount=drawdown.overpayment_amount,
        )

    def mark_overdue(self, as_of: date) -> list[int]:
        """Flag active drawdowns whose due date has passed.

        Args:
            as_of: Reference date; drawdowns due before it become overdue

        Returns:
            IDs of drawdowns that changed status
        """
        changed = []
        with self.db.transaction():
            for drawdown in self.db.list_drawdowns(status=ACTIVE):
                if drawdown.due_date is not None and drawdown.due_date < as_of:
                    self.db.update_drawdown(drawdown.id, status=OVERDUE)
                    changed.append(drawdown.id)
        if changed:
            logger.info("Marked %d drawdowns overdue as of %s", len(changed), as_of)
        return changed

    def _validate(
        self,
        source_account_id: int,
        counter_account_id: int,
        amount: Decimal,
        partner_id: int,
        counter_types: frozenset,
    ) -> tuple[Account, Account]:
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if not is_whole_cents(amount):
            raise ValidationError(too_many_decimals(amount))

        source = self.account_service.require_account(source_account_id)
        counter = self.account_service.require_account(counter_account_id)
        if counter.account_type not in counter_types:
            raise ValidationError(
                f"Account {counter.id} must be of type {' or '.join(sorted(counter_types))}, "
                f"not {counter.account_type}"
            )
        if source.account_type not in CASH_ACCOUNT_TYPES:
            raise ValidationError(
                f"Source account {source.id} must be a bank or cash account, "
                f"not {source.account_type}"
            )
        if source.entity_id != counter.entity_id:
            raise ValidationError("Both accounts must belong to the same entity")
        for account in (source, counter):
            if not account.is_active:
                raise ValidationError(f"Account {account.id} is inactive")

        partner = self.db.get_partner(partner_id)
        if partner is None:
            raise NotFoundError(partner_not_found(partner_id))
        if partner.entity_id != source.entity_id:
            raise ValidationError("Business partner belongs to a different entity")
        return source, counter

    def _create(
        self,
        kind: str,
        type_code: str,
        source: Account,
        counter: Account,
        source_direction: str,
        amount: Decimal,
        partner_id: int,
        drawdown_date: date,
        reference: Optional[str],
        due_date: Optional[date],
        notes: Optional[str],
    ) -> DrawdownResult:
        type_id = self.type_service.get_by_code(type_code).id
        if reference is None:
            prefix = "DD" if kind == DEBT else "LN"
            reference = f"{prefix}-{drawdown_date:%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"

        saga = Saga(f"create {kind} {reference}")
        drawdown_id = saga.step(
            "create drawdown record",
            lambda: self.db.create_drawdown(
                kind=kind,
                account_id=counter.id,
                partner_id=partner_id,
                reference=reference,
                drawdown_date=drawdown_date,
                principal_amount=amount,
                due_date=due_date,
                notes=notes,
            ),
            self.db.delete_drawdown,
        )

        def record(account: Account, direction: str, description: str) -> tuple[str, int]:
            raw_id = new_raw_transaction_id(type_code)
            main_id = self.db.create_raw_transaction(
                raw_transaction_id=raw_id,
                account_id=account.id,
                transaction_date=drawdown_date,
                description=description,
                debit_amount=amount if direction == "debit" else None,
                credit_amount=amount if direction == "credit" else None,
                transaction_sequence=self.db.next_transaction_sequence(account.id, drawdown_date),
                transaction_source=SOURCE_USER,
                transaction_type_id=type_id,
                drawdown_id=drawdown_id,
            )
            return raw_id, main_id

        def remove(created: tuple[str, int]) -> None:
            self.db.delete_raw_transaction(created[0])

        _, source_main_id = saga.step(
            "record source transaction",
            lambda: record(source, source_direction, f"{type_code} {reference}"),
            remove,
        )
        _, counter_main_id = saga.step(
            "record counter transaction",
            lambda: record(counter, "debit", f"{type_code} {reference}"),
            remove,
        )
        saga.step(
            "match transactions",
            lambda: self.db.link_main_transactions(source_main_id, counter_main_id),
        )

        logger.info(
            "Created %s %s of %s on account %s (drawdown %s)",
            kind,
            reference,
            amount,
            counter.id,
            drawdown_id,
        )
        return DrawdownResult(
            drawdown=self.db.get_drawdown(drawdown_id),
            source_transaction_id=source_main_id,
            counter_transaction_id=counter_main_id,
        )
