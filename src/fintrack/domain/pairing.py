"""Pairing of main transactions across accounts, and drawdown settlement."""

import logging
from decimal import Decimal
from typing import Optional

from fintrack.database.base import Database
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.entities import (
    Drawdown,
    InvestmentContribution,
    MainTransaction,
    SettlementResult,
    TransferPair,
)
from fintrack.domain.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    already_matched,
    drawdown_not_found,
    main_transaction_not_found,
)
from fintrack.domain.ledger_rules import (
    ACTIVE,
    DEBT,
    DEBT_PAY,
    DRAWDOWN_CREATION_TYPE_CODES,
    INC,
    INV_CONTRIB,
    INV_WITHDRAW,
    LOAN_COLLECT,
    MATCH_TOLERANCE,
    PAYABLE_STATUSES,
    SETTLED,
    SETTLEMENT_TYPE_CODES,
    SOURCE_SYSTEM,
    TRF_IN,
    TRF_OUT,
    VALID_PAIRS,
    pair_type,
    status_after_payment,
    status_after_withdrawal,
)
from fintrack.domain.transaction import new_raw_transaction_id

logger = logging.getLogger(__name__)


def credit_memo_raw_id(settlement_raw_id: str) -> str:
    """Raw transaction ID of the credit memo issued with a settlement."""
    return f"{settlement_raw_id}-MEMO"


class PairingService:
    """Service for linking two main transactions as one money movement."""

    def __init__(self, db: Database):
        """Initialize pairing service.

        Args:
            db: Database instance
        """
        self.db = db
        self.type_service = TransactionTypeService(db)

    def match_transfer(self, transfer_out_id: int, transfer_in_id: int) -> TransferPair:
        """Link two main transactions as the two sides of one movement.

        All preconditions are checked before anything is written. The link
        itself is written with conditional updates, so a concurrent match of
        either row makes this call fail with ConflictError and write nothing.

        Args:
            transfer_out_id: Main transaction ID of one side
            transfer_in_id: Main transaction ID of the other side

        Returns:
            The linked pair

        Raises:
            ValidationError: Same ID, invalid type pair, same account,
                different entities or amount mismatch
            NotFoundError: If either transaction doesn't exist
            ConflictError: If either transaction is already matched
        """
        if transfer_out_id == transfer_in_id:
            raise ValidationError("Cannot match a transaction with itself")

        first = self._require_main(transfer_out_id)
        second = self._require_main(transfer_in_id)

        first_code = self.type_service.code_of(first.transaction_type_id)
        second_code = self.type_service.code_of(second.transaction_type_id)
        kind = pair_type(first_code, second_code) or pair_type(second_code, first_code)
        if kind is None:
            raise ValidationError(
                f"Invalid transaction type pair: {first_code or 'untyped'} and "
                f"{second_code or 'untyped'} cannot be matched"
            )

        if first.account_id == second.account_id:
            raise ValidationError("Matched transactions must be on different accounts")

        first_account = self.db.get_account(first.account_id)
        second_account = self.db.get_account(second.account_id)
        if first_account.entity_id != second_account.entity_id:
            raise ValidationError("Matched transactions must belong to the same entity")

        for main in (first, second):
            if main.is_matched:
                raise ConflictError(already_matched(main.id))

        if abs(first.amount - second.amount) > MATCH_TOLERANCE:
            raise ValidationError(
                f"Amounts do not match: {first.amount} vs {second.amount}"
            )

        self.db.link_main_transactions(first.id, second.id)
        logger.info("Matched %s and %s as %s", first.id, second.id, kind)
        return self._pair(first, first_code, second, second_code, kind)

    def unmatch_transfer(self, main_transaction_id: int) -> TransferPair:
        """Break the link of a matched transaction.

        A DEBT_PAY or LOAN_COLLECT payment that settled a drawdown is unwound
        as one unit: the settlement row on the drawdown account and any credit
        memo issued with it are deleted, the payment loses its drawdown
        reference, and the drawdown's balance and status are restored.

        Unmatching the pair written by drawdown creation removes the drawdown
        and its row on the drawdown account; the source row stays, unlinked.
        Investment pairs unwind the same way: a contribution pair removes the
        contribution and its investment-side row, a withdrawal pair removes
        the investment-side row and gives the amount back to the contribution.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If it is not matched, or the drawdown or
                contribution to remove has later payments or withdrawals
            ConflictError: If the link changed concurrently
        """
        main = self._require_main(main_transaction_id)
        if not main.is_matched:
            raise ValidationError(f"Transaction {main_transaction_id} is not matched")

        partner = self._require_main(main.transfer_matched_transaction_id)
        main_code = self.type_service.code_of(main.transaction_type_id)
        partner_code = self.type_service.code_of(partner.transaction_type_id)
        kind = pair_type(main_code, partner_code) or pair_type(partner_code, main_code)
        pair = self._pair(main, main_code, partner, partner_code, kind or "unknown")

        drawdown_id = main.drawdown_id or partner.drawdown_id
        drawdown = self.db.get_drawdown(drawdown_id) if drawdown_id is not None else None
        if drawdown is not None:
            drawdown_side = self._drawdown_side(drawdown, main, partner)
            if drawdown_side is not None:
                other = partner if drawdown_side is main else main
                if main_code in SETTLEMENT_TYPE_CODES:
                    self._unwind_settlement(drawdown, other, drawdown_side)
                    return pair
                if main_code in DRAWDOWN_CREATION_TYPE_CODES:
                    self._unwind_drawdown_creation(drawdown, other, drawdown_side)
                    return pair

        contribution_id = main.investment_contribution_id or partner.investment_contribution_id
        contribution = (
            self.db.get_investment_contribution(contribution_id)
            if contribution_id is not None
            else None
        )
        if contribution is not None and main_code in (INV_CONTRIB, INV_WITHDRAW):
            investment_side = self._investment_side(contribution, main, partner)
            if investment_side is not None:
                cash_side = partner if investment_side is main else main
                if main_code == INV_CONTRIB:
                    self._unwind_contribution(contribution, cash_side, investment_side)
                else:
                    self._unwind_withdrawal(contribution, cash_side, investment_side)
                return pair

        self.db.unlink_main_transactions(main.id, partner.id)
        logger.info("Unmatched %s and %s", main.id, partner.id)
        return pair

    def settle_drawdown(self, payment_main_id: int, drawdown_id: int) -> SettlementResult:
        """Apply a payment to a drawdown.

        Creates the settlement row on the drawdown account, links both rows
        to the drawdown and matches them, then reduces the remaining balance.
        The part of the payment above the remaining balance is recorded as
        overpayment and issued as a credit memo on the drawdown account.

        Args:
            payment_main_id: DEBT_PAY (debt) or LOAN_COLLECT (loan) main transaction
            drawdown_id: Drawdown being paid

        Returns:
            Settlement outcome with the updated drawdown

        Raises:
            NotFoundError: If payment or drawdown doesn't exist
            ValidationError: If the payment type, direction, account or
                drawdown status doesn't allow settlement
            ConflictError: If the payment is already matched
        """
        payment = self._require_main(payment_main_id)
        drawdown = self.db.get_drawdown(drawdown_id)
        if drawdown is None:
            raise NotFoundError(drawdown_not_found(drawdown_id))

        expected_code = DEBT_PAY if drawdown.kind == DEBT else LOAN_COLLECT
        expected_direction = "debit" if drawdown.kind == DEBT else "credit"
        payment_code = self.type_service.code_of(payment.transaction_type_id)
        if payment_code != expected_code:
            raise ValidationError(
                f"Transaction {payment.id} must be of type {expected_code} to settle a "
                f"{drawdown.kind} drawdown"
            )
        if payment.transaction_direction != expected_direction:
            raise ValidationError(
                f"A {expected_code} payment must be a {expected_direction} on its account"
            )
        if payment.is_matched:
            raise ConflictError(already_matched(payment.id))
        if payment.drawdown_id is not None:
            raise ValidationError(
                f"Transaction {payment.id} is already linked to drawdown {payment.drawdown_id}"
            )
        if payment.account_id == drawdown.account_id:
            raise ValidationError("Payment and settlement must be on different accounts")

        payment_account = self.db.get_account(payment.account_id)
        drawdown_account = self.db.get_account(drawdown.account_id)
        if payment_account.entity_id != drawdown_account.entity_id:
            raise ValidationError("Payment and drawdown must belong to the same entity")
        if drawdown.status not in PAYABLE_STATUSES:
            raise ValidationError(
                f"Drawdown {drawdown.id} is {drawdown.status} and cannot take payments"
            )

        applied = min(payment.amount, drawdown.remaining_balance)
        overpayment = payment.amount - applied
        new_remaining = drawdown.remaining_balance - applied
        settlement_raw_id = new_raw_transaction_id("SETTLE")
        memo_main_id: Optional[int] = None

        with self.db.transaction():
            settlement_main_id = self.db.create_raw_transaction(
                raw_transaction_id=settlement_raw_id,
                account_id=drawdown.account_id,
                transaction_date=payment.transaction_date,
                description=f"Settlement for {drawdown.reference}",
                debit_amount=None,
                credit_amount=applied,
                transaction_sequence=self.db.next_transaction_sequence(
                    drawdown.account_id, payment.transaction_date
                ),
                transaction_source=SOURCE_SYSTEM,
                notes=f"Auto-generated from {payment_code} transaction #{payment.id}",
                transaction_type_id=payment.transaction_type_id,
                drawdown_id=drawdown.id,
            )
            if overpayment > 0:
                memo_main_id = self.db.create_raw_transaction(
                    raw_transaction_id=credit_memo_raw_id(settlement_raw_id),
                    account_id=drawdown.account_id,
                    transaction_date=payment.transaction_date,
                    description=f"Credit Memo - Overpayment for {drawdown.reference}",
                    debit_amount=None,
                    credit_amount=overpayment,
                    transaction_sequence=self.db.next_transaction_sequence(
                        drawdown.account_id, payment.transaction_date
                    ),
                    transaction_source=SOURCE_SYSTEM,
                    notes=f"Overpayment: {overpayment} over remaining balance",
                    transaction_type_id=self.type_service.get_by_code(INC).id,
                    credit_memo_of_drawdown_id=drawdown.id,
                )
            self.db.update_main_transaction(payment.id, drawdown_id=drawdown.id)
            self.db.link_main_transactions(payment.id, settlement_main_id)
            self.db.update_drawdown(
                drawdown.id,
                expected_remaining=drawdown.remaining_balance,
                remaining_balance=new_remaining,
                overpayment_amount=drawdown.overpayment_amount + overpayment,
                status=status_after_payment(
                    new_remaining, drawdown.written_off_amount, drawdown.status
                ),
            )

        if overpayment > 0:
            logger.warning(
                "Overpayment of %s on drawdown %s; credit memo %s issued",
                overpayment,
                drawdown.id,
                memo_main_id,
            )
        logger.info(
            "Settled %s of drawdown %s with transaction %s", applied, drawdown.id, payment.id
        )
        return SettlementResult(
            drawdown=self.db.get_drawdown(drawdown.id),
            payment_transaction_id=payment.id,
            settlement_transaction_id=settlement_main_id,
            credit_memo_transaction_id=memo_main_id,
            overpayment_amount=overpayment,
        )

    def list_unmatched(
        self, account_id: Optional[int] = None, entity_id: Optional[int] = None
    ) -> list[MainTransaction]:
        """Pairable main transactions that are not matched yet.

        Args:
            account_id: Optional account to filter by
            entity_id: Optional entity whose accounts are included

        Returns:
            Unmatched main transactions whose type takes part in a pair
        """
        return self.db.list_main_transactions(
            account_ids=self._account_ids(account_id, entity_id),
            transaction_type_ids=self._pairable_type_ids(),
            matched=False,
        )

    def list_matched(
        self, account_id: Optional[int] = None, entity_id: Optional[int] = None
    ) -> list[TransferPair]:
        """Matched pairs, each listed once."""
        rows = self.db.list_main_transactions(
            account_ids=self._account_ids(account_id, entity_id), matched=True
        )
        codes = {t.id: t.type_code for t in self.type_service.list_types()}
        pairs = []
        seen = set()
        for main in rows:
            partner_id = main.transfer_matched_transaction_id
            key = (min(main.id, partner_id), max(main.id, partner_id))
            if key in seen:
                continue
            seen.add(key)
            partner = self.db.get_main_transaction(partner_id)
            main_code = codes.get(main.transaction_type_id)
            partner_code = codes.get(partner.transaction_type_id)
            kind = pair_type(main_code, partner_code) or pair_type(partner_code, main_code)
            pairs.append(self._pair(main, main_code, partner, partner_code, kind or "unknown"))
        return pairs

    def _unwind_settlement(
        self, drawdown: Drawdown, payment: MainTransaction, settlement: MainTransaction
    ) -> None:
        memos = [
            memo
            for memo in self.db.list_main_transactions(credit_memo_of_drawdown_id=drawdown.id)
            if memo.raw_transaction_id == credit_memo_raw_id(settlement.raw_transaction_id)
        ]
        memo_total = sum((memo.amount for memo in memos), Decimal("0"))
        restored_remaining = drawdown.remaining_balance + settlement.amount
        current_status = ACTIVE if drawdown.status == SETTLED else drawdown.status

        with self.db.transaction():
            self.db.unlink_main_transactions(payment.id, settlement.id)
            for memo in memos:
                self.db.delete_raw_transaction(memo.raw_transaction_id)
            self.db.delete_raw_transaction(settlement.raw_transaction_id)
            self.db.update_main_transaction(payment.id, drawdown_id=None)
            self.db.update_drawdown(
                drawdown.id,
                expected_remaining=drawdown.remaining_balance,
                remaining_balance=restored_remaining,
                overpayment_amount=max(drawdown.overpayment_amount - memo_total, Decimal("0")),
                status=status_after_payment(
                    restored_remaining, drawdown.written_off_amount, current_status
                ),
            )

        logger.info(
            "Unwound settlement %s of drawdown %s (%d credit memos removed)",
            settlement.id,
            drawdown.id,
            len(memos),
        )

    def _unwind_drawdown_creation(
        self, drawdown: Drawdown, source: MainTransaction, counter: MainTransaction
    ) -> None:
        linked = self.db.list_main_transactions(drawdown_id=drawdown.id)
        memos = self.db.list_main_transactions(credit_memo_of_drawdown_id=drawdown.id)
        has_history = (
            drawdown.remaining_balance != drawdown.principal_amount
            or drawdown.written_off_amount > 0
            or drawdown.overpayment_amount > 0
            or memos
            or any(m.id not in (source.id, counter.id) for m in linked)
        )
        if has_history:
            raise ValidationError(
                f"Drawdown {drawdown.id} has payments or write-offs; "
                "unmatch its settlements before removing it"
            )

        with self.db.transaction():
            self.db.unlink_main_transactions(source.id, counter.id)
            self.db.update_main_transaction(source.id, drawdown_id=None)
            self.db.delete_raw_transaction(counter.raw_transaction_id)
            self.db.delete_drawdown(drawdown.id)

        logger.info(
            "Removed %s drawdown %s (%s) with its counter transaction %s",
            drawdown.kind,
            drawdown.id,
            drawdown.reference,
            counter.id,
        )

    def _unwind_contribution(
        self,
        contribution: InvestmentContribution,
        cash_side: MainTransaction,
        investment_side: MainTransaction,
    ) -> None:
        linked = self.db.list_main_transactions(investment_contribution_id=contribution.id)
        if contribution.withdrawn_amount > 0 or any(
            m.id not in (cash_side.id, investment_side.id) for m in linked
        ):
            raise ValidationError(
                f"Investment contribution {contribution.id} has withdrawals; "
                "unmatch them before removing it"
            )

        with self.db.transaction():
            self.db.unlink_main_transactions(cash_side.id, investment_side.id)
            self.db.update_main_transaction(cash_side.id, investment_contribution_id=None)
            self.db.delete_raw_transaction(investment_side.raw_transaction_id)
            self.db.delete_investment_contribution(contribution.id)

        logger.info(
            "Removed investment contribution %s with its investment transaction %s",
            contribution.id,
            investment_side.id,
        )

    def _unwind_withdrawal(
        self,
        contribution: InvestmentContribution,
        cash_side: MainTransaction,
        investment_side: MainTransaction,
    ) -> None:
        restored = contribution.withdrawn_amount - investment_side.amount

        with self.db.transaction():
            self.db.unlink_main_transactions(cash_side.id, investment_side.id)
            self.db.update_main_transaction(cash_side.id, investment_contribution_id=None)
            self.db.delete_raw_transaction(investment_side.raw_transaction_id)
            self.db.update_investment_contribution(
                contribution.id,
                expected_withdrawn=contribution.withdrawn_amount,
                withdrawn_amount=restored,
                status=status_after_withdrawal(restored, contribution.contribution_amount),
            )

        logger.info(
            "Reverted withdrawal %s of investment contribution %s",
            investment_side.id,
            contribution.id,
        )

    @staticmethod
    def _drawdown_side(
        drawdown: Drawdown, first: MainTransaction, second: MainTransaction
    ) -> Optional[MainTransaction]:
        for main in (first, second):
            if main.account_id == drawdown.account_id and main.drawdown_id == drawdown.id:
                return main
        return None

    @staticmethod
    def _investment_side(
        contribution: InvestmentContribution, first: MainTransaction, second: MainTransaction
    ) -> Optional[MainTransaction]:
        for main in (first, second):
            if (
                main.account_id == contribution.investment_account_id
                and main.investment_contribution_id == contribution.id
            ):
                return main
        return None

    def _require_main(self, main_transaction_id: int) -> MainTransaction:
        main = self.db.get_main_transaction(main_transaction_id)
        if main is None:
            raise NotFoundError(main_transaction_not_found(main_transaction_id))
        return main

    def _account_ids(
        self, account_id: Optional[int], entity_id: Optional[int]
    ) -> Optional[list[int]]:
        if account_id is not None:
            return [account_id]
        if entity_id is not None:
            return [a.id for a in self.db.list_accounts(entity_id=entity_id, include_inactive=True)]
        return None

    def _pairable_type_ids(self) -> list[int]:
        codes = {code for pair in VALID_PAIRS for code in pair}
        return [t.id for t in self.type_service.list_types() if t.type_code in codes]

    @staticmethod
    def _pair(
        first: MainTransaction,
        first_code: Optional[str],
        second: MainTransaction,
        second_code: Optional[str],
        kind: str,
    ) -> TransferPair:
        # The side money leaves from is reported as the outgoing one
        if first_code == TRF_IN or second_code == TRF_OUT:
            first, second = second, first
        elif first_code != TRF_OUT and (
            first.transaction_direction == "credit" and second.transaction_direction == "debit"
        ):
            first, second = second, first
        return TransferPair(transfer_out_id=first.id, transfer_in_id=second.id, pair_type=kind)
