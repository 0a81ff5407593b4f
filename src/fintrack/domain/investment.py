"""Investment contribution and withdrawal domain service.

A contribution moves money from a bank or cash account into an investment
account: an INV_CONTRIB debit on the cash side, an INV_CONTRIB credit on the
investment side, matched to each other and tied to a contribution record. A
withdrawal moves part of it back as an INV_WITHDRAW pair.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fintrack.database.base import Database
from fintrack.domain.account import AccountService
from fintrack.domain.category import TransactionTypeService
from fintrack.domain.entities import Account, InvestmentContribution, InvestmentResult
from fintrack.domain.errors import (
    NotFoundError,
    ValidationError,
    investment_contribution_not_found,
    too_many_decimals,
)
from fintrack.domain.ledger_rules import (
    CASH_ACCOUNT_TYPES,
    FULLY_WITHDRAWN,
    INV_CONTRIB,
    INV_WITHDRAW,
    INVESTMENT,
    SOURCE_USER,
    is_whole_cents,
    status_after_withdrawal,
)
from fintrack.domain.saga import Saga
from fintrack.domain.transaction import new_raw_transaction_id

logger = logging.getLogger(__name__)

DEFAULT_INVESTMENT_ACCOUNT_NAME = "Investment"


class InvestmentService:
    """Service for investment contributions and withdrawals."""

    def __init__(self, db: Database):
        """Initialize investment service.

        Args:
            db: Database instance
        """
        self.db = db
        self.account_service = AccountService(db)
        self.type_service = TransactionTypeService(db)

    def create_investment_contribution(
        self,
        source_account_id: int,
        amount: Decimal,
        contribution_date: date,
        investment_account_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> InvestmentResult:
        """Move money from a bank or cash account into an investment account.

        Without an explicit investment account the entity's first active
        investment account is used, and one named "Investment" is created if
        the entity has none.

        Args:
            source_account_id: Bank or cash account paying in
            amount: Amount to invest, greater than zero
            contribution_date: Date of the contribution
            investment_account_id: Optional investment account
            notes: Optional notes

        Returns:
            The contribution, with the cash-side row as source and the
            investment-side row as counter transaction

        Raises:
            NotFoundError: If an account doesn't exist
            ValidationError: If account types, entities or amount are invalid
            IntegrityError: If a write failed and was rolled back
            CompensationError: If the rollback itself failed
        """
        self._check_amount(amount)
        source = self._require_cash_account(source_account_id)
        if investment_account_id is not None:
            investment = self._require_investment_account(investment_account_id, source.entity_id)
        else:
            investment = self._default_investment_account(source.entity_id)

        type_id = self.type_service.get_by_code(INV_CONTRIB).id
        saga = Saga(f"investment contribution from account {source.id}")
        contribution_id = saga.step(
            "create contribution record",
            lambda: self.db.create_investment_contribution(
                entity_id=source.entity_id,
                investment_account_id=investment.id,
                source_account_id=source.id,
                contribution_amount=amount,
                contribution_date=contribution_date,
                notes=notes,
            ),
            self.db.delete_investment_contribution,
        )
        source_main_id = saga.step(
            "record source transaction",
            lambda: self._record(
                source, "debit", amount, contribution_date, type_id, contribution_id,
                "Investment contribution",
            ),
            self._remove,
        )[1]
        counter_main_id = saga.step(
            "record investment transaction",
            lambda: self._record(
                investment, "credit", amount, contribution_date, type_id, contribution_id,
                "Investment contribution",
            ),
            self._remove,
        )[1]
        saga.step(
            "match transactions",
            lambda: self.db.link_main_transactions(source_main_id, counter_main_id),
        )

        logger.info(
            "Contributed %s from account %s to investment account %s (contribution %s)",
            amount,
            source.id,
            investment.id,
            contribution_id,
        )
        return InvestmentResult(
            contribution=self.db.get_investment_contribution(contribution_id),
            source_transaction_id=source_main_id,
            counter_transaction_id=counter_main_id,
        )

    def create_investment_withdrawal(
        self,
        contribution_id: int,
        amount: Decimal,
        withdrawal_date: date,
        destination_account_id: int,
        notes: Optional[str] = None,
    ) -> InvestmentResult:
        """Move part or all of a contribution back to a bank or cash account.

        Args:
            contribution_id: Contribution being withdrawn from
            amount: Amount, at most what is still invested
            withdrawal_date: Date of the withdrawal
            destination_account_id: Bank or cash account receiving the money
            notes: Optional notes

        Returns:
            The updated contribution, with the cash-side row as source and the
            investment-side row as counter transaction

        Raises:
            NotFoundError: If the contribution or account doesn't exist
            ValidationError: If the amount exceeds what is still invested or
                the destination account is invalid
            ConflictError: If the contribution changed concurrently
            IntegrityError: If a write failed and was rolled back
            CompensationError: If the rollback itself failed
        """
        self._check_amount(amount)
        contribution = self.db.get_investment_contribution(contribution_id)
        if contribution is None:
            raise NotFoundError(investment_contribution_not_found(contribution_id))
        if contribution.status == FULLY_WITHDRAWN:
            raise ValidationError(f"Investment contribution {contribution_id} is fully withdrawn")
        if amount > contribution.remaining_amount:
            raise ValidationError(
                f"Withdrawal amount {amount} exceeds invested amount "
                f"{contribution.remaining_amount}"
            )

        destination = self._require_cash_account(destination_account_id)
        investment = self._require_investment_account(
            contribution.investment_account_id, destination.entity_id
        )

        old_withdrawn = contribution.withdrawn_amount
        new_withdrawn = old_withdrawn + amount
        type_id = self.type_service.get_by_code(INV_WITHDRAW).id

        saga = Saga(f"investment withdrawal from contribution {contribution_id}")
        saga.step(
            "update contribution balance",
            lambda: self.db.update_investment_contribution(
                contribution_id,
                expected_withdrawn=old_withdrawn,
                withdrawn_amount=new_withdrawn,
                status=status_after_withdrawal(new_withdrawn, contribution.contribution_amount),
            ),
            lambda _: self.db.update_investment_contribution(
                contribution_id,
                expected_withdrawn=new_withdrawn,
                withdrawn_amount=old_withdrawn,
                status=contribution.status,
            ),
        )
        counter_main_id = saga.step(
            "record investment transaction",
            lambda: self._record(
                investment, "debit", amount, withdrawal_date, type_id, contribution_id,
                "Investment withdrawal", notes,
            ),
            self._remove,
        )[1]
        source_main_id = saga.step(
            "record destination transaction",
            lambda: self._record(
                destination, "credit", amount, withdrawal_date, type_id, contribution_id,
                "Investment withdrawal", notes,
            ),
            self._remove,
        )[1]
        saga.step(
            "match transactions",
            lambda: self.db.link_main_transactions(source_main_id, counter_main_id),
        )

        logger.info(
            "Withdrew %s of contribution %s to account %s",
            amount,
            contribution_id,
            destination.id,
        )
        return InvestmentResult(
            contribution=self.db.get_investment_contribution(contribution_id),
            source_transaction_id=source_main_id,
            counter_transaction_id=counter_main_id,
        )

    def get_contribution(self, contribution_id: int) -> Optional[InvestmentContribution]:
        """Get investment contribution by ID."""
        return self.db.get_investment_contribution(contribution_id)

    def list_contributions(
        self,
        account_id: Optional[int] = None,
        entity_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[InvestmentContribution]:
        """List contributions of an investment account or of an entity."""
        account_ids = None
        if account_id is not None:
            account_ids = [account_id]
        elif entity_id is not None:
            account_ids = [
                a.id
                for a in self.db.list_accounts(entity_id=entity_id, include_inactive=True)
                if a.account_type == INVESTMENT
            ]
        return self.db.list_investment_contributions(
            investment_account_ids=account_ids, status=status
        )

    def _record(
        self,
        account: Account,
        direction: str,
        amount: Decimal,
        when: date,
        type_id: int,
        contribution_id: int,
        description: str,
        notes: Optional[str] = None,
    ) -> tuple[str, int]:
        raw_id = new_raw_transaction_id("INV")
        main_id = self.db.create_raw_transaction(
            raw_transaction_id=raw_id,
            account_id=account.id,
            transaction_date=when,
            description=description,
            debit_amount=amount if direction == "debit" else None,
            credit_amount=amount if direction == "credit" else None,
            transaction_sequence=self.db.next_transaction_sequence(account.id, when),
            transaction_source=SOURCE_USER,
            notes=notes,
            transaction_type_id=type_id,
            investment_contribution_id=contribution_id,
        )
        return raw_id, main_id

    def _remove(self, created: tuple[str, int]) -> None:
        self.db.delete_raw_transaction(created[0])

    @staticmethod
    def _check_amount(amount: Decimal) -> None:
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if not is_whole_cents(amount):
            raise ValidationError(too_many_decimals(amount))

    def _require_cash_account(self, account_id: int) -> Account:
        account = self.account_service.require_account(account_id)
        if account.account_type not in CASH_ACCOUNT_TYPES:
            raise ValidationError(
                f"Account {account.id} must be a bank or cash account, not {account.account_type}"
            )
        if not account.is_active:
            raise ValidationError(f"Account {account.id} is inactive")
        return account

    def _require_investment_account(self, account_id: int, entity_id: int) -> Account:
        account = self.account_service.require_account(account_id)
        if account.account_type != INVESTMENT:
            raise ValidationError(
                f"Account {account.id} must be of type {INVESTMENT}, not {account.account_type}"
            )
        if account.entity_id != entity_id:
            raise ValidationError("Investment and cash accounts must belong to the same entity")
        if not account.is_active:
            raise ValidationError(f"Account {account.id} is inactive")
        return account

    def _default_investment_account(self, entity_id: int) -> Account:
        for account in self.db.list_accounts(entity_id=entity_id):
            if account.account_type == INVESTMENT:
                return account
        account_id = self.account_service.create_account(
            entity_id, DEFAULT_INVESTMENT_ACCOUNT_NAME, INVESTMENT
        )
        logger.info("Created investment account %s for entity %s", account_id, entity_id)
        return self.db.get_account(account_id)
