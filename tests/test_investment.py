"""Tests for investment contributions and withdrawals."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.domain.errors import IntegrityError, NotFoundError, ValidationError


@pytest.fixture
def brokerage(account_service, entity_id):
    """An investment account of the sample entity."""
    return account_service.create_account(entity_id, "Brokerage", "investment")


@pytest.fixture
def contribution(investment_service, accounts, brokerage):
    """20,000,000 moved from the bank account into the brokerage account."""
    return investment_service.create_investment_contribution(
        source_account_id=accounts["bank"],
        amount=Decimal("20000000"),
        contribution_date=date(2025, 2, 1),
        investment_account_id=brokerage,
        notes="Index fund",
    )


class TestContribution:
    """Contribution creation."""

    def test_contribution_creates_matched_pair(
        self, contribution, transaction_service, type_service, accounts, brokerage
    ):
        """Test the record and both sides of a contribution."""
        record = contribution.contribution
        assert record.investment_account_id == brokerage
        assert record.source_account_id == accounts["bank"]
        assert record.contribution_amount == Decimal("20000000")
        assert record.withdrawn_amount == Decimal("0")
        assert record.status == "active"
        assert record.notes == "Index fund"

        source = transaction_service.get_main_transaction(contribution.source_transaction_id)
        counter = transaction_service.get_main_transaction(contribution.counter_transaction_id)
        assert source.account_id == accounts["bank"]
        assert source.transaction_direction == "debit"
        assert counter.account_id == brokerage
        assert counter.transaction_direction == "credit"
        for main in (source, counter):
            assert main.investment_contribution_id == record.id
            assert type_service.code_of(main.transaction_type_id) == "INV_CONTRIB"
        assert source.transfer_matched_transaction_id == counter.id
        assert counter.transfer_matched_transaction_id == source.id

    def test_default_investment_account_created_once(
        self, investment_service, account_service, accounts, entity_id
    ):
        """Test that an entity without an investment account gets one."""
        first = investment_service.create_investment_contribution(
            accounts["bank"], Decimal("1000"), date(2025, 2, 1)
        )
        second = investment_service.create_investment_contribution(
            accounts["savings"], Decimal("2000"), date(2025, 2, 2)
        )

        account = account_service.get_account(first.contribution.investment_account_id)
        assert account.name == "Investment"
        assert account.account_type == "investment"
        assert account.entity_id == entity_id
        assert second.contribution.investment_account_id == account.id

    def test_contribution_validation(
        self, investment_service, account_service, accounts, brokerage
    ):
        """Test amount and account checks."""
        with pytest.raises(ValidationError, match="greater than zero"):
            investment_service.create_investment_contribution(
                accounts["bank"], Decimal("0"), date(2025, 2, 1), brokerage
            )
        with pytest.raises(ValidationError, match="more than two decimal places"):
            investment_service.create_investment_contribution(
                accounts["bank"], Decimal("10.999"), date(2025, 2, 1), brokerage
            )
        with pytest.raises(ValidationError, match="bank or cash"):
            investment_service.create_investment_contribution(
                accounts["credit_line"], Decimal("100"), date(2025, 2, 1), brokerage
            )
        with pytest.raises(ValidationError, match="must be of type investment"):
            investment_service.create_investment_contribution(
                accounts["bank"], Decimal("100"), date(2025, 2, 1), accounts["savings"]
            )

        other_entity = account_service.create_entity("Other Co")
        other_brokerage = account_service.create_account(other_entity, "Brokerage", "investment")
        with pytest.raises(ValidationError, match="same entity"):
            investment_service.create_investment_contribution(
                accounts["bank"], Decimal("100"), date(2025, 2, 1), other_brokerage
            )

    def test_failed_match_rolls_back_contribution(
        self, investment_service, seeded_db, accounts, brokerage, monkeypatch
    ):
        """Test that a failing last step removes the record and both transactions."""

        def fail_link(first_id, second_id):
            raise RuntimeError("database went away")

        monkeypatch.setattr(seeded_db, "link_main_transactions", fail_link)

        with pytest.raises(IntegrityError, match="match transactions"):
            investment_service.create_investment_contribution(
                accounts["bank"], Decimal("5000000"), date(2025, 2, 1), brokerage
            )

        assert investment_service.list_contributions() == []
        assert seeded_db.list_raw_transactions() == []


class TestWithdrawal:
    """Withdrawals against a contribution."""

    def test_partial_then_full_withdrawal(
        self, investment_service, transaction_service, type_service, contribution, accounts, brokerage
    ):
        """Test the status progression and the rows of each withdrawal."""
        contribution_id = contribution.contribution.id

        partial = investment_service.create_investment_withdrawal(
            contribution_id, Decimal("5000000"), date(2025, 3, 1), accounts["savings"]
        )
        assert partial.contribution.status == "partial_withdrawal"
        assert partial.contribution.withdrawn_amount == Decimal("5000000")
        assert partial.contribution.remaining_amount == Decimal("15000000")

        destination = transaction_service.get_main_transaction(partial.source_transaction_id)
        investment_side = transaction_service.get_main_transaction(partial.counter_transaction_id)
        assert destination.account_id == accounts["savings"]
        assert destination.transaction_direction == "credit"
        assert investment_side.account_id == brokerage
        assert investment_side.transaction_direction == "debit"
        assert type_service.code_of(destination.transaction_type_id) == "INV_WITHDRAW"
        assert destination.transfer_matched_transaction_id == investment_side.id

        full = investment_service.create_investment_withdrawal(
            contribution_id, Decimal("15000000"), date(2025, 4, 1), accounts["bank"]
        )
        assert full.contribution.status == "fully_withdrawn"
        assert full.contribution.remaining_amount == Decimal("0")

        with pytest.raises(ValidationError, match="fully withdrawn"):
            investment_service.create_investment_withdrawal(
                contribution_id, Decimal("1"), date(2025, 5, 1), accounts["bank"]
            )

    def test_withdrawal_validation(self, investment_service, contribution, accounts):
        """Test amount and lookup checks."""
        contribution_id = contribution.contribution.id
        with pytest.raises(ValidationError, match="exceeds invested amount"):
            investment_service.create_investment_withdrawal(
                contribution_id, Decimal("20000000.01"), date(2025, 3, 1), accounts["bank"]
            )
        with pytest.raises(ValidationError, match="bank or cash"):
            investment_service.create_investment_withdrawal(
                contribution_id, Decimal("100"), date(2025, 3, 1), accounts["loan"]
            )
        with pytest.raises(NotFoundError, match="Investment contribution 42 not found"):
            investment_service.create_investment_withdrawal(
                42, Decimal("100"), date(2025, 3, 1), accounts["bank"]
            )

        assert investment_service.get_contribution(contribution_id).withdrawn_amount == Decimal("0")

    def test_failed_match_restores_contribution(
        self, investment_service, seeded_db, contribution, accounts, monkeypatch
    ):
        """Test that a failing withdrawal gives the amount back and removes its rows."""
        contribution_id = contribution.contribution.id
        raw_count = len(seeded_db.list_raw_transactions())

        def fail_link(first_id, second_id):
            raise RuntimeError("database went away")

        monkeypatch.setattr(seeded_db, "link_main_transactions", fail_link)

        with pytest.raises(IntegrityError, match="match transactions"):
            investment_service.create_investment_withdrawal(
                contribution_id, Decimal("5000000"), date(2025, 3, 1), accounts["bank"]
            )

        restored = investment_service.get_contribution(contribution_id)
        assert restored.withdrawn_amount == Decimal("0")
        assert restored.status == "active"
        assert len(seeded_db.list_raw_transactions()) == raw_count

    def test_list_filters(self, investment_service, contribution, accounts, brokerage, entity_id):
        """Test listing by account, entity and status."""
        contribution_id = contribution.contribution.id
        assert [c.id for c in investment_service.list_contributions(account_id=brokerage)] == [
            contribution_id
        ]
        assert [c.id for c in investment_service.list_contributions(entity_id=entity_id)] == [
            contribution_id
        ]
        assert investment_service.list_contributions(status="fully_withdrawn") == []
        assert investment_service.list_contributions(account_id=accounts["bank"]) == []


class TestUnmatch:
    """Unmatching investment pairs."""

    def test_unmatch_contribution_removes_record(
        self, pairing_service, investment_service, transaction_service, contribution, brokerage
    ):
        """Test that the record and the investment-side row go, the bank row stays."""
        pairing_service.unmatch_transfer(contribution.source_transaction_id)

        assert investment_service.get_contribution(contribution.contribution.id) is None
        assert transaction_service.list_raw_transactions(account_id=brokerage) == []
        source = transaction_service.get_main_transaction(contribution.source_transaction_id)
        assert source.investment_contribution_id is None
        assert not source.is_matched

    def test_unmatch_withdrawal_restores_amount(
        self, pairing_service, investment_service, transaction_service, contribution, accounts
    ):
        """Test that unmatching a withdrawal returns its amount to the contribution."""
        contribution_id = contribution.contribution.id
        withdrawal = investment_service.create_investment_withdrawal(
            contribution_id, Decimal("20000000"), date(2025, 3, 1), accounts["bank"]
        )

        pairing_service.unmatch_transfer(withdrawal.counter_transaction_id)

        restored = investment_service.get_contribution(contribution_id)
        assert restored.withdrawn_amount == Decimal("0")
        assert restored.status == "active"
        assert transaction_service.get_main_transaction(withdrawal.counter_transaction_id) is None
        cash_side = transaction_service.get_main_transaction(withdrawal.source_transaction_id)
        assert cash_side.investment_contribution_id is None

    def test_unmatch_contribution_with_withdrawals_rejected(
        self, pairing_service, investment_service, contribution, accounts
    ):
        """Test that a contribution with withdrawals cannot be removed by unmatching."""
        investment_service.create_investment_withdrawal(
            contribution.contribution.id, Decimal("1000"), date(2025, 3, 1), accounts["bank"]
        )

        with pytest.raises(ValidationError, match="has withdrawals"):
            pairing_service.unmatch_transfer(contribution.source_transaction_id)

        assert investment_service.get_contribution(contribution.contribution.id) is not None
