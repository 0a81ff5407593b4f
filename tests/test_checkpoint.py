"""Tests for balance checkpoints and their adjustment transactions."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.domain.checkpoint import adjustment_raw_id
from fintrack.domain.errors import NotFoundError, ValidationError


@pytest.fixture
def bank_history(make_transaction, accounts):
    """Credit 1,000,000 then debit 200,000 on the bank account."""
    make_transaction(accounts["bank"], credit="1000000", when=date(2025, 1, 1))
    make_transaction(accounts["bank"], debit="200000", when=date(2025, 1, 5))
    return accounts["bank"]


def test_calculate_balance_up_to_date(checkpoint_service, bank_history):
    """Test credits minus debits up to and including a date."""
    assert checkpoint_service.calculate_balance_up_to_date(bank_history, date(2024, 12, 31)) == 0
    assert checkpoint_service.calculate_balance_up_to_date(bank_history, date(2025, 1, 1)) == Decimal("1000000")
    assert checkpoint_service.calculate_balance_up_to_date(bank_history, date(2025, 1, 31)) == Decimal("800000")


def test_reconciled_checkpoint_has_no_adjustment(checkpoint_service, transaction_service, bank_history):
    """Test a checkpoint that matches the ledger."""
    checkpoint = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("800000")
    )

    assert checkpoint.is_reconciled
    assert checkpoint.calculated_balance == Decimal("800000")
    assert checkpoint.adjustment_amount == Decimal("0")
    assert checkpoint.source == "manual"
    assert transaction_service.get_raw_transaction(adjustment_raw_id(checkpoint.id)) is None


def test_adjustment_created_updated_and_removed(
    checkpoint_service, transaction_service, type_service, bank_history
):
    """Test the adjustment transaction follows the declared balance."""
    checkpoint = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("750000"), notes="January statement"
    )
    assert not checkpoint.is_reconciled
    assert checkpoint.adjustment_amount == Decimal("-50000")

    adjustment = transaction_service.get_raw_transaction(adjustment_raw_id(checkpoint.id))
    assert adjustment.is_balance_adjustment
    assert adjustment.checkpoint_id == checkpoint.id
    assert adjustment.transaction_source == "auto_adjustment"
    assert adjustment.debit_amount == Decimal("50000")
    assert adjustment.credit_amount is None

    # Same date updates the checkpoint and rewrites the adjustment in place
    updated = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("820000")
    )
    assert updated.id == checkpoint.id
    assert updated.notes == "January statement"
    adjustment = transaction_service.get_raw_transaction(adjustment_raw_id(checkpoint.id))
    assert adjustment.debit_amount is None
    assert adjustment.credit_amount == Decimal("20000")
    main = transaction_service.list_main_transactions(raw_transaction_id=adjustment.raw_transaction_id)[0]
    assert main.amount == Decimal("20000")
    assert type_service.code_of(main.transaction_type_id) == "INC"

    # Adjustments never count towards the calculated balance
    assert checkpoint_service.calculate_balance_up_to_date(bank_history, date(2025, 1, 31)) == Decimal("800000")

    # Back within tolerance removes the adjustment
    reconciled = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("800000.005")
    )
    assert reconciled.is_reconciled
    assert transaction_service.get_raw_transaction(adjustment_raw_id(checkpoint.id)) is None
    assert len(checkpoint_service.list_checkpoints(bank_history)) == 1


def test_recalculate_after_backdated_transaction(
    checkpoint_service, transaction_service, make_transaction, bank_history
):
    """Test recalculation picks up transactions added before a checkpoint."""
    checkpoint = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("750000")
    )
    make_transaction(bank_history, debit="50000", when=date(2025, 1, 20))

    (recalculated,) = checkpoint_service.recalculate_checkpoints(bank_history)

    assert recalculated.calculated_balance == Decimal("750000")
    assert recalculated.is_reconciled
    assert transaction_service.get_raw_transaction(adjustment_raw_id(checkpoint.id)) is None


def test_delete_checkpoint_removes_adjustment(checkpoint_service, transaction_service, bank_history):
    """Test deleting a checkpoint with its adjustment."""
    checkpoint = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("900000")
    )

    checkpoint_service.delete_checkpoint(checkpoint.id)

    assert checkpoint_service.get_checkpoint(checkpoint.id) is None
    assert transaction_service.get_raw_transaction(adjustment_raw_id(checkpoint.id)) is None
    with pytest.raises(NotFoundError):
        checkpoint_service.delete_checkpoint(checkpoint.id)


def test_adjustment_cannot_be_deleted_directly(checkpoint_service, transaction_service, bank_history):
    """Test that adjustment transactions belong to their checkpoint."""
    checkpoint = checkpoint_service.create_or_update_checkpoint(
        bank_history, date(2025, 1, 31), Decimal("900000")
    )
    with pytest.raises(ValidationError, match="balance adjustment"):
        transaction_service.delete_raw_transaction(adjustment_raw_id(checkpoint.id))


def test_checkpoint_summary(checkpoint_service, bank_history):
    """Test summary statistics over an account's checkpoints."""
    checkpoint_service.create_or_update_checkpoint(bank_history, date(2025, 1, 1), Decimal("1000000"))
    checkpoint_service.create_or_update_checkpoint(bank_history, date(2025, 1, 31), Decimal("790000"))

    summary = checkpoint_service.checkpoint_summary(bank_history)

    assert summary["total_checkpoints"] == 2
    assert summary["reconciled_checkpoints"] == 1
    assert summary["unreconciled_checkpoints"] == 1
    assert summary["total_adjustment_amount"] == Decimal("-10000")
    assert summary["earliest_checkpoint_date"] == date(2025, 1, 1)
    assert summary["latest_checkpoint_date"] == date(2025, 1, 31)


def test_checkpoint_unknown_account(checkpoint_service):
    """Test declaring a balance on a missing account."""
    with pytest.raises(NotFoundError):
        checkpoint_service.create_or_update_checkpoint(999, date(2025, 1, 31), Decimal("1"))


def test_checkpoint_fraction_of_cent_rejected(checkpoint_service, bank_history):
    """Test that a declared balance finer than a cent is refused."""
    with pytest.raises(ValidationError, match="more than two decimal places"):
        checkpoint_service.create_or_update_checkpoint(
            bank_history, date(2025, 1, 31), Decimal("800000.001")
        )

    assert checkpoint_service.list_checkpoints(bank_history) == []
