"""Tests for raw and main transactions."""

import pytest
from datetime import date
from decimal import Decimal

from fintrack.domain.errors import NotFoundError, ValidationError


def test_create_raw_transaction_creates_main_row(transaction_service, type_service, accounts):
    """Test that a raw transaction gets one default main transaction."""
    raw_id = transaction_service.create_raw_transaction(
        account_id=accounts["bank"],
        transaction_date=date(2025, 1, 15),
        debit_amount=Decimal("150000"),
        description="Groceries",
    )

    raw = transaction_service.get_raw_transaction(raw_id)
    assert raw.debit_amount == Decimal("150000")
    assert raw.credit_amount is None
    assert raw.direction == "debit"
    assert raw.transaction_source == "user_manual"

    mains = transaction_service.list_main_transactions(raw_transaction_id=raw_id)
    assert len(mains) == 1
    main = mains[0]
    assert main.amount == Decimal("150000")
    assert main.transaction_direction == "debit"
    assert not main.is_split
    assert main.split_sequence == 1
    assert type_service.code_of(main.transaction_type_id) == "EXP"


def test_credit_defaults_to_income(make_transaction, type_service, accounts):
    """Test that credits default to INC."""
    main = make_transaction(accounts["bank"], credit="2000000")
    assert type_service.code_of(main.transaction_type_id) == "INC"
    assert main.transaction_direction == "credit"


@pytest.mark.parametrize(
    "debit, credit",
    [(None, None), (Decimal("10"), Decimal("10")), (Decimal("0"), None), (None, Decimal("-5"))],
)
def test_invalid_amounts(transaction_service, accounts, debit, credit):
    """Test that exactly one positive amount is required."""
    with pytest.raises(ValidationError):
        transaction_service.create_raw_transaction(
            account_id=accounts["bank"],
            transaction_date=date(2025, 1, 15),
            debit_amount=debit,
            credit_amount=credit,
        )


def test_fraction_of_cent_rejected(transaction_service, accounts):
    """Test that amounts finer than a cent are refused rather than rounded."""
    with pytest.raises(ValidationError, match="more than two decimal places"):
        transaction_service.create_raw_transaction(
            account_id=accounts["bank"],
            transaction_date=date(2025, 1, 15),
            debit_amount=Decimal("10.005"),
        )

    assert transaction_service.list_raw_transactions() == []


def test_unknown_account(transaction_service, accounts):
    """Test recording on a missing account."""
    with pytest.raises(NotFoundError, match="Account 999 not found"):
        transaction_service.create_raw_transaction(
            account_id=999, transaction_date=date(2025, 1, 15), debit_amount=Decimal("1")
        )


def test_unknown_type_code(transaction_service, accounts):
    """Test recording with an unknown type code."""
    with pytest.raises(NotFoundError, match="fintrack init"):
        transaction_service.create_raw_transaction(
            account_id=accounts["bank"],
            transaction_date=date(2025, 1, 15),
            debit_amount=Decimal("1"),
            transaction_type_code="BOGUS",
        )


def test_duplicate_raw_transaction_id(transaction_service, accounts):
    """Test that explicit raw IDs must be unique."""
    kwargs = dict(
        account_id=accounts["bank"],
        transaction_date=date(2025, 1, 15),
        debit_amount=Decimal("1"),
        raw_transaction_id="STMT-001",
    )
    transaction_service.create_raw_transaction(**kwargs)
    with pytest.raises(ValidationError, match="STMT-001"):
        transaction_service.create_raw_transaction(**kwargs)


def test_sequence_orders_same_day_entries(transaction_service, accounts, make_transaction):
    """Test that same-day entries get increasing sequence numbers."""
    first = make_transaction(accounts["bank"], debit="100")
    second = make_transaction(accounts["bank"], debit="200")
    make_transaction(accounts["bank"], debit="300", when=date(2025, 1, 16))

    raws = transaction_service.list_raw_transactions(account_id=accounts["bank"])
    assert [r.raw_transaction_id for r in raws[:2]] == [
        first.raw_transaction_id,
        second.raw_transaction_id,
    ]
    assert raws[0].transaction_sequence < raws[1].transaction_sequence
    assert raws[2].transaction_date == date(2025, 1, 16)


def test_list_by_date_range(transaction_service, accounts, make_transaction):
    """Test date range filters are inclusive."""
    make_transaction(accounts["bank"], debit="100", when=date(2025, 1, 1))
    make_transaction(accounts["bank"], debit="100", when=date(2025, 1, 15))
    make_transaction(accounts["bank"], debit="100", when=date(2025, 2, 1))

    raws = transaction_service.list_raw_transactions(
        account_id=accounts["bank"], start_date=date(2025, 1, 1), end_date=date(2025, 1, 15)
    )
    assert len(raws) == 2


def test_categorize(transaction_service, category_service, type_service, accounts, make_transaction):
    """Test setting type, category and notes on a main transaction."""
    category_id = category_service.create_category("Office")
    main = make_transaction(accounts["bank"], debit="500000")

    transaction_service.categorize(
        main.id, transaction_type_code="TRF_OUT", category_id=category_id, notes="rent"
    )

    updated = transaction_service.get_main_transaction(main.id)
    assert type_service.code_of(updated.transaction_type_id) == "TRF_OUT"
    assert updated.category_id == category_id
    assert updated.notes == "rent"


def test_categorize_matched_type_change_rejected(
    transaction_service, pairing_service, accounts, make_transaction
):
    """Test that a matched transaction keeps its type."""
    out = make_transaction(accounts["bank"], debit="1000", type_code="TRF_OUT")
    into = make_transaction(accounts["savings"], credit="1000", type_code="TRF_IN")
    pairing_service.match_transfer(out.id, into.id)

    with pytest.raises(ValidationError, match="unmatch"):
        transaction_service.categorize(out.id, transaction_type_code="EXP")


def test_update_notes(transaction_service, make_transaction, accounts):
    """Test updating raw transaction notes."""
    main = make_transaction(accounts["bank"], debit="100")
    transaction_service.update_notes(main.raw_transaction_id, "checked")
    assert transaction_service.get_raw_transaction(main.raw_transaction_id).notes == "checked"

    with pytest.raises(NotFoundError):
        transaction_service.update_notes("missing", "x")


def test_delete_raw_transaction(transaction_service, make_transaction, accounts):
    """Test deleting a raw transaction removes its main rows."""
    main = make_transaction(accounts["bank"], debit="100")
    transaction_service.delete_raw_transaction(main.raw_transaction_id)

    assert transaction_service.get_raw_transaction(main.raw_transaction_id) is None
    assert transaction_service.get_main_transaction(main.id) is None


def test_delete_matched_transaction_rejected(
    transaction_service, pairing_service, accounts, make_transaction
):
    """Test that matched transactions must be unmatched before deletion."""
    out = make_transaction(accounts["bank"], debit="1000", type_code="TRF_OUT")
    into = make_transaction(accounts["savings"], credit="1000", type_code="TRF_IN")
    pairing_service.match_transfer(out.id, into.id)

    with pytest.raises(ValidationError, match="unmatch"):
        transaction_service.delete_raw_transaction(out.raw_transaction_id)
    assert transaction_service.get_raw_transaction(out.raw_transaction_id) is not None
