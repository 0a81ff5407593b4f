"""Tests for splitting and unsplitting transactions."""

import pytest
from decimal import Decimal

from fintrack.domain.entities import SplitItem
from fintrack.domain.errors import NotFoundError, ValidationError


@pytest.fixture
def purchase(make_transaction, accounts):
    """A 1,000,000 debit to split."""
    return make_transaction(accounts["bank"], debit="1000000", description="Supplies")


def test_split_replaces_main_rows(split_service, category_service, purchase):
    """Test that a split writes one row per item, in order."""
    office = category_service.create_category("Office")
    travel = category_service.create_category("Travel")

    rows = split_service.split_transaction(
        purchase.raw_transaction_id,
        [
            SplitItem(amount=Decimal("600000"), category_id=office),
            SplitItem(amount=Decimal("400000"), category_id=travel, notes="taxi"),
        ],
    )

    assert [r.split_sequence for r in rows] == [1, 2]
    assert all(r.is_split for r in rows)
    assert [r.category_id for r in rows] == [office, travel]
    assert rows[1].notes == "taxi"
    assert sum(r.amount for r in rows) == Decimal("1000000")
    assert all(r.transaction_direction == "debit" for r in rows)
    # Split rows inherit the type of the row they replace
    assert {r.transaction_type_id for r in rows} == {purchase.transaction_type_id}


def test_split_sum_must_match_exactly(split_service, purchase):
    """Test that split amounts are compared without tolerance."""
    with pytest.raises(ValidationError, match="sum to"):
        split_service.split_transaction(
            purchase.raw_transaction_id,
            [SplitItem(amount=Decimal("600000")), SplitItem(amount=Decimal("399999.99"))],
        )

    # Nothing changed
    rows = split_service.get_splits(purchase.raw_transaction_id)
    assert [r.id for r in rows] == [purchase.id]


def test_split_needs_two_positive_items(split_service, purchase):
    """Test item count and amount validation."""
    with pytest.raises(ValidationError, match="at least two"):
        split_service.split_transaction(
            purchase.raw_transaction_id, [SplitItem(amount=Decimal("1000000"))]
        )
    with pytest.raises(ValidationError, match="greater than zero"):
        split_service.split_transaction(
            purchase.raw_transaction_id,
            [SplitItem(amount=Decimal("1000001")), SplitItem(amount=Decimal("-1"))],
        )


def test_split_item_with_fraction_of_cent_rejected(split_service, purchase):
    """Test that items are not silently rounded to cents."""
    with pytest.raises(ValidationError, match="Split item 1: .*more than two decimal places"):
        split_service.split_transaction(
            purchase.raw_transaction_id,
            [SplitItem(amount=Decimal("600000.005")), SplitItem(amount=Decimal("399999.995"))],
        )

    rows = split_service.get_splits(purchase.raw_transaction_id)
    assert [r.id for r in rows] == [purchase.id]


def test_split_unknown_references(split_service, purchase):
    """Test splitting a missing transaction or into a missing category."""
    items = [SplitItem(amount=Decimal("500000")), SplitItem(amount=Decimal("500000"))]
    with pytest.raises(NotFoundError):
        split_service.split_transaction("missing", items)

    with pytest.raises(NotFoundError, match="Category 99"):
        split_service.split_transaction(
            purchase.raw_transaction_id,
            [SplitItem(amount=Decimal("500000"), category_id=99), SplitItem(amount=Decimal("500000"))],
        )


def test_resplit_replaces_previous_split(split_service, purchase):
    """Test splitting an already split transaction again."""
    split_service.split_transaction(
        purchase.raw_transaction_id,
        [SplitItem(amount=Decimal("500000")), SplitItem(amount=Decimal("500000"))],
    )
    rows = split_service.split_transaction(
        purchase.raw_transaction_id,
        [
            SplitItem(amount=Decimal("200000")),
            SplitItem(amount=Decimal("300000")),
            SplitItem(amount=Decimal("500000")),
        ],
    )
    assert len(rows) == 3
    assert len(split_service.get_splits(purchase.raw_transaction_id)) == 3


def test_unsplit_round_trip(split_service, category_service, purchase):
    """Test that unsplit restores a single row with the raw amount."""
    office = category_service.create_category("Office")
    split_service.split_transaction(
        purchase.raw_transaction_id,
        [
            SplitItem(amount=Decimal("700000"), category_id=office),
            SplitItem(amount=Decimal("300000")),
        ],
    )

    row = split_service.unsplit_transaction(purchase.raw_transaction_id)

    assert not row.is_split
    assert row.amount == Decimal("1000000")
    assert row.transaction_direction == "debit"
    assert row.category_id == office
    assert row.transaction_type_id == purchase.transaction_type_id
    assert [r.id for r in split_service.get_splits(purchase.raw_transaction_id)] == [row.id]


def test_unsplit_requires_split(split_service, purchase):
    """Test that unsplitting a plain transaction fails."""
    with pytest.raises(ValidationError, match="not split"):
        split_service.unsplit_transaction(purchase.raw_transaction_id)


def test_split_matched_transaction_rejected(
    split_service, pairing_service, make_transaction, accounts
):
    """Test that matched rows cannot be replaced by a split."""
    out = make_transaction(accounts["bank"], debit="1000", type_code="TRF_OUT")
    into = make_transaction(accounts["savings"], credit="1000", type_code="TRF_IN")
    pairing_service.match_transfer(out.id, into.id)

    with pytest.raises(ValidationError):
        split_service.split_transaction(
            out.raw_transaction_id,
            [SplitItem(amount=Decimal("500")), SplitItem(amount=Decimal("500"))],
        )
