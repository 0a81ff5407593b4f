"""Shared pytest fixtures for fintrack tests."""

import tempfile
import os
from datetime import date
from decimal import Decimal
import pytest

from fintrack.database.factories import create_sqlite_database
from fintrack.domain.account import AccountService
from fintrack.domain.category import CategoryService, TransactionTypeService
from fintrack.domain.checkpoint import CheckpointService
from fintrack.domain.drawdown import DrawdownService
from fintrack.domain.investment import InvestmentService
from fintrack.domain.pairing import PairingService
from fintrack.domain.reconciliation import ReconciliationService
from fintrack.domain.split import SplitService
from fintrack.domain.transaction import TransactionService


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def seeded_db(temp_db):
    """Temporary database with the default transaction types."""
    TransactionTypeService(temp_db).ensure_default_types()
    return temp_db


@pytest.fixture
def account_service(seeded_db):
    """Create an AccountService with a temporary database."""
    return AccountService(seeded_db)


@pytest.fixture
def type_service(seeded_db):
    """Create a TransactionTypeService with a temporary database."""
    return TransactionTypeService(seeded_db)


@pytest.fixture
def category_service(seeded_db):
    """Create a CategoryService with a temporary database."""
    return CategoryService(seeded_db)


@pytest.fixture
def transaction_service(seeded_db):
    """Create a TransactionService with a temporary database."""
    return TransactionService(seeded_db)


@pytest.fixture
def split_service(seeded_db):
    """Create a SplitService with a temporary database."""
    return SplitService(seeded_db)


@pytest.fixture
def pairing_service(seeded_db):
    """Create a PairingService with a temporary database."""
    return PairingService(seeded_db)


@pytest.fixture
def drawdown_service(seeded_db):
    """Create a DrawdownService with a temporary database."""
    return DrawdownService(seeded_db)


@pytest.fixture
def investment_service(seeded_db):
    """Create an InvestmentService with a temporary database."""
    return InvestmentService(seeded_db)


@pytest.fixture
def checkpoint_service(seeded_db):
    """Create a CheckpointService with a temporary database."""
    return CheckpointService(seeded_db)


@pytest.fixture
def reconciliation_service(seeded_db):
    """Create a ReconciliationService with a temporary database."""
    return ReconciliationService(seeded_db)


@pytest.fixture
def entity_id(account_service):
    """Create a sample owning entity."""
    return account_service.create_entity("Acme Ltd")


@pytest.fixture
def accounts(account_service, entity_id):
    """Create one account of each kind used in the tests, keyed by role."""
    return {
        "bank": account_service.create_account(entity_id, "Main Bank", "bank"),
        "savings": account_service.create_account(entity_id, "Savings", "bank"),
        "credit_line": account_service.create_account(
            entity_id, "Credit Line", "credit_line", credit_limit=Decimal("100000000")
        ),
        "loan": account_service.create_account(entity_id, "Loans to Partners", "loan_receivable"),
    }


@pytest.fixture
def partner_id(account_service, entity_id):
    """Create a sample business partner."""
    return account_service.create_partner(entity_id, "First Bank")


@pytest.fixture
def make_transaction(transaction_service):
    """Factory recording a raw transaction and returning its main row."""

    def _make(account_id, debit=None, credit=None, type_code=None, when=date(2025, 1, 15), **kwargs):
        raw_id = transaction_service.create_raw_transaction(
            account_id=account_id,
            transaction_date=when,
            debit_amount=Decimal(debit) if debit is not None else None,
            credit_amount=Decimal(credit) if credit is not None else None,
            transaction_type_code=type_code,
            **kwargs,
        )
        return transaction_service.list_main_transactions(raw_transaction_id=raw_id)[0]

    return _make


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
