"""SQLAlchemy models for the fintrack ledger store."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Boolean,
    CheckConstraint,
    UniqueConstraint,
    Index,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Entity(Base):
    """Owning entity model."""

    __tablename__ = "entities"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    accounts = relationship("Account", back_populates="entity")


class Account(Base):
    """Ledger account model."""

    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True)
    entity_id = Column(Integer, ForeignKey("entities.id"), nullable=False)
    name = Column(String, nullable=False)
    account_type = Column(String, nullable=False)
    currency = Column(String, nullable=False, default="VND")
    credit_limit = Column(Numeric(15, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("entity_id", "name", name="uq_entity_account_name"),)

    entity = relationship("Entity", back_populates="accounts")


class BusinessPartner(Base):
    """Counterparty model."""

    __tablename__ = "business_partners"

    id = Column(Integer, primary_key=True)
    entity_id = Column(Integer, ForeignKey("entities.id"), nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)


class TransactionType(Base):
    """Transaction type catalog model."""

    __tablename__ = "transaction_types"

    id = Column(Integer, primary_key=True)
    type_code = Column(String, unique=True, nullable=False)
    name = Column(String, nullable=False)


class Category(Base):
    """Category model with optional parent."""

    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    parent = relationship("Category", remote_side=[id], backref="children")


class RawTransaction(Base):
    """Original (raw) transaction model."""

    __tablename__ = "original_transaction"

    raw_transaction_id = Column(String, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    debit_amount = Column(Numeric(15, 2), nullable=True)
    credit_amount = Column(Numeric(15, 2), nullable=True)
    balance = Column(Numeric(15, 2), nullable=True)
    is_balance_adjustment = Column(Boolean, default=False, nullable=False)
    checkpoint_id = Column(Integer, ForeignKey("balance_checkpoints.id"), nullable=True)
    transaction_sequence = Column(Integer, nullable=False, default=0)
    transaction_source = Column(String, nullable=False, default="user_manual")
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "(debit_amount IS NULL) <> (credit_amount IS NULL)",
            name="ck_debit_xor_credit",
        ),
        Index("ix_raw_account_date_seq", "account_id", "transaction_date", "transaction_sequence"),
    )

    main_transactions = relationship(
        "MainTransaction", back_populates="raw_transaction", cascade="all, delete-orphan"
    )


class MainTransaction(Base):
    """Categorized main transaction model."""

    __tablename__ = "main_transaction"

    id = Column(Integer, primary_key=True)
    raw_transaction_id = Column(
        String, ForeignKey("original_transaction.raw_transaction_id"), nullable=False
    )
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    transaction_type_id = Column(Integer, ForeignKey("transaction_types.id"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)
    transaction_direction = Column(String, nullable=False)
    transaction_date = Column(Date, nullable=False)
    description = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    is_split = Column(Boolean, default=False, nullable=False)
    split_sequence = Column(Integer, default=1, nullable=False)
    transfer_matched_transaction_id = Column(
        Integer, ForeignKey("main_transaction.id"), nullable=True, unique=True
    )
    drawdown_id = Column(Integer, ForeignKey("drawdowns.id"), nullable=True)
    transaction_subtype = Column(String, nullable=True)
    credit_memo_of_drawdown_id = Column(Integer, ForeignKey("drawdowns.id"), nullable=True)
    investment_contribution_id = Column(
        Integer, ForeignKey("investment_contributions.id"), nullable=True
    )
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("raw_transaction_id", "split_sequence", name="uq_raw_split_sequence"),
        CheckConstraint("transaction_direction IN ('debit', 'credit')", name="ck_direction"),
    )

    raw_transaction = relationship("RawTransaction", back_populates="main_transactions")


class Checkpoint(Base):
    """Balance checkpoint model."""

    __tablename__ = "balance_checkpoints"

    id = Column(Integer, primary_key=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    checkpoint_date = Column(Date, nullable=False)
    declared_balance = Column(Numeric(15, 2), nullable=False)
    calculated_balance = Column(Numeric(15, 2), nullable=False, default=0)
    adjustment_amount = Column(Numeric(15, 2), nullable=False, default=0)
    is_reconciled = Column(Boolean, default=False, nullable=False)
    import_batch_id = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("account_id", "checkpoint_date", name="uq_account_checkpoint_date"),
    )


class Drawdown(Base):
    """Debt drawdown or loan disbursement model."""

    __tablename__ = "drawdowns"

    id = Column(Integer, primary_key=True)
    kind = Column(String, nullable=False)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    partner_id = Column(Integer, ForeignKey("business_partners.id"), nullable=False)
    reference = Column(String, nullable=False)
    drawdown_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    principal_amount = Column(Numeric(15, 2), nullable=False)
    remaining_balance = Column(Numeric(15, 2), nullable=False)
    written_off_amount = Column(Numeric(15, 2), nullable=False, default=0)
    overpayment_amount = Column(Numeric(15, 2), nullable=False, default=0)
    status = Column(String, nullable=False, default="active")
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("principal_amount > 0", name="ck_principal_positive"),
        CheckConstraint("remaining_balance >= 0", name="ck_remaining_non_negative"),
        CheckConstraint("kind IN ('debt', 'loan')", name="ck_drawdown_kind"),
    )


class InvestmentContribution(Base):
    """Money moved from a bank or cash account into an investment account."""

    __tablename__ = "investment_contributions"

    id = Column(Integer, primary_key=True)
    entity_id = Column(Integer, ForeignKey("entities.id"), nullable=False)
    investment_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    source_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    contribution_amount = Column(Numeric(15, 2), nullable=False)
    withdrawn_amount = Column(Numeric(15, 2), nullable=False, default=0)
    contribution_date = Column(Date, nullable=False)
    status = Column(String, nullable=False, default="active")
    notes = Column(String, nullable=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("contribution_amount > 0", name="ck_contribution_positive"),
        CheckConstraint(
            "withdrawn_amount >= 0 AND withdrawn_amount <= contribution_amount",
            name="ck_withdrawn_within_contribution",
        ),
        CheckConstraint(
            "status IN ('active', 'partial_withdrawal', 'fully_withdrawn')",
            name="ck_contribution_status",
        ),
    )


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Turn on foreign key enforcement for SQLite connections."""
    if type(dbapi_connection).__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_session_factory(database_url: str) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=False)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
