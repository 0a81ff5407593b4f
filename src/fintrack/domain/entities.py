"""Domain model entities for fintrack.

These are pure data classes representing ledger concepts, independent of the
database schema. Services and the CLI only ever see these; the ORM rows stay
inside the database layer.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Entity:
    """Owning entity (a person or a business) for accounts."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class Account:
    """Ledger account domain entity."""

    id: int
    entity_id: int
    name: str
    account_type: str
    currency: str
    credit_limit: Optional[Decimal]
    is_active: bool
    created_at: datetime


@dataclass(frozen=True)
class BusinessPartner:
    """Counterparty of a debt drawdown or loan disbursement."""

    id: int
    entity_id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class TransactionType:
    """Transaction type catalog entry."""

    id: int
    type_code: str
    name: str


@dataclass(frozen=True)
class Category:
    """Category domain entity."""

    id: int
    name: str
    parent_id: Optional[int]
    created_at: datetime


@dataclass(frozen=True)
class RawTransaction:
    """Source-of-truth ledger entry with exactly one of debit/credit set."""

    raw_transaction_id: str
    account_id: int
    transaction_date: date
    description: Optional[str]
    debit_amount: Optional[Decimal]
    credit_amount: Optional[Decimal]
    balance: Optional[Decimal]
    is_balance_adjustment: bool
    checkpoint_id: Optional[int]
    transaction_sequence: int
    transaction_source: str
    notes: Optional[str]
    created_at: datetime

    @property
    def amount(self) -> Decimal:
        """The single non-null amount."""
        if self.debit_amount is not None:
            return self.debit_amount
        return self.credit_amount

    @property
    def direction(self) -> str:
        return "debit" if self.debit_amount is not None else "credit"


@dataclass(frozen=True)
class MainTransaction:
    """Categorized, possibly split view of a raw transaction."""

    id: int
    raw_transaction_id: str
    account_id: int
    transaction_type_id: Optional[int]
    category_id: Optional[int]
    amount: Decimal
    transaction_direction: str
    transaction_date: date
    description: Optional[str]
    notes: Optional[str]
    is_split: bool
    split_sequence: int
    transfer_matched_transaction_id: Optional[int]
    drawdown_id: Optional[int]
    transaction_subtype: Optional[str]
    credit_memo_of_drawdown_id: Optional[int]
    investment_contribution_id: Optional[int]
    updated_at: datetime

    @property
    def is_matched(self) -> bool:
        return self.transfer_matched_transaction_id is not None


@dataclass(frozen=True)
class Checkpoint:
    """Externally declared balance for an account as of a date."""

    id: int
    account_id: int
    checkpoint_date: date
    declared_balance: Decimal
    calculated_balance: Decimal
    adjustment_amount: Decimal
    is_reconciled: bool
    import_batch_id: Optional[str]
    notes: Optional[str]
    created_at: datetime

    @property
    def source(self) -> str:
        """Where the declared balance came from."""
        return "import" if self.import_batch_id else "manual"


@dataclass(frozen=True)
class Drawdown:
    """Outstanding debt or loan principal against an account."""

    id: int
    kind: str
    account_id: int
    partner_id: int
    reference: str
    drawdown_date: date
    due_date: Optional[date]
    principal_amount: Decimal
    remaining_balance: Decimal
    written_off_amount: Decimal
    overpayment_amount: Decimal
    status: str
    notes: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class InvestmentContribution:
    """Money placed in an investment account, less what was withdrawn."""

    id: int
    entity_id: int
    investment_account_id: int
    source_account_id: int
    contribution_amount: Decimal
    withdrawn_amount: Decimal
    contribution_date: date
    status: str
    notes: Optional[str]
    created_at: datetime

    @property
    def remaining_amount(self) -> Decimal:
        return self.contribution_amount - self.withdrawn_amount


@dataclass(frozen=True)
class SplitItem:
    """One categorized line item of a split request."""

    amount: Decimal
    category_id: Optional[int] = None
    transaction_type_id: Optional[int] = None
    notes: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class TransferPair:
    """Two main transactions linked as sides of one money movement."""

    transfer_out_id: int
    transfer_in_id: int
    pair_type: str


@dataclass(frozen=True)
class DrawdownResult:
    """Outcome of creating a drawdown or disbursement."""

    drawdown: Drawdown
    source_transaction_id: int
    counter_transaction_id: int


@dataclass(frozen=True)
class InvestmentResult:
    """Outcome of an investment contribution or withdrawal."""

    contribution: InvestmentContribution
    source_transaction_id: int
    counter_transaction_id: int


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of settling a payment against a drawdown."""

    drawdown: Drawdown
    payment_transaction_id: int
    settlement_transaction_id: int
    credit_memo_transaction_id: Optional[int] = None
    overpayment_amount: Decimal = Decimal("0")


@dataclass(frozen=True)
class BalanceBreakdown:
    """Components of a drawdown's outstanding balance."""

    drawdown_id: int
    principal_amount: Decimal
    principal_paid: Decimal
    written_off_amount: Decimal
    remaining_balance: Decimal
    overpayment_amount: Decimal

    @property
    def is_consistent(self) -> bool:
        expected = self.principal_amount - self.principal_paid - self.written_off_amount
        return expected == self.remaining_balance and self.remaining_balance >= 0


@dataclass(frozen=True)
class DiscrepancyTransaction:
    """A raw transaction shown alongside a discrepancy."""

    raw_transaction_id: str
    description: Optional[str]
    debit_amount: Optional[Decimal]
    credit_amount: Optional[Decimal]
    balance: Optional[Decimal]
    is_balance_adjustment: bool


@dataclass(frozen=True)
class Discrepancy:
    """A date where the computed balance disagrees with a declared one."""

    date: date
    checkpoint_id: int
    checkpoint_source: str
    checkpoint_balance: Decimal
    calculated_balance: Decimal
    difference: Decimal
    period_start_date: Optional[date]
    period_start_balance: Decimal
    transactions_on_date: tuple[DiscrepancyTransaction, ...]
    total_debits: Optional[Decimal] = None
    total_credits: Optional[Decimal] = None
    expected_change: Optional[Decimal] = None
    actual_change: Optional[Decimal] = None


@dataclass(frozen=True)
class DiscrepancyReport:
    """Result of investigating one checkpoint's reconciliation window."""

    account_id: int
    checkpoint_id: int
    period_start_date: Optional[date]
    period_end_date: date
    opening_balance: Decimal
    expected_balance: Decimal
    declared_balance: Decimal
    transactions_scanned: int
    total_checkpoints: int
    discrepancies: list[Discrepancy] = field(default_factory=list)
