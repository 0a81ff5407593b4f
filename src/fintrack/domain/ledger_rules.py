"""Transaction type codes, account type groups and matching rules."""

from decimal import Decimal
from typing import Optional

# Amount tolerance for comparing the two sides of a pair and for balance
# comparisons. Split sums are compared exactly.
MATCH_TOLERANCE = Decimal("0.01")
RECONCILIATION_TOLERANCE = Decimal("0.01")

# Amounts are stored with two decimal places
AMOUNT_QUANTUM = Decimal("0.01")

BALANCE_ADJUSTMENT_DESCRIPTION = "Balance Adjustment (Checkpoint)"

# Account types
BANK = "bank"
CASH = "cash"
CREDIT_CARD = "credit_card"
CREDIT_LINE = "credit_line"
TERM_LOAN = "term_loan"
LOAN_RECEIVABLE = "loan_receivable"
INVESTMENT = "investment"

ACCOUNT_TYPES = (BANK, CASH, CREDIT_CARD, CREDIT_LINE, TERM_LOAN, LOAN_RECEIVABLE, INVESTMENT)
CASH_ACCOUNT_TYPES = frozenset({BANK, CASH})
DEBT_ACCOUNT_TYPES = frozenset({CREDIT_LINE, TERM_LOAN, CREDIT_CARD})
CREDIT_LIMIT_ACCOUNT_TYPES = DEBT_ACCOUNT_TYPES

# Transaction type codes
INC = "INC"
EXP = "EXP"
TRF_OUT = "TRF_OUT"
TRF_IN = "TRF_IN"
CC_CHARGE = "CC_CHARGE"
CC_PAY = "CC_PAY"
DEBT_TAKE = "DEBT_TAKE"
DEBT_PAY = "DEBT_PAY"
LOAN_DISBURSE = "LOAN_DISBURSE"
LOAN_COLLECT = "LOAN_COLLECT"
LOAN_WRITEOFF = "LOAN_WRITEOFF"
INV_CONTRIB = "INV_CONTRIB"
INV_WITHDRAW = "INV_WITHDRAW"

DEFAULT_TRANSACTION_TYPES = [
    (INC, "Income"),
    (EXP, "Expense"),
    (TRF_OUT, "Transfer Out"),
    (TRF_IN, "Transfer In"),
    (CC_CHARGE, "Credit Card Charge"),
    (CC_PAY, "Credit Card Payment"),
    (DEBT_TAKE, "Debt Drawdown"),
    (DEBT_PAY, "Debt Payback"),
    (LOAN_DISBURSE, "Loan Disbursement"),
    (LOAN_COLLECT, "Loan Collection"),
    (LOAN_WRITEOFF, "Loan Write-off"),
    (INV_CONTRIB, "Investment Contribution"),
    (INV_WITHDRAW, "Investment Withdrawal"),
]

# (first side, second side) -> pair name
VALID_PAIRS = {
    (TRF_OUT, TRF_IN): "transfer",
    (CC_PAY, CC_PAY): "credit_card_payment",
    (DEBT_TAKE, DEBT_TAKE): "debt_drawdown",
    (DEBT_PAY, DEBT_PAY): "debt_payback",
    (LOAN_DISBURSE, LOAN_DISBURSE): "loan_disbursement",
    (LOAN_COLLECT, LOAN_COLLECT): "loan_collection",
    (INV_CONTRIB, INV_CONTRIB): "investment_contribution",
    (INV_WITHDRAW, INV_WITHDRAW): "investment_withdrawal",
}

# Drawdown kinds and statuses
DEBT = "debt"
LOAN = "loan"

ACTIVE = "active"
OVERDUE = "overdue"
SETTLED = "settled"
PARTIALLY_WRITTEN_OFF = "partially_written_off"
WRITTEN_OFF = "written_off"

PAYABLE_STATUSES = frozenset({ACTIVE, OVERDUE, PARTIALLY_WRITTEN_OFF})
TERMINAL_STATUSES = frozenset({SETTLED, WRITTEN_OFF})

# Types of the pair written when a drawdown is created
DRAWDOWN_CREATION_TYPE_CODES = (DEBT_TAKE, LOAN_DISBURSE)

# Payment types that settle a drawdown
SETTLEMENT_TYPE_CODES = (DEBT_PAY, LOAN_COLLECT)

# Investment contribution statuses
PARTIAL_WITHDRAWAL = "partial_withdrawal"
FULLY_WITHDRAWN = "fully_withdrawn"

# Transaction sources
SOURCE_USER = "user_manual"
SOURCE_IMPORT = "import"
SOURCE_SYSTEM = "system_generated"
SOURCE_ADJUSTMENT = "auto_adjustment"


def pair_type(first_code: Optional[str], second_code: Optional[str]) -> Optional[str]:
    """Return the pair name for two type codes, or None if they do not pair."""
    return VALID_PAIRS.get((first_code, second_code))


def is_whole_cents(amount) -> bool:
    """True if the amount is stored without rounding."""
    amount = Decimal(amount)
    return amount == amount.quantize(AMOUNT_QUANTUM)


def default_type_code(direction: str) -> str:
    """Type assigned to the auto-created main transaction of a raw entry."""
    return INC if direction == "credit" else EXP


def status_after_payment(remaining: Decimal, written_off: Decimal, current: str) -> str:
    """Status of a drawdown once its remaining balance changes."""
    if remaining == 0:
        return SETTLED
    if written_off > 0:
        return PARTIALLY_WRITTEN_OFF
    return OVERDUE if current == OVERDUE else ACTIVE


def status_after_withdrawal(withdrawn: Decimal, contributed: Decimal) -> str:
    """Status of an investment contribution once its withdrawn amount changes."""
    if withdrawn == 0:
        return ACTIVE
    if withdrawn >= contributed:
        return FULLY_WITHDRAWN
    return PARTIAL_WITHDRAWAL
