"""
Core Ledger Models for FinAI

These models define the strict schemas for the ledger:
1. Accounts and Transactions are validated once, at the storage boundary
2. Money is always an integer in the smallest currency unit
3. Derived values (balances, cash flow, detections) are separate models
   so they can never be mistaken for stored state

DESIGN DECISION: A transfer is NOT a transaction type. It is stored as two
single-account transactions (expense on the source, income on the
destination) that cross-reference each other through to_account_id and
from_account_id.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class AccountType(str, Enum):
    """Kinds of money containers a user can hold."""
    BANK = "bank"
    E_WALLET = "e-wallet"
    CASH = "cash"
    CREDIT_CARD = "credit-card"


class TransactionType(str, Enum):
    """
    Stored transaction types.

    CRITICAL: There is no TRANSFER member. Transfers are two linked rows.
    """
    INCOME = "income"
    EXPENSE = "expense"


class BudgetPeriod(str, Enum):
    """Window a budget ceiling applies to."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class RecurringFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class AnomalySeverity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


class TransferErrorCode(str, Enum):
    """Why a transfer request was refused."""
    ACCOUNT_NOT_FOUND = "account_not_found"
    SAME_ACCOUNT = "same_account"
    INSUFFICIENT_FUNDS = "insufficient_funds"


# =============================================================================
# STORED RECORDS
# =============================================================================

def _new_id() -> str:
    return str(uuid4())


class Account(BaseModel):
    """
    A money container (bank account, e-wallet, cash, credit card).

    initial_balance is the opening figure the user entered. It is NEVER
    the current balance; see AccountBalance.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    type: AccountType = AccountType.CASH
    provider: str = Field(default="", max_length=100)
    initial_balance: int = Field(
        default=0,
        description="Opening balance in the smallest currency unit (signed)"
    )
    is_active: bool = True


class LineItem(BaseModel):
    """A single receipt line."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    qty: float = Field(default=1, ge=0)
    price: int = Field(default=0, ge=0)


class ReconciliationData(BaseModel):
    """Snapshot attached to a balance-correction transaction."""

    recorded_balance: int
    actual_balance: int
    difference: int

    @model_validator(mode='after')
    def validate_difference(self) -> 'ReconciliationData':
        if self.actual_balance - self.recorded_balance != self.difference:
            raise ValueError("Difference must equal actual minus recorded balance")
        return self


class Transaction(BaseModel):
    """
    One ledger entry on exactly one account.

    Immutable once created: the application only ever appends or deletes.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    type: TransactionType
    amount: int = Field(
        ...,
        gt=0,
        description="Positive amount in the smallest currency unit"
    )
    category: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    date: date
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="Instant used for ordering and as-of calculations"
    )
    account_id: str = Field(..., min_length=1)

    # Transfer traceability (one of these on each leg)
    to_account_id: Optional[str] = None
    from_account_id: Optional[str] = None

    # Receipt details
    merchant: Optional[str] = Field(default=None, max_length=200)
    items: list[LineItem] = Field(default_factory=list)

    # Balance correction
    is_reconciliation: bool = False
    reconciliation_data: Optional[ReconciliationData] = None

    @model_validator(mode='after')
    def validate_links(self) -> 'Transaction':
        """Validate transfer and reconciliation cross-references."""
        if self.to_account_id and self.from_account_id:
            raise ValueError("A transaction cannot carry both to_account_id and from_account_id")

        if self.to_account_id and self.type != TransactionType.EXPENSE:
            raise ValueError("Only the expense leg of a transfer carries to_account_id")

        if self.from_account_id and self.type != TransactionType.INCOME:
            raise ValueError("Only the income leg of a transfer carries from_account_id")

        if self.to_account_id == self.account_id or self.from_account_id == self.account_id:
            raise ValueError("Transfer counterpart cannot be the owning account")

        if self.is_reconciliation and self.reconciliation_data is None:
            raise ValueError("Reconciliation transactions need reconciliation_data")

        return self

    @property
    def is_transfer_leg(self) -> bool:
        return bool(self.to_account_id or self.from_account_id)


class Budget(BaseModel):
    """A spending ceiling for one category over one period."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=_new_id, min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    amount: int = Field(..., gt=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY


# =============================================================================
# DERIVED RESULTS (never stored)
# =============================================================================

class AccountBalance(BaseModel):
    """Balance of one account, recomputed from the full history."""

    account_id: str
    account_name: str
    initial_balance: int
    total_income: int
    total_expense: int
    current_balance: int


class CategoryAmount(BaseModel):
    category: str
    amount: int


class TransactionSummary(BaseModel):
    """The single largest transaction of a kind in a window."""

    transaction_id: Optional[str] = None
    description: str = ""
    amount: int = 0


class CashFlowAnalysis(BaseModel):
    """Inflow/outflow breakdown for an inclusive date window."""

    start: date
    end: date
    total_inflow: int
    total_outflow: int
    net_cash_flow: int
    income_sources: list[CategoryAmount] = Field(default_factory=list)
    expense_categories: list[CategoryAmount] = Field(default_factory=list)
    biggest_income: TransactionSummary = Field(default_factory=TransactionSummary)
    biggest_expense: TransactionSummary = Field(default_factory=TransactionSummary)

    @property
    def period(self) -> str:
        return f"{self.start.isoformat()} - {self.end.isoformat()}"

    @property
    def saving_rate(self) -> int:
        """Net cash flow as a whole percentage of inflow (0 without income)."""
        if self.total_inflow <= 0:
            return 0
        return round(self.net_cash_flow * 100 / self.total_inflow)


class TransferValidation(BaseModel):
    """Outcome of checking a transfer before any leg is written."""

    is_valid: bool
    error: Optional[str] = None
    error_code: Optional[TransferErrorCode] = None
    warning: Optional[str] = None
    source_balance: int = 0
    required_amount: int


class RecurringTransaction(BaseModel):
    """A detected subscription or bill."""

    merchant: str
    category: str
    average_amount: int
    frequency: RecurringFrequency
    occurrences: int
    last_occurrence: date
    next_expected: date
    confidence: float = Field(ge=0.0, le=1.0)


class Anomaly(BaseModel):
    """An expense that sits far outside its category's usual range."""

    transaction: Transaction
    category_mean: float
    z_score: float
    severity: AnomalySeverity
    reason: str


class SavingsGoalAnalysis(BaseModel):
    """Feasibility of saving a target amount within a number of months."""

    current_savings: int
    required_monthly_savings: int
    current_monthly_savings: int
    gap: int
    is_feasible: bool
    recommendation: str


class Reconciliation(BaseModel):
    """Computed gap between the ledger and the real-world balance."""

    account_id: str
    recorded_balance: int
    actual_balance: int
    difference: int
    reconciliation_date: date
    notes: str = ""

    def to_data(self) -> ReconciliationData:
        return ReconciliationData(
            recorded_balance=self.recorded_balance,
            actual_balance=self.actual_balance,
            difference=self.difference,
        )


class ReconciliationCheck(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    warning: Optional[str] = None


class ReconciliationHistory(BaseModel):
    total_reconciliations: int = 0
    average_difference: int = 0
    last_reconciliation: Optional[date] = None
    frequent_reasons: list[str] = Field(default_factory=list)


class ReconciliationInterval(BaseModel):
    interval: str
    reason: str
