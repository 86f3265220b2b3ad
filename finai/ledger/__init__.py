"""
Ledger Math

Pure, side-effect-free arithmetic over Accounts and Transactions:
balances, transfers, cash flow, recurring charges, anomalies and
reconciliation. Nothing in this package performs I/O.
"""

from finai.ledger.balances import (
    TRANSFER_CATEGORY,
    all_balances,
    balance_of,
    create_transfer_transactions,
    find_account,
    first_active_account,
    net_worth,
    validate_transfer,
)
from finai.ledger.cash_flow import (
    analyze_cash_flow,
    analyze_savings_goal,
    monthly_cash_flow,
)
from finai.ledger.detection import (
    classify_frequency,
    detect_anomalies,
    detect_recurring_transactions,
    severity_for,
)
from finai.ledger.formatting import format_amount
from finai.ledger.reconciliation import (
    RECONCILIATION_CATEGORY,
    ReconciliationError,
    analyze_reconciliation_history,
    calculate_reconciliation,
    create_reconciliation_transaction,
    recommended_reconciliation_interval,
    rule_based_suggestions,
    validate_reconciliation,
)
from finai.ledger.stats import mean, population_std_dev, z_score

__all__ = [
    "TRANSFER_CATEGORY",
    "all_balances",
    "balance_of",
    "create_transfer_transactions",
    "find_account",
    "first_active_account",
    "net_worth",
    "validate_transfer",
    "analyze_cash_flow",
    "analyze_savings_goal",
    "monthly_cash_flow",
    "classify_frequency",
    "detect_anomalies",
    "detect_recurring_transactions",
    "severity_for",
    "format_amount",
    "RECONCILIATION_CATEGORY",
    "ReconciliationError",
    "analyze_reconciliation_history",
    "calculate_reconciliation",
    "create_reconciliation_transaction",
    "recommended_reconciliation_interval",
    "rule_based_suggestions",
    "validate_reconciliation",
    "mean",
    "population_std_dev",
    "z_score",
]
