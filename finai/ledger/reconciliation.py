"""
Manual Balance Reconciliation

When the user reports the real balance of an account, the gap between that
figure and the computed balance is closed with one adjustment transaction:
- positive gap (money we never recorded) -> income
- negative gap (spending we never recorded) -> expense
- zero gap -> nothing is written

The adjustment carries is_reconciliation and the recorded/actual snapshot
so the history of corrections can be analysed later.
"""

import math
from collections import Counter
from datetime import date, datetime
from typing import Optional, Sequence

from finai.ledger.balances import balance_of, find_account
from finai.ledger.formatting import format_amount
from finai.models.ledger import (
    Account,
    Reconciliation,
    ReconciliationCheck,
    ReconciliationHistory,
    ReconciliationInterval,
    Transaction,
    TransactionType,
)


RECONCILIATION_CATEGORY = "Reconciliation"
REASON_SEPARATOR = " - "
# Transaction.description max_length
MAX_DESCRIPTION_LENGTH = 500

SMALL_DIFFERENCE = 10_000
MEDIUM_DIFFERENCE = 100_000


class ReconciliationError(Exception):
    """Raised when a reconciliation cannot be computed."""
    pass


def calculate_reconciliation(
    account_id: str,
    actual_balance: int,
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    on_date: Optional[date] = None,
    notes: str = "",
) -> Reconciliation:
    """
    Compare the computed balance of an account with the user's figure.

    Raises:
        ReconciliationError: If the account does not exist
    """
    account = find_account(accounts, account_id)
    if account is None:
        raise ReconciliationError(f"Account not found: {account_id}")

    recorded = balance_of(account, transactions).current_balance
    return Reconciliation(
        account_id=account_id,
        recorded_balance=recorded,
        actual_balance=actual_balance,
        difference=actual_balance - recorded,
        reconciliation_date=on_date or date.today(),
        notes=notes,
    )


def validate_reconciliation(
    account_id: str,
    actual_balance: int,
    accounts: Sequence[Account],
    large_balance: int = 100_000_000,
) -> ReconciliationCheck:
    """Check user input before computing anything."""
    if find_account(accounts, account_id) is None:
        return ReconciliationCheck(is_valid=False, error="Account not found")

    if actual_balance < 0:
        return ReconciliationCheck(
            is_valid=False,
            error="Actual balance cannot be negative",
        )

    if actual_balance > large_balance:
        return ReconciliationCheck(
            is_valid=True,
            warning="That is a very large balance. Please double-check the figure.",
        )

    return ReconciliationCheck(is_valid=True)


def create_reconciliation_transaction(
    reconciliation: Reconciliation,
    accounts: Sequence[Account],
    timestamp: Optional[datetime] = None,
) -> Optional[Transaction]:
    """
    Build the adjustment transaction, or None when there is nothing to fix.
    """
    if reconciliation.difference == 0:
        return None

    account = find_account(accounts, reconciliation.account_id)
    name = account.name if account else reconciliation.account_id

    description = f"Balance adjustment {name}"
    if reconciliation.notes:
        description = f"{description}{REASON_SEPARATOR}{reconciliation.notes}"
    description = description[:MAX_DESCRIPTION_LENGTH]

    return Transaction(
        type=(
            TransactionType.INCOME if reconciliation.difference > 0
            else TransactionType.EXPENSE
        ),
        amount=abs(reconciliation.difference),
        category=RECONCILIATION_CATEGORY,
        description=description,
        date=reconciliation.reconciliation_date,
        timestamp=timestamp or datetime.now(),
        account_id=reconciliation.account_id,
        is_reconciliation=True,
        reconciliation_data=reconciliation.to_data(),
    )


def analyze_reconciliation_history(
    account_id: str,
    transactions: Sequence[Transaction],
) -> ReconciliationHistory:
    """
    Summarise past corrections on one account.

    Reasons are the notes part of the description (after " - "); the three
    most frequent are reported.
    """
    corrections = [
        tx for tx in transactions
        if tx.account_id == account_id and tx.is_reconciliation
    ]
    if not corrections:
        return ReconciliationHistory()

    total_difference = sum(
        abs(tx.reconciliation_data.difference) if tx.reconciliation_data else 0
        for tx in corrections
    )

    reasons = Counter(
        tx.description.split(REASON_SEPARATOR, 1)[1]
        for tx in corrections
        if REASON_SEPARATOR in tx.description
    )

    return ReconciliationHistory(
        total_reconciliations=len(corrections),
        average_difference=round(total_difference / len(corrections)),
        last_reconciliation=max(tx.date for tx in corrections),
        frequent_reasons=[reason for reason, _ in reasons.most_common(3)],
    )


def recommended_reconciliation_interval(
    account: Account,
    transactions: Sequence[Transaction],
    now: Optional[datetime] = None,
) -> ReconciliationInterval:
    """Suggest how often to reconcile, from the account's activity rate."""
    now = now or datetime.now()
    account_txs = [tx for tx in transactions if tx.account_id == account.id]

    per_day = 0.0
    if account_txs:
        earliest = min(tx.timestamp for tx in account_txs)
        days = math.ceil((now - earliest).total_seconds() / 86400)
        if days > 0:
            per_day = len(account_txs) / days

    if per_day > 5:
        return ReconciliationInterval(
            interval="weekly",
            reason="Very active account (more than 5 transactions a day). Reconcile weekly.",
        )
    if per_day > 1:
        return ReconciliationInterval(
            interval="bi-weekly",
            reason="Fairly active account (1-5 transactions a day). Reconcile every two weeks.",
        )
    return ReconciliationInterval(
        interval="monthly",
        reason="Quiet account (under 1 transaction a day). Monthly reconciliation is enough.",
    )


def rule_based_suggestions(difference: int, currency_prefix: str = "Rp") -> list[str]:
    """Static hints for where a gap of this size usually comes from."""
    gap = abs(difference)

    if gap < SMALL_DIFFERENCE:
        return [
            "Small gaps usually come from rounding or bank admin fees",
            "Check for small unrecorded spends such as parking or tips",
        ]

    if gap < MEDIUM_DIFFERENCE:
        return [
            "Look for online purchases that were never recorded",
            "Check for subscriptions on auto-debit",
            "Review card or e-wallet spending by family members on shared accounts",
        ]

    return [
        f"Large gap of {format_amount(gap, currency_prefix)} detected. Check your bank statement now",
        "A large transaction has probably gone unrecorded",
        "Make sure there are no unauthorised transactions on the account",
        "Download the statement and match it line by line",
    ]
