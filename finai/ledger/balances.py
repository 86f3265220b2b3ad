"""
Balance Computation and Transfer Rules

DESIGN DECISION: Balances are NEVER stored. Every call recomputes
initial_balance + income - expense from the full transaction list, so a
deleted or corrected transaction can never leave a stale running total
behind.

A transfer is two ordinary transactions. Because the expense leg lowers the
source by exactly the amount the income leg raises the destination, net
worth is conserved by construction.
"""

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from finai.ledger.formatting import format_amount
from finai.models.ledger import (
    Account,
    AccountBalance,
    Transaction,
    TransactionType,
    TransferErrorCode,
    TransferValidation,
)


TRANSFER_CATEGORY = "Transfer"


def find_account(accounts: Iterable[Account], account_id: Optional[str]) -> Optional[Account]:
    """Look up an account by id. Returns None for a missing or empty id."""
    if not account_id:
        return None
    for account in accounts:
        if account.id == account_id:
            return account
    return None


def first_active_account(accounts: Iterable[Account]) -> Optional[Account]:
    for account in accounts:
        if account.is_active:
            return account
    return None


def balance_of(account: Account, transactions: Iterable[Transaction]) -> AccountBalance:
    """
    Compute the current balance of one account.

    Never raises. An account with no matching transactions simply reports
    its initial balance.
    """
    total_income = 0
    total_expense = 0
    for tx in transactions:
        if tx.account_id != account.id:
            continue
        if tx.type == TransactionType.INCOME:
            total_income += tx.amount
        else:
            total_expense += tx.amount

    return AccountBalance(
        account_id=account.id,
        account_name=account.name,
        initial_balance=account.initial_balance,
        total_income=total_income,
        total_expense=total_expense,
        current_balance=account.initial_balance + total_income - total_expense,
    )


def all_balances(
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
) -> list[AccountBalance]:
    """Balances for every account, in the order the accounts were given."""
    return [balance_of(account, transactions) for account in accounts]


def net_worth(accounts: Sequence[Account], transactions: Sequence[Transaction]) -> int:
    return sum(b.current_balance for b in all_balances(accounts, transactions))


def validate_transfer(
    source_id: Optional[str],
    target_id: Optional[str],
    amount: int,
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    large_transfer_ratio: float = 0.5,
    currency_prefix: str = "Rp",
) -> TransferValidation:
    """
    Check a transfer before any leg is written.

    Checks run in order and the first failure wins:
    1. Both accounts exist
    2. Source and destination differ
    3. The source's computed balance covers the amount

    A transfer that moves more than large_transfer_ratio of the source
    balance is still valid but carries a warning.
    """
    source = find_account(accounts, source_id)
    target = find_account(accounts, target_id)

    if source is None or target is None:
        return TransferValidation(
            is_valid=False,
            error="Source or destination account not found",
            error_code=TransferErrorCode.ACCOUNT_NOT_FOUND,
            required_amount=amount,
        )

    if source.id == target.id:
        return TransferValidation(
            is_valid=False,
            error="Cannot transfer to the same account",
            error_code=TransferErrorCode.SAME_ACCOUNT,
            required_amount=amount,
        )

    source_balance = balance_of(source, transactions).current_balance

    if source_balance < amount:
        return TransferValidation(
            is_valid=False,
            error=(
                f"Insufficient balance in {source.name}. "
                f"Balance: {format_amount(source_balance, currency_prefix)}, "
                f"required: {format_amount(amount, currency_prefix)}"
            ),
            error_code=TransferErrorCode.INSUFFICIENT_FUNDS,
            source_balance=source_balance,
            required_amount=amount,
        )

    warning = None
    if amount > large_transfer_ratio * source_balance:
        share = round(amount * 100 / source_balance)
        warning = f"This transfer uses {share}% of the {source.name} balance"

    return TransferValidation(
        is_valid=True,
        warning=warning,
        source_balance=source_balance,
        required_amount=amount,
    )


def create_transfer_transactions(
    source: Account,
    target: Account,
    amount: int,
    on_date: date,
    timestamp: Optional[datetime] = None,
    category: str = TRANSFER_CATEGORY,
) -> tuple[Transaction, Transaction]:
    """
    Build the two legs of a transfer.

    Returns (expense_leg, income_leg). The expense leg sits on the source
    and points at the destination through to_account_id; the income leg
    sits on the destination and points back through from_account_id.
    Both legs share one timestamp so they sort together.
    """
    timestamp = timestamp or datetime.now()

    expense_leg = Transaction(
        type=TransactionType.EXPENSE,
        amount=amount,
        category=category,
        description=f"Transfer to {target.name}",
        date=on_date,
        timestamp=timestamp,
        account_id=source.id,
        to_account_id=target.id,
    )
    income_leg = Transaction(
        type=TransactionType.INCOME,
        amount=amount,
        category=category,
        description=f"Transfer from {source.name}",
        date=on_date,
        timestamp=timestamp,
        account_id=target.id,
        from_account_id=source.id,
    )
    return expense_leg, income_leg
