"""
Cash Flow Analysis

Inflow/outflow summaries over an inclusive window of calendar days, plus
the savings-goal feasibility check built on top of them.
"""

from datetime import date, datetime
from typing import Optional, Sequence, Union

from finai.ledger.balances import net_worth
from finai.ledger.formatting import format_amount
from finai.ledger.periods import add_months, as_date, month_bounds
from finai.models.ledger import (
    Account,
    CashFlowAnalysis,
    CategoryAmount,
    SavingsGoalAnalysis,
    Transaction,
    TransactionSummary,
    TransactionType,
)


DayLike = Union[date, datetime]

# A gap this large a share of monthly income is still closable
FEASIBLE_GAP_RATIO = 0.3


def _grouped(totals: dict[str, int]) -> list[CategoryAmount]:
    # sorted() is stable, so equal amounts keep first-seen order
    items = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [CategoryAmount(category=c, amount=a) for c, a in items]


def _summary(tx: Optional[Transaction]) -> TransactionSummary:
    if tx is None:
        return TransactionSummary()
    return TransactionSummary(
        transaction_id=tx.id,
        description=tx.description,
        amount=tx.amount,
    )


def analyze_cash_flow(
    transactions: Sequence[Transaction],
    start: DayLike,
    end: DayLike,
) -> CashFlowAnalysis:
    """
    Summarise money in and out between start and end, both inclusive.

    Args:
        transactions: Full or partial ledger, any order
        start: First day of the window
        end: Last day of the window

    Returns:
        CashFlowAnalysis with totals, per-category groupings sorted by
        descending amount, and the single largest income and expense.
        Ties for "largest" go to the transaction seen first.
    """
    start_day, end_day = as_date(start), as_date(end)

    total_inflow = 0
    total_outflow = 0
    income_by_category: dict[str, int] = {}
    expense_by_category: dict[str, int] = {}
    biggest_income: Optional[Transaction] = None
    biggest_expense: Optional[Transaction] = None

    for tx in transactions:
        if not (start_day <= tx.date <= end_day):
            continue

        if tx.type == TransactionType.INCOME:
            total_inflow += tx.amount
            income_by_category[tx.category] = income_by_category.get(tx.category, 0) + tx.amount
            if biggest_income is None or tx.amount > biggest_income.amount:
                biggest_income = tx
        else:
            total_outflow += tx.amount
            expense_by_category[tx.category] = expense_by_category.get(tx.category, 0) + tx.amount
            if biggest_expense is None or tx.amount > biggest_expense.amount:
                biggest_expense = tx

    return CashFlowAnalysis(
        start=start_day,
        end=end_day,
        total_inflow=total_inflow,
        total_outflow=total_outflow,
        net_cash_flow=total_inflow - total_outflow,
        income_sources=_grouped(income_by_category),
        expense_categories=_grouped(expense_by_category),
        biggest_income=_summary(biggest_income),
        biggest_expense=_summary(biggest_expense),
    )


def monthly_cash_flow(
    transactions: Sequence[Transaction],
    year: int,
    month: int,
) -> CashFlowAnalysis:
    """Cash flow for one calendar month."""
    start, end = month_bounds(year, month)
    return analyze_cash_flow(transactions, start, end)


def analyze_savings_goal(
    goal_amount: int,
    target_months: int,
    accounts: Sequence[Account],
    transactions: Sequence[Transaction],
    today: Optional[date] = None,
    currency_prefix: str = "Rp",
) -> SavingsGoalAnalysis:
    """
    Judge whether a savings goal is reachable at the recent saving pace.

    The pace is the average net cash flow over the last three months. The
    goal counts as feasible when the monthly shortfall is at most 30% of
    average monthly income.
    """
    if target_months <= 0:
        raise ValueError("target_months must be positive")

    today = today or date.today()
    window = analyze_cash_flow(transactions, add_months(today, -3), today)

    current_monthly = round(window.net_cash_flow / 3)
    monthly_income = window.total_inflow / 3
    required_monthly = round(goal_amount / target_months)
    gap = required_monthly - current_monthly
    is_feasible = gap <= monthly_income * FEASIBLE_GAP_RATIO

    def fmt(value: int) -> str:
        return format_amount(value, currency_prefix)

    if gap <= 0:
        recommendation = (
            f"You are on track. Keep saving {fmt(current_monthly)} per month."
        )
    elif is_feasible:
        recommendation = (
            f"Save an extra {fmt(gap)} per month. Cutting discretionary "
            f"spending should cover it."
        )
    elif current_monthly > 0:
        realistic_months = -(-goal_amount // current_monthly)
        recommendation = (
            f"The target is hard to reach in {target_months} months. At your "
            f"current pace it takes about {realistic_months} months, or look "
            f"for extra income."
        )
    else:
        recommendation = (
            f"You are not saving at the moment. Reduce spending by at least "
            f"{fmt(required_monthly)} per month to reach this goal."
        )

    return SavingsGoalAnalysis(
        current_savings=net_worth(accounts, transactions),
        required_monthly_savings=required_monthly,
        current_monthly_savings=current_monthly,
        gap=gap,
        is_feasible=is_feasible,
        recommendation=recommendation,
    )
