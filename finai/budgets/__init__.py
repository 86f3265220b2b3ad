"""Budget alert package."""

from finai.budgets.alert_engine import BudgetAlertEngine, days_remaining, period_window

__all__ = [
    "BudgetAlertEngine",
    "days_remaining",
    "period_window",
]
