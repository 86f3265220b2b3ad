"""
Budget Alert Engine

Stateless evaluation of budgets against the ledger. Every call recomputes
from budgets + transactions; nothing is cached and no transaction is ever
touched.

State per budget, by percentage of the ceiling (no hysteresis):
    safe      < 75%
    warning  >= 75%
    critical >= 90%
    over     >= 100%

Suggestions are only requested for budgets that are not safe. Each budget's
suggestion call runs concurrently and falls back on its own, so one failing
call never affects another budget or the alert itself.
"""

import asyncio
import math
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from finai.agents.advisors import BudgetSuggestionAgent, fallback_budget_suggestions
from finai.config import LedgerSettings, get_settings
from finai.ledger import format_amount
from finai.ledger.periods import days_in_month
from finai.models.budget import (
    AlertStatus,
    BudgetAlert,
    BudgetAnalysis,
    BudgetProjection,
    OverallStatus,
    PeriodWindow,
)
from finai.models.ledger import Budget, BudgetPeriod, Transaction, TransactionType


END_OF_DAY = time(23, 59, 59)


def period_window(period: BudgetPeriod, now: datetime) -> PeriodWindow:
    """
    Resolve the inclusive window a budget applies to.

    - daily: today 00:00 to 23:59:59
    - weekly: Monday 00:00 to the following Sunday 23:59:59
    - monthly: first day 00:00 to last day 23:59:59
    """
    today = now.date()

    if period == BudgetPeriod.DAILY:
        start_day, end_day = today, today
    elif period == BudgetPeriod.WEEKLY:
        start_day = today - timedelta(days=today.weekday())
        end_day = start_day + timedelta(days=6)
    else:
        start_day = today.replace(day=1)
        end_day = today.replace(day=days_in_month(today.year, today.month))

    return PeriodWindow(
        start=datetime.combine(start_day, time.min),
        end=datetime.combine(end_day, END_OF_DAY),
    )


def days_remaining(period: BudgetPeriod, now: datetime) -> int:
    """ceil((period end - now) / 1 day)."""
    window = period_window(period, now)
    return math.ceil((window.end - now).total_seconds() / 86400)


class BudgetAlertEngine:
    """
    Evaluates budgets and builds the aggregate analysis.

    Usage:
        engine = BudgetAlertEngine(BudgetSuggestionAgent(gateway), settings.ledger)
        analysis = await engine.analyze(budgets, transactions)
    """

    def __init__(
        self,
        suggester: Optional[BudgetSuggestionAgent] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        """
        Args:
            suggester: Source of model-written tips. Without one, every
                       non-safe budget gets the static fallback tips.
            settings: Thresholds and currency formatting
        """
        self._suggester = suggester
        self._settings = settings or get_settings().ledger

    def _fmt(self, amount: int) -> str:
        return format_amount(amount, self._settings.currency_prefix)

    # -------------------------------------------------------------------------
    # Pure per-budget pieces
    # -------------------------------------------------------------------------

    def classify_status(self, percentage: float) -> AlertStatus:
        settings = self._settings
        if percentage >= settings.budget_over_percent:
            return AlertStatus.OVER
        if percentage >= settings.budget_critical_percent:
            return AlertStatus.CRITICAL
        if percentage >= settings.budget_warning_percent:
            return AlertStatus.WARNING
        return AlertStatus.SAFE

    def classify_overall(self, percentage: float) -> OverallStatus:
        """Aggregate status has no "over" tier."""
        if percentage >= self._settings.budget_critical_percent:
            return OverallStatus.CRITICAL
        if percentage >= self._settings.budget_warning_percent:
            return OverallStatus.WARNING
        return OverallStatus.SAFE

    @staticmethod
    def calculate_spending(
        transactions: Sequence[Transaction],
        category: str,
        window: PeriodWindow,
    ) -> int:
        """Sum of expenses in a category dated inside the window."""
        start, end = window.start.date(), window.end.date()
        return sum(
            tx.amount for tx in transactions
            if tx.type == TransactionType.EXPENSE
            and tx.category == category
            and start <= tx.date <= end
        )

    def build_message(
        self,
        status: AlertStatus,
        category: str,
        spent: int,
        budget: int,
        percentage: float,
        remaining_days: int,
    ) -> str:
        if status == AlertStatus.OVER:
            return f"{category} budget is over by {self._fmt(spent - budget)}!"
        if status == AlertStatus.CRITICAL:
            return (
                f"Careful! Only {self._fmt(budget - spent)} left in the {category} "
                f"budget ({remaining_days} days to go)"
            )
        if status == AlertStatus.WARNING:
            return f"{percentage:.0f}% of the {category} budget is used. Time to slow down."
        return f"{category} budget is on track ({percentage:.0f}%)"

    def evaluate(
        self,
        budget: Budget,
        transactions: Sequence[Transaction],
        now: datetime,
    ) -> BudgetAlert:
        """Alert for one budget, without suggestions."""
        window = period_window(budget.period, now)
        spent = self.calculate_spending(transactions, budget.category, window)
        percentage = spent * 100 / budget.amount
        status = self.classify_status(percentage)
        remaining = days_remaining(budget.period, now)

        return BudgetAlert(
            budget_id=budget.id,
            category=budget.category,
            spent=spent,
            budget=budget.amount,
            percentage=round(percentage, 2),
            status=status,
            days_remaining=remaining,
            message=self.build_message(
                status, budget.category, spent, budget.amount, percentage, remaining
            ),
        )

    @staticmethod
    def daily_average(spent: int, budget: Budget, now: datetime) -> int:
        """Spend per elapsed day of the current period (at least one day)."""
        window = period_window(budget.period, now)
        elapsed = max(1, (now.date() - window.start.date()).days + 1)
        return round(spent / elapsed)

    def project(self, total_spent: int, total_budget: int, today: date) -> BudgetProjection:
        """Straight-line end-of-month estimate from spend so far."""
        month_days = days_in_month(today.year, today.month)
        estimate = round(total_spent / today.day * month_days)
        will_exceed = estimate > total_budget
        return BudgetProjection(
            estimated_end_of_month=estimate,
            will_exceed=will_exceed,
            excess_amount=estimate - total_budget if will_exceed else None,
        )

    # -------------------------------------------------------------------------
    # Suggestions and aggregate
    # -------------------------------------------------------------------------

    async def _suggestions_for(
        self,
        alert: BudgetAlert,
        budget: Budget,
        now: datetime,
    ) -> list[str]:
        if self._suggester is None:
            return fallback_budget_suggestions(alert.category)
        return await self._suggester.suggest(
            category=alert.category,
            spent=alert.spent,
            budget=alert.budget,
            days_remaining=alert.days_remaining,
            daily_average=self.daily_average(alert.spent, budget, now),
        )

    async def analyze(
        self,
        budgets: Sequence[Budget],
        transactions: Sequence[Transaction],
        now: Optional[datetime] = None,
    ) -> BudgetAnalysis:
        """
        Evaluate every budget, attach suggestions to non-safe ones, and
        compute the overall status and month-end projection.
        """
        now = now or datetime.now()
        today = now.date()

        alerts = [self.evaluate(budget, transactions, now) for budget in budgets]

        pending = [
            (alert, budget) for alert, budget in zip(alerts, budgets)
            if alert.status != AlertStatus.SAFE
        ]
        results = await asyncio.gather(
            *(self._suggestions_for(alert, budget, now) for alert, budget in pending),
            return_exceptions=True,
        )
        for (alert, _), result in zip(pending, results):
            if isinstance(result, BaseException):
                alert.suggestions = fallback_budget_suggestions(alert.category)
            else:
                alert.suggestions = result

        total_budget = sum(b.amount for b in budgets)
        total_spent = sum(a.spent for a in alerts)
        overall_percentage = total_spent * 100 / total_budget if total_budget else 0.0

        return BudgetAnalysis(
            alerts=alerts,
            overall_status=self.classify_overall(overall_percentage),
            total_budget=total_budget,
            total_spent=total_spent,
            days_remaining=days_in_month(today.year, today.month) - today.day,
            projection=self.project(total_spent, total_budget, today),
        )
