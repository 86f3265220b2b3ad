"""
Tests for budget alerts.

Thresholds are checked with a 100,000 budget so each boundary lands on a
whole amount.
"""

from datetime import date, datetime

import pytest

from conftest import NOW, expense, income

from finai.agents import BudgetSuggestionAgent, fallback_budget_suggestions
from finai.budgets import BudgetAlertEngine, days_remaining, period_window
from finai.models.budget import AlertStatus, OverallStatus
from finai.models.ledger import Budget, BudgetPeriod


FOOD = "Food & Drink"


@pytest.fixture
def engine(ledger_settings):
    return BudgetAlertEngine(settings=ledger_settings)


def food_budget(amount: int = 100_000, period: BudgetPeriod = BudgetPeriod.MONTHLY) -> Budget:
    return Budget(id="b-food", category=FOOD, amount=amount, period=period)


class TestPeriodWindow:
    """Tests for period boundaries. NOW is Saturday 2024-06-15 at noon."""

    def test_daily(self):
        window = period_window(BudgetPeriod.DAILY, NOW)
        assert window.start == datetime(2024, 6, 15, 0, 0, 0)
        assert window.end == datetime(2024, 6, 15, 23, 59, 59)

    def test_weekly_starts_monday(self):
        window = period_window(BudgetPeriod.WEEKLY, NOW)
        assert window.start == datetime(2024, 6, 10)
        assert window.end == datetime(2024, 6, 16, 23, 59, 59)

    def test_monthly(self):
        window = period_window(BudgetPeriod.MONTHLY, NOW)
        assert window.start == datetime(2024, 6, 1)
        assert window.end == datetime(2024, 6, 30, 23, 59, 59)

    def test_days_remaining_rounds_up(self):
        assert days_remaining(BudgetPeriod.MONTHLY, NOW) == 16
        assert days_remaining(BudgetPeriod.DAILY, NOW) == 1
        assert days_remaining(BudgetPeriod.WEEKLY, NOW) == 2


class TestClassification:
    """Tests for the status thresholds."""

    @pytest.mark.parametrize("spent, status", [
        (74_999, AlertStatus.SAFE),
        (75_000, AlertStatus.WARNING),
        (89_999, AlertStatus.WARNING),
        (90_000, AlertStatus.CRITICAL),
        (99_999, AlertStatus.CRITICAL),
        (100_000, AlertStatus.OVER),
        (150_000, AlertStatus.OVER),
    ])
    def test_boundaries(self, engine, spent, status):
        alert = engine.evaluate(food_budget(), [expense(spent, category=FOOD)], NOW)
        assert alert.status == status

    def test_overall_has_no_over_tier(self, engine):
        assert engine.classify_overall(250.0) == OverallStatus.CRITICAL
        assert engine.classify_overall(80.0) == OverallStatus.WARNING
        assert engine.classify_overall(10.0) == OverallStatus.SAFE


class TestEvaluate:
    """Tests for per-budget alerts."""

    def test_spending_filters(self, engine):
        transactions = [
            expense(30_000, category=FOOD),
            expense(20_000, category=FOOD, on_date=date(2024, 6, 1)),
            expense(50_000, category=FOOD, on_date=date(2024, 5, 31)),  # last month
            expense(40_000, category="Shopping"),
            income(99_000, category=FOOD),
        ]
        alert = engine.evaluate(food_budget(), transactions, NOW)
        assert alert.spent == 50_000
        assert alert.percentage == 50.0
        assert alert.budget_id == "b-food"

    def test_over_message(self, engine):
        alert = engine.evaluate(food_budget(), [expense(120_000, category=FOOD)], NOW)
        assert alert.message == "Food & Drink budget is over by Rp20,000!"

    def test_critical_message(self, engine):
        alert = engine.evaluate(food_budget(), [expense(95_000, category=FOOD)], NOW)
        assert alert.message == (
            "Careful! Only Rp5,000 left in the Food & Drink budget (16 days to go)"
        )

    def test_warning_message(self, engine):
        alert = engine.evaluate(food_budget(), [expense(80_000, category=FOOD)], NOW)
        assert alert.message == "80% of the Food & Drink budget is used. Time to slow down."

    def test_daily_average(self, engine):
        assert engine.daily_average(150_000, food_budget(), NOW) == 10_000
        daily = food_budget(period=BudgetPeriod.DAILY)
        assert engine.daily_average(150_000, daily, NOW) == 150_000


class TestProjection:
    """Tests for the month-end estimate."""

    def test_will_exceed(self, engine):
        projection = engine.project(1_500_000, 2_000_000, date(2024, 6, 15))
        assert projection.estimated_end_of_month == 3_000_000
        assert projection.will_exceed
        assert projection.excess_amount == 1_000_000

    def test_on_track(self, engine):
        projection = engine.project(500_000, 2_000_000, date(2024, 6, 15))
        assert projection.estimated_end_of_month == 1_000_000
        assert not projection.will_exceed
        assert projection.excess_amount is None


class TestAnalyze:
    """Tests for the aggregate analysis."""

    @pytest.mark.asyncio
    async def test_only_hot_budgets_get_suggestions(self, engine):
        budgets = [
            food_budget(),
            Budget(id="b-shop", category="Shopping", amount=1_000_000),
        ]
        transactions = [expense(95_000, category=FOOD), expense(10_000, category="Shopping")]

        analysis = await engine.analyze(budgets, transactions, now=NOW)

        food, shopping = analysis.alerts
        assert food.suggestions == fallback_budget_suggestions(FOOD)
        assert shopping.suggestions == []
        assert analysis.total_budget == 1_100_000
        assert analysis.total_spent == 105_000
        assert analysis.overall_status == OverallStatus.SAFE
        assert analysis.days_remaining == 15

    @pytest.mark.asyncio
    async def test_failing_suggester_falls_back_per_budget(self, ledger_settings):
        class BrokenSuggester:
            async def suggest(self, **kwargs):
                raise RuntimeError("boom")

        engine = BudgetAlertEngine(BrokenSuggester(), ledger_settings)
        analysis = await engine.analyze(
            [food_budget()], [expense(100_000, category=FOOD)], now=NOW
        )

        assert analysis.alerts[0].status == AlertStatus.OVER
        assert analysis.alerts[0].suggestions == fallback_budget_suggestions(FOOD)

    @pytest.mark.asyncio
    async def test_model_suggestions_are_capped(self, make_gateway, ledger_settings):
        gateway, client = make_gateway('["Tip A", "Tip B", "Tip C", "Tip D"]')
        engine = BudgetAlertEngine(BudgetSuggestionAgent(gateway, ledger_settings), ledger_settings)

        analysis = await engine.analyze(
            [food_budget()], [expense(90_000, category=FOOD)], now=NOW
        )

        assert analysis.alerts[0].suggestions == ["Tip A", "Tip B", "Tip C"]
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_no_budgets(self, engine):
        analysis = await engine.analyze([], [expense(10_000)], now=NOW)
        assert analysis.alerts == []
        assert analysis.total_budget == 0
        assert analysis.overall_status == OverallStatus.SAFE
        assert analysis.projection.will_exceed is False
