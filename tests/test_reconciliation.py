"""Tests for balance reconciliation math."""

from datetime import date, datetime, timedelta

import pytest

from conftest import TODAY, expense

from finai.ledger import (
    ReconciliationError,
    analyze_reconciliation_history,
    balance_of,
    calculate_reconciliation,
    create_reconciliation_transaction,
    recommended_reconciliation_interval,
    rule_based_suggestions,
    validate_reconciliation,
)
from finai.models.ledger import TransactionType


class TestReconciliation:
    """Tests for computing and applying a correction."""

    def test_difference_is_actual_minus_recorded(self, accounts):
        rec = calculate_reconciliation(
            "acc-bca", 930_000, accounts, [expense(50_000)], on_date=TODAY
        )
        assert rec.recorded_balance == 950_000
        assert rec.difference == -20_000

    def test_unknown_account_raises(self, accounts):
        with pytest.raises(ReconciliationError):
            calculate_reconciliation("missing", 0, accounts, [])

    def test_adjustment_brings_balance_to_actual(self, accounts):
        """Test the ledger matches the real balance after the correction."""
        history = [expense(50_000)]
        rec = calculate_reconciliation("acc-bca", 1_020_000, accounts, history, on_date=TODAY)
        adjustment = create_reconciliation_transaction(rec, accounts)

        assert adjustment.type == TransactionType.INCOME
        assert adjustment.amount == 70_000
        assert adjustment.is_reconciliation
        assert adjustment.reconciliation_data.difference == 70_000
        assert balance_of(accounts[0], history + [adjustment]).current_balance == 1_020_000

    def test_negative_difference_is_expense(self, accounts):
        rec = calculate_reconciliation(
            "acc-bca", 990_000, accounts, [], on_date=TODAY, notes="admin fee"
        )
        adjustment = create_reconciliation_transaction(rec, accounts)
        assert adjustment.type == TransactionType.EXPENSE
        assert adjustment.amount == 10_000
        assert adjustment.description == "Balance adjustment BCA - admin fee"

    def test_zero_difference_creates_nothing(self, accounts):
        rec = calculate_reconciliation("acc-bca", 1_000_000, accounts, [], on_date=TODAY)
        assert create_reconciliation_transaction(rec, accounts) is None


class TestReconciliationInput:
    """Tests for input validation."""

    def test_unknown_account(self, accounts):
        check = validate_reconciliation("missing", 100, accounts)
        assert not check.is_valid

    def test_negative_actual_balance(self, accounts):
        check = validate_reconciliation("acc-bca", -1, accounts)
        assert not check.is_valid
        assert "negative" in check.error

    def test_very_large_balance_warns(self, accounts):
        check = validate_reconciliation("acc-bca", 100_000_001, accounts)
        assert check.is_valid
        assert check.warning


class TestReconciliationHistory:
    """Tests for history and cadence."""

    def test_history_summary(self, accounts):
        corrections = []
        for day, notes, actual in ((1, "admin fee", 990_000), (10, "admin fee", 1_000_000),
                                   (20, "cashback", 1_040_000)):
            rec = calculate_reconciliation(
                "acc-bca", actual, accounts, corrections, on_date=date(2024, 6, day), notes=notes
            )
            corrections.append(create_reconciliation_transaction(rec, accounts))

        history = analyze_reconciliation_history("acc-bca", corrections)
        assert history.total_reconciliations == 3
        assert history.average_difference == 20_000
        assert history.last_reconciliation == date(2024, 6, 20)
        assert history.frequent_reasons[0] == "admin fee"

    def test_empty_history(self):
        history = analyze_reconciliation_history("acc-bca", [])
        assert history.total_reconciliations == 0
        assert history.last_reconciliation is None

    def test_interval_for_busy_account(self, accounts):
        now = datetime(2024, 6, 15, 12)
        busy = [
            expense(1_000, timestamp=now - timedelta(hours=i)) for i in range(1, 13)
        ]
        interval = recommended_reconciliation_interval(accounts[0], busy, now=now)
        assert interval.interval == "weekly"

    def test_interval_for_quiet_account(self, accounts):
        interval = recommended_reconciliation_interval(accounts[0], [], now=datetime(2024, 6, 15))
        assert interval.interval == "monthly"


class TestRuleBasedSuggestions:
    """Tests for the static explanations by gap size."""

    def test_small_gap(self):
        assert len(rule_based_suggestions(-5_000)) == 2

    def test_medium_gap(self):
        assert len(rule_based_suggestions(50_000)) == 3

    def test_large_gap_mentions_amount(self):
        tips = rule_based_suggestions(-250_000)
        assert len(tips) == 4
        assert "Rp250,000" in tips[0]
