"""
Tests for recurring-charge and anomaly detection.

The anomaly cases are built so the z-scores land exactly on the
thresholds: 2.0 is not flagged, 3.0 is medium, above 3.0 is high.
"""

from datetime import date, timedelta

from conftest import TODAY, expense, income

from finai.ledger import (
    classify_frequency,
    detect_anomalies,
    detect_recurring_transactions,
    severity_for,
)
from finai.models.ledger import AnomalySeverity, RecurringFrequency


class TestRecurringDetection:
    """Tests for subscription detection."""

    def test_monthly_subscription(self):
        transactions = [
            expense(186_000, merchant="Netflix", description="Netflix subscription",
                    category="Entertainment", on_date=date(2024, month, 5))
            for month in (3, 4, 5, 6)
        ]
        [found] = detect_recurring_transactions(transactions)

        assert found.merchant == "Netflix"
        assert found.frequency == RecurringFrequency.MONTHLY
        assert found.occurrences == 4
        assert found.average_amount == 186_000
        assert found.last_occurrence == date(2024, 6, 5)
        assert found.next_expected == date(2024, 7, 5)
        assert found.confidence == 0.97

    def test_results_sorted_by_confidence(self):
        laundry = [
            expense(35_000, description="Laundry", on_date=date(2024, 6, 1) + timedelta(days=7 * i))
            for i in range(4)
        ]
        netflix = [
            expense(186_000, merchant="Netflix", on_date=date(2024, month, 5))
            for month in (3, 4, 5)
        ]
        found = detect_recurring_transactions(netflix + laundry)
        assert [r.merchant for r in found] == ["Laundry", "Netflix"]
        assert found[0].frequency == RecurringFrequency.WEEKLY
        assert found[0].confidence == 1.0

    def test_unstable_amounts_rejected(self):
        transactions = [
            expense(amount, description="Grab", on_date=date(2024, 6, day))
            for amount, day in ((20_000, 1), (50_000, 8), (15_000, 15))
        ]
        assert detect_recurring_transactions(transactions) == []

    def test_too_few_occurrences(self):
        transactions = [
            expense(186_000, merchant="Netflix", on_date=date(2024, month, 5))
            for month in (5, 6)
        ]
        assert detect_recurring_transactions(transactions) == []

    def test_short_keys_ignored(self):
        transactions = [
            expense(10_000, description="ab", on_date=date(2024, 6, day))
            for day in (1, 2, 3)
        ]
        assert detect_recurring_transactions(transactions) == []

    def test_same_day_group_skipped(self):
        transactions = [expense(10_000, description="Parking") for _ in range(3)]
        assert detect_recurring_transactions(transactions) == []

    def test_merchant_key_is_case_insensitive(self):
        transactions = [
            expense(50_000, merchant=name, on_date=date(2024, month, 10))
            for name, month in (("Spotify", 4), ("SPOTIFY", 5), ("spotify", 6))
        ]
        [found] = detect_recurring_transactions(transactions)
        assert found.merchant == "Spotify"

    def test_frequency_buckets(self):
        assert classify_frequency(1) == RecurringFrequency.DAILY
        assert classify_frequency(2) == RecurringFrequency.DAILY
        assert classify_frequency(7) == RecurringFrequency.WEEKLY
        assert classify_frequency(9) == RecurringFrequency.WEEKLY
        assert classify_frequency(30) == RecurringFrequency.MONTHLY
        assert classify_frequency(35) == RecurringFrequency.MONTHLY
        assert classify_frequency(365) == RecurringFrequency.YEARLY


class TestAnomalyDetection:
    """Tests for z-score based outliers."""

    def _category(self, category, amounts):
        return [
            expense(amount, category=category, on_date=TODAY - timedelta(days=i))
            for i, amount in enumerate(amounts)
        ]

    def test_exact_thresholds(self):
        """
        Category A: 4 x 100 + 200 -> z(200) = 2.0, not flagged.
        Category B: 9 x 100 + 500 -> z(500) = 3.0, medium.
        """
        transactions = (
            self._category("A", [100] * 4 + [200])
            + self._category("B", [100] * 9 + [500])
        )
        [anomaly] = detect_anomalies(transactions, today=TODAY)

        assert anomaly.transaction.category == "B"
        assert anomaly.transaction.amount == 500
        assert anomaly.z_score == 3.0
        assert anomaly.severity == AnomalySeverity.MEDIUM
        assert anomaly.category_mean == 140.0
        assert "above" in anomaly.reason

    def test_high_severity(self):
        """10 x 100 + 1000 -> z = sqrt(10), about 3.16."""
        transactions = self._category("C", [100] * 10 + [1_000])
        [anomaly] = detect_anomalies(transactions, today=TODAY)
        assert anomaly.severity == AnomalySeverity.HIGH
        assert anomaly.z_score == 3.16

    def test_sorted_by_z_descending(self):
        transactions = (
            self._category("B", [100] * 9 + [500])
            + self._category("C", [100] * 10 + [1_000])
        )
        found = detect_anomalies(transactions, today=TODAY)
        assert [a.transaction.category for a in found] == ["C", "B"]

    def test_below_minimum_sample(self):
        transactions = self._category("C", [100] * 5 + [1_000])
        assert detect_anomalies(transactions, today=TODAY) == []

    def test_identical_amounts_never_flagged(self):
        transactions = self._category("D", [100] * 12)
        assert detect_anomalies(transactions, today=TODAY) == []

    def test_lookback_window_and_income_ignored(self):
        old = expense(1_000_000, category="C", on_date=TODAY - timedelta(days=91))
        transactions = (
            self._category("C", [100] * 10)
            + [old, income(5_000_000, category="C")]
        )
        assert detect_anomalies(transactions, today=TODAY) == []

    def test_severity_bounds_are_strict(self):
        assert severity_for(2.0) is None
        assert severity_for(2.01) == AnomalySeverity.MEDIUM
        assert severity_for(3.0) == AnomalySeverity.MEDIUM
        assert severity_for(3.01) == AnomalySeverity.HIGH
