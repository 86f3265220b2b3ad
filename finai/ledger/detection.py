"""
Recurring-Charge and Anomaly Detection

Both detectors are heuristics over the raw ledger:
- Recurring: same merchant/description, stable amount, regular spacing
- Anomaly: an expense more than 2 standard deviations from its category mean

Neither detector writes anything. Results are recomputed on every call.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Optional, Sequence

from finai.ledger.formatting import format_amount
from finai.ledger.periods import add_months
from finai.ledger.stats import mean, population_std_dev, z_score
from finai.models.ledger import (
    Anomaly,
    AnomalySeverity,
    RecurringFrequency,
    RecurringTransaction,
    Transaction,
    TransactionType,
)


MIN_KEY_LENGTH = 3


# =============================================================================
# RECURRING TRANSACTIONS
# =============================================================================

def _recurring_key(tx: Transaction) -> str:
    return (tx.merchant or tx.description or "").strip().lower()


def classify_frequency(average_gap_days: float) -> RecurringFrequency:
    """Map an average gap between occurrences to a frequency bucket."""
    if average_gap_days <= 2:
        return RecurringFrequency.DAILY
    if average_gap_days <= 9:
        return RecurringFrequency.WEEKLY
    if average_gap_days <= 35:
        return RecurringFrequency.MONTHLY
    return RecurringFrequency.YEARLY


def next_occurrence(last: date, frequency: RecurringFrequency) -> date:
    if frequency == RecurringFrequency.DAILY:
        return last + timedelta(days=1)
    if frequency == RecurringFrequency.WEEKLY:
        return last + timedelta(days=7)
    if frequency == RecurringFrequency.MONTHLY:
        return add_months(last, 1)
    return add_months(last, 12)


def detect_recurring_transactions(
    transactions: Sequence[Transaction],
    min_occurrences: int = 3,
    amount_tolerance: float = 0.2,
) -> list[RecurringTransaction]:
    """
    Find subscription-like clusters in the ledger.

    Groups with an unstable amount (spread above amount_tolerance of the
    average) are rejected. Groups whose occurrences all fall on the same
    day have no interval to measure and are skipped as well.

    Returns:
        Detected clusters, highest confidence first
    """
    groups: dict[str, list[Transaction]] = defaultdict(list)
    for tx in transactions:
        key = _recurring_key(tx)
        if len(key) < MIN_KEY_LENGTH:
            continue
        groups[key].append(tx)

    detected: list[RecurringTransaction] = []

    for group in groups.values():
        if len(group) < min_occurrences:
            continue

        ordered = sorted(group, key=lambda tx: (tx.date, tx.timestamp))
        amounts = [tx.amount for tx in ordered]
        average_amount = mean(amounts)
        if max(amounts) - min(amounts) > amount_tolerance * average_amount:
            continue

        gaps = [
            (later.date - earlier.date).days
            for earlier, later in zip(ordered, ordered[1:])
        ]
        average_gap = mean(gaps)
        if average_gap <= 0:
            continue

        frequency = classify_frequency(average_gap)
        interval_variance = max(gaps) - min(gaps)
        confidence = max(0.5, 1 - interval_variance / average_gap)

        first, last = ordered[0], ordered[-1]
        detected.append(RecurringTransaction(
            merchant=first.merchant or first.description,
            category=first.category,
            average_amount=round(average_amount),
            frequency=frequency,
            occurrences=len(ordered),
            last_occurrence=last.date,
            next_expected=next_occurrence(last.date, frequency),
            confidence=round(confidence, 2),
        ))

    detected.sort(key=lambda r: r.confidence, reverse=True)
    return detected


# =============================================================================
# ANOMALIES
# =============================================================================

def severity_for(
    z: float,
    threshold: float = 2.0,
    high_threshold: float = 3.0,
) -> Optional[AnomalySeverity]:
    """
    Severity of a z-score, or None when it is not an anomaly.

    Both bounds are strict: z == 2.0 is not flagged and z == 3.0 is medium.
    """
    if z <= threshold:
        return None
    if z > high_threshold:
        return AnomalySeverity.HIGH
    return AnomalySeverity.MEDIUM


def detect_anomalies(
    transactions: Sequence[Transaction],
    lookback_days: int = 90,
    today: Optional[date] = None,
    min_sample: int = 10,
    z_threshold: float = 2.0,
    high_z_threshold: float = 3.0,
    currency_prefix: str = "Rp",
) -> list[Anomaly]:
    """
    Flag expenses far outside their category's usual range.

    Args:
        transactions: Ledger to scan (income is ignored)
        lookback_days: Only expenses dated within this many days of today count
        today: Reference day, defaults to date.today()
        min_sample: Below this many expenses overall, return nothing

    Returns:
        Anomalies sorted by descending z-score
    """
    today = today or date.today()
    cutoff = today - timedelta(days=lookback_days)

    recent = [
        tx for tx in transactions
        if tx.type == TransactionType.EXPENSE and cutoff <= tx.date <= today
    ]
    if len(recent) < min_sample:
        return []

    by_category: dict[str, list[Transaction]] = defaultdict(list)
    for tx in recent:
        by_category[tx.category].append(tx)

    scored: list[tuple[float, Anomaly]] = []

    for category, items in by_category.items():
        amounts = [tx.amount for tx in items]
        category_mean = mean(amounts)
        std_dev = population_std_dev(amounts)

        for tx in items:
            z = z_score(tx.amount, category_mean, std_dev)
            if z is None:
                continue
            severity = severity_for(z, z_threshold, high_z_threshold)
            if severity is None:
                continue

            direction = "above" if tx.amount > category_mean else "below"
            reason = (
                f"{format_amount(tx.amount, currency_prefix)} is far {direction} "
                f"the usual {category} spend of "
                f"{format_amount(round(category_mean), currency_prefix)}"
            )
            scored.append((z, Anomaly(
                transaction=tx,
                category_mean=round(category_mean, 2),
                z_score=round(z, 2),
                severity=severity,
                reason=reason,
            )))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [anomaly for _, anomaly in scored]
