"""
Statistics Helpers

Small pure functions over numeric sequences. Kept separate from the
transaction-shaped code so they can be tested on plain numbers.
"""

import math
from typing import Optional, Sequence


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean. Raises ValueError on an empty sequence."""
    if not values:
        raise ValueError("mean() requires at least one value")
    return sum(values) / len(values)


def population_std_dev(values: Sequence[float]) -> float:
    """
    Population standard deviation (divides by N, not N - 1).

    Raises ValueError on an empty sequence.
    """
    mu = mean(values)
    variance = sum((v - mu) ** 2 for v in values) / len(values)
    return math.sqrt(variance)


def z_score(value: float, mu: float, std_dev: float) -> Optional[float]:
    """
    Absolute distance of value from mu in standard deviations.

    Returns None when std_dev is zero: every observation equals the mean,
    so no value can be an outlier.
    """
    if std_dev == 0:
        return None
    return abs(value - mu) / std_dev
