"""
Budget Alert Models

Alerts are recomputed on every call from budgets + transactions.
Nothing here is ever persisted.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class AlertStatus(str, Enum):
    """Spend state of one budget, by percentage of its ceiling."""
    SAFE = "safe"          # < 75%
    WARNING = "warning"    # >= 75%
    CRITICAL = "critical"  # >= 90%
    OVER = "over"          # >= 100%


class OverallStatus(str, Enum):
    """Aggregate state across all budgets (no "over" tier)."""
    SAFE = "safe"
    WARNING = "warning"
    CRITICAL = "critical"


class PeriodWindow(BaseModel):
    """Inclusive start/end instants of a budget period."""

    start: datetime
    end: datetime


class BudgetAlert(BaseModel):
    budget_id: str
    category: str
    spent: int
    budget: int
    percentage: float
    status: AlertStatus
    days_remaining: int
    message: str
    suggestions: list[str] = Field(default_factory=list)


class BudgetProjection(BaseModel):
    """Straight-line end-of-month estimate from spend so far."""

    estimated_end_of_month: int
    will_exceed: bool
    excess_amount: Optional[int] = None


class BudgetAnalysis(BaseModel):
    alerts: list[BudgetAlert] = Field(default_factory=list)
    overall_status: OverallStatus
    total_budget: int
    total_spent: int
    days_remaining: int
    projection: BudgetProjection
