"""
Data Models Package

This package contains all Pydantic models used in FinAI Ledger.
All data flowing through the system must conform to these schemas.
"""

from finai.models.ledger import (
    Account,
    AccountBalance,
    AccountType,
    Anomaly,
    AnomalySeverity,
    Budget,
    BudgetPeriod,
    CashFlowAnalysis,
    CategoryAmount,
    LineItem,
    Reconciliation,
    ReconciliationCheck,
    ReconciliationData,
    ReconciliationHistory,
    ReconciliationInterval,
    RecurringFrequency,
    RecurringTransaction,
    SavingsGoalAnalysis,
    Transaction,
    TransactionSummary,
    TransactionType,
    TransferErrorCode,
    TransferValidation,
)
from finai.models.ai import (
    AssistantResponse,
    ExtractedItem,
    ExtractedTransaction,
    ImageAttachment,
    Intent,
    IntentType,
    Narrative,
)
from finai.models.budget import (
    AlertStatus,
    BudgetAlert,
    BudgetAnalysis,
    BudgetProjection,
    OverallStatus,
    PeriodWindow,
)
from finai.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountBalance",
    "AccountType",
    "Anomaly",
    "AnomalySeverity",
    "Budget",
    "BudgetPeriod",
    "CashFlowAnalysis",
    "CategoryAmount",
    "LineItem",
    "Reconciliation",
    "ReconciliationCheck",
    "ReconciliationData",
    "ReconciliationHistory",
    "ReconciliationInterval",
    "RecurringFrequency",
    "RecurringTransaction",
    "SavingsGoalAnalysis",
    "Transaction",
    "TransactionSummary",
    "TransactionType",
    "TransferErrorCode",
    "TransferValidation",
    # AI pipeline models
    "AssistantResponse",
    "ExtractedItem",
    "ExtractedTransaction",
    "ImageAttachment",
    "Intent",
    "IntentType",
    "Narrative",
    # Budget models
    "AlertStatus",
    "BudgetAlert",
    "BudgetAnalysis",
    "BudgetProjection",
    "OverallStatus",
    "PeriodWindow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
