"""
Audit Models for FinAI Ledger

Every significant action in the system is logged for audit purposes:
1. Traceability of every ledger mutation back to the user turn that caused it
2. Debugging information when the model or the network misbehaves
3. Ability to reconstruct why a transaction was (or was not) written

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the transaction pipeline has its own event type.
    """
    # Pipeline
    INTENT_CLASSIFIED = "intent_classified"
    CLASSIFICATION_DEFAULTED = "classification_defaulted"
    PROMPT_BUILT = "prompt_built"
    AI_CALL_FAILED = "ai_call_failed"
    RESPONSE_REJECTED = "response_rejected"
    CLARIFICATION_REQUESTED = "clarification_requested"

    # Ledger mutations
    TRANSACTION_SAVED = "transaction_saved"
    TRANSFER_SAVED = "transfer_saved"
    TRANSACTION_DELETED = "transaction_deleted"
    SAVE_FAILED = "save_failed"
    RECONCILIATION_RECORDED = "reconciliation_recorded"

    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_DELETED = "account_deleted"
    ACCOUNT_DELETE_BLOCKED = "account_delete_blocked"

    # Analytics
    BUDGET_ANALYSIS_RUN = "budget_analysis_run"
    REPORT_GENERATED = "report_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'account', 'turn')"
    )
    entity_id: Optional[str] = None

    # Correlation - all events of one user turn share this
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.intent_classified("transaction", 0.9, correlation_id)
        event = AuditEventBuilder.transaction_saved(tx_id, "expense", 45000, correlation_id)
    """

    @staticmethod
    def intent_classified(
        intent_type: str,
        confidence: float,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_CLASSIFIED,
            entity_type="turn",
            correlation_id=correlation_id,
            description=f"Intent classified as {intent_type} ({confidence:.0%})",
            details={"intent": intent_type, "confidence": confidence},
            is_user_action=True,
        )

    @staticmethod
    def classification_defaulted(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLASSIFICATION_DEFAULTED,
            severity=AuditSeverity.DEBUG,
            entity_type="turn",
            correlation_id=correlation_id,
            description="No intent keyword matched; defaulted to query",
        )

    @staticmethod
    def prompt_built(
        intent_type: str,
        model: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROMPT_BUILT,
            severity=AuditSeverity.DEBUG,
            entity_type="turn",
            correlation_id=correlation_id,
            description=f"Prompt built for {intent_type} on {model}",
            details={"intent": intent_type, "model": model},
        )

    @staticmethod
    def ai_call_failed(
        model: str,
        attempts: int,
        error_message: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_CALL_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="turn",
            correlation_id=correlation_id,
            description=f"AI call to {model} failed after {attempts} attempts",
            error_message=error_message,
            details={"model": model, "attempts": attempts},
        )

    @staticmethod
    def response_rejected(
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="turn",
            correlation_id=correlation_id,
            description="Model response rejected by validation",
            error_message=reason,
        )

    @staticmethod
    def clarification_requested(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CLARIFICATION_REQUESTED,
            entity_type="turn",
            correlation_id=correlation_id,
            description="Model could not pick an account; asking the user",
        )

    @staticmethod
    def transaction_saved(
        transaction_id: str,
        transaction_type: str,
        amount: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {transaction_type} {amount}",
            details={"type": transaction_type, "amount": amount},
        )

    @staticmethod
    def transfer_saved(
        expense_id: str,
        income_id: str,
        amount: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSFER_SAVED,
            entity_type="transaction",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description=f"Transfer saved: {amount}",
            details={
                "expense_leg": expense_id,
                "income_leg": income_id,
                "amount": amount,
            },
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted after user confirmation",
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            correlation_id=correlation_id,
            description="Validated transaction could not be written",
            error_message=error_message,
        )

    @staticmethod
    def reconciliation_recorded(
        transaction_id: str,
        account_id: str,
        difference: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECONCILIATION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Balance of account {account_id} corrected by {difference}",
            details={"account_id": account_id, "difference": difference},
            is_user_action=True,
        )

    @staticmethod
    def account_created(account_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            description=f"Account created: {name}",
            details={"name": name},
        )

    @staticmethod
    def account_deleted(account_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            entity_type="account",
            entity_id=account_id,
            description="Account deleted",
            is_user_action=True,
        )

    @staticmethod
    def account_delete_blocked(account_id: str, linked: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETE_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            description=f"Account deletion blocked by {linked} linked transactions",
            details={"linked_transactions": linked},
            is_user_action=True,
        )

    @staticmethod
    def budget_analysis_run(
        budget_count: int,
        overall_status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_ANALYSIS_RUN,
            entity_type="budget",
            description=f"Budget analysis over {budget_count} budgets: {overall_status}",
            details={"budgets": budget_count, "overall_status": overall_status},
        )

    @staticmethod
    def report_generated(report_type: str, used_fallback: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            entity_type="report",
            description=f"Report generated: {report_type}",
            details={"report_type": report_type, "used_fallback": used_fallback},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
