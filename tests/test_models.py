"""
Tests for FinAI Ledger models

Test strategy:
1. Unit tests for individual components (models, ledger math, validators)
2. Integration tests for flows (with a scripted model and in-memory storage)
3. No real API calls in tests
"""

import pytest
from datetime import date, datetime
from uuid import uuid4

from pydantic import ValidationError

from finai.models.ledger import (
    Account,
    Budget,
    CashFlowAnalysis,
    LineItem,
    ReconciliationData,
    Transaction,
    TransactionType,
)
from finai.models.ai import (
    AssistantResponse,
    ExtractedTransaction,
    ImageAttachment,
    Intent,
    IntentType,
)
from finai.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLedgerModels:
    """Tests for stored ledger records."""

    def test_account_defaults(self):
        """Test Account gets an id and starts active."""
        account = Account(name="  BCA  ")
        assert account.id
        assert account.name == "BCA"
        assert account.is_active is True
        assert account.initial_balance == 0

    def test_account_allows_negative_initial_balance(self):
        """Test credit-card style accounts can open below zero."""
        account = Account(name="Card", initial_balance=-250_000)
        assert account.initial_balance == -250_000

    def test_transaction_rejects_non_positive_amount(self):
        """Test that zero and negative amounts are rejected."""
        for amount in (0, -100):
            with pytest.raises(ValidationError):
                Transaction(
                    type=TransactionType.EXPENSE,
                    amount=amount,
                    category="Other",
                    date=date(2024, 6, 1),
                    account_id="a",
                )

    def test_transaction_has_no_transfer_type(self):
        """Test transfers can never be stored as a single row."""
        with pytest.raises(ValidationError):
            Transaction(
                type="transfer",
                amount=100,
                category="Transfer",
                date=date(2024, 6, 1),
                account_id="a",
            )

    def test_transaction_rejects_both_links(self):
        """Test a leg points either to or from another account, not both."""
        with pytest.raises(ValidationError, match="both"):
            Transaction(
                type=TransactionType.EXPENSE,
                amount=100,
                category="Transfer",
                date=date(2024, 6, 1),
                account_id="a",
                to_account_id="b",
                from_account_id="c",
            )

    def test_income_leg_cannot_carry_to_account(self):
        with pytest.raises(ValidationError):
            Transaction(
                type=TransactionType.INCOME,
                amount=100,
                category="Transfer",
                date=date(2024, 6, 1),
                account_id="a",
                to_account_id="b",
            )

    def test_transfer_leg_cannot_point_at_itself(self):
        with pytest.raises(ValidationError):
            Transaction(
                type=TransactionType.EXPENSE,
                amount=100,
                category="Transfer",
                date=date(2024, 6, 1),
                account_id="a",
                to_account_id="a",
            )

    def test_reconciliation_requires_data(self):
        """Test a correction must carry its snapshot."""
        with pytest.raises(ValidationError, match="reconciliation_data"):
            Transaction(
                type=TransactionType.INCOME,
                amount=100,
                category="Reconciliation",
                date=date(2024, 6, 1),
                account_id="a",
                is_reconciliation=True,
            )

    def test_reconciliation_data_difference_must_match(self):
        with pytest.raises(ValidationError):
            ReconciliationData(recorded_balance=100, actual_balance=150, difference=10)

    def test_line_item_rejects_negative_price(self):
        with pytest.raises(ValidationError):
            LineItem(name="Coffee", price=-1)

    def test_budget_requires_positive_amount(self):
        with pytest.raises(ValidationError):
            Budget(category="Food & Drink", amount=0)

    def test_cash_flow_saving_rate(self):
        """Test saving rate is net flow over inflow, in whole percent."""
        flow = CashFlowAnalysis(
            start=date(2024, 6, 1),
            end=date(2024, 6, 30),
            total_inflow=1_000_000,
            total_outflow=750_000,
            net_cash_flow=250_000,
        )
        assert flow.saving_rate == 25
        assert flow.period == "2024-06-01 - 2024-06-30"

    def test_cash_flow_saving_rate_without_income(self):
        flow = CashFlowAnalysis(
            start=date(2024, 6, 1),
            end=date(2024, 6, 30),
            total_inflow=0,
            total_outflow=10_000,
            net_cash_flow=-10_000,
        )
        assert flow.saving_rate == 0


class TestAIModels:
    """Tests for model-facing payloads."""

    def test_extracted_transaction_reads_camel_case(self):
        """Test the JSON contract's field names map onto the model."""
        extracted = ExtractedTransaction.model_validate({
            "type": "transfer",
            "amount": 500000,
            "accountId": "acc-bca",
            "toAccountId": "acc-gopay",
            "requiresClarification": False,
        })
        assert extracted.account_id == "acc-bca"
        assert extracted.to_account_id == "acc-gopay"

    def test_extracted_transaction_blank_fields_become_none(self):
        """Test models emitting "" for optional fields."""
        extracted = ExtractedTransaction.model_validate({
            "type": "expense",
            "amount": 25000,
            "date": "",
            "accountId": "",
            "items": None,
        })
        assert extracted.date is None
        assert extracted.account_id is None
        assert extracted.items == []

    def test_image_attachment_base64(self):
        image = ImageAttachment(data=b"\x89PNG", mime_type="image/png")
        assert image.to_base64() == "iVBORw=="

    def test_intent_is_extraction(self):
        assert Intent(type=IntentType.TRANSACTION, confidence=0.9).is_extraction
        assert not Intent(type=IntentType.QUERY, confidence=0.9).is_extraction

    def test_assistant_response_display_text(self):
        """Test warnings are appended to the message."""
        response = AssistantResponse(success=True, message="Saved", warning="Low balance")
        assert response.display_text == "Saved\n⚠️ Low balance"

        failed = AssistantResponse(success=False, error="Nope")
        assert failed.display_text == "Nope"


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Test transaction saved",
        )
        assert event.event_type == AuditEventType.TRANSACTION_SAVED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            description="Transaction saved",
            details={"amount": 45000},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_saved"
        assert log_dict["details"]["amount"] == 45000

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            description="Transaction deleted",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "transaction_deleted"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_transfer_saved(self):
        """Test AuditEventBuilder.transfer_saved keeps both legs."""
        correlation_id = uuid4()

        event = AuditEventBuilder.transfer_saved(
            expense_id="leg-out",
            income_id="leg-in",
            amount=500_000,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSFER_SAVED
        assert event.entity_id == "leg-out"
        assert event.details["income_leg"] == "leg-in"
        assert event.correlation_id == correlation_id

    def test_audit_event_builder_ai_call_failed(self):
        event = AuditEventBuilder.ai_call_failed(
            model="gemini-2.0-flash",
            attempts=3,
            error_message="timeout",
            correlation_id=None,
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.details["attempts"] == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
