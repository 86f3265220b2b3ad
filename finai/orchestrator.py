"""
Main Orchestrator for FinAI Ledger

This module ties together all the components and defines the
end-to-end flows for:
1. Assistant turn (text/image → intent → prompt → model → validate → save)
2. Budgets (evaluate every budget, attach suggestions)
3. Reports (cash flow, recurring bills, anomalies, savings goals, narratives)
4. Reconciliation (compare with the real balance → adjustment transaction)

DESIGN DECISION: The orchestrator is the user-turn boundary:
- No model output reaches the ledger without passing the ResponseValidator
- AI and validation failures become messages, never exceptions
- A transfer's two legs are written in a single storage call
- Every step is audited under one correlation id per turn
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import structlog
from pydantic import ValidationError

from finai.agents import (
    BudgetSuggestionAgent,
    CategorySuggestionAgent,
    FinancialReportAgent,
    IntentClassifier,
    PromptBuilder,
    ReconciliationAgent,
)
from finai.agents.prompts import RECEIPT_SCAN_INSTRUCTION
from finai.audit import AuditLogger, create_correlation_id
from finai.budgets import BudgetAlertEngine
from finai.config import AISettings, GoogleSheetsSettings, LedgerSettings, get_settings
from finai.ledger import (
    all_balances,
    analyze_cash_flow,
    analyze_reconciliation_history,
    analyze_savings_goal,
    calculate_reconciliation,
    create_reconciliation_transaction,
    detect_anomalies,
    detect_recurring_transactions,
    find_account,
    format_amount,
    monthly_cash_flow,
    net_worth,
    recommended_reconciliation_interval,
    validate_reconciliation,
)
from finai.models.ai import AssistantResponse, ImageAttachment, Intent, IntentType, Narrative
from finai.models.audit import AuditEventBuilder
from finai.models.budget import BudgetAnalysis
from finai.models.ledger import (
    AccountBalance,
    Anomaly,
    Budget,
    BudgetPeriod,
    CashFlowAnalysis,
    Reconciliation,
    ReconciliationCheck,
    ReconciliationHistory,
    ReconciliationInterval,
    RecurringTransaction,
    SavingsGoalAnalysis,
    Transaction,
    TransactionType,
)
from finai.services.accounts import AccountService
from finai.services.ai import AIGateway, AIGatewayError, CompletionClient, GeminiCompletionClient
from finai.services.categories import CategoryService
from finai.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)
from finai.validation import ResponseValidator


logger = structlog.get_logger(__name__)

AI_UNAVAILABLE_MESSAGE = (
    "The AI service is not responding right now. Please try again in a moment."
)
STORAGE_UNAVAILABLE_MESSAGE = "Could not read your ledger right now. Please try again."
SAVE_FAILED_MESSAGE = "The transaction was valid but could not be saved. Please try again."
DELETE_NEEDS_CONFIRMATION = "Please confirm that you want to delete this transaction."
ADJUSTMENT_INVALID_MESSAGE = (
    "That adjustment could not be recorded. Please check the notes and try again."
)


def select_model(intent: Intent, has_image: bool, settings: AISettings) -> str:
    """
    Vision model for images, smart model for advice and analysis,
    fast model for everything else.
    """
    if has_image:
        return settings.vision_model
    if intent.type in (IntentType.ADVICE, IntentType.ANALYSIS):
        return settings.smart_model
    return settings.fast_model


class AssistantFlow:
    """
    Orchestrates one conversational turn.

    Flow:
    1. Classify → keyword rules pick the intent (image → transaction)
    2. Build → system prompt with real-time balances and history
       (a user with no accounts first gets the default cash account)
    3. Complete → AIGateway call with retries and timeout
    4. Validate → ResponseValidator re-checks everything against the ledger
    5. Save → one append for one transaction or one transfer pair

    Conversational intents stop after step 3: their text is shown as-is.
    """

    def __init__(
        self,
        gateway: AIGateway,
        storage: LedgerStorageInterface,
        categories: Optional[CategoryService] = None,
        accounts: Optional[AccountService] = None,
        classifier: Optional[IntentClassifier] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        validator: Optional[ResponseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        settings = settings or get_settings().ledger
        self._gateway = gateway
        self._storage = storage
        self._categories = categories or CategoryService(storage, settings)
        self._classifier = classifier or IntentClassifier()
        self._prompt_builder = prompt_builder or PromptBuilder(settings)
        self._validator = validator or ResponseValidator(settings)
        self._audit_logger = audit_logger or AuditLogger()
        self._accounts = accounts or AccountService(storage, self._audit_logger, settings)

    async def _audit_saved(self, transactions: list[Transaction], correlation_id: UUID) -> None:
        if len(transactions) == 2:
            expense_leg, income_leg = transactions
            await self._audit_logger.log(AuditEventBuilder.transfer_saved(
                expense_id=expense_leg.id,
                income_id=income_leg.id,
                amount=expense_leg.amount,
                correlation_id=correlation_id,
            ))
            return
        for tx in transactions:
            await self._audit_logger.log(AuditEventBuilder.transaction_saved(
                transaction_id=tx.id,
                transaction_type=tx.type.value,
                amount=tx.amount,
                correlation_id=correlation_id,
            ))

    async def process(
        self,
        text: str,
        image: Optional[ImageAttachment] = None,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantResponse:
        """
        Handle one user message, optionally with a receipt image.

        Never raises for AI, validation or storage failures; every failure
        comes back as success=False with a displayable error.
        """
        correlation_id = correlation_id or create_correlation_id()
        now = now or datetime.now()
        has_image = image is not None

        # Step 1: Classify
        intent = self._classifier.classify(text, has_image=has_image)
        if not has_image and IntentClassifier.is_default(intent):
            await self._audit_logger.log(
                AuditEventBuilder.classification_defaulted(correlation_id)
            )
        await self._audit_logger.log(AuditEventBuilder.intent_classified(
            intent.type.value, intent.confidence, correlation_id
        ))

        # Step 2: Build the prompt from the current ledger
        try:
            await self._accounts.ensure_default_account()
            accounts = await self._storage.list_accounts()
            transactions = await self._storage.list_transactions()
            categories = await self._categories.valid_categories()
        except StorageError as e:
            await self._audit_logger.log_external_service_error(
                service="storage",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return AssistantResponse(success=False, error=STORAGE_UNAVAILABLE_MESSAGE, intent=intent)

        system_prompt = self._prompt_builder.build(
            intent, accounts, transactions, now.date(), categories
        )
        model = select_model(intent, has_image, self._gateway.settings)
        await self._audit_logger.log(
            AuditEventBuilder.prompt_built(intent.type.value, model, correlation_id)
        )

        # Step 3: Ask the model
        try:
            reply = await self._gateway.complete(
                system_prompt,
                text,
                image,
                extraction=intent.is_extraction,
                model=model,
            )
        except AIGatewayError as e:
            await self._audit_logger.log_ai_call_failed(
                model=model,
                attempts=e.attempts,
                error_message=str(e.last_error or e),
                correlation_id=correlation_id,
            )
            return AssistantResponse(success=False, error=AI_UNAVAILABLE_MESSAGE, intent=intent)

        # Step 4: Validate
        result = self._validator.handle(
            reply,
            intent,
            accounts,
            transactions,
            categories,
            today=now.date(),
            now=now,
        )

        if not intent.is_extraction:
            return result

        if not result.success:
            await self._audit_logger.log(
                AuditEventBuilder.response_rejected(result.error or "", correlation_id)
            )
            return result

        if result.requires_clarification or not result.transactions:
            await self._audit_logger.log(
                AuditEventBuilder.clarification_requested(correlation_id)
            )
            return result

        # Step 5: Save (both transfer legs in one call)
        try:
            await self._storage.add_transactions(result.transactions)
        except StorageError as e:
            await self._audit_logger.log(
                AuditEventBuilder.save_failed(str(e), correlation_id)
            )
            return AssistantResponse(success=False, error=SAVE_FAILED_MESSAGE, intent=intent)

        await self._audit_saved(result.transactions, correlation_id)
        return result

    async def scan_receipt(
        self,
        image: ImageAttachment,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantResponse:
        """Record the receipt in an image, with no user text."""
        return await self.process(
            RECEIPT_SCAN_INSTRUCTION,
            image=image,
            now=now,
            correlation_id=correlation_id,
        )

    @staticmethod
    def _transfer_counterpart(
        tx: Transaction,
        transactions: list[Transaction],
    ) -> Optional[Transaction]:
        """The other leg of a transfer, matched on accounts, amount and timestamp."""
        for other in transactions:
            if other.id == tx.id or other.amount != tx.amount or other.timestamp != tx.timestamp:
                continue
            if tx.to_account_id and other.account_id == tx.to_account_id \
                    and other.from_account_id == tx.account_id:
                return other
            if tx.from_account_id and other.account_id == tx.from_account_id \
                    and other.to_account_id == tx.account_id:
                return other
        return None

    async def delete_transaction(
        self,
        transaction_id: str,
        confirmed: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantResponse:
        """
        Delete a transaction the user explicitly confirmed.

        Deleting either leg of a transfer deletes both legs, so money is
        never created or destroyed by a half-removed transfer.
        """
        if not confirmed:
            return AssistantResponse(success=False, error=DELETE_NEEDS_CONFIRMATION)

        correlation_id = correlation_id or create_correlation_id()
        try:
            transactions = await self._storage.list_transactions()
            target = next((tx for tx in transactions if tx.id == transaction_id), None)
            if target is None:
                return AssistantResponse(success=False, error="Transaction not found")

            doomed = [target]
            if target.is_transfer_leg:
                counterpart = self._transfer_counterpart(target, transactions)
                if counterpart is not None:
                    doomed.append(counterpart)

            for tx in doomed:
                await self._storage.delete_transaction(tx.id)
        except StorageError as e:
            await self._audit_logger.log_external_service_error(
                service="storage",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return AssistantResponse(success=False, error="Could not delete the transaction")

        for tx in doomed:
            await self._audit_logger.log(
                AuditEventBuilder.transaction_deleted(tx.id, correlation_id)
            )
        return AssistantResponse(
            success=True,
            message="Transaction deleted" if len(doomed) == 1 else "Transfer deleted",
            transactions=doomed,
        )


class BudgetFlow:
    """Budget CRUD plus the alert analysis."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        engine: BudgetAlertEngine,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._engine = engine
        self._audit_logger = audit_logger or AuditLogger()

    async def set_budget(
        self,
        category: str,
        amount: int,
        period: BudgetPeriod = BudgetPeriod.MONTHLY,
    ) -> Budget:
        """Create the budget for a category/period, or replace its amount."""
        budget = Budget(category=category, amount=amount, period=period)
        for existing in await self._storage.list_budgets():
            if existing.category == category and existing.period == period:
                budget = Budget(id=existing.id, category=category, amount=amount, period=period)
                break

        await self._storage.save_budget(budget)
        return budget

    async def delete_budget(self, budget_id: str) -> bool:
        return await self._storage.delete_budget(budget_id)

    async def analyze(self, now: Optional[datetime] = None) -> BudgetAnalysis:
        budgets = await self._storage.list_budgets()
        transactions = await self._storage.list_transactions()
        analysis = await self._engine.analyze(budgets, transactions, now)
        await self._audit_logger.log(AuditEventBuilder.budget_analysis_run(
            len(budgets), analysis.overall_status.value
        ))
        return analysis


class ReportFlow:
    """
    Read-only analytics over the ledger.

    All figures are computed locally; only the narrative reports reach
    the model.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        report_agent: FinancialReportAgent,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._report_agent = report_agent
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger

    async def balances(self) -> list[AccountBalance]:
        accounts = await self._storage.list_accounts()
        return all_balances(accounts, await self._storage.list_transactions())

    async def net_worth(self) -> int:
        accounts = await self._storage.list_accounts()
        return net_worth(accounts, await self._storage.list_transactions())

    async def cash_flow(self, start: date, end: date) -> CashFlowAnalysis:
        return analyze_cash_flow(await self._storage.list_transactions(), start, end)

    async def monthly_cash_flow(self, year: int, month: int) -> CashFlowAnalysis:
        return monthly_cash_flow(await self._storage.list_transactions(), year, month)

    async def recurring(self) -> list[RecurringTransaction]:
        return detect_recurring_transactions(
            await self._storage.list_transactions(),
            self._settings.recurring_min_occurrences,
            self._settings.recurring_amount_tolerance,
        )

    async def anomalies(self, today: Optional[date] = None) -> list[Anomaly]:
        return detect_anomalies(
            await self._storage.list_transactions(),
            lookback_days=self._settings.anomaly_lookback_days,
            today=today,
            min_sample=self._settings.anomaly_min_sample,
            z_threshold=self._settings.anomaly_z_threshold,
            high_z_threshold=self._settings.anomaly_high_z_threshold,
            currency_prefix=self._settings.currency_prefix,
        )

    async def savings_goal(
        self,
        goal_amount: int,
        target_months: int,
        today: Optional[date] = None,
    ) -> SavingsGoalAnalysis:
        accounts = await self._storage.list_accounts()
        return analyze_savings_goal(
            goal_amount,
            target_months,
            accounts,
            await self._storage.list_transactions(),
            today=today,
            currency_prefix=self._settings.currency_prefix,
        )

    async def monthly_insight(self, year: int, month: int) -> Narrative:
        narrative = await self._report_agent.monthly_insight(
            await self._storage.list_transactions(), year, month
        )
        await self._audit_logger.log(
            AuditEventBuilder.report_generated("monthly_insight", narrative.used_fallback)
        )
        return narrative

    async def health_report(self, today: Optional[date] = None) -> Narrative:
        accounts = await self._storage.list_accounts()
        narrative = await self._report_agent.health_report(
            accounts, await self._storage.list_transactions(), today
        )
        await self._audit_logger.log(
            AuditEventBuilder.report_generated("health_report", narrative.used_fallback)
        )
        return narrative


class ReconciliationFlow:
    """
    Orchestrates a balance correction.

    Flow:
    1. Preview → validate input, compute the gap, explain it
    2. Apply → ONLY after the user confirms, append the adjustment
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        agent: ReconciliationAgent,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._agent = agent
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger

    async def preview(
        self,
        account_id: str,
        actual_balance: int,
        notes: str = "",
        on_date: Optional[date] = None,
    ) -> tuple[ReconciliationCheck, Optional[Reconciliation], list[str]]:
        """
        Returns:
            (check, reconciliation, suggestions)

        reconciliation is None and suggestions empty when the input is invalid.
        """
        accounts = await self._storage.list_accounts()
        check = validate_reconciliation(
            account_id,
            actual_balance,
            accounts,
            large_balance=self._settings.reconciliation_large_balance,
        )
        if not check.is_valid:
            return check, None, []

        transactions = await self._storage.list_transactions()
        reconciliation = calculate_reconciliation(
            account_id, actual_balance, accounts, transactions, on_date, notes
        )
        if reconciliation.difference == 0:
            return check, reconciliation, []

        recent = [tx for tx in transactions if tx.account_id == account_id]
        suggestions = await self._agent.suggest(reconciliation, recent)
        return check, reconciliation, suggestions

    async def apply(
        self,
        reconciliation: Reconciliation,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AssistantResponse:
        """Append the adjustment transaction for a previewed reconciliation."""
        correlation_id = correlation_id or create_correlation_id()
        try:
            accounts = await self._storage.list_accounts()
        except StorageError as e:
            await self._audit_logger.log_external_service_error(
                service="storage",
                error_message=str(e),
                correlation_id=correlation_id,
            )
            return AssistantResponse(success=False, error=STORAGE_UNAVAILABLE_MESSAGE)

        try:
            adjustment = create_reconciliation_transaction(reconciliation, accounts, now)
        except ValidationError as e:
            await self._audit_logger.log_error(
                error_type="ValidationError",
                error_message=str(e),
                details={"account_id": reconciliation.account_id},
                correlation_id=correlation_id,
            )
            return AssistantResponse(success=False, error=ADJUSTMENT_INVALID_MESSAGE)

        if adjustment is None:
            return AssistantResponse(success=True, message="Balance already matches; nothing to adjust")

        try:
            await self._storage.add_transaction(adjustment)
        except StorageError as e:
            await self._audit_logger.log(AuditEventBuilder.save_failed(str(e), correlation_id))
            return AssistantResponse(success=False, error=SAVE_FAILED_MESSAGE)

        await self._audit_logger.log(AuditEventBuilder.reconciliation_recorded(
            adjustment.id, reconciliation.account_id, reconciliation.difference, correlation_id
        ))
        direction = "added" if adjustment.type == TransactionType.INCOME else "removed"
        return AssistantResponse(
            success=True,
            message=(
                f"Balance adjusted: "
                f"{format_amount(adjustment.amount, self._settings.currency_prefix)} {direction}"
            ),
            transactions=[adjustment],
        )

    async def history(self, account_id: str) -> ReconciliationHistory:
        return analyze_reconciliation_history(
            account_id, await self._storage.list_transactions()
        )

    async def recommended_interval(
        self,
        account_id: str,
        now: Optional[datetime] = None,
    ) -> Optional[ReconciliationInterval]:
        account = find_account(await self._storage.list_accounts(), account_id)
        if account is None:
            return None
        return recommended_reconciliation_interval(
            account, await self._storage.list_transactions(), now
        )


@dataclass
class AppComponents:
    """Everything a front end needs, wired to one storage and one gateway."""

    assistant: AssistantFlow
    budgets: BudgetFlow
    reports: ReportFlow
    reconciliation: ReconciliationFlow
    accounts: AccountService
    categories: CategoryService
    category_suggester: CategorySuggestionAgent
    storage: LedgerStorageInterface
    sheets_client: Optional[GoogleSheetsClient] = None


def create_app_components(
    use_storage: bool = True,
    client: Optional[CompletionClient] = None,
    ai_settings: Optional[AISettings] = None,
    ledger_settings: Optional[LedgerSettings] = None,
    sheets_settings: Optional[GoogleSheetsSettings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for testing without storage; the ledger
                    then lives in memory.
        client: Completion client; Gemini when omitted
        ai_settings: Model settings; read from the environment when omitted
        ledger_settings: Ledger settings; read from the environment when omitted
        sheets_settings: Spreadsheet settings; read from the environment when omitted

    Returns:
        AppComponents with every flow wired explicitly to its settings
    """
    settings = get_settings()
    ai_settings = ai_settings or settings.ai
    ledger_settings = ledger_settings or settings.ledger

    sheets_client = None
    storage: LedgerStorageInterface
    audit_logger: AuditLogger

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient(sheets_settings or settings.google_sheets)
            storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            storage = InMemoryLedgerStorage()
            audit_logger = AuditLogger()  # Local-only logging
    else:
        storage = InMemoryLedgerStorage()
        audit_logger = AuditLogger()  # Local-only logging

    gateway = AIGateway(client or GeminiCompletionClient(ai_settings), ai_settings)
    categories = CategoryService(storage, ledger_settings)
    accounts = AccountService(storage, audit_logger, ledger_settings)

    return AppComponents(
        assistant=AssistantFlow(
            gateway,
            storage,
            categories=categories,
            accounts=accounts,
            prompt_builder=PromptBuilder(ledger_settings),
            validator=ResponseValidator(ledger_settings),
            audit_logger=audit_logger,
            settings=ledger_settings,
        ),
        budgets=BudgetFlow(
            storage,
            BudgetAlertEngine(BudgetSuggestionAgent(gateway, ledger_settings), ledger_settings),
            audit_logger=audit_logger,
        ),
        reports=ReportFlow(
            storage,
            FinancialReportAgent(gateway, ledger_settings),
            audit_logger=audit_logger,
            settings=ledger_settings,
        ),
        reconciliation=ReconciliationFlow(
            storage,
            ReconciliationAgent(gateway, ledger_settings),
            audit_logger=audit_logger,
            settings=ledger_settings,
        ),
        accounts=accounts,
        categories=categories,
        category_suggester=CategorySuggestionAgent(gateway, ledger_settings),
        storage=storage,
        sheets_client=sheets_client,
    )
