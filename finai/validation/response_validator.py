"""
Response Validator

Turns raw model text into a trusted ledger mutation.

IMPORTANT: The model's reply is PROPOSED data. Every figure the prompt asked
the model to respect (account ids, balances, transfer rules) is checked
again here against the real ledger. The prompt's own arithmetic is never
trusted.

All failures stop at this boundary. handle() never raises for bad model
output; it returns an AssistantResponse with a short, displayable error.
Monetary checks are fail-closed: when in doubt, nothing is written.
"""

from datetime import date, datetime
from typing import Optional, Sequence

from pydantic import ValidationError

from finai.config import LedgerSettings, get_settings
from finai.ledger import (
    balance_of,
    create_transfer_transactions,
    find_account,
    first_active_account,
    format_amount,
    validate_transfer,
)
from finai.models.ai import AssistantResponse, ExtractedTransaction, Intent
from finai.models.ledger import (
    Account,
    LineItem,
    Transaction,
    TransactionType,
    TransferErrorCode,
)
from finai.validation.json_extraction import MalformedJSONError, extract_json_object


TRANSFER_TYPE = "transfer"
CLARIFICATION_MESSAGE = (
    "Which account should I use? Please name the account for this transaction."
)
TRANSFER_CLARIFICATION_MESSAGE = (
    "Which account is the money coming from? Please name the source account."
)


# =============================================================================
# EXCEPTIONS
# =============================================================================

class TransactionValidationError(Exception):
    """Base class for model replies that cannot become a transaction."""
    pass


class MalformedModelOutput(TransactionValidationError):
    """No JSON object found, or the object fails schema checks."""
    pass


class ModelReportedError(TransactionValidationError):
    """The model itself answered with {"error": true, ...}."""
    pass


class IncompleteTransactionData(TransactionValidationError):
    pass


class AccountNotFound(TransactionValidationError):
    pass


class SameAccountTransfer(TransactionValidationError):
    pass


class InsufficientFunds(TransactionValidationError):
    pass


class InvalidTransactionType(TransactionValidationError):
    pass


TRANSFER_ERRORS = {
    TransferErrorCode.ACCOUNT_NOT_FOUND: AccountNotFound,
    TransferErrorCode.SAME_ACCOUNT: SameAccountTransfer,
    TransferErrorCode.INSUFFICIENT_FUNDS: InsufficientFunds,
}


def normalize_category(
    raw: Optional[str],
    categories: Sequence[str],
    fallback: str,
    transfer_category: str = "Transfer",
) -> str:
    """
    Match a model-supplied category against the user's list, ignoring case.

    Unknown or empty categories become the fallback.
    """
    if not raw:
        return fallback
    wanted = raw.strip().lower()
    if wanted == transfer_category.lower():
        return transfer_category
    for category in categories:
        if category.lower() == wanted:
            return category
    return fallback


class ResponseValidator:
    """
    Validates model replies for the transaction pipeline.

    Usage:
        validator = ResponseValidator(settings.ledger)
        result = validator.handle(reply, intent, accounts, transactions)
        if result.success and result.transactions:
            await storage.add_transactions(result.transactions)
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _fmt(self, amount: int) -> str:
        return format_amount(amount, self._settings.currency_prefix)

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def parse(self, response_text: str) -> ExtractedTransaction:
        """
        Stage 1: locate, decode and shape-check the JSON payload.

        Raises:
            MalformedModelOutput: No object, bad JSON, or wrong field types
            ModelReportedError: The model declared an error itself
            IncompleteTransactionData: type or amount missing
        """
        try:
            payload = extract_json_object(response_text)
        except MalformedJSONError as e:
            raise MalformedModelOutput("Could not read the transaction data. Please rephrase.") from e

        if payload is None:
            raise MalformedModelOutput(
                "Could not recognize transaction data. Please rephrase your message."
            )

        if payload.get("error") is True:
            raise ModelReportedError(
                str(payload.get("errorMessage") or "The request is not a transaction")
            )

        if not payload.get("type") or not payload.get("amount"):
            raise IncompleteTransactionData(
                "Incomplete transaction data (type or amount is missing)"
            )

        try:
            extracted = ExtractedTransaction.model_validate(payload)
        except ValidationError as e:
            raise MalformedModelOutput("Transaction data has the wrong format. Please rephrase.") from e

        if extracted.amount <= 0:
            raise MalformedModelOutput("Transaction amount must be greater than zero")

        extracted.type = extracted.type.strip().lower()
        return extracted

    # -------------------------------------------------------------------------
    # Per-type validation
    # -------------------------------------------------------------------------

    def _date_phrase(self, tx_date: date, today: date) -> str:
        return "today" if tx_date == today else f"on {tx_date.isoformat()}"

    def _validate_transfer(
        self,
        extracted: ExtractedTransaction,
        intent: Intent,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        today: date,
        now: datetime,
    ) -> AssistantResponse:
        if extracted.requires_clarification:
            return AssistantResponse(
                success=True,
                message=TRANSFER_CLARIFICATION_MESSAGE,
                intent=intent,
                requires_clarification=True,
            )

        if not extracted.account_id or not extracted.to_account_id:
            raise IncompleteTransactionData(
                "A transfer needs both a source and a destination account"
            )

        source = find_account(accounts, extracted.account_id)
        target = find_account(accounts, extracted.to_account_id)
        if source is None or target is None:
            raise AccountNotFound("Source or destination account not found")

        check = validate_transfer(
            source.id,
            target.id,
            extracted.amount,
            accounts,
            transactions,
            large_transfer_ratio=self._settings.large_transfer_ratio,
            currency_prefix=self._settings.currency_prefix,
        )
        if not check.is_valid:
            error_class = TRANSFER_ERRORS.get(check.error_code, TransactionValidationError)
            raise error_class(check.error)

        expense_leg, income_leg = create_transfer_transactions(
            source,
            target,
            extracted.amount,
            on_date=extracted.date or today,
            timestamp=now,
            category=self._settings.transfer_category,
        )

        return AssistantResponse(
            success=True,
            message=(
                f"Transfer of {self._fmt(extracted.amount)} from {source.name} "
                f"to {target.name} recorded"
            ),
            warning=check.warning,
            intent=intent,
            transactions=[expense_leg, income_leg],
        )

    def _validate_single(
        self,
        extracted: ExtractedTransaction,
        intent: Intent,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        categories: Sequence[str],
        today: date,
        now: datetime,
    ) -> AssistantResponse:
        if extracted.requires_clarification:
            return AssistantResponse(
                success=True,
                message=CLARIFICATION_MESSAGE,
                intent=intent,
                requires_clarification=True,
            )

        if extracted.account_id:
            account = find_account(accounts, extracted.account_id)
            if account is None:
                raise AccountNotFound(f"Account not found: {extracted.account_id}")
        else:
            account = first_active_account(accounts)
            if account is None:
                raise AccountNotFound("No active account to record this transaction on")

        tx_type = TransactionType(extracted.type)
        category = normalize_category(
            extracted.category,
            categories,
            self._settings.fallback_category,
            self._settings.transfer_category,
        )
        description = (
            (extracted.description or "").strip()
            or (extracted.merchant or "").strip()
            or category
        )

        try:
            transaction = Transaction(
                type=tx_type,
                amount=extracted.amount,
                category=category,
                description=description,
                date=extracted.date or today,
                timestamp=now,
                account_id=account.id,
                merchant=extracted.merchant,
                items=[
                    LineItem(name=item.name, qty=item.qty, price=item.price)
                    for item in extracted.items
                ],
            )
        except ValidationError as e:
            raise MalformedModelOutput("Transaction data has the wrong format. Please rephrase.") from e

        warning = None
        if tx_type == TransactionType.EXPENSE:
            balance = balance_of(account, transactions).current_balance
            if extracted.amount > balance:
                warning = (
                    f"This expense is larger than the {account.name} balance "
                    f"({self._fmt(balance)})"
                )

        label = "Expense" if tx_type == TransactionType.EXPENSE else "Income"
        return AssistantResponse(
            success=True,
            message=(
                f"{label} \"{description}\" of {self._fmt(extracted.amount)} "
                f"recorded {self._date_phrase(transaction.date, today)}"
            ),
            warning=warning,
            intent=intent,
            transactions=[transaction],
        )

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def validate(
        self,
        response_text: str,
        intent: Intent,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        categories: Optional[Sequence[str]] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> AssistantResponse:
        """
        Validate a transaction reply, raising on the first problem.

        Raises:
            TransactionValidationError: Any subclass, for any rejection
        """
        now = now or datetime.now()
        today = today or now.date()
        if categories is None:
            categories = self._settings.default_categories

        extracted = self.parse(response_text)

        if extracted.type == TRANSFER_TYPE:
            return self._validate_transfer(
                extracted, intent, accounts, transactions, today, now
            )

        if extracted.type in (TransactionType.INCOME.value, TransactionType.EXPENSE.value):
            return self._validate_single(
                extracted, intent, accounts, transactions, categories, today, now
            )

        raise InvalidTransactionType(f"Unknown transaction type: {extracted.type}")

    def handle(
        self,
        response_text: str,
        intent: Intent,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        categories: Optional[Sequence[str]] = None,
        today: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> AssistantResponse:
        """
        Turn a model reply into a displayable result. Never raises for bad
        model output.

        Conversational intents pass the text straight through. Transaction
        intents are validated; any rejection becomes success=False with a
        short error string and no transactions.
        """
        if not intent.is_extraction:
            return AssistantResponse(
                success=True,
                message=response_text.strip(),
                data=response_text,
                intent=intent,
            )

        try:
            return self.validate(
                response_text, intent, accounts, transactions, categories, today, now
            )
        except ModelReportedError as e:
            return AssistantResponse(success=False, error=str(e), intent=intent)
        except TransactionValidationError as e:
            return AssistantResponse(
                success=False,
                error=f"Could not process the transaction: {e}",
                intent=intent,
            )

