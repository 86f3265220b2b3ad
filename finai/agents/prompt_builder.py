"""
Prompt Builder

Renders the single system prompt for a user turn from
(intent, accounts, transactions, current date, categories).

CRITICAL: Account listings ALWAYS use balances recomputed from the ledger.
The stored initial balance alone is stale the moment the first transaction
lands, and the model would happily reason over the wrong number.
"""

from datetime import date
from typing import Optional, Sequence

from finai.agents import prompts
from finai.config import LedgerSettings, get_settings
from finai.ledger import all_balances, format_amount
from finai.models.ai import Intent, IntentType
from finai.models.ledger import Account, AccountBalance, Transaction


class PromptBuilder:
    """
    Builds system prompts. Holds configuration only, no per-turn state.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def _fmt(self, amount: int) -> str:
        return format_amount(amount, self._settings.currency_prefix)

    def format_accounts(
        self,
        accounts: Sequence[Account],
        balances: Sequence[AccountBalance],
    ) -> str:
        by_id = {b.account_id: b for b in balances}
        lines = []
        for account in accounts:
            if not account.is_active:
                continue
            balance = by_id[account.id].current_balance
            provider = f", provider: {account.provider}" if account.provider else ""
            lines.append(
                f"- {account.name} (balance: {self._fmt(balance)}, ID: {account.id}, "
                f"type: {account.type.value}{provider})"
            )
        return "\n".join(lines) or "- (no accounts)"

    def format_balances(self, balances: Sequence[AccountBalance]) -> str:
        lines = [
            f"- {b.account_name}: {self._fmt(b.current_balance)} (ID: {b.account_id})"
            for b in balances
        ]
        return "\n".join(lines) or "- (no accounts)"

    def format_recent(self, transactions: Sequence[Transaction], limit: int) -> str:
        """Newest first, one dated line per transaction."""
        ordered = sorted(
            transactions,
            key=lambda tx: (tx.date, tx.timestamp),
            reverse=True,
        )[:limit]
        lines = [
            f"- {tx.date.isoformat()}: {tx.type.value} {self._fmt(tx.amount)} "
            f"({tx.category}) - {tx.description}"
            for tx in ordered
        ]
        return "\n".join(lines) or "- (no transactions yet)"

    def category_list(self, categories: Sequence[str]) -> list[str]:
        """User categories plus Transfer, which is always valid."""
        result = list(categories)
        if self._settings.transfer_category not in result:
            result.append(self._settings.transfer_category)
        return result

    def recent_limit(self, intent: Intent) -> int:
        if intent.type in (IntentType.ADVICE, IntentType.ANALYSIS):
            return self._settings.recent_transactions_long
        return self._settings.recent_transactions_short

    def build(
        self,
        intent: Intent,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        current_date: date,
        categories: Optional[Sequence[str]] = None,
    ) -> str:
        """
        Render the system prompt for one turn.

        Args:
            intent: Classified intent of the user message
            accounts: The user's accounts
            transactions: Full ledger (balances are computed from it)
            current_date: Anchor for relative dates in the prompt
            categories: Valid categories, defaults to the configured list

        Returns:
            The complete system prompt
        """
        if categories is None:
            categories = self._settings.default_categories

        balances = all_balances(accounts, transactions)
        account_text = self.format_accounts(accounts, balances)
        header = prompts.base_prompt(current_date)

        if intent.type == IntentType.TRANSACTION:
            body = prompts.transaction_prompt(
                accounts=account_text,
                balances=self.format_balances(balances),
                categories=", ".join(self.category_list(categories)),
                current_date=current_date,
            )
            return f"{header}\n\n{body}"

        recent = self.format_recent(transactions, self.recent_limit(intent))
        templates = {
            IntentType.QUERY: prompts.query_prompt,
            IntentType.ADVICE: prompts.advice_prompt,
            IntentType.PLANNING: prompts.planning_prompt,
            IntentType.ANALYSIS: prompts.analysis_prompt,
        }
        body = templates[intent.type](account_text, recent)
        return f"{header}\n\n{body}"
