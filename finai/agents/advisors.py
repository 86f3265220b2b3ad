"""
AI Advisors

Narrative helpers that ask the model for advice text.

CRITICAL BOUNDARIES:
- Advisors NEVER write to the ledger
- Every figure in a prompt is computed locally by the ledger math first;
  the model only turns numbers into words
- Every advisor degrades to static text when the model is unavailable.
  Advice is fail-open: a missing tip must never fail the parent operation.
"""

from datetime import date
from typing import Optional, Sequence

import structlog

from finai.agents import prompts
from finai.config import LedgerSettings, get_settings
from finai.ledger import (
    all_balances,
    analyze_cash_flow,
    detect_anomalies,
    detect_recurring_transactions,
    format_amount,
    monthly_cash_flow,
    net_worth,
    rule_based_suggestions,
)
from finai.models.ai import Narrative
from finai.models.ledger import Account, Reconciliation, Transaction
from finai.services.ai import AIGateway, AIGatewayError
from finai.validation import extract_json_array


logger = structlog.get_logger(__name__)

MAX_BUDGET_SUGGESTIONS = 3
MAX_TIP_LENGTH = 150

FALLBACK_BUDGET_SUGGESTIONS = {
    "Food & Drink": [
        "Cook at home more often this week",
        "Set a daily limit for eating out and delivery",
    ],
    "Transportation": [
        "Combine errands into fewer trips",
        "Compare ride-hailing with public transport for regular routes",
    ],
    "Shopping": [
        "Wait 24 hours before any non-essential purchase",
        "Remove saved cards from shopping apps until the period ends",
    ],
    "Entertainment": [
        "Pause subscriptions you have not used this month",
        "Look for free activities for the rest of the period",
    ],
    "Bills": [
        "Check your bills for unused add-ons or services",
        "Reduce electricity and water use where you can",
    ],
}

REPORT_UNAVAILABLE = "Could not analyse your financial health right now. Please try again later."
INSIGHT_UNAVAILABLE = "Sorry, the monthly analysis is not available right now."
NO_MONTH_DATA = "There are no transactions for this month yet."


def fallback_budget_suggestions(category: str) -> list[str]:
    """Static, category-keyed tips used whenever the model cannot answer."""
    return list(FALLBACK_BUDGET_SUGGESTIONS.get(category, [
        f"Cut back on {category} spending for the rest of this period",
        "Review this budget again next month",
    ]))


def parse_suggestion_list(text: str, limit: int = MAX_BUDGET_SUGGESTIONS) -> list[str]:
    """
    Read a JSON array of strings, falling back to one suggestion per line.
    """
    items = extract_json_array(text)
    if items is not None:
        return [str(item).strip() for item in items if str(item).strip()][:limit]

    lines = []
    for line in text.splitlines():
        line = line.strip()
        if not line or "```" in line or line.startswith(("[", "]")):
            continue
        lines.append(line.lstrip("-*• ").strip())
    return [line for line in lines if line][:limit]


class CategorySuggestionAgent:
    """Suggests one category for a free-text description."""

    def __init__(self, gateway: AIGateway, settings: Optional[LedgerSettings] = None):
        self._gateway = gateway
        self._settings = settings or get_settings().ledger

    async def suggest(
        self,
        description: str,
        categories: Optional[Sequence[str]] = None,
    ) -> str:
        """
        Returns a category from the list; the fallback category when the
        description is too short, the model fails, or it answers with a
        category that does not exist.
        """
        fallback = self._settings.fallback_category
        if not description or len(description.strip()) < 2:
            return fallback

        options = list(categories or self._settings.default_categories)
        try:
            reply = await self._gateway.ask(
                prompts.category_suggestion_prompt(description, options)
            )
        except AIGatewayError as e:
            logger.warning("category_suggestion_failed", error=str(e))
            return fallback

        cleaned = reply.strip().strip("\"'").rstrip(".").strip()
        for category in options:
            if category.lower() == cleaned.lower():
                return category

        logger.info("category_suggestion_unknown", suggested=cleaned)
        return fallback


class BudgetSuggestionAgent:
    """Short, actionable tips for a budget that is running hot."""

    def __init__(self, gateway: AIGateway, settings: Optional[LedgerSettings] = None):
        self._gateway = gateway
        self._settings = settings or get_settings().ledger

    async def suggest(
        self,
        category: str,
        spent: int,
        budget: int,
        days_remaining: int,
        daily_average: int,
    ) -> list[str]:
        fmt = self._settings.currency_prefix
        prompt = prompts.budget_suggestion_prompt(
            category=category,
            spent=format_amount(spent, fmt),
            budget=format_amount(budget, fmt),
            percentage=spent * 100 / budget,
            days_remaining=days_remaining,
            daily_average=format_amount(daily_average, fmt),
            over_budget=spent > budget,
        )

        try:
            reply = await self._gateway.ask(prompt)
        except AIGatewayError as e:
            logger.warning("budget_suggestion_fallback", category=category, error=str(e))
            return fallback_budget_suggestions(category)

        suggestions = parse_suggestion_list(reply)
        return suggestions or fallback_budget_suggestions(category)


class ReconciliationAgent:
    """Explains where a balance gap might come from."""

    def __init__(self, gateway: AIGateway, settings: Optional[LedgerSettings] = None):
        self._gateway = gateway
        self._settings = settings or get_settings().ledger

    async def suggest(
        self,
        reconciliation: Reconciliation,
        recent_transactions: Sequence[Transaction],
    ) -> list[str]:
        """Rule-based hints, plus one model tip when history is available."""
        prefix = self._settings.currency_prefix
        suggestions = rule_based_suggestions(reconciliation.difference, prefix)

        if not recent_transactions:
            return suggestions

        recent = "\n".join(
            f"{tx.date.isoformat()}: {tx.description} ({tx.category}) "
            f"{format_amount(tx.amount, prefix)}"
            for tx in list(recent_transactions)[:10]
        )
        prompt = prompts.reconciliation_tip_prompt(
            reconciliation.difference,
            format_amount(abs(reconciliation.difference), prefix),
            recent,
        )

        try:
            tip = (await self._gateway.ask(prompt)).strip()[:MAX_TIP_LENGTH]
        except AIGatewayError as e:
            logger.warning("reconciliation_tip_failed", error=str(e))
            return suggestions

        if tip:
            suggestions.append(tip)
        return suggestions


class FinancialReportAgent:
    """Monthly insight and the overall financial health report."""

    def __init__(self, gateway: AIGateway, settings: Optional[LedgerSettings] = None):
        self._gateway = gateway
        self._settings = settings or get_settings().ledger

    def _fmt(self, amount: int) -> str:
        return format_amount(amount, self._settings.currency_prefix)

    async def _narrate(self, prompt: str, fallback: str, report_type: str) -> Narrative:
        try:
            text = await self._gateway.ask(prompt, model=self._gateway.settings.smart_model)
        except AIGatewayError as e:
            logger.warning("report_fallback", report_type=report_type, error=str(e))
            return Narrative(text=fallback, used_fallback=True)
        return Narrative(text=text.strip())

    async def monthly_insight(
        self,
        transactions: Sequence[Transaction],
        year: int,
        month: int,
    ) -> Narrative:
        """
        Review of one calendar month. Months without transactions get a
        fixed "no data" text and no model call.
        """
        flow = monthly_cash_flow(transactions, year, month)
        in_month = [
            tx for tx in transactions
            if flow.start <= tx.date <= flow.end
        ]
        if not in_month:
            return Narrative(text=NO_MONTH_DATA, used_fallback=True)

        top = ", ".join(
            f"{c.category} ({self._fmt(c.amount)})"
            for c in flow.expense_categories[:3]
        ) or "-"
        summary = "\n".join([
            f"- Total income: {self._fmt(flow.total_inflow)}",
            f"- Total spending: {self._fmt(flow.total_outflow)}",
            f"- Net savings: {self._fmt(flow.net_cash_flow)}",
            f"- Saving rate: {flow.saving_rate}%",
            f"- Top spending: {top}",
        ])
        sample = "\n".join(
            f"- {tx.date.isoformat()}: {tx.description} ({tx.type.value}) "
            f"{self._fmt(tx.amount)} [{tx.category}]"
            for tx in sorted(in_month, key=lambda t: t.amount, reverse=True)[:50]
        )

        return await self._narrate(
            prompts.monthly_insight_prompt(f"{year:04d}-{month:02d}", summary, sample),
            INSIGHT_UNAVAILABLE,
            "monthly_insight",
        )

    def health_context(
        self,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        today: date,
    ) -> str:
        """All figures for the health report, computed locally."""
        settings = self._settings
        balances = all_balances(accounts, transactions)
        flow = analyze_cash_flow(transactions, today.replace(day=1), today)
        recurring = detect_recurring_transactions(
            transactions,
            settings.recurring_min_occurrences,
            settings.recurring_amount_tolerance,
        )
        anomalies = detect_anomalies(
            transactions,
            lookback_days=settings.anomaly_lookback_days,
            today=today,
            min_sample=settings.anomaly_min_sample,
            z_threshold=settings.anomaly_z_threshold,
            high_z_threshold=settings.anomaly_high_z_threshold,
            currency_prefix=settings.currency_prefix,
        )

        lines = [
            f"1. NET WORTH: {self._fmt(net_worth(accounts, transactions))}",
            "",
            f"2. ACCOUNTS ({len(accounts)}):",
            *[f"   - {b.account_name}: {self._fmt(b.current_balance)}" for b in balances],
            "",
            "3. CASH FLOW THIS MONTH:",
            f"   - Income: {self._fmt(flow.total_inflow)}",
            f"   - Spending: {self._fmt(flow.total_outflow)}",
            f"   - Net: {self._fmt(flow.net_cash_flow)}",
            f"   - Saving rate: {flow.saving_rate}%",
            "",
            "4. TOP SPENDING:",
            *[f"   - {c.category}: {self._fmt(c.amount)}" for c in flow.expense_categories[:5]],
            "",
            f"5. RECURRING BILLS DETECTED ({len(recurring)}):",
            *[
                f"   - {r.merchant}: {self._fmt(r.average_amount)}/{r.frequency.value} "
                f"(next: {r.next_expected.isoformat()})"
                for r in recurring[:5]
            ],
            "",
            f"6. SPENDING ANOMALIES ({len(anomalies)}):",
            *[
                f"   - {a.transaction.description}: {a.reason} ({a.severity.value})"
                for a in anomalies[:3]
            ],
        ]
        return "\n".join(lines)

    async def health_report(
        self,
        accounts: Sequence[Account],
        transactions: Sequence[Transaction],
        today: Optional[date] = None,
    ) -> Narrative:
        today = today or date.today()
        context = self.health_context(accounts, transactions, today)
        return await self._narrate(
            prompts.health_report_prompt(context),
            REPORT_UNAVAILABLE,
            "health_report",
        )
