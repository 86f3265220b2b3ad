"""AI Agents package."""

from finai.agents.advisors import (
    BudgetSuggestionAgent,
    CategorySuggestionAgent,
    FinancialReportAgent,
    ReconciliationAgent,
    fallback_budget_suggestions,
)
from finai.agents.intent_classifier import IntentClassifier, classify_intent
from finai.agents.prompt_builder import PromptBuilder

__all__ = [
    "BudgetSuggestionAgent",
    "CategorySuggestionAgent",
    "FinancialReportAgent",
    "ReconciliationAgent",
    "fallback_budget_suggestions",
    "IntentClassifier",
    "classify_intent",
    "PromptBuilder",
]
