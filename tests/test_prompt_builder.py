"""Tests for system prompt construction."""

from datetime import date, datetime, timedelta

from conftest import TODAY, expense

from finai.agents import PromptBuilder
from finai.models.ai import Intent, IntentType


TRANSACTION = Intent(type=IntentType.TRANSACTION, confidence=0.9)
ADVICE = Intent(type=IntentType.ADVICE, confidence=0.8)
QUERY = Intent(type=IntentType.QUERY, confidence=0.9)


class TestPromptBuilder:
    """Tests for PromptBuilder.build and its formatting helpers."""

    def test_transaction_prompt_uses_real_time_balances(self, accounts, ledger_settings):
        """Test balances come from the ledger, not the initial balance."""
        builder = PromptBuilder(ledger_settings)
        prompt = builder.build(TRANSACTION, accounts, [expense(250_000)], TODAY)

        assert "BCA (balance: Rp750,000, ID: acc-bca" in prompt
        assert "Rp1,000,000" not in prompt

    def test_transaction_prompt_dates(self, accounts, ledger_settings):
        prompt = PromptBuilder(ledger_settings).build(TRANSACTION, accounts, [], TODAY)
        assert "2024-06-15" in prompt
        assert "2024-06-14" in prompt  # yesterday
        assert "2024-06-17" in prompt  # day after tomorrow
        assert "2024-06-08" in prompt  # last week

    def test_transaction_prompt_lists_transfer_category(self, accounts, ledger_settings):
        prompt = PromptBuilder(ledger_settings).build(
            TRANSACTION, accounts, [], TODAY, categories=["Food & Drink", "Bills"]
        )
        assert "Food & Drink, Bills, Transfer" in prompt

    def test_transaction_prompt_has_error_contract(self, accounts, ledger_settings):
        prompt = PromptBuilder(ledger_settings).build(TRANSACTION, accounts, [], TODAY)
        assert '"error": true' in prompt
        assert "requiresClarification" in prompt

    def test_inactive_accounts_hidden(self, accounts, ledger_settings):
        accounts[1].is_active = False
        prompt = PromptBuilder(ledger_settings).build(QUERY, accounts, [], TODAY)
        assert "GoPay (balance" not in prompt
        assert "BCA (balance" in prompt

    def test_recent_history_is_newest_first_and_limited(self, accounts, ledger_settings):
        transactions = [
            expense(1_000 + i, description=f"item {i}", on_date=TODAY - timedelta(days=i))
            for i in range(30)
        ]
        builder = PromptBuilder(ledger_settings)
        recent = builder.format_recent(transactions, builder.recent_limit(QUERY))
        lines = recent.splitlines()

        assert len(lines) == 20
        assert "item 0" in lines[0]
        assert "item 19" in lines[-1]

    def test_advice_gets_longer_history(self, ledger_settings):
        builder = PromptBuilder(ledger_settings)
        assert builder.recent_limit(ADVICE) == 50
        assert builder.recent_limit(QUERY) == 20

    def test_same_day_ordered_by_timestamp(self, ledger_settings):
        morning = expense(1_000, description="morning", timestamp=datetime(2024, 6, 15, 8))
        evening = expense(2_000, description="evening", timestamp=datetime(2024, 6, 15, 20))
        recent = PromptBuilder(ledger_settings).format_recent([morning, evening], 5)
        assert recent.splitlines()[0].endswith("evening")

    def test_empty_ledger_placeholders(self, ledger_settings):
        prompt = PromptBuilder(ledger_settings).build(ADVICE, [], [], date(2024, 1, 1))
        assert "(no accounts)" in prompt
        assert "(no transactions yet)" in prompt
