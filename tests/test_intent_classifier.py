"""Tests for the keyword intent classifier."""

import pytest

from finai.agents import IntentClassifier, classify_intent
from finai.models.ai import IntentType


class TestIntentClassifier:
    """Tests for rule order, defaults and the image shortcut."""

    @pytest.mark.parametrize("text", [
        "beli kopi 25rb",
        "bayar listrik 350rb pakai BCA",
        "transfer 500rb dari BCA ke GoPay",
        "tf 100k ke gopay",
        "I paid 50k for lunch",
        "spent 20000 on parking",
    ])
    def test_transaction_messages(self, text):
        intent = classify_intent(text)
        assert intent.type == IntentType.TRANSACTION
        assert intent.confidence == 0.9

    @pytest.mark.parametrize("text", [
        "berapa saldo BCA?",
        "total pengeluaran bulan ini",
        "What is my balance?",
    ])
    def test_query_messages(self, text):
        assert classify_intent(text).type == IntentType.QUERY

    @pytest.mark.parametrize("text, expected", [
        ("kasih saran dong", IntentType.ADVICE),
        ("Any advice on cutting costs?", IntentType.ADVICE),
        ("rencana nabung 10jt", IntentType.PLANNING),
        ("help me plan for a new laptop", IntentType.PLANNING),
        ("buat laporan bulanan", IntentType.ANALYSIS),
        ("show me a chart of my spending", IntentType.ANALYSIS),
    ])
    def test_other_intents(self, text, expected):
        intent = classify_intent(text)
        assert intent.type == expected
        assert intent.confidence == 0.8

    def test_first_matching_rule_wins(self):
        """Test a transaction keyword beats a later query keyword."""
        assert classify_intent("catat pengeluaran 20rb").type == IntentType.TRANSACTION

    def test_no_match_defaults_to_query(self):
        classifier = IntentClassifier()
        intent = classifier.classify("hello there")
        assert intent.type == IntentType.QUERY
        assert intent.confidence == 0.5
        assert IntentClassifier.is_default(intent)

    def test_empty_text_defaults(self):
        assert classify_intent("").type == IntentType.QUERY

    def test_image_is_always_a_transaction(self):
        intent = classify_intent("berapa saldo?", has_image=True)
        assert intent.type == IntentType.TRANSACTION
        assert intent.confidence == 1.0

    def test_english_words_need_word_boundaries(self):
        """Test 'payment' alone does not trigger the 'pay' rule."""
        assert classify_intent("repayment terms").type != IntentType.TRANSACTION
