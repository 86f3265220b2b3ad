"""
Intent Classifier

DESIGN DECISION: Classification is a cheap, local, deterministic gate.
No model call is made here, so every user turn pays for at most one LLM
round trip.

Rules are checked in order and the first match wins. Indonesian trigger
words are matched as substrings so affixed forms ("membeli", "dibayar")
still hit; English words are matched on word boundaries.
"""

import re
from typing import Optional

from finai.models.ai import Intent, IntentType


INTENT_RULES: list[tuple[IntentType, float, re.Pattern]] = [
    (
        IntentType.TRANSACTION,
        0.9,
        re.compile(
            r"catat|beli|bayar|transfer|pindah|belanja|byr|tf|jajan"
            r"|\b(?:paid|pay|bought|buy|purchased?|record|log)\b|\bspent \d",
            re.IGNORECASE,
        ),
    ),
    (
        IntentType.QUERY,
        0.9,
        re.compile(
            r"berapa|total|saldo|riwayat|transaksi|pengeluaran|pemasukan|sisa|habis"
            r"|\b(?:how much|balance|history|transactions?|expenses?|income|left)\b",
            re.IGNORECASE,
        ),
    ),
    (
        IntentType.ADVICE,
        0.8,
        re.compile(
            r"saran|tips|gimana|bagus|sebaiknya|rekomendasi|hemat"
            r"|\b(?:advice|advise|suggest\w*|recommend\w*|should i)\b",
            re.IGNORECASE,
        ),
    ),
    (
        IntentType.PLANNING,
        0.8,
        re.compile(
            r"rencana|target|nabung|investasi|budget"
            r"|\b(?:plan\w*|goal|invest\w*|save up)\b",
            re.IGNORECASE,
        ),
    ),
    (
        IntentType.ANALYSIS,
        0.8,
        re.compile(
            r"analisis|laporan|report|grafik|trend|pola"
            r"|\b(?:analy[sz]\w*|chart|pattern)\b",
            re.IGNORECASE,
        ),
    ),
]

DEFAULT_INTENT = Intent(type=IntentType.QUERY, confidence=0.5)
IMAGE_INTENT = Intent(type=IntentType.TRANSACTION, confidence=1.0)


class IntentClassifier:
    """
    Maps a user utterance to an Intent.

    An attached image is always a receipt, so it short-circuits to a
    transaction with full confidence.
    """

    def __init__(self, rules: Optional[list[tuple[IntentType, float, re.Pattern]]] = None):
        self._rules = rules if rules is not None else INTENT_RULES

    def match(self, text: str) -> Optional[Intent]:
        """First matching rule, or None when nothing matches."""
        for intent_type, confidence, pattern in self._rules:
            if pattern.search(text or ""):
                return Intent(type=intent_type, confidence=confidence)
        return None

    def classify(self, text: str, has_image: bool = False) -> Intent:
        if has_image:
            return IMAGE_INTENT.model_copy()
        matched = self.match(text)
        if matched is None:
            return DEFAULT_INTENT.model_copy()
        return matched

    @staticmethod
    def is_default(intent: Intent) -> bool:
        """True when the intent came from the no-match fallback."""
        return intent == DEFAULT_INTENT


def classify_intent(text: str, has_image: bool = False) -> Intent:
    """Module-level shortcut using the built-in rules."""
    return IntentClassifier().classify(text, has_image)
