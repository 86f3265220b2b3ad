"""
FinAI Ledger - Source Package

The logic layer of a personal-finance assistant: it turns free text or
receipt photos into ledger-safe transactions through an LLM, and derives
balances, cash flow, recurring charges, anomalies and budget alerts from
the transaction log.

DESIGN PRINCIPLES:
1. The model proposes, the ledger decides
2. Balances are always derived, never stored
3. Monetary checks fail closed, advice fails open
4. Every step is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FinAI Team"
