"""
Shared fixtures.

No test talks to a real model or spreadsheet: the completion client is
scripted and the ledger lives in memory.
"""

from datetime import date, datetime
from typing import Union

import pytest

from finai.config import AISettings, LedgerSettings
from finai.models.ledger import Account, AccountType, Transaction, TransactionType
from finai.services.ai import AIGateway
from finai.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


TODAY = date(2024, 6, 15)
NOW = datetime(2024, 6, 15, 12, 0, 0)


class FakeCompletionClient:
    """
    Scripted CompletionClient.

    Each call pops the next reply; an exception instance is raised instead
    of returned. When the script runs out, the last reply repeats.
    """

    def __init__(self, *replies: Union[str, BaseException]):
        self.replies = list(replies) or [""]
        self.calls: list[dict] = []

    async def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class SleepRecorder:
    """Stand-in for asyncio.sleep that only remembers the delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_tx(
    tx_type: TransactionType,
    amount: int,
    account_id: str,
    category: str = "Food & Drink",
    on_date: date = TODAY,
    description: str = "",
    **extra,
) -> Transaction:
    return Transaction(
        type=tx_type,
        amount=amount,
        category=category,
        description=description or category,
        date=on_date,
        timestamp=extra.pop("timestamp", datetime.combine(on_date, datetime.min.time())),
        account_id=account_id,
        **extra,
    )


def expense(amount: int, account_id: str = "acc-bca", **kwargs) -> Transaction:
    return make_tx(TransactionType.EXPENSE, amount, account_id, **kwargs)


def income(amount: int, account_id: str = "acc-bca", **kwargs) -> Transaction:
    kwargs.setdefault("category", "Salary")
    return make_tx(TransactionType.INCOME, amount, account_id, **kwargs)


@pytest.fixture
def ledger_settings() -> LedgerSettings:
    return LedgerSettings()


@pytest.fixture
def ai_settings() -> AISettings:
    return AISettings(api_key="test-key")


@pytest.fixture
def accounts() -> list[Account]:
    return [
        Account(
            id="acc-bca",
            name="BCA",
            type=AccountType.BANK,
            provider="BCA",
            initial_balance=1_000_000,
        ),
        Account(
            id="acc-gopay",
            name="GoPay",
            type=AccountType.E_WALLET,
            provider="Gojek",
            initial_balance=100_000,
        ),
        Account(
            id="acc-cash",
            name="Cash",
            type=AccountType.CASH,
            initial_balance=0,
        ),
    ]


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def make_gateway(ai_settings, sleep_recorder):
    """Build a gateway around a scripted client: make_gateway("reply", ...)."""
    def _make(*replies):
        client = FakeCompletionClient(*replies)
        return AIGateway(client, ai_settings, sleep=sleep_recorder), client
    return _make


@pytest.fixture
def storage(accounts) -> InMemoryLedgerStorage:
    return InMemoryLedgerStorage(accounts=accounts)


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()
