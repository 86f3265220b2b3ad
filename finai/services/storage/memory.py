"""
In-Memory Storage

Dict/list backed implementations of the storage interfaces. Used by tests
and whenever the application runs without a spreadsheet configured.

Records are deep-copied on the way in and out so callers can never mutate
stored state by accident.
"""

from typing import Optional
from uuid import UUID

from finai.models.audit import AuditEvent
from finai.models.ledger import Account, Budget, Transaction
from finai.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger collections held in process memory."""

    def __init__(
        self,
        accounts: Optional[list[Account]] = None,
        transactions: Optional[list[Transaction]] = None,
        budgets: Optional[list[Budget]] = None,
        categories: Optional[list[str]] = None,
    ):
        self._accounts = [a.model_copy(deep=True) for a in accounts or []]
        self._transactions = [t.model_copy(deep=True) for t in transactions or []]
        self._budgets = [b.model_copy(deep=True) for b in budgets or []]
        self._categories = list(categories) if categories is not None else None
        # Set to make the next write fail, for exercising error paths
        self.fail_writes = False

    def _check_writable(self) -> None:
        if self.fail_writes:
            raise StorageError("Storage is not writable")

    # Accounts

    async def list_accounts(self) -> list[Account]:
        return [a.model_copy(deep=True) for a in self._accounts]

    async def add_account(self, account: Account) -> bool:
        self._check_writable()
        self._accounts.append(account.model_copy(deep=True))
        return True

    async def update_account(self, account: Account) -> bool:
        self._check_writable()
        for idx, existing in enumerate(self._accounts):
            if existing.id == account.id:
                self._accounts[idx] = account.model_copy(deep=True)
                return True
        raise NotFoundError(f"Account not found: {account.id}")

    async def delete_account(self, account_id: str) -> bool:
        self._check_writable()
        before = len(self._accounts)
        self._accounts = [a for a in self._accounts if a.id != account_id]
        return len(self._accounts) < before

    # Transactions

    async def list_transactions(self) -> list[Transaction]:
        ordered = sorted(self._transactions, key=lambda tx: tx.timestamp, reverse=True)
        return [t.model_copy(deep=True) for t in ordered]

    async def add_transactions(self, transactions: list[Transaction]) -> bool:
        self._check_writable()
        self._transactions.extend(t.model_copy(deep=True) for t in transactions)
        return True

    async def delete_transaction(self, transaction_id: str) -> bool:
        self._check_writable()
        before = len(self._transactions)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]
        return len(self._transactions) < before

    # Budgets

    async def list_budgets(self) -> list[Budget]:
        return [b.model_copy(deep=True) for b in self._budgets]

    async def save_budget(self, budget: Budget) -> bool:
        self._check_writable()
        for idx, existing in enumerate(self._budgets):
            if existing.id == budget.id:
                self._budgets[idx] = budget.model_copy(deep=True)
                return True
        self._budgets.append(budget.model_copy(deep=True))
        return True

    async def delete_budget(self, budget_id: str) -> bool:
        self._check_writable()
        before = len(self._budgets)
        self._budgets = [b for b in self._budgets if b.id != budget_id]
        return len(self._budgets) < before

    # Settings

    async def get_categories(self) -> Optional[list[str]]:
        return list(self._categories) if self._categories is not None else None

    async def save_categories(self, categories: list[str]) -> bool:
        self._check_writable()
        self._categories = list(categories)
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit list held in process memory."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return sorted(
            (e for e in self.events if e.correlation_id == correlation_id),
            key=lambda e: e.timestamp,
        )

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return sorted(
            (
                e for e in self.events
                if e.entity_type == entity_type and e.entity_id == entity_id
            ),
            key=lambda e: e.timestamp,
        )

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]
