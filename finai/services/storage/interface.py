"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for tests and storage-less runs
3. Keep ledger logic decoupled from storage implementation

The interface is intentionally simple - "all documents in this collection"
plus single-document append/update/delete. The ledger math does the rest
in Python.

Records are validated into pydantic models HERE, at the boundary. Code
behind this interface never re-validates ad hoc.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from finai.models.audit import AuditEvent
from finai.models.ledger import Account, Budget, Transaction


class LedgerStorageInterface(ABC):
    """
    Abstract interface for the per-user ledger collections:
    accounts, transactions, budgets and the category setting.
    """

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_accounts(self) -> list[Account]:
        """All accounts, in creation order."""
        pass

    @abstractmethod
    async def add_account(self, account: Account) -> bool:
        """
        Append a new account.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> bool:
        """
        Replace an existing account.

        Raises:
            NotFoundError: If the account doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account by id.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    async def get_account(self, account_id: str) -> Optional[Account]:
        for account in await self.list_accounts():
            if account.id == account_id:
                return account
        return None

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """All transactions, newest timestamp first."""
        pass

    @abstractmethod
    async def add_transactions(self, transactions: list[Transaction]) -> bool:
        """
        Append one or more transactions in a single write.

        A transfer's two legs go through one call so they land together.

        Raises:
            StorageError: If the write fails (nothing is written)
        """
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by id.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    async def add_transaction(self, transaction: Transaction) -> bool:
        return await self.add_transactions([transaction])

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        pass

    @abstractmethod
    async def save_budget(self, budget: Budget) -> bool:
        """Insert, or replace the budget with the same id."""
        pass

    @abstractmethod
    async def delete_budget(self, budget_id: str) -> bool:
        pass

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    @abstractmethod
    async def get_categories(self) -> Optional[list[str]]:
        """
        The user's category list, or None if it was never saved.
        """
        pass

    @abstractmethod
    async def save_categories(self, categories: list[str]) -> bool:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events of one user turn.

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'transaction', 'account')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events (newest first).
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


class AccountInUseError(StorageError):
    """Account still has transactions referencing it."""

    def __init__(self, account_id: str, linked: int):
        super().__init__(
            f"Account {account_id} has {linked} linked transactions and cannot be deleted"
        )
        self.account_id = account_id
        self.linked = linked
