"""
Account Service

Create, update and delete money containers.

CRITICAL: An account that any transaction still references (as its owner or
as the counterpart of a transfer leg) can never be deleted. Balances are
derived from history; deleting the account would orphan that history.
"""

from typing import Optional

import structlog

from finai.audit import AuditLogger
from finai.config import LedgerSettings, get_settings
from finai.models.audit import AuditEventBuilder
from finai.models.ledger import Account, AccountType
from finai.services.storage import (
    AccountInUseError,
    LedgerStorageInterface,
    NotFoundError,
)


logger = structlog.get_logger(__name__)


class AccountService:
    """
    Account management on top of ledger storage.

    Usage:
        service = AccountService(storage, audit_logger, settings.ledger)
        cash = await service.ensure_default_account()
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._audit = audit_logger or AuditLogger()
        self._settings = settings or get_settings().ledger

    async def list_accounts(self, active_only: bool = False) -> list[Account]:
        accounts = await self._storage.list_accounts()
        if active_only:
            return [a for a in accounts if a.is_active]
        return accounts

    async def create_account(
        self,
        name: str,
        account_type: AccountType = AccountType.CASH,
        provider: str = "",
        initial_balance: int = 0,
    ) -> Account:
        """
        Create and store a new account.

        Raises:
            pydantic.ValidationError: Invalid name or provider
            StorageError: If the write fails
        """
        account = Account(
            name=name,
            type=account_type,
            provider=provider,
            initial_balance=initial_balance,
        )
        await self._storage.add_account(account)
        await self._audit.log(AuditEventBuilder.account_created(account.id, account.name))
        return account

    async def update_account(self, account_id: str, **changes) -> Account:
        """
        Apply field changes to an account and store it.

        The id can not be changed. Changing initial_balance re-bases every
        derived balance of this account.

        Raises:
            NotFoundError: No account with this id
        """
        current = await self._storage.get_account(account_id)
        if current is None:
            raise NotFoundError(f"Account not found: {account_id}")

        changes.pop("id", None)
        updated = Account.model_validate({**current.model_dump(), **changes})
        await self._storage.update_account(updated)
        return updated

    async def count_linked_transactions(self, account_id: str) -> int:
        transactions = await self._storage.list_transactions()
        return sum(
            1 for tx in transactions
            if account_id in (tx.account_id, tx.to_account_id, tx.from_account_id)
        )

    async def delete_account(self, account_id: str) -> bool:
        """
        Delete an account that no transaction references.

        Returns:
            True if deleted, False if it did not exist

        Raises:
            AccountInUseError: Transactions still reference the account
        """
        linked = await self.count_linked_transactions(account_id)
        if linked:
            await self._audit.log(
                AuditEventBuilder.account_delete_blocked(account_id, linked)
            )
            raise AccountInUseError(account_id, linked)

        deleted = await self._storage.delete_account(account_id)
        if deleted:
            await self._audit.log(AuditEventBuilder.account_deleted(account_id))
        return deleted

    async def ensure_default_account(self) -> Optional[Account]:
        """
        Create the default cash account for a user with no accounts.

        Returns:
            The new account, or None when the user already has accounts
        """
        if await self._storage.list_accounts():
            return None

        logger.info("creating_default_account", name=self._settings.default_account_name)
        return await self.create_account(
            name=self._settings.default_account_name,
            account_type=AccountType.CASH,
            provider=self._settings.default_account_name,
        )
