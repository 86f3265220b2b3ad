"""Tests for account and category services, in-memory storage and audit logging."""

from datetime import datetime

import pytest

from conftest import expense, make_tx

from finai.audit import AuditLogger, create_correlation_id
from finai.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finai.models.ledger import AccountType, TransactionType
from finai.services.accounts import AccountService
from finai.services.categories import CategoryService
from finai.services.storage import (
    AccountInUseError,
    InMemoryLedgerStorage,
    NotFoundError,
    StorageError,
)


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def account_service(storage, audit_logger, ledger_settings):
    return AccountService(storage, audit_logger, ledger_settings)


class TestInMemoryStorage:
    """Tests for InMemoryLedgerStorage."""

    @pytest.mark.asyncio
    async def test_transactions_newest_first(self, storage):
        older = expense(1_000, timestamp=datetime(2024, 6, 1, 9))
        newer = expense(2_000, timestamp=datetime(2024, 6, 2, 9))
        await storage.add_transactions([older, newer])

        listed = await storage.list_transactions()
        assert [tx.id for tx in listed] == [newer.id, older.id]

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, storage):
        accounts = await storage.list_accounts()
        accounts[0].name = "Changed"
        assert (await storage.get_account("acc-bca")).name == "BCA"

    @pytest.mark.asyncio
    async def test_fail_writes(self, storage):
        storage.fail_writes = True
        with pytest.raises(StorageError):
            await storage.add_transaction(expense(1_000))
        assert await storage.list_transactions() == []

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, storage):
        assert await storage.delete_transaction("nope") is False

    @pytest.mark.asyncio
    async def test_categories_absent_until_saved(self):
        storage = InMemoryLedgerStorage()
        assert await storage.get_categories() is None
        await storage.save_categories(["A"])
        assert await storage.get_categories() == ["A"]


class TestAccountService:
    """Tests for AccountService."""

    @pytest.mark.asyncio
    async def test_create_account_is_audited(self, account_service, audit_storage, storage):
        account = await account_service.create_account(
            "Mandiri", AccountType.BANK, provider="Mandiri", initial_balance=50_000
        )

        assert await storage.get_account(account.id) is not None
        assert audit_storage.events[-1].event_type == AuditEventType.ACCOUNT_CREATED
        assert audit_storage.events[-1].entity_id == account.id

    @pytest.mark.asyncio
    async def test_update_account(self, account_service):
        updated = await account_service.update_account(
            "acc-gopay", name="GoPay Main", id="hijack", initial_balance=0
        )
        assert updated.id == "acc-gopay"
        assert updated.name == "GoPay Main"
        assert updated.initial_balance == 0

    @pytest.mark.asyncio
    async def test_update_missing_account(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.update_account("acc-ghost", name="x")

    @pytest.mark.asyncio
    async def test_active_only(self, account_service):
        await account_service.update_account("acc-cash", is_active=False)
        active = await account_service.list_accounts(active_only=True)
        assert [a.id for a in active] == ["acc-bca", "acc-gopay"]

    @pytest.mark.asyncio
    async def test_delete_blocked_by_owned_transactions(
        self, account_service, storage, audit_storage
    ):
        await storage.add_transaction(expense(1_000, account_id="acc-cash"))

        with pytest.raises(AccountInUseError) as exc_info:
            await account_service.delete_account("acc-cash")

        assert exc_info.value.linked == 1
        assert await storage.get_account("acc-cash") is not None
        assert audit_storage.events[-1].event_type == AuditEventType.ACCOUNT_DELETE_BLOCKED

    @pytest.mark.asyncio
    async def test_delete_blocked_by_transfer_counterpart(self, account_service, storage):
        leg = make_tx(
            TransactionType.EXPENSE, 1_000, "acc-bca",
            category="Transfer", to_account_id="acc-cash",
        )
        await storage.add_transaction(leg)

        with pytest.raises(AccountInUseError):
            await account_service.delete_account("acc-cash")

    @pytest.mark.asyncio
    async def test_delete_unused_account(self, account_service, storage, audit_storage):
        assert await account_service.delete_account("acc-cash") is True
        assert await storage.get_account("acc-cash") is None
        assert audit_storage.events[-1].event_type == AuditEventType.ACCOUNT_DELETED

    @pytest.mark.asyncio
    async def test_default_account_only_for_new_users(self, ledger_settings, audit_logger):
        empty = InMemoryLedgerStorage()
        service = AccountService(empty, audit_logger, ledger_settings)

        cash = await service.ensure_default_account()
        assert cash.name == "Cash"
        assert cash.type == AccountType.CASH
        assert await service.ensure_default_account() is None
        assert len(await empty.list_accounts()) == 1


class TestCategoryService:
    """Tests for CategoryService."""

    @pytest.fixture
    def service(self, ledger_settings):
        return CategoryService(InMemoryLedgerStorage(), ledger_settings)

    @pytest.mark.asyncio
    async def test_defaults_saved_on_first_read(self, service, ledger_settings):
        categories = await service.get_categories()
        assert categories == ledger_settings.default_categories
        assert await service._storage.get_categories() == categories

    @pytest.mark.asyncio
    async def test_transfer_always_valid(self, ledger_settings):
        service = CategoryService(
            InMemoryLedgerStorage(categories=["Food & Drink", "Other"]), ledger_settings
        )
        assert await service.valid_categories() == ["Food & Drink", "Other", "Transfer"]

    @pytest.mark.asyncio
    async def test_add_ignores_duplicates_and_blanks(self, service):
        before = await service.get_categories()
        assert await service.add_category("  food & drink ") == before
        assert await service.add_category("   ") == before

        after = await service.add_category("Pets")
        assert after[-1] == "Pets"

    @pytest.mark.asyncio
    async def test_delete_ignores_case(self, service):
        remaining = await service.delete_category("shopping")
        assert "Shopping" not in remaining

    @pytest.mark.asyncio
    async def test_fallback_category_cannot_be_deleted(self, service):
        assert "Other" in await service.delete_category("OTHER")


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_log_persists(self, audit_logger, audit_storage):
        event = AuditEvent(event_type=AuditEventType.TRANSACTION_SAVED, description="saved")
        assert await audit_logger.log(event) is True
        assert audit_storage.events == [event]

    @pytest.mark.asyncio
    async def test_without_storage(self):
        event = AuditEvent(event_type=AuditEventType.TRANSACTION_SAVED, description="saved")
        assert await AuditLogger().log(event) is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_swallowed(self):
        class BrokenAuditStorage:
            async def append_event(self, event):
                raise RuntimeError("sheet unavailable")

        logger = AuditLogger(BrokenAuditStorage())
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="x")
        assert await logger.log(event) is False

    @pytest.mark.asyncio
    async def test_ai_call_failed_event(self, audit_logger, audit_storage):
        correlation_id = create_correlation_id()
        await audit_logger.log_ai_call_failed("gemini-2.0-flash", 3, "timeout", correlation_id)

        event = audit_storage.events[0]
        assert event.event_type == AuditEventType.AI_CALL_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.correlation_id == correlation_id

    @pytest.mark.asyncio
    async def test_events_by_correlation_id(self, audit_logger, audit_storage):
        first, second = create_correlation_id(), create_correlation_id()
        await audit_logger.log_error("ValueError", "bad", correlation_id=first)
        await audit_logger.log_external_service_error("google_sheets", "down", second)

        events = await audit_storage.get_events_by_correlation_id(first)
        assert len(events) == 1
        assert events[0].event_type == AuditEventType.SYSTEM_ERROR
