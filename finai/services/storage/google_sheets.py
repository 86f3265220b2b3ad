"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can view and fix their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for a personal ledger)
- No multi-row transactions: a transfer's two legs go through ONE
  append_rows call so they land together or not at all
- Limited query capabilities (we filter in Python)

The implementation follows the abstract interface, so the ledger math never
knows where its rows came from.
"""

import json
from datetime import date, datetime
from typing import Optional
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from finai.config import GoogleSheetsSettings, get_settings
from finai.models.audit import AuditEvent, AuditEventType, AuditSeverity
from finai.models.ledger import (
    Account,
    AccountType,
    Budget,
    BudgetPeriod,
    LineItem,
    ReconciliationData,
    Transaction,
    TransactionType,
)
from finai.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger(__name__)

ACCOUNT_COLUMNS = [
    "id",
    "name",
    "type",
    "provider",
    "initial_balance",
    "is_active",
]

TRANSACTION_COLUMNS = [
    "id",
    "type",
    "amount",
    "category",
    "description",
    "date",
    "timestamp",
    "account_id",
    "to_account_id",
    "from_account_id",
    "merchant",
    "items_json",
    "is_reconciliation",
    "reconciliation_json",
]

BUDGET_COLUMNS = [
    "id",
    "category",
    "amount",
    "period",
]

SETTINGS_COLUMNS = [
    "key",
    "value_json",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]

CATEGORIES_KEY = "categories"


def _cell_getter(row: list):
    """Read cells by index, treating missing and blank cells alike."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_accounts_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.accounts_sheet_name, ACCOUNT_COLUMNS)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(
            self._settings.transactions_sheet_name,
            TRANSACTION_COLUMNS,
            rows=5000,
        )

    def get_budgets_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.budgets_sheet_name, BUDGET_COLUMNS)

    def get_settings_sheet(self) -> gspread.Worksheet:
        return self._get_or_create(self._settings.settings_sheet_name, SETTINGS_COLUMNS, rows=100)

    def get_audit_sheet(self) -> gspread.Worksheet:
        # More rows for audit log
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, rows=5000)


def _find_row(sheet: gspread.Worksheet, key: str) -> Optional[int]:
    """1-based sheet row whose first cell equals key (row 1 is the header)."""
    for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
        if row and row[0] == key:
            return idx
    return None


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One worksheet per collection, one record per row.
    Nested fields (line items, reconciliation snapshot) are JSON-serialized.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    def _account_to_row(self, account: Account) -> list:
        return [
            account.id,
            account.name,
            account.type.value,
            account.provider,
            str(account.initial_balance),
            str(account.is_active),
        ]

    def _row_to_account(self, row: list) -> Account:
        safe_get = _cell_getter(row)
        return Account(
            id=safe_get(0),
            name=safe_get(1),
            type=AccountType(safe_get(2, AccountType.CASH.value)),
            provider=safe_get(3),
            initial_balance=int(safe_get(4, "0")),
            is_active=safe_get(5, "True").lower() == "true",
        )

    def _transaction_to_row(self, tx: Transaction) -> list:
        return [
            tx.id,
            tx.type.value,
            str(tx.amount),
            tx.category,
            tx.description,
            tx.date.isoformat(),
            tx.timestamp.isoformat(),
            tx.account_id,
            tx.to_account_id or "",
            tx.from_account_id or "",
            tx.merchant or "",
            json.dumps([item.model_dump() for item in tx.items]) if tx.items else "",
            str(tx.is_reconciliation),
            json.dumps(tx.reconciliation_data.model_dump()) if tx.reconciliation_data else "",
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        safe_get = _cell_getter(row)

        items = []
        items_json = safe_get(11)
        if items_json:
            items = [LineItem(**item) for item in json.loads(items_json)]

        reconciliation_data = None
        reconciliation_json = safe_get(13)
        if reconciliation_json:
            reconciliation_data = ReconciliationData(**json.loads(reconciliation_json))

        return Transaction(
            id=safe_get(0),
            type=TransactionType(safe_get(1)),
            amount=int(safe_get(2)),
            category=safe_get(3),
            description=safe_get(4),
            date=date.fromisoformat(safe_get(5)),
            timestamp=datetime.fromisoformat(safe_get(6)),
            account_id=safe_get(7),
            to_account_id=safe_get(8) or None,
            from_account_id=safe_get(9) or None,
            merchant=safe_get(10) or None,
            items=items,
            is_reconciliation=safe_get(12).lower() == "true",
            reconciliation_data=reconciliation_data,
        )

    def _budget_to_row(self, budget: Budget) -> list:
        return [
            budget.id,
            budget.category,
            str(budget.amount),
            budget.period.value,
        ]

    def _row_to_budget(self, row: list) -> Budget:
        safe_get = _cell_getter(row)
        return Budget(
            id=safe_get(0),
            category=safe_get(1),
            amount=int(safe_get(2)),
            period=BudgetPeriod(safe_get(3, BudgetPeriod.MONTHLY.value)),
        )

    def _read_rows(self, sheet: gspread.Worksheet, parse, kind: str) -> list:
        records = []
        for row in sheet.get_all_values()[1:]:  # Skip header
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(parse(row))
            except Exception as e:
                # A hand-edited row must not take the whole ledger down
                logger.warning("malformed_row_skipped", kind=kind, row_id=row[0], error=str(e))
        return records

    # -------------------------------------------------------------------------
    # Accounts
    # -------------------------------------------------------------------------

    async def list_accounts(self) -> list[Account]:
        try:
            sheet = self._client.get_accounts_sheet()
            return self._read_rows(sheet, self._row_to_account, "account")
        except Exception as e:
            raise StorageError(f"Failed to list accounts: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def add_account(self, account: Account) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            sheet.append_row(self._account_to_row(account), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save account: {e}")

    async def update_account(self, account: Account) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            idx = _find_row(sheet, account.id)
            if idx is None:
                raise NotFoundError(f"Account not found: {account.id}")

            for col_idx, value in enumerate(self._account_to_row(account), start=1):
                sheet.update_cell(idx, col_idx, value)
            return True
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update account: {e}")

    async def delete_account(self, account_id: str) -> bool:
        try:
            sheet = self._client.get_accounts_sheet()
            idx = _find_row(sheet, account_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete account: {e}")

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self) -> list[Transaction]:
        try:
            sheet = self._client.get_transactions_sheet()
            transactions = self._read_rows(sheet, self._row_to_transaction, "transaction")
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

        # Sort by timestamp descending (newest first)
        transactions.sort(key=lambda tx: tx.timestamp, reverse=True)
        return transactions

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def add_transactions(self, transactions: list[Transaction]) -> bool:
        """
        Append transactions in one call.

        Ids already on the sheet are skipped, so a retry after a write that
        landed but reported failure does not duplicate transfer legs.
        """
        if not transactions:
            return True
        try:
            sheet = self._client.get_transactions_sheet()
            existing = {row[0] for row in sheet.get_all_values()[1:] if row}
            rows = [
                self._transaction_to_row(tx)
                for tx in transactions
                if tx.id not in existing
            ]
            if not rows:
                logger.info("transactions_already_saved", count=len(transactions))
                return True
            sheet.append_rows(rows, value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to save transactions: {e}")

    async def delete_transaction(self, transaction_id: str) -> bool:
        try:
            sheet = self._client.get_transactions_sheet()
            idx = _find_row(sheet, transaction_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete transaction: {e}")

    # -------------------------------------------------------------------------
    # Budgets
    # -------------------------------------------------------------------------

    async def list_budgets(self) -> list[Budget]:
        try:
            sheet = self._client.get_budgets_sheet()
            return self._read_rows(sheet, self._row_to_budget, "budget")
        except Exception as e:
            raise StorageError(f"Failed to list budgets: {e}")

    async def save_budget(self, budget: Budget) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            row = self._budget_to_row(budget)
            idx = _find_row(sheet, budget.id)
            if idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                for col_idx, value in enumerate(row, start=1):
                    sheet.update_cell(idx, col_idx, value)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save budget: {e}")

    async def delete_budget(self, budget_id: str) -> bool:
        try:
            sheet = self._client.get_budgets_sheet()
            idx = _find_row(sheet, budget_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete budget: {e}")

    # -------------------------------------------------------------------------
    # Settings
    # -------------------------------------------------------------------------

    async def get_categories(self) -> Optional[list[str]]:
        try:
            sheet = self._client.get_settings_sheet()
            for row in sheet.get_all_values()[1:]:
                if row and row[0] == CATEGORIES_KEY and len(row) > 1 and row[1]:
                    return [str(c) for c in json.loads(row[1])]
            return None
        except Exception as e:
            raise StorageError(f"Failed to read categories: {e}")

    async def save_categories(self, categories: list[str]) -> bool:
        try:
            sheet = self._client.get_settings_sheet()
            value = json.dumps(list(categories))
            idx = _find_row(sheet, CATEGORIES_KEY)
            if idx is None:
                sheet.append_row([CATEGORIES_KEY, value], value_input_option="RAW")
            else:
                sheet.update_cell(idx, 2, value)
            return True
        except Exception as e:
            raise StorageError(f"Failed to save categories: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _cell_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _matching_events(self, predicate) -> list[AuditEvent]:
        sheet = self._client.get_audit_sheet()
        events = []
        for row in sheet.get_all_values()[1:]:
            if not row or not row[0] or not predicate(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("malformed_audit_row_skipped", row_id=row[0], error=str(e))
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning("audit_write_failed", event_type=event.event_type.value, error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = self._matching_events(
                lambda row: len(row) > 6 and row[6] == str(correlation_id)
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort chronologically
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        try:
            events = self._matching_events(
                lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id
            )
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._matching_events(lambda row: True)
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
