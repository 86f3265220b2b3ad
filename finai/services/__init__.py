"""Services package."""

from finai.services.ai import (
    AIGateway,
    AIGatewayError,
    CompletionClient,
    EmptyCompletionError,
    GeminiCompletionClient,
    RetryPolicy,
)
from finai.services.storage import (
    AccountInUseError,
    AuditStorageInterface,
    ConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)

__all__ = [
    # AI services
    "AIGateway",
    "AIGatewayError",
    "CompletionClient",
    "EmptyCompletionError",
    "GeminiCompletionClient",
    "RetryPolicy",
    # Storage services
    "AccountInUseError",
    "AuditStorageInterface",
    "ConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsLedgerStorage",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
]
