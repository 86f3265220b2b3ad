"""Configuration package."""

from finai.config.settings import (
    DEFAULT_CATEGORIES,
    AISettings,
    GoogleSheetsSettings,
    LedgerSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "DEFAULT_CATEGORIES",
    "AISettings",
    "GoogleSheetsSettings",
    "LedgerSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
