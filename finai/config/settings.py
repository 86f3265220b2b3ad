"""
Configuration Management for FinAI Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Components take their settings object through the constructor; get_settings()
only supplies the default when a caller does not pass one.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CATEGORIES = [
    "Food & Drink",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Bills",
    "Transfer",
    "Other",
    "Salary",
    "Investment",
    "Health",
    "Education",
]


class AISettings(BaseSettings):
    """Hosted LLM configuration (Gemini)."""

    model_config = SettingsConfigDict(
        env_prefix="FINAI_AI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )

    # Model per workload
    fast_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for extraction and short answers"
    )
    smart_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for advice and analysis"
    )
    vision_model: str = Field(
        default="gemini-2.0-flash",
        description="Model for receipt photos"
    )

    # Retry policy
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per completion call"
    )
    backoff_base_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="First backoff delay; doubles on each retry"
    )
    backoff_max_seconds: float = Field(
        default=4.0,
        ge=0.0,
        description="Upper bound for a single backoff delay"
    )
    timeout_seconds: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-call timeout"
    )

    # Generation
    extraction_temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Temperature for transaction extraction"
    )
    conversational_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Temperature for advice, answers and reports"
    )
    max_tokens: int = Field(
        default=2000,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    accounts_sheet_name: str = Field(default="Accounts")
    transactions_sheet_name: str = Field(default="Transactions")
    budgets_sheet_name: str = Field(default="Budgets")
    settings_sheet_name: str = Field(default="Settings")
    audit_sheet_name: str = Field(default="AuditLog")

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class LedgerSettings(BaseSettings):
    """
    Ledger, analytics and prompt settings.

    Every field has a default so the deterministic engine runs
    without any environment configured.
    """

    model_config = SettingsConfigDict(
        env_prefix="FINAI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    currency_prefix: str = Field(
        default="Rp",
        description="Prefix used when amounts are rendered into text"
    )
    default_categories: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CATEGORIES),
        description="Categories used until the user customizes them"
    )
    fallback_category: str = Field(
        default="Other",
        description="Category used when the model names an unknown one"
    )
    transfer_category: str = Field(default="Transfer")
    default_account_name: str = Field(
        default="Cash",
        description="Name of the account auto-created for new users"
    )

    # Transfers
    large_transfer_ratio: float = Field(
        default=0.5,
        gt=0.0,
        le=1.0,
        description="Share of the source balance above which a transfer warns"
    )

    # Anomaly detection
    anomaly_lookback_days: int = Field(default=90, ge=1)
    anomaly_min_sample: int = Field(default=10, ge=1)
    anomaly_z_threshold: float = Field(default=2.0, gt=0.0)
    anomaly_high_z_threshold: float = Field(default=3.0, gt=0.0)

    # Recurring detection
    recurring_min_occurrences: int = Field(default=3, ge=2)
    recurring_amount_tolerance: float = Field(default=0.2, ge=0.0)

    # Budget alert thresholds (percent of budget)
    budget_warning_percent: float = Field(default=75.0)
    budget_critical_percent: float = Field(default=90.0)
    budget_over_percent: float = Field(default=100.0)

    # Prompt context sizes
    recent_transactions_short: int = Field(
        default=20,
        description="History lines for query and planning prompts"
    )
    recent_transactions_long: int = Field(
        default=50,
        description="History lines for advice and analysis prompts"
    )

    # Reconciliation
    reconciliation_large_balance: int = Field(
        default=100_000_000,
        description="Actual balances above this trigger a confirmation warning"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def ai(self) -> AISettings:
        return AISettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an extra
    "<name>_error" entry for every section that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("ai", "google_sheets", "ledger"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
