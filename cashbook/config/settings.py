"""
Configuration Management for Cashbook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage backend is in use and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Collection store configuration."""

    model_config = SettingsConfigDict(
        env_prefix="CASHBOOK_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["memory", "json", "google_sheets"] = Field(
        default="json",
        description="Which backend persists the collections"
    )
    data_dir: Path = Field(
        default=Path("data"),
        description="Directory for the JSON file backend"
    )
    key_namespace: str = Field(
        default="controle-financeiro",
        min_length=1,
        description="Prefix for every collection key"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
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
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

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
    Business rule knobs.

    Defaults reproduce the behaviour of the original spreadsheet workflow.
    """

    model_config = SettingsConfigDict(
        env_prefix="CASHBOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    category_alert_threshold_percent: float = Field(
        default=30.0,
        gt=0.0,
        le=100.0,
        description="A category above this share of the month raises an alert"
    )
    projection_window_months: int = Field(
        default=3,
        ge=1,
        le=12,
        description="Trailing months averaged for the next-month projection"
    )
    paid_amount_edit_policy: Literal["reject", "ignore"] = Field(
        default="reject",
        description="What to do when the amount of a paid payable is edited"
    )
    seed_expenses_on_first_run: bool = Field(
        default=True,
        description="Populate example expenses when the collection is empty"
    )
    enforce_account_funds: bool = Field(
        default=True,
        description="Refuse bank-account settlements above the current balance"
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

    # Loaded lazily so that a missing Google configuration only matters
    # when the google_sheets backend is selected

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

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

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus `<name>_error`
    entries for the sections that failed. Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    def check(name: str) -> None:
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    check("storage")
    check("ledger")

    # Google credentials only matter when that backend is selected
    if results["storage"] and settings.storage.backend == "google_sheets":
        check("google_sheets")

    return results
