"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Each external collaborator (OCR provider, Google Sheets, identity provider,
reminder webhook) gets its own settings class with its own env prefix, so a
missing key for one service never blocks the others.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class OCRSettings(BaseSettings):
    """OCR.space receipt scanning configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OCR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        min_length=1,
        description="OCR.space API key"
    )
    endpoint: str = Field(
        default="https://api.ocr.space/parse/image",
        description="OCR parse endpoint"
    )
    language: str = Field(
        default="eng",
        description="Language hint sent with every request"
    )
    timeout_secs: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout for one OCR request"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets key-value storage configuration."""

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
    store_sheet_name: str = Field(
        default="ExpenseTracker",
        description="Worksheet holding the key/value rows"
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


class IdentitySettings(BaseSettings):
    """Hosted OIDC identity provider configuration."""

    model_config = SettingsConfigDict(
        env_prefix="OIDC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    authority: str = Field(
        ...,
        min_length=1,
        description="Issuer URL used for discovery"
    )
    client_id: str = Field(
        ...,
        min_length=1,
        description="OIDC client id"
    )
    domain: str = Field(
        ...,
        min_length=1,
        description="Hosted login domain, used to build the logout URL"
    )
    redirect_uri: str = Field(
        default="http://localhost:8501/oauth2callback",
        description="Where the provider sends the user after sign-in"
    )
    post_logout_redirect_uri: str = Field(
        default="http://localhost:8501/",
        description="Where the provider sends the user after sign-out"
    )
    scope: str = Field(
        default="openid email profile",
        description="Requested scopes"
    )

    @field_validator('domain')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class ReminderSettings(BaseSettings):
    """Expense reminder delivery configuration."""

    model_config = SettingsConfigDict(
        env_prefix="REMINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    webhook_url: Optional[str] = Field(
        default=None,
        description="Endpoint that sends reminder emails; log-only when unset"
    )
    timeout_secs: float = Field(
        default=10.0,
        gt=0,
        description="HTTP timeout for one reminder delivery"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Storage
    storage_backend: Literal["file", "memory", "google_sheets"] = Field(
        default="file",
        description="Which key-value store backs the profiles"
    )
    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory for the local JSON store"
    )
    default_profile: str = Field(
        default="Default",
        min_length=1,
        description="Profile created on first start"
    )

    # Receipt upload limits
    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum upload file size in MB"
    )
    supported_image_formats: str = Field(
        default="jpg,jpeg,png,webp",
        description="Comma-separated list of supported image formats"
    )
    max_receipt_dimension_px: int = Field(
        default=2000,
        ge=500,
        description="Receipts larger than this on their long side are downscaled"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_image_formats.split(",")]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def store_path(self) -> Path:
        return self.data_dir / "expense_tracker.json"


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
    def ocr(self) -> OCRSettings:
        return OCRSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def identity(self) -> IdentitySettings:
        return IdentitySettings()

    @property
    def reminders(self) -> ReminderSettings:
        return ReminderSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


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

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for each service that failed to load.
    """
    results = {}

    settings = get_settings()

    for name in ("ocr", "google_sheets", "identity", "reminders", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
