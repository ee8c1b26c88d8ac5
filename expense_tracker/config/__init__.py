"""Configuration package."""

from expense_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    IdentitySettings,
    OCRSettings,
    ReminderSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "IdentitySettings",
    "OCRSettings",
    "ReminderSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
