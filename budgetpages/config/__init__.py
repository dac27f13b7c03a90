"""Configuration package."""

from budgetpages.config.settings import (
    AIModelSettings,
    AppSettings,
    MailSettings,
    MongoSettings,
    SecuritySettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AIModelSettings",
    "AppSettings",
    "MailSettings",
    "MongoSettings",
    "SecuritySettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
