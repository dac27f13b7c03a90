"""
Data Models Package

This package contains all Pydantic models used in Budget Pages.
All data flowing through the system must conform to these schemas.
"""

from budgetpages.models.base import DocumentModel
from budgetpages.models.page import (
    DAYS_PER_PAGE,
    Day,
    Entry,
    Folder,
    Page,
    is_valid_slot,
    new_days,
    slot_for_index,
    weekday_name,
)
from budgetpages.models.summary import (
    AIResponse,
    AISummary,
    CronReport,
    SummaryType,
)
from budgetpages.models.user import (
    AIProvider,
    DEFAULT_PROVIDER,
    EmailSettings,
    FixedExpense,
    User,
    UserSettings,
)

__all__ = [
    "DocumentModel",
    # Page models
    "DAYS_PER_PAGE",
    "Day",
    "Entry",
    "Folder",
    "Page",
    "is_valid_slot",
    "new_days",
    "slot_for_index",
    "weekday_name",
    # Summary models
    "AIResponse",
    "AISummary",
    "CronReport",
    "SummaryType",
    # User models
    "AIProvider",
    "DEFAULT_PROVIDER",
    "EmailSettings",
    "FixedExpense",
    "User",
    "UserSettings",
]
