"""
Request bodies.

All bodies accept camelCase keys (as the web client sends them) as
well as snake_case. PATCH bodies are partial: only fields actually sent
are applied (``exclude_unset``), so an explicit null is an update.
"""

from typing import Optional

from pydantic import Field

from budgetpages.models import AIProvider, Day, DocumentModel, UserSettings


class DailySummaryRequest(DocumentModel):
    provider: Optional[str] = None
    page_id: Optional[str] = None
    day_index: Optional[int] = None


class WeeklySummaryRequest(DocumentModel):
    provider: Optional[str] = None


class FolderCreate(DocumentModel):
    name: Optional[str] = None
    parent_folder_id: Optional[str] = None


class FolderUpdate(DocumentModel):
    name: Optional[str] = None
    parent_folder_id: Optional[str] = None
    order: Optional[int] = None
    is_expanded: Optional[bool] = None


class PageCreate(DocumentModel):
    folder_id: Optional[str] = None
    title: Optional[str] = None
    icon: Optional[str] = None


class PageUpdate(DocumentModel):
    title: Optional[str] = None
    icon: Optional[str] = None
    folder_id: Optional[str] = None
    order: Optional[int] = None
    days: Optional[list[Day]] = None


class EntryCreate(DocumentModel):
    title: Optional[str] = None
    amount: float = Field(default=0.0, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: list[str] = Field(default_factory=list)


class EntryUpdate(DocumentModel):
    title: Optional[str] = None
    amount: Optional[float] = Field(default=None, ge=0)
    description: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str]] = None


class UserUpdate(DocumentModel):
    name: Optional[str] = None
    settings: Optional[UserSettings] = None
    onboarding_completed: Optional[bool] = None
    ai_keys: Optional[dict[AIProvider, Optional[str]]] = Field(default=None, alias="aiKeys")


def changes_of(body: DocumentModel) -> dict:
    """Fields the client actually sent, keyed by document name."""
    return body.model_dump(by_alias=True, exclude_unset=True)
