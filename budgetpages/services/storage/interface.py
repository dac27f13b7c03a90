"""
Abstract Storage Interface

DESIGN DECISION: Business logic talks to these interfaces, never to
pymongo directly. This allows us to:
1. Run the flows against in-memory fakes in tests
2. Keep document-shape details (camelCase keys, ObjectIds) in one place
3. Swap the document store without touching the summary flows

Every read and write is scoped by user id. A record owned by another
user is indistinguishable from a missing one.

Partial updates take a mapping of document (camelCase) field names,
the same names the HTTP layer accepts.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Mapping, Optional

from budgetpages.models import (
    AISummary,
    Entry,
    Folder,
    Page,
    SummaryType,
    User,
    UserSettings,
)


class _Unset:
    """Marker for 'argument not given', distinct from None."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


class UserStorageInterface(ABC):
    """Abstract interface for user records."""

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Retrieve a user by (case-insensitive) email.

        Returns:
            The user if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    async def create_if_missing(
        self,
        name: str,
        email: str,
        image: Optional[str] = None,
    ) -> User:
        """
        Return the user with this email, creating it on first sign-in.

        New users start with no AI keys, a zero budget, OpenAI as the
        preferred provider and onboarding not completed.
        """
        pass

    @abstractmethod
    async def update_profile(
        self,
        email: str,
        name: Optional[str] = None,
        settings: Optional[UserSettings] = None,
        onboarding_completed: Optional[bool] = None,
        ai_keys: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Optional[User]:
        """
        Apply a partial profile update.

        Args:
            email: Whose profile
            name: New display name
            settings: Replaces the whole settings object
            onboarding_completed: New onboarding flag
            ai_keys: Already-encrypted keys per provider. A provider
                mapped to None is removed; providers not mentioned are
                left as they are.

        Returns:
            The updated user, None if no such user
        """
        pass

    @abstractmethod
    async def list_weekly_report_recipients(self) -> list[User]:
        """Users who opted in to the weekly email."""
        pass

    @abstractmethod
    async def clear_legacy_fields(self, email: str) -> bool:
        """
        Remove root-level ``monthlyBudget``/``fixedExpenses`` left over
        from older records. The values under ``settings`` are the ones
        in use.

        Returns:
            True if a user matched
        """
        pass


class FolderStorageInterface(ABC):
    """Abstract interface for the per-user folder tree."""

    @abstractmethod
    async def list_folders(self, user_id: str) -> list[Folder]:
        """All of the user's folders, by ``order``."""
        pass

    @abstractmethod
    async def get_folder(self, user_id: str, folder_id: str) -> Optional[Folder]:
        pass

    @abstractmethod
    async def create_folder(
        self,
        user_id: str,
        name: Optional[str] = None,
        parent_folder_id: Optional[str] = None,
    ) -> Folder:
        """Create a folder placed after its last sibling."""
        pass

    @abstractmethod
    async def update_folder(
        self,
        user_id: str,
        folder_id: str,
        changes: Mapping[str, Any],
    ) -> Optional[Folder]:
        """
        Set ``name``, ``parentFolderId``, ``order`` and/or ``isExpanded``.

        Returns:
            The updated folder, None if not found
        """
        pass

    @abstractmethod
    async def delete_folder_recursive(self, user_id: str, folder_id: str) -> int:
        """
        Delete a folder, its descendant folders, and every page filed
        in any of them (depth first).

        Returns:
            Number of folders deleted (0 if not found)
        """
        pass


class PageStorageInterface(ABC):
    """Abstract interface for pages and the entries on them."""

    @abstractmethod
    async def list_pages(self, user_id: str, folder_id: Any = UNSET) -> list[Page]:
        """
        The user's pages by ``order``.

        Args:
            folder_id: UNSET for every page, None for pages at the
                root, or a folder id
        """
        pass

    @abstractmethod
    async def get_page(self, user_id: str, page_id: str) -> Optional[Page]:
        pass

    @abstractmethod
    async def create_page(
        self,
        user_id: str,
        folder_id: Optional[str] = None,
        title: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Page:
        """Create a page with seven empty days, after its last sibling."""
        pass

    @abstractmethod
    async def update_page(
        self,
        user_id: str,
        page_id: str,
        changes: Mapping[str, Any],
    ) -> Optional[Page]:
        """
        Set ``title``, ``icon``, ``folderId``, ``order`` and/or ``days``
        (``days`` replaces all seven slots).

        Returns:
            The updated page, None if not found
        """
        pass

    @abstractmethod
    async def delete_page(self, user_id: str, page_id: str) -> bool:
        pass

    @abstractmethod
    async def list_pages_updated_since(
        self,
        user_id: str,
        since: datetime,
    ) -> list[Page]:
        pass

    @abstractmethod
    async def add_entry(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        entry: Entry,
    ) -> Optional[Page]:
        """
        Append an entry to a day.

        Returns:
            The updated page, None if the page or day was not found
        """
        pass

    @abstractmethod
    async def update_entry(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        entry_id: str,
        changes: Mapping[str, Any],
    ) -> Optional[Page]:
        """
        Set ``title``, ``amount``, ``description``, ``category`` and/or
        ``tags`` on one entry. An unknown entry id leaves the page as is.

        Returns:
            The page, None if the page was not found
        """
        pass

    @abstractmethod
    async def delete_entry(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        entry_id: str,
    ) -> Optional[Page]:
        pass


class SummaryStorageInterface(ABC):
    """
    Abstract interface for stored AI summaries.

    At most one summary exists per (user, date, type).
    """

    @abstractmethod
    async def upsert_summary(self, summary: AISummary) -> AISummary:
        """
        Insert or replace the summary for ``summary.key``.

        Last write wins. ``createdAt`` is kept from the first write.
        """
        pass

    @abstractmethod
    async def list_summaries(
        self,
        user_id: str,
        summary_type: SummaryType,
        limit: int,
    ) -> list[AISummary]:
        """Newest ``date`` first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
