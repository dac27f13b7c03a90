"""
Page, Day, Entry and Folder Models

A page is one week of tracking: exactly seven day slots, each holding
an ordered list of entries. Folders form a per-user tree that pages
can be filed into.

DAY INDEX CONVENTION:
- Page slots are numbered 1..7 (slot 1 = Monday ... slot 7 = Sunday).
- Modulo-7 arithmetic elsewhere treats 0 as Sunday.
- ``slot_for_index`` is the ONLY place the two meet: 0 maps to slot 7,
  1..7 map to themselves.
"""

from datetime import datetime
from typing import Optional

from bson import ObjectId
from pydantic import Field, field_validator

from budgetpages.models.base import DocumentModel


DAYS_PER_PAGE = 7
FIRST_SLOT = 1
LAST_SLOT = 7

# Sunday-first so that ``slot % 7`` indexes it directly.
WEEKDAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


def slot_for_index(index: int) -> int:
    """Map a modulo-7 day index (0 = Sunday) onto a page slot (1..7)."""
    return (index % DAYS_PER_PAGE) or DAYS_PER_PAGE


def weekday_name(slot: int) -> str:
    return WEEKDAY_NAMES[slot % DAYS_PER_PAGE]


def is_valid_slot(slot: int) -> bool:
    return FIRST_SLOT <= slot <= LAST_SLOT


def new_object_id() -> str:
    return str(ObjectId())


class Entry(DocumentModel):
    """A single expense on a day."""

    id: str = Field(default_factory=new_object_id, alias="_id")
    title: str = "New Entry"
    amount: float = 0.0
    description: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator('description', 'category', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return v or ""


class Day(DocumentModel):
    """One of the seven slots on a page."""

    day_index: int
    entries: list[Entry] = Field(default_factory=list)

    @property
    def total(self) -> float:
        return sum(entry.amount for entry in self.entries)


def new_days() -> list[Day]:
    """Seven empty slots, indexed 1..7."""
    return [Day(day_index=i) for i in range(FIRST_SLOT, LAST_SLOT + 1)]


class Page(DocumentModel):
    """A week of expense tracking."""

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    folder_id: Optional[str] = None
    title: str = "Untitled Page"
    icon: str = "📄"
    days: list[Day] = Field(default_factory=new_days)
    order: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def get_day(self, slot: int) -> Optional[Day]:
        for day in self.days:
            if day.day_index == slot:
                return day
        return None

    def to_document(self) -> dict:
        # folderId is meaningful when null (page sits at the root)
        doc = super().to_document()
        doc.setdefault("folderId", None)
        return doc


class Folder(DocumentModel):
    """A node in the user's folder tree."""

    id: Optional[str] = Field(default=None, alias="_id")
    user_id: str
    name: str = "New Folder"
    parent_folder_id: Optional[str] = None
    order: int = 0
    is_expanded: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def to_document(self) -> dict:
        doc = super().to_document()
        doc.setdefault("parentFolderId", None)
        return doc
