"""
MongoDB Storage Implementation

DESIGN DECISION: Plain pymongo behind the async storage interfaces.
Each collection gets its own storage class; all of them share one
MongoClientWrapper.

DOCUMENT SHAPE:
- Top-level ``_id`` is an ObjectId; models carry it as a string.
- References (``userId``, ``folderId``, ``parentFolderId``) are stored
  as strings.
- Entry ids inside ``days`` are strings.
- Older records may hold ObjectIds anywhere; they are stringified on read.

Entry edits rewrite the page's ``days`` array (read, modify, ``$set``)
instead of positional array operators.
"""

from datetime import datetime
from typing import Any, Mapping, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from tenacity import retry, stop_after_attempt, wait_exponential

from budgetpages.config import MongoSettings, get_settings
from budgetpages.log import get_logger
from budgetpages.models import (
    AIProvider,
    AISummary,
    Day,
    Entry,
    Folder,
    Page,
    SummaryType,
    User,
    UserSettings,
)
from budgetpages.services.storage.interface import (
    UNSET,
    ConnectionError,
    FolderStorageInterface,
    PageStorageInterface,
    StorageError,
    SummaryStorageInterface,
    UserStorageInterface,
)


USERS = "users"
FOLDERS = "folders"
PAGES = "pages"
SUMMARIES = "aisummaries"

FOLDER_FIELDS = ("name", "parentFolderId", "order", "isExpanded")
PAGE_FIELDS = ("title", "icon", "folderId", "order", "days")
ENTRY_FIELDS = ("title", "amount", "description", "category", "tags")
LEGACY_USER_FIELDS = ("monthlyBudget", "fixedExpenses")


logger = get_logger(__name__)


def _object_id(value: Optional[str]) -> Optional[ObjectId]:
    """Parse an id from a URL; malformed ids simply match nothing."""
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def _clean(value: Any) -> Any:
    """Stringify ObjectIds anywhere in a document."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _clean(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_clean(v) for v in value]
    return value


def _pick(changes: Mapping[str, Any], allowed: tuple[str, ...]) -> dict:
    return {k: v for k, v in changes.items() if k in allowed}


def _dump_days(days: Any) -> list[dict]:
    """Validate a full ``days`` replacement and dump it for storage."""
    return [
        (day if isinstance(day, Day) else Day.model_validate(day)).model_dump(by_alias=True)
        for day in days
    ]


class MongoClientWrapper:
    """
    Low-level MongoDB client wrapper.

    Handles connection with retry and hands out collections.
    A preconnected client (e.g. mongomock) may be injected.
    """

    def __init__(
        self,
        settings: Optional[MongoSettings] = None,
        client: Optional[MongoClient] = None,
    ):
        self._settings = settings or get_settings().mongo
        self._client = client
        self._database: Optional[Database] = None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> MongoClient:
        """Establish the connection and check the server answers."""
        if self._client is None:
            try:
                client = MongoClient(
                    self._settings.uri,
                    serverSelectionTimeoutMS=self._settings.server_selection_timeout_ms,
                )
                client.admin.command("ping")
            except PyMongoError as e:
                raise ConnectionError(f"Failed to connect to MongoDB: {e}")
            self._client = client
            logger.info("mongo_connected", database=self._settings.database_name)
        return self._client

    def get_database(self) -> Database:
        if self._database is None:
            self._database = self.connect()[self._settings.database_name]
        return self._database

    def collection(self, name: str) -> Collection:
        return self.get_database()[name]

    def ensure_indexes(self) -> None:
        """Indexes the queries below rely on."""
        db = self.get_database()
        db[USERS].create_index("email", unique=True)
        db[FOLDERS].create_index([("userId", ASCENDING), ("order", ASCENDING)])
        db[PAGES].create_index([("userId", ASCENDING), ("order", ASCENDING)])
        db[PAGES].create_index([("userId", ASCENDING), ("updatedAt", DESCENDING)])
        db[SUMMARIES].create_index(
            [("userId", ASCENDING), ("date", ASCENDING), ("type", ASCENDING)],
            unique=True,
        )

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._database = None


class _MongoStorage:
    """Shared plumbing: collection lookup and error wrapping."""

    collection_name: str

    def __init__(self, client: Optional[MongoClientWrapper] = None):
        self._client = client or MongoClientWrapper()

    @property
    def _collection(self) -> Collection:
        return self._client.collection(self.collection_name)

    def _storage_error(self, action: str, error: Exception) -> StorageError:
        logger.error("storage_error", collection=self.collection_name, action=action, error=str(error))
        return StorageError(f"Failed to {action}: {error}")


class MongoUserStorage(_MongoStorage, UserStorageInterface):
    """User records in the ``users`` collection."""

    collection_name = USERS

    def _to_user(self, doc: Optional[dict]) -> Optional[User]:
        if doc is None:
            return None
        return User.model_validate(_clean(doc))

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            doc = self._collection.find_one({"email": email.strip().lower()})
        except PyMongoError as e:
            raise self._storage_error("get user", e)
        return self._to_user(doc)

    async def get_by_id(self, user_id: str) -> Optional[User]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one({"_id": oid})
        except PyMongoError as e:
            raise self._storage_error("get user", e)
        return self._to_user(doc)

    async def create_if_missing(
        self,
        name: str,
        email: str,
        image: Optional[str] = None,
    ) -> User:
        fresh = User(name=name or "", email=email, image=image)
        on_insert = fresh.model_dump(by_alias=True, exclude={"id", "email"})
        try:
            doc = self._collection.find_one_and_update(
                {"email": fresh.email},
                {"$setOnInsert": on_insert},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._storage_error("create user", e)
        return self._to_user(doc)

    async def update_profile(
        self,
        email: str,
        name: Optional[str] = None,
        settings: Optional[UserSettings] = None,
        onboarding_completed: Optional[bool] = None,
        ai_keys: Optional[Mapping[str, Optional[str]]] = None,
    ) -> Optional[User]:
        to_set: dict[str, Any] = {"updatedAt": datetime.utcnow()}
        to_unset: dict[str, str] = {}

        if name:
            to_set["name"] = name
        if settings is not None:
            to_set["settings"] = settings.model_dump(by_alias=True)
        if onboarding_completed is not None:
            to_set["onboardingCompleted"] = onboarding_completed
        for provider, encrypted in (ai_keys or {}).items():
            # provider names become dotted paths; unknown ones raise ValueError
            path = f"aiKeys.{AIProvider(provider).value}"
            if encrypted:
                to_set[path] = encrypted
            else:
                to_unset[path] = ""

        update: dict[str, Any] = {"$set": to_set}
        if to_unset:
            update["$unset"] = to_unset

        try:
            doc = self._collection.find_one_and_update(
                {"email": email.strip().lower()},
                update,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._storage_error("update user", e)
        return self._to_user(doc)

    async def list_weekly_report_recipients(self) -> list[User]:
        try:
            docs = list(self._collection.find({"emailSettings.weeklyReportsEnabled": True}))
        except PyMongoError as e:
            raise self._storage_error("list report recipients", e)
        return [self._to_user(doc) for doc in docs]

    async def clear_legacy_fields(self, email: str) -> bool:
        try:
            result = self._collection.update_one(
                {"email": email.strip().lower()},
                {"$unset": {field: "" for field in LEGACY_USER_FIELDS}},
            )
        except PyMongoError as e:
            raise self._storage_error("clean up user", e)
        return result.matched_count > 0


class MongoFolderStorage(_MongoStorage, FolderStorageInterface):
    """Folder tree in the ``folders`` collection."""

    collection_name = FOLDERS

    def __init__(
        self,
        client: Optional[MongoClientWrapper] = None,
        pages: Optional["MongoPageStorage"] = None,
    ):
        super().__init__(client)
        self._pages = pages or MongoPageStorage(self._client)

    def _to_folder(self, doc: Optional[dict]) -> Optional[Folder]:
        if doc is None:
            return None
        return Folder.model_validate(_clean(doc))

    async def list_folders(self, user_id: str) -> list[Folder]:
        try:
            docs = list(self._collection.find({"userId": user_id}).sort("order", ASCENDING))
        except PyMongoError as e:
            raise self._storage_error("list folders", e)
        return [self._to_folder(doc) for doc in docs]

    async def get_folder(self, user_id: str, folder_id: str) -> Optional[Folder]:
        oid = _object_id(folder_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one({"_id": oid, "userId": user_id})
        except PyMongoError as e:
            raise self._storage_error("get folder", e)
        return self._to_folder(doc)

    async def create_folder(
        self,
        user_id: str,
        name: Optional[str] = None,
        parent_folder_id: Optional[str] = None,
    ) -> Folder:
        parent = parent_folder_id or None
        try:
            last = self._collection.find_one(
                {"userId": user_id, "parentFolderId": parent},
                sort=[("order", DESCENDING)],
            )
            folder = Folder(
                user_id=user_id,
                name=name or "New Folder",
                parent_folder_id=parent,
                order=last["order"] + 1 if last else 0,
            )
            doc = folder.model_dump(by_alias=True, exclude={"id"})
            result = self._collection.insert_one(doc)
        except PyMongoError as e:
            raise self._storage_error("create folder", e)
        return folder.model_copy(update={"id": str(result.inserted_id)})

    async def update_folder(
        self,
        user_id: str,
        folder_id: str,
        changes: Mapping[str, Any],
    ) -> Optional[Folder]:
        oid = _object_id(folder_id)
        if oid is None:
            return None
        to_set = _pick(changes, FOLDER_FIELDS)
        to_set["updatedAt"] = datetime.utcnow()
        try:
            doc = self._collection.find_one_and_update(
                {"_id": oid, "userId": user_id},
                {"$set": to_set},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._storage_error("update folder", e)
        return self._to_folder(doc)

    async def delete_folder_recursive(self, user_id: str, folder_id: str) -> int:
        oid = _object_id(folder_id)
        if oid is None:
            return 0
        try:
            children = list(self._collection.find(
                {"userId": user_id, "parentFolderId": folder_id},
                {"_id": 1},
            ))
        except PyMongoError as e:
            raise self._storage_error("delete folder", e)

        deleted = 0
        for child in children:
            deleted += await self.delete_folder_recursive(user_id, str(child["_id"]))

        await self._pages.delete_pages_in_folder(user_id, folder_id)
        try:
            result = self._collection.delete_one({"_id": oid, "userId": user_id})
        except PyMongoError as e:
            raise self._storage_error("delete folder", e)
        return deleted + result.deleted_count


class MongoPageStorage(_MongoStorage, PageStorageInterface):
    """Pages (with embedded days and entries) in the ``pages`` collection."""

    collection_name = PAGES

    def _to_page(self, doc: Optional[dict]) -> Optional[Page]:
        if doc is None:
            return None
        return Page.model_validate(_clean(doc))

    def _find(self, query: dict, action: str) -> list[Page]:
        try:
            docs = list(self._collection.find(query).sort("order", ASCENDING))
        except PyMongoError as e:
            raise self._storage_error(action, e)
        return [self._to_page(doc) for doc in docs]

    async def list_pages(self, user_id: str, folder_id: Any = UNSET) -> list[Page]:
        query: dict[str, Any] = {"userId": user_id}
        if folder_id is not UNSET:
            query["folderId"] = folder_id
        return self._find(query, "list pages")

    async def get_page(self, user_id: str, page_id: str) -> Optional[Page]:
        oid = _object_id(page_id)
        if oid is None:
            return None
        try:
            doc = self._collection.find_one({"_id": oid, "userId": user_id})
        except PyMongoError as e:
            raise self._storage_error("get page", e)
        return self._to_page(doc)

    async def create_page(
        self,
        user_id: str,
        folder_id: Optional[str] = None,
        title: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Page:
        folder = folder_id or None
        try:
            last = self._collection.find_one(
                {"userId": user_id, "folderId": folder},
                sort=[("order", DESCENDING)],
            )
            page = Page(
                user_id=user_id,
                folder_id=folder,
                title=title or "Untitled Page",
                icon=icon or "📄",
                order=last["order"] + 1 if last else 0,
            )
            result = self._collection.insert_one(page.model_dump(by_alias=True, exclude={"id"}))
        except PyMongoError as e:
            raise self._storage_error("create page", e)
        return page.model_copy(update={"id": str(result.inserted_id)})

    async def update_page(
        self,
        user_id: str,
        page_id: str,
        changes: Mapping[str, Any],
    ) -> Optional[Page]:
        oid = _object_id(page_id)
        if oid is None:
            return None
        to_set = _pick(changes, PAGE_FIELDS)
        if "days" in to_set:
            to_set["days"] = _dump_days(to_set["days"])
        return self._set(oid, user_id, to_set, "update page")

    def _set(self, oid: ObjectId, user_id: str, to_set: dict, action: str) -> Optional[Page]:
        to_set["updatedAt"] = datetime.utcnow()
        try:
            doc = self._collection.find_one_and_update(
                {"_id": oid, "userId": user_id},
                {"$set": to_set},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._storage_error(action, e)
        return self._to_page(doc)

    async def delete_page(self, user_id: str, page_id: str) -> bool:
        oid = _object_id(page_id)
        if oid is None:
            return False
        try:
            result = self._collection.delete_one({"_id": oid, "userId": user_id})
        except PyMongoError as e:
            raise self._storage_error("delete page", e)
        return result.deleted_count > 0

    async def delete_pages_in_folder(self, user_id: str, folder_id: str) -> int:
        try:
            result = self._collection.delete_many({"userId": user_id, "folderId": folder_id})
        except PyMongoError as e:
            raise self._storage_error("delete pages", e)
        return result.deleted_count

    async def list_pages_updated_since(
        self,
        user_id: str,
        since: datetime,
    ) -> list[Page]:
        return self._find(
            {"userId": user_id, "updatedAt": {"$gte": since}},
            "list recent pages",
        )

    async def _edit_day(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        edit,
        action: str,
    ) -> Optional[Page]:
        """Load the page, apply ``edit(day)`` and write ``days`` back."""
        page = await self.get_page(user_id, page_id)
        if page is None:
            return None
        day = page.get_day(day_index)
        if day is None:
            return None
        edit(day)
        return self._set(ObjectId(page.id), user_id, {"days": _dump_days(page.days)}, action)

    async def add_entry(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        entry: Entry,
    ) -> Optional[Page]:
        return await self._edit_day(
            user_id, page_id, day_index,
            lambda day: day.entries.append(entry),
            "add entry",
        )

    async def update_entry(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        entry_id: str,
        changes: Mapping[str, Any],
    ) -> Optional[Page]:
        fields = _pick(changes, ENTRY_FIELDS)

        def edit(day: Day) -> None:
            for position, entry in enumerate(day.entries):
                if entry.id == entry_id:
                    merged = entry.model_dump(by_alias=True) | fields
                    day.entries[position] = Entry.model_validate(merged)

        return await self._edit_day(user_id, page_id, day_index, edit, "update entry")

    async def delete_entry(
        self,
        user_id: str,
        page_id: str,
        day_index: int,
        entry_id: str,
    ) -> Optional[Page]:
        def edit(day: Day) -> None:
            day.entries[:] = [e for e in day.entries if e.id != entry_id]

        return await self._edit_day(user_id, page_id, day_index, edit, "delete entry")


class MongoSummaryStorage(_MongoStorage, SummaryStorageInterface):
    """AI summaries in the ``aisummaries`` collection."""

    collection_name = SUMMARIES

    async def upsert_summary(self, summary: AISummary) -> AISummary:
        now = datetime.utcnow()
        user_id, date_key, summary_type = summary.key
        fields = summary.model_dump(
            by_alias=True,
            include={"summary", "total_spent", "insights", "recommendations"},
        )
        fields["updatedAt"] = now
        try:
            doc = self._collection.find_one_and_update(
                {"userId": user_id, "date": date_key, "type": summary_type},
                {"$set": fields, "$setOnInsert": {"createdAt": now}},
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise self._storage_error("save summary", e)
        return AISummary.model_validate(_clean(doc))

    async def list_summaries(
        self,
        user_id: str,
        summary_type: SummaryType,
        limit: int,
    ) -> list[AISummary]:
        try:
            docs = list(
                self._collection.find({"userId": user_id, "type": summary_type.value})
                .sort("date", DESCENDING)
                .limit(limit)
            )
        except PyMongoError as e:
            raise self._storage_error("list summaries", e)
        return [AISummary.model_validate(_clean(doc)) for doc in docs]
