"""
Storage Services Package

Abstract interfaces plus the MongoDB implementation used in production.
"""

from budgetpages.services.storage.interface import (
    UNSET,
    ConnectionError,
    FolderStorageInterface,
    PageStorageInterface,
    StorageError,
    SummaryStorageInterface,
    UserStorageInterface,
)
from budgetpages.services.storage.mongo import (
    MongoClientWrapper,
    MongoFolderStorage,
    MongoPageStorage,
    MongoSummaryStorage,
    MongoUserStorage,
)

__all__ = [
    "UNSET",
    # Interfaces
    "FolderStorageInterface",
    "PageStorageInterface",
    "SummaryStorageInterface",
    "UserStorageInterface",
    # Exceptions
    "ConnectionError",
    "StorageError",
    # MongoDB implementation
    "MongoClientWrapper",
    "MongoFolderStorage",
    "MongoPageStorage",
    "MongoSummaryStorage",
    "MongoUserStorage",
]
