"""
Storage Module for BookNook

Persistent storage for the library catalog:
- SQLAlchemy models for users, categories, books, reviews,
  bookmarks, reading progress and downloads
- CatalogStore data-access layer with rating aggregation
- Store error taxonomy
"""

from booknook.storage.catalog_store import (
    CatalogStore,
    ALL_CATEGORIES,
    BOOK_SORTS,
)
from booknook.storage.exceptions import (
    CatalogStoreError,
    ConstraintViolation,
    ConnectivityFailure,
)
from booknook.storage.records import (
    StoredUser,
    StoredCategory,
    StoredBook,
    BookWithDetails,
    StoredReview,
    ReviewWithUser,
    ReviewerSummary,
    StoredBookmark,
    StoredReadingProgress,
    StoredDownload,
    CatalogStats,
)

__all__ = [
    # Catalog Store
    "CatalogStore",
    "ALL_CATEGORIES",
    "BOOK_SORTS",
    # Errors
    "CatalogStoreError",
    "ConstraintViolation",
    "ConnectivityFailure",
    # Records
    "StoredUser",
    "StoredCategory",
    "StoredBook",
    "BookWithDetails",
    "StoredReview",
    "ReviewWithUser",
    "ReviewerSummary",
    "StoredBookmark",
    "StoredReadingProgress",
    "StoredDownload",
    "CatalogStats",
]
