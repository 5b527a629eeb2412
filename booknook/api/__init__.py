"""
BookNook - FastAPI Backend.

HTTP shell around the catalog store: configuration, start-up, error
translation, request logging and the validation schemas.
"""

from .main import app, create_app, main
from .dependencies import (
    Settings,
    get_settings,
    get_catalog_store,
    create_catalog_store,
)
from .schemas import (
    UserRole,
    BookSort,
    UserCreate,
    CategoryCreate,
    CategoryUpdate,
    BookCreate,
    BookUpdate,
    BookListQuery,
    ReviewCreate,
    BookmarkCreate,
    ReadingProgressCreate,
    DownloadCreate,
    StatsResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Application
    "app",
    "create_app",
    "main",
    # Dependencies
    "Settings",
    "get_settings",
    "get_catalog_store",
    "create_catalog_store",
    # Schemas
    "UserRole",
    "BookSort",
    "UserCreate",
    "CategoryCreate",
    "CategoryUpdate",
    "BookCreate",
    "BookUpdate",
    "BookListQuery",
    "ReviewCreate",
    "BookmarkCreate",
    "ReadingProgressCreate",
    "DownloadCreate",
    "StatsResponse",
    "HealthResponse",
    "ErrorResponse",
]
