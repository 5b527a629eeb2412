"""
API Schemas for BookNook

Pydantic models for request validation and response serialization:
- Insert/update models for every catalog collection
- Book listing query
- Stats, health and error responses

Inputs are validated here, before they reach the catalog store; the store
only enforces what the database enforces (uniqueness).
"""

from datetime import datetime
from typing import Optional
from enum import Enum

from pydantic import BaseModel, EmailStr, Field, ConfigDict, ValidationInfo, field_validator


# =============================================================================
# Enums
# =============================================================================

class UserRole(str, Enum):
    """Account role."""
    USER = "user"
    ADMIN = "admin"


class BookSort(str, Enum):
    """Ordering for book listings."""
    NEWEST = "newest"
    DOWNLOADS = "downloads"
    RATING = "rating"


# =============================================================================
# User Schemas
# =============================================================================

class UserCreate(BaseModel):
    """User creation request. The password is hashed before storage."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)
    role: UserRole = UserRole.USER
    is_blocked: bool = False

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Category Schemas
# =============================================================================

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    """Category update request (partial)."""

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("name cannot be null")
        return v


# =============================================================================
# Book Schemas
# =============================================================================

class BookCreate(BaseModel):
    """Book creation request."""

    title: str = Field(..., min_length=1)
    author: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)

    category_id: Optional[str] = None
    cover_image: Optional[str] = None
    book_file: Optional[str] = None
    file_type: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "description": "A noble family takes control of the desert planet Arrakis.",
                "file_type": "pdf",
            }
        }
    )


class BookUpdate(BaseModel):
    """Book update request (partial). Only fields that are sent are changed."""

    title: Optional[str] = Field(None, min_length=1)
    author: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None, min_length=1)

    category_id: Optional[str] = None
    cover_image: Optional[str] = None
    book_file: Optional[str] = None
    file_type: Optional[str] = None

    @field_validator("title", "author", "description")
    @classmethod
    def required_not_null(cls, v: Optional[str], info: ValidationInfo) -> str:
        """Omit a field to leave it unchanged; null is not a value for it."""
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class BookListQuery(BaseModel):
    """Filters accepted by the book listing."""

    limit: Optional[int] = Field(None, ge=1)
    sort: BookSort = BookSort.NEWEST
    search: Optional[str] = None
    category_id: Optional[str] = Field(None, description="Category ID, or 'all'")

    model_config = ConfigDict(use_enum_values=True)


# =============================================================================
# Reader Activity Schemas
# =============================================================================

class ReviewCreate(BaseModel):
    book_id: str
    user_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class BookmarkCreate(BaseModel):
    book_id: str
    user_id: str


class ReadingProgressCreate(BaseModel):
    book_id: str
    user_id: str
    last_page: int = Field(0, ge=0)
    total_pages: Optional[int] = Field(None, ge=0)


class DownloadCreate(BaseModel):
    """Download log entry; anonymous downloads have no user_id."""

    book_id: str
    user_id: Optional[str] = None


# =============================================================================
# Analytics Schemas
# =============================================================================

class StatsResponse(BaseModel):
    """Admin dashboard counts."""

    books: int
    users: int
    downloads: int
    reviews: int

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Error Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Resource already exists",
                "code": "CONSTRAINT_VIOLATION",
                "detail": "Category with the same name already exists",
                "timestamp": "2024-01-15T10:30:00Z",
            }
        }
    )


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str  # "healthy", "degraded"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
