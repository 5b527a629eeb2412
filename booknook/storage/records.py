"""
Record types returned by the catalog store.

Plain dataclasses detached from any database session, so callers can hold
on to them after the session that produced them has closed.
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from .models import (
    UserModel,
    CategoryModel,
    BookModel,
    ReviewModel,
    BookmarkModel,
    ReadingProgressModel,
    DownloadModel,
)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class StoredUser:
    """Data class for user data transfer."""

    id: str
    email: str
    password: str
    name: str
    role: str = "user"
    is_blocked: bool = False
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: UserModel) -> "StoredUser":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            email=model.email,
            password=model.password,
            name=model.name,
            role=model.role,
            is_blocked=model.is_blocked,
            created_at=model.created_at,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary, without the password hash."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "is_blocked": self.is_blocked,
            "created_at": _iso(self.created_at),
        }


@dataclass
class StoredCategory:
    id: str
    name: str
    description: Optional[str] = None

    @classmethod
    def from_model(cls, model: CategoryModel) -> "StoredCategory":
        return cls(id=model.id, name=model.name, description=model.description)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StoredBook:
    """Data class for book data transfer."""

    id: str
    title: str
    author: str
    description: str

    category_id: Optional[str] = None
    cover_image: Optional[str] = None
    book_file: Optional[str] = None
    file_type: Optional[str] = None

    download_count: int = 0
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BookModel) -> "StoredBook":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            title=model.title,
            author=model.author,
            description=model.description,
            category_id=model.category_id,
            cover_image=model.cover_image,
            book_file=model.book_file,
            file_type=model.file_type,
            download_count=model.download_count or 0,
            created_at=model.created_at,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "category_id": self.category_id,
            "cover_image": self.cover_image,
            "book_file": self.book_file,
            "file_type": self.file_type,
            "download_count": self.download_count,
            "created_at": _iso(self.created_at),
        }


@dataclass
class BookWithDetails(StoredBook):
    """
    Book with its resolved category and review aggregate.

    Never persisted; assembled by the store on every read.
    """

    category: Optional[StoredCategory] = None
    average_rating: float = 0.0
    review_count: int = 0

    @classmethod
    def from_book(
        cls,
        book: StoredBook,
        category: Optional[StoredCategory],
        average_rating: float,
        review_count: int,
    ) -> "BookWithDetails":
        return cls(
            **vars(book),
            category=category,
            average_rating=average_rating,
            review_count=review_count,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({
            "category": self.category.to_dict() if self.category else None,
            "average_rating": self.average_rating,
            "review_count": self.review_count,
        })
        return data


@dataclass
class StoredReview:
    id: str
    book_id: str
    user_id: str
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: ReviewModel) -> "StoredReview":
        return cls(
            id=model.id,
            book_id=model.book_id,
            user_id=model.user_id,
            rating=model.rating,
            comment=model.comment,
            created_at=model.created_at,
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = _iso(self.created_at)
        return data


@dataclass
class ReviewerSummary:
    """Public projection of the user who wrote a review."""

    id: str
    name: str
    email: str

    @classmethod
    def unknown(cls) -> "ReviewerSummary":
        """Stand-in for a reviewer whose account no longer exists."""
        return cls(id="", name="Unknown", email="")


@dataclass
class ReviewWithUser(StoredReview):
    user: Optional[ReviewerSummary] = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["user"] = asdict(self.user) if self.user else None
        return data


@dataclass
class StoredBookmark:
    id: str
    book_id: str
    user_id: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: BookmarkModel) -> "StoredBookmark":
        return cls(
            id=model.id,
            book_id=model.book_id,
            user_id=model.user_id,
            created_at=model.created_at,
        )


@dataclass
class StoredReadingProgress:
    id: str
    book_id: str
    user_id: str
    last_page: int = 0
    total_pages: Optional[int] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: ReadingProgressModel) -> "StoredReadingProgress":
        return cls(
            id=model.id,
            book_id=model.book_id,
            user_id=model.user_id,
            last_page=model.last_page,
            total_pages=model.total_pages,
            updated_at=model.updated_at,
        )


@dataclass
class StoredDownload:
    id: str
    book_id: str
    user_id: Optional[str] = None
    downloaded_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, model: DownloadModel) -> "StoredDownload":
        return cls(
            id=model.id,
            book_id=model.book_id,
            user_id=model.user_id,
            downloaded_at=model.downloaded_at,
        )


@dataclass
class CatalogStats:
    """Point-in-time collection counts for the admin dashboard."""

    books: int
    users: int
    downloads: int
    reviews: int

    def to_dict(self) -> dict:
        return asdict(self)
