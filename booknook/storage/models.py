"""
Database models for BookNook.

One table per catalog collection. References between entities are plain
indexed string columns; the store resolves them explicitly at read time.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    Boolean,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, the form stored in every DateTime column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid4())


class UserModel(Base):
    """Catalog user account."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # already hashed
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="user")
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)


class CategoryModel(Base):
    """Book category."""
    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)


class BookModel(Base):
    """Catalog book."""
    __tablename__ = "books"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(500), nullable=False, index=True)
    author = Column(String(500), nullable=False, index=True)
    description = Column(Text, nullable=False)

    # Nullable reference to categories.id
    category_id = Column(String(36), index=True)

    # Stored file locations
    cover_image = Column(String(500))
    book_file = Column(String(500))
    file_type = Column(String(50))

    download_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint("download_count >= 0", name="ck_books_download_count"),
        Index("idx_books_created", "created_at"),
        Index("idx_books_downloads", "download_count"),
    )


class ReviewModel(Base):
    """Rating and optional comment left by a user on a book."""
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True, default=new_id)
    book_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    # Lookup index only; several reviews per (book, user) are allowed.
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
        Index("idx_reviews_book_user", "book_id", "user_id"),
        Index("idx_reviews_created", "created_at"),
    )


class BookmarkModel(Base):
    __tablename__ = "bookmarks"

    id = Column(String(36), primary_key=True, default=new_id)
    book_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_bookmarks_user_book"),
    )


class ReadingProgressModel(Base):
    __tablename__ = "reading_progress"

    id = Column(String(36), primary_key=True, default=new_id)
    book_id = Column(String(36), nullable=False)
    user_id = Column(String(36), nullable=False)
    last_page = Column(Integer, nullable=False, default=0)
    total_pages = Column(Integer)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "book_id", name="uq_reading_progress_user_book"),
    )


class DownloadModel(Base):
    """Append-only download log. user_id is empty for anonymous downloads."""
    __tablename__ = "downloads"

    id = Column(String(36), primary_key=True, default=new_id)
    book_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36))
    downloaded_at = Column(DateTime, nullable=False, default=utcnow, index=True)
