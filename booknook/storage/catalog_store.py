"""
Catalog Store for BookNook

Single point of access to every persisted catalog collection:
- Users, categories and books (CRUD)
- Reviews with per-book rating aggregation
- Bookmarks, reading progress and the download log
- Dashboard statistics

Design Decisions:
1. Async SQLAlchemy: one session per operation, no state shared between calls
2. Native atomicity: increments and upserts are single SQL statements
3. Explicit lookups: category and reviewer references are resolved by a
   second query after the primary fetch, never by relationship loading
4. Uniqueness lives in the database; IntegrityError becomes ConstraintViolation
"""

from collections.abc import Collection, Mapping
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger
from sqlalchemy import select, update, delete, func, or_, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from .exceptions import CatalogStoreError, ConstraintViolation, ConnectivityFailure
from .models import (
    Base,
    UserModel,
    CategoryModel,
    BookModel,
    ReviewModel,
    BookmarkModel,
    ReadingProgressModel,
    DownloadModel,
    new_id,
    utcnow,
)
from .records import (
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


# Sentinel category id meaning "no category filter"
ALL_CATEGORIES = "all"

BOOK_SORTS = ("newest", "downloads", "rating")

# Writable fields per entity; anything else in the input is ignored.
USER_FIELDS = ("email", "password", "name", "role", "is_blocked")
CATEGORY_FIELDS = ("name", "description")
BOOK_FIELDS = (
    "title",
    "author",
    "description",
    "category_id",
    "cover_image",
    "book_file",
    "file_type",
)
REVIEW_FIELDS = ("book_id", "user_id", "rating", "comment")
BOOKMARK_FIELDS = ("book_id", "user_id")
PROGRESS_FIELDS = ("book_id", "user_id", "last_page", "total_pages")
DOWNLOAD_FIELDS = ("book_id", "user_id")

_ASYNC_DRIVERS = {
    "sqlite": "sqlite+aiosqlite",
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
}


def _to_async_url(database_url: str) -> str:
    """Swap a sync driver URL for its async counterpart."""
    scheme, sep, rest = database_url.partition("://")
    if sep and scheme in _ASYNC_DRIVERS:
        return f"{_ASYNC_DRIVERS[scheme]}://{rest}"
    return database_url


def _fields(data: Any, allowed: tuple[str, ...], partial: bool = False) -> dict:
    """
    Extract writable fields from a Pydantic model or mapping.

    Args:
        data: Validated input (Pydantic model or dict)
        allowed: Field names the target entity accepts
        partial: Keep only fields the caller actually provided

    Returns:
        Dict of column values
    """
    if hasattr(data, "model_dump"):
        values = data.model_dump(exclude_unset=partial)
    elif isinstance(data, Mapping):
        values = dict(data)
    else:
        raise TypeError(f"Unsupported input type: {type(data).__name__}")

    return {key: value for key, value in values.items() if key in allowed}


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _is_unique_violation(error: IntegrityError) -> bool:
    """True if the database rejected a write on a UNIQUE constraint."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == "23505"
    return "UNIQUE constraint failed" in str(orig)


class CatalogStore:
    """
    Data-access layer over the catalog database.

    Constructed once at process start and handed to every request handler.
    Holds an engine and a session factory, nothing else.

    Usage:
        store = CatalogStore("sqlite+aiosqlite:///./booknook.db")
        await store.connect()

        category = await store.create_category({"name": "Fiction"})
        book = await store.create_book({
            "title": "Dune",
            "author": "Frank Herbert",
            "description": "Desert planet.",
            "category_id": category.id,
        })
        top = await store.get_all_books(sort="rating", limit=10)
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        sqlite_path: Optional[Union[str, Path]] = None,
        echo: bool = False,
    ):
        """
        Initialize store.

        Args:
            database_url: SQLAlchemy database URL (sync driver names are
                upgraded to their async driver)
            sqlite_path: Path for a SQLite database file
            echo: Log every SQL statement
        """
        if database_url:
            self.database_url = _to_async_url(database_url)
        elif sqlite_path:
            self.database_url = f"sqlite+aiosqlite:///{sqlite_path}"
        else:
            # Default to in-memory SQLite
            self.database_url = "sqlite+aiosqlite:///:memory:"

        self.safe_url = make_url(self.database_url).render_as_string(hide_password=True)

        self.engine = create_async_engine(self.database_url, echo=echo)
        self.SessionLocal = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

        logger.info(f"CatalogStore initialized: {self.safe_url}")

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def connect(self) -> None:
        """
        Create missing tables and verify the database answers.

        Raises:
            ConnectivityFailure: If the database cannot be reached
        """
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                await conn.execute(text("SELECT 1"))
        except (DBAPIError, OSError) as e:
            logger.error(f"Database connection failed: {e}")
            raise ConnectivityFailure(self.safe_url, str(e)) from e

        logger.info(f"Connected to database: {self.safe_url}")

    async def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (DBAPIError, OSError) as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        await self.engine.dispose()
        logger.info("CatalogStore closed")

    def get_session(self) -> AsyncSession:
        """Get database session."""
        return self.SessionLocal()

    async def _commit_insert(
        self,
        session: AsyncSession,
        model: Base,
        entity: str,
        unique_fields: tuple[str, ...],
    ) -> None:
        """Add a row and commit, translating uniqueness failures."""
        session.add(model)
        try:
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            if not _is_unique_violation(e):
                raise
            logger.warning(f"{entity} rejected by unique constraint on {unique_fields}")
            raise ConstraintViolation(entity, unique_fields) from e
        await session.refresh(model)

    # =========================================================================
    # Users
    # =========================================================================

    async def get_user(self, user_id: str) -> Optional[StoredUser]:
        """
        Get user by ID.

        Args:
            user_id: User ID

        Returns:
            StoredUser or None
        """
        async with self.get_session() as session:
            user = await session.get(UserModel, user_id)
            return StoredUser.from_model(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[StoredUser]:
        """
        Get user by exact (case-sensitive) email.

        Args:
            email: Email address

        Returns:
            StoredUser or None
        """
        async with self.get_session() as session:
            user = await session.scalar(
                select(UserModel).where(UserModel.email == email)
            )
            return StoredUser.from_model(user) if user else None

    async def create_user(self, data: Any) -> StoredUser:
        """
        Create a new user.

        Args:
            data: Validated user fields; the password must already be hashed

        Returns:
            Created StoredUser

        Raises:
            ConstraintViolation: If the email is already registered
        """
        async with self.get_session() as session:
            user = UserModel(id=new_id(), **_fields(data, USER_FIELDS))
            await self._commit_insert(session, user, "User", ("email",))
            return StoredUser.from_model(user)

    async def get_all_users(self) -> list[StoredUser]:
        """List all users, newest first."""
        async with self.get_session() as session:
            users = await session.scalars(
                select(UserModel).order_by(UserModel.created_at.desc())
            )
            return [StoredUser.from_model(u) for u in users]

    async def _update_user(self, user_id: str, **values) -> Optional[StoredUser]:
        async with self.get_session() as session:
            user = await session.get(UserModel, user_id)
            if not user:
                return None

            for key, value in values.items():
                setattr(user, key, value)

            await session.commit()
            await session.refresh(user)
            return StoredUser.from_model(user)

    async def update_user_role(self, user_id: str, role: str) -> Optional[StoredUser]:
        """Set a user's role. Returns None if the user does not exist."""
        return await self._update_user(user_id, role=role)

    async def update_user_block(self, user_id: str, blocked: bool) -> Optional[StoredUser]:
        """Block or unblock a user. Returns None if the user does not exist."""
        return await self._update_user(user_id, is_blocked=blocked)

    # =========================================================================
    # Books
    # =========================================================================

    async def _rating_stats(
        self,
        session: AsyncSession,
        book_ids: Optional[Collection[str]] = None,
    ) -> dict[str, tuple[float, int]]:
        """
        Aggregate review ratings per book in a single grouped query.

        Args:
            session: Open session
            book_ids: Restrict to these books; None aggregates every book

        Returns:
            Dict of book_id -> (average_rating, review_count)
        """
        stmt = select(
            ReviewModel.book_id,
            func.avg(ReviewModel.rating),
            func.count(ReviewModel.id),
        ).group_by(ReviewModel.book_id)

        if book_ids is not None:
            if not book_ids:
                return {}
            stmt = stmt.where(ReviewModel.book_id.in_(list(book_ids)))

        rows = await session.execute(stmt)
        return {
            book_id: (float(avg or 0), count)
            for book_id, avg, count in rows
        }

    async def _categories_by_id(
        self,
        session: AsyncSession,
        category_ids: Collection[str],
    ) -> dict[str, StoredCategory]:
        """Resolve category references; missing ids are simply absent."""
        if not category_ids:
            return {}

        categories = await session.scalars(
            select(CategoryModel).where(CategoryModel.id.in_(list(category_ids)))
        )
        return {c.id: StoredCategory.from_model(c) for c in categories}

    def _with_details(
        self,
        books: list[StoredBook],
        categories: dict[str, StoredCategory],
        stats: dict[str, tuple[float, int]],
    ) -> list[BookWithDetails]:
        results = []
        for book in books:
            average, count = stats.get(book.id, (0.0, 0))
            category = categories.get(book.category_id) if book.category_id else None
            results.append(BookWithDetails.from_book(book, category, average, count))
        return results

    async def get_book(self, book_id: str) -> Optional[BookWithDetails]:
        """
        Get book by ID with its category and rating aggregate.

        Args:
            book_id: Book ID

        Returns:
            BookWithDetails or None
        """
        async with self.get_session() as session:
            model = await session.get(BookModel, book_id)
            if not model:
                return None

            book = StoredBook.from_model(model)
            stats = await self._rating_stats(session, [book.id])
            categories = await self._categories_by_id(
                session,
                [book.category_id] if book.category_id else [],
            )

        return self._with_details([book], categories, stats)[0]

    async def get_all_books(
        self,
        limit: Optional[int] = None,
        sort: str = "newest",
        search: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> list[BookWithDetails]:
        """
        List books with filtering, sorting and a result cap.

        Args:
            limit: Max results (None for all)
            sort: "newest", "downloads" or "rating"; anything else is "newest"
            search: Case-insensitive substring of title or author
            category_id: Exact category match; "all" disables the filter

        Returns:
            List of BookWithDetails
        """
        if sort not in BOOK_SORTS:
            sort = "newest"

        stmt = select(BookModel)

        if search:
            pattern = f"%{_escape_like(search)}%"
            stmt = stmt.where(
                or_(
                    BookModel.title.ilike(pattern, escape="\\"),
                    BookModel.author.ilike(pattern, escape="\\"),
                )
            )

        if category_id and category_id != ALL_CATEGORIES:
            stmt = stmt.where(BookModel.category_id == category_id)

        if sort == "downloads":
            stmt = stmt.order_by(BookModel.download_count.desc(), BookModel.created_at.desc())
        else:
            stmt = stmt.order_by(BookModel.created_at.desc())

        # Rating is derived from reviews and not stored on the book, so the
        # database cannot order by it. Rating sort scans the whole filtered
        # set and applies the limit afterwards; callers rely on this.
        if sort != "rating" and limit is not None:
            stmt = stmt.limit(limit)

        async with self.get_session() as session:
            books = [StoredBook.from_model(b) for b in await session.scalars(stmt)]

            if sort == "rating":
                stats = await self._rating_stats(session)
            else:
                stats = await self._rating_stats(session, [b.id for b in books])

            categories = await self._categories_by_id(
                session,
                {b.category_id for b in books if b.category_id},
            )

        results = self._with_details(books, categories, stats)

        if sort == "rating":
            # Stable, so ties keep newest-first order
            results.sort(key=lambda b: b.average_rating, reverse=True)
            if limit is not None:
                results = results[:limit]

        logger.debug(
            f"Listed {len(results)} books (sort={sort}, search={search!r}, "
            f"category={category_id!r}, limit={limit})"
        )
        return results

    async def create_book(self, data: Any) -> StoredBook:
        """
        Create a new book.

        Args:
            data: Validated book fields

        Returns:
            Created StoredBook
        """
        async with self.get_session() as session:
            book = BookModel(id=new_id(), download_count=0, **_fields(data, BOOK_FIELDS))
            session.add(book)
            await session.commit()
            await session.refresh(book)

            logger.info(f"Created book {book.id}: {book.title} by {book.author}")
            return StoredBook.from_model(book)

    async def update_book(self, book_id: str, patch: Any) -> Optional[StoredBook]:
        """
        Update the provided book fields, leaving the rest untouched.

        Args:
            book_id: Book ID
            patch: Fields to update

        Returns:
            Updated StoredBook or None
        """
        updates = _fields(patch, BOOK_FIELDS, partial=True)

        async with self.get_session() as session:
            book = await session.get(BookModel, book_id)
            if not book:
                return None

            for key, value in updates.items():
                setattr(book, key, value)

            await session.commit()
            await session.refresh(book)
            return StoredBook.from_model(book)

    async def delete_book(self, book_id: str) -> None:
        """
        Delete a book.

        Reviews, bookmarks, reading progress and downloads that point at
        the book are kept; readers tolerate the dangling reference.
        """
        async with self.get_session() as session:
            result = await session.execute(
                delete(BookModel).where(BookModel.id == book_id)
            )
            await session.commit()

        if result.rowcount:
            logger.info(f"Deleted book {book_id}")

    async def increment_download_count(self, book_id: str) -> None:
        """Add one to a book's download counter in a single UPDATE."""
        async with self.get_session() as session:
            await session.execute(
                update(BookModel)
                .where(BookModel.id == book_id)
                .values(download_count=BookModel.download_count + 1)
            )
            await session.commit()

    # =========================================================================
    # Categories
    # =========================================================================

    async def get_category(self, category_id: str) -> Optional[StoredCategory]:
        async with self.get_session() as session:
            category = await session.get(CategoryModel, category_id)
            return StoredCategory.from_model(category) if category else None

    async def get_all_categories(self) -> list[StoredCategory]:
        async with self.get_session() as session:
            categories = await session.scalars(
                select(CategoryModel).order_by(CategoryModel.name)
            )
            return [StoredCategory.from_model(c) for c in categories]

    async def create_category(self, data: Any) -> StoredCategory:
        """
        Create a new category.

        Raises:
            ConstraintViolation: If the name is taken
        """
        async with self.get_session() as session:
            category = CategoryModel(id=new_id(), **_fields(data, CATEGORY_FIELDS))
            await self._commit_insert(session, category, "Category", ("name",))
            return StoredCategory.from_model(category)

    async def update_category(self, category_id: str, patch: Any) -> Optional[StoredCategory]:
        """
        Update the provided category fields.

        Raises:
            ConstraintViolation: If renamed onto an existing name
        """
        updates = _fields(patch, CATEGORY_FIELDS, partial=True)

        async with self.get_session() as session:
            category = await session.get(CategoryModel, category_id)
            if not category:
                return None

            for key, value in updates.items():
                setattr(category, key, value)

            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                if not _is_unique_violation(e):
                    raise
                raise ConstraintViolation("Category", ("name",)) from e

            await session.refresh(category)
            return StoredCategory.from_model(category)

    async def delete_category(self, category_id: str) -> None:
        """Delete a category. Books keep their now-dangling category_id."""
        async with self.get_session() as session:
            await session.execute(
                delete(CategoryModel).where(CategoryModel.id == category_id)
            )
            await session.commit()

    # =========================================================================
    # Reviews
    # =========================================================================

    async def get_reviews_by_book(self, book_id: str) -> list[ReviewWithUser]:
        """
        List a book's reviews, newest first, each with its reviewer.

        Reviews by deleted users carry ReviewerSummary.unknown().
        """
        async with self.get_session() as session:
            reviews = [
                StoredReview.from_model(r)
                for r in await session.scalars(
                    select(ReviewModel)
                    .where(ReviewModel.book_id == book_id)
                    .order_by(ReviewModel.created_at.desc())
                )
            ]

            user_ids = {r.user_id for r in reviews}
            reviewers = {}
            if user_ids:
                rows = await session.execute(
                    select(UserModel.id, UserModel.name, UserModel.email)
                    .where(UserModel.id.in_(list(user_ids)))
                )
                reviewers = {
                    uid: ReviewerSummary(id=uid, name=name, email=email)
                    for uid, name, email in rows
                }

        return [
            ReviewWithUser(
                **vars(review),
                user=reviewers.get(review.user_id) or ReviewerSummary.unknown(),
            )
            for review in reviews
        ]

    async def create_review(self, data: Any) -> StoredReview:
        """
        Insert a review.

        A user may review the same book more than once.
        """
        async with self.get_session() as session:
            review = ReviewModel(id=new_id(), **_fields(data, REVIEW_FIELDS))
            session.add(review)
            await session.commit()
            await session.refresh(review)
            return StoredReview.from_model(review)

    async def get_all_reviews(self) -> list[StoredReview]:
        """List every review, newest first."""
        async with self.get_session() as session:
            reviews = await session.scalars(
                select(ReviewModel).order_by(ReviewModel.created_at.desc())
            )
            return [StoredReview.from_model(r) for r in reviews]

    # =========================================================================
    # Bookmarks
    # =========================================================================

    async def get_bookmarks_by_user(self, user_id: str) -> list[StoredBookmark]:
        """List a user's bookmarks, newest first."""
        async with self.get_session() as session:
            bookmarks = await session.scalars(
                select(BookmarkModel)
                .where(BookmarkModel.user_id == user_id)
                .order_by(BookmarkModel.created_at.desc())
            )
            return [StoredBookmark.from_model(b) for b in bookmarks]

    async def create_bookmark(self, data: Any) -> StoredBookmark:
        """
        Bookmark a book for a user.

        Raises:
            ConstraintViolation: If the user already bookmarked the book
        """
        async with self.get_session() as session:
            bookmark = BookmarkModel(id=new_id(), **_fields(data, BOOKMARK_FIELDS))
            await self._commit_insert(session, bookmark, "Bookmark", ("user_id", "book_id"))
            return StoredBookmark.from_model(bookmark)

    async def delete_bookmark(self, user_id: str, book_id: str) -> None:
        async with self.get_session() as session:
            await session.execute(
                delete(BookmarkModel).where(
                    BookmarkModel.user_id == user_id,
                    BookmarkModel.book_id == book_id,
                )
            )
            await session.commit()

    async def is_bookmarked(self, user_id: str, book_id: str) -> bool:
        async with self.get_session() as session:
            count = await session.scalar(
                select(func.count(BookmarkModel.id)).where(
                    BookmarkModel.user_id == user_id,
                    BookmarkModel.book_id == book_id,
                )
            )
            return bool(count)

    # =========================================================================
    # Reading Progress
    # =========================================================================

    async def get_reading_progress(
        self,
        user_id: str,
        book_id: str,
    ) -> Optional[StoredReadingProgress]:
        async with self.get_session() as session:
            progress = await session.scalar(
                select(ReadingProgressModel).where(
                    ReadingProgressModel.user_id == user_id,
                    ReadingProgressModel.book_id == book_id,
                )
            )
            return StoredReadingProgress.from_model(progress) if progress else None

    def _insert(self, model):
        """
        Dialect-specific INSERT supporting ON CONFLICT.

        _to_async_url only maps SQLite and PostgreSQL URLs; an engine built
        from any other URL fails here.
        """
        dialect = self.engine.dialect.name
        if dialect == "sqlite":
            return sqlite_insert(model)
        if dialect == "postgresql":
            return pg_insert(model)
        raise CatalogStoreError(f"Upsert is not supported on {dialect}")

    async def upsert_reading_progress(self, data: Any) -> StoredReadingProgress:
        """
        Create or overwrite progress for a (user, book) pair.

        Runs as one INSERT ... ON CONFLICT DO UPDATE, so concurrent calls
        for the same pair never produce two rows.

        Args:
            data: book_id, user_id, last_page and optional total_pages

        Returns:
            The stored progress record
        """
        values = _fields(data, PROGRESS_FIELDS)
        values.setdefault("last_page", 0)
        values.setdefault("total_pages", None)
        now = utcnow()

        stmt = self._insert(ReadingProgressModel).values(
            id=new_id(),
            updated_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "book_id"],
            set_={
                "last_page": stmt.excluded.last_page,
                "total_pages": stmt.excluded.total_pages,
                "updated_at": stmt.excluded.updated_at,
            },
        )

        async with self.get_session() as session:
            await session.execute(stmt)
            progress = await session.scalar(
                select(ReadingProgressModel).where(
                    ReadingProgressModel.user_id == values["user_id"],
                    ReadingProgressModel.book_id == values["book_id"],
                )
            )
            record = StoredReadingProgress.from_model(progress)
            await session.commit()

        return record

    # =========================================================================
    # Downloads
    # =========================================================================

    async def create_download(self, data: Any) -> StoredDownload:
        """Append an entry to the download log."""
        async with self.get_session() as session:
            download = DownloadModel(id=new_id(), **_fields(data, DOWNLOAD_FIELDS))
            session.add(download)
            await session.commit()
            await session.refresh(download)
            return StoredDownload.from_model(download)

    async def get_all_downloads(self) -> list[StoredDownload]:
        """List the download log, newest first."""
        async with self.get_session() as session:
            downloads = await session.scalars(
                select(DownloadModel).order_by(DownloadModel.downloaded_at.desc())
            )
            return [StoredDownload.from_model(d) for d in downloads]

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_stats(self) -> CatalogStats:
        """
        Count books, users, downloads and reviews.

        The four counts are separate queries and are not read in one
        transaction.

        Returns:
            CatalogStats
        """
        async with self.get_session() as session:
            counts = {}
            for name, model in (
                ("books", BookModel),
                ("users", UserModel),
                ("downloads", DownloadModel),
                ("reviews", ReviewModel),
            ):
                counts[name] = await session.scalar(
                    select(func.count()).select_from(model)
                ) or 0

        return CatalogStats(**counts)
