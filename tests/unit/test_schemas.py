"""
Unit tests for request validation schemas.
"""

import pytest
from pydantic import ValidationError

from booknook.api.schemas import (
    BookCreate,
    BookListQuery,
    BookUpdate,
    CategoryUpdate,
    DownloadCreate,
    ReadingProgressCreate,
    ReviewCreate,
    StatsResponse,
    UserCreate,
)
from booknook.storage.records import CatalogStats


class TestUserCreate:
    """Tests for user validation."""

    def test_defaults(self):
        user = UserCreate(email="ada@example.com", password="secret1", name="Ada")

        assert user.role == "user"
        assert user.is_blocked is False

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            UserCreate(email="not-an-email", password="secret1", name="Ada")

    def test_short_password(self):
        with pytest.raises(ValidationError):
            UserCreate(email="ada@example.com", password="12345", name="Ada")

    def test_unknown_role(self):
        with pytest.raises(ValidationError):
            UserCreate(email="ada@example.com", password="secret1", name="Ada", role="owner")


class TestBookSchemas:
    """Tests for book validation."""

    def test_required_fields(self):
        with pytest.raises(ValidationError):
            BookCreate(title="Dune", author="Frank Herbert")

    def test_empty_title_rejected(self):
        with pytest.raises(ValidationError):
            BookCreate(title="", author="Frank Herbert", description="Spice.")

    def test_update_only_reports_sent_fields(self):
        patch = BookUpdate(title="Dune Messiah")

        assert patch.model_dump(exclude_unset=True) == {"title": "Dune Messiah"}

    @pytest.mark.parametrize("field", ["title", "author", "description"])
    def test_update_rejects_explicit_null(self, field):
        with pytest.raises(ValidationError):
            BookUpdate.model_validate({field: None})

    def test_update_allows_clearing_optional_fields(self):
        patch = BookUpdate.model_validate({"category_id": None})

        assert patch.model_dump(exclude_unset=True) == {"category_id": None}

    def test_list_query_defaults(self):
        query = BookListQuery()

        assert query.sort == "newest"
        assert query.limit is None

    def test_list_query_rejects_unknown_sort(self):
        with pytest.raises(ValidationError):
            BookListQuery(sort="title")

    def test_list_query_rejects_zero_limit(self):
        with pytest.raises(ValidationError):
            BookListQuery(limit=0)


class TestActivitySchemas:
    """Tests for review, progress and download validation."""

    @pytest.mark.parametrize("rating", [0, 6, -1])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError):
            ReviewCreate(book_id="b", user_id="u", rating=rating)

    @pytest.mark.parametrize("rating", [1, 5])
    def test_rating_bounds_accepted(self, rating):
        assert ReviewCreate(book_id="b", user_id="u", rating=rating).rating == rating

    def test_progress_defaults(self):
        progress = ReadingProgressCreate(book_id="b", user_id="u")

        assert progress.last_page == 0
        assert progress.total_pages is None

    def test_negative_page_rejected(self):
        with pytest.raises(ValidationError):
            ReadingProgressCreate(book_id="b", user_id="u", last_page=-1)

    def test_anonymous_download(self):
        assert DownloadCreate(book_id="b").user_id is None

    def test_category_update_rejects_null_name(self):
        with pytest.raises(ValidationError):
            CategoryUpdate.model_validate({"name": None})

    def test_category_update_is_partial(self):
        assert CategoryUpdate(description="Verse").model_dump(exclude_unset=True) == {
            "description": "Verse"
        }


class TestStatsResponse:
    def test_from_record(self):
        stats = CatalogStats(books=3, users=2, downloads=7, reviews=1)

        response = StatsResponse.model_validate(stats)

        assert response.model_dump() == {"books": 3, "users": 2, "downloads": 7, "reviews": 1}


class TestStoreAcceptsSchemas:
    """The store takes validated models as well as plain dicts."""

    async def test_user_from_schema(self, store):
        user = await store.create_user(
            UserCreate(email="ada@example.com", password="hashed-pw", name="Ada", role="admin")
        )

        assert user.role == "admin"

    async def test_partial_category_update(self, store):
        category = await store.create_category({"name": "Poetry", "description": "Verse"})

        updated = await store.update_category(category.id, CategoryUpdate(description="Rhymes"))

        assert updated.name == "Poetry"
        assert updated.description == "Rhymes"

    async def test_review_and_download_from_schema(self, store, dune, reader):
        await store.create_review(ReviewCreate(book_id=dune.id, user_id=reader.id, rating=5))
        download = await store.create_download(DownloadCreate(book_id=dune.id))

        assert (await store.get_book(dune.id)).average_rating == 5
        assert download.user_id is None
