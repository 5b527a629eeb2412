"""
Analytics API Routes for BookNook

Read-only views for the admin dashboard:
- Catalog statistics
- Top books by rating or downloads
- Single book details with rating aggregate
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger

from booknook.api.dependencies import get_catalog_store
from booknook.api.middleware import NotFoundError
from booknook.api.schemas import BookSort, StatsResponse
from booknook.storage.catalog_store import CatalogStore

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get(
    "/stats",
    response_model=StatsResponse,
)
async def get_catalog_stats(
    store: CatalogStore = Depends(get_catalog_store),
):
    """
    Get catalog statistics overview.

    Counts of books, users, downloads and reviews at the time of the call.
    """
    logger.info("Fetching catalog stats")

    stats = await store.get_stats()
    return StatsResponse.model_validate(stats)


@router.get("/top-books")
async def get_top_books(
    sort: BookSort = Query(BookSort.RATING, description="Ranking criterion"),
    limit: int = Query(10, ge=1, le=100),
    category_id: str = Query("all", description="Category ID, or 'all'"),
    store: CatalogStore = Depends(get_catalog_store),
):
    """Rank books by average rating, downloads or recency."""
    logger.info(f"Fetching top books: sort={sort.value}, limit={limit}")

    books = await store.get_all_books(
        limit=limit,
        sort=sort.value,
        category_id=category_id,
    )
    return {"books": [b.to_dict() for b in books], "total": len(books)}


@router.get("/books/{book_id}")
async def get_book_details(
    book_id: str,
    store: CatalogStore = Depends(get_catalog_store),
):
    """Get a book with its category, average rating and review count."""
    book = await store.get_book(book_id)
    if not book:
        raise NotFoundError("Book", book_id)
    return book.to_dict()
