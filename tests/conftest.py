"""
Pytest configuration and fixtures for BookNook tests.
"""

import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from booknook.api.main import create_app
from booknook.api.dependencies import Settings, get_settings
from booknook.storage.catalog_store import CatalogStore


# =============================================================================
# Test Settings
# =============================================================================

def get_test_settings(database_url: str = "sqlite+aiosqlite:///:memory:") -> Settings:
    """Return settings configured for testing."""
    return Settings(
        database_url=database_url,
        database_echo=False,
        environment="test",
        debug=False,
    )


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """SQLite file database, so concurrent sessions use separate connections."""
    return f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}"


@pytest_asyncio.fixture(scope="function")
async def store(database_url) -> AsyncGenerator[CatalogStore, None]:
    """Connected catalog store on an empty database."""
    catalog_store = CatalogStore(database_url)
    await catalog_store.connect()

    yield catalog_store

    await catalog_store.close()


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest_asyncio.fixture(scope="function")
async def app(store, database_url):
    """Create FastAPI application wired to the test store."""
    settings = get_test_settings(database_url)
    application = create_app(settings)
    application.state.catalog_store = store

    application.dependency_overrides[get_settings] = lambda: settings

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def sample_user_data() -> dict:
    """Sample user data; the password is already hashed."""
    return {
        "email": "reader@example.com",
        "password": "$2b$12$abcdefghijklmnopqrstuv",
        "name": "Ada Reader",
    }


@pytest.fixture
def sample_book_data() -> dict:
    """Sample book data for testing."""
    return {
        "title": "Dune",
        "author": "Frank Herbert",
        "description": "A noble family takes control of the desert planet Arrakis.",
        "cover_image": "/uploads/covers/dune.jpg",
        "book_file": "/uploads/books/dune.pdf",
        "file_type": "pdf",
    }


@pytest.fixture
def sample_books_batch() -> list[dict]:
    """Multiple sample books for listing tests."""
    return [
        {
            "title": "1984",
            "author": "George Orwell",
            "description": "Big Brother is watching.",
        },
        {
            "title": "To Kill a Mockingbird",
            "author": "Harper Lee",
            "description": "A trial in Maycomb, Alabama.",
        },
        {
            "title": "Pride and Prejudice",
            "author": "Jane Austen",
            "description": "Elizabeth Bennet and Mr. Darcy.",
        },
        {
            "title": "The Catcher in the Rye",
            "author": "J.D. Salinger",
            "description": "Holden Caulfield in New York.",
        },
    ]


@pytest_asyncio.fixture
async def reader(store, sample_user_data):
    """A stored user."""
    return await store.create_user(sample_user_data)


@pytest_asyncio.fixture
async def dune(store, sample_book_data):
    """A stored book in the "Fiction" category."""
    fiction = await store.create_category({"name": "Fiction", "description": "Made-up stories"})
    return await store.create_book({**sample_book_data, "category_id": fiction.id})
