"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- The catalog store handle built at start-up
"""

import os
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request

from ..storage.catalog_store import CatalogStore


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite+aiosqlite:///./booknook.db"
    database_echo: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Environment
    environment: str = "development"
    debug: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            host=os.getenv("HOST", cls.host),
            port=int(os.getenv("PORT", cls.port)),
            environment=os.getenv("BOOKNOOK_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Catalog Store
# =============================================================================

def create_catalog_store(settings: Settings) -> CatalogStore:
    """Build the store handle for one process."""
    return CatalogStore(
        database_url=settings.database_url,
        echo=settings.database_echo,
    )


def get_catalog_store(request: Request) -> CatalogStore:
    """
    Dependency returning the store created in the application lifespan.

    Raises:
        RuntimeError: If the application has not started
    """
    store = getattr(request.app.state, "catalog_store", None)
    if store is None:
        raise RuntimeError("Catalog store not initialized. Application has not started.")
    return store
