"""
BookNook API

FastAPI application entry point.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from fastapi import FastAPI, Request

from .schemas import HealthResponse
from .routes import analytics
from .middleware import (
    setup_logging,
    setup_exception_handlers,
    LoggingConfig,
)
from .dependencies import (
    get_settings,
    create_catalog_store,
    Settings,
)
from ..storage.exceptions import ConnectivityFailure

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


# =============================================================================
# Application Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the catalog store, creates missing tables and checks the
    database answers. A database that cannot be reached aborts start-up.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting BookNook in {settings.environment} mode")

    store = getattr(app.state, "catalog_store", None) or create_catalog_store(settings)

    try:
        await store.connect()
    except ConnectivityFailure as e:
        logger.critical(f"Refusing to start: {e}")
        await store.close()
        raise

    app.state.catalog_store = store
    logger.info("BookNook started successfully")

    try:
        yield
    finally:
        logger.info("Shutting down BookNook...")
        await store.close()
        app.state.catalog_store = None
        logger.info("Shutdown complete")


# =============================================================================
# Application Factory
# =============================================================================

def create_app(settings: Settings = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Application settings. If None, loads from environment.

    Returns:
        Configured FastAPI application.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="BookNook",
        description="Library and e-book catalog.",
        version=VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        openapi_url="/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.catalog_store = None

    # Middleware (first added = outermost)
    setup_logging(
        app,
        config=LoggingConfig(
            enabled=True,
            log_request_body=settings.debug,
        ),
        structured=settings.environment != "development",
    )
    setup_exception_handlers(app)

    # Routers
    api_prefix = "/api/v1"
    app.include_router(analytics.router, prefix=api_prefix)

    @app.get("/", include_in_schema=False)
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "BookNook",
            "version": VERSION,
            "status": "running",
            "docs": "/docs" if settings.debug else None,
        }

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint.

        Reports whether the catalog database answers.
        """
        store = request.app.state.catalog_store
        components = {}

        if store is None:
            components["database"] = "not_initialized"
        elif await store.ping():
            components["database"] = "healthy"
        else:
            components["database"] = "unreachable"

        return HealthResponse(
            status="healthy" if components["database"] == "healthy" else "degraded",
            version=VERSION,
            components=components,
        )

    return app


# =============================================================================
# Application Instance
# =============================================================================

app = create_app()


# =============================================================================
# CLI Entry Point
# =============================================================================

async def _verify_database(settings: Settings) -> None:
    """Connect once and release the engine; raises ConnectivityFailure."""
    store = create_catalog_store(settings)
    try:
        await store.connect()
    finally:
        await store.close()


def main():
    """
    Run the application using uvicorn.

    The database is checked before uvicorn starts. An unreachable
    database exits with status 1, in reload mode as well.
    """
    import uvicorn

    settings = get_settings()

    try:
        asyncio.run(_verify_database(settings))
    except ConnectivityFailure as e:
        logger.critical(f"Refusing to start: {e}")
        sys.exit(1)

    uvicorn.run(
        "booknook.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        lifespan="on",
    )


if __name__ == "__main__":
    main()
