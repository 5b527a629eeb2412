"""
Error Handling Middleware for BookNook

Centralized error handling:
- Structured error responses
- Logging of errors
- Translation of catalog store errors to HTTP status codes
"""

import traceback
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger

from booknook.storage.exceptions import ConstraintViolation, ConnectivityFailure


class BookNookException(Exception):
    """Base exception for BookNook API errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: str = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class NotFoundError(BookNookException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource} with identifier '{identifier}' exists",
        )


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: str = None,
) -> JSONResponse:
    """Create standardized error response."""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "code": code,
            "detail": detail,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


def setup_exception_handlers(app):
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(BookNookException)
    async def booknook_exception_handler(request: Request, exc: BookNookException):
        logger.warning(f"BookNook error: {exc.code} - {exc.message}")
        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
        )

    @app.exception_handler(ConstraintViolation)
    async def constraint_violation_handler(request: Request, exc: ConstraintViolation):
        logger.warning(f"Constraint violation on {request.url.path}: {exc}")
        return create_error_response(
            error="Resource already exists",
            code="CONSTRAINT_VIOLATION",
            status_code=409,
            detail=str(exc),
        )

    @app.exception_handler(ConnectivityFailure)
    async def connectivity_failure_handler(request: Request, exc: ConnectivityFailure):
        logger.error(f"Database unavailable: {exc}")
        return create_error_response(
            error="Database unavailable",
            code="DATABASE_UNAVAILABLE",
            status_code=503,
            detail="The catalog database could not be reached",
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {str(exc)}\n"
            f"{traceback.format_exc()}"
        )
        return create_error_response(
            error="Internal Server Error",
            code="INTERNAL_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
        )
