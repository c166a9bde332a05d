"""
Custom exceptions and handlers for consistent API error responses.

Domain failures (rejected status changes, invalid combinations, waitlist
actions without a free table) are raised as typed errors before anything is
written; the handlers registered here turn them into JSON bodies the UI shows
as transient notifications.
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class APIError(HTTPException):
    """Base API error with consistent structure"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIError):
    """Resource not found error"""

    def __init__(
        self, detail: str = "Resource not found", error_code: str = "NOT_FOUND"
    ):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND, detail=detail, error_code=error_code
        )


class ValidationError(APIError):
    """Validation error"""

    def __init__(
        self, detail: str = "Validation failed", error_code: str = "VALIDATION_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code,
        )


class InvalidStatusTransitionError(ValidationError):
    """Booking status change not allowed by the dining lifecycle"""

    def __init__(self, detail: str = "Invalid status transition"):
        super().__init__(detail=detail, error_code="INVALID_STATUS_TRANSITION")


class InvalidWaitlistTransitionError(ValidationError):
    """Waitlist entry is not in a state that allows the action"""

    def __init__(self, detail: str = "Invalid waitlist transition"):
        super().__init__(detail=detail, error_code="INVALID_WAITLIST_TRANSITION")


class CombinationValidationError(ValidationError):
    """Tables cannot be combined as requested"""

    def __init__(self, detail: str = "Invalid table combination"):
        super().__init__(detail=detail, error_code="INVALID_COMBINATION")


class NoAvailabilityError(ValidationError):
    """No free table fits the party"""

    def __init__(self, detail: str = "No tables available for this party size"):
        super().__init__(detail=detail, error_code="NO_AVAILABILITY")


class ConflictError(APIError):
    """Resource conflict error"""

    def __init__(self, detail: str = "Resource conflict", error_code: str = "CONFLICT"):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT, detail=detail, error_code=error_code
        )


class StorageError(APIError):
    """Backend store failed to read or write"""

    def __init__(
        self, detail: str = "Storage operation failed", error_code: str = "STORAGE_ERROR"
    ):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
            error_code=error_code,
        )


async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    """Convert ValueError to consistent API response"""
    logger.warning(f"ValueError at {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": str(exc),
            "error_code": "VALIDATION_ERROR",
            "path": str(request.url.path),
        },
    )


async def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Handle custom API errors"""
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code} at {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.error_code} at {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
            "path": str(request.url.path),
        },
        headers=exc.headers,
    )


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app"""
    app.add_exception_handler(ValueError, handle_value_error)
    app.add_exception_handler(APIError, handle_api_error)
