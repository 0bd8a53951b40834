"""FileVault API error handling.

Provides FileVaultHttpError and FastAPI exception handlers that produce the
error envelope with request_id tracing.

Global exception handlers:
- FileVaultHttpError: Application-specific errors with structured envelope
- FileVaultError: Storage errors mapped to stable codes and statuses
- HTTPException: FastAPI/Starlette HTTP exceptions
- RequestValidationError: Pydantic validation errors
- Exception: Catch-all for unhandled exceptions (no stack traces to clients)
"""

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from filevault.api.error_model import code_for_status, make_error_response
from filevault.storage.errors import (
    DecodeFailedError,
    EncryptionFailedError,
    FileVaultError,
    InvalidFileTypeError,
    ObjectNotFoundError,
    PathTraversalError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)


class FileVaultHttpError(Exception):
    """Application-level HTTP error with structured error envelope.

    Attributes:
        status_code: HTTP status code (e.g., 404, 500).
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        details: Optional dict with additional error context.
    """

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details


# Most specific first; the first isinstance match wins.
STORAGE_ERROR_MAP: list[tuple[type[FileVaultError], int, str]] = [
    (InvalidFileTypeError, 415, "INVALID_FILE_TYPE"),
    (PathTraversalError, 400, "INVALID_PATH"),
    (ObjectNotFoundError, 404, "NOT_FOUND"),
    (StorageUnavailableError, 503, "STORAGE_UNAVAILABLE"),
    (EncryptionFailedError, 500, "ENCRYPTION_FAILED"),
    (DecodeFailedError, 500, "DECODE_FAILED"),
]


def storage_error_status(exc: FileVaultError) -> tuple[int, str]:
    """Map a storage error to (HTTP status, error code)."""
    for error_type, status, code in STORAGE_ERROR_MAP:
        if isinstance(exc, error_type):
            return status, code
    return 500, "STORAGE_ERROR"


async def filevault_http_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for FileVaultHttpError."""
    assert isinstance(exc, FileVaultHttpError)

    return make_error_response(
        request,
        code=exc.code,
        message=exc.message,
        http_status=exc.status_code,
        details=exc.details,
    )


async def storage_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for FileVaultError.

    Only InvalidFileTypeError carries a caller-facing message; every other
    storage error gets a generic message so paths and causes stay server-side.
    """
    assert isinstance(exc, FileVaultError)

    status, code = storage_error_status(exc)
    if status >= 500:
        logger.error("Storage error: %s (%s)", code, exc)
        message = "Storage operation failed"
    else:
        message = exc.message

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=status,
        details=None,
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for HTTPException."""
    assert isinstance(exc, HTTPException)

    code = code_for_status(exc.status_code)
    message = str(exc.detail) if exc.detail else f"HTTP {exc.status_code}"

    return make_error_response(
        request,
        code=code,
        message=message,
        http_status=exc.status_code,
        details=None,
    )


async def request_validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """FastAPI exception handler for RequestValidationError.

    Reports field locations and messages without echoing rejected input.
    """
    assert isinstance(exc, RequestValidationError)

    safe_details: list[dict[str, Any]] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        safe_loc = [str(part) for part in loc if part not in ("body", "query", "path")]
        safe_details.append(
            {
                "field": ".".join(safe_loc) if safe_loc else "request",
                "message": error.get("msg", "Validation error"),
            }
        )

    return make_error_response(
        request,
        code="REQUEST_VALIDATION_FAILED",
        message="Request validation failed",
        http_status=422,
        details={"errors": safe_details} if safe_details else None,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler for unhandled exceptions."""
    request_id = getattr(request.state, "request_id", None)

    logger.exception(
        "Unhandled exception: %s",
        type(exc).__name__,
        extra={"request_id": request_id},
    )

    return make_error_response(
        request,
        code="INTERNAL_ERROR",
        message="An internal error occurred",
        http_status=500,
        details=None,
    )
