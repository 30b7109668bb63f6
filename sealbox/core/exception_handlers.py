"""Global exception handlers for consistent error responses.

Every failing response has the same minimal shape, ``{"error": "<message>"}``,
so response bodies cannot be used to fingerprint internal state.

Design:
- AppError subclasses → status by type (400, 404, 500, 507)
- Framework HTTP errors (404, 405, 413, 429) → fixed generic text
- Unexpected Exception → generic 500 (safety net)
- Codes, errno values and paths are logged, never returned
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from sealbox.core.errors import (
    AppError,
    PublicKeyUnavailableError,
    StorageFullError,
    ValidationAppError,
)
from sealbox.core.logging import get_request_id

logger = logging.getLogger(__name__)

SERVER_ERROR_MESSAGE = "Server error"
INVALID_REQUEST_MESSAGE = "Invalid request"

_HTTP_ERROR_MESSAGES = {
    404: "Not found",
    405: "Method not allowed",
    413: "Payload too large",
    429: "Too many requests. Please try again later.",
}


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, PublicKeyUnavailableError):
        return 404
    if isinstance(exc, StorageFullError):
        return 507
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the uniform error body.

    Routes domain errors to HTTP status codes:
    - ValidationAppError → 400 Bad Request (client fault)
    - PublicKeyUnavailableError → 404 (key not provisioned)
    - StorageFullError → 507 Insufficient Storage
    - PublicKeyFormatError, StorageAppError → 500

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with the status code and the error's generic message.
    """
    status_code = _status_for(exc)

    log = logger.warning if status_code < 500 else logger.error
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "details": exc.details,
            "request_id": get_request_id(),
        },
    )

    return error_response(status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Replace framework error details with fixed generic messages.

    Headers set on the exception (e.g. Retry-After on 429) are preserved.
    """
    message = _HTTP_ERROR_MESSAGES.get(exc.status_code)
    if message is None:
        message = SERVER_ERROR_MESSAGE if exc.status_code >= 500 else INVALID_REQUEST_MESSAGE

    logger.info(
        "http_error_handled",
        extra={"status_code": exc.status_code, "request_id": get_request_id()},
    )

    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(
        "request_validation_failed",
        extra={"error_count": len(exc.errors()), "request_id": get_request_id()},
    )
    return error_response(400, INVALID_REQUEST_MESSAGE)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the exception type and message for operators while returning a
    generic message. No stack traces or request metadata reach the client.

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_id": get_request_id(),
        },
    )

    return error_response(500, SERVER_ERROR_MESSAGE)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
