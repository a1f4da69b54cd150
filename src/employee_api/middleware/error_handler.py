"""Exception handlers mapping errors to safe JSON responses."""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from employee_api.config import get_settings
from employee_api.exceptions import (
    AuthenticationError,
    ConflictError,
    DuplicateRecordError,
    EmployeeAPIError,
    NotFoundError,
    StateTransitionError,
    UserNotActiveError,
    ValidationError,
)
from employee_api.utils.secure_logging import sanitize_exception_message

logger = logging.getLogger(__name__)

# Safe error messages that can be shown to users
SAFE_ERROR_MESSAGES = {
    400: "Invalid request",
    401: "Authentication required",
    403: "Access denied",
    404: "Resource not found",
    405: "Method not allowed",
    409: "Conflict with existing resource",
    422: "Invalid input data",
    500: "Internal server error",
    503: "Service temporarily unavailable",
}

# HTTPException details that are safe to pass through
ALLOWED_ERROR_PATTERNS = [
    "Authentication required",
    "Insufficient permissions",
    "Invalid or expired token",
    "Access denied",
    "Not Found",
]

# Most specific class first
_STATUS_BY_ERROR: list[tuple[type[EmployeeAPIError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (StateTransitionError, status.HTTP_409_CONFLICT),
    (UserNotActiveError, status.HTTP_403_FORBIDDEN),
    (AuthenticationError, status.HTTP_401_UNAUTHORIZED),
    (DuplicateRecordError, status.HTTP_409_CONFLICT),
]


def _get_cors_headers(request: Request) -> dict[str, str]:
    """Get CORS headers for error responses.

    Exception handlers run outside the CORS middleware, so allowed origins
    are echoed here.
    """
    origin = request.headers.get("origin")
    if origin and origin in get_settings().cors_origins_list:
        return {
            "Access-Control-Allow-Origin": origin,
            "Access-Control-Allow-Credentials": "true",
        }
    return {}


def status_for_error(exc: EmployeeAPIError) -> int:
    """Pick the HTTP status for a domain error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def sanitize_error_detail(detail: Any, status_code: int) -> str:
    """Sanitize error detail to prevent information disclosure.

    Args:
        detail: Original error detail
        status_code: HTTP status code

    Returns:
        Safe error message
    """
    if isinstance(detail, str):
        lowered = detail.lower()
        if any(pattern.lower() in lowered for pattern in ALLOWED_ERROR_PATTERNS):
            return detail
    elif isinstance(detail, list):
        # Validation errors: field name and message only
        safe_errors = []
        for error in detail:
            if isinstance(error, dict):
                loc = error.get("loc", [])
                field = loc[-1] if loc else "field"
                if isinstance(field, str) and not field.startswith("_"):
                    safe_errors.append(f"{field}: {error.get('msg', 'Invalid value')}")
        if safe_errors:
            return "; ".join(safe_errors[:3])

    return SAFE_ERROR_MESSAGES.get(status_code, "Request failed")


async def employee_api_error_handler(request: Request, exc: EmployeeAPIError) -> JSONResponse:
    """Handle domain errors.

    Domain messages describe the caller's input or the resource state and
    are returned as-is; persistence failures are reduced to a generic
    message.
    """
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(
            "Unhandled domain error for %s: %s",
            request.url.path,
            sanitize_exception_message(exc),
        )
        content: dict[str, Any] = {"detail": SAFE_ERROR_MESSAGES[500]}
    else:
        logger.info("%s for %s: %s", type(exc).__name__, request.url.path, exc.message)
        content = {"detail": exc.message}
        if exc.details and not isinstance(exc, AuthenticationError):
            content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content=content,
        headers=_get_cors_headers(request),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with sanitized messages."""
    detail = exc.detail if get_settings().debug else sanitize_error_detail(exc.detail, exc.status_code)
    headers = {**(exc.headers or {}), **_get_cors_headers(request)}
    return JSONResponse(status_code=exc.status_code, content={"detail": detail}, headers=headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError | PydanticValidationError
) -> JSONResponse:
    """Handle request and model validation errors with sanitized messages."""
    errors = exc.errors()
    logger.warning("Validation error for %s: %d errors", request.url.path, len(errors))

    if get_settings().debug:
        detail: Any = [
            {"loc": list(e.get("loc", [])), "msg": e.get("msg"), "type": e.get("type")}
            for e in errors
        ]
    else:
        detail = sanitize_error_detail(errors, status.HTTP_422_UNPROCESSABLE_ENTITY)

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": detail},
        headers=_get_cors_headers(request),
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy exceptions without leaking database details."""
    logger.error(
        "Database error for %s: %s", request.url.path, sanitize_exception_message(exc)
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error occurred"},
        headers=_get_cors_headers(request),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions without leaking information."""
    logger.error("Unhandled exception for %s", request.url.path, exc_info=exc)

    if get_settings().debug:
        content = {"detail": str(exc), "type": type(exc).__name__}
    else:
        content = {"detail": SAFE_ERROR_MESSAGES[500]}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
        headers=_get_cors_headers(request),
    )
