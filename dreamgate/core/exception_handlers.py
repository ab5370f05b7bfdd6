"""Global exception handlers for consistent error responses.

Design:
- AppError subclasses map to an HTTP status (400, 429, 502)
- Unexpected Exception → generic 500 (safety net)
- All responses carry request_id for tracing
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dreamgate.core.errors import AppError, LLMAppError, RateLimitedAppError, ValidationAppError
from dreamgate.core.logging import get_request_id

logger = logging.getLogger(__name__)

# Checked in order; the first matching class wins.
_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (RateLimitedAppError, 429),
    (ValidationAppError, 400),
    (LLMAppError, 502),
)


def status_for_error(exc: AppError) -> int:
    """Return the HTTP status code for a domain error (400 by default)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error as ``{"error": {code, message, request_id, details?}}``.

    Rate-limit denials also carry their Retry-After / X-RateLimit-* headers.
    """
    status_code = status_for_error(exc)

    log = logger.info if isinstance(exc, RateLimitedAppError) else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_path": request.url.path,
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    headers = exc.headers if isinstance(exc, RateLimitedAppError) else None
    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
        headers=headers or None,
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the failure and returns a generic message; no exception text or
    stack trace reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the domain and fallback handlers on the app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
