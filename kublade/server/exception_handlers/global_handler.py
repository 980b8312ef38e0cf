"""
Exception handlers for the FastAPI application.

Every error leaving the application is rendered through the response
envelope:

- ``ApiError`` (raised by guards and endpoints) keeps its status and message.
- Request validation errors become ``400 Validation failed`` with the
  offending fields under ``data``.
- Unknown routes become ``404 Not found``.
- Any other exception is logged with an error id and answered with
  ``500 Server Error``; exception details are only disclosed in debug mode.
"""

import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kublade.core.exceptions import ApiError
from kublade.core.logging_config import get_logger
from kublade.core.monitoring import log_error
from kublade.server.core.config import settings
from kublade.server.responses import generate

logger = get_logger(__name__)


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Render an ``ApiError`` raised by a guard or endpoint."""
    return generate(exc.status_code, exc.status, exc.message, exc.data)


def _validation_messages(errors: list[dict[str, Any]]) -> dict[str, list[str]]:
    messages: dict[str, list[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        # Drop the request part prefix (body, query, path)
        field = ".".join(loc[1:]) if len(loc) > 1 else ".".join(loc)
        messages.setdefault(field or "request", []).append(str(error.get("msg", "Invalid value")))
    return messages


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as ``400 Validation failed``."""
    messages = _validation_messages(list(exc.errors()))
    logger.debug(f"Validation failed for {request.method} {request.url.path}: {messages}")
    return generate(400, "error", "Validation failed", messages)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors, including unknown routes."""
    if exc.status_code == 404:
        return generate(404, "error", "Not found")
    return generate(exc.status_code, "error", str(exc.detail))


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception handler to log detailed error information.

    This handler is called for any unhandled exception in the application.
    It logs the full error context and returns the error envelope with an
    error id that clients can use to reference the error when reporting issues.

    Args:
        request: The HTTP request that caused the exception
        exc: The exception that was raised

    Returns:
        JSONResponse with the ``Server Error`` envelope
    """
    error_id = id(exc)

    logger.error(
        f"Unhandled exception [{error_id}] in {request.method} {request.url.path}: {str(exc)}",
        exc_info=True,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
            "traceback": traceback.format_exc(),
        },
    )
    log_error(type(exc).__name__, str(exc), {"error_id": error_id, "path": request.url.path})

    if settings.debug:
        return generate(500, "error", "Server Error", exc)
    return generate(500, "error", "Server Error", {"error_id": error_id})


def setup_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    logger.debug("Exception handlers registered successfully")
