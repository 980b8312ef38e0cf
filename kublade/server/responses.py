"""
Response envelope.

Every API response body has the shape::

    {"status": "success" | "error", "message": "...", "data": ...}

When the payload is an exception, ``data`` is replaced by an ``error`` block
describing it::

    {"status": "error", "message": "...",
     "error": {"message", "code", "file", "line", "trace": [...]}}

When there is no payload, neither ``data`` nor ``error`` is present.
"""

from __future__ import annotations

import traceback
from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def describe_exception(exc: BaseException) -> dict[str, Any]:
    """
    Build the ``error`` block for an exception.

    ``file`` and ``line`` point at the frame that raised the exception; they
    are ``None`` for exceptions that were never raised.
    """
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ is not None else []
    code = getattr(exc, "code", 0)
    last = frames[-1] if frames else None
    return {
        "message": str(exc),
        "code": code if isinstance(code, int) else 0,
        "file": last.filename if last else None,
        "line": last.lineno if last else None,
        "trace": [{"file": frame.filename, "line": frame.lineno, "function": frame.name} for frame in frames],
    }


def generate(code: int, status: str, message: str, data: Optional[Any] = None) -> JSONResponse:
    """
    Generate an enveloped JSON response.

    Args:
        code: HTTP status code
        status: ``success`` or ``error``
        message: Human readable message
        data: Payload returned verbatim, or an exception to describe

    Returns:
        JSONResponse with the envelope body
    """
    content: dict[str, Any] = {"status": status, "message": message}
    if isinstance(data, BaseException):
        content["error"] = describe_exception(data)
    elif data is not None:
        content["data"] = jsonable_encoder(data)
    return JSONResponse(status_code=code, content=content)


def success(message: str, data: Optional[Any] = None, code: int = 200) -> JSONResponse:
    """Envelope a successful result with status ``success`` (HTTP 200 unless ``code`` says otherwise)."""
    return generate(code, "success", message, data)
