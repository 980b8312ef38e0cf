"""Error types for Kublade.

Defines a small hierarchy of exceptions raised by the API layer and the
background jobs. Every error carries a numeric ``code`` that is reported in
the ``error`` block of the response envelope.
"""

from __future__ import annotations

from typing import Any, Optional


class KubladeError(Exception):
    """Base error for all Kublade exceptions."""

    def __init__(self, message: str = "", code: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class TemplateError(KubladeError):
    """Raised when a template cannot be imported or resolved."""


class ApiError(KubladeError):
    """Raised by guards and endpoints to short-circuit with an envelope response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        data: Optional[Any] = None,
        status: str = "error",
    ) -> None:
        super().__init__(message, status_code)
        self.status_code = status_code
        self.status = status
        self.data = data


class UnauthorizedError(ApiError):
    """Raised when no principal is present or it lacks every requested permission."""

    def __init__(self) -> None:
        super().__init__(401, "Unauthorized")


class NotFoundError(ApiError):
    """Raised when a requested resource does not exist or is not visible."""

    def __init__(self, message: str = "Not found") -> None:
        super().__init__(404, message)
