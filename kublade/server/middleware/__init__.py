"""
Middleware and guards for the Kublade server.

This package contains the request logging middleware and the authentication
and permission guards applied to API routes.
"""

from .guards import JsonEnvelopeRoute, PermissionGuard, get_current_user, require
from .request_logging import RequestLoggingMiddleware

__all__ = [
    "JsonEnvelopeRoute",
    "PermissionGuard",
    "RequestLoggingMiddleware",
    "get_current_user",
    "require",
]
