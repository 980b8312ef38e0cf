"""
Authentication and permission guards.

Guards are FastAPI dependencies attached to routes:

- ``get_current_user`` resolves the bearer token into a ``User`` and raises
  ``UnauthorizedError`` when there is none.
- ``PermissionGuard("projects.update")`` binds the permission template to the
  request's route parameters, expands it with ``PermissionSet`` and lets the
  request through when the user holds at least one permission of the set.

Routers using guards are built with ``JsonEnvelopeRoute`` so that a handler
returning anything other than a JSON response is answered with a 500
``Server Error`` envelope.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.responses import Response

from kublade.core.database import get_session
from kublade.core.database.entities.users import AccessToken, User
from kublade.core.database.repositories import AccessTokenRepository, UserRepository
from kublade.core.exceptions import UnauthorizedError
from kublade.core.logging_config import get_logger
from kublade.core.permissions import PermissionSet
from kublade.server.responses import generate

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False, scheme_name="bearerAuth")


async def get_current_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> AccessToken:
    """Resolve the presented bearer token into its active record."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    token = await AccessTokenRepository(session).resolve(credentials.credentials)
    if token is None:
        logger.debug(f"Rejected bearer token on {request.method} {request.url.path}")
        raise UnauthorizedError()
    return token


async def get_current_user(
    request: Request,
    token: AccessToken = Depends(get_current_token),
    session: AsyncSession = Depends(get_session),
) -> User:
    """Authentication guard: the principal owning the presented token."""
    user = await UserRepository(session).get_by_id(token.user_id)
    if user is None:
        raise UnauthorizedError()
    request.state.user = user
    return user


class PermissionGuard:
    """Dependency checking that the current user holds a permission."""

    def __init__(self, permission: str) -> None:
        self.permission = permission

    async def __call__(
        self,
        request: Request,
        user: User = Depends(get_current_user),
        session: AsyncSession = Depends(get_session),
    ) -> User:
        permissions = PermissionSet.from_request(self.permission, request.path_params)
        if not await UserRepository(session).can_any(user, permissions):
            logger.info(
                f"Permission denied for user {user.id} on {request.method} {request.url.path}",
                extra={"user_id": user.id, "permission": self.permission, "permission_set": permissions},
            )
            raise UnauthorizedError()
        return user

    def __repr__(self) -> str:
        return f"PermissionGuard({self.permission!r})"


def require(permission: str) -> Any:
    """Shorthand for ``Depends(PermissionGuard(permission))``."""
    return Depends(PermissionGuard(permission))


class JsonEnvelopeRoute(APIRoute):
    """Route class that only lets JSON responses through."""

    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()
        path = self.path

        async def json_only_route_handler(request: Request) -> Response:
            response = await original_route_handler(request)
            if isinstance(response, JSONResponse):
                return response
            logger.warning(
                f"Handler for {request.method} {path} returned {type(response).__name__} "
                f"with status {response.status_code}; answering 500",
                extra={
                    "method": request.method,
                    "path": path,
                    "response_type": type(response).__name__,
                    "response_status": response.status_code,
                },
            )
            return generate(500, "error", "Server Error")

        return json_only_route_handler


def _guards_of(dependant) -> Iterable[PermissionGuard]:
    for dependency in dependant.dependencies:
        if isinstance(dependency.call, PermissionGuard):
            yield dependency.call
        yield from _guards_of(dependency)


def _nested_routes(route: Any) -> Iterable[Any]:
    nested = getattr(route, "routes", None)
    if nested is None:
        nested = getattr(getattr(route, "router", None), "routes", None)
    return nested or ()


def declared_permissions(routes: Iterable[Any]) -> list[tuple[str, list[str]]]:
    """
    Collect ``(permission, route_parameter_names)`` for every guarded route.

    Containers exposing ``routes`` (mounts, included routers) are walked
    recursively.
    """
    declared = []
    for route in routes:
        if isinstance(route, APIRoute):
            for guard in _guards_of(route.dependant):
                declared.append((guard.permission, list(route.param_convertors.keys())))
        else:
            declared.extend(declared_permissions(_nested_routes(route)))
    return declared
