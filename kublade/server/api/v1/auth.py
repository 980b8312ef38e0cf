"""
Authentication Endpoints.

Registration, login and token lifecycle. Tokens are opaque bearer strings;
only their digest is stored, so a token can be shown to the client once.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from kublade.core.database.entities.users import AccessToken, User
from kublade.core.database.repositories import AccessTokenRepository, UserRepository
from kublade.core.exceptions import ApiError, UnauthorizedError
from kublade.core.logging_config import get_logger
from kublade.core.models.io.auth import LoginRequest, RegisterRequest, TokenRead
from kublade.core.models.io.users import UserDetailRead, UserRead
from kublade.core.security import hash_password, verify_password
from kublade.server.core.config import settings
from kublade.server.middleware.guards import JsonEnvelopeRoute, get_current_token, get_current_user
from kublade.server.responses import success
from kublade.server.services.deps import SessionDep

logger = get_logger(__name__)

router = APIRouter(route_class=JsonEnvelopeRoute)


def _token_payload(plain: str, record: AccessToken) -> dict:
    return TokenRead(token=plain, expires_at=record.expires_at).model_dump(mode="json")


@router.post(
    "/register",
    summary="Register",
    description="Create a user account and issue its first API token.",
    response_description="The registered user and a bearer token.",
    responses={
        201: {"description": "User registered successfully"},
        400: {"description": "Validation failed"},
    },
)
async def register(payload: RegisterRequest, session: SessionDep) -> JSONResponse:
    users = UserRepository(session)
    if await users.get_by_email(payload.email) is not None:
        raise ApiError(400, "Validation failed", {"email": ["The email has already been taken."]})

    user = await users.create(
        User(name=payload.name, email=payload.email, password=hash_password(payload.password))
    )
    plain, record = await AccessTokenRepository(session).issue(user, settings.token_ttl_minutes)
    logger.info(f"Registered user {user.id}")

    return success(
        "User registered successfully",
        {"user": UserRead.model_validate(user).model_dump(mode="json"), "token": _token_payload(plain, record)},
        code=201,
    )


@router.post(
    "/login",
    summary="Login",
    description="Exchange email and password for an API token.",
    response_description="A bearer token.",
    responses={
        200: {"description": "Login successful"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(payload: LoginRequest, session: SessionDep) -> JSONResponse:
    user = await UserRepository(session).get_by_email(payload.email)
    if user is None or not verify_password(payload.password, user.password):
        logger.info(f"Failed login attempt for {payload.email}")
        raise UnauthorizedError()

    plain, record = await AccessTokenRepository(session).issue(user, settings.token_ttl_minutes)
    return success("Login successful", {"token": _token_payload(plain, record)})


@router.get(
    "/me",
    summary="Current User",
    description="Return the authenticated user with its roles and direct permissions.",
    responses={401: {"description": "Unauthorized"}},
)
async def me(session: SessionDep, user: User = Depends(get_current_user)) -> JSONResponse:
    users = UserRepository(session)
    detail = UserDetailRead.model_validate(user)
    detail.roles = [role.name for role in await users.roles_of(user)]
    detail.permissions = await users.direct_permissions_of(user)
    return success("User authenticated", detail.model_dump(mode="json"))


@router.post(
    "/logout",
    summary="Logout",
    description="Revoke the presented token.",
    responses={401: {"description": "Unauthorized"}},
)
async def logout(session: SessionDep, token: AccessToken = Depends(get_current_token)) -> JSONResponse:
    await AccessTokenRepository(session).revoke(token)
    return success("Successfully logged out")


@router.post(
    "/refresh",
    summary="Refresh Token",
    description="Revoke the presented token and issue a new one.",
    responses={401: {"description": "Unauthorized"}},
)
async def refresh(
    session: SessionDep,
    token: AccessToken = Depends(get_current_token),
    user: User = Depends(get_current_user),
) -> JSONResponse:
    tokens = AccessTokenRepository(session)
    await tokens.revoke(token)
    plain, record = await tokens.issue(user, settings.token_ttl_minutes)
    return success("Token refreshed", {"token": _token_payload(plain, record)})
