"""
User Endpoints.

Administration of user accounts including their roles and direct permission
grants.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from kublade.core.database.entities.users import User
from kublade.core.database.repositories import RoleRepository, UserRepository
from kublade.core.exceptions import ApiError, NotFoundError
from kublade.core.logging_config import get_logger
from kublade.core.models.io.users import UserCreate, UserDetailRead, UserRead, UserUpdate
from kublade.core.security import hash_password
from kublade.server.api.pagination import page_payload
from kublade.server.core import constant
from kublade.server.middleware.guards import JsonEnvelopeRoute, require
from kublade.server.responses import success
from kublade.server.services.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(route_class=JsonEnvelopeRoute)


async def _user_detail(users: UserRepository, user: User) -> dict:
    detail = UserDetailRead.model_validate(user)
    detail.roles = [role.name for role in await users.roles_of(user)]
    detail.permissions = await users.direct_permissions_of(user)
    return detail.model_dump(mode="json")


async def _checked_role_ids(session: AsyncSession, role_ids: list[int]) -> list[int]:
    found = {role.id for role in await RoleRepository(session).get_many(role_ids)}
    missing = sorted(set(role_ids) - found)
    if missing:
        raise ApiError(400, "Validation failed", {"roles": [f"Role {role_id} does not exist." for role_id in missing]})
    return role_ids


@router.get(
    "",
    summary="List Users",
    dependencies=[require("users.view")],
)
async def list_users(session: SessionDep, cursor: Optional[str] = None) -> JSONResponse:
    page = await UserRepository(session).paginate(cursor=cursor, per_page=constant.PAGE_SIZE)
    return success("Users retrieved", page_payload("users", page, UserRead))


@router.get(
    "/{user_id}",
    summary="Get User",
    responses={404: {"description": "User not found"}},
    dependencies=[require("users.view")],
)
async def get_user(user_id: int, session: SessionDep) -> JSONResponse:
    users = UserRepository(session)
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return success("User retrieved", await _user_detail(users, user))


@router.post(
    "",
    summary="Add User",
    description="Create a user with roles and direct permissions.",
    responses={400: {"description": "Validation failed"}},
    dependencies=[require("users.add")],
)
async def add_user(payload: UserCreate, session: SessionDep) -> JSONResponse:
    users = UserRepository(session)
    if await users.get_by_email(payload.email) is not None:
        raise ApiError(400, "Validation failed", {"email": ["The email has already been taken."]})
    role_ids = await _checked_role_ids(session, payload.roles)

    user = await users.create(User(name=payload.name, email=payload.email, password=hash_password(payload.password)))
    await users.sync_roles(user, role_ids)
    await users.sync_permissions(user, payload.permissions)
    logger.info(f"Created user {user.id}")
    return success("User created", await _user_detail(users, user))


@router.patch(
    "/{user_id}",
    summary="Update User",
    responses={400: {"description": "Validation failed"}, 404: {"description": "User not found"}},
    dependencies=[require("users.update")],
)
async def update_user(user_id: int, payload: UserUpdate, session: SessionDep) -> JSONResponse:
    users = UserRepository(session)
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")

    if payload.email is not None and payload.email != user.email:
        if await users.get_by_email(payload.email) is not None:
            raise ApiError(400, "Validation failed", {"email": ["The email has already been taken."]})
        user.email = payload.email
    if payload.name is not None:
        user.name = payload.name
    if payload.password is not None:
        user.password = hash_password(payload.password)
    user = await users.update(user)

    if payload.roles is not None:
        await users.sync_roles(user, await _checked_role_ids(session, payload.roles))
    if payload.permissions is not None:
        await users.sync_permissions(user, payload.permissions)

    return success("User updated", await _user_detail(users, user))


@router.delete(
    "/{user_id}",
    summary="Delete User",
    responses={400: {"description": "Users cannot delete themselves"}, 404: {"description": "User not found"}},
    dependencies=[require("users.delete")],
)
async def delete_user(user_id: int, session: SessionDep, current: CurrentUser) -> JSONResponse:
    users = UserRepository(session)
    user = await users.get_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    if user.id == current.id:
        raise ApiError(400, "User not deleted")

    data = UserRead.model_validate(user).model_dump(mode="json")
    await users.delete(user.id)
    logger.info(f"User {current.id} deleted user {user_id}")
    return success("User deleted", data)
