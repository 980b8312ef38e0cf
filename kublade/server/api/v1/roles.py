"""
Role and Permission Endpoints.

Roles bundle permission names. The permission catalogue lists every
permission the API's guards can check, expanded with the wildcards that
grant them, both flat and as a tree.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlmodel import select

from kublade.core.database.entities.projects import Project
from kublade.core.database.entities.templates import (
    Template,
    TemplateDirectory,
    TemplateField,
    TemplateFieldOption,
    TemplateFile,
    TemplatePort,
)
from kublade.core.database.entities.users import Role
from kublade.core.database.repositories import RoleRepository
from kublade.core.exceptions import ApiError, NotFoundError
from kublade.core.models.io.roles import RoleCreate, RoleRead, RoleUpdate
from kublade.core.permissions import PermissionSet
from kublade.server.api.pagination import page_payload
from kublade.server.core import constant
from kublade.server.middleware.guards import JsonEnvelopeRoute, declared_permissions, require
from kublade.server.responses import success
from kublade.server.services.deps import SessionDep

router = APIRouter(route_class=JsonEnvelopeRoute)
permissions_router = APIRouter(route_class=JsonEnvelopeRoute)

# Route parameter -> entity whose ids fill it in the permission catalogue
IDENTIFIED_BY = {
    "project_id": Project,
    "template_id": Template,
    "folder_id": TemplateDirectory,
    "file_id": TemplateFile,
    "field_id": TemplateField,
    "option_id": TemplateFieldOption,
    "port_id": TemplatePort,
}


async def _role_read(roles: RoleRepository, role: Role) -> dict:
    read = RoleRead.model_validate(role)
    read.permissions = await roles.permissions_of(role)
    return read.model_dump(mode="json")


@router.get(
    "",
    summary="List Roles",
    dependencies=[require("roles.view")],
)
async def list_roles(session: SessionDep, cursor: Optional[str] = None) -> JSONResponse:
    roles = RoleRepository(session)
    page = await roles.paginate(cursor=cursor, per_page=constant.PAGE_SIZE)
    payload = page_payload("roles", page, RoleRead)
    for item, role in zip(payload["roles"], page.items):
        item["permissions"] = await roles.permissions_of(role)
    return success("Roles retrieved", payload)


@router.get(
    "/{role_id}",
    summary="Get Role",
    responses={404: {"description": "Role not found"}},
    dependencies=[require("roles.view")],
)
async def get_role(role_id: int, session: SessionDep) -> JSONResponse:
    roles = RoleRepository(session)
    role = await roles.get_by_id(role_id)
    if role is None:
        raise NotFoundError("Role not found")
    return success("Role retrieved", await _role_read(roles, role))


@router.post(
    "",
    summary="Add Role",
    responses={400: {"description": "Validation failed"}},
    dependencies=[require("roles.add")],
)
async def add_role(payload: RoleCreate, session: SessionDep) -> JSONResponse:
    roles = RoleRepository(session)
    if await roles.get_by_name(payload.name) is not None:
        raise ApiError(400, "Validation failed", {"name": ["The name has already been taken."]})
    role = await roles.create(Role(name=payload.name))
    await roles.sync_permissions(role, payload.permissions)
    return success("Role created", await _role_read(roles, role))


@router.patch(
    "/{role_id}",
    summary="Update Role",
    responses={400: {"description": "Validation failed"}, 404: {"description": "Role not found"}},
    dependencies=[require("roles.update")],
)
async def update_role(role_id: int, payload: RoleUpdate, session: SessionDep) -> JSONResponse:
    roles = RoleRepository(session)
    role = await roles.get_by_id(role_id)
    if role is None:
        raise NotFoundError("Role not found")
    if payload.name is not None and payload.name != role.name:
        if await roles.get_by_name(payload.name) is not None:
            raise ApiError(400, "Validation failed", {"name": ["The name has already been taken."]})
        role.name = payload.name
        role = await roles.update(role)
    if payload.permissions is not None:
        await roles.sync_permissions(role, payload.permissions)
    return success("Role updated", await _role_read(roles, role))


@router.delete(
    "/{role_id}",
    summary="Delete Role",
    responses={404: {"description": "Role not found"}},
    dependencies=[require("roles.delete")],
)
async def delete_role(role_id: int, session: SessionDep) -> JSONResponse:
    roles = RoleRepository(session)
    role = await roles.get_by_id(role_id)
    if role is None:
        raise NotFoundError("Role not found")
    data = await _role_read(roles, role)
    await roles.delete(role.id)
    return success("Role deleted", data)


@permissions_router.get(
    "",
    summary="List Permissions",
    description="Every grantable permission, flat and as a tree.",
    dependencies=[require("roles.view")],
)
async def list_permissions(request: Request, session: SessionDep) -> JSONResponse:
    identifiers = {}
    for parameter, model in IDENTIFIED_BY.items():
        stmt = select(model.id)
        if hasattr(model, "deleted_at"):
            stmt = stmt.where(model.deleted_at.is_(None))
        result = await session.execute(stmt)
        identifiers[parameter] = list(result.scalars().all())

    permissions = PermissionSet.all(declared_permissions(request.app.routes), identifiers)
    return success("Permissions retrieved", {"permissions": permissions, "tree": PermissionSet.tree(permissions)})
