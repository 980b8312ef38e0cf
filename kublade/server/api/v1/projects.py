"""
Project Endpoints.

CRUD for projects. Users see projects they own or were invited to (with the
invitation accepted); only the owner may update or delete a project.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from kublade.core.database.entities.projects import Project
from kublade.core.database.repositories import ProjectRepository
from kublade.core.exceptions import NotFoundError
from kublade.core.logging_config import get_logger
from kublade.core.models.io.projects import ProjectRead, ProjectWrite
from kublade.server.api.pagination import page_payload
from kublade.server.core import constant
from kublade.server.middleware.guards import JsonEnvelopeRoute, require
from kublade.server.responses import success
from kublade.server.services.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(route_class=JsonEnvelopeRoute)


def _project(project: Project) -> dict:
    return {"project": ProjectRead.model_validate(project).model_dump(mode="json")}


@router.get(
    "",
    summary="List Projects",
    description="List the projects owned by or shared with the current user, ten per page.",
    response_description="Projects and cursor links.",
    dependencies=[require("projects.view")],
)
async def list_projects(session: SessionDep, user: CurrentUser, cursor: Optional[str] = None) -> JSONResponse:
    projects = ProjectRepository(session)
    page = await projects.paginate(projects.visible_to(user.id), cursor=cursor, per_page=constant.PAGE_SIZE)
    return success("Projects retrieved", page_payload("projects", page, ProjectRead))


@router.post(
    "",
    summary="Add Project",
    description="Create a project owned by the current user.",
    responses={201: {"description": "Project added"}, 400: {"description": "Validation failed"}},
    dependencies=[require("projects.add")],
)
async def add_project(payload: ProjectWrite, session: SessionDep, user: CurrentUser) -> JSONResponse:
    project = await ProjectRepository(session).create(Project(user_id=user.id, name=payload.name))
    logger.info(f"User {user.id} added project {project.id}")
    return success("Project added", _project(project), code=201)


@router.get(
    "/{project_id}",
    summary="Get Project",
    responses={404: {"description": "Project not found"}},
    dependencies=[require("projects.view")],
)
async def get_project(project_id: str, session: SessionDep, user: CurrentUser) -> JSONResponse:
    project = await ProjectRepository(session).get_visible(project_id, user.id)
    if project is None:
        raise NotFoundError("Project not found")
    return success("Project retrieved", _project(project))


@router.patch(
    "/{project_id}",
    summary="Update Project",
    description="Rename a project. Only the owner may update it.",
    responses={404: {"description": "Project not found"}},
    dependencies=[require("projects.update")],
)
async def update_project(project_id: str, payload: ProjectWrite, session: SessionDep, user: CurrentUser) -> JSONResponse:
    projects = ProjectRepository(session)
    project = await projects.get_owned(project_id, user.id)
    if project is None:
        raise NotFoundError("Project not found")
    project.name = payload.name
    await projects.update(project)
    return success("Project updated")


@router.delete(
    "/{project_id}",
    summary="Delete Project",
    description="Soft delete a project. Only the owner may delete it.",
    responses={404: {"description": "Project not found"}},
    dependencies=[require("projects.delete")],
)
async def delete_project(project_id: str, session: SessionDep, user: CurrentUser) -> JSONResponse:
    projects = ProjectRepository(session)
    project = await projects.get_owned(project_id, user.id)
    if project is None:
        raise NotFoundError("Project not found")
    await projects.delete(project.id)
    logger.info(f"User {user.id} deleted project {project.id}")
    return success("Project deleted")
