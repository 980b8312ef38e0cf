"""
Template Endpoints.

CRUD for templates and their optional git source, and for the directories,
files, fields (with their options) and ports that make up a template. Git
sourced templates have these rows maintained by the git import job as well.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from kublade.core.database.entities.templates import (
    Template,
    TemplateDirectory,
    TemplateField,
    TemplateFieldOption,
    TemplateFile,
    TemplatePort,
)
from kublade.core.database.repositories import (
    AsyncBaseRepository,
    TemplateDirectoryRepository,
    TemplateFieldOptionRepository,
    TemplateFieldRepository,
    TemplateFileRepository,
    TemplatePortRepository,
    TemplateRepository,
)
from kublade.core.exceptions import ApiError, NotFoundError
from kublade.core.logging_config import get_logger
from kublade.core.models.io.templates import (
    GitCredentialRead,
    TemplateCreate,
    TemplateDirectoryRead,
    TemplateDirectoryWrite,
    TemplateFieldOptionRead,
    TemplateFieldOptionWrite,
    TemplateFieldRead,
    TemplateFieldWrite,
    TemplateFileCreate,
    TemplateFileRead,
    TemplateFileUpdate,
    TemplatePortRead,
    TemplatePortWrite,
    TemplateRead,
    TemplateUpdate,
)
from kublade.server.api.pagination import page_payload
from kublade.server.core import constant
from kublade.server.middleware.guards import JsonEnvelopeRoute, require
from kublade.server.responses import success
from kublade.server.services.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(route_class=JsonEnvelopeRoute)


async def _template_read(templates: TemplateRepository, template: Template) -> dict:
    read = TemplateRead.model_validate(template)
    credentials = await templates.git_credentials_of(template.id)
    if credentials is not None:
        read.git_credentials = GitCredentialRead.model_validate(credentials)
    return read.model_dump(mode="json")


async def _existing_template(templates: TemplateRepository, template_id: str) -> Template:
    template = await templates.get_by_id(template_id)
    if template is None:
        raise NotFoundError("Template not found")
    return template


@router.get(
    "",
    summary="List Templates",
    description="List templates, ten per page.",
    response_description="Templates and cursor links.",
    dependencies=[require("templates.view")],
)
async def list_templates(session: SessionDep, cursor: Optional[str] = None) -> JSONResponse:
    page = await TemplateRepository(session).paginate(cursor=cursor, per_page=constant.PAGE_SIZE)
    return success("Templates retrieved successfully", page_payload("templates", page, TemplateRead))


@router.post(
    "",
    summary="Add Template",
    description="Create a template, optionally sourced from a git repository.",
    responses={201: {"description": "Template added successfully"}, 400: {"description": "Validation failed"}},
    dependencies=[require("templates.add")],
)
async def add_template(payload: TemplateCreate, session: SessionDep, user: CurrentUser) -> JSONResponse:
    templates = TemplateRepository(session)
    template = await templates.create(Template(user_id=user.id, name=payload.name, netpol=payload.netpol))
    if payload.git_credentials is not None:
        await templates.save_git_credentials(template.id, payload.git_credentials.model_dump())
    logger.info(f"User {user.id} added template {template.id}")
    return success("Template added successfully", {"template": await _template_read(templates, template)}, code=201)


@router.get(
    "/{template_id}",
    summary="Get Template",
    responses={404: {"description": "Template not found"}},
    dependencies=[require("templates.view")],
)
async def get_template(template_id: str, session: SessionDep) -> JSONResponse:
    templates = TemplateRepository(session)
    template = await _existing_template(templates, template_id)
    return success("Template retrieved successfully", {"template": await _template_read(templates, template)})


@router.patch(
    "/{template_id}",
    summary="Update Template",
    description="Update a template. Sending `git_credentials: null` detaches its git source.",
    responses={404: {"description": "Template not found"}},
    dependencies=[require("templates.update")],
)
async def update_template(template_id: str, payload: TemplateUpdate, session: SessionDep) -> JSONResponse:
    templates = TemplateRepository(session)
    template = await _existing_template(templates, template_id)

    if payload.name is not None:
        template.name = payload.name
    if payload.netpol is not None:
        template.netpol = payload.netpol
    template = await templates.update(template)

    if "git_credentials" in payload.model_fields_set:
        values = payload.git_credentials.model_dump() if payload.git_credentials is not None else None
        await templates.save_git_credentials(template.id, values)

    return success("Template updated successfully", {"template": await _template_read(templates, template)})


@router.delete(
    "/{template_id}",
    summary="Delete Template",
    responses={404: {"description": "Template not found"}},
    dependencies=[require("templates.delete")],
)
async def delete_template(template_id: str, session: SessionDep) -> JSONResponse:
    templates = TemplateRepository(session)
    template = await _existing_template(templates, template_id)
    await templates.delete(template.id)
    return success("Template deleted successfully")


# =====================================================================
# Template tree, fields and ports
# =====================================================================


async def _child_or_404(repository: AsyncBaseRepository, template_id: str, child_id: str, label: str):
    child = await repository.get_by_id(child_id)
    if child is None or child.template_id != template_id:
        raise NotFoundError(f"{label} not found")
    return child


async def _check_directory(session, template_id: str, directory_id: Optional[str], attribute: str) -> None:
    """Reject a directory reference that does not belong to the template."""
    if directory_id is None:
        return
    directory = await TemplateDirectoryRepository(session).get_by_id(directory_id)
    if directory is None or directory.template_id != template_id:
        label = attribute.replace("_", " ")
        raise ApiError(400, "Validation failed", {attribute: [f"The selected {label} is invalid."]})


def _folder_payload(folder: TemplateDirectory) -> dict:
    return {"folder": TemplateDirectoryRead.model_validate(folder).model_dump(mode="json")}


def _file_payload(file: TemplateFile) -> dict:
    return {"file": TemplateFileRead.model_validate(file).model_dump(mode="json")}


def _option_payload(option: TemplateFieldOption) -> dict:
    return {"option": TemplateFieldOptionRead.model_validate(option).model_dump(mode="json")}


def _port_payload(port: TemplatePort) -> dict:
    return {"port": TemplatePortRead.model_validate(port).model_dump(mode="json")}


@router.get(
    "/{template_id}/folders",
    summary="List Template Folders",
    dependencies=[require("templates.folders.view")],
)
async def list_folders(template_id: str, session: SessionDep, cursor: Optional[str] = None) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    folders = TemplateDirectoryRepository(session)
    stmt = folders.query().where(folders.model.template_id == template_id)
    page = await folders.paginate(stmt, cursor=cursor, per_page=constant.PAGE_SIZE)
    return success("Folders retrieved successfully", page_payload("folders", page, TemplateDirectoryRead))


@router.post(
    "/{template_id}/folders",
    summary="Add Template Folder",
    responses={201: {"description": "Folder added successfully"}, 404: {"description": "Template not found"}},
    dependencies=[require("templates.folders.add")],
)
async def add_folder(template_id: str, payload: TemplateDirectoryWrite, session: SessionDep) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    await _check_directory(session, template_id, payload.parent_id, "parent_id")
    folder = await TemplateDirectoryRepository(session).create(
        TemplateDirectory(template_id=template_id, **payload.model_dump())
    )
    return success("Folder added successfully", _folder_payload(folder), code=201)


@router.get(
    "/{template_id}/folders/{folder_id}",
    summary="Get Template Folder",
    dependencies=[require("templates.folders.view")],
)
async def get_folder(template_id: str, folder_id: str, session: SessionDep) -> JSONResponse:
    folder = await _child_or_404(TemplateDirectoryRepository(session), template_id, folder_id, "Folder")
    return success("Folder retrieved successfully", _folder_payload(folder))


@router.patch(
    "/{template_id}/folders/{folder_id}",
    summary="Update Template Folder",
    description="Rename a folder or move it below another folder of the same template.",
    responses={404: {"description": "Folder not found"}},
    dependencies=[require("templates.folders.update")],
)
async def update_folder(
    template_id: str, folder_id: str, payload: TemplateDirectoryWrite, session: SessionDep
) -> JSONResponse:
    folders = TemplateDirectoryRepository(session)
    folder = await _child_or_404(folders, template_id, folder_id, "Folder")
    await _check_directory(session, template_id, payload.parent_id, "parent_id")
    if payload.parent_id is not None and (
        payload.parent_id == folder.id or payload.parent_id in await folders.descendant_ids(folder.id)
    ):
        raise ApiError(400, "Validation failed", {"parent_id": ["A folder cannot be moved below itself."]})

    folder.name = payload.name
    folder.parent_id = payload.parent_id
    folder = await folders.update(folder)
    return success("Folder updated successfully", _folder_payload(folder))


@router.delete(
    "/{template_id}/folders/{folder_id}",
    summary="Delete Template Folder",
    description="Trash a folder together with the folders and files below it.",
    responses={404: {"description": "Folder not found"}},
    dependencies=[require("templates.folders.delete")],
)
async def delete_folder(template_id: str, folder_id: str, session: SessionDep) -> JSONResponse:
    folders = TemplateDirectoryRepository(session)
    folder = await _child_or_404(folders, template_id, folder_id, "Folder")
    trashed = await folders.trash_subtree(folder)
    logger.info(f"Trashed folder {folder_id} of template {template_id} ({trashed} rows)")
    return success("Folder deleted successfully")


@router.get(
    "/{template_id}/files",
    summary="List Template Files",
    dependencies=[require("templates.files.view")],
)
async def list_files(template_id: str, session: SessionDep, cursor: Optional[str] = None) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    files = TemplateFileRepository(session)
    stmt = files.query().where(files.model.template_id == template_id)
    page = await files.paginate(stmt, cursor=cursor, per_page=constant.PAGE_SIZE)
    return success("Files retrieved successfully", page_payload("files", page, TemplateFileRead))


@router.post(
    "/{template_id}/files",
    summary="Add Template File",
    responses={201: {"description": "File added successfully"}, 404: {"description": "Template not found"}},
    dependencies=[require("templates.files.add")],
)
async def add_file(template_id: str, payload: TemplateFileCreate, session: SessionDep) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    await _check_directory(session, template_id, payload.template_directory_id, "template_directory_id")
    file = await TemplateFileRepository(session).create(TemplateFile(template_id=template_id, **payload.model_dump()))
    return success("File added successfully", _file_payload(file), code=201)


@router.get(
    "/{template_id}/files/{file_id}",
    summary="Get Template File",
    dependencies=[require("templates.files.view")],
)
async def get_file(template_id: str, file_id: str, session: SessionDep) -> JSONResponse:
    file = await _child_or_404(TemplateFileRepository(session), template_id, file_id, "File")
    return success("File retrieved successfully", _file_payload(file))


@router.patch(
    "/{template_id}/files/{file_id}",
    summary="Update Template File",
    description="Rename or move a file. The content is only replaced when `content` is sent.",
    responses={404: {"description": "File not found"}},
    dependencies=[require("templates.files.update")],
)
async def update_file(template_id: str, file_id: str, payload: TemplateFileUpdate, session: SessionDep) -> JSONResponse:
    files = TemplateFileRepository(session)
    file = await _child_or_404(files, template_id, file_id, "File")
    await _check_directory(session, template_id, payload.template_directory_id, "template_directory_id")

    for column, value in payload.model_dump(exclude={"content"}).items():
        setattr(file, column, value)
    if payload.content is not None:
        file.content = payload.content
    file = await files.update(file)
    return success("File updated successfully", _file_payload(file))


@router.delete(
    "/{template_id}/files/{file_id}",
    summary="Delete Template File",
    responses={404: {"description": "File not found"}},
    dependencies=[require("templates.files.delete")],
)
async def delete_file(template_id: str, file_id: str, session: SessionDep) -> JSONResponse:
    files = TemplateFileRepository(session)
    file = await _child_or_404(files, template_id, file_id, "File")
    await files.delete(file.id)
    return success("File deleted successfully")


async def _field_read(session, field: TemplateField) -> dict:
    options = TemplateFieldOptionRepository(session)
    result = await session.execute(
        options.query()
        .where(TemplateFieldOption.template_field_id == field.id)
        .order_by(TemplateFieldOption.label)
    )
    read = TemplateFieldRead.model_validate(field)
    read.options = [TemplateFieldOptionRead.model_validate(option) for option in result.scalars().all()]
    return read.model_dump(mode="json")


@router.get(
    "/{template_id}/fields",
    summary="List Template Fields",
    dependencies=[require("templates.fields.view")],
)
async def list_fields(template_id: str, session: SessionDep) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    fields = TemplateFieldRepository(session)
    result = await session.execute(
        fields.query().where(TemplateField.template_id == template_id).order_by(TemplateField.key)
    )
    return success(
        "Fields retrieved successfully", {"fields": [await _field_read(session, f) for f in result.scalars().all()]}
    )


@router.post(
    "/{template_id}/fields",
    summary="Add Template Field",
    description="Add an input field. `input_number` and `input_range` fields require `min`, `max` and `step`.",
    responses={201: {"description": "Field added successfully"}, 404: {"description": "Template not found"}},
    dependencies=[require("templates.fields.add")],
)
async def add_field(template_id: str, payload: TemplateFieldWrite, session: SessionDep) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    field = await TemplateFieldRepository(session).create(
        TemplateField(template_id=template_id, **payload.model_dump())
    )
    return success("Field added successfully", {"field": await _field_read(session, field)}, code=201)


@router.get(
    "/{template_id}/fields/{field_id}",
    summary="Get Template Field",
    dependencies=[require("templates.fields.view")],
)
async def get_field(template_id: str, field_id: str, session: SessionDep) -> JSONResponse:
    field = await _child_or_404(TemplateFieldRepository(session), template_id, field_id, "Field")
    return success("Field retrieved successfully", {"field": await _field_read(session, field)})


@router.patch(
    "/{template_id}/fields/{field_id}",
    summary="Update Template Field",
    responses={404: {"description": "Field not found"}},
    dependencies=[require("templates.fields.update")],
)
async def update_field(
    template_id: str, field_id: str, payload: TemplateFieldWrite, session: SessionDep
) -> JSONResponse:
    fields = TemplateFieldRepository(session)
    field = await _child_or_404(fields, template_id, field_id, "Field")
    for column, value in payload.model_dump().items():
        setattr(field, column, value)
    field = await fields.update(field)
    return success("Field updated successfully", {"field": await _field_read(session, field)})


@router.delete(
    "/{template_id}/fields/{field_id}",
    summary="Delete Template Field",
    description="Trash a field together with its options.",
    responses={404: {"description": "Field not found"}},
    dependencies=[require("templates.fields.delete")],
)
async def delete_field(template_id: str, field_id: str, session: SessionDep) -> JSONResponse:
    fields = TemplateFieldRepository(session)
    field = await _child_or_404(fields, template_id, field_id, "Field")
    await TemplateFieldOptionRepository(session).trash_except([], template_field_id=field.id)
    await fields.delete(field.id)
    return success("Field deleted successfully")


async def _option_or_404(options: TemplateFieldOptionRepository, field: TemplateField, option_id: str):
    option = await options.get_by_id(option_id)
    if option is None or option.template_field_id != field.id:
        raise NotFoundError("Option not found")
    return option


@router.post(
    "/{template_id}/fields/{field_id}/options",
    summary="Add Template Field Option",
    description="Add a selectable option. A `default` option replaces the field's previous default.",
    responses={201: {"description": "Option added successfully"}, 404: {"description": "Field not found"}},
    dependencies=[require("templates.fields.options.add")],
)
async def add_option(
    template_id: str, field_id: str, payload: TemplateFieldOptionWrite, session: SessionDep
) -> JSONResponse:
    field = await _child_or_404(TemplateFieldRepository(session), template_id, field_id, "Field")
    options = TemplateFieldOptionRepository(session)
    if payload.default:
        await options.clear_default(field.id)
    option = await options.create(TemplateFieldOption(template_field_id=field.id, **payload.model_dump()))
    return success("Option added successfully", _option_payload(option), code=201)


@router.patch(
    "/{template_id}/fields/{field_id}/options/{option_id}",
    summary="Update Template Field Option",
    responses={404: {"description": "Option not found"}},
    dependencies=[require("templates.fields.options.update")],
)
async def update_option(
    template_id: str, field_id: str, option_id: str, payload: TemplateFieldOptionWrite, session: SessionDep
) -> JSONResponse:
    field = await _child_or_404(TemplateFieldRepository(session), template_id, field_id, "Field")
    options = TemplateFieldOptionRepository(session)
    option = await _option_or_404(options, field, option_id)
    if payload.default:
        await options.clear_default(field.id, keep_id=option.id)
    for column, value in payload.model_dump().items():
        setattr(option, column, value)
    option = await options.update(option)
    return success("Option updated successfully", _option_payload(option))


@router.delete(
    "/{template_id}/fields/{field_id}/options/{option_id}",
    summary="Delete Template Field Option",
    responses={404: {"description": "Option not found"}},
    dependencies=[require("templates.fields.options.delete")],
)
async def delete_option(template_id: str, field_id: str, option_id: str, session: SessionDep) -> JSONResponse:
    field = await _child_or_404(TemplateFieldRepository(session), template_id, field_id, "Field")
    options = TemplateFieldOptionRepository(session)
    option = await _option_or_404(options, field, option_id)
    await options.delete(option.id)
    return success("Option deleted successfully")


@router.get(
    "/{template_id}/ports",
    summary="List Template Ports",
    dependencies=[require("templates.ports.view")],
)
async def list_ports(template_id: str, session: SessionDep) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    ports = TemplatePortRepository(session)
    result = await session.execute(
        ports.query().where(ports.model.template_id == template_id).order_by(ports.model.group, ports.model.claim)
    )
    items = [TemplatePortRead.model_validate(port).model_dump(mode="json") for port in result.scalars().all()]
    return success("Ports retrieved successfully", {"ports": items})


@router.post(
    "/{template_id}/ports",
    summary="Add Template Port",
    responses={201: {"description": "Port added successfully"}, 404: {"description": "Template not found"}},
    dependencies=[require("templates.ports.add")],
)
async def add_port(template_id: str, payload: TemplatePortWrite, session: SessionDep) -> JSONResponse:
    await _existing_template(TemplateRepository(session), template_id)
    port = await TemplatePortRepository(session).create(TemplatePort(template_id=template_id, **payload.model_dump()))
    return success("Port added successfully", _port_payload(port), code=201)


@router.get(
    "/{template_id}/ports/{port_id}",
    summary="Get Template Port",
    dependencies=[require("templates.ports.view")],
)
async def get_port(template_id: str, port_id: str, session: SessionDep) -> JSONResponse:
    port = await _child_or_404(TemplatePortRepository(session), template_id, port_id, "Port")
    return success("Port retrieved successfully", _port_payload(port))


@router.patch(
    "/{template_id}/ports/{port_id}",
    summary="Update Template Port",
    responses={404: {"description": "Port not found"}},
    dependencies=[require("templates.ports.update")],
)
async def update_port(
    template_id: str, port_id: str, payload: TemplatePortWrite, session: SessionDep
) -> JSONResponse:
    ports = TemplatePortRepository(session)
    port = await _child_or_404(ports, template_id, port_id, "Port")
    for column, value in payload.model_dump().items():
        setattr(port, column, value)
    port = await ports.update(port)
    return success("Port updated successfully", _port_payload(port))


@router.delete(
    "/{template_id}/ports/{port_id}",
    summary="Delete Template Port",
    responses={404: {"description": "Port not found"}},
    dependencies=[require("templates.ports.delete")],
)
async def delete_port(template_id: str, port_id: str, session: SessionDep) -> JSONResponse:
    ports = TemplatePortRepository(session)
    port = await _child_or_404(ports, template_id, port_id, "Port")
    await ports.delete(port.id)
    return success("Port deleted successfully")
