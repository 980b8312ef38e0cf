"""
Template git import action.

Synchronizes one template with its git repository:

1. ``synced_at`` is cleared and the working copy is checked out fresh.
2. Files and directories below the import path become template files and
   directories; ``.gitignore``/``.gitkeep`` files and ``.git``/``.kublade``
   directories are skipped.
3. ``.kublade/fields.json`` and ``.kublade/ports.json`` at the repository
   root define the template's fields (with options) and port claims.
4. Rows of the template that were not seen during this import are trashed,
   the working copy is removed and ``synced_at`` is set.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from kublade.core.database.entities.templates import TemplateDirectory, TemplateGitCredential
from kublade.core.database.repositories import (
    TemplateDirectoryRepository,
    TemplateFieldOptionRepository,
    TemplateFieldRepository,
    TemplateFileRepository,
    TemplatePortRepository,
    TemplateRepository,
)
from kublade.core.exceptions import TemplateError
from kublade.core.logging_config import get_logger
from kublade.jobs.base import dispatch, with_job_session
from kublade.jobs.celery_app import celery_app
from kublade.jobs.template.git import GitWorkingCopy
from kublade.server.core.config import settings

logger = get_logger(__name__)

SKIPPED_FILES = {".gitignore", ".gitkeep"}
SKIPPED_DIRECTORIES = {".kublade", ".git"}
YAML_MIME_TYPE = "text/yaml"
DEFAULT_MIME_TYPE = "application/octet-stream"


def git_import_tags(template_id: str) -> List[str]:
    return [
        "job",
        "job:template",
        f"job:template:{template_id}",
        f"job:template:{template_id}:action",
        f"job:template:{template_id}:action:GitImport",
    ]


def mime_type_of(name: str) -> str:
    return YAML_MIME_TYPE if name.endswith(".yaml") else DEFAULT_MIME_TYPE


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


WorkingCopyFactory = Callable[[Path, TemplateGitCredential], GitWorkingCopy]


class TemplateGitImporter:
    """Imports the contents of a template's git repository into the database."""

    def __init__(
        self,
        session: AsyncSession,
        template_id: str,
        storage_path: Optional[Path | str] = None,
        working_copy_factory: WorkingCopyFactory = GitWorkingCopy,
    ) -> None:
        self.session = session
        self.template_id = template_id
        self.storage_path = Path(storage_path or settings.template_storage_path)
        self.working_copy_factory = working_copy_factory

        self.templates = TemplateRepository(session)
        self.directories = TemplateDirectoryRepository(session)
        self.files = TemplateFileRepository(session)
        self.fields = TemplateFieldRepository(session)
        self.options = TemplateFieldOptionRepository(session)
        self.ports = TemplatePortRepository(session)

        self.seen_directories: List[str] = []
        self.seen_files: List[str] = []
        self.seen_fields: List[str] = []
        self.seen_options: List[str] = []
        self.seen_ports: List[str] = []

    async def run(self) -> bool:
        """
        Import the template.

        Returns:
            False when the template does not exist or has no git source, True once imported

        Raises:
            TemplateError: The repository could not be checked out or lacks the import path
        """
        template = await self.templates.get_by_id(self.template_id)
        if template is None:
            logger.info(f"Template {self.template_id} not found, skipping git import")
            return False
        credential = await self.templates.git_credentials_of(template.id)
        if credential is None:
            logger.debug(f"Template {self.template_id} has no git source, skipping git import")
            return False

        await self.templates.mark_synced(credential, False)

        working_copy = self.working_copy_factory(self.storage_path / template.id, credential)
        with working_copy:
            if not working_copy.import_path.is_dir():
                raise TemplateError("Not Found", 404)

            await self.import_path(working_copy.import_path)
            await self.import_fields(working_copy.kublade_path / "fields.json")
            await self.import_ports(working_copy.kublade_path / "ports.json")

        trashed = await self.trash_unseen()
        await self.templates.mark_synced(credential, True)

        logger.info(
            f"Imported template {self.template_id}: {len(self.seen_directories)} directories, "
            f"{len(self.seen_files)} files, {len(self.seen_fields)} fields, {len(self.seen_ports)} ports, "
            f"{trashed} stale rows trashed"
        )
        return True

    async def import_path(self, path: Path, parent: Optional[TemplateDirectory] = None) -> None:
        """Import the files and, recursively, the directories below ``path``."""
        entries = sorted(path.iterdir(), key=lambda entry: entry.name)
        parent_id = parent.id if parent is not None else None

        for entry in entries:
            if not entry.is_file() or entry.name in SKIPPED_FILES:
                continue
            file = await self.files.update_or_create(
                {
                    "template_id": self.template_id,
                    "template_directory_id": parent_id,
                    "name": entry.name,
                    "mime_type": mime_type_of(entry.name),
                },
                {"content": entry.read_text(encoding="utf-8", errors="replace")},
            )
            self.seen_files.append(file.id)

        for entry in entries:
            if not entry.is_dir() or entry.name in SKIPPED_DIRECTORIES:
                continue
            directory = await self.directories.update_or_create(
                {"template_id": self.template_id, "parent_id": parent_id, "name": entry.name}
            )
            self.seen_directories.append(directory.id)
            await self.import_path(entry, directory)

    async def import_fields(self, fields_file: Path) -> None:
        if not fields_file.is_file():
            return

        for definition in json.loads(fields_file.read_text(encoding="utf-8")):
            values = {
                "type": definition["type"],
                "label": definition["label"],
                "value": _as_text(definition.get("value")),
                "required": bool(definition.get("required")),
                "secret": bool(definition.get("secret")),
                "set_on_create": bool(definition.get("set_on_create")),
                "set_on_update": bool(definition.get("set_on_update")),
            }
            for bound in ("min", "max", "step"):
                if definition.get(bound) is not None:
                    values[bound] = definition[bound]

            field = await self.fields.update_or_create(
                {"template_id": self.template_id, "key": definition["key"]}, values
            )
            self.seen_fields.append(field.id)

            for option in definition.get("options") or []:
                record = await self.options.update_or_create(
                    {"template_field_id": field.id, "value": _as_text(option["value"])},
                    {"label": option["label"], "default": bool(option.get("default"))},
                )
                self.seen_options.append(record.id)

    async def import_ports(self, ports_file: Path) -> None:
        if not ports_file.is_file():
            return

        for definition in json.loads(ports_file.read_text(encoding="utf-8")):
            port = await self.ports.update_or_create(
                {"template_id": self.template_id, "group": definition["group"], "claim": definition["claim"]},
                {"preferred_port": definition.get("preferred_port"), "random": bool(definition.get("random"))},
            )
            self.seen_ports.append(port.id)

    async def trash_unseen(self) -> int:
        trashed = await self.files.trash_except(self.seen_files, template_id=self.template_id)
        trashed += await self.directories.trash_except(self.seen_directories, template_id=self.template_id)
        trashed += await self.fields.trash_except(self.seen_fields, template_id=self.template_id)
        trashed += await self.options.trash_except_for_template(self.seen_options, self.template_id)
        trashed += await self.ports.trash_except(self.seen_ports, template_id=self.template_id)
        return trashed


@celery_app.task(bind=True, name="kublade.jobs.template.actions.git_import", acks_late=True)
def git_import(self, template_id: str) -> bool:
    """Celery task importing one template from its git repository."""
    logger.info(f"Git import of template {template_id} started (task {self.request.id})")

    async def handler(session: AsyncSession) -> bool:
        return await TemplateGitImporter(session, template_id).run()

    try:
        return asyncio.run(with_job_session(handler))
    except Exception as e:
        logger.error(f"Git import of template {template_id} failed: {e}", exc_info=True)
        raise


def dispatch_git_import(template_id: str, queue: str):
    """Enqueue the git import of one template."""
    return dispatch(git_import, queue, kwargs={"template_id": template_id}, tags=git_import_tags(template_id))
