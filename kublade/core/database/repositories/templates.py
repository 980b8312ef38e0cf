"""
Template repositories.

This module provides data access for templates, their git source and the
tree, field and port rows the git import job maintains.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..base import utc_now
from ..entities.templates import (
    Template,
    TemplateDirectory,
    TemplateField,
    TemplateFieldOption,
    TemplateFile,
    TemplateGitCredential,
    TemplatePort,
)
from .base import AsyncBaseRepository


class TemplateRepository(AsyncBaseRepository[Template]):
    """Repository for templates and their git credentials."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Template)

    async def all_ids(self, chunk_size: int = 100) -> List[str]:
        """Collect the ids of every non-trashed template, reading in chunks."""
        ids: List[str] = []
        last: Optional[str] = None
        while True:
            stmt = select(Template.id).where(Template.deleted_at.is_(None))
            if last is not None:
                stmt = stmt.where(Template.id > last)
            result = await self.session.execute(stmt.order_by(Template.id).limit(chunk_size))
            chunk = list(result.scalars().all())
            ids.extend(chunk)
            if len(chunk) < chunk_size:
                return ids
            last = chunk[-1]

    async def git_credentials_of(self, template_id: str) -> Optional[TemplateGitCredential]:
        stmt = select(TemplateGitCredential).where(TemplateGitCredential.template_id == template_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def save_git_credentials(self, template_id: str, values: Optional[dict]) -> Optional[TemplateGitCredential]:
        """Create, update or remove (``values`` is None) the git source of a template."""
        current = await self.git_credentials_of(template_id)
        if values is None:
            if current is not None:
                await self.session.delete(current)
                await self.session.commit()
            return None
        if current is None:
            current = TemplateGitCredential(template_id=template_id, **values)
        else:
            for column, value in values.items():
                setattr(current, column, value)
            current.updated_at = utc_now()
        self.session.add(current)
        await self.session.commit()
        await self.session.refresh(current)
        return current

    async def mark_synced(self, credential: TemplateGitCredential, synced: bool) -> None:
        credential.synced_at = utc_now() if synced else None
        self.session.add(credential)
        await self.session.commit()


class TemplateDirectoryRepository(AsyncBaseRepository[TemplateDirectory]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TemplateDirectory)

    async def descendant_ids(self, directory_id: str) -> List[str]:
        """Ids of every non-trashed directory below ``directory_id``, breadth first."""
        found: List[str] = []
        level = [directory_id]
        while level:
            result = await self.session.execute(
                select(TemplateDirectory.id)
                .where(TemplateDirectory.deleted_at.is_(None))
                .where(TemplateDirectory.parent_id.in_(level))
            )
            level = [child for child in result.scalars().all() if child not in found]
            found.extend(level)
        return found

    async def trash_subtree(self, directory: TemplateDirectory) -> int:
        """Soft delete a directory together with the directories and files below it.

        Returns:
            Number of directories and files trashed
        """
        ids = [directory.id, *await self.descendant_ids(directory.id)]
        now = utc_now()
        directories = await self.session.execute(
            sa_update(TemplateDirectory)
            .where(TemplateDirectory.deleted_at.is_(None))
            .where(TemplateDirectory.id.in_(ids))
            .values(deleted_at=now)
        )
        files = await self.session.execute(
            sa_update(TemplateFile)
            .where(TemplateFile.deleted_at.is_(None))
            .where(TemplateFile.template_directory_id.in_(ids))
            .values(deleted_at=now)
        )
        await self.session.commit()
        return (directories.rowcount or 0) + (files.rowcount or 0)


class TemplateFileRepository(AsyncBaseRepository[TemplateFile]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TemplateFile)


class TemplateFieldRepository(AsyncBaseRepository[TemplateField]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TemplateField)


class TemplateFieldOptionRepository(AsyncBaseRepository[TemplateFieldOption]):
    """Repository for field options, which reach their template through the field."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TemplateFieldOption)

    def for_template(self, template_id: str):
        fields = select(TemplateField.id).where(TemplateField.template_id == template_id)
        return self.query().where(TemplateFieldOption.template_field_id.in_(fields))

    async def clear_default(self, field_id: str, keep_id: Optional[str] = None) -> None:
        """Unset ``default`` on the options of a field, except ``keep_id``."""
        stmt = (
            sa_update(TemplateFieldOption)
            .where(TemplateFieldOption.deleted_at.is_(None))
            .where(TemplateFieldOption.template_field_id == field_id)
        )
        if keep_id is not None:
            stmt = stmt.where(TemplateFieldOption.id != keep_id)
        await self.session.execute(stmt.values(default=False))

    async def trash_except_for_template(self, keep_ids: List[str], template_id: str) -> int:
        fields = select(TemplateField.id).where(TemplateField.template_id == template_id)
        stmt = (
            sa_update(TemplateFieldOption)
            .where(TemplateFieldOption.deleted_at.is_(None))
            .where(TemplateFieldOption.template_field_id.in_(fields))
        )
        if keep_ids:
            stmt = stmt.where(TemplateFieldOption.id.not_in(keep_ids))
        result = await self.session.execute(stmt.values(deleted_at=utc_now()))
        return result.rowcount or 0


class TemplatePortRepository(AsyncBaseRepository[TemplatePort]):
    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, TemplatePort)
