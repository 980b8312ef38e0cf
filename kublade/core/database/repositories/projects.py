"""
Project repository.

Projects are visible to their owner and to users holding an accepted
invitation. Only the owner may change or delete a project.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ..entities.projects import Project, ProjectInvitation
from .base import AsyncBaseRepository


class ProjectRepository(AsyncBaseRepository[Project]):
    """Repository for projects scoped to the requesting user."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Project)

    def visible_to(self, user_id: int):
        """Select statement over projects owned by or shared with ``user_id``."""
        accepted = select(ProjectInvitation.project_id).where(
            (ProjectInvitation.user_id == user_id) & (ProjectInvitation.invitation_accepted == True)  # noqa: E712
        )
        return self.query().where(or_(Project.user_id == user_id, Project.id.in_(accepted)))

    async def get_visible(self, project_id: str, user_id: int) -> Optional[Project]:
        result = await self.session.execute(self.visible_to(user_id).where(Project.id == project_id))
        return result.scalars().first()

    async def get_owned(self, project_id: str, user_id: int) -> Optional[Project]:
        stmt = self.query().where((Project.id == project_id) & (Project.user_id == user_id))
        result = await self.session.execute(stmt)
        return result.scalars().first()
