"""
Project entity models.

Projects group deployments of templates. A project is owned by the user who
created it and can be shared with other users through invitations.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import UTC_DATETIME, Base, new_uuid, utc_now


class Project(Base, table=True):
    """Project owned by a user.

    Table: projects
    """

    __tablename__ = "projects"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="users.id", index=True)
    name: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME, index=True)

    def __repr__(self) -> str:
        return f"Project(id={self.id}, name={self.name}, user_id={self.user_id})"


class ProjectInvitation(Base, table=True):
    """Invitation of a user to a project they do not own.

    Table: project_invitations
    """

    __tablename__ = "project_invitations"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="users.id", index=True)
    project_id: str = Field(foreign_key="projects.id", index=True, max_length=36)
    invitation_accepted: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
