"""
Template entity models.

A template is a tree of directories and files (Kubernetes manifests), plus
the input fields and port claims a deployment of it requires. Templates may
be sourced from a git repository, in which case the git import job keeps the
tree, fields and ports in sync with the repository contents.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field

from ..base import UTC_DATETIME, Base, new_uuid, utc_now


class Template(Base, table=True):
    """Deployment template.

    Table: templates
    """

    __tablename__ = "templates"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="users.id", index=True)
    name: str = Field(max_length=255)
    netpol: bool = Field(default=False, description="Generate network policies for deployments")
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME, index=True)

    def __repr__(self) -> str:
        return f"Template(id={self.id}, name={self.name})"


class TemplateGitCredential(Base, table=True):
    """Git source of a template.

    ``credentials`` is injected into https URLs as ``https://<credentials>@host``.
    ``base_path`` selects the directory inside the repository to import.

    Table: template_git_credentials
    """

    __tablename__ = "template_git_credentials"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    template_id: str = Field(foreign_key="templates.id", index=True, unique=True, max_length=36)
    url: str = Field(max_length=1024)
    branch: str = Field(default="main", max_length=255)
    credentials: str = Field(sa_column=Column(Text, nullable=False))
    username: str = Field(max_length=255)
    email: str = Field(max_length=255)
    base_path: str = Field(default="/", max_length=1024)
    synced_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )


class TemplateDirectory(Base, table=True):
    """Directory node in a template tree.

    Table: template_directories
    """

    __tablename__ = "template_directories"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    template_id: str = Field(foreign_key="templates.id", index=True, max_length=36)
    parent_id: Optional[str] = Field(default=None, foreign_key="template_directories.id", max_length=36)
    name: str = Field(max_length=255)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)


class TemplateFile(Base, table=True):
    """File node in a template tree.

    Table: template_files
    """

    __tablename__ = "template_files"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    template_id: str = Field(foreign_key="templates.id", index=True, max_length=36)
    template_directory_id: Optional[str] = Field(
        default=None, foreign_key="template_directories.id", max_length=36
    )
    name: str = Field(max_length=255)
    mime_type: str = Field(default="application/octet-stream", max_length=255)
    content: str = Field(default="", sa_column=Column(Text, nullable=False, default=""))
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)


class TemplateField(Base, table=True):
    """Input field a deployment of the template must provide.

    Table: template_fields
    """

    __tablename__ = "template_fields"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    template_id: str = Field(foreign_key="templates.id", index=True, max_length=36)
    type: str = Field(max_length=64, description="input_text, input_number, input_range, select, ...")
    required: bool = Field(default=False)
    label: str = Field(max_length=255)
    key: str = Field(max_length=255)
    value: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))
    amount: Optional[float] = Field(default=None)
    min: Optional[float] = Field(default=None)
    max: Optional[float] = Field(default=None)
    step: Optional[float] = Field(default=None)
    secret: bool = Field(default=False)
    set_on_create: bool = Field(default=False)
    set_on_update: bool = Field(default=False)
    advanced: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)


class TemplateFieldOption(Base, table=True):
    """Selectable option of a template field.

    Table: template_field_options
    """

    __tablename__ = "template_field_options"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    template_field_id: str = Field(foreign_key="template_fields.id", index=True, max_length=36)
    label: str = Field(max_length=255)
    value: str = Field(max_length=1024)
    amount: Optional[float] = Field(default=None)
    default: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)


class TemplatePort(Base, table=True):
    """Port claim a deployment of the template reserves.

    Table: template_ports
    """

    __tablename__ = "template_ports"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    template_id: str = Field(foreign_key="templates.id", index=True, max_length=36)
    group: str = Field(max_length=255)
    claim: str = Field(max_length=255)
    preferred_port: Optional[int] = Field(default=None)
    random: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)
