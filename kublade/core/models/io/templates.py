"""
Template I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class GitCredentialRead(BaseModel):
    """Git source of a template. The credentials themselves are never returned."""

    model_config = ConfigDict(from_attributes=True)

    url: str
    branch: str
    username: str
    email: str
    base_path: str
    synced_at: Optional[datetime] = None


class GitCredentialWrite(BaseModel):
    url: str = Field(min_length=1, max_length=1024)
    branch: str = Field(default="main", min_length=1, max_length=255)
    credentials: str = Field(min_length=1)
    username: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)
    base_path: str = Field(default="/", max_length=1024)


class TemplateRead(BaseModel):
    """Schema for reading a template."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: int
    name: str
    netpol: bool
    git_credentials: Optional[GitCredentialRead] = None
    created_at: datetime
    updated_at: datetime


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    netpol: bool = False
    git_credentials: Optional[GitCredentialWrite] = None


class TemplateUpdate(BaseModel):
    """Partial update. Send ``git_credentials: null`` to detach the git source."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    netpol: Optional[bool] = None
    git_credentials: Optional[GitCredentialWrite] = None


class TemplateDirectoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    parent_id: Optional[str] = None
    name: str


class TemplateFileRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    template_directory_id: Optional[str] = None
    name: str
    mime_type: str
    content: str


class TemplateFieldOptionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    label: str
    value: str
    default: bool


class TemplateFieldRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    type: str
    key: str
    label: str
    value: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    required: bool
    secret: bool
    set_on_create: bool
    set_on_update: bool
    advanced: bool
    options: list[TemplateFieldOptionRead] = Field(default_factory=list)


class TemplatePortRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    group: str
    claim: str
    preferred_port: Optional[int] = None
    random: bool


# Field types whose numeric bounds are mandatory
NUMERIC_FIELD_TYPES = ("input_number", "input_range")


class TemplateDirectoryWrite(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    parent_id: Optional[str] = Field(default=None, max_length=255)


class TemplateFileCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    template_directory_id: Optional[str] = Field(default=None, max_length=255)
    mime_type: str = Field(min_length=1, max_length=255)
    content: str = ""


class TemplateFileUpdate(BaseModel):
    """Rename or move a file. ``content`` is only replaced when sent."""

    name: str = Field(min_length=1, max_length=255)
    template_directory_id: Optional[str] = Field(default=None, max_length=255)
    mime_type: str = Field(min_length=1, max_length=255)
    content: Optional[str] = None


class TemplateFieldWrite(BaseModel):
    """Input field definition. ``input_number`` and ``input_range`` fields require ``min``, ``max`` and ``step``."""

    type: str = Field(min_length=1, max_length=64)
    label: str = Field(min_length=1, max_length=255)
    key: str = Field(min_length=1, max_length=255)
    value: Optional[str] = None
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None
    required: bool = False
    secret: bool = False
    set_on_create: bool = False
    set_on_update: bool = False
    advanced: bool = False

    @model_validator(mode="after")
    def _numeric_bounds(self) -> "TemplateFieldWrite":
        if self.type in NUMERIC_FIELD_TYPES:
            missing = [name for name in ("min", "max", "step") if getattr(self, name) is None]
            if missing:
                raise ValueError(f"The {', '.join(missing)} field is required for {self.type} fields.")
        else:
            self.min = self.max = self.step = None
        return self


class TemplateFieldOptionWrite(BaseModel):
    label: str = Field(min_length=1, max_length=255)
    value: str = Field(min_length=1, max_length=1024)
    default: bool = False


class TemplatePortWrite(BaseModel):
    group: str = Field(min_length=1, max_length=255)
    claim: str = Field(default="", max_length=255)
    preferred_port: Optional[int] = Field(default=None, ge=1, le=65535)
    random: bool = False
