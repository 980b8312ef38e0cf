"""
Project I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProjectRead(BaseModel):
    """Schema for reading a project."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: int
    name: str
    created_at: datetime
    updated_at: datetime


class ProjectWrite(BaseModel):
    """Schema for creating or renaming a project."""

    name: str = Field(min_length=1, max_length=255)
