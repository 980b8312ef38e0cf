"""
User I/O models for API requests and responses.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class UserRead(BaseModel):
    """Schema for reading a user. The password hash is never exposed."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    email_verified_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserDetailRead(UserRead):
    """User with its roles and direct permissions."""

    roles: List[str] = Field(default_factory=list)
    permissions: List[str] = Field(default_factory=list)


class UserCreate(BaseModel):
    """Schema for creating a user as an administrator."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)
    password_confirmation: str
    roles: List[int] = Field(default_factory=list, description="Role ids to assign")
    permissions: List[str] = Field(default_factory=list, description="Direct permission grants")

    @model_validator(mode="after")
    def _passwords_match(self) -> "UserCreate":
        if self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self


class UserUpdate(BaseModel):
    """Schema for updating a user. Omitted fields are left unchanged."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=8)
    password_confirmation: Optional[str] = None
    roles: Optional[List[int]] = None
    permissions: Optional[List[str]] = None

    @model_validator(mode="after")
    def _passwords_match(self) -> "UserUpdate":
        if self.password is not None and self.password != self.password_confirmation:
            raise ValueError("The password confirmation does not match.")
        return self
