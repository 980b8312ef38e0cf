"""
Authentication I/O models.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from .users import UserRead


class RegisterRequest(BaseModel):
    """Schema for self registration."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    """Schema for exchanging credentials for a token."""

    email: EmailStr
    password: str = Field(min_length=1)


class TokenRead(BaseModel):
    """Issued bearer token."""

    token: str = Field(description="Opaque bearer token, shown once")
    token_type: str = Field(default="bearer")
    expires_at: datetime


class RegisterRead(BaseModel):
    """Registered user together with its first token."""

    user: UserRead
    token: TokenRead
