"""
User, role and access token entity models.

This module contains the database entities backing authentication and
authorization: users, roles, the permission grants attached to either of
them, and the opaque API tokens issued on login.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field

from ..base import UTC_DATETIME, Base, as_utc, new_uuid, utc_now


class User(Base, table=True):
    """Registered user account.

    The user with the lowest id is the instance owner and holds every permission.

    Table: users
    """

    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255)
    email: str = Field(max_length=255, unique=True, index=True)
    password: str = Field(max_length=255, description="PBKDF2 password hash, never serialized")
    email_verified_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email})"


class Role(Base, table=True):
    """Named bundle of permissions assignable to users.

    Table: roles
    """

    __tablename__ = "roles"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=255, unique=True, index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )

    def __repr__(self) -> str:
        return f"Role(id={self.id}, name={self.name})"


class UserRole(Base, table=True):
    """Assignment of a role to a user.

    Table: user_roles
    """

    __tablename__ = "user_roles"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    role_id: int = Field(foreign_key="roles.id", primary_key=True)


class RolePermission(Base, table=True):
    """Permission granted through a role.

    Table: role_permissions
    """

    __tablename__ = "role_permissions"

    role_id: int = Field(foreign_key="roles.id", primary_key=True)
    permission: str = Field(max_length=255, primary_key=True)


class UserPermission(Base, table=True):
    """Permission granted directly to a user.

    Table: user_permissions
    """

    __tablename__ = "user_permissions"

    user_id: int = Field(foreign_key="users.id", primary_key=True)
    permission: str = Field(max_length=255, primary_key=True)


class AccessToken(Base, table=True):
    """Issued API bearer token, stored as a SHA-256 digest.

    Table: access_tokens
    """

    __tablename__ = "access_tokens"
    __table_args__ = (UniqueConstraint("token_hash", name="uq_access_tokens_token_hash"),)

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="users.id", index=True)
    token_hash: str = Field(max_length=64)
    expires_at: datetime = Field(sa_type=UTC_DATETIME)
    revoked_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)
    last_used_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)

    def is_active(self, now: datetime) -> bool:
        return self.revoked_at is None and as_utc(self.expires_at) > as_utc(now)

    def __repr__(self) -> str:
        return f"AccessToken(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})"
