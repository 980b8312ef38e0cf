"""
User, role and access token repositories.

This module provides data access for accounts and authorization: looking up
users, resolving the permissions a user holds directly or through roles,
managing role grants and issuing or revoking API tokens.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Set

from sqlalchemy import delete as sa_delete
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from kublade.core.permissions import WILDCARD
from kublade.core.security import generate_token, hash_token

from ..base import utc_now
from ..entities.users import AccessToken, Role, RolePermission, User, UserPermission, UserRole
from .base import AsyncBaseRepository


class UserRepository(AsyncBaseRepository[User]):
    """Repository for user accounts and their permission grants."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalars().first()

    async def is_first_user(self, user: User) -> bool:
        """Check whether ``user`` is the instance owner (lowest id)."""
        result = await self.session.execute(select(func.min(User.id)))
        return result.scalar_one_or_none() == user.id

    async def roles_of(self, user: User) -> List[Role]:
        stmt = select(Role).join(UserRole, UserRole.role_id == Role.id).where(UserRole.user_id == user.id)
        result = await self.session.execute(stmt.order_by(Role.name))
        return list(result.scalars().all())

    async def direct_permissions_of(self, user: User) -> List[str]:
        stmt = select(UserPermission.permission).where(UserPermission.user_id == user.id)
        result = await self.session.execute(stmt.order_by(UserPermission.permission))
        return list(result.scalars().all())

    async def granted_permissions(self, user: User) -> Set[str]:
        """Resolve every permission name held directly or through a role."""
        via_roles = (
            select(RolePermission.permission)
            .join(UserRole, UserRole.role_id == RolePermission.role_id)
            .where(UserRole.user_id == user.id)
        )
        result = await self.session.execute(via_roles)
        granted = set(result.scalars().all())
        granted.update(await self.direct_permissions_of(user))
        return granted

    async def can_any(self, user: User, permissions: Iterable[str]) -> bool:
        """
        Check whether ``user`` holds at least one of ``permissions``.

        The instance owner and holders of ``*`` pass every check.

        Args:
            user: Principal to check
            permissions: Candidate permission names, any one of which grants access

        Returns:
            True when access is granted
        """
        if await self.is_first_user(user):
            return True
        granted = await self.granted_permissions(user)
        if WILDCARD in granted:
            return True
        return any(permission in granted for permission in permissions)

    async def sync_roles(self, user: User, role_ids: Iterable[int]) -> None:
        await self.session.execute(sa_delete(UserRole).where(UserRole.user_id == user.id))
        for role_id in sorted(set(role_ids)):
            self.session.add(UserRole(user_id=user.id, role_id=role_id))
        await self.session.commit()

    async def sync_permissions(self, user: User, permissions: Iterable[str]) -> None:
        await self.session.execute(sa_delete(UserPermission).where(UserPermission.user_id == user.id))
        for permission in sorted(set(permissions)):
            self.session.add(UserPermission(user_id=user.id, permission=permission))
        await self.session.commit()

    async def delete(self, entity_id: str | int) -> bool:
        """Delete a user together with its grants and tokens."""
        user = await self.get_by_id(entity_id)
        if user is None:
            return False
        await self.session.execute(sa_delete(UserRole).where(UserRole.user_id == user.id))
        await self.session.execute(sa_delete(UserPermission).where(UserPermission.user_id == user.id))
        await self.session.execute(sa_delete(AccessToken).where(AccessToken.user_id == user.id))
        await self.session.delete(user)
        await self.session.commit()
        return True


class RoleRepository(AsyncBaseRepository[Role]):
    """Repository for roles and the permissions they grant."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Role)

    async def get_by_name(self, name: str) -> Optional[Role]:
        result = await self.session.execute(select(Role).where(Role.name == name))
        return result.scalars().first()

    async def get_many(self, role_ids: Iterable[int]) -> List[Role]:
        ids = list(set(role_ids))
        if not ids:
            return []
        result = await self.session.execute(select(Role).where(Role.id.in_(ids)))
        return list(result.scalars().all())

    async def permissions_of(self, role: Role) -> List[str]:
        stmt = select(RolePermission.permission).where(RolePermission.role_id == role.id)
        result = await self.session.execute(stmt.order_by(RolePermission.permission))
        return list(result.scalars().all())

    async def sync_permissions(self, role: Role, permissions: Iterable[str]) -> None:
        await self.session.execute(sa_delete(RolePermission).where(RolePermission.role_id == role.id))
        for permission in sorted(set(permissions)):
            self.session.add(RolePermission(role_id=role.id, permission=permission))
        await self.session.commit()

    async def delete(self, entity_id: str | int) -> bool:
        """Delete a role and detach it from every user."""
        role = await self.get_by_id(entity_id)
        if role is None:
            return False
        await self.session.execute(sa_delete(RolePermission).where(RolePermission.role_id == role.id))
        await self.session.execute(sa_delete(UserRole).where(UserRole.role_id == role.id))
        await self.session.delete(role)
        await self.session.commit()
        return True


class AccessTokenRepository(AsyncBaseRepository[AccessToken]):
    """Repository for issued API tokens."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, AccessToken)

    async def issue(self, user: User, ttl_minutes: int) -> tuple[str, AccessToken]:
        """
        Issue a new token for ``user``.

        Returns:
            The plain token (shown to the client once) and its stored record
        """
        plain = generate_token()
        record = AccessToken(
            user_id=user.id,
            token_hash=hash_token(plain),
            expires_at=utc_now() + timedelta(minutes=ttl_minutes),
        )
        return plain, await self.create(record)

    async def resolve(self, plain: str, now: Optional[datetime] = None) -> Optional[AccessToken]:
        """Find the active token record for a presented bearer token."""
        now = now or utc_now()
        result = await self.session.execute(select(AccessToken).where(AccessToken.token_hash == hash_token(plain)))
        record = result.scalars().first()
        if record is None or not record.is_active(now):
            return None
        record.last_used_at = now
        self.session.add(record)
        await self.session.commit()
        return record

    async def revoke(self, record: AccessToken) -> None:
        record.revoked_at = utc_now()
        self.session.add(record)
        await self.session.commit()
