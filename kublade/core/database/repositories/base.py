"""
Base repository interfaces and utilities.

This module provides the foundational repository patterns used across all
repository implementations: CRUD with soft delete awareness, an
``update_or_create`` upsert helper and opaque cursor pagination.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import update as sa_update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from ..base import utc_now

# Generic type for SQLModel entities
EntityType = TypeVar("EntityType", bound=SQLModel)


@dataclass
class CursorPage(Generic[EntityType]):
    """One page of a cursor paginated listing."""

    items: List[EntityType] = field(default_factory=list)
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    per_page: int = 10


class QueryBuilder:
    """Utility class for building SQLModel-based database queries."""

    @staticmethod
    def apply_filters(stmt, model: Type[EntityType], filters: Dict[str, Any]):
        """Apply equality filters to a SQLModel select statement.

        Args:
            stmt: SQLModel select statement
            model: SQLModel entity class
            filters: Dictionary of field filters

        Returns:
            Modified select statement with filters applied
        """
        for key, value in filters.items():
            if value is not None and hasattr(model, key):
                stmt = stmt.where(getattr(model, key) == value)
        return stmt

    @staticmethod
    def apply_pagination(stmt, limit: Optional[int], offset: Optional[int]):
        """Apply limit/offset pagination to a SQLModel select statement.

        Args:
            stmt: SQLModel select statement
            limit: Maximum number of records
            offset: Number of records to skip

        Returns:
            Modified select statement with pagination applied
        """
        if limit is not None:
            stmt = stmt.limit(limit)
        if offset is not None:
            stmt = stmt.offset(offset)
        return stmt

    @staticmethod
    def exclude_trashed(stmt, model: Type[EntityType]):
        """Hide soft deleted rows for models carrying ``deleted_at``."""
        if hasattr(model, "deleted_at"):
            stmt = stmt.where(getattr(model, "deleted_at").is_(None))
        return stmt


def encode_cursor(pointer: Any, direction: str) -> str:
    payload = json.dumps({"id": pointer, "dir": direction}).encode("utf-8")
    return base64.urlsafe_b64encode(payload).decode("ascii")


def decode_cursor(cursor: Optional[str]) -> tuple[Optional[Any], str]:
    """Decode an opaque cursor into ``(pointer, direction)``.

    Malformed cursors are treated as the first page.
    """
    if not cursor:
        return None, "next"
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        return None, "next"
    if not isinstance(payload, dict) or payload.get("dir") not in ("next", "prev"):
        return None, "next"
    return payload.get("id"), payload["dir"]


class AsyncBaseRepository(Generic[EntityType]):
    """Base async repository with common CRUD operations using SQLModel."""

    def __init__(self, session: AsyncSession, model: Type[EntityType]) -> None:
        """Initialize repository with async database session and SQLModel entity class.

        Args:
            session: Async session for database operations
            model: SQLModel entity class for this repository
        """
        self.session = session
        self.model = model

    def query(self):
        """Select statement over the non-trashed rows of the model."""
        return QueryBuilder.exclude_trashed(select(self.model), self.model)

    async def create(self, entity: EntityType) -> EntityType:
        """Create a new entity record.

        Args:
            entity: SQLModel instance to persist

        Returns:
            Persisted entity with generated fields populated
        """
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def get_by_id(self, entity_id: str | int) -> Optional[EntityType]:
        """Get entity by its primary identifier.

        Args:
            entity_id: Primary key value

        Returns:
            Entity instance or None if not found or trashed
        """
        stmt = self.query().where(getattr(self.model, "id") == entity_id)
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def update(self, entity: EntityType) -> EntityType:
        """Update an existing entity record.

        Args:
            entity: SQLModel instance with updated fields

        Returns:
            Updated entity instance
        """
        if hasattr(entity, "updated_at"):
            setattr(entity, "updated_at", utc_now())
        self.session.add(entity)
        await self.session.commit()
        await self.session.refresh(entity)
        return entity

    async def delete(self, entity_id: str | int) -> bool:
        """Delete entity by its primary identifier.

        Models carrying ``deleted_at`` are soft deleted.

        Args:
            entity_id: Primary key value

        Returns:
            True if deleted, False if not found
        """
        entity = await self.get_by_id(entity_id)
        if entity is None:
            return False
        if hasattr(entity, "deleted_at"):
            setattr(entity, "deleted_at", utc_now())
            self.session.add(entity)
        else:
            await self.session.delete(entity)
        await self.session.commit()
        return True

    async def list(
        self, limit: Optional[int] = None, offset: Optional[int] = None, filters: Optional[Dict[str, Any]] = None
    ) -> List[EntityType]:
        """List entities with optional pagination and filtering.

        Args:
            limit: Maximum number of records to return
            offset: Number of records to skip
            filters: Dictionary of field filters

        Returns:
            List of entity instances
        """
        stmt = QueryBuilder.apply_filters(self.query(), self.model, filters or {})
        stmt = stmt.order_by(getattr(self.model, "id"))
        stmt = QueryBuilder.apply_pagination(stmt, limit, offset)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def paginate(self, stmt=None, cursor: Optional[str] = None, per_page: int = 10) -> CursorPage[EntityType]:
        """Cursor paginate a statement ordered by primary key.

        Args:
            stmt: Select statement to paginate, defaults to all non-trashed rows
            cursor: Opaque cursor from a previous page's links
            per_page: Page size

        Returns:
            CursorPage with items and cursors for the adjacent pages
        """
        stmt = self.query() if stmt is None else stmt
        key = getattr(self.model, "id")
        pointer, direction = decode_cursor(cursor)

        if direction == "prev":
            stmt = stmt.where(key < pointer).order_by(key.desc())
        else:
            if pointer is not None:
                stmt = stmt.where(key > pointer)
            stmt = stmt.order_by(key)

        result = await self.session.execute(stmt.limit(per_page + 1))
        rows = list(result.scalars().all())
        has_more = len(rows) > per_page
        rows = rows[:per_page]
        if direction == "prev":
            rows.reverse()

        page: CursorPage[EntityType] = CursorPage(items=rows, per_page=per_page)
        if not rows:
            return page

        first_id = getattr(rows[0], "id")
        last_id = getattr(rows[-1], "id")
        if direction == "prev":
            page.next_cursor = encode_cursor(last_id, "next")
            page.prev_cursor = encode_cursor(first_id, "prev") if has_more else None
        else:
            page.next_cursor = encode_cursor(last_id, "next") if has_more else None
            page.prev_cursor = encode_cursor(first_id, "prev") if pointer is not None else None
        return page

    async def update_or_create(self, match: Dict[str, Any], values: Optional[Dict[str, Any]] = None) -> EntityType:
        """Update the first row matching ``match`` or create it.

        The session is flushed, not committed, so callers can batch many
        upserts into one transaction.

        Args:
            match: Column values identifying the row, ``None`` matches NULL
            values: Column values to set on the found or created row

        Returns:
            The updated or newly created entity
        """
        stmt = self.query()
        for column, value in match.items():
            attribute = getattr(self.model, column)
            stmt = stmt.where(attribute.is_(None) if value is None else attribute == value)
        result = await self.session.execute(stmt.limit(1))
        entity = result.scalars().first()

        if entity is None:
            entity = self.model(**match, **(values or {}))
        else:
            for column, value in (values or {}).items():
                setattr(entity, column, value)
            if hasattr(entity, "updated_at"):
                setattr(entity, "updated_at", utc_now())

        self.session.add(entity)
        await self.session.flush()
        return entity

    async def trash_except(self, keep_ids: List[str], **filters: Any) -> int:
        """Soft delete rows matching ``filters`` whose id is not in ``keep_ids``.

        Returns:
            Number of rows trashed
        """
        key = getattr(self.model, "id")
        stmt = sa_update(self.model).where(getattr(self.model, "deleted_at").is_(None))
        for column, value in filters.items():
            stmt = stmt.where(getattr(self.model, column) == value)
        if keep_ids:
            stmt = stmt.where(key.not_in(keep_ids))
        result = await self.session.execute(stmt.values(deleted_at=utc_now()))
        return result.rowcount or 0
