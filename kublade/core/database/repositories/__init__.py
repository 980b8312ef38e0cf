"""
Database repositories.

This package contains the data access layer, one module per business domain.
Each repository wraps an ``AsyncSession`` and exposes typed operations over
the entities in ``kublade.core.database.entities``.
"""

from .base import AsyncBaseRepository, CursorPage, QueryBuilder
from .projects import ProjectRepository
from .templates import (
    TemplateDirectoryRepository,
    TemplateFieldOptionRepository,
    TemplateFieldRepository,
    TemplateFileRepository,
    TemplatePortRepository,
    TemplateRepository,
)
from .users import AccessTokenRepository, RoleRepository, UserRepository

__all__ = [
    "AccessTokenRepository",
    "AsyncBaseRepository",
    "CursorPage",
    "ProjectRepository",
    "QueryBuilder",
    "RoleRepository",
    "TemplateDirectoryRepository",
    "TemplateFieldOptionRepository",
    "TemplateFieldRepository",
    "TemplateFileRepository",
    "TemplatePortRepository",
    "TemplateRepository",
    "UserRepository",
]
