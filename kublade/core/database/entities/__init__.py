"""
Database entity models.

This package contains all database entity models organized by business domain.

Modules:
- users: Users, roles, permission grants and API tokens
- projects: Projects and project invitations
- templates: Templates, their git source, tree, fields and ports
- ai_chats: AI assistant chats and messages
"""

from . import ai_chats, projects, templates, users

__all__ = [
    "ai_chats",
    "projects",
    "templates",
    "users",
]
