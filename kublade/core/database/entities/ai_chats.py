"""
AI chat entity models.

Chats hold the message history of the template assistant. Messages marked
``protected`` are system context that users cannot edit or remove.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, Text
from sqlmodel import Field

from ..base import UTC_DATETIME, Base, new_uuid, utc_now


class AiChat(Base, table=True):
    """Conversation owned by a user.

    Table: ai_chats
    """

    __tablename__ = "ai_chats"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    user_id: int = Field(foreign_key="users.id", index=True)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)


class AiChatMessage(Base, table=True):
    """Single message in an AI chat.

    Table: ai_chat_messages
    """

    __tablename__ = "ai_chat_messages"

    id: str = Field(default_factory=new_uuid, primary_key=True, max_length=36)
    ai_chat_id: str = Field(foreign_key="ai_chats.id", index=True, max_length=36)
    role: str = Field(max_length=32, description="user, assistant or system")
    content: str = Field(sa_column=Column(Text, nullable=False))
    key: Optional[str] = Field(default=None, max_length=255)
    protected: bool = Field(default=False)
    created_at: datetime = Field(default_factory=utc_now, sa_type=UTC_DATETIME)
    updated_at: datetime = Field(
        default_factory=utc_now, sa_type=UTC_DATETIME, sa_column_kwargs={"onupdate": utc_now}
    )
    deleted_at: Optional[datetime] = Field(default=None, sa_type=UTC_DATETIME)

    def __repr__(self) -> str:
        return f"AiChatMessage(id={self.id}, ai_chat_id={self.ai_chat_id}, role={self.role})"
